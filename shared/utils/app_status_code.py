class AppStatusCode:
    # Success
    DATA_RETRIEVED_SUCCESSFULLY = "100"
    OPERATION_SUCCESSFUL = "101"
    CREATED_SUCCESSFULLY = "102"
    UPDATED_SUCCESSFULLY = "103"

    # Client errors
    INVALID_INPUT = "200"
    REQUIRED_VALIDATION_ERROR = "201"
    NOT_FOUND = "202"

    # Booking engine
    NO_CAPACITY = "300"
    ILLEGAL_TRANSITION = "301"
    SLOT_CONFLICT = "302"
    CAPACITY_ERROR = "303"

    # Server
    OPERATION_FAILED = "500"
