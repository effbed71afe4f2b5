from shared.utils.app_status_code import AppStatusCode


class ParkingServiceError(Exception):
    """Base for errors the booking engine surfaces to its callers."""

    http_status = 400
    app_status_code = AppStatusCode.OPERATION_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ParkingServiceError):
    http_status = 404
    app_status_code = AppStatusCode.NOT_FOUND


class BookingValidationError(ParkingServiceError):
    app_status_code = AppStatusCode.INVALID_INPUT


class CapacityError(ParkingServiceError):
    """A capacity change would break the inventory invariants."""
    app_status_code = AppStatusCode.CAPACITY_ERROR


class NoCapacity(ParkingServiceError):
    """No active lot of the organization has a free slot."""
    http_status = 409
    app_status_code = AppStatusCode.NO_CAPACITY

    def __init__(self, organization_id: int):
        super().__init__(
            f"No parking slots available for organization {organization_id}")
        self.organization_id = organization_id


class IllegalTransition(ParkingServiceError):
    http_status = 409
    app_status_code = AppStatusCode.ILLEGAL_TRANSITION

    def __init__(self, booking_id: int, current: str, requested: str):
        super().__init__(
            f"Booking {booking_id} cannot move from '{current}' to '{requested}'")
        self.booking_id = booking_id
        self.current = current
        self.requested = requested


class SlotConflict(ParkingServiceError):
    """Allocation kept losing the race for a slot and gave up."""
    http_status = 409
    app_status_code = AppStatusCode.SLOT_CONFLICT
