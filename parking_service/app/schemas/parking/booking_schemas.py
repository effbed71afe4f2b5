from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from shared.utils.clock import to_naive_utc


# ----------------- Create -----------------
class BookingCreate(BaseModel):
    organization_id: int
    user_id: int
    vehicle_number: str = Field(min_length=1, max_length=50)
    booking_start_time: datetime
    booking_end_time: datetime
    is_member: Optional[bool] = False
    # False leaves the booking pending until approval/payment
    auto_confirm: Optional[bool] = True

    @field_validator("vehicle_number")
    @classmethod
    def normalize_vehicle_number(cls, value: str):
        cleaned = "".join(value.split()).upper()
        if not cleaned:
            raise ValueError("vehicle_number must not be blank")
        return cleaned

    @field_validator("booking_start_time", "booking_end_time")
    @classmethod
    def as_naive_utc(cls, value: datetime):
        return to_naive_utc(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.booking_end_time <= self.booking_start_time:
            raise ValueError("booking_end_time must be after booking_start_time")
        return self


# ----------------- Extend -----------------
class BookingExtend(BaseModel):
    extension_hours: int = Field(gt=0)


# ----------------- Out -----------------
class BookingOut(BaseModel):
    id: int
    organization_id: int
    parking_lot_id: int
    slot_index: int
    slot_number: str
    user_id: int
    is_member: bool
    vehicle_number: str
    booking_start_time: datetime
    booking_end_time: datetime
    duration_hours: Decimal
    amount: Decimal
    booking_status: str
    payment_status: str
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    overstay_minutes: int = 0
    penalty_amount: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ----------------- Request -----------------
class BookingRequest(CommonQueryParams):
    organization_id: Optional[int] = None
    parking_lot_id: Optional[int] = None
    status: Optional[str] = None


# ----------------- List Response -----------------
class BookingListResponse(BaseModel):
    bookings: List[BookingOut]
    total: int

    model_config = {"from_attributes": True}
