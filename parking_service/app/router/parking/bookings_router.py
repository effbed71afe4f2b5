from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_parking_db as get_db
from shared.core.schemas import Lookup
from ...crud.parking import booking_crud as crud
from ...crud.parking import booking_state_machine as lifecycle
from ...crud.parking.slot_allocator import allocate_booking
from ...schemas.parking.booking_schemas import (
    BookingCreate,
    BookingExtend,
    BookingListResponse,
    BookingOut,
    BookingRequest,
)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


# ---------------- List Bookings ----------------
@router.get("/all", response_model=BookingListResponse)
def get_bookings(
    params: BookingRequest = Depends(),
    db: Session = Depends(get_db)
):
    return crud.get_bookings(db, params)


# ----------------status Lookup by enum ----------------
@router.get("/status-lookup", response_model=List[Lookup])
def booking_status_lookup():
    return crud.booking_status_lookup()


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return crud.get_booking(db, booking_id)


# ----------------- Create Booking -----------------
@router.post("/", response_model=BookingOut)
def create_booking(booking: BookingCreate, db: Session = Depends(get_db)):
    return allocate_booking(db, booking)


# ----------------- Lifecycle -----------------
@router.post("/{booking_id}/confirm", response_model=BookingOut)
def confirm_booking(booking_id: int, db: Session = Depends(get_db)):
    return lifecycle.confirm_booking(db, booking_id)


@router.post("/{booking_id}/check-in", response_model=BookingOut)
def check_in_booking(booking_id: int, db: Session = Depends(get_db)):
    return lifecycle.check_in_booking(db, booking_id)


@router.post("/{booking_id}/checkout", response_model=BookingOut)
def checkout_booking(booking_id: int, db: Session = Depends(get_db)):
    return lifecycle.checkout_booking(db, booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, db: Session = Depends(get_db)):
    return lifecycle.cancel_booking(db, booking_id)


@router.put("/{booking_id}/extend", response_model=BookingOut)
def extend_booking(
    booking_id: int,
    params: BookingExtend,
    db: Session = Depends(get_db)
):
    return crud.extend_booking(db, booking_id, params.extension_hours)
