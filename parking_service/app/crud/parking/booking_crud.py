import logging
from datetime import timedelta
from decimal import Decimal
from typing import List

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.schemas import Lookup
from ...core.exceptions import BookingValidationError, NotFound, ParkingServiceError
from ...enum.booking_enum import BookingStatus
from ...models.parking.bookings import Booking
from ...schemas.parking.booking_schemas import BookingRequest
from .inventory_crud import lock_organization
from .pricing import quote_amount

logger = logging.getLogger(__name__)


# ----------------- Build Filters -----------------
def build_booking_filters(params: BookingRequest):
    filters = []

    if params.organization_id:
        filters.append(Booking.organization_id == params.organization_id)

    if params.parking_lot_id:
        filters.append(Booking.parking_lot_id == params.parking_lot_id)

    if params.status and params.status.lower() != "all":
        filters.append(func.lower(Booking.booking_status) == params.status.lower())

    if params.search:
        search_term = f"%{params.search}%"
        filters.append(
            or_(
                Booking.vehicle_number.ilike(search_term),
                Booking.slot_number.ilike(search_term),
            )
        )
    return filters


# ----------------- Get All Bookings -----------------
def get_bookings(db: Session, params: BookingRequest):
    base_query = db.query(Booking).filter(*build_booking_filters(params))
    total = base_query.with_entities(func.count(Booking.id)).scalar()

    bookings = (
        base_query
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset(params.skip)
        .limit(params.limit)
        .all()
    )

    return {"bookings": bookings, "total": total}


# ----------------- Get Single Booking -----------------
def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


def booking_status_lookup() -> List[Lookup]:
    return [
        Lookup(id=status.value, name=status.name.replace("_", " ").capitalize())
        for status in BookingStatus
    ]


# ----------------- Extend Booking -----------------
def extend_booking(db: Session, booking_id: int, extension_hours: int) -> Booking:
    """Push out the end time of an active booking on the same slot.

    The slot is already held, so nobody else can have been handed it in
    between; only the window, duration and amount change.
    """
    booking = get_booking(db, booking_id)

    try:
        org = lock_organization(db, booking.organization_id)
        db.refresh(booking)

        if booking.booking_status != BookingStatus.active.value:
            raise BookingValidationError("Only active bookings can be extended")

        extra = quote_amount(org, booking.is_member, extension_hours)
        booking.booking_end_time = booking.booking_end_time + timedelta(hours=extension_hours)
        booking.duration_hours = Decimal(booking.duration_hours) + Decimal(extension_hours)
        booking.amount = Decimal(booking.amount) + extra
        db.commit()
    except (SQLAlchemyError, ParkingServiceError):
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("Extended booking %s by %sh (+%s)", booking.id, extension_hours, extra)
    return booking
