import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from ...core.exceptions import NoCapacity, ParkingServiceError, SlotConflict
from ...enum.booking_enum import BookingStatus, PaymentStatus
from ...models.parking.bookings import Booking
from ...models.parking.parking_lots import ParkingLot
from ...schemas.parking.booking_schemas import BookingCreate
from .inventory_crud import get_parking_lots, lock_organization
from .occupancy import is_slot_race, occupied_indices, refresh_available_slots
from .pricing import duration_hours, quote_amount
from .slot_identity import render_slot_key

logger = logging.getLogger(__name__)


def find_free_slot(db: Session, organization_id: int) -> Optional[Tuple[ParkingLot, int]]:
    """Lowest free index of the first active lot (by priority) that has one."""
    for lot in get_parking_lots(db, organization_id, active_only=True):
        used = occupied_indices(db, lot.lot_id)
        for index in range(1, lot.total_slots + 1):
            if index not in used:
                return lot, index
    return None


def allocate_booking(db: Session, data: BookingCreate) -> Booking:
    """Pick a slot and create the booking for it in one transaction.

    The organization row is locked while occupancy is scanned and the booking
    inserted. If another writer still got the slot first (the partial unique
    index on bookings fires) the attempt is rolled back and retried against
    the new occupancy.
    """
    attempts = settings.ALLOCATION_MAX_RETRIES + 1

    for attempt in range(1, attempts + 1):
        try:
            org = lock_organization(db, data.organization_id)

            slot = find_free_slot(db, org.id)
            if slot is None:
                logger.info("Rejected booking for organization %s: no capacity", org.id)
                raise NoCapacity(org.id)
            lot, index = slot

            hours = duration_hours(data.booking_start_time, data.booking_end_time)
            amount = quote_amount(org, data.is_member, hours)
            status = BookingStatus.confirmed if data.auto_confirm else BookingStatus.pending
            payment = PaymentStatus.completed if amount == 0 else PaymentStatus.pending

            booking = Booking(
                organization_id=org.id,
                parking_lot_id=lot.lot_id,
                slot_index=index,
                slot_number=render_slot_key(lot.slot_prefix, index),
                user_id=data.user_id,
                is_member=bool(data.is_member),
                vehicle_number=data.vehicle_number,
                booking_start_time=data.booking_start_time,
                booking_end_time=data.booking_end_time,
                duration_hours=hours,
                amount=amount,
                booking_status=status.value,
                payment_status=payment.value
            )
            db.add(booking)
            refresh_available_slots(db, org)
            db.commit()

        except IntegrityError as exc:
            db.rollback()
            if not is_slot_race(exc):
                raise
            logger.warning("Slot race for organization %s on attempt %s/%s, retrying",
                           data.organization_id, attempt, attempts)
            continue
        except (SQLAlchemyError, ParkingServiceError):
            db.rollback()
            raise

        db.refresh(booking)
        logger.info("Allocated %s (lot %s) to booking %s as %s",
                    booking.slot_number, booking.parking_lot_id, booking.id,
                    booking.booking_status)
        return booking

    raise SlotConflict(
        f"Could not secure a slot for organization {data.organization_id} "
        f"after {attempts} attempts")
