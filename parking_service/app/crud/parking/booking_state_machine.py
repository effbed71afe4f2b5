"""Booking lifecycle.

::

    pending --> confirmed --> active --> overstay
       |            |           |           |
       |            |           +-----------+--> completed
       +------------+--> cancelled
                    +--> no_show

``completed``, ``cancelled`` and ``no_show`` are terminal. Every move is a
compare-and-swap on ``booking_status`` made while the organization row is
locked, and the organization's ``available_slots`` is recomputed in the
same transaction.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.utils.clock import utcnow
from ...core.exceptions import (
    BookingValidationError,
    IllegalTransition,
    NoCapacity,
    ParkingServiceError,
    SlotConflict,
)
from ...enum.booking_enum import BookingStatus, PaymentStatus
from ...models.parking.bookings import Booking
from .booking_crud import get_booking
from .inventory_crud import lock_organization
from .occupancy import OCCUPYING_VALUES, is_slot_race, refresh_available_slots
from .pricing import overstay_minutes, overstay_penalty
from .slot_allocator import find_free_slot
from .slot_identity import render_slot_key

logger = logging.getLogger(__name__)

S = BookingStatus

TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    S.pending: frozenset({S.confirmed, S.cancelled}),
    S.confirmed: frozenset({S.active, S.cancelled, S.no_show}),
    S.active: frozenset({S.overstay, S.completed}),
    S.overstay: frozenset({S.completed}),
    S.completed: frozenset(),
    S.cancelled: frozenset(),
    S.no_show: frozenset(),
}


def can_transition(current: str, requested: str) -> bool:
    try:
        return S(requested) in TRANSITIONS[S(current)]
    except ValueError:
        return False


def assert_transition(booking: Booking, requested: BookingStatus):
    if not can_transition(booking.booking_status, requested):
        raise IllegalTransition(booking.id, booking.booking_status, requested.value)


def transition_booking(
    db: Session,
    booking: Booking,
    requested: BookingStatus,
    now: datetime,
    values: Optional[dict] = None
) -> Booking:
    """Move ``booking`` to ``requested`` if it is still in the status we read.

    Caller has checked the guard for the edge. Raises ``IllegalTransition``
    when the edge does not exist or when a concurrent writer moved the
    booking first.
    """
    expected = booking.booking_status
    assert_transition(booking, requested)

    update = {
        Booking.booking_status: requested.value,
        Booking.updated_at: now,
    }
    for key, value in (values or {}).items():
        update[getattr(Booking, key)] = value

    try:
        org = lock_organization(db, booking.organization_id)

        changed = (
            db.query(Booking)
            .filter(Booking.id == booking.id, Booking.booking_status == expected)
            .update(update, synchronize_session=False)
        )
        if changed == 0:
            db.rollback()
            found = db.query(Booking.booking_status).filter(
                Booking.id == booking.id).scalar()
            raise IllegalTransition(booking.id, found, requested.value)

        refresh_available_slots(db, org)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_slot_race(exc):
            raise
        raise SlotConflict(
            f"Slot {booking.slot_number} was taken while booking {booking.id} "
            f"moved to '{requested.value}'")
    except (SQLAlchemyError, ParkingServiceError):
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("Booking %s: %s -> %s", booking.id, expected, requested.value)
    return booking


# ----------------- Guarded operations -----------------
def slot_taken_by_other(db: Session, booking: Booking) -> bool:
    return db.query(Booking.id).filter(
        Booking.parking_lot_id == booking.parking_lot_id,
        Booking.slot_index == booking.slot_index,
        Booking.id != booking.id,
        Booking.booking_status.in_(OCCUPYING_VALUES)
    ).first() is not None


def needs_new_slot(db: Session, booking: Booking) -> bool:
    lot = booking.parking_lot
    db.refresh(lot)
    return (
        not lot.is_active
        or booking.slot_index > lot.total_slots
        or slot_taken_by_other(db, booking)
    )


def confirm_booking(
    db: Session,
    booking_id: int,
    now: datetime = None,
    payment_status: PaymentStatus = None
) -> Booking:
    """pending -> confirmed. The booking starts holding its slot here.

    Pending bookings do not hold a slot, so the one picked at creation may
    have gone to someone else, or its lot may have been deactivated or shrunk
    below the slot index. The booking is then moved to the current best free
    slot, or the confirmation fails with ``NoCapacity``.
    """
    now = now or utcnow()
    booking = get_booking(db, booking_id)
    assert_transition(booking, S.confirmed)

    values = {}
    if payment_status is not None:
        values["payment_status"] = payment_status.value

    lock_organization(db, booking.organization_id)
    if needs_new_slot(db, booking):
        slot = find_free_slot(db, booking.organization_id)
        if slot is None:
            db.rollback()
            raise NoCapacity(booking.organization_id)
        lot, index = slot
        values.update(
            parking_lot_id=lot.lot_id,
            slot_index=index,
            slot_number=render_slot_key(lot.slot_prefix, index)
        )
        logger.info("Booking %s re-slotted from %s to %s on confirmation",
                    booking.id, booking.slot_number, values["slot_number"])

    return transition_booking(db, booking, S.confirmed, now, values)


def activate_booking(db: Session, booking: Booking, now: datetime, record_entry: bool) -> Booking:
    """confirmed -> active, once the booking window has opened."""
    assert_transition(booking, S.active)

    if booking.booking_start_time > now:
        raise BookingValidationError(
            f"Booking {booking.id} starts at {booking.booking_start_time.isoformat()}")

    values = {"entry_time": now} if record_entry else None
    return transition_booking(db, booking, S.active, now, values)


def check_in_booking(db: Session, booking_id: int, now: datetime = None) -> Booking:
    """Operator check-in at the gate."""
    return activate_booking(db, get_booking(db, booking_id), now or utcnow(), record_entry=True)


def mark_overstay(db: Session, booking: Booking, now: datetime = None) -> Booking:
    """active -> overstay once the end time has passed. The slot stays held."""
    now = now or utcnow()
    assert_transition(booking, S.overstay)

    if now <= booking.booking_end_time:
        raise BookingValidationError(f"Booking {booking.id} has not ended yet")

    return transition_booking(db, booking, S.overstay, now, {
        "overstay_minutes": overstay_minutes(booking.booking_end_time, now)
    })


def complete_booking(db: Session, booking: Booking, now: datetime) -> Booking:
    """active | overstay -> completed. Frees the slot."""
    assert_transition(booking, S.completed)

    values = {"exit_time": now}
    if now > booking.booking_end_time:
        minutes = overstay_minutes(booking.booking_end_time, now)
        values["overstay_minutes"] = minutes
        values["penalty_amount"] = overstay_penalty(booking.organization, minutes)

    return transition_booking(db, booking, S.completed, now, values)


def cancel_booking(db: Session, booking_id: int, now: datetime = None) -> Booking:
    """pending | confirmed -> cancelled, only before activation."""
    now = now or utcnow()
    booking = get_booking(db, booking_id)
    return transition_booking(db, booking, S.cancelled, now)


def mark_no_show(db: Session, booking: Booking, now: datetime = None) -> Booking:
    """confirmed -> no_show when the start passed the grace window unused."""
    now = now or utcnow()
    assert_transition(booking, S.no_show)

    deadline = booking.booking_start_time + timedelta(minutes=settings.NO_SHOW_GRACE_MINUTES)
    if now <= deadline:
        raise BookingValidationError(
            f"Booking {booking.id} is still inside its arrival grace window")

    return transition_booking(db, booking, S.no_show, now)


def checkout_booking(db: Session, booking_id: int, now: datetime = None) -> Booking:
    """Operator checkout at the gate."""
    return complete_booking(db, get_booking(db, booking_id), now or utcnow())
