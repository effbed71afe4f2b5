"""Occupancy derived from booking state.

Everything that needs to know whether a slot is taken (allocator, registry,
state machine, reconciler, status view) asks this module, so the set of
slot-holding statuses is applied the same way everywhere.
"""
import logging
from typing import Dict, Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...enum.booking_enum import OCCUPYING_STATUSES
from ...models.parking.bookings import OCCUPIED_SLOT_INDEX, Booking
from ...models.parking.organizations import Organization

logger = logging.getLogger(__name__)

OCCUPYING_VALUES = [s.value for s in OCCUPYING_STATUSES]
# sqlite names the columns, not the index
SQLITE_SLOT_INDEX_MESSAGE = "UNIQUE constraint failed: bookings.parking_lot_id, bookings.slot_index"


def is_occupying(status: str) -> bool:
    return status in OCCUPYING_VALUES


def count_occupied(db: Session, organization_id: int, lot_id: int = None) -> int:
    query = db.query(func.count(Booking.id)).filter(
        Booking.organization_id == organization_id,
        Booking.booking_status.in_(OCCUPYING_VALUES)
    )
    if lot_id is not None:
        query = query.filter(Booking.parking_lot_id == lot_id)
    return query.scalar() or 0


def occupied_by_lot(db: Session, organization_id: int) -> Dict[int, int]:
    rows = (
        db.query(Booking.parking_lot_id, func.count(Booking.id))
        .filter(
            Booking.organization_id == organization_id,
            Booking.booking_status.in_(OCCUPYING_VALUES)
        )
        .group_by(Booking.parking_lot_id)
        .all()
    )
    return {lot_id: count for lot_id, count in rows}


def occupied_indices(db: Session, lot_id: int) -> Set[int]:
    rows = db.query(Booking.slot_index).filter(
        Booking.parking_lot_id == lot_id,
        Booking.booking_status.in_(OCCUPYING_VALUES)
    ).all()
    return {index for (index,) in rows}


def clamp_available(total_slots: int, occupied: int) -> int:
    return max(0, min(total_slots, total_slots - occupied))


def compute_available(db: Session, org: Organization):
    """Return ``(available, occupied)`` for the organization right now."""
    occupied = count_occupied(db, org.id)
    if occupied > org.total_slots:
        logger.error("Organization %s is over-occupied: %s bookings on %s slots",
                     org.id, occupied, org.total_slots)
    return clamp_available(org.total_slots, occupied), occupied


def refresh_available_slots(db: Session, org: Organization) -> int:
    """Recompute the stored counter inside the caller's transaction.

    Callers hold the organization row lock and have flushed their booking
    changes, so the count includes them.
    """
    db.flush()
    available, _ = compute_available(db, org)
    org.available_slots = available
    return available


def is_slot_race(exc: IntegrityError) -> bool:
    """True when the write lost a slot to a concurrent booking."""
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == OCCUPIED_SLOT_INDEX
    message = str(exc.orig)
    return OCCUPIED_SLOT_INDEX in message or SQLITE_SLOT_INDEX_MESSAGE in message
