"""Time-driven booking transitions plus the reconciliation backstop.

Each step selects its candidates fresh and moves them one by one through the
state machine, so a booking changed concurrently (checked out at the gate,
already marked by an earlier pass) is skipped rather than moved twice.
Running the sweep again right away changes nothing.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.utils.clock import utcnow
from ...core.exceptions import BookingValidationError, IllegalTransition
from ...enum.booking_enum import BookingStatus, ReconcileSource
from ...models.parking.bookings import Booking
from ...schemas.parking.occupancy_schemas import SweepSummary
from .booking_state_machine import activate_booking, complete_booking, mark_no_show, mark_overstay
from .occupancy_reconciler import reconcile_all
from .pricing import overstay_minutes, overstay_penalty

logger = logging.getLogger(__name__)


def candidates(db: Session, status: BookingStatus, *criteria):
    return (
        db.query(Booking)
        .filter(Booking.booking_status == status.value, *criteria)
        .order_by(Booking.id.asc())
        .all()
    )


def apply_each(bookings, move) -> int:
    moved = 0
    for booking in bookings:
        try:
            move(booking)
            moved += 1
        except (IllegalTransition, BookingValidationError) as exc:
            # someone else got there first
            logger.debug("Skipped booking %s: %s", booking.id, exc)
    return moved


def activate_due_bookings(db: Session, now: datetime) -> int:
    if not settings.AUTO_ACTIVATE_ON_START:
        return 0
    due = candidates(db, BookingStatus.confirmed,
                     Booking.booking_start_time <= now,
                     Booking.booking_end_time > now)
    return apply_each(due, lambda b: activate_booking(db, b, now, record_entry=False))


def mark_no_shows(db: Session, now: datetime) -> int:
    cutoff = now - timedelta(minutes=settings.NO_SHOW_GRACE_MINUTES)
    criteria = [Booking.booking_start_time < cutoff]
    if settings.AUTO_ACTIVATE_ON_START:
        # with auto-activation only bookings whose whole window lapsed remain
        criteria.append(Booking.booking_end_time <= now)
    stale = candidates(db, BookingStatus.confirmed, *criteria)
    return apply_each(stale, lambda b: mark_no_show(db, b, now))


def detect_overstays(db: Session, now: datetime = None) -> int:
    """active bookings past their end time -> overstay.

    Already-overstay and terminal bookings are never selected.
    """
    now = now or utcnow()
    expired = candidates(db, BookingStatus.active, Booking.booking_end_time < now)
    moved = apply_each(expired, lambda b: mark_overstay(db, b, now))
    if moved:
        logger.info("Marked %s bookings as overstay", moved)
    return moved


def auto_complete_overstays(db: Session, now: datetime) -> int:
    grace = settings.OVERSTAY_AUTO_COMPLETE_MINUTES
    if grace <= 0:
        return 0
    cutoff = now - timedelta(minutes=grace)
    expired = candidates(db, BookingStatus.overstay, Booking.booking_end_time < cutoff)
    return apply_each(expired, lambda b: complete_booking(db, b, now))


def apply_overstay_penalty(db: Session, booking: Booking, now: datetime) -> bool:
    """Refresh the running penalty of a booking that is still in overstay.

    Written only while the row is still ``overstay``, so a checkout that
    committed after ``booking`` was read keeps the penalty fixed at exit.
    Does not commit.
    """
    minutes = overstay_minutes(booking.booking_end_time, now)
    penalty = overstay_penalty(booking.organization, minutes)
    if booking.overstay_minutes == minutes and booking.penalty_amount == penalty:
        return False

    changed = (
        db.query(Booking)
        .filter(Booking.id == booking.id,
                Booking.booking_status == BookingStatus.overstay.value)
        .update({
            Booking.overstay_minutes: minutes,
            Booking.penalty_amount: penalty,
        }, synchronize_session=False)
    )
    if changed == 0:
        logger.debug("Skipped penalty for booking %s: no longer in overstay", booking.id)
    return changed > 0


def calculate_overstay_penalties(db: Session, now: datetime) -> int:
    updated = 0
    try:
        for booking in candidates(db, BookingStatus.overstay):
            if apply_overstay_penalty(db, booking, now):
                updated += 1
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return updated


def run_lifecycle_sweep(db: Session, now: datetime = None) -> SweepSummary:
    now = now or utcnow()

    activated = activate_due_bookings(db, now)
    no_shows = mark_no_shows(db, now)
    overstays = detect_overstays(db, now)
    auto_completed = auto_complete_overstays(db, now)
    penalties = calculate_overstay_penalties(db, now)
    reconciliation = reconcile_all(db, ReconcileSource.sweep)

    logger.info(
        "Sweep at %s: activated=%s no_show=%s overstay=%s auto_completed=%s "
        "penalties=%s drift_corrected=%s",
        now.isoformat(), activated, no_shows, overstays, auto_completed,
        penalties, reconciliation.corrected)

    return SweepSummary(
        activated=activated,
        no_shows=no_shows,
        overstays=overstays,
        auto_completed=auto_completed,
        penalties_updated=penalties,
        reconciliation=reconciliation
    )
