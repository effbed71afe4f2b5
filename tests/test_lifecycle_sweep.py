"""Tests for the periodic lifecycle sweep and booking extension."""
from datetime import timedelta
from decimal import Decimal

import pytest

from shared.core.database import ParkingSessionLocal

from parking_service.app.core.exceptions import BookingValidationError
from parking_service.app.crud.parking import booking_crud
from parking_service.app.crud.parking import booking_state_machine as lifecycle
from parking_service.app.crud.parking import lifecycle_sweep
from parking_service.app.models.parking.organizations import Organization
from parking_service.app.models.parking.reconciliation_logs import ReconciliationLog


class TestActivation:

    def test_due_bookings_become_active(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 3)
        due = book(org, vehicle="CAR1")
        future = book(org, vehicle="CAR2", start=now + timedelta(hours=3))

        summary = lifecycle_sweep.run_lifecycle_sweep(db, now)

        assert summary.activated == 1
        db.refresh(due)
        db.refresh(future)
        assert due.booking_status == "active"
        assert due.entry_time is None
        assert future.booking_status == "confirmed"

    def test_activation_can_be_disabled(self, db, make_org, make_lot, book, now, monkeypatch):
        monkeypatch.setattr(lifecycle_sweep.settings, "AUTO_ACTIVATE_ON_START", False)
        org = make_org()
        make_lot(org, 1)
        booking = book(org, start=now - timedelta(minutes=10))

        assert lifecycle_sweep.run_lifecycle_sweep(db, now).activated == 0
        db.refresh(booking)
        assert booking.booking_status == "confirmed"


class TestNoShows:

    def test_lapsed_booking_marked_no_show(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        lapsed = book(org, start=now - timedelta(hours=3), hours=2)

        summary = lifecycle_sweep.run_lifecycle_sweep(db, now)

        assert (summary.activated, summary.no_shows) == (0, 1)
        db.refresh(lapsed)
        db.refresh(org)
        assert lapsed.booking_status == "no_show"
        assert org.available_slots == 1

    def test_without_auto_activation_grace_applies(self, db, make_org, make_lot, book, now, monkeypatch):
        monkeypatch.setattr(lifecycle_sweep.settings, "AUTO_ACTIVATE_ON_START", False)
        monkeypatch.setattr(lifecycle_sweep.settings, "NO_SHOW_GRACE_MINUTES", 30)
        org = make_org()
        make_lot(org, 2)
        late = book(org, vehicle="CAR1", start=now - timedelta(minutes=45))
        recent = book(org, vehicle="CAR2", start=now - timedelta(minutes=10))

        assert lifecycle_sweep.run_lifecycle_sweep(db, now).no_shows == 1
        db.refresh(late)
        db.refresh(recent)
        assert (late.booking_status, recent.booking_status) == ("no_show", "confirmed")


class TestOverstay:

    def test_detection_is_idempotent(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        later = now + timedelta(hours=2)

        first = lifecycle_sweep.run_lifecycle_sweep(db, later)
        second = lifecycle_sweep.run_lifecycle_sweep(db, later)

        assert first.overstays == 1
        assert (second.overstays, second.penalties_updated) == (0, 0)
        db.refresh(booking)
        assert booking.booking_status == "overstay"
        db.refresh(org)
        assert org.available_slots == 1

    def test_penalty_grows_with_overstay(self, db, make_org, make_lot, book, now):
        org = make_org(rate="20")
        make_lot(org, 1)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        end = booking.booking_end_time

        lifecycle_sweep.run_lifecycle_sweep(db, end + timedelta(minutes=20))
        db.refresh(booking)
        assert (booking.overstay_minutes, booking.penalty_amount) == (20, Decimal("40.00"))

        lifecycle_sweep.run_lifecycle_sweep(db, end + timedelta(minutes=90))
        db.refresh(booking)
        assert (booking.overstay_minutes, booking.penalty_amount) == (90, Decimal("80.00"))

    def test_penalty_from_stale_read_keeps_checkout_values(self, db, make_org, make_lot, book, now):
        org = make_org(rate="20")
        make_lot(org, 1)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        end = booking.booking_end_time
        lifecycle_sweep.detect_overstays(db, end + timedelta(minutes=20))

        other = ParkingSessionLocal()
        try:
            stale = booking_crud.get_booking(other, booking.id)
            assert stale.booking_status == "overstay"

            lifecycle.checkout_booking(db, booking.id, now=end + timedelta(minutes=30))

            assert not lifecycle_sweep.apply_overstay_penalty(
                other, stale, end + timedelta(minutes=150))
            other.commit()
        finally:
            other.close()

        db.refresh(booking)
        assert booking.booking_status == "completed"
        assert (booking.overstay_minutes, booking.penalty_amount) == (30, Decimal("40.00"))

    def test_auto_complete_after_grace(self, db, make_org, make_lot, book, now, monkeypatch):
        monkeypatch.setattr(lifecycle_sweep.settings, "OVERSTAY_AUTO_COMPLETE_MINUTES", 30)
        org = make_org(rate="20")
        make_lot(org, 1)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        when = booking.booking_end_time + timedelta(minutes=45)

        summary = lifecycle_sweep.run_lifecycle_sweep(db, when)

        assert (summary.overstays, summary.auto_completed) == (1, 1)
        db.refresh(booking)
        db.refresh(org)
        assert booking.booking_status == "completed"
        assert booking.exit_time == when
        assert booking.penalty_amount == Decimal("40.00")
        assert org.available_slots == 1

    def test_terminal_bookings_untouched(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        lifecycle.checkout_booking(db, booking.id, now=now)

        summary = lifecycle_sweep.run_lifecycle_sweep(db, now + timedelta(days=1))

        assert summary.overstays == 0
        db.refresh(booking)
        assert booking.booking_status == "completed"


class TestSweepReconciles:

    def test_drift_fixed_with_sweep_source(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 3)
        book(org, start=now + timedelta(hours=5))
        db.query(Organization).filter(Organization.id == org.id).update(
            {Organization.available_slots: 3}, synchronize_session=False)
        db.commit()

        summary = lifecycle_sweep.run_lifecycle_sweep(db, now)

        assert summary.reconciliation.corrected == 1
        assert db.query(ReconciliationLog).one().source == "sweep"


class TestExtendBooking:

    def test_extends_active_booking(self, db, make_org, make_lot, book, now):
        org = make_org(rate="20")
        make_lot(org, 1)
        booking = book(org, hours=2)
        lifecycle.check_in_booking(db, booking.id, now=now)
        end = booking.booking_end_time

        booking = booking_crud.extend_booking(db, booking.id, 2)

        assert booking.booking_end_time == end + timedelta(hours=2)
        assert booking.duration_hours == Decimal("4.00")
        assert booking.amount == Decimal("80.00")
        assert booking.slot_number == "L1-001"

    def test_confirmed_booking_cannot_extend(self, db, make_org, make_lot, book):
        org = make_org()
        make_lot(org, 1)
        booking = book(org)

        with pytest.raises(BookingValidationError):
            booking_crud.extend_booking(db, booking.id, 1)
