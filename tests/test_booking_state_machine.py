"""Tests for booking lifecycle transitions."""
from datetime import timedelta
from decimal import Decimal

import pytest

from shared.core.database import ParkingSessionLocal
from parking_service.app.core.exceptions import BookingValidationError, IllegalTransition, NoCapacity
from parking_service.app.crud.parking import booking_state_machine as lifecycle
from parking_service.app.crud.parking import inventory_crud
from parking_service.app.enum.booking_enum import BookingStatus
from parking_service.app.schemas.parking.parking_lot_schemas import ParkingLotUpdate


class TestTransitionTable:

    @pytest.mark.parametrize("current, requested", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "active"),
        ("confirmed", "cancelled"),
        ("confirmed", "no_show"),
        ("active", "overstay"),
        ("active", "completed"),
        ("overstay", "completed"),
    ])
    def test_allowed_edges(self, current, requested):
        assert lifecycle.can_transition(current, requested)

    @pytest.mark.parametrize("current, requested", [
        ("completed", "active"),
        ("cancelled", "confirmed"),
        ("no_show", "active"),
        ("active", "cancelled"),
        ("overstay", "active"),
        ("pending", "active"),
        ("confirmed", "overstay"),
        ("active", "bogus"),
    ])
    def test_rejected_edges(self, current, requested):
        assert not lifecycle.can_transition(current, requested)

    def test_terminal_states_have_no_exits(self):
        for status in (BookingStatus.completed, BookingStatus.cancelled, BookingStatus.no_show):
            assert lifecycle.TRANSITIONS[status] == frozenset()


class TestCheckInAndCheckout:

    def test_check_in_records_entry(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        booking = book(org)

        booking = lifecycle.check_in_booking(db, booking.id, now=now)

        assert booking.booking_status == "active"
        assert booking.entry_time == now
        db.refresh(org)
        assert org.available_slots == 1

    def test_check_in_before_start_rejected(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        booking = book(org, start=now + timedelta(hours=1))

        with pytest.raises(BookingValidationError):
            lifecycle.check_in_booking(db, booking.id, now=now)
        db.refresh(booking)
        assert booking.booking_status == "confirmed"

    def test_checkout_frees_slot(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)

        booking = lifecycle.checkout_booking(db, booking.id, now=now + timedelta(minutes=30))

        assert booking.booking_status == "completed"
        assert booking.penalty_amount == Decimal("0.00")
        db.refresh(org)
        assert org.available_slots == 2

    def test_late_checkout_charges_penalty(self, db, make_org, make_lot, book, now):
        org = make_org(rate="20")
        make_lot(org, 2)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)

        # ended at now + 1h, leaves 90 minutes later
        booking = lifecycle.checkout_booking(db, booking.id, now=now + timedelta(minutes=150))

        assert booking.overstay_minutes == 90
        assert booking.penalty_amount == Decimal("80.00")

    def test_completed_cannot_be_reactivated(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)
        lifecycle.checkout_booking(db, booking.id, now=now)

        with pytest.raises(IllegalTransition) as exc:
            lifecycle.check_in_booking(db, booking.id, now=now)
        assert exc.value.current == "completed"

    def test_second_checkout_from_stale_read_fails(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 3)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)

        other = ParkingSessionLocal()
        try:
            stale = lifecycle.get_booking(other, booking.id)
            assert stale.booking_status == "active"

            lifecycle.checkout_booking(db, booking.id, now=now)

            with pytest.raises(IllegalTransition) as exc:
                lifecycle.complete_booking(other, stale, now)
            assert exc.value.current == "completed"
        finally:
            other.close()

        db.refresh(org)
        assert org.available_slots == 3


class TestCancelAndConfirm:

    def test_cancel_confirmed_frees_slot(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        booking = book(org)

        assert lifecycle.cancel_booking(db, booking.id, now=now).booking_status == "cancelled"
        db.refresh(org)
        assert org.available_slots == 1

    def test_cancel_active_rejected(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        booking = book(org)
        lifecycle.check_in_booking(db, booking.id, now=now)

        with pytest.raises(IllegalTransition):
            lifecycle.cancel_booking(db, booking.id, now=now)

    def test_confirm_keeps_free_slot(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        pending = book(org, auto_confirm=False)

        confirmed = lifecycle.confirm_booking(db, pending.id, now=now)

        assert confirmed.booking_status == "confirmed"
        assert confirmed.slot_number == "L1-001"
        db.refresh(org)
        assert org.available_slots == 1

    def test_confirm_moves_to_free_slot_when_taken(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 2)
        pending = book(org, auto_confirm=False, vehicle="CAR1")
        rival = book(org, vehicle="CAR2")
        assert rival.slot_number == pending.slot_number

        confirmed = lifecycle.confirm_booking(db, pending.id, now=now)

        assert confirmed.slot_number == "L1-002"
        db.refresh(org)
        assert org.available_slots == 0

    def test_confirm_without_capacity(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        pending = book(org, auto_confirm=False, vehicle="CAR1")
        book(org, vehicle="CAR2")

        with pytest.raises(NoCapacity):
            lifecycle.confirm_booking(db, pending.id, now=now)
        db.refresh(pending)
        assert pending.booking_status == "pending"

    def test_confirm_moves_off_deactivated_lot(self, db, make_org, make_lot, book, now):
        org = make_org()
        first = make_lot(org, 1, priority_order=1)
        second = make_lot(org, 1, priority_order=2)
        pending = book(org, auto_confirm=False)
        inventory_crud.update_parking_lot(db, ParkingLotUpdate(lot_id=first.lot_id, is_active=False))

        confirmed = lifecycle.confirm_booking(db, pending.id, now=now)

        assert confirmed.parking_lot_id == second.lot_id
        assert confirmed.slot_number == "L2-001"

    def test_confirm_moves_off_index_removed_by_shrink(self, db, make_org, make_lot, book, now):
        org = make_org()
        first = make_lot(org, 3, priority_order=1)
        second = make_lot(org, 2, priority_order=2)
        book(org, vehicle="CAR1")
        book(org, vehicle="CAR2")
        pending = book(org, vehicle="CAR3", auto_confirm=False)
        assert pending.slot_number == "L1-003"

        # pending bookings do not block the shrink
        inventory_crud.update_parking_lot(db, ParkingLotUpdate(lot_id=first.lot_id, total_slots=2))

        confirmed = lifecycle.confirm_booking(db, pending.id, now=now)

        assert confirmed.parking_lot_id == second.lot_id
        assert confirmed.slot_number == "L2-001"
        db.refresh(org)
        assert (org.total_slots, org.available_slots) == (4, 1)

    def test_confirm_on_removed_index_without_capacity(self, db, make_org, make_lot, book, now):
        org = make_org()
        lot = make_lot(org, 3)
        book(org, vehicle="CAR1")
        book(org, vehicle="CAR2")
        pending = book(org, vehicle="CAR3", auto_confirm=False)
        inventory_crud.update_parking_lot(db, ParkingLotUpdate(lot_id=lot.lot_id, total_slots=2))

        with pytest.raises(NoCapacity):
            lifecycle.confirm_booking(db, pending.id, now=now)

        db.refresh(pending)
        db.refresh(org)
        assert pending.booking_status == "pending"
        assert (org.total_slots, org.available_slots) == (2, 0)


class TestNoShow:

    def test_inside_grace_window_rejected(self, db, make_org, make_lot, book, now):
        org = make_org()
        make_lot(org, 1)
        booking = book(org, start=now - timedelta(minutes=10))

        with pytest.raises(BookingValidationError):
            lifecycle.mark_no_show(db, booking, now)

    def test_after_grace_window(self, db, make_org, make_lot, book, now, monkeypatch):
        monkeypatch.setattr(lifecycle.settings, "NO_SHOW_GRACE_MINUTES", 15)
        org = make_org()
        make_lot(org, 1)
        booking = book(org, start=now - timedelta(minutes=20))

        assert lifecycle.mark_no_show(db, booking, now).booking_status == "no_show"
        db.refresh(org)
        assert org.available_slots == 1
