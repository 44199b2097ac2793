# tests/test_confirmation.py
"""Pending confirmations: open, render, resolve exactly once, refunds and the seat-change sub-flow"""

from datetime import timedelta

import pytest

from skydesk.agents.confirmation import (
    InvalidSelection,
    UnknownTransaction,
    refund_eligibility,
    upgrade_price,
)
from skydesk.data.flights import synthesize_route_flights
from skydesk.schemas.airline_schemas import (
    ActionKind,
    BookingStatus,
    CabinClass,
    FareType,
    LoyaltyTier,
    SeatChangeStage,
)

from .conftest import NOW


def _open(protocol, executor, conversation, kind, params):
    prepared = executor.prepare(kind, params)
    assert prepared.requires_confirmation, prepared.message
    message = conversation.add_bot(prepared.message, action_result=prepared)
    return protocol.open(message, kind, params, prepared)


def _booking_departing_in(store, days):
    day = NOW.date() + timedelta(days=days)
    flights = synthesize_route_flights("Chicago", "Los Angeles", day, store.rng, NOW.date())
    store.add_flights(flights)
    reference = store.create_booking(flights[-1].flight_number, "economy")
    return store.get_booking(reference)


class TestRefundEligibility:

    def test_fresh_booking_ten_days_out_qualifies(self, store):
        booking = _booking_departing_in(store, 10)
        refund = refund_eligibility(booking, NOW)

        assert booking.fare_type == FareType.NON_REFUNDABLE
        assert refund.qualifies_for_24_hour_refund is True
        assert refund.eligible is True
        assert refund.hours_since_booking == 0

    def test_fresh_booking_three_days_out_gets_ecredit(self, store):
        booking = _booking_departing_in(store, 3)
        refund = refund_eligibility(booking, NOW)

        assert refund.qualifies_for_24_hour_refund is False
        assert refund.eligible is False
        assert "eCredit" in refund.note

    def test_old_booking_outside_window(self, store):
        booking = _booking_departing_in(store, 10)
        refund = refund_eligibility(booking, NOW + timedelta(hours=25))
        assert refund.qualifies_for_24_hour_refund is False

    def test_refundable_fare_always_eligible(self, store):
        booking = _booking_departing_in(store, 3).model_copy(update={"fare_type": FareType.REFUNDABLE})
        refund = refund_eligibility(booking, NOW)
        assert refund.eligible is True
        assert refund.qualifies_for_24_hour_refund is False


class TestResolve:

    def test_open_attaches_pending_to_message(self, protocol, executor, conversation):
        pending = _open(protocol, executor, conversation, ActionKind.BOOK_FLIGHT,
                        {"flightNumber": "DL6230", "seatClass": "comfortPlus"})

        assert pending.transaction_id.startswith("txn_")
        assert conversation.open_pending()[0].pending.transaction_id == pending.transaction_id
        view = protocol.render(pending.transaction_id)
        assert view.kind == ActionKind.BOOK_FLIGHT
        assert view.details["cabin"] == "Comfort+"

    def test_open_rejects_failed_results(self, protocol, executor, conversation):
        prepared = executor.prepare(ActionKind.CHECK_IN, {"bookingReference": "DL00001"})
        message = conversation.add_bot(prepared.message)
        with pytest.raises(ValueError):
            protocol.open(message, ActionKind.CHECK_IN, {"bookingReference": "DL00001"}, prepared)

    def test_confirm_executes_exactly_once(self, protocol, executor, conversation, store):
        pending = _open(protocol, executor, conversation, ActionKind.BOOK_FLIGHT,
                        {"flightNumber": "DL6230", "seatClass": "comfortPlus"})
        before = len(store.list_bookings())

        outcome = protocol.confirm(pending.transaction_id)
        assert outcome.action_result.success is True
        assert outcome.content == "Successfully booked flight DL6230 in comfortPlus class"
        assert len(store.list_bookings()) == before + 1

        assert protocol.confirm(pending.transaction_id) is None
        assert protocol.decline(pending.transaction_id) is None
        assert len(store.list_bookings()) == before + 1
        assert conversation.open_pending() == []

    def test_confirm_reports_failure(self, protocol, executor, conversation, store):
        pending = _open(protocol, executor, conversation, ActionKind.CANCEL_BOOKING, {"bookingReference": "DL00001"})
        store.cancel_booking("DL00001")

        outcome = protocol.confirm(pending.transaction_id)
        assert outcome.action_result.success is False
        assert outcome.content.startswith("I wasn't able to complete that request.")

    def test_decline_leaves_inventory_untouched(self, protocol, executor, conversation, store):
        pending = _open(protocol, executor, conversation, ActionKind.CANCEL_BOOKING, {"bookingReference": "DL00001"})

        outcome = protocol.decline(pending.transaction_id)
        assert outcome.content == "Okay, booking DL00001 has not been cancelled and remains active."
        assert store.get_booking("DL00001").status == BookingStatus.CONFIRMED
        assert store.active_profile.activity_log[-1].action == "Kept Booking"
        assert protocol.confirm(pending.transaction_id) is None

    def test_cancel_view_includes_refund(self, protocol, executor, conversation):
        pending = _open(protocol, executor, conversation, ActionKind.CANCEL_BOOKING, {"bookingReference": "DL00002"})
        view = protocol.render(pending.transaction_id)
        assert view.refund is not None
        assert view.refund.qualifies_for_24_hour_refund is False
        assert protocol.refund_eligibility(pending.transaction_id) == view.refund

    def test_unknown_transaction(self, protocol):
        with pytest.raises(UnknownTransaction):
            protocol.render("txn_missing")
        assert protocol.confirm("txn_missing") is None


class TestSeatChangeFlow:

    def test_full_flow_with_complimentary_upgrade(self, protocol, executor, conversation, store):
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "window"})
        txn = pending.transaction_id
        assert pending.stage == SeatChangeStage.VERIFY_LOYALTY

        verified = protocol.verify_loyalty(txn)
        assert verified.loyalty_tier == LoyaltyTier.GOLD
        assert verified.upgrade_eligible is True
        assert verified.stage == SeatChangeStage.SELECT_SEAT

        options = protocol.seat_options(txn)
        assert options and all(o.cabin_class == CabinClass.ECONOMY for o in options)
        window = next(o for o in options if o.seat_type == "window")

        selected = protocol.select_seat(txn, window.seat_number)
        assert selected.stage == SeatChangeStage.OFFER_UPGRADE

        upgrades = {u.cabin_class: u for u in protocol.upgrade_options(txn)}
        assert upgrades[CabinClass.COMFORT_PLUS].complimentary is True
        assert upgrades[CabinClass.COMFORT_PLUS].price == 0.0
        assert upgrades[CabinClass.DELTA_ONE].complimentary is False
        assert CabinClass.FIRST not in upgrades

        ready = protocol.choose_upgrade(txn, "comfortPlus")
        assert ready.stage == SeatChangeStage.READY
        assert ready.selected_class == CabinClass.COMFORT_PLUS
        assert ready.selected_seat[-1] in ("A", "F")

        outcome = protocol.confirm(txn)
        assert outcome.action_result.success is True
        booking = store.get_booking(reference)
        assert booking.cabin_class == CabinClass.COMFORT_PLUS
        assert booking.seat.seat_number == ready.selected_seat

    def test_paid_upgrade_adds_charge_note(self, protocol, executor, conversation, store):
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "aisle"})
        txn = pending.transaction_id

        protocol.verify_loyalty(txn)
        protocol.select_seat(txn, protocol.seat_options(txn)[0].seat_number)
        protocol.choose_upgrade(txn, "deltaOne")
        outcome = protocol.confirm(txn)

        assert outcome.action_result.success is True
        assert outcome.content.endswith("An upgrade charge of $450 applies.")

    def test_skip_upgrade(self, protocol, executor, conversation, store):
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "aisle"})
        txn = pending.transaction_id

        protocol.verify_loyalty(txn)
        protocol.select_seat(txn, protocol.seat_options(txn)[0].seat_number)
        ready = protocol.choose_upgrade(txn, None)
        assert ready.stage == SeatChangeStage.READY
        assert ready.upgrade is None
        assert ready.selected_class == CabinClass.ECONOMY

    def test_steps_run_in_order(self, protocol, executor, conversation, store):
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "aisle"})
        txn = pending.transaction_id

        with pytest.raises(InvalidSelection):
            protocol.select_seat(txn, "30C")
        with pytest.raises(InvalidSelection):
            protocol.choose_upgrade(txn, "comfortPlus")

        protocol.verify_loyalty(txn)
        with pytest.raises(InvalidSelection):
            protocol.verify_loyalty(txn)
        with pytest.raises(InvalidSelection):
            protocol.choose_upgrade(txn, None)
        assert protocol.get(txn).stage == SeatChangeStage.SELECT_SEAT

    def test_higher_cabin_seat_is_not_free(self, protocol, executor, conversation, store):
        store.set_active_profile("CUST004")
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "window"})
        txn = pending.transaction_id

        verified = protocol.verify_loyalty(txn)
        assert verified.loyalty_tier == LoyaltyTier.BRONZE
        assert verified.upgrade_eligible is False

        with pytest.raises(InvalidSelection):
            protocol.select_seat(txn, "1A", "deltaOne")
        with pytest.raises(InvalidSelection):
            protocol.seat_options(txn, "deltaOne")
        assert protocol.get(txn).stage == SeatChangeStage.SELECT_SEAT
        assert store.get_booking(reference).cabin_class == CabinClass.ECONOMY

        # The same cabin is reachable as a paid upgrade
        protocol.select_seat(txn, protocol.seat_options(txn)[0].seat_number)
        upgrades = {u.cabin_class: u for u in protocol.upgrade_options(txn)}
        assert upgrades[CabinClass.COMFORT_PLUS].price == 75.0
        assert upgrades[CabinClass.DELTA_ONE].price == 450.0

    def test_requested_cabin_above_booking_is_priced(self, protocol, executor, conversation, store):
        store.set_active_profile("CUST004")
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "targetClass": "comfortPlus"})

        assert pending.upgrade.cabin_class == CabinClass.COMFORT_PLUS
        assert pending.upgrade.complimentary is False

        outcome = protocol.confirm(pending.transaction_id)
        assert outcome.action_result.success is True
        assert outcome.content.endswith("An upgrade charge of $75 applies.")
        assert store.get_booking(reference).cabin_class == CabinClass.COMFORT_PLUS

    def test_invalid_selections(self, protocol, executor, conversation, store):
        reference = store.create_booking("DL6240", "economy")
        pending = _open(protocol, executor, conversation, ActionKind.CHANGE_SEAT,
                        {"bookingReference": reference, "seatPreference": "aisle"})
        txn = pending.transaction_id
        protocol.verify_loyalty(txn)

        occupied = store.get_booking(reference).seat.seat_number
        with pytest.raises(InvalidSelection):
            protocol.select_seat(txn, occupied, "economy")
        with pytest.raises(InvalidSelection):
            protocol.seat_options(txn, "business lounge")

        protocol.select_seat(txn, protocol.seat_options(txn)[0].seat_number)
        with pytest.raises(InvalidSelection):
            protocol.choose_upgrade(txn, "first")

    def test_sub_flow_only_for_seat_changes(self, protocol, executor, conversation):
        pending = _open(protocol, executor, conversation, ActionKind.CANCEL_BOOKING, {"bookingReference": "DL00001"})
        with pytest.raises(InvalidSelection):
            protocol.verify_loyalty(pending.transaction_id)


def test_upgrade_price_by_tier():
    assert upgrade_price(LoyaltyTier.SILVER, CabinClass.COMFORT_PLUS).price == 75
    assert upgrade_price(LoyaltyTier.PLATINUM, CabinClass.FIRST).complimentary is True
    assert upgrade_price(LoyaltyTier.PLATINUM, CabinClass.DELTA_ONE).complimentary is False
