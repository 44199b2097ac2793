# tests/test_inventory_store.py
"""Inventory store: seat accounting, profile projection, activity log and subscribers"""

from collections import Counter
from datetime import datetime, time, timedelta

from skydesk.data.flights import generate_seats
from skydesk.interfaces.inventory_store import BookingFailure
from skydesk.schemas.airline_schemas import (
    BookingStatus,
    CabinClass,
    Flight,
    FlightStatus,
    SeatStatus,
)

from .conftest import NOW


def _occupied(store):
    """(flight, cabin, seat) held by active bookings"""
    return [(b.flight_number, b.cabin_class, b.seat.seat_number) for b in store._bookings if b.is_active]


def _small_flight(number="DL100", economy=1):
    day = NOW.date() + timedelta(days=2)
    return Flight(
        flight_number=number,
        departure="Chicago",
        arrival="Atlanta",
        scheduled_time=datetime.combine(day, time(9, 0)),
        status=FlightStatus.ON_TIME,
        aircraft="Boeing 737",
        duration="2h 5m",
        gate="C4",
        seats={
            CabinClass.ECONOMY: generate_seats(economy, CabinClass.ECONOMY, False, day, NOW.date()),
            CabinClass.COMFORT_PLUS: [],
            CabinClass.FIRST: [],
            CabinClass.DELTA_ONE: [],
        },
    )


class TestBaseline:

    def test_atlanta_new_york_schedule_loaded_for_tomorrow(self, store):
        tomorrow = NOW.date() + timedelta(days=1)
        for number in ["DL6210", "DL6220", "DL6230", "DL6240", "DL6250"]:
            flight = store.get_flight(number)
            assert flight is not None
            assert flight.departure == "Atlanta"
            assert flight.arrival == "New York"
            assert flight.scheduled_time.date() == tomorrow
            assert flight.duration == "2h 48m"
        assert store.get_flight("dl6310").arrival == "Atlanta"
        assert len(store.list_flights()) == 20

    def test_active_profile_sees_only_own_bookings(self, store):
        bookings = store.list_bookings()
        assert len(bookings) == 2
        assert {b.customer_id for b in bookings} == {"CUST001"}
        assert store.get_booking("DL00003") is None

    def test_upcoming_flights_match_active_bookings(self, store):
        profile = store.active_profile
        assert [b.booking_reference for b in profile.upcoming_flights] == [
            b.booking_reference for b in store.list_bookings() if b.is_active
        ]


class TestSeatAccounting:

    def test_every_booked_seat_is_occupied_and_unique(self, store):
        store.create_booking("DL6230", CabinClass.COMFORT_PLUS)
        store.create_booking("DL6230", "economy")

        held = _occupied(store)
        assert all(count == 1 for count in Counter(held).values())
        for flight_number, cabin, seat_number in held:
            pool = store.get_flight(flight_number).seat_pool(cabin)
            seat = next(s for s in pool if s.seat_number == seat_number)
            assert seat.status == SeatStatus.OCCUPIED

    def test_create_booking_failures(self, store):
        assert store.create_booking("XX0000", "economy") == BookingFailure.FLIGHT_NOT_FOUND
        # The popular schedule carries no First Class cabin
        assert store.create_booking("DL6210", "first") == BookingFailure.CLASS_NOT_OFFERED

        store.add_flights([_small_flight("DL101", economy=1)])
        assert isinstance(store.create_booking("DL101", "economy"), str)
        assert store.create_booking("DL101", "economy") == BookingFailure.NO_SEATS_AVAILABLE

    def test_new_booking_is_recorded_everywhere(self, store):
        reference = store.create_booking("DL6240", "comfortPlus")

        assert reference.startswith("DL") and len(reference) == 7
        booking = store.get_booking(reference)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.cabin_class == CabinClass.COMFORT_PLUS
        assert booking.created_at == NOW
        assert reference in [b.booking_reference for b in store.active_profile.upcoming_flights]
        assert store.active_profile.activity_log[-1].action == "Booked Flight"

    def test_cancel_releases_seat_and_is_idempotent(self, store):
        reference = store.create_booking("DL6250", "economy")
        seat_number = store.get_booking(reference).seat.seat_number
        flight = store.get_flight("DL6250")
        available_before = flight.available_count(CabinClass.ECONOMY)

        assert store.cancel_booking(reference) is True
        assert flight.available_count(CabinClass.ECONOMY) == available_before + 1
        assert next(s for s in flight.seat_pool(CabinClass.ECONOMY) if s.seat_number == seat_number).status == SeatStatus.AVAILABLE
        assert store.get_booking(reference).status == BookingStatus.CANCELLED
        assert reference not in [b.booking_reference for b in store.active_profile.upcoming_flights]

        log_length = len(store.active_profile.activity_log)
        assert store.cancel_booking(reference) is False
        assert len(store.active_profile.activity_log) == log_length

    def test_cancel_keeps_seat_when_release_disabled(self, store):
        store.release_seats_on_cancel = False
        reference = store.create_booking("DL6250", "economy")
        flight = store.get_flight("DL6250")
        available = flight.available_count(CabinClass.ECONOMY)

        store.cancel_booking(reference)
        assert flight.available_count(CabinClass.ECONOMY) == available

    def test_change_flight_keeps_reference_and_moves_seat(self, store):
        old = store.get_booking("DL00001")
        old_flight = store.get_flight(old.flight_number)
        cabin = old.cabin_class
        target = "DL6240" if old.flight_number != "DL6240" else "DL6250"
        old_available = old_flight.available_count(cabin)

        assert store.change_flight("DL00001", target) is True
        booking = store.get_booking("DL00001")
        assert booking.flight_number == target
        assert booking.status == BookingStatus.CHANGED
        assert booking.checked_in is False
        assert booking.scheduled_time == store.get_flight(target).scheduled_time
        assert old_flight.available_count(cabin) == old_available + 1

    def test_change_flight_to_same_flight_is_rejected(self, store):
        booking = store.get_booking("DL00001")
        assert store.change_flight("DL00001", booking.flight_number) is False

    def test_change_seat_round_trip(self, store):
        """DL100: book, move to the next seat, and the first seat becomes bookable again"""
        flight = _small_flight("DL100", economy=2)
        assert store.add_flights([flight]) == 1

        reference = store.create_booking("DL100", "economy")
        first_seat = store.get_booking(reference).seat.seat_number
        assert first_seat == "1A"

        assert store.change_seat(reference, "1B") is True
        pool = store.get_flight("DL100").seat_pool(CabinClass.ECONOMY)
        assert {s.seat_number: s.status for s in pool} == {
            "1A": SeatStatus.AVAILABLE,
            "1B": SeatStatus.OCCUPIED,
        }
        assert store.change_seat(reference, "1B") is False
        assert store.active_profile.activity_log[-1].action == "Changed Seat"

    def test_add_flights_skips_known_numbers(self, store):
        assert store.add_flights([_small_flight("DL6210")]) == 0
        assert store.add_flights([_small_flight("DL777"), _small_flight("DL777")]) == 1


class TestProfilesAndActivity:

    def test_switching_profiles(self, store):
        profile = store.set_active_profile("CUST004")
        assert profile.name == "Maria Garcia"
        assert {b.customer_id for b in store.list_bookings()} == {"CUST004"}
        assert store.set_active_profile("CUST999") is None
        assert store.active_profile.customer_id == "CUST004"

    def test_check_in_and_baggage_are_logged(self, store):
        assert store.check_in("DL00002") is True
        assert store.get_booking("DL00002").checked_in is True
        assert store.track_baggage("DL00002").booking_reference == "DL00002"
        actions = [a.action for a in store.active_profile.activity_log[-2:]]
        assert actions == ["Checked In", "Tracked Baggage"]

    def test_reset_all_restores_baseline(self, store):
        store.cancel_booking("DL00001")
        store.set_active_profile("CUST002")
        store.reset_all()

        assert store.active_profile.customer_id == "CUST001"
        assert store.get_booking("DL00001").status == BookingStatus.CONFIRMED
        assert store.get_flight("DL6210") is not None


class TestSubscribers:

    def test_listeners_notified_after_commit(self, store):
        calls = []
        unsubscribe = store.subscribe(lambda: calls.append(store.active_profile.activity_log[-1].action))

        store.check_in("DL00001")
        assert calls == ["Checked In"]

        unsubscribe()
        store.check_in("DL00002")
        assert calls == ["Checked In"]

    def test_failing_listener_does_not_block_others(self, store):
        seen = []

        def broken():
            raise RuntimeError("listener down")

        store.subscribe(broken)
        store.subscribe(lambda: seen.append(True))

        assert store.cancel_booking("DL00001") is True
        assert seen == [True]
        assert store.get_booking("DL00001").status == BookingStatus.CANCELLED


class RecordingSink:
    enabled = True

    def __init__(self):
        self.writes = []

    def write(self, snapshot_json):
        self.writes.append(snapshot_json)


def test_snapshot_written_to_enabled_sink(store):
    sink = RecordingSink()
    store.sink = sink
    store.check_in("DL00001")

    assert len(sink.writes) == 1
    assert '"active_customer_id": "CUST001"' in sink.writes[0]
