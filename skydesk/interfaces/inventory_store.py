# interfaces/inventory_store.py
"""
Inventory Store - single source of truth for one assistant session

Owns flights, bookings and the active customer profile. Every mutation
validates before touching state, then commits in a fixed order:
seat/booking change -> projection recompute -> activity log -> snapshot -> subscribers.
"""

import hashlib
import json
import random
from datetime import date, datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from loguru import logger

from ..config import settings
from ..data.customers import build_profiles, generate_bookings
from ..data.flights import generate_flights
from ..schemas.airline_schemas import (
    CABIN_ORDER,
    ActivityEntry,
    Booking,
    BookingStatus,
    CabinClass,
    FareType,
    Flight,
    Seat,
    SeatStatus,
    UserProfile,
    normalize_cabin_class,
)
from .snapshot_sink import SnapshotSink


class BookingFailure(str, Enum):
    """Distinct reasons create_booking can refuse a request"""
    FLIGHT_NOT_FOUND = "flight_not_found"
    CLASS_NOT_OFFERED = "class_not_offered"
    NO_SEATS_AVAILABLE = "no_seats_available"


Listener = Callable[[], None]


class InventoryStore:
    """
    In-memory inventory for a single session.

    Returned Flight/Booking objects are the canonical records; callers treat
    them as read-only and change state through the command methods.
    """

    def __init__(
        self,
        flight_count: Optional[int] = None,
        default_customer_id: Optional[str] = None,
        release_seats_on_cancel: Optional[bool] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        sink: Optional[SnapshotSink] = None,
    ):
        self.flight_count = flight_count if flight_count is not None else settings.FLIGHT_COUNT
        self.default_customer_id = default_customer_id or settings.DEFAULT_CUSTOMER_ID
        self.release_seats_on_cancel = (
            settings.RELEASE_SEATS_ON_CANCEL if release_seats_on_cancel is None else release_seats_on_cancel
        )
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()
        self.sink = sink or SnapshotSink()

        self._flights: Dict[str, Flight] = {}
        self._bookings: List[Booking] = []
        self._profiles: Dict[str, UserProfile] = {}
        self._active_customer_id: str = self.default_customer_id
        self._subscribers: List[Listener] = []

        self._load_baseline()

    # ============================================
    # Session clock
    # ============================================

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    # ============================================
    # Queries
    # ============================================

    def list_flights(self) -> List[Flight]:
        return list(self._flights.values())

    def get_flight(self, flight_number: str) -> Optional[Flight]:
        if not flight_number:
            return None
        return self._flights.get(flight_number.strip().upper())

    def list_bookings(self) -> List[Booking]:
        """Bookings of the active customer, all statuses"""
        return [b for b in self._bookings if b.customer_id == self._active_customer_id]

    def get_booking(self, reference: str) -> Optional[Booking]:
        """Booking of the active customer by reference"""
        if not reference:
            return None
        reference = reference.strip().upper()
        for booking in self._bookings:
            if booking.booking_reference == reference and booking.customer_id == self._active_customer_id:
                return booking
        return None

    @property
    def active_profile(self) -> UserProfile:
        return self._profiles[self._active_customer_id]

    def list_profiles(self) -> List[UserProfile]:
        return list(self._profiles.values())

    # ============================================
    # Commands
    # ============================================

    def create_booking(
        self,
        flight_number: str,
        cabin_class: Union[CabinClass, str],
        fare_type: FareType = FareType.NON_REFUNDABLE,
    ) -> Union[str, BookingFailure]:
        """Book the first available seat of a cabin. Returns the new reference or a BookingFailure."""
        flight = self.get_flight(flight_number)
        if not flight:
            logger.warning(f"create_booking: flight {flight_number} not found")
            return BookingFailure.FLIGHT_NOT_FOUND

        cabin = normalize_cabin_class(cabin_class)
        if cabin is None or not flight.offers(cabin):
            logger.warning(f"create_booking: {flight.flight_number} does not offer {cabin_class}")
            return BookingFailure.CLASS_NOT_OFFERED

        seat = self._first_available(flight, cabin)
        if seat is None:
            logger.warning(f"create_booking: no {cabin.value} seats left on {flight.flight_number}")
            return BookingFailure.NO_SEATS_AVAILABLE

        profile = self.active_profile
        reference = self._new_reference(profile.customer_id)

        seat.status = SeatStatus.OCCUPIED
        self._bookings.append(Booking(
            booking_reference=reference,
            customer_id=profile.customer_id,
            flight_number=flight.flight_number,
            passenger_name=profile.name,
            scheduled_time=flight.scheduled_time,
            status=BookingStatus.CONFIRMED,
            seat=seat.model_copy(),
            checked_in=False,
            cabin_class=cabin,
            created_at=self.now(),
            fare_type=fare_type,
        ))

        self._commit("Booked Flight", {
            "bookingReference": reference,
            "flightNumber": flight.flight_number,
            "class": cabin.value,
            "seatNumber": seat.seat_number,
        })
        return reference

    def cancel_booking(self, reference: str) -> bool:
        booking = self._owned_active(reference)
        if not booking:
            logger.warning(f"cancel_booking: {reference} not found or already cancelled")
            return False

        booking.status = BookingStatus.CANCELLED
        if self.release_seats_on_cancel:
            self._release_seat(booking)

        self._commit("Cancelled Booking", {
            "bookingReference": booking.booking_reference,
            "flightNumber": booking.flight_number,
        })
        return True

    def change_flight(self, reference: str, new_flight_number: str) -> bool:
        """Move a booking to another flight in the same cabin, keeping its reference"""
        booking = self._owned_active(reference)
        if not booking:
            logger.warning(f"change_flight: {reference} not found or cancelled")
            return False

        new_flight = self.get_flight(new_flight_number)
        if not new_flight or new_flight.flight_number == booking.flight_number:
            logger.warning(f"change_flight: invalid target flight {new_flight_number}")
            return False

        seat = self._first_available(new_flight, booking.cabin_class)
        if seat is None:
            logger.warning(
                f"change_flight: no {booking.cabin_class.value} seats on {new_flight.flight_number}"
            )
            return False

        old_flight_number = booking.flight_number
        if self.release_seats_on_cancel:
            self._release_seat(booking)

        seat.status = SeatStatus.OCCUPIED
        booking.flight_number = new_flight.flight_number
        booking.seat = seat.model_copy()
        booking.scheduled_time = new_flight.scheduled_time
        booking.status = BookingStatus.CHANGED
        booking.checked_in = False

        self._commit("Changed Flight", {
            "bookingReference": booking.booking_reference,
            "oldFlightNumber": old_flight_number,
            "newFlightNumber": new_flight.flight_number,
        })
        return True

    def change_seat(
        self,
        reference: str,
        new_seat_number: str,
        cabin_class: Optional[Union[CabinClass, str]] = None,
    ) -> bool:
        """
        Move a booking to another seat on the same flight.
        The seat is searched economy -> comfortPlus -> first -> deltaOne,
        or only in `cabin_class` when given.
        """
        booking = self._owned_active(reference)
        if not booking or not new_seat_number:
            logger.warning(f"change_seat: {reference} not found or cancelled")
            return False

        flight = self.get_flight(booking.flight_number)
        if not flight:
            logger.warning(f"change_seat: flight {booking.flight_number} no longer in inventory")
            return False

        cabins = CABIN_ORDER
        if cabin_class is not None:
            cabin = normalize_cabin_class(cabin_class)
            if cabin is None:
                return False
            cabins = [cabin]

        wanted = new_seat_number.strip().upper()
        new_seat: Optional[Seat] = None
        for cabin in cabins:
            new_seat = next(
                (s for s in flight.seat_pool(cabin)
                 if s.seat_number == wanted and s.status == SeatStatus.AVAILABLE),
                None,
            )
            if new_seat:
                break

        if new_seat is None:
            logger.warning(f"change_seat: seat {wanted} unavailable on {flight.flight_number}")
            return False

        old_seat_number = booking.seat.seat_number
        old_class = booking.cabin_class
        self._release_seat(booking)

        new_seat.status = SeatStatus.OCCUPIED
        booking.seat = new_seat.model_copy()
        booking.cabin_class = new_seat.cabin_class

        self._commit("Changed Seat", {
            "bookingReference": booking.booking_reference,
            "oldSeat": old_seat_number,
            "oldClass": old_class.value,
            "newSeat": new_seat.seat_number,
            "newClass": new_seat.cabin_class.value,
        })
        return True

    def check_in(self, reference: str) -> bool:
        booking = self._owned_active(reference)
        if not booking:
            logger.warning(f"check_in: {reference} not found or cancelled")
            return False

        booking.checked_in = True
        self._commit("Checked In", {
            "bookingReference": booking.booking_reference,
            "flightNumber": booking.flight_number,
        })
        return True

    def track_baggage(self, reference: str) -> Optional[Booking]:
        booking = self._owned_active(reference)
        if not booking:
            logger.warning(f"track_baggage: {reference} not found or cancelled")
            return None

        self._commit("Tracked Baggage", {
            "bookingReference": booking.booking_reference,
            "flightNumber": booking.flight_number,
        })
        return booking

    def add_flights(self, flights: Iterable[Flight]) -> int:
        """Add flights whose numbers are not yet known. Returns how many were added."""
        added = 0
        for flight in flights:
            key = flight.flight_number.upper()
            if key in self._flights:
                continue
            self._flights[key] = flight
            added += 1

        if added:
            logger.info(f"Added {added} flights to inventory ({len(self._flights)} total)")
            self._commit(None)
        return added

    def set_active_profile(self, profile: Union[UserProfile, str]) -> Optional[UserProfile]:
        """Switch the active customer by profile or customer id. None if the id is unknown."""
        if isinstance(profile, UserProfile):
            self._profiles.setdefault(profile.customer_id, profile)
            customer_id = profile.customer_id
        else:
            customer_id = profile
            if customer_id not in self._profiles:
                logger.warning(f"set_active_profile: unknown customer {customer_id}")
                return None

        self._active_customer_id = customer_id
        logger.info(f"Active profile switched to {customer_id}")
        self._commit(None)
        return self.active_profile

    def reset_all(self) -> None:
        """Regenerate flights for the current date and restore baseline bookings and profile"""
        self._load_baseline()
        logger.info("Inventory reset to baseline")
        self._commit(None)

    def log_activity(self, action: str, details: Optional[Dict] = None) -> None:
        """Append an activity entry to the active profile without changing inventory"""
        self._commit(action, details)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a no-argument listener. Returns a function that removes it."""
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    # ============================================
    # Snapshot
    # ============================================

    def snapshot(self) -> Dict:
        return {
            "taken_at": self.now().isoformat(),
            "active_customer_id": self._active_customer_id,
            "flights": [f.model_dump(mode="json") for f in self._flights.values()],
            "bookings": [b.model_dump(mode="json") for b in self._bookings],
            "profiles": [p.model_dump(mode="json") for p in self._profiles.values()],
        }

    # ============================================
    # Internals
    # ============================================

    def _load_baseline(self) -> None:
        today = self.today()
        flights = generate_flights(self.flight_count, self.rng, today)
        profiles = build_profiles()

        self._flights = {f.flight_number.upper(): f for f in flights}
        self._profiles = {p.customer_id: p for p in profiles}
        self._bookings = generate_bookings(profiles, flights, self.rng, self.now())

        if self.default_customer_id not in self._profiles:
            logger.warning(f"Default customer {self.default_customer_id} unknown, using {profiles[0].customer_id}")
            self.default_customer_id = profiles[0].customer_id
        self._active_customer_id = self.default_customer_id
        self._recompute_projection()

    def _owned_active(self, reference: str) -> Optional[Booking]:
        booking = self.get_booking(reference)
        if booking and booking.is_active:
            return booking
        return None

    @staticmethod
    def _first_available(flight: Flight, cabin: CabinClass) -> Optional[Seat]:
        return next((s for s in flight.seat_pool(cabin) if s.status == SeatStatus.AVAILABLE), None)

    def _release_seat(self, booking: Booking) -> None:
        flight = self.get_flight(booking.flight_number)
        if not flight:
            return
        for seat in flight.seat_pool(booking.cabin_class):
            if seat.seat_number == booking.seat.seat_number:
                seat.status = SeatStatus.AVAILABLE
                return

    def _new_reference(self, customer_id: str) -> str:
        """DL + five digits hashed from customer and time, unique across all bookings"""
        taken = {b.booking_reference for b in self._bookings}
        salt = 0
        while True:
            raw = f"{customer_id}:{self.now().isoformat()}:{salt}"
            digits = int(hashlib.sha1(raw.encode()).hexdigest(), 16) % 100000
            reference = f"DL{digits:05d}"
            if reference not in taken:
                return reference
            salt += 1

    def _recompute_projection(self) -> None:
        for profile in self._profiles.values():
            profile.upcoming_flights = [
                b.model_copy(deep=True) for b in self._bookings
                if b.customer_id == profile.customer_id and b.is_active
            ]

    def _commit(self, action: Optional[str], details: Optional[Dict] = None) -> None:
        self._recompute_projection()

        if action:
            self.active_profile.activity_log.append(ActivityEntry(
                timestamp=self.now(),
                action=action,
                details=details or {},
            ))
            logger.info(f"{action}: {details}")

        if self.sink.enabled:
            self.sink.write(json.dumps(self.snapshot()))
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._subscribers):
            try:
                listener()
            except Exception:
                logger.exception("Inventory subscriber failed")
