# agents/action_executor.py
"""
Action Executor
Stateless translation of {kind, params} into an ActionResult envelope.

- prepare(): validates and looks up without mutating. The four transactional
  kinds come back with requires_confirmation=True and display snapshots.
- execute(): validates and performs the action against the inventory store.

No exception escapes either entry point.
"""

from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from ..config import settings
from ..data.flights import ROUTE_SCHEDULES, route_schedule, seat_position, synthesize_route_flights
from ..interfaces.inventory_store import BookingFailure, InventoryStore
from ..llm.intent_parser import intent_parser, resolve_date
from ..schemas.airline_schemas import (
    CABIN_LABELS,
    CABIN_ORDER,
    ActionKind,
    ActionResult,
    Booking,
    CabinClass,
    Flight,
    Seat,
    SeatStatus,
    normalize_cabin_class,
)

BAGGAGE_STATUSES = [
    "Checked In",
    "In Transit",
    "Loaded on Aircraft",
    "Arrived at Destination",
    "Ready for Pickup",
]


def _fail(message: str) -> ActionResult:
    return ActionResult(success=False, message=message)


def find_seat(
    flight: Flight,
    cabin: CabinClass,
    preference: Optional[str] = None,
) -> Optional[Seat]:
    """First available seat in a cabin, matching window/middle/aisle when given"""
    for seat in flight.seat_pool(cabin):
        if seat.status != SeatStatus.AVAILABLE:
            continue
        if preference and seat_position(seat.seat_number) != preference:
            continue
        return seat
    return None


class ActionExecutor:
    """Runs structured actions against one InventoryStore"""

    def __init__(self, store: InventoryStore, result_limit: Optional[int] = None):
        self.store = store
        self.result_limit = result_limit or settings.SEARCH_RESULT_LIMIT

        self._prepare_handlers: Dict[ActionKind, Callable[[Dict[str, str]], ActionResult]] = {
            ActionKind.SEARCH_FLIGHTS: self.search_flights,
            ActionKind.BOOK_FLIGHT: self._prepare_book,
            ActionKind.CANCEL_BOOKING: self._prepare_cancel,
            ActionKind.CHANGE_FLIGHT: self._prepare_change_flight,
            ActionKind.CHANGE_SEAT: self._prepare_change_seat,
            ActionKind.CHECK_IN: self._check_in,
            ActionKind.TRACK_BAGGAGE: self._track_baggage,
        }
        self._execute_handlers: Dict[ActionKind, Callable[[Dict[str, str]], ActionResult]] = {
            ActionKind.SEARCH_FLIGHTS: self.search_flights,
            ActionKind.BOOK_FLIGHT: self._book,
            ActionKind.CANCEL_BOOKING: self._cancel,
            ActionKind.CHANGE_FLIGHT: self._change_flight,
            ActionKind.CHANGE_SEAT: self._change_seat,
            ActionKind.CHECK_IN: self._check_in,
            ActionKind.TRACK_BAGGAGE: self._track_baggage,
        }

    # ============================================
    # Entry points
    # ============================================

    def prepare(self, kind: Any, params: Optional[Dict[str, str]] = None) -> ActionResult:
        return self._dispatch(self._prepare_handlers, kind, params, "prepare")

    def execute(self, kind: Any, params: Optional[Dict[str, str]] = None) -> ActionResult:
        return self._dispatch(self._execute_handlers, kind, params, "execute")

    def _dispatch(self, handlers, kind: Any, params: Optional[Dict[str, str]], stage: str) -> ActionResult:
        try:
            action_kind = ActionKind(kind)
        except ValueError:
            logger.warning(f"Unknown action type: {kind}")
            return _fail(f"Unknown action type: {kind}")

        clean = {k: str(v).strip() for k, v in (params or {}).items() if v is not None and str(v).strip()}
        try:
            result = handlers[action_kind](clean)
        except Exception:
            logger.exception(f"{action_kind.value} {stage} failed")
            return _fail(f"An error occurred while processing {action_kind.value}")

        logger.info(f"{stage} {action_kind.value}: success={result.success} ({result.message})")
        return result

    # ============================================
    # SEARCH_FLIGHTS
    # ============================================

    def search_flights(self, params: Dict[str, str]) -> ActionResult:
        origin = params.get("from")
        destination = params.get("to")
        date_expr = params.get("date")
        if not origin or not destination:
            return _fail("Missing required parameters: from and to cities")

        today = self.store.today()
        day = resolve_date(date_expr, today) if date_expr else None
        matches = self._match_route(origin, destination, day)

        if not matches:
            # Absent or unparseable dates synthesize for tomorrow
            target_day = day or today + timedelta(days=1)
            origin_city = intent_parser.find_city(origin) or intent_parser.normalize_city(origin)
            destination_city = intent_parser.find_city(destination) or intent_parser.normalize_city(destination)

            if (origin_city, destination_city) in ROUTE_SCHEDULES:
                self.store.add_flights(route_schedule(origin_city, destination_city, target_day, today))
                matches = self._match_route(origin, destination, day)

            if not matches:
                taken = {f.flight_number for f in self.store.list_flights()}
                synthesized = synthesize_route_flights(
                    origin_city, destination_city, target_day, self.store.rng, today, taken
                )
                self.store.add_flights(synthesized)
                matches = self._match_route(origin, destination, day)

        matches.sort(key=lambda f: f.scheduled_time)
        shown = matches[: self.result_limit]
        date_note = f" on {date_expr}" if date_expr else ""
        return ActionResult(
            success=True,
            message=f"Found {len(shown)} flights from {origin} to {destination}{date_note}",
            data={
                "flights": [f.summary() for f in shown],
                "from": origin,
                "to": destination,
                "date": day.isoformat() if day else None,
                "totalMatches": len(matches),
            },
        )

    def _match_route(self, origin: str, destination: str, day: Optional[date]) -> List[Flight]:
        origin_keys = self._city_keys(origin)
        destination_keys = self._city_keys(destination)
        results = []
        for flight in self.store.list_flights():
            departure = flight.departure.lower()
            arrival = flight.arrival.lower()
            if not any(k in departure for k in origin_keys):
                continue
            if not any(k in arrival for k in destination_keys):
                continue
            if day and flight.scheduled_time.date() != day:
                continue
            results.append(flight)
        return results

    @staticmethod
    def _city_keys(city: str) -> List[str]:
        keys = {city.lower()}
        known = intent_parser.find_city(city)
        if known:
            keys.add(known.lower())
        return list(keys)

    # ============================================
    # BOOK_FLIGHT
    # ============================================

    def _validate_booking_request(self, params: Dict[str, str]) -> Tuple[Optional[ActionResult], Optional[Flight], Optional[CabinClass]]:
        flight_number = params.get("flightNumber")
        seat_class = params.get("seatClass")
        if not flight_number or not seat_class:
            return _fail("Missing required parameters: flightNumber and seatClass"), None, None

        cabin = normalize_cabin_class(seat_class)
        if cabin is None:
            return _fail(
                f"Invalid seat class '{seat_class}'. Choose economy, comfortPlus, first or deltaOne."
            ), None, None

        flight = self.store.get_flight(flight_number)
        if not flight:
            return _fail(f"Flight {flight_number} not found"), None, None
        if not flight.offers(cabin):
            return _fail(f"Flight {flight.flight_number} does not offer {CABIN_LABELS[cabin]} seating"), None, None
        if flight.available_count(cabin) == 0:
            return _fail(f"Unable to book flight {flight.flight_number}. No {cabin.value} seats are available."), None, None
        return None, flight, cabin

    def _prepare_book(self, params: Dict[str, str]) -> ActionResult:
        error, flight, cabin = self._validate_booking_request(params)
        if error:
            return error
        return ActionResult(
            success=True,
            message=f"Please confirm booking flight {flight.flight_number} in {cabin.value} class",
            data={
                "flight": flight.model_dump(mode="json"),
                "seatClass": cabin.value,
                "price": flight.lowest_price(cabin),
            },
            requires_confirmation=True,
        )

    def _book(self, params: Dict[str, str]) -> ActionResult:
        error, flight, cabin = self._validate_booking_request(params)
        if error:
            return error

        outcome = self.store.create_booking(flight.flight_number, cabin)
        if isinstance(outcome, BookingFailure):
            messages = {
                BookingFailure.FLIGHT_NOT_FOUND: f"Flight {flight.flight_number} not found",
                BookingFailure.CLASS_NOT_OFFERED: f"Flight {flight.flight_number} does not offer {cabin.value} seating",
                BookingFailure.NO_SEATS_AVAILABLE: (
                    f"Unable to book flight {flight.flight_number}. The flight may be full or unavailable."
                ),
            }
            return _fail(messages[outcome])

        booking = self.store.get_booking(outcome)
        return ActionResult(
            success=True,
            message=f"Successfully booked flight {flight.flight_number} in {cabin.value} class",
            data={"bookingReference": outcome, "booking": booking.model_dump(mode="json")},
        )

    # ============================================
    # CANCEL_BOOKING
    # ============================================

    def _active_booking(self, reference: str) -> Optional[Booking]:
        booking = self.store.get_booking(reference)
        if booking and booking.is_active:
            return booking
        return None

    def _prepare_cancel(self, params: Dict[str, str]) -> ActionResult:
        reference = params.get("bookingReference")
        if not reference:
            return _fail("Missing required parameter: bookingReference")

        booking = self._active_booking(reference)
        if not booking:
            return _fail(
                f"Unable to cancel booking {reference}. The booking may not exist or is already cancelled."
            )
        flight = self.store.get_flight(booking.flight_number)
        return ActionResult(
            success=True,
            message=f"Please confirm cancellation of booking {booking.booking_reference}",
            data={
                "booking": booking.model_dump(mode="json"),
                "flight": flight.model_dump(mode="json") if flight else None,
            },
            requires_confirmation=True,
        )

    def _cancel(self, params: Dict[str, str]) -> ActionResult:
        reference = params.get("bookingReference")
        if not reference:
            return _fail("Missing required parameter: bookingReference")

        if not self.store.cancel_booking(reference):
            return _fail(
                f"Unable to cancel booking {reference}. The booking may not exist or is already cancelled."
            )
        return ActionResult(
            success=True,
            message=f"Successfully cancelled booking {reference.upper()}",
            data={"bookingReference": reference.upper()},
        )

    # ============================================
    # CHANGE_FLIGHT
    # ============================================

    def _validate_flight_change(self, params: Dict[str, str]) -> Tuple[Optional[ActionResult], Optional[Booking], Optional[Flight]]:
        reference = params.get("bookingReference")
        new_flight_number = params.get("newFlightNumber")
        if not reference or not new_flight_number:
            return _fail("Missing required parameters: bookingReference and newFlightNumber"), None, None

        booking = self._active_booking(reference)
        new_flight = self.store.get_flight(new_flight_number)
        if not booking or not new_flight:
            return _fail(
                f"Unable to change flight for booking {reference}. The booking or flight may not exist."
            ), None, None
        if new_flight.flight_number == booking.flight_number:
            return _fail(f"Booking {booking.booking_reference} is already on flight {new_flight.flight_number}"), None, None
        if new_flight.available_count(booking.cabin_class) == 0:
            return _fail(
                f"Unable to change flight for booking {booking.booking_reference}. "
                f"No {booking.cabin_class.value} seats are available on {new_flight.flight_number}."
            ), None, None
        return None, booking, new_flight

    def _prepare_change_flight(self, params: Dict[str, str]) -> ActionResult:
        error, booking, new_flight = self._validate_flight_change(params)
        if error:
            return error
        return ActionResult(
            success=True,
            message=(
                f"Please confirm changing booking {booking.booking_reference} "
                f"from {booking.flight_number} to {new_flight.flight_number}"
            ),
            data={
                "booking": booking.model_dump(mode="json"),
                "newFlight": new_flight.model_dump(mode="json"),
            },
            requires_confirmation=True,
        )

    def _change_flight(self, params: Dict[str, str]) -> ActionResult:
        error, booking, new_flight = self._validate_flight_change(params)
        if error:
            return error

        if not self.store.change_flight(booking.booking_reference, new_flight.flight_number):
            return _fail(
                f"Unable to change flight for booking {booking.booking_reference}. The booking or flight may not exist."
            )
        return ActionResult(
            success=True,
            message=f"Successfully changed booking {booking.booking_reference} to flight {new_flight.flight_number}",
            data={"booking": booking.model_dump(mode="json")},
        )

    # ============================================
    # CHANGE_SEAT
    # ============================================

    def _resolve_seat_change(self, params: Dict[str, str]) -> Tuple[Optional[ActionResult], Optional[Booking], Optional[Seat]]:
        reference = params.get("bookingReference")
        if not reference:
            return _fail("Missing required parameter: bookingReference"), None, None

        seat_number = params.get("newSeatNumber")
        preference = (params.get("seatPreference") or "").lower() or None
        target_raw = params.get("targetClass")
        if not seat_number and not preference and not target_raw:
            return _fail(
                "Missing seat selection: provide newSeatNumber, seatPreference or targetClass"
            ), None, None

        target = normalize_cabin_class(target_raw) if target_raw else None
        if target_raw and target is None:
            return _fail(f"Invalid target class '{target_raw}'"), None, None
        if preference and preference not in ("window", "middle", "aisle"):
            preference = None

        booking = self._active_booking(reference)
        if not booking:
            return _fail(
                f"Unable to change seat for booking {reference}. The booking may not exist or is cancelled."
            ), None, None
        flight = self.store.get_flight(booking.flight_number)
        if not flight:
            return _fail(f"Flight {booking.flight_number} is no longer available"), None, None

        if seat_number:
            wanted = seat_number.upper()
            cabins = [target] if target else CABIN_ORDER
            seat = next(
                (s for c in cabins for s in flight.seat_pool(c)
                 if s.seat_number == wanted and s.status == SeatStatus.AVAILABLE),
                None,
            )
            if not seat:
                return _fail(
                    f"Unable to change seat for booking {booking.booking_reference}. "
                    f"Seat {wanted} is not available."
                ), None, None
            return None, booking, seat

        cabin = target or booking.cabin_class
        seat = find_seat(flight, cabin, preference)
        if not seat:
            kind = f"{preference} " if preference else ""
            return _fail(
                f"Unable to change seat for booking {booking.booking_reference}. "
                f"No {kind}seats are available in {CABIN_LABELS[cabin]}."
            ), None, None
        return None, booking, seat

    def _prepare_change_seat(self, params: Dict[str, str]) -> ActionResult:
        error, booking, seat = self._resolve_seat_change(params)
        if error:
            return error
        return ActionResult(
            success=True,
            message=f"Please confirm moving booking {booking.booking_reference} to seat {seat.seat_number}",
            data={
                "booking": booking.model_dump(mode="json"),
                "seatNumber": seat.seat_number,
                "cabinClass": seat.cabin_class.value,
                "seatPreference": params.get("seatPreference"),
                "targetClass": params.get("targetClass"),
            },
            requires_confirmation=True,
        )

    def _change_seat(self, params: Dict[str, str]) -> ActionResult:
        error, booking, seat = self._resolve_seat_change(params)
        if error:
            return error

        if not self.store.change_seat(booking.booking_reference, seat.seat_number, seat.cabin_class):
            return _fail(
                f"Unable to change seat for booking {booking.booking_reference}. The seat may not be available."
            )
        return ActionResult(
            success=True,
            message=f"Successfully changed seat for booking {booking.booking_reference} to seat {seat.seat_number}",
            data={"booking": booking.model_dump(mode="json")},
        )

    # ============================================
    # CHECK_IN / TRACK_BAGGAGE
    # ============================================

    def _check_in(self, params: Dict[str, str]) -> ActionResult:
        reference = params.get("bookingReference")
        if not reference:
            return _fail("Missing required parameter: bookingReference")

        if not self.store.check_in(reference):
            return _fail(f"Booking {reference} not found")
        booking = self.store.get_booking(reference)
        return ActionResult(
            success=True,
            message=f"Successfully checked in for booking {booking.booking_reference}",
            data={"booking": booking.model_dump(mode="json")},
        )

    def _track_baggage(self, params: Dict[str, str]) -> ActionResult:
        reference = params.get("bookingReference")
        if not reference:
            return _fail("Missing required parameter: bookingReference")

        booking = self.store.track_baggage(reference)
        if not booking:
            return _fail(f"Booking {reference} not found")

        status = self.store.rng.choice(BAGGAGE_STATUSES)
        return ActionResult(
            success=True,
            message=f"Baggage status for booking {booking.booking_reference}: {status}",
            data={"booking": booking.model_dump(mode="json"), "baggageStatus": status},
        )
