# schemas/airline_schemas.py
"""
Pydantic v2 schemas for the SkyDesk assistant
Inventory records, action envelopes, pending confirmations and chat turns
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ============================================
# Enums
# ============================================

class CabinClass(str, Enum):
    ECONOMY = "economy"
    COMFORT_PLUS = "comfortPlus"
    FIRST = "first"
    DELTA_ONE = "deltaOne"


# Seat searches and upgrade ladders always walk the cabins in this order
CABIN_ORDER: List[CabinClass] = [
    CabinClass.ECONOMY,
    CabinClass.COMFORT_PLUS,
    CabinClass.FIRST,
    CabinClass.DELTA_ONE,
]

CABIN_LABELS: Dict[CabinClass, str] = {
    CabinClass.ECONOMY: "Main Cabin",
    CabinClass.COMFORT_PLUS: "Comfort+",
    CabinClass.FIRST: "First Class",
    CabinClass.DELTA_ONE: "Delta One",
}

_CABIN_ALIASES = {
    "economy": CabinClass.ECONOMY,
    "main": CabinClass.ECONOMY,
    "main cabin": CabinClass.ECONOMY,
    "coach": CabinClass.ECONOMY,
    "comfortplus": CabinClass.COMFORT_PLUS,
    "comfort plus": CabinClass.COMFORT_PLUS,
    "comfort+": CabinClass.COMFORT_PLUS,
    "comfort": CabinClass.COMFORT_PLUS,
    "first": CabinClass.FIRST,
    "first class": CabinClass.FIRST,
    "deltaone": CabinClass.DELTA_ONE,
    "delta one": CabinClass.DELTA_ONE,
    "delta 1": CabinClass.DELTA_ONE,
}


def normalize_cabin_class(value: Optional[str]) -> Optional[CabinClass]:
    """Map a free-form cabin spelling onto a CabinClass, None if unknown"""
    if value is None:
        return None
    if isinstance(value, CabinClass):
        return value
    key = " ".join(str(value).strip().lower().replace("_", " ").replace("-", " ").split())
    if key in _CABIN_ALIASES:
        return _CABIN_ALIASES[key]
    return _CABIN_ALIASES.get(key.replace(" ", ""))


class SeatStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    SELECTED = "selected"


class FlightStatus(str, Enum):
    ON_TIME = "on time"
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    DEPARTED = "departed"
    ARRIVED = "arrived"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    CHANGED = "changed"


class FareType(str, Enum):
    REFUNDABLE = "refundable"
    NON_REFUNDABLE = "non-refundable"


class LoyaltyTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


LOYALTY_RANK: Dict[LoyaltyTier, int] = {
    LoyaltyTier.BRONZE: 0,
    LoyaltyTier.SILVER: 1,
    LoyaltyTier.GOLD: 2,
    LoyaltyTier.PLATINUM: 3,
}


class ActionKind(str, Enum):
    SEARCH_FLIGHTS = "SEARCH_FLIGHTS"
    BOOK_FLIGHT = "BOOK_FLIGHT"
    CANCEL_BOOKING = "CANCEL_BOOKING"
    CHANGE_FLIGHT = "CHANGE_FLIGHT"
    CHANGE_SEAT = "CHANGE_SEAT"
    CHECK_IN = "CHECK_IN"
    TRACK_BAGGAGE = "TRACK_BAGGAGE"


CONFIRMATION_KINDS = {
    ActionKind.BOOK_FLIGHT,
    ActionKind.CANCEL_BOOKING,
    ActionKind.CHANGE_FLIGHT,
    ActionKind.CHANGE_SEAT,
}


class SeatChangeStage(str, Enum):
    VERIFY_LOYALTY = "verify_loyalty"
    SELECT_SEAT = "select_seat"
    OFFER_UPGRADE = "offer_upgrade"
    READY = "ready"


# ============================================
# Inventory
# ============================================

class Seat(BaseModel):
    """A single seat inside one cabin pool of a flight"""
    seat_number: str
    cabin_class: CabinClass
    status: SeatStatus = SeatStatus.AVAILABLE
    price: float = 0
    features: List[str] = Field(default_factory=list)


class Flight(BaseModel):
    """A scheduled flight with four cabin seat pools"""
    flight_number: str
    departure: str
    arrival: str
    scheduled_time: datetime
    status: FlightStatus = FlightStatus.ON_TIME
    delay_reason: Optional[str] = None
    aircraft: str
    duration: str
    gate: Optional[str] = None
    seats: Dict[CabinClass, List[Seat]] = Field(default_factory=dict)

    def seat_pool(self, cabin_class: CabinClass) -> List[Seat]:
        return self.seats.get(cabin_class, [])

    def offers(self, cabin_class: CabinClass) -> bool:
        return len(self.seat_pool(cabin_class)) > 0

    def available_count(self, cabin_class: CabinClass) -> int:
        return sum(1 for s in self.seat_pool(cabin_class) if s.status == SeatStatus.AVAILABLE)

    def lowest_price(self, cabin_class: CabinClass) -> Optional[float]:
        prices = [s.price for s in self.seat_pool(cabin_class) if s.status == SeatStatus.AVAILABLE]
        return min(prices) if prices else None

    def summary(self) -> Dict[str, Any]:
        """Compact view used in chat context and search payloads"""
        return {
            "flight_number": self.flight_number,
            "departure": self.departure,
            "arrival": self.arrival,
            "scheduled_time": self.scheduled_time.isoformat(),
            "status": self.status.value,
            "aircraft": self.aircraft,
            "duration": self.duration,
            "gate": self.gate,
            "available_seats": {c.value: self.available_count(c) for c in CABIN_ORDER},
            "prices_from": {
                c.value: self.lowest_price(c) for c in CABIN_ORDER if self.lowest_price(c) is not None
            },
        }


class Booking(BaseModel):
    """A passenger reservation on one flight"""
    booking_reference: str
    customer_id: str
    flight_number: str
    passenger_name: str
    scheduled_time: datetime
    status: BookingStatus = BookingStatus.CONFIRMED
    seat: Seat
    checked_in: bool = False
    cabin_class: CabinClass
    created_at: datetime
    fare_type: FareType = FareType.NON_REFUNDABLE

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED


class Preferences(BaseModel):
    seat_preference: str = "no preference"  # window / aisle / no preference
    meal_preference: Optional[str] = None
    special_assistance: List[str] = Field(default_factory=list)


class ActivityEntry(BaseModel):
    timestamp: datetime
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)


class UserProfile(BaseModel):
    """
    Customer profile.
    upcoming_flights is a projection of the booking set, maintained by the store.
    """
    customer_id: str
    name: str
    email: str
    loyalty_tier: LoyaltyTier = LoyaltyTier.BRONZE
    loyalty_points: int = 0
    upcoming_flights: List[Booking] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    activity_log: List[ActivityEntry] = Field(default_factory=list)


# ============================================
# Actions
# ============================================

class ActionRequest(BaseModel):
    """Structured {kind, params} contract shared with the language model"""
    kind: ActionKind
    params: Dict[str, str] = Field(default_factory=dict)


class ActionResult(BaseModel):
    """Uniform result envelope returned by the action executor"""
    success: bool
    message: str
    data: Optional[Any] = None
    requires_confirmation: bool = False


# ============================================
# Pending Confirmations
# ============================================

def _transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex[:12]}"


class SeatOption(BaseModel):
    seat_number: str
    cabin_class: CabinClass
    seat_type: str  # window / middle / aisle
    price: float
    features: List[str] = Field(default_factory=list)


class UpgradeOption(BaseModel):
    cabin_class: CabinClass
    label: str
    price: float
    complimentary: bool = False


class PendingBookFlight(BaseModel):
    kind: Literal["BOOK_FLIGHT"] = "BOOK_FLIGHT"
    transaction_id: str = Field(default_factory=_transaction_id)
    flight_number: str
    seat_class: CabinClass
    flight: Flight

    def action_params(self) -> Dict[str, str]:
        return {"flightNumber": self.flight_number, "seatClass": self.seat_class.value}


class PendingCancelBooking(BaseModel):
    kind: Literal["CANCEL_BOOKING"] = "CANCEL_BOOKING"
    transaction_id: str = Field(default_factory=_transaction_id)
    booking_reference: str
    booking: Booking
    flight: Optional[Flight] = None

    def action_params(self) -> Dict[str, str]:
        return {"bookingReference": self.booking_reference}


class PendingChangeFlight(BaseModel):
    kind: Literal["CHANGE_FLIGHT"] = "CHANGE_FLIGHT"
    transaction_id: str = Field(default_factory=_transaction_id)
    booking_reference: str
    new_flight_number: str
    booking: Booking
    new_flight: Flight

    def action_params(self) -> Dict[str, str]:
        return {
            "bookingReference": self.booking_reference,
            "newFlightNumber": self.new_flight_number,
        }


class PendingChangeSeat(BaseModel):
    kind: Literal["CHANGE_SEAT"] = "CHANGE_SEAT"
    transaction_id: str = Field(default_factory=_transaction_id)
    booking_reference: str
    booking: Booking
    stage: SeatChangeStage = SeatChangeStage.VERIFY_LOYALTY

    # Criteria captured from the request
    seat_preference: Optional[str] = None
    target_class: Optional[CabinClass] = None

    # Sub-flow selections
    loyalty_tier: Optional[LoyaltyTier] = None
    upgrade_eligible: bool = False
    selected_seat: Optional[str] = None
    selected_class: Optional[CabinClass] = None
    upgrade: Optional[UpgradeOption] = None

    def action_params(self) -> Dict[str, str]:
        params = {"bookingReference": self.booking_reference}
        if self.selected_seat:
            params["newSeatNumber"] = self.selected_seat
        if self.selected_class:
            params["targetClass"] = self.selected_class.value
        return params


PendingConfirmation = Annotated[
    Union[PendingBookFlight, PendingCancelBooking, PendingChangeFlight, PendingChangeSeat],
    Field(discriminator="kind"),
]


class RefundEligibility(BaseModel):
    """Derived at render time, never stored"""
    eligible: bool
    qualifies_for_24_hour_refund: bool
    fare_type: FareType
    hours_since_booking: float
    days_until_departure: float
    note: str


class ConfirmationView(BaseModel):
    """Display-ready view of a pending confirmation"""
    transaction_id: str
    kind: ActionKind
    title: str
    details: Dict[str, Any] = Field(default_factory=dict)
    refund: Optional[RefundEligibility] = None


# ============================================
# Conversation
# ============================================

class ChatMessage(BaseModel):
    """One turn of the transcript"""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "bot"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    action_result: Optional[ActionResult] = None
    pending: Optional[PendingConfirmation] = None


class AgentHandoff(BaseModel):
    """Escalation packet for a human agent"""
    customer_id: str
    booking_details: Optional[Dict[str, Any]] = None
    problem_summary: str
    attempted_solutions: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


class TripFields(BaseModel):
    """Trip details gathered over several turns"""
    origin: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[str] = None
    passengers: Optional[int] = None
    special_assistance: Optional[str] = None
    meal_preference: Optional[str] = None


class ConversationContext(BaseModel):
    """Per-session dialogue state, reset on profile switch or conversation reset"""
    last_search_results: List[str] = Field(default_factory=list)
    selected_flight: Optional[str] = None
    question_queue: List[str] = Field(default_factory=list)
    gathered: TripFields = Field(default_factory=TripFields)
    mentioned_flights: Dict[str, Flight] = Field(default_factory=dict)
    mentioned_bookings: Dict[str, Booking] = Field(default_factory=dict)


class TurnResult(BaseModel):
    """Messages produced by a single user turn"""
    messages: List[ChatMessage] = Field(default_factory=list)
    handoff: Optional[AgentHandoff] = None
