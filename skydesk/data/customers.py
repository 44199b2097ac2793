# data/customers.py
"""
Mock customers and their baseline bookings
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

from ..schemas.airline_schemas import (
    ActivityEntry,
    Booking,
    BookingStatus,
    CabinClass,
    FareType,
    Flight,
    LoyaltyTier,
    Preferences,
    SeatStatus,
    UserProfile,
)


@dataclass
class Customer:
    customer_id: str
    name: str
    loyalty_tier: LoyaltyTier
    loyalty_points: int
    seat_preference: str = "no preference"
    meal_preference: str = "regular"
    special_assistance: List[str] = field(default_factory=list)

    @property
    def email(self) -> str:
        return f"{self.name.lower().replace(' ', '.')}@example.com"


CUSTOMERS: List[Customer] = [
    Customer("CUST001", "Michael Johnson", LoyaltyTier.GOLD, 58200, "window", "regular"),
    Customer("CUST002", "Sarah Lee", LoyaltyTier.SILVER, 27450, "aisle", "vegetarian"),
    Customer("CUST003", "David Chen", LoyaltyTier.PLATINUM, 88900, "window", "gluten-free"),
    Customer("CUST004", "Maria Garcia", LoyaltyTier.BRONZE, 9100, "aisle", "halal",
             ["wheelchair assistance"]),
    Customer("CUST005", "James Wilson", LoyaltyTier.PLATINUM, 134700, "no preference", "kosher"),
]

BOOKINGS_PER_CUSTOMER = 2

# 60% economy, 20% comfortPlus, 15% first, 5% deltaOne
_CLASS_WEIGHTS = [
    (CabinClass.ECONOMY, 0.6),
    (CabinClass.COMFORT_PLUS, 0.8),
    (CabinClass.FIRST, 0.95),
    (CabinClass.DELTA_ONE, 1.0),
]


def build_profiles() -> List[UserProfile]:
    """Fresh profiles with empty projections; the store fills upcoming_flights"""
    return [
        UserProfile(
            customer_id=c.customer_id,
            name=c.name,
            email=c.email,
            loyalty_tier=c.loyalty_tier,
            loyalty_points=c.loyalty_points,
            preferences=Preferences(
                seat_preference=c.seat_preference,
                meal_preference=c.meal_preference,
                special_assistance=list(c.special_assistance),
            ),
        )
        for c in CUSTOMERS
    ]


def _pick_class(flight: Flight, rng: random.Random) -> CabinClass:
    roll = rng.random()
    cabin = next(c for c, threshold in _CLASS_WEIGHTS if roll < threshold)
    if cabin == CabinClass.DELTA_ONE and not flight.offers(cabin):
        cabin = CabinClass.FIRST
    if cabin == CabinClass.FIRST and not flight.offers(cabin):
        cabin = CabinClass.COMFORT_PLUS
    if not flight.offers(cabin):
        cabin = CabinClass.ECONOMY
    return cabin


def generate_bookings(
    profiles: List[UserProfile],
    flights: List[Flight],
    rng: random.Random,
    now: datetime,
) -> List[Booking]:
    """
    Baseline reservations, BOOKINGS_PER_CUSTOMER each, referenced DL00001 onwards.
    Occupies the first available seat of the chosen cabin on each flight.
    """
    bookings: List[Booking] = []
    if not flights:
        return bookings

    for c_idx, profile in enumerate(profiles):
        for i in range(BOOKINGS_PER_CUSTOMER):
            flight = flights[(c_idx * BOOKINGS_PER_CUSTOMER + i) % len(flights)]
            cabin = _pick_class(flight, rng)
            seat = next(
                (s for s in flight.seat_pool(cabin) if s.status == SeatStatus.AVAILABLE),
                None,
            )
            if seat is None:
                continue
            seat.status = SeatStatus.OCCUPIED

            booking = Booking(
                booking_reference=f"DL{len(bookings) + 1:05d}",
                customer_id=profile.customer_id,
                flight_number=flight.flight_number,
                passenger_name=profile.name,
                scheduled_time=flight.scheduled_time,
                status=BookingStatus.CONFIRMED,
                seat=seat.model_copy(),
                checked_in=False,
                cabin_class=cabin,
                created_at=now - timedelta(days=rng.randint(3, 30)),
                fare_type=FareType.REFUNDABLE if rng.random() < 0.3 else FareType.NON_REFUNDABLE,
            )
            bookings.append(booking)
            profile.activity_log.append(ActivityEntry(
                timestamp=booking.created_at,
                action="Booked Flight",
                details={
                    "bookingReference": booking.booking_reference,
                    "flightNumber": booking.flight_number,
                },
            ))
    return bookings
