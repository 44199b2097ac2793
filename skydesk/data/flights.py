# data/flights.py
"""
Mock Flight Inventory
Generates flights, seat maps and fares for the demo session:
- Fixed Atlanta <-> New York schedules
- Random flights on popular and random routes
- Ad-hoc flights synthesized for a searched city pair
"""

import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

from ..schemas.airline_schemas import (
    CABIN_ORDER,
    CabinClass,
    Flight,
    FlightStatus,
    Seat,
)


# ============================================
# Reference Data
# ============================================

AIRPORTS: List[Tuple[str, str]] = [
    ("New York", "JFK"),
    ("London", "LHR"),
    ("Tokyo", "NRT"),
    ("Paris", "CDG"),
    ("Dubai", "DXB"),
    ("Los Angeles", "LAX"),
    ("Chicago", "ORD"),
    ("Singapore", "SIN"),
    ("Atlanta", "ATL"),
    ("Hong Kong", "HKG"),
]

US_CITIES = {"New York", "Los Angeles", "Chicago", "Atlanta"}

POPULAR_ROUTES: List[Tuple[str, str]] = [
    ("New York", "London"),
    ("London", "New York"),
    ("New York", "Paris"),
    ("Paris", "New York"),
    ("Los Angeles", "Tokyo"),
    ("Tokyo", "Los Angeles"),
    ("Atlanta", "New York"),
    ("New York", "Atlanta"),
    ("Chicago", "Atlanta"),
    ("Atlanta", "Chicago"),
]


@dataclass
class AircraftType:
    model: str
    economy: int


AIRCRAFT_TYPES: List[AircraftType] = [
    AircraftType("Boeing 777-300ER", 300),
    AircraftType("Airbus A380", 420),
    AircraftType("Boeing 787-9", 250),
    AircraftType("Airbus A350-900", 280),
    AircraftType("Boeing 737-800", 160),
]

# (min, max) fare per cabin
ROUTE_PRICES: Dict[str, Dict[CabinClass, Tuple[int, int]]] = {
    "domestic": {
        CabinClass.ECONOMY: (150, 400),
        CabinClass.COMFORT_PLUS: (300, 600),
        CabinClass.FIRST: (600, 1200),
        CabinClass.DELTA_ONE: (800, 1500),
    },
    "international": {
        CabinClass.ECONOMY: (400, 1200),
        CabinClass.COMFORT_PLUS: (800, 1800),
        CabinClass.FIRST: (1500, 3000),
        CabinClass.DELTA_ONE: (2000, 4000),
    },
}

DELAY_REASONS = ["Weather conditions", "Technical check", "Late arrival of aircraft"]

SEAT_LETTERS = "ABCDEF"

# Synthesized flights for a searched pair
SYNTH_AIRLINES = ["AA", "DL", "UA", "B6", "WN", "AS"]
SYNTH_HOURS = [7, 9, 11, 13, 15, 17, 19]


@dataclass
class ScheduledDeparture:
    """One slot of a fixed daily schedule"""
    number: int
    hour: int
    minute: int


# Departure days that get distinct schedule numbers before the codes repeat
SCHEDULE_CYCLE_DAYS = 40

ROUTE_SCHEDULES: Dict[Tuple[str, str], Dict] = {
    ("Atlanta", "New York"): {
        "slots": [
            ScheduledDeparture(6210, 7, 22),
            ScheduledDeparture(6220, 10, 45),
            ScheduledDeparture(6230, 13, 15),
            ScheduledDeparture(6240, 16, 30),
            ScheduledDeparture(6250, 19, 0),
        ],
        "duration": "2h 48m",
        "gate_prefix": "B",
    },
    ("New York", "Atlanta"): {
        "slots": [
            ScheduledDeparture(6310, 6, 30),
            ScheduledDeparture(6320, 9, 15),
            ScheduledDeparture(6330, 12, 45),
            ScheduledDeparture(6340, 15, 0),
            ScheduledDeparture(6350, 18, 30),
        ],
        "duration": "2h 35m",
        "gate_prefix": "A",
    },
}


# ============================================
# Pricing & Seats
# ============================================

def is_international(departure: str, arrival: str) -> bool:
    return (departure in US_CITIES) != (arrival in US_CITIES)


def calculate_price(base_price: float, departure_day: date, today: date) -> float:
    """Apply demand, weekend and season multipliers to a base fare"""
    days_until = (departure_day - today).days
    demand = 1.0
    if days_until <= 3:
        demand = 1.5
    elif days_until <= 7:
        demand = 1.3
    elif days_until <= 14:
        demand = 1.1

    # Friday, Saturday, Sunday
    weekend = 1.2 if departure_day.weekday() in (4, 5, 6) else 1.0

    # June-August and December
    season = 1.25 if departure_day.month in (6, 7, 8, 12) else 1.0

    return float(round(base_price * demand * weekend * season))


def seat_position(seat_number: str) -> str:
    """window / middle / aisle, derived from the seat letter of a six-abreast row"""
    letter = seat_number[-1:].upper()
    if letter in ("A", "F"):
        return "window"
    if letter in ("C", "D"):
        return "aisle"
    return "middle"


def generate_seats(
    count: int,
    cabin_class: CabinClass,
    international: bool,
    departure_day: date,
    today: date,
) -> List[Seat]:
    """
    Build a cabin pool of `count` seats, six per row.
    Every seat starts available; only bookings occupy seats.
    """
    low, high = ROUTE_PRICES["international" if international else "domestic"][cabin_class]
    price = calculate_price((low + high) / 2, departure_day, today)

    seats: List[Seat] = []
    for i in range(count):
        row = i // 6 + 1
        position = i % 6
        features: List[str] = []
        if cabin_class != CabinClass.ECONOMY:
            features.append("Extra Legroom")
        if cabin_class == CabinClass.DELTA_ONE:
            features.extend(["Lie-flat Bed", "Premium Dining"])
        if position in (0, 5):
            features.append("Window")
        if position in (2, 3):
            features.append("Aisle")
        seats.append(Seat(
            seat_number=f"{row}{SEAT_LETTERS[position]}",
            cabin_class=cabin_class,
            price=price,
            features=features,
        ))
    return seats


def _seat_pools(
    economy: int,
    comfort_plus: int,
    first: int,
    delta_one: int,
    international: bool,
    departure_day: date,
    today: date,
) -> Dict[CabinClass, List[Seat]]:
    counts = {
        CabinClass.ECONOMY: economy,
        CabinClass.COMFORT_PLUS: comfort_plus,
        CabinClass.FIRST: first,
        CabinClass.DELTA_ONE: delta_one,
    }
    return {
        cabin: generate_seats(counts[cabin], cabin, international, departure_day, today)
        for cabin in CABIN_ORDER
    }


# ============================================
# Flight Generators
# ============================================

def schedule_flight_number(slot_number: int, day: date, today: date) -> str:
    """
    Tomorrow's departures keep the slot number (DL6210). Other days fold the
    offset from tomorrow into the last digit and the thousands digit, so
    DL6218 is the same slot eight days later.
    """
    offset = ((day - today).days - 1) % SCHEDULE_CYCLE_DAYS
    block, step = divmod(offset, 10)
    return f"DL{slot_number + step + 1000 * block}"


def route_schedule(departure: str, arrival: str, day: date, today: date) -> List[Flight]:
    """Fixed five-flight schedule for a known route, empty for any other pair"""
    schedule = ROUTE_SCHEDULES.get((departure, arrival))
    if not schedule:
        return []

    flights = []
    for idx, slot in enumerate(schedule["slots"], start=1):
        aircraft = AIRCRAFT_TYPES[idx % len(AIRCRAFT_TYPES)]
        flights.append(Flight(
            flight_number=schedule_flight_number(slot.number, day, today),
            departure=departure,
            arrival=arrival,
            scheduled_time=datetime.combine(day, time(slot.hour, slot.minute)),
            status=FlightStatus.ON_TIME,
            aircraft=aircraft.model,
            duration=schedule["duration"],
            gate=f"{schedule['gate_prefix']}{idx + 10}",
            seats=_seat_pools(104, 20, 0, 9, False, day, today),
        ))
    return flights


def generate_flight(flight_id: int, rng: random.Random, today: date, day: Optional[date] = None) -> Flight:
    """Random flight numbered DL{1000 + id}, 70% of them on a popular route"""
    if rng.random() < 0.7:
        departure, arrival = rng.choice(POPULAR_ROUTES)
    else:
        departure, arrival = rng.sample([city for city, _ in AIRPORTS], 2)

    aircraft = rng.choice(AIRCRAFT_TYPES)
    if day is None:
        day = today + timedelta(days=rng.randint(1, 7))
    departs = datetime.combine(day, time(rng.randint(6, 21), rng.randint(0, 59)))

    roll = rng.random()
    status = FlightStatus.ON_TIME
    delay_reason = None
    if roll > 0.98:
        status = FlightStatus.CANCELLED
        delay_reason = "Operational issues"
    elif roll > 0.9:
        status = FlightStatus.DELAYED
        delay_reason = rng.choice(DELAY_REASONS)

    international = is_international(departure, arrival)
    economy = aircraft.economy
    return Flight(
        flight_number=f"DL{1000 + flight_id}",
        departure=departure,
        arrival=arrival,
        scheduled_time=departs,
        status=status,
        delay_reason=delay_reason,
        aircraft=aircraft.model,
        duration=f"{rng.randint(1, 11)}h {rng.randint(0, 59)}m",
        gate=f"{rng.choice('ABCD')}{rng.randint(1, 20)}",
        seats=_seat_pools(
            economy, int(economy * 0.1), int(economy * 0.05), int(economy * 0.03),
            international, day, today,
        ),
    )


def generate_flights(count: int, rng: random.Random, today: date) -> List[Flight]:
    """Initial inventory: both Atlanta/New York schedules for tomorrow, then random flights"""
    tomorrow = today + timedelta(days=1)
    flights = route_schedule("Atlanta", "New York", tomorrow, today)
    flights += route_schedule("New York", "Atlanta", tomorrow, today)
    for i in range(len(flights), count):
        flights.append(generate_flight(i, rng, today))
    return flights


def synthesize_route_flights(
    departure: str,
    arrival: str,
    day: date,
    rng: random.Random,
    today: date,
    taken: Optional[set] = None,
) -> List[Flight]:
    """
    3-5 flights for an arbitrary city pair on one day, spread over the
    07:00-19:00 departure slots. Flight numbers avoid `taken`.
    """
    taken = set(taken or ())
    n = rng.randint(3, 5)
    international = is_international(departure, arrival)

    flights = []
    for i in range(n):
        hour = SYNTH_HOURS[(i * len(SYNTH_HOURS)) // n]
        departs = datetime.combine(day, time(hour, rng.choice([0, 15, 30, 45])))

        number = None
        while number is None or number in taken:
            number = f"{rng.choice(SYNTH_AIRLINES)}{rng.randint(1000, 9999)}"
        taken.add(number)

        economy = rng.choice([120, 150, 180])
        flights.append(Flight(
            flight_number=number,
            departure=departure,
            arrival=arrival,
            scheduled_time=departs,
            status=FlightStatus.ON_TIME,
            aircraft=f"Boeing {737 + rng.randint(0, 3) * 10}",
            duration=f"{rng.randint(1, 3)}h {rng.randint(0, 59)}m",
            gate=f"{rng.choice('ABCDE')}{rng.randint(1, 30)}",
            seats=_seat_pools(
                economy, economy // 10, economy // 20, 0 if not international else 12,
                international, day, today,
            ),
        ))
    return flights
