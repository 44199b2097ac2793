# tests/test_intent_parser.py
"""Rule-based extraction: trip fields, dates, references and model directives"""

from datetime import date

import pytest

from skydesk.llm import intent_parser as parser_module
from skydesk.llm.intent_parser import intent_parser, resolve_date
from skydesk.schemas.airline_schemas import ActionKind, CabinClass

# A Sunday
TODAY = date(2026, 10, 18)


@pytest.mark.parametrize("expression, expected", [
    ("today", date(2026, 10, 18)),
    ("tomorrow", date(2026, 10, 19)),
    ("friday", date(2026, 10, 23)),
    ("Sunday", date(2026, 10, 25)),
    ("next friday", date(2026, 10, 23)),
    ("next week", date(2026, 10, 25)),
    ("2026-11-02", date(2026, 11, 2)),
    ("Nov 5", date(2026, 11, 5)),
])
def test_resolve_date(expression, expected):
    assert resolve_date(expression, TODAY) == expected


def test_resolve_date_rejects_nonsense():
    assert resolve_date("whenever suits", TODAY) is None
    assert resolve_date("", TODAY) is None


class TestTripFields:

    def test_full_request(self):
        fields = intent_parser.extract_fields("I want to fly from Atlanta to New York tomorrow")
        assert fields.origin == "Atlanta"
        assert fields.destination == "New York"
        assert fields.date == "tomorrow"
        assert fields.passengers is None

    def test_aliases_and_passengers(self):
        fields = intent_parser.extract_fields("Flights from nyc to LA next friday for 2 passengers")
        assert fields.origin == "New York"
        assert fields.destination == "Los Angeles"
        assert fields.date == "next friday"
        assert fields.passengers == 2

    def test_bare_answers_fill_expected_field(self):
        assert intent_parser.extract_fields("Chicago", expecting="origin").origin == "Chicago"
        assert intent_parser.extract_fields("3", expecting="passengers").passengers == 3
        assert intent_parser.extract_fields("just me", expecting="passengers").passengers == 1
        assert intent_parser.extract_fields("no thanks", expecting="meal_preference").meal_preference == "none"

    def test_bare_date_uses_the_given_day(self, monkeypatch):
        seen = []

        def recording_resolve(expression, today):
            seen.append(today)
            return resolve_date(expression, today)

        monkeypatch.setattr(parser_module, "resolve_date", recording_resolve)
        fields = intent_parser.extract_fields("friday", expecting="date", today=TODAY)

        assert fields.date == "friday"
        assert seen == [TODAY]

    def test_bare_answer_ignored_without_expectation(self):
        assert intent_parser.extract_fields("Chicago").filled() == {}

    def test_triplets_travel_as_a_family_of_four(self):
        assert intent_parser.extract_passengers("I'm flying with my triplets") == 4

    def test_assistance_and_meal(self):
        fields = intent_parser.extract_fields("We need a wheelchair and a vegetarian meal")
        assert fields.special_assistance == "wheelchair"
        assert fields.meal_preference == "vegetarian"

    def test_trip_intent(self):
        assert intent_parser.has_trip_intent("Can you find me a flight?")
        assert not intent_parser.has_trip_intent("What is the baggage allowance?")


class TestReferences:

    def test_booking_references(self):
        assert intent_parser.booking_references("please cancel dl00042") == ["DL00042"]

    def test_flight_numbers_do_not_match_booking_references(self):
        assert intent_parser.flight_numbers("Book DL6210 or UA1234, not DL00042") == ["DL6210", "UA1234"]

    @pytest.mark.parametrize("text, index", [
        ("the second one please", 1),
        ("I'll take the last flight", -1),
        ("book the 1st option", 0),
        ("I want first class", None),
    ])
    def test_ordinals(self, text, index):
        assert intent_parser.ordinal_index(text) == index

    def test_demonstrative(self):
        assert intent_parser.is_demonstrative("book that flight")
        assert not intent_parser.is_demonstrative("book a flight")

    def test_cabin_and_seat(self):
        assert intent_parser.cabin_class("comfort plus please") == CabinClass.COMFORT_PLUS
        assert intent_parser.cabin_class("Delta One if possible") == CabinClass.DELTA_ONE
        assert intent_parser.seat_number("move me to 14C") == "14C"
        assert intent_parser.seat_preference("an aisle seat") == "aisle"


class TestDirectives:

    def test_leading_directive(self):
        parsed = intent_parser.parse_directive(
            '[ACTION:BOOK_FLIGHT]flightNumber="DL6210" seatClass="economy"[/ACTION] Let me book that for you.'
        )
        assert parsed.action.kind == ActionKind.BOOK_FLIGHT
        assert parsed.action.params == {"flightNumber": "DL6210", "seatClass": "economy"}
        assert parsed.content == "Let me book that for you."

    def test_directive_mid_message(self):
        parsed = intent_parser.parse_directive(
            'Sure. [ACTION:CHECK_IN]bookingReference="DL00001"[/ACTION]'
        )
        assert parsed.action.kind == ActionKind.CHECK_IN
        assert parsed.content == "Sure."

    def test_unknown_directive_stays_as_text(self):
        text = '[ACTION:TELEPORT]to="Mars"[/ACTION] Off we go.'
        parsed = intent_parser.parse_directive(text)
        assert parsed.action is None
        assert parsed.content == text
        assert parsed.raw_kind == "TELEPORT"

    def test_plain_text(self):
        parsed = intent_parser.parse_directive("Happy to help!")
        assert parsed.action is None
        assert parsed.content == "Happy to help!"
