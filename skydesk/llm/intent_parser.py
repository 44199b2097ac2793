# llm/intent_parser.py
"""
Intent Parser for the SkyDesk assistant
Best-effort extraction of structured hints from free text:
- Trip fields (origin, destination, date, passengers, assistance, meal)
- Flight numbers, booking references, ordinal and demonstrative references
- Cabin class and seat hints
- Legacy [ACTION:KIND]key="value"[/ACTION] directives in model replies
This is a heuristic extractor, not a grammar.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser
from loguru import logger
from pydantic import ValidationError

from ..schemas.airline_schemas import ActionRequest, CabinClass, normalize_cabin_class


# ============================================
# Patterns
# ============================================

BOOKING_REFERENCE_PATTERN = re.compile(r"\b([A-Z]{2}\d{5})\b", re.IGNORECASE)
FLIGHT_NUMBER_PATTERN = re.compile(r"\b([A-Z][A-Z0-9]\d{3,4})\b", re.IGNORECASE)
SEAT_NUMBER_PATTERN = re.compile(r"\b(\d{1,2}[A-F])\b", re.IGNORECASE)

DIRECTIVE_AT_START = re.compile(r"^\s*\[ACTION:([A-Z_]+)\](.*?)\[/ACTION\]", re.DOTALL)
DIRECTIVE_ANYWHERE = re.compile(r"\[ACTION:([A-Z_]+)\](.*?)\[/ACTION\]", re.DOTALL)
DIRECTIVE_PARAM = re.compile(r'([A-Za-z_]+)="([^"]*)"')

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

ORDINALS = {
    "first": 0, "1st": 0,
    "second": 1, "2nd": 1,
    "third": 2, "3rd": 2,
    "fourth": 3, "4th": 3,
    "fifth": 4, "5th": 4,
    "last": -1,
}
ORDINAL_PATTERN = re.compile(
    r"\b(first|second|third|fourth|fifth|last|1st|2nd|3rd|4th|5th)\s+(?:one|flight|option)\b",
    re.IGNORECASE,
)
DEMONSTRATIVE_PATTERN = re.compile(r"\b(?:that|this|the same)\s+(?:one|flight)\b", re.IGNORECASE)

CITY_ALIASES = {
    "nyc": "New York", "new york": "New York", "new york city": "New York", "jfk": "New York",
    "atl": "Atlanta", "atlanta": "Atlanta",
    "la": "Los Angeles", "lax": "Los Angeles", "los angeles": "Los Angeles",
    "chicago": "Chicago", "ord": "Chicago",
    "london": "London", "lhr": "London",
    "paris": "Paris", "cdg": "Paris",
    "tokyo": "Tokyo", "nrt": "Tokyo",
    "dubai": "Dubai", "dxb": "Dubai",
    "singapore": "Singapore", "sin": "Singapore",
    "hong kong": "Hong Kong", "hkg": "Hong Kong",
}

# Words that follow "to"/"from" without naming a place ("want to fly", "to book")
_NOT_PLACES = {
    "fly", "book", "go", "travel", "change", "cancel", "see", "know", "check", "get",
    "find", "make", "be", "have", "help", "switch", "move", "upgrade", "track", "the",
    "a", "an", "my", "me", "you", "do", "visit", "leave", "depart", "return", "take",
}
_FIELD_STOP = (
    r"(?=\s+(?:to|from|on|for|next|this|tomorrow|today|with|and|in|at|leaving|departing|"
    r"returning|around|by|please)\b|\s+\d|[,.?!;]|$)"
)
ORIGIN_PATTERN = re.compile(r"\bfrom\s+([A-Za-z][A-Za-z .'-]*?)" + _FIELD_STOP, re.IGNORECASE)
DESTINATION_PATTERN = re.compile(r"\bto\s+([A-Za-z][A-Za-z .'-]*?)" + _FIELD_STOP, re.IGNORECASE)

DATE_PATTERNS = [
    r"\b(today|tomorrow)\b",
    r"\b(next\s+(?:week|monday|tuesday|wednesday|thursday|friday|saturday|sunday))\b",
    r"\b(?:on|this)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    r"\b(\d{4}-\d{2}-\d{2})\b",
    r"\b(\d{1,2}/\d{1,2}(?:/\d{2,4})?)\b",
    r"\b((?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s+\d{4})?)\b",
    r"\b(\d{1,2}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*)\b",
]

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}
PASSENGER_PATTERN = re.compile(
    r"\b(\d+|one|two|three|four|five|six|seven|eight|nine|ten)\s+"
    r"(?:passengers?|people|persons?|adults?|travell?ers?|tickets?|seats?|of us)\b",
    re.IGNORECASE,
)
SOLO_PATTERN = re.compile(r"\b(?:just me|only me|myself|alone|solo|by myself)\b", re.IGNORECASE)

ASSISTANCE_KEYWORDS = ["wheelchair", "stroller", "car seat", "bassinet", "mobility", "assistance", "help boarding"]
MEAL_KEYWORDS = ["vegetarian", "vegan", "kosher", "halal", "gluten-free", "gluten free", "child meal", "regular"]
NEGATIVE_ANSWER = re.compile(r"^\s*(?:no|nope|none|nothing|no thanks|not needed|n/a)\b", re.IGNORECASE)


# ============================================
# Date Resolution
# ============================================

def resolve_date(expression: Optional[str], today: date) -> Optional[date]:
    """
    Resolve 'today', 'tomorrow', 'next <weekday>', 'next week', a weekday
    name or any dateutil-parseable date against `today`.
    Returns None when the expression cannot be understood.
    """
    if not expression:
        return None
    text = expression.strip().lower()

    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)

    weekday = next((i for i, name in enumerate(WEEKDAYS) if name in text), None)
    if weekday is not None and not re.search(r"\d", text):
        days_to_add = weekday - today.weekday()
        if days_to_add <= 0:
            days_to_add += 7
        return today + timedelta(days=days_to_add)

    if "next" in text:
        return today + timedelta(days=7)

    try:
        return date_parser.parse(expression, default=datetime.combine(today, time())).date()
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unparseable date '{expression}': {e}")
        return None


# ============================================
# Extraction Results
# ============================================

@dataclass
class ExtractedFields:
    """Trip fields found in one message; None means not mentioned"""
    origin: Optional[str] = None
    destination: Optional[str] = None
    date: Optional[str] = None
    passengers: Optional[int] = None
    special_assistance: Optional[str] = None
    meal_preference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "date": self.date,
            "passengers": self.passengers,
            "special_assistance": self.special_assistance,
            "meal_preference": self.meal_preference,
        }

    def filled(self) -> Dict[str, Any]:
        return {k: v for k, v in self.to_dict().items() if v is not None}


@dataclass
class ParsedDirective:
    action: Optional[ActionRequest]
    content: str
    raw_kind: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)


# ============================================
# Parser
# ============================================

class IntentParser:
    """
    Pulls structured hints out of user and model text.
    Every method is independent and tolerant of missing input.
    """

    trip_keywords = ["fly", "flight", "flights", "trip", "travel", "ticket", "going to", "book a"]

    # -------- Trip fields --------

    def extract_fields(
        self,
        text: str,
        expecting: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExtractedFields:
        """
        Extract trip fields. `expecting` names the field the assistant just
        asked about, so a bare answer ("Atlanta", "3", "no") fills it. A bare
        date is checked against `today`, the session date when one is known.
        """
        fields = ExtractedFields(
            origin=self._capture_place(ORIGIN_PATTERN, text),
            destination=self._capture_place(DESTINATION_PATTERN, text),
            date=self.extract_date(text),
            passengers=self.extract_passengers(text),
            special_assistance=self._keyword(text, ASSISTANCE_KEYWORDS),
            meal_preference=self._keyword(text, MEAL_KEYWORDS),
        )

        if expecting and getattr(fields, expecting, None) is None:
            bare = self._bare_answer(text, expecting, today or date.today())
            if bare is not None:
                setattr(fields, expecting, bare)

        if fields.filled():
            logger.info(f"Extracted fields: {fields.filled()}")
        return fields

    def has_trip_intent(self, text: str) -> bool:
        text_lower = text.lower()
        return any(kw in text_lower for kw in self.trip_keywords)

    def extract_date(self, text: str) -> Optional[str]:
        for pattern in DATE_PATTERNS:
            match = re.search(pattern, text, re.IGNORECASE)
            if match:
                return match.group(1).strip()
        return None

    def extract_passengers(self, text: str) -> Optional[int]:
        text_lower = text.lower()
        if "triplet" in text_lower:
            return 4
        match = PASSENGER_PATTERN.search(text)
        if match:
            return self._to_int(match.group(1))
        if SOLO_PATTERN.search(text):
            return 1
        return None

    def normalize_city(self, raw: str) -> str:
        cleaned = " ".join(raw.strip(" .'-").split())
        return CITY_ALIASES.get(cleaned.lower(), cleaned.title())

    def find_city(self, text: str) -> Optional[str]:
        """First known city mentioned anywhere in the text"""
        text_lower = f" {text.lower()} "
        for alias in sorted(CITY_ALIASES, key=len, reverse=True):
            if re.search(rf"\b{re.escape(alias)}\b", text_lower):
                return CITY_ALIASES[alias]
        return None

    # -------- References --------

    def booking_references(self, text: str) -> List[str]:
        return [m.upper() for m in BOOKING_REFERENCE_PATTERN.findall(text)]

    def flight_numbers(self, text: str) -> List[str]:
        return [m.upper() for m in FLIGHT_NUMBER_PATTERN.findall(text)]

    def ordinal_index(self, text: str) -> Optional[int]:
        match = ORDINAL_PATTERN.search(text)
        if not match:
            return None
        return ORDINALS[match.group(1).lower()]

    def is_demonstrative(self, text: str) -> bool:
        return bool(DEMONSTRATIVE_PATTERN.search(text))

    # -------- Cabin and seat --------

    def cabin_class(self, text: str) -> Optional[CabinClass]:
        text_lower = text.lower()
        for phrase in ["delta one", "deltaone", "first class", "comfort plus", "comfort+",
                       "comfortplus", "main cabin", "economy", "coach"]:
            if phrase in text_lower:
                return normalize_cabin_class(phrase)
        return None

    def seat_number(self, text: str) -> Optional[str]:
        match = SEAT_NUMBER_PATTERN.search(text)
        return match.group(1).upper() if match else None

    def seat_preference(self, text: str) -> Optional[str]:
        text_lower = text.lower()
        for preference in ["window", "aisle", "middle"]:
            if preference in text_lower:
                return preference
        return None

    # -------- Model directives --------

    def parse_directive(self, content: str) -> ParsedDirective:
        """
        Pull the first [ACTION:KIND]k="v"[/ACTION] directive out of a reply,
        preferring one at the very start. Unknown kinds degrade to plain content.
        """
        if not content or not isinstance(content, str):
            return ParsedDirective(action=None, content=content or "")

        match = DIRECTIVE_AT_START.search(content)
        if not match:
            match = DIRECTIVE_ANYWHERE.search(content)
            if match:
                logger.warning(f"Action directive {match.group(1)} found mid-message")
        if not match:
            return ParsedDirective(action=None, content=content)

        kind = match.group(1)
        params = dict(DIRECTIVE_PARAM.findall(match.group(2)))
        remaining = content.replace(match.group(0), "", 1).strip()
        try:
            action = ActionRequest(kind=kind, params=params)
        except ValidationError:
            logger.warning(f"Ignoring unknown action directive {kind}")
            return ParsedDirective(action=None, content=content, raw_kind=kind, params=params)

        return ParsedDirective(action=action, content=remaining, raw_kind=kind, params=params)

    # -------- Helpers --------

    def _capture_place(self, pattern: re.Pattern, text: str) -> Optional[str]:
        found = None
        for match in pattern.finditer(text):
            candidate = match.group(1).strip()
            first_word = candidate.split()[0].lower() if candidate.split() else ""
            if not candidate or first_word in _NOT_PLACES:
                continue
            # Trailing filler words ("New York please")
            words = [w for w in candidate.split() if w.lower() not in ("please", "tomorrow", "today")]
            if words:
                found = self.normalize_city(" ".join(words))
                break
        return found

    def _keyword(self, text: str, keywords: List[str]) -> Optional[str]:
        text_lower = text.lower()
        for keyword in keywords:
            if keyword in text_lower:
                return keyword.replace("gluten free", "gluten-free")
        return None

    def _bare_answer(self, text: str, expecting: str, today: date) -> Optional[Any]:
        stripped = text.strip().rstrip(".!?")
        if not stripped:
            return None

        if expecting in ("origin", "destination"):
            city = self.find_city(stripped)
            if city:
                return city
            if len(stripped.split()) <= 4 and not re.search(r"\d", stripped):
                return self.normalize_city(stripped)
            return None

        if expecting == "date":
            return stripped if resolve_date(stripped, today) else None

        if expecting == "passengers":
            match = re.search(r"\b(\d+|one|two|three|four|five|six|seven|eight|nine|ten)\b", stripped, re.IGNORECASE)
            return self._to_int(match.group(1)) if match else None

        if expecting in ("special_assistance", "meal_preference"):
            if NEGATIVE_ANSWER.search(stripped):
                return "none"
            return stripped

        return None

    @staticmethod
    def _to_int(token: str) -> Optional[int]:
        token = token.lower()
        if token.isdigit():
            return int(token)
        return NUMBER_WORDS.get(token)


# Global instance
intent_parser = IntentParser()
