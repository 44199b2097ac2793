# data/policies.py
"""
Airline Policies
Static policy text used for:
- Local policy answers when no policy-search endpoint is configured
- Refund wording on cancellation confirmations
- Upgrade pricing in the seat-change flow
"""

from typing import Dict, List, Optional, Tuple

from ..schemas.airline_schemas import CabinClass, LoyaltyTier


AIRLINE_POLICIES: Dict[str, Dict[str, str]] = {
    "baggage": {
        "carry_on": "One carry-on bag (22 x 14 x 9 inches, up to 40 pounds) and one personal item. "
                    "Liquids must be in containers of 3.4 oz (100 ml) or less.",
        "checked": "Checked bags up to 62 linear inches and 50 pounds. First bag free for main cabin "
                   "and above, second bag $40, additional bags $150 each, overweight (51-70 lb) $100.",
        "special": "Sports equipment and musical instruments may have special policies.",
    },
    "cancellation": {
        "basic": "Basic fares are non-refundable and cannot be changed.",
        "main": "Main cabin fares can be changed for the fare difference, subject to a $200 cancellation fee.",
        "refundable": "Refundable fares are fully refundable and can be changed without fees.",
        "twenty_four_hour": "Full refund if cancelled within 24 hours of booking and at least 7 days before departure.",
    },
    "check_in": {
        "online": "Online check-in opens 24 hours before departure, also through the mobile app.",
        "airport": "Airport counters open 3 hours before departure; kiosks are available 24 hours.",
        "cutoff": "Check in at least 30 minutes before domestic flights and 60 minutes before international flights.",
    },
    "seating": {
        "economy": "Main Cabin: standard seating with complimentary snacks and soft drinks.",
        "comfortPlus": "Comfort+: extra legroom, dedicated bin space and premium snacks.",
        "first": "First Class: premium seating with complimentary meals and alcoholic beverages.",
        "deltaOne": "Delta One: lie-flat seats on long-haul international and premium domestic routes.",
        "selection": "Seats can be selected at booking; preferred locations may carry a charge.",
    },
    "loyalty": {
        "program": "SkyMiles members earn miles based on ticket price and status.",
        "tiers": "Tiers are Bronze, Silver, Gold and Platinum. Gold members and above receive "
                 "complimentary Comfort+ upgrades; Platinum members receive complimentary First Class upgrades.",
        "redemption": "Redeem miles for flights, upgrades and more.",
    },
}

POLICY_KEYWORDS: Dict[str, List[str]] = {
    "baggage": ["bag", "baggage", "luggage", "carry-on", "carry on", "suitcase"],
    "cancellation": ["cancel", "refund", "money back", "24 hour", "24-hour"],
    "check_in": ["check-in", "check in", "checkin", "boarding"],
    "seating": ["seat", "legroom", "cabin", "comfort+", "first class", "delta one"],
    "loyalty": ["loyalty", "skymiles", "miles", "status", "tier", "upgrade"],
}

# (complimentary from tier, otherwise price)
UPGRADE_PRICING: Dict[CabinClass, Tuple[Optional[LoyaltyTier], float]] = {
    CabinClass.COMFORT_PLUS: (LoyaltyTier.GOLD, 75.0),
    CabinClass.FIRST: (LoyaltyTier.PLATINUM, 250.0),
    CabinClass.DELTA_ONE: (None, 450.0),
}

TWENTY_FOUR_HOUR_RULE = AIRLINE_POLICIES["cancellation"]["twenty_four_hour"]

ECREDIT_NOTE = (
    "This fare is non-refundable. If you cancel, the value of your ticket will be "
    "issued as an eCredit for future travel."
)


def match_categories(question: str) -> List[str]:
    """Policy categories whose keywords appear in the question"""
    question_lower = question.lower()
    return [
        category for category, words in POLICY_KEYWORDS.items()
        if any(word in question_lower for word in words)
    ]


def answer_policy_question(question: str) -> List[Tuple[str, str]]:
    """(category, text) pairs relevant to the question, empty if nothing matches"""
    answers = []
    for category in match_categories(question):
        for text in AIRLINE_POLICIES[category].values():
            answers.append((category, text))
    return answers
