# agents/orchestrator.py
"""
Conversation Orchestrator

Owns the ConversationContext for one session and decides, per user turn,
whether to answer locally or delegate to the language model:

1. Reference resolution (explicit flight number, ordinal, "that flight")
2. PNR fast path: a booking reference answering "which booking should I cancel?"
3. Progressive gathering of trip fields, one question per turn
4. Language model call (with policy context for policy questions);
   the returned action goes through the executor's prepare step
"""

import re
from typing import Any, Dict, List, Optional

from loguru import logger

from ..config import settings
from ..interfaces.conversation_store import ConversationStore
from ..interfaces.inventory_store import InventoryStore
from ..llm.chat_client import ChatReply
from ..llm.intent_parser import intent_parser
from ..llm.policy_client import PolicySearchClient
from ..schemas.airline_schemas import (
    CABIN_LABELS,
    CABIN_ORDER,
    ActionKind,
    ActionResult,
    AgentHandoff,
    ChatMessage,
    ConversationContext,
    Flight,
    TripFields,
    TurnResult,
    UserProfile,
)
from .action_executor import ActionExecutor
from .confirmation import ConfirmationProtocol


APOLOGY = (
    "I apologize, but I'm experiencing technical difficulties. "
    "Let me connect you with a human agent."
)

FALLBACK_REPLY = (
    "I can help you search for flights, book or cancel a trip, change your flight or seat, "
    "check in, or track your bags. What would you like to do?"
)

RESET_DATA_REPLY = "Data has been reset with fresh flights. Atlanta to New York routes are now available!"

HANDOFF_PHRASES = [
    "cannot help",
    "cannot assist",
    "beyond my capabilities",
    "need a human",
    "agent assistance",
    "speak to a representative",
    "complex issue",
    "escalate",
    "human support",
]

HANDOFF_NEXT_STEPS = ["Review customer history", "Assess specific needs", "Provide personalized solution"]

POLICY_QUESTION_KEYWORDS = [
    "policy", "refund", "baggage", "bag fee", "luggage", "carry-on", "allowance",
    "24 hour", "24-hour", "fee", "rules", "allowed", "can i bring", "loyalty", "skymiles",
]

FLIGHT_CONTEXT_KEYWORDS = ["flight", "travel", "trip", "book", "fly"]

QUESTIONS = {
    "origin": "Where will you be flying from?",
    "destination": "Where would you like to fly to?",
    "date": "What date would you like to travel?",
    "passengers": "How many passengers will be traveling?",
    "special_assistance": "Will anyone in your party need special assistance, such as a wheelchair or help boarding?",
    "meal_preference": "Does anyone have a meal preference, for example vegetarian, kosher or gluten-free?",
}
GATHER_ORDER = ["origin", "destination", "date", "passengers"]
PARTY_QUESTIONS = ["special_assistance", "meal_preference"]

ABANDON_PATTERN = re.compile(r"\b(?:never ?mind|forget it|start over|stop)\b", re.IGNORECASE)
NON_TRIP_PATTERN = re.compile(
    r"\b(?:cancel|change|switch|seat|check[- ]?in|baggage|bags?|luggage|refund|policy|status)\b",
    re.IGNORECASE,
)


class ConversationOrchestrator:
    """Dialogue controller for one session"""

    def __init__(
        self,
        store: InventoryStore,
        executor: ActionExecutor,
        protocol: ConfirmationProtocol,
        conversation: ConversationStore,
        chat_client: Optional[Any] = None,
        policy_client: Optional[PolicySearchClient] = None,
        history_limit: Optional[int] = None,
    ):
        self.store = store
        self.executor = executor
        self.protocol = protocol
        self.conversation = conversation
        self.chat_client = chat_client
        self.policy_client = policy_client or PolicySearchClient()
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT
        self.context = ConversationContext()

    # ============================================
    # Session commands
    # ============================================

    def greeting(self) -> str:
        return f"Hello {self.store.active_profile.name}! I'm your AI travel assistant. How can I help you today?"

    def reset_conversation(self) -> None:
        self.context = ConversationContext()
        self.conversation.reset(self.greeting(), timestamp=self.store.now())

    def switch_user(self, customer_id: str) -> Optional[UserProfile]:
        profile = self.store.set_active_profile(customer_id)
        if profile is None:
            return None
        self.reset_conversation()
        return profile

    def reset_data(self) -> ChatMessage:
        self.store.reset_all()
        self.reset_conversation()
        return self.conversation.add_bot(RESET_DATA_REPLY, timestamp=self.store.now())

    def confirm(self, transaction_id: str) -> Optional[ChatMessage]:
        return self.protocol.confirm(transaction_id)

    def decline(self, transaction_id: str) -> Optional[ChatMessage]:
        return self.protocol.decline(transaction_id)

    def select_flight(self, flight_number: str, seat_class: Optional[str] = None) -> TurnResult:
        """Flight picked from a list of options, optionally with a cabin"""
        self.conversation.add_user(
            f"I'd like flight {flight_number}" + (f" in {seat_class}" if seat_class else ""),
            timestamp=self.store.now(),
        )
        flight = self.store.get_flight(flight_number)
        if not flight:
            return self._reply(f"I couldn't find flight {flight_number}. Could you pick one from the list?")

        self._remember_flight(flight)
        self.context.selected_flight = flight.flight_number

        if seat_class:
            return self._run_action(
                ActionKind.BOOK_FLIGHT,
                {"flightNumber": flight.flight_number, "seatClass": seat_class},
            )

        cabins = []
        for cabin in CABIN_ORDER:
            price = flight.lowest_price(cabin)
            if price is not None:
                cabins.append(f"{CABIN_LABELS[cabin]} from ${price:.0f}")
        return self._reply(
            f"You've selected flight {flight.flight_number} from {flight.departure} to {flight.arrival}, "
            f"departing {flight.scheduled_time:%b %d at %I:%M %p}. "
            f"Which cabin would you like? Available: {', '.join(cabins) or 'none'}."
        )

    # ============================================
    # User turn
    # ============================================

    async def handle_user_message(self, text: str) -> TurnResult:
        history = self.conversation.history_for_model(self.history_limit)
        last_bot = self.conversation.last_bot_message()
        self.conversation.add_user(text, timestamp=self.store.now())

        self._track_mentions(text)
        flight = self.resolve_flight_reference(text)
        if flight:
            self.context.selected_flight = flight.flight_number

        # PNR fast path
        references = intent_parser.booking_references(text)
        if references and self._asked_for_cancel_reference(last_bot):
            logger.info(f"PNR fast path: cancel {references[0]}")
            return self._run_action(ActionKind.CANCEL_BOOKING, {"bookingReference": references[0]})

        if self.context.question_queue or self._starts_trip_request(text):
            return self._gather(text)

        return await self._delegate(text, history)

    # ============================================
    # Reference resolution
    # ============================================

    def resolve_flight_reference(self, text: str) -> Optional[Flight]:
        """
        Explicit flight number first (recently mentioned, then inventory),
        then ordinals against the last search results, then "that flight".
        """
        for token in intent_parser.flight_numbers(text):
            if token in self.context.mentioned_flights:
                return self.store.get_flight(token) or self.context.mentioned_flights[token]
            flight = self.store.get_flight(token)
            if flight:
                return flight

        index = intent_parser.ordinal_index(text)
        results = self.context.last_search_results
        if index is not None and results and -len(results) <= index < len(results):
            return self.store.get_flight(results[index])

        if intent_parser.is_demonstrative(text) and self.context.selected_flight:
            return self.store.get_flight(self.context.selected_flight)
        return None

    def _track_mentions(self, text: str) -> None:
        for reference in intent_parser.booking_references(text):
            booking = self.store.get_booking(reference)
            if booking:
                self.context.mentioned_bookings[reference] = booking.model_copy(deep=True)

    def _remember_flight(self, flight: Flight) -> None:
        self.context.mentioned_flights[flight.flight_number] = flight

    @staticmethod
    def _asked_for_cancel_reference(message: Optional[ChatMessage]) -> bool:
        if message is None:
            return False
        content = message.content.lower()
        asks_reference = any(p in content for p in ["booking reference", "confirmation number", "pnr"])
        return asks_reference and "cancel" in content

    # ============================================
    # Progressive gathering
    # ============================================

    def _starts_trip_request(self, text: str) -> bool:
        if not intent_parser.has_trip_intent(text) or NON_TRIP_PATTERN.search(text):
            return False
        if intent_parser.flight_numbers(text) or intent_parser.booking_references(text):
            return False
        fields = intent_parser.extract_fields(text)
        return fields.origin is not None or fields.destination is not None

    def _gather(self, text: str) -> TurnResult:
        queue = self.context.question_queue
        expecting = queue[0] if queue else None

        if expecting and ABANDON_PATTERN.search(text):
            self.context.question_queue = []
            self.context.gathered = TripFields()
            return self._reply("No problem, I've cleared that request. What else can I help you with?")

        if not queue:
            self.context.gathered = TripFields()
        gathered = self.context.gathered

        extracted = intent_parser.extract_fields(text, expecting, self.store.today())
        newly: Dict[str, Any] = {}
        for name, value in extracted.filled().items():
            if getattr(gathered, name) is None or name == expecting:
                setattr(gathered, name, value)
                newly[name] = value

        if not queue:
            queue = [name for name in GATHER_ORDER if getattr(gathered, name) is None]
        else:
            queue = [name for name in queue if getattr(gathered, name) is None]
        if gathered.passengers and gathered.passengers > 1:
            for name in PARTY_QUESTIONS:
                if getattr(gathered, name) is None and name not in queue:
                    queue.append(name)
        self.context.question_queue = queue

        ack = self._acknowledge(newly)
        if queue:
            prefix = ack if newly else ("Sorry, I didn't catch that. " if expecting else "")
            return self._reply(f"{prefix}{QUESTIONS[queue[0]]}".strip())

        params = {"from": gathered.origin, "to": gathered.destination}
        if gathered.date:
            params["date"] = gathered.date
        logger.info(f"Gathering complete, searching {params}")
        return self._run_action(ActionKind.SEARCH_FLIGHTS, params)

    @staticmethod
    def _acknowledge(newly: Dict[str, Any]) -> str:
        parts = []
        if "origin" in newly:
            parts.append(f"departing from {newly['origin']}")
        if "destination" in newly:
            parts.append(f"flying to {newly['destination']}")
        if "date" in newly:
            parts.append(f"traveling {newly['date']}")
        if "passengers" in newly:
            count = newly["passengers"]
            parts.append(f"{count} passenger{'s' if count != 1 else ''}")
        if newly.get("special_assistance") not in (None, "none"):
            parts.append(f"{newly['special_assistance']} noted")
        if newly.get("meal_preference") not in (None, "none"):
            parts.append(f"{newly['meal_preference']} meals noted")
        if not parts:
            return "Got it. " if newly else ""
        return f"Got it: {', '.join(parts)}. "

    # ============================================
    # Language model path
    # ============================================

    async def _delegate(self, text: str, history: List[Dict[str, str]]) -> TurnResult:
        if self.chat_client is None:
            return self._reply(FALLBACK_REPLY)

        policy_context = ""
        if self._is_policy_question(text):
            policy_context = await self.policy_client.search(text)

        context_data = self._context_data(text, policy_context)
        try:
            reply: ChatReply = await self.chat_client.complete(text, context_data, history)
        except Exception as e:
            logger.error(f"Language model call failed: {e}")
            message = self.conversation.add_bot(APOLOGY, timestamp=self.store.now())
            return TurnResult(messages=[message], handoff=self.build_handoff(text))

        if reply.action:
            params = self._fill_from_context(reply.action.kind, dict(reply.action.params))
            result = self._run_action(reply.action.kind, params, lead=reply.content)
        else:
            result = self._reply(reply.content or FALLBACK_REPLY)

        if self._needs_handoff(reply.content):
            logger.info("Reply requested human handoff")
            result.handoff = self.build_handoff(text)
        return result

    @staticmethod
    def _is_policy_question(text: str) -> bool:
        text_lower = text.lower()
        return any(kw in text_lower for kw in POLICY_QUESTION_KEYWORDS)

    @staticmethod
    def _needs_handoff(content: str) -> bool:
        content_lower = (content or "").lower()
        return any(phrase in content_lower for phrase in HANDOFF_PHRASES)

    def _fill_from_context(self, kind: ActionKind, params: Dict[str, str]) -> Dict[str, str]:
        """Supply a missing flight or booking reference from what the conversation points at"""
        selected = self.context.selected_flight
        if kind == ActionKind.BOOK_FLIGHT and not params.get("flightNumber") and selected:
            params["flightNumber"] = selected
        if kind == ActionKind.CHANGE_FLIGHT and not params.get("newFlightNumber") and selected:
            params["newFlightNumber"] = selected
        if kind not in (ActionKind.SEARCH_FLIGHTS, ActionKind.BOOK_FLIGHT) and not params.get("bookingReference"):
            if len(self.context.mentioned_bookings) >= 1:
                params["bookingReference"] = list(self.context.mentioned_bookings)[-1]
        return params

    def _context_data(self, text: str, policy_context: str) -> Dict[str, Any]:
        profile = self.store.active_profile
        data: Dict[str, Any] = {
            "currentDate": self.store.today().isoformat(),
            "userProfile": {
                "customerId": profile.customer_id,
                "name": profile.name,
                "loyaltyTier": profile.loyalty_tier.value,
                "loyaltyPoints": profile.loyalty_points,
                "preferences": profile.preferences.model_dump(),
                "upcomingFlights": [self._booking_brief(b) for b in profile.upcoming_flights],
                "recentActions": [a.model_dump(mode="json") for a in profile.activity_log[-3:]],
            },
            "conversation": {
                "lastSearchResults": self.context.last_search_results,
                "selectedFlight": self.context.selected_flight,
                "gathered": self.context.gathered.model_dump(exclude_none=True),
            },
        }
        text_lower = text.lower()
        if any(kw in text_lower for kw in FLIGHT_CONTEXT_KEYWORDS):
            data["flights"] = [f.summary() for f in self.store.list_flights()]
        if policy_context:
            data["policyContext"] = policy_context
        return data

    @staticmethod
    def _booking_brief(booking) -> Dict[str, Any]:
        return {
            "bookingReference": booking.booking_reference,
            "flightNumber": booking.flight_number,
            "scheduledTime": booking.scheduled_time.isoformat(),
            "class": booking.cabin_class.value,
            "seat": booking.seat.seat_number,
            "status": booking.status.value,
            "checkedIn": booking.checked_in,
        }

    def build_handoff(self, problem: str) -> AgentHandoff:
        profile = self.store.active_profile
        booking_details = None
        if self.context.mentioned_bookings:
            booking = list(self.context.mentioned_bookings.values())[-1]
            booking_details = self._booking_brief(booking)
        elif profile.upcoming_flights:
            booking_details = self._booking_brief(profile.upcoming_flights[0])

        return AgentHandoff(
            customer_id=profile.customer_id,
            booking_details=booking_details,
            problem_summary=problem,
            attempted_solutions=self.conversation.bot_contents()[-5:],
            next_steps=list(HANDOFF_NEXT_STEPS),
        )

    # ============================================
    # Action results
    # ============================================

    def _run_action(self, kind: ActionKind, params: Dict[str, str], lead: Optional[str] = None) -> TurnResult:
        """prepare() an action and turn the outcome into a bot message"""
        kind = ActionKind(kind)
        prepared = self.executor.prepare(kind, params)

        if kind == ActionKind.SEARCH_FLIGHTS:
            return self._search_reply(prepared)

        if not prepared.success:
            return self._reply(prepared.message, action_result=prepared)

        if prepared.requires_confirmation:
            content = lead or prepared.message
            message = self.conversation.add_bot(content, timestamp=self.store.now(), action_result=prepared)
            self.protocol.open(message, kind, params, prepared)
            return TurnResult(messages=[message])

        return self._reply(lead or prepared.message, action_result=prepared)

    def _search_reply(self, result: ActionResult) -> TurnResult:
        """Search replies always describe the results actually returned"""
        if not result.success:
            return self._reply(result.message, action_result=result)

        flights = result.data["flights"]
        self.context.last_search_results = [f["flight_number"] for f in flights]
        for number in self.context.last_search_results:
            flight = self.store.get_flight(number)
            if flight:
                self._remember_flight(flight)

        origin, destination = result.data["from"], result.data["to"]
        if flights:
            content = (
                f"I've found {len(flights)} flight{'s' if len(flights) != 1 else ''} from {origin} to {destination}. "
                "Please review the options and let me know which flight you'd like by flight number."
            )
        else:
            content = (
                f"I couldn't find any flights from {origin} to {destination}. "
                "Would you like to try a different date or route?"
            )
        return self._reply(content, action_result=result)

    def _reply(self, content: str, action_result: Optional[ActionResult] = None) -> TurnResult:
        message = self.conversation.add_bot(content, timestamp=self.store.now(), action_result=action_result)
        return TurnResult(messages=[message])
