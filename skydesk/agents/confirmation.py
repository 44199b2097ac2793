# agents/confirmation.py
"""
Confirmation Protocol

Transactional actions (book, cancel, change flight, change seat) wait on a
pending confirmation attached to the bot message that proposed them:

    NONE -> PENDING(kind) -> RESOLVED(confirmed | declined)

The pending record is cleared from its message before anything else happens,
so each transaction resolves exactly once. Confirming makes one executor call
with the params captured when the confirmation was opened; declining never
touches inventory.

A pending CHANGE_SEAT can walk a sub-flow first, one step at a time:
verify_loyalty -> select_seat -> offer_upgrade -> ready
Confirming at any step applies the current selection. Seats are picked in
the requested or booked cabin; anything above the booked cabin is priced as
an upgrade for the customer's loyalty tier.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from loguru import logger

from ..data.flights import seat_position
from ..data.policies import ECREDIT_NOTE, TWENTY_FOUR_HOUR_RULE, UPGRADE_PRICING
from ..interfaces.conversation_store import ConversationStore
from ..interfaces.inventory_store import InventoryStore
from ..schemas.airline_schemas import (
    CABIN_LABELS,
    CABIN_ORDER,
    LOYALTY_RANK,
    ActionKind,
    ActionResult,
    Booking,
    CabinClass,
    ChatMessage,
    ConfirmationView,
    FareType,
    Flight,
    LoyaltyTier,
    PendingBookFlight,
    PendingCancelBooking,
    PendingChangeFlight,
    PendingChangeSeat,
    PendingConfirmation,
    RefundEligibility,
    SeatChangeStage,
    SeatOption,
    SeatStatus,
    UpgradeOption,
    normalize_cabin_class,
)
from .action_executor import ActionExecutor, find_seat


class UnknownTransaction(LookupError):
    """No open pending confirmation carries this transaction id"""


class InvalidSelection(ValueError):
    """A seat-change sub-flow step was given a seat or cabin it cannot use"""


DECLINE_ACTIVITY = {
    ActionKind.BOOK_FLIGHT: "Declined Booking",
    ActionKind.CANCEL_BOOKING: "Kept Booking",
    ActionKind.CHANGE_FLIGHT: "Declined Flight Change",
    ActionKind.CHANGE_SEAT: "Declined Seat Change",
}


# ============================================
# Derived facts
# ============================================

def refund_eligibility(booking: Booking, now: datetime) -> RefundEligibility:
    """
    Refundable fares always qualify. Any fare qualifies under the 24-hour rule
    when booked at most 24 hours ago for a departure more than 7 days away.
    """
    hours_since = (now - booking.created_at).total_seconds() / 3600
    days_until = (booking.scheduled_time - now).total_seconds() / 86400
    qualifies = hours_since <= 24 and days_until > 7
    refundable = booking.fare_type == FareType.REFUNDABLE

    if refundable:
        note = "This fare is refundable. You'll receive a full refund to your original form of payment."
    elif qualifies:
        note = f"This booking qualifies for our 24-hour policy: {TWENTY_FOUR_HOUR_RULE}"
    else:
        note = ECREDIT_NOTE

    return RefundEligibility(
        eligible=refundable or qualifies,
        qualifies_for_24_hour_refund=qualifies,
        fare_type=booking.fare_type,
        hours_since_booking=round(hours_since, 2),
        days_until_departure=round(days_until, 2),
        note=note,
    )


def upgrade_price(tier: LoyaltyTier, cabin: CabinClass) -> UpgradeOption:
    threshold, price = UPGRADE_PRICING[cabin]
    complimentary = threshold is not None and LOYALTY_RANK[tier] >= LOYALTY_RANK[threshold]
    return UpgradeOption(
        cabin_class=cabin,
        label=CABIN_LABELS[cabin],
        price=0.0 if complimentary else price,
        complimentary=complimentary,
    )


class ConfirmationProtocol:
    """Opens, renders and resolves pending confirmations for one session"""

    def __init__(self, store: InventoryStore, executor: ActionExecutor, conversation: ConversationStore):
        self.store = store
        self.executor = executor
        self.conversation = conversation

    # ============================================
    # Open
    # ============================================

    def open(
        self,
        message: ChatMessage,
        kind: Union[ActionKind, str],
        params: Dict[str, str],
        prepared: ActionResult,
    ) -> PendingConfirmation:
        """Attach a typed pending record, built from a prepare() result, to a bot message"""
        kind = ActionKind(kind)
        if not prepared.success or not prepared.requires_confirmation:
            raise ValueError(f"{kind.value} result does not require confirmation")

        data = prepared.data or {}
        pending: PendingConfirmation
        if kind == ActionKind.BOOK_FLIGHT:
            seat_class = normalize_cabin_class(data.get("seatClass") or params.get("seatClass"))
            if not data.get("flight") or seat_class is None:
                raise ValueError("BOOK_FLIGHT confirmation needs a flight snapshot and a seat class")
            flight = Flight.model_validate(data["flight"])
            pending = PendingBookFlight(
                flight_number=flight.flight_number,
                seat_class=seat_class,
                flight=flight,
            )
        elif kind == ActionKind.CANCEL_BOOKING:
            booking = Booking.model_validate(data["booking"])
            pending = PendingCancelBooking(
                booking_reference=booking.booking_reference,
                booking=booking,
                flight=Flight.model_validate(data["flight"]) if data.get("flight") else None,
            )
        elif kind == ActionKind.CHANGE_FLIGHT:
            booking = Booking.model_validate(data["booking"])
            new_flight = Flight.model_validate(data["newFlight"])
            pending = PendingChangeFlight(
                booking_reference=booking.booking_reference,
                new_flight_number=new_flight.flight_number,
                booking=booking,
                new_flight=new_flight,
            )
        elif kind == ActionKind.CHANGE_SEAT:
            booking = Booking.model_validate(data["booking"])
            pending = PendingChangeSeat(
                booking_reference=booking.booking_reference,
                booking=booking,
                seat_preference=data.get("seatPreference"),
                target_class=normalize_cabin_class(data.get("targetClass")),
                selected_seat=data.get("seatNumber"),
                selected_class=normalize_cabin_class(data.get("cabinClass")),
            )
            pending.upgrade = self._upgrade_for(pending, pending.selected_class or pending.target_class)
        else:
            raise ValueError(f"{kind.value} does not use confirmations")

        message.pending = pending
        logger.info(f"Opened {kind.value} confirmation {pending.transaction_id}")
        return pending

    # ============================================
    # Lookup & render
    # ============================================

    def get(self, transaction_id: str) -> Optional[PendingConfirmation]:
        message = self.conversation.find_by_transaction(transaction_id)
        return message.pending if message else None

    def _require(self, transaction_id: str) -> PendingConfirmation:
        pending = self.get(transaction_id)
        if pending is None:
            raise UnknownTransaction(transaction_id)
        return pending

    def refund_eligibility(self, transaction_id: str) -> RefundEligibility:
        pending = self._require(transaction_id)
        if not isinstance(pending, PendingCancelBooking):
            raise InvalidSelection("Refund eligibility only applies to cancellations")
        booking = self.store.get_booking(pending.booking_reference) or pending.booking
        return refund_eligibility(booking, self.store.now())

    def render(self, transaction_id: str) -> ConfirmationView:
        """Display view of a pending confirmation. Refund facts are computed fresh on every call."""
        pending = self._require(transaction_id)
        kind = ActionKind(pending.kind)

        if isinstance(pending, PendingBookFlight):
            flight = pending.flight
            return ConfirmationView(
                transaction_id=pending.transaction_id,
                kind=kind,
                title=f"Confirm booking on {flight.flight_number}",
                details={
                    "flight": flight.summary(),
                    "seatClass": pending.seat_class.value,
                    "cabin": CABIN_LABELS[pending.seat_class],
                    "price": flight.lowest_price(pending.seat_class),
                    "passenger": self.store.active_profile.name,
                },
            )

        if isinstance(pending, PendingCancelBooking):
            booking = self.store.get_booking(pending.booking_reference) or pending.booking
            return ConfirmationView(
                transaction_id=pending.transaction_id,
                kind=kind,
                title=f"Cancel booking {booking.booking_reference}",
                details={
                    "bookingReference": booking.booking_reference,
                    "flightNumber": booking.flight_number,
                    "scheduledTime": booking.scheduled_time.isoformat(),
                    "seat": booking.seat.seat_number,
                    "cabin": CABIN_LABELS[booking.cabin_class],
                    "route": (
                        f"{pending.flight.departure} to {pending.flight.arrival}" if pending.flight else None
                    ),
                },
                refund=refund_eligibility(booking, self.store.now()),
            )

        if isinstance(pending, PendingChangeFlight):
            return ConfirmationView(
                transaction_id=pending.transaction_id,
                kind=kind,
                title=f"Change booking {pending.booking_reference} to {pending.new_flight_number}",
                details={
                    "bookingReference": pending.booking_reference,
                    "currentFlight": pending.booking.flight_number,
                    "currentTime": pending.booking.scheduled_time.isoformat(),
                    "newFlight": pending.new_flight.summary(),
                    "cabin": CABIN_LABELS[pending.booking.cabin_class],
                },
            )

        return ConfirmationView(
            transaction_id=pending.transaction_id,
            kind=kind,
            title=f"Change seat for booking {pending.booking_reference}",
            details={
                "bookingReference": pending.booking_reference,
                "stage": pending.stage.value,
                "currentSeat": pending.booking.seat.seat_number,
                "currentCabin": CABIN_LABELS[pending.booking.cabin_class],
                "selectedSeat": pending.selected_seat,
                "selectedCabin": CABIN_LABELS[pending.selected_class] if pending.selected_class else None,
                "loyaltyTier": pending.loyalty_tier.value if pending.loyalty_tier else None,
                "upgrade": pending.upgrade.model_dump() if pending.upgrade else None,
            },
        )

    # ============================================
    # Resolve
    # ============================================

    def confirm(self, transaction_id: str) -> Optional[ChatMessage]:
        """
        Resolve as confirmed. Returns the outcome message, or None when the
        transaction is unknown or already resolved.
        """
        message = self.conversation.find_by_transaction(transaction_id)
        if message is None:
            logger.warning(f"confirm: no open confirmation {transaction_id}")
            return None

        pending = message.pending
        message.pending = None

        kind = ActionKind(pending.kind)
        result = self.executor.execute(kind, pending.action_params())
        logger.info(f"Confirmed {kind.value} {transaction_id}: success={result.success}")

        if result.success:
            content = result.message
            if isinstance(pending, PendingChangeSeat) and pending.upgrade and not pending.upgrade.complimentary:
                content += f". An upgrade charge of ${pending.upgrade.price:.0f} applies."
        else:
            content = f"I wasn't able to complete that request. {result.message}"

        return self.conversation.add_bot(content, timestamp=self.store.now(), action_result=result)

    def decline(self, transaction_id: str) -> Optional[ChatMessage]:
        """Resolve as declined. Never calls the executor."""
        message = self.conversation.find_by_transaction(transaction_id)
        if message is None:
            logger.warning(f"decline: no open confirmation {transaction_id}")
            return None

        pending = message.pending
        message.pending = None

        kind = ActionKind(pending.kind)
        details = {"transactionId": transaction_id, **pending.action_params()}
        self.store.log_activity(DECLINE_ACTIVITY[kind], details)
        logger.info(f"Declined {kind.value} {transaction_id}")

        return self.conversation.add_bot(self._decline_text(pending), timestamp=self.store.now())

    @staticmethod
    def _decline_text(pending: PendingConfirmation) -> str:
        if isinstance(pending, PendingBookFlight):
            return (
                f"No problem, I haven't booked flight {pending.flight_number}. "
                "Let me know if you'd like to look at other options."
            )
        if isinstance(pending, PendingCancelBooking):
            return f"Okay, booking {pending.booking_reference} has not been cancelled and remains active."
        if isinstance(pending, PendingChangeFlight):
            return (
                f"Okay, booking {pending.booking_reference} stays on flight {pending.booking.flight_number}."
            )
        return f"Okay, your seat on booking {pending.booking_reference} is unchanged."

    # ============================================
    # CHANGE_SEAT sub-flow
    # ============================================

    def _seat_pending(self, transaction_id: str, *stages: SeatChangeStage) -> PendingChangeSeat:
        pending = self._require(transaction_id)
        if not isinstance(pending, PendingChangeSeat):
            raise InvalidSelection(f"{pending.kind} confirmations have no seat selection")
        if stages and pending.stage not in stages:
            raise InvalidSelection(f"Seat change {transaction_id} is at the {pending.stage.value} step")
        return pending

    def _flight_for(self, pending: PendingChangeSeat) -> Flight:
        flight = self.store.get_flight(pending.booking.flight_number)
        if flight is None:
            raise InvalidSelection(f"Flight {pending.booking.flight_number} is no longer available")
        return flight

    @staticmethod
    def _seat_cabin(pending: PendingChangeSeat, cabin_class: Optional[str]) -> CabinClass:
        """Seat selection stays in the requested or booked cabin; higher cabins go through choose_upgrade"""
        base = pending.target_class or pending.booking.cabin_class
        if not cabin_class:
            return base
        cabin = normalize_cabin_class(cabin_class)
        if cabin is None:
            raise InvalidSelection(f"Unknown cabin '{cabin_class}'")
        if cabin != base:
            raise InvalidSelection(f"{CABIN_LABELS[cabin]} seats are only offered as an upgrade")
        return cabin

    def _upgrade_for(self, pending: PendingChangeSeat, cabin: Optional[CabinClass]) -> Optional[UpgradeOption]:
        """Priced upgrade when `cabin` sits above the booked cabin"""
        booked = pending.booking.cabin_class
        if cabin is None or CABIN_ORDER.index(cabin) <= CABIN_ORDER.index(booked):
            return None
        tier = pending.loyalty_tier or self.store.active_profile.loyalty_tier
        return upgrade_price(tier, cabin)

    def verify_loyalty(self, transaction_id: str) -> PendingChangeSeat:
        """Record the customer's tier and whether any complimentary upgrade applies"""
        pending = self._seat_pending(transaction_id, SeatChangeStage.VERIFY_LOYALTY)
        tier = self.store.active_profile.loyalty_tier
        pending.loyalty_tier = tier
        pending.upgrade_eligible = any(upgrade_price(tier, c).complimentary for c in UPGRADE_PRICING)
        pending.upgrade = self._upgrade_for(pending, pending.selected_class)
        pending.stage = SeatChangeStage.SELECT_SEAT
        return pending

    def seat_options(self, transaction_id: str, cabin_class: Optional[str] = None) -> List[SeatOption]:
        pending = self._seat_pending(transaction_id)
        flight = self._flight_for(pending)
        cabin = self._seat_cabin(pending, cabin_class)
        return [
            SeatOption(
                seat_number=seat.seat_number,
                cabin_class=cabin,
                seat_type=seat_position(seat.seat_number),
                price=seat.price,
                features=seat.features,
            )
            for seat in flight.seat_pool(cabin)
            if seat.status == SeatStatus.AVAILABLE
        ]

    def select_seat(self, transaction_id: str, seat_number: str, cabin_class: Optional[str] = None) -> PendingChangeSeat:
        pending = self._seat_pending(
            transaction_id, SeatChangeStage.SELECT_SEAT, SeatChangeStage.OFFER_UPGRADE
        )
        flight = self._flight_for(pending)
        cabin = self._seat_cabin(pending, cabin_class)

        wanted = seat_number.strip().upper()
        seat = next(
            (s for s in flight.seat_pool(cabin)
             if s.seat_number == wanted and s.status == SeatStatus.AVAILABLE),
            None,
        )
        if seat is None:
            raise InvalidSelection(f"Seat {wanted} is not available in {CABIN_LABELS[cabin]}")

        pending.selected_seat = seat.seat_number
        pending.selected_class = cabin
        pending.upgrade = self._upgrade_for(pending, cabin)
        has_upgrades = bool(self._upgrade_cabins(pending, flight))
        pending.stage = SeatChangeStage.OFFER_UPGRADE if has_upgrades else SeatChangeStage.READY
        return pending

    def _upgrade_cabins(self, pending: PendingChangeSeat, flight: Flight) -> List[CabinClass]:
        base = pending.selected_class or pending.target_class or pending.booking.cabin_class
        higher = CABIN_ORDER[CABIN_ORDER.index(base) + 1:]
        return [c for c in higher if c in UPGRADE_PRICING and flight.available_count(c) > 0]

    def upgrade_options(self, transaction_id: str) -> List[UpgradeOption]:
        pending = self._seat_pending(transaction_id)
        flight = self._flight_for(pending)
        tier = pending.loyalty_tier or self.store.active_profile.loyalty_tier
        return [upgrade_price(tier, cabin) for cabin in self._upgrade_cabins(pending, flight)]

    def choose_upgrade(self, transaction_id: str, cabin_class: Optional[str] = None) -> PendingChangeSeat:
        """
        Accept an upgrade into `cabin_class` once a seat is selected, or skip it
        with None. An accepted upgrade moves the selection to the first free
        seat of the same type (window/middle/aisle) in the new cabin.
        """
        if cabin_class is None:
            pending = self._seat_pending(transaction_id, SeatChangeStage.OFFER_UPGRADE, SeatChangeStage.READY)
            pending.upgrade = self._upgrade_for(pending, pending.selected_class)
            pending.stage = SeatChangeStage.READY
            return pending

        pending = self._seat_pending(transaction_id, SeatChangeStage.OFFER_UPGRADE)
        flight = self._flight_for(pending)
        cabin = normalize_cabin_class(cabin_class)
        if cabin is None or cabin not in self._upgrade_cabins(pending, flight):
            raise InvalidSelection(f"No upgrade available to {cabin_class}")

        position = seat_position(pending.selected_seat) if pending.selected_seat else None
        seat = find_seat(flight, cabin, position) or find_seat(flight, cabin)
        if seat is None:
            raise InvalidSelection(f"No seats available in {CABIN_LABELS[cabin]}")

        pending.upgrade = self._upgrade_for(pending, cabin)
        pending.selected_seat = seat.seat_number
        pending.selected_class = cabin
        pending.stage = SeatChangeStage.READY
        return pending
