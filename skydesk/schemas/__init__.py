# schemas/__init__.py
"""
Pydantic Schemas Package

Contains the Pydantic v2 models for:
- Flights, seats, bookings and customer profiles
- Action requests/results and pending confirmations
- Transcript messages and conversation context
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .airline_schemas import (
        # Enums
        CabinClass, FlightStatus, BookingStatus, FareType, LoyaltyTier, ActionKind,
        # Inventory
        Seat, Flight, Booking, UserProfile,
        # Actions
        ActionRequest, ActionResult, PendingConfirmation,
        # Conversation
        ChatMessage, ConversationContext, AgentHandoff, TurnResult,
    )

__all__ = [
    "CabinClass", "FlightStatus", "BookingStatus", "FareType", "LoyaltyTier", "ActionKind",
    "Seat", "Flight", "Booking", "UserProfile",
    "ActionRequest", "ActionResult", "PendingConfirmation",
    "ChatMessage", "ConversationContext", "AgentHandoff", "TurnResult",
]
