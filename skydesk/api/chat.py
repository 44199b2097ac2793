# api/chat.py
"""
Assistant API Endpoints
HTTP surface over one in-process assistant session:
- Chat turns and flight selection
- Pending confirmations (render, confirm, decline, seat-change sub-flow)
- Session state, customer switching and resets
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from loguru import logger
from pydantic import BaseModel, Field

from ..agents.confirmation import InvalidSelection, UnknownTransaction
from ..schemas.airline_schemas import (
    AgentHandoff,
    ChatMessage,
    ConfirmationView,
    RefundEligibility,
    SeatOption,
    TurnResult,
    UpgradeOption,
    UserProfile,
)


router = APIRouter(prefix="/api/assistant", tags=["assistant"])


# ============================================
# Request/Response Models
# ============================================

class ChatRequest(BaseModel):
    """Free-text user turn"""
    message: str = Field(..., min_length=1, max_length=2000, description="User's message")


class SelectFlightRequest(BaseModel):
    """Flight picked from the search results"""
    flight_number: str = Field(..., min_length=1, description="Flight number, e.g. DL6210")
    seat_class: Optional[str] = Field(None, description="economy, comfortPlus, first or deltaOne")


class SelectSeatRequest(BaseModel):
    seat_number: str = Field(..., min_length=1)
    cabin_class: Optional[str] = None


class ChooseUpgradeRequest(BaseModel):
    """cabin_class None skips the upgrade offer"""
    cabin_class: Optional[str] = None


class ConfirmationResponse(BaseModel):
    transaction_id: str
    resolved: bool
    message: Optional[ChatMessage] = None


class StateResponse(BaseModel):
    """Everything a client needs to redraw the session"""
    profile: UserProfile
    messages: List[ChatMessage]
    context: Dict[str, Any]
    flights: List[Dict[str, Any]]


class TurnResponse(BaseModel):
    messages: List[ChatMessage]
    handoff: Optional[AgentHandoff] = None

    @classmethod
    def from_turn(cls, turn: TurnResult) -> "TurnResponse":
        return cls(messages=turn.messages, handoff=turn.handoff)


def _session(request: Request):
    return request.app.state.session


def _pending_or_404(call, *args):
    try:
        return call(*args)
    except UnknownTransaction as e:
        raise HTTPException(status_code=404, detail=f"No open confirmation {e}")
    except InvalidSelection as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================
# Chat
# ============================================

@router.post("/chat", response_model=TurnResponse)
async def chat(body: ChatRequest, request: Request):
    """Process one user message"""
    session = _session(request)
    logger.info(f"Chat turn: {body.message[:80]}")
    turn = await session.orchestrator.handle_user_message(body.message)
    if turn.handoff:
        logger.info(f"Handoff raised for {turn.handoff.customer_id}")
    return TurnResponse.from_turn(turn)


@router.post("/select-flight", response_model=TurnResponse)
async def select_flight(body: SelectFlightRequest, request: Request):
    session = _session(request)
    turn = session.orchestrator.select_flight(body.flight_number, body.seat_class)
    return TurnResponse.from_turn(turn)


# ============================================
# Confirmations
# ============================================

@router.get("/confirmations/{transaction_id}", response_model=ConfirmationView)
async def get_confirmation(transaction_id: str, request: Request):
    """Render the confirmation dialog for an open transaction"""
    return _pending_or_404(_session(request).protocol.render, transaction_id)


@router.get("/confirmations/{transaction_id}/refund", response_model=RefundEligibility)
async def get_refund_eligibility(transaction_id: str, request: Request):
    return _pending_or_404(_session(request).protocol.refund_eligibility, transaction_id)


@router.post("/confirmations/{transaction_id}/confirm", response_model=ConfirmationResponse)
async def confirm(transaction_id: str, request: Request):
    message = _session(request).orchestrator.confirm(transaction_id)
    if message is None:
        raise HTTPException(status_code=404, detail=f"No open confirmation {transaction_id}")
    return ConfirmationResponse(transaction_id=transaction_id, resolved=True, message=message)


@router.post("/confirmations/{transaction_id}/decline", response_model=ConfirmationResponse)
async def decline(transaction_id: str, request: Request):
    message = _session(request).orchestrator.decline(transaction_id)
    if message is None:
        raise HTTPException(status_code=404, detail=f"No open confirmation {transaction_id}")
    return ConfirmationResponse(transaction_id=transaction_id, resolved=True, message=message)


# ============================================
# Seat-change sub-flow
# ============================================

@router.post("/confirmations/{transaction_id}/verify-loyalty")
async def verify_loyalty(transaction_id: str, request: Request):
    pending = _pending_or_404(_session(request).protocol.verify_loyalty, transaction_id)
    return pending.model_dump(mode="json")


@router.get("/confirmations/{transaction_id}/seats", response_model=List[SeatOption])
async def seat_options(transaction_id: str, request: Request, cabin_class: Optional[str] = None):
    return _pending_or_404(_session(request).protocol.seat_options, transaction_id, cabin_class)


@router.post("/confirmations/{transaction_id}/select-seat")
async def select_seat(transaction_id: str, body: SelectSeatRequest, request: Request):
    pending = _pending_or_404(
        _session(request).protocol.select_seat, transaction_id, body.seat_number, body.cabin_class
    )
    return pending.model_dump(mode="json")


@router.get("/confirmations/{transaction_id}/upgrades", response_model=List[UpgradeOption])
async def upgrade_options(transaction_id: str, request: Request):
    return _pending_or_404(_session(request).protocol.upgrade_options, transaction_id)


@router.post("/confirmations/{transaction_id}/choose-upgrade")
async def choose_upgrade(transaction_id: str, body: ChooseUpgradeRequest, request: Request):
    pending = _pending_or_404(_session(request).protocol.choose_upgrade, transaction_id, body.cabin_class)
    return pending.model_dump(mode="json")


# ============================================
# Session state
# ============================================

@router.get("/state", response_model=StateResponse)
async def get_state(request: Request):
    session = _session(request)
    return StateResponse(
        profile=session.store.active_profile,
        messages=session.conversation.messages,
        context=session.orchestrator.context.model_dump(mode="json"),
        flights=[f.summary() for f in session.store.list_flights()],
    )


@router.get("/profiles", response_model=List[UserProfile])
async def list_profiles(request: Request):
    return _session(request).store.list_profiles()


@router.post("/profiles/{customer_id}/activate", response_model=UserProfile)
async def activate_profile(customer_id: str, request: Request):
    profile = _session(request).orchestrator.switch_user(customer_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Unknown customer {customer_id}")
    logger.info(f"Active customer switched to {customer_id}")
    return profile


@router.post("/reset")
async def reset_conversation(request: Request):
    session = _session(request)
    session.orchestrator.reset_conversation()
    return {"status": "ok", "messages": [m.model_dump(mode="json") for m in session.conversation.messages]}


@router.post("/reset-data")
async def reset_data(request: Request):
    message = _session(request).orchestrator.reset_data()
    return {"status": "ok", "message": message.model_dump(mode="json")}


@router.get("/health")
async def health(request: Request):
    session = _session(request)
    return {
        "status": "healthy",
        "flights": len(session.store.list_flights()),
        "active_customer": session.store.active_profile.customer_id,
        "chat_backend": type(session.orchestrator.chat_client).__name__ if session.orchestrator.chat_client else None,
        "snapshot_sink": session.store.sink.enabled,
    }
