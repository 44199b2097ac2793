# main.py
"""
SkyDesk Assistant Service - FastAPI Application
Chat Backend:
- If CHAT_ENDPOINT_URL is set: POST turns to that endpoint
- Else if OPENAI_API_KEY is set: use OpenAI in-process
- Otherwise: free-text turns get a fixed fallback reply
"""

import random
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .agents.action_executor import ActionExecutor
from .agents.confirmation import ConfirmationProtocol
from .agents.orchestrator import ConversationOrchestrator
from .api.chat import router as assistant_router
from .config import settings
from .interfaces.conversation_store import ConversationStore
from .interfaces.inventory_store import InventoryStore
from .interfaces.snapshot_sink import SnapshotSink, build_snapshot_sink
from .llm.chat_client import build_chat_client
from .llm.policy_client import PolicySearchClient

logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL)


# ============================================
# Session wiring
# ============================================

@dataclass
class AssistantSession:
    store: InventoryStore
    executor: ActionExecutor
    conversation: ConversationStore
    protocol: ConfirmationProtocol
    orchestrator: ConversationOrchestrator


def build_session(
    chat_client: Optional[Any] = None,
    policy_client: Optional[PolicySearchClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
    rng: Optional[random.Random] = None,
    sink: Optional[SnapshotSink] = None,
) -> AssistantSession:
    """Compose one assistant session; collaborators default to what settings configure"""
    store = InventoryStore(
        clock=clock,
        rng=rng,
        sink=sink if sink is not None else build_snapshot_sink(settings.REDIS_URL),
    )
    executor = ActionExecutor(store, result_limit=settings.SEARCH_RESULT_LIMIT)
    conversation = ConversationStore()
    protocol = ConfirmationProtocol(store, executor, conversation)
    orchestrator = ConversationOrchestrator(
        store,
        executor,
        protocol,
        conversation,
        chat_client=chat_client,
        policy_client=policy_client or PolicySearchClient(
            settings.POLICY_SEARCH_URL or None, timeout=settings.http_timeout
        ),
        history_limit=settings.CHAT_HISTORY_LIMIT,
    )
    orchestrator.reset_conversation()
    return AssistantSession(store, executor, conversation, protocol, orchestrator)


# ============================================
# Application Lifespan
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("=" * 50)
    logger.info("Starting SkyDesk Assistant Service")
    logger.info("=" * 50)
    logger.info(f"Environment: {settings.API_ENV}")

    if getattr(app.state, "session", None) is None:
        app.state.session = build_session(chat_client=build_chat_client())
    session = app.state.session
    logger.info(f"Flights loaded: {len(session.store.list_flights())}")
    logger.info(f"Active customer: {session.store.active_profile.customer_id}")
    logger.info(f"Snapshot sink: {'redis' if session.store.sink.enabled else 'disabled'}")

    yield

    logger.info("SkyDesk Assistant Service shutdown complete")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="SkyDesk Assistant Service",
    description="Airline customer-service assistant: flight search, bookings, changes and policy answers.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assistant_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "SkyDesk Assistant Service",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": [
            "/api/assistant/health",
            "/api/assistant/chat",
            "/api/assistant/state",
            "/api/assistant/confirmations/{transaction_id}",
        ],
    }


# ============================================
# Main
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "skydesk.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_ENV == "development",
    )
