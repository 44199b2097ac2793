# tests/conftest.py
"""Shared fixtures: a deterministic store and a fully wired assistant session"""

import random
from datetime import datetime

import pytest

from skydesk.agents.action_executor import ActionExecutor
from skydesk.agents.confirmation import ConfirmationProtocol
from skydesk.interfaces.conversation_store import ConversationStore
from skydesk.interfaces.inventory_store import InventoryStore
from skydesk.interfaces.snapshot_sink import SnapshotSink
from skydesk.main import build_session

NOW = datetime(2026, 10, 18, 12, 0)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def store():
    return InventoryStore(
        flight_count=20,
        default_customer_id="CUST001",
        release_seats_on_cancel=True,
        clock=fixed_clock,
        rng=random.Random(42),
        sink=SnapshotSink(),
    )


@pytest.fixture
def executor(store):
    return ActionExecutor(store, result_limit=5)


@pytest.fixture
def conversation():
    return ConversationStore()


@pytest.fixture
def protocol(store, executor, conversation):
    return ConfirmationProtocol(store, executor, conversation)


@pytest.fixture
def session():
    return build_session(
        chat_client=None,
        clock=fixed_clock,
        rng=random.Random(42),
        sink=SnapshotSink(),
    )
