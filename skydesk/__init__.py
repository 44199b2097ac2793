# skydesk/__init__.py
"""
SkyDesk Assistant Package

An airline customer-service assistant core with:
- Conversational assistant (Conversation Orchestrator)
- Mock flight inventory, bookings and customer profiles
- Confirmed actions: book, cancel, change flight, change seat
- Check-in, baggage tracking and policy answers
"""

__version__ = "1.0.0"

# Package structure:
# skydesk/
# ├── __init__.py           <- This file
# ├── main.py               <- FastAPI application entry
# ├── config.py             <- Configuration settings
# │
# ├── agents/               <- Dialogue and actions
# │   ├── orchestrator.py   <- Per-turn decision making
# │   ├── action_executor.py <- prepare/execute for every action kind
# │   └── confirmation.py   <- Pending confirmations, seat-change sub-flow
# │
# ├── api/                  <- FastAPI Routers
# │   └── chat.py           <- /api/assistant/*
# │
# ├── data/                 <- Mock reference data and generators
# │   ├── flights.py
# │   ├── customers.py
# │   └── policies.py
# │
# ├── interfaces/           <- Session state
# │   ├── inventory_store.py <- Flights, bookings, profiles
# │   ├── conversation_store.py <- Transcript
# │   └── snapshot_sink.py  <- Optional Redis snapshot
# │
# ├── llm/                  <- Language-model collaborators
# │   ├── intent_parser.py  <- Rule-based extraction and directives
# │   ├── chat_client.py
# │   ├── policy_client.py
# │   └── prompts.py
# │
# └── schemas/
#     └── airline_schemas.py
