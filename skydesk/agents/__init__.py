# agents/__init__.py
"""
Agents Package

- ConversationOrchestrator: decides how each user turn is answered
- ActionExecutor: validates (prepare) and applies (execute) actions
- ConfirmationProtocol: pending confirmations for transactional actions
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .orchestrator import ConversationOrchestrator
    from .action_executor import ActionExecutor, find_seat
    from .confirmation import ConfirmationProtocol, UnknownTransaction, InvalidSelection, refund_eligibility

__all__ = [
    "ConversationOrchestrator",
    "ActionExecutor",
    "find_seat",
    "ConfirmationProtocol",
    "UnknownTransaction",
    "InvalidSelection",
    "refund_eligibility"
]
