# interfaces/conversation_store.py
"""
Conversation Store - chat transcript for the current session
Pending confirmations live on the bot message that opened them.
"""

from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger

from ..schemas.airline_schemas import ActionResult, ChatMessage, PendingConfirmation


class ConversationStore:
    """In-memory transcript, one session at a time"""

    def __init__(self):
        self.messages: List[ChatMessage] = []

    def append(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message)
        return message

    def add_user(self, content: str, timestamp: Optional[datetime] = None) -> ChatMessage:
        return self.append(ChatMessage(role="user", content=content, timestamp=timestamp or datetime.now()))

    def add_bot(
        self,
        content: str,
        timestamp: Optional[datetime] = None,
        action_result: Optional[ActionResult] = None,
        pending: Optional[PendingConfirmation] = None,
    ) -> ChatMessage:
        return self.append(ChatMessage(
            role="bot",
            content=content,
            timestamp=timestamp or datetime.now(),
            action_result=action_result,
            pending=pending,
        ))

    def get(self, message_id: str) -> Optional[ChatMessage]:
        return next((m for m in self.messages if m.id == message_id), None)

    def find_by_transaction(self, transaction_id: str) -> Optional[ChatMessage]:
        """The message still carrying this pending confirmation, if any"""
        for message in reversed(self.messages):
            if message.pending is not None and message.pending.transaction_id == transaction_id:
                return message
        return None

    def open_pending(self) -> List[ChatMessage]:
        return [m for m in self.messages if m.pending is not None]

    def last_bot_message(self) -> Optional[ChatMessage]:
        return next((m for m in reversed(self.messages) if m.role == "bot"), None)

    def history_for_model(self, limit: int = 10) -> List[Dict[str, str]]:
        """Last `limit` turns as {role, content} with bot turns labelled assistant"""
        recent = self.messages[-limit:] if limit > 0 else []
        return [
            {"role": "assistant" if m.role == "bot" else "user", "content": m.content}
            for m in recent
        ]

    def bot_contents(self) -> List[str]:
        return [m.content for m in self.messages if m.role == "bot"]

    def reset(self, greeting: Optional[str] = None, timestamp: Optional[datetime] = None) -> None:
        self.messages = []
        if greeting:
            self.add_bot(greeting, timestamp=timestamp)
        logger.info("Conversation reset")
