# llm/__init__.py
"""
Language Model Components Package

- intent_parser: rule-based field extraction, references and directives
- chat_client: HTTP endpoint or OpenAI chat backends
- policy_client: policy passage lookup
- prompts: system prompt template
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .intent_parser import intent_parser, IntentParser, ExtractedFields, ParsedDirective
    from .chat_client import ChatReply, ChatServiceError, HttpChatClient, OpenAIChatClient, build_chat_client
    from .policy_client import PolicySearchClient, format_policy_context

__all__ = [
    "intent_parser",
    "IntentParser",
    "ExtractedFields",
    "ParsedDirective",
    "ChatReply",
    "ChatServiceError",
    "HttpChatClient",
    "OpenAIChatClient",
    "build_chat_client",
    "PolicySearchClient",
    "format_policy_context"
]
