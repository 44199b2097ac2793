# llm/chat_client.py
"""
Language-model collaborator
Two backends share one contract, complete(message, context_data, history) -> ChatReply:
- HttpChatClient: POST {message, contextData, history} to an external endpoint
- OpenAIChatClient: calls OpenAI in-process with the SkyDesk system prompt
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from openai import AsyncOpenAI
from pydantic import ValidationError

from ..config import settings
from ..schemas.airline_schemas import ActionRequest
from .intent_parser import intent_parser
from .prompts import build_system_prompt


class ChatServiceError(Exception):
    """The language-model collaborator failed or answered with something unusable"""


@dataclass
class ChatReply:
    content: str
    action: Optional[ActionRequest] = None


def reply_from_payload(payload: Any) -> ChatReply:
    """
    Build a ChatReply from a {content, action?} payload. A structured action
    wins; otherwise the first legacy directive in content is parsed out.
    """
    if not isinstance(payload, dict):
        raise ChatServiceError(f"Unexpected chat payload: {type(payload).__name__}")

    content = payload.get("content") or ""
    if not isinstance(content, str):
        content = str(content)

    raw_action = payload.get("action")
    if raw_action:
        try:
            return ChatReply(content=content, action=ActionRequest.model_validate(raw_action))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed structured action: {e}")

    directive = intent_parser.parse_directive(content)
    return ChatReply(content=directive.content, action=directive.action)


class HttpChatClient:
    """External chat endpoint over httpx"""

    def __init__(
        self,
        endpoint_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"transport": self.transport}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return httpx.AsyncClient(**kwargs)

    async def complete(
        self,
        message: str,
        context_data: Dict[str, Any],
        history: List[Dict[str, str]],
    ) -> ChatReply:
        body = {"message": message, "contextData": context_data, "history": history}
        try:
            async with self._client() as client:
                response = await client.post(self.endpoint_url, json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Chat endpoint error: {e}")
            raise ChatServiceError(str(e)) from e
        except ValueError as e:
            logger.error(f"Chat endpoint returned invalid JSON: {e}")
            raise ChatServiceError("Invalid JSON from chat endpoint") from e

        return reply_from_payload(payload)


class OpenAIChatClient:
    """In-process OpenAI backend honouring the same {content, action} contract"""

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: Optional[float] = None):
        kwargs: Dict[str, Any] = {"api_key": api_key}
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = AsyncOpenAI(**kwargs)
        self.model = model or settings.OPENAI_MODEL
        logger.info(f"OpenAIChatClient: using model {self.model}")

    async def complete(
        self,
        message: str,
        context_data: Dict[str, Any],
        history: List[Dict[str, str]],
    ) -> ChatReply:
        profile = context_data.get("userProfile", {})
        system_prompt = build_system_prompt(
            customer_name=profile.get("name", "a customer"),
            context_json=json.dumps(context_data, default=str),
            policy_context=context_data.get("policyContext", ""),
        )
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history)
        messages.append({"role": "user", "content": message})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=0.3,
                max_tokens=600,
            )
        except Exception as e:
            logger.error(f"OpenAI error: {e}")
            raise ChatServiceError(str(e)) from e

        text = response.choices[0].message.content or ""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("OpenAI reply was not JSON, treating it as plain content")
            payload = {"content": text}
        return reply_from_payload(payload)


def build_chat_client():
    """HTTP endpoint when configured, else OpenAI when a key is set, else None"""
    if settings.CHAT_ENDPOINT_URL:
        logger.info(f"Chat backend: HTTP endpoint {settings.CHAT_ENDPOINT_URL}")
        return HttpChatClient(settings.CHAT_ENDPOINT_URL, timeout=settings.http_timeout)
    if settings.OPENAI_API_KEY:
        return OpenAIChatClient(settings.OPENAI_API_KEY, timeout=settings.http_timeout)
    logger.warning("No chat backend configured, free-text turns get a fallback reply")
    return None
