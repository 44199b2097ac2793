# llm/policy_client.py
"""
Policy-search collaborator
POST {query} -> {policyChunks: [{content, metadata: {category}, similarity}]}
Failures and empty results degrade to an empty context string.
"""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..data.policies import answer_policy_question

CONTEXT_HEADER = "Relevant policy information:"


def format_policy_context(chunks: List[Dict[str, Any]]) -> str:
    lines = []
    for chunk in chunks:
        content = (chunk.get("content") or "").strip()
        if not content:
            continue
        category = (chunk.get("metadata") or {}).get("category", "general")
        lines.append(f"[{category}] {content}")
    if not lines:
        return ""
    return "\n".join([CONTEXT_HEADER] + lines)


class PolicySearchClient:
    """
    Looks up policy passages for a question. Without an endpoint URL the
    built-in airline policy text is searched by keyword instead.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.transport = transport

    async def search(self, query: str) -> str:
        if not self.endpoint_url:
            chunks = [
                {"content": text, "metadata": {"category": category}, "similarity": 1.0}
                for category, text in answer_policy_question(query)
            ]
            return format_policy_context(chunks)

        kwargs: Dict[str, Any] = {"transport": self.transport}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.post(self.endpoint_url, json={"query": query})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Policy search error: {e}")
            return ""

        chunks = payload.get("policyChunks") if isinstance(payload, dict) else None
        if not chunks:
            logger.info("Policy search returned no chunks")
            return ""
        return format_policy_context(chunks)
