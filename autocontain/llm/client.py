"""
LLM client for the chat collaborator (OpenAI SDK over an OpenAI-compatible endpoint).

- **Thin**: protocol adaptation and error logging only
- **Shared connection pool**: reuses the caller's `httpx.AsyncClient`
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: str
    content: str


def _normalize_base_url(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if normalized.endswith("/v1"):
        return normalized
    return f"{normalized}/v1"


class OpenAICompatLLMClient:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        http_client: httpx.AsyncClient,
        model: str,
        temperature: float = 0.5,
        max_tokens: int = 1000,
    ) -> None:
        """
        - api_key: LLM API key
        - base_url: OpenAI-compatible base URL (`/v1` is appended when missing)
        - http_client: shared `httpx.AsyncClient`
        - model: model name, e.g. `gpt-4o-mini`
        """
        self._base_url = _normalize_base_url(base_url=base_url)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = AsyncOpenAI(api_key=api_key, base_url=self._base_url, http_client=http_client)

    async def complete_text(self, messages: Sequence[ChatMessage]) -> str:
        """Run one chat completion and return its text content. Errors propagate to the caller."""
        try:
            logger.info(f"LLM request: model={self._model}, messages={len(messages)} msg(s)")
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[m.model_dump() for m in messages],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except OpenAIError as exc:
            logger.error(f"LLM API error: {exc}")
            raise
        except httpx.HTTPError as exc:
            logger.error(f"LLM HTTP error: {exc}")
            raise

        content = response.choices[0].message.content
        if content is None:
            logger.error("LLM returned None content")
            raise RuntimeError("LLM returned None content")

        logger.info(f"LLM response: {len(content)} chars")
        return str(content)
