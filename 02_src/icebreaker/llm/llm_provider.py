"""LLM Provider implementation using Anthropic Claude API."""

import os
from typing import AsyncIterator, Protocol

import anthropic

from ..config import DEFAULT_MODEL


class ILLMProvider(Protocol):
    """Abstraction for LLM access."""

    async def complete(
        self,
        messages: list[dict],  # [{"role": "user", "content": "..."}]
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion."""
        ...

    def stream(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        """Generate completion as a stream of text chunks."""
        ...


class LLMProvider:
    """Anthropic Claude API provider."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model or os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    def _request(
        self, messages: list[dict], system: str | None, max_tokens: int
    ) -> dict:
        request = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if system:
            request["system"] = system
        return request

    async def complete(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> str:
        """Generate completion using Claude API."""
        try:
            response = await self._client.messages.create(
                **self._request(messages, system, max_tokens)
            )
            return "".join(
                block.text for block in response.content if hasattr(block, "text")
            )
        except Exception as e:
            # Re-raise for handling by caller
            raise RuntimeError(f"LLM API error: {e}") from e

    async def stream(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> AsyncIterator[str]:
        """Stream completion text chunks using Claude API."""
        try:
            async with self._client.messages.stream(
                **self._request(messages, system, max_tokens)
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except Exception as e:
            raise RuntimeError(f"LLM API error: {e}") from e


def to_llm_messages(log) -> list[dict]:
    """Convert a session log to Claude's alternating user/assistant format.

    Consecutive messages of the same role are merged and the conversation
    must open with a user turn.
    """
    messages: list[dict] = []
    for message in log:
        if not message.content:
            continue
        if messages and messages[-1]["role"] == message.role:
            messages[-1]["content"] += "\n" + message.content
        elif messages or message.role == "user":
            messages.append({"role": message.role, "content": message.content})
    return messages
