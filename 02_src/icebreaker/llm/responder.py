"""Response generation collaborator used during the introduction step."""

from typing import AsyncIterator, Protocol

from ..models import Message
from .llm_provider import ILLMProvider, to_llm_messages

RESPONSE_PROMPT = """\
You are a chatbot interacting with a new user on a meetup website. Your only goal \
is to gather the following information from the user to complete their \
introduction and access the platform: {missing}. Sound friendly and welcoming, \
but do not forget your only goal: get the user to provide the missing \
information. They will then be forwarded to an actual user."""


class IResponseGenerator(Protocol):
    """Generates the follow-up the user sees while their introduction is incomplete."""

    def stream(
        self, log: list[Message], missing_fields: list[str]
    ) -> AsyncIterator[str]:
        """Stream a reply asking for missing_fields."""
        ...


class ResponseGenerator:
    """Claude-backed follow-up generator."""

    def __init__(self, llm_provider: ILLMProvider, max_tokens: int = 300):
        self._llm = llm_provider
        self._max_tokens = max_tokens

    async def stream(
        self, log: list[Message], missing_fields: list[str]
    ) -> AsyncIterator[str]:
        system = RESPONSE_PROMPT.format(missing=", ".join(missing_fields))
        async for chunk in self._llm.stream(
            messages=to_llm_messages(log),
            system=system,
            max_tokens=self._max_tokens,
        ):
            yield chunk
