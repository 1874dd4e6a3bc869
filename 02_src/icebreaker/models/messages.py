"""Chat message models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Literal


class Origin(str, Enum):
    """Who authored a message. Tags every Message in a session log."""

    USER = "user"  # typed by the session's own user
    PARTNER = "partner"  # relayed from the paired partner
    ASSISTANT = "assistant"  # generated by the introduction assistant
    SYSTEM = "system"  # notices emitted by the service

    @property
    def is_system_authored(self) -> bool:
        return self in (Origin.ASSISTANT, Origin.SYSTEM)


@dataclass
class Message:
    """A single entry of a session's conversation log."""

    origin: Origin
    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sender_id: str | None = None  # set for PARTNER messages

    @classmethod
    def from_user(cls, content: str) -> "Message":
        return cls(origin=Origin.USER, content=content)

    @classmethod
    def from_partner(cls, sender_id: str, content: str) -> "Message":
        return cls(origin=Origin.PARTNER, content=content, sender_id=sender_id)

    @classmethod
    def from_assistant(cls, content: str) -> "Message":
        return cls(origin=Origin.ASSISTANT, content=content)

    @classmethod
    def notice(cls, content: str) -> "Message":
        return cls(origin=Origin.SYSTEM, content=content)

    @property
    def is_system_authored(self) -> bool:
        return self.origin.is_system_authored

    @property
    def role(self) -> Literal["user", "assistant"]:
        """Conversation role used when the log is sent to the LLM."""
        if self.origin in (Origin.USER, Origin.PARTNER):
            return "user"
        return "assistant"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "origin": self.origin.value,
            "content": self.content,
            "sender_id": self.sender_id,
            "timestamp": self.timestamp.isoformat(),
        }
