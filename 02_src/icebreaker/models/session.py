"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .introduction import IntroductionData


class SessionState(str, Enum):
    """States of a UserSession."""

    INTRODUCTION = "introduction"
    WAITING_FOR_PARTNER = "waiting_for_partner"
    CHATTING = "chatting"


@dataclass
class SessionRecord:
    """Persistent snapshot of a UserSession."""

    user_id: str
    state: SessionState = SessionState.INTRODUCTION
    partner_id: str | None = None
    introduction: IntroductionData | None = None


@dataclass
class RegistryEntry:
    """A user waiting in the unpaired registry."""

    user_id: str
    joined_at: datetime
