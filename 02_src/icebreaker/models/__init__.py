"""Core data models for Icebreaker."""

from .events import BusMessage, Topic, TraceEvent
from .introduction import (
    REQUIRED_FIELDS,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    IntroductionData,
)
from .messages import Message, Origin
from .session import RegistryEntry, SessionRecord, SessionState

__all__ = [
    # Messages
    "Message",
    "Origin",
    # Introduction
    "IntroductionData",
    "ExtractionResult",
    "ExtractionSuccess",
    "ExtractionFailure",
    "REQUIRED_FIELDS",
    # Sessions
    "SessionState",
    "SessionRecord",
    "RegistryEntry",
    # Events
    "BusMessage",
    "Topic",
    "TraceEvent",
]
