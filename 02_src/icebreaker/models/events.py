"""Event bus and tracing data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    STATE_CHANGED = "state_changed"
    PAIRED = "paired"
    RELAYED = "relayed"
    OUTBOUND = "outbound"


@dataclass
class BusMessage:
    """A message exchanged through EventBus."""

    id: str
    topic: Topic
    payload: dict  # varies by topic
    source: str  # component that published
    timestamp: datetime


@dataclass
class TraceEvent:
    """A single observability event, stored by the Tracker."""

    id: str
    event_type: str  # e.g. "state_changed", "pairing_contention"
    actor: str
    data: dict
    timestamp: datetime
