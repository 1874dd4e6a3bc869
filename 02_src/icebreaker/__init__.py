"""Icebreaker: AI-assisted introductions and one-on-one pairing."""

from .app import Application, IApplication
from .delivery import IOutboundRouter, OutboundRouter
from .event_bus import EventBus, IEventBus
from .llm import (
    IIntroductionExtractor,
    ILLMProvider,
    IntroductionExtractor,
    IResponseGenerator,
    LLMProvider,
    ResponseGenerator,
)
from .matchmaking import IMatchmaker, Matchmaker
from .models import (
    BusMessage,
    ExtractionFailure,
    ExtractionSuccess,
    IntroductionData,
    Message,
    Origin,
    RegistryEntry,
    SessionRecord,
    SessionState,
    Topic,
    TraceEvent,
)
from .registry import IUnpairedRegistry, UnpairedRegistry
from .sessions import SessionManager, UserSession
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Message",
    "Origin",
    "IntroductionData",
    "ExtractionSuccess",
    "ExtractionFailure",
    "SessionState",
    "SessionRecord",
    "RegistryEntry",
    "BusMessage",
    "Topic",
    "TraceEvent",
    # Matchmaking core
    "IUnpairedRegistry",
    "UnpairedRegistry",
    "UserSession",
    "SessionManager",
    "IMatchmaker",
    "Matchmaker",
    # Components
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "ITracker",
    "Tracker",
    "ILLMProvider",
    "LLMProvider",
    "IIntroductionExtractor",
    "IntroductionExtractor",
    "IResponseGenerator",
    "ResponseGenerator",
    "IOutboundRouter",
    "OutboundRouter",
]
