"""Sessions module."""

from .session import IPeers, UserSession
from .manager import SessionManager

__all__ = ["IPeers", "SessionManager", "UserSession"]
