"""Matchmaking module."""

from .matchmaker import IMatchmaker, Matchmaker, hold_locks

__all__ = ["IMatchmaker", "Matchmaker", "hold_locks"]
