"""Simulated users for exercising a running service."""

from .sim import ISim, Sim

__all__ = ["ISim", "Sim"]
