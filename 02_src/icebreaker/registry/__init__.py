"""Unpaired registry module."""

from .registry import IUnpairedRegistry, UnpairedRegistry

__all__ = ["IUnpairedRegistry", "UnpairedRegistry"]
