"""Delivery module."""

from .router import IOutboundRouter, OutboundRouter

__all__ = ["IOutboundRouter", "OutboundRouter"]
