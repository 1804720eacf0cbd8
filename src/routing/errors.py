"""Routing-service failures, split by whether a retry or fallback makes sense."""

from __future__ import annotations

from typing import Optional


class QuoteError(Exception):
    """Base class for routing API errors."""

    def __init__(self, message: str, protocol: Optional[str] = None):
        self.protocol = protocol
        super().__init__(message)


class NoRouteFound(QuoteError):
    """The service answered and has no liquidity path for the pair."""


class QuoteUnavailable(QuoteError):
    """The service did not give a usable answer (timeout, 429, 5xx, bad payload)."""
