"""Swap pipeline exceptions."""

from __future__ import annotations

from core.swap_types import InvalidSwapRequest


class SwapError(Exception):
    """Base class for swap pipeline errors."""


class PathEncodingError(SwapError, ValueError):
    """Hop list cannot be packed into (or parsed from) a V3 path."""


class UnsupportedRoute(SwapError, ValueError):
    """Quoted route cannot be executed by the protocol's router."""


class UnknownProtocol(SwapError, KeyError):
    """No descriptor is registered under the requested protocol key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Unknown protocol: {self.key}"


__all__ = [
    "SwapError",
    "InvalidSwapRequest",
    "PathEncodingError",
    "UnknownProtocol",
    "UnsupportedRoute",
]
