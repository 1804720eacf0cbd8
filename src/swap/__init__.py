from .errors import (
    InvalidSwapRequest,
    PathEncodingError,
    SwapError,
    UnknownProtocol,
    UnsupportedRoute,
)
from .protocols import ProtocolDescriptor, RouterStyle

__all__ = [
    "ProtocolDescriptor",
    "RouterStyle",
    "SwapError",
    "InvalidSwapRequest",
    "PathEncodingError",
    "UnknownProtocol",
    "UnsupportedRoute",
]
