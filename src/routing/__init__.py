from .base import RoutingApiClient
from .dragonswap import DragonSwapClient
from .errors import NoRouteFound, QuoteError, QuoteUnavailable
from .quote_router import QuoteRouter, build_quote_router, fallback_quote, min_amount_out
from .sailor import SailorClient

__all__ = [
    "RoutingApiClient",
    "DragonSwapClient",
    "SailorClient",
    "QuoteRouter",
    "build_quote_router",
    "fallback_quote",
    "min_amount_out",
    "QuoteError",
    "NoRouteFound",
    "QuoteUnavailable",
]
