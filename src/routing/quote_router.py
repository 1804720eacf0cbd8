"""
Quote retrieval with min-out derivation and a guarded direct-pair fallback.

``NoRouteFound`` always reaches the caller: the pair has no path and no
guess is made. ``QuoteUnavailable`` is only replaced by a synthetic direct
quote when the caller pinned ``min_amount_out`` themselves, so the output
floor is never fabricated.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from core.base_types import BPS_DENOMINATOR, Address
from core.swap_types import Hop, Quote, QuoteResolution
from swap.protocols import ProtocolDescriptor, RouterStyle

from .base import RoutingApiClient
from .dragonswap import DragonSwapClient
from .errors import QuoteUnavailable
from .sailor import SailorClient

logger = logging.getLogger(__name__)

SMALL_OUTPUT_THRESHOLD = 10_000
SMALL_OUTPUT_MIN_SLIPPAGE_BPS = 500


def min_amount_out(amount_out: int, slippage_bps: int) -> int:
    """
    Guaranteed output for ``amount_out`` at ``slippage_bps``, rounded down.

    Outputs under ``SMALL_OUTPUT_THRESHOLD`` base units get at least 5%
    tolerance; integer rounding alone moves such amounts by several percent.
    """
    if amount_out < 0:
        raise ValueError("amount_out must be non-negative")
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError("slippage_bps must be in [0, 10000]")
    effective = slippage_bps
    if amount_out < SMALL_OUTPUT_THRESHOLD:
        effective = max(slippage_bps, SMALL_OUTPUT_MIN_SLIPPAGE_BPS)
    return amount_out * (BPS_DENOMINATOR - effective) // BPS_DENOMINATOR


def fallback_quote(
    protocol: ProtocolDescriptor,
    token_in: Address,
    token_out: Address,
    amount_in: int,
) -> Quote:
    """Direct single-hop route at the protocol's default fee tier, no output estimate."""
    fee = protocol.default_fee_tier if protocol.router_style is RouterStyle.V3 else None
    return Quote(
        protocol=protocol.key,
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        amount_out=None,
        route=(Hop(token_in=token_in, token_out=token_out, fee=fee),),
        route_description=f"{token_in.checksum} -> {token_out.checksum} (direct)",
        is_fallback=True,
    )


class QuoteRouter:
    def __init__(self, protocol: ProtocolDescriptor, api: RoutingApiClient) -> None:
        self._protocol = protocol
        self._api = api

    @property
    def protocol(self) -> ProtocolDescriptor:
        return self._protocol

    @property
    def timeout_seconds(self) -> float:
        return self._api.timeout_seconds

    def get_quote(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        slippage_bps: int,
        deadline_seconds: int,
        recipient: Address,
    ) -> Quote:
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")
        return self._api.quote(
            token_in, token_out, amount_in, slippage_bps, deadline_seconds, recipient
        )

    def resolve(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        slippage_bps: int,
        deadline_seconds: int,
        recipient: Address,
        min_amount_out_override: Optional[int] = None,
    ) -> QuoteResolution:
        """Quote plus the minimum output the swap will be sent with."""
        try:
            quote = self.get_quote(
                token_in, token_out, amount_in, slippage_bps, deadline_seconds, recipient
            )
        except QuoteUnavailable as exc:
            if min_amount_out_override is None:
                raise
            logger.warning(
                "%s quote unavailable (%s); using direct route with caller minAmountOut=%s",
                self._protocol.key,
                exc,
                min_amount_out_override,
            )
            quote = fallback_quote(self._protocol, token_in, token_out, amount_in)
            return QuoteResolution(quote, min_amount_out_override, auto_calculated=False)

        if min_amount_out_override is not None:
            return QuoteResolution(quote, min_amount_out_override, auto_calculated=False)
        return QuoteResolution(
            quote,
            min_amount_out(quote.amount_out or 0, slippage_bps),
            auto_calculated=True,
        )


def build_quote_router(
    protocol: ProtocolDescriptor,
    session: Optional[requests.Session] = None,
) -> QuoteRouter:
    if protocol.api_dialect == "dragonswap":
        api: RoutingApiClient = DragonSwapClient(
            protocol.api_url, protocol.quote_timeout_seconds, session
        )
    elif protocol.api_dialect == "sailor":
        api = SailorClient(protocol.api_url, protocol.quote_timeout_seconds, session)
    else:
        raise ValueError(f"Unsupported routing API dialect: {protocol.api_dialect}")
    return QuoteRouter(protocol, api)
