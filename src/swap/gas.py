"""
Gas limit and EIP-1559 fee planning.

Gas limit precedence: caller override, then the routing quote's estimate plus
the protocol buffer (the service estimates a slightly different call shape),
then a live ``eth_estimateGas``, then the protocol's fallback constant.

Fees: a caller gas price is the base for ``priority = base / 10`` and
``max = base * 2`` and ignores quote hints; otherwise quote-supplied hints are
used, and the current base fee fills whatever the hints leave out.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from chain.client import ChainClient
from chain.errors import ChainError
from core.swap_types import GasPlan, Quote

from .protocols import ProtocolDescriptor

logger = logging.getLogger(__name__)

ESTIMATE_BUFFER = 1.2


class GasPlanner:
    def __init__(self, client: ChainClient) -> None:
        self._client = client

    def plan(
        self,
        protocol: ProtocolDescriptor,
        quote: Optional[Quote] = None,
        gas_limit_override: Optional[int] = None,
        gas_price_override: Optional[int] = None,
        estimate: Optional[Callable[[], int]] = None,
    ) -> GasPlan:
        gas_limit, source = self._gas_limit(
            protocol, quote, gas_limit_override, estimate
        )
        max_fee, priority = self._fees(quote, gas_price_override)
        plan = GasPlan(
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority,
            gas_limit_source=source,
        )
        logger.info(
            "Gas plan for %s: limit=%d (%s) max_fee=%d priority=%d",
            protocol.key,
            plan.gas_limit,
            plan.gas_limit_source,
            plan.max_fee_per_gas,
            plan.max_priority_fee_per_gas,
        )
        return plan

    def _gas_limit(
        self,
        protocol: ProtocolDescriptor,
        quote: Optional[Quote],
        override: Optional[int],
        estimate: Optional[Callable[[], int]],
    ) -> tuple[int, str]:
        if override is not None:
            return override, "override"
        if quote is not None and quote.gas_estimate:
            return quote.gas_estimate + protocol.gas_buffer, "quote"
        if estimate is not None:
            try:
                return int(estimate() * ESTIMATE_BUFFER), "estimate"
            except ChainError as exc:
                logger.warning(
                    "Gas estimation failed for %s, using fallback: %s", protocol.key, exc
                )
        multi_hop = quote.is_multi_hop if quote is not None else False
        return protocol.fallback_gas_limit(multi_hop), "fallback"

    def _fees(
        self, quote: Optional[Quote], gas_price_override: Optional[int]
    ) -> tuple[int, int]:
        if gas_price_override is not None:
            if quote is not None and (
                quote.max_fee_per_gas is not None
                or quote.max_priority_fee_per_gas is not None
            ):
                logger.info(
                    "Caller gas price %d overrides quote fee hints", gas_price_override
                )
            return gas_price_override * 2, gas_price_override // 10

        hint_max = quote.max_fee_per_gas if quote is not None else None
        hint_priority = quote.max_priority_fee_per_gas if quote is not None else None

        if hint_max is not None and hint_priority is not None:
            return max(hint_max, hint_priority), hint_priority
        if hint_priority is not None:
            return hint_priority * 2, hint_priority

        gas = self._client.get_gas_price()
        base = gas.base_fee or gas.priority_fee
        priority = base // 10
        max_fee = hint_max if hint_max is not None else base * 2
        return max(max_fee, priority), priority
