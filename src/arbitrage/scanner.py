"""
Two-DEX quote comparison and optional two-leg execution.

The first leg buys on the DEX with the worse quote; the second leg sells the
received tokens back on the better one. The legs are independent pipeline
runs, not an atomic bundle: a failed second leg leaves the first in place
and is reported as ``partial``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

from chain.multicall import BatchReader
from core.base_types import BPS_DENOMINATOR, Address, TokenAmount
from core.swap_types import ArbitrageOpportunity, Quote, SwapRequest
from routing.quote_router import QuoteRouter
from swap.pipeline import SwapPipeline

logger = logging.getLogger(__name__)

DEFAULT_MIN_SPREAD_BPS = 100
QUOTE_DEADLINE_SECONDS = 1200


class QuoteComparisonError(Exception):
    """At least one DEX failed to quote; ``errors`` maps DEX key to the failure."""

    def __init__(self, errors: dict[str, BaseException]):
        self.errors = errors
        details = "; ".join(f"{dex}: {err}" for dex, err in errors.items())
        super().__init__(f"Quote comparison failed: {details}")


def spread_bps(output_a: int, output_b: int) -> int:
    low, high = sorted((output_a, output_b))
    if low <= 0:
        raise ValueError("outputs must be positive")
    return (high - low) * BPS_DENOMINATOR // low


class ArbitrageScanner:
    def __init__(
        self,
        routers: Mapping[str, QuoteRouter],
        recipient: Address,
        pipelines: Optional[Mapping[str, SwapPipeline]] = None,
        reader: Optional[BatchReader] = None,
    ) -> None:
        if len(routers) != 2:
            raise ValueError("ArbitrageScanner compares exactly two DEXes")
        self._routers = dict(routers)
        self._recipient = recipient
        self._pipelines = dict(pipelines or {})
        self._reader = reader

    async def scan(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        min_spread_bps: int = DEFAULT_MIN_SPREAD_BPS,
        slippage_bps: int = 50,
    ) -> Optional[ArbitrageOpportunity]:
        """Compare both DEXes; ``None`` when the spread is below ``min_spread_bps``."""
        dexes = list(self._routers)
        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self._routers[dex].get_quote,
                    token_in,
                    token_out,
                    amount_in,
                    slippage_bps,
                    QUOTE_DEADLINE_SECONDS,
                    self._recipient,
                )
                for dex in dexes
            ),
            return_exceptions=True,
        )
        errors = {
            dex: result
            for dex, result in zip(dexes, results)
            if isinstance(result, BaseException)
        }
        if errors:
            raise QuoteComparisonError(errors)

        quotes: dict[str, Quote] = dict(zip(dexes, results))
        outputs = {dex: quotes[dex].amount_out or 0 for dex in dexes}
        if min(outputs.values()) <= 0:
            logger.info("Zero output quoted for %s -> %s", token_in, token_out)
            return None

        first, second = dexes
        spread = spread_bps(outputs[first], outputs[second])
        if outputs[first] >= outputs[second]:
            sell_dex, buy_dex = first, second
        else:
            sell_dex, buy_dex = second, first
        logger.info(
            "Spread %s -> %s: %s=%d %s=%d spread=%dbps",
            token_in,
            token_out,
            first,
            outputs[first],
            second,
            outputs[second],
            spread,
        )
        if spread < min_spread_bps:
            return None
        return ArbitrageOpportunity(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            buy_dex=buy_dex,
            sell_dex=sell_dex,
            buy_output=outputs[buy_dex],
            sell_output=outputs[sell_dex],
            spread_bps=spread,
            is_profitable=spread >= min_spread_bps,
        )

    async def execute(
        self,
        opportunity: ArbitrageOpportunity,
        slippage_bps: int = 50,
        dry_run: bool = False,
    ) -> dict[str, Any]:
        strategy = {
            "buy": f"{opportunity.token_in} -> {opportunity.token_out} on {opportunity.buy_dex}",
            "sell": f"{opportunity.token_out} -> {opportunity.token_in} on {opportunity.sell_dex}",
            "slippageBps": slippage_bps,
        }
        if dry_run:
            return {
                "status": "dry_run",
                "opportunity": opportunity.to_dict(),
                "strategy": strategy,
            }
        missing = [
            dex
            for dex in (opportunity.buy_dex, opportunity.sell_dex)
            if dex not in self._pipelines
        ]
        if missing or self._reader is None:
            raise ValueError(f"No swap pipeline configured for: {', '.join(missing) or 'reader'}")

        meta_in, _ = await asyncio.to_thread(
            self._reader.read_tokens, [opportunity.token_in, opportunity.token_out]
        )
        if meta_in.decimals is None:
            raise ValueError(f"Could not read decimals of {opportunity.token_in}")

        buy = await self._pipelines[opportunity.buy_dex].run(
            SwapRequest(
                token_in=opportunity.token_in.checksum,
                token_out=opportunity.token_out.checksum,
                amount_in=TokenAmount(opportunity.amount_in, meta_in.decimals).format(),
                slippage_bps=slippage_bps,
            )
        )
        if not buy.success:
            logger.warning("Arbitrage buy leg on %s failed", opportunity.buy_dex)
            return {
                "status": "failed",
                "opportunity": opportunity.to_dict(),
                "strategy": strategy,
                "legs": {"buy": buy.response},
            }

        sell_amount = TokenAmount(buy.min_amount_out, buy.token_out_decimals).format()
        sell = await self._pipelines[opportunity.sell_dex].run(
            SwapRequest(
                token_in=opportunity.token_out.checksum,
                token_out=opportunity.token_in.checksum,
                amount_in=sell_amount,
                slippage_bps=slippage_bps,
            )
        )
        if not sell.success:
            logger.error(
                "Arbitrage sell leg on %s failed after buy %s; position left open",
                opportunity.sell_dex,
                buy.response.get("transactionHash"),
            )
        return {
            "status": "success" if sell.success else "partial",
            "opportunity": opportunity.to_dict(),
            "strategy": strategy,
            "legs": {"buy": buy.response, "sell": sell.response},
        }
