from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from core.base_types import BPS_DENOMINATOR, Address, hex_to_bytes
from core.swap_types import Hop, PrebuiltCalldata, Quote

from .base import RoutingApiClient, _mentions_no_route, optional_int, percent_to_bps

logger = logging.getLogger(__name__)

DRAGONSWAP_QUOTE_URL = "https://sei-api.dragonswap.app/api/v1/quote"


class DragonSwapClient(RoutingApiClient):
    """
    DragonSwap smart-order-router client.

    The response nests routes as ``route[option][pool]``; the first option is
    the one the service also encodes into ``methodParameters``, which makes
    the calldata directly executable against the router.
    """

    name = "dragonswap"

    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(base_url or DRAGONSWAP_QUOTE_URL, timeout_seconds, session)

    def quote(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        slippage_bps: int,
        deadline_seconds: int,
        recipient: Address,
    ) -> Quote:
        params: Dict[str, Any] = {
            "amount": str(amount_in),
            "tokenInAddress": token_in.checksum,
            "tokenOutAddress": token_out.checksum,
            "type": "exactIn",
            "recipient": recipient.checksum,
            "deadline": deadline_seconds,
            "slippage": str(Decimal(slippage_bps) * 100 / BPS_DENOMINATOR),
            "protocols": "v2,v3",
            "intent": "swap",
        }
        data = self._get(params)
        quote = self._parse(data, token_in, token_out, amount_in)
        logger.debug(
            "DragonSwap quote: in=%s out=%s hops=%d gas=%s impact_bps=%s route=%s",
            amount_in,
            quote.amount_out,
            len(quote.route),
            quote.gas_estimate,
            quote.price_impact_bps,
            quote.route_description,
        )
        return quote

    def _parse(
        self, data: Dict[str, Any], token_in: Address, token_out: Address, amount_in: int
    ) -> Quote:
        error_text = data.get("error") or data.get("errorCode") or data.get("detail")
        if error_text and _mentions_no_route(str(error_text)):
            raise self._no_route(str(error_text))

        routes = data.get("route")
        if routes is None or not isinstance(routes, list):
            raise self._bad_schema(data)
        if not routes or not routes[0]:
            raise self._no_route(f"no route for {token_in.checksum} -> {token_out.checksum}")

        try:
            hops = tuple(_hop_from_pool(pool) for pool in routes[0])
            amount_out = int(str(data["quote"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise self._bad_schema(data) from exc
        if amount_out <= 0:
            raise self._no_route("quoted output is zero")

        return Quote(
            protocol=self.name,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            route=hops,
            price_impact_bps=percent_to_bps(data.get("priceImpact")),
            gas_estimate=optional_int(data.get("gasUseEstimate")),
            prebuilt=_prebuilt_from(data.get("methodParameters")),
            max_fee_per_gas=optional_int(data.get("maxFeePerGas")),
            max_priority_fee_per_gas=optional_int(data.get("maxPriorityFeePerGas")),
            route_description=data.get("routeString"),
            block_number=optional_int(data.get("blockNumber")),
        )


def _hop_from_pool(pool: Dict[str, Any]) -> Hop:
    return Hop(
        token_in=Address.from_string(pool["tokenIn"]["address"]),
        token_out=Address.from_string(pool["tokenOut"]["address"]),
        fee=optional_int(pool.get("fee")),
        pool_id=pool.get("address"),
    )


def _prebuilt_from(params: Any) -> Optional[PrebuiltCalldata]:
    if not isinstance(params, dict):
        return None
    calldata = params.get("calldata")
    to = params.get("to")
    if not calldata or not to:
        return None
    try:
        return PrebuiltCalldata(
            to=Address.from_string(to),
            data=hex_to_bytes(calldata),
            value=optional_int(params.get("value")) or 0,
        )
    except ValueError:
        logger.warning("Ignoring malformed DragonSwap methodParameters: %r", params)
        return None
