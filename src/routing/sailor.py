from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from core.base_types import BPS_DENOMINATOR, Address
from core.swap_types import Hop, Quote

from .base import RoutingApiClient, _mentions_no_route, optional_int, percent_to_bps

logger = logging.getLogger(__name__)

SAILOR_QUOTE_URL = (
    "https://asia-southeast1-ktx-finance-2.cloudfunctions.net/sailor_routerapi/quote"
)


class SailorClient(RoutingApiClient):
    """
    Sailor router API client.

    Returns a flat hop list with explicit ``token_in``/``token_out``/``fee``
    and no calldata, so execution always goes through the structured V3
    router call.
    """

    name = "sailor"

    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float = 15.0,
        session: Optional[requests.Session] = None,
        max_depth: int = 3,
    ) -> None:
        super().__init__(base_url or SAILOR_QUOTE_URL, timeout_seconds, session)
        self._max_depth = max_depth

    def quote(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        slippage_bps: int,
        deadline_seconds: int,
        recipient: Address,
    ) -> Quote:
        # sliprate is the fraction of output kept, in bps (9800 = 2% slippage)
        params: Dict[str, Any] = {
            "sliprate": BPS_DENOMINATOR - slippage_bps,
            "starttoken": token_in.checksum,
            "endtoken": token_out.checksum,
            "maxdepth": self._max_depth,
            "amount": str(amount_in),
            "tradetype": "EXACT_INPUT",
        }
        data = self._get(params)
        quote = self._parse(data, token_in, token_out, amount_in)
        logger.debug(
            "Sailor quote: in=%s out=%s hops=%d gas=%s impact_bps=%s",
            amount_in,
            quote.amount_out,
            len(quote.route),
            quote.gas_estimate,
            quote.price_impact_bps,
        )
        return quote

    def _parse(
        self, data: Dict[str, Any], token_in: Address, token_out: Address, amount_in: int
    ) -> Quote:
        if data.get("success") is False:
            error = str(data.get("error") or "success=false")
            raise self._no_route(error)

        hops_raw = data.get("route")
        if hops_raw is None or not isinstance(hops_raw, list):
            raise self._bad_schema(data)
        if not hops_raw:
            detail = str(data.get("error") or "empty route")
            raise self._no_route(detail)

        try:
            hops = tuple(_hop_from(entry) for entry in hops_raw)
            amount_out = int(str(data["total_amount_out"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise self._bad_schema(data) from exc
        if amount_out <= 0:
            raise self._no_route("quoted output is zero")

        error_text = data.get("error")
        if error_text and _mentions_no_route(str(error_text)):
            raise self._no_route(str(error_text))

        return Quote(
            protocol=self.name,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            route=hops,
            price_impact_bps=percent_to_bps(data.get("total_price_impact")),
            gas_estimate=optional_int(data.get("estimated_gas")),
            route_description=" -> ".join(
                [hops[0].token_in.checksum]
                + [hop.token_out.checksum for hop in hops if hop.token_out]
            ),
        )


def _hop_from(entry: Dict[str, Any]) -> Hop:
    fee = optional_int(entry.get("fee"))
    return Hop(
        token_in=Address.from_string(entry["token_in"]),
        token_out=Address.from_string(entry["token_out"]),
        fee=fee,
        pool_id=entry.get("pool_id"),
    )
