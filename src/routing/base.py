from __future__ import annotations

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from core.base_types import Address
from core.swap_types import Quote

from .errors import NoRouteFound, QuoteUnavailable

logger = logging.getLogger(__name__)

NO_ROUTE_MARKERS = ("no route", "route not found", "no path", "insufficient liquidity")


class RoutingApiClient:
    """
    Shared HTTP plumbing for DEX routing APIs.

    Subclasses build the query for their dialect and normalize the JSON body
    into a ``Quote``. Every request carries an explicit timeout; transport
    problems surface as ``QuoteUnavailable`` and "this pair has no path"
    answers as ``NoRouteFound``.
    """

    name = "routing"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def quote(
        self,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        slippage_bps: int,
        deadline_seconds: int,
        recipient: Address,
    ) -> Quote:
        raise NotImplementedError

    def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            resp = self._session.get(
                self._base_url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.Timeout as exc:
            raise QuoteUnavailable(
                f"{self.name} API timed out after {self._timeout}s", self.name
            ) from exc
        except requests.RequestException as exc:
            raise QuoteUnavailable(
                f"{self.name} API request failed: {exc}", self.name
            ) from exc
        logger.info(
            "%s quote HTTP %s in %.3fs",
            self.name,
            resp.status_code,
            time.perf_counter() - start,
        )

        body = _safe_text(resp)
        if resp.status_code >= 400:
            message = f"{self.name} API error: HTTP {resp.status_code} body={body!r}"
            if _mentions_no_route(body):
                raise NoRouteFound(message, self.name)
            if resp.status_code == 429 or resp.status_code >= 500:
                raise QuoteUnavailable(message, self.name)
            raise NoRouteFound(message, self.name)

        try:
            data = resp.json()
        except ValueError as exc:
            raise QuoteUnavailable(
                f"Invalid JSON from {self.name}: {body!r}", self.name
            ) from exc
        if not isinstance(data, dict):
            raise QuoteUnavailable(
                f"Unexpected {self.name} response schema: {data!r}", self.name
            )
        return data

    def _no_route(self, detail: str) -> NoRouteFound:
        return NoRouteFound(f"{self.name}: {detail}", self.name)

    def _bad_schema(self, data: Any) -> QuoteUnavailable:
        return QuoteUnavailable(
            f"Unexpected {self.name} response schema: {data!r}", self.name
        )


def _safe_text(resp: requests.Response) -> str:
    try:
        return resp.text
    except (UnicodeDecodeError, LookupError):
        return "<undecodable body>"


def _mentions_no_route(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in NO_ROUTE_MARKERS)


def percent_to_bps(value: Any) -> Optional[int]:
    """Convert a percent value such as ``"0.35"`` to integer basis points."""
    if value is None or value == "":
        return None
    try:
        return int((Decimal(str(value)) * 100).to_integral_value())
    except (InvalidOperation, ValueError):
        return None


def optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(str(value), 0) if str(value).startswith("0x") else int(str(value))
    except ValueError:
        return None
