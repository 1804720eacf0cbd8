"""
Generic swap pipeline, parameterized by a ``ProtocolDescriptor``.

Stages run strictly in order (protocol and wallet checks, validation, one
batched chain read, balance check, quote, router call, approval, gas plan,
simulate and send) and every blocking stage runs on a worker thread. Expected
failures come back as envelopes from ``swap.responses``; anything unexpected
is logged once here and returned as ``execution_error``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Optional

from chain.client import ChainClient
from chain.errors import BatchReadError, IncompleteRead
from chain.multicall import BatchReader
from core.base_types import ZERO_ADDRESS, Address, TokenAmount
from core.swap_types import (
    InvalidSwapRequest,
    PairInfoField,
    QuoteResolution,
    SwapRequest,
    TokenMetadata,
)
from core.wallet_manager import WalletManager
from routing.errors import NoRouteFound, QuoteUnavailable
from routing.quote_router import QuoteRouter, fallback_quote, min_amount_out

from . import responses
from .approval import ApprovalManager
from .errors import PathEncodingError, UnsupportedRoute
from .executor import TransactionExecutor
from .gas import GasPlanner
from .protocols import ProtocolDescriptor
from .router_calls import build_swap_call, executable_quote

logger = logging.getLogger(__name__)

QUOTE_STAGE_GRACE_SECONDS = 2.0
SMALL_AMOUNT_WARNING = 1_000_000

REQUIRED_PAIR_FIELDS = (
    PairInfoField.TOKEN_IN_DECIMALS.value,
    PairInfoField.TOKEN_OUT_DECIMALS.value,
    PairInfoField.BALANCE.value,
    PairInfoField.ALLOWANCE.value,
)


@dataclass(frozen=True)
class SwapOutcome:
    response: dict[str, Any]
    min_amount_out: Optional[int] = None
    token_out_decimals: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.response.get("status") == "success"


class SwapPipeline:
    def __init__(
        self,
        protocol: ProtocolDescriptor,
        client: ChainClient,
        reader: BatchReader,
        quotes: QuoteRouter,
        wallet: Optional[WalletManager],
        chain_id: int,
        simulate_before_send: bool = True,
        explorer_tx_url: str = responses.DEFAULT_EXPLORER_TX_URL,
        approvals: Optional[ApprovalManager] = None,
        gas_planner: Optional[GasPlanner] = None,
        executor: Optional[TransactionExecutor] = None,
    ) -> None:
        self._protocol = protocol
        self._client = client
        self._reader = reader
        self._quotes = quotes
        self._wallet = wallet
        self._explorer = explorer_tx_url
        self._gas = gas_planner or GasPlanner(client)
        self._approvals = approvals
        self._executor = executor
        if wallet is not None:
            self._approvals = approvals or ApprovalManager(client, wallet, chain_id)
            self._executor = executor or TransactionExecutor(
                client, wallet, chain_id, simulate_before_send=simulate_before_send
            )

    @property
    def protocol(self) -> ProtocolDescriptor:
        return self._protocol

    async def execute_swap(self, request: SwapRequest) -> dict[str, Any]:
        return (await self.run(request)).response

    async def run(self, request: SwapRequest) -> SwapOutcome:
        name = self._protocol.display_name
        if not self._protocol.enabled:
            return SwapOutcome(responses.protocol_disabled(name))
        if self._wallet is None:
            return SwapOutcome(responses.wallet_not_connected())
        try:
            token_in, token_out = request.validate()
        except InvalidSwapRequest as exc:
            return SwapOutcome(responses.validation_error(str(exc)))

        try:
            return await self._run(request, token_in, token_out)
        except (BatchReadError, IncompleteRead) as exc:
            logger.error("%s: chain read failed: %s", self._protocol.key, exc)
            return SwapOutcome(responses.execution_error(exc, name))
        except Exception as exc:
            logger.exception("%s swap failed", self._protocol.key)
            return SwapOutcome(responses.execution_error(exc, name))

    async def quote(self, request: SwapRequest) -> dict[str, Any]:
        """Read-only quote with the minimum output the swap would use."""
        name = self._protocol.display_name
        if not self._protocol.enabled:
            return responses.protocol_disabled(name)
        try:
            token_in, token_out = request.validate()
        except InvalidSwapRequest as exc:
            return responses.validation_error(str(exc))

        try:
            meta_in, meta_out = await asyncio.to_thread(
                self._reader.read_tokens, [token_in, token_out]
            )
            if meta_in.decimals is None or meta_out.decimals is None:
                return responses.execution_error(
                    "Could not read token decimals", name
                )
            amount_in, min_override = _parse_amounts(request, meta_in, meta_out)
            recipient = self._wallet.account_address if self._wallet else ZERO_ADDRESS
            quote = await self._with_quote_timeout(
                self._quotes.get_quote,
                token_in,
                token_out,
                amount_in,
                request.slippage_bps,
                request.deadline_minutes * 60,
                recipient,
            )
        except InvalidSwapRequest as exc:
            return responses.validation_error(str(exc))
        except NoRouteFound as exc:
            return responses.unsupported_pair(name, meta_in, meta_out, exc)
        except QuoteUnavailable as exc:
            return responses.quote_unavailable(name, exc)
        except Exception as exc:
            logger.exception("%s quote failed", self._protocol.key)
            return responses.execution_error(exc, name)

        resolution = QuoteResolution(
            quote,
            min_override
            if min_override is not None
            else min_amount_out(quote.amount_out or 0, request.slippage_bps),
            auto_calculated=min_override is None,
        )
        return responses.quote(name, meta_in, meta_out, resolution, request.slippage_bps)

    async def _run(
        self, request: SwapRequest, token_in: Address, token_out: Address
    ) -> SwapOutcome:
        name = self._protocol.display_name
        owner = self._wallet.account_address
        router = self._protocol.router_address

        pair = await asyncio.to_thread(
            self._reader.read_pair_info, token_in, token_out, owner, router
        )
        pair.require(REQUIRED_PAIR_FIELDS)
        meta_in, meta_out = pair.token_in, pair.token_out

        try:
            amount_in, min_override = _parse_amounts(request, meta_in, meta_out)
        except InvalidSwapRequest as exc:
            return SwapOutcome(responses.validation_error(str(exc)))
        if amount_in < SMALL_AMOUNT_WARNING:
            logger.warning(
                "Small swap amount %d base units of %s; rounding may dominate output",
                amount_in,
                meta_in.label,
            )

        if pair.balance < amount_in:
            logger.info(
                "Insufficient %s balance: required=%d available=%d",
                meta_in.label,
                amount_in,
                pair.balance,
            )
            return SwapOutcome(
                responses.insufficient_balance(meta_in, amount_in, pair.balance)
            )

        try:
            resolution = await self._resolve(
                request, token_in, token_out, amount_in, owner, min_override
            )
        except NoRouteFound as exc:
            logger.info("%s: no route %s -> %s: %s", name, meta_in.label, meta_out.label, exc)
            return SwapOutcome(responses.unsupported_pair(name, meta_in, meta_out, exc))
        except QuoteUnavailable as exc:
            logger.warning("%s: quote unavailable: %s", name, exc)
            return SwapOutcome(responses.quote_unavailable(name, exc))
        quote = executable_quote(
            resolution.quote, resolution.min_amount_out, request.slippage_bps
        )
        resolution = replace(resolution, quote=quote)

        deadline = int(time.time()) + request.deadline_minutes * 60
        try:
            target = build_swap_call(
                self._protocol,
                quote,
                amount_in,
                resolution.min_amount_out,
                owner,
                deadline,
                request.slippage_bps,
            )
        except (PathEncodingError, UnsupportedRoute) as exc:
            logger.error("%s: cannot encode route: %s", name, exc)
            return SwapOutcome(responses.execution_error(exc, name))

        spender, allowance = router, pair.allowance
        if quote.prebuilt is not None and quote.prebuilt.to != router:
            spender = quote.prebuilt.to
            allowance = await asyncio.to_thread(
                self._reader.read_allowance, token_in, owner, spender
            )
            logger.info(
                "Prebuilt calldata targets %s; allowance re-read: %d",
                spender.checksum,
                allowance,
            )

        approval = await asyncio.to_thread(
            self._approvals.ensure_allowance,
            token_in,
            owner,
            spender,
            amount_in,
            allowance,
        )
        if not approval.ok:
            return SwapOutcome(
                responses.approval_failed(meta_in, approval, self._explorer)
            )

        plan = await asyncio.to_thread(
            self._gas.plan,
            self._protocol,
            quote,
            request.gas_limit_override,
            request.gas_price_override,
            lambda: self._executor.estimate_gas(target),
        )
        result = await asyncio.to_thread(self._executor.execute, target, plan)

        swap = responses.swap_details(
            name,
            meta_in,
            meta_out,
            amount_in,
            resolution,
            request.slippage_bps,
            deadline,
        )
        debug = {
            "balance": str(pair.balance),
            "amountIn": str(amount_in),
            "allowance": str(allowance),
            "approval": approval.status.value,
            "spender": spender.checksum,
            "slippageBps": request.slippage_bps,
            "minAmountOut": str(resolution.min_amount_out),
            "deadline": deadline,
            "gasLimit": plan.gas_limit,
            "usedFallbackRoute": quote.is_fallback,
        }
        response = responses.from_execution(
            name, result, swap, owner.checksum, debug, self._explorer
        )
        return SwapOutcome(
            response,
            min_amount_out=resolution.min_amount_out,
            token_out_decimals=meta_out.decimals,
        )

    async def _resolve(
        self,
        request: SwapRequest,
        token_in: Address,
        token_out: Address,
        amount_in: int,
        recipient: Address,
        min_override: Optional[int],
    ) -> QuoteResolution:
        try:
            return await self._with_quote_timeout(
                self._quotes.resolve,
                token_in,
                token_out,
                amount_in,
                request.slippage_bps,
                request.deadline_minutes * 60,
                recipient,
                min_override,
            )
        except QuoteUnavailable:
            # resolve() already fell back where allowed; a stage timeout has not
            if min_override is None:
                raise
            return QuoteResolution(
                fallback_quote(self._protocol, token_in, token_out, amount_in),
                min_override,
                auto_calculated=False,
            )

    async def _with_quote_timeout(self, func, *args):
        timeout = self._quotes.timeout_seconds + QUOTE_STAGE_GRACE_SECONDS
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
        except asyncio.TimeoutError as exc:
            raise QuoteUnavailable(
                f"{self._protocol.key} quote did not complete within {timeout}s",
                self._protocol.key,
            ) from exc


def _parse_amounts(
    request: SwapRequest, meta_in: TokenMetadata, meta_out: TokenMetadata
) -> tuple[int, Optional[int]]:
    try:
        amount_in = TokenAmount.from_human(request.amount_in, meta_in.decimals).raw
        min_out = None
        if request.min_amount_out is not None:
            min_out = TokenAmount.from_human(
                request.min_amount_out, meta_out.decimals
            ).raw
    except (TypeError, ValueError) as exc:
        raise InvalidSwapRequest(str(exc)) from exc
    if amount_in <= 0:
        raise InvalidSwapRequest("amountIn is below one base unit")
    return amount_in, min_out
