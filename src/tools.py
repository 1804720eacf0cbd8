"""
Agent-facing tool façade.

Each tool takes a flat parameter dict with camelCase keys and returns a JSON
envelope; nothing raises past this boundary.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import requests

from arbitrage.scanner import ArbitrageScanner, QuoteComparisonError
from chain.client import ChainClient
from chain.multicall import BatchReader
from config import SwapSettings, get_env, load_settings
from core.base_types import ZERO_ADDRESS, Address, TokenAmount
from core.swap_types import SwapRequest
from core.wallet_manager import WalletManager
from routing.quote_router import QuoteRouter, build_quote_router
from swap import responses
from swap.approval import ApprovalManager
from swap.errors import UnknownProtocol
from swap.pipeline import SwapPipeline
from swap.protocols import ProtocolDescriptor, protocol_by_key

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class ParameterError(ValueError):
    """A tool parameter is missing or has the wrong type."""


def _str_param(params: dict[str, Any], key: str, required: bool = True) -> Optional[str]:
    value = params.get(key)
    if value is None or value == "":
        if required:
            raise ParameterError(f"{key} is required")
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float):
            raise ParameterError(f"{key} must be a decimal string")
        return str(value)
    if not isinstance(value, str):
        raise ParameterError(f"{key} must be a string")
    return value.strip()


def _int_param(params: dict[str, Any], key: str, default: Optional[int] = None) -> Optional[int]:
    value = params.get(key)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ParameterError(f"{key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ParameterError(f"{key} must be an integer") from exc


def _address_param(params: dict[str, Any], key: str) -> Address:
    value = _str_param(params, key)
    try:
        return Address.from_string(value)
    except ValueError as exc:
        raise ParameterError(f"{key} must be a valid EVM address") from exc


def swap_request_from(params: dict[str, Any]) -> SwapRequest:
    return SwapRequest(
        token_in=_str_param(params, "tokenIn"),
        token_out=_str_param(params, "tokenOut"),
        amount_in=_str_param(params, "amountIn"),
        min_amount_out=_str_param(params, "minAmountOut", required=False),
        slippage_bps=_int_param(params, "slippageBps", 200),
        deadline_minutes=_int_param(params, "deadline", 20),
        gas_limit_override=_int_param(params, "gasLimit"),
        gas_price_override=_int_param(params, "gasPrice"),
    )


class SwapTools:
    """Wires configuration, chain access and one pipeline per DEX."""

    def __init__(
        self,
        settings: SwapSettings,
        wallet: Optional[WalletManager] = None,
        client: Optional[ChainClient] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._wallet = wallet
        self._client = client or ChainClient(
            list(settings.rpc_urls), timeout=settings.rpc_timeout_seconds
        )
        self._reader = BatchReader(self._client, settings.multicall_address)
        self._routers: dict[str, QuoteRouter] = {
            p.key: build_quote_router(p, session) for p in settings.protocols
        }
        self._pipelines: dict[str, SwapPipeline] = {
            p.key: SwapPipeline(
                protocol=p,
                client=self._client,
                reader=self._reader,
                quotes=self._routers[p.key],
                wallet=wallet,
                chain_id=settings.chain_id,
                simulate_before_send=settings.simulate_before_send,
                explorer_tx_url=settings.explorer_tx_url,
            )
            for p in settings.protocols
        }
        self._approvals = (
            ApprovalManager(self._client, wallet, settings.chain_id) if wallet else None
        )

    @classmethod
    def from_env(cls) -> "SwapTools":
        settings = load_settings()
        key = get_env("PRIVATE_KEY")
        wallet = WalletManager(key) if key else None
        if wallet is None:
            logger.warning("PRIVATE_KEY not set; running in read-only mode")
        return cls(settings, wallet)

    @property
    def handlers(self) -> dict[str, ToolHandler]:
        return {
            "get_quote": self.get_quote,
            "execute_swap": self.execute_swap,
            "check_balance": self.check_balance,
            "approve_token": self.approve_token,
            "scan_arbitrage": self.scan_arbitrage,
            "execute_arbitrage": self.execute_arbitrage,
            "list_protocols": self.list_protocols,
        }

    async def dispatch(self, tool: str, params: dict[str, Any]) -> dict[str, Any]:
        handler = self.handlers.get(tool)
        if handler is None:
            return responses.validation_error(f"Unknown tool: {tool}")
        try:
            return await handler(params)
        except ParameterError as exc:
            return responses.validation_error(str(exc))
        except UnknownProtocol as exc:
            return responses.validation_error(str(exc))
        except Exception as exc:
            logger.exception("Tool %s failed", tool)
            return responses.execution_error(exc)

    def _protocol(self, params: dict[str, Any]) -> ProtocolDescriptor:
        key = _str_param(params, "protocol", required=False) or "dragonswap"
        return protocol_by_key(self._settings.protocols, key)

    async def get_quote(self, params: dict[str, Any]) -> dict[str, Any]:
        protocol = self._protocol(params)
        return await self._pipelines[protocol.key].quote(swap_request_from(params))

    async def execute_swap(self, params: dict[str, Any]) -> dict[str, Any]:
        protocol = self._protocol(params)
        return await self._pipelines[protocol.key].execute_swap(swap_request_from(params))

    async def check_balance(self, params: dict[str, Any]) -> dict[str, Any]:
        owner_raw = _str_param(params, "address", required=False)
        if owner_raw is not None:
            owner = _address_param(params, "address")
        elif self._wallet is not None:
            owner = self._wallet.account_address
        else:
            return responses.wallet_not_connected()

        token_raw = _str_param(params, "tokenAddress", required=False)
        if token_raw is None:
            native = await asyncio.to_thread(self._client.get_balance, owner)
            return {
                "status": "success",
                "address": owner.checksum,
                "token": {"symbol": native.symbol, "decimals": native.decimals, "native": True},
                "balance": native.format(),
                "balanceRaw": str(native.raw),
            }

        token = _address_param(params, "tokenAddress")
        meta, result = await asyncio.to_thread(self._reader.read_balance, token, owner)
        if not result.ok or meta.decimals is None:
            reason = result.error.reason if result.error else "decimals unreadable"
            return responses.execution_error(
                f"Could not read {token.checksum} balance: {reason}"
            )
        return {
            "status": "success",
            "address": owner.checksum,
            "token": {
                "address": token.checksum,
                "symbol": meta.symbol,
                "name": meta.name,
                "decimals": meta.decimals,
            },
            "balance": TokenAmount(result.value, meta.decimals).format(),
            "balanceRaw": str(result.value),
        }

    async def approve_token(self, params: dict[str, Any]) -> dict[str, Any]:
        if self._approvals is None:
            return responses.wallet_not_connected()
        token = _address_param(params, "tokenAddress")
        if _str_param(params, "spender", required=False):
            spender = _address_param(params, "spender")
        else:
            spender = self._protocol(params).router_address
        amount_text = _str_param(params, "amount")

        (meta,) = await asyncio.to_thread(self._reader.read_tokens, [token])
        if meta.decimals is None:
            return responses.execution_error(f"Could not read decimals of {token.checksum}")
        try:
            amount = TokenAmount.from_human(amount_text, meta.decimals, meta.symbol)
        except (TypeError, ValueError) as exc:
            return responses.validation_error(str(exc))

        result = await asyncio.to_thread(self._approvals.approve, token, spender, amount.raw)
        if not result.ok:
            return responses.approval_failed(meta, result, self._settings.explorer_tx_url)
        return {
            "status": "success",
            "message": f"Approved {amount} for {spender.checksum}",
            "transactionHash": result.tx_hash,
            "explorer": responses.explorer_url(
                result.tx_hash, self._settings.explorer_tx_url
            ),
            "token": token.checksum,
            "spender": spender.checksum,
            "amount": amount.format(),
            "amountRaw": str(amount.raw),
        }

    def _scanner(self) -> ArbitrageScanner:
        recipient = self._wallet.account_address if self._wallet else ZERO_ADDRESS
        return ArbitrageScanner(
            self._routers, recipient, pipelines=self._pipelines, reader=self._reader
        )

    async def _scan(self, params: dict[str, Any]):
        disabled = [p for p in self._settings.protocols if not p.enabled]
        if disabled:
            return None, responses.protocol_disabled(disabled[0].display_name)
        token_in = _address_param(params, "tokenIn")
        token_out = _address_param(params, "tokenOut")
        if token_in == token_out:
            return None, responses.validation_error("tokenIn and tokenOut must be different")
        amount_text = _str_param(params, "amountIn")
        (meta_in,) = await asyncio.to_thread(self._reader.read_tokens, [token_in])
        if meta_in.decimals is None:
            return None, responses.execution_error(
                f"Could not read decimals of {token_in.checksum}"
            )
        try:
            amount = TokenAmount.from_human(amount_text, meta_in.decimals)
        except (TypeError, ValueError) as exc:
            return None, responses.validation_error(str(exc))

        try:
            opportunity = await self._scanner().scan(
                token_in,
                token_out,
                amount.raw,
                min_spread_bps=_int_param(params, "minSpreadBps", 100),
                slippage_bps=_int_param(params, "slippageBps", 50),
            )
        except QuoteComparisonError as exc:
            return None, responses.quote_comparison_failed(exc.errors)
        return opportunity, None

    async def scan_arbitrage(self, params: dict[str, Any]) -> dict[str, Any]:
        opportunity, failure = await self._scan(params)
        if failure is not None:
            return failure
        if opportunity is None:
            return {
                "status": "success",
                "opportunity": None,
                "message": "No spread above the minimum",
            }
        return {"status": "success", "opportunity": opportunity.to_dict()}

    async def execute_arbitrage(self, params: dict[str, Any]) -> dict[str, Any]:
        dry_run = bool(params.get("dryRun", False))
        if self._wallet is None and not dry_run:
            return responses.wallet_not_connected()
        opportunity, failure = await self._scan(params)
        if failure is not None:
            return failure
        if opportunity is None:
            return {
                "status": "success",
                "opportunity": None,
                "message": "No spread above the minimum; nothing executed",
            }
        return await self._scanner().execute(
            opportunity,
            slippage_bps=_int_param(params, "slippageBps", 50),
            dry_run=dry_run,
        )

    async def list_protocols(self, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        return {
            "status": "success",
            "chainId": self._settings.chain_id,
            "protocols": [p.to_dict() for p in self._settings.protocols],
        }
