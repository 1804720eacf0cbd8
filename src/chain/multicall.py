"""
Batched read layer over Multicall3 ``aggregate3``.

Swap validation needs token metadata, balance and allowance before any
business logic runs. One aggregated ``eth_call`` replaces the 5-8 individual
round trips. Every sub-call is sent with ``allowFailure = true`` and decoded
on its own, so one broken token method degrades to a ``FieldReadError``
instead of failing the whole read. A failure of the aggregated call itself is
a hard ``BatchReadError``; nothing is defaulted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from eth_abi import decode

from core.base_types import Address, TokenAmount, TransactionRequest
from core.swap_types import FieldReadError, PairInfoField, TokenMetadata, TokenPairInfo

from . import abi
from .client import ChainClient
from .errors import BatchReadError, ChainError

logger = logging.getLogger(__name__)

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
AGGREGATE3_SIGNATURE = "aggregate3((address,bool,bytes)[])"


@dataclass(frozen=True)
class Call:
    key: str
    target: Address
    call_data: bytes
    decoder: Callable[[bytes], Any]
    allow_failure: bool = True


@dataclass(frozen=True)
class CallResult:
    key: str
    target: Address
    value: Any = None
    error: Optional[FieldReadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchReader:
    """Aggregates read-only ERC-20 calls into one Multicall3 round trip."""

    def __init__(
        self,
        client: ChainClient,
        multicall_address: str = MULTICALL3_ADDRESS,
    ):
        self._client = client
        self._multicall = Address.from_string(multicall_address)

    def execute(self, calls: list[Call]) -> dict[str, CallResult]:
        """Run ``calls`` in one aggregated read; results keyed by ``Call.key``."""
        if not calls:
            return {}
        payload = abi.encode_call(
            AGGREGATE3_SIGNATURE,
            ["(address,bool,bytes)[]"],
            [[(c.target.checksum, c.allow_failure, c.call_data) for c in calls]],
        )
        request = TransactionRequest(
            to=self._multicall,
            value=TokenAmount(raw=0, decimals=18),
            data=payload,
        )
        try:
            raw = self._client.call(request)
        except ChainError as exc:
            raise BatchReadError(
                f"Batched read of {len(calls)} calls failed: {exc}"
            ) from exc

        try:
            (results,) = decode(["(bool,bytes)[]"], raw)
        except Exception as exc:  # noqa: BLE001
            raise BatchReadError("Malformed aggregate3 response") from exc
        if len(results) != len(calls):
            raise BatchReadError(
                f"aggregate3 returned {len(results)} results for {len(calls)} calls"
            )

        decoded: dict[str, CallResult] = {}
        for call, (success, return_data) in zip(calls, results):
            decoded[call.key] = _decode_one(call, bool(success), bytes(return_data))
        failed = [key for key, result in decoded.items() if not result.ok]
        if failed:
            logger.warning(
                "batched read: %d/%d sub-calls failed: %s",
                len(failed),
                len(calls),
                ", ".join(failed),
            )
        return decoded

    def read_pair_info(
        self,
        token_in: Address,
        token_out: Address,
        owner: Address,
        spender: Address,
    ) -> TokenPairInfo:
        """Metadata for both tokens plus tokenIn balance and allowance, in one call."""
        calls = (
            _metadata_calls(token_in, "tokenIn")
            + _metadata_calls(token_out, "tokenOut")
            + [
                Call(
                    PairInfoField.BALANCE.value,
                    token_in,
                    abi.erc20_balance_of(owner),
                    abi.decode_uint,
                ),
                Call(
                    PairInfoField.ALLOWANCE.value,
                    token_in,
                    abi.erc20_allowance(owner, spender),
                    abi.decode_uint,
                ),
            ]
        )
        results = self.execute(calls)
        errors = {key: r.error for key, r in results.items() if r.error is not None}
        return TokenPairInfo(
            token_in=_metadata_from(token_in, "tokenIn", results),
            token_out=_metadata_from(token_out, "tokenOut", results),
            owner=owner,
            spender=spender,
            balance=results[PairInfoField.BALANCE.value].value,
            allowance=results[PairInfoField.ALLOWANCE.value].value,
            errors=errors,
        )

    def read_tokens(self, tokens: list[Address]) -> list[TokenMetadata]:
        calls: list[Call] = []
        for idx, token in enumerate(tokens):
            calls.extend(_metadata_calls(token, f"token{idx}"))
        results = self.execute(calls)
        return [
            _metadata_from(token, f"token{idx}", results)
            for idx, token in enumerate(tokens)
        ]

    def read_balance(self, token: Address, owner: Address) -> tuple[TokenMetadata, CallResult]:
        calls = _metadata_calls(token, "token") + [
            Call("balance", token, abi.erc20_balance_of(owner), abi.decode_uint)
        ]
        results = self.execute(calls)
        return _metadata_from(token, "token", results), results["balance"]

    def read_allowance(self, token: Address, owner: Address, spender: Address) -> int:
        """Single allowance read; a failed sub-call raises ``BatchReadError``."""
        key = "allowance"
        results = self.execute(
            [Call(key, token, abi.erc20_allowance(owner, spender), abi.decode_uint)]
        )
        result = results[key]
        if result.error is not None:
            raise BatchReadError(f"allowance read failed: {result.error.reason}")
        return int(result.value)


def _metadata_calls(token: Address, prefix: str) -> list[Call]:
    return [
        Call(f"{prefix}.decimals", token, abi.erc20_decimals(), abi.decode_uint8),
        Call(f"{prefix}.symbol", token, abi.erc20_symbol(), abi.decode_text),
        Call(f"{prefix}.name", token, abi.erc20_name(), abi.decode_text),
    ]


def _metadata_from(
    token: Address, prefix: str, results: dict[str, CallResult]
) -> TokenMetadata:
    return TokenMetadata(
        address=token,
        decimals=results[f"{prefix}.decimals"].value,
        symbol=results[f"{prefix}.symbol"].value,
        name=results[f"{prefix}.name"].value,
    )


def _decode_one(call: Call, success: bool, return_data: bytes) -> CallResult:
    if not success:
        return CallResult(
            call.key,
            call.target,
            error=FieldReadError(call.key, call.target.checksum, "call reverted"),
        )
    if not return_data:
        return CallResult(
            call.key,
            call.target,
            error=FieldReadError(call.key, call.target.checksum, "empty return data"),
        )
    try:
        value = call.decoder(return_data)
    except Exception as exc:  # noqa: BLE001
        return CallResult(
            call.key,
            call.target,
            error=FieldReadError(call.key, call.target.checksum, f"decode failed: {exc}"),
        )
    return CallResult(call.key, call.target, value=value)
