"""Swap domain types shared by the read layer, routing and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Optional

from .base_types import BPS_DENOMINATOR, Address, TransactionReceipt


class InvalidSwapRequest(ValueError):
    """Swap parameters rejected before any I/O."""


@dataclass(frozen=True)
class SwapRequest:
    """A user's swap intent, amounts as human decimal strings."""

    token_in: str
    token_out: str
    amount_in: str
    min_amount_out: Optional[str] = None
    slippage_bps: int = 200
    deadline_minutes: int = 20
    gas_limit_override: Optional[int] = None
    gas_price_override: Optional[int] = None

    def validate(self) -> tuple[Address, Address]:
        """Check invariants and return the parsed token addresses."""
        token_in = _parse_address(self.token_in, "tokenIn")
        token_out = _parse_address(self.token_out, "tokenOut")
        if token_in == token_out:
            raise InvalidSwapRequest("tokenIn and tokenOut must be different")
        _require_positive_decimal(self.amount_in, "amountIn")
        if self.min_amount_out is not None:
            _require_positive_decimal(self.min_amount_out, "minAmountOut")
        if not isinstance(self.slippage_bps, int) or not (
            0 <= self.slippage_bps <= BPS_DENOMINATOR
        ):
            raise InvalidSwapRequest("slippageBps must be between 0 and 10000")
        if not 1 <= self.deadline_minutes <= 1440:
            raise InvalidSwapRequest("deadline must be between 1 and 1440 minutes")
        if self.gas_limit_override is not None and self.gas_limit_override < 21_000:
            raise InvalidSwapRequest("gasLimit must be at least 21000")
        if self.gas_price_override is not None and self.gas_price_override <= 0:
            raise InvalidSwapRequest("gasPrice must be a positive wei amount")
        return token_in, token_out


def _parse_address(value: str, name: str) -> Address:
    try:
        return Address.from_string(value)
    except (TypeError, ValueError) as exc:
        raise InvalidSwapRequest(f"{name} must be a valid EVM address") from exc


def _require_positive_decimal(value: str, name: str) -> None:
    if not isinstance(value, str):
        raise InvalidSwapRequest(f"{name} must be a decimal string")
    try:
        amount = Decimal(value.strip())
    except InvalidOperation as exc:
        raise InvalidSwapRequest(f"{name} must be a valid number") from exc
    if not amount.is_finite() or amount <= 0:
        raise InvalidSwapRequest(f"{name} must be a positive number")


@dataclass(frozen=True)
class TokenMetadata:
    address: Address
    decimals: Optional[int]
    symbol: Optional[str]
    name: Optional[str]

    @property
    def label(self) -> str:
        return self.symbol or self.address.checksum


@dataclass(frozen=True)
class FieldReadError:
    """One sub-call of a batched read that failed or could not be decoded."""

    field: str
    target: str
    reason: str


@dataclass(frozen=True)
class TokenPairInfo:
    """
    Chain state needed to validate a swap, read in one round trip.

    Never cached: balance and allowance are mutable external state.
    """

    token_in: TokenMetadata
    token_out: TokenMetadata
    owner: Address
    spender: Address
    balance: Optional[int]
    allowance: Optional[int]
    errors: dict[str, FieldReadError] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.errors

    def require(self, fields: Optional[Iterable[str]] = None) -> "TokenPairInfo":
        """
        Raise ``IncompleteRead`` naming every failed field.

        ``fields`` limits the check to the values the caller cannot do
        without; by default every field must have been read.
        """
        if fields is None:
            missing = dict(self.errors)
        else:
            missing = {f: self.errors[f] for f in fields if f in self.errors}
        if missing:
            from chain.errors import IncompleteRead

            raise IncompleteRead(missing)
        return self


class PairInfoField(str, Enum):
    TOKEN_IN_DECIMALS = "tokenIn.decimals"
    TOKEN_IN_SYMBOL = "tokenIn.symbol"
    TOKEN_IN_NAME = "tokenIn.name"
    TOKEN_OUT_DECIMALS = "tokenOut.decimals"
    TOKEN_OUT_SYMBOL = "tokenOut.symbol"
    TOKEN_OUT_NAME = "tokenOut.name"
    BALANCE = "tokenIn.balanceOf"
    ALLOWANCE = "tokenIn.allowance"


@dataclass(frozen=True)
class Hop:
    token_in: Address
    token_out: Optional[Address]
    fee: Optional[int] = None
    pool_id: Optional[str] = None


@dataclass(frozen=True)
class PrebuiltCalldata:
    """Ready-to-send transaction supplied by a routing service."""

    to: Address
    data: bytes
    value: int = 0


@dataclass(frozen=True)
class Quote:
    """
    Point-in-time routing result; stale after a few blocks, never reused.

    ``amount_out`` is None only for the synthetic direct-pair fallback.
    ``prebuilt`` supersedes ``route`` for execution when present.
    """

    protocol: str
    token_in: Address
    token_out: Address
    amount_in: int
    amount_out: Optional[int]
    route: tuple[Hop, ...]
    price_impact_bps: Optional[int] = None
    gas_estimate: Optional[int] = None
    prebuilt: Optional[PrebuiltCalldata] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    route_description: Optional[str] = None
    block_number: Optional[int] = None
    is_fallback: bool = False

    @property
    def is_multi_hop(self) -> bool:
        return len(self.route) > 1

    @property
    def path(self) -> list[str]:
        if not self.route:
            return [self.token_in.checksum, self.token_out.checksum]
        tokens = [self.route[0].token_in.checksum]
        tokens.extend(hop.token_out.checksum for hop in self.route if hop.token_out)
        return tokens


@dataclass(frozen=True)
class QuoteResolution:
    quote: Quote
    min_amount_out: int
    auto_calculated: bool


@dataclass(frozen=True)
class ApprovalState:
    current_allowance: int
    required_amount: int
    spender: Address

    @property
    def sufficient(self) -> bool:
        return self.current_allowance >= self.required_amount


class ApprovalStatus(Enum):
    SUFFICIENT = "sufficient"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"
    SUBMISSION_FAILED = "submission_failed"


@dataclass(frozen=True)
class ApprovalResult:
    status: ApprovalStatus
    state: ApprovalState
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (ApprovalStatus.SUFFICIENT, ApprovalStatus.CONFIRMED)


@dataclass(frozen=True)
class GasPlan:
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    gas_limit_source: str = "fallback"


@dataclass
class ExecutionResult:
    success: bool
    tx_hash: Optional[str] = None
    receipt: Optional[TransactionReceipt] = None
    revert_reason: Optional[str] = None
    error_type: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ArbitrageOpportunity:
    token_in: Address
    token_out: Address
    amount_in: int
    buy_dex: str
    sell_dex: str
    buy_output: int
    sell_output: int
    spread_bps: int
    is_profitable: bool

    def to_dict(self) -> dict:
        return {
            "tokenIn": self.token_in.checksum,
            "tokenOut": self.token_out.checksum,
            "amountIn": str(self.amount_in),
            "buyDex": self.buy_dex,
            "sellDex": self.sell_dex,
            "buyOutput": str(self.buy_output),
            "sellOutput": str(self.sell_output),
            "spreadBps": self.spread_bps,
            "isProfitable": self.is_profitable,
        }
