"""Core chain types: addresses, token amounts, transactions and receipts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from eth_utils.address import is_address, to_checksum_address

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Address:
    """EVM address with validation and checksumming."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("Address value must be a string")
        if not is_address(self.value):
            raise ValueError(f"Invalid EVM address: {self.value!r}")
        object.__setattr__(self, "value", to_checksum_address(self.value))

    @classmethod
    def from_string(cls, s: str) -> "Address":
        return cls(s)

    @property
    def checksum(self) -> str:
        return self.value

    @property
    def lower(self) -> str:
        return self.value.lower()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Address):
            return self.lower == other.lower
        if isinstance(other, str):
            return self.lower == other.lower()
        return False

    def __hash__(self) -> int:
        return hash(self.lower)

    def __str__(self) -> str:
        return self.value


ZERO_ADDRESS = Address("0x0000000000000000000000000000000000000000")


@dataclass(frozen=True)
class TokenAmount:
    """
    Token amount held as raw base units.

    ``human`` renders the decimal value; ``from_human`` parses decimal strings
    exactly and refuses floats so no binary rounding leaks into base units.
    """

    raw: int
    decimals: int
    symbol: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.raw, int):
            raise TypeError("raw must be an int")
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise ValueError("decimals must be a non-negative integer")

    @classmethod
    def from_human(
        cls, amount: str | Decimal, decimals: int, symbol: str | None = None
    ) -> "TokenAmount":
        """Create from human-readable amount (e.g., '1.5')."""
        if isinstance(amount, float):
            raise TypeError("amount must be a string or Decimal, not float")
        if isinstance(amount, str):
            try:
                decimal_amount = Decimal(amount.strip())
            except InvalidOperation as exc:
                raise ValueError(f"Invalid decimal amount: {amount!r}") from exc
        elif isinstance(amount, Decimal):
            decimal_amount = amount
        else:
            raise TypeError("amount must be a string or Decimal")
        if not decimal_amount.is_finite():
            raise ValueError(f"Invalid decimal amount: {amount!r}")

        raw_decimal = decimal_amount.scaleb(decimals)
        if raw_decimal != raw_decimal.to_integral_value():
            raise ValueError(
                f"amount {amount} has more precision than {decimals} decimals allow"
            )
        return cls(raw=int(raw_decimal), decimals=decimals, symbol=symbol)

    @property
    def human(self) -> Decimal:
        """Returns human-readable decimal."""
        return Decimal(self.raw).scaleb(-self.decimals)

    def format(self) -> str:
        """Plain decimal string without exponent or trailing zeros."""
        text = format(self.human, "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text or "0"

    def __str__(self) -> str:
        return f"{self.format()} {self.symbol or ''}".strip()


@dataclass
class TransactionRequest:
    """A call or transaction ready for eth_call, estimation or signing."""

    to: Address
    value: TokenAmount
    data: bytes
    sender: Optional[Address] = None
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee: Optional[int] = None
    chain_id: int = 1

    def to_dict(self) -> dict:
        """Convert to a signable dict (eth_account format)."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "value": self.value.raw,
            "data": f"0x{self.data.hex()}",
            "chainId": self.chain_id,
        }
        if self.nonce is not None:
            payload["nonce"] = self.nonce
        if self.gas_limit is not None:
            payload["gas"] = self.gas_limit
        if self.max_fee_per_gas is not None:
            payload["maxFeePerGas"] = self.max_fee_per_gas
        if self.max_priority_fee is not None:
            payload["maxPriorityFeePerGas"] = self.max_priority_fee
        return payload

    def to_call_dict(self) -> dict:
        """Convert to a JSON-RPC call object (hex quantities)."""
        payload: dict[str, object] = {
            "to": self.to.checksum,
            "value": hex(self.value.raw),
            "data": f"0x{self.data.hex()}",
        }
        if self.sender is not None:
            payload["from"] = self.sender.checksum
        if self.gas_limit:
            payload["gas"] = hex(self.gas_limit)
        return payload


@dataclass
class TransactionReceipt:
    """Parsed transaction receipt."""

    tx_hash: str
    block_number: int
    status: bool
    gas_used: int
    effective_gas_price: int
    logs: list

    @classmethod
    def from_rpc(cls, receipt: dict) -> "TransactionReceipt":
        """Parse from a JSON-RPC receipt dict."""
        tx_hash = receipt.get("transactionHash")
        if hasattr(tx_hash, "hex"):
            tx_hash_value = tx_hash.hex()
        else:
            tx_hash_value = str(tx_hash)

        status_value = receipt.get("status")
        if isinstance(status_value, bool):
            status = status_value
        elif isinstance(status_value, int):
            status = status_value == 1
        elif isinstance(status_value, str):
            status = to_int(status_value) == 1
        else:
            raise ValueError("Invalid status in receipt")

        return cls(
            tx_hash=tx_hash_value,
            block_number=to_int(receipt.get("blockNumber")),
            status=status,
            gas_used=to_int(receipt.get("gasUsed")),
            effective_gas_price=to_int(receipt.get("effectiveGasPrice", 0)),
            logs=receipt.get("logs", []),
        )


def to_int(value: object) -> int:
    """Parse an int from an int, decimal string or 0x-hex string."""
    if isinstance(value, bool):
        raise ValueError("Expected integer-like value")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    raise ValueError("Expected integer-like value")


def hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise ValueError("Expected hex string")
    normalized = value[2:] if value.startswith("0x") else value
    if normalized == "":
        return b""
    return bytes.fromhex(normalized)
