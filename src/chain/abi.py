"""ABI helpers: selectors, call encoding and tolerant ERC-20 result decoding."""

from __future__ import annotations

from typing import Any

from eth_abi import decode, encode
from eth_utils.crypto import keccak

from core.base_types import Address, hex_to_bytes

ERROR_STRING_SELECTOR = "0x08c379a0"
PANIC_SELECTOR = "0x4e487b71"


def selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


def encode_call(signature: str, arg_types: list[str], args: list[Any]) -> bytes:
    """Selector of ``signature`` followed by the ABI-encoded arguments."""
    return selector(signature) + encode(arg_types, args)


def erc20_decimals() -> bytes:
    return selector("decimals()")


def erc20_symbol() -> bytes:
    return selector("symbol()")


def erc20_name() -> bytes:
    return selector("name()")


def erc20_balance_of(owner: Address) -> bytes:
    return encode_call("balanceOf(address)", ["address"], [owner.checksum])


def erc20_allowance(owner: Address, spender: Address) -> bytes:
    return encode_call(
        "allowance(address,address)",
        ["address", "address"],
        [owner.checksum, spender.checksum],
    )


def erc20_approve(spender: Address, amount: int) -> bytes:
    return encode_call(
        "approve(address,uint256)", ["address", "uint256"], [spender.checksum, amount]
    )


def decode_uint(raw: bytes) -> int:
    (value,) = decode(["uint256"], raw)
    return int(value)


def decode_uint8(raw: bytes) -> int:
    (value,) = decode(["uint8"], raw)
    return int(value)


def decode_text(raw: bytes) -> str:
    """Decode an ABI ``string``, or a legacy ``bytes32`` symbol/name."""
    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="ignore")
    (value,) = decode(["string"], raw)
    return str(value)


def decode_revert_reason(data: Any) -> str | None:
    """Best-effort revert reason from JSON-RPC error data."""
    if data is None:
        return None
    if isinstance(data, dict) and "data" in data:
        return decode_revert_reason(data["data"])
    if not isinstance(data, str):
        return None
    if data.startswith(ERROR_STRING_SELECTOR):
        try:
            (reason,) = decode(["string"], hex_to_bytes(data[10:]))
            return str(reason)
        except Exception:  # noqa: BLE001
            return None
    if data.startswith(PANIC_SELECTOR):
        try:
            (code,) = decode(["uint256"], hex_to_bytes(data[10:]))
            return f"panic 0x{int(code):02x}"
        except Exception:  # noqa: BLE001
            return None
    if data in ("0x", ""):
        return None
    return data
