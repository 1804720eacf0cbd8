"""
Packed path encoding for concentrated-liquidity multi-hop routers.

Layout: ``token0 (20 bytes) | fee0 (3 bytes, big-endian) | token1 | ...``.
"""

from __future__ import annotations

from typing import Sequence

from core.base_types import Address
from core.swap_types import Hop

from .errors import PathEncodingError

ADDRESS_SIZE = 20
FEE_SIZE = 3
MAX_FEE = 1 << 24
NEXT_OFFSET = ADDRESS_SIZE + FEE_SIZE


def encode_path(hops: Sequence[Hop]) -> bytes:
    if not hops:
        raise PathEncodingError("cannot encode an empty hop list")

    parts = [bytes.fromhex(hops[0].token_in.checksum[2:])]
    for idx, hop in enumerate(hops):
        if hop.token_out is None:
            raise PathEncodingError(f"hop {idx} is missing tokenOut")
        if hop.fee is None:
            raise PathEncodingError(f"hop {idx} is missing a fee tier")
        if not 0 <= hop.fee < MAX_FEE:
            raise PathEncodingError(f"hop {idx} fee {hop.fee} does not fit in 24 bits")
        if idx > 0 and hops[idx - 1].token_out != hop.token_in:
            raise PathEncodingError(
                f"hop {idx} starts at {hop.token_in.checksum} but hop {idx - 1} "
                f"ends at {hops[idx - 1].token_out}"
            )
        parts.append(hop.fee.to_bytes(FEE_SIZE, "big"))
        parts.append(bytes.fromhex(hop.token_out.checksum[2:]))
    return b"".join(parts)


def encode_path_hex(hops: Sequence[Hop]) -> str:
    return "0x" + encode_path(hops).hex()


def decode_path(path: bytes) -> tuple[list[Address], list[int]]:
    """Inverse of ``encode_path``: the token sequence and the fee per hop."""
    if len(path) < ADDRESS_SIZE + NEXT_OFFSET or (len(path) - ADDRESS_SIZE) % NEXT_OFFSET:
        raise PathEncodingError(f"malformed path of {len(path)} bytes")

    tokens = [Address("0x" + path[:ADDRESS_SIZE].hex())]
    fees: list[int] = []
    offset = ADDRESS_SIZE
    while offset < len(path):
        fees.append(int.from_bytes(path[offset : offset + FEE_SIZE], "big"))
        offset += FEE_SIZE
        tokens.append(Address("0x" + path[offset : offset + ADDRESS_SIZE].hex()))
        offset += ADDRESS_SIZE
    return tokens, fees


def hops_from_path(path: bytes) -> list[Hop]:
    tokens, fees = decode_path(path)
    return [
        Hop(token_in=tokens[i], token_out=tokens[i + 1], fee=fee)
        for i, fee in enumerate(fees)
    ]
