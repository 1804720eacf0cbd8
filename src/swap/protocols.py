"""Per-DEX descriptors that parameterize the generic swap pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable

from core.base_types import Address

from .errors import UnknownProtocol


class RouterStyle(Enum):
    V2 = "v2"  # swapExactTokensForTokens with an address[] path
    V3 = "v3"  # exactInputSingle / exactInput with a packed path


@dataclass(frozen=True)
class ProtocolDescriptor:
    key: str
    display_name: str
    router_address: Address
    router_style: RouterStyle
    api_dialect: str
    api_url: str
    quote_timeout_seconds: float
    gas_buffer: int
    fallback_gas_single_hop: int
    fallback_gas_multi_hop: int
    default_fee_tier: int = 3000
    enabled: bool = True
    description: str = ""

    def fallback_gas_limit(self, multi_hop: bool) -> int:
        return self.fallback_gas_multi_hop if multi_hop else self.fallback_gas_single_hop

    def with_overrides(self, **changes) -> "ProtocolDescriptor":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.display_name,
            "enabled": self.enabled,
            "router": self.router_address.checksum,
            "routerStyle": self.router_style.value,
            "multiHop": True,
            "prebuiltCalldata": self.api_dialect == "dragonswap",
            "description": self.description,
        }


DRAGONSWAP = ProtocolDescriptor(
    key="dragonswap",
    display_name="DragonSwap",
    router_address=Address("0x11DA6463D6Cb5a03411Dbf5ab6f6bc3997Ac7428"),
    router_style=RouterStyle.V2,
    api_dialect="dragonswap",
    api_url="https://sei-api.dragonswap.app/api/v1/quote",
    quote_timeout_seconds=10.0,
    gas_buffer=50_000,
    fallback_gas_single_hop=300_000,
    fallback_gas_multi_hop=300_000,
    description="Smart-order-routed V2/V3 swaps with ready-to-send calldata",
)

SAILOR = ProtocolDescriptor(
    key="sailor",
    display_name="Sailor Finance",
    router_address=Address("0xd1EFe48B71Acd98Db16FcB9E7152B086647Ef544"),
    router_style=RouterStyle.V3,
    api_dialect="sailor",
    api_url=(
        "https://asia-southeast1-ktx-finance-2.cloudfunctions.net/sailor_routerapi/quote"
    ),
    quote_timeout_seconds=15.0,
    gas_buffer=200_000,
    fallback_gas_single_hop=350_000,
    fallback_gas_multi_hop=400_000,
    description="Concentrated-liquidity swaps, multi-hop via packed V3 paths",
)

DEFAULT_PROTOCOLS: tuple[ProtocolDescriptor, ...] = (DRAGONSWAP, SAILOR)


def protocol_by_key(
    protocols: Iterable[ProtocolDescriptor], key: str
) -> ProtocolDescriptor:
    wanted = key.strip().lower()
    for protocol in protocols:
        if protocol.key == wanted:
            return protocol
    raise UnknownProtocol(key)
