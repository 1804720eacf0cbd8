"""Router call construction for V2-style and V3-style DEX routers."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from chain import abi
from core.base_types import BPS_DENOMINATOR, Address
from core.swap_types import Quote

from .errors import UnsupportedRoute
from .executor import CallTarget, ContractCall, RawCall
from .path_encoder import encode_path
from .protocols import ProtocolDescriptor, RouterStyle

logger = logging.getLogger(__name__)

V2_SWAP_SIGNATURE = "swapExactTokensForTokens(uint256,uint256,address[],address)"
V3_EXACT_INPUT_SINGLE_SIGNATURE = (
    "exactInputSingle((address,address,uint24,address,uint256,uint256,uint256,uint160))"
)
V3_EXACT_INPUT_SIGNATURE = "exactInput((bytes,address,uint256,uint256,uint256))"

V2_SWAP_ARG_TYPES = ["uint256", "uint256", "address[]", "address"]
V3_EXACT_INPUT_SINGLE_ARG_TYPES = [
    "(address,address,uint24,address,uint256,uint256,uint256,uint160)"
]
V3_EXACT_INPUT_ARG_TYPES = ["(bytes,address,uint256,uint256,uint256)"]


def prebuilt_min_amount_out(data: bytes) -> Optional[int]:
    """``amountOutMin`` encoded in a known router call, else None."""
    selector, args = data[:4], data[4:]
    try:
        if selector == abi.selector(V2_SWAP_SIGNATURE):
            return int(decode(V2_SWAP_ARG_TYPES, args)[1])
        if selector == abi.selector(V3_EXACT_INPUT_SIGNATURE):
            return int(decode(V3_EXACT_INPUT_ARG_TYPES, args)[0][4])
        if selector == abi.selector(V3_EXACT_INPUT_SINGLE_SIGNATURE):
            return int(decode(V3_EXACT_INPUT_SINGLE_ARG_TYPES, args)[0][6])
    except DecodingError:
        return None
    return None


def executable_quote(
    quote: Quote, min_amount_out: int, slippage_bps: Optional[int] = None
) -> Quote:
    """
    ``quote`` without its prebuilt calldata unless that calldata enforces
    ``min_amount_out`` on-chain.

    Known router calls are decoded and their ``amountOutMin`` compared.
    Opaque calldata is kept only when ``min_amount_out`` is exactly the floor
    the routing service was asked for: ``amount_out`` less ``slippage_bps``.
    """
    prebuilt = quote.prebuilt
    if prebuilt is None:
        return quote
    encoded = prebuilt_min_amount_out(prebuilt.data)
    if encoded is not None:
        enforced = encoded >= min_amount_out
    else:
        enforced = (
            slippage_bps is not None
            and quote.amount_out is not None
            and min_amount_out
            == quote.amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
        )
    if enforced:
        return quote
    logger.warning(
        "%s prebuilt calldata does not enforce minAmountOut=%d (encoded=%s); "
        "encoding the router call instead",
        quote.protocol,
        min_amount_out,
        encoded,
    )
    return replace(quote, prebuilt=None)


def build_swap_call(
    protocol: ProtocolDescriptor,
    quote: Quote,
    amount_in: int,
    min_amount_out: int,
    recipient: Address,
    deadline: int,
    slippage_bps: Optional[int] = None,
) -> CallTarget:
    """
    Prebuilt calldata wins when the routing service supplied it and it
    enforces ``min_amount_out``; otherwise the router call is encoded from
    the quote's route.
    """
    quote = executable_quote(quote, min_amount_out, slippage_bps)
    if quote.prebuilt is not None:
        return RawCall(
            to=quote.prebuilt.to, data=quote.prebuilt.data, value=quote.prebuilt.value
        )
    if protocol.router_style is RouterStyle.V2:
        # fee-tiered hops are concentrated-liquidity pools the V2 router cannot reach
        if any(hop.fee is not None for hop in quote.route):
            raise UnsupportedRoute(
                f"{protocol.display_name} route uses fee-tier (V3) pools and has no "
                "executable calldata; the V2 router cannot execute it"
            )
        return ContractCall(
            contract=protocol.router_address,
            signature=V2_SWAP_SIGNATURE,
            arg_types=V2_SWAP_ARG_TYPES,
            args=[amount_in, min_amount_out, quote.path, recipient.checksum],
        )
    if quote.is_multi_hop:
        path = encode_path(quote.route)
        return ContractCall(
            contract=protocol.router_address,
            signature=V3_EXACT_INPUT_SIGNATURE,
            arg_types=V3_EXACT_INPUT_ARG_TYPES,
            args=[(path, recipient.checksum, deadline, amount_in, min_amount_out)],
        )

    fee = protocol.default_fee_tier
    if quote.route and quote.route[0].fee is not None:
        fee = quote.route[0].fee
    return ContractCall(
        contract=protocol.router_address,
        signature=V3_EXACT_INPUT_SINGLE_SIGNATURE,
        arg_types=V3_EXACT_INPUT_SINGLE_ARG_TYPES,
        args=[
            (
                quote.token_in.checksum,
                quote.token_out.checksum,
                fee,
                recipient.checksum,
                deadline,
                amount_in,
                min_amount_out,
                0,
            )
        ],
    )
