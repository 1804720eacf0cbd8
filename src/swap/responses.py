"""
JSON-ready result envelopes shared by every swap tool and protocol.

Envelope keys: ``status`` ("success" | "failed" | "error"), then optional
``transactionHash``, ``blockNumber``, ``gasUsed``, ``explorer``, ``swap``,
``error``, ``errorType``, ``message`` and ``troubleshooting``. Expected
outcomes (no route, short balance, revert) are "failed"; rejected input and
unexpected exceptions are "error".
"""

from __future__ import annotations

from typing import Any, Optional

from core.base_types import TokenAmount
from core.swap_types import (
    ApprovalResult,
    ExecutionResult,
    QuoteResolution,
    TokenMetadata,
)

DEFAULT_EXPLORER_TX_URL = "https://seitrace.com/tx/{tx_hash}"


def explorer_url(tx_hash: str, template: str = DEFAULT_EXPLORER_TX_URL) -> str:
    return template.format(tx_hash=tx_hash)


def _human(raw: int, decimals: Optional[int]) -> str:
    return TokenAmount(raw=raw, decimals=decimals or 0).format()


def _token(meta: TokenMetadata) -> dict[str, Any]:
    return {
        "address": meta.address.checksum,
        "symbol": meta.symbol,
        "name": meta.name,
        "decimals": meta.decimals,
    }


def _failure(
    error_type: str,
    error: str,
    troubleshooting: list[str],
    status: str = "failed",
    message: Optional[str] = None,
    **extra: Any,
) -> dict[str, Any]:
    response: dict[str, Any] = {"status": status, "errorType": error_type, "error": error}
    if message:
        response["message"] = message
    response.update(extra)
    response["troubleshooting"] = troubleshooting
    return response


def _tx_fields(
    result: ExecutionResult, explorer_template: str
) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if result.tx_hash:
        fields["transactionHash"] = result.tx_hash
        fields["explorer"] = explorer_url(result.tx_hash, explorer_template)
    if result.receipt is not None:
        fields["blockNumber"] = str(result.receipt.block_number)
        fields["gasUsed"] = str(result.receipt.gas_used)
    return fields


def swap_details(
    protocol: str,
    token_in: TokenMetadata,
    token_out: TokenMetadata,
    amount_in: int,
    resolution: QuoteResolution,
    slippage_bps: int,
    deadline: int,
) -> dict[str, Any]:
    """The ``swap`` block: both legs, route, and the slippage actually applied."""
    quote = resolution.quote
    route: dict[str, Any] = {
        "path": quote.path,
        "hops": len(quote.route),
        "routeString": quote.route_description,
        "usedAPI": not quote.is_fallback,
        "prebuiltCalldata": quote.prebuilt is not None,
    }
    if quote.price_impact_bps is not None:
        route["priceImpactBps"] = quote.price_impact_bps
    return {
        "protocol": protocol,
        "tokenIn": {**_token(token_in), "amount": _human(amount_in, token_in.decimals)},
        "tokenOut": {
            **_token(token_out),
            "estimatedAmount": (
                _human(quote.amount_out, token_out.decimals)
                if quote.amount_out is not None
                else None
            ),
            "minAmount": _human(resolution.min_amount_out, token_out.decimals),
        },
        "route": route,
        "slippage": {
            "toleranceBps": slippage_bps,
            "minimumReceived": _human(resolution.min_amount_out, token_out.decimals),
            "autoCalculated": resolution.auto_calculated,
        },
        "deadline": str(deadline),
    }


def success(
    protocol: str,
    result: ExecutionResult,
    swap: dict[str, Any],
    wallet: str,
    explorer_template: str = DEFAULT_EXPLORER_TX_URL,
) -> dict[str, Any]:
    response: dict[str, Any] = {
        "status": "success",
        "message": f"Swap executed successfully on {protocol}",
    }
    response.update(_tx_fields(result, explorer_template))
    response["swap"] = swap
    response["wallet"] = wallet
    return response


def quote(
    protocol: str,
    token_in: TokenMetadata,
    token_out: TokenMetadata,
    resolution: QuoteResolution,
    slippage_bps: int,
) -> dict[str, Any]:
    q = resolution.quote
    return {
        "status": "success",
        "quote": {
            "protocol": protocol,
            "inputToken": {**_token(token_in), "amount": _human(q.amount_in, token_in.decimals)},
            "outputToken": {
                **_token(token_out),
                "estimatedAmount": _human(q.amount_out or 0, token_out.decimals),
                "estimatedAmountRaw": str(q.amount_out or 0),
            },
            "route": {
                "path": q.path,
                "hops": len(q.route),
                "routeString": q.route_description,
            },
            "pricing": {
                "priceImpactBps": q.price_impact_bps,
                "gasEstimate": str(q.gas_estimate) if q.gas_estimate is not None else None,
            },
            "slippage": {
                "toleranceBps": slippage_bps,
                "minimumReceived": _human(resolution.min_amount_out, token_out.decimals),
                "minimumReceivedRaw": str(resolution.min_amount_out),
            },
            "blockNumber": q.block_number,
        },
    }


def insufficient_balance(
    token: TokenMetadata, required: int, available: int
) -> dict[str, Any]:
    return _failure(
        "insufficient_balance",
        f"Insufficient {token.label} balance",
        [
            f"Deposit more {token.label} or reduce amountIn",
            "Check the balance with check_balance",
        ],
        token=token.address.checksum,
        required=_human(required, token.decimals),
        available=_human(available, token.decimals),
    )


def unsupported_pair(
    protocol: str,
    token_in: TokenMetadata,
    token_out: TokenMetadata,
    error: Exception | str,
) -> dict[str, Any]:
    return _failure(
        "unsupported_pair",
        f"Trading pair not supported on {protocol}",
        [
            "Verify token addresses are correct",
            f"Check if pair exists on {protocol} frontend",
            "Try other DEX protocols",
        ],
        message=str(error),
        tokenIn=f"{token_in.label} ({token_in.address.checksum})",
        tokenOut=f"{token_out.label} ({token_out.address.checksum})",
    )


def quote_unavailable(protocol: str, error: Exception | str) -> dict[str, Any]:
    return _failure(
        "quote_unavailable",
        f"{protocol} routing service unavailable",
        [
            "Retry in a few seconds",
            "Provide minAmountOut to allow a direct-route swap without a quote",
            "Try another DEX protocol",
        ],
        message=str(error),
    )


def protocol_disabled(protocol: str) -> dict[str, Any]:
    return _failure(
        "protocol_disabled",
        f"{protocol} is disabled",
        ["Enable the protocol in configuration", "Use list_protocols to see enabled DEXes"],
        status="error",
    )


def wallet_not_connected() -> dict[str, Any]:
    return _failure(
        "wallet_not_connected",
        "No wallet configured",
        ["Set PRIVATE_KEY in the environment or .env file"],
        status="error",
    )


def validation_error(message: str) -> dict[str, Any]:
    return _failure(
        "validation_error",
        "Invalid swap parameters",
        ["Check token addresses, amounts and slippage"],
        status="error",
        message=message,
    )


def approval_failed(
    token: TokenMetadata,
    result: ApprovalResult,
    explorer_template: str = DEFAULT_EXPLORER_TX_URL,
) -> dict[str, Any]:
    extra: dict[str, Any] = {
        "approvalStatus": result.status.value,
        "spender": result.state.spender.checksum,
        "required": _human(result.state.required_amount, token.decimals),
        "currentAllowance": _human(result.state.current_allowance, token.decimals),
    }
    if result.tx_hash:
        extra["transactionHash"] = result.tx_hash
        extra["explorer"] = explorer_url(result.tx_hash, explorer_template)
    return _failure(
        "approval_failed",
        f"Approval of {token.label} failed ({result.status.value})",
        [
            "Check the approval transaction on the explorer",
            "Ensure the wallet has native balance for gas",
            "Retry with approve_token",
        ],
        message=result.error,
        **extra,
    )


def simulation_failed(
    protocol: str, result: ExecutionResult, debug: dict[str, Any]
) -> dict[str, Any]:
    return _failure(
        "simulation_failed",
        f"Swap simulation on {protocol} failed; nothing was sent",
        [
            "Increase slippage or reduce the amount",
            "Re-quote; the price may have moved",
            "Verify allowance and balance",
        ],
        message=result.revert_reason or result.error,
        debug=debug,
    )


def transaction_reverted(
    protocol: str,
    result: ExecutionResult,
    debug: dict[str, Any],
    explorer_template: str = DEFAULT_EXPLORER_TX_URL,
) -> dict[str, Any]:
    return _failure(
        "transaction_reverted",
        f"Swap transaction reverted on {protocol}",
        [
            "Inspect the transaction on the explorer",
            "Increase slippage or extend the deadline",
        ],
        message=result.error,
        debug=debug,
        **_tx_fields(result, explorer_template),
    )


def receipt_timeout(
    protocol: str,
    result: ExecutionResult,
    explorer_template: str = DEFAULT_EXPLORER_TX_URL,
) -> dict[str, Any]:
    return _failure(
        "receipt_timeout",
        f"Swap on {protocol} was sent but not confirmed in time",
        [
            "Check the transaction on the explorer before retrying",
            "Do not resend until the pending transaction is resolved",
        ],
        message=result.error,
        **_tx_fields(result, explorer_template),
    )


def quote_comparison_failed(errors: dict[str, BaseException]) -> dict[str, Any]:
    return _failure(
        "quote_comparison_failed",
        "Could not quote the pair on every DEX",
        ["Retry the scan", "Check the pair trades on both DEXes"],
        errors={dex: str(err) for dex, err in errors.items()},
    )


def execution_error(
    error: Exception | str, protocol: Optional[str] = None
) -> dict[str, Any]:
    return _failure(
        "execution_error",
        str(error),
        [
            "Check your wallet balance",
            "Verify token allowances",
            "Try get_quote first to test parameters",
            f"Check {protocol or 'DEX'} frontend for comparison",
        ],
        status="error",
        message=str(error),
    )


def from_execution(
    protocol: str,
    result: ExecutionResult,
    swap: dict[str, Any],
    wallet: str,
    debug: dict[str, Any],
    explorer_template: str = DEFAULT_EXPLORER_TX_URL,
) -> dict[str, Any]:
    """Map an ``ExecutionResult`` to its envelope."""
    if result.success:
        return success(protocol, result, swap, wallet, explorer_template)
    if result.error_type == "simulation_failed":
        return simulation_failed(protocol, result, debug)
    if result.error_type == "transaction_reverted":
        return transaction_reverted(protocol, result, debug, explorer_template)
    if result.error_type == "receipt_timeout":
        return receipt_timeout(protocol, result, explorer_template)
    return execution_error(result.error or "transaction submission failed", protocol)
