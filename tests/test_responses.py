import json

from core.base_types import Address, TransactionReceipt
from core.swap_types import (
    ApprovalResult,
    ApprovalState,
    ApprovalStatus,
    ExecutionResult,
    Hop,
    Quote,
    QuoteResolution,
    TokenMetadata,
)
from swap import responses

AA = Address("0x" + "aa" * 20)
BB = Address("0x" + "bb" * 20)
WSEI = TokenMetadata(AA, 18, "WSEI", "Wrapped SEI")
USDC = TokenMetadata(BB, 6, "USDC", "USD Coin")


def _resolution():
    quote = Quote(
        protocol="dragonswap",
        token_in=AA,
        token_out=BB,
        amount_in=10**18,
        amount_out=2_500_000,
        route=(Hop(AA, BB, 3000),),
        price_impact_bps=12,
        route_description="WSEI -> USDC",
    )
    return QuoteResolution(quote, 2_450_000, auto_calculated=True)


def _receipt():
    return TransactionReceipt("0xabc", 77, True, 150_000, 1, [])


def test_success_envelope():
    swap = responses.swap_details("DragonSwap", WSEI, USDC, 10**18, _resolution(), 200, 1700)
    result = responses.success(
        "DragonSwap",
        ExecutionResult(success=True, tx_hash="0xabc", receipt=_receipt()),
        swap,
        "0xwallet",
    )
    assert result["status"] == "success"
    assert result["transactionHash"] == "0xabc"
    assert result["blockNumber"] == "77"
    assert result["gasUsed"] == "150000"
    assert result["explorer"] == "https://seitrace.com/tx/0xabc"
    assert result["swap"]["tokenIn"]["amount"] == "1"
    assert result["swap"]["tokenOut"]["minAmount"] == "2.45"
    assert result["swap"]["slippage"]["autoCalculated"] is True
    json.dumps(result)


def test_insufficient_balance_reports_exact_amounts():
    result = responses.insufficient_balance(WSEI, 100 * 10**18, 50 * 10**18)
    assert result["status"] == "failed"
    assert result["errorType"] == "insufficient_balance"
    assert result["required"] == "100"
    assert result["available"] == "50"
    assert result["troubleshooting"]


def test_unsupported_pair_names_tokens():
    result = responses.unsupported_pair("Sailor", WSEI, USDC, "no route")
    assert result["errorType"] == "unsupported_pair"
    assert result["tokenIn"] == f"WSEI ({AA.checksum})"
    assert result["message"] == "no route"


def test_error_statuses():
    assert responses.protocol_disabled("Sailor")["status"] == "error"
    assert responses.wallet_not_connected()["errorType"] == "wallet_not_connected"
    assert responses.validation_error("bad")["message"] == "bad"
    generic = responses.execution_error(RuntimeError("boom"), "Sailor")
    assert generic["status"] == "error"
    assert generic["message"] == "boom"
    assert "Check Sailor frontend for comparison" in generic["troubleshooting"]


def test_approval_failed_keeps_hash():
    state = ApprovalState(current_allowance=0, required_amount=10**18, spender=BB)
    result = responses.approval_failed(
        WSEI, ApprovalResult(ApprovalStatus.TIMED_OUT, state, tx_hash="0xap", error="45s")
    )
    assert result["approvalStatus"] == "timed_out"
    assert result["transactionHash"] == "0xap"
    assert result["required"] == "1"


def test_from_execution_maps_error_types():
    debug = {"slippageBps": 200}
    swap = {}
    reverted = responses.from_execution(
        "Sailor",
        ExecutionResult(
            success=False,
            tx_hash="0xr",
            receipt=_receipt(),
            error_type="transaction_reverted",
            error="reverted",
        ),
        swap,
        "0xw",
        debug,
    )
    assert reverted["errorType"] == "transaction_reverted"
    assert reverted["transactionHash"] == "0xr"
    assert reverted["blockNumber"] == "77"
    assert reverted["debug"] == debug

    simulated = responses.from_execution(
        "Sailor",
        ExecutionResult(success=False, revert_reason="STF", error_type="simulation_failed"),
        swap,
        "0xw",
        debug,
    )
    assert simulated["errorType"] == "simulation_failed"
    assert simulated["message"] == "STF"
    assert "transactionHash" not in simulated

    timeout = responses.from_execution(
        "Sailor",
        ExecutionResult(success=False, tx_hash="0xt", error_type="receipt_timeout"),
        swap,
        "0xw",
        debug,
    )
    assert timeout["errorType"] == "receipt_timeout"
    assert timeout["transactionHash"] == "0xt"

    failed = responses.from_execution(
        "Sailor",
        ExecutionResult(success=False, error_type="execution_failed", error="nonce too low"),
        swap,
        "0xw",
        debug,
    )
    assert failed["errorType"] == "execution_error"
    assert failed["message"] == "nonce too low"
