from decimal import Decimal

import pytest

from core.base_types import Address, TokenAmount, TransactionReceipt, TransactionRequest


def test_address_invalid_raises():
    with pytest.raises(ValueError, match="Invalid EVM address"):
        Address("invalid")


def test_address_case_insensitive_equality():
    lower = Address("0x000000000000000000000000000000000000dead")
    upper = Address("0x000000000000000000000000000000000000DEAD")
    assert lower == upper
    assert hash(lower) == hash(upper)
    assert lower == "0x000000000000000000000000000000000000DEAD"


def test_token_amount_from_human_raw():
    amount = TokenAmount.from_human("1.5", 18)
    assert amount.raw == 1_500_000_000_000_000_000


def test_token_amount_rejects_float_input():
    with pytest.raises(TypeError, match="not float"):
        TokenAmount.from_human(1.5, 18)


def test_token_amount_rejects_excess_precision():
    with pytest.raises(ValueError, match="more precision"):
        TokenAmount.from_human("0.0000001", 6)


def test_token_amount_rejects_garbage():
    with pytest.raises(ValueError, match="Invalid decimal amount"):
        TokenAmount.from_human("abc", 18)


def test_token_amount_decimal_input():
    amount = TokenAmount.from_human(Decimal("2"), 6)
    assert amount.raw == 2_000_000


def test_token_amount_format_strips_trailing_zeros():
    assert TokenAmount(raw=100 * 10**18, decimals=18).format() == "100"
    assert TokenAmount(raw=1_500_000, decimals=6).format() == "1.5"
    assert TokenAmount(raw=0, decimals=6).format() == "0"


def test_transaction_request_dicts():
    tx = TransactionRequest(
        to=Address("0x000000000000000000000000000000000000dead"),
        value=TokenAmount(raw=5, decimals=18),
        data=b"\x01",
        sender=Address("0x000000000000000000000000000000000000beef"),
        nonce=3,
        gas_limit=21000,
        max_fee_per_gas=10,
        max_priority_fee=1,
        chain_id=1329,
    )
    signable = tx.to_dict()
    assert signable["value"] == 5
    assert signable["gas"] == 21000
    assert signable["maxFeePerGas"] == 10
    assert signable["maxPriorityFeePerGas"] == 1
    assert signable["chainId"] == 1329
    assert "from" not in signable

    call = tx.to_call_dict()
    assert call["value"] == "0x5"
    assert call["data"] == "0x01"
    assert call["from"] == Address("0x000000000000000000000000000000000000beef").checksum


def test_receipt_from_rpc():
    receipt = TransactionReceipt.from_rpc(
        {
            "transactionHash": "0xabc",
            "blockNumber": "0x10",
            "status": "0x1",
            "gasUsed": "0x5208",
            "effectiveGasPrice": "0x2",
            "logs": [],
        }
    )
    assert receipt.block_number == 16
    assert receipt.status is True
