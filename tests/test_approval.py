from dataclasses import dataclass

from eth_abi import decode

from chain import abi
from chain.client import GasPrice
from chain.errors import NonceTooLow, TransactionFailed
from core.base_types import Address, TransactionReceipt
from core.swap_types import ApprovalStatus
from swap.approval import ApprovalManager

TOKEN = Address("0x" + "aa" * 20)
SPENDER = Address("0x11DA6463D6Cb5a03411Dbf5ab6f6bc3997Ac7428")
OWNER = Address("0x000000000000000000000000000000000000dead")


@dataclass
class _Signed:
    raw_transaction: bytes


class _FakeWallet:
    address = OWNER.checksum
    account_address = OWNER

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(tx)
        return _Signed(b"\x01")


def _receipt(status=True):
    return TransactionReceipt(
        tx_hash="0xapprove",
        block_number=5,
        status=status,
        gas_used=46_000,
        effective_gas_price=1,
        logs=[],
    )


class _FakeClient:
    def __init__(self, wait_error=None, send_error=None):
        self._wait_error = wait_error
        self._send_error = send_error
        self.sent = 0
        self.waits = []

    def estimate_gas(self, tx):
        return 50_000

    def get_gas_price(self):
        return GasPrice(base_fee=100, priority_fee=1)

    def get_nonce(self, address):
        return 0

    def send_transaction(self, raw):
        if self._send_error is not None:
            raise self._send_error
        self.sent += 1
        return "0xapprove"

    def wait_for_receipt(self, tx_hash, timeout=60, confirmations=1):
        self.waits.append({"timeout": timeout, "confirmations": confirmations})
        if self._wait_error is not None:
            raise self._wait_error
        return _receipt()


def _manager(client, wallet=None):
    return ApprovalManager(client, wallet or _FakeWallet(), chain_id=1329)


def test_sufficient_allowance_sends_nothing():
    client = _FakeClient()
    result = _manager(client).ensure_allowance(TOKEN, OWNER, SPENDER, 1000, 1000)
    assert result.status is ApprovalStatus.SUFFICIENT
    assert result.ok
    assert client.sent == 0


def test_approves_exact_amount_and_waits_two_confirmations():
    client = _FakeClient()
    wallet = _FakeWallet()
    result = _manager(client, wallet).ensure_allowance(TOKEN, OWNER, SPENDER, 1000, 0)

    assert result.status is ApprovalStatus.CONFIRMED
    assert result.tx_hash == "0xapprove"
    assert client.waits == [{"timeout": 45, "confirmations": 2}]

    tx = wallet.signed[0]
    assert tx["to"] == TOKEN.checksum
    data = bytes.fromhex(tx["data"][2:])
    assert data[:4] == abi.selector("approve(address,uint256)")
    spender, amount = decode(["address", "uint256"], data[4:])
    assert Address(spender) == SPENDER
    assert amount == 1000
    assert tx["gas"] == int(50_000 * 1.2)


def test_reverted_approval_is_distinct_from_timeout():
    reverted = _manager(
        _FakeClient(wait_error=TransactionFailed("0xapprove", _receipt(False)))
    ).ensure_allowance(TOKEN, OWNER, SPENDER, 1000, 0)
    assert reverted.status is ApprovalStatus.REVERTED
    assert reverted.tx_hash == "0xapprove"
    assert not reverted.ok

    timed_out = _manager(
        _FakeClient(wait_error=TimeoutError("45s"))
    ).ensure_allowance(TOKEN, OWNER, SPENDER, 1000, 0)
    assert timed_out.status is ApprovalStatus.TIMED_OUT
    assert timed_out.tx_hash == "0xapprove"


def test_submission_failure_has_no_hash():
    result = _manager(
        _FakeClient(send_error=NonceTooLow("nonce too low"))
    ).ensure_allowance(TOKEN, OWNER, SPENDER, 1000, 0)
    assert result.status is ApprovalStatus.SUBMISSION_FAILED
    assert result.tx_hash is None
    assert "nonce too low" in result.error


def test_standalone_approve():
    client = _FakeClient()
    result = _manager(client).approve(TOKEN, SPENDER, 5)
    assert result.status is ApprovalStatus.CONFIRMED
    assert result.state.required_amount == 5
    assert client.sent == 1
