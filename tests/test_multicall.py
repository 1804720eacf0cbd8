import pytest
from eth_abi import decode, encode

from chain import abi
from chain.errors import BatchReadError, IncompleteRead, RPCError
from chain.multicall import BatchReader
from core.base_types import Address
from core.swap_types import PairInfoField

TOKEN_IN = Address("0x00000000000000000000000000000000000000aa")
TOKEN_OUT = Address("0x00000000000000000000000000000000000000bb")
OWNER = Address("0x000000000000000000000000000000000000dead")
ROUTER = Address("0x11DA6463D6Cb5a03411Dbf5ab6f6bc3997Ac7428")


def _uint(value):
    return encode(["uint256"], [value])


def _string(value):
    return encode(["string"], [value])


class _FakeClient:
    """Answers aggregate3 with canned (success, returnData) per sub-call."""

    def __init__(self, results=None, error=None, raw=None):
        self._results = results or []
        self._error = error
        self._raw = raw
        self.requests = []

    def call(self, tx, block="latest"):
        self.requests.append(tx)
        if self._error is not None:
            raise self._error
        if self._raw is not None:
            return self._raw
        return encode(["(bool,bytes)[]"], [self._results])


def _pair_results(balance=50, allowance=0, fail=()):
    values = [
        ("tokenIn.decimals", _uint(18)),
        ("tokenIn.symbol", _string("WSEI")),
        ("tokenIn.name", _string("Wrapped SEI")),
        ("tokenOut.decimals", _uint(6)),
        ("tokenOut.symbol", b"USDC".ljust(32, b"\x00")),
        ("tokenOut.name", _string("USD Coin")),
        ("tokenIn.balanceOf", _uint(balance)),
        ("tokenIn.allowance", _uint(allowance)),
    ]
    return [(key not in fail, data if key not in fail else b"") for key, data in values]


def test_read_pair_info_single_round_trip():
    client = _FakeClient(_pair_results(balance=50, allowance=7))
    info = BatchReader(client).read_pair_info(TOKEN_IN, TOKEN_OUT, OWNER, ROUTER)

    assert len(client.requests) == 1
    payload = client.requests[0].data
    assert payload[:4] == abi.selector("aggregate3((address,bool,bytes)[])")
    (calls,) = decode(["(address,bool,bytes)[]"], payload[4:])
    assert len(calls) == 8
    assert all(allow_failure for _, allow_failure, _ in calls)

    assert info.complete
    assert info.token_in.decimals == 18
    assert info.token_in.symbol == "WSEI"
    assert info.token_out.decimals == 6
    assert info.token_out.symbol == "USDC"
    assert info.balance == 50
    assert info.allowance == 7


def test_failed_sub_call_is_a_field_error():
    client = _FakeClient(_pair_results(fail=("tokenOut.name",)))
    info = BatchReader(client).read_pair_info(TOKEN_IN, TOKEN_OUT, OWNER, ROUTER)

    assert not info.complete
    assert info.token_out.name is None
    assert info.errors["tokenOut.name"].reason == "call reverted"
    assert info.balance == 50
    info.require([PairInfoField.BALANCE.value])
    with pytest.raises(IncompleteRead, match="tokenOut.name"):
        info.require()


def test_undecodable_sub_call_is_a_field_error():
    results = _pair_results()
    results[0] = (True, b"\x01\x02")
    info = BatchReader(_FakeClient(results)).read_pair_info(
        TOKEN_IN, TOKEN_OUT, OWNER, ROUTER
    )
    assert info.token_in.decimals is None
    assert info.errors["tokenIn.decimals"].reason.startswith("decode failed")


def test_whole_batch_failure_raises():
    reader = BatchReader(_FakeClient(error=RPCError("HTTP 502")))
    with pytest.raises(BatchReadError):
        reader.read_pair_info(TOKEN_IN, TOKEN_OUT, OWNER, ROUTER)


def test_result_count_mismatch_raises():
    reader = BatchReader(_FakeClient(results=[(True, _uint(1))]))
    with pytest.raises(BatchReadError, match="1 results for 8 calls"):
        reader.read_pair_info(TOKEN_IN, TOKEN_OUT, OWNER, ROUTER)


def test_malformed_response_raises():
    reader = BatchReader(_FakeClient(raw=b"\x00"))
    with pytest.raises(BatchReadError, match="Malformed"):
        reader.read_tokens([TOKEN_IN])


def test_read_allowance():
    reader = BatchReader(_FakeClient([(True, _uint(1234))]))
    assert reader.read_allowance(TOKEN_IN, OWNER, ROUTER) == 1234


def test_read_allowance_failure_raises():
    reader = BatchReader(_FakeClient([(False, b"")]))
    with pytest.raises(BatchReadError, match="allowance read failed"):
        reader.read_allowance(TOKEN_IN, OWNER, ROUTER)


def test_read_balance():
    reader = BatchReader(
        _FakeClient(
            [
                (True, _uint(6)),
                (True, _string("USDC")),
                (True, _string("USD Coin")),
                (True, _uint(2_500_000)),
            ]
        )
    )
    meta, balance = reader.read_balance(TOKEN_OUT, OWNER)
    assert meta.decimals == 6
    assert balance.ok
    assert balance.value == 2_500_000
