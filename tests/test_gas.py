import pytest

from chain.client import GasPrice
from chain.errors import ExecutionReverted
from core.base_types import Address
from core.swap_types import Hop, Quote
from swap.gas import GasPlanner
from swap.protocols import DRAGONSWAP, SAILOR

AA = Address("0x" + "aa" * 20)
BB = Address("0x" + "bb" * 20)
CC = Address("0x" + "cc" * 20)


class _FakeClient:
    def __init__(self, base_fee=1_000, priority_fee=7):
        self.gas = GasPrice(base_fee=base_fee, priority_fee=priority_fee)
        self.price_reads = 0

    def get_gas_price(self):
        self.price_reads += 1
        return self.gas


def _quote(gas_estimate=None, multi_hop=False, max_fee=None, priority=None):
    route = (Hop(AA, BB, 3000), Hop(BB, CC, 500)) if multi_hop else (Hop(AA, CC, 3000),)
    return Quote(
        protocol="sailor",
        token_in=AA,
        token_out=CC,
        amount_in=1,
        amount_out=1,
        route=route,
        gas_estimate=gas_estimate,
        max_fee_per_gas=max_fee,
        max_priority_fee_per_gas=priority,
    )


def _fail_estimate():
    raise AssertionError("live estimate should not run")


def test_override_wins():
    plan = GasPlanner(_FakeClient()).plan(
        SAILOR, _quote(gas_estimate=100_000), gas_limit_override=250_000,
        estimate=_fail_estimate,
    )
    assert plan.gas_limit == 250_000
    assert plan.gas_limit_source == "override"


@pytest.mark.parametrize(
    "protocol, expected", [(DRAGONSWAP, 150_000), (SAILOR, 300_000)]
)
def test_quote_estimate_gets_protocol_buffer(protocol, expected):
    plan = GasPlanner(_FakeClient()).plan(
        protocol, _quote(gas_estimate=100_000), estimate=_fail_estimate
    )
    assert plan.gas_limit == expected
    assert plan.gas_limit_source == "quote"


def test_live_estimate_with_buffer():
    plan = GasPlanner(_FakeClient()).plan(SAILOR, _quote(), estimate=lambda: 100_000)
    assert plan.gas_limit == 120_000
    assert plan.gas_limit_source == "estimate"


@pytest.mark.parametrize(
    "protocol, multi_hop, expected",
    [
        (DRAGONSWAP, False, 300_000),
        (SAILOR, False, 350_000),
        (SAILOR, True, 400_000),
    ],
)
def test_fallback_constants(protocol, multi_hop, expected):
    def _reverts():
        raise ExecutionReverted("execution reverted")

    plan = GasPlanner(_FakeClient()).plan(
        protocol, _quote(multi_hop=multi_hop), estimate=_reverts
    )
    assert plan.gas_limit == expected
    assert plan.gas_limit_source == "fallback"


def test_fees_from_base_fee():
    plan = GasPlanner(_FakeClient(base_fee=1_000)).plan(SAILOR, _quote())
    assert plan.max_priority_fee_per_gas == 100
    assert plan.max_fee_per_gas == 2_000


def test_gas_price_override_replaces_base_fee():
    client = _FakeClient()
    plan = GasPlanner(client).plan(SAILOR, _quote(), gas_price_override=50)
    assert plan.max_priority_fee_per_gas == 5
    assert plan.max_fee_per_gas == 100
    assert client.price_reads == 0


def test_quote_fee_hints_win():
    client = _FakeClient()
    plan = GasPlanner(client).plan(DRAGONSWAP, _quote(max_fee=900, priority=30))
    assert plan.max_fee_per_gas == 900
    assert plan.max_priority_fee_per_gas == 30
    assert client.price_reads == 0


def test_priority_hint_only_doubles_for_max_fee():
    plan = GasPlanner(_FakeClient()).plan(DRAGONSWAP, _quote(priority=40))
    assert plan.max_priority_fee_per_gas == 40
    assert plan.max_fee_per_gas == 80


def test_max_fee_never_below_priority():
    plan = GasPlanner(_FakeClient()).plan(DRAGONSWAP, _quote(max_fee=10, priority=30))
    assert plan.max_fee_per_gas >= plan.max_priority_fee_per_gas


def test_gas_price_override_beats_quote_hints():
    client = _FakeClient()
    plan = GasPlanner(client).plan(
        DRAGONSWAP,
        _quote(max_fee=500 * 10**9, priority=50 * 10**9),
        gas_price_override=10 * 10**9,
    )
    assert plan.max_fee_per_gas == 20 * 10**9
    assert plan.max_priority_fee_per_gas == 10**9
    assert client.price_reads == 0
