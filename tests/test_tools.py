import pytest

from chain.multicall import CallResult
from config import SwapSettings
from core.base_types import Address, TokenAmount
from core.swap_types import FieldReadError, TokenMetadata
from swap.protocols import SAILOR
from tools import ParameterError, SwapTools, swap_request_from

TOKEN = Address("0x" + "aa" * 20)
OWNER = Address("0x000000000000000000000000000000000000dead")


class _FakeClient:
    def get_balance(self, address, symbol="SEI"):
        return TokenAmount(raw=3 * 10**18, decimals=18, symbol=symbol)


class _FakeReader:
    def __init__(self, ok=True):
        self.ok = ok

    def read_balance(self, token, owner):
        meta = TokenMetadata(token, 6, "USDC", "USD Coin")
        if self.ok:
            return meta, CallResult("balance", token, value=1_250_000)
        error = FieldReadError("balance", token.checksum, "call reverted")
        return meta, CallResult("balance", token, error=error)


def _tools(settings=None, reader=None):
    tools = SwapTools(settings or SwapSettings(), wallet=None, client=_FakeClient())
    if reader is not None:
        tools._reader = reader
    return tools


def test_swap_request_from_camel_case_params():
    request = swap_request_from(
        {
            "tokenIn": TOKEN.checksum,
            "tokenOut": OWNER.checksum,
            "amountIn": 5,
            "slippageBps": "150",
            "gasLimit": 400000,
        }
    )
    assert request.amount_in == "5"
    assert request.slippage_bps == 150
    assert request.deadline_minutes == 20
    assert request.gas_limit_override == 400_000
    assert request.min_amount_out is None


def test_float_amount_is_rejected():
    with pytest.raises(ParameterError, match="decimal string"):
        swap_request_from({"tokenIn": "a", "tokenOut": "b", "amountIn": 1.5})


@pytest.mark.asyncio
async def test_list_protocols():
    result = await _tools().dispatch("list_protocols", {})
    assert result["status"] == "success"
    assert result["chainId"] == 1329
    keys = [p["key"] for p in result["protocols"]]
    assert keys == ["dragonswap", "sailor"]
    assert result["protocols"][0]["prebuiltCalldata"] is True


@pytest.mark.asyncio
async def test_dispatch_maps_parameter_problems_to_validation_errors():
    tools = _tools()

    unknown = await tools.dispatch("bridge", {})
    assert unknown["errorType"] == "validation_error"

    missing = await tools.dispatch("get_quote", {"tokenOut": TOKEN.checksum})
    assert missing["errorType"] == "validation_error"
    assert missing["message"] == "tokenIn is required"

    bad_protocol = await tools.dispatch(
        "execute_swap",
        {"protocol": "uniswap", "tokenIn": TOKEN.checksum, "tokenOut": OWNER.checksum},
    )
    assert bad_protocol["errorType"] == "validation_error"
    assert bad_protocol["message"] == "Unknown protocol: uniswap"


@pytest.mark.asyncio
async def test_write_tools_need_a_wallet():
    tools = _tools()
    params = {"tokenIn": TOKEN.checksum, "tokenOut": OWNER.checksum, "amountIn": "1"}

    swap = await tools.dispatch("execute_swap", params)
    assert swap["errorType"] == "wallet_not_connected"
    approve = await tools.dispatch(
        "approve_token", {"tokenAddress": TOKEN.checksum, "amount": "1"}
    )
    assert approve["errorType"] == "wallet_not_connected"
    arb = await tools.dispatch("execute_arbitrage", params)
    assert arb["errorType"] == "wallet_not_connected"
    balance = await tools.dispatch("check_balance", {})
    assert balance["errorType"] == "wallet_not_connected"


@pytest.mark.asyncio
async def test_disabled_protocol_is_reported():
    settings = SwapSettings(protocols=(SAILOR.with_overrides(enabled=False),))
    tools = SwapTools(settings, wallet=None, client=_FakeClient())
    result = await tools.dispatch(
        "get_quote",
        {"protocol": "sailor", "tokenIn": TOKEN.checksum, "tokenOut": OWNER.checksum, "amountIn": "1"},
    )
    assert result["errorType"] == "protocol_disabled"


@pytest.mark.asyncio
async def test_check_native_balance():
    result = await _tools().dispatch("check_balance", {"address": OWNER.checksum})
    assert result["status"] == "success"
    assert result["balance"] == "3"
    assert result["balanceRaw"] == str(3 * 10**18)
    assert result["token"]["native"] is True


@pytest.mark.asyncio
async def test_check_token_balance():
    tools = _tools(reader=_FakeReader())
    result = await tools.dispatch(
        "check_balance", {"address": OWNER.checksum, "tokenAddress": TOKEN.checksum}
    )
    assert result["balance"] == "1.25"
    assert result["token"]["symbol"] == "USDC"


@pytest.mark.asyncio
async def test_failed_token_balance_read():
    tools = _tools(reader=_FakeReader(ok=False))
    result = await tools.dispatch(
        "check_balance", {"address": OWNER.checksum, "tokenAddress": TOKEN.checksum}
    )
    assert result["errorType"] == "execution_error"
    assert "call reverted" in result["message"]
