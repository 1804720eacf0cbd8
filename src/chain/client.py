"""EVM JSON-RPC client with retries and error classification."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

from core.base_types import (
    Address,
    TokenAmount,
    TransactionReceipt,
    TransactionRequest,
    hex_to_bytes,
)

from .abi import decode_revert_reason
from .errors import (
    ChainError,
    ExecutionReverted,
    InsufficientFunds,
    NonceTooLow,
    ReplacementUnderpriced,
    RPCError,
    TransactionFailed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GasPrice:
    """Current fee market snapshot."""

    base_fee: int
    priority_fee: int


class ChainClient:
    """
    JSON-RPC client used by every pipeline stage that touches the chain.

    Features:
    - Automatic retry with exponential backoff on transport errors
    - Multiple RPC endpoint fallback
    - Request timing/logging
    - Proper error classification (reverts, nonce, funds)
    """

    def __init__(
        self,
        rpc_urls: list[str],
        timeout: int = 30,
        max_retries: int = 3,
    ):
        if not rpc_urls:
            raise ValueError("rpc_urls must not be empty")
        self._rpc_urls = list(rpc_urls)
        self._timeout = timeout
        self._max_retries = max_retries
        self._session = requests.Session()

    def get_balance(self, address: Address, symbol: str = "SEI") -> TokenAmount:
        balance_hex = self._rpc_call("eth_getBalance", [address.checksum, "latest"])
        return TokenAmount(raw=_hex_to_int(balance_hex), decimals=18, symbol=symbol)

    def get_nonce(self, address: Address, block: str = "pending") -> int:
        nonce_hex = self._rpc_call("eth_getTransactionCount", [address.checksum, block])
        return _hex_to_int(nonce_hex)

    def get_block_number(self) -> int:
        return _hex_to_int(self._rpc_call("eth_blockNumber", []))

    def get_gas_price(self) -> GasPrice:
        block = self._rpc_call("eth_getBlockByNumber", ["latest", False])
        base_fee = _hex_to_int(block.get("baseFeePerGas", "0x0"))
        priority = self._rpc_call("eth_maxPriorityFeePerGas", [])
        return GasPrice(base_fee=base_fee, priority_fee=_hex_to_int(priority))

    def estimate_gas(self, tx: TransactionRequest) -> int:
        gas_hex = self._rpc_call("eth_estimateGas", [tx.to_call_dict()])
        return _hex_to_int(gas_hex)

    def call(self, tx: TransactionRequest, block: str = "latest") -> bytes:
        result = self._rpc_call("eth_call", [tx.to_call_dict(), block])
        if not isinstance(result, str):
            raise RPCError("Expected hex string result")
        return hex_to_bytes(result)

    def send_transaction(self, signed_tx: bytes) -> str:
        tx_hash = self._rpc_call("eth_sendRawTransaction", [f"0x{signed_tx.hex()}"])
        return str(tx_hash)

    def get_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        data = self._rpc_call("eth_getTransactionReceipt", [tx_hash])
        if data is None:
            return None
        return TransactionReceipt.from_rpc(data)

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 60,
        poll_interval: float = 1.0,
        confirmations: int = 1,
    ) -> TransactionReceipt:
        """
        Poll until the receipt has ``confirmations`` blocks on top of it.

        Raises ``TransactionFailed`` for a reverted receipt and ``TimeoutError``
        when the deadline passes first.
        """
        if confirmations < 1:
            raise ValueError("confirmations must be at least 1")
        deadline = time.monotonic() + timeout
        receipt: Optional[TransactionReceipt] = None
        while time.monotonic() < deadline:
            if receipt is None:
                receipt = self.get_receipt(tx_hash)
                if receipt is not None and receipt.status is False:
                    raise TransactionFailed(tx_hash, receipt)
            if receipt is not None:
                if confirmations == 1:
                    return receipt
                head = self.get_block_number()
                if head - receipt.block_number + 1 >= confirmations:
                    return receipt
            time.sleep(poll_interval)
        raise TimeoutError(
            f"Timed out after {timeout}s waiting for {confirmations} "
            f"confirmation(s) of {tx_hash}"
        )

    def _rpc_call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        last_error: Optional[Exception] = None
        for url in self._rpc_urls:
            for attempt in range(self._max_retries):
                start = time.perf_counter()
                try:
                    response = self._session.post(
                        url,
                        json=payload,
                        timeout=self._timeout,
                    )
                    elapsed = time.perf_counter() - start
                    logger.info("rpc %s %s in %.3fs", method, url, elapsed)
                    if response.status_code >= 400:
                        raise RPCError(f"HTTP {response.status_code} from {url}")
                    data = response.json()
                    if "error" in data:
                        self._raise_rpc_error(data["error"])
                    return data.get("result")
                except (requests.Timeout, requests.ConnectionError) as exc:
                    last_error = exc
                    self._sleep_backoff(attempt)
                except RPCError:
                    raise
                except json.JSONDecodeError as exc:
                    last_error = exc
                    self._sleep_backoff(attempt)
        raise ChainError(f"RPC request {method} failed") from last_error

    def _sleep_backoff(self, attempt: int) -> None:
        delay = 0.5 * (2**attempt)
        time.sleep(delay)

    def _raise_rpc_error(self, error: dict) -> None:
        message = str(error.get("message", "RPC error"))
        code = error.get("code")
        data = error.get("data")
        lowered = message.lower()
        if "insufficient funds" in lowered:
            raise InsufficientFunds(message)
        if "nonce too low" in lowered:
            raise NonceTooLow(message)
        if "replacement transaction underpriced" in lowered:
            raise ReplacementUnderpriced(message)
        if "revert" in lowered:
            reason = decode_revert_reason(data)
            raise ExecutionReverted(message, reason=reason, code=code, data=data)
        raise RPCError(message, code=code, data=data)


def _hex_to_int(value: str) -> int:
    if not isinstance(value, str):
        raise RPCError("Expected hex string result")
    return int(value, 16)
