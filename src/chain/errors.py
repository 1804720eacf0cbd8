"""Chain-specific exceptions for RPC, batched reads and transaction failures."""

from __future__ import annotations

from typing import Optional

from core.base_types import TransactionReceipt
from core.swap_types import FieldReadError


class ChainError(Exception):
    """Base class for chain errors."""


class RPCError(ChainError):
    """RPC request failed."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.code = code
        self.data = data
        super().__init__(message)


class ExecutionReverted(RPCError):
    """eth_call or eth_estimateGas reverted; ``reason`` is decoded when possible."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        code: Optional[int] = None,
        data: Optional[object] = None,
    ):
        self.reason = reason
        super().__init__(message, code=code, data=data)


class TransactionFailed(ChainError):
    """Transaction reverted."""

    def __init__(self, tx_hash: str, receipt: TransactionReceipt):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"Transaction {tx_hash} reverted")


class InsufficientFunds(ChainError):
    """Not enough balance for transaction."""


class NonceTooLow(ChainError):
    """Nonce already used."""


class ReplacementUnderpriced(ChainError):
    """Replacement transaction gas too low."""


class BatchReadError(ChainError):
    """The aggregated multicall read failed as a whole."""


class IncompleteRead(ChainError):
    """Some sub-calls of a batched read failed."""

    def __init__(self, errors: dict[str, FieldReadError]):
        self.errors = errors
        details = ", ".join(
            f"{name} ({err.reason})" for name, err in sorted(errors.items())
        )
        super().__init__(f"Failed to read: {details}")
