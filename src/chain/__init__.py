from .client import ChainClient, GasPrice
from .errors import (
    BatchReadError,
    ChainError,
    ExecutionReverted,
    IncompleteRead,
    InsufficientFunds,
    NonceTooLow,
    ReplacementUnderpriced,
    RPCError,
    TransactionFailed,
)
from .multicall import BatchReader, Call, CallResult
from .transaction_builder import TransactionBuilder

__all__ = [
    "BatchReader",
    "Call",
    "CallResult",
    "ChainClient",
    "GasPrice",
    "TransactionBuilder",
    "BatchReadError",
    "ChainError",
    "ExecutionReverted",
    "IncompleteRead",
    "RPCError",
    "TransactionFailed",
    "InsufficientFunds",
    "NonceTooLow",
    "ReplacementUnderpriced",
]
