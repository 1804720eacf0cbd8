"""Simulate, submit and confirm swap transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from chain import abi
from chain.client import ChainClient
from chain.errors import ChainError, ExecutionReverted, TransactionFailed
from chain.transaction_builder import TransactionBuilder
from core.base_types import Address, TokenAmount
from core.swap_types import ExecutionResult, GasPlan
from core.wallet_manager import WalletManager

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT_SECONDS = 60


@dataclass(frozen=True)
class ContractCall:
    """Structured call: the calldata is ABI-encoded from ``signature`` and ``args``."""

    contract: Address
    signature: str
    arg_types: list[str]
    args: list[Any] = field(default_factory=list)
    value: int = 0

    @property
    def to(self) -> Address:
        return self.contract

    @property
    def data(self) -> bytes:
        return abi.encode_call(self.signature, self.arg_types, self.args)


@dataclass(frozen=True)
class RawCall:
    """Pre-built calldata from a routing service."""

    to: Address
    data: bytes
    value: int = 0


CallTarget = Union[ContractCall, RawCall]


class TransactionExecutor:
    """
    Runs one transaction attempt end to end.

    With ``simulate_before_send`` (the default) the call is first replayed
    with ``eth_call`` from the wallet and a failing simulation stops the
    attempt before anything is signed. Outcomes are returned, not raised:
    a revert keeps its hash and block, a submission error has no hash.
    """

    def __init__(
        self,
        client: ChainClient,
        wallet: WalletManager,
        chain_id: int,
        simulate_before_send: bool = True,
        receipt_timeout: float = RECEIPT_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._wallet = wallet
        self._chain_id = chain_id
        self._simulate = simulate_before_send
        self._receipt_timeout = receipt_timeout

    def _builder(self, target: CallTarget) -> TransactionBuilder:
        return (
            TransactionBuilder(self._client, self._wallet)
            .to(target.to)
            .data(target.data)
            .value(TokenAmount(raw=target.value, decimals=18))
            .chain_id(self._chain_id)
        )

    def estimate_gas(self, target: CallTarget) -> int:
        """Live ``eth_estimateGas`` for ``target``; raises ``ChainError``."""
        return self._client.estimate_gas(self._builder(target).call_request())

    def simulate(self, target: CallTarget) -> ExecutionResult | None:
        """``None`` when the call would succeed, otherwise the failed result."""
        try:
            self._builder(target).simulate()
        except ExecutionReverted as exc:
            logger.warning("Simulation reverted: %s (reason=%s)", exc, exc.reason)
            return ExecutionResult(
                success=False,
                revert_reason=exc.reason,
                error_type="simulation_failed",
                error=str(exc),
            )
        except ChainError as exc:
            logger.warning("Simulation failed: %s", exc)
            return ExecutionResult(
                success=False, error_type="simulation_failed", error=str(exc)
            )
        return None

    def execute(self, target: CallTarget, gas_plan: GasPlan) -> ExecutionResult:
        if self._simulate:
            failed = self.simulate(target)
            if failed is not None:
                return failed

        builder = self._builder(target).with_gas_plan(gas_plan)
        try:
            tx_hash = builder.send()
        except ChainError as exc:
            logger.error("Transaction submission failed: %s", exc)
            return ExecutionResult(
                success=False, error_type="execution_failed", error=str(exc)
            )
        logger.info(
            "Submitted %s to %s gas_limit=%d max_fee=%d",
            tx_hash,
            target.to.checksum,
            gas_plan.gas_limit,
            gas_plan.max_fee_per_gas,
        )

        try:
            receipt = self._client.wait_for_receipt(
                tx_hash, timeout=self._receipt_timeout
            )
        except TransactionFailed as exc:
            logger.error(
                "Transaction %s reverted in block %d", tx_hash, exc.receipt.block_number
            )
            return ExecutionResult(
                success=False,
                tx_hash=tx_hash,
                receipt=exc.receipt,
                error_type="transaction_reverted",
                error=str(exc),
            )
        except TimeoutError as exc:
            logger.warning("No receipt for %s: %s", tx_hash, exc)
            return ExecutionResult(
                success=False,
                tx_hash=tx_hash,
                error_type="receipt_timeout",
                error=str(exc),
            )
        except ChainError as exc:
            logger.warning("Receipt polling for %s failed: %s", tx_hash, exc)
            return ExecutionResult(
                success=False,
                tx_hash=tx_hash,
                error_type="receipt_timeout",
                error=str(exc),
            )

        logger.info(
            "Confirmed %s in block %d gas_used=%d",
            tx_hash,
            receipt.block_number,
            receipt.gas_used,
        )
        return ExecutionResult(success=True, tx_hash=tx_hash, receipt=receipt)
