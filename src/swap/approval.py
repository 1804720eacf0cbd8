"""Exact-amount ERC-20 approvals, confirmed before the swap is sent."""

from __future__ import annotations

import logging
from typing import Optional

from chain import abi
from chain.client import ChainClient
from chain.errors import ChainError, TransactionFailed
from chain.transaction_builder import TransactionBuilder
from core.base_types import Address, TransactionReceipt
from core.swap_types import ApprovalResult, ApprovalState, ApprovalStatus
from core.wallet_manager import WalletManager

logger = logging.getLogger(__name__)

APPROVAL_CONFIRMATIONS = 2
APPROVAL_TIMEOUT_SECONDS = 45
APPROVAL_GAS_BUFFER = 1.2


class ApprovalManager:
    """
    Raises allowance to exactly the amount a swap needs.

    Never approves an unlimited amount: each larger trade costs one more
    approval transaction, but a compromised spender can only move what was
    approved for the pending swap.
    """

    def __init__(
        self,
        client: ChainClient,
        wallet: WalletManager,
        chain_id: int,
        confirmations: int = APPROVAL_CONFIRMATIONS,
        timeout: float = APPROVAL_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._wallet = wallet
        self._chain_id = chain_id
        self._confirmations = confirmations
        self._timeout = timeout

    def ensure_allowance(
        self,
        token: Address,
        owner: Address,
        spender: Address,
        required_amount: int,
        current_allowance: int,
    ) -> ApprovalResult:
        state = ApprovalState(
            current_allowance=current_allowance,
            required_amount=required_amount,
            spender=spender,
        )
        if state.sufficient:
            logger.debug(
                "Allowance %d of %s for %s covers %d",
                current_allowance,
                token.checksum,
                spender.checksum,
                required_amount,
            )
            return ApprovalResult(ApprovalStatus.SUFFICIENT, state)
        if owner != self._wallet.account_address:
            raise ValueError("owner must be the signing wallet")

        logger.info(
            "Approving %d of %s for %s (current allowance %d)",
            required_amount,
            token.checksum,
            spender.checksum,
            current_allowance,
        )
        return self._submit(token, spender, required_amount, state)

    def approve(self, token: Address, spender: Address, amount: int) -> ApprovalResult:
        """Unconditional approval of ``amount``, used by the approve tool."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        state = ApprovalState(current_allowance=0, required_amount=amount, spender=spender)
        return self._submit(token, spender, amount, state)

    def _submit(
        self, token: Address, spender: Address, amount: int, state: ApprovalState
    ) -> ApprovalResult:
        builder = (
            TransactionBuilder(self._client, self._wallet)
            .to(token)
            .data(abi.erc20_approve(spender, amount))
            .chain_id(self._chain_id)
        )
        try:
            tx_hash = builder.with_gas_estimate(APPROVAL_GAS_BUFFER).with_gas_price().send()
        except ChainError as exc:
            logger.error("Approval submission failed: %s", exc)
            return ApprovalResult(
                ApprovalStatus.SUBMISSION_FAILED, state, error=str(exc)
            )

        try:
            receipt: Optional[TransactionReceipt] = self._client.wait_for_receipt(
                tx_hash, timeout=self._timeout, confirmations=self._confirmations
            )
        except TransactionFailed as exc:
            logger.error("Approval %s reverted", tx_hash)
            return ApprovalResult(
                ApprovalStatus.REVERTED, state, tx_hash=tx_hash, error=str(exc)
            )
        except TimeoutError as exc:
            logger.warning("Approval %s not confirmed: %s", tx_hash, exc)
            return ApprovalResult(
                ApprovalStatus.TIMED_OUT, state, tx_hash=tx_hash, error=str(exc)
            )
        except ChainError as exc:
            logger.warning("Polling approval %s failed: %s", tx_hash, exc)
            return ApprovalResult(
                ApprovalStatus.TIMED_OUT, state, tx_hash=tx_hash, error=str(exc)
            )

        logger.info(
            "Approval %s confirmed in block %d", tx_hash, receipt.block_number
        )
        return ApprovalResult(ApprovalStatus.CONFIRMED, state, tx_hash=tx_hash)
