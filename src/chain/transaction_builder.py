"""Fluent transaction builder for simulating, signing and sending."""

from __future__ import annotations

from dataclasses import dataclass

from eth_account.datastructures import SignedTransaction

from core.base_types import Address, TokenAmount, TransactionRequest
from core.swap_types import GasPlan
from core.wallet_manager import WalletManager

from .client import ChainClient


@dataclass
class _TxState:
    to: Address | None = None
    value: TokenAmount | None = None
    data: bytes | None = None
    nonce: int | None = None
    gas_limit: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee: int | None = None
    chain_id: int = 1


class TransactionBuilder:
    """
    Fluent builder for transactions.

    Usage:
        tx_hash = (TransactionBuilder(client, wallet)
            .to(router)
            .data(calldata)
            .chain_id(1329)
            .with_gas_plan(plan)
            .send())
    """

    def __init__(self, client: ChainClient, wallet: WalletManager):
        self._client = client
        self._wallet = wallet
        self._state = _TxState()

    def to(self, address: Address) -> "TransactionBuilder":
        self._state.to = address
        return self

    def value(self, amount: TokenAmount) -> "TransactionBuilder":
        self._state.value = amount
        return self

    def data(self, calldata: bytes) -> "TransactionBuilder":
        self._state.data = calldata
        return self

    def chain_id(self, chain_id: int) -> "TransactionBuilder":
        """Set EVM chain id for signing."""
        if chain_id <= 0:
            raise ValueError("chain_id must be positive")
        self._state.chain_id = chain_id
        return self

    def with_gas_plan(self, plan: GasPlan) -> "TransactionBuilder":
        """Apply a precomputed gas limit and EIP-1559 fees."""
        self._state.gas_limit = plan.gas_limit
        self._state.max_fee_per_gas = plan.max_fee_per_gas
        self._state.max_priority_fee = plan.max_priority_fee_per_gas
        return self

    def with_gas_estimate(self, buffer: float = 1.2) -> "TransactionBuilder":
        """Estimate gas and set limit with buffer."""
        if buffer <= 0:
            raise ValueError("buffer must be positive")
        estimate = self._client.estimate_gas(self.call_request())
        self._state.gas_limit = int(estimate * buffer)
        return self

    def with_gas_price(self) -> "TransactionBuilder":
        """Set fees from the current base fee: priority = base/10, max = base*2."""
        gas = self._client.get_gas_price()
        priority = max(gas.base_fee // 10, 1)
        self._state.max_priority_fee = priority
        self._state.max_fee_per_gas = max(gas.base_fee * 2, priority)
        return self

    def call_request(self) -> TransactionRequest:
        """Unsigned request from the wallet, for eth_call / eth_estimateGas."""
        if self._state.to is None:
            raise ValueError("to address is required")
        return TransactionRequest(
            to=self._state.to,
            value=self._state.value or TokenAmount(raw=0, decimals=18),
            data=self._state.data or b"",
            sender=Address.from_string(self._wallet.address),
            chain_id=self._state.chain_id,
        )

    def simulate(self) -> bytes:
        """eth_call the transaction; raises ``ExecutionReverted`` on revert."""
        return self._client.call(self.call_request())

    def build(self) -> TransactionRequest:
        """Validate and return transaction request."""
        if self._state.to is None:
            raise ValueError("to address is required")
        if self._state.gas_limit is None:
            raise ValueError("gas_limit is required (call with_gas_plan)")
        if self._state.max_fee_per_gas is None or self._state.max_priority_fee is None:
            raise ValueError("fee parameters are required (call with_gas_plan)")

        sender = Address.from_string(self._wallet.address)
        if self._state.nonce is None:
            self._state.nonce = self._client.get_nonce(sender)

        return TransactionRequest(
            to=self._state.to,
            value=self._state.value or TokenAmount(raw=0, decimals=18),
            data=self._state.data or b"",
            sender=sender,
            nonce=self._state.nonce,
            gas_limit=self._state.gas_limit,
            max_fee_per_gas=self._state.max_fee_per_gas,
            max_priority_fee=self._state.max_priority_fee,
            chain_id=self._state.chain_id,
        )

    def build_and_sign(self) -> SignedTransaction:
        """Build, sign, and return ready-to-send transaction."""
        request = self.build()
        return self._wallet.sign_transaction(request.to_dict())

    def send(self) -> str:
        """Build, sign, send, return tx hash."""
        signed = self.build_and_sign()
        return self._client.send_transaction(signed.raw_transaction)
