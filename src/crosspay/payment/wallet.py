"""
Wallet boundary.

The orchestrator never reads ambient wallet state. A WalletSession is
passed in when an attempt starts and carries the payer's address, the
wallet's active network and the two capabilities the state machine
suspends on: network switching/signing and transaction confirmation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from crosspay.core.types import ConfirmationOutcome, TransactionRequest


class WalletRejectedError(Exception):
    """Raised by wallet implementations when the user declines a prompt."""


class WalletSigner(ABC):
    """Network control of the payer's wallet."""

    @abstractmethod
    async def switch_network(self, network_id: int) -> None:
        """
        Switch the wallet's active network.

        Raises:
            WalletRejectedError: the user declined the switch
            Exception: the wallet failed to switch
        """
        ...


class TransactionObserver(ABC):
    """Signs, broadcasts and watches transactions."""

    @abstractmethod
    async def submit(self, tx: TransactionRequest) -> str:
        """
        Ask the wallet to sign and broadcast a transaction.

        Suspends until the user acts. Returns the transaction hash.

        Raises:
            WalletRejectedError: the user declined to sign
            Exception: the wallet failed to broadcast
        """
        ...

    @abstractmethod
    async def await_confirmation(self, tx_hash: str, timeout: float) -> ConfirmationOutcome:
        """Wait for the receipt of a broadcast transaction, up to ``timeout`` seconds."""
        ...


@dataclass
class WalletSession:
    """The payer's connected wallet for the duration of one attempt."""

    address: str
    active_network_id: int
    signer: WalletSigner
    observer: TransactionObserver

    async def ensure_network(self, network_id: int) -> bool:
        """Switch to ``network_id`` if needed. Returns True if a switch happened."""
        if self.active_network_id == network_id:
            return False
        await self.signer.switch_network(network_id)
        self.active_network_id = network_id
        return True
