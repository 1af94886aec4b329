"""Payment execution: wallet boundary and the settlement state machine."""

from crosspay.payment.orchestrator import ALLOWED_TRANSITIONS, PaymentOrchestrator
from crosspay.payment.wallet import (
    TransactionObserver,
    WalletRejectedError,
    WalletSession,
    WalletSigner,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "PaymentOrchestrator",
    "TransactionObserver",
    "WalletRejectedError",
    "WalletSession",
    "WalletSigner",
]
