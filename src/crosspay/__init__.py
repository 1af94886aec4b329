"""
CrossPay - Cross-chain stablecoin payments between social identities.

A payer pays from the network and asset they hold; the receiver collects
on the network, asset and address of their settlement preference.

Usage:
    >>> from crosspay import CrossPay, WalletSession
    >>>
    >>> client = CrossPay(settlement_api_key="...")
    >>> await client.set_preference("alice", "POLYGON", "USDC", "0x...")
    >>> result = await client.pay(session, "alice", "25", source_network_id=1)
"""

from crosspay.client import CrossPay
from crosspay.core.config import Config
from crosspay.core.exceptions import (
    AttemptCancelledError,
    ChainReadError,
    ConfigurationError,
    CrossPayError,
    InvalidStateTransitionError,
    NetworkError,
    NetworkSwitchError,
    PaymentError,
    QuoteUnavailableError,
    RequestNotFoundError,
    RequestStateError,
    SettlementBuildError,
    TransactionFailedError,
    UnsupportedAssetError,
    UnsupportedNetworkError,
    UnsupportedRouteError,
    UserRejectedError,
    ValidationError,
)
from crosspay.core.types import (
    NATIVE_INTEGRATION,
    AddressModel,
    ApprovalCheck,
    Asset,
    AttemptStep,
    ConfirmationOutcome,
    Network,
    OrchestratorState,
    PaymentAttempt,
    PaymentRequest,
    PaymentRequestStatus,
    PaymentResult,
    RequestDirection,
    RequestOverride,
    Route,
    SettlementPlan,
    SettlementPreference,
    TransactionRequest,
)
from crosspay.payment import (
    PaymentOrchestrator,
    TransactionObserver,
    WalletRejectedError,
    WalletSession,
    WalletSigner,
)
from crosspay.registry import Registry, get_registry

__version__ = "0.1.0"

__all__ = [
    # Client
    "CrossPay",
    "Config",
    "Registry",
    "get_registry",
    # Wallet boundary
    "PaymentOrchestrator",
    "TransactionObserver",
    "WalletRejectedError",
    "WalletSession",
    "WalletSigner",
    # Types
    "NATIVE_INTEGRATION",
    "AddressModel",
    "ApprovalCheck",
    "Asset",
    "AttemptStep",
    "ConfirmationOutcome",
    "Network",
    "OrchestratorState",
    "PaymentAttempt",
    "PaymentRequest",
    "PaymentRequestStatus",
    "PaymentResult",
    "RequestDirection",
    "RequestOverride",
    "Route",
    "SettlementPlan",
    "SettlementPreference",
    "TransactionRequest",
    # Exceptions
    "AttemptCancelledError",
    "ChainReadError",
    "ConfigurationError",
    "CrossPayError",
    "InvalidStateTransitionError",
    "NetworkError",
    "NetworkSwitchError",
    "PaymentError",
    "QuoteUnavailableError",
    "RequestNotFoundError",
    "RequestStateError",
    "SettlementBuildError",
    "TransactionFailedError",
    "UnsupportedAssetError",
    "UnsupportedNetworkError",
    "UnsupportedRouteError",
    "UserRejectedError",
    "ValidationError",
]
