"""
Exception hierarchy for CrossPay.

All CrossPay exceptions inherit from CrossPayError for easy catching.
Errors that end a payment attempt inherit from PaymentError and carry a
stable ``code`` that is recorded on the failed attempt.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class CrossPayError(Exception):
    """
    Base exception for all CrossPay errors.

    Example:
        >>> try:
        ...     await client.pay(...)
        ... except CrossPayError as e:
        ...     print(f"Payment error: {e}")
    """

    code = "CROSSPAY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CrossPayError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - Environment variables cannot be parsed
    """

    code = "CONFIGURATION_ERROR"


class ValidationError(CrossPayError):
    """
    Input validation error.

    Raised before any chain interaction when:
    - An address is malformed, truncated, or of the wrong model for its network
    - An amount is not a positive number
    - A request or preference record is incomplete
    """

    code = "VALIDATION_ERROR"


class UnsupportedNetworkError(CrossPayError):
    """A network id is not present in the registry."""

    code = "UNSUPPORTED_NETWORK"

    def __init__(
        self,
        message: str,
        network_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.network_id = network_id


class UnsupportedAssetError(CrossPayError):
    """An asset symbol is not registered on the given network."""

    code = "UNSUPPORTED_ASSET"

    def __init__(
        self,
        message: str,
        network_id: int | None = None,
        symbol: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.network_id = network_id
        self.symbol = symbol


class ChainReadError(CrossPayError):
    """
    Reading on-chain state failed.

    Transient: the caller may retry the read a bounded number of times.
    """

    code = "CHAIN_READ_ERROR"

    def __init__(
        self,
        message: str,
        network_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.network_id = network_id


class NetworkError(CrossPayError):
    """
    HTTP communication with an auxiliary API failed.

    Raised when:
    - HTTP request fails (timeout, connection error)
    - API returns an unexpected status
    """

    code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_rate_limited(self) -> bool:
        """Check if this is a rate limit error."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class PaymentError(CrossPayError):
    """
    Base exception for errors that end a payment attempt.

    The payment request behind the attempt is left untouched so the payer
    can start a fresh attempt.
    """

    code = "PAYMENT_ERROR"

    def __init__(
        self,
        message: str,
        receiver: str | None = None,
        amount: Decimal | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.receiver = receiver
        self.amount = amount


class UnsupportedRouteError(PaymentError):
    """
    The settlement provider quoted a route we cannot map.

    Fails closed: an unknown blockchain name never falls back to a default network.
    """

    code = "UNSUPPORTED_ROUTE"

    def __init__(
        self,
        message: str,
        blockchain: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.blockchain = blockchain


class QuoteUnavailableError(PaymentError):
    """The settlement provider did not return a usable quote."""

    code = "QUOTE_UNAVAILABLE"


class SettlementBuildError(PaymentError):
    """The settlement provider failed to build a valid settlement transaction."""

    code = "SETTLEMENT_BUILD_FAILED"


class UserRejectedError(PaymentError):
    """The payer declined a wallet signature request."""

    code = "USER_REJECTED"


class NetworkSwitchError(PaymentError):
    """
    The wallet failed or declined to switch its active network.
    """

    code = "NETWORK_SWITCH_FAILED"

    def __init__(
        self,
        message: str,
        from_network: int | None = None,
        to_network: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.from_network = from_network
        self.to_network = to_network

    def __str__(self) -> str:
        return f"{self.message} ({self.from_network} → {self.to_network})"


class TransactionFailedError(PaymentError):
    """
    A transaction reverted on-chain, could not be submitted, or its
    confirmation was not observed in time.
    """

    code = "TRANSACTION_FAILED"

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.tx_hash = tx_hash


class AttemptCancelledError(PaymentError):
    """The payer cancelled the attempt."""

    code = "CANCELLED"


class InvalidStateTransitionError(PaymentError):
    """The orchestrator was asked to make a transition its state machine forbids."""

    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        message: str,
        from_state: str,
        to_state: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.from_state = from_state
        self.to_state = to_state


class RequestNotFoundError(CrossPayError):
    """No payment request exists with the given id."""

    code = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str) -> None:
        super().__init__(f"Payment request not found: {request_id}")
        self.request_id = request_id


class RequestStateError(CrossPayError):
    """
    A payment request status change is not allowed.

    Requests are terminal once they leave PENDING.
    """

    code = "REQUEST_STATE_ERROR"

    def __init__(
        self,
        message: str,
        request_id: str,
        current_status: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.request_id = request_id
        self.current_status = current_status
