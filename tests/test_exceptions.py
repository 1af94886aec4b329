"""Tests for the exception hierarchy."""

from decimal import Decimal

import pytest

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


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [
            UnsupportedRouteError,
            QuoteUnavailableError,
            SettlementBuildError,
            UserRejectedError,
            NetworkSwitchError,
            TransactionFailedError,
            AttemptCancelledError,
        ],
    )
    def test_attempt_ending_errors_are_payment_errors(self, exc_class):
        assert issubclass(exc_class, PaymentError)
        assert issubclass(exc_class, CrossPayError)

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigurationError, ValidationError, UnsupportedNetworkError, UnsupportedAssetError, ChainReadError],
    )
    def test_boundary_errors_are_not_payment_errors(self, exc_class):
        assert not issubclass(exc_class, PaymentError)

    def test_codes_are_unique(self):
        classes = [
            CrossPayError, ConfigurationError, ValidationError, UnsupportedNetworkError,
            UnsupportedAssetError, ChainReadError, NetworkError, PaymentError, UnsupportedRouteError,
            QuoteUnavailableError, SettlementBuildError, UserRejectedError, NetworkSwitchError,
            TransactionFailedError, AttemptCancelledError, InvalidStateTransitionError,
            RequestNotFoundError, RequestStateError,
        ]
        codes = [cls.code for cls in classes]
        assert len(codes) == len(set(codes))


class TestMessages:
    def test_details_in_str(self):
        error = ValidationError("bad address", details={"address": "0x524...5FB2"})
        assert str(error) == "bad address | Details: {'address': '0x524...5FB2'}"
        assert str(ValidationError("plain")) == "plain"

    def test_payment_error_context(self):
        error = UserRejectedError("declined", receiver="alice", amount=Decimal("5"))
        assert error.receiver == "alice"
        assert error.amount == Decimal("5")
        assert error.code == "USER_REJECTED"

    def test_network_switch_str(self):
        error = NetworkSwitchError("Network switch was declined", from_network=1, to_network=137)
        assert str(error) == "Network switch was declined (1 → 137)"

    def test_network_error_helpers(self):
        assert NetworkError("slow down", status_code=429).is_rate_limited()
        assert NetworkError("oops", status_code=503).is_server_error()
        assert not NetworkError("offline").is_server_error()

    def test_request_not_found(self):
        error = RequestNotFoundError("req-1")
        assert error.request_id == "req-1"
        assert "req-1" in str(error)
