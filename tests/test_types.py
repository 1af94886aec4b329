"""Tests for core data types."""

from datetime import timedelta
from decimal import Decimal

import pytest

from crosspay.core.types import (
    Asset,
    OrchestratorState,
    PaymentAttempt,
    PaymentRequest,
    PaymentRequestStatus,
    RequestOverride,
    SettlementPreference,
    utcnow,
)


class TestSettlementPreference:
    def test_merge_override(self):
        pref = SettlementPreference(137, "USDC", "0xaaa")
        assert pref.merged(RequestOverride(asset_symbol="USDT")) == SettlementPreference(137, "USDT", "0xaaa")
        assert pref.merged(RequestOverride()) is pref
        assert pref.merged(None) is pref

    def test_dict_round_trip(self):
        pref = SettlementPreference(8453, "USDC", "0xabc")
        assert SettlementPreference.from_dict(pref.to_dict()) == pref


class TestPaymentRequest:
    def test_serialization_keeps_override_and_times(self):
        now = utcnow()
        request = PaymentRequest(
            id="r1",
            payer_identity="bob",
            payee_identity="alice",
            amount=Decimal("1.10"),
            status=PaymentRequestStatus.PENDING,
            created_at=now,
            override=RequestOverride(network_id=137),
            expires_at=now + timedelta(hours=1),
        )
        restored = PaymentRequest.from_dict(request.to_dict())
        assert restored == request
        assert restored.amount == Decimal("1.10")

    def test_empty_override_reads_as_none(self):
        assert RequestOverride.from_dict({"network_id": None, "asset_symbol": None, "address": None}) is None

    def test_is_overdue(self):
        now = utcnow()
        request = PaymentRequest("r1", "bob", "alice", Decimal("1"), PaymentRequestStatus.PENDING, now, expires_at=now)
        assert request.is_overdue(now)
        request.status = PaymentRequestStatus.ACCEPTED
        assert not request.is_overdue(now)

    def test_terminal_statuses(self):
        assert not PaymentRequestStatus.PENDING.is_terminal()
        assert all(s.is_terminal() for s in PaymentRequestStatus if s != PaymentRequestStatus.PENDING)


class TestPaymentAttempt:
    def test_initial_history(self):
        attempt = PaymentAttempt("att_1", "bob", "alice", Decimal("1"), 1, "USDC")
        assert attempt.state_history == [OrchestratorState.IDLE]
        assert not attempt.is_terminal

    def test_reset_clears_attempt_scoped_state(self):
        attempt = PaymentAttempt("att_1", "bob", "alice", Decimal("1"), 1, "USDC")
        attempt.processed_hashes.add("0xabc")
        attempt.cancel_requested = True
        attempt.reset()
        assert attempt.processed_hashes == set()
        assert attempt.cancel_requested is False
        assert attempt.plan is None


class TestAsset:
    def test_rejects_out_of_range_decimals(self):
        with pytest.raises(ValueError):
            Asset(network_id=1, symbol="X", display_name="X", decimals=19, contract_address="0x")
