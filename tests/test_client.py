"""Tests for the CrossPay client facade."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from crosspay import CrossPay, OrchestratorState, PaymentRequestStatus, RequestDirection, RequestOverride
from crosspay.core.exceptions import ConfigurationError, RequestNotFoundError, ValidationError
from crosspay.core.types import SettlementPreference
from crosspay.identity import IdentityResolver, VerifiedAddresses
from crosspay.payment.wallet import WalletRejectedError, WalletSession
from crosspay.storage import InMemoryStorage

from .conftest import PAYER_ADDRESS, RECEIVER_ADDRESS, SOLANA_ADDRESS, FakeObserver, FakeSigner


@pytest.fixture
def client(config, storage, registry, chain_reader, provider) -> CrossPay:
    return CrossPay(
        config,
        storage=storage,
        registry=registry,
        chain_reader=chain_reader,
        provider=provider,
    )


class TestConstruction:
    def test_from_overrides(self, monkeypatch):
        monkeypatch.delenv("CROSSPAY_STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("CROSSPAY_IDENTITY_API_KEY", raising=False)
        client = CrossPay(settlement_api_key="abc-key-12345")
        assert client.config.settlement_api_key == "abc-key-12345"
        assert isinstance(client.requests._storage, InMemoryStorage)
        assert client.identity is None

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("CROSSPAY_SETTLEMENT_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            CrossPay()

    def test_identity_resolver_from_config(self, config):
        client = CrossPay(config.with_updates(identity_api_key="neynar"))
        assert client.identity is not None

    @pytest.mark.asyncio
    async def test_context_manager_closes_provider(self, client, provider):
        async with client as entered:
            assert entered is client
        provider.close.assert_awaited_once()


class TestPay:
    @pytest.mark.asyncio
    async def test_pay_receiver_preference(self, client, session, observer):
        await client.set_preference("alice", "POLYGON", "USDC", RECEIVER_ADDRESS)

        result = await client.pay(session, "alice", "25")

        assert result.success is True
        assert result.state == OrchestratorState.DONE
        assert result.receiver == "alice"
        assert result.amount == Decimal("25")
        assert result.approval_tx is not None
        assert result.settlement_tx is not None
        assert result.metadata["transactions"] == 2

    @pytest.mark.asyncio
    async def test_pay_without_preference(self, client, session):
        with pytest.raises(ValidationError):
            await client.pay(session, "alice", "25")

    @pytest.mark.asyncio
    async def test_failed_payment_result(self, client, signer, chain_reader):
        await client.set_preference("alice", 137, "USDC", RECEIVER_ADDRESS)
        observer = FakeObserver(errors={"approval": WalletRejectedError()})

        result = await client.pay(WalletSession(PAYER_ADDRESS, 1, signer, observer), "alice", "25")

        assert result.success is False
        assert result.error_code == "USER_REJECTED"


class TestPayRequest:
    @pytest.mark.asyncio
    async def test_accepts_request_on_success(self, client, session):
        await client.set_preference("alice", 137, "USDC", RECEIVER_ADDRESS)
        request = await client.request_payment("alice", "bob", "25", note="rent")

        result = await client.pay_request(session, request.id, "bob")

        assert result.success is True
        assert result.request_id == request.id
        assert (await client.requests.get(request.id)).status == PaymentRequestStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_failure_leaves_request_pending(self, client, signer):
        await client.set_preference("alice", 137, "USDC", RECEIVER_ADDRESS)
        request = await client.request_payment("alice", "bob", "25")
        observer = FakeObserver(errors={"approval": WalletRejectedError()})

        result = await client.pay_request(WalletSession(PAYER_ADDRESS, 1, signer, observer), request.id, "bob")

        assert result.success is False
        assert (await client.requests.get(request.id)).status == PaymentRequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_override_destination_used(self, client, session, provider):
        await client.set_preference("alice", 137, "USDC", RECEIVER_ADDRESS)
        override = RequestOverride(network_id=8453)
        request = await client.request_payment("alice", "bob", "25", override=override)

        await client.pay_request(session, request.id, "bob")

        build_request = provider.build_transaction.await_args.args[0]
        assert build_request.overrides == SettlementPreference(8453, "USDC", RECEIVER_ADDRESS)

    @pytest.mark.asyncio
    async def test_override_asset_does_not_change_payer_asset(self, client, session):
        await client.set_preference("alice", 137, "USDC", RECEIVER_ADDRESS)
        request = await client.request_payment(
            "alice", "bob", "25", override=RequestOverride(network_id=1, asset_symbol="USDT")
        )
        client.orchestrator.pay = AsyncMock(wraps=client.orchestrator.pay)

        result = await client.pay_request(session, request.id, "bob")

        assert result.success is True
        kwargs = client.orchestrator.pay.await_args.kwargs
        assert kwargs["source_asset"] == "USDC"
        assert kwargs["preference"] == SettlementPreference(1, "USDT", RECEIVER_ADDRESS)

    @pytest.mark.asyncio
    async def test_denied_request_cannot_be_paid(self, client, session):
        request = await client.request_payment("alice", "bob", "25")
        await client.deny_request(request.id, "bob")
        with pytest.raises(ValidationError):
            await client.pay_request(session, request.id, "bob")

    @pytest.mark.asyncio
    async def test_unknown_request(self, client, session):
        with pytest.raises(RequestNotFoundError):
            await client.pay_request(session, "missing", "bob")

    @pytest.mark.asyncio
    async def test_list_requests(self, client):
        await client.request_payment("alice", "bob", "1")
        sent = await client.list_requests("alice", "sent")
        received = await client.list_requests("bob", RequestDirection.RECEIVED, "PENDING")
        assert len(sent) == 1
        assert len(received) == 1
        assert await client.expire_overdue_requests() == []


class TestChainHelpers:
    @pytest.mark.asyncio
    async def test_check_approval(self, client, chain_reader):
        chain_reader.get_allowance.return_value = 0
        check = await client.check_approval(137, "USDC", PAYER_ADDRESS, "1.0000005")
        assert check.needs_approval is True
        assert check.required_amount == 1_000_000

    @pytest.mark.asyncio
    async def test_get_balance(self, client, chain_reader):
        chain_reader.get_balance.return_value = 2_000_000
        assert await client.get_balance(8453, "USDC", PAYER_ADDRESS) == Decimal("2")

    def test_cancel_unknown(self, client):
        assert client.cancel("att_missing") is False


class TestSuggestPreference:
    @pytest.fixture
    def identity(self) -> AsyncMock:
        resolver = AsyncMock(spec=IdentityResolver)
        resolver.verified_addresses.return_value = VerifiedAddresses(
            identity="3",
            evm_addresses=[RECEIVER_ADDRESS],
            solana_addresses=[SOLANA_ADDRESS],
        )
        return resolver

    @pytest.mark.asyncio
    async def test_matches_address_model(self, config, storage, chain_reader, provider, identity):
        client = CrossPay(config, storage=storage, chain_reader=chain_reader, provider=provider, identity=identity)

        assert await client.suggest_preference("3", "SOLANA") == SettlementPreference(1329, "USDC", SOLANA_ADDRESS)
        assert await client.suggest_preference("3", 56) == SettlementPreference(56, "BSC-USD", RECEIVER_ADDRESS)

    @pytest.mark.asyncio
    async def test_no_resolver(self, client):
        assert await client.suggest_preference("3", 137) is None

    @pytest.mark.asyncio
    async def test_no_matching_address(self, config, storage, chain_reader, provider, identity):
        identity.verified_addresses.return_value = VerifiedAddresses(identity="3", evm_addresses=[RECEIVER_ADDRESS])
        client = CrossPay(config, storage=storage, chain_reader=chain_reader, provider=provider, identity=identity)
        assert await client.suggest_preference("3", 1329) is None
