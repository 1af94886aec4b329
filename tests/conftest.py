from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from crosspay.chain.allowance import AllowanceChecker
from crosspay.chain.rpc import ChainReader
from crosspay.core.config import Config
from crosspay.core.types import ConfirmationOutcome, TransactionRequest
from crosspay.payment.orchestrator import PaymentOrchestrator
from crosspay.payment.wallet import TransactionObserver, WalletSession, WalletSigner
from crosspay.preferences.service import PreferenceService
from crosspay.registry import Registry
from crosspay.requests.service import PaymentRequestService
from crosspay.settlement.plan import SettlementPlanBuilder
from crosspay.settlement.provider import (
    ProviderQuote,
    SettlementBuildResponse,
    SettlementProviderClient,
)
from crosspay.settlement.quote import QuoteResolver
from crosspay.storage.memory import InMemoryStorage

PAYER_ADDRESS = "0x1111111111111111111111111111111111111111"
RECEIVER_ADDRESS = "0x2222222222222222222222222222222222222222"
SOLANA_ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
GATEWAY_TARGET = "0x6a2A5B7D0434CC5b77e304bc9D68C20Dee805152"
SETTLEMENT_DATA = "0xa9059cbb" + "00" * 64


class FakeSigner(WalletSigner):
    """Records network switches; optionally fails them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.switches: list[int] = []

    async def switch_network(self, network_id: int) -> None:
        if self.error is not None:
            raise self.error
        self.switches.append(network_id)


class FakeObserver(TransactionObserver):
    """
    Scripted wallet: returns sequential hashes and a fixed confirmation
    outcome per hash. ``errors`` maps a transaction kind to the exception submit raises.
    """

    def __init__(
        self,
        outcome: ConfirmationOutcome = ConfirmationOutcome.CONFIRMED,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.outcome = outcome
        self.outcomes: dict[str, ConfirmationOutcome | Exception] = {}
        self.errors = errors or {}
        self.submitted: list[TransactionRequest] = []
        self.waited: list[tuple[str, float]] = []
        self.events: list[str] = []
        self.on_submit = None

    async def submit(self, tx: TransactionRequest) -> str:
        self.events.append(f"submit:{tx.kind}")
        if tx.kind in self.errors:
            raise self.errors[tx.kind]
        self.submitted.append(tx)
        tx_hash = f"0x{len(self.submitted):064x}"
        if self.on_submit is not None:
            self.on_submit(tx)
        return tx_hash

    async def await_confirmation(self, tx_hash: str, timeout: float) -> ConfirmationOutcome:
        self.events.append(f"confirm:{tx_hash}")
        self.waited.append((tx_hash, timeout))
        result = self.outcomes.get(tx_hash, self.outcome)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def config() -> Config:
    return Config(settlement_api_key="test-settlement-key", chain_read_backoff=0)


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def chain_reader() -> AsyncMock:
    reader = AsyncMock(spec=ChainReader)
    reader.get_allowance.return_value = 0
    reader.get_balance.return_value = 0
    return reader


@pytest.fixture
def provider() -> MagicMock:
    """Settlement provider that quotes a Polygon USDC deposit and builds a valid transaction."""
    mock = MagicMock(spec=SettlementProviderClient)
    mock.get_payment_quote = AsyncMock(
        return_value=ProviderQuote(
            blockchain="polygon",
            token_symbol="USDC",
            token_decimals=6,
            deposit_amount=Decimal("25"),
        )
    )
    mock.build_transaction = AsyncMock(
        return_value=SettlementBuildResponse(
            success=True,
            is_direct_transfer=False,
            to=GATEWAY_TARGET,
            data=SETTLEMENT_DATA,
        )
    )
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def allowance_checker(registry, chain_reader) -> AllowanceChecker:
    return AllowanceChecker(registry, chain_reader)


@pytest.fixture
def plan_builder(registry, allowance_checker) -> SettlementPlanBuilder:
    return SettlementPlanBuilder(registry, allowance_checker, chain_read_attempts=3, chain_read_backoff=0)


@pytest.fixture
def quote_resolver(registry, provider) -> QuoteResolver:
    return QuoteResolver(registry, provider)


@pytest.fixture
def request_service(storage, registry) -> PaymentRequestService:
    return PaymentRequestService(storage, registry)


@pytest.fixture
def preference_service(storage, registry) -> PreferenceService:
    return PreferenceService(storage, registry)


@pytest.fixture
def orchestrator(config, quote_resolver, plan_builder, provider, request_service) -> PaymentOrchestrator:
    return PaymentOrchestrator(config, quote_resolver, plan_builder, provider, requests=request_service)


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def session(signer, observer) -> WalletSession:
    """Payer wallet connected to Ethereum."""
    return WalletSession(
        address=PAYER_ADDRESS, active_network_id=1, signer=signer, observer=observer
    )
