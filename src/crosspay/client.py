"""CrossPay - Main SDK entry point."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from crosspay.chain.allowance import AllowanceChecker
from crosspay.chain.rpc import ChainReader, JsonRpcChainReader
from crosspay.core.config import Config
from crosspay.core.logging import configure_logging, get_logger
from crosspay.core.types import (
    AddressModel,
    AmountType,
    ApprovalCheck,
    PaymentRequest,
    PaymentRequestStatus,
    PaymentResult,
    RequestDirection,
    RequestOverride,
    SettlementPreference,
)
from crosspay.identity.resolver import IdentityResolver, NeynarIdentityResolver
from crosspay.payment.orchestrator import PaymentOrchestrator
from crosspay.payment.wallet import WalletSession
from crosspay.preferences.service import PreferenceService
from crosspay.registry import Registry, get_registry
from crosspay.requests.service import PaymentRequestService
from crosspay.settlement.plan import SettlementPlanBuilder
from crosspay.settlement.provider import SettlementProviderClient
from crosspay.settlement.quote import QuoteResolver
from crosspay.storage import StorageBackend, get_storage


class CrossPay:
    """
    Main client for CrossPay.

    Wires the registry, chain reads, settlement provider, request and
    preference stores and the payment orchestrator from one Config.

    Example:
        >>> async with CrossPay(settlement_api_key="...") as client:
        ...     await client.set_preference("alice", "POLYGON", "USDC", "0x...")
        ...     result = await client.pay(session, "alice", "25", source_network_id=1)
        ...     result.success
        True
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        storage: StorageBackend | None = None,
        registry: Registry | None = None,
        chain_reader: ChainReader | None = None,
        provider: SettlementProviderClient | None = None,
        identity: IdentityResolver | None = None,
        log_level: int | str | None = None,
        **config_overrides: Any,
    ) -> None:
        """
        Initialize the CrossPay client.

        Args:
            config: Full configuration (or loaded from CROSSPAY_* env vars)
            storage: Storage backend (default from config)
            registry: Network registry (default: built-in networks)
            chain_reader: On-chain reader (default: JSON-RPC)
            provider: Settlement provider client
            identity: Identity resolver (default: Neynar when an API key is set)
            log_level: Logging level override
            **config_overrides: Passed to Config.from_env when config is None
        """
        self._config = config or Config.from_env(**config_overrides)

        configure_logging(level=log_level or self._config.log_level)
        self._logger = get_logger("client")
        self._logger.info(
            f"Initializing CrossPay (env: {self._config.env}, "
            f"settlement key: {self._config.masked_api_key()})"
        )

        self._registry = registry or get_registry()
        if storage is None:
            kwargs = {"redis_url": self._config.redis_url} if self._config.storage_backend == "redis" else {}
            storage = get_storage(self._config.storage_backend, **kwargs)
        self._storage = storage

        self._chain_reader = chain_reader or JsonRpcChainReader(
            self._registry,
            rpc_urls=self._config.rpc_urls,
            timeout=self._config.rpc_timeout,
        )
        self._provider = provider or SettlementProviderClient(
            api_key=self._config.settlement_api_key,
            base_url=self._config.settlement_api_url,
            build_url=self._config.settlement_build_url,
            timeout=self._config.request_timeout,
        )
        if identity is None and self._config.identity_api_key:
            identity = NeynarIdentityResolver(
                api_key=self._config.identity_api_key,
                base_url=self._config.identity_api_url,
                timeout=self._config.request_timeout,
            )
        self._identity = identity

        self._allowance = AllowanceChecker(self._registry, self._chain_reader)
        self._plan_builder = SettlementPlanBuilder(
            self._registry,
            self._allowance,
            chain_read_attempts=self._config.chain_read_attempts,
            chain_read_backoff=self._config.chain_read_backoff,
        )
        self._quotes = QuoteResolver(self._registry, self._provider)
        self._requests = PaymentRequestService(self._storage, self._registry)
        self._preferences = PreferenceService(self._storage, self._registry)
        self._orchestrator = PaymentOrchestrator(
            self._config,
            self._quotes,
            self._plan_builder,
            self._provider,
            requests=self._requests,
        )

    @property
    def config(self) -> Config:
        """Get SDK configuration."""
        return self._config

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def requests(self) -> PaymentRequestService:
        """Get the payment request store."""
        return self._requests

    @property
    def preferences(self) -> PreferenceService:
        """Get the settlement preference store."""
        return self._preferences

    @property
    def orchestrator(self) -> PaymentOrchestrator:
        return self._orchestrator

    @property
    def allowance(self) -> AllowanceChecker:
        return self._allowance

    @property
    def identity(self) -> IdentityResolver | None:
        return self._identity

    async def __aenter__(self) -> CrossPay:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close HTTP clients owned by the SDK."""
        await self._provider.close()
        if isinstance(self._chain_reader, JsonRpcChainReader):
            await self._chain_reader.close()
        if isinstance(self._identity, NeynarIdentityResolver):
            await self._identity.close()

    # ─── Payments ────────────────────────────────────────────────────

    async def pay(
        self,
        session: WalletSession,
        receiver_identity: str,
        amount: AmountType,
        source_network_id: int | None = None,
        source_asset: str = "USDC",
        payer_identity: str = "",
    ) -> PaymentResult:
        """
        Pay a receiver on their preferred network.

        Args:
            session: Payer's connected wallet
            receiver_identity: Identity whose stored preference is the destination
            amount: Amount in human units
            source_network_id: Network the payer pays from (default: wallet's active network)
            source_asset: Asset the payer pays with

        Raises:
            ValidationError: bad amount, or the receiver has no preference
        """
        preference = await self._preferences.resolve_destination(receiver_identity)
        attempt = await self._orchestrator.pay(
            session,
            receiver_identity=receiver_identity,
            preference=preference,
            amount=amount,
            source_network_id=source_network_id or session.active_network_id,
            source_asset=source_asset,
            payer_identity=payer_identity,
        )
        return PaymentResult.from_attempt(attempt)

    async def pay_request(
        self,
        session: WalletSession,
        request_id: str,
        payer_identity: str,
        source_network_id: int | None = None,
        source_asset: str = "USDC",
    ) -> PaymentResult:
        """
        Pay a PENDING request. On success the request becomes ACCEPTED; on
        failure it stays PENDING and may be paid again.

        ``source_asset`` is what the payer spends; a request override only
        changes what the payee receives.

        Raises:
            RequestNotFoundError: no such request
            ValidationError: request not payable by this payer
        """
        request = await self._requests.get_payable(request_id, payer_identity)
        preference = await self._preferences.resolve_destination(
            request.payee_identity, request.override
        )
        attempt = await self._orchestrator.pay(
            session,
            receiver_identity=request.payee_identity,
            preference=preference,
            amount=request.amount,
            source_network_id=source_network_id or session.active_network_id,
            source_asset=source_asset,
            payer_identity=payer_identity,
            request_id=request.id,
        )
        return PaymentResult.from_attempt(attempt)

    def cancel(self, attempt_id: str) -> bool:
        """Cancel an in-flight payment attempt."""
        return self._orchestrator.cancel(attempt_id)

    async def check_approval(
        self,
        network_id: int,
        asset_symbol: str,
        owner_address: str,
        amount: AmountType,
    ) -> ApprovalCheck:
        return await self._allowance.check_approval_needed(
            network_id, asset_symbol, owner_address, amount
        )

    async def get_balance(self, network_id: int, asset_symbol: str, owner_address: str) -> Decimal:
        return await self._allowance.read_balance(network_id, asset_symbol, owner_address)

    # ─── Requests ────────────────────────────────────────────────────

    async def request_payment(
        self,
        payee_identity: str,
        payer_identity: str,
        amount: AmountType,
        override: RequestOverride | None = None,
        note: str | None = None,
        expires_in: int | None = None,
    ) -> PaymentRequest:
        """Ask ``payer_identity`` to pay ``payee_identity``."""
        return await self._requests.create(
            payer_identity=payer_identity,
            payee_identity=payee_identity,
            amount=amount,
            override=override,
            note=note,
            expires_in=expires_in,
        )

    async def deny_request(self, request_id: str, payer_identity: str) -> PaymentRequest:
        return await self._requests.deny(request_id, payer_identity)

    async def list_requests(
        self,
        identity: str,
        direction: RequestDirection | str = RequestDirection.RECEIVED,
        status: PaymentRequestStatus | str | None = None,
    ) -> list[PaymentRequest]:
        return await self._requests.list(
            identity,
            RequestDirection(direction),
            PaymentRequestStatus(status) if status is not None else None,
        )

    async def expire_overdue_requests(self) -> list[str]:
        return await self._requests.expire_overdue()

    # ─── Preferences ─────────────────────────────────────────────────

    async def get_preference(self, identity: str) -> SettlementPreference | None:
        return await self._preferences.get(identity)

    async def set_preference(
        self,
        identity: str,
        network: int | str,
        asset_symbol: str,
        address: str,
    ) -> SettlementPreference:
        return await self._preferences.update(identity, network, asset_symbol, address)

    async def suggest_preference(
        self,
        identity: str,
        network: int | str,
        asset_symbol: str | None = None,
    ) -> SettlementPreference | None:
        """
        Propose a preference from the identity's verified addresses.

        Picks the primary verified address matching the network's address
        model. Returns None when no identity resolver is configured or no
        suitable address is verified.
        """
        if self._identity is None:
            return None
        target = self._registry.resolve_network(network)
        if target is None:
            return None

        verified = await self._identity.verified_addresses(identity)
        if verified is None:
            return None
        candidates = (
            verified.solana_addresses
            if target.address_model == AddressModel.PUBLIC_KEY
            else verified.evm_addresses
        )
        if not candidates:
            return None

        if asset_symbol is None:
            asset = target.asset("USDC") or (target.assets[0] if target.assets else None)
            if asset is None:
                return None
            asset_symbol = asset.symbol
        return SettlementPreference(
            network_id=target.id, asset_symbol=asset_symbol, address=candidates[0]
        )
