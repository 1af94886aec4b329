"""
Type definitions for CrossPay.

This module contains the enums, data classes, and type definitions
used throughout the SDK: registry reference data, settlement preferences,
payment requests, settlement plans and the run state of a payment attempt.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias

# Type alias for flexible amount input
AmountType: TypeAlias = Decimal | int | float | str

# Gateway value for networks where settlement is natively integrated
# and no token allowance is ever required.
NATIVE_INTEGRATION = "native-integration"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(val: str | datetime | None) -> datetime | None:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val
    return datetime.fromisoformat(val.replace("Z", "+00:00"))


class AddressModel(str, Enum):
    """Address convention of a network."""

    ACCOUNT = "account"  # 0x-prefixed 20-byte account address (EVM)
    PUBLIC_KEY = "public_key"  # base58 32-byte public key (Solana)


@dataclass(frozen=True)
class NativeCurrency:
    """Gas currency of a network."""

    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Asset:
    """A fungible token scoped to exactly one network."""

    network_id: int
    symbol: str
    display_name: str
    decimals: int
    contract_address: str
    price_feed_id: str | None = None
    code: str | None = None  # persisted enum name when it differs from the symbol

    def __post_init__(self) -> None:
        if not 0 <= self.decimals <= 18:
            raise ValueError(f"Asset decimals must be within 0-18, got {self.decimals}")

    @property
    def storage_code(self) -> str:
        return self.code or self.symbol


@dataclass(frozen=True)
class Network:
    """
    A blockchain network known to the registry.

    One entry carries every external name of the network (enum code,
    settlement provider id and provider blockchain aliases) so lookups
    in either direction share a single source of truth.
    """

    id: int
    display_name: str
    code: str
    native_currency: NativeCurrency
    gateway_contract: str
    address_model: AddressModel = AddressModel.ACCOUNT
    rpc_endpoints: tuple[str, ...] = ()
    explorer_urls: tuple[str, ...] = ()
    assets: tuple[Asset, ...] = ()
    provider_id: int | None = None
    aliases: tuple[str, ...] = ()

    @property
    def is_native_integration(self) -> bool:
        return self.gateway_contract == NATIVE_INTEGRATION

    def asset(self, symbol: str) -> Asset | None:
        for asset in self.assets:
            if asset.symbol == symbol:
                return asset
        return None

    def explorer_tx_url(self, tx_hash: str) -> str | None:
        if not self.explorer_urls:
            return None
        return f"{self.explorer_urls[0].rstrip('/')}/tx/{tx_hash}"


@dataclass(frozen=True)
class SettlementPreference:
    """Where a receiver wants to collect funds."""

    network_id: int
    asset_symbol: str
    address: str

    def merged(self, override: "RequestOverride | None") -> "SettlementPreference":
        """Return a copy with every field the override sets replaced."""
        if override is None or override.is_empty():
            return self
        return replace(
            self,
            network_id=override.network_id if override.network_id is not None else self.network_id,
            asset_symbol=override.asset_symbol or self.asset_symbol,
            address=override.address or self.address,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_id": self.network_id,
            "asset_symbol": self.asset_symbol,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SettlementPreference":
        return cls(
            network_id=int(data["network_id"]),
            asset_symbol=data["asset_symbol"],
            address=data["address"],
        )


@dataclass(frozen=True)
class RequestOverride:
    """Per-request replacement of the payee's settlement preference."""

    network_id: int | None = None
    asset_symbol: str | None = None
    address: str | None = None

    def is_empty(self) -> bool:
        return self.network_id is None and not self.asset_symbol and not self.address

    def to_dict(self) -> dict[str, Any]:
        return {
            "network_id": self.network_id,
            "asset_symbol": self.asset_symbol,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RequestOverride | None":
        if not data:
            return None
        override = cls(
            network_id=int(data["network_id"]) if data.get("network_id") is not None else None,
            asset_symbol=data.get("asset_symbol"),
            address=data.get("address"),
        )
        return None if override.is_empty() else override


class PaymentRequestStatus(str, Enum):
    """Lifecycle of a payment request. Terminal once it leaves PENDING."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"

    def is_terminal(self) -> bool:
        return self != PaymentRequestStatus.PENDING


class RequestDirection(str, Enum):
    """Which side of a request an identity is on when listing."""

    SENT = "sent"  # requests the identity created (identity is the payee)
    RECEIVED = "received"  # requests addressed to the identity (identity is the payer)


@dataclass
class PaymentRequest:
    """A payee asking a payer for funds."""

    id: str
    payer_identity: str
    payee_identity: str
    amount: Decimal
    status: PaymentRequestStatus
    created_at: datetime
    override: RequestOverride | None = None
    note: str | None = None
    expires_at: datetime | None = None
    updated_at: datetime | None = None

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.expires_at is None or self.status.is_terminal():
            return False
        return (now or utcnow()) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "payer_identity": self.payer_identity,
            "payee_identity": self.payee_identity,
            "amount": str(self.amount),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "override": self.override.to_dict() if self.override else None,
            "note": self.note,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentRequest":
        return cls(
            id=data["id"],
            payer_identity=data["payer_identity"],
            payee_identity=data["payee_identity"],
            amount=Decimal(data["amount"]),
            status=PaymentRequestStatus(data["status"]),
            created_at=_parse_dt(data["created_at"]),
            override=RequestOverride.from_dict(data.get("override")),
            note=data.get("note"),
            expires_at=_parse_dt(data.get("expires_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass(frozen=True)
class Route:
    """The settlement provider's answer to where the deposit is collected."""

    network_id: int
    asset_symbol: str
    deposit_amount: Decimal
    is_direct_transfer: bool
    provider_blockchain: str = ""
    token_decimals: int | None = None


@dataclass(frozen=True)
class ApprovalCheck:
    """Result of comparing an on-chain allowance against a payment amount."""

    needs_approval: bool
    current_allowance: int
    required_amount: int
    spender: str | None = None


@dataclass(frozen=True)
class SettlementPlan:
    """
    The validated transactions needed to complete one payment.

    Built fresh for each attempt and never mutated: a new quote
    produces a new plan.
    """

    source_network_id: int
    source_asset: str
    source_amount: Decimal
    deposit_network_id: int
    deposit_asset: str
    deposit_amount: Decimal
    destination_network_id: int
    destination_asset: str
    destination_address: str
    requires_approval: bool
    is_direct_transfer: bool
    approval_amount: int | None = None
    spender: str | None = None

    @property
    def execution_network_id(self) -> int:
        """Network every transaction of the plan is signed on."""
        return self.deposit_network_id

    @property
    def transaction_count(self) -> int:
        return 2 if self.requires_approval else 1


@dataclass(frozen=True)
class TransactionRequest:
    """An unsigned transaction handed to the wallet for signing."""

    network_id: int
    to: str
    data: str
    value: int = 0
    kind: str = "settlement"  # "approval" | "settlement"

    def to_wallet_dict(self) -> dict[str, Any]:
        return {
            "chainId": self.network_id,
            "to": self.to,
            "data": self.data,
            "value": hex(self.value),
        }


class ConfirmationOutcome(str, Enum):
    """What waiting for a transaction receipt produced."""

    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"


class OrchestratorState(str, Enum):
    """Coarse states of the payment state machine."""

    IDLE = "idle"
    ROUTING = "routing"
    APPROVING = "approving"
    SETTLING = "settling"
    CONFIRMING_SETTLEMENT = "confirming_settlement"
    DONE = "done"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (OrchestratorState.DONE, OrchestratorState.FAILED)


class AttemptStep(str, Enum):
    """Fine-grained step of an attempt, guarding every wallet interaction."""

    NONE = "none"
    AWAITING_APPROVAL_SIGNATURE = "awaiting_approval_signature"
    AWAITING_APPROVAL_CONFIRMATION = "awaiting_approval_confirmation"
    AWAITING_SETTLEMENT_SIGNATURE = "awaiting_settlement_signature"
    AWAITING_SETTLEMENT_CONFIRMATION = "awaiting_settlement_confirmation"
    COMPLETE = "complete"
    FAILED = "failed"

    def is_awaiting_signature(self) -> bool:
        return self in (
            AttemptStep.AWAITING_APPROVAL_SIGNATURE,
            AttemptStep.AWAITING_SETTLEMENT_SIGNATURE,
        )


@dataclass
class PaymentAttempt:
    """Mutable run state of one execution of a settlement plan."""

    id: str
    payer_identity: str
    receiver_identity: str
    amount: Decimal
    source_network_id: int
    source_asset: str
    request_id: str | None = None
    state: OrchestratorState = OrchestratorState.IDLE
    current_step: AttemptStep = AttemptStep.NONE
    last_seen_transaction_hash: str | None = None
    approval_tx_hash: str | None = None
    settlement_tx_hash: str | None = None
    error: str | None = None
    error_code: str | None = None
    route: Route | None = None
    plan: SettlementPlan | None = None
    processed_hashes: set[str] = field(default_factory=set)
    submitted_transactions: list[TransactionRequest] = field(default_factory=list)
    state_history: list[OrchestratorState] = field(default_factory=list)
    cancel_requested: bool = False
    # Settlement broadcast but its outcome never observed
    confirmation_pending: bool = False
    created_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.state_history:
            self.state_history.append(self.state)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal()

    @property
    def settlement_submitted(self) -> bool:
        return self.settlement_tx_hash is not None

    def request_cancel(self) -> bool:
        """
        Ask the orchestrator to stop this attempt.

        Returns True when the attempt is before or at a signature prompt,
        which the orchestrator then abandons. An approval or settlement that
        is already broadcast cannot be withdrawn.
        """
        if self.is_terminal:
            return False
        self.cancel_requested = True
        return self.current_step in (AttemptStep.NONE,) or self.current_step.is_awaiting_signature()

    def reset(self) -> None:
        """Drop attempt-scoped state after a failure."""
        self.route = None
        self.plan = None
        self.processed_hashes.clear()
        self.cancel_requested = False


@dataclass
class PaymentResult:
    """Result of a payment operation."""

    success: bool
    attempt_id: str
    state: OrchestratorState
    amount: Decimal
    receiver: str
    request_id: str | None = None
    approval_tx: str | None = None
    settlement_tx: str | None = None
    is_direct_transfer: bool | None = None
    error: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_attempt(cls, attempt: PaymentAttempt) -> "PaymentResult":
        return cls(
            success=attempt.state == OrchestratorState.DONE,
            attempt_id=attempt.id,
            state=attempt.state,
            amount=attempt.amount,
            receiver=attempt.receiver_identity,
            request_id=attempt.request_id,
            approval_tx=attempt.approval_tx_hash,
            settlement_tx=attempt.settlement_tx_hash,
            is_direct_transfer=attempt.plan.is_direct_transfer if attempt.plan else None,
            error=attempt.error,
            error_code=attempt.error_code,
            metadata={
                "states": [s.value for s in attempt.state_history],
                "transactions": len(attempt.submitted_transactions),
            },
        )
