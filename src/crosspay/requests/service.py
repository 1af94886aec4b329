"""
PaymentRequestService - Manages the lifecycle of payment requests.

A request is created by the payee and is PENDING until the payer pays
(ACCEPTED), denies it (REJECTED), or it runs past its expiry (EXPIRED).
Requests are never deleted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from crosspay.core.exceptions import (
    RequestNotFoundError,
    RequestStateError,
    UnsupportedNetworkError,
    ValidationError,
)
from crosspay.core.logging import get_logger
from crosspay.core.types import (
    AmountType,
    PaymentRequest,
    PaymentRequestStatus,
    RequestDirection,
    RequestOverride,
    utcnow,
)
from crosspay.utils.address import classify_address, is_truncated, validate_address
from crosspay.utils.amounts import require_positive_amount

if TYPE_CHECKING:
    from crosspay.registry import Registry
    from crosspay.storage.base import StorageBackend

logger = get_logger("requests")


class PaymentRequestService:
    """
    Service for managing payment requests.

    Persists requests to the storage backend (Redis/Memory). Status
    transitions hold a per-request lock so two concurrent transitions
    cannot both leave PENDING.
    """

    COLLECTION = "payment_requests"
    LOCK_TTL = 30

    def __init__(self, storage: StorageBackend, registry: Registry) -> None:
        """Initialize with storage backend."""
        self._storage = storage
        self._registry = registry

    def _make_key(self, request_id: str) -> str:
        return f"request:{request_id}"

    def _lock_key(self, request_id: str) -> str:
        return f"payment_request:{request_id}"

    async def create(
        self,
        payer_identity: str,
        payee_identity: str,
        amount: AmountType,
        override: RequestOverride | None = None,
        note: str | None = None,
        expires_at: datetime | None = None,
        expires_in: int | None = None,
    ) -> PaymentRequest:
        """
        Create a new PENDING payment request.

        Args:
            payer_identity: Identity asked to pay
            payee_identity: Identity that will be paid (the requester)
            amount: Positive amount in human units
            override: Destination replacing the payee's stored preference
            note: Free-form message
            expires_at: Absolute expiry
            expires_in: Time to live in seconds (ignored if expires_at is set)

        Raises:
            ValidationError: bad identities, amount, override or expiry
            UnsupportedNetworkError / UnsupportedAssetError: unregistered override
        """
        if not payer_identity or not payee_identity:
            raise ValidationError("Both payer and payee identities are required")
        if payer_identity == payee_identity:
            raise ValidationError("Cannot request funds from yourself")
        parsed_amount = require_positive_amount(amount)
        override = self._validate_override(override)

        created_at = utcnow()
        if expires_at is None and expires_in is not None:
            expires_at = created_at + timedelta(seconds=expires_in)
        if expires_at is not None and expires_at <= created_at:
            raise ValidationError("Expiry must be in the future")

        request = PaymentRequest(
            id=str(uuid.uuid4()),
            payer_identity=payer_identity,
            payee_identity=payee_identity,
            amount=parsed_amount,
            status=PaymentRequestStatus.PENDING,
            created_at=created_at,
            override=override,
            note=note,
            expires_at=expires_at,
        )
        await self._save(request)
        logger.info(f"Request {request.id}: {payee_identity} asked {payer_identity} for {parsed_amount}")
        return request

    async def get(self, request_id: str) -> PaymentRequest:
        """
        Get a request by id. An overdue PENDING request is expired first.

        Raises:
            RequestNotFoundError: no such request
        """
        request = await self._load(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        if request.is_overdue():
            request = await self._expire(request)
        return request

    async def get_payable(self, request_id: str, payer_identity: str | None = None) -> PaymentRequest:
        """
        Get a request that can be paid now.

        Raises:
            ValidationError: request is not PENDING, or addressed to someone else
        """
        request = await self.get(request_id)
        if request.status != PaymentRequestStatus.PENDING:
            raise ValidationError(
                f"Request {request_id} is {request.status.value} and cannot be paid",
                details={"status": request.status.value},
            )
        if payer_identity is not None and request.payer_identity != payer_identity:
            raise ValidationError(f"Request {request_id} is not addressed to {payer_identity}")
        return request

    async def update_status(self, request_id: str, status: PaymentRequestStatus) -> PaymentRequest:
        """
        Move a PENDING request to a terminal status.

        Raises:
            RequestNotFoundError: no such request
            RequestStateError: request is not PENDING, is locked, or the target is PENDING
        """
        if not status.is_terminal():
            raise RequestStateError(
                "Requests can only move out of PENDING",
                request_id=request_id,
                current_status=status.value,
            )

        token = await self._storage.acquire_lock(self._lock_key(request_id), ttl=self.LOCK_TTL)
        if token is None:
            raise RequestStateError(
                f"Request {request_id} is being updated concurrently",
                request_id=request_id,
                current_status="LOCKED",
            )
        try:
            request = await self._load(request_id)
            if request is None:
                raise RequestNotFoundError(request_id)
            if request.status.is_terminal():
                raise RequestStateError(
                    f"Request {request_id} is already {request.status.value}",
                    request_id=request_id,
                    current_status=request.status.value,
                )
            request.status = status
            request.updated_at = utcnow()
            await self._save(request)
        finally:
            await self._storage.release_lock(self._lock_key(request_id), token)

        logger.info(f"Request {request_id}: PENDING -> {status.value}")
        return request

    async def mark_accepted(self, request_id: str) -> PaymentRequest:
        return await self.update_status(request_id, PaymentRequestStatus.ACCEPTED)

    async def deny(self, request_id: str, payer_identity: str) -> PaymentRequest:
        """
        Reject a request. Only the payer it is addressed to may deny it.

        Raises:
            ValidationError: caller is not the request's payer
        """
        request = await self.get(request_id)
        if request.payer_identity != payer_identity:
            raise ValidationError(f"Only the payer of request {request_id} can deny it")
        return await self.update_status(request_id, PaymentRequestStatus.REJECTED)

    async def list(
        self,
        identity: str,
        direction: RequestDirection,
        status: PaymentRequestStatus | None = None,
    ) -> list[PaymentRequest]:
        """
        List requests an identity created (SENT) or must pay (RECEIVED), newest first.
        """
        field = "payee_identity" if direction == RequestDirection.SENT else "payer_identity"
        records = await self._storage.query(self.COLLECTION, filters={field: identity})

        requests = []
        for data in records:
            data.pop("_key", None)
            request = PaymentRequest.from_dict(data)
            if request.is_overdue():
                request = await self._expire(request)
            if status is not None and request.status != status:
                continue
            requests.append(request)

        requests.sort(key=lambda r: r.created_at, reverse=True)
        return requests

    async def expire_overdue(self, now: datetime | None = None) -> list[str]:
        """Expire every PENDING request past its expiry. Returns the expired ids."""
        now = now or utcnow()
        records = await self._storage.query(
            self.COLLECTION, filters={"status": PaymentRequestStatus.PENDING.value}
        )
        expired = []
        for data in records:
            data.pop("_key", None)
            request = PaymentRequest.from_dict(data)
            if request.is_overdue(now):
                await self._expire(request)
                expired.append(request.id)
        return expired

    async def _expire(self, request: PaymentRequest) -> PaymentRequest:
        try:
            return await self.update_status(request.id, PaymentRequestStatus.EXPIRED)
        except RequestStateError:
            # Another transition won; report what is stored
            return await self._load(request.id) or request

    def _validate_override(self, override: RequestOverride | None) -> RequestOverride | None:
        if override is None or override.is_empty():
            return None

        if override.network_id is not None:
            network = self._registry.lookup_network(override.network_id)
            if network is None:
                raise UnsupportedNetworkError(
                    f"Override network {override.network_id} is not supported",
                    network_id=override.network_id,
                )
            if override.asset_symbol:
                self._registry.require_asset(network.id, override.asset_symbol)
            if override.address:
                address = validate_address(override.address, network.address_model, "override address")
                return RequestOverride(network.id, override.asset_symbol, address)
            return override

        if override.address:
            if is_truncated(override.address):
                raise ValidationError("override address is a truncated display string")
            if classify_address(override.address.strip()) is None:
                raise ValidationError("override address is not a recognised address format")
        if override.asset_symbol and not self._registry.networks_supporting(override.asset_symbol):
            raise ValidationError(f"Override asset {override.asset_symbol} is not supported on any network")
        return override

    async def _save(self, request: PaymentRequest) -> None:
        await self._storage.save(self.COLLECTION, self._make_key(request.id), request.to_dict())

    async def _load(self, request_id: str) -> PaymentRequest | None:
        data = await self._storage.get(self.COLLECTION, self._make_key(request_id))
        if not data:
            return None
        return PaymentRequest.from_dict(data)
