"""
Settlement plan building and settlement transaction validation.

A plan is the validated answer to "what must the payer sign": zero or one
approval followed by exactly one settlement transaction. Validation fails
fast, and destination checks run before any network call.
"""

from __future__ import annotations

from decimal import Decimal

from crosspay.chain import erc20
from crosspay.chain.allowance import AllowanceChecker
from crosspay.core.exceptions import SettlementBuildError, UnsupportedNetworkError, ValidationError
from crosspay.core.logging import get_logger
from crosspay.core.types import (
    AmountType,
    ApprovalCheck,
    Route,
    SettlementPlan,
    SettlementPreference,
    TransactionRequest,
)
from crosspay.registry import Registry
from crosspay.resilience.retry import execute_with_retry
from crosspay.settlement.provider import SettlementBuildResponse
from crosspay.utils.address import is_account_address, is_hex_data, is_truncated, validate_address
from crosspay.utils.amounts import require_positive_amount

logger = get_logger("settlement.plan")


class SettlementPlanBuilder:
    """
    Builds SettlementPlans from a route and the receiver's destination.

    Args:
        registry: Network and asset lookups
        allowance_checker: On-chain allowance reads
        chain_read_attempts: Attempts for the allowance read
        chain_read_backoff: Exponential backoff multiplier between attempts
    """

    def __init__(
        self,
        registry: Registry,
        allowance_checker: AllowanceChecker,
        chain_read_attempts: int = 3,
        chain_read_backoff: float = 0.5,
    ) -> None:
        self._registry = registry
        self._allowance = allowance_checker
        self._attempts = chain_read_attempts
        self._backoff = chain_read_backoff

    def validate_destination(self, preference: SettlementPreference) -> SettlementPreference:
        return validate_destination(self._registry, preference)

    async def build_plan(
        self,
        source_network_id: int,
        source_asset: str,
        amount: AmountType,
        preference: SettlementPreference,
        route: Route,
        owner_address: str,
    ) -> SettlementPlan:
        """
        Build the plan for one payment attempt.

        Raises:
            ValidationError: bad destination or amount
            UnsupportedNetworkError / UnsupportedAssetError: unregistered pair
            ChainReadError: allowance read failed after all retries
        """
        destination = self.validate_destination(preference)
        source_amount = require_positive_amount(amount)
        self._registry.require_asset(source_network_id, source_asset)
        self._registry.require_asset(route.network_id, route.asset_symbol)

        if route.is_direct_transfer:
            deposit_network_id, deposit_asset, deposit_amount = (
                source_network_id,
                source_asset,
                source_amount,
            )
        else:
            deposit_network_id, deposit_asset, deposit_amount = (
                route.network_id,
                route.asset_symbol,
                route.deposit_amount,
            )

        check = await self.check_allowance(
            deposit_network_id, deposit_asset, owner_address, deposit_amount
        )

        plan = SettlementPlan(
            source_network_id=source_network_id,
            source_asset=source_asset,
            source_amount=source_amount,
            deposit_network_id=deposit_network_id,
            deposit_asset=deposit_asset,
            deposit_amount=deposit_amount,
            destination_network_id=destination.network_id,
            destination_asset=destination.asset_symbol,
            destination_address=destination.address,
            requires_approval=check.needs_approval,
            is_direct_transfer=route.is_direct_transfer,
            approval_amount=check.required_amount if check.needs_approval else None,
            spender=check.spender,
        )
        logger.info(
            f"Plan: {deposit_amount} {deposit_asset} on {deposit_network_id} -> "
            f"{destination.asset_symbol} on {destination.network_id}, "
            f"approval {'required' if plan.requires_approval else 'not required'}"
        )
        return plan

    async def check_allowance(
        self,
        network_id: int,
        asset_symbol: str,
        owner_address: str,
        amount: Decimal,
    ) -> ApprovalCheck:
        """Allowance check with bounded retries on ChainReadError."""
        return await execute_with_retry(
            self._allowance.check_approval_needed,
            network_id,
            asset_symbol,
            owner_address,
            amount,
            attempts=self._attempts,
            backoff=self._backoff,
        )

    def approval_transaction(self, plan: SettlementPlan) -> TransactionRequest:
        """ERC-20 approve(gateway, amount) on the deposit asset's contract."""
        if not plan.requires_approval or plan.approval_amount is None or plan.spender is None:
            raise ValueError("Plan does not require an approval")
        asset = self._registry.require_asset(plan.deposit_network_id, plan.deposit_asset)
        return TransactionRequest(
            network_id=plan.deposit_network_id,
            to=asset.contract_address,
            data=erc20.encode_approve(plan.spender, plan.approval_amount),
            kind="approval",
        )


def validate_destination(registry: Registry, preference: SettlementPreference) -> SettlementPreference:
    """
    Check a receiver's destination without touching the network.

    Returns the preference with surrounding whitespace stripped from the address.

    Raises:
        ValidationError: address empty, truncated, or of the wrong model
        UnsupportedNetworkError / UnsupportedAssetError: unregistered destination
    """
    if not preference.address or not preference.address.strip():
        raise ValidationError("Receiver has no settlement address set")
    if is_truncated(preference.address):
        raise ValidationError(
            "Receiver address is a truncated display string",
            details={"address": preference.address},
        )
    network = registry.lookup_network(preference.network_id)
    if network is None:
        raise UnsupportedNetworkError(
            f"Destination network {preference.network_id} is not supported",
            network_id=preference.network_id,
        )
    address = validate_address(preference.address, network.address_model, "preferred address")
    registry.require_asset(preference.network_id, preference.asset_symbol)
    if address != preference.address:
        return SettlementPreference(preference.network_id, preference.asset_symbol, address)
    return preference


def validate_settlement_transaction(
    response: SettlementBuildResponse,
    network_id: int,
    min_data_length: int = 10,
) -> TransactionRequest:
    """
    Check a transaction build answer before it reaches the wallet.

    Raises:
        SettlementBuildError: missing or malformed ``to``/``data``
    """
    to, data = response.to, response.data
    if not to or not data:
        raise SettlementBuildError("Invalid settlement transaction data received")
    if not is_account_address(to):
        raise SettlementBuildError(
            "Settlement transaction target is not an account address", details={"to": to}
        )
    if not is_hex_data(data) or len(data) < min_data_length:
        raise SettlementBuildError(
            "Settlement transaction calldata is malformed or too short",
            details={"data_length": len(data)},
        )
    return TransactionRequest(
        network_id=network_id,
        to=to,
        data=data,
        value=response.value,
        kind="settlement",
    )
