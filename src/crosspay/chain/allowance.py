"""
Allowance checking.

Decides whether a payer must grant the settlement gateway a token
allowance before a payment can be settled.
"""

from __future__ import annotations

from decimal import Decimal

from crosspay.chain.rpc import ChainReader
from crosspay.core.exceptions import UnsupportedAssetError, ValidationError
from crosspay.core.logging import get_logger
from crosspay.core.types import NATIVE_INTEGRATION, AmountType, ApprovalCheck
from crosspay.registry import Registry
from crosspay.utils.address import is_account_address, short_address
from crosspay.utils.amounts import from_smallest_unit, parse_amount, to_smallest_unit

logger = get_logger("chain.allowance")


class AllowanceChecker:
    """
    Compares on-chain allowances against payment amounts.

    Degenerate amounts (non-numeric, zero or negative) are a no-op rather
    than an error: they report no approval needed and a required amount of 0.
    """

    def __init__(self, registry: Registry, reader: ChainReader) -> None:
        self._registry = registry
        self._reader = reader

    async def check_approval_needed(
        self,
        network_id: int,
        asset_symbol: str,
        owner_address: str,
        human_amount: AmountType,
        spender_address: str | None = None,
    ) -> ApprovalCheck:
        """
        Check whether an approval transaction is needed.

        Args:
            network_id: Network the deposit is collected on
            asset_symbol: Token being paid
            owner_address: Payer's address
            human_amount: Amount in human units (e.g. "12.5")
            spender_address: Explicit spender, defaults to the network gateway

        Raises:
            UnsupportedAssetError: asset not registered on the network
            UnsupportedNetworkError: network not registered
            ChainReadError: allowance read failed
        """
        asset = self._registry.lookup_asset(network_id, asset_symbol)
        if asset is None:
            raise UnsupportedAssetError(
                f"Asset {asset_symbol} not found on network {network_id}",
                network_id=network_id,
                symbol=asset_symbol,
            )

        gateway = self._registry.gateway_address(network_id)
        if gateway == NATIVE_INTEGRATION:
            return ApprovalCheck(needs_approval=False, current_allowance=0, required_amount=0)
        spender = spender_address or gateway

        amount = parse_amount(human_amount)
        if amount is None or amount <= 0:
            logger.debug(f"Ignoring degenerate approval amount: {human_amount!r}")
            return ApprovalCheck(
                needs_approval=False, current_allowance=0, required_amount=0, spender=spender
            )

        required = to_smallest_unit(amount, asset.decimals)

        if not is_account_address(owner_address):
            raise ValidationError(
                "Owner address is not an account address", details={"owner": owner_address}
            )

        current = await self._reader.get_allowance(
            network_id, asset.contract_address, owner_address, spender
        )
        needs_approval = current < required
        logger.debug(
            f"Allowance of {short_address(owner_address)} for {asset_symbol} on {network_id}: "
            f"{current} (required {required}, approval {'needed' if needs_approval else 'not needed'})"
        )
        return ApprovalCheck(
            needs_approval=needs_approval,
            current_allowance=current,
            required_amount=required,
            spender=spender,
        )

    async def read_balance(self, network_id: int, asset_symbol: str, owner_address: str) -> Decimal:
        """Token balance of an address in human units."""
        asset = self._registry.require_asset(network_id, asset_symbol)
        raw = await self._reader.get_balance(network_id, asset.contract_address, owner_address)
        return from_smallest_unit(raw, asset.decimals)
