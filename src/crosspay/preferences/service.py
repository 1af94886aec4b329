"""
PreferenceService - Receivers' settlement preferences.

A preference names the network, asset and address a receiver collects
funds on. The three fields are validated together against the registry
and replaced together; there are no partial updates.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from crosspay.core.exceptions import UnsupportedAssetError, UnsupportedNetworkError, ValidationError
from crosspay.core.logging import get_logger
from crosspay.core.types import RequestOverride, SettlementPreference, utcnow
from crosspay.settlement.plan import validate_destination

if TYPE_CHECKING:
    from crosspay.registry import Registry
    from crosspay.storage.base import StorageBackend

logger = get_logger("preferences")


class PreferenceService:
    """Stores one settlement preference per identity."""

    COLLECTION = "settlement_preferences"

    def __init__(self, storage: StorageBackend, registry: Registry) -> None:
        self._storage = storage
        self._registry = registry

    def _make_key(self, identity: str) -> str:
        return f"preference:{identity}"

    async def get(self, identity: str) -> SettlementPreference | None:
        data = await self._storage.get(self.COLLECTION, self._make_key(identity))
        if not data:
            return None
        return SettlementPreference.from_dict(data)

    async def update(
        self,
        identity: str,
        network: int | str,
        asset_symbol: str,
        address: str,
    ) -> SettlementPreference:
        """
        Replace an identity's preference.

        Args:
            network: Chain id or network code (e.g. ``"BASE"``)
            asset_symbol: Asset symbol or code (e.g. ``"BSC_USD"``)
            address: Receiving address in the network's address format

        Raises:
            UnsupportedNetworkError / UnsupportedAssetError: unregistered combination
            ValidationError: address empty, truncated, or of the wrong format
        """
        if not identity:
            raise ValidationError("identity is required")

        resolved = self._registry.resolve_network(network)
        if resolved is None:
            raise UnsupportedNetworkError(
                f"Network {network} is not supported",
                network_id=network if isinstance(network, int) else None,
            )
        asset = self._registry.lookup_asset(resolved.id, asset_symbol) or (
            self._registry.lookup_asset_by_code(resolved.id, asset_symbol)
        )
        if asset is None:
            raise UnsupportedAssetError(
                f"Asset {asset_symbol} is not supported on {resolved.display_name}",
                network_id=resolved.id,
                symbol=asset_symbol,
            )

        preference = validate_destination(
            self._registry,
            SettlementPreference(network_id=resolved.id, asset_symbol=asset.symbol, address=address or ""),
        )

        record = preference.to_dict()
        record.update(
            {
                "identity": identity,
                "network_code": resolved.code,
                "asset_code": asset.storage_code,
                "updated_at": utcnow().isoformat(),
            }
        )
        await self._storage.save(self.COLLECTION, self._make_key(identity), record)
        logger.info(f"Preference for {identity}: {asset.symbol} on {resolved.display_name}")
        return preference

    async def resolve_destination(
        self,
        identity: str,
        override: RequestOverride | None = None,
    ) -> SettlementPreference:
        """
        The destination a payment to ``identity`` should settle on.

        Fields set on the override replace the stored preference's fields.

        Raises:
            ValidationError: no preference stored and the override is incomplete
        """
        stored = await self.get(identity)
        if stored is None:
            if override and override.network_id is not None and override.asset_symbol and override.address:
                return SettlementPreference(override.network_id, override.asset_symbol, override.address)
            raise ValidationError(f"Receiver {identity} has no settlement preference set")
        return stored.merged(override)
