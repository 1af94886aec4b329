"""
Network and asset registry.

Read-only lookups over the static network table. Every external name of a
network (chain id, enum code, settlement provider id, provider blockchain
aliases) resolves through the same entry.
"""

from __future__ import annotations

from collections.abc import Iterable

from crosspay.core.exceptions import UnsupportedAssetError, UnsupportedNetworkError
from crosspay.core.networks import NETWORKS
from crosspay.core.types import Asset, Network


class Registry:
    """
    Immutable lookup table of networks and their assets.

    Safe to share between any number of concurrent callers.

    Example:
        >>> registry = Registry()
        >>> registry.lookup_asset(8453, "USDC").decimals
        6
        >>> registry.lookup_network_by_alias("Matic").id
        137
    """

    def __init__(self, networks: Iterable[Network] = NETWORKS) -> None:
        by_id: dict[int, Network] = {}
        by_code: dict[str, Network] = {}
        by_alias: dict[str, Network] = {}
        by_provider_id: dict[int, Network] = {}

        for network in networks:
            if network.id in by_id:
                raise ValueError(f"Duplicate network id: {network.id}")
            symbols = [a.symbol for a in network.assets]
            if len(symbols) != len(set(symbols)):
                raise ValueError(f"Duplicate asset symbol on network {network.id}")
            by_id[network.id] = network
            by_code[network.code.upper()] = network
            if network.provider_id is not None:
                by_provider_id[network.provider_id] = network
            for alias in network.aliases:
                key = alias.strip().lower()
                if key in by_alias and by_alias[key].id != network.id:
                    raise ValueError(f"Alias '{alias}' maps to more than one network")
                by_alias[key] = network

        self._by_id = by_id
        self._by_code = by_code
        self._by_alias = by_alias
        self._by_provider_id = by_provider_id

    # ─── Core Lookups ────────────────────────────────────────────────

    def lookup_network(self, network_id: int) -> Network | None:
        return self._by_id.get(network_id)

    def lookup_asset(self, network_id: int, symbol: str) -> Asset | None:
        network = self._by_id.get(network_id)
        if network is None:
            return None
        return network.asset(symbol)

    def list_assets(self, network_id: int) -> list[Asset]:
        network = self._by_id.get(network_id)
        return list(network.assets) if network else []

    def gateway_address(self, network_id: int) -> str:
        """
        Gateway contract that must hold the allowance on a network.

        Returns the NATIVE_INTEGRATION sentinel for natively settled networks.

        Raises:
            UnsupportedNetworkError: network id is not registered
        """
        return self.require_network(network_id).gateway_contract

    def require_network(self, network_id: int) -> Network:
        network = self._by_id.get(network_id)
        if network is None:
            raise UnsupportedNetworkError(
                f"Network {network_id} is not supported", network_id=network_id
            )
        return network

    def require_asset(self, network_id: int, symbol: str) -> Asset:
        network = self.require_network(network_id)
        asset = network.asset(symbol)
        if asset is None:
            raise UnsupportedAssetError(
                f"Asset {symbol} is not supported on {network.display_name}",
                network_id=network_id,
                symbol=symbol,
            )
        return asset

    # ─── Alias Lookups ───────────────────────────────────────────────

    def lookup_network_by_alias(self, name: str) -> Network | None:
        """Map a settlement provider blockchain name (case-insensitive)."""
        return self._by_alias.get(name.strip().lower())

    def lookup_network_by_code(self, code: str) -> Network | None:
        return self._by_code.get(code.strip().upper())

    def lookup_network_by_provider_id(self, provider_id: int) -> Network | None:
        return self._by_provider_id.get(provider_id)

    def lookup_asset_by_code(self, network_id: int, code: str) -> Asset | None:
        for asset in self.list_assets(network_id):
            if asset.storage_code == code or asset.symbol == code:
                return asset
        return None

    def resolve_network(self, ref: int | str) -> Network | None:
        """Resolve a chain id, numeric string, or enum code."""
        if isinstance(ref, int):
            return self.lookup_network(ref)
        ref = ref.strip()
        if ref.isdigit():
            return self.lookup_network(int(ref))
        return self.lookup_network_by_code(ref)

    def network_code(self, network_id: int) -> str:
        return self.require_network(network_id).code

    def asset_code(self, network_id: int, symbol: str) -> str:
        return self.require_asset(network_id, symbol).storage_code

    # ─── Listings ────────────────────────────────────────────────────

    def list_networks(self) -> list[Network]:
        return list(self._by_id.values())

    def list_all_assets(self) -> list[Asset]:
        return [asset for network in self._by_id.values() for asset in network.assets]

    def networks_supporting(self, symbol: str) -> list[Network]:
        return [n for n in self._by_id.values() if n.asset(symbol) is not None]


_default_registry: Registry | None = None


def get_registry() -> Registry:
    """Shared registry over the built-in network table."""
    global _default_registry
    if _default_registry is None:
        _default_registry = Registry()
    return _default_registry
