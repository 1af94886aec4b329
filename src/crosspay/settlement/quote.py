"""Route resolution from settlement provider quotes."""

from __future__ import annotations

from decimal import Decimal

from crosspay.core.exceptions import UnsupportedRouteError
from crosspay.core.logging import get_logger
from crosspay.core.types import Route
from crosspay.registry import Registry
from crosspay.settlement.provider import SettlementProviderClient

logger = get_logger("settlement.quote")


class QuoteResolver:
    """
    Turns a provider quote into a Route on a registered network.

    Unknown blockchain names fail closed with UnsupportedRouteError; there
    is no default network.
    """

    def __init__(self, registry: Registry, provider: SettlementProviderClient) -> None:
        self._registry = registry
        self._provider = provider

    async def resolve_route(
        self,
        payer_address: str,
        amount: Decimal,
        source_network_id: int,
        source_asset: str,
    ) -> Route:
        """
        Resolve where the payer's deposit is collected.

        Raises:
            QuoteUnavailableError: the provider call failed (not retried)
            UnsupportedRouteError: the quoted blockchain or token is unknown
        """
        quote = await self._provider.get_payment_quote(payer_address, amount)

        network = self._registry.lookup_network_by_alias(quote.blockchain)
        if network is None:
            raise UnsupportedRouteError(
                f"Unsupported blockchain in quote: {quote.blockchain}",
                blockchain=quote.blockchain,
            )

        asset = self._registry.lookup_asset(network.id, quote.token_symbol) or (
            self._registry.lookup_asset_by_code(network.id, quote.token_symbol)
        )
        if asset is None:
            raise UnsupportedRouteError(
                f"Quoted token {quote.token_symbol} is not supported on {network.display_name}",
                blockchain=quote.blockchain,
                details={"token": quote.token_symbol},
            )

        if quote.token_decimals is not None and quote.token_decimals != asset.decimals:
            logger.warning(
                f"Quote reports {quote.token_decimals} decimals for {asset.symbol} on "
                f"{network.display_name}, registry has {asset.decimals}; using registry value"
            )

        route = Route(
            network_id=network.id,
            asset_symbol=asset.symbol,
            deposit_amount=quote.deposit_amount,
            is_direct_transfer=(network.id == source_network_id and asset.symbol == source_asset),
            provider_blockchain=quote.blockchain,
            token_decimals=asset.decimals,
        )
        logger.info(
            f"Route: deposit {route.deposit_amount} {route.asset_symbol} on {network.display_name}"
            f"{' (direct transfer)' if route.is_direct_transfer else ''}"
        )
        return route
