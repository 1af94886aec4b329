"""
Settlement provider API client.

The provider answers two questions: where a payer's deposit should be
collected (the payment quote), and which transaction performs the
settlement (the transaction build). Calls are never retried here: a
failed call ends the payment attempt and the payer may start a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from crosspay.core.exceptions import QuoteUnavailableError, SettlementBuildError
from crosspay.core.logging import get_logger
from crosspay.core.types import SettlementPreference
from crosspay.utils.address import short_address


@dataclass(frozen=True)
class ProviderQuote:
    """Best route returned by the quote endpoint."""

    blockchain: str
    token_symbol: str
    token_decimals: int | None
    deposit_amount: Decimal


@dataclass(frozen=True)
class SettlementBuildRequest:
    """Body of a transaction build call."""

    receiver_identity: str
    amount: Decimal
    source_network_id: int
    source_asset_symbol: str
    source_address: str
    overrides: SettlementPreference | None = None

    def to_api_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "receiverIdentity": self.receiver_identity,
            "amount": str(self.amount),
            "sourceNetwork": self.source_network_id,
            "sourceAssetSymbol": self.source_asset_symbol,
            "sourceAddress": self.source_address,
        }
        if self.overrides is not None:
            body["overrides"] = {
                "network": self.overrides.network_id,
                "asset": self.overrides.asset_symbol,
                "address": self.overrides.address,
            }
        return body


@dataclass(frozen=True)
class SettlementBuildResponse:
    """Raw transaction build answer, before validation."""

    success: bool
    is_direct_transfer: bool = False
    to: str | None = None
    data: str | None = None
    value: int = 0
    error: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api_dict(cls, payload: dict[str, Any]) -> SettlementBuildResponse:
        tx = payload.get("transaction") or {}
        if not isinstance(tx, dict):
            tx = {}
        raw_value = tx.get("value") or 0
        try:
            value = int(raw_value, 16) if isinstance(raw_value, str) and raw_value.startswith("0x") else int(raw_value)
        except (TypeError, ValueError):
            value = 0
        return cls(
            success=bool(payload.get("success")),
            is_direct_transfer=bool(payload.get("isDirectTransfer")),
            to=tx.get("to"),
            data=tx.get("data"),
            value=value,
            error=payload.get("error"),
            raw=payload,
        )


class SettlementProviderClient:
    """
    Client for the settlement provider API.

    Example:
        >>> client = SettlementProviderClient(api_key="...")
        >>> quote = await client.get_payment_quote("0xabc...", Decimal("10"))
        >>> quote.blockchain
        'base'
    """

    DEFAULT_BASE_URL = "https://api.gasyard.fi/api"
    QUOTE_PATH = "/sdk/process-payment-quote"
    BUILD_PATH = "/getSwapData"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        build_url: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            api_key: Provider API key, sent as ``x-api-key``
            base_url: Provider API base URL
            build_url: Full URL of the transaction build endpoint
                (defaults to ``<base_url>/getSwapData``)
            timeout: Request timeout in seconds
            http_client: Shared httpx client
        """
        self._api_key = api_key
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._build_url = build_url or f"{self._base_url}{self.BUILD_PATH}"
        self._timeout = timeout
        self._logger = get_logger("settlement.provider")
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self._api_key, "Accept": "application/json"}

    async def _get(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        client = await self._get_client()
        self._logger.debug(f"GET {url}")
        response = await client.get(url, params=params, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def _post(self, url: str, body: Any) -> dict[str, Any]:
        client = await self._get_client()
        self._logger.debug(f"POST {url}")
        response = await client.post(url, json=body, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def get_payment_quote(self, payer_address: str, amount: Decimal) -> ProviderQuote:
        """
        Ask the provider where the payer's deposit should be collected.

        Raises:
            QuoteUnavailableError: transport failure, error status, or empty result
        """
        url = f"{self._base_url}{self.QUOTE_PATH}"
        try:
            data = await self._get(url, {"userAddress": payer_address, "amount": str(amount)})
        except httpx.HTTPStatusError as e:
            raise QuoteUnavailableError(
                f"Quote request failed with HTTP {e.response.status_code}",
                amount=amount,
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise QuoteUnavailableError(f"Quote request failed: {e}", amount=amount) from e

        results = data.get("result") if isinstance(data, dict) else None
        quote = results[0] if isinstance(results, list) and results else None
        if not isinstance(quote, dict):
            raise QuoteUnavailableError("No quote returned", amount=amount)

        try:
            deposit_amount = Decimal(str(quote["depositAmount"]))
            decimals = quote.get("tokenDecimals")
            parsed = ProviderQuote(
                blockchain=str(quote["blockchain"]),
                token_symbol=str(quote.get("tokenSymbol") or "USDC").upper(),
                token_decimals=int(decimals) if decimals is not None else None,
                deposit_amount=deposit_amount,
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise QuoteUnavailableError(
                "Malformed quote returned", amount=amount, details={"quote": quote}
            ) from e

        self._logger.debug(
            f"Quote for {short_address(payer_address)}: {parsed.deposit_amount} "
            f"{parsed.token_symbol} on {parsed.blockchain}"
        )
        return parsed

    async def build_transaction(self, request: SettlementBuildRequest) -> SettlementBuildResponse:
        """
        Ask the provider for the settlement transaction.

        Raises:
            SettlementBuildError: transport failure or ``success: false``
        """
        try:
            data = await self._post(self._build_url, request.to_api_dict())
        except httpx.HTTPStatusError as e:
            message = None
            try:
                body = e.response.json()
                message = body.get("error") if isinstance(body, dict) else None
            except ValueError:
                pass
            raise SettlementBuildError(
                message or f"Settlement build failed with HTTP {e.response.status_code}",
                receiver=request.receiver_identity,
                amount=request.amount,
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SettlementBuildError(
                f"Settlement build failed: {e}",
                receiver=request.receiver_identity,
                amount=request.amount,
            ) from e

        response = SettlementBuildResponse.from_api_dict(data if isinstance(data, dict) else {})
        if not response.success:
            raise SettlementBuildError(
                response.error or "Failed to generate settlement transaction",
                receiver=request.receiver_identity,
                amount=request.amount,
            )
        return response
