"""Tests for the settlement provider client and route resolution."""

import json
from decimal import Decimal

import httpx
import pytest

from crosspay.core.exceptions import QuoteUnavailableError, SettlementBuildError, UnsupportedRouteError
from crosspay.core.types import SettlementPreference
from crosspay.settlement.provider import (
    ProviderQuote,
    SettlementBuildRequest,
    SettlementProviderClient,
)

from .conftest import GATEWAY_TARGET, PAYER_ADDRESS, RECEIVER_ADDRESS, SETTLEMENT_DATA


def _client(handler, **kwargs) -> SettlementProviderClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SettlementProviderClient(api_key="key-123", base_url="https://provider.test/api", http_client=http_client, **kwargs)


def _build_request() -> SettlementBuildRequest:
    return SettlementBuildRequest(
        receiver_identity="alice",
        amount=Decimal("25"),
        source_network_id=137,
        source_asset_symbol="USDC",
        source_address=PAYER_ADDRESS,
        overrides=SettlementPreference(137, "USDC", RECEIVER_ADDRESS),
    )


class TestPaymentQuote:
    @pytest.mark.asyncio
    async def test_parses_best_quote(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = request.url
            captured["api_key"] = request.headers.get("x-api-key")
            return httpx.Response(
                200,
                json={
                    "result": [
                        {"blockchain": "Polygon", "tokenSymbol": "usdc", "tokenDecimals": 6, "depositAmount": "25.1"},
                        {"blockchain": "base", "tokenSymbol": "USDC", "tokenDecimals": 6, "depositAmount": "26"},
                    ]
                },
            )

        quote = await _client(handler).get_payment_quote(PAYER_ADDRESS, Decimal("25"))

        assert quote == ProviderQuote("Polygon", "USDC", 6, Decimal("25.1"))
        assert captured["url"].path == "/api/sdk/process-payment-quote"
        assert captured["url"].params["userAddress"] == PAYER_ADDRESS
        assert captured["url"].params["amount"] == "25"
        assert captured["api_key"] == "key-123"

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = _client(lambda request: httpx.Response(500, json={"error": "down"}))
        with pytest.raises(QuoteUnavailableError) as exc_info:
            await client.get_payment_quote(PAYER_ADDRESS, Decimal("25"))
        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_empty_result(self):
        client = _client(lambda request: httpx.Response(200, json={"result": []}))
        with pytest.raises(QuoteUnavailableError, match="No quote"):
            await client.get_payment_quote(PAYER_ADDRESS, Decimal("25"))

    @pytest.mark.asyncio
    async def test_malformed_quote(self):
        client = _client(lambda request: httpx.Response(200, json={"result": [{"blockchain": "base"}]}))
        with pytest.raises(QuoteUnavailableError, match="Malformed"):
            await client.get_payment_quote(PAYER_ADDRESS, Decimal("25"))

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(QuoteUnavailableError):
            await _client(handler).get_payment_quote(PAYER_ADDRESS, Decimal("25"))


class TestBuildTransaction:
    @pytest.mark.asyncio
    async def test_posts_request_body(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "isDirectTransfer": True,
                    "transaction": {"to": GATEWAY_TARGET, "data": SETTLEMENT_DATA, "value": "0x0"},
                },
            )

        response = await _client(handler).build_transaction(_build_request())

        assert captured["url"] == "https://provider.test/api/getSwapData"
        assert captured["body"] == {
            "receiverIdentity": "alice",
            "amount": "25",
            "sourceNetwork": 137,
            "sourceAssetSymbol": "USDC",
            "sourceAddress": PAYER_ADDRESS,
            "overrides": {"network": 137, "asset": "USDC", "address": RECEIVER_ADDRESS},
        }
        assert response.success is True
        assert response.is_direct_transfer is True
        assert response.to == GATEWAY_TARGET
        assert response.value == 0

    @pytest.mark.asyncio
    async def test_custom_build_url(self):
        urls = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(str(request.url))
            return httpx.Response(200, json={"success": True, "transaction": {"to": GATEWAY_TARGET, "data": SETTLEMENT_DATA}})

        await _client(handler, build_url="https://app.test/api/getSwapData").build_transaction(_build_request())
        assert urls == ["https://app.test/api/getSwapData"]

    @pytest.mark.asyncio
    async def test_unsuccessful_response(self):
        client = _client(lambda request: httpx.Response(200, json={"success": False, "error": "No liquidity"}))
        with pytest.raises(SettlementBuildError, match="No liquidity"):
            await client.build_transaction(_build_request())

    @pytest.mark.asyncio
    async def test_http_error_uses_body_message(self):
        client = _client(lambda request: httpx.Response(400, json={"error": "Receiver not found"}))
        with pytest.raises(SettlementBuildError, match="Receiver not found"):
            await client.build_transaction(_build_request())

    @pytest.mark.asyncio
    async def test_http_error_with_non_json_body(self):
        client = _client(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(SettlementBuildError, match="HTTP 502"):
            await client.build_transaction(_build_request())


class TestQuoteResolver:
    @pytest.mark.asyncio
    async def test_bridged_route(self, quote_resolver, provider):
        route = await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDC")
        assert route.network_id == 137
        assert route.asset_symbol == "USDC"
        assert route.deposit_amount == Decimal("25")
        assert route.is_direct_transfer is False
        provider.get_payment_quote.assert_awaited_once_with(PAYER_ADDRESS, Decimal("25"))

    @pytest.mark.asyncio
    async def test_direct_transfer_route(self, quote_resolver):
        route = await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 137, "USDC")
        assert route.is_direct_transfer is True

    @pytest.mark.asyncio
    async def test_same_network_other_asset_is_not_direct(self, quote_resolver, provider):
        provider.get_payment_quote.return_value = ProviderQuote("ethereum", "USDC", 6, Decimal("25"))
        route = await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDT")
        assert route.network_id == 1
        assert route.is_direct_transfer is False

    @pytest.mark.asyncio
    async def test_unknown_blockchain_fails_closed(self, quote_resolver, provider):
        provider.get_payment_quote.return_value = ProviderQuote("optimism", "USDC", 6, Decimal("25"))
        with pytest.raises(UnsupportedRouteError) as exc_info:
            await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDC")
        assert exc_info.value.blockchain == "optimism"

    @pytest.mark.asyncio
    async def test_unknown_token(self, quote_resolver, provider):
        provider.get_payment_quote.return_value = ProviderQuote("base", "DAI", 18, Decimal("25"))
        with pytest.raises(UnsupportedRouteError):
            await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDC")

    @pytest.mark.asyncio
    async def test_bnb_token_by_code(self, quote_resolver, provider):
        provider.get_payment_quote.return_value = ProviderQuote("bsc", "BSC_USD", 18, Decimal("25"))
        route = await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDC")
        assert route.network_id == 56
        assert route.asset_symbol == "BSC-USD"

    @pytest.mark.asyncio
    async def test_quote_failure_is_not_retried(self, quote_resolver, provider):
        provider.get_payment_quote.side_effect = QuoteUnavailableError("down")
        with pytest.raises(QuoteUnavailableError):
            await quote_resolver.resolve_route(PAYER_ADDRESS, Decimal("25"), 1, "USDC")
        assert provider.get_payment_quote.await_count == 1
