"""Tests for the Neynar identity resolver."""

import httpx
import pytest

from crosspay.core.exceptions import NetworkError, ValidationError
from crosspay.identity import NeynarIdentityResolver

from .conftest import SOLANA_ADDRESS

PRIMARY_ETH = "0xABCDEF0000000000000000000000000000000001"
OTHER_ETH = "0xabcdef0000000000000000000000000000000002"


def _resolver(handler) -> NeynarIdentityResolver:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NeynarIdentityResolver(api_key="neynar-key", base_url="https://neynar.test/v2/farcaster", http_client=http_client)


class TestVerifiedAddresses:
    @pytest.mark.asyncio
    async def test_primary_addresses_first(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["fids"] = request.url.params["fids"]
            captured["api_key"] = request.headers.get("api_key")
            return httpx.Response(
                200,
                json={
                    "users": [
                        {
                            "fid": 3,
                            "verified_addresses": {
                                "eth_addresses": [OTHER_ETH, PRIMARY_ETH.lower()],
                                "sol_addresses": [SOLANA_ADDRESS],
                                "primary": {"eth_address": PRIMARY_ETH, "sol_address": SOLANA_ADDRESS},
                            },
                        }
                    ]
                },
            )

        verified = await _resolver(handler).verified_addresses("3")

        assert captured == {"path": "/v2/farcaster/user/bulk", "fids": "3", "api_key": "neynar-key"}
        assert verified.evm_addresses == [PRIMARY_ETH.lower(), OTHER_ETH]
        assert verified.solana_addresses == [SOLANA_ADDRESS]
        assert verified.primary_evm == PRIMARY_ETH
        assert not verified.is_empty

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        resolver = _resolver(lambda request: httpx.Response(200, json={"users": []}))
        assert await resolver.verified_addresses("999") is None

    @pytest.mark.asyncio
    async def test_non_numeric_identity(self):
        resolver = _resolver(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValidationError):
            await resolver.verified_addresses("alice")

    @pytest.mark.asyncio
    async def test_http_error(self):
        resolver = _resolver(lambda request: httpx.Response(429, json={"message": "rate limited"}))
        with pytest.raises(NetworkError) as exc_info:
            await resolver.verified_addresses("3")
        assert exc_info.value.is_rate_limited()


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_users(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["q"] == "dwr"
            return httpx.Response(
                200,
                json={
                    "result": {
                        "users": [
                            {
                                "fid": 3,
                                "username": "dwr",
                                "display_name": "Dan",
                                "pfp_url": "https://img.test/3.png",
                                "custody_address": OTHER_ETH,
                                "verified_addresses": {"primary": {"eth_address": PRIMARY_ETH}},
                            },
                            {"fid": 4, "username": "nobody", "custody_address": OTHER_ETH},
                        ]
                    }
                },
            )

        users = await _resolver(handler).search("  dwr ")

        assert [u.identity for u in users] == ["3", "4"]
        assert users[0].address == PRIMARY_ETH
        assert users[0].avatar_url == "https://img.test/3.png"
        assert users[1].display_name == "nobody"
        assert users[1].address == OTHER_ETH

    @pytest.mark.asyncio
    async def test_empty_query(self):
        resolver = _resolver(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValidationError):
            await resolver.search("   ")
