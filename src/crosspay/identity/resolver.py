"""
Identity resolution.

Maps social identities to the wallet addresses they have verified. The
default implementation reads Farcaster users from the Neynar API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from crosspay.core.exceptions import NetworkError, ValidationError
from crosspay.core.logging import get_logger
from crosspay.identity.types import SocialUser, VerifiedAddresses

logger = get_logger("identity.resolver")


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class IdentityResolver(ABC):
    """Looks up social identities and their verified addresses."""

    @abstractmethod
    async def verified_addresses(self, identity: str) -> VerifiedAddresses | None:
        """Verified addresses of an identity, or None if the identity is unknown."""
        ...

    @abstractmethod
    async def search(self, query: str) -> list[SocialUser]:
        """Users matching a free-text query."""
        ...


class NeynarIdentityResolver(IdentityResolver):
    """
    IdentityResolver backed by the Neynar Farcaster API.

    Identities are Farcaster ids (fids) as strings.
    """

    DEFAULT_BASE_URL = "https://api.neynar.com/v2/farcaster"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = False

    async def _get_client(self) -> httpx.AsyncClient:
        """Lazy-init HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        client = await self._get_client()
        url = f"{self._base_url}{path}"
        logger.debug(f"GET {url}")
        try:
            response = await client.get(url, params=params, headers={"api_key": self._api_key})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Identity API returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                url=url,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkError(f"Identity API request failed: {e}", url=url) from e

    async def verified_addresses(self, identity: str) -> VerifiedAddresses | None:
        if not identity.isdigit():
            raise ValidationError(f"Farcaster identity must be numeric, got {identity!r}")

        data = await self._get("/user/bulk", {"fids": identity})
        users = data.get("users") or []
        if not users:
            return None
        verified = users[0].get("verified_addresses") or {}
        primary = verified.get("primary") or {}
        primary_eth = primary.get("eth_address")
        primary_sol = primary.get("sol_address")

        evm = [a.lower() for a in ([primary_eth] if primary_eth else []) + list(verified.get("eth_addresses") or [])]
        sol = ([primary_sol] if primary_sol else []) + list(verified.get("sol_addresses") or [])

        return VerifiedAddresses(
            identity=identity,
            evm_addresses=_unique(evm),
            solana_addresses=_unique(sol),
            primary_evm=primary_eth,
            primary_solana=primary_sol,
        )

    async def search(self, query: str) -> list[SocialUser]:
        if not query or not query.strip():
            raise ValidationError('Query parameter "q" is required')

        data = await self._get("/user/search/", {"q": query.strip()})
        users = (data.get("result") or {}).get("users") or []
        results = []
        for user in users:
            verified = user.get("verified_addresses") or {}
            results.append(
                SocialUser(
                    identity=str(user.get("fid")),
                    username=user.get("username", ""),
                    display_name=user.get("display_name") or user.get("username", ""),
                    address=(verified.get("primary") or {}).get("eth_address") or user.get("custody_address"),
                    avatar_url=user.get("pfp_url"),
                )
            )
        return results
