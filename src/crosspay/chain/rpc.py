"""
Chain reads over JSON-RPC.

JsonRpcChainReader issues ``eth_call`` requests with multi-endpoint
fallback: each configured endpoint of a network is tried in order and the
read only fails once all of them have.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

import httpx

from crosspay.chain import erc20
from crosspay.core.exceptions import ChainReadError
from crosspay.core.logging import get_logger
from crosspay.registry import Registry

logger = get_logger("chain.rpc")


class ChainReader(ABC):
    """Read-only access to token state on a network."""

    @abstractmethod
    async def get_allowance(
        self, network_id: int, token: str, owner: str, spender: str
    ) -> int:
        """Allowance in smallest units. Raises ChainReadError on failure."""
        ...

    @abstractmethod
    async def get_balance(self, network_id: int, token: str, owner: str) -> int:
        """Token balance in smallest units. Raises ChainReadError on failure."""
        ...


class JsonRpcChainReader(ChainReader):
    """
    ChainReader backed by the networks' JSON-RPC endpoints.

    Example:
        reader = JsonRpcChainReader(registry, rpc_urls={8453: ("https://my-node",)})
        allowance = await reader.get_allowance(8453, usdc, owner, gateway)
    """

    RPC_TIMEOUT = 10.0  # seconds per JSON-RPC call

    def __init__(
        self,
        registry: Registry,
        rpc_urls: Mapping[int, tuple[str, ...]] | None = None,
        timeout: float = RPC_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            registry: Source of each network's default RPC endpoints
            rpc_urls: Per-network endpoint overrides
            timeout: Per-call timeout in seconds
            http_client: Shared httpx client (for connection pooling)
        """
        self._registry = registry
        self._rpc_urls = dict(rpc_urls or {})
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = False
        self._request_id = 0

    def endpoints_for(self, network_id: int) -> list[str]:
        if network_id in self._rpc_urls:
            return list(self._rpc_urls[network_id])
        network = self._registry.lookup_network(network_id)
        return list(network.rpc_endpoints) if network else []

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

    async def eth_call(self, network_id: int, to: str, data: str) -> str:
        """
        Execute an eth_call against each endpoint of the network in turn.

        Returns:
            Hex return data without the 0x prefix ("" for empty data)

        Raises:
            ChainReadError: no endpoint configured, or every endpoint failed
        """
        urls = self.endpoints_for(network_id)
        if not urls:
            raise ChainReadError(
                f"No RPC endpoint configured for network {network_id}", network_id=network_id
            )

        client = await self._get_client()
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [{"to": to, "data": data}, "latest"],
            "id": self._request_id,
        }

        errors: list[str] = []
        for i, rpc_url in enumerate(urls):
            try:
                response = await client.post(rpc_url, json=payload, timeout=self._timeout)
                response.raise_for_status()
                result = response.json()
            except httpx.TimeoutException:
                logger.warning(f"RPC timeout from provider {i + 1}/{len(urls)} on network {network_id}")
                errors.append(f"{rpc_url}: timeout")
                continue
            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"RPC HTTP {e.response.status_code} from provider {i + 1}/{len(urls)} "
                    f"on network {network_id}"
                )
                errors.append(f"{rpc_url}: HTTP {e.response.status_code}")
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"RPC error from provider {i + 1}/{len(urls)}: {e}")
                errors.append(f"{rpc_url}: {e}")
                continue

            if not isinstance(result, dict):
                logger.warning(f"Malformed RPC response from provider {i + 1}/{len(urls)}: {result!r}")
                errors.append(f"{rpc_url}: malformed response")
                continue

            if "error" in result:
                logger.debug(f"eth_call RPC error from {rpc_url}: {result['error']}")
                errors.append(f"{rpc_url}: {result['error']}")
                continue

            raw = result.get("result") or "0x"
            return raw.removeprefix("0x")

        logger.error(f"All {len(urls)} RPC providers failed for network {network_id}")
        raise ChainReadError(
            f"Chain read failed on network {network_id}",
            network_id=network_id,
            details={"errors": errors},
        )

    async def get_allowance(
        self, network_id: int, token: str, owner: str, spender: str
    ) -> int:
        raw = await self.eth_call(network_id, token, erc20.encode_allowance(owner, spender))
        return self._decode(network_id, raw)

    async def get_balance(self, network_id: int, token: str, owner: str) -> int:
        raw = await self.eth_call(network_id, token, erc20.encode_balance_of(owner))
        return self._decode(network_id, raw)

    @staticmethod
    def _decode(network_id: int, raw: str) -> int:
        try:
            return erc20.decode_uint256(raw)
        except ValueError as e:
            raise ChainReadError(
                "Malformed eth_call return data", network_id=network_id, details={"data": raw}
            ) from e
