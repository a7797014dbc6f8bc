"""
chain.py - Read-only JSON-RPC client for the EVM chain.

Only two calls are needed by the settlement engine:
 - eth_getBlockByNumber("latest")  -> block number/hash used as a fairness seed
 - eth_call                        -> reserve reads for bonding-curve display quotes

Every failure (timeout, transport error, RPC error, malformed payload) is
raised as ChainUnavailable so callers can decide whether to fall back.
"""

import itertools
import logging
from typing import Optional

import httpx

logger = logging.getLogger("chain")

DEFAULT_RPC_TIMEOUT = 3.0


class ChainUnavailable(Exception):
    """The RPC node did not answer in time or returned an error."""


class ChainClient:
    """Minimal async JSON-RPC client."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ChainUnavailable(f"{method} timed out after {self.timeout}s") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChainUnavailable(f"{method} failed: {e}") from e

        if "error" in data:
            raise ChainUnavailable(f"{method} RPC error: {data['error']}")
        if data.get("result") is None:
            raise ChainUnavailable(f"{method} returned no result")
        return data["result"]

    async def get_latest_block(self) -> dict:
        """Return ``{"number": int, "hash": "0x..."}`` for the latest block."""
        block = await self._rpc("eth_getBlockByNumber", ["latest", False])
        try:
            number = int(block["number"], 16)
            block_hash = block["hash"].lower()
        except (KeyError, TypeError, ValueError) as e:
            raise ChainUnavailable(f"Malformed block payload: {block!r}") from e
        if not block_hash.startswith("0x") or len(block_hash) != 66:
            raise ChainUnavailable(f"Malformed block hash: {block_hash}")
        return {"number": number, "hash": block_hash}

    async def eth_call(self, to: str, data: str) -> str:
        result = await self._rpc("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise ChainUnavailable(f"Malformed eth_call result: {result!r}")
        return result
