"""
On-chain read access.

The compiler never writes to the chain. It only needs `eth_call` to probe
forwarders and to let commands read values before deciding what to emit.
`ChainReader` is the interface; `JsonRpcChainReader` is the httpx-backed
implementation used by the CLI.
"""

from __future__ import annotations

import itertools
import logging
from typing import Protocol

import httpx
from eth_utils import encode_hex, to_bytes

logger = logging.getLogger(__name__)


class ChainCallError(Exception):
    """A read-only call failed: revert, empty return, or transport error."""


class ChainReader(Protocol):
    async def call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only call and return the raw return data."""
        ...


class JsonRpcChainReader:
    """
    Async JSON-RPC reader.

    Uses httpx for async HTTP. The client is created lazily and reused.
    """

    def __init__(self, rpc_url: str, timeout: float = 30.0, block: str = "latest") -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.block = block
        self._ids = itertools.count(1)
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def call(self, to: str, data: bytes) -> bytes:
        """
        Run `eth_call` against the configured node.

        Raises:
            ChainCallError: If the node reports an error (typically a revert),
                returns no data, or cannot be reached.
        """
        client = await self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_call",
            "params": [{"to": to, "data": encode_hex(data)}, self.block],
        }
        try:
            resp = await client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ChainCallError(f"eth_call to {to} failed: {e}") from e

        if body.get("error"):
            raise ChainCallError(f"eth_call to {to} reverted: {body['error']}")

        result = to_bytes(hexstr=body.get("result") or "0x")
        if not result:
            raise ChainCallError(f"eth_call to {to} returned no data")
        return result
