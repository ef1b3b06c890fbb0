"""Chain JSON-RPC Client — read-only transaction lookups over httpx.

Invariants:
    - Only read methods are exposed (eth_getTransactionByHash, eth_getTransactionReceipt,
      eth_chainId); this client never signs or sends anything
    - A missing transaction/receipt is returned as None, never raised
    - Transport failures, timeouts, HTTP errors and JSON-RPC error objects are all
      mapped to ChainRPCError (core/errors.py)
    - No retry: callers re-submit, and crediting is idempotent by proof id

Design Decisions:
    - Raw JSON-RPC over httpx instead of web3's provider: two read calls do not
      justify a provider stack, and httpx.MockTransport makes tests trivial
    - Shared AsyncClient created once per process and closed in the lifespan
"""

import itertools
import logging
from typing import Any

import httpx

from castcanvas.core.enforce_payment import parse_quantity
from castcanvas.core.errors import ChainRPCError

logger = logging.getLogger(__name__)


class JsonRpcChainClient:
    """Minimal async Ethereum JSON-RPC reader."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = rpc_url
        self._client = httpx.AsyncClient(
            timeout=timeout_seconds, transport=transport,
        )
        self._ids = itertools.count(1)

    async def get_transaction(self, tx_hash: str) -> dict | None:
        return await self._request("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        return await self._request("eth_getTransactionReceipt", [tx_hash])

    async def chain_id(self) -> int:
        result = await self._request("eth_chainId", [])
        return parse_quantity(result, "chainId")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.TimeoutException as e:
            logger.error(f"Chain RPC timeout: {method}", extra={"method": method})
            raise ChainRPCError("request timed out", method) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"Chain RPC transport error: {e}", extra={"method": method},
            )
            raise ChainRPCError(str(e), method) from e
        if not isinstance(body, dict):
            raise ChainRPCError("invalid JSON-RPC response", method)
        if body.get("error"):
            raise ChainRPCError(str(body["error"]), method)
        return body.get("result")

