"""
Lightweight Ethereum JSON-RPC client over httpx.

No web3.py dependency: calls are plain JSON-RPC payloads posted to the
configured endpoints.

For fallback, pass comma-separated URLs:
    LINKLOT_RPC_URL=https://alchemy.com/v2/KEY,https://infura.io/v3/KEY
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from linklot.core.exceptions import ConfigurationError, JsonRpcError, NetworkError
from linklot.core.logging import get_logger
from linklot.resilience.retry import execute_with_retry

logger = get_logger("rpc")


def _extract_revert_data(error: dict[str, Any]) -> str | None:
    data = error.get("data")
    # Some nodes nest the revert data ({"data": {"data": "0x..."}})
    if isinstance(data, dict):
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        return data
    return None


class JsonRpcClient:
    """
    JSON-RPC transport with multi-provider fallback.

    Tries each configured endpoint in order. Timeouts, HTTP errors and
    transport failures fall back to the next endpoint; a JSON-RPC error
    object is the node's answer and is raised immediately.

    Usage:
        client = JsonRpcClient("https://eth-goerli.g.alchemy.com/v2/KEY")
        code = await client.get_code("0x...")
        await client.close()
    """

    RPC_TIMEOUT = 30.0  # seconds per JSON-RPC call

    def __init__(
        self,
        rpc_url: str | list[str],
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        retry_reads: bool = True,
    ) -> None:
        """
        Args:
            rpc_url: Endpoint URL(s). Supports comma-separated for fallback.
            http_client: Shared httpx client (for connection pooling).
            timeout: Per-request timeout in seconds.
            retry_reads: Whether read calls go through the retry policy.
        """
        urls = rpc_url.split(",") if isinstance(rpc_url, str) else rpc_url
        self._rpc_urls: list[str] = [u.strip() for u in urls if u and u.strip()]
        if not self._rpc_urls:
            raise ConfigurationError("No RPC URL configured. Set LINKLOT_RPC_URL or pass rpc_url.")
        self._http_client = http_client
        self._owns_client = False
        self._timeout = timeout or self.RPC_TIMEOUT
        self._retry_reads = retry_reads
        self._ids = itertools.count(1)

    @property
    def rpc_urls(self) -> list[str]:
        return list(self._rpc_urls)

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

    async def __aenter__(self) -> JsonRpcClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _request_once(self, method: str, params: list[Any]) -> Any:
        client = await self._get_client()
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}

        last_error: Exception | None = None
        last_status: int | None = None
        total = len(self._rpc_urls)
        for i, rpc_url in enumerate(self._rpc_urls):
            has_next = i < total - 1
            try:
                response = await client.post(rpc_url, json=payload)
                response.raise_for_status()
                result = response.json()
            except httpx.TimeoutException as e:
                logger.warning(
                    f"RPC timeout from provider {i + 1}/{total} on {method} "
                    f"({'falling back' if has_next else 'no more providers'})"
                )
                last_error = e
                continue
            except httpx.HTTPStatusError as e:
                last_status = e.response.status_code
                logger.warning(f"RPC HTTP {last_status} from provider {i + 1}/{total} on {method}")
                last_error = e
                continue
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"RPC error from provider {i + 1}/{total} on {method}: {e}")
                last_error = e
                continue

            if "error" in result and result["error"] is not None:
                error = result["error"]
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                logger.debug(f"{method} RPC error from provider {i + 1}/{total}: {error}")
                raise JsonRpcError(
                    message,
                    code=error.get("code") if isinstance(error, dict) else None,
                    data=_extract_revert_data(error) if isinstance(error, dict) else None,
                    url=rpc_url,
                    details={"method": method},
                )
            return result.get("result")

        logger.error(f"All {total} RPC providers failed on {method}: {last_error}")
        raise NetworkError(
            f"All {total} RPC providers failed on {method}: {last_error}",
            status_code=last_status,
            details={"method": method},
        )

    async def request(self, method: str, params: list[Any] | None = None, retry: bool = True) -> Any:
        """
        Send a JSON-RPC request and return its `result`.

        Raises:
            JsonRpcError: The node returned an error object
            NetworkError: Every endpoint failed
        """
        params = params or []
        if retry and self._retry_reads:
            return await execute_with_retry(self._request_once, method, params)
        return await self._request_once(method, params)

    # ─── Ethereum methods ────────────────────────────────────────────

    async def call(self, to: str, data: str, block: str = "latest", sender: str | None = None) -> str:
        """eth_call returning the raw 0x-prefixed result."""
        tx: dict[str, Any] = {"to": to, "data": data}
        if sender:
            tx["from"] = sender
        return await self.request("eth_call", [tx, block]) or "0x"

    async def get_code(self, address: str, block: str = "latest") -> str:
        return await self.request("eth_getCode", [address, block]) or "0x"

    async def chain_id(self) -> int:
        return int(await self.request("eth_chainId"), 16)

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """eth_sendTransaction through a node-managed account. Never retried."""
        return await self.request("eth_sendTransaction", [tx], retry=False)

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def get_logs(self, log_filter: dict[str, Any]) -> list[dict[str, Any]]:
        return await self.request("eth_getLogs", [log_filter]) or []

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.request("eth_getTransactionByHash", [tx_hash])

    async def get_block(self, block_hash: str) -> dict[str, Any] | None:
        return await self.request("eth_getBlockByHash", [block_hash, False])
