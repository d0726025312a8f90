"""Unit tests for JsonRpcClient and the retry policy."""

import json

import httpx
import pytest

from linklot.core.exceptions import ConfigurationError, JsonRpcError, NetworkError
from linklot.core.rpc import JsonRpcClient
from linklot.resilience.retry import execute_with_retry, is_transient_error


def _client(handler, urls="http://a.test,http://b.test") -> JsonRpcClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcClient(urls, http_client=http_client, retry_reads=False)


def _ok(request: httpx.Request, result) -> httpx.Response:
    payload = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})


class TestJsonRpcClient:
    def test_requires_url(self) -> None:
        with pytest.raises(ConfigurationError):
            JsonRpcClient(" , ")

    def test_urls_split(self) -> None:
        client = JsonRpcClient("http://a.test, http://b.test")

        assert client.rpc_urls == ["http://a.test", "http://b.test"]

    @pytest.mark.asyncio
    async def test_request_payload(self) -> None:
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return _ok(request, "0x5")

        client = _client(handler)

        assert await client.chain_id() == 5
        assert seen[0]["method"] == "eth_chainId"
        assert seen[0]["jsonrpc"] == "2.0"
        assert seen[0]["params"] == []

    @pytest.mark.asyncio
    async def test_falls_back_to_next_provider(self) -> None:
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "a.test":
                return httpx.Response(500, text="upstream error")
            return _ok(request, "0x6080")

        client = _client(handler)

        assert await client.get_code("0x1111111111111111111111111111111111111111") == "0x6080"
        assert hosts == ["a.test", "b.test"]

    @pytest.mark.asyncio
    async def test_all_providers_fail(self) -> None:
        client = _client(lambda request: httpx.Response(503))

        with pytest.raises(NetworkError) as exc_info:
            await client.chain_id()

        assert exc_info.value.status_code == 503
        assert not isinstance(exc_info.value, JsonRpcError)

    @pytest.mark.asyncio
    async def test_json_rpc_error_is_not_retried_on_next_provider(self) -> None:
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            payload = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "error": {"code": 3, "message": "execution reverted", "data": "0x12345678"},
                },
            )

        client = _client(handler)

        with pytest.raises(JsonRpcError) as exc_info:
            await client.call("0x1111111111111111111111111111111111111111", "0x")

        assert exc_info.value.code == 3
        assert exc_info.value.data == "0x12345678"
        assert exc_info.value.is_revert
        assert hosts == ["a.test"]

    @pytest.mark.asyncio
    async def test_nested_revert_data(self) -> None:
        def handler(request):
            payload = json.loads(request.content)
            error = {"code": -32000, "message": "reverted", "data": {"data": "0xabcdef01"}}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": error})

        client = _client(handler, urls="http://a.test")

        with pytest.raises(JsonRpcError) as exc_info:
            await client.call("0x1111111111111111111111111111111111111111", "0x")

        assert exc_info.value.data == "0xabcdef01"

    @pytest.mark.asyncio
    async def test_empty_logs(self) -> None:
        client = _client(lambda request: _ok(request, None))

        assert await client.get_logs({"address": "0x1111111111111111111111111111111111111111"}) == []


class TestRetry:
    def test_is_transient_error(self) -> None:
        assert is_transient_error(httpx.ConnectError("connection refused"))
        assert is_transient_error(httpx.ReadTimeout("timed out"))
        assert is_transient_error(NetworkError("x", status_code=429))
        assert is_transient_error(NetworkError("x", status_code=502))
        assert not is_transient_error(NetworkError("x", status_code=400))
        assert not is_transient_error(ValueError("bad input"))

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self) -> None:
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused")
            return "ok"

        assert await execute_with_retry(flaky, min_wait=0, max_wait=0) == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_permanent_errors(self) -> None:
        attempts = []

        async def broken():
            attempts.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await execute_with_retry(broken, min_wait=0, max_wait=0)

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self) -> None:
        attempts = []

        async def down():
            attempts.append(1)
            raise NetworkError("unavailable", status_code=503)

        with pytest.raises(NetworkError):
            await execute_with_retry(down, attempts=2, min_wait=0, max_wait=0)

        assert len(attempts) == 2
