"""Tests for the EVM JSON-RPC client — uses httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from bridge_relayer.chain.ethereum.client import EthereumClient, ReceiptStatus
from bridge_relayer.config.settings import EthereumConfig
from bridge_relayer.errors import FatalTransportError, RetryableTransportError

_RPC = "https://rpc.test.com"


def _client(result=None, *, error=None, status=200) -> EthereumClient:
    def handler(request: httpx.Request):
        body = json.loads(request.content)
        assert body["jsonrpc"] == "2.0"
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        return httpx.Response(status, json=payload)

    client = EthereumClient(EthereumConfig(rpc_url=_RPC))
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


class TestReceiptStatus:
    async def test_confirmed(self):
        status = await _client({"status": "0x1"}).get_receipt_status("0xabc")
        assert status is ReceiptStatus.CONFIRMED

    async def test_reverted(self):
        assert await _client({"status": "0x0"}).get_receipt_status("0xabc") is ReceiptStatus.FAILED

    async def test_not_mined(self):
        assert await _client(None).get_receipt_status("0xabc") is None

    async def test_rpc_error_is_fatal(self):
        client = _client(error={"code": -32602, "message": "invalid argument"})
        with pytest.raises(FatalTransportError, match="invalid argument"):
            await client.get_receipt_status("0xabc")

    async def test_gateway_error_is_retryable(self):
        with pytest.raises(RetryableTransportError):
            await _client(None, status=502).get_receipt_status("0xabc")


class TestBalance:
    async def test_hex_wei(self):
        assert await _client("0xde0b6b3a7640000").get_balance("0xabc") == 10**18


class TestConfiguration:
    def test_is_configured(self):
        assert EthereumClient(EthereumConfig(rpc_url=_RPC)).is_configured
        assert not EthereumClient(EthereumConfig(rpc_url="")).is_configured

    async def test_missing_rpc_url_raises(self):
        client = EthereumClient(EthereumConfig(rpc_url=""))
        await client.connect()
        with pytest.raises(RuntimeError, match="not configured"):
            await client.get_balance("0xabc")
        await client.close()
