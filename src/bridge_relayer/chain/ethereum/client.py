"""EVM JSON-RPC client — receipt lookup and balance.

- eth_getTransactionReceipt: ``status == "0x1"`` is confirmed, a ``null``
  result is not mined yet, any other status is a failed transaction.
- eth_getBalance: native balance in wei.
"""

from __future__ import annotations

import enum
import itertools
from typing import TYPE_CHECKING, Any

import httpx

from bridge_relayer.errors.transport_errors import (
    FatalTransportError,
    error_from_exception,
    error_from_response,
)

if TYPE_CHECKING:
    from bridge_relayer.config.settings import EthereumConfig

_SOURCE = "ethereum"


class ReceiptStatus(enum.StrEnum):
    """Outcome of a mined EVM transaction."""

    CONFIRMED = "confirmed"
    FAILED = "failed"


class EthereumClient:
    """Minimal async JSON-RPC client for an EVM node.

    Usage::

        eth = EthereumClient(config.ethereum)
        await eth.connect()
        try:
            status = await eth.get_receipt_status("0xabc...")
        finally:
            await eth.close()
    """

    def __init__(self, config: EthereumConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=30.0,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def is_configured(self) -> bool:
        """Whether an RPC endpoint is configured."""
        return bool(self._config.rpc_url)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_receipt_status(self, tx_hash: str) -> ReceiptStatus | None:
        """Look up the receipt of *tx_hash*.

        Returns:
            ``ReceiptStatus`` once mined, ``None`` while not yet mined.
        """
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        if not isinstance(result, dict):
            msg = f"unexpected receipt for {tx_hash}: {result!r}"
            raise FatalTransportError(msg, source=_SOURCE)
        if result.get("status") == "0x1":
            return ReceiptStatus.CONFIRMED
        return ReceiptStatus.FAILED

    async def get_balance(self, address: str) -> int:
        """Get the latest native balance of *address* in wei."""
        result = await self._call("eth_getBalance", [address, "latest"])
        try:
            return int(str(result), 16)
        except ValueError as exc:
            msg = f"invalid balance for {address}: {result!r}"
            raise FatalTransportError(msg, source=_SOURCE) from exc

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Perform a JSON-RPC call and return its ``result``."""
        client = self._ensure_connected()
        payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": next(self._ids)}
        try:
            response = await client.post(self._config.rpc_url, json=payload)
        except httpx.HTTPError as exc:
            raise error_from_exception(exc, _SOURCE) from exc

        if not response.is_success:
            raise error_from_response(response, _SOURCE)
        try:
            body: dict[str, Any] = response.json()
        except ValueError as exc:
            msg = f"{_SOURCE} returned a non-JSON body for {method}"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=200) from exc

        error = body.get("error")
        if error:
            detail = error.get("message", error) if isinstance(error, dict) else error
            msg = f"{method} failed: {detail}"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=response.status_code)
        return body.get("result")

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "EthereumClient is not connected, call connect() first"
            raise RuntimeError(msg)
        if not self._config.rpc_url:
            msg = "Ethereum RPC URL is not configured"
            raise RuntimeError(msg)
        return self._client
