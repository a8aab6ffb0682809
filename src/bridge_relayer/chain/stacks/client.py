"""Node REST client for the UTXO-account chain — balances and tx status.

Async HTTP client for the node's public API:
- GET /extended/v1/address/<addr>/balances
- GET /v2/accounts/<addr>?proof=0
- GET /extended/v1/tx/<txid>
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from bridge_relayer.chain.stacks.models import StacksTxInfo
from bridge_relayer.errors.transport_errors import (
    FatalTransportError,
    error_from_exception,
    error_from_response,
)

if TYPE_CHECKING:
    from bridge_relayer.config.settings import StacksConfig

_SOURCE = "stacks"


def parse_balance(value: Any) -> int:
    """Parse a balance given as int, decimal string or ``0x`` hex string."""
    if isinstance(value, bool):
        msg = f"invalid balance value: {value!r}"
        raise FatalTransportError(msg, source=_SOURCE)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError as exc:
        msg = f"invalid balance value: {value!r}"
        raise FatalTransportError(msg, source=_SOURCE) from exc


class StacksClient:
    """Async HTTP client for the UTXO-account chain node API.

    Usage::

        stacks = StacksClient(config.stacks)
        await stacks.connect()
        try:
            balance = await stacks.get_token_balance("ST...", "ST....usdcx")
        finally:
            await stacks.close()
    """

    def __init__(self, config: StacksConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url.rstrip("/"),
            headers={"Accept": "application/json"},
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

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_token_balance(self, address: str, token_prefix: str) -> int:
        """Get the fungible-token balance of *address*.

        The first ``fungible_tokens`` entry whose key starts with
        *token_prefix* is used.  An absent entry or a 404 is a zero balance.

        Args:
            address: Account address.
            token_prefix: Token contract identifier the key starts with.

        Returns:
            Balance in base units.
        """
        data = await self._get_json(f"/extended/v1/address/{address}/balances")
        if data is None:
            return 0
        tokens: dict[str, Any] = data.get("fungible_tokens") or {}
        for key, entry in tokens.items():
            if key.startswith(token_prefix):
                return parse_balance((entry or {}).get("balance", 0))
        return 0

    async def get_gas_balance(self, address: str) -> int:
        """Get the native balance (micro-units) of *address*; 404 means 0."""
        data = await self._get_json(f"/v2/accounts/{address}", params={"proof": "0"})
        if data is None:
            return 0
        return parse_balance(data.get("balance", 0))

    async def get_transaction(self, txid: str) -> StacksTxInfo:
        """Get the status of a transaction; unknown transactions are pending."""
        data = await self._get_json(f"/extended/v1/tx/{txid}")
        if data is None:
            return StacksTxInfo.pending(txid)
        return StacksTxInfo.from_dict(data, txid)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _get_json(
        self, path: str, *, params: dict[str, str] | None = None
    ) -> dict[str, Any] | None:
        """GET *path*, returning ``None`` on 404."""
        client = self._ensure_connected()
        try:
            response = await client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise error_from_exception(exc, _SOURCE) from exc

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise error_from_response(response, _SOURCE)
        try:
            data = response.json()
        except ValueError as exc:
            msg = f"{_SOURCE} returned a non-JSON body for {path}"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=200) from exc
        return data if isinstance(data, dict) else {}

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "StacksClient is not connected, call connect() first"
            raise RuntimeError(msg)
        return self._client
