"""Attestation service HTTP client — lookup by message hash.

- GET /v1/attestations/{messageHash}

A 404, an absent payload or a non-``complete`` status all mean the
attestation is not ready yet; the client returns ``None`` for them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from bridge_relayer.errors.transport_errors import (
    FatalTransportError,
    error_from_exception,
    error_from_response,
)

if TYPE_CHECKING:
    from bridge_relayer.config.settings import AttestationConfig

_SOURCE = "attestation"

# Placeholder the service returns while the attestation is being signed.
_PENDING_MARKER = "PENDING"


class AttestationClient:
    """Async HTTP client for the off-chain attestation service.

    Usage::

        client = AttestationClient(config.attestation)
        await client.connect()
        try:
            attestation = await client.get_attestation("0xabc...")
        finally:
            await client.close()
    """

    def __init__(self, config: AttestationConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers = {"Accept": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers=headers,
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

    async def get_attestation(self, message_hash: str) -> str | None:
        """Fetch the attestation for *message_hash*.

        Returns:
            The attestation hex, or ``None`` if it is not ready yet.

        Raises:
            RetryableTransportError: Network failure, 429 or transient 5xx.
            FatalTransportError: 401/403/500 or an unparseable body.
        """
        client = self._ensure_connected()
        try:
            response = await client.get(f"/v1/attestations/{message_hash}")
        except httpx.HTTPError as exc:
            raise error_from_exception(exc, _SOURCE) from exc

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise error_from_response(response, _SOURCE)

        try:
            data: dict[str, Any] = response.json()
        except ValueError as exc:
            msg = f"{_SOURCE} returned a non-JSON body"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=200) from exc

        attestation = data.get("attestation")
        status = data.get("status", "complete")
        if not attestation or attestation == _PENDING_MARKER or status != "complete":
            return None
        return str(attestation)

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "AttestationClient is not connected, call connect() first"
            raise RuntimeError(msg)
        return self._client
