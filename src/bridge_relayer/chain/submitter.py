"""Mint/release submission boundary.

Once a deposit or withdrawal is proven, the destination-chain
transaction is signed and broadcast by an external signer service.  The
relayer only talks to it through :class:`MintSubmitter`.

``RemoteSignerSubmitter`` speaks the signer's HTTP API:
- POST /v1/mint    — credit the recipient on the UTXO-account chain
- POST /v1/release — release funds to the recipient on the EVM chain

Requests carry the transaction id as ``Idempotency-Key`` so a retried
submission cannot mint twice at the signer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from bridge_relayer.errors.transport_errors import (
    FatalTransportError,
    error_from_exception,
    error_from_response,
)
from bridge_relayer.models.transaction import BridgeTransaction, TransactionType

if TYPE_CHECKING:
    from bridge_relayer.chain.service import ChainService
    from bridge_relayer.config.settings import AppConfig

logger = logging.getLogger(__name__)

_SOURCE = "signer"


class MintSubmitter(Protocol):
    """Submits the destination-chain transaction for a proven transfer."""

    async def has_sufficient_balance(self, tx: BridgeTransaction) -> bool:
        """Whether the relayer can pay for the destination transaction."""
        ...

    async def submit(self, tx: BridgeTransaction) -> str:
        """Submit the mint/release and return the destination tx hash."""
        ...


class RemoteSignerSubmitter:
    """MintSubmitter backed by the signer service and the chain clients.

    Usage::

        submitter = RemoteSignerSubmitter(config, chain)
        await submitter.connect()
        try:
            txid = await submitter.submit(tx)
        finally:
            await submitter.close()
    """

    def __init__(self, config: AppConfig, chain: ChainService) -> None:
        self._config = config
        self._chain = chain
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers = {"Content-Type": "application/json"}
        if self._config.signer.token:
            headers["Authorization"] = f"Bearer {self._config.signer.token}"
        self._client = httpx.AsyncClient(
            base_url=self._config.signer.url.rstrip("/"),
            headers=headers,
            timeout=60.0,
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
    # MintSubmitter
    # ------------------------------------------------------------------

    async def has_sufficient_balance(self, tx: BridgeTransaction) -> bool:
        """Check the relayer's native gas balance on the destination chain."""
        if tx.type is TransactionType.WITHDRAWAL:
            address = self._config.ethereum.relayer_address
            minimum = self._config.ethereum.min_gas_balance
            chain_name = "ethereum"
        else:
            address = self._config.stacks.relayer_address
            minimum = self._config.stacks.min_gas_balance
            chain_name = "stacks"

        if minimum <= 0:
            return True
        if not address:
            logger.warning("No %s relayer address configured, cannot check gas", chain_name)
            return False

        if chain_name == "ethereum":
            balance = await self._chain.ethereum.get_balance(address)
        else:
            balance = await self._chain.stacks.get_gas_balance(address)

        if balance < minimum:
            logger.warning(
                "Relayer %s balance %d below minimum %d", chain_name, balance, minimum
            )
            return False
        return True

    async def submit(self, tx: BridgeTransaction) -> str:
        """Ask the signer to mint (deposit) or release (withdrawal).

        Returns:
            The destination-chain transaction hash.

        Raises:
            RetryableTransportError: Network failure or transient status.
            FatalTransportError: Rejected request or a response without txid.
        """
        client = self._ensure_connected()
        if tx.type is TransactionType.WITHDRAWAL:
            path = "/v1/release"
            recipient = tx.ethereum_address
        else:
            path = "/v1/mint"
            recipient = tx.stacks_address

        payload: dict[str, Any] = {
            "id": tx.id,
            "recipient": recipient,
            "amount": tx.amount,
            "attestation": tx.attestation,
            "messageHash": tx.message_hash,
            "sourceTxHash": tx.source_tx_hash,
        }
        try:
            response = await client.post(path, json=payload, headers={"Idempotency-Key": tx.id})
        except httpx.HTTPError as exc:
            raise error_from_exception(exc, _SOURCE) from exc

        if response.status_code not in (200, 201):
            raise error_from_response(response, _SOURCE)

        try:
            txid = response.json().get("txid", "")
        except (ValueError, AttributeError) as exc:
            msg = f"{_SOURCE} returned an invalid body for {tx.id}"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=200) from exc
        if not txid:
            msg = f"{_SOURCE} returned no txid for {tx.id}"
            raise FatalTransportError(msg, source=_SOURCE, upstream_status=response.status_code)

        logger.info("Submitted %s for %s: %s", path.rsplit("/", 1)[-1], tx.id, txid)
        return str(txid)

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "RemoteSignerSubmitter is not connected, call connect() first"
            raise RuntimeError(msg)
        return self._client
