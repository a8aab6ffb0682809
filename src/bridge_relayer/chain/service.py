"""Combined chain service — attestation service + both chain clients.

Composes the proof-source HTTP clients into a single service with one
connect/close lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bridge_relayer.chain.attestation.client import AttestationClient
from bridge_relayer.chain.ethereum.client import EthereumClient
from bridge_relayer.chain.stacks.client import StacksClient

if TYPE_CHECKING:
    from bridge_relayer.config.settings import AppConfig


class ChainService:
    """Owns the attestation, EVM and UTXO-account chain clients.

    Usage::

        chain = ChainService(config)
        await chain.connect()
        try:
            attestation = await chain.attestation.get_attestation(message_hash)
        finally:
            await chain.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        attestation: AttestationClient | None = None,
        ethereum: EthereumClient | None = None,
        stacks: StacksClient | None = None,
    ) -> None:
        """Initialize the chain service.

        Args:
            config: Application configuration.
            attestation: Pre-built attestation client (tests).
            ethereum: Pre-built EVM client (tests).
            stacks: Pre-built node client (tests).
        """
        self._attestation = attestation or AttestationClient(config.attestation)
        self._ethereum = ethereum or EthereumClient(config.ethereum)
        self._stacks = stacks or StacksClient(config.stacks)

    async def connect(self) -> None:
        """Connect all clients that are not connected yet."""
        for client in (self._attestation, self._ethereum, self._stacks):
            if not client.is_connected:
                await client.connect()

    async def close(self) -> None:
        """Close all clients."""
        await self._attestation.close()
        await self._ethereum.close()
        await self._stacks.close()

    @property
    def is_connected(self) -> bool:
        """Check if every client is connected."""
        return (
            self._attestation.is_connected
            and self._ethereum.is_connected
            and self._stacks.is_connected
        )

    @property
    def attestation(self) -> AttestationClient:
        """Direct access to the attestation client."""
        return self._attestation

    @property
    def ethereum(self) -> EthereumClient:
        """Direct access to the EVM client."""
        return self._ethereum

    @property
    def stacks(self) -> StacksClient:
        """Direct access to the node client."""
        return self._stacks
