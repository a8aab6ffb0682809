"""Chain — proof-source clients, proof service and mint submission."""

from bridge_relayer.chain.proofs import (
    ProofService,
    is_valid_message_hash,
    is_valid_tx_hash,
    verify_balance,
)
from bridge_relayer.chain.service import ChainService
from bridge_relayer.chain.submitter import MintSubmitter, RemoteSignerSubmitter

__all__ = [
    "ChainService",
    "MintSubmitter",
    "ProofService",
    "RemoteSignerSubmitter",
    "is_valid_message_hash",
    "is_valid_tx_hash",
    "verify_balance",
]
