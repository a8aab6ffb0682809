"""Attestation service — proofs looked up by message hash."""

from bridge_relayer.chain.attestation.client import AttestationClient

__all__ = ["AttestationClient"]
