"""Attestation endpoints.

Both lookups run the proof source with the default retry budget, so a
request may block for up to ``max_retries`` poll intervals.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from bridge_relayer.api.dependencies import get_relayer
from bridge_relayer.api.schemas import ApiResponse
from bridge_relayer.chain.proofs import is_valid_message_hash, is_valid_tx_hash
from bridge_relayer.engine.client import BridgeRelayer  # noqa: TC001
from bridge_relayer.errors.definitions import (
    ErrAttestationNotAvailable,
    ErrInvalidMessageHash,
    ErrInvalidTxHash,
)
from bridge_relayer.errors.relayer_errors import RetryLimitExceeded, TimeoutExceeded
from bridge_relayer.utils.clock import now_ms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attestations", tags=["attestation"])


@router.get("/stacks/{tx_hash}")
async def get_withdrawal_attestation(
    tx_hash: str,
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
) -> dict[str, Any]:
    """Get the proof of a burn on the UTXO-account chain."""
    if not is_valid_tx_hash(tx_hash):
        raise ErrInvalidTxHash
    try:
        data = await relayer.proofs.fetch_withdrawal_attestation(tx_hash)
    except (RetryLimitExceeded, TimeoutExceeded) as exc:
        logger.info("Withdrawal attestation for %s not available: %s", tx_hash, exc.message)
        raise ErrAttestationNotAvailable from exc
    return ApiResponse(data=data.to_dict(), timestamp=now_ms()).model_dump(exclude_none=True)


@router.get("/{message_hash}")
async def get_attestation(
    message_hash: str,
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
) -> dict[str, Any]:
    """Get the attestation for a message hash."""
    if not is_valid_message_hash(message_hash):
        raise ErrInvalidMessageHash
    try:
        data = await relayer.proofs.fetch_message_attestation(message_hash)
    except (RetryLimitExceeded, TimeoutExceeded) as exc:
        logger.info("Attestation for %s not available: %s", message_hash, exc.message)
        raise ErrAttestationNotAvailable from exc
    return ApiResponse(data=data.to_dict(), timestamp=now_ms()).model_dump(exclude_none=True)
