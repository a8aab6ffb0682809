"""Transaction endpoints.

Status lookup, per-party history, ingestion into the monitoring queue
and a manual clear of stuck transactions.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from bridge_relayer.api.dependencies import get_relayer
from bridge_relayer.api.schemas import (
    ApiResponse,
    ClearStuckData,
    MonitorTransactionRequest,
    TransactionListData,
)
from bridge_relayer.engine.client import BridgeRelayer  # noqa: TC001
from bridge_relayer.errors.definitions import (
    ErrMissingTransactionFields,
    ErrTransactionNotFound,
)
from bridge_relayer.errors.relayer_errors import ValidationError
from bridge_relayer.models.transaction import BridgeTransaction, TransactionStatus
from bridge_relayer.utils.clock import now_ms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transaction"])

CLEARED_ERROR = "Manually cleared - stuck transaction"


@router.get("/{tx_id}")
async def get_transaction(
    tx_id: str,
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
) -> dict[str, Any]:
    """Get a transaction by id."""
    tx = relayer.queue.get(tx_id)
    if tx is None:
        raise ErrTransactionNotFound
    return ApiResponse(data=tx.to_dict(), timestamp=now_ms()).model_dump(exclude_none=True)


@router.get("/user/{address}")
async def list_user_transactions(
    address: str,
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, Any]:
    """List transactions where *address* is either party, newest first."""
    matching = relayer.queue.list_by_party(address)
    page = matching[offset : offset + limit]
    data = TransactionListData(
        transactions=[tx.to_dict() for tx in page],
        total=len(matching),
        has_more=len(matching) > offset + limit,
    )
    return ApiResponse(
        data=data.model_dump(by_alias=True), timestamp=now_ms()
    ).model_dump(exclude_none=True)


@router.post("/monitor", status_code=201)
async def monitor_transaction(
    body: MonitorTransactionRequest,
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
) -> dict[str, Any]:
    """Add a transaction to the monitoring queue (upsert by id)."""
    if not body.id or body.type is None or not body.source_tx_hash:
        raise ErrMissingTransactionFields

    now = now_ms()
    payload = body.model_dump(mode="json", by_alias=True)
    payload.setdefault("createdAt", now)
    payload["updatedAt"] = now
    try:
        tx = BridgeTransaction.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        msg = f"Invalid transaction: {exc}"
        raise ValidationError(msg) from exc

    await relayer.queue.put(tx)
    logger.info("Added transaction %s (%s) to monitoring", tx.id, tx.type)
    return ApiResponse(
        message="Transaction added to monitoring queue",
        data={"id": tx.id},
        timestamp=now,
    ).model_dump(exclude_none=True)


@router.post("/admin/clear-stuck")
async def clear_stuck_transactions(
    relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
) -> dict[str, Any]:
    """Mark every non-terminal transaction as failed."""
    stuck = [tx for tx in relayer.queue.list() if not tx.is_terminal]
    logger.info("Clearing %d stuck transactions", len(stuck))
    for tx in stuck:
        await relayer.queue.update(tx.id, status=TransactionStatus.FAILED, error=CLEARED_ERROR)

    data = ClearStuckData(cleared_count=len(stuck), transaction_ids=[tx.id for tx in stuck])
    return ApiResponse(
        message=f"Cleared {len(stuck)} stuck transactions",
        data=data.model_dump(by_alias=True),
        timestamp=now_ms(),
    ).model_dump(exclude_none=True)
