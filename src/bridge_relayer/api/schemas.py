"""API request/response Pydantic schemas.

These are the *API-layer* schemas that define the HTTP contract.  The
route code maps between ``BridgeTransaction`` and these schemas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bridge_relayer.models.transaction import TransactionType  # noqa: TC001

# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel):
    """Success envelope: ``{"success": true, "data": ..., "timestamp": ...}``."""

    success: bool = True
    message: str | None = None
    data: Any = None
    timestamp: int


class ErrorResponse(BaseModel):
    """Error body: machine-readable code, human message, timestamp."""

    error: str
    message: str
    timestamp: int


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class MonitorTransactionRequest(BaseModel):
    """POST /api/transactions/monitor — start tracking a bridge transaction.

    Only the fields the relayer needs to validate are declared; any other
    transaction field passes through unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = ""
    type: TransactionType | None = None
    source_tx_hash: str = Field("", alias="sourceTxHash")
    amount: str = "0"

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_string(cls, value: Any) -> str:
        if isinstance(value, bool):
            msg = "amount must be an integer number of base units"
            raise ValueError(msg)  # noqa: TRY004
        text = str(value)
        if not text.isdigit():
            msg = "amount must be an integer number of base units"
            raise ValueError(msg)
        return text


class TransactionListData(BaseModel):
    """Page of a party's transactions, newest first."""

    model_config = ConfigDict(populate_by_name=True)

    transactions: list[dict[str, Any]]
    total: int
    has_more: bool = Field(alias="hasMore")


class ClearStuckData(BaseModel):
    """Result of a manual clear of non-terminal transactions."""

    model_config = ConfigDict(populate_by_name=True)

    cleared_count: int = Field(alias="clearedCount")
    transaction_ids: list[str] = Field(alias="transactionIds")
