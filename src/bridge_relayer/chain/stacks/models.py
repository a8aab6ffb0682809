"""Node API data models — transaction status and info."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class StacksTxStatus(enum.StrEnum):
    """Simplified transaction status on the UTXO-account chain."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def from_api(cls, value: str) -> StacksTxStatus:
        """Map the node's ``tx_status`` string.

        ``abort_by_response`` and ``abort_by_post_condition`` (and any other
        ``abort_*``/``dropped_*`` value) are failures; anything unknown is
        still pending.
        """
        if value == "success":
            return cls.SUCCESS
        if value.startswith(("abort_", "dropped_")):
            return cls.FAILED
        return cls.PENDING


@dataclass(frozen=True)
class StacksTxInfo:
    """Transaction info from the node's extended API.

    Attributes:
        txid: Transaction id (hex).
        status: Simplified status.
        raw_status: ``tx_status`` as returned by the node.
        block_height: Block height once anchored, else 0.
        result_hex: Clarity result of the transaction, hex encoded.
    """

    txid: str
    status: StacksTxStatus = StacksTxStatus.PENDING
    raw_status: str = ""
    block_height: int = 0
    result_hex: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], txid: str = "") -> StacksTxInfo:
        """Create StacksTxInfo from a ``/extended/v1/tx`` response."""
        raw = data.get("tx_status", "")
        result = data.get("tx_result") or {}
        return cls(
            txid=data.get("tx_id", txid),
            status=StacksTxStatus.from_api(raw),
            raw_status=raw,
            block_height=data.get("block_height", 0) or 0,
            result_hex=result.get("hex", "") if isinstance(result, dict) else "",
        )

    @classmethod
    def pending(cls, txid: str) -> StacksTxInfo:
        """Info for a transaction the node does not know about yet."""
        return cls(txid=txid)
