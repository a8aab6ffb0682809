"""Data models — bridge transactions and attestations."""

from bridge_relayer.models.transaction import (
    STATUS_ORDER,
    AttestationData,
    BridgeStep,
    BridgeTransaction,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "STATUS_ORDER",
    "AttestationData",
    "BridgeStep",
    "BridgeTransaction",
    "TransactionStatus",
    "TransactionType",
]
