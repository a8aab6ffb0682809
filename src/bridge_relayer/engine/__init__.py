"""Engine — relayer composition root and transaction state machine."""

from __future__ import annotations

from bridge_relayer.engine.client import BridgeRelayer
from bridge_relayer.engine.processor import TransactionProcessor

__all__ = ["BridgeRelayer", "TransactionProcessor"]
