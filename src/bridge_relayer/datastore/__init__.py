"""Datastore — the persistent transaction queue."""

from bridge_relayer.datastore.queue import TransactionQueue

__all__ = ["TransactionQueue"]
