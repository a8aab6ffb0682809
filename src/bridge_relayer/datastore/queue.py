"""Persistent transaction queue — durable map of id → BridgeTransaction.

The whole queue is stored as one JSON array of ``[id, transaction]``
pairs and rewritten on every mutation (write-through).  Writes go to a
temporary sibling file which is then renamed over the target, so a
crash mid-write leaves the previous snapshot intact.

Single writer per file: the scheduler and the ingestion API share one
``TransactionQueue`` instance in one process.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bridge_relayer.models.transaction import BridgeTransaction
from bridge_relayer.utils.clock import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

class TransactionQueue:
    """Restart-safe store for all bridge transactions, keyed by id.

    Usage::

        queue = TransactionQueue("./data/transaction-queue.json")
        await queue.load()
        await queue.put(tx)
        pending = queue.pending()
    """

    def __init__(self, path: str | Path, *, clock: Callable[[], int] = now_ms) -> None:
        """Initialize the queue.

        Args:
            path: JSON file holding the queue.
            clock: Millisecond clock used for ``updatedAt``.
        """
        self._path = Path(path)
        self._clock = clock
        self._items: dict[str, BridgeTransaction] = {}
        self._lock = asyncio.Lock()
        self._loaded = False

    @property
    def path(self) -> Path:
        """Location of the persisted queue."""
        return self._path

    @property
    def is_loaded(self) -> bool:
        """Whether :meth:`load` has run."""
        return self._loaded

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, tx_id: object) -> bool:
        return tx_id in self._items

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Restore the queue from disk.

        A missing file is a cold start.  A corrupt file is logged, moved
        aside to ``<path>.corrupt-<ms>`` and the queue starts empty.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not self._path.exists():
            logger.info("No existing queue file at %s, starting with empty queue", self._path)
            self._items = {}
            self._loaded = True
            return

        try:
            text = await asyncio.to_thread(self._path.read_text, "utf-8")
            self._items = self._decode(text)
        except (ValueError, KeyError, TypeError) as exc:
            aside = self._path.with_name(f"{self._path.name}.corrupt-{self._clock()}")
            logger.error(
                "Transaction queue at %s is corrupt (%s), moved to %s; starting empty",
                self._path,
                exc,
                aside,
            )
            os.replace(self._path, aside)
            self._items = {}

        self._loaded = True
        logger.info("Transaction queue restored, %d transactions", len(self._items))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, tx_id: str) -> BridgeTransaction | None:
        """Return the transaction with *tx_id*, if any."""
        return self._items.get(tx_id)

    def list(self) -> list[BridgeTransaction]:
        """All transactions, newest first."""
        return sorted(self._items.values(), key=lambda tx: tx.created_at, reverse=True)

    def list_by_party(self, address: str) -> list[BridgeTransaction]:
        """Transactions where *address* is either party, newest first."""
        return [tx for tx in self.list() if tx.involves(address)]

    def pending(self) -> list[BridgeTransaction]:
        """Snapshot of all non-terminal transactions, oldest first."""
        return sorted(
            (tx for tx in self._items.values() if not tx.is_terminal),
            key=lambda tx: tx.created_at,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def put(self, tx: BridgeTransaction) -> None:
        """Upsert *tx* by id and persist the queue before returning."""
        async with self._lock:
            self._items[tx.id] = tx
            await self._persist()

    async def update(self, tx_id: str, **changes: Any) -> BridgeTransaction | None:
        """Apply *changes* to a stored transaction and persist.

        ``updated_at`` is stamped automatically.

        Returns:
            The updated transaction, or ``None`` if *tx_id* is unknown.
        """
        async with self._lock:
            current = self._items.get(tx_id)
            if current is None:
                logger.warning("Transaction %s not found for update", tx_id)
                return None
            updated = current.with_changes(**changes, updated_at=self._clock())
            self._items[tx_id] = updated
            await self._persist()
            return updated

    async def flush(self) -> None:
        """Wait for in-flight writes and persist the current state."""
        async with self._lock:
            await self._persist()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _persist(self) -> None:
        """Write the whole queue atomically.  Caller holds the lock."""
        snapshot = self._encode()
        await asyncio.to_thread(self._write_atomic, snapshot)
        logger.debug("Transaction queue persisted, %d transactions", len(self._items))

    def _write_atomic(self, data: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, self._path)

    def _encode(self) -> str:
        entries = [[tx_id, tx.to_dict()] for tx_id, tx in self._items.items()]
        return json.dumps(entries, indent=2)

    @staticmethod
    def _decode(text: str) -> dict[str, BridgeTransaction]:
        if not text.strip():
            return {}
        entries = json.loads(text)
        if not isinstance(entries, list):
            msg = "queue file must hold a JSON array"
            raise TypeError(msg)
        items: dict[str, BridgeTransaction] = {}
        for entry in entries:
            if not (isinstance(entry, list) and len(entry) == 2 and isinstance(entry[1], dict)):
                msg = f"queue entry must be an [id, transaction] pair, got {entry!r:.80}"
                raise TypeError(msg)
            tx_id, body = entry
            items[str(tx_id)] = BridgeTransaction.from_dict(body)
        return items
