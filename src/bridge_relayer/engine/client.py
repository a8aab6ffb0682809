"""BridgeRelayer — central client owning all relayer services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bridge_relayer.chain.proofs import ProofService
from bridge_relayer.chain.service import ChainService
from bridge_relayer.chain.submitter import RemoteSignerSubmitter
from bridge_relayer.datastore.queue import TransactionQueue
from bridge_relayer.engine.processor import TransactionProcessor
from bridge_relayer.metrics.collector import RelayerMetrics
from bridge_relayer.notifications.service import NotificationService
from bridge_relayer.retry.engine import RetryEngine
from bridge_relayer.taskmanager.manager import CronJob, TaskManager
from bridge_relayer.utils.clock import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from bridge_relayer.chain.submitter import MintSubmitter
    from bridge_relayer.config.settings import AppConfig

logger = logging.getLogger(__name__)

PROCESS_QUEUE_JOB = "process_queue"

# Error messages
_ERR_NOT_INITIALIZED = "Relayer not initialized. Call initialize() first."


class BridgeRelayer:
    """Owns the queue, chain clients, proof sources and the scheduler.

    Collaborators can be injected for tests; anything not injected is
    built from the configuration in :meth:`initialize`.

    Usage::

        relayer = BridgeRelayer(config)
        await relayer.initialize()
        try:
            await relayer.queue.put(tx)
        finally:
            await relayer.close()
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        queue: TransactionQueue | None = None,
        chain: ChainService | None = None,
        submitter: MintSubmitter | None = None,
        retry: RetryEngine | None = None,
        metrics: RelayerMetrics | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the relayer with configuration.

        Args:
            config: Application configuration.
            queue: Pre-built transaction queue (tests).
            chain: Pre-built chain service (tests).
            submitter: Pre-built mint/release submitter (tests).
            retry: Pre-built retry engine (tests).
            metrics: Shared metrics, e.g. the registry the HTTP layer exports.
            clock: Millisecond wall clock.
        """
        self._config = config
        self._clock = clock
        self._initialized = False

        self._queue = queue
        self._chain = chain
        self._submitter = submitter
        self._retry = retry
        self._proofs: ProofService | None = None
        self._processor: TransactionProcessor | None = None
        self._metrics = metrics
        self._notifications: NotificationService | None = None
        self._task_manager: TaskManager | None = None

    async def initialize(self) -> None:
        """Restore the queue, connect clients and start the scheduler.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Relayer already initialized"
            raise RuntimeError(msg)

        if self._queue is None:
            self._queue = TransactionQueue(self._config.queue.path, clock=self._clock)
        if not self._queue.is_loaded:
            await self._queue.load()

        if self._chain is None:
            self._chain = ChainService(self._config)
        await self._chain.connect()

        if self._submitter is None:
            signer = RemoteSignerSubmitter(self._config, self._chain)
            await signer.connect()
            self._submitter = signer

        if self._retry is None:
            self._retry = RetryEngine()

        if self._metrics is None and self._config.metrics.enabled:
            self._metrics = RelayerMetrics()

        self._notifications = NotificationService()
        await self._notifications.start()

        self._proofs = ProofService(self._chain, self._retry, self._config, clock=self._clock)
        self._processor = TransactionProcessor(
            self._queue,
            self._chain,
            self._proofs,
            self._submitter,
            self._config,
            clock=self._clock,
            notifications=self._notifications,
            metrics=self._metrics,
        )

        monitor = self._config.monitor
        self._task_manager = TaskManager(
            metrics=self._metrics, shutdown_timeout=monitor.shutdown_timeout
        )
        if monitor.enabled:
            self._task_manager.register(
                PROCESS_QUEUE_JOB,
                CronJob(
                    handler=self._processor.process_queue,
                    period=monitor.poll_interval,
                    run_immediately=True,
                ),
            )
            logger.info(
                "Transaction monitoring enabled, polling every %.1fs (proof: %s)",
                monitor.poll_interval,
                monitor.deposit_proof,
            )
        else:
            logger.info("Transaction monitoring disabled")
        await self._task_manager.start()

        self._initialized = True

    async def close(self) -> None:
        """Drain the scheduler, flush the queue and close all clients.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        # Stop the scheduler first so no tick mutates the queue after the flush
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        if self._queue is not None:
            await self._queue.flush()

        if self._notifications is not None:
            await self._notifications.stop()
            self._notifications = None

        if isinstance(self._submitter, RemoteSignerSubmitter):
            await self._submitter.close()

        if self._chain is not None:
            await self._chain.close()

        self._processor = None
        self._proofs = None
        self._initialized = False
        logger.info("Relayer stopped")

    @property
    def is_initialized(self) -> bool:
        """Check if the relayer is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def queue(self) -> TransactionQueue:
        """Get the transaction queue."""
        if self._queue is None or not self._initialized:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._queue

    @property
    def proofs(self) -> ProofService:
        """Get the proof service."""
        if self._proofs is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._proofs

    @property
    def processor(self) -> TransactionProcessor:
        """Get the transaction processor."""
        if self._processor is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._processor

    @property
    def task_manager(self) -> TaskManager:
        """Get the scheduler."""
        if self._task_manager is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._task_manager

    @property
    def notifications(self) -> NotificationService:
        """Get the notification service."""
        if self._notifications is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._notifications

    @property
    def metrics(self) -> RelayerMetrics | None:
        """Get the metrics, or ``None`` when disabled."""
        return self._metrics
