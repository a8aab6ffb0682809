"""Transaction processor — the bridge state machine.

Each scheduler tick calls :meth:`TransactionProcessor.process_queue`,
which takes a snapshot of the non-terminal transactions and advances
each one by at most one step, strictly one after another.  Sequential
processing is what keeps a single process from submitting the same
mint twice.

Deposit:    pending/confirming → attesting → minting → complete
Withdrawal: pending/confirming → attesting → minting → complete

Any status may jump to ``failed``: the transaction is older than
``transaction_timeout``, a fatal error occurred, or tick-level retries
ran out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bridge_relayer.chain.ethereum.client import ReceiptStatus
from bridge_relayer.chain.proofs import is_valid_message_hash
from bridge_relayer.chain.stacks.models import StacksTxStatus
from bridge_relayer.config.settings import DepositProof
from bridge_relayer.errors.relayer_errors import (
    ConfirmationFailedError,
    RelayerError,
    RetryLimitExceeded,
    TimeoutExceeded,
    ValidationError,
)
from bridge_relayer.models.transaction import (
    BridgeStep,
    BridgeTransaction,
    TransactionStatus,
    TransactionType,
)
from bridge_relayer.notifications.events import TransactionEvent
from bridge_relayer.utils.clock import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from bridge_relayer.chain.proofs import ProofService
    from bridge_relayer.chain.service import ChainService
    from bridge_relayer.chain.submitter import MintSubmitter
    from bridge_relayer.config.settings import AppConfig
    from bridge_relayer.datastore.queue import TransactionQueue
    from bridge_relayer.metrics.collector import RelayerMetrics
    from bridge_relayer.notifications.service import NotificationService

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Transaction timeout"
INSUFFICIENT_GAS_ERROR = "Insufficient relayer gas balance"

_NOT_READY = (RetryLimitExceeded, TimeoutExceeded)


class StaleTransactionError(RuntimeError):
    """The stored transaction changed while a tick was acting on it."""


class TransactionProcessor:
    """Drives bridge transactions through their lifecycle.

    Usage::

        processor = TransactionProcessor(queue, chain, proofs, submitter, config)
        await processor.process_queue()
    """

    def __init__(
        self,
        queue: TransactionQueue,
        chain: ChainService,
        proofs: ProofService,
        submitter: MintSubmitter,
        config: AppConfig,
        *,
        clock: Callable[[], int] = now_ms,
        notifications: NotificationService | None = None,
        metrics: RelayerMetrics | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            queue: Persistent transaction store.
            chain: Chain clients used for source confirmations.
            proofs: Proof sources bound to the retry engine.
            submitter: Destination mint/release boundary.
            config: Application configuration.
            clock: Millisecond wall clock.
            notifications: Receives a ``TransactionEvent`` per transition.
            metrics: Transition and submission counters.
        """
        self._queue = queue
        self._chain = chain
        self._proofs = proofs
        self._submitter = submitter
        self._config = config
        self._clock = clock
        self._notifications = notifications
        self._metrics = metrics

    # ------------------------------------------------------------------
    # Tick driver
    # ------------------------------------------------------------------

    async def process_queue(self) -> None:
        """Advance every pending transaction by one step, sequentially.

        Errors never escape: they are converted into ``retry_count``
        increments on the offending transaction.
        """
        pending = self._queue.pending()
        if pending:
            logger.info("Processing %d pending transactions", len(pending))
        for snapshot in pending:
            tx = self._queue.get(snapshot.id)
            if tx is None or tx.is_terminal:
                continue
            try:
                await self.process(tx)
            except StaleTransactionError as exc:
                logger.error("Skipping transaction %s: %s", tx.id, exc)
            except RelayerError as exc:
                await self._record_failure(tx.id, exc.message, retryable=exc.retryable)
            except Exception as exc:
                logger.exception("Unexpected error processing transaction %s", tx.id)
                await self._record_failure(tx.id, str(exc), retryable=True)

        if self._metrics is not None:
            self._metrics.set_transaction_counts(self._queue.list())

    async def process(self, tx: BridgeTransaction) -> None:
        """Take the single action due for *tx* in its current status."""
        if tx.is_terminal:
            return

        age_ms = self._clock() - tx.created_at
        if age_ms > self._config.monitor.transaction_timeout * 1000:
            logger.warning("Transaction %s timed out after %d ms", tx.id, age_ms)
            await self._transition(tx, TransactionStatus.FAILED, error=TIMEOUT_ERROR)
            return

        if tx.type is TransactionType.DEPOSIT:
            await self._process_deposit(tx)
        elif tx.type is TransactionType.WITHDRAWAL:
            await self._process_withdrawal(tx)
        else:
            logger.debug("Transaction %s of type %s is not driven", tx.id, tx.type)

    async def _record_failure(self, tx_id: str, message: str, *, retryable: bool) -> None:
        current = self._queue.get(tx_id)
        if current is None or current.is_terminal:
            return
        max_retries = self._config.monitor.max_retries
        if retryable:
            retry_count = current.retry_count + 1
        else:
            retry_count = max(current.retry_count + 1, max_retries)

        if retry_count >= max_retries:
            logger.error("Transaction %s failed after %d attempts: %s", tx_id, retry_count, message)
            await self._transition(
                current,
                TransactionStatus.FAILED,
                retry_count=retry_count,
                error=f"Failed after {retry_count} attempts: {message}",
            )
            return

        logger.warning(
            "Transaction %s attempt %d/%d failed: %s", tx_id, retry_count, max_retries, message
        )
        await self._queue.update(tx_id, retry_count=retry_count, error=message)

    # ------------------------------------------------------------------
    # Deposit flow
    # ------------------------------------------------------------------

    @property
    def _deposit_proof(self) -> DepositProof:
        return self._config.monitor.deposit_proof

    async def _process_deposit(self, tx: BridgeTransaction) -> None:
        match tx.status:
            case TransactionStatus.PENDING | TransactionStatus.CONFIRMING:
                await self._confirm_deposit(tx)
            case TransactionStatus.ATTESTING:
                await self._attest_deposit(tx)
            case TransactionStatus.MINTING:
                await self._submit(tx, BridgeStep.MINT)

    def _validate_deposit(self, tx: BridgeTransaction) -> None:
        if self._deposit_proof is DepositProof.MESSAGE_HASH:
            if not tx.message_hash:
                msg = "Message hash is required for attestation"
                raise ValidationError(msg)
            if not is_valid_message_hash(tx.message_hash):
                msg = f"Invalid message hash format: {tx.message_hash}"
                raise ValidationError(msg)
        elif not tx.stacks_address:
            msg = "Recipient address is required for balance verification"
            raise ValidationError(msg)

    async def _confirm_deposit(self, tx: BridgeTransaction) -> None:
        self._validate_deposit(tx)

        ethereum = self._chain.ethereum
        if self._config.monitor.require_source_confirmation and ethereum.is_configured:
            receipt = await ethereum.get_receipt_status(tx.source_tx_hash)
            if receipt is None:
                logger.debug("Deposit %s source transaction not mined yet", tx.id)
                if tx.status is TransactionStatus.PENDING:
                    await self._transition(tx, TransactionStatus.CONFIRMING)
                return
            if receipt is ReceiptStatus.FAILED:
                msg = f"Source transaction {tx.source_tx_hash} reverted"
                raise ConfirmationFailedError(msg)

        await self._transition(
            tx, TransactionStatus.ATTESTING, current_step=BridgeStep.ATTESTATION.value
        )

    async def _attest_deposit(self, tx: BridgeTransaction) -> None:
        self._validate_deposit(tx)

        if self._deposit_proof is DepositProof.MESSAGE_HASH:
            try:
                data = await self._proofs.fetch_message_attestation(tx.message_hash, max_attempts=1)
            except _NOT_READY as exc:
                logger.debug("Attestation for %s not ready: %s", tx.id, exc.message)
                return
            await self._transition(
                tx,
                TransactionStatus.MINTING,
                current_step=BridgeStep.MINT.value,
                attestation=data.attestation,
                attestation_fetched_at=data.fetched_at,
            )
            return

        # Balance proof: the destination protocol mints by itself, so an
        # observed credit completes the transfer.
        try:
            data = await self._proofs.fetch_balance_attestation(
                tx.source_tx_hash, tx.stacks_address, tx.amount, max_attempts=1
            )
        except _NOT_READY as exc:
            logger.debug("Balance for %s not credited yet: %s", tx.id, exc.message)
            return
        await self._transition(
            tx,
            TransactionStatus.COMPLETE,
            current_step=BridgeStep.MINT.value,
            attestation=data.attestation,
            attestation_fetched_at=data.fetched_at,
            message_hash=data.message_hash,
            destination_tx_hash=tx.source_tx_hash,
            completed_at=self._clock(),
            error="",
        )

    # ------------------------------------------------------------------
    # Withdrawal flow
    # ------------------------------------------------------------------

    async def _process_withdrawal(self, tx: BridgeTransaction) -> None:
        if not tx.ethereum_address:
            msg = "Recipient Ethereum address is required for withdrawal"
            raise ValidationError(msg)

        match tx.status:
            case TransactionStatus.PENDING | TransactionStatus.CONFIRMING:
                await self._confirm_withdrawal(tx)
            case TransactionStatus.ATTESTING:
                await self._attest_withdrawal(tx)
            case TransactionStatus.MINTING:
                await self._submit(tx, BridgeStep.WITHDRAWAL)

    async def _confirm_withdrawal(self, tx: BridgeTransaction) -> None:
        info = await self._chain.stacks.get_transaction(tx.source_tx_hash)
        if info.status is StacksTxStatus.FAILED:
            msg = f"Burn transaction {tx.source_tx_hash} failed: {info.raw_status}"
            raise ConfirmationFailedError(msg)
        if info.status is StacksTxStatus.PENDING:
            logger.debug("Withdrawal %s burn not confirmed yet", tx.id)
            if tx.status is TransactionStatus.PENDING:
                await self._transition(
                    tx, TransactionStatus.CONFIRMING, current_step=BridgeStep.BURN.value
                )
            return
        await self._transition(
            tx, TransactionStatus.ATTESTING, current_step=BridgeStep.ATTESTATION.value
        )

    async def _attest_withdrawal(self, tx: BridgeTransaction) -> None:
        try:
            data = await self._proofs.fetch_withdrawal_attestation(
                tx.source_tx_hash, max_attempts=1
            )
        except _NOT_READY as exc:
            logger.debug("Withdrawal proof for %s not ready: %s", tx.id, exc.message)
            return
        await self._transition(
            tx,
            TransactionStatus.MINTING,
            current_step=BridgeStep.WITHDRAWAL.value,
            attestation=data.attestation,
            attestation_fetched_at=data.fetched_at,
            message_hash=tx.message_hash or data.message_hash,
        )

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    async def _submit(self, tx: BridgeTransaction, step: BridgeStep) -> None:
        if not tx.attestation:
            msg = f"Transaction {tx.id} reached minting without an attestation"
            raise ValidationError(msg)

        if not await self._submitter.has_sufficient_balance(tx):
            logger.warning("Transaction %s waiting: %s", tx.id, INSUFFICIENT_GAS_ERROR)
            await self._queue.update(tx.id, error=INSUFFICIENT_GAS_ERROR)
            return

        try:
            destination_tx_hash = await self._submitter.submit(tx)
        except Exception:
            if self._metrics is not None:
                self._metrics.record_submission(tx.type.value, "error")
            raise
        if self._metrics is not None:
            self._metrics.record_submission(tx.type.value, "success")

        await self._transition(
            tx,
            TransactionStatus.COMPLETE,
            current_step=step.value,
            destination_tx_hash=destination_tx_hash,
            completed_at=self._clock(),
            error="",
        )

    async def _transition(
        self, tx: BridgeTransaction, target: TransactionStatus, **changes: Any
    ) -> BridgeTransaction:
        """Persist a status change after checking it only moves forward.

        The stored copy is the reference: a concurrent write (a manual
        clear, or the same id posted again) is never overwritten by the
        snapshot this tick started from.

        Raises:
            RuntimeError: On a backwards transition or a rewritten attestation.
            StaleTransactionError: If the stored copy no longer matches *tx*.
        """
        current = self._queue.get(tx.id) or tx
        if not current.status.can_advance_to(target):
            msg = f"Illegal transition {current.status} -> {target} for {tx.id}"
            raise RuntimeError(msg)
        attestation = changes.get("attestation")
        if attestation is not None and current.attestation and attestation != current.attestation:
            msg = f"Attestation of {tx.id} is already recorded"
            raise RuntimeError(msg)
        if current != tx:
            msg = (
                f"stored copy changed during the tick, dropping {current.status} -> {target}"
                f" (changes: {changes})"
            )
            raise StaleTransactionError(msg)

        updated = await self._queue.update(tx.id, status=target, **changes)
        if updated is None:
            msg = f"Transaction {tx.id} disappeared from the queue"
            raise RuntimeError(msg)

        logger.info("Transaction %s: %s -> %s", tx.id, current.status, target)
        if self._metrics is not None:
            self._metrics.record_transition(updated.type.value, target.value)
        if self._notifications is not None:
            await self._notifications.notify(
                TransactionEvent(
                    transaction_id=updated.id,
                    transaction_type=updated.type.value,
                    previous_status=current.status.value,
                    status=target.value,
                    current_step=updated.current_step,
                    error=updated.error,
                )
            )
        return updated
