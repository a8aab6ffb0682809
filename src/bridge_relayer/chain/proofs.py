"""Proof service — proof sources bound to the retry engine.

Three proof sources:
- message-hash attestation from the off-chain attestation service
- balance verification on the destination chain (recipient credited)
- withdrawal proof from the source transaction's on-chain result

Each builds a single-attempt operation that returns ``None`` while the
proof is not ready and hands it to :class:`RetryEngine`.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from bridge_relayer.chain.stacks.models import StacksTxStatus
from bridge_relayer.errors.relayer_errors import ConfirmationFailedError, ValidationError
from bridge_relayer.models.transaction import AttestationData
from bridge_relayer.utils.clock import now_ms

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from bridge_relayer.chain.service import ChainService
    from bridge_relayer.config.settings import AppConfig
    from bridge_relayer.retry.engine import RetryEngine

logger = logging.getLogger(__name__)

BALANCE_ATTESTATION = "balance-verified"

_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


def is_valid_message_hash(value: str) -> bool:
    """Check for a ``0x``-prefixed 32-byte hex hash."""
    return bool(_HASH_RE.match(value or ""))


def is_valid_tx_hash(value: str) -> bool:
    """Check a transaction id; both chains use the same 32-byte hex form."""
    return bool(_HASH_RE.match(value or ""))


def verify_balance(balance: int, expected: int | str) -> bool:
    """Return True iff *balance* is at least *expected* base units.

    Both sides are compared as arbitrary-precision integers.  A balance
    that already covered *expected* before the deposit also passes.
    """
    return int(balance) >= int(expected)


class ProofService:
    """Fetches proofs that a source-chain event happened.

    Budgets default to the monitor settings: ``max_retries`` attempts,
    ``poll_interval`` seconds apart, within ``transaction_timeout``.
    """

    def __init__(
        self,
        chain: ChainService,
        retry: RetryEngine,
        config: AppConfig,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._chain = chain
        self._retry = retry
        self._config = config
        self._clock = clock

    async def fetch_message_attestation(
        self,
        message_hash: str,
        *,
        max_attempts: object = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
    ) -> AttestationData:
        """Fetch the attestation for a message hash.

        Raises:
            ValidationError: If *message_hash* is empty.
            RetryLimitExceeded: Not ready after the attempt budget.
            TimeoutExceeded: Not ready within the wall-clock budget.
            FatalTransportError: Non-retryable upstream failure.
        """
        if not message_hash:
            msg = "message hash is required for attestation lookup"
            raise ValidationError(msg)

        async def attempt() -> AttestationData | None:
            attestation = await self._chain.attestation.get_attestation(message_hash)
            if attestation is None:
                return None
            return AttestationData(
                attestation=attestation,
                message_hash=message_hash,
                fetched_at=self._clock(),
            )

        return await self._run(
            attempt,
            "message attestation",
            message_hash,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            timeout=timeout,
        )

    async def fetch_balance_attestation(
        self,
        tx_hash: str,
        recipient: str,
        expected_amount: str,
        *,
        max_attempts: object = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
    ) -> AttestationData:
        """Poll the recipient's token balance until it covers *expected_amount*.

        The proof is bound to *tx_hash*, the source deposit transaction.

        Raises:
            ValidationError: If *recipient* is empty or the amount is not an integer.
            RetryLimitExceeded: Balance still short after the attempt budget.
            TimeoutExceeded: Balance still short within the wall-clock budget.
            FatalTransportError: Non-retryable upstream failure.
        """
        if not recipient:
            msg = "recipient address is required for balance verification"
            raise ValidationError(msg)
        try:
            expected = int(expected_amount)
        except ValueError as exc:
            msg = f"invalid amount: {expected_amount!r}"
            raise ValidationError(msg) from exc

        token = self._config.stacks.token_contract

        async def attempt() -> AttestationData | None:
            balance = await self._chain.stacks.get_token_balance(recipient, token)
            if not verify_balance(balance, expected):
                logger.debug(
                    "Balance %d of %s below expected %d", balance, recipient, expected
                )
                return None
            return AttestationData(
                attestation=BALANCE_ATTESTATION,
                message_hash=tx_hash,
                fetched_at=self._clock(),
            )

        return await self._run(
            attempt,
            "balance verification",
            tx_hash,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            timeout=timeout,
        )

    async def fetch_withdrawal_attestation(
        self,
        tx_hash: str,
        *,
        max_attempts: object = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
    ) -> AttestationData:
        """Fetch the proof of a burn on the UTXO-account chain.

        The proof is the transaction's result once it succeeded.

        Raises:
            ConfirmationFailedError: The burn transaction aborted.
            RetryLimitExceeded: Not confirmed after the attempt budget.
            TimeoutExceeded: Not confirmed within the wall-clock budget.
        """

        async def attempt() -> AttestationData | None:
            info = await self._chain.stacks.get_transaction(tx_hash)
            if info.status is StacksTxStatus.FAILED:
                msg = f"withdrawal transaction {tx_hash} failed: {info.raw_status}"
                raise ConfirmationFailedError(msg)
            if info.status is not StacksTxStatus.SUCCESS or not info.result_hex:
                return None
            return AttestationData(
                attestation=info.result_hex,
                message_hash=tx_hash,
                fetched_at=self._clock(),
            )

        return await self._run(
            attempt,
            "withdrawal attestation",
            tx_hash,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            timeout=timeout,
        )

    async def _run(
        self,
        attempt: Callable[[], Awaitable[AttestationData | None]],
        operation_name: str,
        identifier: str,
        *,
        max_attempts: object,
        retry_delay: float | None,
        timeout: float | None,
    ) -> AttestationData:
        monitor = self._config.monitor
        return await self._retry.run(
            attempt,
            max_attempts=monitor.max_retries if max_attempts is None else max_attempts,
            retry_delay=monitor.poll_interval if retry_delay is None else retry_delay,
            timeout=monitor.transaction_timeout if timeout is None else timeout,
            operation_name=operation_name,
            identifier=identifier,
        )
