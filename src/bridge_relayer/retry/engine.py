"""Bounded-retry executor for proofs that become available eventually.

An operation either returns a result, returns ``None`` ("not ready"), or
raises.  ``NotReadyError`` and retryable ``RelayerError``s count as "not
ready" and consume one attempt; non-retryable errors propagate at once.

Budgets:
- ``max_attempts`` counts *total* attempts, the first one included.
- ``timeout`` is wall-clock seconds since the first attempt, checked
  before every attempt.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import TYPE_CHECKING, TypeVar

from bridge_relayer.errors.relayer_errors import (
    NotReadyError,
    RelayerError,
    RetryLimitExceeded,
    TimeoutExceeded,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


class RetryEngine:
    """Runs a "not ready"-returning operation under attempt and time budgets.

    Usage::

        engine = RetryEngine()
        data = await engine.run(
            fetch_once,
            max_attempts=3,
            retry_delay=30.0,
            timeout=3600.0,
            operation_name="attestation",
            identifier=message_hash,
        )
    """

    def __init__(
        self,
        *,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the engine.

        Args:
            default_max_attempts: Used when a caller passes an invalid budget.
            sleep: Coroutine used between attempts (injectable for tests).
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._default_max_attempts = default_max_attempts
        self._sleep = sleep
        self._clock = clock

    def coerce_max_attempts(self, value: object, operation_name: str = "") -> int:
        """Return *value* if it is a positive integer, else the default.

        Non-integers, NaN, zero and negatives are replaced with a warning.
        """
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            return value
        if isinstance(value, float) and not math.isnan(value) and value.is_integer() and value >= 1:
            return int(value)
        logger.warning(
            "Invalid max_attempts %r for %s, using default %d",
            value,
            operation_name or "operation",
            self._default_max_attempts,
        )
        return self._default_max_attempts

    async def run(
        self,
        operation: Callable[[], Awaitable[T | None]],
        *,
        max_attempts: object,
        retry_delay: float,
        timeout: float,
        operation_name: str,
        identifier: str = "",
    ) -> T:
        """Run *operation* until it yields a result or a budget runs out.

        Args:
            operation: Zero-arg coroutine function; ``None`` means not ready.
            max_attempts: Total attempts, including the first.
            retry_delay: Seconds to sleep between attempts.
            timeout: Wall-clock seconds allowed since the first attempt.
            operation_name: Label for log messages.
            identifier: Hash or id the operation is about, for log messages.

        Returns:
            The first non-``None`` result.

        Raises:
            RetryLimitExceeded: After exactly ``max_attempts`` not-ready attempts.
            TimeoutExceeded: If ``timeout`` elapsed before an attempt.
            RelayerError: A non-retryable error from *operation*, unchanged.
        """
        attempts_budget = self.coerce_max_attempts(max_attempts, operation_name)
        start = self._clock()
        attempt = 0
        last_error: RelayerError | None = None

        while attempt < attempts_budget:
            elapsed = self._clock() - start
            if elapsed > timeout:
                logger.warning(
                    "%s timed out for %s after %.1fs (%d attempts)",
                    operation_name,
                    identifier,
                    elapsed,
                    attempt,
                )
                msg = f"{operation_name} timeout after {timeout}s ({attempt} attempts)"
                raise TimeoutExceeded(msg, attempts=attempt, elapsed=elapsed) from last_error

            attempt += 1
            logger.debug(
                "%s attempt %d/%d for %s", operation_name, attempt, attempts_budget, identifier
            )

            try:
                result = await operation()
            except NotReadyError as exc:
                result = None
                last_error = exc
            except RelayerError as exc:
                if not exc.retryable:
                    logger.error(
                        "%s failed for %s on attempt %d: %s",
                        operation_name,
                        identifier,
                        attempt,
                        exc.message,
                    )
                    raise
                result = None
                last_error = exc

            if result is not None:
                logger.info(
                    "%s succeeded for %s on attempt %d/%d",
                    operation_name,
                    identifier,
                    attempt,
                    attempts_budget,
                )
                return result

            if attempt < attempts_budget:
                logger.info(
                    "%s not ready for %s, will retry in %.1fs (attempt %d/%d)",
                    operation_name,
                    identifier,
                    retry_delay,
                    attempt,
                    attempts_budget,
                )
                await self._sleep(retry_delay)

        logger.warning(
            "%s not ready for %s, limit reached after %d attempts",
            operation_name,
            identifier,
            attempt,
        )
        msg = f"{operation_name} not ready after {attempt} attempts"
        if last_error is not None and not isinstance(last_error, NotReadyError):
            msg = f"{msg}: {last_error.message}"
        raise RetryLimitExceeded(msg, attempts=attempt) from last_error
