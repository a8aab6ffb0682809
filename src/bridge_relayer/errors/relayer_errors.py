"""RelayerError — base exception class and the relayer error taxonomy.

Every error carries a suggested HTTP ``status_code``, a machine-readable
``code`` and a ``retryable`` flag.  The tick driver uses ``retryable`` to
decide whether a failure consumes one retry or the whole budget.
"""

from __future__ import annotations


class RelayerError(Exception):
    """Base error for all relayer operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
        retryable: Whether a later attempt may succeed.
    """

    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "relayer-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ValidationError(RelayerError):
    """A required field is missing or malformed.  Never retried."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400, code="validation-error")


class NotReadyError(RelayerError):
    """The proof is not available yet.  A normal polling outcome."""

    def __init__(self, message: str = "proof not ready") -> None:
        super().__init__(message, status_code=404, code="not-ready")


class TimeoutExceeded(RelayerError):
    """Wall-clock budget exhausted before a result was obtained."""

    def __init__(self, message: str, *, attempts: int = 0, elapsed: float = 0.0) -> None:
        super().__init__(message, status_code=404, code="timeout-exceeded")
        self.attempts = attempts
        self.elapsed = elapsed


class RetryLimitExceeded(RelayerError):
    """Attempt budget exhausted while the proof remained not ready."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message, status_code=404, code="retry-limit-exceeded")
        self.attempts = attempts


class InsufficientBalanceError(RelayerError):
    """The relayer cannot pay for the destination transaction."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=503, code="insufficient-balance")


class ConfirmationFailedError(RelayerError):
    """The source transaction was mined but reverted or aborted."""

    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=422, code="confirmation-failed")
