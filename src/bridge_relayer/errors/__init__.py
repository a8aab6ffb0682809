"""Errors — relayer error taxonomy and transport classification."""

from bridge_relayer.errors.relayer_errors import (
    ConfirmationFailedError,
    InsufficientBalanceError,
    NotReadyError,
    RelayerError,
    RetryLimitExceeded,
    TimeoutExceeded,
    ValidationError,
)
from bridge_relayer.errors.transport_errors import (
    ErrorKind,
    FatalTransportError,
    RetryableTransportError,
    TransportError,
    classify_status,
    error_from_exception,
    error_from_response,
)

__all__ = [
    "ConfirmationFailedError",
    "ErrorKind",
    "FatalTransportError",
    "InsufficientBalanceError",
    "NotReadyError",
    "RelayerError",
    "RetryLimitExceeded",
    "RetryableTransportError",
    "TimeoutExceeded",
    "TransportError",
    "ValidationError",
    "classify_status",
    "error_from_exception",
    "error_from_response",
]
