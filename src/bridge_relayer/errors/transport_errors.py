"""Transport errors and typed retryable/fatal classification.

The kind of an upstream failure is decided where it happens, from the
HTTP status code or the httpx exception type, and carried on the error
class.  Nothing downstream inspects error messages.
"""

from __future__ import annotations

import enum

import httpx

from bridge_relayer.errors.relayer_errors import NotReadyError, RelayerError


class ErrorKind(enum.StrEnum):
    """Outcome classification for an upstream response."""

    NOT_READY = "not_ready"
    RETRYABLE = "retryable"
    FATAL = "fatal"


# Transient upstream statuses.  404 is handled separately by callers that
# treat it as "not ready".
_RETRYABLE_STATUSES = frozenset({404, 408, 429, 502, 503, 504})


class TransportError(RelayerError):
    """Base for errors talking to an upstream API or node.

    Attributes:
        source: Name of the upstream (e.g. ``"attestation"``).
        upstream_status: HTTP status returned upstream, 0 for network errors.
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
        upstream_status: int = 0,
        code: str = "transport-error",
    ) -> None:
        super().__init__(message, status_code=502, code=code)
        self.source = source
        self.upstream_status = upstream_status


class RetryableTransportError(TransportError):
    """Network failure, timeout, HTTP 404/429 or a transient 5xx."""

    retryable = True

    def __init__(self, message: str, *, source: str = "", upstream_status: int = 0) -> None:
        super().__init__(
            message,
            source=source,
            upstream_status=upstream_status,
            code="transport-retryable",
        )


class FatalTransportError(TransportError):
    """HTTP 401/403/500 or a malformed response.  Surfaced immediately."""

    retryable = False

    def __init__(self, message: str, *, source: str = "", upstream_status: int = 0) -> None:
        super().__init__(
            message,
            source=source,
            upstream_status=upstream_status,
            code="transport-fatal",
        )


def classify_status(status_code: int, *, not_found_is_not_ready: bool = False) -> ErrorKind:
    """Classify a non-2xx HTTP status code.

    Args:
        status_code: The upstream HTTP status.
        not_found_is_not_ready: Treat 404 as "not ready" instead of retryable.
    """
    if status_code == 404 and not_found_is_not_ready:
        return ErrorKind.NOT_READY
    if status_code in _RETRYABLE_STATUSES:
        return ErrorKind.RETRYABLE
    return ErrorKind.FATAL


def error_from_response(
    response: httpx.Response,
    source: str,
    *,
    not_found_is_not_ready: bool = False,
) -> RelayerError:
    """Build the typed error for a non-2xx *response*."""
    status = response.status_code
    message = f"{source} request failed ({status}): {response.reason_phrase}"
    kind = classify_status(status, not_found_is_not_ready=not_found_is_not_ready)
    if kind is ErrorKind.NOT_READY:
        return NotReadyError(f"{source} returned {status}: not ready")
    if kind is ErrorKind.RETRYABLE:
        return RetryableTransportError(message, source=source, upstream_status=status)
    return FatalTransportError(message, source=source, upstream_status=status)


def error_from_exception(exc: httpx.HTTPError, source: str) -> TransportError:
    """Build the typed error for an httpx exception raised before a response."""
    if isinstance(exc, httpx.HTTPStatusError):
        err = error_from_response(exc.response, source)
        if isinstance(err, TransportError):
            return err
    if isinstance(exc, httpx.TimeoutException | httpx.NetworkError | httpx.RemoteProtocolError):
        return RetryableTransportError(f"{source} network error: {exc}", source=source)
    return FatalTransportError(f"{source} request error: {exc}", source=source)
