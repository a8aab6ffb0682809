"""Retry — bounded-retry executor used by every proof source."""

from bridge_relayer.retry.engine import DEFAULT_MAX_ATTEMPTS, RetryEngine

__all__ = ["DEFAULT_MAX_ATTEMPTS", "RetryEngine"]
