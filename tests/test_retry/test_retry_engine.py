"""Tests for the bounded-retry engine."""

from __future__ import annotations

import logging

import pytest

from bridge_relayer.errors import (
    FatalTransportError,
    NotReadyError,
    RetryableTransportError,
    RetryLimitExceeded,
    TimeoutExceeded,
    ValidationError,
)
from bridge_relayer.retry.engine import DEFAULT_MAX_ATTEMPTS, RetryEngine

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Recorder:
    """Operation double that replays outcomes and counts invocations."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        value = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(value, Exception):
            raise value
        return value


class _SleepRecorder:
    def __init__(self, clock=None):
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._clock is not None:
            self._clock.now += seconds


class _MonotonicClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _engine(sleep=None, clock=None) -> RetryEngine:
    return RetryEngine(sleep=sleep or _SleepRecorder(), clock=clock or _MonotonicClock())


async def _run(engine, operation, *, max_attempts=3, retry_delay=1.0, timeout=3600.0):
    return await engine.run(
        operation,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
        timeout=timeout,
        operation_name="attestation",
        identifier="0xabc",
    )


# ---------------------------------------------------------------------------
# Attempt budget
# ---------------------------------------------------------------------------


class TestAttemptBudget:
    @pytest.mark.parametrize("max_attempts", range(1, 11))
    async def test_exactly_max_attempts(self, max_attempts):
        sleep = _SleepRecorder()
        op = _Recorder()
        with pytest.raises(RetryLimitExceeded) as exc_info:
            await _run(_engine(sleep=sleep), op, max_attempts=max_attempts)
        assert op.calls == max_attempts
        assert exc_info.value.attempts == max_attempts
        # no sleep after the final attempt
        assert len(sleep.delays) == max_attempts - 1

    async def test_single_attempt_never_sleeps(self):
        sleep = _SleepRecorder()
        with pytest.raises(RetryLimitExceeded):
            await _run(_engine(sleep=sleep), _Recorder(), max_attempts=1)
        assert sleep.delays == []

    async def test_retry_delay_used_between_attempts(self):
        sleep = _SleepRecorder()
        with pytest.raises(RetryLimitExceeded):
            await _run(_engine(sleep=sleep), _Recorder(), max_attempts=3, retry_delay=2.5)
        assert sleep.delays == [2.5, 2.5]

    @pytest.mark.parametrize("k", [1, 2, 3, 4])
    async def test_early_success(self, k):
        sleep = _SleepRecorder()
        op = _Recorder(*([None] * (k - 1)), "attestation-hex")
        result = await _run(_engine(sleep=sleep), op, max_attempts=5)
        assert result == "attestation-hex"
        assert op.calls == k
        assert len(sleep.delays) == k - 1

    async def test_not_ready_error_counts_as_not_ready(self):
        op = _Recorder(NotReadyError(), NotReadyError(), "ok")
        assert await _run(_engine(), op, max_attempts=3) == "ok"
        assert op.calls == 3

    async def test_retryable_transport_error_consumes_attempt(self):
        op = _Recorder(RetryableTransportError("429", upstream_status=429), "ok")
        assert await _run(_engine(), op, max_attempts=2) == "ok"
        assert op.calls == 2

    async def test_limit_error_chains_last_transport_error(self):
        err = RetryableTransportError("network down")
        op = _Recorder(err, err)
        with pytest.raises(RetryLimitExceeded) as exc_info:
            await _run(_engine(), op, max_attempts=2)
        assert exc_info.value.__cause__ is err
        assert "network down" in exc_info.value.message


# ---------------------------------------------------------------------------
# Fatal errors and timeout
# ---------------------------------------------------------------------------


class TestShortCircuit:
    @pytest.mark.parametrize("max_attempts", [1, 3, 10])
    async def test_fatal_on_first_attempt(self, max_attempts):
        sleep = _SleepRecorder()
        op = _Recorder(FatalTransportError("401", upstream_status=401))
        with pytest.raises(FatalTransportError):
            await _run(_engine(sleep=sleep), op, max_attempts=max_attempts)
        assert op.calls == 1
        assert sleep.delays == []

    async def test_validation_error_is_fatal(self):
        op = _Recorder(None, ValidationError("bad hash"))
        with pytest.raises(ValidationError):
            await _run(_engine(), op, max_attempts=5)
        assert op.calls == 2

    async def test_timeout_precedence(self):
        clock = _MonotonicClock()
        sleep = _SleepRecorder(clock)
        op = _Recorder()
        with pytest.raises(TimeoutExceeded) as exc_info:
            await _run(
                _engine(sleep=sleep, clock=clock),
                op,
                max_attempts=10,
                retry_delay=10.0,
                timeout=25.0,
            )
        # attempts at t=0, 10, 20; the check before t=30 fails
        assert op.calls == 3
        assert exc_info.value.attempts == 3

    async def test_zero_elapsed_does_not_time_out(self):
        clock = _MonotonicClock()
        op = _Recorder("ok")
        assert await _run(_engine(clock=clock), op, timeout=0.0) == "ok"


# ---------------------------------------------------------------------------
# max_attempts coercion and logging
# ---------------------------------------------------------------------------


class TestCoercion:
    @pytest.mark.parametrize("value", [0, -1, 2.5, float("nan"), "3", None, True])
    async def test_invalid_uses_default(self, value, caplog):
        op = _Recorder()
        with caplog.at_level(logging.WARNING), pytest.raises(RetryLimitExceeded):
            await _run(_engine(), op, max_attempts=value)
        assert op.calls == DEFAULT_MAX_ATTEMPTS
        assert "Invalid max_attempts" in caplog.text

    def test_integer_float_accepted(self):
        assert RetryEngine().coerce_max_attempts(4.0) == 4

    def test_custom_default(self):
        assert RetryEngine(default_max_attempts=5).coerce_max_attempts(-2) == 5


class TestLogging:
    async def test_will_retry_only_when_another_attempt_follows(self, caplog):
        with caplog.at_level(logging.INFO), pytest.raises(RetryLimitExceeded):
            await _run(_engine(), _Recorder(), max_attempts=2)
        retry_lines = [r for r in caplog.records if "will retry" in r.getMessage()]
        limit_lines = [r for r in caplog.records if "limit reached" in r.getMessage()]
        assert len(retry_lines) == 1
        assert len(limit_lines) == 1
        assert all(r.levelno < logging.ERROR for r in retry_lines)
