"""Tests for the BridgeRelayer composition root."""

from __future__ import annotations

import asyncio

import pytest

from bridge_relayer.chain.service import ChainService
from bridge_relayer.config.settings import MonitorConfig
from bridge_relayer.engine.client import PROCESS_QUEUE_JOB, BridgeRelayer
from bridge_relayer.models.transaction import TransactionStatus
from bridge_relayer.retry.engine import RetryEngine
from fakes import (
    FakeAttestationClient,
    FakeEthereumClient,
    FakeStacksClient,
    FakeSubmitter,
    no_sleep,
)


def _relayer(app_config, clock, *, attestation=None) -> BridgeRelayer:
    chain = ChainService(
        app_config,
        attestation=attestation or FakeAttestationClient(),
        ethereum=FakeEthereumClient(),
        stacks=FakeStacksClient(),
    )
    return BridgeRelayer(
        app_config,
        chain=chain,
        submitter=FakeSubmitter(),
        retry=RetryEngine(sleep=no_sleep),
        clock=clock,
    )


class TestLifecycle:
    async def test_accessors_require_initialize(self, app_config, clock):
        relayer = _relayer(app_config, clock)
        assert not relayer.is_initialized
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = relayer.queue
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = relayer.processor

    async def test_initialize_and_close(self, app_config, clock):
        relayer = _relayer(app_config, clock)
        await relayer.initialize()
        assert relayer.is_initialized
        assert relayer.queue.is_loaded
        assert relayer.task_manager.is_running
        assert relayer.notifications.is_running
        assert relayer.metrics is not None

        await relayer.close()
        assert not relayer.is_initialized
        await relayer.close()

    async def test_double_initialize(self, app_config, clock):
        relayer = _relayer(app_config, clock)
        await relayer.initialize()
        try:
            with pytest.raises(RuntimeError, match="already initialized"):
                await relayer.initialize()
        finally:
            await relayer.close()

    async def test_monitor_disabled_registers_no_job(self, app_config, clock):
        relayer = _relayer(app_config, clock)
        await relayer.initialize()
        try:
            assert relayer.task_manager.jobs == {}
        finally:
            await relayer.close()

    async def test_metrics_disabled(self, app_config, clock):
        app_config.metrics.enabled = False
        relayer = _relayer(app_config, clock)
        await relayer.initialize()
        try:
            assert relayer.metrics is None
        finally:
            await relayer.close()


class TestMonitoring:
    async def test_scheduler_drives_queue(self, app_config, clock, make_tx):
        app_config.monitor = MonitorConfig(
            enabled=True, poll_interval=0.01, max_retries=3, shutdown_timeout=1.0
        )
        relayer = _relayer(app_config, clock, attestation=FakeAttestationClient("0xsig"))
        await relayer.initialize()
        try:
            assert PROCESS_QUEUE_JOB in relayer.task_manager.jobs
            await relayer.queue.put(make_tx())
            status = TransactionStatus.PENDING
            for _ in range(200):
                status = relayer.queue.get("tx-1").status
                if status is TransactionStatus.COMPLETE:
                    break
                await asyncio.sleep(0.01)
        finally:
            await relayer.close()
        assert status is TransactionStatus.COMPLETE

    async def test_state_survives_restart(self, app_config, clock, make_tx):
        relayer = _relayer(app_config, clock)
        await relayer.initialize()
        await relayer.queue.put(make_tx())
        await relayer.processor.process_queue()
        await relayer.close()

        restarted = _relayer(app_config, clock)
        await restarted.initialize()
        try:
            tx = restarted.queue.get("tx-1")
            assert tx is not None
            assert tx.status is TransactionStatus.ATTESTING
        finally:
            await restarted.close()
