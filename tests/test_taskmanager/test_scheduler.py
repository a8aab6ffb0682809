"""Tests for the TaskManager scheduler."""

from __future__ import annotations

import asyncio

from bridge_relayer.metrics.collector import RelayerMetrics
from bridge_relayer.taskmanager.manager import CronJob, TaskManager


class TestCronJob:
    def test_defaults(self) -> None:
        async def _handler() -> None:
            pass

        job = CronJob(handler=_handler, period=5.0)
        assert job.name == ""
        assert job.run_immediately is False


class TestTaskManager:
    async def test_start_stop(self) -> None:
        tm = TaskManager()
        assert not tm.is_running
        await tm.start()
        assert tm.is_running
        await tm.stop()
        assert not tm.is_running

    async def test_register_names_job(self) -> None:
        async def _handler() -> None:
            pass

        tm = TaskManager()
        tm.register("process_queue", CronJob(handler=_handler, period=1.0))
        assert tm.jobs["process_queue"].name == "process_queue"

    async def test_runs_on_interval(self) -> None:
        counter = {"value": 0}

        async def _handler() -> None:
            counter["value"] += 1

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=0.02))
        await tm.start()
        await asyncio.sleep(0.15)
        await tm.stop()
        assert counter["value"] >= 2

    async def test_immediate_pass_at_start(self) -> None:
        ran = asyncio.Event()

        async def _handler() -> None:
            ran.set()

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=3600, run_immediately=True))
        await tm.start()
        await asyncio.wait_for(ran.wait(), timeout=1.0)
        await tm.stop()

    async def test_stop_wakes_sleeping_loop(self) -> None:
        async def _handler() -> None:
            pass

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=3600))
        await tm.start()
        await asyncio.wait_for(tm.stop(), timeout=1.0)

    async def test_stop_drains_in_flight_tick(self) -> None:
        started = asyncio.Event()
        finished = {"value": False}

        async def _handler() -> None:
            started.set()
            await asyncio.sleep(0.1)
            finished["value"] = True

        tm = TaskManager(shutdown_timeout=5.0)
        tm.register("tick", CronJob(handler=_handler, period=3600, run_immediately=True))
        await tm.start()
        await started.wait()
        await tm.stop()
        assert finished["value"] is True

    async def test_stop_cancels_after_timeout(self) -> None:
        started = asyncio.Event()
        cancelled = {"value": False}

        async def _handler() -> None:
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled["value"] = True
                raise

        tm = TaskManager(shutdown_timeout=0.05)
        tm.register("tick", CronJob(handler=_handler, period=3600, run_immediately=True))
        await tm.start()
        await started.wait()
        await tm.stop()
        assert cancelled["value"] is True

    async def test_no_new_tick_after_stop(self) -> None:
        counter = {"value": 0}

        async def _handler() -> None:
            counter["value"] += 1

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=0.01))
        await tm.start()
        await asyncio.sleep(0.05)
        await tm.stop()
        seen = counter["value"]
        await asyncio.sleep(0.05)
        assert counter["value"] == seen

    async def test_handler_error_does_not_kill_loop(self, caplog) -> None:
        counter = {"value": 0}

        async def _handler() -> None:
            counter["value"] += 1
            msg = "boom"
            raise RuntimeError(msg)

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=0.01, run_immediately=True))
        await tm.start()
        await asyncio.sleep(0.08)
        await tm.stop()
        assert counter["value"] >= 2
        assert "Cron job 'tick' failed" in caplog.text

    async def test_run_once(self) -> None:
        counter = {"value": 0}

        async def _handler() -> None:
            counter["value"] += 1

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=3600))
        await tm.run_once("tick")
        assert counter["value"] == 1

    async def test_run_once_waits_for_scheduled_tick(self) -> None:
        started = asyncio.Event()
        state = {"active": 0, "peak": 0, "runs": 0}

        async def _handler() -> None:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            started.set()
            await asyncio.sleep(0.05)
            state["active"] -= 1
            state["runs"] += 1

        tm = TaskManager()
        tm.register("tick", CronJob(handler=_handler, period=3600, run_immediately=True))
        await tm.start()
        await started.wait()
        await tm.run_once("tick")
        await tm.stop()
        assert state["runs"] == 2
        assert state["peak"] == 1

    async def test_tick_tracked_in_metrics(self) -> None:
        async def _handler() -> None:
            pass

        metrics = RelayerMetrics()
        tm = TaskManager(metrics=metrics)
        tm.register("tick", CronJob(handler=_handler, period=3600))
        await tm.run_once("tick")
        count = metrics.registry.get_sample_value(
            "bridge_relayer_tick_histogram_count", {"job_name": "tick"}
        )
        assert count == 1.0
