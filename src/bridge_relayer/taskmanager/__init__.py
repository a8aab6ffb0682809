"""Task manager — periodic background jobs.

Provides ``TaskManager`` for the relayer's scheduler tick, which drives
every non-terminal transaction one step forward per interval.
"""

from __future__ import annotations

from bridge_relayer.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
