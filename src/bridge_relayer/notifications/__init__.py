"""Notifications — transaction events fanned out to subscribers."""

from __future__ import annotations

from bridge_relayer.notifications.events import RawEvent, TransactionEvent
from bridge_relayer.notifications.service import NotificationService

__all__ = [
    "NotificationService",
    "RawEvent",
    "TransactionEvent",
]
