"""Event types for the notification port.

- ``RawEvent`` — envelope with type string + JSON content
- ``TransactionEvent`` — a bridge transaction changed status
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawEvent:
    """Generic event envelope sent to subscribers."""

    type: str
    content: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict."""
        return asdict(self)


@dataclass(frozen=True)
class TransactionEvent(RawEvent):
    """Event emitted when a bridge transaction changes status."""

    type: str = "transaction"
    transaction_id: str = ""
    transaction_type: str = ""
    previous_status: str = ""
    status: str = ""
    current_step: str = ""
    error: str = ""
