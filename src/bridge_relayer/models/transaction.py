"""Bridge transaction data model.

``BridgeTransaction`` is the unit of work driven by the relayer.  It is
persisted with the camelCase keys the ingestion API speaks, and keeps
any keys it does not model in ``extra`` so a load/save cycle never
drops data.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransactionType(enum.StrEnum):
    """Kind of bridge operation."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SWAP = "swap"


class TransactionStatus(enum.StrEnum):
    """Transaction lifecycle status.

    Lifecycle: PENDING → CONFIRMING → ATTESTING → MINTING → COMPLETE,
    with FAILED reachable from any non-terminal status.
    """

    PENDING = "pending"
    CONFIRMING = "confirming"
    ATTESTING = "attesting"
    MINTING = "minting"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is possible."""
        return self in (TransactionStatus.COMPLETE, TransactionStatus.FAILED)

    def can_advance_to(self, target: TransactionStatus) -> bool:
        """Check whether moving from this status to *target* is forward-only.

        Staying in place is allowed.  FAILED is reachable from any
        non-terminal status and is sticky.
        """
        if self.is_terminal:
            return target is self
        if target is TransactionStatus.FAILED:
            return True
        return STATUS_ORDER.index(target) >= STATUS_ORDER.index(self)


# Canonical forward order (FAILED sits outside it).
STATUS_ORDER: tuple[TransactionStatus, ...] = (
    TransactionStatus.PENDING,
    TransactionStatus.CONFIRMING,
    TransactionStatus.ATTESTING,
    TransactionStatus.MINTING,
    TransactionStatus.COMPLETE,
)


class BridgeStep(enum.StrEnum):
    """Human-readable phase label reported to users."""

    APPROVAL = "approval"
    DEPOSIT = "deposit"
    BURN = "burn"
    ATTESTATION = "attestation"
    MINT = "mint"
    WITHDRAWAL = "withdrawal"


# ---------------------------------------------------------------------------
# BridgeTransaction
# ---------------------------------------------------------------------------

# Python attribute name → persisted JSON key
_FIELD_KEYS: dict[str, str] = {
    "id": "id",
    "type": "type",
    "status": "status",
    "current_step": "currentStep",
    "source_chain": "sourceChain",
    "destination_chain": "destinationChain",
    "amount": "amount",
    "source_tx_hash": "sourceTxHash",
    "destination_tx_hash": "destinationTxHash",
    "message_hash": "messageHash",
    "attestation": "attestation",
    "attestation_fetched_at": "attestationFetchedAt",
    "ethereum_address": "ethereumAddress",
    "stacks_address": "stacksAddress",
    "retry_count": "retryCount",
    "error": "error",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "completed_at": "completedAt",
}

# Fields the JSON form omits when unset, matching the optional keys of the API.
_OPTIONAL_KEYS = frozenset(
    {
        "destinationTxHash",
        "messageHash",
        "attestation",
        "attestationFetchedAt",
        "ethereumAddress",
        "error",
        "completedAt",
    }
)


@dataclass(frozen=True)
class BridgeTransaction:
    """A deposit, withdrawal or swap tracked by the relayer.

    Timestamps are integer milliseconds since the epoch.  ``amount`` is a
    decimal string of integer base units and is never converted to float.

    Attributes:
        id: Caller-assigned unique identifier (idempotency key).
        type: Kind of operation.
        status: Lifecycle status; forward-only, FAILED is sticky.
        current_step: Phase label, redundant with ``status``.
        source_chain: Source chain identifier (e.g. ``"ethereum"``).
        destination_chain: Destination chain identifier.
        amount: Integer base units as a decimal string.
        source_tx_hash: Source-chain transaction hash.
        destination_tx_hash: Destination-chain transaction hash once submitted.
        message_hash: Cross-chain message identifier, when the proof needs one.
        attestation: Proof payload; written once.
        attestation_fetched_at: When the proof was captured.
        ethereum_address: EVM-side party (hex).
        stacks_address: UTXO-account-side party.
        retry_count: Tick-level failures so far.
        error: Latest error message.
        created_at: Creation time; the timeout anchor.
        updated_at: Last mutation time.
        completed_at: Completion time.
        extra: Unmodelled keys carried through persistence untouched.
    """

    id: str
    type: TransactionType
    amount: str
    source_tx_hash: str
    status: TransactionStatus = TransactionStatus.PENDING
    current_step: str = BridgeStep.DEPOSIT.value
    source_chain: str = "ethereum"
    destination_chain: str = "stacks"
    destination_tx_hash: str = ""
    message_hash: str = ""
    attestation: str = ""
    attestation_fetched_at: int | None = None
    ethereum_address: str = ""
    stacks_address: str = ""
    retry_count: int = 0
    error: str = ""
    created_at: int = 0
    updated_at: int = 0
    completed_at: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        """Whether the transaction is complete or failed."""
        return self.status.is_terminal

    @property
    def amount_units(self) -> int:
        """``amount`` as an arbitrary-precision integer."""
        return int(self.amount)

    def involves(self, address: str) -> bool:
        """Check whether *address* is either party of this transaction.

        Hex (``0x``) addresses compare case-insensitively.
        """
        if not address:
            return False
        for candidate in (self.ethereum_address, self.stacks_address):
            if not candidate:
                continue
            if candidate == address:
                return True
            if address.lower().startswith("0x") and candidate.lower() == address.lower():
                return True
        return False

    def with_changes(self, **changes: Any) -> BridgeTransaction:
        """Return a copy with *changes* applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BridgeTransaction:
        """Create a BridgeTransaction from its JSON form.

        Raises:
            KeyError: If ``id``, ``type`` or ``sourceTxHash`` is missing.
            ValueError: If ``type`` or ``status`` is not a known value.
        """
        known = set(_FIELD_KEYS.values())
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(
            id=str(data["id"]),
            type=TransactionType(data["type"]),
            status=TransactionStatus(data.get("status", TransactionStatus.PENDING)),
            current_step=data.get("currentStep", BridgeStep.DEPOSIT.value),
            source_chain=data.get("sourceChain", "ethereum"),
            destination_chain=data.get("destinationChain", "stacks"),
            amount=str(data.get("amount", "0")),
            source_tx_hash=data["sourceTxHash"],
            destination_tx_hash=data.get("destinationTxHash") or "",
            message_hash=data.get("messageHash") or "",
            attestation=data.get("attestation") or "",
            attestation_fetched_at=data.get("attestationFetchedAt"),
            ethereum_address=data.get("ethereumAddress") or "",
            stacks_address=data.get("stacksAddress") or "",
            retry_count=int(data.get("retryCount", 0)),
            error=data.get("error") or "",
            created_at=int(data.get("createdAt", 0)),
            updated_at=int(data.get("updatedAt", 0)),
            completed_at=data.get("completedAt"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted / API JSON form."""
        out: dict[str, Any] = {}
        for attr, key in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if key in _OPTIONAL_KEYS and value in ("", None):
                continue
            if isinstance(value, enum.Enum):
                value = value.value
            out[key] = value
        out.update(self.extra)
        return out


# ---------------------------------------------------------------------------
# AttestationData
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttestationData:
    """A proof that a source-chain event happened.

    Attributes:
        attestation: Proof payload (signature hex or an observed-state marker).
        message_hash: Identifier the proof is bound to.
        fetched_at: Capture time in milliseconds.
    """

    attestation: str
    message_hash: str
    fetched_at: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys."""
        return {
            "attestation": self.attestation,
            "messageHash": self.message_hash,
            "fetchedAt": self.fetched_at,
        }
