"""Tests for BridgeTransaction and the status lifecycle."""

from __future__ import annotations

import pytest

from bridge_relayer.models.transaction import (
    STATUS_ORDER,
    AttestationData,
    BridgeTransaction,
    TransactionStatus,
    TransactionType,
)

PENDING = TransactionStatus.PENDING
CONFIRMING = TransactionStatus.CONFIRMING
ATTESTING = TransactionStatus.ATTESTING
MINTING = TransactionStatus.MINTING
COMPLETE = TransactionStatus.COMPLETE
FAILED = TransactionStatus.FAILED


class TestTransactionStatus:
    def test_terminal(self):
        assert COMPLETE.is_terminal
        assert FAILED.is_terminal
        assert not any(s.is_terminal for s in STATUS_ORDER[:-1])

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (PENDING, CONFIRMING),
            (PENDING, ATTESTING),
            (CONFIRMING, ATTESTING),
            (ATTESTING, MINTING),
            (MINTING, COMPLETE),
            (ATTESTING, COMPLETE),
            (ATTESTING, ATTESTING),
            (MINTING, FAILED),
            (PENDING, FAILED),
        ],
    )
    def test_forward_allowed(self, current, target):
        assert current.can_advance_to(target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (MINTING, ATTESTING),
            (ATTESTING, PENDING),
            (COMPLETE, MINTING),
            (COMPLETE, FAILED),
            (FAILED, PENDING),
            (FAILED, COMPLETE),
        ],
    )
    def test_regression_rejected(self, current, target):
        assert not current.can_advance_to(target)


class TestBridgeTransactionJson:
    def _payload(self) -> dict:
        return {
            "id": "tx-1",
            "type": "deposit",
            "status": "attesting",
            "currentStep": "attestation",
            "sourceChain": "ethereum",
            "destinationChain": "stacks",
            "amount": "123456789012345678901234567890",
            "sourceTxHash": "0xsrc",
            "messageHash": "0xmsg",
            "ethereumAddress": "0xAbC",
            "stacksAddress": "ST1",
            "retryCount": 1,
            "error": "not yet",
            "createdAt": 1000,
            "updatedAt": 2000,
            "swapDetails": {"pool": "p1"},
        }

    def test_from_dict(self):
        tx = BridgeTransaction.from_dict(self._payload())
        assert tx.type is TransactionType.DEPOSIT
        assert tx.status is ATTESTING
        assert tx.amount == "123456789012345678901234567890"
        assert tx.amount_units == 123456789012345678901234567890
        assert tx.retry_count == 1
        assert tx.extra == {"swapDetails": {"pool": "p1"}}

    def test_round_trip_keeps_unknown_keys(self):
        payload = self._payload()
        assert BridgeTransaction.from_dict(payload).to_dict() == payload

    def test_optional_keys_omitted(self):
        tx = BridgeTransaction(
            id="tx-2", type=TransactionType.WITHDRAWAL, amount="1", source_tx_hash="0x1"
        )
        data = tx.to_dict()
        assert "attestation" not in data
        assert "completedAt" not in data
        assert data["status"] == "pending"
        assert data["type"] == "withdrawal"

    def test_missing_required_key(self):
        with pytest.raises(KeyError):
            BridgeTransaction.from_dict({"id": "x", "type": "deposit"})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="bogus"):
            BridgeTransaction.from_dict({"id": "x", "type": "bogus", "sourceTxHash": "0x"})


class TestBridgeTransactionHelpers:
    def test_involves_hex_case_insensitive(self, make_tx):
        tx = make_tx(ethereum_address="0xAbCdEf")
        assert tx.involves("0xabcdef")
        assert tx.involves("0xABCDEF")

    def test_involves_exact_for_non_hex(self, make_tx):
        tx = make_tx(stacks_address="ST1ABC")
        assert tx.involves("ST1ABC")
        assert not tx.involves("st1abc")
        assert not tx.involves("")

    def test_with_changes_is_a_copy(self, make_tx):
        tx = make_tx()
        changed = tx.with_changes(status=MINTING)
        assert changed.status is MINTING
        assert tx.status is PENDING


class TestAttestationData:
    def test_to_dict(self):
        data = AttestationData(attestation="0xsig", message_hash="0xmsg", fetched_at=5)
        assert data.to_dict() == {"attestation": "0xsig", "messageHash": "0xmsg", "fetchedAt": 5}
