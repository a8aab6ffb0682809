"""Shared test fixtures for the bridge-relayer test suite."""

from __future__ import annotations

from typing import Any

import pytest

from bridge_relayer.config.settings import (
    AppConfig,
    EthereumConfig,
    MetricsConfig,
    MonitorConfig,
    QueueConfig,
    StacksConfig,
)
from bridge_relayer.models.transaction import BridgeTransaction, TransactionType
from fakes import ETH_ADDRESS, MESSAGE_HASH, SOURCE_TX_HASH, STACKS_ADDRESS, FakeClock


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config(tmp_path):
    """Provide a test AppConfig with safe defaults."""
    return AppConfig(
        queue=QueueConfig(path=str(tmp_path / "data" / "transaction-queue.json")),
        monitor=MonitorConfig(
            enabled=False,
            poll_interval=0.01,
            max_retries=3,
            transaction_timeout=3600.0,
            shutdown_timeout=1.0,
        ),
        ethereum=EthereumConfig(rpc_url=""),
        stacks=StacksConfig(relayer_address=STACKS_ADDRESS, min_gas_balance=0),
        metrics=MetricsConfig(enabled=True),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_tx(clock):
    """Factory for bridge transactions created "now" on the fake clock."""

    def _make(**overrides: Any) -> BridgeTransaction:
        fields: dict[str, Any] = {
            "id": "tx-1",
            "type": TransactionType.DEPOSIT,
            "amount": "5000000",
            "source_tx_hash": SOURCE_TX_HASH,
            "message_hash": MESSAGE_HASH,
            "ethereum_address": ETH_ADDRESS,
            "stacks_address": STACKS_ADDRESS,
            "created_at": clock.now,
            "updated_at": clock.now,
        }
        fields.update(overrides)
        return BridgeTransaction(**fields)

    return _make


@pytest.fixture
async def queue(app_config, clock):
    """A loaded, empty transaction queue on a temp file."""
    from bridge_relayer.datastore.queue import TransactionQueue

    q = TransactionQueue(app_config.queue.path, clock=clock)
    await q.load()
    return q
