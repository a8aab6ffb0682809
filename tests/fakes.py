"""Test doubles for the chain clients, the submitter and the clocks."""

from __future__ import annotations

from typing import Any

from bridge_relayer.chain.stacks.models import StacksTxInfo
from bridge_relayer.models.transaction import BridgeTransaction

START_MS = 1_700_000_000_000
MESSAGE_HASH = "0x" + "ab" * 32
SOURCE_TX_HASH = "0x" + "cd" * 32
STACKS_ADDRESS = "ST2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7"
ETH_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


class FakeClock:
    """Millisecond wall clock that only moves when told to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class _FakeClient:
    is_connected = True

    async def connect(self) -> None:
        self.is_connected = True

    async def close(self) -> None:
        self.is_connected = False


def _next(responses: list[Any], default: Any) -> Any:
    value = responses.pop(0) if responses else default
    if isinstance(value, Exception):
        raise value
    return value


class FakeAttestationClient(_FakeClient):
    """Returns queued attestations (``None`` = not ready, exceptions raised)."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[str] = []

    async def get_attestation(self, message_hash: str) -> str | None:
        self.calls.append(message_hash)
        return _next(self.responses, None)


class FakeEthereumClient(_FakeClient):
    """Receipt statuses in order; ``None`` means not mined."""

    def __init__(self, *receipts: Any, rpc_url: str = "", balance: int = 0) -> None:
        self.receipts = list(receipts)
        self.rpc_url = rpc_url
        self.balance = balance
        self.calls: list[str] = []

    @property
    def is_configured(self) -> bool:
        return bool(self.rpc_url)

    async def get_receipt_status(self, tx_hash: str) -> Any:
        self.calls.append(tx_hash)
        return _next(self.receipts, None)

    async def get_balance(self, address: str) -> int:
        return self.balance


class FakeStacksClient(_FakeClient):
    """Token balances and transaction infos in order."""

    def __init__(
        self,
        *,
        balances: list[Any] | None = None,
        transactions: list[Any] | None = None,
        gas_balance: int = 0,
    ) -> None:
        self.balances = list(balances or [])
        self.transactions = list(transactions or [])
        self.gas_balance = gas_balance
        self.balance_calls: list[tuple[str, str]] = []
        self.tx_calls: list[str] = []

    async def get_token_balance(self, address: str, token_prefix: str) -> int:
        self.balance_calls.append((address, token_prefix))
        return _next(self.balances, 0)

    async def get_gas_balance(self, address: str) -> int:
        return self.gas_balance

    async def get_transaction(self, txid: str) -> StacksTxInfo:
        self.tx_calls.append(txid)
        return _next(self.transactions, StacksTxInfo.pending(txid))


class FakeSubmitter:
    """MintSubmitter double recording every submission."""

    def __init__(self, *, txid: str = "0xdest", sufficient: bool = True) -> None:
        self.txid = txid
        self.sufficient = sufficient
        self.errors: list[Exception] = []
        self.submitted: list[BridgeTransaction] = []

    async def has_sufficient_balance(self, tx: BridgeTransaction) -> bool:
        return self.sufficient

    async def submit(self, tx: BridgeTransaction) -> str:
        self.submitted.append(tx)
        if self.errors:
            raise self.errors.pop(0)
        return self.txid


async def no_sleep(seconds: float) -> None:
    """Stand-in for ``asyncio.sleep`` in retry tests."""
