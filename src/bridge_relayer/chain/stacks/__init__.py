"""UTXO-account chain node API client."""

from bridge_relayer.chain.stacks.client import StacksClient, parse_balance
from bridge_relayer.chain.stacks.models import StacksTxInfo, StacksTxStatus

__all__ = ["StacksClient", "StacksTxInfo", "StacksTxStatus", "parse_balance"]
