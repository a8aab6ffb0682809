"""EVM chain JSON-RPC client."""

from bridge_relayer.chain.ethereum.client import EthereumClient, ReceiptStatus

__all__ = ["EthereumClient", "ReceiptStatus"]
