"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``BRIDGE_``, nested via ``__``)
2. YAML config file named by the ``BRIDGE_CONFIG_PATH`` env var (or ``from_yaml``)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DepositProof(enum.StrEnum):
    """How a deposit is proven on the destination side."""

    MESSAGE_HASH = "message_hash"
    BALANCE = "balance"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001
    cors_origin: str = "http://localhost:3000"


class QueueConfig(BaseSettings):
    """Persistent transaction queue settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_QUEUE__",
        case_sensitive=False,
    )

    path: str = Field(
        default="./data/transaction-queue.json",
        description="JSON file holding the whole queue",
    )


class MonitorConfig(BaseSettings):
    """Transaction monitoring (scheduler + state machine) settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_MONITOR__",
        case_sensitive=False,
    )

    enabled: bool = True
    poll_interval: float = Field(default=30.0, gt=0, description="Seconds between ticks")
    max_retries: int = Field(default=3, ge=1)
    transaction_timeout: float = Field(default=3600.0, gt=0, description="Seconds")
    deposit_proof: DepositProof = DepositProof.MESSAGE_HASH
    require_source_confirmation: bool = True
    shutdown_timeout: float = 30.0


class AttestationConfig(BaseSettings):
    """Off-chain attestation service settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_ATTESTATION__",
        case_sensitive=False,
    )

    url: str = "https://iris-api-sandbox.circle.com"
    api_key: str = ""


class EthereumConfig(BaseSettings):
    """EVM chain JSON-RPC settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_ETHEREUM__",
        case_sensitive=False,
    )

    rpc_url: str = ""
    relayer_address: str = ""
    min_gas_balance: int = Field(default=0, ge=0, description="Minimum relayer balance in wei")


class StacksConfig(BaseSettings):
    """UTXO-account chain node API settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_STACKS__",
        case_sensitive=False,
    )

    api_url: str = "https://api.testnet.hiro.so"
    token_contract: str = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM.usdcx"
    relayer_address: str = ""
    min_gas_balance: int = Field(default=1_000_000, ge=0, description="Micro-units")


class SignerConfig(BaseSettings):
    """Mint/release signer service settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_SIGNER__",
        case_sensitive=False,
    )

    url: str = "http://localhost:8080"
    token: str = ""


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``BRIDGE_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    attestation: AttestationConfig = Field(default_factory=AttestationConfig)
    ethereum: EthereumConfig = Field(default_factory=EthereumConfig)
    stacks: StacksConfig = Field(default_factory=StacksConfig)
    signer: SignerConfig = Field(default_factory=SignerConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                merged = {**val, **values[key]}
                values[key] = merged
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
