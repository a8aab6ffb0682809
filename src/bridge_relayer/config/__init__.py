"""Configuration — pydantic-settings models for the relayer."""

from bridge_relayer.config.settings import AppConfig, DepositProof

__all__ = ["AppConfig", "DepositProof"]
