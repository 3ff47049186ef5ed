"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import LogFormat

# Chain id of the local development network
DEFAULT_CHAIN_ID = 31337


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class NetworkConfig(BaseModel):
    rpc_url: str = "http://127.0.0.1:8545"
    required_chain_id: int = DEFAULT_CHAIN_ID
    receipt_timeout_seconds: float = 120.0
    confirmations: int = 1
    account_poll_interval_seconds: float = 2.0


class RegistryConfig(BaseModel):
    artifacts_dir: str = "contracts"
    contract_name: str = "ProductManager"
    address: str = ""  # Overrides the address artifact when set


class StorageConfig(BaseModel):
    endpoint: str = "https://api.nft.storage"
    token_env: str = "NFT_STORAGE_TOKEN"  # Name of env var holding the token
    gateway_host: str = "nftstorage.link"
    timeout_seconds: float = 60.0

    @property
    def token(self) -> str:
        return os.environ.get(self.token_env, "")


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "RECDAPP_", "env_nested_delimiter": "__"}

    def validate_required(self) -> None:
        """Fail fast when the registry artifacts cannot be located.

        The ABI always comes from the artifacts dir; ``registry.address``
        only overrides the deployed address.
        """
        from .errors import ConfigError

        artifacts = Path(self.registry.artifacts_dir)
        if not artifacts.is_dir():
            raise ConfigError(
                f"Registry artifacts dir {artifacts} does not exist."
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    return Settings(**data)
