"""Bridge configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
CUSTODYBRIDGE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from custodybridge.core.hasher import DEFAULT_DOMAIN_NAME, DEFAULT_DOMAIN_VERSION
from custodybridge.models.transfer import ZERO_ADDRESS


class BridgeConfig(BaseSettings):
    """Bridge configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CUSTODYBRIDGE_ENVIRONMENT=production
        export CUSTODYBRIDGE_CHAIN_ID=1
        export CUSTODYBRIDGE_BRIDGE_ADDRESS=0x...
        export CUSTODYBRIDGE_REPLAY_GUARD_PATH=/data/replay_guard.db
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CUSTODYBRIDGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # EIP-712 domain
    domain_name: str = DEFAULT_DOMAIN_NAME
    domain_version: str = DEFAULT_DOMAIN_VERSION
    chain_id: int = 1
    bridge_address: str = ZERO_ADDRESS

    # Storage
    replay_guard_path: Path = Path(".custodybridge/replay_guard.db")

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton: import as `from custodybridge.config import config`
config = BridgeConfig()
