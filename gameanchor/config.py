"""Application configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
GAMEANCHOR_* environment variables. Secrets (the pinning JWT, the signer
keypair path) are optional so the process can start without them; their
absence is reported once by ``gameanchor.core.startup_check`` and surfaces
as a call-time failure of the stage that needs them.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Solana devnet deployment of the game metadata program.
DEFAULT_PROGRAM_ID = "GvdTzJj5RBtNerqwr2XZXu2jx77CjJSxVUtg7Mg3fqGe"
DEFAULT_METADATA_SEED = "game_metadata"


class AppConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export GAMEANCHOR_PINATA_JWT=eyJhbGciOi...
        export GAMEANCHOR_SOLANA_RPC_URL=https://api.mainnet-beta.solana.com
        export GAMEANCHOR_SIGNER_KEYPAIR_PATH=~/.config/solana/id.json

    Or via .env file::

        GAMEANCHOR_GATEWAY_BASE=https://my-gateway.mypinata.cloud/ipfs
        GAMEANCHOR_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GAMEANCHOR_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Pinning service
    pinata_jwt: str = ""
    pinning_endpoint: str = "https://api.pinata.cloud/pinning/pinFileToIPFS"
    gateway_base: str = "https://ipfs.io/ipfs"
    store_timeout_seconds: float = 120.0
    store_max_attempts: int = 3
    store_backoff_base_seconds: float = 0.5

    # Ledger
    solana_rpc_url: str = "https://api.devnet.solana.com"
    program_id: str = DEFAULT_PROGRAM_ID
    metadata_seed: str = DEFAULT_METADATA_SEED
    commitment: str = "confirmed"
    chain_timeout_seconds: float = 30.0
    confirm_poll_interval_seconds: float = 0.5
    signer_keypair_path: Path | None = None

    # Pipeline
    request_deadline_seconds: float = 300.0
    engine_label: str = "Godot"
    ingest_workers: int = 8

    # HTTP entry point
    host: str = "127.0.0.1"
    port: int = 3000
    cors_allow_origins: str = "*"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def store_configured(self) -> bool:
        """Whether a bearer credential for the pinning service is present."""
        return bool(self.pinata_jwt.strip())

    @property
    def signer_configured(self) -> bool:
        """Whether a signer keypair file has been configured."""
        return self.signer_keypair_path is not None

    @property
    def cors_origins(self) -> list[str]:
        """Parsed CORS allowlist (comma-separated in the environment)."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


# Module-level singleton; import as `from gameanchor.config import config`
config = AppConfig()
