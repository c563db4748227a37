"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from attendify.models.event import NetworkIdentifier
from attendify.services.ledger.gateway import NetworkConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./attendify.db", alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # XRP Ledger networks (a network is enabled when both URL and vault seed are set)
    xrpl_mainnet_url: str = Field(default="", alias="XRPL_MAINNET_URL")
    xrpl_mainnet_vault_seed: str = Field(default="", alias="XRPL_MAINNET_VAULT_SEED")
    xrpl_testnet_url: str = Field(
        default="wss://s.altnet.rippletest.net:51233", alias="XRPL_TESTNET_URL"
    )
    xrpl_testnet_vault_seed: str = Field(default="", alias="XRPL_TESTNET_VAULT_SEED")
    xrpl_devnet_url: str = Field(default="wss://s.devnet.rippletest.net:51233", alias="XRPL_DEVNET_URL")
    xrpl_devnet_vault_seed: str = Field(default="", alias="XRPL_DEVNET_VAULT_SEED")
    xrpl_amm_devnet_url: str = Field(default="", alias="XRPL_AMM_DEVNET_URL")
    xrpl_amm_devnet_vault_seed: str = Field(default="", alias="XRPL_AMM_DEVNET_VAULT_SEED")

    # Minting limits
    max_tickets: int = Field(default=250, ge=1, le=250, alias="MAX_TICKETS")
    default_user_slots: int = Field(default=200, ge=0, alias="DEFAULT_USER_SLOTS")

    # IPFS Upload (Pinata)
    pinata_jwt: str = Field(default="", alias="PINATA_JWT")
    pinata_timeout_seconds: float = Field(default=30.0, gt=0, alias="PINATA_TIMEOUT_SECONDS")

    # Sweeper Worker
    sweeper_interval_seconds: int = Field(default=600, alias="SWEEPER_INTERVAL_SECONDS")
    sweeper_auto_refund: bool = Field(default=False, alias="SWEEPER_AUTO_REFUND")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def network_configs(self) -> dict[NetworkIdentifier, NetworkConfig]:
        """Build the per-network ledger configuration table.

        Returns:
            Mapping of network identifier to its endpoint and vault seed,
            containing only networks with both values configured
        """
        candidates = [
            (NetworkIdentifier.MAINNET, self.xrpl_mainnet_url, self.xrpl_mainnet_vault_seed),
            (NetworkIdentifier.TESTNET, self.xrpl_testnet_url, self.xrpl_testnet_vault_seed),
            (NetworkIdentifier.DEVNET, self.xrpl_devnet_url, self.xrpl_devnet_vault_seed),
            (
                NetworkIdentifier.AMM_DEVNET,
                self.xrpl_amm_devnet_url,
                self.xrpl_amm_devnet_vault_seed,
            ),
        ]
        return {
            network_id: NetworkConfig(network_id=network_id, url=url, vault_seed=seed)
            for network_id, url, seed in candidates
            if url and seed
        }

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with a list of missing variables. Validation is skipped in
        test environments.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if not self.network_configs():
            missing.append(
                "XRPL_<NETWORK>_URL and XRPL_<NETWORK>_VAULT_SEED: configure at least one network"
            )

        if not self.pinata_jwt:
            missing.append("PINATA_JWT: Get your JWT token from https://pinata.cloud")

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    if settings.app_env == "production":
        renderer_chain = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer_chain,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
