"""Application settings and configuration.

This module defines all configuration options for the Tribe Ledger client.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Tribe Ledger", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Ledger relay connection
    ledger_rpc_url: str | None = Field(default=None, alias="LEDGER_RPC_URL")
    ledger_chain_id: int = Field(default=123, alias="LEDGER_CHAIN_ID")
    ledger_shared_secret: str | None = Field(default=None, alias="LEDGER_SHARED_SECRET")
    ledger_audience: str = Field(default="ledger-relay", alias="LEDGER_JWT_AUD")
    ledger_client_id: str = Field(default="tribe-ledger", alias="LEDGER_CLIENT_ID")
    ledger_token_ttl_seconds: int = Field(default=300, alias="LEDGER_TOKEN_TTL_SECONDS")
    ledger_http_timeout_seconds: float = Field(
        default=15.0,
        alias="LEDGER_HTTP_TIMEOUT_SECONDS",
    )

    # Transaction confirmation
    receipt_poll_interval_seconds: float = Field(
        default=1.0,
        alias="LEDGER_RECEIPT_POLL_INTERVAL_SECONDS",
    )
    receipt_timeout_seconds: float = Field(
        default=120.0,
        alias="LEDGER_RECEIPT_TIMEOUT_SECONDS",
    )

    # Circuit breaker for the relay
    breaker_failure_threshold: int = Field(default=5, alias="LEDGER_BREAKER_FAILURE_THRESHOLD")
    breaker_recovery_seconds: float = Field(
        default=30.0,
        alias="LEDGER_BREAKER_RECOVERY_SECONDS",
    )

    # Contract addresses on the configured chain
    tribe_controller_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        alias="TRIBE_CONTROLLER_ADDRESS",
    )
    post_minter_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        alias="POST_MINTER_ADDRESS",
    )
    event_controller_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        alias="EVENT_CONTROLLER_ADDRESS",
    )
    profile_nft_minter_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        alias="PROFILE_NFT_MINTER_ADDRESS",
    )
    role_manager_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        alias="ROLE_MANAGER_ADDRESS",
    )

    # Explicit resource limits; the relay never estimates them
    gas_limit_create: int = Field(default=500_000, alias="GAS_LIMIT_CREATE")
    gas_limit_default: int = Field(default=300_000, alias="GAS_LIMIT_DEFAULT")

    # Enumeration bounds
    event_scan_max: int = Field(default=20, alias="EVENT_SCAN_MAX")
    posts_per_community: int = Field(default=10, alias="POSTS_PER_COMMUNITY")
    profile_token_scan_max: int = Field(default=10, alias="PROFILE_TOKEN_SCAN_MAX")

    # Session cache
    cache_ttl_seconds: float = Field(default=30.0, alias="CACHE_TTL_SECONDS")
    cache_max_sessions: int = Field(default=256, alias="CACHE_MAX_SESSIONS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def ledger_enabled(self) -> bool:
        """Return True when a relay URL is configured."""
        return bool(self.ledger_rpc_url)


settings = Settings()
