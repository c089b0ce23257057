"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from enum import StrEnum
from functools import lru_cache

from loguru import logger
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from simplepay.config.constants import (
    DEFAULT_CONFIRMATIONS,
    DEFAULT_SYNC_INTERVAL_MS,
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_TIMEOUT,
)
from simplepay.utils.exceptions import ConfigurationError
from simplepay.utils.security import mask_address, mask_sensitive
from simplepay.utils.validation import validate_monero_address, validate_view_key


class Network(StrEnum):
    """Monero network the wallet and node belong to."""

    MAINNET = "mainnet"
    STAGENET = "stagenet"


class SimplePaySettings(BaseSettings):
    """Application settings loaded from environment variables."""

    # View-only wallet
    primary_address: str
    secret_view_key: str
    network: Network = Network.MAINNET

    # Payment policy
    default_confirmations: int = Field(
        default=DEFAULT_CONFIRMATIONS,
        ge=0,
        description="Confirmations required when a request does not specify any",
    )
    payment_uri_scheme: str = "monero"

    # Remote node (monerod)
    monerod_uri: str
    monerod_username: str | None = None
    monerod_password: str | None = None

    # Wallet RPC (monero-wallet-rpc hosting the view-only wallet)
    wallet_rpc_uri: str = "http://127.0.0.1:18083"
    wallet_rpc_username: str | None = None
    wallet_rpc_password: str | None = None
    wallet_filename: str = "simplepay_view_only"
    wallet_password: str = ""

    # Connection & sync
    health_check_timeout: float = Field(
        default=HEALTH_CHECK_TIMEOUT, gt=0, description="Seconds per node health check"
    )
    health_check_interval: float = Field(
        default=HEALTH_CHECK_INTERVAL, gt=0, description="Seconds between node health checks"
    )
    sync_interval_ms: int = Field(
        default=DEFAULT_SYNC_INTERVAL_MS, ge=100, description="Wallet sync period in milliseconds"
    )

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("secret_view_key")
    @classmethod
    def validate_secret_view_key(cls, v: str) -> str:
        """Validate secret view key format."""
        if not validate_view_key(v):
            raise ValueError(
                "Invalid secret view key. Expected 64 hexadecimal characters."
            )
        return v.lower()

    @field_validator("monerod_uri", "wallet_rpc_uri")
    @classmethod
    def validate_rpc_uri(cls, v: str) -> str:
        """Validate RPC endpoint URI."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"RPC URI must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_primary_address(self) -> "SimplePaySettings":
        """Validate primary address format against the configured network."""
        if not validate_monero_address(self.primary_address, network=self.network.value):
            raise ValueError(
                f"Invalid primary address {mask_address(self.primary_address)} "
                f"for network {self.network.value}. "
                "Expected a 95 character standard address."
            )
        return self

    @model_validator(mode="after")
    def validate_node_credentials(self) -> "SimplePaySettings":
        """Node username and password must be set together."""
        if bool(self.monerod_username) != bool(self.monerod_password):
            raise ValueError(
                "MONEROD_USERNAME and MONEROD_PASSWORD must be set together."
            )
        return self

    def summary(self) -> dict[str, str | int | float]:
        """Settings safe for logging."""
        return {
            "network": self.network.value,
            "primary_address": mask_address(self.primary_address),
            "secret_view_key": mask_sensitive(self.secret_view_key),
            "monerod_uri": self.monerod_uri,
            "wallet_rpc_uri": self.wallet_rpc_uri,
            "default_confirmations": self.default_confirmations,
            "health_check_timeout": self.health_check_timeout,
        }


def load_settings(**overrides) -> SimplePaySettings:
    """
    Build settings from environment, .env file and explicit overrides.

    Raises:
        ConfigurationError: If settings are missing or malformed
    """
    try:
        return SimplePaySettings(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid SimplePay configuration: {e}")
        raise ConfigurationError(str(e)) from e


@lru_cache(maxsize=1)
def get_settings() -> SimplePaySettings:
    """Cached settings instance for the running process."""
    return load_settings()
