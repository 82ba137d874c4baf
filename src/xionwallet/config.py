"""Application configuration using pydantic-settings.

Chain endpoints, transaction defaults and the master encryption key are all
read from environment variables (or a local .env file).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # ======================
    # Chain
    # ======================
    lcd_url: str = Field(
        default="https://api.xion-testnet-2.burnt.com",
        description="XION LCD (REST) endpoint",
    )
    chain_id: str = Field(default="xion-testnet-2", description="Chain ID embedded in signed transactions")
    bech32_prefix: str = Field(default="xion", description="Bech32 address prefix")
    denom: str = Field(default="uxion", description="Base fee/balance denomination")

    # ======================
    # Transactions
    # ======================
    default_gas_limit: int = Field(default=200000, description="Gas limit when the caller omits one")
    default_gas_price: str = Field(default="0.025uxion", description="Gas price when the caller omits one")
    gas_adjustment: float = Field(default=1.3, description="Multiplier applied to simulated gas")

    # ======================
    # Network timeouts (seconds)
    # ======================
    request_timeout: float = Field(default=15.0, description="Timeout for a single LCD request")
    broadcast_timeout: float = Field(default=60.0, description="Max wait for tx inclusion after broadcast")
    broadcast_poll_interval: float = Field(default=1.5, description="Delay between inclusion polls")
    signer_lock_timeout: float = Field(default=30.0, description="Max wait for the per-signer execute lock")
    max_connections: int = Field(default=50, description="LCD connection pool size")

    # ======================
    # Encryption
    # ======================
    master_key: Optional[str] = Field(
        default=None,
        description="Master key for private key encryption (64 hex chars or a passphrase)",
    )
    kdf_salt: str = Field(
        default="xionwallet",
        description="PBKDF2 salt used when master_key is a passphrase",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_master_key(self) -> bool:
        return bool(self.master_key)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "master_key": "***" if self.master_key else "(not set)",
            "chain": {
                "lcd_url": self.lcd_url,
                "chain_id": self.chain_id,
                "bech32_prefix": self.bech32_prefix,
                "denom": self.denom,
            },
            "transactions": {
                "default_gas_limit": self.default_gas_limit,
                "default_gas_price": self.default_gas_price,
                "gas_adjustment": self.gas_adjustment,
                "broadcast_timeout": self.broadcast_timeout,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
