import os

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Ensure we pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.enclave_api_key:
            fallback = os.getenv("ENCLAVE_KEY")
            if fallback:
                object.__setattr__(self, "enclave_api_key", fallback)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Smart account / transaction service
    enclave_api_key: str = Field(
        default="",
        description="API key for the smart-account transaction service",
        validation_alias=AliasChoices("enclave_api_key", "ENCLAVE_API_KEY", "NEXT_PUBLIC_ENCLAVE_API_KEY"),
    )
    enclave_base_url: str = Field(
        default="https://api.enclave.money",
        description="Base URL of the smart-account transaction service",
    )
    enable_enclave: bool = Field(default=True, description="Enable the smart-account transaction service")
    request_timeout_seconds: int = Field(default=30, description="Request timeout")

    # Identity provider
    verify_url: str = Field(
        default="http://127.0.0.1:3000/api/verify",
        description="Server route that verifies the identity provider's access token",
    )

    # Transfers
    default_destination_chain_id: int = Field(
        default=10,
        description="Chain ID transfers settle on when the caller does not pick one (Optimism)",
    )
    transfer_asset_decimals: int = Field(
        default=6,
        ge=0,
        le=36,
        description="Decimals of the transferred stable asset",
    )
    transfer_asset_address: str = Field(
        default="",
        description="Override the well-known USDC address for the destination chain",
    )
    default_sign_mode: str = Field(
        default="ECDSA",
        description="Signature class expected for built transactions (ECDSA or SimpleSessionKey)",
    )
    transfer_history_size: int = Field(
        default=50,
        ge=1,
        description="Number of past transfer attempts kept in memory",
    )

    @property
    def has_enclave_key(self) -> bool:
        return bool(self.enclave_api_key)


# Global settings instance
settings = Settings()
