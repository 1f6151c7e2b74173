"""Centralized configuration for the moltycash CLI.

Loads all configuration from environment variables (and a local .env file)
once per invocation. The resulting Settings object is passed explicitly to
every command instead of being read from the environment again.
"""

from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from moltycash.errors import ConfigError

DEFAULT_RESOURCE_SERVER_URL = "https://api.molty.cash"


class Settings(BaseSettings):
    """Configuration for one CLI invocation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Wallets
    evm_private_key: str = Field(default="", description="Base/EVM private key (0x-prefixed hex)")
    svm_private_key: str = Field(default="", description="Solana private key (base58)")

    # molty.cash API
    molty_identity_token: str = Field(default="", description="Identity token for gig commands")
    resource_server_url: str = Field(
        default=DEFAULT_RESOURCE_SERVER_URL, description="Base URL of the molty.cash API"
    )
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="WARNING")
    log_format: Literal["json", "text"] = Field(default="text")

    @field_validator("evm_private_key", "svm_private_key", "molty_identity_token")
    @classmethod
    def strip_secret(cls, v: str) -> str:
        return v.strip()

    @field_validator("resource_server_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        return v or DEFAULT_RESOURCE_SERVER_URL

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @property
    def has_evm_key(self) -> bool:
        return bool(self.evm_private_key)

    @property
    def has_svm_key(self) -> bool:
        return bool(self.svm_private_key)

    @property
    def identity_token(self) -> Optional[str]:
        return self.molty_identity_token or None

    @property
    def a2a_url(self) -> str:
        return f"{self.resource_server_url}/a2a"


def load_settings(**overrides) -> Settings:
    """Load settings from the environment and .env file.

    Args:
        **overrides: Explicit values that take precedence over the environment.

    Returns:
        A populated Settings instance.

    Raises:
        ConfigError: If a variable has an invalid value.
    """
    load_dotenv()
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "\n".join(
            f"   {'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration\n{problems}") from e


def validate_settings_for_command(settings: Settings, command: Literal["send", "gig"]) -> None:
    """Validate that required configuration is present for a command group.

    Args:
        settings: The loaded settings.
        command: The command group about to run.

    Raises:
        ConfigError: If required configuration is missing.
    """
    if command == "gig" and not settings.identity_token:
        raise ConfigError(
            "Missing MOLTY_IDENTITY_TOKEN environment variable\n"
            "   All gig commands require an identity token.\n"
            "   Get yours at: https://molty.cash (Profile > Identity Token)"
        )
