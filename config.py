"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Token settings carry the raw-secret format (prefix + random byte count) and
the issuance limits. ``api_token_bytes`` is floored at 32 so a raw secret
always carries at least 256 bits of entropy.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "api-tokens"
    api_tokens_collection: str = "api-tokens"


class TokenSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Raw secrets look like "apt_<urlsafe base64>"; authenticate() rejects
    # anything without the prefix before touching the store.
    api_token_prefix: str = Field(default="apt_", min_length=1, max_length=7)
    api_token_bytes: int = Field(default=32, ge=32)

    # Maximum active (non-revoked, unexpired) tokens per principal; 0 disables
    api_token_max_active: int = Field(default=20, ge=0)
    api_token_name_max_length: int = Field(default=100, ge=1)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "api-tokens"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    tokens: Optional[TokenSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.tokens is None:
            self.tokens = TokenSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
