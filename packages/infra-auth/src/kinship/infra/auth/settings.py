"""Authentication configuration settings.

Loaded from environment variables with AUTH_ prefix, except ``ENVIRONMENT``
which is shared with logging and read without prefix.

Environment Variables:
    AUTH_TOKEN_SECRET: HS256 signing secret for session tokens
    AUTH_TOKEN_TTL_SECONDS: Session lifetime (default 24 hours)
    AUTH_REMEMBER_TTL_SECONDS: Session lifetime with "remember me" (default 30 days)
    AUTH_COOKIE_NAME / AUTH_QUERY_PARAM: Alternate credential locations
    AUTH_COOKIE_SECURE: Force the Secure cookie flag (always on in production)
    AUTH_BYPASS_ENABLED: Accept the bypass credential (never in production)
    AUTH_BYPASS_TOKEN: The bypass credential literal
    AUTH_CORRELATION_BACKEND: ``memory`` or ``redis``
    AUTH_CORRELATION_TTL_SECONDS / AUTH_CORRELATION_SWEEP_SECONDS
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_SECRET = "kinship-development-secret-change-me-0000"
DEFAULT_BYPASS_TOKEN = "kinship-operator-bypass"


class AuthSettings(BaseSettings):
    """Authentication configuration loaded from environment variables.

    Example:
        >>> settings = AuthSettings()
        >>> settings.token_algorithm
        'HS256'
        >>> settings.bypass_active
        False
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "environment"),
        description="Deployment environment name",
    )

    token_secret: str = Field(
        default=DEFAULT_TOKEN_SECRET,
        min_length=32,
        repr=False,
        description="HS256 signing secret shared by every process",
    )
    token_algorithm: Literal["HS256"] = Field(
        default="HS256",
        description="Signing algorithm; the only accepted algorithm on verify",
    )
    token_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=60,
        description="Session token lifetime",
    )
    remember_ttl_seconds: int = Field(
        default=30 * 24 * 60 * 60,
        ge=60,
        description="Session token lifetime when the user asks to be remembered",
    )

    cookie_name: str = Field(default="token", description="Session cookie name")
    query_param: str = Field(default="token", description="Query parameter carrying a token")
    cookie_secure: bool = Field(default=False, description="Set the Secure cookie flag")

    bypass_enabled: bool = Field(
        default=False,
        description="Accept the operational bypass credential",
    )
    bypass_token: str = Field(
        default=DEFAULT_BYPASS_TOKEN,
        min_length=16,
        repr=False,
        description="Bypass credential literal",
    )

    correlation_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Storage for external sign-in correlation entries",
    )
    correlation_ttl_seconds: int = Field(
        default=600,
        ge=30,
        le=3600,
        description="Lifetime of a correlation entry",
    )
    correlation_sweep_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Interval between sweeps of the in-memory correlation store",
    )

    @model_validator(mode="after")
    def _require_real_secret_in_production(self) -> AuthSettings:
        if self.is_production and self.token_secret == DEFAULT_TOKEN_SECRET:
            msg = "AUTH_TOKEN_SECRET must be set in production"
            raise ValueError(msg)
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def bypass_active(self) -> bool:
        """Whether the bypass credential is accepted (requested and not production)."""
        return self.bypass_enabled and not self.is_production

    @property
    def secure_cookies(self) -> bool:
        return self.cookie_secure or self.is_production


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """Get singleton AuthSettings instance.

    Cached for performance - settings are loaded once per application lifecycle.
    Clear cache with ``get_auth_settings.cache_clear()`` for testing.

    Returns:
        AuthSettings instance with configuration from environment.
    """
    return AuthSettings()
