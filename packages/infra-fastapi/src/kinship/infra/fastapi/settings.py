"""Application settings for the kinship FastAPI app factory.

Provides Pydantic Settings for FastAPI configuration, CORS policy,
and auto-discovery filtering.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class CORSSettings(BaseSettings):
    """CORS policy configuration.

    Environment variables use the ``CORS_`` prefix (e.g., ``CORS_ALLOW_ORIGINS``).
    Comma-separated strings are parsed into lists. The session cookie is
    only sent cross-origin with ``allow_credentials``, which in turn needs
    explicit origins.
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_methods: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_headers: Annotated[list[str], NoDecode] = Field(default=["*"])
    allow_credentials: bool = Field(default=False)
    expose_headers: Annotated[list[str], NoDecode] = Field(default=["X-Request-ID"])

    @field_validator(
        "allow_origins",
        "allow_methods",
        "allow_headers",
        "expose_headers",
        mode="before",
    )
    @classmethod
    def _parse_comma_separated(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return v
        return ["*"]

    @model_validator(mode="after")
    def _validate_credentials_with_wildcard(self) -> CORSSettings:
        if self.allow_credentials and self.allow_origins == ["*"]:
            msg = (
                "CORS allow_credentials=True cannot be used with allow_origins=['*']. "
                "Browsers will reject the response. Specify explicit origins instead."
            )
            raise ValueError(msg)
        return self


def _default_version() -> str:
    """Resolve default app version from package metadata."""
    try:
        return version("kinship")
    except PackageNotFoundError:
        return "0.0.0"


class AppSettings(BaseSettings):
    """Application factory settings.

    Environment variables use the ``APP_`` prefix (e.g., ``APP_TITLE``).
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        extra="ignore",
    )

    title: str = Field(default="Kinship")
    version: str = Field(default_factory=_default_version)
    description: str = Field(default="Family reminders with multi-tenant authorization")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str | None = Field(default="/openapi.json")
    debug: bool = Field(default=False)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    # Discovery filtering
    exclude_groups: frozenset[str] = Field(default=frozenset())
    exclude_entry_points: frozenset[str] = Field(default=frozenset())
