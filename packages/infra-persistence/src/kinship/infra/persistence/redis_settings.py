"""Redis connection settings.

Redis is optional: it backs the shared correlation store when
``AUTH_CORRELATION_BACKEND=redis``. Nothing connects unless a component
asks the factory for a client.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Configuration for the Redis connection.

    Environment Variables:
        REDIS_URL: Full connection URL (``redis://[:password@]host:port/db``).
            Takes precedence over the individual variables.
        REDIS_HOST / REDIS_PORT / REDIS_DB / REDIS_PASSWORD: Connection parts.
        REDIS_POOL_SIZE: Maximum connections in the pool (default: 10).
        REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5.0).
        REDIS_KEY_PREFIX: Namespace for every key written by kinship.

    Example:
        >>> RedisSettings(host="cache", port=6380).get_url()
        'redis://cache:6380/0'
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str | None = Field(default=None, repr=False, description="Full Redis URL")
    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    db: int = Field(default=0, ge=0, le=15, description="Redis database number (0-15)")
    password: str | None = Field(default=None, repr=False, description="Redis password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Maximum connections in pool")
    socket_timeout: float = Field(default=5.0, ge=0.1, description="Socket timeout in seconds")
    key_prefix: str = Field(default="kinship:", description="Prefix for every key")

    @classmethod
    def from_url(cls, url: str) -> RedisSettings:
        """Create settings from a Redis URL.

        Raises:
            ValueError: If the scheme is not redis/rediss or the db path is not a number.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("redis", "rediss"):
            msg = f"Invalid Redis URL scheme: {parsed.scheme}"
            raise ValueError(msg)

        db = 0
        if parsed.path and parsed.path != "/":
            try:
                db = int(parsed.path.lstrip("/"))
            except ValueError:
                msg = f"Invalid database number in URL path: {parsed.path}"
                raise ValueError(msg) from None

        return cls(
            url=url,
            host=parsed.hostname or "localhost",
            port=parsed.port or 6379,
            db=db,
            password=parsed.password,
        )

    def get_url(self) -> str:
        """Connection URL: ``REDIS_URL`` verbatim, else built from the parts."""
        if self.url:
            return self.url
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"
