"""Runtime settings for Seekset.

Settings are read from ``SEEKSET_*`` environment variables unless supplied
explicitly. Applications usually call :func:`configure` once at startup:

    from seekset import configure

    configure(secret="change-me", token_expires_in=3600)

Tests and multi-tenant code can scope a different value to a block:

    with using_settings(Settings(secret="other")):
        page.next_token
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._logging import logger
from .exceptions import ConfigurationError

DEFAULT_PAGE_LIMIT = 5
DEFAULT_MAX_PAGE_LIMIT = 50
DEFAULT_TOKEN_EXPIRES_IN = 259_200


class Settings(BaseSettings):
    """Pagination settings.

    Attributes:
        secret: Key used to sign cursor states. Required once a token is
            minted or verified.
        token_expires_in: Token lifetime in seconds. ``None`` or a non-positive
            value disables expiration checks.
        page_default_limit: Rows per page when a page is created without a limit.
        page_max_limit: Largest accepted page limit.
    """

    secret: SecretStr | None = Field(default=None, description="Cursor signing secret")
    token_expires_in: int | None = Field(
        default=DEFAULT_TOKEN_EXPIRES_IN,
        description="Token lifetime in seconds (None disables expiration)",
    )
    page_default_limit: int = Field(
        default=DEFAULT_PAGE_LIMIT, description="Default page size when limit is not given"
    )
    page_max_limit: int = Field(
        default=DEFAULT_MAX_PAGE_LIMIT, description="Maximum allowed page size"
    )

    model_config = SettingsConfigDict(
        env_prefix="SEEKSET_",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_parse_none_str="none",
    )

    @field_validator("token_expires_in")
    @classmethod
    def disable_non_positive_expiration(cls, v: int | None) -> int | None:
        if v is None or v <= 0:
            return None
        return v

    @field_validator("page_max_limit")
    @classmethod
    def validate_max_limit(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_MAX_PAGE_LIMIT

    @field_validator("page_default_limit")
    @classmethod
    def validate_default_limit(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_PAGE_LIMIT

    @property
    def default_limit(self) -> int:
        """Effective default page size, never above ``page_max_limit``."""
        return min(self.page_default_limit, self.page_max_limit)

    def require_secret(self) -> str:
        """Return the signing secret or raise ConfigurationError if unset."""
        if self.secret is None or not self.secret.get_secret_value():
            raise ConfigurationError("missing 'secret' configuration")
        return self.secret.get_secret_value()


_settings_context: ContextVar[Settings | None] = ContextVar("seekset_settings", default=None)
_default_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Returns the active settings.

    Order of precedence:
    1. A value scoped with using_settings() (thread-safe/async-safe)
    2. The process default set by configure()
    3. Settings loaded from the environment (cached as the process default)
    """
    global _default_settings

    ctx_settings = _settings_context.get()
    if ctx_settings is not None:
        return ctx_settings

    if _default_settings is None:
        _default_settings = Settings()
    return _default_settings


def configure(**overrides: Any) -> Settings:
    """
    Replaces the process default settings.

    Unspecified fields still fall back to the environment.

    Usage:
        configure(secret="change-me", page_max_limit=100)
    """
    global _default_settings

    settings = Settings(**overrides)
    _default_settings = settings
    logger.debug(
        "Seekset configured",
        extra={
            "has_secret": settings.secret is not None,
            "token_expires_in": settings.token_expires_in,
            "page_max_limit": settings.page_max_limit,
        },
    )
    return settings


def reset_settings() -> None:
    """Forgets the process default so the next lookup re-reads the environment."""
    global _default_settings
    _default_settings = None


@contextmanager
def using_settings(settings: Settings) -> Generator[Settings, None, None]:
    """
    Context manager to scope settings to a block of code.
    Thread-safe and Async-safe using contextvars.

    Usage:
        with using_settings(Settings(secret="...")):
            page.at(token)
    """
    token = _settings_context.set(settings)
    try:
        yield settings
    finally:
        _settings_context.reset(token)
