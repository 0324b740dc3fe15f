"""Shell configuration loaded from TIDEPIPE_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShellSettings(BaseSettings):
    """Tidepipe shell settings.

    All fields are read from environment variables with the ``TIDEPIPE_``
    prefix.  For example, ``TIDEPIPE_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Commands still see the full process environment through their
    ``CommandContext``; only settings the runtime itself needs live here.
    """

    model_config = SettingsConfigDict(
        env_prefix="TIDEPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "WARNING"
    """Logs go to stderr; stdout is reserved for pipeline output."""

    # -- Resume tokens ---------------------------------------------------------
    token_secret: SecretStr | None = None
    """HMAC key for resume tokens.

    Without it tokens are still checksummed with a built-in key, which
    detects corruption but not deliberate forgery.
    """

    # -- Commands --------------------------------------------------------------
    exec_timeout: float | None = None
    """Seconds before an ``exec`` subprocess is abandoned (None = no limit)."""

    # -- Helpers ---------------------------------------------------------------

    def token_key(self) -> bytes | None:
        if self.token_secret is None:
            return None
        return self.token_secret.get_secret_value().encode("utf-8")


def get_settings() -> ShellSettings:
    """Return a cached settings instance.

    Call ``_get_settings_cached.cache_clear()`` in tests to force a re-read
    after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> ShellSettings:
    return ShellSettings()
