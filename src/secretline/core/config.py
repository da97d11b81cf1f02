"""Core configuration - centralized config for the secretline package.

All environment-based configuration flows through this module.

Usage:
    from secretline.core.config import get_config
    config = get_config()

    low, high = config.secret_domain
    log_level = config.log_level
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigException

# Reference secret domain: every 8-digit decimal number.
DEFAULT_SECRET_MIN = 10_000_000
DEFAULT_SECRET_MAX = 99_999_999

# Secrets are keystream material for a 4-byte cipher.
SECRET_UPPER_BOUND = 2**32


class CoreSettings(BaseSettings):
    """Core configuration settings for Secretline.

    Settings can be configured via SECRETLINE_ environment variables
    or a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="SECRETLINE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="SECRETLINE_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="SECRETLINE_LOG_FILE",
    )

    # ==========================================================================
    # SECRET SETTINGS
    # ==========================================================================

    secret_min: int = Field(
        default=DEFAULT_SECRET_MIN,
        description="Smallest secret value the engine may generate",
        validation_alias="SECRETLINE_SECRET_MIN",
    )
    secret_max: int = Field(
        default=DEFAULT_SECRET_MAX,
        description="Largest secret value the engine may generate (inclusive)",
        validation_alias="SECRETLINE_SECRET_MAX",
    )

    # ==========================================================================
    # LOCAL STATE SETTINGS (used by the CLI)
    # ==========================================================================

    home: str = Field(
        default="~/.secretline",
        description="Directory holding the state snapshot and identity keys",
        validation_alias="SECRETLINE_HOME",
    )
    identity: str = Field(
        default="default",
        description="Name of the identity key used by the CLI",
        validation_alias="SECRETLINE_IDENTITY",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def home_path(self) -> Path:
        return Path(self.home).expanduser()

    @property
    def state_path(self) -> Path:
        """Path of the JSON state snapshot."""
        return self.home_path / "state.json"

    @property
    def keys_dir(self) -> Path:
        """Directory of PEM identity keys."""
        return self.home_path / "keys"

    @property
    def secret_domain(self) -> tuple[int, int]:
        """Validated (min, max) secret domain.

        Raises:
            ConfigException: If the domain is empty or does not fit in 32 bits.
        """
        if self.secret_min < 0 or self.secret_max >= SECRET_UPPER_BOUND:
            raise ConfigException(
                f"Secret domain must lie within [0, {SECRET_UPPER_BOUND - 1}]",
                setting="secret_max" if self.secret_max >= SECRET_UPPER_BOUND else "secret_min",
            )
        if self.secret_min > self.secret_max:
            raise ConfigException(
                f"secret_min ({self.secret_min}) exceeds secret_max ({self.secret_max})",
                setting="secret_min",
            )
        return self.secret_min, self.secret_max


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
