"""Configuration management for StatForge.

Settings are loaded with pydantic-settings from environment variables and
an optional ``.env`` file.

Example:
    >>> from statforge.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.proficiency_bonus_variable
    'proficiencyBonus'

Environment Variables:
    STATFORGE_DATABASE_PATH: Path to the SQLite database file
    STATFORGE_ENGINE_PROFICIENCY_BONUS_VARIABLE: Skill overriding the default bonus
    STATFORGE_ENGINE_ABILITY_ATTRIBUTE_TYPE: Attribute type that gets a modifier
    STATFORGE_ENGINE_MODIFIER_SUFFIX: Formula suffix that selects a modifier
    STATFORGE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    STATFORGE_LOG_JSON: Emit JSON log lines instead of console output
    STATFORGE_LOG_FILE: Optional file that also receives log lines
    STATFORGE_DEBUG: Log at DEBUG level whatever STATFORGE_LOG_LEVEL says

The logging variables take effect through
``statforge.core.logging.setup_logging``.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from statforge.core.exceptions import ConfigurationError


_WORD_RE = re.compile(r"^[A-Za-z0-9_]+$")


class StorageSettings(BaseSettings):
    """Configuration for the SQLite storage collaborator.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/statforge.db"),
        description="Path to SQLite database",
    )


class EngineSettings(BaseSettings):
    """Configuration for the stat computation engine.

    Attributes:
        proficiency_bonus_variable: Variable name of the skill that, when a
            character defines it, replaces the level-derived proficiency bonus.
        ability_attribute_type: Attribute type whose members get a modifier.
        modifier_suffix: Formula token suffix that selects an ability modifier
            (``strengthMod`` -> modifier of ``strength``).
    """

    model_config = SettingsConfigDict(
        env_prefix="STATFORGE_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    proficiency_bonus_variable: str = Field(
        default="proficiencyBonus",
        description="Skill that overrides the default proficiency bonus",
    )
    ability_attribute_type: str = Field(
        default="ability",
        description="Attribute type that derives a modifier",
    )
    modifier_suffix: str = Field(
        default="mod",
        description="Formula suffix selecting an ability modifier",
    )

    @field_validator("proficiency_bonus_variable", "modifier_suffix", mode="after")
    @classmethod
    def validate_word(cls, value: str) -> str:
        """Ensure the value can appear as a single formula token.

        Raises:
            ConfigurationError: If the value contains non-word characters.
        """
        if not _WORD_RE.match(value):
            raise ConfigurationError(
                f"{value!r} is not a valid formula token",
                details={"value": value},
            )
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name, added to every log entry.
        debug: Enable debug mode (forces DEBUG logging).
        log_level: Application logging level.
        log_json: Emit JSON log lines instead of console output.
        log_file: Optional log file path.
        storage: Storage settings.
        engine: Engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="StatForge",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "EngineSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
