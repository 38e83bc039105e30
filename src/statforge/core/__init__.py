"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        StatForgeError: Base exception for all application errors.
        ComputationError, FormulaError: Engine-internal conditions.
        StorageError, CharacterNotFoundError: Persistence errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Caller input errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        setup_logging: Set up logging from the settings.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from statforge.core.config import (
    EngineSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from statforge.core.exceptions import (
    CharacterNotFoundError,
    ComputationError,
    ConfigurationError,
    FormulaError,
    StatForgeError,
    StorageError,
    ValidationError,
)
from statforge.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    setup_logging,
)


__all__ = [
    # Exceptions
    "StatForgeError",
    "ComputationError",
    "FormulaError",
    "StorageError",
    "CharacterNotFoundError",
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "Settings",
    "StorageSettings",
    "EngineSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
