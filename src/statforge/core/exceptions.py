"""Custom exception hierarchy for StatForge.

All exceptions inherit from StatForgeError, enabling unified error
handling at the application boundary while preserving domain-specific
context in ``details``.

Most conditions the stat engine meets while computing a character are
recoverable and never surface as exceptions: dependency cycles resolve to
NaN, unresolvable formulas keep their text and effects pointing at missing
stats are dropped. The exceptions below cover the edges of the system:
configuration, caller input and storage.

Example:
    >>> from statforge.core.exceptions import CharacterNotFoundError
    >>> raise CharacterNotFoundError("No such character", character_id="abc123")
"""

from __future__ import annotations

from typing import Any


class StatForgeError(Exception):
    """Base exception for all StatForge errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Computation Exceptions
# =============================================================================


class ComputationError(StatForgeError):
    """Base exception for stat computation errors.

    The scheduler never lets these escape a recompute pass; they mark
    conditions that are turned into a defined, observable result.
    """


class FormulaError(ComputationError):
    """Raised when a formula cannot be evaluated arithmetically.

    The formula evaluator catches this and keeps the substituted text as
    the effect's result.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with expression context.

        Args:
            message: Human-readable error description.
            expression: The expression text that failed to evaluate.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression is not None:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(StatForgeError):
    """Base exception for persistence errors."""


class CharacterNotFoundError(StorageError):
    """Raised when a recompute is requested for an unknown character."""

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing character's identifier.

        Args:
            message: Human-readable error description.
            character_id: Identifier that could not be found.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(StatForgeError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(StatForgeError):
    """Raised when caller-supplied input is rejected before computation.

    This covers malformed character identifiers and record sets that do
    not match the expected shapes.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    "StatForgeError",
    "ComputationError",
    "FormulaError",
    "StorageError",
    "CharacterNotFoundError",
    "ConfigurationError",
    "ValidationError",
]
