"""Custom exceptions for CrossQuery library.

This module defines all custom exceptions used throughout the library for
consistent error handling and clear error messaging.
"""

from typing import Any, Dict


# Base exception
class CrossQueryError(Exception):
    """Base exception for all CrossQuery errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., field, key, text)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message with details."""
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Validation exceptions
class ValidationError(CrossQueryError):
    """Raised when a builder call is rejected before the tree is touched.

    Example:
        >>> raise ValidationError("Invalid clause", field="title")
    """


class InvalidArgumentError(ValidationError):
    """Raised for empty field names, missing values or non-finite boosts.

    Example:
        >>> raise InvalidArgumentError("Field name must not be empty", field="")
    """


class DuplicateKeyError(ValidationError):
    """Raised when a key is already registered in the same group.

    Example:
        >>> raise DuplicateKeyError("Key already registered", key="africa")
    """


# Parsing exceptions
class QueryParseError(CrossQueryError):
    """Raised when raw query text cannot be parsed.

    Example:
        >>> raise QueryParseError("Unexpected token", field="title", text="(africa")
    """


# Engine exceptions
class EngineRejectedError(CrossQueryError):
    """Raised when the search engine refuses a composite query.

    Example:
        >>> raise EngineRejectedError("Query rejected", reason="unknown field")
    """


class TooManyClausesError(EngineRejectedError):
    """Raised when a boolean query holds more clauses than the engine allows.

    Example:
        >>> raise TooManyClausesError("Too many clauses", count=2048, max_clause_count=1024)
    """


class UnsupportedQueryError(CrossQueryError):
    """Raised when a compiler or backend meets a query kind it cannot handle.

    Example:
        >>> raise UnsupportedQueryError("Unsupported query kind", kind="span")
    """


# Configuration exceptions
class ConfigurationError(CrossQueryError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("Invalid configuration", setting="raw_parsing", value="lazy")
    """


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid.

    Example:
        >>> raise InvalidConfigError("Invalid config value", config_key="MAX_CLAUSE_COUNT", value=0, expected=">0")
    """
