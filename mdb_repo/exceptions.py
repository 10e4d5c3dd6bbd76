"""
Custom exceptions for MDB_REPO.

Driver errors (``pymongo.errors``) are never wrapped; these types only cover
caller-input and configuration problems detected by the repository layer.
"""

from typing import Any, Dict, Optional


class RepositoryError(RuntimeError):
    """
    Base exception for MDB_REPO errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection,
                 document type, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InvalidIdentifierError(RepositoryError, ValueError):
    """
    Raised when a value cannot be interpreted as a document identifier.

    Attributes:
        value: The rejected identifier value
    """

    def __init__(
        self,
        message: str,
        value: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if value is not None:
            context["value"] = value
        super().__init__(message, context=context)
        self.value = value


class NaturalKeyTooLongError(RepositoryError, ValueError):
    """
    Raised when a natural key does not fit into the fixed-width identifier space.

    Attributes:
        natural_key: The key that was being encoded
        encoded_length: Length of its hex encoding
        max_length: Maximum allowed length
    """

    def __init__(
        self,
        natural_key: str,
        encoded_length: int,
        max_length: int,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        context["natural_key"] = natural_key
        context["encoded_length"] = encoded_length
        super().__init__(
            f"Hex encoding of natural key is longer than {max_length} characters",
            context=context,
        )
        self.natural_key = natural_key
        self.encoded_length = encoded_length
        self.max_length = max_length


class ConfigurationError(RepositoryError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value
