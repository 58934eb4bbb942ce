"""Custom exception hierarchy for the fragments service."""

from __future__ import annotations


class FragmentsError(Exception):
    """Base exception for all fragments-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FragmentsError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(FragmentsError):
    """Raised when fragment input is missing or invalid."""
    pass


class ContentTypeError(ValidationError):
    """Raised when a Content-Type value is syntactically malformed."""
    pass


class NotFoundError(FragmentsError):
    """Raised when fragment metadata or data does not exist."""
    pass


class FragmentDataError(FragmentsError, TypeError):
    """Raised when fragment data is not a definite binary value."""
    pass


class ConversionError(FragmentsError):
    """Base class for conversion errors."""
    pass


class ConversionNotSupportedError(ConversionError):
    """Raised when a known extension is not reachable from the source type."""
    pass


class UnknownExtensionError(ConversionError):
    """Raised when an extension is not recognised at all."""
    pass


class MalformedContentError(ConversionError):
    """Raised when source bytes cannot be parsed for the requested transform."""
    pass


class StorageError(FragmentsError):
    """Base class for storage backend failures."""
    pass


class StorageUnavailableError(StorageError):
    """Raised when a backend fails for I/O reasons unrelated to key absence."""
    pass


class AuthenticationError(FragmentsError):
    """Raised when request credentials are missing or invalid."""
    pass
