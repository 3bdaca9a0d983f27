"""
Exception hierarchy for QuoteMerge.

Only fatal conditions are exceptions. A missing token is a ``NotFound``
search result and dropped characters are reported by the sanitizer; neither
is raised.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List


class QuoteMergeError(Exception):
    """Base exception for all QuoteMerge errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            details: Additional error details (page, operation, ...)
            recoverable: Whether retrying the same call can succeed
            suggestion: Suggested fix or workaround
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion
        }

    def __str__(self) -> str:
        """String representation with suggestion if available."""
        result = self.message
        if self.suggestion:
            result += f"\nSuggestion: {self.suggestion}"
        return result


class InvalidFormat(QuoteMergeError):
    """Raised when the template bytes do not start with the PDF magic header."""

    def __init__(self, message: str, header: Optional[bytes] = None):
        details = {
            "header": header.hex() if header else None,
        }
        super().__init__(
            message,
            details,
            recoverable=False,
            suggestion="Upload a PDF file; the stream must begin with '%PDF'"
        )
        self.header = header


class CorruptDocument(QuoteMergeError):
    """Raised when a document passes the header check but cannot be parsed."""

    def __init__(
        self,
        message: str,
        page: Optional[int] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize corrupt document error.

        Args:
            message: Error message
            page: Page index where parsing failed, if known
            operation: Operation that failed (open/load_page/copy_page)
            original_error: Underlying PyMuPDF error
        """
        details = {
            "page": page,
            "operation": operation,
            "original_error": str(original_error) if original_error else None
        }
        super().__init__(
            message,
            details,
            recoverable=False,
            suggestion="Re-export the template from its authoring tool and upload it again"
        )
        self.page = page
        self.operation = operation
        self.original_error = original_error


class FontEmbedFailure(QuoteMergeError):
    """Raised when a font cannot be loaded, measured or embedded on a page."""

    def __init__(
        self,
        font_name: str,
        page: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        message = f"Failed to embed font '{font_name}'"
        if page is not None:
            message += f" on page {page}"
        details = {
            "font": font_name,
            "page": page,
            "original_error": str(original_error) if original_error else None
        }
        super().__init__(
            message,
            details,
            recoverable=True,
            suggestion="Retry the merge; a fresh font instance is created for every call"
        )
        self.font_name = font_name
        self.page = page
        self.original_error = original_error


class RenderingError(QuoteMergeError):
    """Raised when drawing onto an output page fails."""

    def __init__(
        self,
        message: str,
        page: Optional[int] = None,
        operation: Optional[str] = None
    ):
        """
        Initialize rendering error.

        Args:
            message: Error message
            page: Page index where the error occurred
            operation: Drawing operation that failed
        """
        details = {
            "page": page,
            "operation": operation
        }
        super().__init__(message, details, recoverable=False)
        self.page = page
        self.operation = operation


class MergeIntegrityError(QuoteMergeError):
    """Raised when the serialized output fails verification against the template."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        details = {"errors": errors or []}
        super().__init__(message, details, recoverable=False)
        self.errors = errors or []


class ConfigurationError(QuoteMergeError):
    """Raised when configuration or a template hint is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        invalid_value: Optional[Any] = None,
        valid_values: Optional[List[Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that's invalid
            invalid_value: Invalid value provided
            valid_values: List of valid values
        """
        details = {
            "config_key": config_key,
            "invalid_value": invalid_value,
            "valid_values": valid_values
        }

        suggestion = None
        if config_key and valid_values:
            suggestion = f"Valid values for {config_key}: {', '.join(map(str, valid_values))}"
        elif config_key:
            suggestion = f"Check configuration for '{config_key}'"

        super().__init__(message, details, recoverable=False, suggestion=suggestion)
        self.config_key = config_key
        self.invalid_value = invalid_value
        self.valid_values = valid_values


class StorageError(QuoteMergeError):
    """Raised when document store operations fail."""

    def __init__(
        self,
        message: str,
        doc_id: Optional[str] = None,
        operation: Optional[str] = None
    ):
        """
        Initialize storage error.

        Args:
            message: Error message
            doc_id: Document id involved
            operation: Operation that failed (save/fetch/delete)
        """
        details = {
            "doc_id": doc_id,
            "operation": operation
        }
        super().__init__(
            message,
            details,
            recoverable=operation == "save",
            suggestion="Check disk space and permissions for the store directory"
        )
        self.doc_id = doc_id
        self.operation = operation
