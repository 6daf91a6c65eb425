"""
Custom exceptions for the statement analysis pipeline.
"""
from typing import Any, Dict, Optional


class StatementAnalysisException(Exception):
    """Base exception for all statement analysis errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(StatementAnalysisException):
    """Raised when an upload is rejected (wrong type, oversized, missing)."""
    pass


class ExtractionError(StatementAnalysisException):
    """Raised when a PDF cannot be parsed or is password-protected."""
    pass


class EmptyDocumentError(StatementAnalysisException):
    """Raised when a PDF parses fine but carries no text layer."""
    pass


class ServiceUnavailableError(StatementAnalysisException):
    """Raised when the categorization service is unreachable or fails."""
    pass


class ConfigurationError(StatementAnalysisException):
    """Raised when configuration is invalid."""
    pass


class ProcessingTimeoutError(StatementAnalysisException):
    """Raised when the pipeline exceeds its wall-clock budget."""
    pass


class MalformedResponseError(StatementAnalysisException):
    """Raised when the categorization response is not parseable JSON."""
    pass


class SchemaError(StatementAnalysisException):
    """Raised when the categorization response has the wrong shape."""
    pass


class RenderError(StatementAnalysisException):
    """Raised when spreadsheet rendering fails."""
    pass
