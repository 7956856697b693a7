"""Exception hierarchy for DocBase.

Every error carries a human-readable message plus an optional ``details``
dict with context for logs and tool responses.
"""

from typing import Any


class DocBaseError(Exception):
    """Base exception for all DocBase errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(DocBaseError):
    """Raised when an ingest request or option fails validation.

    Raised before any side effect, so the store is left untouched.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details)


class EmbeddingError(DocBaseError):
    """Raised when the embedding provider fails for a single text.

    Args:
        message: Error message
        retryable: True for transient conditions (rate limit, timeout)
        details: Additional context
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["retryable"] = retryable
        self.retryable = retryable
        super().__init__(message, details)


class StorageError(DocBaseError):
    """Raised when a persistence operation fails or an ingest cannot complete."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        self.operation = operation
        super().__init__(message, details)


class SearchError(DocBaseError):
    """Raised when a similarity query cannot be answered."""


class DocumentNotFoundError(DocBaseError):
    """Raised when a document id does not exist."""

    def __init__(self, document_id: int, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["document_id"] = document_id
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}", details)
