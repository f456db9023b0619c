"""
Error taxonomy for the RAG Docs MCP Server.

Lower layers raise EmbeddingFailure, VectorStoreError or ConfigurationError.
The orchestrator converts all of them into RetrievalError, which carries a
machine-readable kind and a human-readable message for tool results.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Outward error kinds reported to tool callers."""
    EMBEDDING_FAILURE = "EmbeddingFailure"
    UNAUTHORIZED = "Unauthorized"
    UNREACHABLE = "Unreachable"
    UNKNOWN = "Unknown"
    INTERNAL_ERROR = "InternalError"


class StoreErrorKind(str, Enum):
    """Classification of a vector store failure."""
    UNAUTHORIZED = "Unauthorized"
    UNREACHABLE = "Unreachable"
    ALREADY_EXISTS = "AlreadyExists"
    UNKNOWN = "Unknown"


class RagDocsError(Exception):
    """Base exception for all RAG Docs errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(message)


class ConfigurationError(RagDocsError):
    """Raised when configuration is inconsistent, e.g. schema/model dimension mismatch."""


class EmbeddingFailure(RagDocsError):
    """Raised when the embedding provider fails to produce a vector."""


class EmbeddingDimensionError(EmbeddingFailure):
    """Raised when the provider returns a vector of the wrong length."""

    def __init__(self, expected: int, actual: int, model: str):
        super().__init__(
            f"Embedding model '{model}' returned {actual} dimensions, expected {expected}. "
            "Please check the embedding model configuration.",
            details={"expected": expected, "actual": actual, "model": model}
        )
        self.expected = expected
        self.actual = actual


class VectorStoreError(RagDocsError):
    """Raised when a Qdrant operation fails, tagged with its classified kind."""

    def __init__(
        self,
        kind: StoreErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message, details=details, original_error=original_error)
        self.kind = kind


class RetrievalError(RagDocsError):
    """The single outward-facing error envelope."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message, original_error=original_error)
        self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        """Tool result shape for failures."""
        return {
            "error": self.message,
            "error_code": self.kind.value,
        }

    def __repr__(self) -> str:
        return f"RetrievalError({self.kind.value}, {self.message!r})"
