"""
Exception hierarchy shared by the OpenRAG services.
"""

from typing import Any, Optional


class OpenRAGError(Exception):
    """Base exception for OpenRAG errors."""

    code = "OPENRAG_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(OpenRAGError):
    """Raised when the client is misconfigured."""

    code = "CONFIGURATION_ERROR"


class IndexingError(OpenRAGError):
    """Raised when a source cannot be turned into stored vectors."""

    code = "INDEXING_ERROR"


class SearchError(OpenRAGError):
    """Raised when a search cannot be completed."""

    code = "SEARCH_ERROR"


class BatchError(OpenRAGError):
    """
    A failure tied to one batch of a batched collaborator call.

    ``batch_index`` is zero-based so the caller can resume from it. Both
    fields stay None for calls that are not batched (queries, deletes).
    """

    def __init__(
        self,
        message: str,
        batch_index: Optional[int] = None,
        batch_size: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        merged = {"batch_index": batch_index, "batch_size": batch_size}
        merged.update(details or {})
        super().__init__(message, merged)
        self.batch_index = batch_index
        self.batch_size = batch_size


class EmbeddingError(BatchError):
    """Raised when the embedding provider fails for a batch."""

    code = "EMBEDDING_ERROR"


class VectorStoreError(BatchError):
    """Raised when the vector store fails for a batch."""

    code = "VECTOR_STORE_ERROR"
