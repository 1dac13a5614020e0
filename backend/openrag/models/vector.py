"""
Vector store records and service status models.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

MetadataValue = Union[str, int, float, bool]


class VectorRecord(BaseModel):
    """A vector ready to be upserted."""
    id: str
    values: list[float]
    document: str = ""
    metadata: dict[str, MetadataValue] = Field(default_factory=dict)


class QueryMatch(BaseModel):
    """A raw similarity match from the vector store."""
    id: str
    score: float
    document: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class StoreStats(BaseModel):
    """Vector store statistics."""
    total_vectors: int = 0
    collection: str = ""


class HealthStatus(BaseModel):
    """Health of the client's collaborators."""
    healthy: bool
    services: dict[str, bool] = Field(default_factory=dict)
    errors: Optional[list[str]] = None


class RAGStats(BaseModel):
    """Aggregate statistics over the index."""
    total_sources: int = 0
    total_chunks: int = 0
