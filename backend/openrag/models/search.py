"""
Search and context formatting models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from openrag.models.chunk import SourceKind


class ResultSource(BaseModel):
    """Where a search result came from."""
    url: str
    kind: SourceKind
    path: Optional[str] = None
    title: Optional[str] = None


class ResultMetadata(BaseModel):
    """Optional descriptive fields of a search result."""
    language: Optional[str] = None
    section: Optional[str] = None
    heading_level: Optional[int] = None


class SearchResult(BaseModel):
    """A ranked search result."""
    content: str = ""
    source: ResultSource
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    score: float = Field(..., ge=0.0, le=1.0, description="Similarity score")


class SearchOptions(BaseModel):
    """Options for a search call."""
    max_results: int = Field(default=10, ge=1)
    sources: Optional[list[str]] = Field(default=None, description="Restrict to these source URLs")
    include_code: bool = True
    include_documentation: bool = True
    threshold: float = Field(default=0.7, ge=0.0, le=1.0)


class ContextFormat(str, Enum):
    """Target style for formatted context."""
    GENERIC = "generic"
    OPENAI = "openai"
    CLAUDE = "claude"


class FormatOptions(BaseModel):
    """Options for formatting results as model context."""
    max_length: int = 16000
    include_citations: bool = True
    format: ContextFormat = ContextFormat.GENERIC


class ContextSource(BaseModel):
    """Citation entry for formatted context."""
    title: str
    url: str
    kind: SourceKind


class FormattedContext(BaseModel):
    """Search results rendered for a model prompt."""
    text: str
    sources: list[ContextSource] = Field(default_factory=list)
    character_count: int = 0
