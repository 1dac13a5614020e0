"""
Source content and indexing models.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RepositoryFile(BaseModel):
    """A single file fetched from a repository."""
    path: str = Field(..., description="Path relative to the repository root")
    content: str
    sha: Optional[str] = Field(default=None, description="Blob id of the file version")
    size: int = 0
    language: Optional[str] = None


class RepositoryContent(BaseModel):
    """Files fetched from one repository."""
    url: str = Field(..., description="Repository URL")
    repository: str = Field(..., description="owner/name")
    branch: str = "main"
    files: list[RepositoryFile] = Field(default_factory=list)


class DocumentationPage(BaseModel):
    """A rendered documentation page reduced to plain text."""
    url: str
    title: str = ""
    content: str
    headings: list[str] = Field(default_factory=list)
    breadcrumbs: list[str] = Field(default_factory=list)
    last_modified: Optional[str] = None


class DocumentationContent(BaseModel):
    """Pages crawled from one documentation site."""
    url: str = Field(..., description="Site root URL")
    pages: list[DocumentationPage] = Field(default_factory=list)


class IndexResult(BaseModel):
    """Outcome of indexing one source."""
    success: bool
    message: str
    source_id: Optional[str] = None
    chunks_indexed: int = 0
    processing_time_ms: int = 0
    failed_batch: Optional[int] = Field(default=None, description="Zero-based batch to resume from")


class BatchIndexItem(BaseModel):
    """Per-source entry of a batch indexing run."""
    url: str
    success: bool
    source_id: Optional[str] = None
    chunks_indexed: int = 0
    error: Optional[str] = None


class BatchIndexResult(BaseModel):
    """Outcome of indexing several sources."""
    success: bool
    total_sources: int
    successful_indexes: int
    failed_indexes: int
    results: list[BatchIndexItem] = Field(default_factory=list)
    total_time_ms: int = 0
