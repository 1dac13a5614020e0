"""
Chunking models.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentCategory(str, Enum):
    """What kind of content a chunk was cut from."""
    CODE = "code"
    README = "readme"
    DOCUMENTATION = "documentation"


class SourceKind(str, Enum):
    """Where content originated."""
    REPOSITORY = "repository"
    DOCUMENTATION = "documentation"


class ChunkOrigin(BaseModel):
    """
    Immutable description of the file or page a chunk comes from.

    Built once per file/page and handed to every splitter.
    """
    model_config = ConfigDict(frozen=True)

    base_id: str = Field(..., description="Chunk id of the whole file/page")
    source_url: str = Field(..., description="Repository or documentation site URL")
    source_kind: SourceKind
    source_path: str = Field(..., description="File path or page URL")
    source_title: Optional[str] = None
    category: ContentCategory = ContentCategory.CODE
    language: Optional[str] = None


class ChunkSource(BaseModel):
    """Source attribution carried by every chunk."""
    url: str
    kind: SourceKind
    path: Optional[str] = None
    title: Optional[str] = None


class ChunkMetadata(BaseModel):
    """Metadata for a code/doc chunk."""
    language: Optional[str] = Field(default=None, description="Programming language")
    size: int = Field(..., description="Character length of the content")
    content_hash: str = Field(..., description="Content fingerprint")
    section: Optional[str] = Field(default=None, description="Heading the chunk belongs to")
    heading_level: Optional[int] = Field(default=None, description="Heading depth (1-6)")
    dependencies: Optional[list[str]] = Field(default=None, description="Import targets of the file")
    start_line: Optional[int] = Field(default=None, description="Starting line number (1-indexed)")
    end_line: Optional[int] = Field(default=None, description="Ending line number (1-indexed)")


class Chunk(BaseModel):
    """A chunk of code or documentation with metadata."""
    id: str = Field(..., description="Unique chunk identifier")
    content: str = Field(..., description="Chunk text content")
    category: ContentCategory
    source: ChunkSource
    metadata: ChunkMetadata

    @property
    def line_range(self) -> Optional[str]:
        """Human-readable line range."""
        if self.metadata.start_line is None:
            return None
        return f"L{self.metadata.start_line}-L{self.metadata.end_line}"

    def to_vector_metadata(self) -> dict[str, Any]:
        """Flatten into scalar metadata for the vector store. None values are omitted."""
        fields = {
            "category": self.category.value,
            "source_url": self.source.url,
            "source_kind": self.source.kind.value,
            "source_path": self.source.path,
            "source_title": self.source.title,
            "language": self.metadata.language,
            "size": self.metadata.size,
            "content_hash": self.metadata.content_hash,
            "section": self.metadata.section,
            "heading_level": self.metadata.heading_level,
            "dependencies": ",".join(self.metadata.dependencies) if self.metadata.dependencies else None,
        }
        return {key: value for key, value in fields.items() if value is not None}


class ChunkingStats(BaseModel):
    """Statistics from chunking operation."""
    total_chunks: int = 0
    total_items: int = 0
    total_chars: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_language: dict[str, int] = Field(default_factory=dict)

    def record(self, chunks: list[Chunk]) -> None:
        """Account for the chunks produced from one file or page."""
        self.total_items += 1
        for chunk in chunks:
            self.total_chunks += 1
            self.total_chars += chunk.metadata.size
            category = chunk.category.value
            self.by_category[category] = self.by_category.get(category, 0) + 1
            language = chunk.metadata.language or "text"
            self.by_language[language] = self.by_language.get(language, 0) + 1
