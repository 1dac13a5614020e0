"""
Chunker - Classifies content and dispatches it to a segmentation strategy.
"""

from enum import Enum
from typing import Optional, Sequence

from openrag.config import settings
from openrag.utils.logger import get_logger
from openrag.utils.hashing import generate_chunk_id
from openrag.models.chunk import Chunk, ChunkOrigin, ChunkingStats, ContentCategory, SourceKind
from openrag.models.source import (
    DocumentationContent,
    DocumentationPage,
    RepositoryContent,
    RepositoryFile,
)
from openrag.services.language_rules import (
    detect_language,
    extract_dependencies,
    get_structure_rule,
    is_code_language,
    is_markup_language,
)
from openrag.services.splitters import (
    ChunkBuilder,
    HeadingSplitter,
    LineSplitter,
    MarkdownSplitter,
    ParagraphSplitter,
    StructuralCodeSplitter,
)

logger = get_logger(__name__)


class FileClass(str, Enum):
    """How a repository file is segmented."""
    README = "readme"
    DOCUMENTATION = "documentation"
    CODE = "code"
    TEXT = "text"

    @property
    def category(self) -> ContentCategory:
        if self is FileClass.README:
            return ContentCategory.README
        if self is FileClass.DOCUMENTATION:
            return ContentCategory.DOCUMENTATION
        # Generic text keeps the code category's output shape
        return ContentCategory.CODE


def classify_file(path: str, language: Optional[str]) -> FileClass:
    """Classify a repository file by its path and language tag."""
    if "readme" in path.lower():
        return FileClass.README
    if is_markup_language(language):
        return FileClass.DOCUMENTATION
    if is_code_language(language):
        return FileClass.CODE
    return FileClass.TEXT


class Chunker:
    """
    Chunking engine that splits files and pages into embeddable chunks.

    Strategies:
    - README/markdown files: split at headings, whatever their size
    - Documentation pages: split at the page's extracted headings; without a
      match, one chunk when it fits, otherwise paragraphs
    - Code and other text within max_chunk_size: one chunk, verbatim
    - Code files: structure-aware splitting, line splitting as fallback
    - Other text: paragraph packing
    """

    def __init__(
        self,
        max_chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        min_section_chars: Optional[int] = None,
    ):
        self.max_chunk_size = max_chunk_size or settings.max_chunk_size
        self.chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap
        self.min_section_chars = (
            settings.min_section_chars if min_section_chars is None else min_section_chars
        )
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError("chunk_overlap must be smaller than max_chunk_size")

        self._lines = LineSplitter(self.max_chunk_size, self.chunk_overlap)
        self._paragraphs = ParagraphSplitter(self.max_chunk_size, self.chunk_overlap)
        self._markdown = MarkdownSplitter(self.max_chunk_size, self.chunk_overlap)

    def segment(
        self,
        content: str,
        origin: ChunkOrigin,
        headings: Optional[Sequence[str]] = None,
    ) -> list[Chunk]:
        """
        Segment one file or page.

        Args:
            content: Raw text
            origin: Where the text comes from, including its category
            headings: Headings extracted from a documentation page's DOM

        Returns:
            Chunks in document order; empty for blank content.
        """
        if not content or not content.strip():
            return []

        dependencies = None
        if origin.category == ContentCategory.CODE:
            dependencies = extract_dependencies(content, origin.language)
        builder = ChunkBuilder(origin, dependencies)

        # Markdown and pages are sectioned at any size
        if origin.source_kind == SourceKind.DOCUMENTATION:
            return self._segment_page(content, origin, headings)

        if origin.category in (ContentCategory.README, ContentCategory.DOCUMENTATION):
            return self._markdown.split(content, builder)

        if len(content) <= self.max_chunk_size:
            return [builder.whole(content)]

        if is_code_language(origin.language):
            rule = get_structure_rule(origin.language)
            if rule is not None:
                structural = StructuralCodeSplitter(rule, self.max_chunk_size, self.chunk_overlap)
                chunks = structural.split(content, builder)
                if chunks:
                    return chunks
                logger.debug("structural_split_empty", path=origin.source_path)
            return self._lines.split(content, ChunkBuilder(origin, dependencies))

        return self._paragraphs.split(content, builder)

    def _segment_page(
        self,
        content: str,
        origin: ChunkOrigin,
        headings: Optional[Sequence[str]],
    ) -> list[Chunk]:
        if headings:
            splitter = HeadingSplitter(
                headings,
                self.max_chunk_size,
                self.chunk_overlap,
                min_section_chars=self.min_section_chars,
            )
            chunks = splitter.split(content, ChunkBuilder(origin))
            if chunks:
                return chunks
            logger.debug("heading_split_fallback", path=origin.source_path, headings=len(headings))

        builder = ChunkBuilder(origin)
        if len(content) <= self.max_chunk_size:
            return [builder.whole(content)]
        return self._paragraphs.split(content, builder)

    def chunk_file(self, file: RepositoryFile, source_url: str) -> list[Chunk]:
        """Chunk a repository file based on its type."""
        language = file.language or detect_language(file.path)
        file_class = classify_file(file.path, language)
        if file_class is FileClass.README:
            language = "markdown"

        origin = ChunkOrigin(
            base_id=generate_chunk_id(source_url, file.path, file.sha),
            source_url=source_url,
            source_kind=SourceKind.REPOSITORY,
            source_path=file.path,
            category=file_class.category,
            language=language,
        )
        return self.segment(file.content, origin)

    def chunk_page(self, page: DocumentationPage, site_url: str) -> list[Chunk]:
        """Chunk a crawled documentation page."""
        origin = ChunkOrigin(
            base_id=generate_chunk_id(site_url, page.url),
            source_url=site_url,
            source_kind=SourceKind.DOCUMENTATION,
            source_path=page.url,
            source_title=page.title or None,
            category=ContentCategory.DOCUMENTATION,
        )
        return self.segment(page.content, origin, headings=page.headings)

    def chunk_repository(self, content: RepositoryContent) -> tuple[list[Chunk], ChunkingStats]:
        """
        Chunk all files in a repository.

        Args:
            content: Files fetched from the repository

        Returns:
            Tuple of (chunks list, stats)
        """
        all_chunks: list[Chunk] = []
        stats = ChunkingStats()

        for file in content.files:
            chunks = self.chunk_file(file, content.url)
            all_chunks.extend(chunks)
            stats.record(chunks)

        logger.info(
            "chunking_complete",
            source_url=content.url,
            files=stats.total_items,
            chunks=stats.total_chunks,
            chars=stats.total_chars,
        )
        return all_chunks, stats

    def chunk_documentation(self, content: DocumentationContent) -> tuple[list[Chunk], ChunkingStats]:
        """Chunk all crawled pages of a documentation site."""
        all_chunks: list[Chunk] = []
        stats = ChunkingStats()

        for page in content.pages:
            chunks = self.chunk_page(page, content.url)
            all_chunks.extend(chunks)
            stats.record(chunks)

        logger.info(
            "chunking_complete",
            source_url=content.url,
            pages=stats.total_items,
            chunks=stats.total_chunks,
            chars=stats.total_chars,
        )
        return all_chunks, stats


# Global instance
chunker = Chunker()
