"""
Indexer service - Orchestrates chunking, embedding, and storage.
"""

import asyncio
import time
from typing import Optional, Union

from openrag.config import settings
from openrag.errors import BatchError, IndexingError
from openrag.models.chunk import Chunk
from openrag.models.source import (
    BatchIndexItem,
    BatchIndexResult,
    DocumentationContent,
    IndexResult,
    RepositoryContent,
)
from openrag.models.vector import VectorRecord
from openrag.services.chunker import Chunker, chunker as default_chunker
from openrag.services.vector_store import VectorStore, build_where
from openrag.utils.embeddings import EmbeddingService
from openrag.utils.hashing import generate_source_id
from openrag.utils.logger import get_logger, run_context

logger = get_logger(__name__)

Source = Union[RepositoryContent, DocumentationContent]


class ChunkIndexingFailed(IndexingError):
    """A batch failed part-way through indexing; carries progress for resuming."""

    def __init__(self, cause: BatchError, failed_batch: int, processed_chunks: int):
        super().__init__(
            cause.message,
            {"failed_batch": failed_batch, "processed_chunks": processed_chunks, "cause": cause.code},
        )
        self.cause = cause
        self.failed_batch = failed_batch
        self.processed_chunks = processed_chunks


class Indexer:
    """
    Manages the indexing process:
    1. Chunk files or pages
    2. Generate embeddings batch by batch
    3. Upsert each batch into the vector store
    """

    def __init__(
        self,
        chunker: Optional[Chunker] = None,
        embeddings: Optional[EmbeddingService] = None,
        store: Optional[VectorStore] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.chunker = chunker or default_chunker
        self.embeddings = embeddings or EmbeddingService()
        self.store = store or VectorStore()
        self.batch_size = max(1, batch_size or settings.embedding_batch_size)
        self.batch_delay = settings.embedding_batch_delay_seconds if batch_delay is None else batch_delay
        self.max_content_chars = settings.max_stored_content_chars

    def build_records(self, chunks: list[Chunk], vectors: list[list[float]]) -> list[VectorRecord]:
        """Pair chunks with their vectors in the storage schema."""
        return [
            VectorRecord(
                id=chunk.id,
                values=vector,
                document=chunk.content[: self.max_content_chars],
                metadata=chunk.to_vector_metadata(),
            )
            for chunk, vector in zip(chunks, vectors)
        ]

    async def index_chunks(self, chunks: list[Chunk], start_batch: int = 0) -> int:
        """
        Embed and store chunks in batches, starting at ``start_batch``.

        Returns:
            Number of chunks stored by this call

        Raises:
            ChunkIndexingFailed: when a batch fails, with the batch to resume from
        """
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size
        processed = 0

        for batch_index in range(start_batch, total_batches):
            batch = chunks[batch_index * self.batch_size:(batch_index + 1) * self.batch_size]
            try:
                vectors = await self.embeddings.embed_many([chunk.content for chunk in batch])
                await self.store.upsert(self.build_records(batch, vectors))
            except BatchError as e:
                logger.error(
                    "index_batch_failed",
                    batch=batch_index,
                    batch_size=len(batch),
                    error_code=e.code,
                    error=e.message,
                )
                raise ChunkIndexingFailed(e, failed_batch=batch_index, processed_chunks=processed) from e

            processed += len(batch)
            logger.debug("batch_indexed", batch=batch_index + 1, total=total_batches, count=len(batch))

            if batch_index < total_batches - 1 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        return processed

    async def index_repository(self, content: RepositoryContent) -> IndexResult:
        """Index every file of a fetched repository."""
        chunks, _ = self.chunker.chunk_repository(content)
        return await self._index_source(content.url, chunks, label=f"repository: {content.repository}")

    async def index_documentation(self, content: DocumentationContent) -> IndexResult:
        """Index every crawled page of a documentation site."""
        chunks, _ = self.chunker.chunk_documentation(content)
        return await self._index_source(content.url, chunks, label=f"documentation site: {content.url}")

    async def index_source(self, content: Source) -> IndexResult:
        if isinstance(content, RepositoryContent):
            return await self.index_repository(content)
        return await self.index_documentation(content)

    async def _index_source(self, source_url: str, chunks: list[Chunk], label: str) -> IndexResult:
        with run_context(source_url=source_url):
            return await self._store_source(source_url, chunks, label)

    async def _store_source(self, source_url: str, chunks: list[Chunk], label: str) -> IndexResult:
        started = time.monotonic()
        logger.info("indexing_started", chunks=len(chunks))

        if not chunks:
            logger.warning("no_chunks_created")
            return IndexResult(
                success=False,
                message="No content found to index. Check URL and filters.",
                processing_time_ms=self._elapsed_ms(started),
            )

        try:
            stored = await self.index_chunks(chunks)
        except ChunkIndexingFailed as e:
            return IndexResult(
                success=False,
                message=f"Failed to index source: {e.message}",
                source_id=generate_source_id(source_url),
                chunks_indexed=e.processed_chunks,
                processing_time_ms=self._elapsed_ms(started),
                failed_batch=e.failed_batch,
            )

        logger.info("indexing_complete", chunks=stored)
        return IndexResult(
            success=True,
            message=f"Successfully indexed {stored} chunks from {label}",
            source_id=generate_source_id(source_url),
            chunks_indexed=stored,
            processing_time_ms=self._elapsed_ms(started),
        )

    async def index_batch(self, sources: list[Source]) -> BatchIndexResult:
        """Index several sources one after another."""
        started = time.monotonic()
        items: list[BatchIndexItem] = []

        for source in sources:
            result = await self.index_source(source)
            items.append(
                BatchIndexItem(
                    url=source.url,
                    success=result.success,
                    source_id=result.source_id,
                    chunks_indexed=result.chunks_indexed,
                    error=None if result.success else result.message,
                )
            )

        succeeded = sum(1 for item in items if item.success)
        return BatchIndexResult(
            success=succeeded > 0,
            total_sources=len(sources),
            successful_indexes=succeeded,
            failed_indexes=len(items) - succeeded,
            results=items,
            total_time_ms=self._elapsed_ms(started),
        )

    async def delete_source(self, source_url: str) -> None:
        """Remove every vector that came from ``source_url``."""
        await self.store.delete_by_filter(build_where({"source_url": source_url}))
        logger.info("source_deleted", source_url=source_url)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

