"""
OpenRAG client - Entry point tying chunking, indexing and search together.

    client = OpenRAGClient()
    await client.index_repository(repository_content)
    results = await client.search("how to register a plugin")
    context = client.format_for_ai(results)
"""

from typing import Optional

from openrag.config import settings
from openrag.models.search import FormatOptions, FormattedContext, SearchOptions, SearchResult
from openrag.models.source import (
    BatchIndexResult,
    DocumentationContent,
    IndexResult,
    RepositoryContent,
)
from openrag.models.vector import HealthStatus, RAGStats
from openrag.services.chunker import Chunker
from openrag.services.formatter import format_for_ai
from openrag.services.indexer import Indexer, Source
from openrag.services.retriever import Retriever
from openrag.services.vector_store import VectorStore
from openrag.utils.embeddings import EmbeddingService
from openrag.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


class OpenRAGClient:
    """Indexes repositories and documentation sites and searches them."""

    def __init__(
        self,
        chunker: Optional[Chunker] = None,
        embeddings: Optional[EmbeddingService] = None,
        store: Optional[VectorStore] = None,
        configure_logging: bool = True,
    ):
        if configure_logging:
            setup_logging(debug=settings.debug)

        self.chunker = chunker or Chunker()
        self.embeddings = embeddings or EmbeddingService()
        self.store = store or VectorStore()
        self.indexer = Indexer(chunker=self.chunker, embeddings=self.embeddings, store=self.store)
        self.retriever = Retriever(embeddings=self.embeddings, store=self.store)

        logger.info(
            "openrag_client_ready",
            version=settings.app_version,
            embedding_provider=self.embeddings.provider,
            collection=self.store.collection_name,
        )

    async def index_repository(self, content: RepositoryContent) -> IndexResult:
        return await self.indexer.index_repository(content)

    async def index_documentation(self, content: DocumentationContent) -> IndexResult:
        return await self.indexer.index_documentation(content)

    async def index_batch(self, sources: list[Source]) -> BatchIndexResult:
        return await self.indexer.index_batch(sources)

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchResult]:
        return await self.retriever.search(query, options)

    def format_for_ai(
        self, results: list[SearchResult], options: Optional[FormatOptions] = None
    ) -> FormattedContext:
        return format_for_ai(results, options)

    async def delete_source(self, source_url: str) -> None:
        await self.indexer.delete_source(source_url)

    async def list_sources(self) -> list[str]:
        return await self.store.list_sources()

    async def get_stats(self) -> RAGStats:
        stats = await self.store.stats()
        sources = await self.store.list_sources()
        return RAGStats(total_sources=len(sources), total_chunks=stats.total_vectors)

    async def health_check(self) -> HealthStatus:
        """Check the embedding provider and the vector store."""
        services = {
            "embedding": await self.embeddings.health_check(),
            "vector_store": await self.store.health_check(),
        }
        errors = [f"{name} unavailable" for name, ok in services.items() if not ok]
        return HealthStatus(
            healthy=all(services.values()),
            services=services,
            errors=errors or None,
        )
