"""
Retriever service - Semantic search over indexed chunks.
"""

from typing import Any, Optional

from openrag.config import settings
from openrag.errors import OpenRAGError, SearchError
from openrag.models.chunk import ContentCategory, SourceKind
from openrag.models.search import ResultMetadata, ResultSource, SearchOptions, SearchResult
from openrag.models.vector import QueryMatch
from openrag.services.ranker import rank_results
from openrag.services.vector_store import VectorStore, build_where
from openrag.utils.embeddings import EmbeddingService
from openrag.utils.logger import get_logger, run_context

logger = get_logger(__name__)

REPOSITORY_CATEGORIES = (ContentCategory.CODE.value, ContentCategory.README.value)


def build_search_filter(options: SearchOptions) -> Optional[dict[str, Any]]:
    """Translate search options into a vector store ``where`` clause."""
    categories: list[str] = []
    if options.include_code:
        categories.extend(REPOSITORY_CATEGORIES)
    if options.include_documentation:
        categories.append(ContentCategory.DOCUMENTATION.value)

    return build_where({
        "source_url": options.sources or None,
        "category": categories,
    })


def _source_kind(metadata: dict[str, Any]) -> SourceKind:
    try:
        return SourceKind(metadata.get("source_kind"))
    except ValueError:
        if metadata.get("category") in REPOSITORY_CATEGORIES:
            return SourceKind.REPOSITORY
        return SourceKind.DOCUMENTATION


def to_search_result(match: QueryMatch) -> SearchResult:
    """
    Convert a raw match into a SearchResult.

    Missing metadata fields become None so ranking treats them as neutral.
    """
    metadata = match.metadata or {}
    heading_level = metadata.get("heading_level")
    return SearchResult(
        content=match.document or metadata.get("content") or "",
        source=ResultSource(
            url=metadata.get("source_url") or "",
            kind=_source_kind(metadata),
            path=metadata.get("source_path"),
            title=metadata.get("source_title"),
        ),
        metadata=ResultMetadata(
            language=metadata.get("language"),
            section=metadata.get("section"),
            heading_level=int(heading_level) if heading_level is not None else None,
        ),
        score=min(max(match.score, 0.0), 1.0),
    )


class Retriever:
    """
    Retrieves relevant chunks for a query using semantic search,
    then re-ranks and diversifies them.
    """

    def __init__(
        self,
        embeddings: Optional[EmbeddingService] = None,
        store: Optional[VectorStore] = None,
    ):
        self.embeddings = embeddings or EmbeddingService()
        self.store = store or VectorStore()

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchResult]:
        """
        Search indexed sources for relevant context.

        Raises:
            SearchError: when embedding the query or querying the store fails
        """
        options = options or SearchOptions(
            max_results=settings.search_top_k, threshold=settings.search_threshold
        )
        with run_context(query=query):
            logger.info("search_started", max_results=options.max_results, threshold=options.threshold)

            try:
                query_vector = await self.embeddings.embed_query(query)
                matches = await self.store.query(
                    query_vector,
                    top_k=options.max_results,
                    where=build_search_filter(options),
                    threshold=options.threshold,
                )
            except OpenRAGError as e:
                logger.error("search_failed", error_code=e.code, error=e.message)
                raise SearchError(f"Search failed: {e.message}", {"query": query, "cause": e.code}) from e

            results = rank_results(
                [to_search_result(match) for match in matches],
                query,
                max_per_source=settings.max_results_per_source,
                min_results=settings.min_diversified_results,
            )
            logger.info("search_complete", matches=len(matches), results=len(results))
            return results

