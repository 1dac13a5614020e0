import asyncio

import pytest

from openrag.errors import SearchError, VectorStoreError
from openrag.models.chunk import SourceKind
from openrag.models.search import SearchOptions
from openrag.models.vector import QueryMatch
from openrag.services.retriever import Retriever, build_search_filter, to_search_result
from openrag.utils.embeddings import EmbeddingService


class FakeStore:
    def __init__(self, matches=None, error=None):
        self.matches = matches or []
        self.error = error
        self.last_call = None

    async def query(self, vector, top_k=10, where=None, threshold=0.0):
        self.last_call = {"top_k": top_k, "where": where, "threshold": threshold}
        if self.error:
            raise self.error
        return self.matches


def _retriever(store):
    return Retriever(embeddings=EmbeddingService(provider="mock", batch_delay=0), store=store)


def test_build_search_filter():
    assert build_search_filter(SearchOptions()) == {
        "category": {"$in": ["code", "readme", "documentation"]}
    }
    assert build_search_filter(SearchOptions(include_code=False, sources=["https://docs.acme.dev"])) == {
        "$and": [
            {"source_url": {"$in": ["https://docs.acme.dev"]}},
            {"category": {"$in": ["documentation"]}},
        ]
    }


def test_to_search_result_treats_missing_fields_as_neutral():
    result = to_search_result(QueryMatch(id="x", score=1.2, metadata={}))

    assert result.content == ""
    assert result.source.url == ""
    assert result.source.kind is SourceKind.DOCUMENTATION
    assert result.metadata.section is None
    assert result.score == 1.0


def test_to_search_result_reads_metadata():
    match = QueryMatch(
        id="x",
        score=0.82,
        document="def parse(): ...",
        metadata={
            "category": "code",
            "source_url": "https://github.com/acme/widgets",
            "source_path": "src/parse.py",
            "language": "python",
            "heading_level": 2,
            "section": "Parsing",
        },
    )

    result = to_search_result(match)

    assert result.source.kind is SourceKind.REPOSITORY
    assert result.source.path == "src/parse.py"
    assert result.metadata.language == "python"
    assert result.metadata.heading_level == 2
    assert result.score == pytest.approx(0.82)


def test_search_ranks_matches_and_forwards_options():
    store = FakeStore(matches=[
        QueryMatch(
            id="doc",
            score=0.8,
            document="Short page.",
            metadata={"source_url": "https://docs.acme.dev", "source_kind": "documentation"},
        ),
        QueryMatch(
            id="code",
            score=0.8,
            document="def register_plugin(name): ...",
            metadata={"source_url": "https://github.com/acme/widgets", "source_kind": "repository"},
        ),
    ])

    results = asyncio.run(
        _retriever(store).search("register plugin code", SearchOptions(max_results=5, threshold=0.5))
    )

    assert [r.source.kind for r in results] == [SourceKind.REPOSITORY, SourceKind.DOCUMENTATION]
    assert store.last_call["top_k"] == 5
    assert store.last_call["threshold"] == 0.5


def test_search_failure_raises_search_error():
    store = FakeStore(error=VectorStoreError("collection missing"))

    with pytest.raises(SearchError) as exc_info:
        asyncio.run(_retriever(store).search("anything"))

    assert exc_info.value.details["cause"] == "VECTOR_STORE_ERROR"
    assert isinstance(exc_info.value.__cause__, VectorStoreError)
