"""
Shared fixtures: an in-memory stand-in for a Chroma collection and chunk origins.
"""

import numpy as np
import pytest

from openrag.models.chunk import ChunkOrigin, ContentCategory, SourceKind


def _matches(metadata: dict, where) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(_matches(metadata, clause) for clause in where["$and"])
    field, condition = next(iter(where.items()))
    if isinstance(condition, dict) and "$in" in condition:
        return metadata.get(field) in condition["$in"]
    return metadata.get(field) == condition


class InMemoryCollection:
    """Implements the slice of the Chroma collection API the vector store uses."""

    def __init__(self, fail_times: int = 0):
        self.rows: dict[str, tuple] = {}
        self.fail_times = fail_times
        self.upsert_calls: list[list[str]] = []
        self.last_where = None

    def upsert(self, ids, embeddings, documents, metadatas):
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("transient upsert failure")
        self.upsert_calls.append(list(ids))
        for vector_id, embedding, document, metadata in zip(ids, embeddings, documents, metadatas):
            self.rows[vector_id] = (np.asarray(embedding, dtype=float), document, dict(metadata))

    def query(self, query_embeddings, n_results, where=None, include=None):
        self.last_where = where
        query = np.asarray(query_embeddings[0], dtype=float)
        scored = []
        for vector_id, (embedding, document, metadata) in self.rows.items():
            if not _matches(metadata, where):
                continue
            denominator = np.linalg.norm(query) * np.linalg.norm(embedding)
            cosine = float(query @ embedding / denominator) if denominator else 0.0
            scored.append((1.0 - cosine, vector_id, document, metadata))
        scored.sort(key=lambda row: row[0])
        top = scored[:n_results]
        return {
            "ids": [[row[1] for row in top]],
            "documents": [[row[2] for row in top]],
            "metadatas": [[row[3] for row in top]],
            "distances": [[row[0] for row in top]],
        }

    def delete(self, ids=None, where=None):
        if ids is not None:
            for vector_id in ids:
                self.rows.pop(vector_id, None)
            return
        for vector_id in [key for key, row in self.rows.items() if _matches(row[2], where)]:
            del self.rows[vector_id]

    def get(self, include=None):
        return {
            "ids": list(self.rows),
            "metadatas": [row[2] for row in self.rows.values()],
        }

    def count(self):
        return len(self.rows)


@pytest.fixture
def collection():
    return InMemoryCollection()


def make_origin(
    language="javascript",
    category=ContentCategory.CODE,
    kind=SourceKind.REPOSITORY,
    path="src/app.js",
    title=None,
):
    return ChunkOrigin(
        base_id="base",
        source_url="https://github.com/acme/widgets",
        source_kind=kind,
        source_path=path,
        source_title=title,
        category=category,
        language=language,
    )


@pytest.fixture
def code_origin():
    return make_origin()
