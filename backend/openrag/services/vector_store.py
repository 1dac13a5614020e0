"""
Vector store - ChromaDB collection wrapper with batched, retried upserts.
"""

import asyncio
from typing import Any, Optional

import backoff
import chromadb

from openrag.config import settings
from openrag.errors import VectorStoreError
from openrag.models.vector import QueryMatch, StoreStats, VectorRecord
from openrag.utils.logger import get_logger

logger = get_logger(__name__)


def build_where(conditions: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Combine field conditions into a Chroma ``where`` clause.

    List values become ``$in`` filters; empty lists and None are skipped.
    """
    clauses = []
    for field, value in conditions.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set)):
            values = list(value)
            if not values:
                continue
            clauses.append({field: {"$in": values}})
        else:
            clauses.append({field: value})

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class VectorStore:
    """
    Stores chunk vectors in a cosine-space Chroma collection.

    Blocking Chroma calls run in worker threads. Upserts are sent in batches;
    each batch is retried with exponential backoff before failing with a
    VectorStoreError naming the batch.
    """

    def __init__(
        self,
        collection_name: Optional[str] = None,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
        collection: Optional[Any] = None,
    ):
        self.collection_name = collection_name or settings.vector_collection
        self.batch_size = max(1, batch_size or settings.vector_batch_size)
        self.max_retries = max(1, max_retries or settings.vector_max_retries)
        self.retry_base_seconds = (
            settings.vector_retry_base_seconds if retry_base_seconds is None else retry_base_seconds
        )
        self._client: Optional[chromadb.ClientAPI] = None
        self._collection = collection

    def _get_client(self) -> chromadb.ClientAPI:
        """Get a persistent client when a directory is configured, else an in-memory one."""
        if self._client is None:
            persist_dir = settings.chroma_persist_dir
            if persist_dir:
                persist_dir.mkdir(parents=True, exist_ok=True)
                self._client = chromadb.PersistentClient(path=str(persist_dir))
            else:
                self._client = chromadb.EphemeralClient()
        return self._client

    def get_collection(self):
        """Open (or create) the collection."""
        if self._collection is None:
            self._collection = self._get_client().get_or_create_collection(
                name=self.collection_name, metadata={"hnsw:space": "cosine"}
            )
            logger.info("collection_opened", collection=self.collection_name)
        return self._collection

    async def upsert(self, records: list[VectorRecord]) -> None:
        """Upsert records batch by batch."""
        if not records:
            return

        collection = self.get_collection()
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size

        send = backoff.on_exception(
            backoff.expo,
            Exception,
            max_tries=self.max_retries,
            factor=self.retry_base_seconds,
            jitter=None,
            on_backoff=self._log_retry,
        )(self._upsert_batch)

        for batch_index in range(total_batches):
            start = batch_index * self.batch_size
            batch = records[start:start + self.batch_size]
            try:
                await send(collection, batch)
            except Exception as e:
                logger.error(
                    "upsert_batch_failed",
                    batch=f"{batch_index + 1}/{total_batches}",
                    retries=self.max_retries,
                    error=str(e),
                )
                raise VectorStoreError(
                    f"Failed to upsert batch {batch_index + 1} after {self.max_retries} attempts: {e}",
                    batch_index=batch_index,
                    batch_size=len(batch),
                ) from e

            logger.debug("upsert_batch_ok", batch=f"{batch_index + 1}/{total_batches}", count=len(batch))

    async def _upsert_batch(self, collection, batch: list[VectorRecord]) -> None:
        await asyncio.to_thread(
            collection.upsert,
            ids=[record.id for record in batch],
            embeddings=[record.values for record in batch],
            documents=[record.document for record in batch],
            metadatas=[record.metadata for record in batch],
        )

    @staticmethod
    def _log_retry(details: dict) -> None:
        logger.warning(
            "upsert_batch_retry",
            attempt=details["tries"],
            wait_seconds=round(details.get("wait") or 0.0, 2),
        )

    async def query(
        self,
        vector: list[float],
        top_k: int = 10,
        where: Optional[dict[str, Any]] = None,
        threshold: float = 0.0,
    ) -> list[QueryMatch]:
        """
        Nearest-neighbour query.

        Returns:
            Matches with similarity (1 - cosine distance) at or above the
            threshold, best first.
        """
        collection = self.get_collection()
        try:
            raw = await asyncio.to_thread(
                collection.query,
                query_embeddings=[vector],
                n_results=top_k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to query vectors: {e}",
                details={"top_k": top_k, "where": where, "threshold": threshold},
            ) from e

        # Chroma returns lists of lists (one per query)
        if not raw.get("ids") or not raw["ids"][0]:
            return []

        ids = raw["ids"][0]
        documents = (raw.get("documents") or [[]])[0] or [None] * len(ids)
        metadatas = (raw.get("metadatas") or [[]])[0] or [None] * len(ids)
        distances = (raw.get("distances") or [[]])[0] or [1.0] * len(ids)

        matches = []
        for i, vector_id in enumerate(ids):
            score = 1.0 - float(distances[i])
            if score < threshold:
                continue
            matches.append(
                QueryMatch(
                    id=vector_id,
                    score=score,
                    document=documents[i],
                    metadata=dict(metadatas[i] or {}),
                )
            )

        matches.sort(key=lambda match: match.score, reverse=True)
        return matches

    async def delete(self, ids: list[str]) -> None:
        """Delete vectors by id, in batches."""
        if not ids:
            return
        collection = self.get_collection()
        for start in range(0, len(ids), self.batch_size):
            batch = ids[start:start + self.batch_size]
            try:
                await asyncio.to_thread(collection.delete, ids=batch)
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to delete vectors: {e}",
                    batch_index=start // self.batch_size,
                    batch_size=len(batch),
                ) from e

    async def delete_by_filter(self, where: dict[str, Any]) -> None:
        """Delete every vector matching a ``where`` clause."""
        collection = self.get_collection()
        try:
            await asyncio.to_thread(collection.delete, where=where)
        except Exception as e:
            raise VectorStoreError(f"Failed to delete vectors by filter: {e}", details={"where": where}) from e

    async def list_sources(self) -> list[str]:
        """Distinct source URLs present in the collection."""
        collection = self.get_collection()
        try:
            raw = await asyncio.to_thread(collection.get, include=["metadatas"])
        except Exception as e:
            raise VectorStoreError(f"Failed to list sources: {e}") from e

        sources: list[str] = []
        for metadata in raw.get("metadatas") or []:
            url = (metadata or {}).get("source_url")
            if url and url not in sources:
                sources.append(url)
        return sources

    async def stats(self) -> StoreStats:
        collection = self.get_collection()
        try:
            count = await asyncio.to_thread(collection.count)
        except Exception as e:
            raise VectorStoreError(f"Failed to get collection stats: {e}") from e
        return StoreStats(total_vectors=count, collection=self.collection_name)

    async def health_check(self) -> bool:
        try:
            await self.stats()
            return True
        except VectorStoreError as e:
            logger.warning("vector_store_health_check_failed", error=str(e))
            return False

