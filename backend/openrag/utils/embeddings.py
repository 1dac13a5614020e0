"""
Embedding Service - Handles text embeddings for vector search.

Providers: OpenAI (when an API key is set), Ollama (when selected explicitly),
and a deterministic mock for offline use and tests.
"""

import asyncio
import hashlib
import re
import zlib
from typing import List, Optional

import backoff
import httpx
import numpy as np
from openai import AsyncOpenAI, OpenAIError

from openrag.config import settings
from openrag.errors import ConfigurationError, EmbeddingError
from openrag.utils.logger import get_logger

logger = get_logger(__name__)

PROVIDERS = ("openai", "ollama", "mock")
WHITESPACE = re.compile(r"\s+")
# Keep a truncated text only up to a sentence end found this late in the window
SENTENCE_KEEP_FRACTION = 0.8


class EmbeddingService:
    """Generates embeddings for chunks and queries in rate-limited batches."""

    OPENAI_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    OLLAMA_DIM = 768
    MOCK_DIM = 384

    def __init__(
        self,
        provider: Optional[str] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        requested = settings.resolve_embedding_provider(provider)
        if requested not in PROVIDERS:
            raise ConfigurationError(f"Unknown embedding provider: {requested}", {"provider": requested})

        self.batch_size = batch_size or settings.embedding_batch_size
        self.batch_delay = settings.embedding_batch_delay_seconds if batch_delay is None else batch_delay
        self.max_input_chars = settings.embedding_max_input_chars
        self.openai_client: Optional[AsyncOpenAI] = None
        self.model = settings.openai_embedding_model

        if requested == "openai":
            if not settings.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is required for the openai embedding provider")
            self.openai_client = AsyncOpenAI(
                api_key=settings.openai_api_key, base_url=settings.openai_base_url
            )
            self.dimension = self.OPENAI_DIMENSIONS.get(self.model, 1536)
        elif requested == "ollama":
            self.model = settings.ollama_embed_model
            self.dimension = self.OLLAMA_DIM
        else:
            self.model = "mock"
            self.dimension = self.MOCK_DIM

        self.provider = requested
        logger.info(
            "embeddings_initialized",
            provider=self.provider,
            model=self.model,
            dimension=self.dimension,
        )

    def preprocess_text(self, text: str) -> str:
        """Collapse whitespace and truncate, preferring a sentence end."""
        processed = WHITESPACE.sub(" ", text).strip()
        if len(processed) <= self.max_input_chars:
            return processed

        processed = processed[: self.max_input_chars]
        last_sentence_end = max(processed.rfind("."), processed.rfind("!"), processed.rfind("?"))
        if last_sentence_end > self.max_input_chars * SENTENCE_KEEP_FRACTION:
            processed = processed[: last_sentence_end + 1]
        return processed

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts in order, one provider call per batch.

        Raises:
            EmbeddingError: carrying the failed batch's index and size
        """
        if not texts:
            return []

        prepared = [self.preprocess_text(text) for text in texts]
        total_batches = (len(prepared) + self.batch_size - 1) // self.batch_size
        embeddings: List[List[float]] = []

        for batch_index in range(total_batches):
            start = batch_index * self.batch_size
            batch = prepared[start:start + self.batch_size]

            try:
                vectors = await self._embed_batch(batch)
            except Exception as e:
                error_detail = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
                logger.error(
                    "embedding_batch_failed",
                    provider=self.provider,
                    batch=f"{batch_index + 1}/{total_batches}",
                    error=error_detail,
                )
                raise EmbeddingError(
                    f"Failed to generate embeddings for batch {batch_index + 1}: {error_detail}",
                    batch_index=batch_index,
                    batch_size=len(batch),
                ) from e

            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Expected {len(batch)} embeddings but received {len(vectors)}",
                    batch_index=batch_index,
                    batch_size=len(batch),
                )

            embeddings.extend(vectors)
            logger.debug(
                "embedding_batch_ok",
                batch=f"{batch_index + 1}/{total_batches}",
                texts=len(batch),
            )

            # Courtesy delay between provider calls
            if batch_index < total_batches - 1 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        return embeddings

    async def embed_query(self, query: str) -> List[float]:
        """Embed a single search query."""
        vectors = await self.embed_many([query])
        return vectors[0]

    async def health_check(self) -> bool:
        try:
            await self.embed_query("test")
            return True
        except EmbeddingError as e:
            logger.warning("embedding_health_check_failed", error=str(e))
            return False

    async def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        if self.provider == "openai":
            return await self._get_openai_embeddings(texts)
        if self.provider == "ollama":
            return await self._get_ollama_embeddings(texts)
        return await asyncio.to_thread(self._get_mock_embeddings, texts)

    def _get_mock_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Generate deterministic fake embeddings."""
        embeddings = []
        dim = self.dimension
        token_cap = 256

        for text in texts:
            vector = np.zeros(dim, dtype=np.float32)
            tokens = text.lower().split()

            if not tokens:
                tokens = [hashlib.sha256(text.encode("utf-8", errors="ignore")).hexdigest()]

            for token in tokens[:token_cap]:
                token_bytes = token.encode("utf-8", errors="ignore")
                h = zlib.crc32(token_bytes)
                idx = h % dim
                sign = 1.0 if (h & 1) else -1.0
                vector[idx] += sign

            norm = np.linalg.norm(vector)
            if norm > 0:
                vector = vector / norm

            embeddings.append(vector.tolist())
        return embeddings

    async def _get_ollama_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings from a local Ollama server."""
        async with httpx.AsyncClient(timeout=httpx.Timeout(300.0, connect=10.0)) as client:
            response = await client.post(
                f"{settings.ollama_base_url}/api/embed",
                json={"model": self.model, "input": texts},
            )
            response.raise_for_status()
            return response.json()["embeddings"]

    @backoff.on_exception(backoff.expo, OpenAIError, max_tries=3)
    async def _get_openai_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings from OpenAI API."""
        response = await self.openai_client.embeddings.create(
            input=texts, model=self.model, encoding_format="float"
        )
        return [data.embedding for data in response.data]

