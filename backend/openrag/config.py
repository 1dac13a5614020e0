"""
Configuration settings for OpenRAG.
Loads from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


def _resolve_project_root() -> Path:
    """Resolve repo root for local and installed layouts."""
    current = Path(__file__).resolve()
    backend_root = current.parents[1]
    if backend_root.name == "backend":
        return backend_root.parent
    return backend_root


PROJECT_ROOT = _resolve_project_root()

# Explicitly load .env from project root
env_path = PROJECT_ROOT / ".env"
load_dotenv(env_path)

# OpenAI accepts at most this many inputs per embeddings request
MAX_EMBEDDING_BATCH_SIZE = 100


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=env_path,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # App info
    app_version: str = "0.1.0"
    debug: bool = False

    # Chunking
    max_chunk_size: int = Field(default=8192, validation_alias="MAX_CHUNK_SIZE")
    chunk_overlap: int = Field(default=200, validation_alias="CHUNK_OVERLAP")
    min_section_chars: int = 50
    max_stored_content_chars: int = 40000

    # Embeddings
    embedding_provider: str = Field(default="auto", validation_alias="EMBEDDING_PROVIDER")
    openai_api_key: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, validation_alias="OPENAI_BASE_URL")
    openai_embedding_model: str = "text-embedding-3-small"
    ollama_base_url: str = Field(default="http://localhost:11434", validation_alias="OLLAMA_BASE_URL")
    ollama_embed_model: str = Field(default="nomic-embed-text", validation_alias="OLLAMA_EMBED_MODEL")
    embedding_batch_size: int = Field(default=100, validation_alias="EMBEDDING_BATCH_SIZE")
    embedding_batch_delay_seconds: float = 0.1
    embedding_max_input_chars: int = 8000

    # Vector store
    vector_collection: str = Field(default="openrag", validation_alias="VECTOR_COLLECTION")
    chroma_persist_dir: Optional[Path] = Field(default=None, validation_alias="CHROMA_PERSIST_DIR")
    vector_batch_size: int = Field(default=100, validation_alias="VECTOR_BATCH_SIZE")
    vector_max_retries: int = 3
    vector_retry_base_seconds: float = 1.0

    # Retrieval
    search_top_k: int = 10
    search_threshold: float = 0.7
    max_results_per_source: int = 3
    min_diversified_results: int = 10

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @field_validator("embedding_batch_size")
    @classmethod
    def _clamp_embedding_batch(cls, value: int) -> int:
        return max(1, min(value, MAX_EMBEDDING_BATCH_SIZE))

    @model_validator(mode="after")
    def _check_chunk_bounds(self) -> "Settings":
        if self.max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.max_chunk_size:
            raise ValueError("chunk_overlap must be in [0, max_chunk_size)")
        return self

    def resolve_embedding_provider(self, requested: Optional[str] = None) -> str:
        """Pick the embedding provider; "auto" means OpenAI with a key, mock without."""
        provider = (requested or self.embedding_provider).lower()
        if provider == "auto":
            return "openai" if self.openai_api_key else "mock"
        return provider


# Global settings instance
settings = Settings()
