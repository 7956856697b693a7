"""Configuration for DocBase.

Values come from ``DOCBASE_*`` environment variables or a local ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """DocBase settings."""

    model_config = SettingsConfigDict(
        env_prefix="DOCBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_path: str = Field(
        default="knowledge.db",
        description="SQLite database file (':memory:' for a throwaway store)",
    )

    embedding_provider: Literal["sentence-transformers", "openai"] = Field(
        default="sentence-transformers",
        description="Embedding backend",
    )
    embedding_model: str | None = Field(
        default=None,
        description="Model name; provider default when unset",
    )
    embedding_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-call deadline in seconds for remote embedding providers",
    )
    embedding_workers: int = Field(
        default=4,
        ge=1,
        description="Concurrent embedding calls per ingest",
    )

    chunk_size: int = Field(default=1000, gt=0, description="Maximum chunk length in characters")
    chunk_overlap: int = Field(default=100, ge=0, description="Overlap between chunks in characters")
    min_chunk_length: int = Field(default=50, ge=0, description="Shortest chunk worth keeping")
    min_content_length: int = Field(default=20, ge=1, description="Shortest content accepted for ingest")

    search_limit: int = Field(default=5, gt=0, description="Default number of search hits")
    similarity_threshold: float = Field(
        default=0.7,
        description="Hits must score strictly above this cosine similarity",
    )

    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return Settings()
