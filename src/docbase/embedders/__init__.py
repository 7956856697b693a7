"""Embedding providers for vector generation."""

from docbase.config import Settings
from docbase.embedders.sentence_transformer import SentenceTransformerEmbedder
from docbase.protocols import EmbeddingProvider


def create_embedder(settings: Settings) -> EmbeddingProvider:
    """Build the embedding provider selected in settings."""
    if settings.embedding_provider == "openai":
        from docbase.embedders.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(
            model_name=settings.embedding_model,
            timeout=settings.embedding_timeout,
        )
    return SentenceTransformerEmbedder(settings.embedding_model)


__all__ = ["SentenceTransformerEmbedder", "create_embedder"]
