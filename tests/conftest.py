"""
Shared test fixtures.

Provides: in-memory KnowledgeStore, deterministic fake embedder,
VectorStore and KnowledgeBase wired to them.
"""

import pytest

from docbase.config import Settings
from docbase.pipeline import KnowledgeBase
from docbase.storage import KnowledgeStore
from docbase.vector_store import VectorStore
from helpers import HashingEmbedder


@pytest.fixture
def settings():
    """Settings for an in-memory store with small limits."""
    return Settings(
        database_path=":memory:",
        min_content_length=20,
        min_chunk_length=50,
        embedding_workers=2,
    )


@pytest.fixture
def store():
    """Initialized in-memory KnowledgeStore."""
    store = KnowledgeStore(":memory:")
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def embedder():
    return HashingEmbedder()


@pytest.fixture
def vector_store(store, embedder):
    return VectorStore(store, embedder, max_workers=2)


@pytest.fixture
def knowledge_base(vector_store, settings):
    return KnowledgeBase(vector_store, settings)
