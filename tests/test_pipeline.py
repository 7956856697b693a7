"""
Tests for the KnowledgeBase ingest and retrieval pipeline.

Covers: request validation, title defaults, chunking options,
batch reports, semantic retrieval with full-text fallback.
"""

from typing import get_type_hints

import pytest

from docbase.config import Settings
from docbase.exceptions import DocumentNotFoundError, ValidationError
from docbase.models import (
    DocumentPreview,
    FileSource,
    IngestFailure,
    IngestRequest,
    SearchResult,
    SourceKind,
    UrlSource,
)
from docbase.pipeline import KnowledgeBase
from docbase.vector_store import VectorStore
from helpers import FailingEmbedder, HashingEmbedder, count_rows, sentences

BODY = "Photosynthesis turns light into chemical energy inside plant leaves."


class TestValidation:
    """Test suite for request validation."""

    @pytest.mark.parametrize(
        "request_kwargs, field",
        [
            ({"content": "", "title": "T"}, "content"),
            ({"content": "   \n ", "title": "T"}, "content"),
            ({"content": "too short", "title": "T"}, "content"),
            ({"content": BODY, "title": ""}, "title"),
            ({"content": BODY, "title": "   "}, "title"),
            ({"content": BODY, "title": "T", "chunk_size": 0}, "chunk_size"),
            ({"content": BODY, "title": "T", "chunk_overlap": -1}, "chunk_overlap"),
            ({"content": BODY, "title": "T", "chunk_size": 100, "chunk_overlap": 100}, "chunk_overlap"),
            ({"content": BODY, "source": UrlSource("  ")}, "uri"),
            ({"content": BODY, "title": "T", "source": FileSource("", "txt", 10)}, "file_name"),
            ({"content": BODY, "title": "T", "source": FileSource("a.txt", "txt", -1)}, "size_bytes"),
        ],
    )
    def test_invalid_requests_rejected_without_side_effects(
        self, knowledge_base, store, embedder, request_kwargs, field
    ):
        """Test each invalid request raises ValidationError and touches nothing."""
        with pytest.raises(ValidationError) as exc_info:
            knowledge_base.ingest(IngestRequest(**request_kwargs))

        assert exc_info.value.field == field
        assert count_rows(store, "documents") == 0
        assert embedder.calls == []

    def test_url_title_defaults_to_uri(self, knowledge_base):
        """Test URL sources without a title are stored under their URI."""
        request = IngestRequest(content=BODY, source=UrlSource(" https://example.com/a "))

        result = knowledge_base.ingest(request)

        document = knowledge_base.vector_store.get_document(result.document_id)
        assert result.title == "https://example.com/a"
        assert document.uri == "https://example.com/a"
        assert document.source_kind is SourceKind.URL

    def test_title_is_trimmed(self, knowledge_base):
        """Test surrounding whitespace is removed from titles."""
        result = knowledge_base.ingest(IngestRequest(content=BODY, title="  Leaves  "))

        assert result.title == "Leaves"


class TestIngest:
    """Test suite for KnowledgeBase.ingest."""

    def test_three_short_sentences_give_three_chunks(self, knowledge_base, store):
        """Test small chunk sizes split on sentence boundaries."""
        request = IngestRequest(
            content="Sentence one. Sentence two. Sentence three.",
            title="T",
            chunk_size=20,
            chunk_overlap=5,
        )

        result = knowledge_base.ingest(request)

        assert result.chunks_created == 3
        assert [c.content for c in store.get_chunks(result.document_id)] == [
            "Sentence one.",
            "Sentence two.",
            "Sentence three.",
        ]

    def test_short_document_is_a_single_chunk(self, knowledge_base):
        """Test content under chunk_size is stored as one chunk."""
        result = knowledge_base.ingest(IngestRequest(content=sentences(3), title="Small"))

        assert result.chunks_created == 1
        assert result.total_chunks_attempted == 1

    def test_long_document_chunks_respect_size(self, knowledge_base, store):
        """Test every stored chunk fits the requested chunk size."""
        request = IngestRequest(content=sentences(60), title="Long", chunk_size=300, chunk_overlap=60)

        result = knowledge_base.ingest(request)

        chunks = store.get_chunks(result.document_id)
        assert result.chunks_created == len(chunks) > 1
        assert all(len(c.content) <= 300 for c in chunks)

    def test_file_metadata_is_stored(self, knowledge_base):
        """Test file sources keep name, type and size on the document."""
        request = IngestRequest(
            content=BODY,
            title="notes.md",
            source=FileSource(file_name="notes.md", file_type="md", size_bytes=len(BODY)),
            metadata={"folder": "inbox"},
        )

        result = knowledge_base.ingest(request)

        document = knowledge_base.vector_store.get_document(result.document_id)
        assert document.file_name == "notes.md"
        assert document.file_type == "md"
        assert document.file_size_bytes == len(BODY)
        assert document.metadata == {"folder": "inbox"}


class TestIngestMany:
    """Test suite for batch ingest reports."""

    def test_partial_success(self, knowledge_base):
        """Test one bad item does not stop the others and is reported."""
        report = knowledge_base.ingest_many(
            [
                IngestRequest(content=BODY, title="good"),
                IngestRequest(content="tiny", title="short"),
                IngestFailure(name="image.bin", error="File is not UTF-8 text"),
            ]
        )

        assert report.success is True
        assert report.partial is True
        assert report.failed is False
        assert [r.title for r in report.results] == ["good"]
        assert [e.name for e in report.errors] == ["short", "image.bin"]
        assert report.message == "Successfully processed 1 item(s), 2 item(s) failed"

    def test_everything_failing(self, knowledge_base):
        """Test a batch with no successes is marked failed."""
        report = knowledge_base.ingest_many([IngestRequest(content="", title="empty")])

        assert report.failed is True
        assert report.success is False
        assert report.to_dict()["errors"] == [{"name": "empty", "error": "Content is required"}]

    def test_everything_succeeding(self, knowledge_base):
        """Test the message omits failures when there are none."""
        report = knowledge_base.ingest_many(
            [IngestRequest(content=BODY, title="a"), IngestRequest(content=sentences(2), title="b")]
        )

        assert report.partial is False
        assert report.message == "Successfully processed 2 item(s)"

    def test_storage_failures_are_collected(self, store, settings):
        """Test an ingest that stores no chunks is reported, not raised."""
        knowledge_base = KnowledgeBase(VectorStore(store, FailingEmbedder()), settings)

        report = knowledge_base.ingest_many([IngestRequest(content=BODY, title="doomed")])

        assert report.failed is True
        assert report.errors[0].error == "no chunks created"
        assert count_rows(store, "documents") == 0


class TestRetrieval:
    """Test suite for search through the KnowledgeBase."""

    def test_search_uses_configured_defaults(self, knowledge_base):
        """Test limit and threshold come from settings when omitted."""
        knowledge_base.settings = Settings(
            database_path=":memory:", search_limit=1, similarity_threshold=0.0
        )
        knowledge_base.ingest(IngestRequest(content=BODY, title="a"))
        knowledge_base.ingest(IngestRequest(content=BODY + " Again.", title="b"))

        assert len(knowledge_base.search(BODY)) == 1
        assert len(knowledge_base.search(BODY, limit=5)) == 2

    def test_semantic_hits_preferred(self, knowledge_base):
        """Test retrieve returns semantic hits when any pass the threshold."""
        knowledge_base.ingest(IngestRequest(content=BODY, title="Leaves"))

        retrieval = knowledge_base.retrieve(BODY)

        assert retrieval.mode == "semantic"
        assert retrieval.hits[0].document_title == "Leaves"
        assert retrieval.documents == []

    def test_falls_back_to_full_text_when_nothing_similar(self, knowledge_base):
        """Test keyword search answers when no chunk clears the threshold."""
        knowledge_base.ingest(IngestRequest(content=BODY, title="Leaves"))

        retrieval = knowledge_base.retrieve("photosynthesis", similarity_threshold=1.01)

        assert retrieval.mode == "full_text"
        assert [d.title for d in retrieval.documents] == ["Leaves"]
        assert bool(retrieval) is True

    def test_falls_back_to_full_text_when_search_fails(self, knowledge_base):
        """Test an embedding outage degrades to keyword search."""
        knowledge_base.ingest(IngestRequest(content=BODY, title="Leaves"))
        knowledge_base.vector_store.embedder = FailingEmbedder()

        retrieval = knowledge_base.retrieve("chemical energy")

        assert retrieval.mode == "full_text"
        assert [d.title for d in retrieval.documents] == ["Leaves"]

    def test_nothing_found(self, knowledge_base):
        """Test an empty knowledge base yields a falsy retrieval."""
        retrieval = knowledge_base.retrieve("anything")

        assert not retrieval


class TestFromSettings:
    """Test suite for wiring a KnowledgeBase from configuration."""

    def test_opens_configured_database(self, tmp_path, monkeypatch):
        """Test from_settings creates the schema and uses the configured embedder."""
        monkeypatch.setattr("docbase.embedders.create_embedder", lambda settings: HashingEmbedder())
        settings = Settings(database_path=str(tmp_path / "kb.db"), embedding_workers=3)

        knowledge_base = KnowledgeBase.from_settings(settings)
        try:
            result = knowledge_base.ingest(IngestRequest(content=BODY, title="Persisted"))
            assert knowledge_base.vector_store.max_workers == 3
        finally:
            knowledge_base.close()

        assert (tmp_path / "kb.db").exists()
        reopened = KnowledgeBase.from_settings(settings)
        try:
            assert reopened.vector_store.get_document(result.document_id).title == "Persisted"
        finally:
            reopened.close()


class TestGetDocument:
    """Test suite for document lookup."""

    def test_returns_stored_document(self, knowledge_base):
        """Test a stored document is returned with its chunk count."""
        result = knowledge_base.ingest(IngestRequest(content=BODY, title="Leaves"))

        document = knowledge_base.get_document(result.document_id)

        assert document.title == "Leaves"
        assert document.chunk_count == 1

    def test_missing_document_raises(self, knowledge_base):
        """Test unknown ids raise DocumentNotFoundError."""
        with pytest.raises(DocumentNotFoundError) as exc_info:
            knowledge_base.get_document(404)

        assert exc_info.value.document_id == 404


class TestSignatures:
    """Test suite for the public search signatures."""

    def test_search_methods_declare_result_types(self):
        """Test search methods advertise what they return."""
        assert get_type_hints(KnowledgeBase.search)["return"] == list[SearchResult]
        assert get_type_hints(KnowledgeBase.full_text_search)["return"] == list[DocumentPreview]
