"""Ingest and retrieval pipeline: request -> chunks -> vector store."""

import logging
from typing import Iterable, Optional, Union

from docbase.chunkers import SentenceChunker
from docbase.config import Settings, get_settings
from docbase.exceptions import DocBaseError, DocumentNotFoundError, SearchError, ValidationError
from docbase.models import (
    BatchIngestReport,
    Document,
    DocumentInput,
    DocumentPreview,
    FileSource,
    IngestFailure,
    IngestRequest,
    IngestResult,
    Retrieval,
    SearchResult,
    UrlSource,
)
from docbase.storage import KnowledgeStore
from docbase.vector_store import VectorStore

logger = logging.getLogger(__name__)


class KnowledgeBase:
    """Front door for ingesting content and querying it.

    Validates requests, chunks their content and hands the result to a
    VectorStore. Construct it with an explicit store, or use
    ``from_settings`` to wire one from configuration.
    """

    def __init__(self, vector_store: VectorStore, settings: Optional[Settings] = None):
        self.vector_store = vector_store
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "KnowledgeBase":
        """Open the configured database and embedding provider."""
        from docbase.embedders import create_embedder

        settings = settings or get_settings()
        store = KnowledgeStore(settings.database_path)
        store.initialize()
        vector_store = VectorStore(
            store,
            create_embedder(settings),
            max_workers=settings.embedding_workers,
        )
        return cls(vector_store, settings)

    def close(self) -> None:
        self.vector_store.store.close()

    def validate(self, request: IngestRequest) -> str:
        """Check a request and return the title to store it under.

        Raises:
            ValidationError: describing the first problem found
        """
        content = request.content or ""
        if not content.strip():
            raise ValidationError("Content is required", field="content")
        if len(content.strip()) < self.settings.min_content_length:
            raise ValidationError(
                f"Content must be at least {self.settings.min_content_length} characters long",
                field="content",
            )
        if request.chunk_size <= 0:
            raise ValidationError("chunk_size must be positive", field="chunk_size")
        if not 0 <= request.chunk_overlap < request.chunk_size:
            raise ValidationError(
                "chunk_overlap must be between 0 and chunk_size", field="chunk_overlap"
            )

        title = (request.title or "").strip()
        source = request.source
        if isinstance(source, UrlSource):
            if not source.uri.strip():
                raise ValidationError("URL sources need a uri", field="uri")
            return title or source.uri.strip()
        if isinstance(source, FileSource):
            if not source.file_name.strip():
                raise ValidationError("File sources need a file name", field="file_name")
            if source.size_bytes < 0:
                raise ValidationError("File size must not be negative", field="size_bytes")
        if not title:
            raise ValidationError("Title is required", field="title")
        return title

    def chunk(self, request: IngestRequest) -> list[str]:
        """Split a request's content with its chunk size and overlap."""
        chunker = SentenceChunker(
            max_length=request.chunk_size,
            overlap=request.chunk_overlap,
            min_chunk_length=min(self.settings.min_chunk_length, request.chunk_size // 4),
        )
        return chunker.chunk(request.content)

    def ingest(self, request: IngestRequest) -> IngestResult:
        """Validate, chunk and store one request.

        Raises:
            ValidationError: the request was rejected before any side effect
            StorageError: nothing could be stored
        """
        title = self.validate(request)
        chunks = self.chunk(request)
        if not chunks:
            raise ValidationError("No valid chunks could be created from the content")

        logger.info(f"Chunked {request.name!r} into {len(chunks)} chunks")

        source = request.source
        if isinstance(source, UrlSource):
            source = UrlSource(source.uri.strip())

        return self.vector_store.ingest(
            DocumentInput(
                title=title,
                content=request.content,
                chunks=chunks,
                source=source,
                metadata=dict(request.metadata),
            )
        )

    def ingest_many(
        self, items: Iterable[Union[IngestRequest, IngestFailure]]
    ) -> BatchIngestReport:
        """Ingest several inputs, collecting per-item failures.

        Items that already failed upstream (e.g. undecodable files) are
        carried into the report as errors.
        """
        report = BatchIngestReport()
        for item in items:
            if isinstance(item, IngestFailure):
                report.errors.append(item)
                continue
            try:
                report.results.append(self.ingest(item))
            except DocBaseError as e:
                logger.error(f"Failed to ingest {item.name!r}: {e}")
                report.errors.append(IngestFailure(name=item.name, error=e.message))

        logger.info(report.message)
        return report

    def get_document(self, document_id: int) -> Document:
        """Fetch a stored document.

        Raises:
            DocumentNotFoundError: no document has this id
        """
        document = self.vector_store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def search(
        self,
        query: str,
        limit: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
    ) -> list[SearchResult]:
        """Semantic search with configured defaults."""
        return self.vector_store.search(
            query,
            limit=self.settings.search_limit if limit is None else limit,
            similarity_threshold=(
                self.settings.similarity_threshold
                if similarity_threshold is None
                else similarity_threshold
            ),
        )

    def full_text_search(self, query: str, limit: int = 10) -> list[DocumentPreview]:
        return self.vector_store.full_text_search(query, limit=limit)

    def retrieve(
        self,
        query: str,
        limit: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
    ) -> Retrieval:
        """Semantic search, falling back to full-text when it finds nothing or fails."""
        try:
            hits = self.search(query, limit=limit, similarity_threshold=similarity_threshold)
        except SearchError as e:
            logger.warning(f"Semantic search unavailable, using full-text search: {e}")
            hits = []
        if hits:
            return Retrieval(mode="semantic", hits=hits)

        documents = self.full_text_search(
            query, limit=self.settings.search_limit if limit is None else limit
        )
        return Retrieval(mode="full_text", documents=documents)
