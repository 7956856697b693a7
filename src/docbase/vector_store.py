"""Embedding-backed ingest and similarity search over a KnowledgeStore."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np

from docbase.exceptions import EmbeddingError, SearchError, StorageError
from docbase.models import (
    Chunk,
    Document,
    DocumentInput,
    DocumentPreview,
    IngestResult,
    SearchResult,
    SourceKind,
)
from docbase.protocols import EmbeddingProvider
from docbase.storage import KnowledgeStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.7


class VectorStore:
    """Owns documents and chunks: ingest (chunk -> embed -> persist) and search.

    Args:
        store: Persistence handle, already initialized
        embedder: Embedding provider; the same one must be used for ingest and search
        max_workers: Upper bound on concurrent embedding calls within one ingest
    """

    def __init__(
        self,
        store: KnowledgeStore,
        embedder: EmbeddingProvider,
        max_workers: int = 4,
    ):
        self.store = store
        self.embedder = embedder
        self.max_workers = max(1, max_workers)
        self._uri_locks: dict[str, threading.Lock] = {}
        self._uri_lock_users: dict[str, int] = {}
        self._uri_locks_guard = threading.Lock()

    @contextmanager
    def _uri_lock(self, uri: Optional[str]) -> Iterator[None]:
        """Serialize ingests that target the same URI.

        A URI's lock lives only while some ingest holds or waits on it.
        """
        if not uri:
            yield
            return
        with self._uri_locks_guard:
            lock = self._uri_locks.setdefault(uri, threading.Lock())
            self._uri_lock_users[uri] = self._uri_lock_users.get(uri, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._uri_locks_guard:
                self._uri_lock_users[uri] -= 1
                if self._uri_lock_users[uri] == 0:
                    del self._uri_lock_users[uri]
                    del self._uri_locks[uri]

    def _check_embedding_model(self) -> Optional[str]:
        """Name of the model that embedded the stored chunks, if it differs from ours."""
        recorded = self.store.get_metadata("embedding_model")
        if recorded is not None and recorded != self.embedder.model_name:
            return recorded
        return None

    def ingest(self, doc: DocumentInput) -> IngestResult:
        """Persist a document and an embedding for each of its chunks.

        A document whose URI is already stored replaces the old one. Chunks
        that fail to embed or persist are logged and skipped; if none
        survive, or anything else goes wrong while storing them, the new
        document is removed again.

        Returns:
            IngestResult with the new document id and the number of chunks stored

        Raises:
            StorageError: the document row could not be created, no chunk was
                stored, or the store holds embeddings from another model
        """
        with self._uri_lock(doc.uri):
            recorded = self._check_embedding_model()
            if recorded is not None:
                raise StorageError(
                    "Stored embeddings come from a different model",
                    operation="ingest",
                    details={"stored_model": recorded, "model": self.embedder.model_name},
                )
            if self.store.get_metadata("embedding_model") is None:
                self.store.set_metadata("embedding_model", self.embedder.model_name)

            document_id = self.store.replace_document(doc)
            logger.debug(f"Inserted document {document_id} ({doc.title!r})")

            try:
                chunks_created = self._store_chunks(document_id, doc.chunks)
            except BaseException:
                self.store.delete_document(document_id)
                logger.warning(f"Ingest of {doc.title!r} interrupted; removed document {document_id}")
                raise

            if chunks_created == 0:
                self.store.delete_document(document_id)
                logger.warning(f"No chunks stored for {doc.title!r}; removed document {document_id}")
                raise StorageError(
                    "no chunks created",
                    operation="ingest",
                    details={"title": doc.title, "chunks_attempted": len(doc.chunks)},
                )

        logger.info(
            f"Ingested {doc.title!r} as document {document_id}: "
            f"{chunks_created}/{len(doc.chunks)} chunks"
        )
        return IngestResult(
            document_id=document_id,
            title=doc.title,
            chunks_created=chunks_created,
            total_chunks_attempted=len(doc.chunks),
        )

    def _store_chunks(self, document_id: int, chunks: list[str]) -> int:
        """Embed and persist chunks, returning how many were stored."""
        stored = 0
        for index, text, embedding in self._embed_chunks(chunks):
            if embedding is None:
                continue
            try:
                self.store.insert_chunk(document_id, text, embedding, index)
            except (StorageError, ValueError, TypeError) as e:
                logger.warning(f"Failed to store chunk {index} of document {document_id}: {e}")
                continue
            stored += 1
        return stored

    def _embed_chunks(
        self, chunks: list[str]
    ) -> Iterator[tuple[int, str, Optional[np.ndarray]]]:
        """Embed non-blank chunks concurrently, yielding in original order.

        Every attempt finishes before the first result is yielded. A failed
        chunk yields None as its embedding and does not affect the others.
        """
        pending: list[tuple[int, str, Future]] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for index, text in enumerate(chunks):
                if not text.strip():
                    continue
                pending.append((index, text, executor.submit(self.embedder.embed, text)))

        for index, text, future in pending:
            try:
                embedding = future.result()
            except Exception as e:
                logger.warning(f"Failed to embed chunk {index}: {e}")
                embedding = None
            yield index, text, embedding

    def search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        similarity_threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """Find the chunks most similar to a query.

        Only chunks scoring strictly above ``similarity_threshold`` are
        returned, best first, at most ``limit`` of them.

        Raises:
            SearchError: the query could not be embedded or compared, or the
                stored embeddings come from another model
        """
        if not query or not query.strip():
            return []

        recorded = self._check_embedding_model()
        if recorded is not None:
            raise SearchError(
                "Stored embeddings come from a different model",
                details={"stored_model": recorded, "model": self.embedder.model_name},
            )

        try:
            query_embedding = np.asarray(self.embedder.embed(query), dtype=np.float32).ravel()
        except EmbeddingError as e:
            raise SearchError(f"Vector search failed: {e.message}", details=e.details) from e

        ids, matrix = self.store.load_embeddings()
        if ids.size == 0:
            return []
        if matrix.shape[1] != query_embedding.size:
            raise SearchError(
                "Query embedding dimension does not match stored embeddings",
                details={"expected": matrix.shape[1], "got": query_embedding.size},
            )

        scores = self._cosine_similarities(matrix, query_embedding)
        candidates = np.flatnonzero(scores > similarity_threshold)
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:limit]

        rows = self.store.get_chunk_hits([int(ids[i]) for i in ranked])
        results = []
        for i in ranked:
            row = rows.get(int(ids[i]))
            if row is None:  # deleted since embeddings were loaded
                continue
            results.append(
                SearchResult(
                    chunk_id=row["chunk_id"],
                    document_id=row["document_id"],
                    content=row["content"],
                    document_title=row["document_title"],
                    document_uri=row["document_uri"],
                    similarity_score=float(scores[i]),
                )
            )
        return results

    def full_text_search(self, query: str, limit: int = 10) -> list[DocumentPreview]:
        """Keyword search over whole documents."""
        if not query or not query.strip():
            return []
        return self.store.full_text_search(query, limit=limit)

    def get_document(self, document_id: int) -> Optional[Document]:
        return self.store.get_document(document_id)

    def list_documents(
        self,
        limit: int = 50,
        offset: int = 0,
        source_kind: Optional[SourceKind] = None,
    ) -> list[Document]:
        return self.store.list_documents(limit=limit, offset=offset, source_kind=source_kind)

    def get_chunks(self, document_id: int) -> list[Chunk]:
        return self.store.get_chunks(document_id)

    def stats(self) -> dict:
        return self.store.stats()

    def delete_document(self, document_id: int) -> bool:
        """Delete a document and, by cascade, all its chunks."""
        deleted = self.store.delete_document(document_id)
        if deleted:
            logger.info(f"Deleted document {document_id}")
        return deleted

    @staticmethod
    def _cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        """Cosine similarity of every row against the query; zero vectors score 0."""
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.zeros(len(matrix), dtype=np.float64)
        nonzero = norms > 0
        scores[nonzero] = dots[nonzero] / norms[nonzero]
        return scores
