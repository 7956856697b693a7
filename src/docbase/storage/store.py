"""SQLite-backed storage for documents, chunks and embeddings."""

import json
import re
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

import numpy as np

from docbase.exceptions import StorageError
from docbase.models import Chunk, Document, DocumentInput, DocumentPreview, FileSource, SourceKind
from docbase.storage.schema import SCHEMA

PREVIEW_LENGTH = 300

_DOCUMENT_COLUMNS = """
    d.id, d.uri, d.title, d.content, d.metadata, d.file_name, d.file_type,
    d.file_size_bytes, d.source_kind, d.created_at, d.updated_at,
    (SELECT COUNT(*) FROM chunks c WHERE c.document_id = d.id) AS chunk_count
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class KnowledgeStore:
    """SQLite-backed storage for the knowledge base.

    One connection is opened lazily and shared; statements are serialized
    with a lock so the store can be handed to worker threads. Use
    ``":memory:"`` as the path for a throwaway store.
    """

    def __init__(self, path: Path | str):
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._conn = conn
        return self._conn

    @contextmanager
    def connection(self, operation: str = "query") -> Iterator[sqlite3.Connection]:
        """Context manager for one transaction.

        Commits on success, rolls back on any error. SQLite errors are
        re-raised as StorageError tagged with ``operation``.
        """
        with self._lock:
            conn = self._connect()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(str(e), operation=operation) from e
            except Exception:
                conn.rollback()
                raise

    def initialize(self) -> None:
        """Create schema if not exists."""
        with self.connection("initialize") as conn:
            conn.executescript(SCHEMA)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # Write methods

    def replace_document(self, doc: DocumentInput) -> int:
        """Insert a document row, first deleting any document with the same URI.

        Both steps run in one transaction, so the old document is fully
        gone before the new one exists.

        Returns:
            The new document's id
        """
        source = doc.source
        file_name = file_type = file_size = None
        if isinstance(source, FileSource):
            file_name, file_type, file_size = source.file_name, source.file_type, source.size_bytes

        now = _now()
        with self.connection("insert_document") as conn:
            if doc.uri:
                conn.execute("DELETE FROM documents WHERE uri = ?", (doc.uri,))

            cursor = conn.execute(
                """INSERT INTO documents
                   (uri, title, content, metadata, file_name, file_type,
                    file_size_bytes, source_kind, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    doc.uri,
                    doc.title,
                    doc.content,
                    json.dumps(doc.metadata),
                    file_name,
                    file_type,
                    file_size,
                    source.kind.value,
                    now,
                    now,
                ),
            )
            if cursor.lastrowid is None:
                raise StorageError("Failed to insert document", operation="insert_document")
            return cursor.lastrowid

    def insert_chunk(
        self,
        document_id: int,
        content: str,
        embedding: np.ndarray,
        chunk_index: int,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Store one chunk with its embedding and return its id.

        The first stored embedding fixes the store's dimension; later
        embeddings of a different length are rejected.
        """
        vector = np.asarray(embedding, dtype=np.float32).ravel()
        with self.connection("insert_chunk") as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = 'embedding_dimension'"
            ).fetchone()
            if row is None:
                conn.execute(
                    "INSERT INTO metadata (key, value) VALUES ('embedding_dimension', ?)",
                    (str(vector.size),),
                )
            elif int(row["value"]) != vector.size:
                raise StorageError(
                    "Embedding dimension mismatch",
                    operation="insert_chunk",
                    details={"expected": int(row["value"]), "got": vector.size},
                )

            cursor = conn.execute(
                """INSERT INTO chunks
                   (document_id, content, embedding, chunk_index, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    document_id,
                    content,
                    vector.tobytes(),
                    chunk_index,
                    json.dumps(metadata or {}),
                    _now(),
                ),
            )
            return cursor.lastrowid

    def delete_document(self, document_id: int) -> bool:
        """Delete a document; its chunks go with it."""
        with self.connection("delete_document") as conn:
            cursor = conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            return cursor.rowcount > 0

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.connection("set_metadata") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    # Read methods

    def get_document(self, document_id: int) -> Optional[Document]:
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents d WHERE d.id = ?",
                (document_id,),
            ).fetchone()
            return self._to_document(row) if row else None

    def find_document_by_uri(self, uri: str) -> Optional[Document]:
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents d WHERE d.uri = ?",
                (uri,),
            ).fetchone()
            return self._to_document(row) if row else None

    def list_documents(
        self,
        limit: int = 50,
        offset: int = 0,
        source_kind: Optional[SourceKind] = None,
    ) -> list[Document]:
        """List documents, newest first."""
        query = f"SELECT {_DOCUMENT_COLUMNS} FROM documents d"
        params: list[Any] = []
        if source_kind is not None:
            query += " WHERE d.source_kind = ?"
            params.append(SourceKind(source_kind).value)
        query += " ORDER BY d.created_at DESC, d.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self.connection() as conn:
            return [self._to_document(row) for row in conn.execute(query, params)]

    def get_chunks(self, document_id: int) -> list[Chunk]:
        """Chunks of a document in original text order."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT id, document_id, content, embedding, chunk_index, metadata, created_at
                   FROM chunks WHERE document_id = ? ORDER BY chunk_index""",
                (document_id,),
            )
            return [
                Chunk(
                    id=row["id"],
                    document_id=row["document_id"],
                    content=row["content"],
                    chunk_index=row["chunk_index"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                    embedding=np.frombuffer(row["embedding"], dtype=np.float32),
                    metadata=json.loads(row["metadata"]),
                )
                for row in cursor
            ]

    def load_embeddings(self) -> tuple[np.ndarray, np.ndarray]:
        """Return all chunk ids and their embeddings as one matrix."""
        with self.connection("load_embeddings") as conn:
            rows = conn.execute("SELECT id, embedding FROM chunks ORDER BY id").fetchall()

        if not rows:
            return np.empty(0, dtype=np.int64), np.empty((0, 0), dtype=np.float32)

        ids = np.fromiter((row["id"] for row in rows), dtype=np.int64, count=len(rows))
        matrix = np.vstack([np.frombuffer(row["embedding"], dtype=np.float32) for row in rows])
        return ids, matrix

    def get_chunk_hits(self, chunk_ids: list[int]) -> dict[int, sqlite3.Row]:
        """Chunk rows joined with their document's title and URI, keyed by chunk id."""
        if not chunk_ids:
            return {}
        placeholders = ", ".join("?" for _ in chunk_ids)
        with self.connection() as conn:
            cursor = conn.execute(
                f"""SELECT c.id AS chunk_id, c.document_id, c.content,
                           d.title AS document_title, d.uri AS document_uri
                    FROM chunks c JOIN documents d ON c.document_id = d.id
                    WHERE c.id IN ({placeholders})""",
                chunk_ids,
            )
            return {row["chunk_id"]: row for row in cursor}

    def full_text_search(self, query: str, limit: int = 10) -> list[DocumentPreview]:
        """Keyword search over document titles and content, best match first.

        Every word of the query must occur in the document (stemmed).
        """
        terms = re.findall(r"\w+", query.lower())
        if not terms:
            return []
        match = " ".join(f'"{term}"' for term in terms)

        with self.connection("full_text_search") as conn:
            cursor = conn.execute(
                """SELECT d.id, d.title, d.uri, substr(d.content, 1, ?) AS preview,
                          d.created_at, bm25(documents_fts) AS score
                   FROM documents_fts JOIN documents d ON d.id = documents_fts.rowid
                   WHERE documents_fts MATCH ?
                   ORDER BY score
                   LIMIT ?""",
                (PREVIEW_LENGTH, match, limit),
            )
            return [
                DocumentPreview(
                    id=row["id"],
                    title=row["title"],
                    uri=row["uri"],
                    preview=row["preview"],
                    rank=-float(row["score"]),
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in cursor
            ]

    def stats(self) -> dict[str, Any]:
        """Document and chunk counts, per source kind."""
        with self.connection() as conn:
            by_kind = {
                row["source_kind"]: row["n"]
                for row in conn.execute(
                    "SELECT source_kind, COUNT(*) AS n FROM documents GROUP BY source_kind"
                )
            }
            chunk_count = conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
            meta = {
                row["key"]: row["value"]
                for row in conn.execute("SELECT key, value FROM metadata")
            }

        return {
            "documents": sum(by_kind.values()),
            "chunks": chunk_count,
            "by_source_kind": {kind.value: by_kind.get(kind.value, 0) for kind in SourceKind},
            "embedding_model": meta.get("embedding_model"),
            "embedding_dimension": (
                int(meta["embedding_dimension"]) if "embedding_dimension" in meta else None
            ),
        }

    @staticmethod
    def _to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            source_kind=SourceKind(row["source_kind"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            uri=row["uri"],
            metadata=json.loads(row["metadata"]),
            file_name=row["file_name"],
            file_type=row["file_type"],
            file_size_bytes=row["file_size_bytes"],
            chunk_count=row["chunk_count"],
        )
