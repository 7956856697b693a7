"""Result types returned by ingest and search operations."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Literal, Optional


@dataclass(frozen=True)
class SearchResult:
    """A chunk that matched a similarity query."""

    chunk_id: int
    document_id: int
    content: str
    document_title: str
    document_uri: Optional[str]
    similarity_score: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DocumentPreview:
    """A whole document matched by full-text search."""

    id: int
    title: str
    uri: Optional[str]
    preview: str
    rank: float
    created_at: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one successful ingest."""

    document_id: int
    title: str
    chunks_created: int
    total_chunks_attempted: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class IngestFailure:
    """A single input that could not be ingested."""

    name: str
    error: str


@dataclass
class BatchIngestReport:
    """Outcome of ingesting several inputs, e.g. a multi-file upload."""

    results: list[IngestResult] = field(default_factory=list)
    errors: list[IngestFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when at least one input was ingested."""
        return bool(self.results)

    @property
    def partial(self) -> bool:
        return bool(self.results) and bool(self.errors)

    @property
    def failed(self) -> bool:
        """True when nothing was ingested."""
        return not self.results

    @property
    def message(self) -> str:
        message = f"Successfully processed {len(self.results)} item(s)"
        if self.errors:
            message += f", {len(self.errors)} item(s) failed"
        return message

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "results": [r.to_dict() for r in self.results],
            "errors": [asdict(e) for e in self.errors],
            "message": self.message,
        }


@dataclass
class Retrieval:
    """Hits for a query, from semantic search or the full-text fallback."""

    mode: Literal["semantic", "full_text"]
    hits: list[SearchResult] = field(default_factory=list)
    documents: list[DocumentPreview] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.hits or self.documents)
