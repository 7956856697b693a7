"""Data models for DocBase."""

from docbase.models.document import (
    Chunk,
    Document,
    DocumentInput,
    FileSource,
    IngestRequest,
    Source,
    SourceKind,
    TextSource,
    UrlSource,
)
from docbase.models.results import (
    BatchIngestReport,
    DocumentPreview,
    IngestFailure,
    IngestResult,
    Retrieval,
    SearchResult,
)

__all__ = [
    "BatchIngestReport",
    "Chunk",
    "Document",
    "DocumentInput",
    "DocumentPreview",
    "FileSource",
    "IngestFailure",
    "IngestRequest",
    "IngestResult",
    "Retrieval",
    "SearchResult",
    "Source",
    "SourceKind",
    "TextSource",
    "UrlSource",
]
