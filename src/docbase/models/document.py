"""Core data models for documents, chunks and ingest inputs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

import numpy as np


class SourceKind(str, Enum):
    """Origin category of an ingested document."""

    TEXT = "text"
    URL = "url"
    FILE = "file"


@dataclass(frozen=True)
class TextSource:
    """Raw text typed or pasted by the caller."""

    kind: ClassVar[SourceKind] = SourceKind.TEXT


@dataclass(frozen=True)
class UrlSource:
    """Content scraped from a web page; the URI is the dedup key."""

    uri: str
    kind: ClassVar[SourceKind] = SourceKind.URL


@dataclass(frozen=True)
class FileSource:
    """Text extracted from an uploaded file."""

    file_name: str
    file_type: str
    size_bytes: int
    kind: ClassVar[SourceKind] = SourceKind.FILE


Source = Union[TextSource, UrlSource, FileSource]


@dataclass
class IngestRequest:
    """What a caller asks to have ingested, before chunking."""

    content: str
    title: str = ""
    source: Source = field(default_factory=TextSource)
    chunk_size: int = 1000
    chunk_overlap: int = 100
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Label used when reporting on this request."""
        if isinstance(self.source, FileSource):
            return self.source.file_name
        if isinstance(self.source, UrlSource):
            return self.source.uri
        return self.title or "untitled"


@dataclass
class DocumentInput:
    """A normalized, already chunked document ready for the vector store."""

    title: str
    content: str
    chunks: list[str]
    source: Source = field(default_factory=TextSource)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def uri(self) -> Optional[str]:
        if isinstance(self.source, UrlSource) and self.source.uri:
            return self.source.uri
        return None


@dataclass
class Document:
    """A persisted document."""

    id: int
    title: str
    content: str
    source_kind: SourceKind
    created_at: datetime
    updated_at: datetime
    uri: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size_bytes: Optional[int] = None
    chunk_count: int = 0


@dataclass
class Chunk:
    """A persisted chunk of a document with its embedding."""

    id: int
    document_id: int
    content: str
    chunk_index: int
    created_at: datetime
    embedding: Optional[np.ndarray] = None
    metadata: dict[str, Any] = field(default_factory=dict)
