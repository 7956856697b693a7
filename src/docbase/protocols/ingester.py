"""Interface for reading local sources."""

from pathlib import Path
from typing import Iterator, Protocol, Union, runtime_checkable

from docbase.models import IngestFailure, IngestRequest


@runtime_checkable
class Ingester(Protocol):
    """Turns a local path into one ingest request per text file."""

    @property
    def source_type(self) -> str:
        """Short label such as 'file', 'folder' or 'zip'."""
        ...

    def can_handle(self, source: Path) -> bool: ...

    def ingest(self, source: Path) -> Iterator[Union[IngestRequest, IngestFailure]]:
        """Yield a request per readable file.

        Unreadable or non-UTF-8 files are yielded as IngestFailure rather
        than raised, so one bad file does not end the walk.
        """
        ...
