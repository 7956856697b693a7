"""Local sources (text files, folders, zip archives) turned into ingest requests."""

import dataclasses
from pathlib import Path
from typing import Iterator, Optional, Union

from docbase.exceptions import ValidationError
from docbase.ingesters.folder_ingester import (
    FileIngester,
    FolderIngester,
    read_text_file,
    should_skip,
)
from docbase.ingesters.zip_ingester import ZipIngester
from docbase.models import IngestFailure, IngestRequest
from docbase.protocols import Ingester

# Checked in order; the first ingester that accepts a path wins
_INGESTERS: list[Ingester] = [
    ZipIngester(),
    FolderIngester(),
    FileIngester(),
]


def get_ingester(source: Path | str) -> Optional[Ingester]:
    """Return the ingester for a path, or None if nothing accepts it."""
    source_path = Path(source)
    return next((i for i in _INGESTERS if i.can_handle(source_path)), None)


def register_ingester(ingester: Ingester) -> None:
    """Add an ingester; it is consulted after the built-in ones."""
    _INGESTERS.append(ingester)


def read_source(
    source: Path | str,
    chunk_size: Optional[int] = None,
    chunk_overlap: Optional[int] = None,
) -> Iterator[Union[IngestRequest, IngestFailure]]:
    """Ingest requests for every file under a path.

    Args:
        source: A text file, a folder or a zip archive
        chunk_size: Overrides the chunk size of each request when given
        chunk_overlap: Overrides the chunk overlap of each request when given

    Raises:
        ValidationError: no ingester accepts the path
    """
    ingester = get_ingester(source)
    if ingester is None:
        raise ValidationError(
            f"Cannot process {source}: expected a text file, folder or .zip file",
            field="source",
        )

    overrides = {}
    if chunk_size is not None:
        overrides["chunk_size"] = chunk_size
    if chunk_overlap is not None:
        overrides["chunk_overlap"] = chunk_overlap

    return (
        dataclasses.replace(item, **overrides)
        if overrides and isinstance(item, IngestRequest)
        else item
        for item in ingester.ingest(Path(source))
    )


__all__ = [
    "get_ingester",
    "register_ingester",
    "read_source",
    "read_text_file",
    "should_skip",
    "FileIngester",
    "FolderIngester",
    "ZipIngester",
]
