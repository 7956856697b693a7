"""Ingesters for local text files and folders."""

import os
from pathlib import Path, PurePath
from typing import Iterator, Union

from docbase.models import FileSource, IngestFailure, IngestRequest

SKIP_PATTERNS = {
    "__pycache__",
    "__MACOSX",
    "node_modules",
    "venv",
    "env",
    "dist",
    "build",
}


def should_skip(path: PurePath) -> bool:
    """Hidden paths (dotfiles, .git, .venv) and build or tooling directories."""
    return any(part.startswith(".") or part in SKIP_PATTERNS for part in path.parts)


def read_text_file(
    name: str, raw_content: bytes, extension: str
) -> Union[IngestRequest, IngestFailure]:
    """Turn raw file bytes into a file-kind ingest request.

    Args:
        name: File name or archive-relative path, used as title
        raw_content: The file's bytes
        extension: Lower-cased suffix, e.g. ".md"

    Returns:
        An IngestRequest, or an IngestFailure if the bytes are not UTF-8 text
    """
    try:
        content = raw_content.decode("utf-8")
    except UnicodeDecodeError:
        return IngestFailure(name=name, error="File is not UTF-8 text")

    return IngestRequest(
        content=content,
        title=name,
        source=FileSource(
            file_name=name,
            file_type=extension.lstrip(".") or "txt",
            size_bytes=len(raw_content),
        ),
    )


class FileIngester:
    """Ingester for a single local text file."""

    source_type = "file"

    def can_handle(self, source: Path) -> bool:
        return source.is_file() and source.suffix.lower() != ".zip"

    def ingest(self, source: Path) -> Iterator[Union[IngestRequest, IngestFailure]]:
        try:
            raw_content = source.read_bytes()
        except OSError as e:
            yield IngestFailure(name=source.name, error=str(e))
            return
        yield read_text_file(source.name, raw_content, source.suffix.lower())


class FolderIngester:
    """Ingester for local filesystem folders."""

    source_type = "folder"

    def can_handle(self, source: Path) -> bool:
        """Check if this is an existing directory."""
        return source.is_dir()

    def ingest(self, source: Path) -> Iterator[Union[IngestRequest, IngestFailure]]:
        """Yield an ingest request per file in a folder, recursively.

        Args:
            source: Path to the folder
        """
        for root, dirs, files in os.walk(source):
            dirs.sort()
            for filename in sorted(files):
                full_path = Path(root) / filename
                rel_path = full_path.relative_to(source)

                if should_skip(rel_path):
                    continue

                try:
                    raw_content = full_path.read_bytes()
                except OSError as e:
                    yield IngestFailure(name=str(rel_path), error=str(e))
                    continue

                yield read_text_file(str(rel_path), raw_content, full_path.suffix.lower())
