"""Ingester for ZIP archives of text files."""

import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterator, Union

from docbase.ingesters.folder_ingester import read_text_file, should_skip
from docbase.models import IngestFailure, IngestRequest


class ZipIngester:
    """Reads every text member of a ``.zip`` archive.

    Members are named by their path inside the archive. Directories and
    hidden or tooling paths (``__MACOSX/``, ``.git/``) are skipped.
    """

    source_type = "zip"

    def can_handle(self, source: Path) -> bool:
        return source.suffix.lower() == ".zip" and source.is_file()

    def ingest(self, source: Path) -> Iterator[Union[IngestRequest, IngestFailure]]:
        try:
            archive = zipfile.ZipFile(source, "r")
        except zipfile.BadZipFile as e:
            yield IngestFailure(name=source.name, error=f"Not a valid zip archive: {e}")
            return

        with archive:
            for info in archive.infolist():
                member = PurePosixPath(info.filename)
                if info.is_dir() or should_skip(member):
                    continue
                try:
                    raw_content = archive.read(info)
                except (zipfile.BadZipFile, RuntimeError) as e:
                    # RuntimeError: encrypted member
                    yield IngestFailure(name=info.filename, error=str(e))
                    continue
                yield read_text_file(info.filename, raw_content, member.suffix.lower())
