"""CLI entry point for DocBase."""

import argparse
import json
import logging
import sys
from typing import Literal, cast

from docbase.config import Settings, get_settings
from docbase.exceptions import DocBaseError, DocumentNotFoundError, ValidationError
from docbase.ingesters import read_source
from docbase.models import IngestRequest, SourceKind, TextSource, UrlSource
from docbase.pipeline import KnowledgeBase

logger = logging.getLogger(__name__)


def _open(settings: Settings) -> KnowledgeBase:
    try:
        return KnowledgeBase.from_settings(settings)
    except DocBaseError as e:
        logger.error(f"Cannot open knowledge base: {e}")
        sys.exit(1)


def add(settings: Settings, title: str, text: str | None, uri: str | None, metadata: list[str]) -> None:
    """Ingest text given on the command line or stdin.

    Args:
        settings: Active settings
        title: Document title (optional for URL sources)
        text: Content; read from stdin when None
        uri: Source URL; replaces any document stored under it
        metadata: KEY=VALUE pairs stored with the document
    """
    content = text if text is not None else sys.stdin.read()
    meta = {}
    for pair in metadata:
        key, sep, value = pair.partition("=")
        if not sep:
            logger.error(f"Metadata must be KEY=VALUE: {pair}")
            sys.exit(1)
        meta[key] = value

    request = IngestRequest(
        content=content,
        title=title,
        source=UrlSource(uri) if uri else TextSource(),
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        metadata=meta,
    )

    kb = _open(settings)
    try:
        result = kb.ingest(request)
    except DocBaseError as e:
        logger.error(f"Failed to ingest content: {e.message}")
        sys.exit(1)
    finally:
        kb.close()

    logger.info(
        f"Stored document {result.document_id} ({result.title}): "
        f"{result.chunks_created}/{result.total_chunks_attempted} chunks"
    )


def ingest(settings: Settings, source: str) -> None:
    """Ingest a text file, a folder of text files, or a zip of them.

    Args:
        settings: Active settings
        source: Path to a file, folder or zip file
    """
    try:
        items = read_source(
            source, chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap
        )
    except ValidationError as e:
        logger.error(e.message)
        sys.exit(1)

    kb = _open(settings)
    try:
        report = kb.ingest_many(items)
    finally:
        kb.close()

    for result in report.results:
        logger.info(f"  {result.title}: {result.chunks_created} chunks")
    for failure in report.errors:
        logger.info(f"  {failure.name}: FAILED ({failure.error})")
    logger.info("")
    logger.info(report.message)

    if report.failed:
        sys.exit(1)


def search(settings: Settings, query: str, limit: int | None, threshold: float | None, as_json: bool) -> None:
    """Semantic search, falling back to keyword search when nothing matches."""
    kb = _open(settings)
    try:
        retrieval = kb.retrieve(query, limit=limit, similarity_threshold=threshold)
    finally:
        kb.close()

    if as_json:
        print(
            json.dumps(
                {
                    "mode": retrieval.mode,
                    "results": [r.to_dict() for r in retrieval.hits],
                    "documents": [d.to_dict() for d in retrieval.documents],
                },
                indent=2,
            )
        )
        return

    if not retrieval:
        print(f"No results found for: {query}")
        return

    if retrieval.mode == "full_text":
        print("(no semantic matches, showing keyword matches)")
        for i, d in enumerate(retrieval.documents, 1):
            print(f"{i}. {d.title} (document {d.id})")
            print(f"   {d.preview[:200]}")
        return

    for i, r in enumerate(retrieval.hits, 1):
        print(f"{i}. [{r.similarity_score:.3f}] {r.document_title} (document {r.document_id})")
        print(f"   {r.content[:200]}")


def fts(settings: Settings, query: str, limit: int) -> None:
    """Keyword search over whole documents."""
    kb = _open(settings)
    try:
        documents = kb.full_text_search(query, limit=limit)
    finally:
        kb.close()

    if not documents:
        print(f"No documents found matching: {query}")
        return
    for i, d in enumerate(documents, 1):
        print(f"{i}. {d.title} (document {d.id})")
        print(f"   {d.preview[:200]}")


def ls(settings: Settings, kind: str | None, limit: int, offset: int) -> None:
    """List stored documents, newest first."""
    kb = _open(settings)
    try:
        documents = kb.vector_store.list_documents(
            limit=limit,
            offset=offset,
            source_kind=SourceKind(kind) if kind else None,
        )
    finally:
        kb.close()

    if not documents:
        print("No documents stored")
        return
    for d in documents:
        origin = d.uri or d.file_name or ""
        print(f"{d.id:>5}  {d.source_kind.value:<4}  {d.chunk_count:>4} chunks  {d.title}  {origin}")


def show(settings: Settings, document_id: int, chunks: bool) -> None:
    """Print a document, optionally with its chunks."""
    kb = _open(settings)
    try:
        document = kb.get_document(document_id)
        doc_chunks = kb.vector_store.get_chunks(document_id) if chunks else []
    except DocumentNotFoundError as e:
        logger.error(e.message)
        sys.exit(1)
    finally:
        kb.close()

    print(f"# {document.title}")
    print(f"  Source: {document.source_kind.value} {document.uri or document.file_name or ''}")
    print(f"  Created: {document.created_at.isoformat()}")
    print(f"  Chunks: {document.chunk_count}")
    print("")
    if chunks:
        for chunk in doc_chunks:
            print(f"--- chunk {chunk.chunk_index} ---")
            print(chunk.content)
    else:
        print(document.content)


def rm(settings: Settings, document_id: int) -> None:
    """Delete a document and its chunks."""
    kb = _open(settings)
    try:
        deleted = kb.vector_store.delete_document(document_id)
    finally:
        kb.close()

    if not deleted:
        logger.error(f"Document not found: {document_id}")
        sys.exit(1)
    logger.info(f"Deleted document {document_id}")


def info(settings: Settings) -> None:
    """Show information about the knowledge base."""
    kb = _open(settings)
    try:
        stats = kb.vector_store.stats()
    finally:
        kb.close()

    print(f"Knowledge base: {settings.database_path}")
    print(f"")
    print(f"Embedding:")
    print(f"  model: {stats['embedding_model'] or '-'}")
    print(f"  dimension: {stats['embedding_dimension'] or '-'}")
    print(f"")
    print(f"Contents:")
    for kind, count in stats["by_source_kind"].items():
        print(f"  {kind}: {count}")
    print(f"  Total documents: {stats['documents']}")
    print(f"  Total chunks: {stats['chunks']}")


def serve(settings: Settings, transport: str = "stdio") -> None:
    """Start MCP server for the knowledge base.

    Args:
        settings: Active settings
        transport: Transport protocol (stdio or sse)
    """
    # Import here to avoid loading MCP unless needed
    from docbase.server import create_mcp_server

    kb = _open(settings)
    logger.info(f"Serving {settings.database_path} via {transport}")
    mcp = create_mcp_server(kb)
    try:
        mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], transport))
    finally:
        kb.close()


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="docbase",
        description="DocBase - chunked, embedded knowledge base",
    )
    parser.add_argument(
        "--db",
        help="Knowledge base path (default: $DOCBASE_DATABASE_PATH or knowledge.db)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # add command
    add_parser = subparsers.add_parser("add", help="Ingest text from an argument or stdin")
    add_parser.add_argument("--title", default="", help="Document title")
    add_parser.add_argument("--text", help="Content to ingest (default: read stdin)")
    add_parser.add_argument("--uri", help="Source URL; re-ingesting a URL replaces it")
    add_parser.add_argument(
        "--meta",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Metadata to store with the document (repeatable)",
    )

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest a text file, folder or zip file",
    )
    ingest_parser.add_argument("source", help="Input file, folder or zip file path")

    # search command
    search_parser = subparsers.add_parser("search", help="Semantic search")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-n", "--limit", type=int, help="Maximum results")
    search_parser.add_argument("-t", "--threshold", type=float, help="Similarity threshold (0-1)")
    search_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    # fts command
    fts_parser = subparsers.add_parser("fts", help="Keyword search over documents")
    fts_parser.add_argument("query", help="Keywords")
    fts_parser.add_argument("-n", "--limit", type=int, default=10, help="Maximum results")

    # ls command
    ls_parser = subparsers.add_parser("ls", help="List documents")
    ls_parser.add_argument("--kind", choices=[k.value for k in SourceKind], help="Filter by source kind")
    ls_parser.add_argument("-n", "--limit", type=int, default=50, help="Maximum documents")
    ls_parser.add_argument("--offset", type=int, default=0, help="Pagination offset")

    # show command
    show_parser = subparsers.add_parser("show", help="Print a document")
    show_parser.add_argument("document_id", type=int, help="Document ID")
    show_parser.add_argument("--chunks", action="store_true", help="Print chunks instead of content")

    # rm command
    rm_parser = subparsers.add_parser("rm", help="Delete a document and its chunks")
    rm_parser.add_argument("document_id", type=int, help="Document ID")

    # info command
    subparsers.add_parser("info", help="Show information about the knowledge base")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server for the knowledge base")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )

    args = parser.parse_args()

    settings = get_settings()
    if args.db:
        settings = settings.model_copy(update={"database_path": args.db})

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
    )

    if args.command == "add":
        add(settings, args.title, args.text, args.uri, args.meta)
    elif args.command == "ingest":
        ingest(settings, args.source)
    elif args.command == "search":
        search(settings, args.query, args.limit, args.threshold, args.json)
    elif args.command == "fts":
        fts(settings, args.query, args.limit)
    elif args.command == "ls":
        ls(settings, args.kind, args.limit, args.offset)
    elif args.command == "show":
        show(settings, args.document_id, args.chunks)
    elif args.command == "rm":
        rm(settings, args.document_id)
    elif args.command == "info":
        info(settings)
    elif args.command == "serve":
        serve(settings, args.transport)


if __name__ == "__main__":
    main()
