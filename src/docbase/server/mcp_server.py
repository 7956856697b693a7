"""FastMCP server exposing the knowledge base as tools."""

from mcp.server.fastmcp import FastMCP

from docbase.exceptions import DocBaseError, DocumentNotFoundError
from docbase.pipeline import KnowledgeBase

SNIPPET_LENGTH = 200


def _snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    snippet = text[:length].replace("\n", " ")
    if len(text) > length:
        snippet += "..."
    return snippet


def create_mcp_server(knowledge_base: KnowledgeBase) -> FastMCP:
    """Create an MCP server for a knowledge base.

    Args:
        knowledge_base: Opened knowledge base to serve

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="docbase",
    )

    @mcp.tool()
    def search_documents(query: str, limit: int = 5, threshold: float = 0.7) -> str:
        """Search the knowledge base by semantic similarity.

        Use this to find relevant content by concept, not just keyword.

        Args:
            query: Natural language description of what you're looking for
            limit: Maximum number of results to return (default: 5)
            threshold: Minimum similarity between 0 and 1 (default: 0.7)

        Returns:
            Ranked list of matching chunks with similarity scores and sources
        """
        try:
            results = knowledge_base.search(query, limit=limit, similarity_threshold=threshold)
        except DocBaseError as e:
            return f"Error: {e.message}"

        if not results:
            return f"No relevant documents found for: {query}"

        lines = []
        for i, r in enumerate(results, 1):
            source = f" <{r.document_uri}>" if r.document_uri else ""
            lines.append(
                f"{i}. [{r.similarity_score:.3f}] {r.document_title}{source} (document {r.document_id})"
            )
            lines.append(f"   {_snippet(r.content)}")
            lines.append("")

        return "\n".join(lines)

    @mcp.tool()
    def get_document(document_id: int) -> str:
        """Read a whole document by its ID.

        Args:
            document_id: The document ID (as shown in search or list output)

        Returns:
            Document title, source and full content
        """
        try:
            document = knowledge_base.get_document(document_id)
        except DocumentNotFoundError as e:
            return f"Error: {e.message}"

        header = [f"# {document.title}", f"Document {document.id} ({document.source_kind.value})"]
        if document.uri:
            header.append(f"URL: {document.uri}")
        if document.file_name:
            header.append(f"File: {document.file_name}")
        header.append(f"Created: {document.created_at.isoformat()}")

        return "\n".join(header) + "\n\n" + document.content

    @mcp.tool()
    def list_documents(limit: int = 10, offset: int = 0) -> str:
        """List documents in the knowledge base, newest first.

        Args:
            limit: Number of documents to return (default: 10)
            offset: Offset for pagination (default: 0)

        Returns:
            One line per document with a short preview
        """
        documents = knowledge_base.vector_store.list_documents(limit=limit, offset=offset)
        if not documents:
            return "No documents stored"

        lines = []
        for d in documents:
            lines.append(f"{d.id:>5}  {d.title}  [{d.source_kind.value}, {d.chunk_count} chunks]")
            lines.append(f"       {_snippet(d.content)}")
        return "\n".join(lines)

    @mcp.tool()
    def full_text_search(query: str, limit: int = 10) -> str:
        """Search documents by keywords.

        Every word must appear in the document title or content.

        Args:
            query: Keywords to search for
            limit: Number of results (default: 10)

        Returns:
            Matching documents with previews, best match first
        """
        try:
            documents = knowledge_base.full_text_search(query, limit=limit)
        except DocBaseError as e:
            return f"Error: {e.message}"

        if not documents:
            return f"No documents found matching: {query}"

        lines = []
        for i, d in enumerate(documents, 1):
            lines.append(f"{i}. {d.title} (document {d.id})")
            lines.append(f"   {_snippet(d.preview, 300)}")
            lines.append("")
        return "\n".join(lines)

    return mcp
