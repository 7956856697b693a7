"""DocBase - chunked, embedded knowledge base with similarity search."""

__version__ = "0.1.0"
