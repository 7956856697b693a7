"""Structural interfaces for the pluggable parts of DocBase.

Chunkers, embedders and ingesters are matched by shape, so test doubles
and third-party implementations need no base class.
"""

from docbase.protocols.chunker import ChunkingStrategy
from docbase.protocols.embedder import EmbeddingProvider
from docbase.protocols.ingester import Ingester

__all__ = ["ChunkingStrategy", "EmbeddingProvider", "Ingester"]
