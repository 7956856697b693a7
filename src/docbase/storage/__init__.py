"""Persistent storage for DocBase."""

from docbase.storage.schema import SCHEMA
from docbase.storage.store import KnowledgeStore

__all__ = ["KnowledgeStore", "SCHEMA"]
