"""Document store implementations for Minispace."""

from .base import Document
from .base import DocumentStore
from .memory import MemoryDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "MemoryDocumentStore",
]
