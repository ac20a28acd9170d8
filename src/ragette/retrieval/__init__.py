"""
Retrieval — vector-store access and scoped context assembly.

This module wraps the vector store behind a clean interface so that the
pipelines never need to know which DB is backing retrieval.

Public surface
--------------
- :class:`RetrievalOrchestrator` — embeds a query and builds the context block.
- :class:`VectorStoreBase` — abstract backend (subclass for Astra DB, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`ChunkRecord`, :class:`SearchHit` — data models.
"""

from ragette.retrieval.base import VectorStoreBase
from ragette.retrieval.models import ChunkRecord, SearchHit
from ragette.retrieval.retriever import RetrievalOrchestrator, assemble_context

__all__ = [
    "ChromaVectorStore",
    "ChunkRecord",
    "RetrievalOrchestrator",
    "SearchHit",
    "VectorStoreBase",
    "assemble_context",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from ragette.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
