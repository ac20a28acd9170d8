"""Retrieval orchestrator — scoped similarity search and context assembly.

Usage::

    orchestrator = RetrievalOrchestrator(embedder, store, k=5)
    context = await orchestrator.retrieve("What does the report conclude?", file_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ragette.ingestion.embedder import EmbeddingClient
    from ragette.retrieval.base import VectorStoreBase
    from ragette.retrieval.models import SearchHit

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n"


def assemble_context(hits: list[SearchHit]) -> str:
    """Join hit texts in ranked order; no hits gives ``""``."""
    return CONTEXT_SEPARATOR.join(hit.text for hit in hits)


class RetrievalOrchestrator:
    """Embeds a query and searches the chunks of a single document.

    Parameters
    ----------
    embedder:
        Client used to embed the query.
    store:
        Vector-store backend holding the chunk records.
    k:
        Maximum number of chunks returned per query.
    """

    def __init__(self, embedder: EmbeddingClient, store: VectorStoreBase, *, k: int = 5) -> None:
        self._embedder = embedder
        self._store = store
        self.k = k

    async def search(self, query: str, document_id: str) -> list[SearchHit]:
        """Return up to ``k`` hits for *query* from *document_id*, closest first.

        Embedding and store failures propagate; an empty result is only
        returned when the document genuinely has no matching chunks.
        """
        if not document_id or not document_id.strip():
            raise ValueError("document_id is required to scope retrieval")
        query_embedding = await self._embedder.embed_one(query)
        hits = await self._store.similarity_search(query_embedding, document_id=document_id, k=self.k)
        logger.info("Retrieved %d chunk(s) for document %s", len(hits), document_id)
        return hits

    async def retrieve(self, query: str, document_id: str) -> str:
        """Return the grounding context for *query*."""
        return assemble_context(await self.search(query, document_id))
