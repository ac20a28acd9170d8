"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import chromadb
import httpx
from chromadb.errors import ChromaError

from ragette.exceptions import StoreError, TransientStoreError
from ragette.retrieval.base import VectorStoreBase
from ragette.retrieval.models import ChunkRecord, SearchHit

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = {408, 429, 502, 503, 504}


def _is_transient(exc: BaseException) -> bool:
    """Return ``True`` for rate limits, timeouts and connection resets."""
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS
    if isinstance(exc, ChromaError) and exc.code() in _TRANSIENT_STATUS:
        return True
    text = str(exc).lower()
    return "rate limit" in text or "too many requests" in text


def _translate(exc: Exception, operation: str) -> StoreError:
    if _is_transient(exc):
        return TransientStoreError(f"Chroma {operation} failed transiently: {exc!r}")
    return StoreError(f"Chroma {operation} failed: {exc!r}")


def _distance_to_score(distance: float, space: str) -> float:
    # Chroma reports distances; cosine / ip are 1 - similarity, l2 is unbounded.
    if space == "l2":
        return 1.0 / (1.0 + distance)
    return 1.0 - distance


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using the async HTTP client.

    Build instances with :meth:`connect`; the constructor takes an already
    resolved collection so tests can hand in a fake.

    Parameters
    ----------
    client:
        A ``chromadb`` async client (kept for heartbeat checks).
    collection:
        The async collection records are written to and queried from.
    distance:
        Distance function the collection was created with.
    timeout:
        Seconds before any single store call is abandoned.
    """

    def __init__(
        self,
        client: Any,
        collection: Any,
        *,
        distance: str = "cosine",
        timeout: float = 30.0,
    ) -> None:
        super().__init__(collection.name)
        self._client = client
        self._collection = collection
        self._distance = distance
        self._timeout = timeout

    @classmethod
    async def connect(
        cls,
        collection_name: str,
        *,
        host: str,
        port: int,
        distance: str = "cosine",
        timeout: float = 30.0,
    ) -> ChromaVectorStore:
        """Open a client and get-or-create *collection_name*."""
        try:
            client = await asyncio.wait_for(chromadb.AsyncHttpClient(host=host, port=port), timeout)
            collection = await asyncio.wait_for(
                client.get_or_create_collection(
                    name=collection_name,
                    metadata={"hnsw:space": distance},
                ),
                timeout,
            )
        except Exception as exc:
            raise _translate(exc, "connect") from exc
        logger.info("Connected to Chroma collection %r at %s:%d", collection_name, host, port)
        return cls(client, collection, distance=distance, timeout=timeout)

    # -- VectorStoreBase overrides --------------------------------------------

    async def upsert(self, records: Sequence[ChunkRecord]) -> None:
        if not records:
            return
        try:
            await asyncio.wait_for(
                self._collection.upsert(
                    ids=[r.id for r in records],
                    embeddings=[r.vector for r in records],
                    documents=[r.text for r in records],
                    metadatas=[
                        {"document_id": r.document_id, "chunk_index": r.chunk_index}
                        for r in records
                    ],
                ),
                self._timeout,
            )
        except Exception as exc:
            raise _translate(exc, "upsert") from exc

    async def similarity_search(
        self,
        query_embedding: list[float],
        *,
        document_id: str,
        k: int = 5,
    ) -> list[SearchHit]:
        if not document_id:
            raise ValueError("document_id is required for every search")
        try:
            results = await asyncio.wait_for(
                self._collection.query(
                    query_embeddings=[query_embedding],
                    n_results=k,
                    where={"document_id": {"$eq": document_id}},
                    include=["documents", "metadatas", "distances"],
                ),
                self._timeout,
            )
        except Exception as exc:
            raise _translate(exc, "query") from exc

        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        hits: list[SearchHit] = []
        for record_id, text, meta, dist in zip(ids, docs, metas, distances):
            meta = meta or {}
            hits.append(
                SearchHit(
                    id=record_id,
                    document_id=meta.get("document_id", document_id),
                    text=text or "",
                    score=_distance_to_score(dist, self._distance) if dist is not None else None,
                    chunk_index=meta.get("chunk_index"),
                )
            )
        return hits

    async def health_check(self) -> bool:
        try:
            await asyncio.wait_for(self._client.heartbeat(), self._timeout)
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
