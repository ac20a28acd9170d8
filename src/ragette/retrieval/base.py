"""Abstract base class for vector-store backends.

Adding a new backend (Astra DB, Pinecone, Qdrant …) only requires
subclassing :class:`VectorStoreBase` and implementing the three abstract
coroutines.  The batch inserter and the retrieval orchestrator are
backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ragette.retrieval.models import ChunkRecord, SearchHit


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    @abstractmethod
    async def upsert(self, records: Sequence[ChunkRecord]) -> None:
        """Write one batch of records, overwriting any with the same id.

        Implementations raise :class:`~ragette.exceptions.TransientStoreError`
        for failures worth retrying and
        :class:`~ragette.exceptions.StoreError` for everything else.
        """
        ...

    @abstractmethod
    async def similarity_search(
        self,
        query_embedding: list[float],
        *,
        document_id: str,
        k: int = 5,
    ) -> list[SearchHit]:
        """Return up to *k* hits belonging to *document_id*, closest first.

        The document filter is mandatory; there is no unscoped search.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    async def close(self) -> None:
        """Release network resources.  Optional — no-op by default."""
