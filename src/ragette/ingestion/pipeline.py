"""Ingestion pipeline — file → segments → chunks → vectors → vector store."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ragette.ingestion.chunker import split_segments
from ragette.ingestion.fetcher import afetch_file
from ragette.ingestion.loader import MediaType, aload_document
from ragette.retrieval.models import ChunkRecord

if TYPE_CHECKING:
    from ragette.config import Settings
    from ragette.ingestion.batch_inserter import BatchInserter, InsertionReport
    from ragette.ingestion.embedder import EmbeddingClient

logger = logging.getLogger(__name__)

DOCUMENT_STORED = "DOCUMENT_STORED"


@dataclass
class IngestionResult:
    """Summary of a successfully indexed document."""

    document_id: str
    segments: int
    chunks: int
    report: InsertionReport
    elapsed_seconds: float
    status: str = DOCUMENT_STORED


class IngestionPipeline:
    """Indexes one uploaded document under its ``document_id``.

    Any stage failure aborts the whole document: loader and embedding
    errors propagate before anything is written, and batch-insert
    failures surface as :class:`~ragette.exceptions.StoreWriteError` /
    :class:`~ragette.exceptions.PartialIngestionError`.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        inserter: BatchInserter,
        *,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        fetch_timeout: float = 60.0,
        fetch_max_retries: int = 3,
    ) -> None:
        self._embedder = embedder
        self._inserter = inserter
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.fetch_timeout = fetch_timeout
        self.fetch_max_retries = fetch_max_retries

    @classmethod
    def from_settings(
        cls, embedder: EmbeddingClient, inserter: BatchInserter, settings: Settings
    ) -> IngestionPipeline:
        return cls(
            embedder,
            inserter,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            fetch_timeout=settings.fetch_timeout,
            fetch_max_retries=settings.fetch_max_retries,
        )

    async def ingest_url(self, file_url: str, document_id: str) -> IngestionResult:
        """Download *file_url* and index it.

        Raises
        ------
        UnsupportedMediaTypeError
            The file is not PDF, plain text or CSV; nothing is loaded.
        """
        fetched = await afetch_file(file_url, timeout=self.fetch_timeout, max_retries=self.fetch_max_retries)
        media_type = MediaType.from_content_type(fetched.media_type)
        return await self.ingest_bytes(fetched.data, media_type, document_id, source=file_url)

    async def ingest_bytes(
        self,
        data: bytes,
        media_type: MediaType,
        document_id: str,
        *,
        source: str = "upload",
    ) -> IngestionResult:
        if not document_id:
            raise ValueError("document_id is required")
        t0 = time.monotonic()

        segments = await aload_document(data, media_type, source=source)
        logger.info("Docs loaded: %d", len(segments))

        chunks = split_segments(segments, self.chunk_size, self.chunk_overlap)
        logger.info("Docs split: %d", len(chunks))

        vectors = await self._embedder.embed_many(chunks)
        records = [
            ChunkRecord.create(document_id, index, text, vector)
            for index, (text, vector) in enumerate(zip(chunks, vectors))
        ]

        report = await self._inserter.insert(records)
        elapsed = time.monotonic() - t0
        logger.info(
            "Indexed document %s: %d chunk(s) in %.1fs",
            document_id,
            len(records),
            elapsed,
        )
        return IngestionResult(
            document_id=document_id,
            segments=len(segments),
            chunks=len(records),
            report=report,
            elapsed_seconds=round(elapsed, 2),
        )
