"""
Ingestion — fetching, loading, chunking, embedding and batched storage.

This module converts an uploaded file (PDF, plain text, CSV) into
embedded chunks stored in the vector database under the file's id.
"""

from ragette.ingestion.batch_inserter import BatchInserter, InsertionReport
from ragette.ingestion.embedder import EmbeddingClient
from ragette.ingestion.loader import MediaType
from ragette.ingestion.pipeline import DOCUMENT_STORED, IngestionPipeline, IngestionResult

__all__ = [
    "DOCUMENT_STORED",
    "BatchInserter",
    "EmbeddingClient",
    "IngestionPipeline",
    "IngestionResult",
    "InsertionReport",
    "MediaType",
]
