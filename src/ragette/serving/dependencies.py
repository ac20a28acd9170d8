"""Service container — explicitly constructed clients shared by the routes.

One :class:`RagServices` is built per application (see the lifespan in
:mod:`ragette.serving.app`) and handed to route handlers through
``Depends(get_services)``.  Tests build one from fakes with
:func:`wire_services` and pass it to ``create_app(services=...)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from ragette.agent.gate import IntentGate
from ragette.agent.llm import build_chat_model
from ragette.agent.pipeline import ChatPipeline
from ragette.agent.streamer import ChatStreamer
from ragette.config import Settings
from ragette.ingestion.batch_inserter import BatchInserter
from ragette.ingestion.embedder import EmbeddingClient, build_embeddings
from ragette.ingestion.pipeline import IngestionPipeline
from ragette.retrieval.base import VectorStoreBase
from ragette.retrieval.retriever import RetrievalOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class RagServices:
    """Everything a request needs, wired once."""

    store: VectorStoreBase
    ingestion: IngestionPipeline
    chat: ChatPipeline

    async def aclose(self) -> None:
        await self.store.close()


def wire_services(settings: Settings, *, store: VectorStoreBase, llm, embeddings) -> RagServices:  # noqa: ANN001
    """Assemble pipelines around already-built clients."""
    embedder = EmbeddingClient.from_settings(embeddings, settings)
    inserter = BatchInserter.from_settings(store, settings)
    retriever = RetrievalOrchestrator(embedder, store, k=settings.retrieval_k)
    return RagServices(
        store=store,
        ingestion=IngestionPipeline.from_settings(embedder, inserter, settings),
        chat=ChatPipeline(
            IntentGate(llm, structured=settings.gate_structured_output),
            retriever,
            ChatStreamer(llm),
        ),
    )


async def build_services(settings: Settings) -> RagServices:
    """Connect to Chroma and build the OpenAI clients from *settings*."""
    from ragette.retrieval.chroma_store import ChromaVectorStore

    store = await ChromaVectorStore.connect(
        settings.chroma_collection,
        host=settings.chroma_host,
        port=settings.chroma_port,
        distance=settings.chroma_distance,
        timeout=settings.store_timeout,
    )
    return wire_services(
        settings,
        store=store,
        llm=build_chat_model(settings),
        embeddings=build_embeddings(settings),
    )


def get_services(request: Request) -> RagServices:
    return request.app.state.services
