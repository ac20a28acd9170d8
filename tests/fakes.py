"""In-memory stand-ins for OpenAI and Chroma so the suite runs offline."""

from __future__ import annotations

import math
from collections.abc import AsyncIterator, Sequence
from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_core.messages import AIMessage, AIMessageChunk

from ragette.retrieval.base import VectorStoreBase
from ragette.retrieval.models import ChunkRecord, SearchHit

FAKE_DIM = 8


def fake_vector(text: str) -> list[float]:
    """Deterministic 8-dim vector from simple text statistics."""
    lowered = text.lower()
    return [
        *(float(lowered.count(v)) for v in "aeiou"),
        float(len(text)),
        float(len(text.split())),
        1.0,
    ]


class FakeEmbeddings(Embeddings):
    """Offline embedding model; counts calls and batch sizes."""

    def __init__(self) -> None:
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [fake_vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return fake_vector(text)

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        return self.embed_documents(texts)

    async def aembed_query(self, text: str) -> list[float]:
        return self.embed_query(text)


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeVectorStore(VectorStoreBase):
    """In-memory store with cosine ranking and document filtering."""

    def __init__(self) -> None:
        super().__init__("test-collection")
        self.records: dict[str, ChunkRecord] = {}
        self.upsert_calls: list[list[ChunkRecord]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.healthy = True

    async def upsert(self, records: Sequence[ChunkRecord]) -> None:
        self.upsert_calls.append(list(records))
        for record in records:
            self.records[record.id] = record

    async def similarity_search(
        self,
        query_embedding: list[float],
        *,
        document_id: str,
        k: int = 5,
    ) -> list[SearchHit]:
        self.search_calls.append({"document_id": document_id, "k": k})
        scored = [
            (r, _cosine(query_embedding, r.vector))
            for r in self.records.values()
            if r.document_id == document_id
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [
            SearchHit(
                id=r.id,
                document_id=r.document_id,
                text=r.text,
                score=score,
                chunk_index=r.chunk_index,
            )
            for r, score in scored[:k]
        ]

    async def health_check(self) -> bool:
        return self.healthy

    def texts_for(self, document_id: str) -> list[str]:
        return [r.text for r in self.records.values() if r.document_id == document_id]


class FakeChatModel:
    """Duck-typed chat model: ``ainvoke`` for the gate, ``astream`` for answers."""

    def __init__(self, gate_answer: str = "yes", reply: str = "The document says hello world.") -> None:
        self.gate_answer = gate_answer
        self.reply = reply
        self.invoke_prompts: list[list[Any]] = []
        self.stream_prompts: list[list[Any]] = []
        self.stream_closed = False
        self.tokens_sent = 0

    async def ainvoke(self, messages: list[Any], **kwargs: Any) -> AIMessage:
        self.invoke_prompts.append(messages)
        return AIMessage(content=self.gate_answer)

    async def astream(self, messages: list[Any], **kwargs: Any) -> AsyncIterator[AIMessageChunk]:
        self.stream_prompts.append(messages)
        try:
            for word in self.reply.split(" "):
                self.tokens_sent += 1
                yield AIMessageChunk(content=word + " ")
        finally:
            self.stream_closed = True
