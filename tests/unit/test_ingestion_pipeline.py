"""Unit tests for the end-to-end ingestion pipeline."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from ragette.agent.gate import IntentGate
from ragette.agent.pipeline import ChatPipeline
from ragette.agent.streamer import ChatStreamer
from ragette.agent.state import ChatMessage
from ragette.exceptions import (
    EmbeddingError,
    LoadError,
    PartialIngestionError,
    TransientStoreError,
    UnsupportedMediaTypeError,
)
from ragette.ingestion.batch_inserter import BatchInserter
from ragette.ingestion.embedder import EmbeddingClient
from ragette.ingestion.fetcher import FetchedFile
from ragette.ingestion.loader import MediaType
from ragette.ingestion.pipeline import DOCUMENT_STORED, IngestionPipeline
from ragette.retrieval.retriever import RetrievalOrchestrator

from tests.fakes import FAKE_DIM, FakeChatModel, FakeEmbeddings, FakeVectorStore

THREE_PARAGRAPHS = (
    "Hello is the most common greeting in English and appears in many letters.\n\n"
    "The document also covers farewells such as goodbye and see you later.\n\n"
    "Finally it lists formal openings used in business correspondence."
)


def _pipeline(embeddings: FakeEmbeddings, store: FakeVectorStore, **overrides) -> IngestionPipeline:
    embedder = EmbeddingClient(embeddings, dimensions=FAKE_DIM, backoff_initial=0, backoff_max=0)
    inserter = BatchInserter(store, inter_batch_delay=0, backoff_initial=0, backoff_max=0, max_attempts=2)
    params = {"chunk_size": 80, "chunk_overlap": 0}
    params.update(overrides)
    return IngestionPipeline(embedder, inserter, **params)


class TestIngestBytes:
    @pytest.mark.asyncio
    async def test_three_chunk_text_document_is_stored(
        self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore
    ) -> None:
        result = await _pipeline(fake_embeddings, fake_store).ingest_bytes(
            THREE_PARAGRAPHS.encode(), MediaType.TEXT, "file-1"
        )

        assert result.status == DOCUMENT_STORED
        assert result.chunks == 3
        assert result.report.all_succeeded
        assert sorted(fake_store.records) == ["file-1:0", "file-1:1", "file-1:2"]
        assert fake_store.records["file-1:0"].text.startswith("Hello is")

    @pytest.mark.asyncio
    async def test_reingesting_overwrites(self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore) -> None:
        pipeline = _pipeline(fake_embeddings, fake_store)
        await pipeline.ingest_bytes(THREE_PARAGRAPHS.encode(), MediaType.TEXT, "file-1")
        await pipeline.ingest_bytes(THREE_PARAGRAPHS.encode(), MediaType.TEXT, "file-1")
        assert len(fake_store.records) == 3

    @pytest.mark.asyncio
    async def test_load_error_aborts_before_any_write(
        self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore
    ) -> None:
        with pytest.raises(LoadError):
            await _pipeline(fake_embeddings, fake_store).ingest_bytes(b"not a pdf", MediaType.PDF, "file-1")
        assert fake_embeddings.document_calls == []
        assert fake_store.upsert_calls == []

    @pytest.mark.asyncio
    async def test_embedding_error_aborts_before_any_write(self, fake_store: FakeVectorStore) -> None:
        embeddings = FakeEmbeddings()
        embeddings.aembed_documents = AsyncMock(side_effect=ConnectionError("down"))  # type: ignore[method-assign]

        with pytest.raises(EmbeddingError):
            await _pipeline(embeddings, fake_store).ingest_bytes(THREE_PARAGRAPHS.encode(), MediaType.TEXT, "f")
        assert fake_store.upsert_calls == []

    @pytest.mark.asyncio
    async def test_partial_write_surfaces_as_partial_error(self, fake_embeddings: FakeEmbeddings) -> None:
        class HalfBrokenStore(FakeVectorStore):
            async def upsert(self, records):  # noqa: ANN001, ANN201
                if records[0].chunk_index >= 20:
                    raise TransientStoreError("429")
                await super().upsert(records)

        store = HalfBrokenStore()
        text = "\n\n".join(f"Paragraph number {i} with a little text." for i in range(30))

        with pytest.raises(PartialIngestionError) as excinfo:
            await _pipeline(fake_embeddings, store, chunk_size=40).ingest_bytes(
                text.encode(), MediaType.TEXT, "big"
            )
        assert excinfo.value.failed_batches == [1]
        assert len(store.records) == 20

    @pytest.mark.asyncio
    async def test_document_id_required(self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore) -> None:
        with pytest.raises(ValueError):
            await _pipeline(fake_embeddings, fake_store).ingest_bytes(b"text", MediaType.TEXT, "")


class TestIngestUrl:
    @pytest.mark.asyncio
    async def test_fetches_then_indexes(self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore) -> None:
        fetched = FetchedFile(data=THREE_PARAGRAPHS.encode(), media_type="text/plain", source="https://f/a.txt")
        with patch("ragette.ingestion.pipeline.afetch_file", AsyncMock(return_value=fetched)) as fetch:
            result = await _pipeline(fake_embeddings, fake_store).ingest_url("https://f/a.txt", "file-9")

        fetch.assert_awaited_once()
        assert fetch.await_args.args == ("https://f/a.txt",)
        assert result.chunks == 3
        assert all(r.document_id == "file-9" for r in fake_store.records.values())

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected_before_loading(
        self, fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore
    ) -> None:
        fetched = FetchedFile(data=b"\x89PNG", media_type="image/png", source="https://f/a.png")
        with patch("ragette.ingestion.pipeline.afetch_file", AsyncMock(return_value=fetched)):
            with pytest.raises(UnsupportedMediaTypeError):
                await _pipeline(fake_embeddings, fake_store).ingest_url("https://f/a.png", "file-9")
        assert fake_embeddings.document_calls == []


@pytest.mark.asyncio
async def test_upload_then_ask(fake_embeddings: FakeEmbeddings, fake_store: FakeVectorStore) -> None:
    """A stored document answers a question scoped to its file id."""
    await _pipeline(fake_embeddings, fake_store).ingest_bytes(THREE_PARAGRAPHS.encode(), MediaType.TEXT, "file-1")
    llm = FakeChatModel(gate_answer="yes", reply="It describes greetings")
    retriever = RetrievalOrchestrator(EmbeddingClient(fake_embeddings), fake_store, k=5)
    chat = ChatPipeline(IntentGate(llm), retriever, ChatStreamer(llm))

    state = await chat.prepare(
        [ChatMessage(role="user", content="What does this document say about hello?")], "file-1"
    )
    tokens = [t async for t in chat.stream(state)]

    chunks = state["context"].split("\n")
    assert 0 < len(chunks) <= 3
    assert all(c in fake_store.texts_for("file-1") for c in chunks)
    assert "".join(tokens).strip() == "It describes greetings"
