"""Unit tests for the serving layer."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ragette.config import Settings
from ragette.exceptions import FetchError, PartialIngestionError, StoreError, UnsupportedMediaTypeError
from ragette.ingestion.batch_inserter import BatchOutcome, InsertionReport
from ragette.ingestion.pipeline import DOCUMENT_STORED, IngestionResult
from ragette.retrieval.models import ChunkRecord
from ragette.serving.app import CHAT_FAILED, INGESTION_FAILED, create_app
from ragette.serving.dependencies import RagServices, wire_services

from tests.fakes import FAKE_DIM, FakeChatModel, FakeEmbeddings, FakeVectorStore, fake_vector


def _services(llm: FakeChatModel | None = None, store: FakeVectorStore | None = None) -> RagServices:
    settings = Settings(
        embedding_dimensions=FAKE_DIM,
        insert_inter_batch_delay=0,
        insert_backoff_initial=0,
        insert_backoff_max=0,
    )
    return wire_services(
        settings,
        store=store or FakeVectorStore(),
        llm=llm or FakeChatModel(),
        embeddings=FakeEmbeddings(),
    )


def _client(services: RagServices) -> TestClient:
    return TestClient(create_app(services=services))


@pytest.fixture()
def services() -> RagServices:
    return _services()


# ── Health ──────────────────────────────────────────────────────────────


def test_health_endpoint(services: RagServices) -> None:
    """GET /health should return 200 with status ok."""
    response = _client(services).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_reflects_store_health() -> None:
    store = FakeVectorStore()
    client = _client(_services(store=store))

    assert client.get("/health/ready").status_code == 200
    store.healthy = False
    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "unavailable"}


# ── /api/embed ──────────────────────────────────────────────────────────


class TestEmbedRoute:
    def test_success_returns_document_stored(self, services: RagServices) -> None:
        result = IngestionResult(
            document_id="file-1", segments=1, chunks=3, report=InsertionReport(), elapsed_seconds=0.1
        )
        services.ingestion.ingest_url = AsyncMock(return_value=result)  # type: ignore[method-assign]

        response = _client(services).post(
            "/api/embed", json={"fileUrl": "https://files.example/a.txt", "fileId": "file-1"}
        )

        assert response.status_code == 200
        assert response.json() == DOCUMENT_STORED
        services.ingestion.ingest_url.assert_awaited_once_with("https://files.example/a.txt", "file-1")

    def test_unsupported_media_type_is_415(self, services: RagServices) -> None:
        services.ingestion.ingest_url = AsyncMock(  # type: ignore[method-assign]
            side_effect=UnsupportedMediaTypeError("image/png")
        )

        response = _client(services).post("/api/embed", json={"fileUrl": "https://f/a.png", "fileId": "f"})

        assert response.status_code == 415
        assert response.json()["detail"]["component"] == "validation"

    def test_fetch_failure_is_500_with_component(self, services: RagServices) -> None:
        services.ingestion.ingest_url = AsyncMock(side_effect=FetchError("404"))  # type: ignore[method-assign]

        response = _client(services).post("/api/embed", json={"fileUrl": "https://f/a.pdf", "fileId": "f"})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["message"] == INGESTION_FAILED
        assert detail["component"] == "fetcher"

    def test_partial_write_reports_failed_batches(self, services: RagServices) -> None:
        report = InsertionReport(
            outcomes=[
                BatchOutcome(index=0, size=20, attempts=1, succeeded=True),
                BatchOutcome(index=1, size=7, attempts=5, error="TransientStoreError('429')"),
            ]
        )
        services.ingestion.ingest_url = AsyncMock(  # type: ignore[method-assign]
            side_effect=PartialIngestionError(report)
        )

        response = _client(services).post("/api/embed", json={"fileUrl": "https://f/a.pdf", "fileId": "f"})

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "PartialIngestionError"
        assert detail["failed_batches"] == [1]

    def test_missing_file_id_is_422(self, services: RagServices) -> None:
        response = _client(services).post("/api/embed", json={"fileUrl": "https://f/a.pdf"})
        assert response.status_code == 422


# ── /api/chat ───────────────────────────────────────────────────────────


def _seed(store: FakeVectorStore, document_id: str, texts: list[str]) -> None:
    for i, text in enumerate(texts):
        record = ChunkRecord.create(document_id, i, text, fake_vector(text))
        store.records[record.id] = record


class TestChatRoute:
    def test_streams_grounded_answer(self) -> None:
        store = FakeVectorStore()
        _seed(store, "file-1", ["hello world", "hello again"])
        llm = FakeChatModel(gate_answer="yes", reply="It says hello world")

        response = _client(_services(llm=llm, store=store)).post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "What about hello?"}], "fileId": "file-1"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.strip() == "It says hello world"
        assert store.search_calls[0]["document_id"] == "file-1"
        assert "hello world" in llm.stream_prompts[0][0].content

    def test_greeting_skips_retrieval(self) -> None:
        store = FakeVectorStore()
        llm = FakeChatModel(gate_answer="no", reply="Hi")

        response = _client(_services(llm=llm, store=store)).post(
            "/api/chat", json={"messages": [{"role": "user", "content": "hello"}], "fileId": "file-1"}
        )

        assert response.status_code == 200
        assert response.text.strip() == "Hi"
        assert store.search_calls == []

    def test_last_message_not_from_user_is_422(self, services: RagServices) -> None:
        response = _client(services).post(
            "/api/chat",
            json={"messages": [{"role": "assistant", "content": "hi"}], "fileId": "file-1"},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["component"] == "chat"

    def test_empty_messages_is_422(self, services: RagServices) -> None:
        response = _client(services).post("/api/chat", json={"messages": [], "fileId": "file-1"})
        assert response.status_code == 422

    def test_retrieval_failure_is_500_before_streaming(self) -> None:
        store = FakeVectorStore()
        store.similarity_search = AsyncMock(side_effect=StoreError("down"))  # type: ignore[method-assign]
        llm = FakeChatModel(gate_answer="yes")

        response = _client(_services(llm=llm, store=store)).post(
            "/api/chat", json={"messages": [{"role": "user", "content": "What?"}], "fileId": "file-1"}
        )

        assert response.status_code == 500
        assert response.json()["detail"]["component"] == "vector_store"
        assert llm.stream_prompts == []

    def test_gate_transport_failure_is_500_with_component(self) -> None:
        class UnreachableModel(FakeChatModel):
            async def ainvoke(self, messages, **kwargs):  # noqa: ANN001, ANN003, ANN201
                raise ConnectionError("connection refused")

        llm = UnreachableModel()
        response = _client(_services(llm=llm)).post(
            "/api/chat", json={"messages": [{"role": "user", "content": "What?"}], "fileId": "file-1"}
        )

        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["error"] == "GateError"
        assert detail["component"] == "intent_gate"
        assert detail["message"] == CHAT_FAILED
        assert llm.stream_prompts == []

    def test_untyped_failure_still_returns_error_detail(self, services: RagServices) -> None:
        services.chat.prepare = AsyncMock(side_effect=RuntimeError("boom"))  # type: ignore[method-assign]

        response = _client(services).post(
            "/api/chat", json={"messages": [{"role": "user", "content": "What?"}], "fileId": "file-1"}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "error": "RuntimeError",
            "message": CHAT_FAILED,
            "component": "unknown",
        }
