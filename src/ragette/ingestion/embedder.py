"""Embedding client — bounded-concurrency, order-preserving batch embedding."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from ragette.exceptions import EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from ragette.config import Settings

logger = logging.getLogger(__name__)


def build_embeddings(settings: Settings) -> Embeddings:
    """Return the LangChain embedding model selected by *settings*.

    ``openai`` (default) uses ``OpenAIEmbeddings``; ``huggingface`` runs a
    local sentence-transformer through ``HuggingFaceEmbeddings``.
    """
    provider = settings.embedding_provider.lower()
    if provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        kwargs: dict = {
            "model": settings.embedding_model,
            "timeout": settings.embedding_timeout,
            # Retries are owned by EmbeddingClient.
            "max_retries": 0,
        }
        if settings.openai_api_key:
            kwargs["api_key"] = settings.openai_api_key
        return OpenAIEmbeddings(**kwargs)
    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=settings.embedding_model)
    raise ValueError(f"Unknown embedding provider: {settings.embedding_provider!r}")


class EmbeddingClient:
    """Turns text into fixed-dimension vectors.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    batch_size:
        Maximum number of texts sent in one underlying call.
    max_concurrency:
        Maximum number of underlying calls in flight at once.
    max_attempts:
        Attempts per sub-batch before the whole call fails.
    timeout:
        Seconds before a single underlying call is abandoned.
    dimensions:
        Expected vector size; ``None`` disables the check.
    backoff_initial / backoff_max:
        Exponential backoff bounds (seconds) between attempts.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        batch_size: int = 512,
        max_concurrency: int = 10,
        max_attempts: int = 3,
        timeout: float = 60.0,
        dimensions: int | None = None,
        backoff_initial: float = 1.0,
        backoff_max: float = 10.0,
    ) -> None:
        if batch_size < 1 or max_concurrency < 1 or max_attempts < 1:
            raise ValueError("batch_size, max_concurrency and max_attempts must be >= 1")
        self._embeddings = embeddings
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.dimensions = dimensions
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max

    @classmethod
    def from_settings(cls, embeddings: Embeddings, settings: Settings) -> EmbeddingClient:
        return cls(
            embeddings,
            batch_size=settings.embedding_batch_size,
            max_concurrency=settings.embedding_max_concurrency,
            max_attempts=settings.embedding_max_attempts,
            timeout=settings.embedding_timeout,
            dimensions=settings.embedding_dimensions,
        )

    # -- public API -----------------------------------------------------------

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single query string."""
        vector = await self._with_retry(self._embeddings.aembed_query, text, label="query")
        self._check_dimensions([vector])
        return vector

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts*, returning one vector per input in input order.

        Sub-batches run concurrently (bounded by ``max_concurrency``) and
        may finish in any order; results are slotted back by position.
        """
        if not texts:
            return []

        batches = [
            list(texts[start : start + self.batch_size])
            for start in range(0, len(texts), self.batch_size)
        ]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(index: int, batch: list[str]) -> list[list[float]]:
            async with semaphore:
                vectors = await self._with_retry(
                    self._embeddings.aembed_documents, batch, label=f"batch {index}"
                )
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Embedding batch {index} returned {len(vectors)} vector(s) for {len(batch)} text(s)"
                )
            return vectors

        logger.info(
            "Embedding %d text(s) in %d sub-batch(es), concurrency=%d",
            len(texts),
            len(batches),
            self.max_concurrency,
        )
        tasks = [asyncio.ensure_future(run(i, b)) for i, b in enumerate(batches)]
        try:
            # gather keeps positional order regardless of completion order
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        vectors = [vector for batch_vectors in results for vector in batch_vectors]
        self._check_dimensions(vectors)
        return vectors

    # -- internals ------------------------------------------------------------

    async def _with_retry(self, fn, payload, *, label: str):  # noqa: ANN001, ANN202
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self._backoff_initial, max=self._backoff_max),
            before_sleep=lambda state: logger.warning(
                "Embedding %s attempt %d/%d failed: %r",
                label,
                state.attempt_number,
                self.max_attempts,
                state.outcome.exception() if state.outcome else None,
            ),
        )

        async def call():  # noqa: ANN202
            return await asyncio.wait_for(fn(payload), self.timeout)

        try:
            return await retrying(call)
        except RetryError as exc:
            cause = exc.last_attempt.exception()
            raise EmbeddingError(
                f"Embedding {label} failed after {self.max_attempts} attempt(s): {cause!r}"
            ) from cause

    def _check_dimensions(self, vectors: list[list[float]]) -> None:
        if self.dimensions is None:
            return
        for position, vector in enumerate(vectors):
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"Vector {position} has {len(vector)} dimension(s), expected {self.dimensions}"
                )
