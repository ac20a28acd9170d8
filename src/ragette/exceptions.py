"""Typed failures raised by the ingestion and chat pipelines.

Every error carries the ``component`` that produced it and chains the
underlying exception via ``raise ... from exc`` so callers can log and
react without string matching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ragette.ingestion.batch_inserter import InsertionReport


class RagetteError(Exception):
    """Base class for all pipeline failures."""

    component: str = "ragette"

    def __init__(self, message: str, *, component: str | None = None) -> None:
        super().__init__(message)
        if component is not None:
            self.component = component


class FetchError(RagetteError):
    """The uploaded file could not be downloaded."""

    component = "fetcher"


class UnsupportedMediaTypeError(RagetteError):
    """The declared media type is not PDF, plain text or CSV."""

    component = "validation"

    def __init__(self, media_type: str) -> None:
        super().__init__(f"Unsupported media type: {media_type!r}")
        self.media_type = media_type


class LoadError(RagetteError):
    """A file of a supported type is unreadable, corrupt or empty."""

    component = "loader"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Could not load document: {reason}")
        self.reason = reason


class EmbeddingError(RagetteError):
    """The embedding service failed for at least one sub-batch."""

    component = "embedder"


class GateError(RagetteError):
    """The question-check call to the chat model failed."""

    component = "intent_gate"


class StoreError(RagetteError):
    """Non-retryable vector-store failure."""

    component = "vector_store"


class TransientStoreError(StoreError):
    """Rate limit, timeout or connection reset; safe to retry."""


class StoreWriteError(StoreError):
    """Batch insertion gave up on one or more batches.

    Raised as-is when no batch was written.
    """

    component = "batch_inserter"

    def __init__(self, report: InsertionReport, message: str | None = None) -> None:
        failed = report.failed_indices
        super().__init__(
            message
            or f"{len(failed)} of {len(report.outcomes)} batch(es) failed permanently: {failed}"
        )
        self.report = report

    @property
    def failed_batches(self) -> list[int]:
        return self.report.failed_indices


class PartialIngestionError(StoreWriteError):
    """Some batches were written and others were not.

    The document is left partially indexed; callers should prompt a
    re-upload (record ids are deterministic, so re-ingesting overwrites).
    """

    def __init__(self, report: InsertionReport) -> None:
        failed = report.failed_indices
        super().__init__(
            report,
            f"Document partially indexed: {report.records_inserted} record(s) stored, "
            f"batch(es) {failed} failed permanently",
        )


class InvalidChatRequestError(RagetteError, ValueError):
    """Chat input is empty, has no trailing user turn, or no document id."""

    component = "chat"
