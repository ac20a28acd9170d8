"""Domain models for stored chunk records and search hits."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


def make_record_id(document_id: str, chunk_index: int) -> str:
    """Deterministic record key so a retried batch overwrites, not duplicates."""
    return f"{document_id}:{chunk_index}"


class ChunkRecord(BaseModel):
    """One embedded chunk as persisted in the vector store.

    Attributes
    ----------
    id:
        Store key, ``"<document_id>:<chunk_index>"``.
    document_id:
        Partition key; every search filters on it.
    text:
        The chunk text returned as context at query time.
    vector:
        Embedding of ``text``; dimensionality fixed by the embedding model.
    chunk_index:
        Ordinal position of the chunk within its document.
    """

    id: str
    document_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    vector: list[float] = Field(min_length=1)
    chunk_index: int = 0

    @classmethod
    def create(cls, document_id: str, chunk_index: int, text: str, vector: list[float]) -> ChunkRecord:
        return cls(
            id=make_record_id(document_id, chunk_index),
            document_id=document_id,
            text=text,
            vector=vector,
            chunk_index=chunk_index,
        )

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk text must not be blank")
        return value


class SearchHit(BaseModel):
    """A single ranked result from a scoped similarity search."""

    id: str
    document_id: str
    text: str
    score: float | None = None
    chunk_index: int | None = None

    def __str__(self) -> str:  # noqa: D105
        return f"[{self.document_id}§{self.chunk_index}] {self.text[:120]}…"
