"""Document loaders — thin wrappers around LangChain document loaders."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING

from langchain_community.document_loaders import CSVLoader, PyPDFLoader, TextLoader

from ragette.exceptions import LoadError, UnsupportedMediaTypeError

if TYPE_CHECKING:
    from langchain_core.document_loaders import BaseLoader
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)


class MediaType(str, Enum):
    """Media types accepted for ingestion."""

    PDF = "application/pdf"
    TEXT = "text/plain"
    CSV = "text/csv"

    @classmethod
    def from_content_type(cls, content_type: str | None) -> MediaType:
        """Resolve a ``Content-Type`` value (parameters allowed) to a member.

        Raises
        ------
        UnsupportedMediaTypeError
            For anything other than PDF, plain text or CSV.
        """
        essence = (content_type or "").split(";", 1)[0].strip().lower()
        resolved = _ALIASES.get(essence)
        if resolved is None:
            raise UnsupportedMediaTypeError(content_type or "")
        return resolved

    @property
    def suffix(self) -> str:
        return _SUFFIXES[self]


_ALIASES: dict[str, MediaType] = {
    "application/pdf": MediaType.PDF,
    "application/x-pdf": MediaType.PDF,
    "text/plain": MediaType.TEXT,
    "text/csv": MediaType.CSV,
    "application/csv": MediaType.CSV,
    "text/comma-separated-values": MediaType.CSV,
}

_SUFFIXES: dict[MediaType, str] = {
    MediaType.PDF: ".pdf",
    MediaType.TEXT: ".txt",
    MediaType.CSV: ".csv",
}


def _make_loader(path: str, media_type: MediaType) -> BaseLoader:
    if media_type is MediaType.PDF:
        return PyPDFLoader(path)
    if media_type is MediaType.CSV:
        return CSVLoader(path, encoding="utf-8")
    return TextLoader(path, encoding="utf-8")


def iter_segments(data: bytes, media_type: MediaType, *, source: str = "upload") -> Iterator[Document]:
    """Lazily yield text segments from a raw file blob.

    PDFs yield one segment per page (``page`` metadata), CSVs one per row
    (``row`` metadata), plain text a single segment.  Every segment's
    ``source`` metadata is set to *source*.

    Raises
    ------
    LoadError
        When the blob cannot be parsed as *media_type*.
    """
    fd, path = tempfile.mkstemp(suffix=media_type.suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        loader = _make_loader(path, media_type)
        try:
            for segment in loader.lazy_load():
                segment.metadata["source"] = source
                yield segment
        except Exception as exc:
            raise LoadError(f"{media_type.value} parse failed: {exc}") from exc
    finally:
        os.unlink(path)


def load_document(data: bytes, media_type: MediaType, *, source: str = "upload") -> list[Document]:
    """Load every segment of a file, dropping segments without text.

    Raises
    ------
    LoadError
        When the file is corrupt or contains no extractable text.
    """
    segments = [s for s in iter_segments(data, media_type, source=source) if s.page_content.strip()]
    if not segments:
        raise LoadError(f"no extractable text in {media_type.value} file")
    logger.info("Loaded %d segment(s) from %s (%s)", len(segments), source, media_type.value)
    return segments


async def aload_document(data: bytes, media_type: MediaType, *, source: str = "upload") -> list[Document]:
    """Run :func:`load_document` in a worker thread."""
    return await asyncio.to_thread(load_document, data, media_type, source=source)
