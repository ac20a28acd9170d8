"""Download the uploaded file referenced by the ingestion request."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from urllib.parse import urlparse

import requests
from tenacity import RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ragette.exceptions import FetchError

logger = logging.getLogger(__name__)

_RETRY_STATUS = {429, 500, 502, 503, 504}
_GENERIC_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


@dataclass(frozen=True)
class FetchedFile:
    """Raw file body plus the media type it was served with."""

    data: bytes
    media_type: str
    source: str


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code in _RETRY_STATUS
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))


def resolve_media_type(content_type: str | None, url: str) -> str:
    """Return the header media type, falling back to the URL suffix."""
    essence = (content_type or "").split(";", 1)[0].strip().lower()
    if essence not in _GENERIC_TYPES:
        return essence
    guessed, _ = mimetypes.guess_type(urlparse(url).path)
    return guessed or essence


def fetch_file(
    file_url: str,
    *,
    timeout: float = 60.0,
    max_retries: int = 3,
    backoff_initial: float = 1.0,
    session: requests.Session | None = None,
) -> FetchedFile:
    """Download *file_url* with retries on connection errors and 429 / 5xx.

    Raises
    ------
    FetchError
        When the download fails for good.
    """
    http = session or requests.Session()

    def _get() -> FetchedFile:
        with http.get(file_url, timeout=timeout, stream=True) as resp:
            resp.raise_for_status()
            data = b"".join(resp.iter_content(chunk_size=64 * 1024))
            media_type = resolve_media_type(resp.headers.get("content-type"), file_url)
        return FetchedFile(data=data, media_type=media_type, source=file_url)

    retrying = Retrying(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=backoff_initial, max=30),
        before_sleep=lambda state: logger.warning(
            "Retry %d/%d for %s: %s",
            state.attempt_number,
            max_retries,
            file_url,
            state.outcome.exception() if state.outcome else None,
        ),
    )
    try:
        fetched = retrying(_get)
    except RetryError as exc:
        cause = exc.last_attempt.exception()
        raise FetchError(f"Failed to fetch {file_url} after {max_retries} attempts: {cause}") from cause
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch {file_url}: {exc}") from exc
    finally:
        if session is None:
            http.close()

    logger.info("Fetched %s (%d bytes, %s)", file_url, len(fetched.data), fetched.media_type or "unknown type")
    return fetched


async def afetch_file(file_url: str, **kwargs) -> FetchedFile:  # noqa: ANN003
    """Run :func:`fetch_file` in a worker thread."""
    return await asyncio.to_thread(fetch_file, file_url, **kwargs)
