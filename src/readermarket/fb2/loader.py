"""Async URL loader wrapping the synchronous FB2 parser."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path
import threading
from typing import Any
from urllib.parse import urlparse

import requests  # type: ignore[import-untyped]

from readermarket.fb2.config import LoaderSettings
from readermarket.fb2.container import ContainerError, unpack_payload
from readermarket.fb2.models import ParsedDocument
from readermarket.fb2.parser import parse_fb2_bytes

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchError(Exception):
    """Network-side failure while downloading an FB2 book."""

    url: str
    message: str

    def __str__(self) -> str:
        return f"Failed to load FB2 file: {self.message} (url={self.url})"


_CHUNK_BYTES = 64 * 1024


def _declared_length(response: Any) -> int | None:
    raw = (getattr(response, "headers", None) or {}).get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _download(
    url: str,
    settings: LoaderSettings,
    session: Any,
    *,
    cancelled: threading.Event,
    close_session: bool,
) -> bytes:
    limit = settings.max_download_bytes
    try:
        response = session.get(
            url,
            timeout=settings.timeout_seconds,
            headers={"User-Agent": settings.user_agent},
            stream=True,
        )
        try:
            if not 200 <= response.status_code < 300:
                reason = getattr(response, "reason", "") or ""
                raise FetchError(url, f"{response.status_code} {reason}".strip())

            declared = _declared_length(response)
            if declared is not None and declared > limit:
                raise FetchError(url, f"payload exceeds {limit} bytes")

            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=_CHUNK_BYTES):
                if cancelled.is_set():
                    raise FetchError(url, "download cancelled")
                buffer.extend(chunk)
                if len(buffer) > limit:
                    raise FetchError(url, f"payload exceeds {limit} bytes")
            return bytes(buffer)
        finally:
            response.close()
    finally:
        # The worker owns the session so a timed-out caller never closes it mid-read.
        if close_session:
            session.close()


async def load_fb2_url(
    url: str,
    *,
    settings: LoaderSettings | None = None,
    session: Any | None = None,
) -> ParsedDocument:
    """Fetch an FB2 (or zipped FB2) book and parse it.

    Network problems raise FetchError; markup problems surface as
    MalformedInputError from the parser unchanged.
    """

    resolved = settings or LoaderSettings.from_env()
    owns_session = session is None
    http = requests.Session() if owns_session else session
    cancelled = threading.Event()

    try:
        payload = await asyncio.wait_for(
            asyncio.to_thread(
                _download,
                url,
                resolved,
                http,
                cancelled=cancelled,
                close_session=owns_session,
            ),
            timeout=resolved.timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        # The worker thread stops at its next chunk and closes its own session.
        cancelled.set()
        logger.error("Timed out loading FB2 file from %s", url)
        raise FetchError(url, f"timed out after {resolved.timeout_seconds}s") from exc
    except requests.RequestException as exc:
        logger.error("Error loading FB2 file from %s: %s", url, exc)
        raise FetchError(url, str(exc)) from exc
    except FetchError as exc:
        logger.error("Error loading FB2 file: %s", exc)
        raise

    try:
        document_bytes = unpack_payload(Path(urlparse(url).path), payload)
    except ContainerError as exc:
        logger.error("Error unpacking FB2 archive from %s: %s", url, exc.message)
        raise FetchError(url, exc.message) from exc

    return parse_fb2_bytes(document_bytes)
