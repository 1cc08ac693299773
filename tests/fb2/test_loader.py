from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from io import BytesIO
import time
from typing import Iterator
from zipfile import ZipFile

import pytest
import requests  # type: ignore[import-untyped]

from readermarket.fb2.config import LoaderSettings
from readermarket.fb2.loader import FetchError, load_fb2_url
from readermarket.fb2.parser import MalformedInputError

_BOOK = (
    b'<?xml version="1.0" encoding="utf-8"?>'
    b'<FictionBook xmlns="http://www.gribuser.ru/xml/fictionbook/2.0">'
    b"<description><title-info><book-title>Remote</book-title></title-info></description>"
    b"<body><section><p>Fetched</p></section></body>"
    b"</FictionBook>"
)


@dataclass
class _FakeResponse:
    status_code: int = 200
    content: bytes = b""
    reason: str = "OK"
    headers: dict[str, str] = field(default_factory=dict)
    chunk_size: int | None = None
    chunks_read: int = 0
    closed: bool = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        step = self.chunk_size or chunk_size
        for start in range(0, len(self.content), step):
            self.chunks_read += 1
            yield self.content[start : start + step]

    def close(self) -> None:
        self.closed = True


@dataclass
class _FakeSession:
    responses: list[object]
    delay_seconds: float = 0.0
    calls: list[tuple[str, float, dict[str, str]]] = field(default_factory=list)
    streamed: list[bool] = field(default_factory=list)
    closed: bool = False

    def get(self, url: str, *, timeout: float, headers: dict[str, str], stream: bool = False) -> _FakeResponse:
        self.calls.append((url, timeout, headers))
        self.streamed.append(stream)
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        assert isinstance(response, _FakeResponse)
        return response

    def close(self) -> None:
        self.closed = True


def test_load_fb2_url_parses_downloaded_book() -> None:
    session = _FakeSession([_FakeResponse(content=_BOOK)])
    settings = LoaderSettings(timeout_seconds=5.0, user_agent="Tester/1.0")

    document = asyncio.run(load_fb2_url("https://books.example/remote.fb2", settings=settings, session=session))

    assert document.metadata.title == "Remote"
    assert document.chapters[0].content == "<p>Fetched</p>"
    url, timeout, headers = session.calls[0]
    assert url == "https://books.example/remote.fb2"
    assert timeout == 5.0
    assert headers == {"User-Agent": "Tester/1.0"}


def test_load_fb2_url_unpacks_zipped_payload() -> None:
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("remote.fb2", _BOOK)
    session = _FakeSession([_FakeResponse(content=buffer.getvalue())])

    document = asyncio.run(load_fb2_url("https://books.example/remote.fbz", settings=LoaderSettings(), session=session))

    assert document.metadata.title == "Remote"


def test_non_success_status_raises_fetch_error() -> None:
    session = _FakeSession([_FakeResponse(status_code=404, reason="Not Found")])

    with pytest.raises(FetchError, match="404 Not Found") as excinfo:
        asyncio.run(load_fb2_url("https://books.example/missing.fb2", settings=LoaderSettings(), session=session))

    assert excinfo.value.url == "https://books.example/missing.fb2"


def test_connection_errors_are_wrapped() -> None:
    session = _FakeSession([requests.ConnectionError("connection refused")])

    with pytest.raises(FetchError, match="connection refused"):
        asyncio.run(load_fb2_url("https://books.example/book.fb2", settings=LoaderSettings(), session=session))


def test_oversize_payload_is_rejected() -> None:
    session = _FakeSession([_FakeResponse(content=b"x" * 2048)])
    settings = LoaderSettings(max_download_bytes=1024)

    with pytest.raises(FetchError, match="exceeds 1024 bytes"):
        asyncio.run(load_fb2_url("https://books.example/big.fb2", settings=settings, session=session))


def test_slow_download_times_out() -> None:
    session = _FakeSession([_FakeResponse(content=_BOOK)], delay_seconds=0.5)
    settings = LoaderSettings(timeout_seconds=0.1)

    with pytest.raises(FetchError, match="timed out"):
        asyncio.run(load_fb2_url("https://books.example/slow.fb2", settings=settings, session=session))


def test_malformed_download_surfaces_parse_error() -> None:
    session = _FakeSession([_FakeResponse(content=b"<FictionBook><body>")])

    with pytest.raises(MalformedInputError):
        asyncio.run(load_fb2_url("https://books.example/bad.fb2", settings=LoaderSettings(), session=session))


def test_declared_length_over_limit_is_rejected_before_reading() -> None:
    response = _FakeResponse(content=_BOOK, headers={"Content-Length": "999999"})
    session = _FakeSession([response])
    settings = LoaderSettings(max_download_bytes=1024)

    with pytest.raises(FetchError, match="exceeds 1024 bytes"):
        asyncio.run(load_fb2_url("https://books.example/big.fb2", settings=settings, session=session))

    assert session.streamed == [True]
    assert response.chunks_read == 0
    assert response.closed is True


def test_streamed_download_stops_once_limit_is_passed() -> None:
    response = _FakeResponse(content=b"x" * 10_000, chunk_size=512)
    session = _FakeSession([response])
    settings = LoaderSettings(max_download_bytes=1024)

    with pytest.raises(FetchError, match="exceeds 1024 bytes"):
        asyncio.run(load_fb2_url("https://books.example/big.fb2", settings=settings, session=session))

    assert response.chunks_read == 3
    assert response.closed is True


def test_caller_session_is_left_open() -> None:
    session = _FakeSession([_FakeResponse(content=_BOOK)])

    asyncio.run(load_fb2_url("https://books.example/remote.fb2", settings=LoaderSettings(), session=session))

    assert session.closed is False


def test_owned_session_is_closed_by_the_worker(monkeypatch) -> None:
    session = _FakeSession([_FakeResponse(content=_BOOK)])
    monkeypatch.setattr(requests, "Session", lambda: session)

    document = asyncio.run(load_fb2_url("https://books.example/remote.fb2", settings=LoaderSettings()))

    assert document.metadata.title == "Remote"
    assert session.closed is True


def test_timed_out_worker_closes_owned_session_after_it_finishes(monkeypatch) -> None:
    session = _FakeSession([_FakeResponse(content=_BOOK)], delay_seconds=0.3)
    monkeypatch.setattr(requests, "Session", lambda: session)

    with pytest.raises(FetchError, match="timed out"):
        asyncio.run(load_fb2_url("https://books.example/slow.fb2", settings=LoaderSettings(timeout_seconds=0.1)))

    # asyncio.run waits for the default executor, so the worker has finished by now.
    assert session.closed is True
