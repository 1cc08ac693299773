"""Runtime configuration for remote FB2 loading."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_DOWNLOAD_BYTES = 50 * 1024 * 1024
DEFAULT_USER_AGENT = "ReaderMarket/0.1"


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class LoaderSettings:
    """Validated settings for fetching FB2 books over HTTP."""

    timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LoaderSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        timeout_raw = source.get("READER_FETCH_TIMEOUT_SECONDS", str(DEFAULT_FETCH_TIMEOUT_SECONDS)).strip()
        max_bytes_raw = source.get("READER_MAX_DOWNLOAD_BYTES", str(DEFAULT_MAX_DOWNLOAD_BYTES)).strip()
        user_agent = source.get("READER_USER_AGENT", DEFAULT_USER_AGENT).strip()

        if not timeout_raw:
            raise ValueError("READER_FETCH_TIMEOUT_SECONDS cannot be empty")
        if not max_bytes_raw:
            raise ValueError("READER_MAX_DOWNLOAD_BYTES cannot be empty")
        if not user_agent:
            raise ValueError("READER_USER_AGENT cannot be empty")

        timeout_seconds = _parse_positive_float(
            name="READER_FETCH_TIMEOUT_SECONDS",
            raw_value=timeout_raw,
            minimum=0.1,
        )
        max_download_bytes = _parse_positive_int(
            name="READER_MAX_DOWNLOAD_BYTES",
            raw_value=max_bytes_raw,
            minimum=1024,
        )

        return cls(
            timeout_seconds=timeout_seconds,
            max_download_bytes=max_download_bytes,
            user_agent=user_agent,
        )
