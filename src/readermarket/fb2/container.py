"""Local FB2 file loading with raw and zipped container support."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from readermarket.fb2.models import ParsedDocument
from readermarket.fb2.parser import parse_fb2_bytes

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"


@dataclass(slots=True)
class ContainerError(Exception):
    """Domain error for unreadable files and broken FB2 archives."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


def is_fb2_path(path: Path) -> bool:
    suffixes = [part.lower() for part in path.suffixes]
    if not suffixes:
        return False
    if suffixes[-1] in {".fb2", ".fbz"}:
        return True
    return suffixes[-2:] == [".fb2", ".zip"]


def _is_zipped(path: Path, raw: bytes) -> bool:
    if raw.startswith(_ZIP_MAGIC):
        return True
    return path.suffix.lower() in {".zip", ".fbz"}


def _extract_from_zip(path: Path, raw: bytes) -> bytes:
    try:
        with ZipFile(BytesIO(raw), "r") as archive:
            candidates = [name for name in archive.namelist() if not name.endswith("/")]
            fb2_name = next((name for name in candidates if name.lower().endswith(".fb2")), None)
            target = fb2_name or (candidates[0] if candidates else None)
            if not target:
                raise ContainerError(path, "Zipped FB2 container has no readable files")
            return archive.read(target)
    except BadZipFile as exc:
        raise ContainerError(path, f"Broken FB2 archive: {exc}") from exc


def unpack_payload(source: Path, raw: bytes) -> bytes:
    """Return the FB2 document inside a zipped container, or the raw bytes unchanged."""

    if _is_zipped(source, raw):
        return _extract_from_zip(source, raw)
    return raw


def read_fb2_payload(path: str | Path) -> bytes:
    """Return raw FB2 bytes, unpacking .fbz and .fb2.zip containers."""

    source = Path(path)
    try:
        raw = source.read_bytes()
    except OSError as exc:
        raise ContainerError(source, f"Failed to read source file: {exc}") from exc
    return unpack_payload(source, raw)


def load_fb2_file(path: str | Path) -> ParsedDocument:
    """Read and parse a local FB2 file; markup errors propagate as MalformedInputError."""

    source = Path(path)
    payload = read_fb2_payload(source)
    logger.debug("Loaded %d FB2 bytes from %s", len(payload), source)
    return parse_fb2_bytes(payload)
