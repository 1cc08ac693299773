"""Parsed FictionBook structures returned to readers and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_OPTIONAL_METADATA_FIELDS = ("description", "genre", "language", "date")


@dataclass(slots=True)
class DocumentMetadata:
    """Book-level metadata taken from the first title-info block."""

    title: str = ""
    author: str = ""
    description: str | None = None
    genre: str | None = None
    language: str | None = None
    date: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {"title": self.title, "author": self.author}
        for name in _OPTIONAL_METADATA_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload


@dataclass(slots=True)
class Chapter:
    """One readable chapter; `id` is its 1-based position within a single parse."""

    id: int
    title: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "content": self.content}


@dataclass(slots=True)
class ParsedDocument:
    """Parser output owned entirely by the caller."""

    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    chapters: list[Chapter] = field(default_factory=list)
    cover_image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }
        if self.cover_image is not None:
            payload["cover_image"] = self.cover_image
        return payload
