"""CLI command that parses FB2 books and prints their structure as JSON."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from readermarket.fb2.config import LoaderSettings
from readermarket.fb2.container import ContainerError, is_fb2_path, load_fb2_file
from readermarket.fb2.loader import FetchError, load_fb2_url
from readermarket.fb2.models import ParsedDocument
from readermarket.fb2.parser import ParseError


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(path for path in target.rglob("*") if path.is_file() and is_fb2_path(path))
    return []


def _summarize(source: str, document: ParsedDocument, *, include_content: bool) -> dict[str, object]:
    chapters: list[dict[str, object]] = []
    for chapter in document.chapters:
        entry: dict[str, object] = {"id": chapter.id, "title": chapter.title}
        if include_content:
            entry["content"] = chapter.content
        chapters.append(entry)

    return {
        "source": source,
        "metadata": document.metadata.to_dict(),
        "chapter_count": len(document.chapters),
        "chapters": chapters,
        "has_cover": document.cover_image is not None,
    }


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse FB2 books into metadata and chapters")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--path", help="FB2 file or directory of FB2 files")
    target.add_argument("--url", help="URL of an FB2 file to download and parse")
    parser.add_argument("--include-content", action="store_true", help="Include chapter markup in the output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    results: list[dict[str, object]] = []
    errors: list[dict[str, str]] = []

    if args.url:
        try:
            settings = LoaderSettings.from_env()
            document = asyncio.run(load_fb2_url(args.url, settings=settings))
        except (ValueError, FetchError, ParseError) as exc:
            errors.append({"source": args.url, "error": str(exc)})
        else:
            results.append(_summarize(args.url, document, include_content=args.include_content))
    else:
        files = _collect_inputs(Path(args.path))
        if not files:
            LOGGER.warning("No FB2 files found at %s", args.path)
        for file_path in files:
            try:
                document = load_fb2_file(file_path)
            except (ContainerError, ParseError) as exc:
                LOGGER.error("Failed to parse %s: %s", file_path, exc)
                errors.append({"source": str(file_path), "error": str(exc)})
                continue
            results.append(_summarize(str(file_path), document, include_content=args.include_content))

    payload = {
        "processed": len(results),
        "results": results,
        "errors": errors,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
