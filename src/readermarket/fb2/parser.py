"""FictionBook 2 parser producing metadata plus reader-ready chapter markup."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from html import escape
import logging

from lxml import etree

from readermarket.fb2.cover import extract_cover
from readermarket.fb2.elements import (
    ElementKind,
    children_of_kind,
    classify,
    find_first,
    strip_namespaces,
    text_content,
)
from readermarket.fb2.models import Chapter, DocumentMetadata, ParsedDocument

logger = logging.getLogger(__name__)

FALLBACK_CHAPTER_TITLE = "Main Content"
TITLE_SEPARATOR = " - "

# Wrapper tags emitted per content kind; the renderer supports exactly these.
_CONTENT_WRAPPERS: dict[ElementKind, tuple[str, str]] = {
    ElementKind.PARAGRAPH: ("<p>", "</p>"),
    ElementKind.EPIGRAPH: ('<div class="epigraph">', "</div>"),
    ElementKind.POEM: ('<div class="poem">', "</div>"),
    ElementKind.CITE: ('<blockquote class="citation">', "</blockquote>"),
}
_LINE_BREAK = "<br/>"


@dataclass(slots=True)
class ParseError(Exception):
    """Domain error raised when FB2 input cannot be turned into a document."""

    message: str

    def __str__(self) -> str:
        return f"Failed to parse FB2 file: {self.message}"


class MalformedInputError(ParseError):
    """The input is not well-formed XML."""


def _build_parser(encoding: str | None = None) -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        huge_tree=False,
        encoding=encoding,
    )


def _load_tree(payload: bytes, encoding: str | None) -> etree._Element:
    try:
        root = etree.fromstring(payload, parser=_build_parser(encoding))
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise MalformedInputError(str(exc) or "document is empty") from exc
    if root is None:
        raise MalformedInputError("document is empty")
    strip_namespaces(root)
    return root


def parse_fb2(raw_text: str) -> ParsedDocument:
    """Parse already decoded FB2 text.

    The declared encoding in the XML prolog is ignored because the text has been
    decoded already; it is re-encoded as UTF-8 for lxml.
    """

    try:
        payload = raw_text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise MalformedInputError(str(exc)) from exc
    root = _load_tree(payload, "utf-8")
    return build_document(root)


def parse_fb2_bytes(raw: bytes) -> ParsedDocument:
    """Parse undecoded FB2 bytes, honouring the document's own encoding declaration."""

    root = _load_tree(raw, None)
    return build_document(root)


def build_document(root: etree._Element) -> ParsedDocument:
    """Walk a namespace-free FB2 tree into a ParsedDocument."""

    metadata = extract_metadata(root)
    body = root if classify(root) is ElementKind.BODY else find_first(root, ElementKind.BODY)

    chapters: list[Chapter] = []
    if body is not None:
        chapters = extract_chapters(body)
        if not chapters:
            logger.debug("FB2 body has no sections, building a single fallback chapter")
            chapters = [fallback_chapter(body, metadata)]

    logger.debug("Parsed FB2 document %r with %d chapters", metadata.title, len(chapters))
    return ParsedDocument(metadata=metadata, chapters=chapters, cover_image=extract_cover(root))


def extract_metadata(root: etree._Element) -> DocumentMetadata:
    metadata = DocumentMetadata()
    title_info = find_first(root, ElementKind.TITLE_INFO)
    if title_info is None:
        return metadata

    book_title = find_first(title_info, ElementKind.BOOK_TITLE)
    metadata.title = text_content(book_title) if book_title is not None else ""

    author = find_first(title_info, ElementKind.AUTHOR)
    if author is not None:
        metadata.author = _author_name(author)

    annotation = find_first(title_info, ElementKind.ANNOTATION)
    if annotation is not None:
        metadata.description = text_content(annotation).strip()

    genre = find_first(title_info, ElementKind.GENRE)
    if genre is not None:
        metadata.genre = text_content(genre)

    lang = find_first(title_info, ElementKind.LANG)
    if lang is not None:
        metadata.language = text_content(lang)

    date = find_first(title_info, ElementKind.DATE)
    if date is not None:
        metadata.date = date.get("value") or text_content(date)

    return metadata


def _author_name(author: etree._Element) -> str:
    first = find_first(author, ElementKind.FIRST_NAME)
    last = find_first(author, ElementKind.LAST_NAME)
    first_name = text_content(first) if first is not None else ""
    last_name = text_content(last) if last is not None else ""
    return f"{first_name} {last_name}".strip()


def extract_chapters(body: etree._Element) -> list[Chapter]:
    chapters: list[Chapter] = []
    for index, section in enumerate(children_of_kind(body, ElementKind.SECTION), start=1):
        chapters.append(
            Chapter(
                id=index,
                title=_section_title(section, index),
                content=_section_content(section),
            )
        )
    return chapters


def _section_title(section: etree._Element, chapter_id: int) -> str:
    fallback = f"Chapter {chapter_id}"
    title = find_first(section, ElementKind.TITLE)
    if title is None:
        return fallback

    pieces = [text_content(paragraph).strip() for paragraph in title.iter(ElementKind.PARAGRAPH.value)]
    joined = TITLE_SEPARATOR.join(piece for piece in pieces if piece)
    return joined or fallback


def _section_content(section: etree._Element) -> str:
    return "".join(render_element(child) for child in section)


def render_element(element: etree._Element) -> str:
    """Render one section child; titles and unrecognized kinds produce nothing."""

    kind = classify(element)
    if kind is ElementKind.EMPTY_LINE:
        return _LINE_BREAK

    wrapper = _CONTENT_WRAPPERS.get(kind)
    if wrapper is None:
        return ""
    opening, closing = wrapper
    return f"{opening}{inner_markup(element)}{closing}"


def inner_markup(element: etree._Element) -> str:
    """Serialized child markup of an element, falling back to its plain text.

    Nested title blocks (poem and epigraph headings) are dropped; their tail text is kept.
    """

    parts = [escape(element.text or "", quote=False)]
    for child in element:
        if classify(child) is not ElementKind.TITLE:
            parts.append(_serialize_without_titles(child))
        parts.append(escape(child.tail or "", quote=False))
    return "".join(parts) or text_content(element) or ""


def _serialize_without_titles(element: etree._Element) -> str:
    if not isinstance(element.tag, str) or next(element.iter(ElementKind.TITLE.value), None) is None:
        return etree.tostring(element, encoding="unicode", with_tail=False)
    trimmed = deepcopy(element)
    etree.strip_elements(trimmed, ElementKind.TITLE.value, with_tail=False)
    return etree.tostring(trimmed, encoding="unicode", with_tail=False)


def fallback_chapter(body: etree._Element, metadata: DocumentMetadata) -> Chapter:
    """Single chapter built from body-level paragraphs.

    Only one level of sections is unwrapped; deeper nesting is dropped.
    """

    fragments: list[str] = []
    for child in body:
        kind = classify(child)
        if kind is ElementKind.PARAGRAPH:
            fragments.append(render_element(child))
        elif kind is ElementKind.SECTION:
            fragments.extend(render_element(paragraph) for paragraph in children_of_kind(child, ElementKind.PARAGRAPH))

    return Chapter(id=1, title=metadata.title or FALLBACK_CHAPTER_TITLE, content="".join(fragments))
