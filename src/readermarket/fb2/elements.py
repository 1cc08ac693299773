"""Recognized FictionBook element kinds and namespace-free tree helpers."""

from __future__ import annotations

from enum import Enum

from lxml import etree


class ElementKind(str, Enum):
    TITLE_INFO = "title-info"
    BOOK_TITLE = "book-title"
    AUTHOR = "author"
    FIRST_NAME = "first-name"
    LAST_NAME = "last-name"
    ANNOTATION = "annotation"
    GENRE = "genre"
    LANG = "lang"
    DATE = "date"
    BODY = "body"
    SECTION = "section"
    TITLE = "title"
    PARAGRAPH = "p"
    EPIGRAPH = "epigraph"
    POEM = "poem"
    CITE = "cite"
    EMPTY_LINE = "empty-line"
    COVERPAGE = "coverpage"
    IMAGE = "image"
    BINARY = "binary"
    OTHER = ""


_KINDS_BY_TAG = {kind.value: kind for kind in ElementKind if kind is not ElementKind.OTHER}


def classify(element: etree._Element) -> ElementKind:
    """Return the kind for an element; comments, PIs and unknown tags are OTHER."""

    tag = element.tag
    if not isinstance(tag, str):
        return ElementKind.OTHER
    return _KINDS_BY_TAG.get(tag, ElementKind.OTHER)


def strip_namespaces(root: etree._Element) -> None:
    """Rewrite element and attribute names to their local parts in place."""

    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        element.tag = etree.QName(element).localname
        for name in list(element.attrib):
            if name.startswith("{"):
                value = element.attrib.pop(name)
                element.attrib[etree.QName(name).localname] = value
    etree.cleanup_namespaces(root)


def find_first(element: etree._Element, kind: ElementKind) -> etree._Element | None:
    """First descendant of the given kind in document order."""

    for candidate in element.iter(kind.value):
        if candidate is not element:
            return candidate
    return None


def children_of_kind(element: etree._Element, kind: ElementKind) -> list[etree._Element]:
    return [child for child in element if classify(child) is kind]


def text_content(element: etree._Element) -> str:
    """Concatenated text of the element and all descendants, untrimmed."""

    return "".join(element.itertext())
