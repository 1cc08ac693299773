"""Coverpage image lookup for FB2 documents with embedded binaries."""

from __future__ import annotations

from lxml import etree

from readermarket.fb2.elements import ElementKind, find_first, text_content

DEFAULT_COVER_CONTENT_TYPE = "image/jpeg"


def extract_cover(root: etree._Element) -> str | None:
    """Return the cover as a data URI, or None when any piece is missing."""

    coverpage = find_first(root, ElementKind.COVERPAGE)
    if coverpage is None:
        return None
    image = find_first(coverpage, ElementKind.IMAGE)
    if image is None:
        return None

    # Namespace prefixes were stripped, so l:href and xlink:href both land on href.
    href = image.get("href")
    if not href:
        return None
    image_id = href.replace("#", "")

    for binary in root.iter(ElementKind.BINARY.value):
        if binary.get("id") != image_id:
            continue
        payload = text_content(binary).strip()
        if not payload:
            return None
        content_type = binary.get("content-type") or DEFAULT_COVER_CONTENT_TYPE
        return f"data:{content_type};base64,{payload}"

    return None
