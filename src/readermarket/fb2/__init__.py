"""FictionBook 2 parsing for the Reader.Market reader."""

from .container import ContainerError, is_fb2_path, load_fb2_file, read_fb2_payload
from .loader import FetchError, load_fb2_url
from .models import Chapter, DocumentMetadata, ParsedDocument
from .parser import MalformedInputError, ParseError, parse_fb2, parse_fb2_bytes

__all__ = [
    "Chapter",
    "ContainerError",
    "DocumentMetadata",
    "FetchError",
    "MalformedInputError",
    "ParseError",
    "ParsedDocument",
    "is_fb2_path",
    "load_fb2_file",
    "load_fb2_url",
    "parse_fb2",
    "parse_fb2_bytes",
    "read_fb2_payload",
]
