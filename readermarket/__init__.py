"""Checkout-level `readermarket` package that resolves submodules from `src/readermarket`.

Lets `python -m readermarket.cli.parse_book` run from a source tree without an install.
"""

from __future__ import annotations

from pathlib import Path

_SOURCE_TREE = Path(__file__).resolve().parents[1] / "src" / "readermarket"

if _SOURCE_TREE.is_dir() and str(_SOURCE_TREE) not in __path__:
    __path__.append(str(_SOURCE_TREE))
