"""Base parser interface for ebook archive formats."""

from __future__ import annotations

from abc import ABC, abstractmethod

from quire.library.models import Book
from quire.parsers.archive import Archive


class BaseParser(ABC):
    """Abstract base for format-specific parsers."""

    SUPPORTED_EXTENSIONS: tuple[str, ...] = ()

    @abstractmethod
    def parse(self, archive: Archive, display_name: str, book_id: str) -> Book:
        """Parse an opened archive and return a structured book."""

    @classmethod
    def can_handle(cls, filename: str) -> bool:
        return filename.lower().endswith(cls.SUPPORTED_EXTENSIONS)


def get_parser(filename: str) -> BaseParser:
    """Return the appropriate parser for a file name."""
    from quire.parsers.epub_parser import EpubParser

    parsers: list[type[BaseParser]] = [EpubParser]
    for parser_cls in parsers:
        if parser_cls.can_handle(filename):
            return parser_cls()

    supported = []
    for p in parsers:
        supported.extend(p.SUPPORTED_EXTENSIONS)
    suffix = filename.rsplit(".", 1)[-1] if "." in filename else ""
    raise ValueError(
        f"Unsupported format: .{suffix}. Supported: {', '.join(supported)}"
    )
