"""Data models for the book library."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from quire.content.paginator import DEFAULT_PAGE_WORDS, Page, paginate
from quire.content.sanitizer import sanitize

HIGHLIGHT_COLORS = ("yellow", "blue", "green")


def make_id(prefix: str) -> str:
    """Random 128-bit identifier, e.g. ``book_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass
class BookMetadata:
    title: str = "Unknown Title"
    creator: str = "Unknown Author"
    language: str = "en"
    identifier: str = ""
    description: str = ""
    publisher: str = ""
    date: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "creator": self.creator,
            "language": self.language,
            "identifier": self.identifier,
            "description": self.description,
            "publisher": self.publisher,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BookMetadata:
        defaults = cls()
        return cls(
            **{key: data.get(key, value) for key, value in defaults.to_dict().items()}
        )


@dataclass
class Chapter:
    """One spine document. Sanitized markup and pages are derived lazily."""

    id: str
    title: str
    raw_content: str
    path: str
    index: int
    _sanitized: Optional[str] = field(default=None, repr=False, compare=False)
    _pages: dict[int, list[Page]] = field(
        default_factory=dict, repr=False, compare=False
    )

    @property
    def sanitized_content(self) -> str:
        if self._sanitized is None:
            self._sanitized = sanitize(self.raw_content)
        return self._sanitized

    def pages(self, page_word_budget: int = DEFAULT_PAGE_WORDS) -> list[Page]:
        cached = self._pages.get(page_word_budget)
        if cached is None:
            cached = paginate(self.sanitized_content, page_word_budget)
            self._pages[page_word_budget] = cached
        return cached

    def invalidate(self) -> None:
        self._sanitized = None
        self._pages.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.raw_content,
            "path": self.path,
            "index": self.index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chapter:
        return cls(
            id=data["id"],
            title=data["title"],
            raw_content=data.get("content", ""),
            path=data.get("path", ""),
            index=data["index"],
        )


@dataclass
class Highlight:
    id: str
    text: str
    color: str  # one of HIGHLIGHT_COLORS
    book_id: str
    chapter: int
    page: int  # advisory, pagination is not stable across re-layout
    date_created: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "color": self.color,
            "bookId": self.book_id,
            "chapter": self.chapter,
            "page": self.page,
            "dateCreated": self.date_created,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Highlight:
        return cls(
            id=data["id"],
            text=data["text"],
            color=data["color"],
            book_id=data["bookId"],
            chapter=data["chapter"],
            page=data.get("page", 0),
            date_created=data["dateCreated"],
        )


@dataclass
class Book:
    id: str
    filename: str
    metadata: BookMetadata = field(default_factory=BookMetadata)
    chapters: list[Chapter] = field(default_factory=list)
    toc_override: Optional[list[str]] = None
    current_chapter: int = 0
    current_page: int = 0
    scroll_position: Optional[float] = None
    highlights: dict[str, Highlight] = field(default_factory=dict)
    date_added: float = field(default_factory=time.time)
    last_read: float = field(default_factory=time.time)

    @staticmethod
    def make_id() -> str:
        return make_id("book")

    @property
    def title(self) -> str:
        return self.metadata.title

    def toc(self) -> list[tuple[int, str]]:
        """(chapter_index, title) pairs; override titles win positionally."""
        override = self.toc_override or []
        return [
            (ch.index, override[i] if i < len(override) and override[i] else ch.title)
            for i, ch in enumerate(self.chapters)
        ]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "filename": self.filename,
            "metadata": self.metadata.to_dict(),
            "chapters": [ch.to_dict() for ch in self.chapters],
            "currentChapter": self.current_chapter,
            "currentPage": self.current_page,
            "highlights": [[hid, h.to_dict()] for hid, h in self.highlights.items()],
            "dateAdded": self.date_added,
            "lastRead": self.last_read,
        }
        if self.toc_override is not None:
            data["tocOverride"] = list(self.toc_override)
        if self.scroll_position is not None:
            data["scrollPosition"] = self.scroll_position
        return data

    @classmethod
    def from_dict(cls, book_id: str, data: dict[str, Any]) -> Book:
        return cls(
            id=book_id,
            filename=data["filename"],
            metadata=BookMetadata.from_dict(data.get("metadata", {})),
            chapters=[Chapter.from_dict(ch) for ch in data.get("chapters", [])],
            toc_override=data.get("tocOverride"),
            current_chapter=int(data.get("currentChapter", 0)),
            current_page=int(data.get("currentPage", 0)),
            scroll_position=data.get("scrollPosition"),
            highlights={
                hid: Highlight.from_dict(h) for hid, h in data.get("highlights", [])
            },
            date_added=data["dateAdded"],
            last_read=data["lastRead"],
        )
