"""Library orchestration: loaded books, the reading cursor and persistence."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

from quire.config import VIEW_MODES, AppConfig, load_config
from quire.content.paginator import Page
from quire.errors import BookImportError, PersistenceError
from quire.parsers.archive import open_archive, open_archive_path
from quire.parsers.base import get_parser

from .annotations import AnnotationStore
from .database import Database
from .models import HIGHLIGHT_COLORS, Book, Chapter, Highlight

log = logging.getLogger(__name__)

ArchiveSource = Union[Path, str, bytes]
# A batch entry is a path, or a (filename, payload) pair for in-memory uploads.
BatchSource = Union[Path, str, tuple[str, bytes]]
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class NavigationState:
    """Which navigation controls the host should enable."""

    can_prev_chapter: bool = False
    can_next_chapter: bool = False
    can_prev_page: bool = False
    can_next_page: bool = False


@dataclass
class ImportReport:
    imported: list[Book] = field(default_factory=list)
    failures: list[BookImportError] = field(default_factory=list)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class LibraryState:
    """Loaded books, the active book and its (chapter, page) cursor.

    Owned by the hosting application. Navigation requests that point outside
    the current book are ignored, never raised.
    """

    def __init__(
        self, config: Optional[AppConfig] = None, db: Optional[Database] = None
    ) -> None:
        self.config = config or load_config()
        self.db = db
        self.annotations = AnnotationStore()
        self.books: dict[str, Book] = {}
        self.current_book_id: Optional[str] = None
        self.chapter_index = 0
        self.page_index = 0
        self.scroll_position: Optional[float] = None
        self.view_mode = self.config.view_mode
        self.page_word_budget = self.config.page_word_budget

    # ── Cursor ─────────────────────────────────────────

    @property
    def current_book(self) -> Optional[Book]:
        if self.current_book_id is None:
            return None
        return self.books.get(self.current_book_id)

    @property
    def current_chapter(self) -> Optional[Chapter]:
        book = self.current_book
        if book and 0 <= self.chapter_index < len(book.chapters):
            return book.chapters[self.chapter_index]
        return None

    @property
    def pages(self) -> list[Page]:
        chapter = self.current_chapter
        if chapter is None:
            return []
        return chapter.pages(self.page_word_budget)

    @property
    def current_page(self) -> Optional[Page]:
        pages = self.pages
        if 0 <= self.page_index < len(pages):
            return pages[self.page_index]
        return None

    def toc(self) -> list[tuple[int, str]]:
        book = self.current_book
        return book.toc() if book else []

    def library(self) -> list[Book]:
        """Books ordered by most recently read."""
        return sorted(self.books.values(), key=lambda b: b.last_read, reverse=True)

    def _clamp_cursor(self) -> None:
        book = self.current_book
        if book is None or not book.chapters:
            self.chapter_index = 0
            self.page_index = 0
            return
        self.chapter_index = min(max(self.chapter_index, 0), len(book.chapters) - 1)
        last_page = max(0, len(self.pages) - 1)
        self.page_index = min(max(self.page_index, 0), last_page)

    def _store_cursor(self, book: Book) -> None:
        book.current_chapter = self.chapter_index
        book.current_page = self.page_index
        if self.view_mode == "continuous" and self.scroll_position is not None:
            book.scroll_position = self.scroll_position

    def _restore_cursor(self, book: Book) -> None:
        self.chapter_index = book.current_chapter or 0
        self.page_index = book.current_page or 0
        self.scroll_position = book.scroll_position
        self._clamp_cursor()

    def save_reading_position(self) -> None:
        book = self.current_book
        if book is None:
            return
        self._store_cursor(book)
        book.last_read = time.time()
        self.save()

    def _clear_reader(self) -> None:
        self.current_book_id = None
        self.chapter_index = 0
        self.page_index = 0
        self.scroll_position = None

    # ── Import ─────────────────────────────────────────

    async def import_archive(
        self, source: ArchiveSource, filename: Optional[str] = None
    ) -> Book:
        """Parse one archive and add it to the library.

        Any failure is raised as :class:`BookImportError`; the library is left
        untouched in that case.
        """
        if filename is None:
            filename = "untitled.epub" if isinstance(source, bytes) else Path(source).name
        book_id = Book.make_id()
        log.info("Processing EPUB: %s (ID: %s)", filename, book_id)

        try:
            book = await asyncio.to_thread(self._parse, source, filename, book_id)
        except Exception as e:
            log.error("Failed to process %s: %s", filename, e)
            raise BookImportError(filename, e) from e

        self.books[book.id] = book
        log.info("Successfully processed: %s", book.title)
        if self.current_book_id is None:
            self.activate(book.id)
        else:
            self.save()
        return book

    @staticmethod
    def _parse(source: ArchiveSource, filename: str, book_id: str) -> Book:
        parser = get_parser(filename)
        if isinstance(source, bytes):
            archive = open_archive(source)
        else:
            archive = open_archive_path(Path(source))
        with archive:
            return parser.parse(archive, filename, book_id)

    async def import_archives(
        self,
        sources: Sequence[BatchSource],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ImportReport:
        """Import files one after another; a failure never undoes earlier imports."""
        report = ImportReport()
        total = len(sources)
        for i, entry in enumerate(sources):
            if isinstance(entry, tuple):
                name, source = entry
            else:
                name, source = Path(entry).name, entry
            if on_progress:
                on_progress(i + 1, total, name)
            try:
                report.imported.append(await self.import_archive(source, name))
            except BookImportError as e:
                report.failures.append(e)

        log.info(
            "Imported %d of %d book(s), %d failed",
            len(report.imported),
            total,
            len(report.failures),
        )
        return report

    # ── Books ──────────────────────────────────────────

    def activate(self, book_id: str) -> None:
        book = self.books.get(book_id)
        if book is None:
            return

        previous = self.current_book
        if previous is not None:
            self._store_cursor(previous)

        self.current_book_id = book_id
        self._restore_cursor(book)
        book.last_read = time.time()
        log.info("Switched to book: %s", book.title)
        self.save()

    def activate_next(self) -> None:
        self._activate_relative(1)

    def activate_previous(self) -> None:
        self._activate_relative(-1)

    def _activate_relative(self, step: int) -> None:
        ids = list(self.books)
        if len(ids) <= 1:
            return
        current = ids.index(self.current_book_id) if self.current_book_id in ids else 0
        self.activate(ids[(current + step) % len(ids)])

    def remove_book(self, book_id: str) -> None:
        book = self.books.pop(book_id, None)
        if book is None:
            return

        if self.current_book_id == book_id:
            self._clear_reader()
            if self.books:
                self.activate(next(iter(self.books)))
        self.save()
        log.info("Removed book: %s", book.title)

    # ── Navigation ─────────────────────────────────────

    def goto_chapter(self, index: int) -> None:
        book = self.current_book
        if book is None or not 0 <= index < len(book.chapters):
            return
        self.chapter_index = index
        self.page_index = 0
        log.debug("Navigated to chapter %d (%d pages)", index + 1, len(self.pages))
        self.save_reading_position()

    def next_chapter(self) -> None:
        self.goto_chapter(self.chapter_index + 1)

    def previous_chapter(self) -> None:
        self.goto_chapter(self.chapter_index - 1)

    def advance_page(self, direction: int = 1) -> None:
        """Move one page, rolling over into the adjacent chapter at its edges."""
        book = self.current_book
        if book is None or not book.chapters or direction not in (1, -1):
            return
        if self.view_mode == "continuous":
            self.goto_chapter(self.chapter_index + direction)
            return

        if direction > 0:
            if self.page_index < len(self.pages) - 1:
                self.page_index += 1
                self.save_reading_position()
            else:
                self.next_chapter()
        else:
            if self.page_index > 0:
                self.page_index -= 1
                self.save_reading_position()
            elif self.chapter_index > 0:
                self.chapter_index -= 1
                self.page_index = max(0, len(self.pages) - 1)
                self.save_reading_position()

    def navigation(self) -> NavigationState:
        book = self.current_book
        if book is None:
            return NavigationState()

        has_prev_chapter = self.chapter_index > 0
        has_next_chapter = self.chapter_index < len(book.chapters) - 1
        if self.view_mode == "continuous":
            return NavigationState(
                can_prev_chapter=has_prev_chapter,
                can_next_chapter=has_next_chapter,
                can_prev_page=has_prev_chapter,
                can_next_page=has_next_chapter,
            )
        return NavigationState(
            can_prev_chapter=has_prev_chapter,
            can_next_chapter=has_next_chapter,
            can_prev_page=has_prev_chapter or self.page_index > 0,
            can_next_page=has_next_chapter or self.page_index < len(self.pages) - 1,
        )

    def compute_progress(self, book: Optional[Book] = None) -> int:
        """Reading progress of ``book`` (default: the active book) in percent."""
        book = book or self.current_book
        if book is None or not book.chapters:
            return 0

        if book.id == self.current_book_id:
            chapter, page = self.chapter_index, self.page_index
        else:
            chapter, page = book.current_chapter, book.current_page
        total = len(book.chapters)
        chapter = min(max(chapter, 0), total - 1)

        if self.view_mode == "continuous":
            return _round_half_up(100 * chapter / max(1, total - 1))

        page_count = len(book.chapters[chapter].pages(self.page_word_budget))
        page = min(max(page, 0), page_count - 1)
        fraction = page / max(1, page_count - 1)
        return _round_half_up(100 * (chapter + fraction) / total)

    # ── View configuration ─────────────────────────────

    def set_view_mode(self, mode: str) -> None:
        if mode not in VIEW_MODES:
            log.warning("Ignoring unknown view mode %r", mode)
            return
        self.view_mode = mode
        log.info("View mode changed to: %s", mode)
        self.save()

    def toggle_view_mode(self) -> str:
        self.set_view_mode("continuous" if self.view_mode == "paginated" else "paginated")
        return self.view_mode

    def set_scroll_position(self, position: float) -> None:
        self.scroll_position = position
        if self.view_mode == "continuous":
            self.save_reading_position()

    def set_page_word_budget(self, budget: int) -> None:
        if budget < 1 or budget == self.page_word_budget:
            return
        self.page_word_budget = budget
        for book in self.books.values():
            for chapter in book.chapters:
                chapter.invalidate()
        self._clamp_cursor()
        log.info("Page size changed to %d words", budget)
        self.save()

    # ── Highlights ─────────────────────────────────────

    def add_highlight(self, text: str, color: str) -> Optional[Highlight]:
        """Highlight ``text`` at the cursor; empty selections are ignored."""
        book = self.current_book
        text = (text or "").strip()
        if book is None or not book.chapters or not text:
            return None
        if color not in HIGHLIGHT_COLORS:
            log.warning("Ignoring highlight with unknown color %r", color)
            return None

        highlight = self.annotations.create(
            book, self.chapter_index, self.page_index, text, color
        )
        self.save()
        return highlight

    def delete_highlight(self, highlight_id: str) -> bool:
        book = self.current_book
        if book is None or not self.annotations.delete(book, highlight_id):
            return False
        self.save()
        return True

    def highlights(self) -> list[Highlight]:
        book = self.current_book
        return self.annotations.list_for(book) if book else []

    def goto_highlight(self, highlight_id: str) -> bool:
        book = self.current_book
        highlight = self.annotations.resolve(book, highlight_id) if book else None
        if highlight is None or not 0 <= highlight.chapter < len(book.chapters):
            return False
        self.chapter_index = highlight.chapter
        self.page_index = highlight.page
        self._clamp_cursor()
        self.save_reading_position()
        return True

    # ── Persistence ────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        book = self.current_book
        if book is not None:
            self._store_cursor(book)
        return {
            "books": [[book_id, b.to_dict()] for book_id, b in self.books.items()],
            "currentBookId": self.current_book_id,
            "viewMode": self.view_mode,
            "settings": {"pageWordBudget": self.page_word_budget},
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Replace the in-memory library with a saved state blob."""
        # Parse everything before touching self so a bad blob leaves the library as it was.
        try:
            books = {
                book_id: Book.from_dict(book_id, record)
                for book_id, record in data.get("books", [])
            }
            view_mode = data.get("viewMode")
            settings = data.get("settings") or {}
            budget = settings.get("pageWordBudget")
            current = data.get("currentBookId")
            current = current if current in books else None
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Saved library is malformed: {e}") from e

        self.books = books
        self._clear_reader()
        if view_mode in VIEW_MODES:
            self.view_mode = view_mode
        if isinstance(budget, int) and budget > 0:
            self.page_word_budget = budget

        if current is not None:
            self.current_book_id = current
            self._restore_cursor(books[current])

    def save(self) -> bool:
        if self.db is None:
            return False
        try:
            self.db.save_state(self.config.storage_key, self.to_dict())
        except PersistenceError as e:
            log.error("Failed to save data: %s", e)
            return False
        return True

    def load(self) -> bool:
        if self.db is None:
            return False
        try:
            data = self.db.load_state(self.config.storage_key)
            if data is None:
                return False
            self.restore(data)
        except PersistenceError as e:
            log.error("Failed to load saved data: %s", e)
            return False
        log.info("Loaded %d books from storage", len(self.books))
        return True
