"""Highlights anchored to (book, chapter, page, text)."""

from __future__ import annotations

import logging
import time
from typing import Optional

from .models import HIGHLIGHT_COLORS, Book, Highlight, make_id

log = logging.getLogger(__name__)


class AnnotationStore:
    """Create, index and look up highlights stored on their book.

    Highlights record the chapter index, the page index at creation time and
    the selected text. The page is advisory: re-pagination can move the text
    to another page.
    """

    def create(
        self,
        book: Book,
        chapter_index: int,
        page_index: int,
        selected_text: str,
        color: str,
    ) -> Highlight:
        if not selected_text:
            raise ValueError("Cannot highlight an empty selection")
        if color not in HIGHLIGHT_COLORS:
            raise ValueError(
                f"Unknown highlight color: {color}. Supported: {', '.join(HIGHLIGHT_COLORS)}"
            )

        highlight = Highlight(
            id=make_id("highlight"),
            text=selected_text,
            color=color,
            book_id=book.id,
            chapter=chapter_index,
            page=page_index,
            date_created=time.time(),
        )
        book.highlights[highlight.id] = highlight
        log.info("Added %s highlight: %s...", color, selected_text[:50])
        return highlight

    def delete(self, book: Book, highlight_id: str) -> bool:
        if book.highlights.pop(highlight_id, None) is None:
            return False
        log.info("Deleted highlight %s", highlight_id)
        return True

    def resolve(self, book: Book, highlight_id: str) -> Optional[Highlight]:
        return book.highlights.get(highlight_id)

    def list_for(self, book: Book) -> list[Highlight]:
        """Newest first; highlights created in the same instant keep newest-inserted first."""
        newest_inserted_first = list(reversed(list(book.highlights.values())))
        return sorted(
            newest_inserted_first, key=lambda h: h.date_created, reverse=True
        )

    def list_for_chapter(self, book: Book, chapter_index: int) -> list[Highlight]:
        return [h for h in self.list_for(book) if h.chapter == chapter_index]
