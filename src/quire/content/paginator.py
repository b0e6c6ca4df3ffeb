"""Word-count pagination of sanitized chapter markup."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from quire.parsers.markup import MarkupDocument

log = logging.getLogger(__name__)

DEFAULT_PAGE_WORDS = 400


@dataclass(frozen=True)
class Page:
    content: str  # markup fragment
    word_start: int
    word_end: int  # exclusive


def paginate(clean_markup: str, page_word_budget: int = DEFAULT_PAGE_WORDS) -> list[Page]:
    """Split chapter markup into pages of roughly ``page_word_budget`` words.

    The page count comes from the word count, but content is cut only at
    top-level element boundaries, so pages may be uneven. ``word_start`` and
    ``word_end`` are the nominal word range used for the page count and for
    progress display. Markup without any top-level element is emitted as one
    synthesised paragraph per page. When there are top-level elements, bare
    text between them still counts toward the word total but is not copied
    into any page.
    """
    budget = max(1, page_word_budget)
    doc = MarkupDocument.parse_fragment(clean_markup or "")

    words = doc.text().split()
    total_words = len(words)
    page_count = max(1, math.ceil(total_words / budget))

    elements = doc.body_elements()
    per_page = math.ceil(len(elements) / page_count) if elements else 0

    pages: list[Page] = []
    for i in range(page_count):
        start_word = i * budget
        end_word = min((i + 1) * budget, total_words)
        if elements:
            start_el = i * per_page
            end_el = min((i + 1) * per_page, len(elements))
            content = "".join(doc.outer_html(el) for el in elements[start_el:end_el])
        else:
            content = doc.paragraph(" ".join(words[start_word:end_word]))
        pages.append(Page(content=content, word_start=start_word, word_end=end_word))

    log.debug(
        "Paginated %d words / %d elements into %d pages",
        total_words,
        len(elements),
        len(pages),
    )
    return pages
