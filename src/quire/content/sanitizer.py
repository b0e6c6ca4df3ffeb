"""Strip non-content markup from chapter documents."""

from __future__ import annotations

import re

from quire.parsers.markup import MarkupDocument

_PROCESSING_RE = re.compile(r"<\?[^>]*\?>")
_DOCTYPE_RE = re.compile(r"<!DOCTYPE[^>]*>", re.IGNORECASE)

STRIPPED_TAGS = ("script", "style", "meta", "link")
HIDDEN_STYLE = "display: none"


def sanitize(raw_markup: str) -> str:
    """Return the cleaned body markup of a chapter document.

    Images that point inside the archive cannot be displayed by the host, so
    they are hidden rather than removed; surrounding markup may still refer
    to them.
    """
    text = _PROCESSING_RE.sub("", raw_markup or "")
    text = _DOCTYPE_RE.sub("", text)

    doc = MarkupDocument.parse(text)
    doc.remove_all(STRIPPED_TAGS)

    for img in doc.find_all("img"):
        src = doc.get_attr(img, "src")
        if src and not is_external(src):
            _hide(doc, img)

    return doc.body_html()


def is_external(src: str) -> bool:
    return src.strip().lower().startswith(("http://", "https://"))


def _hide(doc: MarkupDocument, img) -> None:
    style = (doc.get_attr(img, "style") or "").strip()
    if "display:none" in style.replace(" ", "").lower():
        return
    if style:
        style = f"{style.rstrip(';').strip()}; {HIDDEN_STYLE}"
    else:
        style = HIDDEN_STYLE
    doc.set_attr(img, "style", style)
