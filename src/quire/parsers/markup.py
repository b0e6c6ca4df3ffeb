"""Markup document capability shared by the parser, sanitizer and paginator.

Everything that touches a markup tree goes through :class:`MarkupDocument`,
so the rest of the pipeline only needs parse, query, remove, attribute
access and serialisation.
"""

from __future__ import annotations

import warnings
from typing import Iterable, Optional, Union

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)


class MarkupDocument:
    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    @classmethod
    def parse(cls, text: str) -> MarkupDocument:
        """Parse HTML or XHTML leniently."""
        return cls(BeautifulSoup(text or "", "lxml"))

    @classmethod
    def parse_fragment(cls, text: str) -> MarkupDocument:
        """Parse a body fragment without synthesising html/body/p wrappers."""
        return cls(BeautifulSoup(text or "", "html.parser"))

    @classmethod
    def parse_xml(cls, text: str) -> MarkupDocument:
        """Parse a namespaced XML descriptor (container, package, NCX)."""
        return cls(BeautifulSoup(text or "", "xml"))

    # ── Query ──────────────────────────────────────────

    def find(self, name: str, **attrs) -> Optional[Tag]:
        return self._soup.find(name, attrs=attrs)

    def find_all(self, names: Union[str, Iterable[str]], **attrs) -> list[Tag]:
        if not isinstance(names, str):
            names = list(names)
        return list(self._soup.find_all(names, attrs=attrs))

    def _root(self) -> Union[BeautifulSoup, Tag]:
        return self._soup.body if self._soup.body is not None else self._soup

    def body_elements(self) -> list[Tag]:
        """Top-level elements of the body (of the fragment, when there is no body)."""
        return list(self._root().find_all(True, recursive=False))

    def text(self) -> str:
        return self._root().get_text()

    @staticmethod
    def text_of(node: Optional[Tag]) -> str:
        if node is None:
            return ""
        return node.get_text().strip()

    # ── Mutation ───────────────────────────────────────

    @staticmethod
    def remove(node: Tag) -> None:
        node.decompose()

    def remove_all(self, names: Iterable[str]) -> int:
        nodes = self.find_all(names)
        for node in nodes:
            node.decompose()
        return len(nodes)

    @staticmethod
    def get_attr(node: Tag, name: str) -> Optional[str]:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    @staticmethod
    def set_attr(node: Tag, name: str, value: str) -> None:
        node[name] = value

    # ── Serialisation ──────────────────────────────────

    def body_html(self) -> str:
        body = self._soup.body
        if body is None:
            return ""
        return body.decode_contents().strip()

    @staticmethod
    def outer_html(node: Tag) -> str:
        return str(node)

    def paragraph(self, text: str) -> str:
        """Serialise ``text`` as a single escaped paragraph."""
        p = self._soup.new_tag("p")
        p.string = text
        return str(p)
