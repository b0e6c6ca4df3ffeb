"""EPUB parser: container, package descriptor, spine and navigation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag

from quire.errors import MalformedArchiveError, MissingManifestError
from quire.library.models import Book, BookMetadata, Chapter
from quire.parsers.archive import Archive, resolve_href
from quire.parsers.markup import MarkupDocument

from .base import BaseParser

log = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
DOCUMENT_MEDIA_TYPES = frozenset(["application/xhtml+xml", "text/html"])
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"


@dataclass
class ManifestItem:
    id: str
    path: str  # resolved against the package directory
    media_type: str
    properties: tuple[str, ...] = ()


class EpubParser(BaseParser):
    SUPPORTED_EXTENSIONS = (".epub",)

    def parse(self, archive: Archive, display_name: str, book_id: str) -> Book:
        opf_path = self._find_package_path(archive)
        package = self._load_package(archive, opf_path)

        metadata = self._extract_metadata(package)
        manifest = self._build_manifest(package, opf_path)
        spine = package.find("spine")

        chapters = self._extract_chapters(archive, spine, manifest)
        self._resolve_titles(archive, spine, manifest, chapters)

        now = time.time()
        log.info(
            "Parsed %s: %r, %d chapters", display_name, metadata.title, len(chapters)
        )
        return Book(
            id=book_id,
            filename=display_name,
            metadata=metadata,
            chapters=chapters,
            date_added=now,
            last_read=now,
        )

    # ── Descriptors ────────────────────────────────────

    def _find_package_path(self, archive: Archive) -> str:
        container_xml = archive.read_text(CONTAINER_PATH)
        if container_xml is None:
            raise MalformedArchiveError("Invalid EPUB: Missing container.xml")

        container = MarkupDocument.parse_xml(container_xml)
        rootfile = container.find("rootfile")
        full_path = (
            container.get_attr(rootfile, "full-path") if rootfile is not None else None
        )
        if not full_path:
            raise MissingManifestError("container.xml does not name a package document")
        return full_path.strip().lstrip("/")

    def _load_package(self, archive: Archive, opf_path: str) -> MarkupDocument:
        opf_xml = archive.read_text(opf_path)
        if opf_xml is None:
            raise MissingManifestError(f"Package document not found: {opf_path}")

        package = MarkupDocument.parse_xml(opf_xml)
        for required in ("package", "manifest", "spine"):
            if package.find(required) is None:
                raise MissingManifestError(
                    f"Package document {opf_path} has no <{required}>"
                )
        return package

    def _extract_metadata(self, package: MarkupDocument) -> BookMetadata:
        defaults = BookMetadata()
        block = package.find("metadata")

        def _value(name: str) -> str:
            tag = block.find(name) if block is not None else None
            return MarkupDocument.text_of(tag) or getattr(defaults, name)

        return BookMetadata(
            title=_value("title"),
            creator=_value("creator"),
            language=_value("language"),
            identifier=_value("identifier"),
            description=_value("description"),
            publisher=_value("publisher"),
            date=_value("date"),
        )

    def _build_manifest(
        self, package: MarkupDocument, opf_path: str
    ) -> dict[str, ManifestItem]:
        manifest: dict[str, ManifestItem] = {}
        for item in package.find("manifest").find_all("item"):
            item_id = item.get("id")
            href = item.get("href")
            if not item_id or not href:
                continue
            manifest[item_id] = ManifestItem(
                id=item_id,
                path=resolve_href(opf_path, href),
                media_type=(item.get("media-type") or "").strip().lower(),
                properties=tuple((item.get("properties") or "").split()),
            )
        return manifest

    # ── Chapters ───────────────────────────────────────

    def _extract_chapters(
        self, archive: Archive, spine: Tag, manifest: dict[str, ManifestItem]
    ) -> list[Chapter]:
        chapters: list[Chapter] = []
        for itemref in spine.find_all("itemref"):
            idref = itemref.get("idref", "")
            item = manifest.get(idref)
            if item is None or item.media_type not in DOCUMENT_MEDIA_TYPES:
                log.debug("Skipping non-document spine entry %r", idref)
                continue

            content = archive.read_text(item.path)
            if content is None:
                log.debug("Skipping unreadable spine entry %s", item.path)
                continue

            index = len(chapters)
            chapters.append(
                Chapter(
                    id=idref,
                    title=f"Chapter {index + 1}",
                    raw_content=content,
                    path=item.path,
                    index=index,
                )
            )
        return chapters

    # ── Titles ─────────────────────────────────────────

    def _resolve_titles(
        self,
        archive: Archive,
        spine: Tag,
        manifest: dict[str, ManifestItem],
        chapters: list[Chapter],
    ) -> None:
        labels = self._navigation_labels(archive, spine, manifest)
        if any(labels):
            # Positional: the n-th navigation label names the n-th chapter.
            for chapter, label in zip(chapters, labels):
                if label:
                    chapter.title = label
            return

        for chapter in chapters:
            title = self._extract_title(chapter.raw_content)
            if title:
                chapter.title = title

    def _navigation_labels(
        self, archive: Archive, spine: Tag, manifest: dict[str, ManifestItem]
    ) -> list[str]:
        try:
            ncx = self._find_ncx(spine, manifest)
            if ncx is not None:
                ncx_xml = archive.read_text(ncx.path)
                if ncx_xml is not None:
                    labels = self._labels_from_ncx(ncx_xml)
                    if any(labels):
                        return labels

            nav = next(
                (item for item in manifest.values() if "nav" in item.properties), None
            )
            if nav is not None:
                nav_html = archive.read_text(nav.path)
                if nav_html is not None:
                    return self._labels_from_nav(nav_html)
        except Exception as e:
            log.warning("TOC extraction failed: %s", e)
        return []

    @staticmethod
    def _find_ncx(
        spine: Tag, manifest: dict[str, ManifestItem]
    ) -> Optional[ManifestItem]:
        toc_id = spine.get("toc")
        if toc_id and toc_id in manifest:
            return manifest[toc_id]
        for item in manifest.values():
            if item.media_type == NCX_MEDIA_TYPE:
                return item
        return None

    @staticmethod
    def _labels_from_ncx(ncx_xml: str) -> list[str]:
        doc = MarkupDocument.parse_xml(ncx_xml)
        labels: list[str] = []
        for nav_point in doc.find_all("navPoint"):
            label = nav_point.find("navLabel")
            text = label.find("text") if label is not None else None
            labels.append(MarkupDocument.text_of(text))
        return labels

    @staticmethod
    def _labels_from_nav(nav_html: str) -> list[str]:
        doc = MarkupDocument.parse(nav_html)
        navs = doc.find_all("nav")
        toc_navs = [
            nav for nav in navs if "toc" in (nav.get("epub:type") or "").lower()
        ]
        labels: list[str] = []
        for nav in toc_navs or navs[:1]:
            for anchor in nav.find_all("a"):
                labels.append(MarkupDocument.text_of(anchor))
        return labels

    @staticmethod
    def _extract_title(html: str) -> str:
        """First non-empty h1, then h2, then <title>."""
        doc = MarkupDocument.parse(html)
        for level in ("h1", "h2", "title"):
            text = doc.text_of(doc.find(level))
            if text:
                return text
        return ""
