"""Zip container access: named-file lookup and text decoding."""

from __future__ import annotations

import io
import logging
import posixpath
import zipfile
import zlib
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from quire.errors import MalformedArchiveError

log = logging.getLogger(__name__)


class Archive:
    """An opened e-book archive."""

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._names = set(zf.namelist())

    def __enter__(self) -> Archive:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def names(self) -> list[str]:
        return self._zf.namelist()

    def has_file(self, path: str) -> bool:
        return self._lookup(path) is not None

    def read_file(self, path: str) -> Optional[bytes]:
        """Return the bytes stored under ``path`` or None when absent or corrupt."""
        name = self._lookup(path)
        if name is None:
            return None
        try:
            return self._zf.read(name)
        except (zipfile.BadZipFile, zlib.error, OSError) as e:
            log.warning("Unreadable archive entry %s: %s", name, e)
            return None

    def read_text(self, path: str) -> Optional[str]:
        data = self.read_file(path)
        if data is None:
            return None
        return decode_text(data)

    def _lookup(self, path: str) -> Optional[str]:
        for candidate in (path, path.lstrip("/"), unquote(path).lstrip("/")):
            if candidate in self._names:
                return candidate
        return None


def open_archive(data: bytes) -> Archive:
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise MalformedArchiveError(f"Not a zip archive: {e}") from e
    return Archive(zf)


def open_archive_path(path: Path) -> Archive:
    try:
        zf = zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise MalformedArchiveError(f"Not a zip archive: {path.name}") from e
    return Archive(zf)


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def resolve_href(base_file: str, href: str) -> str:
    """Resolve ``href`` against the directory of ``base_file`` inside the archive."""
    href = unquote(href.split("#", 1)[0])
    base = posixpath.dirname(base_file)
    joined = posixpath.join(base, href) if base else href
    return posixpath.normpath(joined).lstrip("/")
