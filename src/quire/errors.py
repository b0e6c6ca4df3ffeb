"""Exceptions raised by the content pipeline and library state."""

from __future__ import annotations


class QuireError(Exception):
    """Base class for all quire errors."""


class ArchiveError(QuireError):
    """The archive cannot be turned into a book."""


class MalformedArchiveError(ArchiveError):
    """Raised when the container descriptor is missing or the payload is not an archive."""


class MissingManifestError(ArchiveError):
    """Raised when the content-package descriptor cannot be located or parsed."""


class BookImportError(QuireError):
    """Wraps a per-file import failure."""

    def __init__(self, filename: str, cause: Exception):
        super().__init__(f"Failed to import {filename}: {cause}")
        self.filename = filename
        self.cause = cause


class PersistenceError(QuireError):
    """Raised when saved state cannot be serialised, written or read back."""
