"""Exception types shared by the scanner, archive writer and CLI."""

from __future__ import annotations


class SrcpackError(Exception):
    """Base class for fatal srcpack errors."""


class RootPathError(SrcpackError):
    """The scan root is missing, not a directory, or unreadable."""


class ArchiveWriteError(SrcpackError, OSError):
    """The output archive could not be written."""


__all__ = ["SrcpackError", "RootPathError", "ArchiveWriteError"]
