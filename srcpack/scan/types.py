"""Datatypes produced by the directory walker."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..gitignore import IGNORE_FILENAMES


@dataclass(frozen=True)
class FileEntry:
    """One packed (or reported) path.

    ``path`` is relative to the scan root in POSIX form and doubles as the
    archive entry name. ``source`` is the absolute filesystem path.
    """

    path: str
    size: int
    is_dir: bool = False
    source: Path | None = None


@dataclass(frozen=True)
class SkippedPath:
    """A subtree or file the walker could not visit."""

    path: str
    reason: str


@dataclass(frozen=True)
class ScanConfig:
    """Inputs for one directory scan."""

    root: Path
    extra_excludes: tuple[str, ...] = ()
    use_default_excludes: bool = True
    follow_symlinks: bool = True
    ignore_filenames: tuple[str, ...] = IGNORE_FILENAMES
    skip_paths: frozenset[Path] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ScanResult:
    """Ordered scan output plus subtrees skipped because of errors."""

    root: Path
    entries: tuple[FileEntry, ...]
    skipped: tuple[SkippedPath, ...] = ()

    @property
    def total_bytes(self) -> int:
        return sum(entry.size for entry in self.entries)


__all__ = [
    "FileEntry",
    "SkippedPath",
    "ScanConfig",
    "ScanResult",
]
