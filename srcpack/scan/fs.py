"""Depth-first directory walker honoring gitignore rules."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from pathlib import Path

from ..errors import RootPathError
from ..gitignore import (
    IgnoreStack,
    default_exclude_rules,
    is_vcs_directory,
    load_directory_rules,
    load_repository_excludes,
    parse_ignore_lines,
)
from .types import FileEntry, ScanConfig, ScanResult, SkippedPath

logger = logging.getLogger(__name__)

DirectoryIdentity = tuple[int, int]


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def _directory_identity(path: Path) -> DirectoryIdentity | None:
    """Return ``(st_dev, st_ino)`` of the directory ``path`` points at."""
    try:
        info = path.stat()
    except OSError:
        return None
    return (info.st_dev, info.st_ino)


def _sorted_children(directory: Path) -> list[os.DirEntry[str]]:
    with os.scandir(directory) as entries:
        return sorted(entries, key=lambda entry: entry.name)


def resolve_root(root: Path) -> Path:
    """Resolve and validate the scan root, raising ``RootPathError`` when unusable."""
    try:
        resolved = root.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise RootPathError(f"Cannot access directory: {root}") from exc
    if not resolved.is_dir():
        raise RootPathError(f"Not a directory: {root}")
    return resolved


def root_ignore_stack(config: ScanConfig, root: Path) -> IgnoreStack:
    """Build the rule stack in effect before the root's own ignore files load."""
    stack = IgnoreStack()
    if config.use_default_excludes:
        stack = stack.extended(default_exclude_rules())
    stack = stack.extended(load_repository_excludes(root))
    return stack.with_overrides(parse_ignore_lines(config.extra_excludes, base="", depth=0))


def iter_file_entries(config: ScanConfig, skipped: list[SkippedPath] | None = None) -> Iterator[FileEntry]:
    """Yield included files under ``config.root`` depth-first, sorted by name.

    Subtrees that cannot be read are logged, appended to ``skipped`` and
    passed over. An unreadable root raises ``RootPathError``.
    """
    root = resolve_root(config.root)
    skip_paths = frozenset(config.skip_paths)
    if skipped is None:
        skipped = []

    def record_skip(rel_path: str, reason: str) -> None:
        logger.warning("skipping %s: %s", rel_path or ".", reason)
        skipped.append(SkippedPath(path=rel_path, reason=reason))

    def walk(
        directory: Path,
        rel_dir: str,
        depth: int,
        stack: IgnoreStack,
        ancestors: frozenset[DirectoryIdentity],
    ) -> Iterator[FileEntry]:
        try:
            children = _sorted_children(directory)
        except OSError as exc:
            if depth == 0:
                raise RootPathError(f"Cannot read directory: {directory}: {exc.strerror or exc}") from exc
            record_skip(rel_dir, exc.strerror or str(exc))
            return

        stack = stack.extended(load_directory_rules(directory, rel_dir, depth, config.ignore_filenames))

        for child in children:
            if is_vcs_directory(child.name):
                # also covers the ``.git`` file of submodules and worktrees
                continue
            rel_path = _join(rel_dir, child.name)
            child_path = Path(child.path)
            try:
                is_symlink = child.is_symlink()
                points_to_dir = child.is_dir(follow_symlinks=True)
                is_dir = points_to_dir if config.follow_symlinks else child.is_dir(follow_symlinks=False)
            except OSError as exc:
                record_skip(rel_path, exc.strerror or str(exc))
                continue

            if is_dir:
                if stack.is_excluded(rel_path, True):
                    continue
                identity = _directory_identity(child_path)
                if identity is None:
                    record_skip(rel_path, "cannot stat directory")
                    continue
                if identity in ancestors:
                    record_skip(rel_path, "symlink cycle")
                    continue
                yield from walk(child_path, rel_path, depth + 1, stack, ancestors | {identity})
                continue

            if stack.is_excluded(rel_path, False):
                continue
            if points_to_dir:
                logger.debug("not following symlinked directory %s", rel_path)
                continue
            try:
                info = child.stat(follow_symlinks=True)
            except OSError as exc:
                reason = "broken symlink" if is_symlink else (exc.strerror or str(exc))
                record_skip(rel_path, reason)
                continue
            if not stat.S_ISREG(info.st_mode):
                logger.debug("skipping non-regular file %s", rel_path)
                continue
            if skip_paths and child_path.resolve() in skip_paths:
                continue
            yield FileEntry(path=rel_path, size=int(info.st_size), is_dir=False, source=child_path)

    root_identity = _directory_identity(root)
    ancestors = frozenset({root_identity}) if root_identity is not None else frozenset()
    yield from walk(root, "", 0, root_ignore_stack(config, root), ancestors)


def scan_files(config: ScanConfig) -> ScanResult:
    """Walk ``config.root`` and collect every included file."""
    root = resolve_root(config.root)
    skipped: list[SkippedPath] = []
    entries = tuple(iter_file_entries(config, skipped))
    return ScanResult(root=root, entries=entries, skipped=tuple(skipped))


__all__ = [
    "resolve_root",
    "root_ignore_stack",
    "iter_file_entries",
    "scan_files",
]
