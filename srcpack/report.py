"""Size reporting for dry runs and post-pack summaries.

Rendering returns plain strings; callers decide where they go. Colors come
from a ``ReportPalette`` so tests and pipes can use the plain palette.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from .scan.types import FileEntry

KB = 1024
MB = 1024 * KB
GB = 1024 * MB
TABLE_WIDTH = 60
PROGRESS_PATH_CHARS = 35


@dataclass(frozen=True)
class ReportPalette:
    """ANSI sequences used by report renderers."""

    heading: str
    size: str
    dim: str
    reset: str


DEFAULT_PALETTE = ReportPalette(
    heading="\033[1;38;5;81m",
    size="\033[38;5;109m",
    dim="\033[2;38;5;250m",
    reset="\033[0m",
)
PLAIN_PALETTE = ReportPalette(heading="", size="", dim="", reset="")


def palette_for(stream, no_color: bool = False) -> ReportPalette:
    """Pick a palette for ``stream``: plain unless it is a TTY and color is allowed."""
    if no_color or os.environ.get("NO_COLOR"):
        return PLAIN_PALETTE
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return PLAIN_PALETTE
    return DEFAULT_PALETTE


def format_size(num_bytes: int) -> str:
    """Human-readable byte count: ``10 B``, ``1.50 KB``, ``2.00 MB``, ``1.00 GB``."""
    if num_bytes >= GB:
        return f"{num_bytes / GB:.2f} GB"
    if num_bytes >= MB:
        return f"{num_bytes / MB:.2f} MB"
    if num_bytes >= KB:
        return f"{num_bytes / KB:.2f} KB"
    return f"{num_bytes} B"


def truncate_left(text: str, max_chars: int) -> str:
    """Keep the tail of ``text`` so it fits ``max_chars``, prefixing ``...``."""
    if len(text) <= max_chars:
        return text
    keep = max(0, max_chars - 3)
    return "..." + (text[len(text) - keep:] if keep else "")


def _by_size_desc(entry: FileEntry) -> tuple[int, str]:
    return (-entry.size, entry.path)


def largest_files(entries: Iterable[FileEntry], n: int) -> list[FileEntry]:
    """Return the ``min(n, file count)`` largest files, largest first."""
    if n <= 0:
        return []
    files = [entry for entry in entries if not entry.is_dir]
    return sorted(files, key=_by_size_desc)[:n]


def directory_totals(entries: Iterable[FileEntry]) -> list[FileEntry]:
    """Aggregate file sizes into every ancestor directory below the root."""
    totals: dict[str, int] = {}
    for entry in entries:
        if entry.is_dir:
            continue
        for parent in PurePosixPath(entry.path).parents:
            key = parent.as_posix()
            if key == ".":
                break
            totals[key] = totals.get(key, 0) + entry.size
    return [FileEntry(path=path, size=size, is_dir=True) for path, size in totals.items()]


def largest_directories(entries: Iterable[FileEntry], n: int) -> list[FileEntry]:
    """Return up to ``n`` directories by total included size, largest first."""
    if n <= 0:
        return []
    return sorted(directory_totals(entries), key=_by_size_desc)[:n]


def _render_table(title: str, rows: Sequence[FileEntry], label: str, palette: ReportPalette) -> list[str]:
    rule = "-" * TABLE_WIDTH
    lines = [
        "",
        f"{palette.heading}{title}{palette.reset}",
        rule,
        f"{'Size':<12} | {label}",
        rule,
    ]
    for entry in rows:
        suffix = "/" if entry.is_dir else ""
        size_text = f"{format_size(entry.size):<12}"
        lines.append(f"{palette.size}{size_text}{palette.reset} | {entry.path}{suffix}")
    lines.append(rule)
    return lines


def render_top_files(entries: Sequence[FileEntry], n: int, palette: ReportPalette = PLAIN_PALETTE) -> str:
    """Render the top-``n`` largest files table."""
    rows = largest_files(entries, n)
    return "\n".join(_render_table(f"Largest {len(rows)} files:", rows, "File Path", palette))


def render_top_directories(entries: Sequence[FileEntry], n: int, palette: ReportPalette = PLAIN_PALETTE) -> str:
    """Render the top-``n`` largest directories table."""
    rows = largest_directories(entries, n)
    return "\n".join(_render_table(f"Largest {len(rows)} directories:", rows, "Directory", palette))


def render_dry_run_report(
    entries: Sequence[FileEntry],
    top: int = 0,
    top_dirs: int = 0,
    palette: ReportPalette = PLAIN_PALETTE,
) -> str:
    """Render the dry-run report.

    Without a top-N request every included path is listed; with one, only the
    totals and the requested tables are shown.
    """
    lines = [f"{palette.heading}--- Dry Run Mode (No Zip Created) ---{palette.reset}"]
    if top <= 0 and top_dirs <= 0:
        lines.extend(entry.path for entry in entries)

    total = sum(entry.size for entry in entries)
    lines.append("")
    lines.append(f"Files: {len(entries)}")
    lines.append(f"Total size: {palette.size}{format_size(total)}{palette.reset}")

    if top > 0:
        lines.append(render_top_files(entries, top, palette))
    if top_dirs > 0:
        lines.append(render_top_directories(entries, top_dirs, palette))
    if top <= 0 and top_dirs <= 0:
        lines.append(f"{palette.dim}Tip: Use '--top 10' with '--dry-run' to see the largest files.{palette.reset}")
    return "\n".join(lines) + "\n"


def format_progress(index: int, count: int, rel_path: str, total_bytes: int) -> str:
    """One-line archive progress status: ``[  3/10]  30% path | Total: 1.00 KB``."""
    width = len(str(count))
    percent = (index * 100 // count) if count else 100
    name = truncate_left(rel_path, PROGRESS_PATH_CHARS)
    return f"[{index:>{width}}/{count}] {percent:>3}% {name} | Total: {format_size(total_bytes)}"


__all__ = [
    "ReportPalette",
    "DEFAULT_PALETTE",
    "PLAIN_PALETTE",
    "palette_for",
    "format_size",
    "truncate_left",
    "largest_files",
    "directory_totals",
    "largest_directories",
    "render_top_files",
    "render_top_directories",
    "render_dry_run_report",
    "format_progress",
]
