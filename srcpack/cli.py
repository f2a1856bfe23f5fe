"""Command-line front door for srcpack.

Parses CLI options, merges them with the persisted config, scans the target
directory, then either prints a dry-run report or writes the archive.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import config
from .archive import PackResult, ProgressCallback, default_output_path, pack_files
from .errors import SrcpackError
from .report import format_progress, format_size, palette_for, render_dry_run_report, render_top_files
from .scan import FileEntry, ScanConfig, resolve_root, scan_files

logger = logging.getLogger("srcpack")

LOG_FORMAT = "srcpack: %(levelname)s: %(message)s"


def _nonnegative_int(value: str) -> int:
    """argparse type for integer values >= 0."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return parsed


def _compression_level(value: str) -> int:
    """argparse type for deflate levels ``0..9``."""
    parsed = _nonnegative_int(value)
    if parsed > 9:
        raise argparse.ArgumentTypeError("compression level must be between 0 and 9")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srcpack",
        description="Pack a source directory into a zip file, respecting .gitignore rules.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Root directory to scan. Defaults to current directory.")
    parser.add_argument("-o", "--output", default=None, help="Output zip file path (default: <dirname>.zip).")
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Scan and report files without creating a zip.",
    )
    parser.add_argument(
        "--top",
        type=_nonnegative_int,
        default=0,
        metavar="N",
        help="Show the N largest files.",
    )
    parser.add_argument(
        "--top-dirs",
        type=_nonnegative_int,
        default=0,
        metavar="N",
        help="Show the N largest directories (dry-run only).",
    )
    parser.add_argument(
        "-x",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help='Extra gitignore-style pattern to exclude (e.g. "*.mp4", "secrets/"). Repeatable.',
    )
    parser.add_argument(
        "--no-default-excludes",
        action="store_true",
        help="Do not skip node_modules/, target/, build/, dist/, .idea/ and .vscode/ by default.",
    )
    parser.add_argument(
        "--no-follow-symlinks",
        action="store_true",
        help="Do not descend into symlinked directories.",
    )
    parser.add_argument(
        "--compression-level",
        type=_compression_level,
        default=None,
        metavar="0-9",
        help="Deflate compression level.",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every packed file.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only print errors.")
    return parser


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route srcpack logs to stderr at the requested verbosity."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


def _scan_config(
    args: argparse.Namespace,
    root: Path,
    skip_paths: frozenset[Path],
    data: dict[str, object],
) -> ScanConfig:
    """Merge persisted config with CLI flags; flags win."""
    use_default_excludes = config.load_use_default_excludes(data) and not args.no_default_excludes
    follow_symlinks = config.load_follow_symlinks(data) and not args.no_follow_symlinks
    return ScanConfig(
        root=root,
        extra_excludes=config.load_extra_excludes(data) + tuple(args.exclude),
        use_default_excludes=use_default_excludes,
        follow_symlinks=follow_symlinks,
        ignore_filenames=config.load_ignore_filenames(data),
        skip_paths=skip_paths,
    )


def _progress_writer(count: int, show: bool) -> ProgressCallback:
    """Return an ``on_progress`` callback drawing a status line on stderr."""

    def on_progress(entry: FileEntry, index: int, total_bytes: int) -> None:
        logger.info("added %s (%s)", entry.path, format_size(entry.size))
        if show:
            sys.stderr.write("\r\033[K" + format_progress(index, count, entry.path, total_bytes))
            sys.stderr.flush()

    return on_progress


def run(args: argparse.Namespace, default_path: Path | None = None) -> PackResult:
    """Execute one srcpack invocation; raises ``SrcpackError`` on fatal errors."""
    if default_path is None:
        default_path = Path.cwd()
    root = resolve_root(Path(args.path) if args.path is not None else default_path)
    output_path = Path(args.output) if args.output else default_output_path(root)
    output_path = output_path.resolve()

    data = config.load_config()
    scan_config = _scan_config(args, root, frozenset({output_path}), data)
    logger.info("scanning %s", root)
    scan = scan_files(scan_config)
    palette = palette_for(sys.stdout, no_color=args.no_color)

    if args.dry_run:
        sys.stdout.write(render_dry_run_report(scan.entries, top=args.top, top_dirs=args.top_dirs, palette=palette))
        return PackResult(file_count=len(scan.entries), total_bytes=scan.total_bytes, output_path=None)

    compression_level = args.compression_level
    if compression_level is None:
        compression_level = config.load_compression_level(data)

    if not args.quiet:
        print(f"Compressing {len(scan.entries)} files to: {output_path}")
    show_progress = not args.quiet and not args.verbose and sys.stderr.isatty()
    result = pack_files(
        scan.entries,
        output_path,
        compression_level=compression_level,
        on_progress=_progress_writer(len(scan.entries), show_progress),
    )
    if show_progress:
        sys.stderr.write("\n")

    if not args.quiet:
        print(f"Packed {result.file_count} files ({format_size(result.total_bytes)}) into {output_path}")
    if args.top > 0:
        sys.stdout.write(render_top_files(scan.entries, args.top, palette) + "\n")
    skipped = len(scan.skipped) + len(result.skipped)
    if skipped:
        logger.warning("%d path(s) skipped because they could not be read", skipped)
    return result


def main(argv: list[str] | None = None, default_path: Path | None = None) -> int:
    """Parse CLI arguments and pack (or report on) a directory.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used. Fatal errors exit with status 1 and a message on stderr.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        run(args, default_path=default_path)
    except SrcpackError as exc:
        raise SystemExit(str(exc)) from exc
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
