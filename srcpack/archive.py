"""ZIP archive writer.

Entries are written to a temporary file next to the destination and moved
into place only after the archive is finalized, so a failed run never
leaves a truncated archive at the output path.
"""

from __future__ import annotations

import logging
import os
import secrets
import shutil
import tempfile
import zipfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from .errors import ArchiveWriteError
from .scan.types import FileEntry, SkippedPath

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 6
DEFAULT_ARCHIVE_NAME = "archive"
# narrowed by the process umask, like any file created with open(..., "w")
PARTIAL_FILE_MODE = 0o666
SPOOL_MAX_BYTES = 8 * 1024 * 1024
COPY_CHUNK_BYTES = 1024 * 1024

ProgressCallback = Callable[[FileEntry, int, int], None]


@dataclass(frozen=True)
class PackResult:
    """Outcome of one run; ``output_path`` is ``None`` for dry runs."""

    file_count: int
    total_bytes: int
    output_path: Path | None = None
    skipped: tuple[SkippedPath, ...] = ()


def default_output_path(root: Path, cwd: Path | None = None) -> Path:
    """Return ``<cwd>/<root name>.zip``, using ``archive.zip`` for nameless roots."""
    if cwd is None:
        cwd = Path.cwd()
    name = root.name or DEFAULT_ARCHIVE_NAME
    return cwd / f"{name}.zip"


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("could not remove partial archive %s: %s", path, exc)


def _create_partial(output_path: Path) -> Path:
    """Create an empty ``.<name>.<token>.partial`` file next to ``output_path``."""
    temp_path = output_path.with_name(f".{output_path.name}.{secrets.token_hex(4)}.partial")
    fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, PARTIAL_FILE_MODE)
    os.close(fd)
    return temp_path


def _read_source(source: Path, spool: IO[bytes]) -> OSError | None:
    """Copy ``source`` into ``spool``, returning a read failure instead of raising it."""
    try:
        handle = open(source, "rb")
    except OSError as exc:
        return exc
    with handle:
        while True:
            try:
                chunk = handle.read(COPY_CHUNK_BYTES)
            except OSError as exc:
                return exc
            if not chunk:
                return None
            spool.write(chunk)


def pack_files(
    entries: Iterable[FileEntry],
    output_path: Path,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    on_progress: ProgressCallback | None = None,
) -> PackResult:
    """Write ``entries`` into a deflated ZIP at ``output_path``.

    ``on_progress(entry, index, total_bytes)`` runs after each file with a
    1-based index. A source file that cannot be read is logged, left out and
    listed in ``PackResult.skipped``. Each file is read completely before its
    member is started, so a read failure never leaves a truncated member.
    Failures on the output side remove the temporary file and raise
    ``ArchiveWriteError``.
    """
    output_path = Path(output_path)
    try:
        temp_path = _create_partial(output_path)
    except OSError as exc:
        raise ArchiveWriteError(f"Failed to create output file: {output_path}: {exc.strerror or exc}") from exc

    file_count = 0
    total_bytes = 0
    skipped: list[SkippedPath] = []
    current = ""

    def record_skip(rel_path: str, exc: OSError) -> None:
        reason = exc.strerror or str(exc)
        logger.warning("skipping %s: %s", rel_path, reason)
        skipped.append(SkippedPath(path=rel_path, reason=reason))

    try:
        with zipfile.ZipFile(
            temp_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
            allowZip64=True,
            strict_timestamps=False,
        ) as archive:
            for entry in entries:
                if entry.is_dir or entry.source is None:
                    continue
                current = entry.path
                try:
                    info = zipfile.ZipInfo.from_file(entry.source, arcname=entry.path, strict_timestamps=False)
                except OSError as exc:
                    record_skip(entry.path, exc)
                    continue
                with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES) as spool:
                    error = _read_source(entry.source, spool)
                    if error is not None:
                        record_skip(entry.path, error)
                        continue
                    info.file_size = spool.tell()
                    spool.seek(0)
                    # the fields ZipFile.write fills in from the archive settings
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info._compresslevel = compression_level
                    with archive.open(info, "w") as member:
                        shutil.copyfileobj(spool, member, COPY_CHUNK_BYTES)
                file_count += 1
                total_bytes += entry.size
                if on_progress is not None:
                    on_progress(entry, file_count, total_bytes)
            current = ""
        os.replace(temp_path, output_path)
    except OSError as exc:
        _remove_quietly(temp_path)
        where = f" while adding {current}" if current else ""
        raise ArchiveWriteError(f"Failed to write archive {output_path}{where}: {exc.strerror or exc}") from exc
    except BaseException:
        _remove_quietly(temp_path)
        raise

    return PackResult(
        file_count=file_count,
        total_bytes=total_bytes,
        output_path=output_path,
        skipped=tuple(skipped),
    )


__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "PackResult",
    "default_output_path",
    "pack_files",
]
