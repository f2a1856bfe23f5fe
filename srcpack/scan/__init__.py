"""Directory scanning: ignore-aware walker plus its datatypes.

- ``FileEntry`` / ``ScanConfig`` / ``ScanResult`` value types
- ``iter_file_entries`` streaming depth-first walk
- ``scan_files`` collecting wrapper used by the CLI
"""

from __future__ import annotations

from .types import FileEntry, ScanConfig, ScanResult, SkippedPath
from .fs import iter_file_entries, resolve_root, root_ignore_stack, scan_files

__all__ = [
    "FileEntry",
    "ScanConfig",
    "ScanResult",
    "SkippedPath",
    "iter_file_entries",
    "resolve_root",
    "root_ignore_stack",
    "scan_files",
]
