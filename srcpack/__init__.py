"""Public package surface for srcpack.

Exports ``main`` for programmatic CLI invocation.
Scanning, reporting and archive writing live in submodules under ``srcpack``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
