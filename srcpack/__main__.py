"""Module entrypoint for ``python -m srcpack``.

All argument parsing and packing happen in ``srcpack.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
