"""Filesystem helpers shared by the store, the ledger and the aggregator."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

# Version-control and dependency-cache directories are never traversed.
SKIPPED_DIRS: frozenset[str] = frozenset({
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
})


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to *path* all-or-nothing.

    The bytes go to a temporary file in the target directory which then
    replaces *path* with ``os.replace``; readers see the old or the new
    content, never a partial write.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def iter_files(root: Path, extensions: Iterable[str] | None = None) -> Iterator[Path]:
    """Yield files under *root* in sorted order, skipping ``SKIPPED_DIRS``.

    When *extensions* is given only files whose suffix is listed are
    yielded.  A missing root yields nothing.
    """
    root = Path(root)
    if not root.exists():
        return
    if root.is_file():
        if extensions is None or root.suffix in set(extensions):
            yield root
        return

    allowed = set(extensions) if extensions is not None else None
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        for name in sorted(filenames):
            candidate = Path(dirpath) / name
            if allowed is None or candidate.suffix in allowed:
                yield candidate
