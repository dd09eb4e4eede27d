"""Filesystem helpers — atomic writes, record file lookup.

Record files are the source of truth; the index only stores their paths.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from trackdown.defaults import RECORD_EXTENSION


# ---------------------------------------------------------------------------
# Atomic file write
# ---------------------------------------------------------------------------

def atomic_write_file(path: str | Path, content: str) -> str:
    """Write content to path atomically (write-to-temp, then rename).

    The temp file sits beside the target so the rename never crosses a
    filesystem. Returns the final path.
    """
    path = str(path)
    d = os.path.dirname(path)
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=d, prefix=f"{os.path.basename(path)}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return path


# ---------------------------------------------------------------------------
# Record file lookup
# ---------------------------------------------------------------------------

def list_record_files(directory: str | Path) -> list[Path]:
    """Return the record files directly inside directory ([] if it is missing)."""
    d = Path(directory)
    if not d.is_dir():
        return []
    return [p for p in d.iterdir() if p.is_file() and p.suffix == RECORD_EXTENSION]


def find_item_files(directory: str | Path, item_id: str) -> list[Path]:
    """Files whose name mentions item_id, conventional names first.

    `<ID>.md` and `<ID>-<slug>.md` come before any other name containing the
    id (`issue-ISS-0001.md`, `ISS-0001_fix.md`). Matches on the filename only,
    so ISS-00010.md is a candidate for ISS-0001 too; callers parse to confirm.
    """
    exact = f"{item_id}{RECORD_EXTENSION}"
    prefix = f"{item_id}-"
    named = [p for p in sorted(list_record_files(directory)) if item_id in p.stem]
    conventional = [p for p in named if p.name == exact or p.name.startswith(prefix)]
    return conventional + [p for p in named if p not in conventional]
