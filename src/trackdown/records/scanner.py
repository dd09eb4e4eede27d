"""Scan one type directory and parse every record file in it."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from trackdown.errors import ParseError
from trackdown.fs import find_item_files, list_record_files
from .model import Record
from .parser import parse

log = logging.getLogger(__name__)

# Ceiling on files read at once; batches run one after another
MAX_CONCURRENT_READS = 50


def _parse_or_skip(path: Path, item_type: str) -> Record | None:
    try:
        return parse(path, item_type)
    except ParseError as exc:
        log.warning("scan: skipping %s: %s", path, exc.reason)
        return None


def scan(directory: str | Path, item_type: str, batch_size: int = MAX_CONCURRENT_READS) -> list[Record]:
    """Parse all record files of one type in directory.

    A missing directory means no items. A file that fails to parse is logged
    and skipped; it never aborts the scan. Result order is unspecified.
    """
    files = list_record_files(directory)
    records = _parse_all(files, item_type, batch_size)
    log.debug("scan: %s -> %d %s record(s) from %d file(s)", directory, len(records), item_type, len(files))
    return records


def _parse_all(files: list[Path], item_type: str, batch_size: int = MAX_CONCURRENT_READS) -> list[Record]:
    if not files:
        return []

    records: list[Record] = []
    workers = max(1, min(batch_size, len(files)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for start in range(0, len(files), workers):
            batch = files[start:start + workers]
            for record in pool.map(lambda p: _parse_or_skip(p, item_type), batch):
                if record is not None:
                    records.append(record)
    return records


def find_record(
    directory: str | Path, item_type: str, item_id: str, hint: str | Path | None = None
) -> Record | None:
    """Locate and parse the record that declares item_id in directory.

    The previously indexed path (hint) and files named after the id are
    parsed first; a file only counts if it declares item_id. When none does,
    the rest of the directory is parsed. Among files declaring the same id the
    lowest path wins, as in a full rebuild.

    Returns None when no file declares the id. If a file that should hold it
    (the hint, <ID>.md or <ID>-<slug>.md) fails to parse, that ParseError is
    raised instead.
    """
    hint_path = Path(hint) if hint is not None else None
    candidates = find_item_files(directory, item_id)
    if hint_path is not None and hint_path.is_file() and hint_path not in candidates:
        candidates.insert(0, hint_path)

    matches: list[Record] = []
    failure: ParseError | None = None
    for path in candidates:
        try:
            record = parse(path, item_type)
        except ParseError as exc:
            owned = path == hint_path or path.stem == item_id or path.name.startswith(f"{item_id}-")
            if owned and failure is None:
                failure = exc
            continue
        if record.id == item_id:
            matches.append(record)

    if not matches:
        rest = [p for p in list_record_files(directory) if p not in candidates]
        matches = [r for r in _parse_all(rest, item_type) if r.id == item_id]
    if not matches:
        if failure is not None:
            raise failure
        return None
    return min(matches, key=lambda r: r.file_path)
