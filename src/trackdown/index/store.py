"""Index store — the durable, cached, queryable projection of every record.

The index is a JSON snapshot at <tasks root>/.ai-trackdown-index. It is
derived data: the record files are the source of truth and a missing or
corrupt snapshot is simply rebuilt from them.

Read path:   fresh cache -> unchanged snapshot on disk -> snapshot read
             -> full rebuild
Write path:  mutate in memory -> temp file beside the snapshot -> rename
             -> refresh cache
"""

from __future__ import annotations

import copy
import datetime
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from trackdown.config import ProjectLayout
from trackdown.errors import IndexCorruption, RebuildFailure
from trackdown.fs import atomic_write_file
from trackdown.records import find_record, scan
from trackdown.records._schema import ITEM_TYPES, TYPE_TO_FOLDER
from .entries import make_entry, same_record_data
from .graph import build_all, prune, type_map, update_patch
from .overview import all_entries, compute_overview

log = logging.getLogger(__name__)

INDEX_VERSION = "2.0.0"
CACHE_TTL = 5.0  # seconds
SLOW_OPERATION_MS = 100

STAT_KEYS: dict[str, str] = {
    "project": "totalProjects",
    "epic": "totalEpics",
    "issue": "totalIssues",
    "task": "totalTasks",
    "pr": "totalPRs",
}

REQUIRED_KEYS = ("version", "lastUpdated", "projectRoot", "backrefs", "stats") + tuple(TYPE_TO_FOLDER.values())


# ---------------------------------------------------------------------------
# Document shape
# ---------------------------------------------------------------------------


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def empty_index(project_root: str | Path, now: Optional[datetime.datetime] = None) -> dict[str, Any]:
    stamp = (now or _utcnow()).isoformat()
    index: dict[str, Any] = {
        "version": INDEX_VERSION,
        "lastUpdated": stamp,
        "projectRoot": str(project_root),
        "backrefs": {},
        "stats": {
            **{key: 0 for key in STAT_KEYS.values()},
            "lastFullScan": stamp,
            "indexSize": 0,
            "performanceMetrics": {"lastLoadTime": 0, "lastUpdateTime": 0, "lastRebuildTime": 0},
        },
    }
    for folder in TYPE_TO_FOLDER.values():
        index[folder] = {}
    return index


def validate_structure(index: Any) -> None:
    """Raise IndexCorruption unless index has the current version and shape."""
    if not isinstance(index, dict):
        raise IndexCorruption("index is not a JSON object")
    missing = [k for k in REQUIRED_KEYS if k not in index]
    if missing:
        raise IndexCorruption(f"missing keys: {', '.join(missing)}")
    if index["version"] != INDEX_VERSION:
        raise IndexCorruption(f"version {index['version']!r}, expected {INDEX_VERSION!r}")
    for key in ("backrefs", "stats", *TYPE_TO_FOLDER.values()):
        if not isinstance(index[key], dict):
            raise IndexCorruption(f"'{key}' is not an object")
    if not isinstance(index["stats"].get("performanceMetrics"), dict):
        raise IndexCorruption("stats.performanceMetrics is not an object")
    for folder in TYPE_TO_FOLDER.values():
        for item_id, entry in index[folder].items():
            if not isinstance(entry, dict) or entry.get("id") != item_id:
                raise IndexCorruption(f"bad entry {folder}/{item_id}")


def _serialize(index: dict[str, Any]) -> str:
    return json.dumps(index, indent=2, sort_keys=True, default=str) + "\n"


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@dataclass
class IndexCache:
    """In-memory copy of the last loaded or saved index, with its own clock."""

    ttl: float = CACHE_TTL
    clock: Callable[[], float] = time.monotonic
    index: Optional[dict[str, Any]] = None
    stamp: float = 0.0
    # (mtime_ns, size) of the snapshot file the cached index matches
    signature: Optional[tuple[int, int]] = None

    def fresh(self) -> bool:
        return self.index is not None and (self.clock() - self.stamp) < self.ttl

    def put(self, index: dict[str, Any], signature: Optional[tuple[int, int]]) -> None:
        self.index = index
        self.signature = signature
        self.stamp = self.clock()

    def touch(self) -> None:
        self.stamp = self.clock()

    def clear(self) -> None:
        self.index = None
        self.signature = None
        self.stamp = 0.0


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class IndexStore:
    """Load, persist, rebuild and patch the index for one project.

    Single-process: the atomic rename keeps readers from seeing a half-written
    file, but two writers racing each other are not arbitrated.
    """

    def __init__(
        self,
        layout: ProjectLayout,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.layout = layout
        self.index_path = layout.index_path
        self.cache = IndexCache(ttl=ttl, clock=clock)
        self._now = now or _utcnow
        # which path served the last load(): "cache", "disk" or "rebuild"
        self.last_load_source: Optional[str] = None

    # -- helpers ----------------------------------------------------------

    def _signature(self) -> Optional[tuple[int, int]]:
        try:
            st = os.stat(self.index_path)
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _elapsed_ms(self, start: float, operation: str) -> int:
        ms = int((time.perf_counter() - start) * 1000)
        if ms > SLOW_OPERATION_MS:
            log.warning("Slow %s: %dms", operation, ms)
        return ms

    def _read_snapshot(self) -> dict[str, Any]:
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            raise IndexCorruption(f"cannot read {self.index_path}: {exc}") from exc
        validate_structure(data)
        return data

    @staticmethod
    def _check_type(item_type: str) -> None:
        if item_type not in ITEM_TYPES:
            raise ValueError(f"Invalid item type '{item_type}'. Valid: {', '.join(ITEM_TYPES)}")

    # -- load / save / rebuild -------------------------------------------

    def load(self) -> dict[str, Any]:
        """Return the current index, rebuilding it if the snapshot is unusable.

        Never raises for a missing or corrupt snapshot; raises RebuildFailure
        only when the fallback rebuild itself fails.
        """
        start = time.perf_counter()
        if self.cache.fresh():
            log.debug("Index served from cache")
            self.last_load_source = "cache"
            return self.cache.index  # type: ignore[return-value]

        signature = self._signature()
        if signature is None:
            log.warning("Index file not found at %s. Rebuilding...", self.index_path)
            return self.rebuild_index()

        if self.cache.index is not None and signature == self.cache.signature:
            # TTL expired but nobody rewrote the snapshot since we cached it
            log.debug("Index cache revalidated against %s", self.index_path)
            self.cache.touch()
            self.last_load_source = "cache"
            return self.cache.index

        try:
            index = self._read_snapshot()
        except IndexCorruption as exc:
            log.warning("Index file corrupted (%s). Rebuilding...", exc)
            return self.rebuild_index()

        index["stats"]["performanceMetrics"]["lastLoadTime"] = self._elapsed_ms(start, "load")
        self.cache.put(index, signature)
        self.last_load_source = "disk"
        return index

    def save(self, index: dict[str, Any]) -> None:
        """Persist index atomically and refresh the cache.

        Recomputes stats counts, size and lastUpdated first. On any failure
        the previous snapshot stays on disk, the cache is dropped, and the
        error propagates.
        """
        index["version"] = INDEX_VERSION
        index["lastUpdated"] = self._now().isoformat()
        index["projectRoot"] = str(self.layout.project_root)
        stats = index["stats"]
        for item_type, key in STAT_KEYS.items():
            stats[key] = len(type_map(index, item_type))

        # indexSize is part of the document it measures: iterate to a fixpoint
        stats["indexSize"] = 0
        content = _serialize(index)
        while stats["indexSize"] != len(content.encode("utf-8")):
            stats["indexSize"] = len(content.encode("utf-8"))
            content = _serialize(index)

        try:
            atomic_write_file(self.index_path, content)
        except BaseException:
            self.cache.clear()
            raise
        self.cache.put(index, self._signature())

    def rebuild_index(self) -> dict[str, Any]:
        """Scan every type directory and replace the index wholesale. O(N).

        Raises RebuildFailure, chained to the cause, if anything goes wrong.
        """
        start = time.perf_counter()
        root = self.layout.project_root
        log.info("Rebuilding index for %s", root)
        try:
            index = empty_index(root, self._now())
            for item_type in ITEM_TYPES:
                entries = type_map(index, item_type)
                for record in scan(self.layout.type_dir(item_type), item_type):
                    held = entries.get(record.id)
                    if held is not None:
                        # Same id in two files: the lowest path wins, whatever the scan order
                        log.warning(
                            "Duplicate %s id %s in %s and %s", item_type, record.id, held["filePath"], record.file_path
                        )
                        if held["filePath"] <= record.file_path:
                            continue
                    try:
                        entries[record.id] = make_entry(record)
                    except OSError as exc:
                        log.warning("Skipping %s: %s", record.file_path, exc)
            build_all(index)
            index["stats"]["performanceMetrics"]["lastRebuildTime"] = self._elapsed_ms(start, "rebuild")
            self.save(index)
        except Exception as exc:
            self.cache.clear()
            raise RebuildFailure(f"Failed to rebuild index: {exc}") from exc

        self.last_load_source = "rebuild"
        stats = index["stats"]
        log.info(
            "Index rebuilt in %dms: %d projects, %d epics, %d issues, %d tasks, %d PRs",
            stats["performanceMetrics"]["lastRebuildTime"],
            *(stats[STAT_KEYS[t]] for t in ITEM_TYPES),
        )
        return index

    # -- incremental maintenance ------------------------------------------

    def update_item(self, item_type: str, item_id: str) -> dict[str, Any]:
        """Re-index one record after its file was created or changed.

        No file declaring item_id means the record was deleted. Re-running with
        no change on disk leaves the snapshot byte-for-byte untouched. Raises
        ParseError if the record's own file cannot be parsed; the index is then
        left as it was.
        """
        self._check_type(item_type)
        start = time.perf_counter()
        index = self.load()
        entries = type_map(index, item_type)
        previous = entries.get(item_id)

        hint = previous["filePath"] if previous is not None else None
        record = find_record(self.layout.type_dir(item_type), item_type, item_id, hint)
        if record is None:
            log.debug("update_item: no file for %s %s, removing", item_type, item_id)
            return self.remove_item(item_type, item_id)

        entry = make_entry(record)

        if previous is not None and same_record_data(previous, entry, item_type):
            return {"status": "unchanged", "type": item_type, "id": item_id}

        try:
            entries[item_id] = entry
            update_patch(index, item_type, item_id, previous)
            index["stats"]["performanceMetrics"]["lastUpdateTime"] = self._elapsed_ms(start, "update_item")
            self.save(index)
        except BaseException:
            self.cache.clear()
            raise
        return {"status": "updated", "type": item_type, "id": item_id, "filePath": entry["filePath"]}

    def remove_item(self, item_type: str, item_id: str) -> dict[str, Any]:
        """Drop one record and prune every derived list that referenced it.

        Never deletes other records: children of a removed parent stay indexed.
        """
        self._check_type(item_type)
        start = time.perf_counter()
        index = self.load()
        entries = type_map(index, item_type)
        if item_id not in entries:
            return {"status": "missing", "type": item_type, "id": item_id}

        try:
            removed = entries.pop(item_id)
            prune(index, item_type, item_id, removed)
            index["stats"]["performanceMetrics"]["lastUpdateTime"] = self._elapsed_ms(start, "remove_item")
            self.save(index)
        except BaseException:
            self.cache.clear()
            raise
        return {"status": "removed", "type": item_type, "id": item_id}

    # -- read queries -----------------------------------------------------

    def by_type(self, item_type: str) -> list[dict[str, Any]]:
        """All entries of one type, ordered by id."""
        self._check_type(item_type)
        entries = type_map(self.load(), item_type)
        return [copy.deepcopy(entries[k]) for k in sorted(entries)]

    def by_id(self, item_type: str, item_id: str) -> Optional[dict[str, Any]]:
        self._check_type(item_type)
        entry = type_map(self.load(), item_type).get(item_id)
        return copy.deepcopy(entry) if entry is not None else None

    def by_status(self, status: str) -> list[dict[str, Any]]:
        """Entries of every type with the given status, each tagged with `type`."""
        return [item for item in all_entries(self.load()) if item["status"] == status]

    def overview(self, now: Optional[datetime.datetime] = None) -> dict[str, Any]:
        return compute_overview(self.load(), now or self._now())

    # -- health -----------------------------------------------------------

    def validate_index(self) -> bool:
        """Check the snapshot on disk, without rebuilding or touching the cache."""
        try:
            self._read_snapshot()
        except IndexCorruption as exc:
            log.info("Index validation failed: %s", exc)
            return False
        return True

    def index_stats(self) -> dict[str, Any]:
        exists = self.index_path.exists()
        last_modified = None
        if exists:
            mtime = self.index_path.stat().st_mtime
            last_modified = datetime.datetime.fromtimestamp(mtime, tz=datetime.timezone.utc).isoformat()
        healthy = self.validate_index()
        cache_hit = self.cache.fresh()
        index = self.load()
        return {
            **index["stats"],
            "healthy": healthy,
            "cacheHit": cache_hit,
            "indexFileExists": exists,
            "lastModified": last_modified,
            "loadSource": self.last_load_source,
        }

    def clear_cache(self) -> None:
        self.cache.clear()
