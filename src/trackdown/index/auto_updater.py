"""Keep the index current from create/update/delete call sites.

Writers change the record file first, then call one of the on_item_* hooks.
Hook failures are non-critical: the record file is already written and the
next rebuild will pick it up, so they are logged and reported, not raised.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from trackdown.errors import TrackdownError
from .store import IndexStore

log = logging.getLogger(__name__)

VALID_ACTIONS = {"create", "update", "delete"}


class IndexAutoUpdater:
    def __init__(self, store: IndexStore, enabled: bool = True) -> None:
        self.store = store
        self.enabled = enabled

    def _apply(self, item_type: str, item_id: str, action: str) -> bool:
        if not self.enabled:
            return False
        try:
            if action == "delete":
                self.store.remove_item(item_type, item_id)
            else:
                self.store.update_item(item_type, item_id)
        except (TrackdownError, OSError, ValueError) as exc:
            log.warning("Index %s failed for %s %s (non-critical): %s", action, item_type, item_id, exc)
            return False
        log.debug("Index updated (%s %s %s)", action, item_type, item_id)
        return True

    def on_item_created(self, item_type: str, item_id: str) -> bool:
        return self._apply(item_type, item_id, "create")

    def on_item_updated(self, item_type: str, item_id: str) -> bool:
        return self._apply(item_type, item_id, "update")

    def on_item_deleted(self, item_type: str, item_id: str) -> bool:
        return self._apply(item_type, item_id, "delete")

    def batch_update(self, updates: Iterable[tuple[str, str, str]]) -> dict[str, Any]:
        """Apply (item_type, item_id, action) triples in order.

        Each one is independent; a failure does not stop the rest.
        """
        applied = 0
        failed: list[dict[str, str]] = []
        for item_type, item_id, action in updates:
            if action not in VALID_ACTIONS:
                failed.append({"type": item_type, "id": item_id, "action": action, "error": "invalid action"})
                continue
            if self._apply(item_type, item_id, action):
                applied += 1
            elif self.enabled:
                failed.append({"type": item_type, "id": item_id, "action": action})
        if applied > 1:
            log.info("Index batch updated (%d items)", applied)
        return {"applied": applied, "failed": failed}

    def rebuild(self) -> dict[str, Any]:
        """Force a full rebuild. RebuildFailure propagates."""
        return self.store.rebuild_index()

    def validate_and_repair(self) -> bool:
        """Rebuild when the snapshot on disk is missing or corrupt. True if it did."""
        if self.store.validate_index():
            return False
        log.warning("Index validation failed. Rebuilding...")
        self.store.clear_cache()
        self.rebuild()
        return True

    def health_status(self) -> dict[str, Any]:
        stats = self.store.index_stats()
        return {
            "healthy": stats["healthy"],
            "stats": stats,
            "needsRebuild": not stats["healthy"] or not stats["indexFileExists"],
        }
