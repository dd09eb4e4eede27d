"""Project overview — counts, completion rate, recent activity."""

from __future__ import annotations

import copy
import datetime
from typing import Any

from trackdown.records._schema import ITEM_TYPES, TYPE_TO_FOLDER

RECENT_DAYS = 7
RECENT_LIMIT = 10


def _parse_when(value: Any) -> datetime.datetime | None:
    """Parse an entry timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        when = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=datetime.timezone.utc)
    return when


def all_entries(index: dict[str, Any]) -> list[dict[str, Any]]:
    """Every entry of every type, each tagged with its `type`."""
    items: list[dict[str, Any]] = []
    for item_type in ITEM_TYPES:
        for entry in index[TYPE_TO_FOLDER[item_type]].values():
            items.append({**copy.deepcopy(entry), "type": item_type})
    return items


def compute_overview(index: dict[str, Any], now: datetime.datetime | None = None) -> dict[str, Any]:
    """Summarise the index without touching it.

    recentActivity holds entries modified in the trailing RECENT_DAYS days,
    newest first, capped at RECENT_LIMIT. Entries whose lastModified does not
    parse are left out of it but still counted everywhere else.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    items = all_entries(index)

    by_status: dict[str, int] = {}
    by_priority: dict[str, int] = {}
    for item in items:
        by_status[item["status"]] = by_status.get(item["status"], 0) + 1
        by_priority[item["priority"]] = by_priority.get(item["priority"], 0) + 1

    by_type = {t: len(index[TYPE_TO_FOLDER[t]]) for t in ITEM_TYPES}

    completed = by_status.get("completed", 0)
    completion_rate = round(completed / len(items) * 100) if items else 0

    cutoff = now - datetime.timedelta(days=RECENT_DAYS)
    recent: list[tuple[datetime.datetime, dict[str, Any]]] = []
    for item in items:
        when = _parse_when(item.get("lastModified"))
        if when is not None and when >= cutoff:
            recent.append((when, item))
    recent.sort(key=lambda pair: (pair[0], pair[1]["id"]), reverse=True)

    return {
        "totalItems": len(items),
        "byStatus": by_status,
        "byPriority": by_priority,
        "byType": by_type,
        "completionRate": completion_rate,
        "recentActivity": [item for _when, item in recent[:RECENT_LIMIT]],
    }
