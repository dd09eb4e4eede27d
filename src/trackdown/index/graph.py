"""Relationship graph — derived adjacency over the flat id -> entry maps.

Children point at parents (Issue.epicId), never the other way round. Every
parent-side list (Epic.issueIds, Issue.taskIds, ...) and every resolved
reference list (blockedBy, relatedIssues, ...) is derived from those
back-references and can be thrown away and recomputed at any time.

Two ways to derive:
  build_all     — recompute everything by filtering the child maps. Slow,
                  obviously correct; rebuild uses it.
  update_patch  — after one entry changed, touch only the edges of that
  prune           record, found through the index's `backrefs` map.

Deletion prunes references; it never cascades to children.
"""

from __future__ import annotations

import bisect
from typing import Any

from trackdown.records._schema import ITEM_TYPES, TYPE_TO_FOLDER
from .entries import PARENT_LINKS, REFERENCE_LINKS

Entry = dict[str, Any]


def type_map(index: dict[str, Any], item_type: str) -> dict[str, Entry]:
    return index[TYPE_TO_FOLDER[item_type]]


def _exists(index: dict[str, Any], target_type: str | None, item_id: str) -> bool:
    if target_type is not None:
        return item_id in type_map(index, target_type)
    return any(item_id in type_map(index, t) for t in ITEM_TYPES)


def _insert_sorted(ids: list[str], item_id: str) -> None:
    pos = bisect.bisect_left(ids, item_id)
    if pos == len(ids) or ids[pos] != item_id:
        ids.insert(pos, item_id)


def _discard(ids: list[str], item_id: str) -> None:
    if item_id in ids:
        ids.remove(item_id)


# ---------------------------------------------------------------------------
# Back-references
# ---------------------------------------------------------------------------


def outgoing(item_type: str, entry: Entry) -> list[tuple[str, str]]:
    """(field, target id) for every parent field and declared reference."""
    refs: list[tuple[str, str]] = []
    for ct, field, _pt, _lk in PARENT_LINKS:
        if ct == item_type and entry.get(field):
            refs.append((field, entry[field]))
    declared = entry.get("declared") or {}
    for field in REFERENCE_LINKS:
        for target in declared.get(field, []):
            refs.append((field, target))
    return refs


def _ref_key(ref: dict[str, str]) -> tuple[str, str, str]:
    return (ref["type"], ref["id"], ref["field"])


def _add_backrefs(index: dict[str, Any], item_type: str, item_id: str, refs: list[tuple[str, str]]) -> None:
    backrefs = index["backrefs"]
    for field, target in refs:
        bucket = backrefs.setdefault(target, [])
        ref = {"type": item_type, "id": item_id, "field": field}
        keys = [_ref_key(r) for r in bucket]
        pos = bisect.bisect_left(keys, _ref_key(ref))
        if pos == len(keys) or keys[pos] != _ref_key(ref):
            bucket.insert(pos, ref)


def _drop_backrefs(index: dict[str, Any], item_type: str, item_id: str, refs: list[tuple[str, str]]) -> None:
    backrefs = index["backrefs"]
    for field, target in refs:
        bucket = backrefs.get(target)
        if not bucket:
            continue
        bucket[:] = [r for r in bucket if _ref_key(r) != (item_type, item_id, field)]
        if not bucket:
            del backrefs[target]


def _resolve(index: dict[str, Any], entry: Entry) -> None:
    """Fill the entry's resolved reference lists from its declared ones."""
    declared = entry.get("declared") or {}
    for field, target_type in REFERENCE_LINKS.items():
        entry[field] = sorted({t for t in declared.get(field, []) if _exists(index, target_type, t)})


# ---------------------------------------------------------------------------
# Full build
# ---------------------------------------------------------------------------


def build_all(index: dict[str, Any]) -> None:
    """Recompute every derived list and the backrefs map from scratch."""
    for ct, field, pt, lk in PARENT_LINKS:
        children = type_map(index, ct).values()
        for parent in type_map(index, pt).values():
            parent[lk] = sorted(c["id"] for c in children if c.get(field) == parent["id"])

    index["backrefs"] = {}
    for item_type in ITEM_TYPES:
        for entry in type_map(index, item_type).values():
            _resolve(index, entry)
            _add_backrefs(index, item_type, entry["id"], outgoing(item_type, entry))


# ---------------------------------------------------------------------------
# Single-record patches
# ---------------------------------------------------------------------------


def update_patch(index: dict[str, Any], item_type: str, item_id: str, previous: Entry | None) -> None:
    """Re-derive the edges touching one entry that was just inserted or replaced.

    `previous` is the entry it replaced, or None for a first insert.
    Cost is proportional to the record's own links plus its referrers.
    """
    entry = type_map(index, item_type)[item_id]

    if previous is not None:
        _drop_backrefs(index, item_type, item_id, outgoing(item_type, previous))
    _add_backrefs(index, item_type, item_id, outgoing(item_type, entry))
    incoming = index["backrefs"].get(item_id, [])

    # As a parent: children live in their own entries, so an update keeps the
    # old lists; a first insert collects the children already pointing here.
    for ct, field, pt, lk in PARENT_LINKS:
        if pt != item_type:
            continue
        if previous is not None:
            entry[lk] = list(previous.get(lk, []))
        else:
            children = type_map(index, ct)
            entry[lk] = sorted(
                r["id"] for r in incoming
                if r["type"] == ct and r["field"] == field and r["id"] in children
            )

    # As a child: move between old and new parent lists
    for ct, field, pt, lk in PARENT_LINKS:
        if ct != item_type:
            continue
        old_parent = previous.get(field) if previous is not None else None
        new_parent = entry.get(field)
        if previous is not None and old_parent == new_parent:
            continue
        parents = type_map(index, pt)
        if old_parent and old_parent in parents:
            _discard(parents[old_parent][lk], item_id)
        if new_parent and new_parent in parents:
            _insert_sorted(parents[new_parent][lk], item_id)

    _resolve(index, entry)

    # Referrers that named this id while it was missing can now resolve it
    if previous is None:
        for ref in incoming:
            field = ref["field"]
            if field not in REFERENCE_LINKS or REFERENCE_LINKS[field] not in (None, item_type):
                continue
            referrer = type_map(index, ref["type"]).get(ref["id"])
            if referrer is not None:
                _insert_sorted(referrer[field], item_id)


def prune(index: dict[str, Any], item_type: str, item_id: str, removed: Entry) -> None:
    """Strip a removed entry's id from every derived list that held it.

    Records that named it (children, referrers) stay in the index untouched
    apart from their derived lists.
    """
    for ct, field, pt, lk in PARENT_LINKS:
        if ct != item_type:
            continue
        parent = type_map(index, pt).get(removed.get(field) or "")
        if parent is not None:
            _discard(parent[lk], item_id)

    # An id shared across types stays resolvable for untyped lists
    still_exists = _exists(index, None, item_id)
    for ref in index["backrefs"].get(item_id, []):
        field = ref["field"]
        if field not in REFERENCE_LINKS:
            continue
        target_type = REFERENCE_LINKS[field]
        if target_type is None and still_exists:
            continue
        if target_type is not None and target_type != item_type:
            continue
        referrer = type_map(index, ref["type"]).get(ref["id"])
        if referrer is not None:
            _discard(referrer[field], item_id)

    _drop_backrefs(index, item_type, item_id, outgoing(item_type, removed))

