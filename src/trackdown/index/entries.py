"""Project a Record into its index entry, and the link tables the graph uses."""

from __future__ import annotations

import datetime
import os
from typing import Any

from trackdown.records import Record
from trackdown.records._schema import UNASSIGNED

# ---------------------------------------------------------------------------
# Link tables
# ---------------------------------------------------------------------------

# (child type, child field, parent type, parent list)
PARENT_LINKS: tuple[tuple[str, str, str, str], ...] = (
    ("epic", "projectId", "project", "epicIds"),
    ("issue", "epicId", "epic", "issueIds"),
    ("task", "issueId", "issue", "taskIds"),
    ("pr", "issueId", "issue", "prIds"),
    ("task", "parentTask", "task", "subtaskIds"),
)

# Resolved reference list -> type its ids must exist in (None: any type)
REFERENCE_LINKS: dict[str, str | None] = {
    "relatedIssues": "issue",
    "relatedTasks": "task",
    "relatedPRs": "pr",
    "blockedBy": None,
    "blocks": None,
    "dependencies": None,
}

# Record attribute -> entry key for declared references
_DECLARED_KEYS: dict[str, str] = {
    "related_issues": "relatedIssues",
    "related_tasks": "relatedTasks",
    "related_prs": "relatedPRs",
    "blocked_by": "blockedBy",
    "blocks": "blocks",
    "dependencies": "dependencies",
}


def child_lists(item_type: str) -> list[str]:
    """Derived child-id lists an entry of item_type owns."""
    return [lk for _ct, _f, pt, lk in PARENT_LINKS if pt == item_type]


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------


def make_entry(record: Record) -> dict[str, Any]:
    """Build the index entry for a parsed record.

    Derived lists start empty; the graph builder fills them. Raises OSError
    if the file vanished since it was parsed.
    """
    st = os.stat(record.file_path)
    last_modified = record.last_modified or (
        datetime.datetime.fromtimestamp(st.st_mtime, tz=datetime.timezone.utc).isoformat()
    )

    entry: dict[str, Any] = {
        "id": record.id,
        "title": record.title,
        "filePath": record.file_path,
        "status": record.status,
        "priority": record.priority,
        "lastModified": last_modified,
        "fileSize": st.st_size,
        "assignee": record.assignee if record.assignee != UNASSIGNED else None,
        "tags": list(record.tags),
        "declared": {key: list(getattr(record, attr)) for attr, key in _DECLARED_KEYS.items()},
    }
    for key in REFERENCE_LINKS:
        entry[key] = []

    t = record.item_type
    if t == "project":
        entry["name"] = record.name or record.title
    elif t == "epic":
        entry["projectId"] = record.project_id
        entry["milestone"] = record.milestone
        entry["completionPercentage"] = record.completion_percentage
    elif t == "issue":
        entry["epicId"] = record.epic_id
    elif t == "task":
        entry["issueId"] = record.issue_id
        entry["epicId"] = record.epic_id
        entry["parentTask"] = record.parent_task
        entry["timeEstimate"] = record.time_estimate
        entry["timeSpent"] = record.time_spent
    elif t == "pr":
        entry["issueId"] = record.issue_id
        entry["epicId"] = record.epic_id
        entry["prStatus"] = record.pr_status
        entry["branchName"] = record.branch_name
        entry["prNumber"] = record.pr_number
        entry["reviewers"] = list(record.reviewers)

    for lk in child_lists(t):
        entry[lk] = []
    return entry


def derived_keys(item_type: str) -> set[str]:
    """Entry keys the graph builder owns; everything else comes from the file."""
    return set(REFERENCE_LINKS) | set(child_lists(item_type))


def same_record_data(a: dict[str, Any], b: dict[str, Any], item_type: str) -> bool:
    """True when two entries agree on every non-derived field."""
    skip = derived_keys(item_type)
    return {k: v for k, v in a.items() if k not in skip} == {k: v for k, v in b.items() if k not in skip}
