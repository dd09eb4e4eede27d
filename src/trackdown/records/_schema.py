"""Record vocabulary — item types, enums, frontmatter field names."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Vocabulary constants
# ---------------------------------------------------------------------------

ITEM_TYPES = ("project", "epic", "issue", "task", "pr")

VALID_STATUSES = {"planning", "active", "completed", "archived"}
VALID_PRIORITIES = {"low", "medium", "high", "critical"}
VALID_PR_STATUSES = {"draft", "open", "review", "approved", "merged", "closed"}

UNASSIGNED = "unassigned"

# Frontmatter key holding each type's own id
ID_FIELDS: dict[str, str] = {
    "project": "project_id",
    "epic": "epic_id",
    "issue": "issue_id",
    "task": "task_id",
    "pr": "pr_id",
}

# Each item type lives under its plural folder name inside the tasks root,
# and under the same key in the index document.
TYPE_TO_FOLDER: dict[str, str] = {
    "project": "projects",
    "epic": "epics",
    "issue": "issues",
    "task": "tasks",
    "pr": "prs",
}

# Required beyond the id field; task and PR must name their issue.
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "project": ("title", "status", "priority"),
    "epic": ("title", "status", "priority"),
    "issue": ("title", "status", "priority"),
    "task": ("issue_id", "title", "status", "priority"),
    "pr": ("issue_id", "title", "status", "priority"),
}

# Declared reference lists any item may carry
REFERENCE_FIELDS = (
    "related_issues",
    "related_tasks",
    "related_prs",
    "blocked_by",
    "blocks",
    "dependencies",
)

# Every frontmatter key the Record type understands; anything else lands in Record.extra
KNOWN_FIELDS = frozenset(
    set(ID_FIELDS.values())
    | set(REFERENCE_FIELDS)
    | {
        "title",
        "name",
        "description",
        "status",
        "priority",
        "assignee",
        "created_date",
        "updated_date",
        "tags",
        "parent_task",
        "subtasks",
        "milestone",
        "completion_percentage",
        "time_estimate",
        "time_spent",
        "pr_status",
        "branch_name",
        "pr_number",
        "reviewers",
    }
)


def infer_type(frontmatter: dict[str, object]) -> str | None:
    """Infer the item type from the most specific id field present."""
    for item_type in ("pr", "task", "issue", "epic", "project"):
        if frontmatter.get(ID_FIELDS[item_type]):
            return item_type
    return None
