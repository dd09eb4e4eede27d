"""Typed record — one persisted work item."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ._schema import UNASSIGNED


@dataclass
class Record:
    item_type: str
    id: str
    title: str
    status: str
    priority: str
    file_path: str
    assignee: str = UNASSIGNED
    created_date: str = ""
    updated_date: str = ""
    body: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)

    # Parent linkage. None means "valid but unparented", never an error.
    project_id: Optional[str] = None
    epic_id: Optional[str] = None
    issue_id: Optional[str] = None
    parent_task: Optional[str] = None
    subtasks: list[str] = field(default_factory=list)

    # Declared references, exactly as written in the file
    related_issues: list[str] = field(default_factory=list)
    related_tasks: list[str] = field(default_factory=list)
    related_prs: list[str] = field(default_factory=list)
    blocked_by: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    # Type-specific scalars
    name: Optional[str] = None
    milestone: Optional[str] = None
    completion_percentage: Optional[float] = None
    time_estimate: Optional[str] = None
    time_spent: Optional[str] = None
    pr_status: Optional[str] = None
    branch_name: Optional[str] = None
    pr_number: Optional[int] = None
    reviewers: list[str] = field(default_factory=list)

    # Frontmatter keys this version does not know about, kept verbatim
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def last_modified(self) -> str:
        return self.updated_date or self.created_date
