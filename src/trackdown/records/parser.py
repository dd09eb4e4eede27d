"""Parse one record file (YAML frontmatter + Markdown body) into a Record."""

from __future__ import annotations

import datetime
import re
from pathlib import Path
from typing import Any

import yaml

from trackdown.errors import ParseError
from ._schema import (
    ID_FIELDS,
    KNOWN_FIELDS,
    REFERENCE_FIELDS,
    REQUIRED_FIELDS,
    UNASSIGNED,
    VALID_PR_STATUSES,
    VALID_PRIORITIES,
    VALID_STATUSES,
    infer_type,
)
from .model import Record

_FM_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)(.*)\Z",
    re.DOTALL | re.MULTILINE,
)


def split_frontmatter(content: str) -> tuple[str, str] | None:
    """Return (yaml_text, body) or None when the file has no header block."""
    m = _FM_PATTERN.match(content)
    if not m:
        return None
    return m.group(1), m.group(2)


def parse(path: str | Path, item_type: str | None = None) -> Record:
    """Parse a record file. Raises ParseError; never touches the file.

    When item_type is given the file must carry that type's id field;
    otherwise the type is inferred from the id fields present.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(path, f"cannot read file: {exc}") from exc

    parts = split_frontmatter(content)
    if parts is None:
        raise ParseError(path, "missing frontmatter header")
    yaml_text, body = parts

    try:
        data = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as exc:
        raise ParseError(path, f"malformed YAML frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(path, "frontmatter is not a mapping")
    # YAML allows non-string keys (e.g. `1: x`); stringify so lookups are uniform
    data = {str(k): v for k, v in data.items()}

    inferred = infer_type(data)
    if item_type is None:
        if inferred is None:
            raise ParseError(path, "no id field; cannot tell the item type")
        item_type = inferred
    elif item_type not in ID_FIELDS:
        raise ParseError(path, f"unknown item type '{item_type}'")

    id_field = ID_FIELDS[item_type]
    item_id = _opt_str(data.get(id_field))
    if item_id is None:
        raise ParseError(path, f"missing required field: {id_field}")
    if inferred != item_type:
        raise ParseError(path, f"expected a {item_type} record, found a {inferred}")

    for key in REQUIRED_FIELDS[item_type]:
        if _opt_str(data.get(key)) is None:
            raise ParseError(path, f"{item_type} missing required field: {key}")

    status = str(data["status"])
    if status not in VALID_STATUSES:
        raise ParseError(path, f"invalid status '{status}'. Valid: {', '.join(sorted(VALID_STATUSES))}")
    priority = str(data["priority"])
    if priority not in VALID_PRIORITIES:
        raise ParseError(path, f"invalid priority '{priority}'. Valid: {', '.join(sorted(VALID_PRIORITIES))}")

    pr_status = _opt_str(data.get("pr_status"))
    if pr_status is not None and pr_status not in VALID_PR_STATUSES:
        raise ParseError(path, f"invalid pr_status '{pr_status}'. Valid: {', '.join(sorted(VALID_PR_STATUSES))}")

    record = Record(
        item_type=item_type,
        id=item_id,
        title=str(data["title"]),
        status=status,
        priority=priority,
        file_path=str(path),
        assignee=_opt_str(data.get("assignee")) or UNASSIGNED,
        created_date=_timestamp(data.get("created_date")),
        updated_date=_timestamp(data.get("updated_date")),
        body=body.strip(),
        description=_opt_str(data.get("description")) or "",
        tags=_str_list(data.get("tags")),
        # Parent fields only count for the types that own them
        project_id=_opt_str(data.get("project_id")) if item_type == "epic" else None,
        epic_id=_opt_str(data.get("epic_id")) if item_type in ("issue", "task", "pr") else None,
        issue_id=_opt_str(data.get("issue_id")) if item_type in ("task", "pr") else None,
        parent_task=_opt_str(data.get("parent_task")) if item_type == "task" else None,
        subtasks=_str_list(data.get("subtasks")),
        name=_opt_str(data.get("name")),
        milestone=_opt_str(data.get("milestone")),
        completion_percentage=_number(path, "completion_percentage", data.get("completion_percentage"), float),
        time_estimate=_opt_str(data.get("time_estimate")),
        time_spent=_opt_str(data.get("time_spent")),
        pr_status=pr_status,
        branch_name=_opt_str(data.get("branch_name")),
        pr_number=_number(path, "pr_number", data.get("pr_number"), int),
        reviewers=_str_list(data.get("reviewers")),
        extra={k: v for k, v in data.items() if k not in KNOWN_FIELDS},
    )
    for key in REFERENCE_FIELDS:
        setattr(record, key, _str_list(data.get(key)))
    return record


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _opt_str(value: Any) -> str | None:
    """Stringify a scalar; None and blank strings mean absent."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any) -> list[str]:
    """Accept a list or a single scalar; drop blanks and duplicates, keep order."""
    if value is None:
        return []
    items = value if isinstance(value, list) else [value]
    out: list[str] = []
    for item in items:
        text = _opt_str(item)
        if text is not None and text not in out:
            out.append(text)
    return out


def _timestamp(value: Any) -> str:
    # yaml.safe_load turns bare ISO dates into date/datetime objects
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return _opt_str(value) or ""


def _number(path: Path, key: str, value: Any, kind: type) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ParseError(path, f"{key} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ParseError(path, f"{key} must be a number, got {value!r}") from None
