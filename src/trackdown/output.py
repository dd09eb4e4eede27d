"""CLI output formatting — JSON by default, key: value lines with --human."""
from __future__ import annotations

import json
import sys
from typing import Any

import click


def _item_line(item: dict[str, Any]) -> str:
    """One index entry as `type ID [status/priority] title`."""
    kind = item.get("type", "")
    return f"{kind:8s}{item.get('id', '')}  [{item.get('status', '')}/{item.get('priority', '')}]  {item.get('title', '')}"


def _is_entry_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(v, dict) and "id" in v for v in value)


def _human_lines(data: dict[str, Any], indent: int = 0) -> list[str]:
    pad = "  " * indent
    lines: list[str] = []
    for k, v in data.items():
        if _is_entry_list(v):
            lines.append(f"{pad}{k}:")
            lines.extend(f"{pad}  {_item_line(item)}" for item in v)
        elif isinstance(v, dict):
            lines.append(f"{pad}{k}:")
            lines.extend(_human_lines(v, indent + 1))
        elif isinstance(v, list):
            lines.append(f"{pad}{k}: {', '.join(str(x) for x in v) or '-'}")
        else:
            lines.append(f"{pad}{k}: {v}")
    return lines


def output(data: dict[str, Any], human: bool = False) -> None:
    """Print result as JSON (default) or human-readable text. Errors go to stderr and exit 1."""
    if "error" in data:
        click.echo(json.dumps(data, indent=2, default=str), err=True)
        sys.exit(1)
    if human:
        click.echo("\n".join(_human_lines(data)))
    else:
        click.echo(json.dumps(data, indent=2, default=str))
