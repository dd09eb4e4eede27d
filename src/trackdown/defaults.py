"""Shared constants — env var names, default paths, resolvers.

Single source of truth for path resolution across the trackdown subsystems.
"""

from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Env var names
# ---------------------------------------------------------------------------

ENV_PROJECT_DIR = "TRACKDOWN_PROJECT_DIR"
ENV_TASKS_DIR = "TRACKDOWN_TASKS_DIR"

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------

# Project-local config directory holding config.yaml
CONFIG_DIR_NAME = ".ai-trackdown"
CONFIG_FILE_NAME = "config.yaml"

# Single configurable root for every record type directory
DEFAULT_TASKS_DIR = "tasks"

# Index snapshot, stored inside the tasks root
INDEX_FILE_NAME = ".ai-trackdown-index"

RECORD_EXTENSION = ".md"


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_project_dir(project_dir: str | Path | None = None) -> Path:
    """Resolve project root: explicit arg > TRACKDOWN_PROJECT_DIR > cwd."""
    if project_dir:
        return Path(project_dir).expanduser().resolve()
    explicit = os.getenv(ENV_PROJECT_DIR)
    if explicit:
        return Path(explicit).expanduser().resolve()
    return Path.cwd()


def resolve_config_path(project_dir: str | Path) -> Path:
    """Resolve the project-local .ai-trackdown/config.yaml."""
    return Path(project_dir) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def resolve_path(raw_value: str, base: Path) -> Path:
    """Resolve a possibly-relative path against a base directory."""
    path = Path(raw_value).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path
