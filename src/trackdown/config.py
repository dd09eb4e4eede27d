from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import yaml

from trackdown.defaults import (
    DEFAULT_TASKS_DIR,
    ENV_TASKS_DIR,
    INDEX_FILE_NAME,
    resolve_config_path,
    resolve_path,
    resolve_project_dir,
)
from trackdown.records._schema import ITEM_TYPES, TYPE_TO_FOLDER


@dataclass(frozen=True)
class ProjectLayout:
    project_root: Path
    tasks_root: Path
    type_dirs: Dict[str, Path] = field(default_factory=dict)

    @property
    def index_path(self) -> Path:
        return self.tasks_root / INDEX_FILE_NAME

    def type_dir(self, item_type: str) -> Path:
        try:
            return self.type_dirs[item_type]
        except KeyError:
            raise ValueError(
                f"Unknown item type '{item_type}'. Valid: {', '.join(ITEM_TYPES)}"
            ) from None


def default_layout(project_root: str | Path, tasks_dir: str | None = None) -> ProjectLayout:
    """Layout with the stock directory names, no config file consulted."""
    root = Path(project_root)
    tasks_root = resolve_path(tasks_dir or DEFAULT_TASKS_DIR, root)
    return ProjectLayout(
        project_root=root,
        tasks_root=tasks_root,
        type_dirs={t: tasks_root / TYPE_TO_FOLDER[t] for t in ITEM_TYPES},
    )


def load_layout(project_dir: str | Path | None = None, tasks_dir: str | None = None) -> ProjectLayout:
    """Build the layout from .ai-trackdown/config.yaml, falling back to defaults.

    Tasks root precedence: tasks_dir arg > TRACKDOWN_TASKS_DIR > config
    `tasks_directory` > "tasks". Per-type folders come from `structure.<type>s_dir`.
    """
    root = resolve_project_dir(project_dir)
    cfg_path = resolve_config_path(root)

    raw: dict = {}
    if cfg_path.exists():
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Top-level config must be a YAML mapping: {cfg_path}")

    tasks_value = tasks_dir or os.getenv(ENV_TASKS_DIR) or str(raw.get("tasks_directory") or DEFAULT_TASKS_DIR)
    tasks_root = resolve_path(tasks_value, root)

    structure = raw.get("structure") or {}
    if not isinstance(structure, dict):
        raise ValueError(f"'structure' must be a mapping: {cfg_path}")

    type_dirs: Dict[str, Path] = {}
    for item_type in ITEM_TYPES:
        folder = TYPE_TO_FOLDER[item_type]
        # config keys follow the folder names: epics_dir, issues_dir, prs_dir, ...
        configured = structure.get(f"{folder}_dir")
        type_dirs[item_type] = resolve_path(str(configured or folder), tasks_root)

    return ProjectLayout(project_root=root, tasks_root=tasks_root, type_dirs=type_dirs)
