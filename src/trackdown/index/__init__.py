"""Index — derived, rebuildable snapshot of record metadata and relationships.

The record files are the source of truth; the index file can be deleted at
any time and is rebuilt on the next load.
"""

from .auto_updater import IndexAutoUpdater
from .graph import build_all, prune, update_patch
from .overview import compute_overview
from .store import INDEX_VERSION, IndexCache, IndexStore, empty_index

__all__: list[str] = [
    "INDEX_VERSION",
    "IndexAutoUpdater",
    "IndexCache",
    "IndexStore",
    "build_all",
    "compute_overview",
    "empty_index",
    "prune",
    "update_patch",
]
