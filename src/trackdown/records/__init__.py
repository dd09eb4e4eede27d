"""Records — one Markdown file per work item, YAML frontmatter on top.

Files under <tasks root>/<type dir>/ are the source of truth; everything
else is derived from them.
"""

from ._schema import ITEM_TYPES, TYPE_TO_FOLDER, VALID_PRIORITIES, VALID_STATUSES
from .model import Record
from .parser import parse
from .scanner import find_record, scan

__all__: list[str] = [
    "ITEM_TYPES",
    "Record",
    "TYPE_TO_FOLDER",
    "VALID_PRIORITIES",
    "VALID_STATUSES",
    "find_record",
    "parse",
    "scan",
]
