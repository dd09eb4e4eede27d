"""Click CLI entrypoint — `trackdown <subcommand>`.

Every call is stateless apart from the index snapshot on disk. JSON output
by default, --human for key: value lines.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import click

from trackdown.records._schema import ITEM_TYPES, VALID_STATUSES
from trackdown.errors import TrackdownError
from trackdown.output import output


def _store(ctx: click.Context):
    """Build the IndexStore for the selected project, once per invocation."""
    if "store" not in ctx.obj:
        from trackdown.config import load_layout
        from trackdown.index import IndexStore
        ctx.obj["store"] = IndexStore(load_layout(ctx.obj["project_dir"], ctx.obj["tasks_dir"]))
    return ctx.obj["store"]


def _run(ctx: click.Context, fn: Callable[[], dict[str, Any]]) -> None:
    """Call fn and print its result; library errors become {"error": ...}."""
    try:
        result = fn()
    except (TrackdownError, OSError, ValueError) as exc:
        result = {"error": str(exc)}
    output(result, ctx.obj["human"])


@click.group()
@click.version_option(package_name="trackdown")
@click.option("-C", "--project-dir", default=None, help="Project root (default: $TRACKDOWN_PROJECT_DIR or cwd)")
@click.option("--tasks-dir", default=None, help="Tasks root, relative to the project root")
@click.option("--human", is_flag=True, help="Human-readable output instead of JSON")
@click.option("-v", "--verbose", count=True, help="More logging (-v info, -vv debug)")
@click.pass_context
def cli(ctx: click.Context, project_dir: str | None, tasks_dir: str | None, human: bool, verbose: int) -> None:
    """trackdown — index-backed work item catalog."""
    logging.basicConfig(
        level=max(logging.DEBUG, logging.WARNING - 10 * verbose),
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["human"] = human
    ctx.obj["project_dir"] = project_dir
    ctx.obj["tasks_dir"] = tasks_dir


# =========================================================================
# Index maintenance
# =========================================================================

@cli.group("index")
def index_group() -> None:
    """Build, inspect and patch the index snapshot."""


@index_group.command("rebuild")
@click.pass_context
def index_rebuild(ctx: click.Context) -> None:
    """Rescan every record file and rewrite the index."""
    def _rebuild() -> dict[str, Any]:
        index = _store(ctx).rebuild_index()
        return {"status": "rebuilt", "stats": index["stats"]}
    _run(ctx, _rebuild)


@index_group.command("status")
@click.pass_context
def index_status(ctx: click.Context) -> None:
    """Show index stats and health."""
    _run(ctx, lambda: _store(ctx).index_stats())


@index_group.command("validate")
@click.option("--repair", is_flag=True, help="Rebuild if the snapshot is invalid")
@click.pass_context
def index_validate(ctx: click.Context, repair: bool) -> None:
    """Check the snapshot on disk."""
    def _validate() -> dict[str, Any]:
        store = _store(ctx)
        if repair:
            from trackdown.index import IndexAutoUpdater
            return {"valid": True, "repaired": IndexAutoUpdater(store).validate_and_repair()}
        return {"valid": store.validate_index(), "repaired": False}
    _run(ctx, _validate)


@index_group.command("update")
@click.argument("item_type", type=click.Choice(ITEM_TYPES))
@click.argument("item_id")
@click.pass_context
def index_update(ctx: click.Context, item_type: str, item_id: str) -> None:
    """Re-index one record after its file changed (or was deleted)."""
    _run(ctx, lambda: _store(ctx).update_item(item_type, item_id))


@index_group.command("remove")
@click.argument("item_type", type=click.Choice(ITEM_TYPES))
@click.argument("item_id")
@click.pass_context
def index_remove(ctx: click.Context, item_type: str, item_id: str) -> None:
    """Drop one record from the index."""
    _run(ctx, lambda: _store(ctx).remove_item(item_type, item_id))


# =========================================================================
# Queries
# =========================================================================

@cli.command("list")
@click.option("--type", "item_type", type=click.Choice(ITEM_TYPES), default=None)
@click.option("--status", type=click.Choice(sorted(VALID_STATUSES)), default=None)
@click.pass_context
def list_items(ctx: click.Context, item_type: str | None, status: str | None) -> None:
    """List indexed items, optionally filtered by type and status."""
    def _list() -> dict[str, Any]:
        store = _store(ctx)
        if item_type is not None:
            items = [{**e, "type": item_type} for e in store.by_type(item_type)]
            if status is not None:
                items = [e for e in items if e["status"] == status]
        elif status is not None:
            items = store.by_status(status)
        else:
            items = [{**e, "type": t} for t in ITEM_TYPES for e in store.by_type(t)]
        return {"count": len(items), "items": items}
    _run(ctx, _list)


@cli.command("show")
@click.argument("item_type", type=click.Choice(ITEM_TYPES))
@click.argument("item_id")
@click.pass_context
def show(ctx: click.Context, item_type: str, item_id: str) -> None:
    """Show one index entry."""
    def _show() -> dict[str, Any]:
        entry = _store(ctx).by_id(item_type, item_id)
        if entry is None:
            return {"error": f"{item_type} '{item_id}' not found in index."}
        return entry
    _run(ctx, _show)


@cli.command("overview")
@click.pass_context
def overview(ctx: click.Context) -> None:
    """Counts by status/priority/type, completion rate, recent activity."""
    _run(ctx, lambda: _store(ctx).overview())
