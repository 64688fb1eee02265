"""CLI for the statute editor (store setup, inspection, MCP server)."""

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from statute_editor.config import DATABASE_FILENAME, resolve_data_directory
from statute_editor.core.database.activity import get_activity_log
from statute_editor.core.database.schema import connect, migrate_schema
from statute_editor.core.save.reconcile import handle_save_request
from statute_editor.core.tree.loader import create_statute, list_statutes, load_statute_tree
from statute_editor.core.tree.navigation import calculate_tree_stats
from statute_editor.core.tree.outline import render_tree_as_markdown
from statute_editor.core.validation import check_before_save
from statute_editor.logging_config import configure_logging
from statute_editor.models.node import Node

app = typer.Typer(help="Statute editor: build and maintain hierarchical statutes.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the statute database"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write debug logs to this file"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _db_path(data_dir: Path | None) -> Path:
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open the statute database, raising if it doesn't exist."""
    db_path = _db_path(data_dir)
    if not db_path.exists():
        logger.error("Statute database not found: {}. Run 'init' first.", db_path)
        raise typer.Exit(1)
    conn = connect(db_path)
    migrate_schema(conn)
    return conn


def _load_tree(conn: sqlite3.Connection, statute_id: int) -> Node:
    tree = load_statute_tree(conn, statute_id)
    if tree is None:
        typer.echo(f"Statute {statute_id} not found.")
        raise typer.Exit(1)
    return Node.from_dict(tree)


@app.command()
def init(data_dir: DataDirOption = None) -> None:
    """Create the statute database (no-op if it already exists)."""
    db_path = _db_path(data_dir)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = connect(db_path)
    try:
        migrate_schema(conn)
    finally:
        conn.close()
    typer.echo(f"Statute database ready at {db_path}")


@app.command()
def create(
    name: str = typer.Argument(..., help="Statute name"),
    act_no: Annotated[str | None, typer.Option("--act-no", "-a", help="Act number")] = None,
    date: Annotated[str | None, typer.Option("--date", help="Enactment date")] = None,
    preface: Annotated[str | None, typer.Option("--preface", help="Preface text")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create a new, empty statute."""
    conn = _open_db(data_dir)
    try:
        statute_id = create_statute(conn, name=name, act_no=act_no, date=date, preface=preface)
    except ValueError as e:
        typer.echo(f"Cannot create statute: {e}")
        raise typer.Exit(1) from None
    finally:
        conn.close()
    typer.echo(f"Created statute {statute_id}: {name.strip()}")


@app.command()
def statutes(data_dir: DataDirOption = None) -> None:
    """List all statutes."""
    conn = _open_db(data_dir)
    try:
        rows = list_statutes(conn)
    finally:
        conn.close()
    typer.echo(f"{len(rows)} statutes:\n")
    for s in rows:
        act = f" (Act {s.act_no})" if s.act_no else ""
        typer.echo(f"  {s.name}{act}  [id={s.id}]")


@app.command()
def show(
    statute_id: int = typer.Argument(..., help="Statute id"),
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    ids: bool = typer.Option(False, "--ids", help="Show [type id] tags"),
    data_dir: DataDirOption = None,
) -> None:
    """Print a statute as a markdown outline."""
    conn = _open_db(data_dir)
    try:
        root = _load_tree(conn, statute_id)
    finally:
        conn.close()
    typer.echo(render_tree_as_markdown(root, max_depth=max_depth, show_ids=ids))


@app.command()
def validate(
    statute_id: int = typer.Argument(..., help="Statute id"),
    data_dir: DataDirOption = None,
) -> None:
    """Check a stored statute for hierarchy errors and unnamed nodes."""
    conn = _open_db(data_dir)
    try:
        root = _load_tree(conn, statute_id)
    finally:
        conn.close()
    errors = check_before_save(root)
    stats = calculate_tree_stats(root)
    if not errors:
        typer.echo(f"OK: {stats.total_nodes} nodes, depth {stats.max_depth}")
        return
    typer.echo(f"{len(errors)} problems:")
    for error in errors:
        typer.echo(f"  {error}")
    raise typer.Exit(1)


@app.command()
def export(
    statute_id: int = typer.Argument(..., help="Statute id"),
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write to this file instead of stdout"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Export a statute tree as JSON (the save payload's tree format)."""
    conn = _open_db(data_dir)
    try:
        root = _load_tree(conn, statute_id)
    finally:
        conn.close()
    text = json.dumps(root.to_dict(), indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Wrote {output}")


@app.command(name="import")
def import_cmd(
    statute_id: int = typer.Argument(..., help="Statute id"),
    source: Path = typer.Argument(..., help="JSON file: a tree, or {tree, deletedItems}"),
    data_dir: DataDirOption = None,
) -> None:
    """Save an edited tree file into a statute, exactly like an editor save."""
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.echo(f"Cannot read {source}: {e}")
        raise typer.Exit(1) from None
    payload = data if "tree" in data else {"tree": data, "deletedItems": []}

    conn = _open_db(data_dir)
    try:
        result = handle_save_request(conn, statute_id, payload)
    finally:
        conn.close()
    if not result["success"]:
        detail = f" ({result['details']})" if isinstance(result.get("details"), str) else ""
        typer.echo(f"Save failed: {result['error']}{detail}")
        raise typer.Exit(1)
    stats = result["stats"]
    typer.echo(
        f"Saved: {stats['updated']} updated, {stats['created']} created, "
        f"{stats['deleted']} deleted"
    )


@app.command()
def log(
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    limit: int = typer.Option(50, "--limit", "-n", help="Entries per page"),
    data_dir: DataDirOption = None,
) -> None:
    """Show the activity log, newest first."""
    conn = _open_db(data_dir)
    try:
        entries, total = get_activity_log(conn, page=page, limit=limit)
    finally:
        conn.close()
    pages = (total + limit - 1) // limit if limit > 0 else 0
    typer.echo(f"{total} entries (page {page} of {max(pages, 1)}):\n")
    for e in entries:
        dt = datetime.fromtimestamp(e.timestamp / 1000, tz=UTC)
        user = e.user_id if e.user_id is not None else "-"
        typer.echo(
            f"  {dt:%Y-%m-%d %H:%M:%S}  {e.action:<12} {e.table_name} {e.record_id}  user={user}"
        )


@app.command()
def serve(
    server_url: Annotated[
        str | None,
        typer.Option("--server-url", help="Load and save trees through this editor server"),
    ] = None,
) -> None:
    """Start the MCP server (stdio transport)."""
    from statute_editor.mcp.server import run_mcp_server

    run_mcp_server(server_url=server_url)
