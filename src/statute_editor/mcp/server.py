"""MCP server exposing statute editing tools."""

import asyncio
import os
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from statute_editor.api import StatuteApi
from statute_editor.config import (
    DATABASE_FILENAME,
    DRAFT_AUTOSAVE_INTERVAL,
    DRAFTS_DIRNAME,
    resolve_data_directory,
)
from statute_editor.core.database.activity import get_activity_log
from statute_editor.core.database.schema import connect, migrate_schema
from statute_editor.core.draft import DraftStore, maybe_save_draft, restore_draft
from statute_editor.core.edit import operations
from statute_editor.core.edit.session import EditSession, save_session
from statute_editor.core.edit.templates import available_templates
from statute_editor.core.edit.undo import undo
from statute_editor.core.store import LocalStore
from statute_editor.core.tree.loader import create_statute, list_statutes
from statute_editor.core.tree.navigation import calculate_tree_stats, display_name, find_by_id
from statute_editor.core.tree.outline import render_tree_as_markdown
from statute_editor.core.validation import check_before_save
from statute_editor.models.node import Node, OperationResult
from statute_editor.models.taxonomy import NodeType, parse_node_type
from statute_editor.protocols import StoreProtocol


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime.

    With ``server_url`` set, tree loads and saves go to that editor server;
    listing, creating and the activity log stay on ``conn``.
    """

    conn: sqlite3.Connection
    drafts: DraftStore
    user_id: int | None = None
    server_url: str | None = None
    sessions: dict[int, EditSession] = field(default_factory=dict)
    draft_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @cached_property
    def store(self) -> StoreProtocol:
        if self.server_url:
            return StatuteApi(self.server_url)
        return LocalStore(self.conn, user_id=self.user_id)


def _node_summary(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type.value,
        "name": node.name,
        "number": node.number,
        "label": display_name(node),
        "child_count": len(node.children),
    }


def _result(result: OperationResult, session: EditSession | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {"success": result.success, "message": result.message}
    if result.node is not None:
        out["node"] = _node_summary(result.node)
    details = {k: v for k, v in result.details.items() if k != "created"}
    if details:
        out["details"] = details
    if "created" in result.details:
        out["created"] = [_node_summary(n) for n in result.details["created"]]
    if session is not None:
        out["dirty"] = session.dirty
        out["undo_depth"] = len(session.undo_log)
    return out


def _session(ctx: ServerContext, statute_id: int) -> EditSession | dict[str, Any]:
    session = ctx.sessions.get(statute_id)
    if session is None:
        return {"success": False, "error": f"Statute {statute_id} is not open. Open it first."}
    return session


def _locate(
    ctx: ServerContext, statute_id: int, node_type: str, node_id: int
) -> tuple[EditSession, Node] | dict[str, Any]:
    session = _session(ctx, statute_id)
    if isinstance(session, dict):
        return session
    try:
        parsed = parse_node_type(node_type)
    except ValueError as e:
        return {"success": False, "error": str(e)}
    node = find_by_id(session.root, node_id, parsed)
    if node is None:
        msg = f"No {node_type} with id {node_id} in statute {statute_id}."
        return {"success": False, "error": msg}
    return session, node


# --- Core functions (testable without MCP context) ---


def statute_list(ctx: ServerContext) -> dict[str, Any]:
    """List all statutes, marking those open with unsaved changes."""
    statutes = list_statutes(ctx.conn)
    return {
        "statutes": [
            {
                "id": s.id,
                "name": s.name,
                "act_no": s.act_no,
                "open": s.id in ctx.sessions,
                "dirty": s.id in ctx.sessions and ctx.sessions[s.id].dirty,
            }
            for s in statutes
        ],
        "count": len(statutes),
    }


def statute_create(
    ctx: ServerContext,
    *,
    name: str,
    act_no: str | None = None,
    date: str | None = None,
    preface: str | None = None,
) -> dict[str, Any]:
    """Create an empty statute."""
    try:
        statute_id = create_statute(
            ctx.conn, name=name, act_no=act_no, date=date, preface=preface, user_id=ctx.user_id
        )
    except ValueError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "statute_id": statute_id, "message": "Statute created successfully"}


def statute_open(
    ctx: ServerContext, *, statute_id: int, use_draft: bool = False, reload: bool = False
) -> dict[str, Any]:
    """Start (or resume) an edit session on a statute.

    An unsaved draft younger than 24 hours is only reported (``draft_available``
    and its age); it replaces the stored tree only when ``use_draft`` is set.

    Args:
        statute_id: Statute to open.
        use_draft: Restore the unsaved draft, if one exists.
        reload: Discard an already open session and start from the store.
    """
    existing = ctx.sessions.get(statute_id)
    if existing is not None and not reload:
        return {
            "success": True,
            "message": "Statute already open.",
            "dirty": existing.dirty,
            "outline": render_tree_as_markdown(existing.root, max_depth=1, show_ids=True),
        }

    try:
        tree = ctx.store.load_statute(statute_id)
    except RuntimeError as e:
        return {"success": False, "error": f"Cannot load statute {statute_id}: {e}"}
    if tree is None:
        return {"success": False, "error": f"Statute {statute_id} not found."}
    session = EditSession(Node.from_dict(tree))
    restored = use_draft and restore_draft(session, ctx.drafts)
    draft = None if restored else ctx.drafts.load(statute_id)
    ctx.sessions[statute_id] = session

    if restored:
        message = "Restored unsaved draft."
    elif draft is not None:
        message = (
            "Statute opened. A draft with unsaved changes was found; "
            "open again with use_draft=true and reload=true to restore it."
        )
    else:
        message = "Statute opened."
    stats = calculate_tree_stats(session.root)
    result: dict[str, Any] = {
        "success": True,
        "message": message,
        "restored_draft": restored,
        "draft_available": draft is not None,
        "total_nodes": stats.total_nodes,
        "max_depth": stats.max_depth,
        "outline": render_tree_as_markdown(session.root, max_depth=1, show_ids=True),
    }
    if draft is not None:
        result["draft_age_seconds"] = round(draft.age_seconds())
    return result


def statute_read(
    ctx: ServerContext,
    *,
    statute_id: int,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read the working tree of an open statute (or the stored tree if not open).

    Args:
        statute_id: Statute to read.
        max_depth: Max depth levels to include (None = unlimited).
        output_format: "markdown" (with type and id tags) or "json".
    """
    session = ctx.sessions.get(statute_id)
    if session is not None:
        root = session.root
    else:
        try:
            tree = ctx.store.load_statute(statute_id)
        except RuntimeError as e:
            return {"error": f"Cannot load statute {statute_id}: {e}"}
        if tree is None:
            return {"error": f"Statute {statute_id} not found."}
        root = Node.from_dict(tree)

    if output_format == "json":
        return {"tree": root.to_dict(), "open": session is not None}

    md = render_tree_as_markdown(root, max_depth=max_depth, show_ids=True)
    estimated_tokens = len(md) // 4
    result: dict[str, Any] = {
        "content": md,
        "open": session is not None,
        "dirty": session.dirty if session else False,
        "estimated_tokens": estimated_tokens,
    }
    if estimated_tokens > 5000:
        result["warning"] = (
            f"Large result (~{estimated_tokens} tokens). Consider using max_depth to limit output."
        )
    return result


def node_add_child(
    ctx: ServerContext,
    *,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    child_type: str | None = None,
    name: str | None = None,
    quantity: int = 1,
    start_number: int | None = None,
) -> dict[str, Any]:
    """Add children under a node.

    Without ``name`` a single default-named child is added. With ``name``,
    ``quantity`` children are created (suffixed 1..N when more than one).
    """
    located = _locate(ctx, statute_id, parent_type, parent_id)
    if isinstance(located, dict):
        return located
    session, parent = located
    try:
        parsed = parse_node_type(child_type) if child_type else None
    except ValueError as e:
        return {"success": False, "error": str(e)}

    if name is None:
        result = operations.add_child(session, parent, parsed)
    else:
        result = operations.add_children(
            session,
            parent,
            name,
            child_type=parsed,
            quantity=quantity,
            start_number=start_number,
        )
    return _result(result, session)


def node_add_sibling(
    ctx: ServerContext, *, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Insert a same-type node right after the given one."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    return _result(operations.add_sibling(session, node), session)


def node_add_batch(
    ctx: ServerContext,
    *,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    components: list[dict[str, Any]],
) -> dict[str, Any]:
    """Append several children of possibly different types in one call."""
    located = _locate(ctx, statute_id, parent_type, parent_id)
    if isinstance(located, dict):
        return located
    session, parent = located
    return _result(operations.add_batch(session, parent, components), session)


def node_add_template(
    ctx: ServerContext,
    *,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    template: str | dict[str, Any],
) -> dict[str, Any]:
    """Insert a built-in template (by id) or a custom nested structure."""
    located = _locate(ctx, statute_id, parent_type, parent_id)
    if isinstance(located, dict):
        return located
    session, parent = located
    return _result(operations.add_from_template(session, parent, template), session)


def template_list(*, target_type: str | None = None) -> dict[str, Any]:
    """List built-in templates, optionally only those that fit under ``target_type``."""
    if target_type is None:
        templates = [t for node_type in NodeType for t in available_templates(node_type)]
    else:
        try:
            templates = available_templates(parse_node_type(target_type))
        except ValueError as e:
            return {"error": str(e)}
    return {
        "templates": [
            {"id": t["id"], "name": t["name"], "description": t["description"]} for t in templates
        ],
        "count": len(templates),
    }


def node_duplicate(
    ctx: ServerContext, *, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Copy a node and its subtree right after it."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    return _result(operations.duplicate_node(session, node), session)


def node_delete(
    ctx: ServerContext, *, statute_id: int, node_type: str, node_id: int, confirm: bool = False
) -> dict[str, Any]:
    """Delete a node and its subtree.

    Without ``confirm`` nothing is deleted; the confirmation text with the
    cascade counts is returned instead.
    """
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    if not confirm:
        return {
            "success": False,
            "confirmation_required": True,
            "message": operations.delete_confirmation_message(node),
        }
    return _result(operations.delete_node(session, node), session)


def node_move(
    ctx: ServerContext, *, statute_id: int, node_type: str, node_id: int, direction: str
) -> dict[str, Any]:
    """Swap a node with its previous ("up") or next ("down") sibling."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    if direction == "up":
        result = operations.move_up(session, node)
    elif direction == "down":
        result = operations.move_down(session, node)
    else:
        return {"success": False, "error": f"Invalid direction '{direction}'. Use 'up' or 'down'."}
    return _result(result, session)


def node_reparent(
    ctx: ServerContext,
    *,
    statute_id: int,
    node_type: str,
    node_id: int,
    target_type: str,
    target_id: int,
) -> dict[str, Any]:
    """Move a node under a new parent of the correct type, as its last child."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    target_located = _locate(ctx, statute_id, target_type, target_id)
    if isinstance(target_located, dict):
        return target_located
    _, target = target_located
    return _result(operations.move_to_parent(session, node, target), session)


def node_renumber_children(
    ctx: ServerContext, *, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Renumber a node's children 1..N in their current order."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    return _result(operations.renumber_children(session, node), session)


def node_edit(
    ctx: ServerContext,
    *,
    statute_id: int,
    node_type: str,
    node_id: int,
    fields: dict[str, str | None],
) -> dict[str, Any]:
    """Change name/number/content (or act_no/date/preface on the statute)."""
    located = _locate(ctx, statute_id, node_type, node_id)
    if isinstance(located, dict):
        return located
    session, node = located
    return _result(operations.edit_node(session, node, fields), session)


def statute_undo(ctx: ServerContext, *, statute_id: int) -> dict[str, Any]:
    """Undo the most recent edit of an open statute."""
    session = _session(ctx, statute_id)
    if isinstance(session, dict):
        return session
    return _result(undo(session), session)


def statute_validate(ctx: ServerContext, *, statute_id: int) -> dict[str, Any]:
    """Check the working tree: hierarchy violations first, then missing names."""
    session = _session(ctx, statute_id)
    if isinstance(session, dict):
        return session
    errors = check_before_save(session.root)
    return {"valid": not errors, "errors": errors, "count": len(errors)}


def statute_save(ctx: ServerContext, *, statute_id: int) -> dict[str, Any]:
    """Validate and save the working tree, then reload it from the store."""
    session = _session(ctx, statute_id)
    if isinstance(session, dict):
        return session
    return _result(save_session(session, ctx.store, drafts=ctx.drafts), session)


def statute_close(ctx: ServerContext, *, statute_id: int, discard: bool = False) -> dict[str, Any]:
    """End an edit session. A dirty session is kept unless ``discard`` is set."""
    session = _session(ctx, statute_id)
    if isinstance(session, dict):
        return session
    if session.dirty and not discard:
        return {
            "success": False,
            "error": "Statute has unsaved changes. Save it, or close with discard=true.",
        }
    del ctx.sessions[statute_id]
    if discard:
        ctx.drafts.clear(statute_id)
    return {"success": True, "message": "Statute closed."}


def activity_log(ctx: ServerContext, *, page: int = 1, limit: int = 50) -> dict[str, Any]:
    """One page of the activity log, newest first."""
    limit = max(1, min(limit, 200))
    page = max(1, page)
    entries, total = get_activity_log(ctx.conn, page=page, limit=limit)
    return {
        "entries": [
            {
                "id": e.id,
                "user_id": e.user_id,
                "table": e.table_name,
                "record_id": e.record_id,
                "action": e.action,
                "timestamp": e.timestamp,
            }
            for e in entries
        ],
        "page": page,
        "total": total,
        "total_pages": (total + limit - 1) // limit,
    }


# --- MCP Server Setup ---


def _resolve_user_id() -> int | None:
    value = os.environ.get("STATUTE_EDITOR_USER_ID")
    return int(value) if value else None


def _resolve_remote_url() -> str | None:
    return os.environ.get("STATUTE_EDITOR_URL") or None


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database on startup, close on shutdown."""
    data_dir = resolve_data_directory()
    data_dir.mkdir(parents=True, exist_ok=True)
    conn = connect(data_dir / DATABASE_FILENAME)
    migrate_schema(conn)
    ctx = ServerContext(
        conn=conn,
        drafts=DraftStore(data_dir / DRAFTS_DIRNAME),
        user_id=_resolve_user_id(),
        server_url=_resolve_remote_url(),
    )
    if ctx.server_url:
        logger.info("Saving statutes through {}", ctx.server_url)
    autosave = asyncio.create_task(_draft_autosave_loop(ctx))
    try:
        yield ctx
    finally:
        autosave.cancel()
        with suppress(asyncio.CancelledError):
            await autosave
        conn.close()


mcp_server = FastMCP(
    "statute-editor",
    instructions="""\
A statute is a tree: statute > part > chapter > set > section > subsection, with
a parallel schedule branch (sch_part > sch_chapter > sch_set > sch_section >
sch_subsection). Node ids are only unique per type, so every node is addressed
by (type, id).

## Workflow
1. statute_list_tool, then statute_open_tool to start editing.
2. statute_read_tool shows the tree with [type id] tags to address nodes.
3. Edit with the node_* tools. New nodes get negative ids until saved.
4. statute_undo_tool reverts the last edit (no redo).
5. statute_save_tool validates and writes everything in one transaction; ids
   then become permanent and the undo history is reset.

Unsaved work is drafted to disk periodically and offered again when the
statute is reopened within 24 hours.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


async def _autosave_drafts(
    ctx: ServerContext, *, interval: float = DRAFT_AUTOSAVE_INTERVAL
) -> None:
    """Snapshot dirty sessions whose draft cooldown has elapsed."""
    async with ctx.draft_lock:
        for session in ctx.sessions.values():
            maybe_save_draft(session, ctx.drafts, interval=interval)


async def _draft_autosave_loop(
    ctx: ServerContext, interval: float = DRAFT_AUTOSAVE_INTERVAL
) -> None:
    """Snapshot dirty sessions every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        # The timer is the cooldown here.
        await _autosave_drafts(ctx, interval=0)


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def statute_list_tool(ctx: Context) -> dict[str, Any]:
    """List all statutes with their ids and act numbers."""
    return statute_list(_ctx(ctx))


@mcp_server.tool()
async def statute_create_tool(
    ctx: Context,
    name: str,
    act_no: str | None = None,
    date: str | None = None,
    preface: str | None = None,
) -> dict[str, Any]:
    """Create a new, empty statute. Name and act number must be unique.

    Args:
        name: Statute name (required, max 255 chars).
        act_no: Act number (max 100 chars).
        date: Enactment date.
        preface: Preface text.
    """
    return statute_create(_ctx(ctx), name=name, act_no=act_no, date=date, preface=preface)


@mcp_server.tool()
async def statute_open_tool(
    ctx: Context, statute_id: int, use_draft: bool = False, reload: bool = False
) -> dict[str, Any]:
    """Open a statute for editing and return its top-level outline.

    If ``draft_available`` comes back true, ask the user whether to restore it.

    Args:
        statute_id: Statute to open.
        use_draft: Restore unsaved work from the last 24 hours if present.
        reload: Throw away an open session and reload from the database.
    """
    return statute_open(_ctx(ctx), statute_id=statute_id, use_draft=use_draft, reload=reload)


@mcp_server.tool()
async def statute_read_tool(
    ctx: Context,
    statute_id: int,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a statute tree. Each line carries a [type id] tag for addressing.

    Args:
        statute_id: Statute to read.
        max_depth: Max depth levels (None = unlimited).
        output_format: "markdown" or "json".
    """
    return statute_read(
        _ctx(ctx), statute_id=statute_id, max_depth=max_depth, output_format=output_format
    )


@mcp_server.tool()
async def node_add_child_tool(
    ctx: Context,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    child_type: str | None = None,
    name: str | None = None,
    quantity: int = 1,
    start_number: int | None = None,
) -> dict[str, Any]:
    """Add one or more children under a node.

    Args:
        statute_id: Open statute.
        parent_type: Type of the parent node.
        parent_id: Id of the parent node.
        child_type: Child type (default: first legal type for the parent).
        name: Base name; omit for a default-named single child.
        quantity: Number of children to create with ``name`` (1-20).
        start_number: First number to assign when creating several.
    """
    result = node_add_child(
        _ctx(ctx),
        statute_id=statute_id,
        parent_type=parent_type,
        parent_id=parent_id,
        child_type=child_type,
        name=name,
        quantity=quantity,
        start_number=start_number,
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_add_sibling_tool(
    ctx: Context, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Insert a new node of the same type right after the given node."""
    result = node_add_sibling(
        _ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_add_batch_tool(
    ctx: Context,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    components: list[dict[str, Any]],
) -> dict[str, Any]:
    """Append several children at once.

    Args:
        statute_id: Open statute.
        parent_type: Type of the parent node.
        parent_id: Id of the parent node.
        components: List of {"type", "name", "number", "content"} (only type required).
    """
    result = node_add_batch(
        _ctx(ctx),
        statute_id=statute_id,
        parent_type=parent_type,
        parent_id=parent_id,
        components=components,
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def template_list_tool(target_type: str | None = None) -> dict[str, Any]:
    """List built-in structure templates.

    Args:
        target_type: Only templates that can be placed under this node type.
    """
    return template_list(target_type=target_type)


@mcp_server.tool()
async def node_add_template_tool(
    ctx: Context,
    statute_id: int,
    parent_type: str,
    parent_id: int,
    template: str | dict[str, Any],
) -> dict[str, Any]:
    """Insert a nested structure under a node as a single undoable edit.

    Args:
        statute_id: Open statute.
        parent_type: Type of the parent node.
        parent_id: Id of the parent node.
        template: Built-in template id, or {"type", "name", "children": [...]}.
    """
    result = node_add_template(
        _ctx(ctx),
        statute_id=statute_id,
        parent_type=parent_type,
        parent_id=parent_id,
        template=template,
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_duplicate_tool(
    ctx: Context, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Duplicate a node with its whole subtree, placed right after it."""
    result = node_duplicate(_ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id)
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_delete_tool(
    ctx: Context, statute_id: int, node_type: str, node_id: int, confirm: bool = False
) -> dict[str, Any]:
    """Delete a node and everything below it.

    Call once without confirm to see what would be removed, then again with
    confirm=true. Deletions reach the database only on save.
    """
    result = node_delete(
        _ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id, confirm=confirm
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_move_tool(
    ctx: Context, statute_id: int, node_type: str, node_id: int, direction: str
) -> dict[str, Any]:
    """Move a node one place "up" or "down" among its siblings."""
    result = node_move(
        _ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id, direction=direction
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_reparent_tool(
    ctx: Context,
    statute_id: int,
    node_type: str,
    node_id: int,
    target_type: str,
    target_id: int,
) -> dict[str, Any]:
    """Move a node under another parent of the right type (appended last)."""
    result = node_reparent(
        _ctx(ctx),
        statute_id=statute_id,
        node_type=node_type,
        node_id=node_id,
        target_type=target_type,
        target_id=target_id,
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_renumber_children_tool(
    ctx: Context, statute_id: int, node_type: str, node_id: int
) -> dict[str, Any]:
    """Renumber a node's children 1..N in display order."""
    result = node_renumber_children(
        _ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def node_edit_tool(
    ctx: Context,
    statute_id: int,
    node_type: str,
    node_id: int,
    fields: dict[str, str | None],
) -> dict[str, Any]:
    """Edit node fields.

    Args:
        statute_id: Open statute.
        node_type: Type of the node.
        node_id: Id of the node.
        fields: Any of name, number, content (subsections); for the statute
            root: name, act_no, date, preface.
    """
    result = node_edit(
        _ctx(ctx), statute_id=statute_id, node_type=node_type, node_id=node_id, fields=fields
    )
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def statute_undo_tool(ctx: Context, statute_id: int) -> dict[str, Any]:
    """Undo the last edit on an open statute."""
    result = statute_undo(_ctx(ctx), statute_id=statute_id)
    await _autosave_drafts(_ctx(ctx))
    return result


@mcp_server.tool()
async def statute_validate_tool(ctx: Context, statute_id: int) -> dict[str, Any]:
    """Check an open statute for hierarchy errors and unnamed nodes."""
    return statute_validate(_ctx(ctx), statute_id=statute_id)


@mcp_server.tool()
async def statute_save_tool(ctx: Context, statute_id: int) -> dict[str, Any]:
    """Save an open statute to the database in one transaction."""
    c = _ctx(ctx)
    async with c.draft_lock:
        return statute_save(c, statute_id=statute_id)


@mcp_server.tool()
async def statute_close_tool(
    ctx: Context, statute_id: int, discard: bool = False
) -> dict[str, Any]:
    """Close an open statute; pass discard=true to drop unsaved changes."""
    return statute_close(_ctx(ctx), statute_id=statute_id, discard=discard)


@mcp_server.tool()
async def activity_log_tool(ctx: Context, page: int = 1, limit: int = 50) -> dict[str, Any]:
    """Show the activity log (saves, creates, updates, deletes), newest first."""
    return activity_log(_ctx(ctx), page=page, limit=limit)


def run_mcp_server(server_url: str | None = None) -> None:
    """Run the MCP server with stdio transport.

    Args:
        server_url: Editor server to load and save trees through instead of
            the local database.
    """
    from statute_editor.logging_config import configure_logging

    if server_url:
        os.environ["STATUTE_EDITOR_URL"] = server_url
    configure_logging(verbose=False)
    logger.info("Starting statute-editor MCP server")
    mcp_server.run(transport="stdio")
