"""Write an edited statute tree and its deletions back to the store.

The whole save is one transaction. Order numbers are unique per parent, so
every persisted node that changes place is first parked on a temporary order
(``TEMP_ORDER_OFFSET + id``) before any final order is written.
"""

import sqlite3
from dataclasses import asdict, dataclass
from typing import Any

from loguru import logger

from statute_editor.config import TEMP_ORDER_OFFSET
from statute_editor.core.database.activity import (
    CREATE,
    DELETE,
    SAVE_ATTEMPT,
    SAVE_FAILED,
    SAVE_SUCCESS,
    UPDATE,
    log_user_action,
)
from statute_editor.core.tree.navigation import iter_nodes
from statute_editor.core.validation import check_before_save
from statute_editor.models.node import STATUTE_FIELDS, DeletedItem, Node
from statute_editor.models.taxonomy import (
    NodeType,
    has_content,
    number_field,
    parent_id_field,
    table_name,
)


class ReconcileError(Exception):
    """The submitted tree cannot be applied to the store as it stands."""


@dataclass
class ReconcileStats:
    deleted: int = 0
    updated: int = 0
    created: int = 0
    relocated: int = 0


def _placements(root: Node) -> dict[int, tuple[Node, Node, int]]:
    """Map ``id(node)`` to ``(node, parent, 1-based position)`` for every non-root node."""
    out: dict[int, tuple[Node, Node, int]] = {}
    for parent in iter_nodes(root):
        for position, child in enumerate(parent.children, start=1):
            out[id(child)] = (child, parent, position)
    return out


def _delete_items(
    conn: sqlite3.Connection, items: list[DeletedItem], user_id: int | None, stats: ReconcileStats
) -> None:
    for item in items:
        if item.type is NodeType.STATUTE:
            msg = "Refusing to delete the statute itself during a save"
            raise ReconcileError(msg)
        cursor = conn.execute(f"DELETE FROM {table_name(item.type)} WHERE id = ?", (item.id,))
        logger.debug("Deleted {} {} ({} row)", item.type.value, item.id, cursor.rowcount)
        log_user_action(
            conn, user_id=user_id, table=item.type.value, record_id=item.id, action=DELETE
        )
        stats.deleted += 1


def _relocate_moved(
    conn: sqlite3.Connection,
    placements: dict[int, tuple[Node, Node, int]],
    stats: ReconcileStats,
) -> set[int]:
    """Park every persisted node that changes place on its temporary order.

    Returns the ``id()`` of persisted nodes whose row no longer exists; they
    are inserted afresh.
    """
    missing: set[int] = set()
    for key, (node, parent, position) in placements.items():
        if not node.is_persisted:
            continue
        parent_field = parent_id_field(node.type)
        row = conn.execute(
            f"SELECT {parent_field}, order_no FROM {table_name(node.type)} WHERE id = ?",
            (node.id,),
        ).fetchone()
        if row is None:
            logger.debug("{} {} no longer stored, will insert", node.type.value, node.id)
            missing.add(key)
            continue
        if node.order_changed or tuple(row) != (parent.id, position):
            conn.execute(
                f"UPDATE {table_name(node.type)} SET order_no = ? WHERE id = ?",
                (TEMP_ORDER_OFFSET + node.id, node.id),
            )
            stats.relocated += 1
    return missing


def _update_statute(conn: sqlite3.Connection, root: Node) -> None:
    columns: dict[str, Any] = {"name": root.name}
    columns.update((key, getattr(root, key)) for key in STATUTE_FIELDS if root.carries(key))
    assignments = ", ".join(f"{name} = ?" for name in columns)
    cursor = conn.execute(
        f"UPDATE statute SET {assignments}, "
        "updated_at = CAST(strftime('%s', 'now') AS INTEGER) * 1000 WHERE id = ?",
        (*columns.values(), root.id),
    )
    if cursor.rowcount != 1:
        msg = f"Statute {root.id} does not exist"
        raise ReconcileError(msg)


def _columns(node: Node, parent: Node, position: int) -> dict[str, Any]:
    """Columns to write for ``node``; optional fields the payload left out are skipped."""
    columns: dict[str, Any] = {
        "name": node.name,
        parent_id_field(node.type): parent.id,
        "order_no": position,
    }
    num_field = number_field(node.type)
    if num_field is not None and node.carries("number"):
        columns[num_field] = node.number
    if has_content(node.type) and node.carries("content"):
        columns["content"] = node.content
    return columns


def _write_node(
    conn: sqlite3.Connection,
    node: Node,
    parent: Node,
    position: int,
    *,
    insert: bool,
    user_id: int | None,
    stats: ReconcileStats,
) -> None:
    columns = _columns(node, parent, position)
    table = table_name(node.type)
    if insert:
        names = ", ".join(columns)
        marks = ", ".join("?" for _ in columns)
        cursor = conn.execute(
            f"INSERT INTO {table} ({names}) VALUES ({marks})", tuple(columns.values())
        )
        if cursor.lastrowid is None:
            msg = f"Insert of {node.type.value} {node.id} returned no row id"
            raise ReconcileError(msg)
        old_id = node.id
        node.id = cursor.lastrowid
        logger.debug("Inserted {} {} as {}", node.type.value, old_id, node.id)
        log_user_action(
            conn, user_id=user_id, table=node.type.value, record_id=node.id, action=CREATE
        )
        stats.created += 1
    else:
        assignments = ", ".join(f"{name} = ?" for name in columns)
        conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?", (*columns.values(), node.id)
        )
        log_user_action(
            conn, user_id=user_id, table=node.type.value, record_id=node.id, action=UPDATE
        )
        stats.updated += 1


def reconcile_tree(
    conn: sqlite3.Connection,
    root: Node,
    deleted_items: list[DeletedItem],
    *,
    user_id: int | None = None,
) -> ReconcileStats:
    """Apply deletions, then write ``root`` root-first, inserting new nodes.

    New nodes get their store ids written back onto ``root``. The caller owns
    the transaction and must roll back on any exception.
    """
    stats = ReconcileStats()
    _delete_items(conn, deleted_items, user_id, stats)

    placements = _placements(root)
    missing = _relocate_moved(conn, placements, stats)

    _update_statute(conn, root)
    log_user_action(
        conn, user_id=user_id, table=NodeType.STATUTE.value, record_id=root.id, action=UPDATE
    )

    # Pre-order, so every parent has its store id before its children are written.
    for node in iter_nodes(root):
        if node is root:
            continue
        _, parent, position = placements[id(node)]
        insert = not node.is_persisted or id(node) in missing
        _write_node(conn, node, parent, position, insert=insert, user_id=user_id, stats=stats)

    for node in iter_nodes(root):
        node.order_changed = False
        if node is not root:
            node.order_no = placements[id(node)][2]
    return stats


def handle_save_request(
    conn: sqlite3.Connection,
    statute_id: int,
    payload: dict[str, Any],
    *,
    user_id: int | None = None,
) -> dict[str, Any]:
    """Server side of a save: check the payload, reconcile in one transaction.

    Returns ``{"success": True, ...}`` or ``{"success": False, "error", "details"}``.
    """
    try:
        root = Node.from_dict(payload["tree"])
        deleted = [DeletedItem.from_dict(item) for item in payload.get("deletedItems") or []]
    except (KeyError, TypeError, ValueError) as e:
        return {"success": False, "error": f"Malformed save payload: {e}", "details": None}

    if root.type is not NodeType.STATUTE or root.id != statute_id:
        return {
            "success": False,
            "error": f"Tree root does not match statute {statute_id}",
            "details": None,
        }
    errors = check_before_save(root)
    if errors:
        return {"success": False, "error": f"Validation failed: {errors[0]}", "details": errors}

    log_user_action(
        conn, user_id=user_id, table="statute", record_id=statute_id, action=SAVE_ATTEMPT
    )
    conn.commit()
    logger.info(
        "Starting save for statute {} by user {}: {} deletions", statute_id, user_id, len(deleted)
    )

    try:
        stats = reconcile_tree(conn, root, deleted, user_id=user_id)
        log_user_action(
            conn, user_id=user_id, table="statute", record_id=statute_id, action=SAVE_SUCCESS
        )
        conn.commit()
    except (sqlite3.Error, ReconcileError) as e:
        conn.rollback()
        if isinstance(e, ReconcileError):
            logger.warning("Save of statute {} rejected: {}", statute_id, e)
        else:
            logger.exception("Save of statute {} failed", statute_id)
        log_user_action(
            conn, user_id=user_id, table="statute", record_id=statute_id, action=SAVE_FAILED
        )
        conn.commit()
        is_conflict = isinstance(e, sqlite3.IntegrityError) and "order_no" in str(e)
        return {
            "success": False,
            "error": str(e),
            "details": "Order number conflict detected" if is_conflict else type(e).__name__,
        }

    logger.info(
        "Saved statute {}: {} updated, {} created, {} deleted, {} relocated",
        statute_id,
        stats.updated,
        stats.created,
        stats.deleted,
        stats.relocated,
    )
    return {"success": True, "stats": asdict(stats), "tree": root.to_dict()}
