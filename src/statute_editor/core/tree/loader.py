"""Read statutes from the store and create new ones."""

import sqlite3
import time
from typing import Any

from loguru import logger

from statute_editor.config import ACT_NO_MAX_LENGTH, STATUTE_NAME_MAX_LENGTH
from statute_editor.core.database.activity import CREATE, log_user_action
from statute_editor.models.node import StatuteSummary
from statute_editor.models.taxonomy import (
    NodeType,
    has_content,
    number_field,
    parent_id_field,
    table_name,
    valid_child_types,
)


def _load_children(
    conn: sqlite3.Connection, parent_type: NodeType, parent_id: int
) -> list[dict[str, Any]]:
    children: list[dict[str, Any]] = []
    for child_type in valid_child_types(parent_type):
        num_field = number_field(child_type)
        columns = ["id", "name", num_field, "order_no"]
        if has_content(child_type):
            columns.append("content")
        rows = conn.execute(
            f"SELECT {', '.join(columns)} FROM {table_name(child_type)} "
            f"WHERE {parent_id_field(child_type)} = ? ORDER BY order_no",
            (parent_id,),
        ).fetchall()
        for row in rows:
            node: dict[str, Any] = dict(zip(columns, row, strict=True))
            node["type"] = child_type.value
            node["children"] = _load_children(conn, child_type, node["id"])
            children.append(node)
    # Parts and schedule parts share one sequence under the statute.
    children.sort(key=lambda child: child["order_no"])
    return children


def load_statute_tree(conn: sqlite3.Connection, statute_id: int) -> dict[str, Any] | None:
    """Assemble the full tree of a statute, siblings in ``order_no`` order.

    Returns None if the statute does not exist.
    """
    row = conn.execute(
        "SELECT id, name, act_no, date, preface FROM statute WHERE id = ?", (statute_id,)
    ).fetchone()
    if row is None:
        return None
    tree: dict[str, Any] = {
        "type": NodeType.STATUTE.value,
        **dict(zip(("id", "name", "act_no", "date", "preface"), row, strict=True)),
    }
    tree["children"] = _load_children(conn, NodeType.STATUTE, statute_id)
    return tree


def list_statutes(conn: sqlite3.Connection) -> list[StatuteSummary]:
    rows = conn.execute("SELECT id, name, act_no FROM statute ORDER BY name").fetchall()
    return [StatuteSummary(*row) for row in rows]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_statute_fields(
    conn: sqlite3.Connection, *, name: str | None, act_no: str | None = None
) -> list[str]:
    """Return every problem with a prospective statute's name and act number."""
    errors: list[str] = []
    name = _clean(name)
    act_no = _clean(act_no)
    if name is None:
        errors.append("Statute name is required")
    elif len(name) > STATUTE_NAME_MAX_LENGTH:
        errors.append(f"Statute name is too long (maximum {STATUTE_NAME_MAX_LENGTH} characters)")
    if act_no is not None and len(act_no) > ACT_NO_MAX_LENGTH:
        errors.append(f"Act number is too long (maximum {ACT_NO_MAX_LENGTH} characters)")

    if name is not None and conn.execute(
        "SELECT 1 FROM statute WHERE name = ?", (name,)
    ).fetchone():
        errors.append("A statute with this name already exists")
    if act_no is not None and conn.execute(
        "SELECT 1 FROM statute WHERE act_no = ?", (act_no,)
    ).fetchone():
        errors.append("A statute with this act number already exists")
    return errors


def create_statute(
    conn: sqlite3.Connection,
    *,
    name: str,
    act_no: str | None = None,
    date: str | None = None,
    preface: str | None = None,
    user_id: int | None = None,
) -> int:
    """Insert an empty statute and return its id.

    Raises:
        ValueError: if the fields do not validate.
    """
    errors = validate_statute_fields(conn, name=name, act_no=act_no)
    if errors:
        raise ValueError("; ".join(errors))

    now_ms = int(time.time() * 1000)
    try:
        cursor = conn.execute(
            """INSERT INTO statute (name, act_no, date, preface, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (_clean(name), _clean(act_no), _clean(date), _clean(preface), now_ms, now_ms),
        )
        statute_id = cursor.lastrowid
        if statute_id is None:
            msg = "Statute insert returned no row id"
            raise RuntimeError(msg)
        log_user_action(
            conn, user_id=user_id, table=NodeType.STATUTE.value, record_id=statute_id, action=CREATE
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        msg = "A statute with this name or act number already exists"
        raise ValueError(msg) from e

    logger.info("Created statute {} ({!r}) by user {}", statute_id, name.strip(), user_id)
    return statute_id
