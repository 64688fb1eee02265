"""SQLite schema creation and migration for the statute store."""

import sqlite3
from pathlib import Path

from statute_editor.models.taxonomy import (
    NodeType,
    expected_parent_type,
    has_content,
    number_field,
    parent_id_field,
    table_name,
)

SCHEMA_VERSION = 1

_STATUTE_SQL = """\
CREATE TABLE IF NOT EXISTS statute (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    act_no TEXT UNIQUE,
    date TEXT,
    preface TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

_SUPPORT_SQL = """\
CREATE TABLE IF NOT EXISTS log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    table_name TEXT NOT NULL,
    record_id INTEGER,
    action TEXT NOT NULL,
    timestamp INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_log_timestamp ON log(timestamp DESC);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def _component_table_sql(node_type: NodeType) -> str:
    """DDL for one component table.

    Sibling order is unique per parent. Deleting a parent row cascades to
    its whole subtree.
    """
    parent_field = parent_id_field(node_type)
    parent_type = expected_parent_type(node_type)
    if parent_field is None or parent_type is None:
        msg = f"{node_type.value} is the tree root and has no component table"
        raise ValueError(msg)
    content_column = "    content TEXT,\n" if has_content(node_type) else ""
    return (
        f"CREATE TABLE IF NOT EXISTS {table_name(node_type)} (\n"
        "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        f"    {parent_field} INTEGER NOT NULL\n"
        f"        REFERENCES {table_name(parent_type)}(id) ON DELETE CASCADE,\n"
        "    name TEXT NOT NULL DEFAULT '',\n"
        f"    {number_field(node_type)} TEXT,\n"
        f"{content_column}"
        "    order_no INTEGER NOT NULL,\n"
        f"    UNIQUE ({parent_field}, order_no)\n"
        ");\n"
    )


def connect(path: Path | str) -> sqlite3.Connection:
    """Open a database with foreign keys enforced (cascading deletes rely on it)."""
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes."""
    conn.executescript(_STATUTE_SQL)
    for node_type in NodeType:
        if node_type is not NodeType.STATUTE:
            conn.executescript(_component_table_sql(node_type))
    conn.executescript(_SUPPORT_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute("SELECT value FROM metadata WHERE key = 'schema_version'").fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)
