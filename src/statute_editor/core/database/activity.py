"""Activity log: one row per statute-level or record-level action."""

import sqlite3
import time

from statute_editor.models.node import ActivityEntry

SAVE_ATTEMPT = "SAVE_ATTEMPT"
SAVE_SUCCESS = "SAVE_SUCCESS"
SAVE_FAILED = "SAVE_FAILED"
CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"


def log_user_action(
    conn: sqlite3.Connection,
    *,
    user_id: int | None,
    table: str,
    record_id: int | None,
    action: str,
) -> None:
    """Append an activity row. The caller owns the transaction."""
    conn.execute(
        """INSERT INTO log (user_id, table_name, record_id, action, timestamp)
           VALUES (?, ?, ?, ?, ?)""",
        (user_id, table, record_id, action, int(time.time() * 1000)),
    )


def get_activity_log(
    conn: sqlite3.Connection, *, page: int = 1, limit: int = 50
) -> tuple[list[ActivityEntry], int]:
    """Return one page of the log, newest first, and the total row count."""
    page = max(1, page)
    limit = max(1, limit)
    total = conn.execute("SELECT COUNT(*) FROM log").fetchone()[0]
    rows = conn.execute(
        """SELECT id, user_id, table_name, record_id, action, timestamp
           FROM log ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?""",
        (limit, (page - 1) * limit),
    ).fetchall()
    return [ActivityEntry(*row) for row in rows], total
