"""In-process store backed by the local SQLite database."""

import sqlite3
from typing import Any

from statute_editor.core.save.reconcile import handle_save_request
from statute_editor.core.tree.loader import load_statute_tree


class LocalStore:
    """Satisfies ``StoreProtocol`` by reconciling straight into ``conn``."""

    def __init__(self, conn: sqlite3.Connection, *, user_id: int | None = None) -> None:
        self.conn = conn
        self.user_id = user_id

    def save_statute(self, statute_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return handle_save_request(self.conn, statute_id, payload, user_id=self.user_id)

    def load_statute(self, statute_id: int) -> dict[str, Any] | None:
        return load_statute_tree(self.conn, statute_id)
