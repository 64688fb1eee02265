"""Shared test fixtures."""

import copy
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from statute_editor.core.database.schema import connect, create_schema
from statute_editor.core.draft import DraftStore
from statute_editor.core.edit.session import EditSession
from statute_editor.models.node import Node
from statute_editor.models.taxonomy import (
    NodeType,
    has_content,
    number_field,
    parent_id_field,
    table_name,
)

SAMPLE_TREE: dict[str, Any] = {
    "id": 1,
    "type": "statute",
    "name": "Companies Act",
    "act_no": "12",
    "date": "2020-01-01",
    "preface": "An Act to regulate companies.",
    "children": [
        {
            "id": 1,
            "type": "part",
            "name": "Preliminary",
            "part_no": "1",
            "order_no": 1,
            "children": [
                {
                    "id": 1,
                    "type": "chapter",
                    "name": "General",
                    "chapter_no": "1",
                    "order_no": 1,
                    "children": [
                        {
                            "id": 1,
                            "type": "set",
                            "name": "Definitions",
                            "set_no": "1",
                            "order_no": 1,
                            "children": [
                                {
                                    "id": 1,
                                    "type": "section",
                                    "name": "Short title",
                                    "section_no": "1",
                                    "order_no": 1,
                                    "children": [
                                        {
                                            "id": 1,
                                            "type": "subsection",
                                            "name": "Citation",
                                            "subsection_no": "1",
                                            "content": (
                                                "This Act may be cited as the Companies Act."
                                            ),
                                            "order_no": 1,
                                            "children": [],
                                        },
                                    ],
                                },
                                {
                                    "id": 2,
                                    "type": "section",
                                    "name": "Interpretation",
                                    "section_no": "2",
                                    "order_no": 2,
                                    "children": [
                                        {
                                            "id": 2,
                                            "type": "subsection",
                                            "name": "Definitions",
                                            "subsection_no": "1",
                                            "content": (
                                                "In this Act, unless the context "
                                                "requires otherwise."
                                            ),
                                            "order_no": 1,
                                            "children": [],
                                        },
                                        {
                                            "id": 3,
                                            "type": "subsection",
                                            "name": "Scope",
                                            "subsection_no": "2",
                                            "content": "",
                                            "order_no": 2,
                                            "children": [],
                                        },
                                    ],
                                },
                            ],
                        },
                    ],
                },
            ],
        },
        {
            "id": 2,
            "type": "part",
            "name": "Incorporation",
            "part_no": "2",
            "order_no": 2,
            "children": [],
        },
        {
            "id": 1,
            "type": "sch_part",
            "name": "First Schedule",
            "part_no": "1",
            "order_no": 3,
            "children": [
                {
                    "id": 1,
                    "type": "sch_chapter",
                    "name": "Forms",
                    "chapter_no": "1",
                    "order_no": 1,
                    "children": [
                        {
                            "id": 1,
                            "type": "sch_set",
                            "name": "Prescribed forms",
                            "set_no": "1",
                            "order_no": 1,
                            "children": [
                                {
                                    "id": 1,
                                    "type": "sch_section",
                                    "name": "Form A",
                                    "section_no": "1",
                                    "order_no": 1,
                                    "children": [
                                        {
                                            "id": 1,
                                            "type": "sch_subsection",
                                            "name": "Body",
                                            "subsection_no": "1",
                                            "content": "Form A text",
                                            "order_no": 1,
                                            "children": [],
                                        },
                                    ],
                                },
                            ],
                        },
                    ],
                },
            ],
        },
    ],
}


def insert_tree(
    conn: sqlite3.Connection, tree: dict[str, Any], parent_id: int | None = None
) -> None:
    """Insert a wire-format tree with its explicit ids and order numbers."""
    node_type = NodeType(tree["type"])
    if node_type is NodeType.STATUTE:
        conn.execute(
            """INSERT INTO statute (id, name, act_no, date, preface, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, 0, 0)""",
            (tree["id"], tree["name"], tree.get("act_no"), tree.get("date"), tree.get("preface")),
        )
    else:
        num_field = number_field(node_type)
        columns: dict[str, Any] = {
            "id": tree["id"],
            "name": tree["name"],
            num_field: tree.get(num_field),
            parent_id_field(node_type): parent_id,
            "order_no": tree["order_no"],
        }
        if has_content(node_type):
            columns["content"] = tree.get("content")
        conn.execute(
            f"INSERT INTO {table_name(node_type)} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            tuple(columns.values()),
        )
    for child in tree.get("children") or []:
        insert_tree(conn, child, tree["id"])


@pytest.fixture
def sample_tree() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_TREE)


@pytest.fixture
def db() -> sqlite3.Connection:
    """Return an in-memory DB holding the sample statute (id 1)."""
    conn = connect(":memory:")
    create_schema(conn)
    insert_tree(conn, SAMPLE_TREE)
    conn.commit()
    return conn


@pytest.fixture
def empty_db() -> sqlite3.Connection:
    conn = connect(":memory:")
    create_schema(conn)
    return conn


@pytest.fixture
def root(sample_tree: dict[str, Any]) -> Node:
    return Node.from_dict(sample_tree)


@pytest.fixture
def session(root: Node) -> EditSession:
    return EditSession(root)


@pytest.fixture
def drafts(tmp_path: Path) -> DraftStore:
    return DraftStore(tmp_path / "drafts")
