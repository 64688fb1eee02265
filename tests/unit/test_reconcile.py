"""Tests for save reconciliation against the SQLite store."""

import copy
import sqlite3
from typing import Any

from statute_editor.core.database.activity import get_activity_log
from statute_editor.core.edit import operations
from statute_editor.core.edit.session import EditSession
from statute_editor.core.save.reconcile import handle_save_request
from statute_editor.core.tree.loader import load_statute_tree
from statute_editor.core.tree.navigation import find_by_id, iter_nodes
from statute_editor.models.node import Node
from statute_editor.models.taxonomy import NodeType


def _open(db: sqlite3.Connection) -> EditSession:
    tree = load_statute_tree(db, 1)
    assert tree is not None
    return EditSession(Node.from_dict(tree))


def _get(session: EditSession, node_type: NodeType, node_id: int) -> Node:
    node = find_by_id(session.root, node_id, node_type)
    assert node is not None
    return node


def _save(db: sqlite3.Connection, session: EditSession) -> dict[str, Any]:
    return handle_save_request(db, 1, session.build_save_payload(), user_id=1)


def _reload(db: sqlite3.Connection) -> Node:
    tree = load_statute_tree(db, 1)
    assert tree is not None
    return Node.from_dict(tree)


def _actions(db: sqlite3.Connection) -> list[str]:
    entries, _ = get_activity_log(db, limit=1000)
    return [e.action for e in reversed(entries)]


def test_saving_unchanged_tree_is_a_noop(
    db: sqlite3.Connection, sample_tree: dict[str, Any]
) -> None:
    result = _save(db, _open(db))
    assert result["success"]
    assert result["stats"]["updated"] == 14
    assert result["stats"]["created"] == 0
    assert result["stats"]["relocated"] == 0
    assert load_statute_tree(db, 1) == sample_tree


def test_new_node_under_persisted_parent_gets_store_id_and_order(db: sqlite3.Connection) -> None:
    session = _open(db)
    part = _get(session, NodeType.PART, 2)
    chapter = operations.add_child(session, part).node
    assert chapter is not None
    operations.add_child(session, chapter)

    result = _save(db, session)
    assert result["success"]
    assert result["stats"]["created"] == 2

    saved_part = _get(EditSession(_reload(db)), NodeType.PART, 2)
    saved_chapter = saved_part.children[0]
    assert saved_chapter.id > 0
    assert saved_chapter.order_no == 1
    assert saved_chapter.name == "Pseudo"
    assert saved_chapter.children[0].type is NodeType.SET
    assert saved_chapter.children[0].id > 0
    assert all(n.id > 0 for n in iter_nodes(Node.from_dict(result["tree"])))


def test_swapping_siblings_saves_under_unique_order(db: sqlite3.Connection) -> None:
    session = _open(db)
    operations.move_up(session, _get(session, NodeType.SECTION, 2))
    statements: list[str] = []
    db.set_trace_callback(statements.append)

    result = _save(db, session)
    db.set_trace_callback(None)

    assert result["success"], result
    assert result["stats"]["relocated"] == 2
    assert any('UPDATE "section" SET order_no' in s for s in statements)
    saved_set = _reload(db).children[0].children[0].children[0]
    assert [(s.name, s.order_no) for s in saved_set.children] == [
        ("Interpretation", 1),
        ("Short title", 2),
    ]


def test_rotating_statute_children_across_part_tables(db: sqlite3.Connection) -> None:
    session = _open(db)
    schedule = _get(session, NodeType.SCH_PART, 1)
    operations.move_up(session, schedule)
    operations.move_up(session, schedule)
    operations.move_down(session, _get(session, NodeType.PART, 1))

    assert _save(db, session)["success"]
    assert [c.name for c in _reload(db).children] == [
        "First Schedule",
        "Incorporation",
        "Preliminary",
    ]


def test_reparented_node_moves_in_store(db: sqlite3.Connection) -> None:
    session = _open(db)
    operations.move_to_parent(
        session, _get(session, NodeType.CHAPTER, 1), _get(session, NodeType.PART, 2)
    )
    assert _save(db, session)["success"]

    part1, part2 = _reload(db).children[:2]
    assert part1.children == []
    assert [(c.id, c.order_no) for c in part2.children] == [(1, 1)]
    assert part2.children[0].children[0].children[0].name == "Short title"


def test_deletions_apply_with_cascade_and_are_logged(db: sqlite3.Connection) -> None:
    session = _open(db)
    operations.delete_node(session, _get(session, NodeType.SECTION, 2))
    operations.renumber_children(session, _get(session, NodeType.SET, 1))

    result = _save(db, session)
    assert result["success"]
    assert result["stats"]["deleted"] == 3
    assert db.execute("SELECT COUNT(*) FROM subsection").fetchone()[0] == 1
    assert _actions(db).count("DELETE") == 3


def test_node_moved_out_of_deleted_parent_is_reinserted(db: sqlite3.Connection) -> None:
    session = _open(db)
    chapter = _get(session, NodeType.CHAPTER, 1)
    operations.move_to_parent(session, chapter, _get(session, NodeType.PART, 2))
    operations.delete_node(session, _get(session, NodeType.PART, 1))

    result = _save(db, session)
    assert result["success"], result
    assert result["stats"]["created"] == 7

    saved = _reload(db)
    assert [c.name for c in saved.children] == ["Incorporation", "First Schedule"]
    moved = saved.children[0].children[0]
    assert moved.name == "General"
    citation = moved.children[0].children[0].children[0]
    assert citation.content == "This Act may be cited as the Companies Act."


def test_save_success_logs_attempt_and_success(db: sqlite3.Connection) -> None:
    session = _open(db)
    operations.edit_node(session, session.root, {"name": "Companies Act 2020"})
    assert _save(db, session)["success"]
    actions = _actions(db)
    assert actions[0] == "SAVE_ATTEMPT"
    assert actions[-1] == "SAVE_SUCCESS"
    assert "UPDATE" in actions
    assert _reload(db).name == "Companies Act 2020"


def test_failure_rolls_back_everything(db: sqlite3.Connection, sample_tree: dict[str, Any]) -> None:
    session = _open(db)
    payload = session.build_save_payload()
    payload["deletedItems"] = [{"id": 2, "type": "section"}, {"id": 1, "type": "statute"}]
    payload["tree"]["name"] = "Renamed"

    result = handle_save_request(db, 1, payload, user_id=1)
    assert not result["success"]
    assert load_statute_tree(db, 1) == sample_tree
    assert _actions(db) == ["SAVE_ATTEMPT", "SAVE_FAILED"]


def test_order_conflict_is_reported(db: sqlite3.Connection) -> None:
    # A row the editor never saw occupies the next free position.
    db.execute("INSERT INTO part (statute_id, name, part_no, order_no) VALUES (1, 'Stray', '9', 4)")
    db.commit()
    session = _open(db)
    # The reload sees the stray part; drop it from the working tree without a ledger entry.
    stray = next(c for c in session.root.children if c.name == "Stray")
    session.root.children.remove(stray)
    operations.add_child(session, session.root, NodeType.PART)

    result = _save(db, session)
    assert not result["success"]
    assert result["details"] == "Order number conflict detected"
    assert db.execute("SELECT COUNT(*) FROM part").fetchone()[0] == 3


def test_payload_is_not_modified(db: sqlite3.Connection) -> None:
    session = _open(db)
    operations.add_child(session, _get(session, NodeType.PART, 2))
    payload = session.build_save_payload()
    original = copy.deepcopy(payload)
    handle_save_request(db, 1, payload)
    assert payload == original


def test_rejects_mismatched_root(db: sqlite3.Connection) -> None:
    result = handle_save_request(db, 2, _open(db).build_save_payload())
    assert not result["success"]
    assert "does not match" in result["error"]


def test_rejects_malformed_payload(db: sqlite3.Connection) -> None:
    result = handle_save_request(db, 1, {"deletedItems": []})
    assert not result["success"]
    assert result["error"].startswith("Malformed save payload")


def test_rejects_invalid_hierarchy_without_touching_store(db: sqlite3.Connection) -> None:
    session = _open(db)
    _get(session, NodeType.PART, 2).children.append(Node(id=-1, type=NodeType.SECTION, name="x"))
    result = _save(db, session)
    assert not result["success"]
    assert result["error"].startswith("Validation failed")
    assert _actions(db) == []


def test_fields_missing_from_payload_keep_stored_values(
    db: sqlite3.Connection, sample_tree: dict[str, Any]
) -> None:
    tree = copy.deepcopy(sample_tree)
    for key in ("act_no", "date", "preface"):
        del tree[key]
    tree["name"] = "Companies Act 2020"
    citation = tree["children"][0]["children"][0]["children"][0]["children"][0]["children"][0]
    del citation["content"]
    del citation["subsection_no"]

    result = handle_save_request(db, 1, {"tree": tree, "deletedItems": []})
    assert result["success"], result

    stored = load_statute_tree(db, 1)
    assert stored is not None
    assert stored["name"] == "Companies Act 2020"
    assert stored["act_no"] == "12"
    assert stored["date"] == "2020-01-01"
    assert stored["preface"] == "An Act to regulate companies."
    citation = stored["children"][0]["children"][0]["children"][0]["children"][0]["children"][0]
    assert citation["subsection_no"] == "1"
    assert citation["content"] == "This Act may be cited as the Companies Act."


def test_explicit_null_clears_stored_value(
    db: sqlite3.Connection, sample_tree: dict[str, Any]
) -> None:
    tree = copy.deepcopy(sample_tree)
    tree["preface"] = None

    assert handle_save_request(db, 1, {"tree": tree, "deletedItems": []})["success"]

    stored = load_statute_tree(db, 1)
    assert stored is not None
    assert stored["preface"] is None
    assert stored["act_no"] == "12"
