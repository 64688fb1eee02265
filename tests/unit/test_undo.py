"""Tests for the undo log and operation inverses."""

from collections.abc import Callable
from typing import Any

import pytest

from statute_editor.core.edit import operations
from statute_editor.core.edit.session import EditSession
from statute_editor.core.edit.undo import UndoLog, undo
from statute_editor.core.tree.navigation import find_by_id
from statute_editor.models.node import Node, OperationRecord, OperationType
from statute_editor.models.taxonomy import NodeType


def _get(session: EditSession, node_type: NodeType, node_id: int) -> Node:
    node = find_by_id(session.root, node_id, node_type)
    assert node is not None
    return node


def test_undo_log_drops_oldest_beyond_capacity() -> None:
    log = UndoLog(3)
    for i in range(5):
        log.push(OperationRecord(OperationType.EDIT, {"i": i}, float(i)))
    assert len(log) == 3
    assert [r.data["i"] for r in log.records()] == [2, 3, 4]
    assert log.pop().data["i"] == 4


def test_session_history_is_bounded(root: Node) -> None:
    session = EditSession(root, max_history=2)
    part = _get(session, NodeType.PART, 2)
    for _ in range(4):
        operations.add_child(session, part)
    assert len(session.undo_log) == 2


def test_undo_on_empty_log(session: EditSession) -> None:
    result = undo(session)
    assert not result.success
    assert result.message == "Nothing to undo."


OPERATIONS: dict[str, Callable[[EditSession], Any]] = {
    "add_child": lambda s: operations.add_child(s, _get(s, NodeType.PART, 2)),
    "add_sibling": lambda s: operations.add_sibling(s, _get(s, NodeType.SECTION, 1)),
    "duplicate": lambda s: operations.duplicate_node(s, _get(s, NodeType.SECTION, 2)),
    "delete": lambda s: operations.delete_node(s, _get(s, NodeType.SECTION, 1)),
    "move_up": lambda s: operations.move_up(s, _get(s, NodeType.SECTION, 2)),
    "move_down": lambda s: operations.move_down(s, _get(s, NodeType.PART, 1)),
    "reparent": lambda s: operations.move_to_parent(
        s, _get(s, NodeType.CHAPTER, 1), _get(s, NodeType.PART, 2)
    ),
    "edit": lambda s: operations.edit_node(
        s, _get(s, NodeType.SUBSECTION, 1), {"name": "Renamed", "content": "Changed"}
    ),
    "renumber": lambda s: operations.renumber_children(s, _get(s, NodeType.SET, 1)),
    "template": lambda s: operations.add_from_template(s, s.root, "schedule_part"),
    "batch": lambda s: operations.add_batch(
        s, _get(s, NodeType.SECTION, 2), [{"type": "subsection"}]
    ),
}


@pytest.mark.parametrize("name", sorted(OPERATIONS))
def test_undo_restores_tree_exactly(session: EditSession, name: str) -> None:
    if name == "renumber":
        _get(session, NodeType.SECTION, 1).number = "9"
    before = session.root.to_dict()
    ledger_before = list(session.deleted_items)

    result = OPERATIONS[name](session)
    assert result.success
    assert session.root.to_dict() != before

    undone = undo(session)
    assert undone.success
    assert session.root.to_dict() == before
    assert session.deleted_items == ledger_before
    assert len(session.undo_log) == 0


def test_undo_delete_reinserts_same_node_object(session: EditSession) -> None:
    section = _get(session, NodeType.SECTION, 2)
    operations.delete_node(session, section)
    undo(session)
    assert _get(session, NodeType.SECTION, 2) is section


def test_undo_delete_keeps_older_ledger_entries(session: EditSession) -> None:
    operations.delete_node(session, _get(session, NodeType.SECTION, 1))
    operations.delete_node(session, _get(session, NodeType.SECTION, 2))
    assert len(session.deleted_items) == 5

    undo(session)
    assert [(d.id, d.type) for d in session.deleted_items] == [
        (1, NodeType.SECTION),
        (1, NodeType.SUBSECTION),
    ]


def test_undo_template_removes_whole_structure(session: EditSession) -> None:
    count = len(session.root.children)
    operations.add_from_template(session, session.root, "schedule_part")
    assert len(session.root.children) == count + 1
    undo(session)
    assert len(session.root.children) == count


def test_undo_batch_removes_one_node_per_step(session: EditSession) -> None:
    part = _get(session, NodeType.PART, 2)
    operations.add_batch(session, part, [{"type": "chapter"}, {"type": "chapter"}])
    undo(session)
    assert len(part.children) == 1
    undo(session)
    assert part.children == []


def test_sequence_of_undos_restores_original(session: EditSession) -> None:
    before = session.root.to_dict()
    operations.add_child(session, _get(session, NodeType.PART, 2))
    operations.move_down(session, _get(session, NodeType.SECTION, 1))
    operations.delete_node(session, _get(session, NodeType.CHAPTER, 1))
    operations.edit_node(session, session.root, {"name": "Companies Act 2020"})
    for _ in range(4):
        assert undo(session).success
    assert session.root.to_dict() == before
    assert session.deleted_items == []


def test_failed_inverse_leaves_tree_and_restores_record(session: EditSession) -> None:
    section = _get(session, NodeType.SECTION, 2)
    operations.move_up(session, section)
    # Move it back behind the log's back so the recorded position no longer holds.
    parent = _get(session, NodeType.SET, 1)
    parent.children.reverse()
    snapshot = session.root.to_dict()

    result = undo(session)
    assert not result.success
    assert session.root.to_dict() == snapshot
    assert len(session.undo_log) == 1


def test_unknown_record_type_is_kept(session: EditSession) -> None:
    session.undo_log.push(OperationRecord("bogus", {}, 0.0))  # type: ignore[arg-type]
    result = undo(session)
    assert not result.success
    assert result.message == "Cannot undo this operation type."
    assert len(session.undo_log) == 1


def test_undo_marks_session_dirty(session: EditSession) -> None:
    operations.add_child(session, _get(session, NodeType.PART, 2))
    session.mark_clean()
    undo(session)
    assert session.dirty
