"""Bounded undo log and the inverse of every recorded operation."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from statute_editor.config import MAX_HISTORY_SIZE
from statute_editor.core.tree.navigation import contains
from statute_editor.models.node import OperationRecord, OperationResult, OperationType

if TYPE_CHECKING:
    from statute_editor.core.edit.session import EditSession


class UndoLog:
    """Single stack of operation records, oldest dropped beyond ``capacity``.

    There is no redo. Records are never modified once pushed.
    """

    def __init__(self, capacity: int = MAX_HISTORY_SIZE) -> None:
        self.capacity = max(1, int(capacity))
        self._records: deque[OperationRecord] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._records)

    def push(self, record: OperationRecord) -> None:
        self._records.append(record)

    def pop(self) -> OperationRecord | None:
        return self._records.pop() if self._records else None

    def peek(self) -> OperationRecord | None:
        return self._records[-1] if self._records else None

    def clear(self) -> None:
        self._records.clear()

    def records(self) -> tuple[OperationRecord, ...]:
        return tuple(self._records)


def undo(session: EditSession) -> OperationResult:
    """Invert the most recent operation.

    If the inverse raises, the record goes back on the log and the tree is
    reported as unchanged: every inverse checks its preconditions before it
    touches the tree.
    """
    record = session.undo_log.pop()
    if record is None:
        return OperationResult(False, "Nothing to undo.")

    inverse = _INVERSES.get(record.type)
    if inverse is None:
        session.undo_log.push(record)
        return OperationResult(False, "Cannot undo this operation type.")

    try:
        inverse(session, record.data)
    except Exception:
        logger.exception("Undo of {} failed", record.type.value)
        session.undo_log.push(record)
        return OperationResult(False, "Undo failed. The tree was left as it was.")

    session.mark_dirty()
    logger.debug("Undid {}", record.type.value)
    return OperationResult(True, f"Undid {record.type.value.replace('_', ' ')}")


def _undo_create(session: EditSession, data: dict[str, Any]) -> None:
    parent = data["parent"]
    node = data["node"]
    index = parent.children.index(node)
    parent.children.pop(index)
    if session.selection is not None and contains(node, session.selection):
        session.selection = None


def _undo_delete(session: EditSession, data: dict[str, Any]) -> None:
    parent = data["parent"]
    index = data["index"]
    if not 0 <= index <= len(parent.children):
        msg = f"Cannot reinsert at index {index}: parent has {len(parent.children)} children"
        raise IndexError(msg)
    remaining = list(session.deleted_items)
    for entry in data["deleted_items"]:
        remaining.remove(entry)
    parent.children.insert(index, data["node"])
    session.deleted_items[:] = remaining


def _undo_move(session: EditSession, data: dict[str, Any]) -> None:
    siblings = data["parent"].children
    node = data["node"]
    from_index = data["from_index"]
    to_index = data["to_index"]
    if siblings[to_index] is not node:
        msg = f"{node.name!r} is no longer at position {to_index}"
        raise ValueError(msg)
    other = siblings[from_index]
    siblings[from_index], siblings[to_index] = node, other
    node.order_changed, other.order_changed = data["previous_flags"]


def _undo_move_to_parent(session: EditSession, data: dict[str, Any]) -> None:
    node = data["node"]
    old_parent = data["old_parent"]
    new_parent = data["new_parent"]
    old_index = data["old_index"]
    index = new_parent.children.index(node)
    room = len(old_parent.children) - 1 if old_parent is new_parent else len(old_parent.children)
    if not 0 <= old_index <= room:
        msg = f"Cannot return {node.name!r} to index {old_index}"
        raise IndexError(msg)
    new_parent.children.pop(index)
    old_parent.children.insert(old_index, node)
    node.order_changed = data["previous_order_changed"]


def _undo_edit(session: EditSession, data: dict[str, Any]) -> None:
    node = data["node"]
    original = data["original"]
    for key in data["updates"]:
        setattr(node, key, original[key])


def _undo_renumber(session: EditSession, data: dict[str, Any]) -> None:
    for child, number in data["previous"]:
        child.number = number


_INVERSES: dict[OperationType, Callable[[EditSession, dict[str, Any]], None]] = {
    OperationType.ADD_CHILD: _undo_create,
    OperationType.ADD_SIBLING: _undo_create,
    OperationType.DUPLICATE: _undo_create,
    OperationType.ADD_TEMPLATE: _undo_create,
    OperationType.BATCH_ADD: _undo_create,
    OperationType.DELETE: _undo_delete,
    OperationType.MOVE_UP: _undo_move,
    OperationType.MOVE_DOWN: _undo_move,
    OperationType.MOVE_TO_PARENT: _undo_move_to_parent,
    OperationType.EDIT: _undo_edit,
    OperationType.RENUMBER: _undo_renumber,
}
