"""The edit session: tree root, selection, undo log, deleted-items ledger."""

import time
from collections.abc import Iterable
from typing import Any

from loguru import logger

from statute_editor.config import MAX_HISTORY_SIZE
from statute_editor.core.edit.undo import UndoLog
from statute_editor.core.tree.navigation import calculate_tree_stats, iter_nodes
from statute_editor.core.validation import check_before_save
from statute_editor.models.node import (
    DeletedItem,
    Node,
    OperationRecord,
    OperationResult,
    OperationType,
)
from statute_editor.protocols import DraftStoreProtocol, StoreProtocol


def _first_free_temp_id(root: Node) -> int:
    lowest = min((node.id for node in iter_nodes(root)), default=0)
    return min(-1, lowest - 1)


class EditSession:
    """All mutable state of one editor working on one statute.

    Every operation receives the session explicitly. Nodes created here get
    negative ids from a counter that only decreases, so they never clash with
    each other or with store-assigned ids.
    """

    def __init__(self, root: Node, *, max_history: int = MAX_HISTORY_SIZE) -> None:
        self.root = root
        self.selection: Node | None = None
        self.undo_log = UndoLog(max_history)
        self.deleted_items: list[DeletedItem] = []
        self.dirty = False
        self.saving = False
        self.last_draft_at: float | None = None
        self._next_temp_id = _first_free_temp_id(root)

    @property
    def statute_id(self) -> int:
        return self.root.id

    def allocate_temp_id(self) -> int:
        temp_id = self._next_temp_id
        self._next_temp_id -= 1
        return temp_id

    def record(self, op_type: OperationType, **data: Any) -> None:
        """Push an operation record and mark the session dirty."""
        self.undo_log.push(OperationRecord(type=op_type, data=data, timestamp=time.time()))
        self.mark_dirty()

    def mark_dirty(self) -> None:
        self.dirty = True

    def mark_clean(self) -> None:
        self.dirty = False

    def replace_tree(self, root: Node, deleted_items: Iterable[DeletedItem] = ()) -> None:
        """Swap in a new tree; history refers to the old nodes, so it is dropped."""
        self.root = root
        self.selection = None
        self.undo_log.clear()
        self.deleted_items = list(deleted_items)
        self._next_temp_id = min(self._next_temp_id, _first_free_temp_id(root))

    def restore_snapshot(
        self, tree: dict[str, Any], deleted_items: Iterable[dict[str, Any]]
    ) -> None:
        """Restore a drafted tree and ledger; the session becomes dirty."""
        self.replace_tree(
            Node.from_dict(tree), [DeletedItem.from_dict(item) for item in deleted_items]
        )
        self.mark_dirty()

    def build_save_payload(self) -> dict[str, Any]:
        """Deep, point-in-time copy of the tree and ledger in wire format."""
        return {
            "tree": self.root.to_dict(),
            "deletedItems": [item.to_dict() for item in self.deleted_items],
        }


def save_session(
    session: EditSession,
    store: StoreProtocol,
    *,
    drafts: DraftStoreProtocol | None = None,
) -> OperationResult:
    """Validate, submit, and on success reload the canonical tree.

    On any failure the in-memory tree is left exactly as it was and stays
    dirty, ready for correction and retry.
    """
    if session.saving:
        return OperationResult(False, "A save is already in progress.")

    errors = check_before_save(session.root)
    if errors:
        logger.warning("Save blocked by {} validation error(s): {}", len(errors), errors[0])
        return OperationResult(False, f"Validation failed: {errors[0]}", details={"errors": errors})

    statute_id = session.statute_id
    payload = session.build_save_payload()
    stats = calculate_tree_stats(session.root)
    logger.info(
        "Saving statute {}: {} nodes ({} new), {} deletions",
        statute_id,
        stats.total_nodes,
        stats.unsaved_nodes,
        len(payload["deletedItems"]),
    )

    session.saving = True
    try:
        response = store.save_statute(statute_id, payload)
    except (RuntimeError, OSError) as e:
        logger.warning("Save of statute {} failed: {}", statute_id, e)
        return OperationResult(False, f"Error saving statute: {e}")
    finally:
        session.saving = False

    if not response.get("success"):
        error = response.get("error") or "Save failed - unknown error"
        logger.warning("Store rejected save of statute {}: {}", statute_id, error)
        return OperationResult(False, f"Error saving statute: {error}", details=response)

    session.deleted_items.clear()
    session.mark_clean()
    if drafts is not None:
        drafts.clear(statute_id)

    try:
        canonical = store.load_statute(statute_id)
    except (RuntimeError, OSError) as e:
        logger.warning("Reload of statute {} after save failed: {}", statute_id, e)
        canonical = None
    if canonical is None:
        return OperationResult(
            True,
            "Statute saved, but reloading it failed. Reopen it before editing further.",
            details={"reloaded": False},
        )

    session.replace_tree(Node.from_dict(canonical))
    logger.info("Statute {} saved and reloaded", statute_id)
    return OperationResult(
        True, "Statute saved successfully!", node=session.root, details={"reloaded": True}
    )
