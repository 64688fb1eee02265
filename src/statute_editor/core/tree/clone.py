"""Explicit recursive copies of subtrees."""

from collections.abc import Callable

from statute_editor.models.node import Node


def copy_subtree(node: Node, allocate_id: Callable[[], int] | None = None) -> Node:
    """Return a deep copy of ``node`` and its descendants.

    With ``allocate_id`` every copied node gets a fresh id from it (pre-order),
    and the stored ``order_no`` is dropped since the copy has never been saved.
    Without it, ids and order numbers are kept, which makes a snapshot.
    """
    fresh = allocate_id is not None
    copied = Node(
        id=allocate_id() if fresh else node.id,
        type=node.type,
        name=node.name,
        number=node.number,
        content=node.content,
        act_no=node.act_no,
        date=node.date,
        preface=node.preface,
        order_no=None if fresh else node.order_no,
        order_changed=False if fresh else node.order_changed,
    )
    copied.children = [copy_subtree(child, allocate_id) for child in node.children]
    return copied
