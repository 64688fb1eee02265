"""Tree navigation: parent lookup, id lookup, descendant checks, statistics."""

from collections.abc import Iterator

from statute_editor.models.node import Node, NodeStats, TreeStats
from statute_editor.models.taxonomy import NodeType


def iter_nodes(root: Node) -> Iterator[Node]:
    """Yield every node of the subtree in pre-order, root first."""
    yield root
    for child in root.children:
        yield from iter_nodes(child)


def find_parent(root: Node, target: Node) -> Node | None:
    """Return the node whose children hold ``target`` (by identity).

    Returns None for the root itself and for nodes not in the tree.
    """
    for child in root.children:
        if child is target:
            return root
        found = find_parent(child, target)
        if found is not None:
            return found
    return None


def find_by_id(root: Node, node_id: int, node_type: NodeType | None = None) -> Node | None:
    """Find a node by id, optionally restricted to one type.

    Persisted ids are unique per table only, so a part and a section may
    share an id; pass ``node_type`` to disambiguate.
    """
    for node in iter_nodes(root):
        if node.id == node_id and (node_type is None or node.type is node_type):
            return node
    return None


def is_descendant(ancestor: Node, node: Node) -> bool:
    """True if ``node`` sits anywhere below ``ancestor`` (not counting itself)."""
    for child in ancestor.children:
        if child is node or is_descendant(child, node):
            return True
    return False


def contains(root: Node, node: Node) -> bool:
    return root is node or is_descendant(root, node)


def calculate_node_stats(node: Node) -> NodeStats:
    """Count descendants, and descendants carrying non-empty content."""
    total = 0
    with_content = 0
    for child in node.children:
        for descendant in iter_nodes(child):
            total += 1
            if descendant.content and descendant.content.strip():
                with_content += 1
    return NodeStats(total_descendants=total, descendants_with_content=with_content)


def calculate_tree_stats(root: Node) -> TreeStats:
    total = 0
    unsaved = 0
    with_content = 0
    max_depth = 0

    def walk(node: Node, depth: int) -> None:
        nonlocal total, unsaved, with_content, max_depth
        total += 1
        max_depth = max(max_depth, depth)
        if node.id < 0:
            unsaved += 1
        if node.content and node.content.strip():
            with_content += 1
        for child in node.children:
            walk(child, depth + 1)

    walk(root, 0)
    return TreeStats(
        total_nodes=total,
        max_depth=max_depth,
        unsaved_nodes=unsaved,
        nodes_with_content=with_content,
    )


def display_name(node: Node) -> str:
    """Label shown in the tree: ``"<number>. <name>"`` when a number is set."""
    label = node.name or "Unnamed"
    if node.number:
        return f"{node.number}. {label}"
    return label
