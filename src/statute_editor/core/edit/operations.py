"""Mutation operations on an edit session's tree.

Each operation checks its preconditions, mutates the tree in place, pushes a
record carrying what its inverse needs, and marks the session dirty. A
refused operation returns a failed result and changes nothing.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from statute_editor.config import DEFAULT_NODE_NAME, MAX_BATCH_QUANTITY
from statute_editor.core.edit.session import EditSession
from statute_editor.core.edit.templates import STRUCTURE_TEMPLATES, check_template
from statute_editor.core.tree.clone import copy_subtree
from statute_editor.core.tree.navigation import (
    calculate_node_stats,
    contains,
    find_parent,
    is_descendant,
    iter_nodes,
)
from statute_editor.models.node import DeletedItem, Node, OperationResult, OperationType
from statute_editor.models.taxonomy import (
    NodeType,
    expected_parent_type,
    format_type_name,
    has_content,
    number_field,
    parse_node_type,
    valid_child_types,
)

_COPY_SUFFIX = re.compile(r"^(.*?) \(Copy(?: (\d+))?\)$")
_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def _parse_leading_int(value: str | None) -> int | None:
    if not value:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group()) if match else None


def next_number(siblings: Sequence[Node], node_type: NodeType) -> str:
    """One past the highest numeric number among same-type siblings, "1" if none."""
    highest = 0
    for sibling in siblings:
        if sibling.type is not node_type:
            continue
        value = _parse_leading_int(sibling.number)
        if value is not None and value > highest:
            highest = value
    return str(highest + 1)


def generate_default_name(node_type: NodeType, parent: Node) -> str:
    count = sum(1 for child in parent.children if child.type is node_type)
    base = format_type_name(node_type) if node_type is NodeType.STATUTE else DEFAULT_NODE_NAME
    return base if count == 0 else f"{base} {count + 1}"


def generate_duplicate_name(original: str, siblings: Sequence[Node]) -> str:
    """``X`` -> ``X (Copy)``, ``X (Copy)`` -> ``X (Copy 2)``, then skip names in use."""
    base = original
    counter = 1
    match = _COPY_SUFFIX.match(original)
    if match:
        base = match.group(1)
        counter = int(match.group(2)) + 1 if match.group(2) else 2

    name = f"{base} (Copy)" if counter == 1 else f"{base} (Copy {counter})"
    taken = {sibling.name for sibling in siblings}
    while name in taken:
        counter += 1
        name = f"{base} (Copy {counter})"
    return name


def create_node(session: EditSession, node_type: NodeType, parent: Node) -> Node:
    """A new, unattached node with default name and number for its place under ``parent``."""
    node = Node(
        id=session.allocate_temp_id(),
        type=node_type,
        name=generate_default_name(node_type, parent),
    )
    if number_field(node_type) is not None:
        node.number = next_number(parent.children, node_type)
    if has_content(node_type):
        node.content = ""
    return node


def editable_fields(node_type: NodeType) -> frozenset[str]:
    if node_type is NodeType.STATUTE:
        return frozenset({"name", "act_no", "date", "preface"})
    if has_content(node_type):
        return frozenset({"name", "number", "content"})
    return frozenset({"name", "number"})


def _check_child_type(parent: Node, child_type: NodeType | None) -> tuple[NodeType | None, str]:
    valid = valid_child_types(parent.type)
    if not valid:
        return None, (
            f"Cannot add children to {format_type_name(parent.type)}. This is a leaf node."
        )
    if child_type is None:
        return valid[0], ""
    if child_type not in valid:
        return None, (
            f"Cannot add {format_type_name(child_type)} to "
            f"{format_type_name(parent.type)}. Invalid hierarchy."
        )
    return child_type, ""


def add_child(
    session: EditSession, parent: Node, child_type: NodeType | None = None
) -> OperationResult:
    """Append a new child; with no type, the first legal child type is used."""
    if not contains(session.root, parent):
        return OperationResult(False, "Node is not part of this statute.")
    resolved, error = _check_child_type(parent, child_type)
    if resolved is None:
        return OperationResult(False, error)

    new_node = create_node(session, resolved, parent)
    parent.children.append(new_node)
    session.record(
        OperationType.ADD_CHILD,
        parent=parent,
        node=new_node,
        index=len(parent.children) - 1,
    )
    session.selection = new_node
    return OperationResult(
        True, f"Added {format_type_name(resolved)} to {parent.name}", node=new_node
    )


def add_sibling(session: EditSession, reference: Node) -> OperationResult:
    """Insert a same-type node right after ``reference``."""
    if reference is session.root or reference.type is NodeType.STATUTE:
        return OperationResult(False, "Cannot add sibling to root statute.")
    parent = find_parent(session.root, reference)
    if parent is None:
        return OperationResult(False, "Cannot find parent node.")

    new_node = create_node(session, reference.type, parent)
    index = parent.children.index(reference) + 1
    parent.children.insert(index, new_node)
    session.record(
        OperationType.ADD_SIBLING,
        parent=parent,
        node=new_node,
        index=index,
        reference=reference,
    )
    session.selection = new_node
    return OperationResult(
        True, f"Added {format_type_name(new_node.type)} after {reference.name}", node=new_node
    )


def add_children(
    session: EditSession,
    parent: Node,
    name: str,
    *,
    child_type: NodeType | None = None,
    quantity: int = 1,
    start_number: int | None = None,
) -> OperationResult:
    """Create ``quantity`` children at once, each one separately undoable."""
    if not contains(session.root, parent):
        return OperationResult(False, "Node is not part of this statute.")
    resolved, error = _check_child_type(parent, child_type)
    if resolved is None:
        return OperationResult(False, error)
    base_name = name.strip()
    if not base_name:
        return OperationResult(False, "Please enter a component name.")
    if not 1 <= quantity <= MAX_BATCH_QUANTITY:
        return OperationResult(False, f"Quantity must be between 1 and {MAX_BATCH_QUANTITY}.")

    created: list[Node] = []
    for i in range(quantity):
        new_node = create_node(session, resolved, parent)
        new_node.name = base_name if quantity == 1 else f"{base_name} {i + 1}"
        if start_number is not None and number_field(resolved) is not None:
            new_node.number = str(start_number + i)
        parent.children.append(new_node)
        created.append(new_node)
        session.record(
            OperationType.ADD_CHILD,
            parent=parent,
            node=new_node,
            index=len(parent.children) - 1,
        )

    session.selection = created[0]
    if quantity == 1:
        message = f"Created {format_type_name(resolved)}: {base_name}"
    else:
        message = f"Created {quantity} {format_type_name(resolved)} components"
    return OperationResult(True, message, node=created[0], details={"created": created})


def add_batch(
    session: EditSession, parent: Node, specs: Sequence[dict[str, Any]]
) -> OperationResult:
    """Append one child per spec (``type``, optional ``name``/``number``/``content``).

    All specs are checked before the first node is created.
    """
    if not contains(session.root, parent):
        return OperationResult(False, "Node is not part of this statute.")
    if not specs:
        return OperationResult(False, "Nothing to add.")

    types: list[NodeType] = []
    for spec in specs:
        try:
            spec_type = parse_node_type(str(spec.get("type")))
        except ValueError as e:
            return OperationResult(False, str(e))
        resolved, error = _check_child_type(parent, spec_type)
        if resolved is None:
            return OperationResult(False, error)
        types.append(resolved)

    created: list[Node] = []
    for batch_index, (spec, spec_type) in enumerate(zip(specs, types, strict=True)):
        new_node = create_node(session, spec_type, parent)
        new_node.name = spec.get("name") or new_node.name
        if spec.get("number") is not None and number_field(spec_type) is not None:
            new_node.number = str(spec["number"])
        if spec.get("content") is not None and has_content(spec_type):
            new_node.content = str(spec["content"])
        parent.children.append(new_node)
        created.append(new_node)
        session.record(
            OperationType.BATCH_ADD,
            parent=parent,
            node=new_node,
            index=len(parent.children) - 1,
            batch_index=batch_index,
        )

    return OperationResult(
        True,
        f"Added {len(created)} components to {parent.name}",
        node=created[0],
        details={"created": created},
    )


def _build_from_template(session: EditSession, structure: dict[str, Any], parent: Node) -> Node:
    node = create_node(session, NodeType(structure["type"]), parent)
    node.name = structure.get("name") or node.name
    for child in structure.get("children") or []:
        node.children.append(_build_from_template(session, child, node))
    return node


def add_from_template(
    session: EditSession, parent: Node, template: str | dict[str, Any]
) -> OperationResult:
    """Insert a whole nested structure under ``parent`` as one undoable step.

    ``template`` is a built-in template id or a structure
    ``{"type", "name", "children": [...]}``.
    """
    if not contains(session.root, parent):
        return OperationResult(False, "Node is not part of this statute.")
    if isinstance(template, str):
        found = STRUCTURE_TEMPLATES.get(template)
        if found is None:
            return OperationResult(False, f"Unknown template {template!r}.")
        label = found["name"]
        structure = found["structure"]
    else:
        structure = template.get("structure", template)
        label = template.get("name") or structure.get("name")

    errors = check_template(parent.type, structure)
    if errors:
        return OperationResult(False, errors[0], details={"errors": errors})
    label = label or format_type_name(NodeType(structure["type"]))

    root_node = _build_from_template(session, structure, parent)
    parent.children.append(root_node)
    session.record(
        OperationType.ADD_TEMPLATE,
        parent=parent,
        node=root_node,
        index=len(parent.children) - 1,
        template=label,
    )
    session.selection = root_node
    return OperationResult(True, f"Created {label} structure successfully!", node=root_node)


def duplicate_node(session: EditSession, node: Node) -> OperationResult:
    """Copy a subtree with fresh ids right after the original.

    Only the copy's own number is recomputed; descendants keep their numbers.
    """
    if node is session.root or node.type is NodeType.STATUTE:
        return OperationResult(False, "Cannot duplicate root statute.")
    parent = find_parent(session.root, node)
    if parent is None:
        return OperationResult(False, "Cannot find parent node.")

    duplicate = copy_subtree(node, session.allocate_temp_id)
    duplicate.name = generate_duplicate_name(node.name, parent.children)
    if number_field(node.type) is not None:
        duplicate.number = next_number(parent.children, node.type)

    index = parent.children.index(node) + 1
    parent.children.insert(index, duplicate)
    session.record(
        OperationType.DUPLICATE,
        parent=parent,
        node=duplicate,
        index=index,
        original=node,
    )
    session.selection = duplicate
    return OperationResult(True, f"Duplicated {node.name}", node=duplicate)


def delete_confirmation_message(node: Node) -> str:
    stats = calculate_node_stats(node)
    message = f'Delete "{node.name}"?'
    if stats.total_descendants > 0:
        message += "\n\nThis will permanently delete:\n"
        message += f"• {stats.total_descendants} child items\n"
        if stats.descendants_with_content > 0:
            message += f"• {stats.descendants_with_content} items with content\n"
        message += "\nThis action cannot be undone after saving."
    return message


def delete_node(session: EditSession, node: Node) -> OperationResult:
    """Remove a subtree; its persisted nodes go to the deleted-items ledger."""
    if node is session.root or node.type is NodeType.STATUTE:
        return OperationResult(False, "Cannot delete the statute root.")
    parent = find_parent(session.root, node)
    if parent is None:
        return OperationResult(False, "Cannot find parent node.")

    stats = calculate_node_stats(node)
    index = parent.children.index(node)
    entries = tuple(DeletedItem(id=n.id, type=n.type) for n in iter_nodes(node) if n.id > 0)

    parent.children.pop(index)
    session.deleted_items.extend(entries)
    session.record(
        OperationType.DELETE,
        parent=parent,
        node=node,
        index=index,
        deleted_items=entries,
    )
    if session.selection is not None and contains(node, session.selection):
        session.selection = None

    logger.debug("Deleted {} {} ({} ledger entries)", node.type.value, node.id, len(entries))
    message = f"Deleted {node.name}"
    if stats.total_descendants:
        message += f" and {stats.total_descendants} children"
    return OperationResult(
        True,
        message,
        details={
            "total_descendants": stats.total_descendants,
            "descendants_with_content": stats.descendants_with_content,
            "ledger_entries": len(entries),
        },
    )


def _move_sibling(session: EditSession, node: Node, delta: int) -> OperationResult:
    parent = find_parent(session.root, node)
    if parent is None:
        return OperationResult(False, "Cannot move the statute root.")

    siblings = parent.children
    index = siblings.index(node)
    target = index + delta
    if not 0 <= target < len(siblings):
        where = "first" if delta < 0 else "last"
        return OperationResult(False, f"{node.name} is already {where}.")

    other = siblings[target]
    op_type = OperationType.MOVE_UP if delta < 0 else OperationType.MOVE_DOWN
    session.record(
        op_type,
        parent=parent,
        node=node,
        from_index=index,
        to_index=target,
        previous_flags=(node.order_changed, other.order_changed),
    )
    siblings[index], siblings[target] = other, node
    node.order_changed = True
    other.order_changed = True
    session.selection = node
    return OperationResult(True, f"Moved {node.name} {'up' if delta < 0 else 'down'}", node=node)


def move_up(session: EditSession, node: Node) -> OperationResult:
    return _move_sibling(session, node, -1)


def move_down(session: EditSession, node: Node) -> OperationResult:
    return _move_sibling(session, node, 1)


def can_drop(session: EditSession, dragged: Node, target: Node) -> bool:
    """Whether ``dragged`` may be reparented under ``target``."""
    if dragged is target:
        return False
    if dragged is session.root or dragged.type is NodeType.STATUTE:
        return False
    if is_descendant(dragged, target):
        return False
    if not (contains(session.root, dragged) and contains(session.root, target)):
        return False
    return expected_parent_type(dragged.type) is target.type


def move_to_parent(session: EditSession, dragged: Node, target: Node) -> OperationResult:
    """Reparent ``dragged`` as the last child of ``target``."""
    if not can_drop(session, dragged, target):
        return OperationResult(False, "Invalid drop target.")
    old_parent = find_parent(session.root, dragged)
    if old_parent is None:
        return OperationResult(False, "Cannot find parent node.")

    old_index = old_parent.children.index(dragged)
    previous_flag = dragged.order_changed
    old_parent.children.pop(old_index)
    target.children.append(dragged)
    dragged.order_changed = True
    session.record(
        OperationType.MOVE_TO_PARENT,
        node=dragged,
        old_parent=old_parent,
        new_parent=target,
        old_index=old_index,
        new_index=len(target.children) - 1,
        previous_order_changed=previous_flag,
    )
    session.selection = dragged
    return OperationResult(True, f'Moved "{dragged.name}" to "{target.name}"', node=dragged)


def renumber_children(session: EditSession, parent: Node) -> OperationResult:
    """Set each child's number to its 1-based position; report how many changed."""
    if not parent.children:
        return OperationResult(False, "No children to renumber.")

    previous: list[tuple[Node, str | None]] = []
    for position, child in enumerate(parent.children, start=1):
        if number_field(child.type) is None:
            continue
        new_number = str(position)
        if child.number != new_number:
            previous.append((child, child.number))
            child.number = new_number

    if not previous:
        return OperationResult(
            True, "All items were already correctly numbered.", details={"changed": 0}
        )
    session.record(OperationType.RENUMBER, parent=parent, previous=tuple(previous))
    return OperationResult(
        True,
        f"Renumbered {len(previous)} items in {parent.name}",
        node=parent,
        details={"changed": len(previous)},
    )


def edit_node(
    session: EditSession, node: Node, updates: Mapping[str, str | None]
) -> OperationResult:
    """Change scalar fields of a node; only fields whose value differs are recorded."""
    if not contains(session.root, node):
        return OperationResult(False, "Node is not part of this statute.")
    allowed = editable_fields(node.type)
    unknown = sorted(set(updates) - allowed)
    if unknown:
        return OperationResult(
            False, f"Cannot edit {', '.join(unknown)} on {format_type_name(node.type)}."
        )
    if "name" in updates and not (updates["name"] or "").strip():
        return OperationResult(False, "Name is required.")

    changed = {key: value for key, value in updates.items() if getattr(node, key) != value}
    if not changed:
        return OperationResult(True, "No changes detected.", node=node)

    original = {key: getattr(node, key) for key in allowed}
    for key, value in changed.items():
        setattr(node, key, value)
    session.record(OperationType.EDIT, node=node, original=original, updates=changed)
    return OperationResult(
        True, "Saved locally. Save the statute to write it to the database.", node=node
    )
