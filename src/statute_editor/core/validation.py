"""Pre-save checks of hierarchy shape and required fields."""

from dataclasses import dataclass

from statute_editor.core.tree.navigation import display_name, iter_nodes
from statute_editor.models.node import Node
from statute_editor.models.taxonomy import NodeType, is_valid_child_type


@dataclass(frozen=True)
class HierarchyViolation:
    """A node whose type is not a legal child of its parent's type."""

    name: str
    node_type: NodeType
    parent_type: NodeType | None

    @property
    def message(self) -> str:
        if self.parent_type is None:
            return f'Root "{self.name}" must be a statute, not {self.node_type.value}'
        return (
            f"Invalid child type {self.node_type.value} for parent "
            f'{self.parent_type.value} in "{self.name}"'
        )


def validate_tree(root: Node) -> list[HierarchyViolation]:
    """Collect every hierarchy violation in the tree; empty means structurally sound."""
    violations: list[HierarchyViolation] = []
    if root.type is not NodeType.STATUTE:
        violations.append(HierarchyViolation(root.name, root.type, None))
    _validate_children(root, violations)
    return violations


def _validate_children(parent: Node, violations: list[HierarchyViolation]) -> None:
    for child in parent.children:
        if not is_valid_child_type(parent.type, child.type):
            violations.append(HierarchyViolation(child.name, child.type, parent.type))
        _validate_children(child, violations)


def find_unnamed_nodes(root: Node) -> list[Node]:
    return [node for node in iter_nodes(root) if not node.name.strip()]


def check_before_save(root: Node) -> list[str]:
    """Messages blocking a save: hierarchy violations first, then missing names."""
    errors = [violation.message for violation in validate_tree(root)]
    for node in find_unnamed_nodes(root):
        errors.append(f"Name is required ({node.type.value} {display_name(node)}, id={node.id})")
    return errors
