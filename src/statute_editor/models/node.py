"""Domain models for the statute editor."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from statute_editor.models.taxonomy import NodeType, has_content, number_field, parse_node_type

STATUTE_FIELDS: tuple[str, ...] = ("act_no", "date", "preface")


def _absent_keys(node_type: NodeType, data: dict[str, Any]) -> list[str]:
    num_field = number_field(node_type)
    wire: dict[str, str] = {}
    if num_field is not None:
        wire["number"] = num_field
    if has_content(node_type):
        wire["content"] = "content"
    if node_type is NodeType.STATUTE:
        wire.update((key, key) for key in STATUTE_FIELDS)
    return [key for key, wire_key in wire.items() if wire_key not in data]


@dataclass(eq=False)
class Node:
    """One component of a statute tree.

    Nodes compare by identity: two sections with the same name and number
    are still different nodes. Positive ids come from the store, negative ids
    are local to an edit session.
    """

    id: int
    type: NodeType
    name: str = ""
    number: str | None = None
    content: str | None = None
    act_no: str | None = None
    date: str | None = None
    preface: str | None = None
    order_no: int | None = None
    children: list["Node"] = field(default_factory=list)
    order_changed: bool = False
    # Optional fields the source JSON did not carry; left untouched on save while unset.
    absent_fields: frozenset[str] = field(default=frozenset(), repr=False)

    def carries(self, key: str) -> bool:
        """Whether optional field ``key`` belongs in a payload or an UPDATE."""
        return key not in self.absent_fields or getattr(self, key) is not None

    @property
    def is_persisted(self) -> bool:
        return self.id > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize the subtree to the JSON shape the save endpoint exchanges."""
        out: dict[str, Any] = {"id": self.id, "type": self.type.value, "name": self.name}
        num_field = number_field(self.type)
        if num_field is not None and self.carries("number"):
            out[num_field] = self.number
        if has_content(self.type) and self.carries("content"):
            out["content"] = self.content
        if self.type is NodeType.STATUTE:
            for key in STATUTE_FIELDS:
                if self.carries(key):
                    out[key] = getattr(self, key)
        if self.order_no is not None:
            out["order_no"] = self.order_no
        if self.order_changed:
            out["_orderChanged"] = True
        out["children"] = [child.to_dict() for child in self.children]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Node":
        """Build a subtree from its JSON shape (as stored, saved or drafted)."""
        node_type = parse_node_type(str(data["type"]))
        num_field = number_field(node_type)
        number = data.get(num_field) if num_field else None
        order_no = data.get("order_no")
        node = cls(
            id=int(data["id"]),
            type=node_type,
            name=data.get("name") or "",
            number=None if number is None else str(number),
            content=data.get("content"),
            order_no=None if order_no is None else int(order_no),
            order_changed=bool(data.get("_orderChanged", False)),
        )
        if node_type is NodeType.STATUTE:
            for key in STATUTE_FIELDS:
                value = data.get(key)
                setattr(node, key, None if value is None else str(value))
        node.absent_fields = frozenset(_absent_keys(node_type, data))
        node.children = [cls.from_dict(child) for child in data.get("children") or []]
        return node


@dataclass(frozen=True)
class DeletedItem:
    """A persisted node removed in this session, to be deleted at the next save."""

    id: int
    type: NodeType

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeletedItem":
        return cls(id=int(data["id"]), type=parse_node_type(str(data["type"])))


class OperationType(StrEnum):
    ADD_CHILD = "add_child"
    ADD_SIBLING = "add_sibling"
    DUPLICATE = "duplicate"
    DELETE = "delete"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_TO_PARENT = "move_to_parent"
    EDIT = "edit"
    RENUMBER = "renumber"
    ADD_TEMPLATE = "add_template"
    BATCH_ADD = "batch_add"


@dataclass(frozen=True)
class OperationRecord:
    """An undo log entry; ``data`` holds exactly what the inverse needs."""

    type: OperationType
    data: dict[str, Any]
    timestamp: float


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an editing action, shown to the user as a transient notice."""

    success: bool
    message: str
    node: Node | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NodeStats:
    """Cascade statistics for a subtree, used by the delete confirmation."""

    total_descendants: int
    descendants_with_content: int


@dataclass(frozen=True)
class TreeStats:
    total_nodes: int
    max_depth: int
    unsaved_nodes: int
    nodes_with_content: int


@dataclass(frozen=True)
class StatuteSummary:
    """A statute row as listed on the index page."""

    id: int
    name: str
    act_no: str | None = None


@dataclass(frozen=True)
class ActivityEntry:
    """A row of the activity log."""

    id: int
    user_id: int | None
    table_name: str
    record_id: int | None
    action: str
    timestamp: int
