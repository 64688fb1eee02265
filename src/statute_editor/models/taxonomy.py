"""The fixed statute node taxonomy: types, adjacency and per-type column names."""

from enum import StrEnum


class NodeType(StrEnum):
    """Every kind of component a statute tree can hold."""

    STATUTE = "statute"
    PART = "part"
    SCH_PART = "sch_part"
    CHAPTER = "chapter"
    SCH_CHAPTER = "sch_chapter"
    SET = "set"
    SCH_SET = "sch_set"
    SECTION = "section"
    SCH_SECTION = "sch_section"
    SUBSECTION = "subsection"
    SCH_SUBSECTION = "sch_subsection"


CHILD_TYPES: dict[NodeType, tuple[NodeType, ...]] = {
    NodeType.STATUTE: (NodeType.PART, NodeType.SCH_PART),
    NodeType.PART: (NodeType.CHAPTER,),
    NodeType.SCH_PART: (NodeType.SCH_CHAPTER,),
    NodeType.CHAPTER: (NodeType.SET,),
    NodeType.SCH_CHAPTER: (NodeType.SCH_SET,),
    NodeType.SET: (NodeType.SECTION,),
    NodeType.SCH_SET: (NodeType.SCH_SECTION,),
    NodeType.SECTION: (NodeType.SUBSECTION,),
    NodeType.SCH_SECTION: (NodeType.SCH_SUBSECTION,),
    NodeType.SUBSECTION: (),
    NodeType.SCH_SUBSECTION: (),
}

EXPECTED_PARENT: dict[NodeType, NodeType | None] = {
    NodeType.STATUTE: None,
    NodeType.PART: NodeType.STATUTE,
    NodeType.SCH_PART: NodeType.STATUTE,
    NodeType.CHAPTER: NodeType.PART,
    NodeType.SCH_CHAPTER: NodeType.SCH_PART,
    NodeType.SET: NodeType.CHAPTER,
    NodeType.SCH_SET: NodeType.SCH_CHAPTER,
    NodeType.SECTION: NodeType.SET,
    NodeType.SCH_SECTION: NodeType.SCH_SET,
    NodeType.SUBSECTION: NodeType.SECTION,
    NodeType.SCH_SUBSECTION: NodeType.SCH_SECTION,
}

NUMBER_FIELDS: dict[NodeType, str | None] = {
    NodeType.STATUTE: None,
    NodeType.PART: "part_no",
    NodeType.SCH_PART: "part_no",
    NodeType.CHAPTER: "chapter_no",
    NodeType.SCH_CHAPTER: "chapter_no",
    NodeType.SET: "set_no",
    NodeType.SCH_SET: "set_no",
    NodeType.SECTION: "section_no",
    NodeType.SCH_SECTION: "section_no",
    NodeType.SUBSECTION: "subsection_no",
    NodeType.SCH_SUBSECTION: "subsection_no",
}

PARENT_ID_FIELDS: dict[NodeType, str | None] = {
    NodeType.STATUTE: None,
    NodeType.PART: "statute_id",
    NodeType.SCH_PART: "statute_id",
    NodeType.CHAPTER: "part_id",
    NodeType.SCH_CHAPTER: "sch_part_id",
    NodeType.SET: "chapter_id",
    NodeType.SCH_SET: "sch_chapter_id",
    NodeType.SECTION: "set_id",
    NodeType.SCH_SECTION: "sch_set_id",
    NodeType.SUBSECTION: "section_id",
    NodeType.SCH_SUBSECTION: "sch_section_id",
}

CONTENT_TYPES: frozenset[NodeType] = frozenset({NodeType.SUBSECTION, NodeType.SCH_SUBSECTION})


def valid_child_types(parent_type: NodeType) -> tuple[NodeType, ...]:
    return CHILD_TYPES[parent_type]


def is_valid_child_type(parent_type: NodeType, child_type: NodeType) -> bool:
    return child_type in CHILD_TYPES[parent_type]


def expected_parent_type(child_type: NodeType) -> NodeType | None:
    return EXPECTED_PARENT[child_type]


def number_field(node_type: NodeType) -> str | None:
    """Name of the numbering column for a type (``section_no`` etc.), None for the statute."""
    return NUMBER_FIELDS[node_type]


def parent_id_field(node_type: NodeType) -> str | None:
    return PARENT_ID_FIELDS[node_type]


def has_content(node_type: NodeType) -> bool:
    return node_type in CONTENT_TYPES


def is_schedule(node_type: NodeType) -> bool:
    return node_type.value.startswith("sch_")


def table_name(node_type: NodeType) -> str:
    """Quoted SQL table name for a type; ``set`` is a keyword and always needs quoting."""
    return f'"{node_type.value}"'


def format_type_name(node_type: NodeType) -> str:
    """Human label for a type, e.g. ``sch_part`` -> ``Schedule Part``."""
    return node_type.value.replace("_", " ", 1).title().replace("Sch ", "Schedule ")


def parse_node_type(value: str) -> NodeType:
    """Parse a type tag, raising ValueError with the list of known tags."""
    try:
        return NodeType(value)
    except ValueError:
        known = ", ".join(t.value for t in NodeType)
        msg = f"Unknown node type {value!r}; expected one of: {known}"
        raise ValueError(msg) from None
