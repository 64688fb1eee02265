"""Built-in structure templates inserted in one step."""

from typing import Any

from statute_editor.models.taxonomy import NodeType, is_valid_child_type, parse_node_type

STRUCTURE_TEMPLATES: dict[str, dict[str, Any]] = {
    "basic_part": {
        "id": "basic_part",
        "name": "Basic Part",
        "description": "Part with definitions and general provisions",
        "structure": {
            "type": "part",
            "children": [
                {"type": "chapter", "name": "Definitions", "children": [
                    {"type": "set", "name": "General", "children": [
                        {"type": "section", "name": "Interpretation"},
                    ]},
                ]},
                {"type": "chapter", "name": "General Provisions", "children": [
                    {"type": "set", "name": "Application", "children": [
                        {"type": "section", "name": "Scope of Application"},
                    ]},
                ]},
            ],
        },
    },
    "schedule_part": {
        "id": "schedule_part",
        "name": "Schedule Part",
        "description": "Schedule with forms and procedures",
        "structure": {
            "type": "sch_part",
            "children": [
                {"type": "sch_chapter", "name": "Forms", "children": [
                    {"type": "sch_set", "name": "Application Forms"},
                ]},
                {"type": "sch_chapter", "name": "Procedures", "children": [
                    {"type": "sch_set", "name": "Filing Procedures"},
                ]},
            ],
        },
    },
    "multi_set_chapter": {
        "id": "multi_set_chapter",
        "name": "Multi-Set Chapter",
        "description": "Chapter with multiple thematic sets",
        "structure": {
            "type": "chapter",
            "children": [
                {"type": "set", "name": "Preliminary Provisions", "children": [
                    {"type": "section", "name": "Definitions"},
                    {"type": "section", "name": "Application"},
                ]},
                {"type": "set", "name": "Main Provisions", "children": [
                    {"type": "section", "name": "Powers and Duties"},
                    {"type": "section", "name": "Procedures"},
                ]},
                {"type": "set", "name": "Final Provisions", "children": [
                    {"type": "section", "name": "Penalties"},
                    {"type": "section", "name": "Commencement"},
                ]},
            ],
        },
    },
}


def available_templates(target_type: NodeType) -> list[dict[str, Any]]:
    """Templates whose top component may be added under ``target_type``."""
    return [
        template
        for template in STRUCTURE_TEMPLATES.values()
        if is_valid_child_type(target_type, NodeType(template["structure"]["type"]))
    ]


def check_template(parent_type: NodeType, structure: dict[str, Any]) -> list[str]:
    """Every hierarchy problem in a nested template, checked before anything is created."""
    errors: list[str] = []
    try:
        node_type = parse_node_type(str(structure.get("type")))
    except ValueError as e:
        return [str(e)]
    if not is_valid_child_type(parent_type, node_type):
        errors.append(f"Cannot place {node_type.value} under {parent_type.value} in template")
    for child in structure.get("children") or []:
        errors.extend(check_template(node_type, child))
    return errors
