"""Render statute trees as markdown outlines."""

import io

from statute_editor.core.tree.navigation import display_name
from statute_editor.models.node import Node
from statute_editor.models.taxonomy import format_type_name


def render_tree_as_markdown(
    root: Node,
    *,
    max_depth: int | None = None,
    include_content: bool = True,
    show_ids: bool = False,
) -> str:
    """Render a node and its descendants as indented markdown.

    Args:
        root: The node to start rendering from.
        max_depth: Max levels below ``root`` to include (None = unlimited).
        include_content: Whether to include subsection text.
        show_ids: Append ``[type id]`` to every line, handy for addressing nodes.

    Returns:
        Markdown string with bullet-list hierarchy.
    """
    out = io.StringIO()

    def walk(node: Node, depth: int) -> None:
        indent = "    " * depth
        label = f"**{format_type_name(node.type)}** {display_name(node)}"
        if show_ids:
            label += f" [{node.type.value} {node.id}]"
        out.write(f"{indent}- {label}\n")

        if include_content and node.content:
            for line in node.content.split("\n"):
                out.write(f"{indent}  > {line}\n")

        if max_depth is not None and depth == max_depth and node.children:
            count = len(node.children)
            noun = "child" if count == 1 else "children"
            out.write(f"{indent}    - ... ({count} more {noun})\n")
            return
        for child in node.children:
            walk(child, depth + 1)

    walk(root, 0)
    return out.getvalue()
