"""Flatten an enriched canvas view into text for a language model.

The output is deterministic: nodes and edges appear in view order and
nothing time- or randomness-dependent is rendered. Example:

    Canvas contains 2 nodes and 1 edges.

    ## Nodes

    ### Node: a (text)
    Position: (0, 0) Size: 200x100
    Content: Hello

    ### Node: g (group)
    Position: (-50, -50) Size: 400x300
    Label: (no label)

    ## Edges

    - g → a "contains"
"""

from __future__ import annotations

from typing import Collection

from canvasedit.models.canvas import CanvasView, EnrichedNode, FileNode, GroupNode, LinkNode, TextNode

NO_LABEL = "(no label)"


def _num(value: int | float) -> str:
    """Render integral floats without a trailing .0."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _node_lines(enriched: EnrichedNode) -> list[str]:
    node = enriched.node
    lines = [
        f"### Node: {node.id} ({node.type})",
        f"Position: ({_num(node.x)}, {_num(node.y)}) Size: {_num(node.width)}x{_num(node.height)}",
    ]

    if isinstance(node, TextNode):
        lines.append(f"Content: {node.text}")
    elif isinstance(node, FileNode):
        lines.append(f"File: {node.file}")
        if enriched.content:
            lines.append(f"File Content:\n{enriched.content}")
    elif isinstance(node, LinkNode):
        lines.append(f"URL: {node.url}")
    elif isinstance(node, GroupNode):
        lines.append(f"Label: {node.label or NO_LABEL}")

    lines.append("")
    return lines


def build_transcript(view: CanvasView, selected_ids: Collection[str] | None = None) -> str:
    """Render the view as text.

    With ``selected_ids``, only those nodes and the edges between two of them
    are rendered and counted.
    """
    nodes = view.nodes
    edges = view.edges
    if selected_ids is not None:
        selected = set(selected_ids)
        nodes = [n for n in nodes if n.id in selected]
        edges = [e for e in edges if e.from_node in selected and e.to_node in selected]

    lines: list[str] = [f"Canvas contains {len(nodes)} nodes and {len(edges)} edges.\n"]

    lines.append("## Nodes\n")
    for node in nodes:
        lines.extend(_node_lines(node))

    if edges:
        lines.append("## Edges\n")
        for edge in edges:
            label_part = f' "{edge.label}"' if edge.label else ""
            lines.append(f"- {edge.from_node} → {edge.to_node}{label_part}")

    return "\n".join(lines)
