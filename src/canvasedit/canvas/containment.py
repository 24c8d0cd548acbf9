"""Derive synthetic "contains" edges from group geometry.

A node belongs to a group when the node's center point lies inside the
group's rectangle, edges included. There is no nesting rule: a node inside
two overlapping groups gets an edge from each of them.

The derived edges only exist in the enriched view used for transcripts and
are never written back to the canvas.
"""

from __future__ import annotations

import uuid
from typing import Callable, Sequence

from canvasedit.models.canvas import CONTAINS_LABEL, CanvasEdge, CanvasNode, GroupNode


def random_edge_id() -> str:
    return str(uuid.uuid4())


def is_inside(node: CanvasNode, group: GroupNode) -> bool:
    """Check whether the node's center lies within the group's bounds (inclusive)."""
    cx, cy = node.center
    return (
        group.x <= cx <= group.x + group.width
        and group.y <= cy <= group.y + group.height
    )


def derive_containment_edges(
    nodes: Sequence[CanvasNode],
    id_factory: Callable[[], str] = random_edge_id,
) -> list[CanvasEdge]:
    """Return one "contains" edge per (group, node inside group) pair.

    Edges are ordered by group, then by node, following the input order.
    """
    edges: list[CanvasEdge] = []
    groups = [n for n in nodes if isinstance(n, GroupNode)]

    for group in groups:
        for node in nodes:
            if node.id == group.id:
                continue
            if is_inside(node, group):
                edges.append(
                    CanvasEdge(
                        id=id_factory(),
                        from_node=group.id,
                        to_node=node.id,
                        label=CONTAINS_LABEL,
                    )
                )

    return edges
