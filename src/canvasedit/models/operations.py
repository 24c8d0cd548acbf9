"""Canvas edit operations.

Operations are produced by the stream extractor and consumed by the executor.
They form a closed set: AddNode, UpdateNode, DeleteNode, AddEdge, DeleteEdge.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Union

from canvasedit.models.canvas import NodeSide


class OperationType(str, Enum):
    """Kinds of canvas edit operations."""

    ADD_NODE = "add_node"
    UPDATE_NODE = "update_node"
    DELETE_NODE = "delete_node"
    ADD_EDGE = "add_edge"
    DELETE_EDGE = "delete_edge"


@dataclass(frozen=True)
class AddNode:
    """Create a node.

    ``kind`` is kept as the raw ``type`` attribute so an unknown kind can be
    reported by the executor. Only the field matching the kind is used:
    content for text, file for file, url for link, label for group.
    """

    id: str
    kind: str
    x: int = 0
    y: int = 0
    width: int = 200
    height: int = 100
    color: str | None = None
    content: str | None = None
    file: str | None = None
    url: str | None = None
    label: str | None = None

    op_type = OperationType.ADD_NODE


@dataclass(frozen=True)
class NodeUpdates:
    """Partial node update. ``None`` means "leave unchanged"."""

    x: int | None = None
    y: int | None = None
    width: int | None = None
    height: int | None = None
    color: str | None = None
    content: str | None = None
    label: str | None = None

    def present(self) -> dict[str, Any]:
        """Fields that were supplied."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class UpdateNode:
    """Merge field updates into an existing node."""

    id: str
    updates: NodeUpdates = field(default_factory=NodeUpdates)

    op_type = OperationType.UPDATE_NODE


@dataclass(frozen=True)
class DeleteNode:
    """Remove a node and every edge attached to it."""

    id: str

    op_type = OperationType.DELETE_NODE


@dataclass(frozen=True)
class AddEdge:
    """Connect two existing nodes."""

    id: str
    from_node: str
    to_node: str
    from_side: NodeSide | None = None
    to_side: NodeSide | None = None
    label: str | None = None
    color: str | None = None

    op_type = OperationType.ADD_EDGE


@dataclass(frozen=True)
class DeleteEdge:
    """Remove an edge."""

    id: str

    op_type = OperationType.DELETE_EDGE


Operation = Union[AddNode, UpdateNode, DeleteNode, AddEdge, DeleteEdge]


def describe_operation(op: Operation) -> str:
    """Short human-readable form, e.g. ``add_edge e1 (a -> b)``."""
    if isinstance(op, AddNode):
        return f"{op.op_type.value} {op.id} ({op.kind})"
    if isinstance(op, AddEdge):
        return f"{op.op_type.value} {op.id} ({op.from_node} -> {op.to_node})"
    return f"{op.op_type.value} {op.id}"
