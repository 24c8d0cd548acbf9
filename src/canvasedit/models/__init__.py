"""Data models for canvasedit."""

from canvasedit.models.canvas import (
    CONTAINS_LABEL,
    CanvasDocument,
    CanvasEdge,
    CanvasNode,
    CanvasView,
    EnrichedNode,
    FileNode,
    GroupNode,
    LinkNode,
    NodeKind,
    NodeSide,
    TextNode,
    parse_node,
)
from canvasedit.models.operations import (
    AddEdge,
    AddNode,
    DeleteEdge,
    DeleteNode,
    NodeUpdates,
    Operation,
    OperationType,
    UpdateNode,
    describe_operation,
)

__all__ = [
    "AddEdge",
    "AddNode",
    "CONTAINS_LABEL",
    "CanvasDocument",
    "CanvasEdge",
    "CanvasNode",
    "CanvasView",
    "DeleteEdge",
    "DeleteNode",
    "EnrichedNode",
    "FileNode",
    "GroupNode",
    "LinkNode",
    "NodeKind",
    "NodeSide",
    "NodeUpdates",
    "Operation",
    "OperationType",
    "TextNode",
    "UpdateNode",
    "describe_operation",
    "parse_node",
]
