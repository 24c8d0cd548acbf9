"""JSON Canvas data models.

A canvas file is a JSON object with two arrays:

    {"nodes": [...], "edges": [...]}

Nodes are flat records discriminated by their ``type`` field (text, file,
link, group). Edges connect two node ids. Keys this module does not know about
are kept on the models so a load/save cycle never drops them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

CONTAINS_LABEL = "contains"


class NodeKind(str, Enum):
    """Kinds of canvas nodes."""

    TEXT = "text"
    FILE = "file"
    LINK = "link"
    GROUP = "group"


class NodeSide(str, Enum):
    """Side of a node an edge attaches to."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class _CanvasNodeBase(BaseModel):
    """Geometry and color shared by every node kind."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    x: int | float = 0
    y: int | float = 0
    width: int | float = 200
    height: int | float = 100
    color: str | None = None

    @property
    def center(self) -> tuple[float, float]:
        """Center point of the node's bounding box."""
        return (self.x + self.width / 2, self.y + self.height / 2)


class TextNode(_CanvasNodeBase):
    """A card holding markdown text."""

    type: Literal["text"] = "text"
    text: str = ""


class FileNode(_CanvasNodeBase):
    """A card embedding a vault file."""

    type: Literal["file"] = "file"
    file: str
    subpath: str | None = None


class LinkNode(_CanvasNodeBase):
    """A card embedding a web page."""

    type: Literal["link"] = "link"
    url: str


class GroupNode(_CanvasNodeBase):
    """A labelled rectangle used to visually group other nodes."""

    type: Literal["group"] = "group"
    label: str | None = None
    background: str | None = None
    background_style: str | None = Field(default=None, alias="backgroundStyle")


CanvasNode = Annotated[
    Union[TextNode, FileNode, LinkNode, GroupNode],
    Field(discriminator="type"),
]

_node_adapter: TypeAdapter[CanvasNode] = TypeAdapter(CanvasNode)


def parse_node(data: dict[str, Any]) -> CanvasNode:
    """Validate a raw node record into its typed variant."""
    return _node_adapter.validate_python(data)


class CanvasEdge(BaseModel):
    """A directed connection between two nodes."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    from_node: str = Field(alias="fromNode")
    to_node: str = Field(alias="toNode")
    from_side: NodeSide | None = Field(default=None, alias="fromSide")
    to_side: NodeSide | None = Field(default=None, alias="toSide")
    from_end: str | None = Field(default=None, alias="fromEnd")
    to_end: str | None = Field(default=None, alias="toEnd")
    label: str | None = None
    color: str | None = None

    def touches(self, node_id: str) -> bool:
        """Check whether either endpoint is the given node."""
        return self.from_node == node_id or self.to_node == node_id


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass
class CanvasDocument:
    """In-memory canvas: nodes and edges keyed by id, in insertion order.

    The document only enforces id uniqueness while loading. Endpoint checks
    and cascade deletes are done by the executor at mutation time.
    """

    nodes: dict[str, CanvasNode] = field(default_factory=dict)
    edges: dict[str, CanvasEdge] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanvasDocument:
        """Create from a parsed canvas JSON object.

        Raises ValueError on duplicate ids and pydantic.ValidationError on
        malformed records.
        """
        doc = cls(extra={k: v for k, v in data.items() if k not in ("nodes", "edges")})

        for item in data.get("nodes") or []:
            node = parse_node(item)
            if node.id in doc.nodes:
                raise ValueError(f"Duplicate node id: {node.id}")
            doc.nodes[node.id] = node

        for item in data.get("edges") or []:
            edge = CanvasEdge.model_validate(item)
            if edge.id in doc.edges:
                raise ValueError(f"Duplicate edge id: {edge.id}")
            doc.edges[edge.id] = edge

        return doc

    @classmethod
    def from_json(cls, raw: str) -> CanvasDocument:
        """Parse canvas file contents. An empty file is an empty canvas."""
        if not raw.strip():
            return cls()
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("Canvas JSON must be an object")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            **self.extra,
            "nodes": [_dump(n) for n in self.nodes.values()],
            "edges": [_dump(e) for e in self.edges.values()],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to a JSON string (tab-free, 2-space indent like Obsidian)."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def edges_touching(self, node_id: str) -> list[CanvasEdge]:
        """Edges that have the node as either endpoint."""
        return [e for e in self.edges.values() if e.touches(node_id)]


@dataclass
class EnrichedNode:
    """A node plus inlined content, produced only on the read path."""

    node: CanvasNode
    content: str = ""

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def kind(self) -> NodeKind:
        return NodeKind(self.node.type)


@dataclass
class CanvasView:
    """Enriched, read-only view of a canvas used to build transcripts.

    ``edges`` holds the persisted edges followed by the synthetic
    "contains" edges. A view is never written back.
    """

    nodes: list[EnrichedNode] = field(default_factory=list)
    edges: list[CanvasEdge] = field(default_factory=list)

    @property
    def by_id(self) -> dict[str, EnrichedNode]:
        return {n.id: n for n in self.nodes}
