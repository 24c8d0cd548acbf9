"""Streaming parser for canvas edit instructions in model output.

The model describes edits with a small, flat, attribute-style markup:

    <canvas_edit path="Boards/Plan.canvas" summary="Add a review step">
    <add_node id="n1" type="text" x="0" y="0" width="200" height="100">Draft</add_node>
    <add_node id="n2" type="file" file="Notes/Review.md" x="300" y="0"/>
    <update_node id="n1" x="100" color="4"/>
    <delete_node id="old"/>
    <add_edge id="e1" from="n1" to="n2" fromSide="right" toSide="left" label="next"/>
    <delete_edge id="e0"/>
    </canvas_edit>

Text arrives in arbitrary fragments. ``TagStreamExtractor.feed`` buffers the
fragments and returns every operation whose tag has become complete, so the
caller can apply edits while the model is still writing.

Two scan orders are supported:

- ``ScanOrder.PRIORITY`` (default): each tag shape is scanned to exhaustion in
  a fixed order (paired add_node, self-closing add_node, update_node,
  delete_node, add_edge, delete_edge). Operations that complete in the same
  fragment come out grouped by shape, not in source order.
- ``ScanOrder.POSITIONAL``: one left-to-right pass over all shapes, emitting in
  source order, and carrying over only the unmatched tail of the buffer.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable

from canvasedit.models.canvas import NodeSide
from canvasedit.models.operations import (
    AddEdge,
    AddNode,
    DeleteEdge,
    DeleteNode,
    NodeUpdates,
    Operation,
    UpdateNode,
)

logger = logging.getLogger(__name__)

DEFAULT_X = 0
DEFAULT_Y = 0
DEFAULT_WIDTH = 200
DEFAULT_HEIGHT = 100

# Attribute text: anything but quotes, "/" and ">" unless inside a quoted value.
_ATTRS = r'(?:[^"/>]|"[^"]*")*'
# Inner text of a paired tag: anything up to the matching close tag.
_INNER = r"[^<]*(?:<(?!/add_node>)[^<]*)*"

_ADD_NODE_WITH_CONTENT = re.compile(rf"<add_node\s+({_ATTRS})>({_INNER})</add_node>")


def _self_closing(name: str) -> re.Pattern[str]:
    return re.compile(rf"<{name}\s+({_ATTRS})/>")


_ADD_NODE_SELF_CLOSING = _self_closing("add_node")
_UPDATE_NODE = _self_closing("update_node")
_DELETE_NODE = _self_closing("delete_node")
_ADD_EDGE = _self_closing("add_edge")
_DELETE_EDGE = _self_closing("delete_edge")

_ANY_TAG = re.compile(
    rf"<add_node\s+(?P<paired_attrs>{_ATTRS})>(?P<inner>{_INNER})</add_node>"
    rf"|<(?P<name>add_node|update_node|delete_node|add_edge|delete_edge)\s+(?P<attrs>{_ATTRS})/>"
)

_ATTRIBUTE = re.compile(r'([\w-]+)="([^"]*)"')
_CANVAS_EDIT_OPEN = re.compile(rf"<canvas_edit\b({_ATTRS})")
_CANVAS_EDIT_PATH = re.compile(r'<canvas_edit\s+path="([^"]+)"')
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_TAG_WORD = re.compile(r"[a-z_]*")

_OPERATION_TAGS = ("add_node", "update_node", "delete_node", "add_edge", "delete_edge")


class ScanOrder(str, Enum):
    """Order in which completed operations are emitted within one feed."""

    PRIORITY = "priority"
    POSITIONAL = "positional"


@dataclass(frozen=True)
class ParseWarning:
    """A complete tag that was dropped because required attributes were missing."""

    tag: str
    reason: str
    raw: str


def parse_attributes(tag_content: str) -> dict[str, str]:
    """Parse every ``key="value"`` pair into a dict. Later keys win."""
    return {m.group(1): m.group(2) for m in _ATTRIBUTE.finditer(tag_content)}


def parse_int(value: str | None, default: int | None) -> int | None:
    """Parse a leading integer like ``parseInt``: "120px" -> 120, "abc" -> default."""
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if not match:
        return default
    return int(match.group(1))


def _side(value: str | None) -> NodeSide | None:
    if not value:
        return None
    try:
        return NodeSide(value)
    except ValueError:
        logger.debug(f"Ignoring unknown edge side: {value!r}")
        return None


def new_edge_id() -> str:
    """Generate an id for an edge that arrived without one."""
    return f"edge_{uuid.uuid4().hex[:12]}"


class TagStreamExtractor:
    """Incrementally extract canvas operations from streamed text.

    Usage:
        extractor = TagStreamExtractor()
        for fragment in stream:
            for op in extractor.feed(fragment):
                apply(op)
        extractor.canvas_path  # from <canvas_edit path="...">

    A tag that is complete but lacks its required attributes is dropped and
    never retried. Nothing is raised; the drop is recorded in ``warnings``.
    """

    def __init__(
        self,
        scan_order: ScanOrder | str = ScanOrder.PRIORITY,
        edge_id_factory: Callable[[], str] = new_edge_id,
    ) -> None:
        self.scan_order = ScanOrder(scan_order)
        self._edge_id_factory = edge_id_factory
        self._buffer = ""
        self._canvas_path: str | None = None
        self._summary = ""
        self.warnings: list[ParseWarning] = []

    @property
    def canvas_path(self) -> str | None:
        """Destination canvas from the ``canvas_edit`` wrapper, once seen."""
        return self._canvas_path

    @property
    def summary(self) -> str:
        """Human-readable summary from the ``canvas_edit`` wrapper, once seen."""
        return self._summary

    @property
    def buffer(self) -> str:
        """Text received but not yet consumed."""
        return self._buffer

    def reset(self) -> None:
        """Clear all state for a new stream."""
        self._buffer = ""
        self._canvas_path = None
        self._summary = ""
        self.warnings = []

    def feed(self, fragment: str) -> list[Operation]:
        """Append a fragment and return the operations completed so far."""
        self._buffer += fragment

        if not self._canvas_path or not self._summary:
            self._capture_edit_attributes()

        if self.scan_order == ScanOrder.POSITIONAL:
            return self._extract_positional()
        return self._extract_by_priority()

    async def process(self, chunks: AsyncIterator[str]) -> AsyncIterator[Operation]:
        """Feed every chunk of an async stream, yielding operations as they complete."""
        async for chunk in chunks:
            for op in self.feed(chunk):
                yield op

    def _capture_edit_attributes(self) -> None:
        """Capture path and summary from <canvas_edit ...>; first capture wins."""
        match = _CANVAS_EDIT_OPEN.search(self._buffer)
        if not match:
            return
        attrs = parse_attributes(match.group(1))
        if not self._canvas_path and attrs.get("path"):
            self._canvas_path = attrs["path"]
            logger.debug(f"Canvas edit target: {self._canvas_path}")
        if not self._summary and attrs.get("summary"):
            self._summary = attrs["summary"]

    def _extract_by_priority(self) -> list[Operation]:
        operations: list[Operation] = []
        shapes: list[tuple[re.Pattern[str], Callable[[re.Match[str]], Operation | None]]] = [
            (_ADD_NODE_WITH_CONTENT, lambda m: self._build_add_node(m.group(0), m.group(1), m.group(2))),
            (_ADD_NODE_SELF_CLOSING, lambda m: self._build_add_node(m.group(0), m.group(1), None)),
            (_UPDATE_NODE, lambda m: self._build_update_node(m.group(0), m.group(1))),
            (_DELETE_NODE, lambda m: self._build_delete("delete_node", m.group(0), m.group(1))),
            (_ADD_EDGE, lambda m: self._build_add_edge(m.group(0), m.group(1))),
            (_DELETE_EDGE, lambda m: self._build_delete("delete_edge", m.group(0), m.group(1))),
        ]

        for pattern, build in shapes:
            while (match := pattern.search(self._buffer)) is not None:
                op = build(match)
                self._buffer = self._buffer[: match.start()] + self._buffer[match.end():]
                if op is not None:
                    operations.append(op)

        return operations

    def _extract_positional(self) -> list[Operation]:
        operations: list[Operation] = []
        pos = 0
        while (match := _ANY_TAG.search(self._buffer, pos)) is not None:
            raw = match.group(0)
            if match.group("paired_attrs") is not None:
                op = self._build_add_node(raw, match.group("paired_attrs"), match.group("inner"))
            else:
                name = match.group("name")
                attrs = match.group("attrs")
                if name == "add_node":
                    op = self._build_add_node(raw, attrs, None)
                elif name == "update_node":
                    op = self._build_update_node(raw, attrs)
                elif name == "add_edge":
                    op = self._build_add_edge(raw, attrs)
                else:
                    op = self._build_delete(name, raw, attrs)
            self._buffer = self._buffer[: match.start()] + self._buffer[match.end():]
            pos = match.start()
            if op is not None:
                operations.append(op)

        self._buffer = self._buffer[self._carry_start():]
        return operations

    def _carry_start(self) -> int:
        """Index of the first '<' that may still become a recognized tag."""
        for match in re.finditer("<", self._buffer):
            tail = self._buffer[match.end():]
            word = _TAG_WORD.match(tail).group(0)
            if len(word) == len(tail):
                # Buffer ends inside the tag name
                names = (*_OPERATION_TAGS, "canvas_edit")
                if any(name.startswith(word) for name in names):
                    return match.start()
            elif word in _OPERATION_TAGS:
                return match.start()
            elif word == "canvas_edit" and not self._wrapper_closed(match.start()):
                return match.start()
        return len(self._buffer)

    def _wrapper_closed(self, start: int) -> bool:
        """Check whether the <canvas_edit ...> opening at start has ended."""
        match = _CANVAS_EDIT_OPEN.match(self._buffer, start)
        if match is None:
            return True
        end = match.end()
        return end < len(self._buffer) and self._buffer[end] in "/>"

    def _drop(self, tag: str, reason: str, raw: str) -> None:
        warning = ParseWarning(tag=tag, reason=reason, raw=raw)
        self.warnings.append(warning)
        logger.warning(f"Dropped <{tag}>: {reason}")

    def _build_add_node(self, raw: str, attr_text: str, inner: str | None) -> AddNode | None:
        attrs = parse_attributes(attr_text)
        if not attrs.get("id") or not attrs.get("type"):
            self._drop("add_node", "missing id or type", raw)
            return None

        content = inner.strip() if inner is not None else None
        return AddNode(
            id=attrs["id"],
            kind=attrs["type"],
            x=parse_int(attrs.get("x"), DEFAULT_X),
            y=parse_int(attrs.get("y"), DEFAULT_Y),
            width=parse_int(attrs.get("width"), DEFAULT_WIDTH),
            height=parse_int(attrs.get("height"), DEFAULT_HEIGHT),
            color=attrs.get("color") or None,
            content=content or None,
            file=attrs.get("file") or None,
            url=attrs.get("url") or None,
            label=attrs.get("label") or None,
        )

    def _build_update_node(self, raw: str, attr_text: str) -> UpdateNode | None:
        attrs = parse_attributes(attr_text)
        if not attrs.get("id"):
            self._drop("update_node", "missing id", raw)
            return None

        updates = NodeUpdates(
            x=parse_int(attrs.get("x"), None),
            y=parse_int(attrs.get("y"), None),
            width=parse_int(attrs.get("width"), None),
            height=parse_int(attrs.get("height"), None),
            color=attrs.get("color"),
            content=attrs.get("content"),
            label=attrs.get("label"),
        )
        return UpdateNode(id=attrs["id"], updates=updates)

    def _build_delete(self, tag: str, raw: str, attr_text: str) -> DeleteNode | DeleteEdge | None:
        attrs = parse_attributes(attr_text)
        if not attrs.get("id"):
            self._drop(tag, "missing id", raw)
            return None
        if tag == "delete_node":
            return DeleteNode(id=attrs["id"])
        return DeleteEdge(id=attrs["id"])

    def _build_add_edge(self, raw: str, attr_text: str) -> AddEdge | None:
        attrs = parse_attributes(attr_text)
        if not attrs.get("from") or not attrs.get("to"):
            self._drop("add_edge", "missing from or to", raw)
            return None

        return AddEdge(
            id=attrs.get("id") or self._edge_id_factory(),
            from_node=attrs["from"],
            to_node=attrs["to"],
            from_side=_side(attrs.get("fromSide")),
            to_side=_side(attrs.get("toSide")),
            label=attrs.get("label") or None,
            color=attrs.get("color") or None,
        )


def contains_canvas_edit(text: str) -> bool:
    """Check if text contains a canvas_edit block."""
    return "<canvas_edit" in text


def extract_canvas_path(text: str) -> str | None:
    """Extract the path attribute of the first canvas_edit block."""
    match = _CANVAS_EDIT_PATH.search(text)
    return match.group(1) if match else None
