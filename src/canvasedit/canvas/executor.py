"""Apply canvas edit operations to canvas documents.

``apply_operation`` mutates an in-memory document and never raises: every
failure comes back as an ``OperationResult`` so a batch can keep going.

``CanvasOperationExecutor`` wraps it with storage:

- ``execute`` reads the canvas, applies one operation and writes it back if
  the operation succeeded.
- ``execute_batch`` applies a list of operations to one document in order and
  writes once at the end. By default this is best effort: a failing operation
  does not undo earlier ones, and the document is written if at least one
  operation succeeded. If that write fails, every success is reported as a
  failure, although the in-memory document was already changed; the caller
  must discard it. ``atomic=True`` applies the batch to a copy and writes only
  if every operation succeeded.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from canvasedit.canvas.store import (
    CanvasConflictError,
    CanvasStore,
    CanvasStoreError,
)
from canvasedit.models.canvas import (
    CanvasDocument,
    CanvasEdge,
    CanvasNode,
    FileNode,
    GroupNode,
    LinkNode,
    NodeKind,
    NodeSide,
    TextNode,
)
from canvasedit.models.operations import (
    AddEdge,
    AddNode,
    DeleteEdge,
    DeleteNode,
    Operation,
    UpdateNode,
    describe_operation,
)

logger = logging.getLogger(__name__)

WRITE_FAILED = "Failed to write canvas file"


class OperationErrorCode(str, Enum):
    """Why an operation failed."""

    DUPLICATE_ID = "DuplicateId"
    MISSING_FIELD = "MissingField"
    NOT_FOUND = "NotFound"
    ENDPOINT_NOT_FOUND = "EndpointNotFound"
    UNKNOWN_KIND = "UnknownKind"
    UNKNOWN_OPERATION = "UnknownOperation"

    # Storage-level failures
    STORAGE_READ = "StorageRead"
    STORAGE_WRITE = "StorageWrite"
    CONFLICT = "Conflict"
    ROLLED_BACK = "RolledBack"
    NO_CANVAS_PATH = "NoCanvasPath"


@dataclass
class OperationResult:
    """Outcome of one operation."""

    success: bool
    error: str | None = None
    code: OperationErrorCode | None = None
    affected_ids: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, *affected_ids: str) -> OperationResult:
        return cls(success=True, affected_ids=list(affected_ids))

    @classmethod
    def fail(cls, code: OperationErrorCode, error: str) -> OperationResult:
        return cls(success=False, error=error, code=code)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "error": self.error,
            "code": self.code.value if self.code else None,
            "affected_ids": self.affected_ids,
        }


@dataclass
class BatchResult:
    """Outcome of a batch: one result per operation, in order."""

    results: list[OperationResult] = field(default_factory=list)
    all_success: bool = False
    written: bool = False
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "results": [r.to_dict() for r in self.results],
            "all_success": self.all_success,
            "written": self.written,
        }


# ---------------------------------------------------------------------------
# In-memory operations
# ---------------------------------------------------------------------------


def _build_node(op: AddNode) -> CanvasNode | OperationResult:
    geometry = {
        "id": op.id,
        "x": op.x,
        "y": op.y,
        "width": op.width,
        "height": op.height,
        "color": op.color,
    }

    if op.kind == NodeKind.TEXT.value:
        return TextNode(**geometry, text=op.content or "")

    if op.kind == NodeKind.FILE.value:
        if not op.file:
            return OperationResult.fail(OperationErrorCode.MISSING_FIELD, "File path required for file node")
        return FileNode(**geometry, file=op.file)

    if op.kind == NodeKind.LINK.value:
        if not op.url:
            return OperationResult.fail(OperationErrorCode.MISSING_FIELD, "URL required for link node")
        return LinkNode(**geometry, url=op.url)

    if op.kind == NodeKind.GROUP.value:
        return GroupNode(**geometry, label=op.label)

    return OperationResult.fail(OperationErrorCode.UNKNOWN_KIND, f"Unknown node type: {op.kind}")


def _add_node(document: CanvasDocument, op: AddNode) -> OperationResult:
    if op.id in document.nodes:
        return OperationResult.fail(OperationErrorCode.DUPLICATE_ID, f'Node with ID "{op.id}" already exists')

    node = _build_node(op)
    if isinstance(node, OperationResult):
        return node

    document.nodes[node.id] = node
    return OperationResult.ok(op.id)


def _update_node(document: CanvasDocument, op: UpdateNode) -> OperationResult:
    node = document.nodes.get(op.id)
    if node is None:
        return OperationResult.fail(OperationErrorCode.NOT_FOUND, f'Node with ID "{op.id}" not found')

    updates = op.updates
    if updates.x is not None:
        node.x = updates.x
    if updates.y is not None:
        node.y = updates.y
    if updates.width is not None:
        node.width = updates.width
    if updates.height is not None:
        node.height = updates.height
    if updates.color is not None:
        node.color = updates.color

    # Kind-specific fields; ignored for other kinds
    if isinstance(node, TextNode) and updates.content is not None:
        node.text = updates.content
    if isinstance(node, GroupNode) and updates.label is not None:
        node.label = updates.label

    return OperationResult.ok(op.id)


def _delete_node(document: CanvasDocument, op: DeleteNode) -> OperationResult:
    if op.id not in document.nodes:
        return OperationResult.fail(OperationErrorCode.NOT_FOUND, f'Node with ID "{op.id}" not found')

    del document.nodes[op.id]

    removed_edge_ids = [edge.id for edge in document.edges_touching(op.id)]
    for edge_id in removed_edge_ids:
        del document.edges[edge_id]

    return OperationResult.ok(op.id, *removed_edge_ids)


def _add_edge(document: CanvasDocument, op: AddEdge) -> OperationResult:
    if op.from_node not in document.nodes:
        return OperationResult.fail(
            OperationErrorCode.ENDPOINT_NOT_FOUND, f'Source node "{op.from_node}" not found'
        )
    if op.to_node not in document.nodes:
        return OperationResult.fail(
            OperationErrorCode.ENDPOINT_NOT_FOUND, f'Target node "{op.to_node}" not found'
        )
    if op.id in document.edges:
        return OperationResult.fail(OperationErrorCode.DUPLICATE_ID, f'Edge with ID "{op.id}" already exists')

    document.edges[op.id] = CanvasEdge(
        id=op.id,
        from_node=op.from_node,
        to_node=op.to_node,
        from_side=op.from_side or NodeSide.RIGHT,
        to_side=op.to_side or NodeSide.LEFT,
        label=op.label,
        color=op.color,
    )
    return OperationResult.ok(op.id)


def _delete_edge(document: CanvasDocument, op: DeleteEdge) -> OperationResult:
    if op.id not in document.edges:
        return OperationResult.fail(OperationErrorCode.NOT_FOUND, f'Edge with ID "{op.id}" not found')

    del document.edges[op.id]
    return OperationResult.ok(op.id)


def apply_operation(document: CanvasDocument, op: Operation) -> OperationResult:
    """Apply one operation to a document in place."""
    if isinstance(op, AddNode):
        return _add_node(document, op)
    if isinstance(op, UpdateNode):
        return _update_node(document, op)
    if isinstance(op, DeleteNode):
        return _delete_node(document, op)
    if isinstance(op, AddEdge):
        return _add_edge(document, op)
    if isinstance(op, DeleteEdge):
        return _delete_edge(document, op)
    return OperationResult.fail(OperationErrorCode.UNKNOWN_OPERATION, "Unknown operation type")


def apply_operations(document: CanvasDocument, operations: Iterable[Operation]) -> list[OperationResult]:
    """Apply operations in order, continuing past failures."""
    results: list[OperationResult] = []
    for op in operations:
        result = apply_operation(document, op)
        if not result.success:
            logger.debug(f"{describe_operation(op)} failed: {result.error}")
        results.append(result)
    return results


# ---------------------------------------------------------------------------
# Storage-backed execution
# ---------------------------------------------------------------------------


def _write_failure(error: CanvasStoreError) -> OperationResult:
    if isinstance(error, CanvasConflictError):
        return OperationResult.fail(OperationErrorCode.CONFLICT, str(error))
    return OperationResult.fail(OperationErrorCode.STORAGE_WRITE, f"{WRITE_FAILED}: {error}")


class CanvasOperationExecutor:
    """Execute operations against canvases in a vault."""

    def __init__(self, store: CanvasStore) -> None:
        self.store = store

    async def execute(self, canvas_path: str, op: Operation) -> OperationResult:
        """Read the canvas, apply one operation, write it back on success."""
        try:
            lock = self.store.lock(canvas_path)
        except CanvasStoreError as e:
            return OperationResult.fail(OperationErrorCode.STORAGE_READ, str(e))

        async with lock:
            try:
                snapshot = await self.store.read(canvas_path)
            except CanvasStoreError as e:
                logger.error(f"Failed to read canvas: {canvas_path}: {e}")
                return OperationResult.fail(OperationErrorCode.STORAGE_READ, str(e))

            result = apply_operation(snapshot.document, op)
            if not result.success:
                logger.debug(f"{describe_operation(op)} failed: {result.error}")
                return result

            try:
                await self.store.write(canvas_path, snapshot.document, expected_version=snapshot.version)
            except CanvasStoreError as e:
                logger.error(f"Failed to write canvas: {canvas_path}: {e}")
                return _write_failure(e)

        return result

    async def execute_batch(
        self,
        canvas_path: str,
        operations: list[Operation],
        atomic: bool = False,
    ) -> BatchResult:
        """Apply operations in sequence to one document and write once."""
        try:
            lock = self.store.lock(canvas_path)
        except CanvasStoreError as e:
            return BatchResult(results=[OperationResult.fail(OperationErrorCode.STORAGE_READ, str(e))])

        async with lock:
            try:
                snapshot = await self.store.read(canvas_path)
            except CanvasStoreError as e:
                logger.error(f"Failed to read canvas: {canvas_path}: {e}")
                return BatchResult(results=[OperationResult.fail(OperationErrorCode.STORAGE_READ, str(e))])

            document = copy.deepcopy(snapshot.document) if atomic else snapshot.document
            results = apply_operations(document, operations)
            all_success = all(r.success for r in results)
            succeeded = sum(1 for r in results if r.success)

            logger.info(f"Applied {succeeded}/{len(results)} operations to {canvas_path}")

            if atomic and not all_success:
                return BatchResult(
                    results=[
                        OperationResult.fail(OperationErrorCode.ROLLED_BACK, "Rolled back: another operation in the batch failed")
                        if r.success
                        else r
                        for r in results
                    ],
                    all_success=False,
                )

            # Only write if at least one operation succeeded
            if succeeded == 0:
                return BatchResult(results=results, all_success=all_success)

            try:
                version = await self.store.write(canvas_path, document, expected_version=snapshot.version)
            except CanvasStoreError as e:
                logger.error(f"Failed to write canvas: {canvas_path}: {e}")
                failure = _write_failure(e)
                return BatchResult(
                    results=[
                        OperationResult.fail(failure.code, failure.error) if r.success else r
                        for r in results
                    ],
                    all_success=False,
                )

        return BatchResult(results=results, all_success=all_success, written=True, version=version)
