"""Canvas storage, execution, containment and transcripts."""

from canvasedit.canvas.containment import derive_containment_edges, is_inside
from canvasedit.canvas.executor import (
    BatchResult,
    CanvasOperationExecutor,
    OperationErrorCode,
    OperationResult,
    apply_operation,
    apply_operations,
)
from canvasedit.canvas.loader import CanvasLoader
from canvasedit.canvas.store import (
    CanvasConflictError,
    CanvasNotFoundError,
    CanvasSnapshot,
    CanvasStore,
    CanvasStoreError,
    CanvasWriteError,
    InvalidCanvasError,
)
from canvasedit.canvas.transcript import build_transcript

__all__ = [
    "BatchResult",
    "CanvasConflictError",
    "CanvasLoader",
    "CanvasNotFoundError",
    "CanvasOperationExecutor",
    "CanvasSnapshot",
    "CanvasStore",
    "CanvasStoreError",
    "CanvasWriteError",
    "InvalidCanvasError",
    "OperationErrorCode",
    "OperationResult",
    "apply_operation",
    "apply_operations",
    "build_transcript",
    "derive_containment_edges",
    "is_inside",
]
