"""Apply canvas operations while the model output is still streaming.

Each chunk is fed to a ``TagStreamExtractor``; every operation that becomes
complete is executed right away against the target canvas. The target is
either given explicitly or taken from the ``<canvas_edit path="...">`` wrapper.
Operations completed before the wrapper's path is known are held back and
flushed once it appears.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator

from canvasedit.canvas.executor import CanvasOperationExecutor, OperationErrorCode, OperationResult
from canvasedit.models.operations import Operation, describe_operation
from canvasedit.stream.extractor import ParseWarning, ScanOrder, TagStreamExtractor

logger = logging.getLogger(__name__)


@dataclass
class AppliedOperation:
    """An operation and the result of executing it."""

    operation: Operation
    result: OperationResult


@dataclass
class StreamApplyReport:
    """Everything that happened while applying one stream."""

    canvas_path: str | None = None
    summary: str = ""
    applied: list[AppliedOperation] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    @property
    def all_success(self) -> bool:
        return all(item.result.success for item in self.applied)

    @property
    def operations(self) -> list[Operation]:
        return [item.operation for item in self.applied]


def chunk_text(text: str, chunk_size: int) -> list[str]:
    """Split text into fixed-size slices (the last one may be shorter)."""
    if chunk_size <= 0:
        return [text] if text else []
    return [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]


class StreamingApplier:
    """Drive the extractor from a chunk stream and execute operations as they complete."""

    def __init__(
        self,
        executor: CanvasOperationExecutor,
        scan_order: ScanOrder | str = ScanOrder.PRIORITY,
    ) -> None:
        self.executor = executor
        self.scan_order = ScanOrder(scan_order)

    async def apply_stream(
        self,
        chunks: AsyncIterator[str],
        canvas_path: str | None = None,
    ) -> StreamApplyReport:
        """Consume the stream and return a report of every executed operation."""
        extractor = TagStreamExtractor(scan_order=self.scan_order)
        report = StreamApplyReport(canvas_path=canvas_path)
        pending: list[Operation] = []

        async for chunk in chunks:
            pending.extend(extractor.feed(chunk))

            target = canvas_path or extractor.canvas_path
            if target is None:
                continue

            for op in pending:
                result = await self.executor.execute(target, op)
                if not result.success:
                    logger.warning(f"{describe_operation(op)} failed: {result.error}")
                report.applied.append(AppliedOperation(operation=op, result=result))
            pending = []

        for op in pending:
            result = OperationResult.fail(
                OperationErrorCode.NO_CANVAS_PATH, "No canvas path: stream had no <canvas_edit path=...>"
            )
            report.applied.append(AppliedOperation(operation=op, result=result))

        report.canvas_path = canvas_path or extractor.canvas_path
        report.summary = extractor.summary
        report.warnings = list(extractor.warnings)

        logger.info(
            f"Stream applied: {sum(1 for a in report.applied if a.result.success)}/"
            f"{len(report.applied)} operations succeeded on {report.canvas_path}"
        )
        return report
