"""Streaming extraction and application of canvas edit instructions."""

from canvasedit.stream.applier import (
    AppliedOperation,
    StreamApplyReport,
    StreamingApplier,
    chunk_text,
)
from canvasedit.stream.extractor import (
    ParseWarning,
    ScanOrder,
    TagStreamExtractor,
    contains_canvas_edit,
    extract_canvas_path,
    parse_attributes,
)
from canvasedit.stream.mock import load_mock_chunks, mock_stream, parse_sse_to_chunks

__all__ = [
    "AppliedOperation",
    "ParseWarning",
    "ScanOrder",
    "StreamApplyReport",
    "StreamingApplier",
    "TagStreamExtractor",
    "chunk_text",
    "contains_canvas_edit",
    "extract_canvas_path",
    "load_mock_chunks",
    "mock_stream",
    "parse_attributes",
    "parse_sse_to_chunks",
]
