"""Tests for mock stream replay and streaming application."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from canvasedit.canvas.executor import CanvasOperationExecutor, OperationErrorCode
from canvasedit.canvas.store import CanvasStore
from canvasedit.stream.applier import StreamingApplier, chunk_text
from canvasedit.stream.mock import load_mock_chunks, mock_stream, parse_sse_to_chunks


async def collect(stream) -> list[str]:
    return [chunk async for chunk in stream]


class TestChunking:
    """Tests for splitting input text."""

    def test_chunk_text(self) -> None:
        """Test fixed-size slices."""
        assert chunk_text("abcdefg", 3) == ["abc", "def", "g"]

    def test_chunk_text_whole(self) -> None:
        """Test a non-positive size keeps the text whole."""
        assert chunk_text("abc", 0) == ["abc"]
        assert chunk_text("", 0) == []


class TestMockStream:
    """Tests for capture parsing and replay."""

    def test_parse_sse(self) -> None:
        """Test OpenAI and Anthropic deltas, comments and the done marker."""
        raw = "\n".join(
            [
                "// captured from devtools",
                'data: {"choices":[{"delta":{"content":"I\'ll help"}}]}',
                "",
                'data: {"type":"content_block_delta","delta":{"text":" with that."}}',
                'data: {"choices":[{"delta":{}}]}',
                "data: not json",
                "data: [DONE]",
            ]
        )

        assert parse_sse_to_chunks(raw) == ["I'll help", " with that.", "not json"]

    def test_parse_plain_lines(self) -> None:
        """Test plain text lines are chunks as-is."""
        assert parse_sse_to_chunks("<canvas_edit path=\"a.canvas\">\n<delete_node id=\"x\"/>") == [
            '<canvas_edit path="a.canvas">',
            '<delete_node id="x"/>',
        ]

    def test_load_json_array(self, tmp_path: Path) -> None:
        """Test a JSON array capture keeps chunk boundaries and whitespace."""
        capture = tmp_path / "chunks.json"
        capture.write_text(json.dumps(["<add_", "node id=\"a\"", " type=\"group\"/>\n"]))

        assert load_mock_chunks(capture) == ["<add_", 'node id="a"', ' type="group"/>\n']

    def test_load_sse_file(self, tmp_path: Path) -> None:
        """Test an SSE capture file."""
        capture = tmp_path / "capture.sse"
        capture.write_text('data: {"delta":{"text":"Hi"}}\ndata: [DONE]\n')

        assert load_mock_chunks(capture) == ["Hi"]

    @pytest.mark.asyncio
    async def test_replay(self) -> None:
        """Test all chunks are yielded in order."""
        assert await collect(mock_stream(["a", "b", "c"], delay_ms=0)) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_replay_empty(self) -> None:
        """Test an empty capture yields nothing."""
        assert await collect(mock_stream([], delay_ms=0)) == []

    @pytest.mark.asyncio
    async def test_abort(self) -> None:
        """Test the stream stops once aborted."""
        abort = asyncio.Event()
        received = []

        async for chunk in mock_stream(["a", "b", "c"], delay_ms=0, abort=abort):
            received.append(chunk)
            abort.set()

        assert received == ["a"]


class TestStreamingApplier:
    """Tests for applying operations while the stream is running."""

    @pytest.fixture
    def applier(self, store: CanvasStore) -> StreamingApplier:
        return StreamingApplier(CanvasOperationExecutor(store))

    @pytest.mark.asyncio
    async def test_apply_stream(
        self, applier: StreamingApplier, temp_vault: Path, sample_canvas: str, sample_stream_text: str
    ) -> None:
        """Test every operation in the sample response is applied."""
        report = await applier.apply_stream(mock_stream(chunk_text(sample_stream_text, 7), delay_ms=0))

        assert report.canvas_path == "Boards/Plan.canvas"
        assert report.summary == "Add a summary card"
        assert report.all_success
        assert [op.id for op in report.operations] == ["t2", "l2", "t1", "l1", "e2", "e1"]

        data = json.loads((temp_vault / sample_canvas).read_text())
        nodes = {n["id"]: n for n in data["nodes"]}
        assert list(nodes) == ["g1", "t1", "f1", "t2", "l2"]
        assert nodes["t1"]["x"] == 60
        assert nodes["t1"]["color"] == "4"
        assert nodes["t2"]["text"] == "Summary of the plan"
        assert [e["id"] for e in data["edges"]] == ["e2"]
        assert data["edges"][0]["fromSide"] == "bottom"

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_stream(
        self, applier: StreamingApplier, temp_vault: Path, empty_canvas: str
    ) -> None:
        """Test a failing operation is reported and later ones still run."""
        chunks = [
            f'<canvas_edit path="{empty_canvas}">',
            '<delete_node id="ghost"/>',
            '<add_node id="a" type="group"/>',
            "</canvas_edit>",
        ]

        report = await applier.apply_stream(mock_stream(chunks, delay_ms=0))

        assert [a.result.success for a in report.applied] == [False, True]
        assert report.applied[0].result.code == OperationErrorCode.NOT_FOUND
        assert not report.all_success
        assert '"id": "a"' in (temp_vault / empty_canvas).read_text()

    @pytest.mark.asyncio
    async def test_operations_before_path_are_held(
        self, applier: StreamingApplier, temp_vault: Path, empty_canvas: str
    ) -> None:
        """Test operations completed before the path is known run once it appears."""
        chunks = ['<add_node id="early" type="group"/>', f'<canvas_edit path="{empty_canvas}">']

        report = await applier.apply_stream(mock_stream(chunks, delay_ms=0))

        assert report.all_success
        assert [op.id for op in report.operations] == ["early"]
        assert "early" in (temp_vault / empty_canvas).read_text()

    @pytest.mark.asyncio
    async def test_no_canvas_path(self, applier: StreamingApplier) -> None:
        """Test operations fail when no target is ever known."""
        report = await applier.apply_stream(mock_stream(['<delete_node id="a"/>'], delay_ms=0))

        assert report.canvas_path is None
        assert report.applied[0].result.code == OperationErrorCode.NO_CANVAS_PATH

    @pytest.mark.asyncio
    async def test_explicit_path_wins(
        self, applier: StreamingApplier, temp_vault: Path, empty_canvas: str, sample_canvas: str
    ) -> None:
        """Test an explicit target overrides the wrapper path."""
        chunks = [f'<canvas_edit path="{sample_canvas}">', '<add_node id="z" type="group"/>']

        report = await applier.apply_stream(mock_stream(chunks, delay_ms=0), canvas_path=empty_canvas)

        assert report.canvas_path == empty_canvas
        assert '"z"' in (temp_vault / empty_canvas).read_text()
        assert '"z"' not in (temp_vault / sample_canvas).read_text()

    @pytest.mark.asyncio
    async def test_dropped_tags_reported(self, applier: StreamingApplier, empty_canvas: str) -> None:
        """Test incomplete tags end up as warnings."""
        chunks = [f'<canvas_edit path="{empty_canvas}">', '<add_node type="text">x</add_node>']

        report = await applier.apply_stream(mock_stream(chunks, delay_ms=0))

        assert report.applied == []
        assert [w.tag for w in report.warnings] == ["add_node"]

    @pytest.mark.asyncio
    async def test_wrapper_summary_with_angle_bracket(
        self, store: CanvasStore, temp_vault: Path, empty_canvas: str
    ) -> None:
        """Test the target is found when the summary contains '>' and arrives in pieces."""
        text = f'<canvas_edit summary="Link A -> B" path="{empty_canvas}">\n<add_node id="a" type="group"/>'
        applier = StreamingApplier(CanvasOperationExecutor(store), scan_order="positional")

        report = await applier.apply_stream(mock_stream(chunk_text(text, 3), delay_ms=0))

        assert report.canvas_path == empty_canvas
        assert report.summary == "Link A -> B"
        assert report.all_success
        assert '"id": "a"' in (temp_vault / empty_canvas).read_text()
