"""Pytest fixtures and configuration."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from canvasedit.canvas.store import CanvasStore


@pytest.fixture
def temp_vault() -> Generator[Path, None, None]:
    """Create a temporary vault directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        vault_path = Path(tmpdir) / "TestVault"
        vault_path.mkdir()
        (vault_path / "Boards").mkdir()
        (vault_path / "Notes").mkdir()
        yield vault_path


@pytest.fixture
def sample_canvas_data() -> dict[str, Any]:
    """A small canvas: a group holding a text card and a file card, plus a link."""
    return {
        "nodes": [
            {"id": "g1", "type": "group", "x": 0, "y": 0, "width": 600, "height": 400, "label": "Plan"},
            {"id": "t1", "type": "text", "x": 40, "y": 40, "width": 200, "height": 100, "text": "Draft outline"},
            {"id": "f1", "type": "file", "x": 300, "y": 40, "width": 200, "height": 100, "file": "Notes/Review.md"},
            {"id": "l1", "type": "link", "x": 900, "y": 0, "width": 200, "height": 100, "url": "https://obsidian.md"},
        ],
        "edges": [
            {"id": "e1", "fromNode": "t1", "fromSide": "right", "toNode": "f1", "toSide": "left", "label": "next"},
        ],
    }


@pytest.fixture
def sample_canvas(temp_vault: Path, sample_canvas_data: dict[str, Any]) -> str:
    """Write the sample canvas and its referenced note; return the canvas path."""
    (temp_vault / "Notes" / "Review.md").write_text("# Review\n\nCheck the draft.")
    (temp_vault / "Boards" / "Plan.canvas").write_text(json.dumps(sample_canvas_data, indent=2))
    return "Boards/Plan.canvas"


@pytest.fixture
def empty_canvas(temp_vault: Path) -> str:
    """Write an empty canvas; return its path."""
    (temp_vault / "Boards" / "Empty.canvas").write_text('{"nodes": [], "edges": []}')
    return "Boards/Empty.canvas"


@pytest.fixture
def store(temp_vault: Path) -> CanvasStore:
    """Canvas store rooted at the temporary vault."""
    return CanvasStore(temp_vault)


@pytest.fixture
def sample_stream_text() -> str:
    """Model output with one edit block covering every tag shape."""
    return """I'll reorganize the board.

<canvas_edit path="Boards/Plan.canvas" summary="Add a summary card">
<add_node id="t2" type="text" x="40" y="200" width="200" height="100">
Summary of the plan
</add_node>
<add_node id="l2" type="link" url="https://example.com/docs" x="700" y="200"/>
<update_node id="t1" x="60" color="4"/>
<delete_node id="l1"/>
<add_edge id="e2" from="t1" to="t2" fromSide="bottom" toSide="top" label="summarized by"/>
<delete_edge id="e1"/>
</canvas_edit>

Done."""
