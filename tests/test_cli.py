"""Tests for the canvasedit command line."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from click.testing import CliRunner

from canvasedit.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestShow:
    """Tests for the show command."""

    def test_show(self, runner: CliRunner, temp_vault: Path, sample_canvas: str) -> None:
        """Test the transcript is printed."""
        result = runner.invoke(cli, ["show", sample_canvas, "--vault", str(temp_vault), "-q"])

        assert result.exit_code == 0
        assert result.output.startswith("Canvas contains 4 nodes and 3 edges.")
        assert "File Content:\n# Review" in result.output

    def test_show_selection(self, runner: CliRunner, temp_vault: Path, sample_canvas: str) -> None:
        """Test repeated --select options."""
        result = runner.invoke(
            cli, ["show", sample_canvas, "--vault", str(temp_vault), "-s", "t1", "-s", "l1", "-q"]
        )

        assert result.exit_code == 0
        assert result.output.startswith("Canvas contains 2 nodes and 0 edges.")

    def test_show_missing_canvas(self, runner: CliRunner, temp_vault: Path) -> None:
        """Test a missing canvas exits with an error."""
        result = runner.invoke(cli, ["show", "Boards/Nope.canvas", "--vault", str(temp_vault), "-q"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_show_without_vault(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a missing vault setting exits with an error."""
        monkeypatch.setattr(
            "canvasedit.cli.main.get_settings",
            lambda: SimpleNamespace(debug=False, vault_path="", scan_order="priority", mock_chunk_delay_ms=0),
        )

        result = runner.invoke(cli, ["show", "Boards/Plan.canvas", "-q"])

        assert result.exit_code == 1
        assert "No vault specified" in result.output


class TestApply:
    """Tests for the apply command."""

    def test_apply_json(
        self, runner: CliRunner, temp_vault: Path, sample_canvas: str, sample_stream_text: str
    ) -> None:
        """Test batch application with JSON output."""
        result = runner.invoke(
            cli, ["apply", "--vault", str(temp_vault), "--json", "-q"], input=sample_stream_text
        )

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["all_success"] is True
        assert payload["written"] is True
        assert len(payload["results"]) == 6

        data = json.loads((temp_vault / sample_canvas).read_text())
        assert [e["id"] for e in data["edges"]] == ["e2"]

    def test_apply_from_file_with_chunks(
        self, runner: CliRunner, temp_vault: Path, sample_canvas: str, sample_stream_text: str, tmp_path: Path
    ) -> None:
        """Test --input and --chunk-size give the same outcome."""
        response = tmp_path / "response.txt"
        response.write_text(sample_stream_text)

        result = runner.invoke(
            cli,
            ["apply", "-i", str(response), "--chunk-size", "5", "--vault", str(temp_vault), "--json", "-q"],
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["all_success"] is True

    def test_apply_stream_mode(
        self, runner: CliRunner, temp_vault: Path, sample_canvas: str, sample_stream_text: str
    ) -> None:
        """Test --stream executes operations one by one."""
        result = runner.invoke(
            cli,
            ["apply", "--stream", "--chunk-size", "11", "--vault", str(temp_vault), "--json", "-q"],
            input=sample_stream_text,
        )

        assert result.exit_code == 0
        results = json.loads(result.output)
        assert len(results) == 6
        assert all(r["success"] for r in results)

    def test_apply_failure_exit_code(self, runner: CliRunner, temp_vault: Path, empty_canvas: str) -> None:
        """Test a failed operation gives a non-zero exit code."""
        result = runner.invoke(
            cli,
            ["apply", "-c", empty_canvas, "--vault", str(temp_vault), "--json", "-q"],
            input='<delete_node id="ghost"/>',
        )

        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["results"][0]["code"] == "NotFound"

    def test_apply_atomic(self, runner: CliRunner, temp_vault: Path, empty_canvas: str) -> None:
        """Test --atomic writes nothing when an operation fails."""
        before = (temp_vault / empty_canvas).read_text()

        result = runner.invoke(
            cli,
            ["apply", "-c", empty_canvas, "--atomic", "--vault", str(temp_vault), "--json", "-q"],
            input='<add_node id="a" type="group"/><delete_node id="ghost"/>',
        )

        assert result.exit_code == 1
        codes = [r["code"] for r in json.loads(result.output)["results"]]
        assert codes == ["RolledBack", "NotFound"]
        assert (temp_vault / empty_canvas).read_text() == before

    def test_apply_without_target(self, runner: CliRunner, temp_vault: Path) -> None:
        """Test input without a wrapper needs --canvas."""
        result = runner.invoke(
            cli, ["apply", "--vault", str(temp_vault), "-q"], input='<delete_node id="a"/>'
        )

        assert result.exit_code == 1
        assert "No target canvas" in result.output

    def test_apply_without_operations(self, runner: CliRunner, temp_vault: Path, empty_canvas: str) -> None:
        """Test plain prose is not an error."""
        result = runner.invoke(
            cli, ["apply", "-c", empty_canvas, "--vault", str(temp_vault), "-q"], input="Nothing to change."
        )

        assert result.exit_code == 0
        assert "No canvas operations" in result.output


class TestReplay:
    """Tests for the replay command."""

    def test_replay_capture(
        self, runner: CliRunner, temp_vault: Path, sample_canvas: str, sample_stream_text: str, tmp_path: Path
    ) -> None:
        """Test a captured chunk list is replayed onto the canvas."""
        capture = tmp_path / "chunks.json"
        chunks = [sample_stream_text[i : i + 13] for i in range(0, len(sample_stream_text), 13)]
        capture.write_text(json.dumps(chunks))

        result = runner.invoke(
            cli, ["replay", str(capture), "--vault", str(temp_vault), "--delay-ms", "0", "-q"]
        )

        assert result.exit_code == 0
        data = json.loads((temp_vault / sample_canvas).read_text())
        assert "t2" in [n["id"] for n in data["nodes"]]
