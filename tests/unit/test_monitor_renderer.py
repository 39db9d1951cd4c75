"""Tests for the Rich result renderer."""

from __future__ import annotations

from io import StringIO

from rich.console import Console

from gameanchor.models.files import UploadRequest
from gameanchor.models.pipeline import PipelineState
from gameanchor.monitor.renderer import ResultRenderer


def _render(renderable) -> str:
    console = Console(file=StringIO(), width=160, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestResultRenderer:
    def test_result_panel(self, orchestrator, game_folder, identity):
        result = orchestrator.run(UploadRequest(root_path=str(game_folder), uploader_identity=identity))
        text = _render(ResultRenderer().render_result(result))
        assert result.run_id in text
        assert "cid1" in text
        assert "SUCCEEDED" in text
        assert "storing_content" in text
        assert "done" in text

    def test_skipped_shows_reason(self, orchestrator, game_folder):
        result = orchestrator.run(UploadRequest(root_path=str(game_folder)))
        text = _render(ResultRenderer().render_result(result))
        assert "SKIPPED" in text
        assert "No wallet public key supplied" in text
        assert PipelineState.DEGRADED_DONE.value in text

    def test_failure_panel(self):
        text = _render(ResultRenderer().render_failure("Directory is empty", "nothing here", [], "ga-x"))
        assert "Directory is empty" in text
        assert "nothing here" in text
        assert "ga-x" in text
        assert "failed" in text
