"""Tests for the action executor and diagnostic annotation."""

from __future__ import annotations

import base64
import io
import json

import pytest
from PIL import Image

from axgrab._base import ExtractorProcess, RunOutput
from axgrab._types import Rect
from axgrab.actions import ActionExecutor
from axgrab.annotate import draw_bounding_boxes, draw_click_marker, image_size
from axgrab.errors import NodeNotFound, NotClickable, ProcessFailure
from axgrab.session import Session
from axgrab.tree import assign_ids


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class _ScriptedExtractor(ExtractorProcess):
    def __init__(self, *outputs: RunOutput):
        self.outputs = list(outputs)
        self.calls: list[list[str]] = []

    def run(self, args: list[str]) -> RunOutput:
        self.calls.append(list(args))
        return self.outputs.pop(0)


def _png(width: int, height: int, color: str = "black") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def _ok(body: dict) -> RunOutput:
    return RunOutput(0, json.dumps(body), "")


def _display_capture(png: bytes, display: Rect) -> RunOutput:
    return _ok({"display": display.to_dict(), "screenshot": base64.b64encode(png).decode()})


WINDOW = Rect(100, 50, 800, 600)
DISPLAY = Rect(0, 0, 1440, 900)


def _tree() -> dict:
    return assign_ids({"role": "AXWindow", "children": [
        {"role": "AXButton", "title": "Refresh", "position": [480, 280], "size": [40, 40]},
        {"role": "AXGroup"},
        {"role": "AXButton", "title": "Half", "position": [480]},
    ]})


# ---------------------------------------------------------------------------
# ActionExecutor.click
# ---------------------------------------------------------------------------

class TestClick:
    def test_clicks_node_center_in_global_space(self):
        ex = _ScriptedExtractor(_ok({"success": True}))
        result = ActionExecutor(Session(ex), diagnostics_dir=None).click(_tree(), WINDOW, "1.1")
        assert result.point == (500, 300)
        assert ex.calls == [["--click-absolute", "500.0", "300.0"]]

    def test_unknown_node(self):
        ex = _ScriptedExtractor()
        with pytest.raises(NodeNotFound) as info:
            ActionExecutor(Session(ex), diagnostics_dir=None).click(_tree(), WINDOW, "1.9")
        assert info.value.node_id == "1.9"
        assert ex.calls == []

    @pytest.mark.parametrize("node_id", ["1.", "1.2", "1.3"])
    def test_node_without_geometry(self, node_id):
        ex = _ScriptedExtractor()
        with pytest.raises(NotClickable):
            ActionExecutor(Session(ex), diagnostics_dir=None).click(_tree(), WINDOW, node_id)
        assert ex.calls == []

    def test_click_failure_is_fatal(self):
        ex = _ScriptedExtractor(RunOutput(1, '{"success": false}', ""))
        with pytest.raises(ProcessFailure):
            ActionExecutor(Session(ex), diagnostics_dir=None).click(_tree(), WINDOW, "1.1")

    def test_diagnostics_written(self, tmp_path):
        shot = tmp_path / "screenshot.png"
        shot.write_bytes(_png(1600, 1200))
        ex = _ScriptedExtractor(
            _display_capture(_png(2880, 1800), DISPLAY),
            _ok({"success": True}),
        )
        result = ActionExecutor(Session(ex), diagnostics_dir=tmp_path).click(
            _tree(), WINDOW, "1.1", screenshot_path=shot)

        assert ex.calls[0][0] == "--full-screenshot-for-rect"
        assert ex.calls[1] == ["--click-absolute", "500.0", "300.0"]
        assert result.display_point == (1000, 600)
        assert image_size((tmp_path / "screenshot_click_box.png").read_bytes()) == (1600, 1200)
        assert (tmp_path / "full_screenshot.png").exists()
        assert (tmp_path / "full_screenshot_with_click.png").exists()
        assert result.notes == []

    def test_diagnostic_failures_do_not_block_click(self, tmp_path):
        ex = _ScriptedExtractor(
            RunOutput(1, '{"error": "Failed to capture display screenshot for rect"}', ""),
            _ok({"success": True}),
        )
        result = ActionExecutor(Session(ex), diagnostics_dir=tmp_path).click(
            _tree(), WINDOW, "1.1", screenshot_path=tmp_path / "missing.png")

        assert ex.calls[-1][0] == "--click-absolute"
        assert result.window_annotation is None
        assert result.display_annotation is None
        assert len(result.notes) == 2


# ---------------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------------

class TestAnnotate:
    def test_bounding_box_drawn_in_screenshot_space(self, tmp_path):
        shot = tmp_path / "shot.png"
        shot.write_bytes(_png(1600, 1200))
        node = {"position": [480, 280], "size": [40, 40]}
        out = draw_bounding_boxes(shot, [node], WINDOW, tmp_path / "out.png", opacity=1.0)

        with Image.open(out) as img:
            img = img.convert("RGB")
            # window-relative (380, 230) scaled x2 -> box from (760, 460) to (840, 540)
            assert img.getpixel((760, 500)) == (255, 0, 0)
            assert img.getpixel((800, 500)) == (0, 0, 0)

    def test_nodes_without_geometry_skipped(self, tmp_path):
        shot = tmp_path / "shot.png"
        shot.write_bytes(_png(80, 60))
        out = draw_bounding_boxes(shot, [{"role": "AXGroup"}], Rect(0, 0, 80, 60), tmp_path / "o.png")
        with Image.open(out) as img:
            assert img.convert("RGB").getpixel((0, 0)) == (0, 0, 0)

    def test_click_marker_position(self, tmp_path):
        out, (cx, cy) = draw_click_marker(
            _png(2880, 1800), (720, 450), DISPLAY, tmp_path / "click.png", radius=22, thickness=4)
        assert (cx, cy) == (1440, 900)
        with Image.open(out) as img:
            img = img.convert("RGB")
            assert img.getpixel((1440, 900 - 21)) == (255, 255, 0)
            assert img.getpixel((1440, 900)) == (0, 0, 0)

    def test_image_size(self):
        assert image_size(_png(12, 7)) == (12, 7)
