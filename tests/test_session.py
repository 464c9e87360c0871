"""Tests for the extraction session against a scripted extractor."""

from __future__ import annotations

import base64
import json
import sys

import pytest

from axgrab._base import ExtractorProcess, RunOutput, SubprocessExtractor
from axgrab._types import Rect
from axgrab.errors import (
    MalformedResponse,
    NotFound,
    PermissionDenied,
    ProcessFailure,
)
from axgrab.session import Session, describe_not_found


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

class _ScriptedExtractor(ExtractorProcess):
    """Replays canned outputs and records every invocation."""

    def __init__(self, *outputs: RunOutput | Exception):
        self.outputs = list(outputs)
        self.calls: list[list[str]] = []

    def run(self, args: list[str]) -> RunOutput:
        self.calls.append(list(args))
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out


def _ok(body: dict) -> RunOutput:
    return RunOutput(0, json.dumps(body), "")


def _fail(body: dict | str, code: int = 1, stderr: str = "") -> RunOutput:
    stdout = body if isinstance(body, str) else json.dumps(body)
    return RunOutput(code, stdout, stderr)


WINDOWS = [
    {"app": "Safari", "title": "Apple – Home", "id": "safari-1"},
    {"app": "Finder", "title": "Documents"},
]

EXTRACTION = {
    "window": {"x": 100, "y": 50, "width": 800, "height": 600},
    "a11y": {"role": "AXWindow", "children": [{"role": "AXButton", "title": "Close"}]},
    "screenshot": base64.b64encode(b"png-bytes").decode(),
}

PERMISSION = {"error": "Accessibility permissions required.", "needsPermission": True}


class _Confirm:
    def __init__(self):
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------

class TestList:
    def test_windows_with_ids(self):
        ex = _ScriptedExtractor(_ok({"availableWindows": WINDOWS}))
        windows = Session(ex).list()
        assert ex.calls == [["--list"]]
        assert [w.id for w in windows] == ["safari-1", "finder-documents"]

    def test_nonzero_exit(self):
        ex = _ScriptedExtractor(_fail("garbage", code=2, stderr="crashed"))
        with pytest.raises(ProcessFailure, match="code 2: crashed") as info:
            Session(ex).list()
        assert info.value.returncode == 2


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------

class TestExtract:
    def test_success_assigns_ids(self):
        ex = _ScriptedExtractor(_ok(EXTRACTION))
        result = Session(ex).extract("safari")
        assert ex.calls == [["safari"]]
        assert result.window == Rect(100, 50, 800, 600)
        assert result.tree["id"] == "1."
        assert result.tree["children"][0]["id"] == "1.1"
        assert result.screenshot == b"png-bytes"

    def test_by_id(self):
        ex = _ScriptedExtractor(_ok(EXTRACTION))
        Session(ex).extract("safari-1", by_id=True)
        assert ex.calls == [["--window-id", "safari-1"]]

    def test_not_found_carries_candidates(self):
        ex = _ScriptedExtractor(_fail({"error": "Window not found", "availableWindows": WINDOWS}))
        with pytest.raises(NotFound, match="Window not found") as info:
            Session(ex).extract("nothing")
        assert [(w.app, w.title) for w in info.value.windows] == [
            ("Safari", "Apple – Home"), ("Finder", "Documents"),
        ]
        assert "Finder:" in describe_not_found(info.value)

    def test_generic_error_body(self):
        ex = _ScriptedExtractor(_fail({"error": "Failed to extract window dimensions"}, code=1))
        with pytest.raises(ProcessFailure, match="window dimensions") as info:
            Session(ex).extract("safari")
        assert info.value.returncode == 1

    def test_unparseable_failure(self):
        ex = _ScriptedExtractor(_fail("Segmentation fault", code=139))
        with pytest.raises(ProcessFailure, match="code 139: Segmentation fault"):
            Session(ex).extract("safari")

    def test_zero_exit_invalid_json(self):
        ex = _ScriptedExtractor(RunOutput(0, "{truncated", ""))
        with pytest.raises(MalformedResponse):
            Session(ex).extract("safari")

    def test_zero_exit_error_body(self):
        ex = _ScriptedExtractor(_ok({"error": "Failed to extract accessibility tree"}))
        with pytest.raises(MalformedResponse, match="accessibility tree"):
            Session(ex).extract("safari")

    def test_spawn_failure(self):
        ex = _ScriptedExtractor(ProcessFailure("Failed to execute accessibility extractor"))
        with pytest.raises(ProcessFailure):
            Session(ex).extract("safari")


# ---------------------------------------------------------------------------
# permission retry
# ---------------------------------------------------------------------------

class TestPermissionRetry:
    def test_retry_once_then_succeeds(self):
        confirm = _Confirm()
        ex = _ScriptedExtractor(_fail(PERMISSION), _ok(EXTRACTION))
        result = Session(ex, confirm=confirm).extract("safari")
        assert result.tree["id"] == "1."
        assert ex.calls == [["safari"], ["safari"]]
        assert confirm.messages == ["Accessibility permissions required."]

    def test_retry_fails_again(self):
        confirm = _Confirm()
        ex = _ScriptedExtractor(_fail(PERMISSION), _fail(PERMISSION))
        with pytest.raises(PermissionDenied, match="^Still unable to access") as info:
            Session(ex, confirm=confirm).extract("safari")
        assert isinstance(info.value.retry_error, PermissionDenied)
        assert str(info.value.retry_error) == "Accessibility permissions required."
        assert len(ex.calls) == 2
        assert len(confirm.messages) == 1

    def test_retry_fails_differently(self):
        ex = _ScriptedExtractor(_fail(PERMISSION), _fail({"error": "Window not found",
                                                          "availableWindows": []}))
        with pytest.raises(PermissionDenied) as info:
            Session(ex, confirm=_Confirm()).extract("safari")
        assert isinstance(info.value.retry_error, NotFound)
        assert "Window not found" in str(info.value)

    def test_no_retry_when_disabled(self):
        confirm = _Confirm()
        ex = _ScriptedExtractor(_fail(PERMISSION))
        with pytest.raises(PermissionDenied) as info:
            Session(ex, confirm=confirm).extract("safari", auto_retry=False)
        assert info.value.retry_error is None
        assert confirm.messages == []
        assert len(ex.calls) == 1

    def test_unattended_session_is_terminal(self):
        ex = _ScriptedExtractor(_fail(PERMISSION))
        with pytest.raises(PermissionDenied):
            Session(ex, confirm=None).extract("safari")
        assert len(ex.calls) == 1

    def test_list_does_not_retry(self):
        confirm = _Confirm()
        ex = _ScriptedExtractor(_fail(PERMISSION))
        with pytest.raises(PermissionDenied):
            Session(ex, confirm=confirm).list()
        assert confirm.messages == []


# ---------------------------------------------------------------------------
# extract_best
# ---------------------------------------------------------------------------

class TestExtractBest:
    def test_ranks_then_extracts_by_id(self):
        ex = _ScriptedExtractor(_ok({"availableWindows": WINDOWS}), _ok(EXTRACTION))
        window, result = Session(ex).extract_best("documents")
        assert window.id == "finder-documents"
        assert ex.calls == [["--list"], ["--window-id", "finder-documents"]]
        assert result.tree["id"] == "1."

    def test_no_match_lists_everything(self):
        ex = _ScriptedExtractor(_ok({"availableWindows": WINDOWS}))
        with pytest.raises(NotFound) as info:
            Session(ex).extract_best("xylophone")
        assert len(info.value.windows) == 2
        assert len(ex.calls) == 1


# ---------------------------------------------------------------------------
# focus
# ---------------------------------------------------------------------------

class TestFocus:
    def test_success(self):
        ex = _ScriptedExtractor(_ok({"success": True}))
        assert Session(ex).focus("safari-1") is True
        assert ex.calls == [["--focus-id", "safari-1"]]

    def test_by_title(self):
        ex = _ScriptedExtractor(_ok({"success": True}))
        Session(ex).focus("Home", by_id=False)
        assert ex.calls == [["--focus", "Home"]]

    @pytest.mark.parametrize("output", [
        _fail({"success": False}),
        _ok({"success": False}),
        RunOutput(0, "not json", ""),
        ProcessFailure("cannot spawn"),
    ])
    def test_failure_returns_false(self, output):
        assert Session(_ScriptedExtractor(output)).focus("safari-1") is False


# ---------------------------------------------------------------------------
# display capture and click
# ---------------------------------------------------------------------------

class TestCaptureAndClick:
    def test_capture_display(self):
        ex = _ScriptedExtractor(_ok({
            "display": {"x": 1440, "y": 0, "width": 1920, "height": 1080},
            "screenshot": base64.b64encode(b"img").decode(),
        }))
        full = Session(ex).capture_display(Rect(1500, 10, 300, 200))
        assert ex.calls == [["--full-screenshot-for-rect", "1500.0", "10.0", "300.0", "200.0"]]
        assert full.display == Rect(1440, 0, 1920, 1080)

    def test_capture_primary_display(self):
        ex = _ScriptedExtractor(_ok({
            "display": {"x": 0, "y": 0, "width": 1440, "height": 900},
            "screenshot": base64.b64encode(b"img").decode(),
        }))
        assert Session(ex).capture_primary_display().display.width == 1440
        assert ex.calls == [["--full-screenshot"]]

    def test_capture_error(self):
        ex = _ScriptedExtractor(_fail({"error": "Failed to capture display screenshot for rect"}))
        with pytest.raises(ProcessFailure, match="Failed to capture"):
            Session(ex).capture_display(Rect(0, 0, 10, 10))

    def test_click_passes_global_coordinates(self):
        ex = _ScriptedExtractor(_ok({"success": True}))
        Session(ex).click_at((500.5, 300))
        assert ex.calls == [["--click-absolute", "500.5", "300.0"]]

    def test_click_nonzero_exit(self):
        ex = _ScriptedExtractor(_fail({"success": False}))
        with pytest.raises(ProcessFailure):
            Session(ex).click_at((1, 1))

    def test_click_without_success_flag(self):
        ex = _ScriptedExtractor(_ok({}))
        with pytest.raises(MalformedResponse):
            Session(ex).click_at((1, 1))


# ---------------------------------------------------------------------------
# real child process
# ---------------------------------------------------------------------------

@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script")
class TestUndecodableOutput:
    @pytest.fixture
    def crashing_exe(self, tmp_path):
        exe = tmp_path / "a11y-extractor"
        exe.write_text("#!/bin/sh\nprintf 'crash \\377\\376' >&2\nexit 1\n")
        exe.chmod(0o755)
        return str(exe)

    def test_invalid_utf8_becomes_process_failure(self, crashing_exe):
        with pytest.raises(ProcessFailure, match="code 1: crash") as info:
            Session(SubprocessExtractor(crashing_exe)).extract("safari")
        assert info.value.returncode == 1
        assert "�" in info.value.output

    def test_focus_still_returns_false(self, crashing_exe):
        assert Session(SubprocessExtractor(crashing_exe)).focus("x") is False
