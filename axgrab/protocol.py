"""
Extractor wire protocol: argument builders and response parsing.

The extractor prints one JSON document on stdout and exits 0 on success,
non-zero on failure. A zero exit whose body has an ``error`` field is a
failure too. Error bodies are parsed into one of the ``ErrorEnvelope``
variants here and nowhere else.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any

from axgrab._types import ExtractionResult, FullScreenshotResult, Rect, WindowDescriptor
from axgrab.errors import MalformedResponse
from axgrab.windows import normalize_windows


# ---------------------------------------------------------------------------
# Invocations
# ---------------------------------------------------------------------------

def _num(value: float) -> str:
    # repr keeps full float precision; the extractor parses it as a Double
    return repr(float(value))


def list_args() -> list[str]:
    return ["--list"]


def extract_args(target: str, *, by_id: bool = False) -> list[str]:
    return ["--window-id", target] if by_id else [target]


def focus_args(target: str, *, by_id: bool = True) -> list[str]:
    return ["--focus-id", target] if by_id else ["--focus", target]


def full_screenshot_args() -> list[str]:
    return ["--full-screenshot"]


def screenshot_for_rect_args(rect: Rect) -> list[str]:
    return ["--full-screenshot-for-rect",
            _num(rect.x), _num(rect.y), _num(rect.width), _num(rect.height)]


def click_args(x: float, y: float) -> list[str]:
    return ["--click-absolute", _num(x), _num(y)]


# ---------------------------------------------------------------------------
# Error envelope (tagged variant)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorEnvelope:
    """A structured failure body: ``{"error": "..."}``."""

    message: str


@dataclass(frozen=True)
class PermissionEnvelope(ErrorEnvelope):
    """``{"error": ..., "needsPermission": true}``"""


@dataclass(frozen=True)
class NotFoundEnvelope(ErrorEnvelope):
    """``{"error": ..., "availableWindows": [...]}``"""

    windows: list[WindowDescriptor] = field(default_factory=list)


def parse_error_envelope(text: str) -> ErrorEnvelope | None:
    """Parse stdout of a failed run, or ``None`` if it is not an error envelope."""
    try:
        body = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(body, dict) or not body.get("error"):
        return None

    message = str(body["error"])
    if body.get("needsPermission"):
        return PermissionEnvelope(message)
    available = body.get("availableWindows")
    if isinstance(available, list):
        return NotFoundEnvelope(message, normalize_windows(available))
    return ErrorEnvelope(message)


# ---------------------------------------------------------------------------
# Success bodies
# ---------------------------------------------------------------------------

def parse_body(text: str) -> dict[str, Any]:
    """Parse stdout of a run that exited 0.

    Raises ``MalformedResponse`` for invalid JSON, a non-object body, or
    a body that names an error.
    """
    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse JSON output: {e}") from e
    if not isinstance(body, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(body).__name__}")
    if body.get("error"):
        raise MalformedResponse(str(body["error"]))
    return body


def _rect(body: dict[str, Any], key: str) -> Rect:
    try:
        return Rect.from_dict(body[key])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"Missing or invalid '{key}' rect in response") from e


def _image(body: dict[str, Any]) -> bytes:
    data = body.get("screenshot") or ""
    if not data:
        return b""
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedResponse("Screenshot is not valid base64") from e


def parse_window_list(body: dict[str, Any]) -> list[WindowDescriptor]:
    available = body.get("availableWindows")
    if not isinstance(available, list):
        raise MalformedResponse("Response has no 'availableWindows' list")
    return normalize_windows(available)


def parse_extraction(body: dict[str, Any]) -> ExtractionResult:
    """Build an (unaddressed) extraction result from a success body."""
    tree = body.get("a11y")
    if not isinstance(tree, dict):
        raise MalformedResponse("Response has no 'a11y' tree")
    return ExtractionResult(window=_rect(body, "window"), tree=tree, screenshot=_image(body))


def parse_display_capture(body: dict[str, Any]) -> FullScreenshotResult:
    return FullScreenshotResult(display=_rect(body, "display"), screenshot=_image(body))
