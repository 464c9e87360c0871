"""
Coordinate-space transforms.

Three spaces are in play:

    global screen   -- what the window manager reports for windows,
                       displays and tree nodes (top-left origin)
    screenshot      -- pixels of a captured window image, possibly scaled
                       relative to the window's logical size (retina)
    display         -- pixels of a captured monitor image, relative to
                       that monitor's bounds in global screen space

Clicks are issued in raw global screen coordinates and never pass
through these functions; only diagnostic annotation does.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from axgrab._types import Point, Rect, Size
from axgrab.errors import InvalidGeometry


def _check_span(rect: Rect, what: str) -> None:
    if rect.width <= 0 or rect.height <= 0:
        raise InvalidGeometry(
            f"{what} must have a positive width and height, got "
            f"{rect.width}x{rect.height}"
        )


def _scale(rect: Rect, screenshot_size: Size) -> tuple[float, float]:
    return (screenshot_size[0] / rect.width, screenshot_size[1] / rect.height)


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(value, upper))


# ---------------------------------------------------------------------------
# Window <-> screenshot
# ---------------------------------------------------------------------------

def to_screenshot_space(point: Point, window: Rect, screenshot_size: Size) -> Point:
    """Map a global screen point onto a window screenshot.

    Subtracts the window origin, scales each axis by
    ``screenshot_size / window.size`` and clamps to the image bounds.
    """
    _check_span(window, "Window")
    sx, sy = _scale(window, screenshot_size)
    x = (point[0] - window.x) * sx
    y = (point[1] - window.y) * sy
    return (_clamp(x, screenshot_size[0]), _clamp(y, screenshot_size[1]))


def size_to_screenshot_space(size: Size, window: Rect, screenshot_size: Size) -> Size:
    """Scale a width/height pair onto a window screenshot. No clamping."""
    _check_span(window, "Window")
    sx, sy = _scale(window, screenshot_size)
    return (size[0] * sx, size[1] * sy)


def from_screenshot_space(point: Point, window: Rect, screenshot_size: Size) -> Point:
    """Inverse of :func:`to_screenshot_space` (without the clamp)."""
    _check_span(window, "Window")
    if screenshot_size[0] <= 0 or screenshot_size[1] <= 0:
        raise InvalidGeometry(
            f"Screenshot must have a positive size, got "
            f"{screenshot_size[0]}x{screenshot_size[1]}"
        )
    sx, sy = _scale(window, screenshot_size)
    return (point[0] / sx + window.x, point[1] / sy + window.y)


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def to_display_space(point: Point, display: Rect, screenshot_size: Size) -> Point:
    """Map a global screen point onto a full-monitor screenshot.

    Same recipe as the window transform: displays and windows share the
    global screen origin.
    """
    _check_span(display, "Display")
    sx, sy = _scale(display, screenshot_size)
    x = (point[0] - display.x) * sx
    y = (point[1] - display.y) * sy
    return (_clamp(x, screenshot_size[0]), _clamp(y, screenshot_size[1]))


def select_display(rect: Rect, displays: Iterable[Rect], primary: Rect) -> Rect:
    """Pick the monitor whose bounds contain ``rect``'s center.

    When no monitor contains it (a window straddling a monitor edge), fall
    back to the primary monitor's origin combined with ``rect``'s own
    width and height.
    """
    center = rect.center
    for display in displays:
        if display.contains(center):
            return display
    logger.warning(
        "No display contains point {}; falling back to primary origin "
        "with the rect's size", center,
    )
    return Rect(primary.x, primary.y, rect.width, rect.height)


def node_center(position: Point, size: Size) -> Point:
    """Center of a node's box in global screen space."""
    return (position[0] + size[0] / 2, position[1] + size[1] / 2)
