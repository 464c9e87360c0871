"""Diagnostic annotation of captured screenshots."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageColor, ImageDraw

from axgrab._types import Point, Rect
from axgrab.coords import size_to_screenshot_space, to_display_space, to_screenshot_space


def image_size(data: bytes) -> tuple[int, int]:
    """(width, height) of an encoded image."""
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def _rgba(color: str, opacity: float) -> tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return (r, g, b, round(255 * opacity))


def _save(img: Image.Image, output_path: str | Path) -> str:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, format="PNG")
    return str(path)


def draw_bounding_boxes(
    screenshot_path: str | Path,
    nodes: list[dict],
    window: Rect,
    output_path: str | Path,
    *,
    color: str = "red",
    thickness: int = 3,
    opacity: float = 0.8,
) -> str:
    """Outline each node (global screen geometry) on a window screenshot.

    Nodes without position/size are skipped.
    """
    with Image.open(screenshot_path) as src:
        img = src.convert("RGBA")

    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    stroke = _rgba(color, opacity)

    for node in nodes:
        position, size = node.get("position"), node.get("size")
        if not position or not size:
            continue
        x, y = to_screenshot_space(tuple(position), window, img.size)
        w, h = size_to_screenshot_space(tuple(size), window, img.size)
        draw.rectangle([x, y, x + w, y + h], outline=stroke, width=thickness)

    return _save(Image.alpha_composite(img, overlay), output_path)


def draw_click_marker(
    screenshot: bytes,
    point: Point,
    display: Rect,
    output_path: str | Path,
    *,
    color: str = "yellow",
    thickness: int = 16,
    radius: int = 22,
    opacity: float = 1.0,
) -> tuple[str, Point]:
    """Circle a global screen point on a full-monitor screenshot.

    Returns the written path and the point in display pixel space.
    """
    with Image.open(io.BytesIO(screenshot)) as src:
        img = src.convert("RGBA")

    cx, cy = to_display_space(point, display, img.size)
    overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.ellipse(
        [cx - radius, cy - radius, cx + radius, cy + radius],
        outline=_rgba(color, opacity),
        width=thickness,
    )
    return _save(Image.alpha_composite(img, overlay), output_path), (cx, cy)
