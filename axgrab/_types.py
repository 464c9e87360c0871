"""Value types shared by the resolver, session and action layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Point = tuple[float, float]
Size = tuple[float, float]


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle.

    The coordinate space is implied by where the rect came from (global
    screen, window-relative, screenshot pixels); it is not carried on the
    value, so never mix rects from different spaces without a transform.
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rect:
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @property
    def origin(self) -> Point:
        return (self.x, self.y)

    @property
    def size(self) -> Size:
        return (self.width, self.height)

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        """Half-open containment: left/top edges inside, right/bottom outside."""
        px, py = point
        return (self.x <= px < self.x + self.width
                and self.y <= py < self.y + self.height)


@dataclass(frozen=True)
class WindowDescriptor:
    """A visible window as reported by the extractor.

    ``id`` is the authoritative key. Titles are not unique.
    """

    app: str
    title: str
    id: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"app": self.app, "title": self.title, "id": self.id}


@dataclass(frozen=True)
class ExtractionResult:
    """One window snapshot: geometry, addressed tree and screenshot.

    ``window`` is in global screen space. ``screenshot`` holds the raw
    image bytes (empty when the extractor could not capture one).
    """

    window: Rect
    tree: dict
    screenshot: bytes = b""

    def summary(self, screenshot_ref: str | None = None) -> dict:
        """JSON-ready dict with the image replaced by a path (or a note)."""
        return {
            "window": self.window.to_dict(),
            "a11y": self.tree,
            "screenshot": screenshot_ref or "No screenshot available",
        }


@dataclass(frozen=True)
class FullScreenshotResult:
    """A capture of one whole monitor; ``display`` is in global screen space."""

    display: Rect
    screenshot: bytes


@dataclass
class ClickResult:
    """What a click did, including any diagnostic images written."""

    node_id: str
    point: Point
    window_annotation: str | None = None
    display_screenshot: str | None = None
    display_annotation: str | None = None
    display_point: Point | None = None
    notes: list[str] = field(default_factory=list)
