"""Action execution against nodes of an addressed tree."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from axgrab._types import ClickResult, Rect
from axgrab.annotate import draw_bounding_boxes, draw_click_marker
from axgrab.coords import node_center
from axgrab.errors import NodeNotFound, NotClickable
from axgrab.session import Session
from axgrab.tree import resolve


def _has_geometry(node: dict) -> bool:
    position, size = node.get("position"), node.get("size")
    return (isinstance(position, (list, tuple)) and len(position) == 2
            and isinstance(size, (list, tuple)) and len(size) == 2)


class ActionExecutor:
    """Resolve node ids against a tree and act on them.

    When ``diagnostics_dir`` is set, each click also writes a window
    screenshot with the target outlined and a full-monitor screenshot with
    the click point circled. Those images are best-effort: failures are
    logged and never stop the click.
    """

    def __init__(self, session: Session, *, diagnostics_dir: str | Path | None = "data"):
        self.session = session
        self.diagnostics_dir = Path(diagnostics_dir) if diagnostics_dir is not None else None

    def click(
        self,
        tree: dict,
        window: Rect,
        node_id: str,
        *,
        screenshot_path: str | Path | None = None,
    ) -> ClickResult:
        """Click the center of node ``node_id``.

        ``tree`` must be the addressed tree ``window`` came with.
        ``screenshot_path`` is the window screenshot saved from the same
        extraction; when given, the target box is drawn on a copy of it.

        Raises:
            NodeNotFound: ``node_id`` is not in ``tree``.
            NotClickable: The node has no position/size.
            ProcessFailure, MalformedResponse: The click itself failed.
        """
        node = resolve(tree, node_id)
        if node is None:
            raise NodeNotFound(node_id)

        logger.info(
            "Found node {}: role={} title={!r} description={!r} position={} size={}",
            node_id, node.get("role"), node.get("title"), node.get("description"),
            node.get("position"), node.get("size"),
        )
        if not _has_geometry(node):
            raise NotClickable(node_id)

        point = node_center(tuple(node["position"]), tuple(node["size"]))
        result = ClickResult(node_id=node_id, point=point)

        if self.diagnostics_dir is not None:
            if screenshot_path:
                self._annotate_window(result, node, window, screenshot_path, self.diagnostics_dir)
            self._annotate_display(result, window, self.diagnostics_dir)

        logger.debug("Window: position=[{}, {}], size=[{}, {}]",
                     window.x, window.y, window.width, window.height)
        logger.info("Clicking at global screen coordinates: [{}, {}]", *point)
        self.session.click_at(point)
        logger.info("Clicked node {}", node_id)
        return result

    def _annotate_window(self, result: ClickResult, node: dict, window: Rect,
                         screenshot_path: str | Path, out_dir: Path) -> None:
        try:
            result.window_annotation = draw_bounding_boxes(
                screenshot_path, [node], window, out_dir / "screenshot_click_box.png",
                color="red", thickness=3,
            )
            logger.info("Annotated screenshot saved to: {}", result.window_annotation)
        except Exception as e:
            logger.warning("Failed to draw bounding box for node {}: {}", result.node_id, e)
            result.notes.append(f"window annotation failed: {e}")

    def _annotate_display(self, result: ClickResult, window: Rect, out_dir: Path) -> None:
        try:
            full = self.session.capture_display(window)
            if not full.screenshot:
                result.notes.append("display capture returned no image")
                return
            raw_path = out_dir / "full_screenshot.png"
            raw_path.parent.mkdir(parents=True, exist_ok=True)
            raw_path.write_bytes(full.screenshot)
            result.display_screenshot = str(raw_path)

            result.display_annotation, result.display_point = draw_click_marker(
                full.screenshot, result.point, full.display,
                out_dir / "full_screenshot_with_click.png",
                color="yellow", thickness=16, radius=22,
            )
            logger.info("Full display screenshot with click saved to: {}",
                        result.display_annotation)
            logger.debug("Click within display screenshot: [{}, {}]", *result.display_point)
        except Exception as e:
            logger.warning("Failed to create display screenshot with click for node {}: {}",
                           result.node_id, e)
            result.notes.append(f"display annotation failed: {e}")
