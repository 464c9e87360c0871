"""
axgrab -- window accessibility snapshots and element clicks.

Name a visible window by a fuzzy query, get its geometry, its
accessibility tree with stable per-node ids, and a screenshot, then
click a node by id.

Quick start::

    import axgrab

    # What's on screen
    windows = axgrab.list_windows()

    # Best window for a query, by ranked id
    window, result = axgrab.extract_best("safari")
    print(axgrab.serialize_compact(result.tree))

    # Click a node from that tree
    axgrab.click(result, "1.2.1")
"""

from __future__ import annotations

from axgrab._types import (
    ClickResult,
    ExtractionResult,
    FullScreenshotResult,
    Rect,
    WindowDescriptor,
)
from axgrab.actions import ActionExecutor
from axgrab.coords import (
    from_screenshot_space,
    select_display,
    size_to_screenshot_space,
    to_display_space,
    to_screenshot_space,
)
from axgrab.errors import (
    AxgrabError,
    ExtractorUnavailable,
    InvalidGeometry,
    MalformedResponse,
    NodeNotFound,
    NotClickable,
    NotFound,
    PermissionDenied,
    ProcessFailure,
)
from axgrab.session import Session
from axgrab.tree import assign_ids, find_element, resolve, serialize_compact
from axgrab.windows import rank, resolve_best

__all__ = [
    "list_windows",
    "extract",
    "extract_best",
    "click",
    # Advanced / building blocks
    "Session",
    "ActionExecutor",
    "Rect",
    "WindowDescriptor",
    "ExtractionResult",
    "FullScreenshotResult",
    "ClickResult",
    "rank",
    "resolve_best",
    "assign_ids",
    "resolve",
    "find_element",
    "serialize_compact",
    "to_screenshot_space",
    "size_to_screenshot_space",
    "from_screenshot_space",
    "to_display_space",
    "select_display",
    # Errors
    "AxgrabError",
    "NotFound",
    "PermissionDenied",
    "ProcessFailure",
    "MalformedResponse",
    "NotClickable",
    "NodeNotFound",
    "ExtractorUnavailable",
    "InvalidGeometry",
]

_session: Session | None = None


def _get_session() -> Session:
    global _session
    if _session is None:
        _session = Session()
    return _session


def list_windows() -> list[WindowDescriptor]:
    """All visible windows, each with an id."""
    return _get_session().list()


def extract(target: str, *, by_id: bool = False) -> ExtractionResult:
    """Snapshot the window the extractor matches for ``target``."""
    return _get_session().extract(target, by_id=by_id)


def extract_best(query: str) -> tuple[WindowDescriptor, ExtractionResult]:
    """Rank windows against ``query`` and snapshot the best one."""
    return _get_session().extract_best(query)


def click(result: ExtractionResult, node_id: str, *,
          screenshot_path: str | None = None,
          diagnostics_dir: str | None = None) -> ClickResult:
    """Click node ``node_id`` of a snapshot taken with :func:`extract`."""
    executor = ActionExecutor(_get_session(), diagnostics_dir=diagnostics_dir)
    return executor.click(result.tree, result.window, node_id,
                          screenshot_path=screenshot_path)
