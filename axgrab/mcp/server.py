"""axgrab MCP Server -- window snapshots and element clicks for AI agents.

Exposes tools for listing windows, capturing a window's accessibility
tree, searching it, clicking nodes by id, focusing windows and viewing
the window screenshot.
"""

from __future__ import annotations

import json
from typing import Literal

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.utilities.types import Image

from axgrab._types import ExtractionResult
from axgrab.actions import ActionExecutor
from axgrab.errors import AxgrabError, NotFound, PermissionDenied
from axgrab.session import Session
from axgrab.tree import find_elements, format_line, serialize_compact
from axgrab.windows import format_window_list

mcp = FastMCP(
    name="axgrab",
    instructions=(
        "axgrab gives you the accessibility tree of one desktop window at a "
        "time. Call list_windows to see what is open, then get_window_tree "
        "with any part of an app name, window title, or an exact window id. "
        "Each node has an id such as '1.2.' (trailing dot: has children) or "
        "'1.2.1' (leaf). Ids describe the tree's shape, so they are only "
        "valid for the most recent snapshot; after clicking, call "
        "get_window_tree again for fresh ids.\n\n"
        "Use find_element to search the last snapshot by role, title, "
        "description or value without reading the whole tree."
    ),
)

# ---------------------------------------------------------------------------
# Session state (one per MCP server process)
# ---------------------------------------------------------------------------

_session: Session | None = None
_last: ExtractionResult | None = None


def _get_session() -> Session:
    global _session
    if _session is None:
        # No terminal to prompt on: permission failures are terminal here.
        _session = Session(confirm=None)
    return _session


def _error(message: str, **extra) -> str:
    return json.dumps({"success": False, "error": message, **extra})


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool()
def list_windows() -> str:
    """List visible windows grouped by application, with their ids."""
    try:
        return format_window_list(_get_session().list())
    except AxgrabError as e:
        return _error(str(e))


@mcp.tool()
def get_window_tree(
    query: str,
    detail: Literal["standard", "full"] = "standard",
) -> str:
    """Capture one window's accessibility tree.

    The query is ranked against the open windows (app name, title, id,
    partial words) and the best match is captured. Returns compact text:

        [id] role "title" desc="..." val="..." @x,y wxh {states}

    Indentation shows the hierarchy. Coordinates are global screen points.

    Args:
        query: Any part of the app name or window title, or a window id.
        detail: "standard" hides decorative and structural nodes (ids are
                unchanged); "full" shows every node.
    """
    global _last
    session = _get_session()
    try:
        window, result = session.extract_best(query)
    except NotFound as e:
        return _error(str(e), availableWindows=[w.to_dict() for w in e.windows])
    except PermissionDenied as e:
        return _error(str(e), needsPermission=True)
    except AxgrabError as e:
        return _error(str(e))

    _last = result
    return serialize_compact(result.tree, detail=detail,
                             window_title=f"{window.app} - {window.title} ({window.id})")


@mcp.tool()
def find_element(
    role: str | None = None,
    title: str | None = None,
    description: str | None = None,
    value: str | None = None,
) -> str:
    """Search the last captured tree for matching nodes, best first.

    Text criteria match as case-insensitive substrings; the score is the
    average over the criteria given.

    Args:
        role: Accessibility role, e.g. "AXButton".
        title: Node title.
        description: Node description.
        value: Node value.
    """
    if _last is None:
        return _error("No tree captured yet. Call get_window_tree first.")
    if role is None and title is None and description is None and value is None:
        return _error("At least one search criterion must be provided.")

    matches = find_elements(_last.tree, role=role, title=title,
                            description=description, value=value)
    if not matches:
        return json.dumps({"success": True, "message": "No matching elements found.",
                           "matches": 0})
    lines = [format_line(node) for node in matches[:50]]
    return "\n".join([
        f"# {len(matches)} match{'es' if len(matches) != 1 else ''} found",
        "",
    ] + lines) + "\n"


@mcp.tool()
def click_element(node_id: str) -> str:
    """Left-click the center of a node from the last captured tree.

    Args:
        node_id: Node id from get_window_tree (e.g., "1.2.1").
    """
    if _last is None:
        return _error("No tree captured yet. Call get_window_tree first.")
    executor = ActionExecutor(_get_session(), diagnostics_dir=None)
    try:
        result = executor.click(_last.tree, _last.window, node_id)
    except AxgrabError as e:
        return _error(str(e))
    return json.dumps({
        "success": True,
        "message": f"Clicked {node_id} at [{result.point[0]:g}, {result.point[1]:g}]",
    })


@mcp.tool()
def focus_window(window_id: str) -> str:
    """Raise and activate a window by id (from list_windows).

    Args:
        window_id: Window id, e.g. "safari-applehome".
    """
    ok = _get_session().focus(window_id, by_id=True)
    return json.dumps({"success": ok})


@mcp.tool()
def window_screenshot() -> Image | str:
    """Return the screenshot taken with the last captured tree."""
    if _last is None:
        return _error("No tree captured yet. Call get_window_tree first.")
    if not _last.screenshot:
        return _error("The last capture has no screenshot.")
    return Image(data=_last.screenshot, format="png")


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
