"""CLI for window snapshots and clicks: python -m axgrab"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
from pathlib import Path

from loguru import logger

from axgrab.actions import ActionExecutor
from axgrab.annotate import image_size
from axgrab.errors import AxgrabError, NotFound, PermissionDenied
from axgrab.session import Session, describe_not_found
from axgrab.tree import count_nodes, find_element, serialize_compact
from axgrab.windows import format_window_list

PERMISSION_HELP = """
To grant accessibility permissions:
1. Open System Settings > Privacy & Security > Accessibility
2. Click the '+' button and add your terminal app (Terminal, iTerm2, etc.)
3. Make sure the checkbox next to your terminal app is checked
4. You may need to restart your terminal
"""


def _slug(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip().lower()) or "window"


def _parse_criteria(pairs: list[str]) -> dict[str, object]:
    criteria: dict[str, object] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"--find expects key=value, got '{pair}'")
        if value.lower() in ("true", "false"):
            criteria[key] = value.lower() == "true"
        else:
            criteria[key] = value
    return criteria


def _configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=os.environ.get("AXGRAB_LOG_LEVEL", "INFO").upper(),
        format="<level>{level:<8}</level> | {message}",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Capture a window's accessibility tree and screenshot, optionally click an element")
    parser.add_argument("query", nargs="?", default=None,
                        help="Window to capture: any part of the app name or title")
    parser.add_argument("--list", action="store_true",
                        help="List available windows and exit")
    parser.add_argument("--id", action="store_true",
                        help="Treat QUERY as an exact window id")
    parser.add_argument("--rank", action="store_true",
                        help="Resolve QUERY against the window list locally, then capture by id")
    parser.add_argument("--no-focus", action="store_true",
                        help="Do not focus the window before capturing")
    parser.add_argument("--out-dir", type=str, default="data",
                        help="Directory for the screenshot and JSON output (default: data)")
    parser.add_argument("--compact", action="store_true",
                        help="Print compact tree text to stdout")
    parser.add_argument("--detail", choices=["standard", "full"], default="standard",
                        help="Pruning level for --compact (default: standard)")
    parser.add_argument("--depth", type=int, default=0,
                        help="Max tree depth to address (0 = default cap)")
    parser.add_argument("--click", type=str, default=None, metavar="NODE_ID",
                        help="Click the node with this id after capturing")
    parser.add_argument("--find", action="append", default=[], metavar="KEY=VALUE",
                        help="Click the best node matching these attributes (repeatable), "
                             "e.g. --find role=AXButton --find description=Refresh")
    parser.add_argument("--no-diagnostics", action="store_true",
                        help="Skip annotated screenshots when clicking")
    args = parser.parse_args()

    _configure_logging()

    session = Session()
    if args.depth > 0:
        session.max_depth = args.depth

    if args.list or (args.query or "").lower() == "list":
        try:
            print("Getting list of available windows...")
            print(format_window_list(session.list()))
        except AxgrabError as e:
            print(f"\nError listing windows: {e}", file=sys.stderr)
            sys.exit(1)
        return

    if not args.query:
        parser.print_usage(sys.stderr)
        print("\nExample: python -m axgrab Safari", file=sys.stderr)
        sys.exit(1)

    out_dir = Path(args.out_dir)
    try:
        print(f'Searching for window matching: "{args.query}"...')
        if args.rank:
            window, result = session.extract_best(args.query)
            focus_target, focus_by_id = window.id, True
        else:
            focus_target, focus_by_id = args.query, args.id
            result = None

        if not args.no_focus:
            if session.focus(focus_target, by_id=focus_by_id):
                logger.info("Window focused")
            else:
                logger.warning("Failed to focus window, continuing anyway")

        if result is None:
            result = session.extract(args.query, by_id=args.id)

        out_dir.mkdir(parents=True, exist_ok=True)
        screenshot_file: Path | None = None
        if result.screenshot:
            screenshot_file = out_dir / "screenshot.png"
            screenshot_file.write_bytes(result.screenshot)
            w, h = image_size(result.screenshot)
            print(f"Screenshot saved to: {screenshot_file} ({w}x{h})")

        output_file = out_dir / f"{_slug(args.query)}-a11y-tree.json"
        summary = result.summary(str(screenshot_file) if screenshot_file else None)
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False)
        print(f"Window: {result.window.width:g}x{result.window.height:g} "
              f"at ({result.window.x:g}, {result.window.y:g}), "
              f"{count_nodes(result.tree)} nodes")
        print(f"Result saved to: {output_file}")

        if args.compact:
            print()
            print(serialize_compact(result.tree, detail=args.detail))

        node_id = args.click
        if node_id is None and args.find:
            match = find_element(result.tree, **_parse_criteria(args.find))
            if match is None:
                print("No element matches the --find criteria")
                sys.exit(1)
            node_id = match["id"]
            print(f"Found element with id: {node_id}")

        if node_id is not None:
            executor = ActionExecutor(
                session, diagnostics_dir=None if args.no_diagnostics else out_dir)
            clicked = executor.click(result.tree, result.window, node_id,
                                     screenshot_path=screenshot_file)
            print(f"Clicked node {node_id} at "
                  f"[{clicked.point[0]:g}, {clicked.point[1]:g}]")

    except NotFound as e:
        print(f"\nError: {describe_not_found(e)}", file=sys.stderr)
        sys.exit(1)
    except PermissionDenied as e:
        print(f"\nError: {e}", file=sys.stderr)
        print(PERMISSION_HELP, file=sys.stderr)
        sys.exit(1)
    except AxgrabError as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
