"""
Accessibility tree addressing, search and compact rendering.

Nodes are plain dicts as they arrive from the extractor::

    {"role": "AXButton", "title": "Close", "position": [x, y],
     "size": [w, h], "enabled": true, "children": [...]}

:func:`assign_ids` returns a new tree where every node has an ``id``
derived only from the tree's shape, so the same ids come back after a
JSON round trip:

    1.          root (trailing dot: has children)
      1.1       first child, a leaf
      1.2.      second child, has children
        1.2.1   its first child, a leaf
"""

from __future__ import annotations

from typing import Any, Literal

from loguru import logger

Detail = Literal["standard", "full"]

# The extractor caps its own walk; this guards against deeper input anyway.
MAX_DEPTH = 256

_SEMANTIC_FIELDS = (
    "role", "title", "description", "value", "roleDescription", "identifier",
)
_STATE_FIELDS = ("enabled", "focused", "selected")


# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------

def _child_prefix(prefix: str, index: int) -> str:
    return f"{prefix}.{index + 1}" if prefix else str(index + 1)


def assign_ids(root: dict, *, max_depth: int = MAX_DEPTH) -> dict:
    """Return a copy of ``root`` with a hierarchical ``id`` on every node.

    A node with children gets ``prefix + "."``; a leaf gets ``prefix``
    exactly. Child ``i`` of a node with prefix ``p`` gets prefix
    ``p.(i+1)``. The walk is iterative; subtrees below ``max_depth`` are
    dropped with a warning. The input is not modified.
    """
    new_root: dict = {}
    # (source node, destination dict, prefix, depth)
    stack: list[tuple[dict, dict, str, int]] = [(root, new_root, "1", 0)]
    truncated = 0

    while stack:
        node, out, prefix, depth = stack.pop()
        out.update((k, v) for k, v in node.items() if k not in ("children", "id"))

        children = node.get("children") or []
        if children and depth >= max_depth:
            truncated += len(children)
            children = []

        if not children:
            out["id"] = prefix
            continue

        out["id"] = prefix + "."
        out_children: list[dict] = [{} for _ in children]
        out["children"] = out_children
        # Reverse push keeps the pop order depth-first, left to right.
        for i in range(len(children) - 1, -1, -1):
            stack.append((children[i], out_children[i], _child_prefix(prefix, i), depth + 1))

    if truncated:
        logger.warning(
            "Tree deeper than {} levels; dropped {} subtree(s)", max_depth, truncated,
        )
    return new_root


def resolve(root: dict, node_id: str) -> dict | None:
    """Depth-first search for the node whose ``id`` equals ``node_id``.

    The returned node belongs to ``root``; treat it as read-only.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if node.get("id") == node_id:
            return node
        children = node.get("children") or []
        stack.extend(reversed(children))
    return None


def iter_nodes(root: dict):
    """Yield every node depth-first, parents before children."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.get("children") or []))


def count_nodes(root: dict) -> int:
    """Count total nodes in a tree."""
    return sum(1 for _ in iter_nodes(root))


def is_leaf_id(node_id: str) -> bool:
    """True when an assigned id names a node without children."""
    return not node_id.endswith(".")


# ---------------------------------------------------------------------------
# Attribute search
# ---------------------------------------------------------------------------

def _match_score(node: dict, criteria: dict[str, Any]) -> float:
    score = 0.0
    total = 0

    for key, wanted in criteria.items():
        if wanted is None:
            continue
        total += 1
        have = node.get(key)

        if key in ("position", "size"):
            if (isinstance(have, (list, tuple)) and isinstance(wanted, (list, tuple))
                    and len(have) == 2 and len(wanted) == 2
                    and have[0] == wanted[0] and have[1] == wanted[1]):
                score += 10
        elif isinstance(wanted, str) and isinstance(have, str):
            if wanted.lower() in have.lower():
                score += 5
        elif have == wanted:
            score += 10

    return 0.0 if total == 0 else score / total


def find_elements(root: dict, **criteria: Any) -> list[dict]:
    """All nodes matching any of ``criteria``, best match first.

    String criteria match as case-insensitive substrings (5 points);
    ``position``/``size`` pairs and other values match on equality
    (10 points). The node score is averaged over the criteria given.
    """
    scored = []
    for node in iter_nodes(root):
        score = _match_score(node, criteria)
        if score > 0:
            scored.append((score, node))
    scored.sort(key=lambda pair: -pair[0])
    return [node for _, node in scored]


def find_element(root: dict, **criteria: Any) -> dict | None:
    """Best single match for ``criteria`` or ``None``."""
    matches = find_elements(root, **criteria)
    return matches[0] if matches else None


# ---------------------------------------------------------------------------
# Pruning
# ---------------------------------------------------------------------------

def _label(node: dict) -> str:
    return node.get("title") or node.get("description") or node.get("value") or ""


def _should_skip(node: dict) -> bool:
    """Decide if a node should be pruned."""
    role = node.get("role", "")
    if node.get("children"):
        return False
    # Unnamed decorative images
    if role == "AXImage" and not _label(node):
        return True
    # Empty static text
    if role == "AXStaticText" and not node.get("value") and not node.get("title"):
        return True
    return False


def _should_hoist(node: dict) -> bool:
    """Unnamed structural wrappers give way to their children."""
    return (node.get("role") in ("AXGroup", "AXUnknown", "AXSplitGroup", "AXLayoutArea")
            and not _label(node)
            and bool(node.get("children")))


def _prune_node(node: dict) -> list[dict]:
    children = node.get("children") or []

    if _should_hoist(node):
        result: list[dict] = []
        for child in children:
            result.extend(_prune_node(child))
        return result

    if _should_skip(node):
        return []

    pruned_children: list[dict] = []
    for child in children:
        pruned_children.extend(_prune_node(child))

    pruned = {k: v for k, v in node.items() if k != "children"}
    if pruned_children:
        pruned["children"] = pruned_children
    return [pruned]


def prune_tree(root: dict, *, detail: Detail = "standard") -> list[dict]:
    """Return the pruned roots of an addressed tree; ids are preserved.

    "standard" drops unnamed images and empty text and hoists unnamed
    groups. "full" returns the tree unchanged (as a one-item list).
    """
    if detail == "full":
        return [root]
    return _prune_node(root)


# ---------------------------------------------------------------------------
# Compact text
# ---------------------------------------------------------------------------

def _quote(text: str, limit: int) -> str:
    truncated = text[:limit] + ("..." if len(text) > limit else "")
    truncated = truncated.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return f'"{truncated}"'


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.1f}"


def format_line(node: dict) -> str:
    """Format a single node as a compact one-liner."""
    parts = [f"[{node.get('id', '?')}]", node.get("role") or "AXUnknown"]

    title = node.get("title")
    if title:
        parts.append(_quote(title, 80))
    description = node.get("description")
    if description and description != title:
        parts.append("desc=" + _quote(description, 80))
    value = node.get("value")
    if value:
        parts.append("val=" + _quote(str(value), 120))
    identifier = node.get("identifier")
    if identifier:
        parts.append(f"#{identifier}")

    position, size = node.get("position"), node.get("size")
    if position and size:
        parts.append(
            f"@{_num(position[0])},{_num(position[1])} {_num(size[0])}x{_num(size[1])}"
        )

    states = []
    if node.get("enabled") is False:
        states.append("disabled")
    if node.get("focused"):
        states.append("focused")
    if node.get("selected"):
        states.append("selected")
    if states:
        parts.append("{" + ",".join(states) + "}")

    return " ".join(parts)


def serialize_compact(root: dict, *, detail: Detail = "standard",
                      window_title: str | None = None) -> str:
    """Render an addressed tree as indented text for model/agent context."""
    total_before = count_nodes(root)
    pruned = prune_tree(root, detail=detail)

    lines: list[str] = []
    stack = [(node, 0) for node in reversed(pruned)]
    while stack:
        node, depth = stack.pop()
        lines.append("  " * depth + format_line(node))
        for child in reversed(node.get("children") or []):
            stack.append((child, depth + 1))

    header = []
    if window_title:
        header.append(f"# window: {window_title}")
    header.append(f"# {len(lines)} nodes ({total_before} before pruning)")
    header.append("")
    return "\n".join(header + lines) + "\n"
