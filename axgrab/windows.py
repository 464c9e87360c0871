"""
Window resolution: rank visible windows against a free-text query.

Scores are additive and case-insensitive:

    identifier equals query             1000
    app name or title equals query       100
    "app title" contains query            50
    app name partially contains query     20   (not when it equals it)
    title contains query                  20
    each query token found in a token      5   (tokens shorter than 2 ignored)
    each 3-gram of a token found           1   (tokens of length 3+)

Windows scoring 0 are dropped; ties keep input order.
"""

from __future__ import annotations

from typing import Any, Iterable

from axgrab._types import WindowDescriptor

SCORE_ID = 1000
SCORE_EXACT = 100
SCORE_COMBINED = 50
SCORE_PARTIAL = 20
SCORE_TOKEN = 5
SCORE_TRIGRAM = 1


def _alnum(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


def synthesize_id(app: str, title: str) -> str:
    """Deterministic window id from (app, title).

    Lowercased, non-alphanumerics removed, then the app is cut to 10
    characters and the title to 15.
    """
    return f"{_alnum(app)[:10]}-{_alnum(title)[:15]}"


def normalize_windows(raw: Iterable[dict[str, Any] | WindowDescriptor]) -> list[WindowDescriptor]:
    """Turn wire dicts into descriptors, synthesizing any missing id."""
    windows = []
    for item in raw:
        if isinstance(item, WindowDescriptor):
            app, title, wid = item.app, item.title, item.id
        else:
            app = str(item.get("app") or "")
            title = str(item.get("title") or "")
            wid = str(item.get("id") or "")
        windows.append(WindowDescriptor(app=app, title=title, id=wid or synthesize_id(app, title)))
    return windows


def _token_score(query: str, combined: str) -> int:
    targets = combined.split()
    score = 0
    for token in query.split():
        if len(token) < 2:
            continue
        if any(token in target for target in targets):
            score += SCORE_TOKEN
        if len(token) >= 3:
            for i in range(len(token) - 2):
                gram = token[i:i + 3]
                if any(gram in target for target in targets):
                    score += SCORE_TRIGRAM
    return score


def score_window(query: str, window: WindowDescriptor) -> int:
    """Additive match score of ``query`` against one window."""
    q = query.strip().lower()
    if not q:
        return 0

    app = window.app.lower()
    title = window.title.lower()
    combined = f"{app} {title}"
    score = 0

    if window.id and window.id.lower() == q:
        score += SCORE_ID
    if app == q or title == q:
        score += SCORE_EXACT
    if q in combined:
        score += SCORE_COMBINED
    if q in app and app != q:
        score += SCORE_PARTIAL
    if q in title:
        score += SCORE_PARTIAL

    score += _token_score(q, combined)
    return score


def rank(query: str, windows: Iterable[dict[str, Any] | WindowDescriptor]) -> list[WindowDescriptor]:
    """Windows matching ``query``, best first. Non-matching windows are dropped."""
    normalized = normalize_windows(windows)
    scored = [(score_window(query, w), w) for w in normalized]
    scored = [pair for pair in scored if pair[0] > 0]
    scored.sort(key=lambda pair: -pair[0])
    return [w for _, w in scored]


def resolve_best(query: str, windows: Iterable[dict[str, Any] | WindowDescriptor]) -> WindowDescriptor | None:
    """The single best window for ``query``, or ``None``."""
    ranked = rank(query, windows)
    return ranked[0] if ranked else None


def format_window_list(windows: Iterable[WindowDescriptor]) -> str:
    """Windows grouped by app, for presenting as suggestions."""
    by_app: dict[str, list[WindowDescriptor]] = {}
    for window in windows:
        by_app.setdefault(window.app, []).append(window)

    lines = ["Available windows:"]
    for app, app_windows in by_app.items():
        lines.append("")
        lines.append(f"  {app}:")
        for window in app_windows:
            lines.append(f'    - "{window.title}" (id: {window.id})')
    lines.append("")
    lines.append("You can use any part of the app name or window title as a query.")
    return "\n".join(lines) + "\n"
