"""Extraction session: drives the native extractor and classifies its failures."""

from __future__ import annotations

from typing import Callable

from loguru import logger

from axgrab import protocol
from axgrab._base import ExtractorProcess, RunOutput, SubprocessExtractor
from axgrab._extractor import get_executable
from axgrab._types import ExtractionResult, FullScreenshotResult, Point, Rect, WindowDescriptor
from axgrab.errors import (
    AxgrabError,
    MalformedResponse,
    NotFound,
    PermissionDenied,
    ProcessFailure,
)
from axgrab.protocol import ErrorEnvelope, NotFoundEnvelope, PermissionEnvelope
from axgrab.tree import MAX_DEPTH, assign_ids
from axgrab.windows import format_window_list, rank

PERMISSION_INSTRUCTIONS = """
Accessibility permissions needed!

System Settings has been opened to the Accessibility page.

Please follow these steps:
  1. Find your terminal app in the list (Terminal, iTerm2, VS Code, etc.)
  2. Toggle the checkbox to enable accessibility
  3. You may need to restart your terminal app
"""


def prompt_for_permission(message: str) -> None:
    """Print remediation steps and block until the user presses Enter."""
    print(PERMISSION_INSTRUCTIONS)
    input("Press Enter when ready to retry...")


class Session:
    """One caller's view of the extractor.

    Every operation spawns one extractor process and blocks until it
    exits. Only ``extract`` retries, once, after a permission failure and
    only when a ``confirm`` callback is set; pass ``confirm=None`` in
    unattended contexts so a permission failure is terminal.
    """

    def __init__(
        self,
        extractor: ExtractorProcess | None = None,
        *,
        confirm: Callable[[str], None] | None = prompt_for_permission,
        max_depth: int = MAX_DEPTH,
    ) -> None:
        self._extractor = extractor
        self.confirm = confirm
        self.max_depth = max_depth

    @property
    def extractor(self) -> ExtractorProcess:
        if self._extractor is None:
            self._extractor = SubprocessExtractor(get_executable())
        return self._extractor

    # ---- dispatch --------------------------------------------------------

    def _dispatch(self, args: list[str]) -> RunOutput:
        return self.extractor.run(args)

    @staticmethod
    def _raise_for_envelope(envelope: ErrorEnvelope) -> None:
        if isinstance(envelope, PermissionEnvelope):
            raise PermissionDenied(envelope.message)
        if isinstance(envelope, NotFoundEnvelope):
            raise NotFound(envelope.message, envelope.windows)
        raise ProcessFailure(envelope.message)

    def _request(self, args: list[str]) -> dict:
        """Run once and return the parsed success body or raise."""
        out = self._dispatch(args)
        if out.returncode != 0:
            envelope = protocol.parse_error_envelope(out.stdout)
            if envelope is not None:
                try:
                    self._raise_for_envelope(envelope)
                except ProcessFailure as e:
                    e.returncode = out.returncode
                    e.output = out.stdout
                    raise
            raise ProcessFailure(
                f"Process exited with code {out.returncode}: {out.combined}",
                returncode=out.returncode,
                output=out.combined,
            )
        return protocol.parse_body(out.stdout)

    # ---- operations ------------------------------------------------------

    def list(self) -> list[WindowDescriptor]:
        """Enumerate visible windows; missing ids are synthesized."""
        body = self._request(protocol.list_args())
        return protocol.parse_window_list(body)

    def extract(self, target: str, *, by_id: bool = False,
                auto_retry: bool = True) -> ExtractionResult:
        """Extract geometry, addressed tree and screenshot of one window.

        ``target`` is a free-text query, or a window id when ``by_id``.

        Raises:
            NotFound: No window matched; ``windows`` lists the candidates.
            PermissionDenied: Accessibility access is not granted (after
                the one interactive retry, if it was allowed).
            ProcessFailure: Non-zero exit with a generic or unparseable body.
            MalformedResponse: Zero exit but an invalid or erroring body.
        """
        args = protocol.extract_args(target, by_id=by_id)
        try:
            body = self._request(args)
        except PermissionDenied as e:
            if not auto_retry or self.confirm is None:
                raise
            logger.warning("Accessibility permission needed: {}", e)
            self.confirm(str(e))
            try:
                return self.extract(target, by_id=by_id, auto_retry=False)
            except AxgrabError as retry_error:
                raise PermissionDenied(
                    f"Still unable to access accessibility API: {retry_error}",
                    retry_error=retry_error,
                ) from retry_error

        raw = protocol.parse_extraction(body)
        tree = assign_ids(raw.tree, max_depth=self.max_depth)
        logger.debug("Extracted window {} ({} bytes of screenshot)",
                     raw.window, len(raw.screenshot))
        return ExtractionResult(window=raw.window, tree=tree, screenshot=raw.screenshot)

    def extract_best(self, query: str) -> tuple[WindowDescriptor, ExtractionResult]:
        """Rank the window list against ``query`` and extract the best match by id.

        Raises:
            NotFound: Nothing scored above zero; carries the full window list.
        """
        windows = self.list()
        ranked = rank(query, windows)
        if not ranked:
            raise NotFound(f"No window matching '{query}'", windows)
        best = ranked[0]
        logger.info('Resolved "{}" to {} "{}" ({})', query, best.app, best.title, best.id)
        return best, self.extract(best.id, by_id=True)

    def focus(self, target: str, *, by_id: bool = True) -> bool:
        """Raise and activate a window. Best-effort: False on any failure."""
        try:
            out = self._dispatch(protocol.focus_args(target, by_id=by_id))
        except AxgrabError as e:
            logger.warning("Focus of {} failed: {}", target, e)
            return False
        if out.returncode != 0:
            return False
        try:
            return protocol.parse_body(out.stdout).get("success") is True
        except MalformedResponse:
            return False

    def capture_display(self, rect: Rect) -> FullScreenshotResult:
        """Capture the whole monitor containing ``rect``'s center."""
        body = self._request(protocol.screenshot_for_rect_args(rect))
        return protocol.parse_display_capture(body)

    def capture_primary_display(self) -> FullScreenshotResult:
        """Capture the primary monitor."""
        body = self._request(protocol.full_screenshot_args())
        return protocol.parse_display_capture(body)

    def click_at(self, point: Point) -> None:
        """Left-click at a global screen point.

        The extractor picks the owning monitor and flips Y for the event
        system, so ``point`` is passed through untouched.
        """
        body = self._request(protocol.click_args(*point))
        if body.get("success") is not True:
            raise MalformedResponse(f"Click at {point} did not report success")


def describe_not_found(error: NotFound) -> str:
    """Error text plus the candidate list, for terminal output."""
    if not error.windows:
        return str(error)
    return f"{error}\n\n{format_window_list(error.windows)}"
