"""Error taxonomy for window extraction and element actions.

Lookups (window ranking, node resolution) return ``None`` or an empty
list when nothing matches; the session and action layers decide what is
an error and raise one of the types below.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from axgrab._types import WindowDescriptor


class AxgrabError(Exception):
    """Base class for every error raised by axgrab."""


class NotFound(AxgrabError):
    """The window query matched nothing.

    ``windows`` carries the candidate list reported alongside the failure
    so a caller can present suggestions.
    """

    def __init__(self, message: str, windows: list[WindowDescriptor] | None = None):
        super().__init__(message)
        self.windows: list[WindowDescriptor] = list(windows or [])


class PermissionDenied(AxgrabError):
    """The host process is not authorized to read UI state.

    When raised after the single interactive retry, ``retry_error`` holds
    the failure of that retry.
    """

    def __init__(self, message: str, retry_error: Exception | None = None):
        super().__init__(message)
        self.retry_error = retry_error


class ProcessFailure(AxgrabError):
    """The extractor exited non-zero with an unparseable or generic body."""

    def __init__(self, message: str, returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class MalformedResponse(AxgrabError):
    """The extractor exited 0 but its body was invalid JSON or named an error."""


class ExtractorUnavailable(AxgrabError):
    """The extractor executable could not be located or built."""


class NodeNotFound(AxgrabError, LookupError):
    """A node identifier does not resolve against the current tree."""

    def __init__(self, node_id: str):
        super().__init__(
            f'Node with id "{node_id}" not found in accessibility tree '
            f"(ids shift when the window is re-extracted)"
        )
        self.node_id = node_id


class NotClickable(AxgrabError):
    """The resolved node has no position/size to click."""

    def __init__(self, node_id: str):
        super().__init__(
            f"Node {node_id} does not have position/size and cannot be clicked"
        )
        self.node_id = node_id


class InvalidGeometry(AxgrabError, ValueError):
    """A transform was given a window or display with a non-positive span."""
