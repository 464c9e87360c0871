"""Abstract base for the extractor process."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

from loguru import logger

from axgrab.errors import ProcessFailure


@dataclass(frozen=True)
class RunOutput:
    """Everything one extractor invocation produced."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def combined(self) -> str:
        return self.stderr or self.stdout


class ExtractorProcess(ABC):
    """Interface the session uses to talk to the native extractor.

    Each call is one short-lived child process; the caller blocks until it
    exits and all output has been collected.
    """

    @abstractmethod
    def run(self, args: list[str]) -> RunOutput:
        """Invoke the extractor with ``args`` and return its full output.

        Raises:
            ProcessFailure: If the process could not be started at all.
        """
        ...


class SubprocessExtractor(ExtractorProcess):
    """Runs the extractor executable as a child process."""

    def __init__(self, executable: str, *, timeout: float | None = None):
        self.executable = executable
        self.timeout = timeout

    def run(self, args: list[str]) -> RunOutput:
        cmd = [self.executable, *args]
        logger.debug("Running extractor: {}", cmd)
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True, encoding="utf-8", errors="replace",
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProcessFailure(f"Failed to execute accessibility extractor: {e}") from e
        return RunOutput(proc.returncode, proc.stdout, proc.stderr)
