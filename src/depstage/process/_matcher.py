"""Readiness by matching a line of process output.

The matcher takes over the process's standard output. Once a line matches,
a daemon thread keeps reading the rest of the stream so the process never
blocks on a full pipe. That thread is not tracked or joined by anyone; it
ends when the process closes its output, and closes the stream behind it.
"""

import contextlib
import re
import threading
from enum import StrEnum
from typing import IO, final

from depstage._protocol import OutputSink
from depstage.exceptions import (
    CommandNotConfiguredError,
    InvalidPatternError,
    NoMatchingLineError,
    OutputPipeError,
)

from ._models import CommandSpec, Process


class MatcherState(StrEnum):
    """One-shot matcher states.

    - ARMED: Waiting for a matching line
    - MATCHED: A line matched, the drain thread owns the stream
    - EXHAUSTED: The stream closed without a match
    """

    ARMED = "armed"
    MATCHED = "matched"
    EXHAUSTED = "exhausted"


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


@final
class LineMatcher:
    """Readiness check that waits for an output line matching a pattern.

    Construct it while options are applied, then call it with the launched
    process. Lines are searched with re.search semantics. No limit is
    placed on line length or output volume.

    Attributes:
        pattern: The compiled pattern.
        state: Current one-shot state.
    """

    __slots__ = ("_drain_thread", "_sink", "_source", "pattern", "state")

    def __init__(
        self,
        pattern: str,
        command: CommandSpec | None,
        *,
        output_sink: OutputSink | None = None,
    ) -> None:
        """Compile the pattern and redirect the command's output.

        Args:
            pattern: Regular expression to search each line for.
            command: The configured command. Must already be set.
            output_sink: Optional sink receiving drained lines after the match.

        Raises:
            InvalidPatternError: If the pattern does not compile.
            CommandNotConfiguredError: If no command is configured yet.
        """
        try:
            self.pattern: re.Pattern[str] = re.compile(pattern)
        except re.error as e:
            msg = f"bad regular expression for matching line: {e}"
            raise InvalidPatternError(msg, pattern=pattern) from e

        if command is None:
            msg = (
                "command has to be set before line matching can be configured, "
                "check the order of options"
            )
            raise CommandNotConfiguredError(msg)

        command.capture_stdout = True
        self.state = MatcherState.ARMED
        self._source = command.program
        self._sink = output_sink
        self._drain_thread: threading.Thread | None = None

    def __call__(self, process: Process | None) -> None:
        """Block until a line matches.

        Args:
            process: The launched process.

        Raises:
            OutputPipeError: If the process has no captured stdout.
            NoMatchingLineError: If the stream closes before a match.
        """
        if self.state is MatcherState.MATCHED:
            return
        if self.state is MatcherState.EXHAUSTED:
            msg = "no matching line found"
            raise NoMatchingLineError(msg, pattern=self.pattern.pattern)

        stream = process.stdout if process is not None else None
        if stream is None:
            msg = "failed to acquire output pipe for command"
            raise OutputPipeError(msg)

        scan_error: Exception | None = None
        try:
            for raw_line in stream:
                if self.pattern.search(_decode(raw_line)):
                    self.state = MatcherState.MATCHED
                    self._start_drain(stream, process.pid)
                    return
        except (OSError, ValueError) as e:
            # ValueError is raised when the pipe was closed under us
            scan_error = e

        self.state = MatcherState.EXHAUSTED
        with contextlib.suppress(OSError):
            stream.close()
        msg = "no matching line found"
        if scan_error is not None:
            msg = f"{msg}: {scan_error}"
        raise NoMatchingLineError(
            msg, pattern=self.pattern.pattern, cause=scan_error
        ) from scan_error

    def _start_drain(self, stream: IO[bytes], pid: int) -> None:
        self._drain_thread = threading.Thread(
            target=self._drain,
            args=(stream, pid),
            name=f"depstage-drain-{pid}",
            daemon=True,
        )
        self._drain_thread.start()

    def _drain(self, stream: IO[bytes], pid: int) -> None:
        # The process is going away when reads fail; nothing left to report
        with contextlib.suppress(OSError, ValueError):
            try:
                for raw_line in stream:
                    if self._sink is None:
                        continue
                    try:  # noqa: SIM105
                        self._sink.write_line(self._source, pid, _decode(raw_line))
                    except Exception:  # noqa: BLE001, S110
                        # Output sink errors should not stop draining
                        pass
            finally:
                stream.close()
