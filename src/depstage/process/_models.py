"""Data models for process dependencies.

This module defines the mutable configuration that process options act on:
- CommandSpec: The command line, environment and working directory
- ProcessSettings: Command plus readiness, stop and timeout settings
"""

import shlex
import subprocess
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from depstage._timeout import DEFAULT_READY_TIMEOUT

type Process = subprocess.Popen[bytes]

# Readiness checks and stop functions receive the launched process, or None
# when nothing was launched. Plain functions run in a worker thread.
type ProcessCheck = (
    Callable[[Process | None], Awaitable[None]] | Callable[[Process | None], None]
)
type ProcessStop = ProcessCheck


@dataclass(slots=True)
class CommandSpec:
    """Description of a command to launch.

    Attributes:
        argv: Program followed by its arguments.
        env: Full environment for the process. None inherits the parent's.
        cwd: Working directory for the process.
        capture_stdout: Pipe standard output back to the parent instead of
            inheriting the parent's stream. Set by line matching.
    """

    argv: list[str]
    env: dict[str, str] | None = None
    cwd: Path | None = None
    capture_stdout: bool = False

    @property
    def program(self) -> str:
        """Return the program name without its directory."""
        return Path(self.argv[0]).name if self.argv else ""

    def render(self) -> str:
        """Return the command line as a shell-quoted string."""
        return shlex.join(self.argv)

    def launch(self) -> Process:
        """Start the command without waiting for it.

        Raises:
            OSError: If the OS cannot create the process.
        """
        return subprocess.Popen(  # noqa: S603
            self.argv,
            env=self.env,
            cwd=self.cwd,
            stdout=subprocess.PIPE if self.capture_stdout else None,
        )

    def run(self) -> None:
        """Run the command to completion.

        Raises:
            OSError: If the OS cannot create the process.
            subprocess.CalledProcessError: If it exits with non-zero status.
        """
        _ = subprocess.run(  # noqa: S603
            self.argv,
            env=self.env,
            cwd=self.cwd,
            check=True,
        )


def _ready_immediately(process: Process | None) -> None:
    """Default readiness check: ready as soon as the process is launched."""


def _default_stop() -> ProcessStop:
    from ._strategies import stop_with_signal  # noqa: PLC0415

    return stop_with_signal()


@dataclass(slots=True)
class ProcessSettings:
    """Mutable settings of a process dependency.

    Options are applied to this struct in order when the dependency starts.

    Attributes:
        command: The command to launch, set by with_command.
        ready: Readiness check, defaults to ready immediately.
        stop: Stop function, defaults to SIGINT then wait for exit.
        ready_timeout: Deadline in seconds for the readiness check.
    """

    command: CommandSpec | None = None
    ready: ProcessCheck = _ready_immediately
    stop: ProcessStop = field(default_factory=_default_stop)
    ready_timeout: float | None = DEFAULT_READY_TIMEOUT
