"""Process dependency: an OS process with readiness and signal-based stop.

This module provides the ProcessDependency class that launches a command,
waits for it to become ready and stops it again.
"""

import functools
from typing import final

import anyio
import anyio.to_thread
from structlog.typing import FilteringBoundLogger

from depstage._timeout import invoke, wait_ready
from depstage.exceptions import (
    MissingCommandError,
    OptionApplyError,
    ProcessReadyError,
    ProcessStartError,
    ProcessStopError,
)
from depstage.utils import get_default_logger

from ._models import CommandSpec, Process, ProcessSettings
from ._options import ProcessOption


@final
class ProcessDependency:
    """Manages one OS process as a test dependency.

    Options are stored at construction and applied, in order, when start is
    called. Every error raised by start, ready and stop is annotated with the
    rendered command line.

    Example:
        >>> api = ProcessDependency(
        ...     with_command("python", "-m", "http.server", "8000"),
        ...     with_ready_http("http://127.0.0.1:8000/"),
        ...     name="api",
        ... )
    """

    __slots__ = (
        "_logger",
        "_name",
        "_options",
        "_options_applied",
        "_process",
        "settings",
    )

    def __init__(
        self,
        *options: ProcessOption,
        name: str | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the process dependency.

        Args:
            *options: Options applied in order at start.
            name: Display name. Defaults to the program name.
            logger: Logger for process lifecycle. Uses the shared stderr
                logger if None.
        """
        self.settings = ProcessSettings()
        self._options: tuple[ProcessOption, ...] = options
        self._options_applied = False
        self._process: Process | None = None
        self._name = name
        self._logger: FilteringBoundLogger = logger or get_default_logger()

    @property
    def name(self) -> str:
        """Return the display name of this dependency."""
        if self._name:
            return self._name
        command = self.settings.command
        if command is not None and command.argv:
            return command.program
        return "process"

    @property
    def command(self) -> CommandSpec | None:
        """Return the configured command, once options are applied."""
        return self.settings.command

    @property
    def process(self) -> Process | None:
        """Return the launched process, if any."""
        return self._process

    @property
    def pid(self) -> int | None:
        """Return the process ID if launched, None otherwise."""
        return self._process.pid if self._process is not None else None

    def _render(self) -> str:
        command = self.settings.command
        return command.render() if command is not None else "<no command>"

    def _apply_options(self) -> None:
        for option in self._options:
            try:
                option(self.settings)
            except Exception as e:
                msg = f"failed to apply option {option.name}: {e}"
                raise OptionApplyError(msg, option=option.name, cause=e) from e
        self._options_applied = True

    async def start(self) -> None:
        """Apply the options and launch the command.

        Returns once the process exists; does not wait for readiness.
        Does nothing if the process was already launched.

        Raises:
            OptionApplyError: If an option fails to apply.
            MissingCommandError: If no option set a command.
            ProcessStartError: If the OS cannot create the process.
        """
        if self._process is not None:
            return

        if not self._options_applied:
            # Pre-commands and builds block
            await anyio.to_thread.run_sync(self._apply_options)

        command = self.settings.command
        if command is None:
            msg = "missing command"
            raise MissingCommandError(msg)

        rendered = command.render()
        try:
            self._process = command.launch()
        except OSError as e:
            msg = f"cmd '{rendered}' failed to start command: {e}"
            raise ProcessStartError(msg, command=rendered, cause=e) from e

        self._logger.info(
            "process_started",
            dependency=self.name,
            command=rendered,
            pid=self._process.pid,
        )

    async def ready(self) -> None:
        """Wait for the readiness check to pass within the ready timeout.

        Raises:
            ProcessReadyError: If the check fails or the deadline passes.
        """
        check = functools.partial(self.settings.ready, self._process)
        try:
            await wait_ready(check, timeout=self.settings.ready_timeout)
        except Exception as e:
            rendered = self._render()
            msg = f"cmd '{rendered}' failed to verify readiness: {e}"
            raise ProcessReadyError(msg, command=rendered, cause=e) from e

        self._logger.debug("process_ready", dependency=self.name, pid=self.pid)

    async def stop(self) -> None:
        """Run the stop function and wait for it to finish.

        Raises:
            ProcessStopError: If the process does not stop cleanly.
        """
        try:
            await invoke(functools.partial(self.settings.stop, self._process))
        except Exception as e:
            rendered = self._render()
            msg = f"cmd '{rendered}' didn't stop successfully: {e}"
            raise ProcessStopError(msg, command=rendered, cause=e) from e

        returncode = self._process.returncode if self._process is not None else None
        self._logger.debug(
            "process_stopped",
            dependency=self.name,
            pid=self.pid,
            returncode=returncode,
        )
