"""Options that configure a process dependency.

Options are applied in the order given, exactly once, when the dependency
starts. Options that modify the command (environment, arguments, working
directory, line matching) require with_command to come first.
"""

import os
import signal
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from depstage._protocol import OutputSink
from depstage.exceptions import BuildError, CommandNotConfiguredError, PreCommandError

from ._matcher import LineMatcher
from ._models import CommandSpec, ProcessCheck, ProcessSettings, ProcessStop
from ._strategies import (
    DEFAULT_POLL_INTERVAL,
    no_stop,
    ready_http,
    stop_with_signal,
    wait_for_exit,
)


@dataclass(frozen=True, slots=True)
class ProcessOption:
    """A named mutation of ProcessSettings.

    Attributes:
        name: Identifies the option in OptionApplyError.
        apply: Mutates the settings; raises to abort the start.
    """

    name: str
    apply: Callable[[ProcessSettings], None]

    def __call__(self, settings: ProcessSettings) -> None:
        """Apply the option to the settings."""
        self.apply(settings)


def _require_command(settings: ProcessSettings, option: str) -> CommandSpec:
    if settings.command is None:
        msg = (
            f"command has to be set before {option} can be applied, "
            "check the order of options"
        )
        raise CommandNotConfiguredError(msg)
    return settings.command


def with_command(program: str | os.PathLike[str], *args: str) -> ProcessOption:
    """Set the command to launch, replacing any previous command."""

    def apply(settings: ProcessSettings) -> None:
        settings.command = CommandSpec(argv=[os.fspath(program), *args])

    return ProcessOption("with_command", apply)


def with_command_spec(command: CommandSpec) -> ProcessOption:
    """Use a copy of a fully constructed CommandSpec as the command.

    Later options modify the copy, never the caller's spec.
    """

    def apply(settings: ProcessSettings) -> None:
        env = dict(command.env) if command.env is not None else None
        settings.command = replace(command, argv=list(command.argv), env=env)

    return ProcessOption("with_command_spec", apply)


def with_env_set(env: Mapping[str, str]) -> ProcessOption:
    """Replace the environment of the command.

    By default the command inherits the environment of the current process;
    this option discards it.
    """

    def apply(settings: ProcessSettings) -> None:
        command = _require_command(settings, "with_env_set")
        command.env = dict(env)

    return ProcessOption("with_env_set", apply)


def with_env_append(env: Mapping[str, str]) -> ProcessOption:
    """Add variables to the command's environment.

    Starts from the inherited environment if none was set explicitly.
    """

    def apply(settings: ProcessSettings) -> None:
        command = _require_command(settings, "with_env_append")
        base = command.env if command.env is not None else dict(os.environ)
        command.env = {**base, **env}

    return ProcessOption("with_env_append", apply)


def with_args_set(*args: str) -> ProcessOption:
    """Replace the arguments that follow the program."""

    def apply(settings: ProcessSettings) -> None:
        command = _require_command(settings, "with_args_set")
        command.argv = [command.argv[0], *args]

    return ProcessOption("with_args_set", apply)


def with_args_append(*args: str) -> ProcessOption:
    """Add arguments to the end of the command line."""

    def apply(settings: ProcessSettings) -> None:
        command = _require_command(settings, "with_args_append")
        command.argv = [*command.argv, *args]

    return ProcessOption("with_args_append", apply)


def with_dir(path: str | os.PathLike[str]) -> ProcessOption:
    """Set the working directory of the command."""

    def apply(settings: ProcessSettings) -> None:
        command = _require_command(settings, "with_dir")
        command.cwd = Path(path)

    return ProcessOption("with_dir", apply)


def with_ready_fn(fn: ProcessCheck) -> ProcessOption:
    """Use a custom readiness check.

    The check receives the launched process and should block (or await)
    until the process is ready. Plain functions run in a worker thread and
    cannot be interrupted when the deadline passes; coroutine functions are
    cancelled.
    """

    def apply(settings: ProcessSettings) -> None:
        settings.ready = fn

    return ProcessOption("with_ready_fn", apply)


def with_ready_http(url: str, *, interval: float = DEFAULT_POLL_INTERVAL) -> ProcessOption:
    """Wait for url to answer 200 OK."""

    def apply(settings: ProcessSettings) -> None:
        settings.ready = ready_http(url, interval=interval)

    return ProcessOption("with_ready_http", apply)


def with_wait_matching_line(
    pattern: str,
    *,
    output_sink: OutputSink | None = None,
) -> ProcessOption:
    """Wait for the command to print a line matching the regular expression.

    Args:
        pattern: Regular expression searched for in each stdout line.
        output_sink: Optional sink receiving the output drained after the match.
    """

    def apply(settings: ProcessSettings) -> None:
        settings.ready = LineMatcher(pattern, settings.command, output_sink=output_sink)

    return ProcessOption("with_wait_matching_line", apply)


def with_stop_fn(fn: ProcessStop) -> ProcessOption:
    """Use a custom stop function."""

    def apply(settings: ProcessSettings) -> None:
        settings.stop = fn

    return ProcessOption("with_stop_fn", apply)


def with_stop_signal(
    sig: signal.Signals,
    *,
    kill_after: float | None = None,
) -> ProcessOption:
    """Stop the command with the given signal instead of SIGINT."""

    def apply(settings: ProcessSettings) -> None:
        settings.stop = stop_with_signal(sig, kill_after=kill_after)

    return ProcessOption("with_stop_signal", apply)


def with_ready_timeout(seconds: float | None) -> ProcessOption:
    """Override the default 30 second readiness deadline.

    None disables the deadline.
    """

    def apply(settings: ProcessSettings) -> None:
        settings.ready_timeout = seconds

    return ProcessOption("with_ready_timeout", apply)


def with_wait_exit() -> ProcessOption:
    """Treat successful exit as readiness and skip stopping.

    For commands that finish on their own, such as migrations or seed jobs.
    """

    def apply(settings: ProcessSettings) -> None:
        settings.ready = wait_for_exit
        settings.stop = no_stop

    return ProcessOption("with_wait_exit", apply)


def with_pre_command(
    program: str | os.PathLike[str],
    *args: str,
    cwd: str | os.PathLike[str] | None = None,
    env: Mapping[str, str] | None = None,
) -> ProcessOption:
    """Run a command to completion before the main command starts.

    The whole start fails if the pre-command cannot be launched or exits
    with non-zero status.
    """
    command = CommandSpec(
        argv=[os.fspath(program), *args],
        env=dict(env) if env is not None else None,
        cwd=Path(cwd) if cwd is not None else None,
    )

    def apply(settings: ProcessSettings) -> None:
        try:
            command.run()
        except (OSError, subprocess.CalledProcessError) as e:
            msg = f"pre command '{command.render()}' failed: {e}"
            raise PreCommandError(msg, command=command.render(), cause=e) from e

    return ProcessOption("with_pre_command", apply)


def with_built_executable(
    build: Callable[[], str | os.PathLike[str]],
    *args: str,
) -> ProcessOption:
    """Build an executable and use it as the command.

    Args:
        build: Blocking function that builds the program and returns the
            path of the resulting executable.
        *args: Arguments for the built executable.
    """

    def apply(settings: ProcessSettings) -> None:
        try:
            executable = build()
        except Exception as e:
            msg = f"failed to build executable: {e}"
            raise BuildError(msg, cause=e) from e
        settings.command = CommandSpec(argv=[os.fspath(executable), *args])

    return ProcessOption("with_built_executable", apply)
