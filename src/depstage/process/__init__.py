"""Process dependencies.

This package runs an OS process as a test dependency: launch it, wait until
it is ready, and stop it with a signal.

Key Components:
    - ProcessDependency: Lifecycle of a single process
    - ProcessOption and the with_* constructors: Ordered configuration
    - LineMatcher: Readiness by matching a line of output
    - stop_with_signal, wait_for_exit, ready_http: Stop and readiness strategies

Example:
    >>> from depstage.process import ProcessDependency, with_command, with_wait_matching_line
    >>> db = ProcessDependency(
    ...     with_command("postgres", "-D", "/tmp/pgdata"),
    ...     with_wait_matching_line("ready to accept connections"),
    ... )
"""

from ._matcher import LineMatcher, MatcherState
from ._models import CommandSpec, Process, ProcessCheck, ProcessSettings, ProcessStop
from ._options import (
    ProcessOption,
    with_args_append,
    with_args_set,
    with_built_executable,
    with_command,
    with_command_spec,
    with_dir,
    with_env_append,
    with_env_set,
    with_pre_command,
    with_ready_fn,
    with_ready_http,
    with_ready_timeout,
    with_stop_fn,
    with_stop_signal,
    with_wait_exit,
    with_wait_matching_line,
)
from ._process import ProcessDependency
from ._strategies import no_stop, ready_http, stop_with_signal, wait_for_exit

__all__ = [
    "CommandSpec",
    "LineMatcher",
    "MatcherState",
    "Process",
    "ProcessCheck",
    "ProcessDependency",
    "ProcessOption",
    "ProcessSettings",
    "ProcessStop",
    "no_stop",
    "ready_http",
    "stop_with_signal",
    "wait_for_exit",
    "with_args_append",
    "with_args_set",
    "with_built_executable",
    "with_command",
    "with_command_spec",
    "with_dir",
    "with_env_append",
    "with_env_set",
    "with_pre_command",
    "with_ready_fn",
    "with_ready_http",
    "with_ready_timeout",
    "with_stop_fn",
    "with_stop_signal",
    "with_wait_exit",
    "with_wait_matching_line",
]
