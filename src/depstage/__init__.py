"""Ordered lifecycle management for external test dependencies.

This package starts the processes and services an integration test needs,
one at a time and each only after the previous one is ready, and tears
them down in reverse order afterwards.

Key Components:
    - Dependency: Protocol every dependency implements
    - Runner: Ordered start and reverse-order stop
    - run: Start, run a test body, stop, joining all failures
    - FnDependency: Dependency built from plain functions
    - wait_ready: Deadline-bound readiness checks
    - ConsoleOutputSink: Console output for events and drained lines
    - process: OS process dependencies and their options
    - config: Declarative TOML configuration

Example:
    >>> from depstage import Runner
    >>> from depstage.process import ProcessDependency, with_command, with_ready_http
    >>> api = ProcessDependency(
    ...     with_command("python", "-m", "http.server", "8000"),
    ...     with_ready_http("http://127.0.0.1:8000/"),
    ... )
    >>> async with Runner(api):
    ...     ...
"""

from ._fn import FnDependency
from ._models import DependencyEvent, DependencyEventType, RunnerState
from ._output import ConsoleOutputSink
from ._protocol import Dependency, OutputSink, dependency_name
from ._runner import Runner, run
from ._timeout import DEFAULT_READY_TIMEOUT, Check, invoke, wait_ready
from .exceptions import (
    DepstageError,
    ReadyTimeoutError,
    RunnerError,
    RunnerStartError,
    RunnerStopError,
)

__all__ = [
    "DEFAULT_READY_TIMEOUT",
    "Check",
    "ConsoleOutputSink",
    "Dependency",
    "DependencyEvent",
    "DependencyEventType",
    "DepstageError",
    "FnDependency",
    "OutputSink",
    "ReadyTimeoutError",
    "Runner",
    "RunnerError",
    "RunnerStartError",
    "RunnerState",
    "RunnerStopError",
    "dependency_name",
    "invoke",
    "run",
    "wait_ready",
]
