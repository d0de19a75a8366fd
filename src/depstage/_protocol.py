"""Protocol definitions for depstage.

This module defines the interfaces that decouple the runner from the
dependencies it drives and from output presentation:
- Dependency: Protocol every dependency kind implements
- OutputSink: Protocol for consuming process output and lifecycle events
"""

from typing import Protocol, runtime_checkable

from ._models import DependencyEvent


@runtime_checkable
class Dependency(Protocol):
    """Protocol for external test dependencies.

    Processes, containers, compose stacks and synthetic function triples
    all satisfy this contract. The runner calls start, then ready, and
    later stop, each at most once.
    """

    async def start(self) -> None:
        """Initiate the dependency.

        Must return promptly once the dependency has been initiated and must
        not assume it is usable yet.
        """
        ...

    async def ready(self) -> None:
        """Block until the dependency is usable or has decisively failed."""
        ...

    async def stop(self) -> None:
        """Block until the dependency is fully torn down."""
        ...


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming process output lines and lifecycle events.

    Methods are synchronous because output is drained on background
    threads. Implementations should not raise; callers ignore sink errors.
    """

    def write_line(self, source: str, pid: int, line: str) -> None:
        """Write a line of process output.

        Args:
            source: Name of the dependency that produced the output.
            pid: Process ID of the producer.
            line: The output line (without trailing newline).
        """
        ...

    def write_event(self, event: DependencyEvent) -> None:
        """Write a dependency lifecycle event.

        Args:
            event: The lifecycle event to record.
        """
        ...


def dependency_name(dependency: object) -> str:
    """Return a display name for a dependency.

    Uses the dependency's ``name`` attribute when it is a non-empty string,
    otherwise the class name.
    """
    name = getattr(dependency, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(dependency).__name__
