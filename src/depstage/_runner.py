"""Lifecycle runner for ordered test dependencies.

This module provides the Runner class that starts dependencies one at a
time, waiting for each to become ready before starting the next, and tears
them down in reverse order.
"""

from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import NoReturn, Self, final

import anyio
from structlog.typing import FilteringBoundLogger

from depstage.exceptions import RunnerStartError, RunnerStopError
from depstage.utils import get_default_logger

from ._models import DependencyEvent, DependencyEventType, RunnerState
from ._protocol import Dependency, OutputSink, dependency_name


def _get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


def _join_errors(message: str, errors: list[Exception]) -> Exception:
    """Combine failures into a single exception.

    A single failure is returned unchanged; several become an ExceptionGroup.
    """
    if len(errors) == 1:
        return errors[0]
    return ExceptionGroup(message, errors)


@final
class Runner:
    """Starts dependencies in order and stops them in reverse order.

    Dependency i+1 is never started before dependency i is ready. A
    dependency is recorded for teardown before its start is attempted, so
    stop tears down everything whose start was attempted, including the one
    that failed. Always call stop after start, even when start raised, or use
    the runner as an async context manager.

    Example:
        >>> async with Runner(database, api) as runner:
        ...     await exercise(api)
    """

    __slots__ = (
        "_dependencies",
        "_events",
        "_logger",
        "_output_sink",
        "_state",
        "_stoppables",
    )

    def __init__(
        self,
        *dependencies: Dependency,
        logger: FilteringBoundLogger | None = None,
        output_sink: OutputSink | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            *dependencies: Dependencies in start order.
            logger: Logger for lifecycle transitions. Uses the shared stderr
                logger if None.
            output_sink: Optional sink that receives lifecycle events.
        """
        self._dependencies: tuple[Dependency, ...] = dependencies
        self._stoppables: list[Dependency] = []
        self._events: list[DependencyEvent] = []
        self._state = RunnerState.IDLE
        self._logger: FilteringBoundLogger = logger or get_default_logger()
        self._output_sink = output_sink

    @property
    def dependencies(self) -> tuple[Dependency, ...]:
        """Return the dependencies in configured start order."""
        return self._dependencies

    @property
    def started(self) -> tuple[Dependency, ...]:
        """Return the dependencies awaiting teardown, in start order."""
        return tuple(self._stoppables)

    @property
    def state(self) -> RunnerState:
        """Return the current runner state."""
        return self._state

    @property
    def events(self) -> tuple[DependencyEvent, ...]:
        """Return every lifecycle event recorded so far."""
        return tuple(self._events)

    def _emit(
        self,
        dependency: str,
        event_type: DependencyEventType,
        message: str | None = None,
    ) -> None:
        event = DependencyEvent(
            dependency=dependency,
            event_type=event_type,
            timestamp=_get_timestamp(),
            message=message,
        )
        self._events.append(event)
        if self._output_sink is None:
            return
        try:  # noqa: SIM105
            self._output_sink.write_event(event)
        except Exception:  # noqa: BLE001, S110
            # Output sink errors should not break the lifecycle
            pass

    async def start(self) -> None:
        """Start every dependency in order, waiting for each to be ready.

        Raises:
            RunnerStartError: If a dependency fails to start or become ready.
                No further dependencies are started.
        """
        self._state = RunnerState.RUNNING

        for dependency in self._dependencies:
            name = dependency_name(dependency)
            self._stoppables.append(dependency)
            self._emit(name, DependencyEventType.STARTING)
            self._logger.debug("dependency_starting", dependency=name)

            try:
                await dependency.start()
            except Exception as e:
                self._fail_start(name, "start", e)
            self._emit(name, DependencyEventType.STARTED)

            try:
                await dependency.ready()
            except Exception as e:
                self._fail_start(name, "ready", e)
            self._emit(name, DependencyEventType.READY)
            self._logger.info("dependency_ready", dependency=name)

        self._state = RunnerState.SUCCEEDED

    def _fail_start(self, name: str, phase: str, cause: Exception) -> NoReturn:
        self._state = RunnerState.FAILED
        self._emit(name, DependencyEventType.FAILED, f"{phase}: {cause}")
        self._logger.error(
            "dependency_start_failed",
            dependency=name,
            phase=phase,
            error=str(cause),
        )
        msg = f"failed to start test dependencies: {name} {phase} failed: {cause}"
        raise RunnerStartError(msg, dependency=name, phase=phase, cause=cause) from cause

    async def stop(self) -> None:
        """Stop every started dependency in reverse start order.

        Every dependency is stopped even if an earlier stop fails. Calling
        stop again afterwards is a no-op.

        Raises:
            RunnerStopError: If any dependency failed to stop. Carries every
                failure, chained from an ExceptionGroup of them.
        """
        self._state = RunnerState.STOPPING
        errors: list[Exception] = []

        for dependency in reversed(self._stoppables):
            name = dependency_name(dependency)
            self._emit(name, DependencyEventType.STOPPING)

            try:
                await dependency.stop()
            except Exception as e:  # noqa: BLE001
                errors.append(e)
                self._emit(name, DependencyEventType.FAILED, f"stop: {e}")
                self._logger.error("dependency_stop_failed", dependency=name, error=str(e))
            else:
                self._emit(name, DependencyEventType.STOPPED)
                self._logger.debug("dependency_stopped", dependency=name)

        self._stoppables.clear()
        self._state = RunnerState.STOPPED

        if errors:
            details = "; ".join(str(e) for e in errors)
            msg = f"failed to stop test dependencies: {details}"
            group = ExceptionGroup("dependency stop failures", errors)
            raise RunnerStopError(msg, errors=errors) from group

    async def __aenter__(self) -> Self:
        """Start all dependencies, tearing down again if that fails.

        Teardown also runs when start is cancelled or interrupted; the
        cancellation is re-raised afterwards.
        """
        try:
            await self.start()
        except BaseException as start_error:
            try:
                with anyio.CancelScope(shield=True):
                    await self.stop()
            except RunnerStopError as stop_error:
                if not isinstance(start_error, Exception):
                    raise start_error from stop_error
                msg = "test dependencies failed to start and to stop"
                raise ExceptionGroup(msg, [start_error, stop_error]) from None
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop all started dependencies, joining failures with the body's."""
        try:
            with anyio.CancelScope(shield=True):
                await self.stop()
        except RunnerStopError as stop_error:
            if isinstance(exc_val, Exception):
                msg = "test run failed and dependencies failed to stop"
                raise ExceptionGroup(msg, [exc_val, stop_error]) from None
            raise


async def run(
    *dependencies: Dependency,
    body: Callable[[], Awaitable[object]] | None = None,
    logger: FilteringBoundLogger | None = None,
    output_sink: OutputSink | None = None,
) -> None:
    """Run a test body with dependencies started around it.

    Starts the dependencies, awaits the body, then stops the dependencies.
    Teardown always runs. Failures from start or the body are joined with
    teardown failures.

    Args:
        *dependencies: Dependencies in start order.
        body: The test body. Skipped if start fails.
        logger: Logger for lifecycle transitions.
        output_sink: Optional sink that receives lifecycle events.

    Raises:
        RunnerStartError: If a dependency failed to start.
        RunnerStopError: If teardown failed.
        ExceptionGroup: If more than one of the above (or the body) failed.
    """
    runner = Runner(*dependencies, logger=logger, output_sink=output_sink)
    errors: list[Exception] = []

    try:
        await runner.start()
        if body is not None:
            _ = await body()
    except Exception as e:  # noqa: BLE001
        errors.append(e)
    finally:
        # Runs on cancellation too
        try:
            with anyio.CancelScope(shield=True):
                await runner.stop()
        except RunnerStopError as e:
            errors.append(e)

    if errors:
        raise _join_errors("test run failed", errors)
