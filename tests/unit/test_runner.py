"""Tests for depstage._runner module."""

import anyio
import pytest

from depstage import (
    DependencyEventType,
    FnDependency,
    Runner,
    RunnerStartError,
    RunnerState,
    RunnerStopError,
    run,
)
from tests.conftest import RecordingDependency, RecordingSink

pytestmark = pytest.mark.anyio


class HangingReadyDependency(RecordingDependency):
    """Dependency whose ready never returns."""

    async def ready(self) -> None:
        self.calls.append(f"{self.name}.ready")
        await anyio.sleep_forever()


class TestRunnerStart:
    async def test_starts_in_order_waiting_for_ready(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls)
        b = RecordingDependency("b", calls)
        c = RecordingDependency("c", calls)
        runner = Runner(a, b, c)

        await runner.start()

        assert calls == ["a.start", "a.ready", "b.start", "b.ready", "c.start", "c.ready"]
        assert runner.started == (a, b, c)
        assert runner.state is RunnerState.SUCCEEDED

    async def test_empty_runner_succeeds(self) -> None:
        runner = Runner()

        await runner.start()
        await runner.stop()

        assert runner.state is RunnerState.STOPPED

    async def test_start_failure_aborts_and_records_failing_dependency(
        self, calls: list[str]
    ) -> None:
        boom = RuntimeError("boom")
        a = RecordingDependency("a", calls)
        b = RecordingDependency("b", calls, start_error=boom)
        c = RecordingDependency("c", calls)
        runner = Runner(a, b, c)

        with pytest.raises(RunnerStartError) as exc_info:
            await runner.start()

        error = exc_info.value
        assert error.dependency == "b"
        assert error.phase == "start"
        assert error.cause is boom
        assert error.__cause__ is boom
        assert "b start failed: boom" in str(error)
        assert calls == ["a.start", "a.ready", "b.start"]
        assert runner.started == (a, b)
        assert runner.state is RunnerState.FAILED

    async def test_ready_failure_reports_ready_phase(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls)
        b = RecordingDependency("b", calls, ready_error=ValueError("not ready"))
        c = RecordingDependency("c", calls)
        runner = Runner(a, b, c)

        with pytest.raises(RunnerStartError) as exc_info:
            await runner.start()

        assert exc_info.value.phase == "ready"
        assert runner.started == (a, b)

        await runner.stop()

        assert calls == ["a.start", "a.ready", "b.start", "b.ready", "b.stop", "a.stop"]
        assert "c.start" not in calls


class TestRunnerStop:
    async def test_stops_in_reverse_order(self, calls: list[str]) -> None:
        deps = [RecordingDependency(name, calls) for name in ("a", "b", "c")]
        runner = Runner(*deps)
        await runner.start()
        calls.clear()

        await runner.stop()

        assert calls == ["c.stop", "b.stop", "a.stop"]
        assert runner.started == ()

    async def test_stop_collects_every_error(self, calls: list[str]) -> None:
        first = RuntimeError("c broke")
        second = RuntimeError("a broke")
        a = RecordingDependency("a", calls, stop_error=second)
        b = RecordingDependency("b", calls)
        c = RecordingDependency("c", calls, stop_error=first)
        runner = Runner(a, b, c)
        await runner.start()

        with pytest.raises(RunnerStopError) as exc_info:
            await runner.stop()

        error = exc_info.value
        assert error.errors == (first, second)
        assert isinstance(error.__cause__, ExceptionGroup)
        assert list(error.__cause__.exceptions) == [first, second]
        assert "c broke" in str(error)
        assert "a broke" in str(error)
        assert calls[-3:] == ["c.stop", "b.stop", "a.stop"]

    async def test_second_stop_is_noop(self, calls: list[str]) -> None:
        runner = Runner(RecordingDependency("a", calls))
        await runner.start()
        await runner.stop()
        calls.clear()

        await runner.stop()

        assert calls == []

    async def test_stop_without_start_does_nothing(self, calls: list[str]) -> None:
        runner = Runner(RecordingDependency("a", calls))

        await runner.stop()

        assert calls == []


class TestRunnerEvents:
    async def test_records_lifecycle_events(self, calls: list[str]) -> None:
        runner = Runner(RecordingDependency("a", calls))

        await runner.start()
        await runner.stop()

        assert [e.event_type for e in runner.events] == [
            DependencyEventType.STARTING,
            DependencyEventType.STARTED,
            DependencyEventType.READY,
            DependencyEventType.STOPPING,
            DependencyEventType.STOPPED,
        ]
        assert all(e.dependency == "a" for e in runner.events)
        assert all(e.timestamp for e in runner.events)

    async def test_forwards_events_to_sink(
        self, calls: list[str], sink: RecordingSink
    ) -> None:
        runner = Runner(
            RecordingDependency("a", calls, ready_error=RuntimeError("nope")),
            output_sink=sink,
        )

        with pytest.raises(RunnerStartError):
            await runner.start()

        assert sink.events == list(runner.events)
        assert sink.events[-1].event_type is DependencyEventType.FAILED
        assert sink.events[-1].message == "ready: nope"

    async def test_sink_errors_do_not_break_lifecycle(self, calls: list[str]) -> None:
        class BrokenSink:
            def write_line(self, source: str, pid: int, line: str) -> None:
                raise OSError("closed")

            def write_event(self, event: object) -> None:
                raise OSError("closed")

        runner = Runner(RecordingDependency("a", calls), output_sink=BrokenSink())

        await runner.start()
        await runner.stop()

        assert calls == ["a.start", "a.ready", "a.stop"]

    async def test_unnamed_dependency_uses_class_name(self) -> None:
        class Database:
            async def start(self) -> None:
                pass

            async def ready(self) -> None:
                pass

            async def stop(self) -> None:
                pass

        runner = Runner(Database())

        await runner.start()

        assert runner.events[0].dependency == "Database"


class TestRunnerContextManager:
    async def test_starts_and_stops_around_body(self, calls: list[str]) -> None:
        async with Runner(RecordingDependency("a", calls)) as runner:
            calls.append("body")
            assert runner.state is RunnerState.SUCCEEDED

        assert calls == ["a.start", "a.ready", "body", "a.stop"]

    async def test_stops_when_start_fails(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls)
        b = RecordingDependency("b", calls, start_error=RuntimeError("boom"))

        with pytest.raises(RunnerStartError):
            async with Runner(a, b):
                calls.append("body")

        assert calls == ["a.start", "a.ready", "b.start", "b.stop", "a.stop"]

    async def test_joins_start_and_stop_failures(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls, stop_error=RuntimeError("stuck"))
        b = RecordingDependency("b", calls, start_error=RuntimeError("boom"))

        with pytest.raises(ExceptionGroup) as exc_info:
            async with Runner(a, b):
                pass

        kinds = [type(e) for e in exc_info.value.exceptions]
        assert kinds == [RunnerStartError, RunnerStopError]

    async def test_body_error_propagates_after_stop(self, calls: list[str]) -> None:
        with pytest.raises(KeyError):
            async with Runner(RecordingDependency("a", calls)):
                raise KeyError("body")

        assert calls[-1] == "a.stop"

    async def test_joins_body_and_stop_failures(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls, stop_error=RuntimeError("stuck"))

        with pytest.raises(ExceptionGroup) as exc_info:
            async with Runner(a):
                raise KeyError("body")

        kinds = [type(e) for e in exc_info.value.exceptions]
        assert kinds == [KeyError, RunnerStopError]

    async def test_stops_when_start_is_cancelled(self, calls: list[str]) -> None:
        a = RecordingDependency("a", calls)
        b = HangingReadyDependency("b", calls)

        with anyio.move_on_after(0.2) as scope:
            async with Runner(a, b):
                calls.append("body")

        assert scope.cancelled_caught
        assert calls == ["a.start", "a.ready", "b.start", "b.ready", "b.stop", "a.stop"]

    async def test_cancelled_start_with_stop_failure_stays_cancelled(
        self, calls: list[str]
    ) -> None:
        a = RecordingDependency("a", calls, stop_error=RuntimeError("stuck"))
        b = HangingReadyDependency("b", calls)

        with anyio.move_on_after(0.2) as scope:
            async with Runner(a, b):
                calls.append("body")

        assert scope.cancelled_caught
        assert calls[-2:] == ["b.stop", "a.stop"]

    async def test_stops_when_body_is_cancelled(self, calls: list[str]) -> None:
        with anyio.move_on_after(0.2) as scope:
            async with Runner(RecordingDependency("a", calls)):
                await anyio.sleep_forever()

        assert scope.cancelled_caught
        assert calls == ["a.start", "a.ready", "a.stop"]


class TestRun:
    async def test_runs_body_between_start_and_stop(self, calls: list[str]) -> None:
        async def body() -> None:
            calls.append("body")

        await run(RecordingDependency("a", calls), body=body)

        assert calls == ["a.start", "a.ready", "body", "a.stop"]

    async def test_skips_body_when_start_fails(self, calls: list[str]) -> None:
        async def body() -> None:
            calls.append("body")

        with pytest.raises(RunnerStartError):
            await run(
                RecordingDependency("a", calls, start_error=RuntimeError("boom")),
                body=body,
            )

        assert calls == ["a.start", "a.stop"]

    async def test_single_failure_raised_unwrapped(self, calls: list[str]) -> None:
        async def body() -> None:
            raise ValueError("assertion in body")

        with pytest.raises(ValueError, match="assertion in body"):
            await run(RecordingDependency("a", calls), body=body)

        assert calls[-1] == "a.stop"

    async def test_joins_body_and_teardown_failures(self, calls: list[str]) -> None:
        async def body() -> None:
            raise ValueError("assertion in body")

        with pytest.raises(ExceptionGroup) as exc_info:
            await run(
                RecordingDependency("a", calls, stop_error=RuntimeError("stuck")),
                body=body,
            )

        kinds = [type(e) for e in exc_info.value.exceptions]
        assert kinds == [ValueError, RunnerStopError]

    async def test_stops_when_body_is_cancelled(self, calls: list[str]) -> None:
        with anyio.move_on_after(0.2) as scope:
            await run(RecordingDependency("a", calls), body=anyio.sleep_forever)

        assert scope.cancelled_caught
        assert calls == ["a.start", "a.ready", "a.stop"]

    async def test_stops_when_start_is_cancelled(self, calls: list[str]) -> None:
        body_calls: list[str] = []

        async def body() -> None:
            body_calls.append("body")

        with anyio.move_on_after(0.2) as scope:
            await run(
                RecordingDependency("a", calls),
                HangingReadyDependency("b", calls),
                body=body,
            )

        assert scope.cancelled_caught
        assert body_calls == []
        assert calls[-2:] == ["b.stop", "a.stop"]

    async def test_works_with_function_dependencies(self) -> None:
        events: list[str] = []

        await run(
            FnDependency(
                start_fn=lambda: events.append("start"),
                stop_fn=lambda: events.append("stop"),
            ),
        )

        assert events == ["start", "stop"]
