"""Shared test fixtures for depstage tests."""

import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from depstage import DependencyEvent


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@dataclass
class RecordingDependency:
    """Dependency that records its lifecycle calls into a shared log.

    Each phase raises the configured exception, if any, after recording
    the call.
    """

    name: str
    calls: list[str]
    start_error: Exception | None = None
    ready_error: Exception | None = None
    stop_error: Exception | None = None

    async def start(self) -> None:
        self.calls.append(f"{self.name}.start")
        if self.start_error is not None:
            raise self.start_error

    async def ready(self) -> None:
        self.calls.append(f"{self.name}.ready")
        if self.ready_error is not None:
            raise self.ready_error

    async def stop(self) -> None:
        self.calls.append(f"{self.name}.stop")
        if self.stop_error is not None:
            raise self.stop_error


@dataclass
class RecordingSink:
    """OutputSink that keeps everything it receives."""

    lines: list[tuple[str, int, str]] = field(default_factory=list)
    events: list[DependencyEvent] = field(default_factory=list)

    def write_line(self, source: str, pid: int, line: str) -> None:
        self.lines.append((source, pid, line))

    def write_event(self, event: DependencyEvent) -> None:
        self.events.append(event)


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@dataclass(frozen=True, slots=True)
class ChildScript:
    """A Python script run as a child process."""

    path: Path

    @property
    def argv(self) -> list[str]:
        return [sys.executable, str(self.path)]


@pytest.fixture
def write_child(tmp_path: Path):
    """Return a function that writes a child script and returns it."""
    counter = iter(range(1_000_000))

    def _write(source: str) -> ChildScript:
        path = tmp_path / f"child_{next(counter)}.py"
        _ = path.write_text(textwrap.dedent(source))
        return ChildScript(path=path)

    return _write
