"""Output sink implementations.

This module provides concrete implementations of the OutputSink protocol
for displaying drained process output and dependency lifecycle events.
"""

import threading
from typing import final

from rich.console import Console
from rich.style import Style
from rich.text import Text

from ._models import DependencyEvent, DependencyEventType


@final
class ConsoleOutputSink:
    """Output sink that writes to the console with formatted prefixes.

    Formats process output as `[source:pid] line` and events as
    `[dependency] LABEL - message` with color coding per event type.
    Safe to call from several drain threads at once.
    """

    __slots__ = ("_console", "_event_styles", "_line_style", "_lock")

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the output sink.

        Args:
            console: Rich Console instance for output. If None, writes to stderr.
        """
        self._console = console or Console(stderr=True)
        self._lock = threading.Lock()
        self._line_style = Style()
        self._event_styles: dict[DependencyEventType, Style] = {
            DependencyEventType.STARTING: Style(color="cyan"),
            DependencyEventType.STARTED: Style(color="green"),
            DependencyEventType.READY: Style(color="green", bold=True),
            DependencyEventType.FAILED: Style(color="red", bold=True),
            DependencyEventType.STOPPING: Style(color="yellow", dim=True),
            DependencyEventType.STOPPED: Style(color="yellow"),
        }

    def write_line(self, source: str, pid: int, line: str) -> None:
        """Write a line of process output with prefix.

        Args:
            source: Name of the dependency that produced the output.
            pid: Process ID of the producer.
            line: The output line (without trailing newline).
        """
        text = Text()
        _ = text.append(f"[{source}:{pid}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(line, style=self._line_style)

        with self._lock:
            self._console.print(text)

    def write_event(self, event: DependencyEvent) -> None:
        """Write a dependency lifecycle event with special formatting.

        Args:
            event: The lifecycle event to record.
        """
        style = self._event_styles.get(event.event_type, Style())

        text = Text()
        _ = text.append(f"[{event.dependency}]", style=Style(color="blue", bold=True))
        _ = text.append(" ")
        _ = text.append(event.event_type.value.upper(), style=style)

        if event.message:
            _ = text.append(f" - {event.message}", style=style)

        with self._lock:
            self._console.print(text)
