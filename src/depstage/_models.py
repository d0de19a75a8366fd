"""Data models for the lifecycle runner.

This module defines the core data types for dependency orchestration:
- RunnerState: Global lifecycle states of a runner
- DependencyEventType: Types of per-dependency lifecycle events
- DependencyEvent: Immutable event records
"""

from dataclasses import dataclass
from enum import StrEnum


class RunnerState(StrEnum):
    """Runner lifecycle states.

    - IDLE: Created, start not called yet
    - RUNNING: Starting dependencies in order
    - SUCCEEDED: Every dependency started and reported ready
    - FAILED: A dependency failed to start or become ready
    - STOPPING: Tearing down started dependencies in reverse order
    - STOPPED: Teardown finished (with or without errors)
    """

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPING = "stopping"
    STOPPED = "stopped"


class DependencyEventType(StrEnum):
    """Types of dependency lifecycle events.

    - STARTING: Recorded for teardown, start about to be called
    - STARTED: Start returned successfully
    - READY: Ready returned successfully
    - FAILED: Start, ready or stop raised
    - STOPPING: Stop about to be called
    - STOPPED: Stop returned successfully
    """

    STARTING = "starting"
    STARTED = "started"
    READY = "ready"
    FAILED = "failed"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True, slots=True)
class DependencyEvent:
    """Immutable dependency lifecycle event.

    Attributes:
        dependency: Name of the dependency that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        message: Optional human-readable message.
    """

    dependency: str
    event_type: DependencyEventType
    timestamp: str
    message: str | None = None
