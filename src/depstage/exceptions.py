"""depstage exceptions."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any


class DepstageError(Exception):
    """Base exception for depstage errors."""


# =============================================================================
# Runner Exceptions
# =============================================================================


class RunnerError(DepstageError):
    """Base exception for lifecycle runner errors."""


class RunnerStartError(RunnerError):
    """Raised when a dependency fails to start or become ready.

    The runner stops starting further dependencies, but the failing one is
    already recorded for teardown.

    Attributes:
        dependency: Name of the dependency that failed.
        phase: Lifecycle phase that failed ("start" or "ready").
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        dependency: str | None = None,
        phase: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and dependency context.

        Args:
            message: Human-readable error message.
            dependency: Name of the dependency that failed.
            phase: Lifecycle phase that failed.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.dependency: str | None = dependency
        self.phase: str | None = phase
        self.cause: Exception | None = cause


class RunnerStopError(RunnerError):
    """Raised when one or more dependencies fail to stop.

    Every started dependency is stopped regardless; this error carries all
    of the collected failures.

    Attributes:
        errors: Stop failures in the order they occurred.
    """

    def __init__(self, message: str, *, errors: Sequence[Exception] = ()) -> None:
        """Initialize with error message and the collected stop failures.

        Args:
            message: Human-readable error message.
            errors: Stop failures in the order they occurred.
        """
        super().__init__(message)
        self.errors: tuple[Exception, ...] = tuple(errors)


class ReadyTimeoutError(DepstageError, TimeoutError):
    """Raised when a readiness check does not finish before its deadline.

    Attributes:
        timeout: The deadline in seconds.
    """

    def __init__(self, message: str, *, timeout: float | None = None) -> None:
        """Initialize with error message and timeout context."""
        super().__init__(message)
        self.timeout: float | None = timeout


# =============================================================================
# Process Exceptions
# =============================================================================


class ProcessError(DepstageError):
    """Base exception for process dependency errors."""


class OptionApplyError(ProcessError):
    """Raised when a process option cannot be applied.

    Attributes:
        option: Name of the option that failed.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        option: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and option context.

        Args:
            message: Human-readable error message.
            option: Name of the option that failed.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.option: str | None = option
        self.cause: Exception | None = cause


class MissingCommandError(ProcessError):
    """Raised when a process dependency is started without a command."""


class CommandNotConfiguredError(ProcessError):
    """Raised when an option that needs a command is applied before one is set.

    Options are applied in order, so `with_command` must come first.
    """


class InvalidPatternError(ProcessError, ValueError):
    """Raised when a line-matching pattern is not a valid regular expression.

    Attributes:
        pattern: The rejected pattern.
    """

    def __init__(self, message: str, *, pattern: str | None = None) -> None:
        """Initialize with error message and pattern context."""
        super().__init__(message)
        self.pattern: str | None = pattern


class OutputPipeError(ProcessError):
    """Raised when the standard output of a process cannot be acquired."""


class NoMatchingLineError(ProcessError):
    """Raised when the output stream closes before any line matched.

    Attributes:
        pattern: The pattern that never matched.
        cause: Read error that ended the scan, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and pattern context."""
        super().__init__(message)
        self.pattern: str | None = pattern
        self.cause: Exception | None = cause


class PreCommandError(ProcessError):
    """Raised when a pre-flight command fails.

    Attributes:
        command: The rendered pre-flight command line.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and command context."""
        super().__init__(message)
        self.command: str | None = command
        self.cause: Exception | None = cause


class BuildError(ProcessError):
    """Raised when building the executable for a process dependency fails.

    Attributes:
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        """Initialize with error message and cause."""
        super().__init__(message)
        self.cause: Exception | None = cause


class ProcessExitError(ProcessError):
    """Raised when a process exits with an unexpected status.

    Attributes:
        returncode: The exit status. Negative values are signal numbers.
    """

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        """Initialize with error message and exit status."""
        super().__init__(message)
        self.returncode: int | None = returncode


class _CommandPhaseError(ProcessError):
    """Base for errors annotated with the rendered command line."""

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and command context.

        Args:
            message: Human-readable error message.
            command: The rendered command line.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.command: str | None = command
        self.cause: Exception | None = cause


class ProcessStartError(_CommandPhaseError):
    """Raised when the OS cannot create the process."""


class ProcessReadyError(_CommandPhaseError):
    """Raised when a process fails its readiness check or times out."""


class ProcessStopError(_CommandPhaseError):
    """Raised when a process does not stop cleanly."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(DepstageError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source
