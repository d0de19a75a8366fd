"""Configuration models.

This module provides the Pydantic models describing a set of process
dependencies and logging settings, and turns them into runnable objects.
"""

import signal
from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, field_validator, model_validator
from structlog.typing import FilteringBoundLogger

from depstage import process
from depstage._protocol import OutputSink
from depstage._runner import Runner
from depstage._timeout import DEFAULT_READY_TIMEOUT
from depstage.process import ProcessDependency, ProcessOption
from depstage.utils import create_logger

from ._loader import read_toml_file, validate_model


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""

    def create_logger(self, **context: object) -> FilteringBoundLogger:
        """Create a logger with these settings."""
        return create_logger(
            level=self.level.value,
            log_format=self.format.value,
            log_file=self.file,
            **context,
        )


class ReadinessConfig(BaseModel):
    """How to decide that a process dependency is ready.

    At most one strategy may be set. With none set, the process is ready as
    soon as it is launched.

    Attributes:
        line: Regular expression to wait for on stdout.
        http: URL to poll until it answers 200 OK.
        wait_exit: Wait for the process to exit successfully.
        timeout: Deadline in seconds.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    line: str | None = None
    http: str | None = None
    wait_exit: bool = False
    timeout: PositiveFloat = DEFAULT_READY_TIMEOUT

    @model_validator(mode="after")
    def _single_strategy(self) -> Self:
        chosen = [
            name
            for name, enabled in (
                ("line", self.line is not None),
                ("http", self.http is not None),
                ("wait_exit", self.wait_exit),
            )
            if enabled
        ]
        if len(chosen) > 1:
            msg = f"only one readiness strategy may be set, got {', '.join(chosen)}"
            raise ValueError(msg)
        return self


class DependencyConfig(BaseModel):
    """A process dependency.

    Attributes:
        name: Unique identifier for the dependency.
        command: Program and arguments.
        cwd: Working directory for the process.
        env: Environment variables for the process.
        inherit_env: Add env to the inherited environment instead of
            replacing it.
        pre_command: Command to run to completion before launching.
        ready: Readiness strategy.
        stop_signal: Name of the signal that stops the process.
        kill_after: Seconds to wait after stop_signal before SIGKILL.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    command: list[str] = Field(min_length=1)
    cwd: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    inherit_env: bool = True
    pre_command: list[str] | None = None
    ready: ReadinessConfig = Field(default_factory=ReadinessConfig)
    stop_signal: str = "SIGINT"
    kill_after: PositiveFloat | None = None

    @field_validator("stop_signal")
    @classmethod
    def _known_signal(cls, value: str) -> str:
        name = value.upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        if name not in signal.Signals.__members__:
            msg = f"unknown signal {value!r}"
            raise ValueError(msg)
        return name

    @field_validator("pre_command")
    @classmethod
    def _non_empty_pre_command(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and not value:
            msg = "pre_command must not be empty"
            raise ValueError(msg)
        return value

    def to_options(self, *, output_sink: OutputSink | None = None) -> list[ProcessOption]:
        """Translate this configuration into ordered process options."""
        options: list[ProcessOption] = []
        if self.pre_command is not None:
            options.append(process.with_pre_command(*self.pre_command, cwd=self.cwd))

        options.append(process.with_command(*self.command))
        if self.cwd is not None:
            options.append(process.with_dir(self.cwd))
        if self.env:
            if self.inherit_env:
                options.append(process.with_env_append(self.env))
            else:
                options.append(process.with_env_set(self.env))

        if self.ready.line is not None:
            options.append(
                process.with_wait_matching_line(self.ready.line, output_sink=output_sink)
            )
        elif self.ready.http is not None:
            options.append(process.with_ready_http(self.ready.http))
        elif self.ready.wait_exit:
            options.append(process.with_wait_exit())
        options.append(process.with_ready_timeout(self.ready.timeout))

        if not self.ready.wait_exit:
            options.append(
                process.with_stop_signal(
                    signal.Signals[self.stop_signal],
                    kill_after=self.kill_after,
                )
            )
        return options

    def to_dependency(
        self,
        *,
        logger: FilteringBoundLogger | None = None,
        output_sink: OutputSink | None = None,
    ) -> ProcessDependency:
        """Build a ProcessDependency from this configuration."""
        return ProcessDependency(
            *self.to_options(output_sink=output_sink),
            name=self.name,
            logger=logger,
        )


class DepstageConfig(BaseModel):
    """Root configuration.

    Attributes:
        logging: Logging settings.
        dependencies: Process dependencies in start order.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="forbid")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dependencies: list[DependencyConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> Self:
        seen: set[str] = set()
        for dependency in self.dependencies:
            if dependency.name in seen:
                msg = f"duplicate dependency name {dependency.name!r}"
                raise ValueError(msg)
            seen.add(dependency.name)
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:  # pyright: ignore[reportExplicitAny]
        """Create configuration from a dictionary.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return validate_model(cls, data)

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from a TOML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        return validate_model(cls, read_toml_file(path), source=str(path))

    def build_runner(self, *, output_sink: OutputSink | None = None) -> Runner:
        """Build a Runner over all configured dependencies in file order."""
        logger = self.logging.create_logger()
        dependencies = [
            dependency.to_dependency(logger=logger, output_sink=output_sink)
            for dependency in self.dependencies
        ]
        return Runner(*dependencies, logger=logger, output_sink=output_sink)
