"""depstage configuration.

This module provides declarative configuration for process dependencies,
loaded from TOML and validated with Pydantic.

Example:
    >>> from depstage.config import DepstageConfig
    >>> config = DepstageConfig.from_file(Path("depstage.toml"))
    >>> async with config.build_runner():
    ...     ...
"""

from depstage.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._loader import read_toml_file, validate_model
from ._models import (
    DependencyConfig,
    DepstageConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ReadinessConfig,
)

__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DependencyConfig",
    "DepstageConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ReadinessConfig",
    "read_toml_file",
    "validate_model",
]
