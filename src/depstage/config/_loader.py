# pyright: reportAny=false, reportUnknownVariableType=false
"""TOML configuration file loading and validation."""

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from depstage.exceptions import ConfigLoadError, ConfigValidationError


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e


def validate_model[M: BaseModel](
    model: type[M],
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    *,
    source: str | None = None,
) -> M:
    """Validate raw configuration data against a model.

    Only the first validation problem is reported.

    Args:
        model: The Pydantic model class.
        data: Raw configuration values.
        source: Where the data came from, for error messages.

    Returns:
        The validated model instance.

    Raises:
        ConfigValidationError: If validation fails.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"]) or "<root>"
        prefix = f"{source}: " if source else ""
        msg = f"{prefix}Invalid configuration at {key}: {first['msg']}"
        raise ConfigValidationError(
            msg,
            key=key,
            value=first.get("input"),
            expected=first["msg"],
            source=source,
        ) from e
