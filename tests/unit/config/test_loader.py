# pyright: reportAny=false, reportUnknownArgumentType=false
import sys
from pathlib import Path

import pytest
from pydantic import BaseModel
from pyfakefs.fake_filesystem import FakeFilesystem

from depstage.config import read_toml_file, validate_model
from depstage.exceptions import ConfigLoadError, ConfigValidationError


class TestReadTomlFile:
    def test_parses_valid_toml(self, fs: FakeFilesystem) -> None:
        content = """
[logging]
level = "debug"

[[dependencies]]
name = "api"
command = ["api", "serve"]
"""
        path = Path("/project/depstage.toml")
        fs.create_file(path, contents=content)

        result = read_toml_file(path)

        assert result == {
            "logging": {"level": "debug"},
            "dependencies": [{"name": "api", "command": ["api", "serve"]}],
        }

    def test_raises_file_not_found_for_missing_file(self, fs: FakeFilesystem) -> None:
        with pytest.raises(FileNotFoundError):
            read_toml_file(Path("/project/missing.toml"))

    def test_raises_config_load_error_for_invalid_toml(self, fs: FakeFilesystem) -> None:
        path = Path("/project/invalid.toml")
        fs.create_file(path, contents="[logging]\nlevel = \n")

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        error = exc_info.value
        assert error.path == path
        assert "Failed to parse TOML file" in str(error)
        assert error.__cause__ is not None

    @pytest.mark.skipif(
        sys.version_info < (3, 14),
        reason="TOMLDecodeError has no position attributes before 3.14",
    )
    def test_config_load_error_includes_line_and_column(self, fs: FakeFilesystem) -> None:
        path = Path("/project/syntax_error.toml")
        fs.create_file(path, contents='[valid]\nkey = "value"\n\n[invalid section\n')

        with pytest.raises(ConfigLoadError) as exc_info:
            read_toml_file(path)

        assert exc_info.value.line == 4
        assert exc_info.value.column is not None


class _Sample(BaseModel):
    port: int
    host: str = "localhost"


class TestValidateModel:
    def test_returns_model(self) -> None:
        result = validate_model(_Sample, {"port": 8080})

        assert result == _Sample(port=8080)

    def test_reports_first_error(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = validate_model(_Sample, {"port": "not a port"}, source="depstage.toml")

        error = exc_info.value
        assert error.key == "port"
        assert error.value == "not a port"
        assert error.source == "depstage.toml"
        assert str(error).startswith("depstage.toml: Invalid configuration at port:")

    def test_missing_key(self) -> None:
        with pytest.raises(ConfigValidationError) as exc_info:
            _ = validate_model(_Sample, {})

        assert exc_info.value.key == "port"
        assert exc_info.value.source is None
