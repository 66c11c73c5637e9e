"""Session configuration and the optional YAML defaults file."""

import asyncio
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError

from flakehunt.models.base import Model

DEFAULT_OUT_DIR = Path(".flakehunt")

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigurationError(Exception):
    """Raised for invalid settings, always before any run is attempted."""


class SessionConfig(Model):
    """Validated settings for one flake-hunting session."""

    runs: int = Field(..., gt=0, description="Number of repetitions")
    timeout: float | None = Field(
        default=None, gt=0, description="Wall-clock budget in seconds"
    )
    out_dir: Path = Field(default=DEFAULT_OUT_DIR, description="Output root")
    keep_runs: int = Field(
        default=0, ge=0, description="Run directories to keep (0 keeps all)"
    )
    command: Sequence[str] = Field(..., min_length=1, description="Base command")
    working_dir: Path | None = Field(
        default=None, description="Working directory for the test command"
    )

    @classmethod
    def create(cls, **values: Any) -> "SessionConfig":
        """Build a config, converting validation failures to ConfigurationError."""
        try:
            return cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {problems}") from e


class FileConfig(Model):
    """Defaults loaded from a YAML config file; CLI flags take precedence."""

    runs: int | None = Field(default=None, gt=0)
    timeout: str | float | None = Field(default=None, description="e.g. '90s', '5m'")
    out: Path | None = None
    keep_runs: int | None = Field(default=None, ge=0)
    tool: str | None = None
    target: str | None = None
    fail_on_flake: bool | None = None


def parse_duration(text: str) -> float:
    """Convert a duration such as ``"90s"``, ``"5m"`` or ``"1h"`` to seconds.

    A bare number is interpreted as seconds.

    Raises:
        ValueError: If the text is not a valid duration

    """
    match = _DURATION_RE.match(text)
    if match is None:
        raise ValueError(f"Invalid duration: {text!r} (expected e.g. '90s', '5m')")

    value, unit = match.groups()
    return float(value) * _UNIT_SECONDS[unit or "s"]


async def load_config_file(path: Path) -> FileConfig:
    """Load and validate a YAML config file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, not valid YAML or fails validation

    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = await asyncio.to_thread(path.read_text, encoding="utf-8")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    try:
        return FileConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config file schema in {path}: {e}") from e
