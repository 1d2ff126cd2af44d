"""Configuration loading.

Settings are read from, in order of increasing priority:
1. skdump.toml
2. pyproject.toml [tool.skdump] section
3. Environment ($SKDUMP_SOURCEKITD)
4. Command-line flags (applied by the CLI)

Example skdump.toml:
    sourcekitd_path = "/usr/lib/libsourcekitdInProc.so"
    indent = 4
    log_level = "INFO"
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from skdump.errors import ConfigError
from skdump.service import LIBRARY_ENV_VAR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkdumpConfig:
    """skdump settings."""

    sourcekitd_path: Path | None = None  # Found automatically if None
    indent: int = 2  # JSON indentation
    log_level: str = "WARNING"

    def merged(self, **overrides: Any) -> SkdumpConfig:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _config_from_dict(data: dict[str, Any], source: Path) -> dict[str, Any]:
    """Validate a config table and return the recognized settings."""
    known = {f.name for f in fields(SkdumpConfig)}
    settings: dict[str, Any] = {}

    for key, value in data.items():
        if key not in known:
            logger.warning("%s: ignoring unknown setting %r", source, key)
            continue
        settings[key] = value

    if "sourcekitd_path" in settings:
        if not isinstance(settings["sourcekitd_path"], str):
            raise ConfigError(f"{source}: sourcekitd_path must be a string")
        settings["sourcekitd_path"] = Path(settings["sourcekitd_path"]).expanduser()
    if "indent" in settings:
        indent = settings["indent"]
        if isinstance(indent, bool) or not isinstance(indent, int) or indent < 0:
            raise ConfigError(f"{source}: indent must be a non-negative integer")
    if "log_level" in settings:
        if not isinstance(settings["log_level"], str):
            raise ConfigError(f"{source}: log_level must be a string")
        level = settings["log_level"].upper()
        if level not in logging.getLevelNamesMapping():
            raise ConfigError(f"{source}: unknown log_level {settings['log_level']!r}")
        settings["log_level"] = level

    return settings


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e


def load_config(directory: Path | str | None = None) -> SkdumpConfig:
    """Load configuration for a directory.

    Args:
        directory: Directory to look for config files in (default: cwd)

    Returns:
        SkdumpConfig with every source applied

    Raises:
        ConfigError: A config file exists but is malformed
    """
    directory = Path(directory or Path.cwd()).resolve()
    settings: dict[str, Any] = {}

    skdump_toml = directory / "skdump.toml"
    if skdump_toml.exists():
        settings.update(_config_from_dict(_read_toml(skdump_toml), skdump_toml))

    pyproject = directory / "pyproject.toml"
    if pyproject.exists():
        tool_skdump = _read_toml(pyproject).get("tool", {}).get("skdump", {})
        if not isinstance(tool_skdump, dict):
            raise ConfigError(f"{pyproject}: [tool.skdump] must be a table")
        settings.update(_config_from_dict(tool_skdump, pyproject))

    from_env = os.environ.get(LIBRARY_ENV_VAR)
    if from_env:
        settings["sourcekitd_path"] = Path(from_env).expanduser()

    return SkdumpConfig(**settings)
