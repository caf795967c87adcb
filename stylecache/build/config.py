"""
Build configuration for stylecache.

Plugin options (validated with pydantic), YAML config loading and the
dataclass the command layer passes around.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stylecache.core.utils import is_production

__all__ = [
    "CONFIG_FILENAMES",
    "DEBOUNCE_SECONDS",
    "OptimizeOptions",
    "PluginOptions",
    "BuildConfig",
    "ConfigError",
    "load_config_file",
    "find_config_file",
]

# Looked up in the working directory when no --config is given
CONFIG_FILENAMES = ("stylecache.yaml", "stylecache.yml")

DEBOUNCE_SECONDS = 0.1


class ConfigError(ValueError):
    """A config file is unreadable or invalid."""


# =============================================================================
# Plugin Options
# =============================================================================


class OptimizeOptions(BaseModel):
    """Fine-grained optimizer settings."""

    model_config = ConfigDict(extra="forbid")

    minify: bool = Field(True, description="Minify the optimized output")


class PluginOptions(BaseModel):
    """Options recognized by the engine."""

    model_config = ConfigDict(extra="forbid")

    base: Optional[Path] = Field(
        None, description="Directory scanned for candidates (default: cwd)"
    )
    optimize: Union[bool, OptimizeOptions, None] = Field(
        None,
        description="Optimize the output; default is true in production environments",
    )

    def resolved_base(self) -> Path:
        return (self.base or Path(os.getcwd())).resolve()

    def optimize_enabled(self) -> bool:
        if self.optimize is None:
            return is_production()
        if isinstance(self.optimize, OptimizeOptions):
            return True
        return self.optimize

    def minify(self) -> bool:
        if isinstance(self.optimize, OptimizeOptions):
            return self.optimize.minify
        return True


# =============================================================================
# Config Files
# =============================================================================


def find_config_file(directory: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> PluginOptions:
    """Load plugin options from a YAML file.

    Relative ``base`` values are resolved against the file's directory.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or has unknown keys.
    """
    try:
        data: Any = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        options = PluginOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    if options.base is not None and not options.base.is_absolute():
        options = options.model_copy(update={"base": path.parent / options.base})
    return options


# =============================================================================
# Command Configuration
# =============================================================================


@dataclass
class BuildConfig:
    """Configuration for a command-line build or watch run."""

    input_path: Path
    output_path: Optional[Path] = None
    options: PluginOptions = field(default_factory=PluginOptions)
    debounce: float = DEBOUNCE_SECONDS
    dry_run: bool = False
    verbose: bool = False
