# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: reads YAML from disk and produces a validated, frozen HotpackConfig.

The loading pipeline is linear:
  1. Read raw text from the file
  2. Parse as YAML into a plain dict (JSON configs parse too, JSON being a YAML subset)
  3. Hand the dict to pydantic for schema validation
  4. Return the frozen, immutable config object

If anything goes wrong at any step, we fail immediately with a clear error.
A broken config should stop the run before any platform work begins.
"""

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from hotpack.config.exceptions import ConfigLoadError, ConfigValidationError
from hotpack.config.schema import HotpackConfig

DEFAULT_CONFIG_NAMES: tuple[str, ...] = (
    "hotpack.config.yaml",
    "hotpack.config.yml",
    "hotpack.config.json",
)


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    We explicitly check for file existence and readability before parsing,
    because yaml.safe_load gives cryptic errors on missing files.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't valid YAML.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    # An empty file means "all defaults".
    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def _error_field(err: ValidationError) -> str | None:
    """Dotted location of the first schema error, e.g. "build.platforms"."""
    errors = err.errors()
    if not errors:
        return None
    loc = [str(part) for part in errors[0].get("loc", ()) if not isinstance(part, int)]
    return ".".join(loc) or None


def parse_config(raw_data: Mapping[str, Any], source: str = "<memory>") -> HotpackConfig:
    """
    Validate an in-memory mapping against the schema.

    Raises:
        ConfigValidationError: Schema violations, with `field` set to the
            first offending key.
    """
    try:
        return HotpackConfig.model_validate(dict(raw_data))
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {source}:\n{err}",
            field=_error_field(err),
        ) from err


def load_config(config_path: Path) -> HotpackConfig:
    """
    Load, validate, and freeze a config file into a HotpackConfig object.

    Args:
        config_path: Path to a YAML (or JSON) config file.

    Returns:
        A fully validated, frozen HotpackConfig instance.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations (wrong types, unknown keys,
            unsupported platforms or algorithms, bad versions).
    """
    raw_data = _read_yaml_file(config_path)
    return parse_config(raw_data, source=str(config_path))


def find_config_file(directory: Path) -> Path | None:
    """First default-named config file in `directory`, if any."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None
