"""Reading herder.yaml into a validated HerderConfig."""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from herder.config.schema import HerderConfig
from herder.fleet.errors import HerderError

DEFAULT_CONFIG_PATH = Path.home() / ".herder" / "herder.yaml"
CONFIG_ENV_VAR = "HERDER_CONFIG"


class ConfigError(HerderError):
    """herder.yaml can't be read, isn't YAML, or doesn't validate."""


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Pick the config file: explicit path, then $HERDER_CONFIG, then the default."""
    if not path:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _describe(error: ValidationError) -> str:
    lines = []
    for detail in error.errors():
        where = ".".join(str(part) for part in detail["loc"]) or "<root>"
        lines.append(f"  {where}: {detail['msg']}")
    return "\n".join(lines)


def load_config(path: Optional[Union[str, Path]] = None) -> HerderConfig:
    """
    Load herder configuration.

    A missing or empty file means "all defaults", so a fresh install can run
    ``herder start`` before ``herder init``.

    Raises:
        ConfigError: If the file exists but can't be used
    """
    source = resolve_config_path(path)
    if not source.exists():
        return HerderConfig()

    try:
        raw = yaml.safe_load(source.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read {source}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if raw is None:
        return HerderConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"{source} must contain a mapping at the top level")

    try:
        return HerderConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {source}:\n{_describe(e)}") from e
