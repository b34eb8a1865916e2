"""
Safe YAML loading for configuration files.

Uses ``yaml.safe_load()`` so configuration files can never construct
arbitrary Python objects.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML mapping from disk.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The parsed mapping. An empty file yields ``{}``.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid YAML,
            or its top level is not a mapping.
    """
    path = Path(config_path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping in {path}")
    return data
