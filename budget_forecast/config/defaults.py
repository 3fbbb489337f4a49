"""JSON rule and default files for the forecast engine."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

# Deployments can point this at their own copies of the JSON files
CONFIG_DIR = Path(
    os.getenv("BUDGET_FORECAST_CONFIG_DIR", Path(__file__).parent)
).resolve()


def load_config(config_name: str) -> Dict[str, Any]:
    """Read ``<CONFIG_DIR>/<config_name>.json``.

    A missing file raises ``FileNotFoundError``; malformed JSON propagates
    the decoder error.
    """
    path = CONFIG_DIR / f"{config_name}.json"
    if not path.is_file():
        raise FileNotFoundError(f"No {config_name!r} config in {CONFIG_DIR}")
    return json.loads(path.read_text(encoding='utf-8'))


def get_classification_config() -> Dict[str, Any]:
    """Category aliases, bucket category sets, keyword patterns and provider lists."""
    return load_config('classification')


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Follow ``keys`` into a config file, or return ``default``.

    ``default`` is also returned when the file itself is missing, so module
    constants can be computed before any config is deployed.

    Example:
        >>> get_config_value('forecast', 'window', 'estimation_threshold')
        3
        >>> get_config_value('forecast', 'no', 'such', 'key', default=0)
        0
    """
    try:
        value: Any = load_config(config_name)
    except FileNotFoundError:
        return default
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value
