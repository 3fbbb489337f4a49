"""Configuration management for the forecast engine.

Numeric defaults live in ``forecast.json`` and classification rules in
``classification.json``.  A handful of values can be overridden from the
environment so a deployment can change them without editing files.
"""

from __future__ import annotations

import os

from .defaults import (
    CONFIG_DIR,
    get_classification_config,
    get_config_value,
    load_config,
)

# Environment overrides for the settings defaults
DEFAULT_DAILY_RATE = float(
    os.getenv(
        "BUDGET_FORECAST_DAILY_RATE",
        get_config_value('forecast', 'settings', 'daily_rate', default=500.0),
    )
)
DEFAULT_PAYMENT_DELAY_DAYS = int(
    os.getenv(
        "BUDGET_FORECAST_PAYMENT_DELAY_DAYS",
        get_config_value('forecast', 'settings', 'payment_delay_days', default=60),
    )
)
DEFAULT_RETURN_RATE = float(
    os.getenv(
        "BUDGET_FORECAST_RETURN_RATE",
        get_config_value('forecast', 'settings', 'expected_return_rate', default=0.10),
    )
)
FORECAST_HORIZON_MONTHS = int(
    os.getenv(
        "BUDGET_FORECAST_HORIZON_MONTHS",
        get_config_value('forecast', 'horizon_months', default=12),
    )
)

# Window and lookback sizes are not environment-driven
WINDOW_CAP_MONTHS = int(get_config_value('forecast', 'window', 'cap_months', default=12))
ESTIMATION_THRESHOLD_MONTHS = int(
    get_config_value('forecast', 'window', 'estimation_threshold', default=3)
)
CARRYOVER_LOOKBACK_MONTHS = int(
    get_config_value('forecast', 'carryover_lookback_months', default=3)
)

__all__ = [
    'CONFIG_DIR',
    'CARRYOVER_LOOKBACK_MONTHS',
    'DEFAULT_DAILY_RATE',
    'DEFAULT_PAYMENT_DELAY_DAYS',
    'DEFAULT_RETURN_RATE',
    'ESTIMATION_THRESHOLD_MONTHS',
    'FORECAST_HORIZON_MONTHS',
    'WINDOW_CAP_MONTHS',
    'get_classification_config',
    'get_config_value',
    'load_config',
]
