"""User financial settings consumed by the forecaster and pension projector."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import re
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from .config import (
    DEFAULT_DAILY_RATE,
    DEFAULT_PAYMENT_DELAY_DAYS,
    DEFAULT_RETURN_RATE,
    get_config_value,
)
from .records import coerce_amount, coerce_date, coerce_flag

# Backend column names that differ from the field names
SETTING_ALIASES = {
    'pension_monthly_amount': 'pension_monthly',
    'estimated_fixed_costs': 'estimated_fixed',
    'estimated_variable_costs': 'estimated_variable',
    'estimated_bills_costs': 'estimated_bills',
    'sp500_return_rate': 'expected_return_rate',
    'annual_return_rate': 'expected_return_rate',
}


def _configured_defaults() -> Dict[str, Any]:
    configured = dict(get_config_value('forecast', 'settings', default={}) or {})
    # Environment overrides win over the JSON file
    configured['daily_rate'] = DEFAULT_DAILY_RATE
    configured['payment_delay_days'] = DEFAULT_PAYMENT_DELAY_DAYS
    configured['expected_return_rate'] = DEFAULT_RETURN_RATE
    return configured


@dataclass(frozen=True)
class ForecastSettings:
    daily_rate: float = DEFAULT_DAILY_RATE
    pension_monthly: float = 0.0
    payment_delay_days: int = DEFAULT_PAYMENT_DELAY_DAYS
    use_manual_estimates: bool = False
    estimated_fixed: float = 0.0
    estimated_variable: float = 0.0
    estimated_bills: float = 0.0
    use_custom_initial_balance: bool = False
    initial_balance: float = 0.0
    initial_balance_date: Optional[pd.Timestamp] = None
    include_drafts: bool = False
    pension_target_amount: float = 0.0
    pension_target_years: int = 20
    expected_return_rate: float = DEFAULT_RETURN_RATE

    @classmethod
    def defaults(cls) -> 'ForecastSettings':
        """Settings built from ``forecast.json`` (and environment overrides)."""
        return cls.from_mapping({})

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'ForecastSettings':
        """Build settings from a settings row.

        Keys may be snake_case, camelCase or the backend column names.  Missing
        or unreadable values fall back to the configured defaults.
        """
        lookup = {_snake(key): value for key, value in (data or {}).items()}
        lookup = {SETTING_ALIASES.get(key, key): value for key, value in lookup.items()}
        defaults = _configured_defaults()

        def number(name: str) -> float:
            value = lookup.get(name)
            if value is None or value == '':
                return float(defaults.get(name, 0.0))
            return coerce_amount(value)

        def flag(name: str) -> bool:
            value = lookup.get(name)
            if value is None:
                return bool(defaults.get(name, False))
            return coerce_flag(value)

        return cls(
            daily_rate=number('daily_rate'),
            pension_monthly=number('pension_monthly'),
            payment_delay_days=int(number('payment_delay_days')),
            use_manual_estimates=flag('use_manual_estimates'),
            estimated_fixed=number('estimated_fixed'),
            estimated_variable=number('estimated_variable'),
            estimated_bills=number('estimated_bills'),
            use_custom_initial_balance=flag('use_custom_initial_balance'),
            initial_balance=number('initial_balance'),
            initial_balance_date=coerce_date(lookup.get('initial_balance_date')),
            include_drafts=flag('include_drafts'),
            pension_target_amount=number('pension_target_amount'),
            pension_target_years=int(number('pension_target_years')),
            expected_return_rate=number('expected_return_rate'),
        )

    @property
    def manual_expenses(self) -> float:
        return self.estimated_fixed + self.estimated_variable + self.estimated_bills

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.initial_balance_date is not None:
            data['initial_balance_date'] = self.initial_balance_date.date().isoformat()
        return data


def _snake(key: Any) -> str:
    text = re.sub(r'(?<=[a-z0-9])([A-Z])', r'_\1', str(key))
    return re.sub(r'[^a-z0-9]+', '_', text.lower()).strip('_')


def resolve_settings(settings: Any = None) -> ForecastSettings:
    """Accept ``None``, a mapping or an existing :class:`ForecastSettings`."""
    if isinstance(settings, ForecastSettings):
        return settings
    return ForecastSettings.from_mapping(settings)
