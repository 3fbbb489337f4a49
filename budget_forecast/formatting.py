"""Formatting utilities for currency amounts and month labels."""

from __future__ import annotations

from typing import Union

import pandas as pd

# Fixed English abbreviations so labels don't depend on the process locale
MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Args:
        amount: The amount to format
        include_sign: Whether to include the euro sign

    Returns:
        Formatted currency string (e.g., "€1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '€1,234.56'
        >>> format_currency(-80, include_sign=False)
        '-80.00'
    """
    formatted = f"{abs(amount):,.2f}"
    sign = '-' if amount < 0 else ''
    return f"{sign}€{formatted}" if include_sign else f"{sign}{formatted}"


def month_label(period: pd.Period) -> str:
    """Return a ``"Mon YYYY"`` label, e.g. ``"Mar 2025"``."""
    return f"{MONTH_ABBREVIATIONS[period.month - 1]} {period.year}"
