"""Per-month spending snapshot with a progressive variable-spend average."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from .classification import ExpenseBucket, classify_expenses
from .config import ESTIMATION_THRESHOLD_MONTHS, WINDOW_CAP_MONTHS
from .records import parse_month_key

logger = logging.getLogger(__name__)


@dataclass
class MonthlySnapshot:
    month_key: str
    loans: float = 0.0
    transfers: float = 0.0
    subscriptions: float = 0.0
    fixed: float = 0.0
    variable_average: float = 0.0
    bills: float = 0.0
    months_considered: int = 0
    is_estimated: bool = True
    variable_by_month: Dict[str, float] = field(default_factory=dict)

    @property
    def fixed_total(self) -> float:
        """Loans, transfers, subscriptions and other fixed spend together."""
        return self.loans + self.transfers + self.subscriptions + self.fixed

    @property
    def total(self) -> float:
        return self.fixed_total + self.variable_average + self.bills

    def to_dict(self) -> Dict[str, Any]:
        return {
            'month_key': self.month_key,
            'loans': self.loans,
            'transfers': self.transfers,
            'subscriptions': self.subscriptions,
            'fixed': self.fixed,
            'fixed_total': self.fixed_total,
            'variable_average': self.variable_average,
            'bills': self.bills,
            'total': self.total,
            'months_considered': self.months_considered,
            'is_estimated': self.is_estimated,
            'variable_by_month': dict(self.variable_by_month),
        }


def progressive_window(
    month_keys: Iterable[Union[str, pd.Period]],
    reference_month_key: Union[str, pd.Period],
    cap: int = WINDOW_CAP_MONTHS,
) -> List[str]:
    """Return the months used for the variable-spend average.

    The window grows with the available history: distinct months up to and
    including the reference month, most recent ``cap`` of them, oldest first.

    Example:
        >>> progressive_window(['2024-03', '2024-01', '2024-05'], '2024-04')
        ['2024-01', '2024-03']
    """
    reference = parse_month_key(reference_month_key)
    periods = {parse_month_key(key) for key in month_keys}
    available = sorted(period for period in periods if period <= reference)
    window = available[-cap:] if cap > 0 else []
    return [str(period) for period in window]


def build_snapshot(expenses: Any, reference_month_key: Union[str, pd.Period]) -> MonthlySnapshot:
    """Aggregate classified expenses for ``reference_month_key``.

    Loans, transfers, subscriptions, other fixed costs and bills are the
    reference month's totals.  Variable spend is averaged over the
    :func:`progressive_window` of months that have variable expenses, and the
    snapshot is flagged as estimated while that window is shorter than three
    months.

    Raises:
        ValueError: If ``reference_month_key`` is not a ``YYYY-MM`` key.
    """
    reference = parse_month_key(reference_month_key)
    month_key = str(reference)
    classified = classify_expenses(expenses)
    classified = classified[classified['Date'].notna()].copy()
    if classified.empty:
        return MonthlySnapshot(month_key=month_key, is_estimated=True)

    classified['Month'] = classified['Date'].dt.to_period('M')
    current = classified[classified['Month'] == reference]
    month_totals = current.groupby('Bucket')['Amount'].sum()

    def month_total(bucket: ExpenseBucket) -> float:
        return float(month_totals.get(bucket.value, 0.0))

    variable = classified[classified['Bucket'] == ExpenseBucket.VARIABLE.value]
    variable_by_month = variable.groupby('Month')['Amount'].sum()
    window = progressive_window(variable_by_month.index, reference)
    window_totals = {key: float(variable_by_month.get(pd.Period(key, freq='M'), 0.0)) for key in window}
    months_considered = len(window)
    variable_average = sum(window_totals.values()) / months_considered if months_considered else 0.0

    logger.debug(
        "Snapshot %s: %d variable months in window, average %.2f",
        month_key, months_considered, variable_average,
    )

    return MonthlySnapshot(
        month_key=month_key,
        loans=month_total(ExpenseBucket.LOAN),
        transfers=month_total(ExpenseBucket.TRANSFER),
        subscriptions=month_total(ExpenseBucket.SUBSCRIPTION),
        fixed=month_total(ExpenseBucket.FIXED),
        variable_average=variable_average,
        bills=month_total(ExpenseBucket.BILL),
        months_considered=months_considered,
        is_estimated=months_considered < ESTIMATION_THRESHOLD_MONTHS,
        variable_by_month=window_totals,
    )
