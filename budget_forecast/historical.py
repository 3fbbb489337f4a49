"""Trailing-12-month income and work-day history from issued invoices.

The history is a read-only baseline: the forecaster compares each projected
month against the same calendar month one year earlier.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
import math
from typing import Any, Dict, Optional

import pandas as pd

from .records import InvoiceStatus, invoices_frame, resolve_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalMonth:
    month_key: str
    total_income: float
    work_days: int
    invoice_count: int


@dataclass(frozen=True)
class HistoricalSummary:
    reference_year: int = 0
    total_income: float = 0.0
    total_work_days: int = 0
    average_work_days_per_month: float = 0.0
    top_month: str = ''
    top_month_days: int = 0
    month_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def work_days_for(amount: float, daily_rate: float) -> int:
    """Whole work days represented by ``amount`` at ``daily_rate`` (0 when the rate isn't positive)."""
    if daily_rate <= 0:
        return 0
    return round_half_up(amount / daily_rate)


def historical_months(invoices: Any, daily_rate: float, now: Any = None) -> Dict[str, HistoricalMonth]:
    """Group issued invoices from the last 12 months by month.

    Drafts are ignored.  An invoice is dated by its invoice date, or by its
    paid date when the invoice date is missing.
    """
    frame = invoices_frame(invoices)
    if frame.empty:
        return {}

    current = resolve_now(now)
    start = current - pd.DateOffset(years=1)
    frame = frame[frame['Status'] != InvoiceStatus.DRAFT.value].copy()
    frame['Dated'] = frame['Invoice Date'].fillna(frame['Paid Date'])
    frame = frame[(frame['Dated'] >= start) & (frame['Dated'] <= current)].copy()
    if frame.empty:
        return {}

    frame['Month'] = frame['Dated'].dt.to_period('M')
    grouped = frame.groupby('Month').agg(
        income=('Total Amount', 'sum'),
        count=('Total Amount', 'size'),
    ).sort_index()

    months: Dict[str, HistoricalMonth] = {}
    for period, row in grouped.iterrows():
        key = str(period)
        income = float(row['income'])
        months[key] = HistoricalMonth(
            month_key=key,
            total_income=income,
            work_days=work_days_for(income, daily_rate),
            invoice_count=int(row['count']),
        )
    return months


def summarize_history(months: Dict[str, HistoricalMonth]) -> HistoricalSummary:
    if not months:
        return HistoricalSummary()

    ordered = [months[key] for key in sorted(months)]
    total_work_days = sum(month.work_days for month in ordered)
    month_count = len(ordered)

    top: Optional[HistoricalMonth] = None
    for month in ordered:
        # Strictly greater keeps the earliest month on ties
        if top is None or month.work_days > top.work_days:
            top = month

    return HistoricalSummary(
        reference_year=max(int(month.month_key[:4]) for month in ordered),
        total_income=sum(month.total_income for month in ordered),
        total_work_days=total_work_days,
        average_work_days_per_month=total_work_days / max(month_count, 1),
        top_month=top.month_key if top else '',
        top_month_days=top.work_days if top else 0,
        month_count=month_count,
    )


def aggregate_history(invoices: Any, daily_rate: float, now: Any = None) -> HistoricalSummary:
    """Summarise realised income and work days over the trailing 12 months."""
    summary = summarize_history(historical_months(invoices, daily_rate, now))
    logger.debug(
        "History: %d months, %d work days, top month %s",
        summary.month_count, summary.total_work_days, summary.top_month or '-',
    )
    return summary
