"""Rolling cash-flow projection with carryover and deficit recovery.

Each forecast month compares the income expected from open invoices with the
monthly cost of living taken from a :class:`~budget_forecast.snapshot.MonthlySnapshot`
(or the manual estimates in the settings).  Balances accumulate month over
month starting from a caller-chosen starting balance, and every month reports
how many work days cover its expenses and how many extra days would bring a
negative cumulative balance back to zero.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
import logging
import math
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from .config import CARRYOVER_LOOKBACK_MONTHS, FORECAST_HORIZON_MONTHS
from .formatting import month_label
from .historical import HistoricalMonth
from .records import InvoiceStatus, expenses_frame, invoices_frame, resolve_now
from .settings import ForecastSettings, resolve_settings
from .snapshot import MonthlySnapshot

logger = logging.getLogger(__name__)


class ForecastStatus(str, Enum):
    SURPLUS = 'surplus'
    BALANCED = 'balanced'
    DEFICIT = 'deficit'


@dataclass
class ForecastMonth:
    month: str
    month_key: str
    expected_income: float
    draft_income: float
    total_expenses: float
    estimated_expenses: float
    actual_expenses: float
    balance: float
    carryover: float
    cumulative_balance: float
    work_days_needed: int
    work_days_extra: int
    historical_work_days: int = 0
    historical_income: float = 0.0
    status: ForecastStatus = ForecastStatus.BALANCED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass
class ForecastSummary:
    average_work_days: float = 0.0
    deficit_months: int = 0
    surplus_months: int = 0
    critical_months: List[str] = field(default_factory=list)
    recommended_buffer: float = 0.0
    final_balance: float = 0.0
    annual_surplus: float = 0.0
    annual_deficit: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def days_to_cover(amount: float, daily_rate: float) -> int:
    """Whole work days needed to earn ``amount`` (0 for a non-positive rate or amount)."""
    if daily_rate <= 0 or amount <= 0:
        return 0
    return int(math.ceil(amount / daily_rate))


def month_status(balance: float, cumulative_balance: float) -> ForecastStatus:
    if cumulative_balance < 0:
        return ForecastStatus.DEFICIT
    if balance > 0:
        return ForecastStatus.SURPLUS
    return ForecastStatus.BALANCED


def _open_invoices(invoices: Any, settings: ForecastSettings, include_drafts: bool) -> pd.DataFrame:
    """Unpaid invoices with the month they are expected to be collected in."""
    frame = invoices_frame(invoices)
    frame = frame[frame['Status'] != InvoiceStatus.PAID.value].copy()
    if not include_drafts:
        frame = frame[frame['Status'] != InvoiceStatus.DRAFT.value]
    # Invoices without a due date are collected after the usual payment delay
    fallback_due = frame['Invoice Date'] + pd.Timedelta(days=settings.payment_delay_days)
    due = frame['Due Date'].fillna(fallback_due)
    frame = frame.assign(Due=due)[due.notna()].copy()
    frame['Due Month'] = frame['Due'].dt.to_period('M')
    frame['Expected'] = frame['Remaining Amount'].where(frame['Remaining Amount'] != 0, frame['Total Amount'])
    return frame


def forecast_cash_flow(
    invoices: Any,
    snapshot: Optional[MonthlySnapshot],
    settings: Any,
    starting_balance: float,
    include_drafts: Optional[bool] = None,
    now: Any = None,
    history: Optional[Mapping[str, HistoricalMonth]] = None,
    months: int = FORECAST_HORIZON_MONTHS,
) -> List[ForecastMonth]:
    """Project ``months`` months of cash flow starting with the current month.

    Args:
        invoices: Invoice records, mappings or an invoice DataFrame
        snapshot: Monthly cost snapshot (``None`` means no recorded costs)
        settings: :class:`ForecastSettings` or a settings mapping
        starting_balance: Balance carried into the first forecast month
        include_drafts: Count draft invoices as income; defaults to the
            ``include_drafts`` setting
        now: Reference time; the forecast starts on its month
        history: Historical months by ``YYYY-MM`` key, used for the
            same-month-last-year comparison
        months: Forecast horizon

    Returns:
        One :class:`ForecastMonth` per month, oldest first

    Raises:
        ValueError: If ``months`` is negative

    Example:
        >>> rows = forecast_cash_flow([], None, {'daily_rate': 300}, -500.0, now='2025-03-10', months=1)
        >>> rows[0].status.value, rows[0].work_days_extra
        ('deficit', 2)
    """
    if months < 0:
        raise ValueError(f"Forecast horizon must be non-negative, got {months}")

    settings = resolve_settings(settings)
    if include_drafts is None:
        include_drafts = settings.include_drafts
    start = resolve_now(now).to_period('M')
    snapshot = snapshot or MonthlySnapshot(month_key=str(start))
    history = history or {}

    open_invoices = _open_invoices(invoices, settings, include_drafts)
    income_by_month = open_invoices.groupby('Due Month')['Expected'].sum()
    drafts = open_invoices[open_invoices['Status'] == InvoiceStatus.DRAFT.value]
    draft_by_month = drafts.groupby('Due Month')['Expected'].sum()

    actual_expenses = snapshot.fixed_total + snapshot.variable_average + snapshot.bills + settings.pension_monthly
    estimated_expenses = settings.manual_expenses + settings.pension_monthly
    total_expenses = estimated_expenses if settings.use_manual_estimates else actual_expenses

    rows: List[ForecastMonth] = []
    carryover = float(starting_balance)
    for offset in range(months):
        period = start + offset
        expected_income = float(income_by_month.get(period, 0.0))
        balance = expected_income - total_expenses
        cumulative = carryover + balance
        past = history.get(str(period - 12))

        rows.append(ForecastMonth(
            month=month_label(period),
            month_key=str(period),
            expected_income=expected_income,
            draft_income=float(draft_by_month.get(period, 0.0)),
            total_expenses=total_expenses,
            estimated_expenses=estimated_expenses,
            actual_expenses=actual_expenses,
            balance=balance,
            carryover=carryover,
            cumulative_balance=cumulative,
            work_days_needed=days_to_cover(total_expenses, settings.daily_rate),
            work_days_extra=days_to_cover(-cumulative, settings.daily_rate),
            historical_work_days=past.work_days if past else 0,
            historical_income=past.total_income if past else 0.0,
            status=month_status(balance, cumulative),
        ))
        carryover = cumulative

    logger.debug(
        "Forecast from %s over %d months: expenses %.2f/month, final balance %.2f",
        start, months, total_expenses, carryover,
    )
    return rows


def summarize_forecast(months: List[ForecastMonth]) -> ForecastSummary:
    """Aggregate a forecast into headline figures."""
    if not months:
        return ForecastSummary()

    deficits = [m for m in months if m.status == ForecastStatus.DEFICIT]
    lowest = min(m.cumulative_balance for m in months)
    return ForecastSummary(
        average_work_days=sum(m.work_days_needed for m in months) / len(months),
        deficit_months=len(deficits),
        surplus_months=sum(1 for m in months if m.status == ForecastStatus.SURPLUS),
        critical_months=[m.month for m in deficits],
        recommended_buffer=max(0.0, -lowest),
        final_balance=months[-1].cumulative_balance,
        annual_surplus=sum(m.balance for m in months if m.balance > 0),
        annual_deficit=sum(-m.balance for m in months if m.balance < 0),
    )


def _collected_income(invoices: Any) -> pd.DataFrame:
    """Non-draft invoices with a paid date.

    ``Collected`` is the paid amount, or the total when no payment was recorded.
    """
    frame = invoices_frame(invoices)
    frame = frame[(frame['Status'] != InvoiceStatus.DRAFT.value) & frame['Paid Date'].notna()].copy()
    frame['Collected'] = frame['Paid Amount'].where(frame['Paid Amount'] > 0, frame['Total Amount'])
    frame['Month'] = frame['Paid Date'].dt.to_period('M')
    return frame


def _dated_expenses(expenses: Any) -> pd.DataFrame:
    frame = expenses_frame(expenses)
    frame = frame[frame['Date'].notna()].copy()
    frame['Month'] = frame['Date'].dt.to_period('M')
    return frame


def forecast_carryover(
    invoices: Any,
    expenses: Any,
    now: Any = None,
    lookback: int = CARRYOVER_LOOKBACK_MONTHS,
) -> float:
    """Net result of the last ``lookback`` completed months.

    Income counts invoices paid in those months; expenses are everything
    recorded in them.  The current month is never included.
    """
    current = resolve_now(now).to_period('M')
    window = [current - offset for offset in range(1, lookback + 1)]

    income = _collected_income(invoices)
    spent = _dated_expenses(expenses)
    total_income = float(income.loc[income['Month'].isin(window), 'Collected'].sum())
    total_spent = float(spent.loc[spent['Month'].isin(window), 'Amount'].sum())
    return total_income - total_spent


def real_banking_balance(invoices: Any, expenses: Any, now: Any = None) -> float:
    """Recorded payments minus all expenses before the current month.

    Only ``paid_amount`` counts here: an invoice marked paid without a
    recorded amount adds nothing to the bank balance.
    """
    current = resolve_now(now).to_period('M')
    income = _collected_income(invoices)
    spent = _dated_expenses(expenses)
    total_income = float(income.loc[income['Month'] < current, 'Paid Amount'].sum())
    total_spent = float(spent.loc[spent['Month'] < current, 'Amount'].sum())
    return total_income - total_spent


def resolve_starting_balance(
    settings: Any,
    invoices: Any,
    expenses: Any,
    now: Any = None,
    use_forecast_mode: bool = True,
) -> float:
    """Pick the balance the forecast starts from.

    A custom initial balance in the settings wins.  Otherwise forecast mode
    uses :func:`forecast_carryover` and banking mode :func:`real_banking_balance`.
    """
    settings = resolve_settings(settings)
    if settings.use_custom_initial_balance:
        return settings.initial_balance
    if use_forecast_mode:
        return forecast_carryover(invoices, expenses, now)
    return real_banking_balance(invoices, expenses, now)
