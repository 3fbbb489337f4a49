"""Top-level package for the budget forecast engine.

The engine turns expense and invoice records into a monthly cost snapshot,
a rolling 12-month cash-flow forecast, a trailing-12-month work-day history
and a pension projection.  The primary modules are:

* ``classification`` – sorts expenses into loan, transfer, subscription,
  bill, fixed and variable buckets
* ``snapshot`` – per-month cost snapshot with a progressive variable average
* ``forecast`` – cash-flow projection, carryover and starting balances
* ``historical`` – realised income and work days over the last year
* ``pension`` – compound-growth projection and required contributions
* ``engine`` – :class:`FinancialForecastEngine`, a facade over all of them

Everything is a pure computation over caller-supplied data; nothing here
reads from or writes to a database.
"""

from .classification import ExpenseBucket, bucket_totals, classify_expense, classify_expenses
from .engine import FinancialForecastEngine
from .forecast import (
    ForecastMonth,
    ForecastStatus,
    ForecastSummary,
    forecast_carryover,
    forecast_cash_flow,
    real_banking_balance,
    resolve_starting_balance,
    summarize_forecast,
)
from .historical import HistoricalMonth, HistoricalSummary, aggregate_history, historical_months
from .pension import PensionGoal, PensionProjection, pension_goal, project_pension, required_contribution
from .records import ExpenseRecord, InvoiceRecord, InvoiceStatus
from .settings import ForecastSettings
from .snapshot import MonthlySnapshot, build_snapshot, progressive_window

__all__ = [
    "ExpenseBucket",
    "ExpenseRecord",
    "FinancialForecastEngine",
    "ForecastMonth",
    "ForecastSettings",
    "ForecastStatus",
    "ForecastSummary",
    "HistoricalMonth",
    "HistoricalSummary",
    "InvoiceRecord",
    "InvoiceStatus",
    "MonthlySnapshot",
    "PensionGoal",
    "PensionProjection",
    "aggregate_history",
    "bucket_totals",
    "build_snapshot",
    "classify_expense",
    "classify_expenses",
    "forecast_carryover",
    "forecast_cash_flow",
    "historical_months",
    "pension_goal",
    "progressive_window",
    "project_pension",
    "real_banking_balance",
    "required_contribution",
    "resolve_starting_balance",
    "summarize_forecast",
]
