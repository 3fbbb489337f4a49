"""Facade tying the classifier, snapshot, forecast, history and pension pieces together."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .classification import group_loan_payments
from .config import FORECAST_HORIZON_MONTHS
from .forecast import (
    ForecastMonth,
    ForecastSummary,
    forecast_cash_flow,
    resolve_starting_balance,
    summarize_forecast,
)
from .formatting import format_currency
from .historical import HistoricalMonth, HistoricalSummary, aggregate_history, historical_months
from .pension import PensionGoal, PensionProjection, pension_goal, project_pension
from .records import RecordInput, expense_records, invoice_records, resolve_now
from .settings import resolve_settings
from .snapshot import MonthlySnapshot, build_snapshot

logger = logging.getLogger(__name__)


class FinancialForecastEngine:
    """Forecast engine over one household's expenses and invoices.

    Records are normalised once on construction; every method recomputes its
    result from them, so the engine holds no derived state.

    Example:
        >>> engine = FinancialForecastEngine([], [], {'daily_rate': 350}, now='2025-03-15')
        >>> engine.summary().deficit_months
        0
    """

    def __init__(
        self,
        expenses: RecordInput,
        invoices: RecordInput,
        settings: Any = None,
        now: Any = None,
    ):
        self.expenses = expense_records(expenses)
        self.invoices = invoice_records(invoices)
        self.settings = resolve_settings(settings)
        self.now = resolve_now(now)

    @property
    def month_key(self) -> str:
        return str(self.now.to_period('M'))

    def monthly_snapshot(self, month_key: Optional[str] = None) -> MonthlySnapshot:
        return build_snapshot(self.expenses, month_key or self.month_key)

    def historical_months(self) -> Dict[str, HistoricalMonth]:
        return historical_months(self.invoices, self.settings.daily_rate, self.now)

    def historical_summary(self) -> HistoricalSummary:
        return aggregate_history(self.invoices, self.settings.daily_rate, self.now)

    def starting_balance(self, use_forecast_mode: bool = True) -> float:
        return resolve_starting_balance(
            self.settings, self.invoices, self.expenses, self.now, use_forecast_mode=use_forecast_mode,
        )

    def work_plan(
        self,
        include_drafts: Optional[bool] = None,
        months: int = FORECAST_HORIZON_MONTHS,
    ) -> List[ForecastMonth]:
        """Month-by-month forecast from the current month's snapshot and starting balance."""
        return forecast_cash_flow(
            self.invoices,
            self.monthly_snapshot(),
            self.settings,
            self.starting_balance(),
            include_drafts=include_drafts,
            now=self.now,
            history=self.historical_months(),
            months=months,
        )

    def summary(self) -> ForecastSummary:
        return summarize_forecast(self.work_plan())

    def pension_projection(self, years: Optional[int] = None) -> PensionProjection:
        """Project the configured monthly pension contribution.

        ``years`` defaults to the pension target horizon in the settings.
        """
        if years is None:
            years = self.settings.pension_target_years
        return project_pension(self.settings.pension_monthly, years, self.settings.expected_return_rate)

    def pension_goal(self) -> Optional[PensionGoal]:
        return pension_goal(
            self.settings.pension_target_amount,
            self.settings.pension_target_years,
            self.settings.expected_return_rate,
            self.settings.pension_monthly,
            self.settings.daily_rate,
        )

    def report(self) -> Dict[str, Any]:
        """Everything the engine computes, as plain data."""
        plan = self.work_plan()
        summary = summarize_forecast(plan)
        goal = self.pension_goal()

        logger.info(
            "Forecast %s: %d expenses, %d invoices, %d deficit months, final balance %s",
            self.month_key,
            len(self.expenses),
            len(self.invoices),
            summary.deficit_months,
            format_currency(summary.final_balance),
        )

        return {
            'month_key': self.month_key,
            'settings': self.settings.to_dict(),
            'snapshot': self.monthly_snapshot().to_dict(),
            'starting_balance': self.starting_balance(),
            'history': self.historical_summary().to_dict(),
            'work_plan': [month.to_dict() for month in plan],
            'summary': summary.to_dict(),
            'loans': [loan.to_dict() for loan in group_loan_payments(self.expenses, self.now)],
            'pension': self.pension_projection().to_dict(),
            'pension_goal': goal.to_dict() if goal else None,
        }
