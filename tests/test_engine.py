import pandas as pd
import pytest

from budget_forecast import FinancialForecastEngine
from budget_forecast.forecast import summarize_forecast

NOW = '2025-03-15'


def _expenses():
    return pd.DataFrame([
        {'id': '1', 'Transaction Date': '2025-01-05', 'Amount': 250, 'Description': 'Rata 1/24 - Younited'},
        {'id': '2', 'Transaction Date': '2025-02-05', 'Amount': 250, 'Description': 'Rata 2/24 - Younited'},
        {'id': '3', 'Transaction Date': '2025-03-05', 'Amount': 250, 'Description': 'Rata 3/24 - Younited'},
        {'id': '4', 'Transaction Date': '2025-03-01', 'Amount': 700, 'Category': 'casa'},
        {'id': '5', 'Transaction Date': '2025-01-20', 'Amount': 300, 'Category': 'cibo'},
        {'id': '6', 'Transaction Date': '2025-02-20', 'Amount': 500, 'Category': 'cibo'},
        {'id': '7', 'Transaction Date': '2025-03-20', 'Amount': 400, 'Category': 'cibo'},
    ])


def _invoices():
    return [
        {'id': 'a', 'invoiceDate': '2024-04-02', 'totalAmount': 3000, 'status': 'pagata',
         'paidDate': '2024-05-30', 'paidAmount': 3000},
        {'id': 'b', 'invoiceDate': '2025-01-10', 'totalAmount': 2500, 'status': 'pagata',
         'paidDate': '2025-02-12', 'paidAmount': 2500},
        {'id': 'c', 'invoiceDate': '2025-03-01', 'dueDate': '2025-04-30', 'totalAmount': 4000, 'status': 'inviata'},
        {'id': 'd', 'invoiceDate': '2025-03-10', 'totalAmount': 1500, 'status': 'bozza'},
    ]


def _engine(**settings):
    base = {'dailyRate': 400, 'pensionMonthlyAmount': 150, 'pensionTargetAmount': 100000,
            'pensionTargetYears': 15, 'sp500ReturnRate': 0.07}
    base.update(settings)
    return FinancialForecastEngine(_expenses(), _invoices(), base, now=NOW)


def test_snapshot_for_current_month():
    snapshot = _engine().monthly_snapshot()

    assert snapshot.month_key == '2025-03'
    assert snapshot.loans == pytest.approx(250)
    assert snapshot.fixed == pytest.approx(700)
    assert snapshot.variable_average == pytest.approx(400)
    assert snapshot.months_considered == 3
    assert not snapshot.is_estimated


def test_snapshot_for_explicit_month():
    snapshot = _engine().monthly_snapshot('2025-02')
    assert snapshot.variable_average == pytest.approx(400)
    assert snapshot.months_considered == 2


def test_work_plan_uses_snapshot_and_starting_balance():
    engine = _engine()
    plan = engine.work_plan()

    # Dec..Feb carryover: 2500 income minus 300 + 250 + 500 + 250 spent
    assert engine.starting_balance() == pytest.approx(2500 - 1300)
    assert plan[0].carryover == pytest.approx(1200)
    assert plan[0].total_expenses == pytest.approx(250 + 700 + 400 + 150)
    assert plan[0].work_days_needed == 4
    assert plan[1].expected_income == pytest.approx(4000)
    assert all(month.draft_income == 0 for month in plan)


def test_drafts_can_be_included():
    plan = _engine(includeDrafts=True).work_plan()
    # Draft without a due date is expected 60 days after issue
    assert plan[2].month_key == '2025-05'
    assert plan[2].draft_income == pytest.approx(1500)


def test_history_feeds_same_month_comparison():
    engine = _engine()
    history = engine.historical_summary()
    plan = engine.work_plan()

    # Invoices issued in Apr 2024, Jan 2025 and Mar 2025; the draft is left out
    assert history.month_count == 3
    assert history.total_income == pytest.approx(9500)
    april = next(month for month in plan if month.month_key == '2025-04')
    assert april.historical_work_days == 8
    assert april.historical_income == pytest.approx(3000)


def test_custom_initial_balance_wins():
    engine = _engine(useCustomInitialBalance=True, initialBalance=-2000)
    assert engine.starting_balance() == pytest.approx(-2000)
    assert engine.work_plan()[0].status.value == 'deficit'


def test_pension_projection_and_goal():
    engine = _engine()
    projection = engine.pension_projection()
    goal = engine.pension_goal()

    assert projection.years == 15
    assert projection.annual_return_rate == pytest.approx(0.07)
    assert projection.total_contributed == pytest.approx(150 * 180)
    assert engine.pension_projection(years=5).total_contributed == pytest.approx(150 * 60)
    assert goal is not None
    assert goal.current_monthly_contribution == pytest.approx(150)


def test_report_is_plain_data():
    engine = _engine()
    report = engine.report()

    assert report['month_key'] == '2025-03'
    assert len(report['work_plan']) == 12
    assert report['summary'] == summarize_forecast(engine.work_plan()).to_dict()
    assert report['loans'][0]['name'] == 'YOUNITED PRESTITO'
    assert report['pension_goal']['target_amount'] == pytest.approx(100000)
    assert report['settings']['daily_rate'] == pytest.approx(400)
    assert isinstance(report['work_plan'][0]['status'], str)


def test_engine_without_records():
    engine = FinancialForecastEngine(None, None, now=NOW)
    summary = engine.summary()

    assert summary.deficit_months == 0
    assert summary.final_balance == 0.0
    assert engine.pension_goal() is None
    assert engine.report()['loans'] == []
