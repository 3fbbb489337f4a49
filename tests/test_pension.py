import math

import pytest

from budget_forecast.pension import pension_goal, project_pension, required_contribution


def _reference_future_value(contribution, years, annual_rate):
    rate = annual_rate / 12
    balance = 0.0
    for _ in range(years * 12):
        balance = balance * (1 + rate) + contribution
    return balance


def test_future_value_matches_month_by_month_growth():
    projection = project_pension(300, 20, 0.08)
    expected = _reference_future_value(300, 20, 0.08)

    assert projection.future_value == pytest.approx(expected, rel=1e-6)
    assert projection.total_contributed == pytest.approx(300 * 240)
    assert projection.total_returns == pytest.approx(expected - 300 * 240, rel=1e-6)


def test_zero_rate_and_zero_years():
    assert project_pension(250, 10, 0.0).future_value == pytest.approx(250 * 120)
    empty = project_pension(250, 0, 0.05)
    assert empty.future_value == 0.0
    assert empty.total_contributed == 0.0


def test_required_contribution_round_trip():
    for contribution, years, rate in [(300, 20, 0.08), (150, 5, 0.0), (1000, 30, 0.1)]:
        target = project_pension(contribution, years, rate).future_value
        assert required_contribution(target, years, rate) == pytest.approx(contribution, rel=1e-9)


def test_required_contribution_guards_empty_horizon():
    assert required_contribution(100000, 0, 0.05) == 0.0
    assert required_contribution(100000, -3, 0.05) == 0.0


def test_negative_contributions_are_not_clamped():
    assert project_pension(-100, 1, 0.0).future_value == pytest.approx(-1200)


def test_pension_goal_gap_and_work_days():
    goal = pension_goal(200000, 20, 0.08, current_contribution=200, daily_rate=300)
    required = required_contribution(200000, 20, 0.08)

    assert goal is not None
    assert goal.required_monthly_contribution == pytest.approx(required)
    assert goal.gap_monthly == pytest.approx(required - 200)
    assert goal.extra_work_days_needed == math.ceil((required - 200) / 300)
    assert goal.projection.monthly_contribution == 200
    assert goal.to_dict()['projection']['years'] == 20


def test_pension_goal_already_met():
    goal = pension_goal(10000, 10, 0.05, current_contribution=1000, daily_rate=300)
    assert goal.gap_monthly == 0.0
    assert goal.extra_work_days_needed == 0


def test_pension_goal_without_target_or_horizon():
    assert pension_goal(0, 20, 0.08, 100, 300) is None
    assert pension_goal(50000, 0, 0.08, 100, 300) is None
