"""Compound-growth pension projection and the contribution needed for a target.

Contributions are made at the end of each month and grow at
``annual_return_rate / 12`` per month (an ordinary annuity).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import math
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PensionProjection:
    monthly_contribution: float
    years: int
    annual_return_rate: float
    future_value: float
    total_contributed: float
    total_returns: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PensionGoal:
    target_amount: float
    years: int
    annual_return_rate: float
    required_monthly_contribution: float
    current_monthly_contribution: float
    gap_monthly: float
    extra_work_days_needed: int
    projection: PensionProjection

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _periods(years: float) -> int:
    return int(round(years * 12)) if years > 0 else 0


def project_pension(monthly_contribution: float, years: int, annual_return_rate: float) -> PensionProjection:
    """Future value of ``monthly_contribution`` paid for ``years`` years.

    Example:
        >>> round(project_pension(100, 1, 0.0).future_value, 2)
        1200.0
    """
    rate = annual_return_rate / 12
    n = _periods(years)
    if n == 0:
        future_value = 0.0
    elif rate > 0:
        future_value = monthly_contribution * ((1 + rate) ** n - 1) / rate
    else:
        future_value = monthly_contribution * n
    contributed = monthly_contribution * n
    return PensionProjection(
        monthly_contribution=monthly_contribution,
        years=years,
        annual_return_rate=annual_return_rate,
        future_value=future_value,
        total_contributed=contributed,
        total_returns=future_value - contributed,
    )


def required_contribution(target_amount: float, years: int, annual_return_rate: float) -> float:
    """Monthly contribution that reaches ``target_amount`` in ``years`` years (0 when ``years`` <= 0)."""
    rate = annual_return_rate / 12
    n = _periods(years)
    if n == 0:
        return 0.0
    if rate > 0:
        return target_amount * rate / ((1 + rate) ** n - 1)
    return target_amount / n


def pension_goal(
    target_amount: float,
    years: int,
    annual_return_rate: float,
    current_contribution: float,
    daily_rate: float,
) -> Optional[PensionGoal]:
    """Compare the current contribution with what ``target_amount`` requires.

    The monthly gap is translated into extra work days at ``daily_rate``.
    Returns ``None`` when no target or no horizon is set.
    """
    if target_amount <= 0 or years <= 0:
        return None

    required = required_contribution(target_amount, years, annual_return_rate)
    gap = max(0.0, required - current_contribution)
    extra_days = int(math.ceil(gap / daily_rate)) if daily_rate > 0 else 0
    return PensionGoal(
        target_amount=target_amount,
        years=years,
        annual_return_rate=annual_return_rate,
        required_monthly_contribution=required,
        current_monthly_contribution=current_contribution,
        gap_monthly=gap,
        extra_work_days_needed=extra_days,
        projection=project_pension(current_contribution, years, annual_return_rate),
    )
