"""Month-by-month profit projection and break-even detection."""
from datetime import date, timedelta
from math import isfinite
from typing import List, Optional

import structlog
from dateutil.relativedelta import relativedelta

from flockledger.schemas.breakeven import BreakEvenParams, BreakEvenResults, MonthlyProjection
from flockledger.services.costs import month_start
from flockledger.services.estimator import MAX_MONTHLY_GROWTH, utc_today
from flockledger.utils.numbers import round_to

logger = structlog.get_logger(__name__)

DAYS_PER_MONTH = 30
FINITE_FIELDS = ("price", "unit_variable_cost", "fixed_costs_per_month", "initial_units", "growth_rate")


class BreakEvenError(ValueError):
    pass


class InvalidParameters(BreakEvenError):
    pass


class BreakEvenUnreachable(BreakEvenError):
    """Unit variable cost meets or exceeds the selling price."""


def _validate(params: BreakEvenParams, projection_months: int) -> None:
    for field in FINITE_FIELDS:
        value = getattr(params, field)
        if not isfinite(value):
            raise InvalidParameters(f"{field} must be a finite number, got {value}")
    if params.price <= 0:
        raise InvalidParameters(f"price must be positive, got {params.price}")
    if params.unit_variable_cost < 0:
        raise InvalidParameters(f"unit variable cost cannot be negative, got {params.unit_variable_cost}")
    if params.fixed_costs_per_month < 0:
        raise InvalidParameters(f"fixed costs cannot be negative, got {params.fixed_costs_per_month}")
    if projection_months < 1:
        raise InvalidParameters(f"projection must cover at least one month, got {projection_months}")


def _clamped_growth(rate: float) -> float:
    clamped = min(max(rate, -MAX_MONTHLY_GROWTH), MAX_MONTHLY_GROWTH)
    if clamped != rate:
        logger.warning("growth_rate_clamped", requested=rate, applied=clamped)
    return clamped


def _normalized_seasonality(factors: List[float]) -> List[float]:
    if not factors:
        return []
    mean = sum(factors) / len(factors)
    if not isfinite(mean) or mean <= 0 or any(f < 0 for f in factors):
        logger.warning("seasonality_ignored", factors=factors)
        return []
    return [f / mean for f in factors]


def break_even_date(month_index: int, previous: Optional[float], current: float, as_of: date) -> date:
    """Interpolate the day cumulative profit crosses zero within ``month_index``."""
    anchor = month_start(as_of) + relativedelta(months=month_index)
    if month_index == 0 or previous is None:
        return anchor
    gap = current - previous
    days_into_month = round_to((0 - previous) / gap * DAYS_PER_MONTH, 0) if gap > 0 else 0
    return anchor + timedelta(days=int(days_into_month))


def calculate_break_even(
    params: BreakEvenParams,
    projection_months: int = 12,
    as_of: Optional[date] = None,
) -> BreakEvenResults:
    _validate(params, projection_months)
    as_of = as_of or utc_today()

    price = params.price
    unit_variable_cost = params.unit_variable_cost
    fixed_costs = params.fixed_costs_per_month

    contribution_margin = price - unit_variable_cost
    if contribution_margin <= 0:
        raise BreakEvenUnreachable(
            f"costs exceed price - break-even unreachable (price {price}, unit variable cost {unit_variable_cost})"
        )
    contribution_margin_ratio = contribution_margin / price
    break_even_units = fixed_costs / contribution_margin
    break_even_revenue = break_even_units * price

    growth_rate = _clamped_growth(params.growth_rate)
    factors = _normalized_seasonality(params.seasonality_factors)

    projections: List[MonthlyProjection] = []
    cumulative = 0.0
    previous_cumulative: Optional[float] = None
    break_even_month: Optional[int] = None
    reached_on: Optional[date] = None

    for month in range(projection_months):
        units = params.initial_units * (1 + growth_rate) ** month
        if factors:
            units *= factors[month % len(factors)]

        revenue = units * price
        variable_costs = units * unit_variable_cost
        total_costs = variable_costs + fixed_costs
        profit = revenue - total_costs
        cumulative += profit

        projections.append(
            MonthlyProjection(
                month=month + 1,
                units=round_to(units),
                revenue=round_to(revenue),
                variable_costs=round_to(variable_costs),
                fixed_costs=round_to(fixed_costs),
                total_costs=round_to(total_costs),
                profit=round_to(profit),
                cumulative_profit=round_to(cumulative),
            )
        )

        if break_even_month is None and cumulative >= 0:
            break_even_month = month + 1
            reached_on = break_even_date(month, previous_cumulative, cumulative, as_of)
        previous_cumulative = cumulative

    logger.debug(
        "break_even_projected",
        projection_months=projection_months,
        break_even_month=break_even_month,
    )

    return BreakEvenResults(
        contribution_margin=round_to(contribution_margin),
        contribution_margin_ratio=round_to(contribution_margin_ratio, 4),
        break_even_units=round_to(break_even_units),
        break_even_revenue=round_to(break_even_revenue),
        break_even_month=break_even_month,
        break_even_date=reached_on,
        payback_period=break_even_month,
        cumulative_profits=[p.cumulative_profit for p in projections],
        monthly_projections=projections,
    )
