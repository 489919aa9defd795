"""Derive break-even inputs from a farm's recorded sales and expenses."""
from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple

import structlog
from dateutil.relativedelta import relativedelta

from flockledger.schemas.breakeven import (
    AutoCalculatedParams,
    BreakEvenParams,
    DataQuality,
    MonthlyAggregate,
)
from flockledger.services.costs import (
    aggregate_by_month,
    month_start,
    months_between,
    record_value,
    to_utc_date,
)
from flockledger.utils.numbers import coerce_amount, round_to

logger = structlog.get_logger(__name__)

DEFAULT_PRICE = 400.0
DEFAULT_VARIABLE_COST_SHARE = 0.4
DEFAULT_INITIAL_UNITS = 100.0
MAX_MONTHLY_GROWTH = 0.2
MIN_MONTHS_WITH_SALES = 3
MIN_MONTHS_WITH_EXPENSES = 2
MIN_MONTHS_FOR_SEASONALITY = 3


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def window_start(timeframe_months: int, as_of: Optional[date] = None) -> date:
    """First day of the oldest month in a trailing window that includes the current month."""
    as_of = as_of or utc_today()
    return month_start(as_of) - relativedelta(months=max(timeframe_months, 1) - 1)


def _within_window(records: Iterable[Any], date_field: str, cutoff: date) -> List[Any]:
    kept = []
    for record in records:
        try:
            if to_utc_date(record_value(record, date_field)) >= cutoff:
                kept.append(record)
        except ValueError:
            logger.warning("record_date_unparseable", field=date_field)
    return kept


def filter_window(
    sales: Iterable[Any], expenses: Iterable[Any], timeframe_months: int, as_of: Optional[date] = None
) -> Tuple[List[Any], List[Any]]:
    cutoff = window_start(timeframe_months, as_of)
    return _within_window(sales, "sale_date", cutoff), _within_window(expenses, "expense_date", cutoff)


def compound_growth(months: List[MonthlyAggregate]) -> Optional[float]:
    """Month-over-month compound rate between the first and last selling months.

    Uses calendar distance between the two months, so gaps without sales are
    still counted. Returns None when there is nothing to compare.
    """
    selling = [m for m in months if m.units_sold > 0]
    if len(selling) < 2:
        return None
    first, last = selling[0], selling[-1]
    gap = months_between(first.month, last.month)
    if gap <= 0:
        return None
    return (last.units_sold / first.units_sold) ** (1 / gap) - 1


def seasonality_factors(months: List[MonthlyAggregate]) -> List[float]:
    if not months:
        return [1.0]
    mean_units = sum(m.units_sold for m in months) / len(months)
    factors = [m.units_sold / mean_units if mean_units > 0 else 1.0 for m in months]
    # second pass removes float drift so the mean is exactly one
    mean_factor = sum(factors) / len(factors)
    if mean_factor > 0:
        factors = [f / mean_factor for f in factors]
    return factors


def auto_calculate_break_even_params(
    sales: Iterable[Any],
    expenses: Iterable[Any],
    timeframe_months: int,
    as_of: Optional[date] = None,
) -> AutoCalculatedParams:
    warnings: List[str] = []

    window_sales, window_expenses = filter_window(sales, expenses, timeframe_months, as_of)
    months = aggregate_by_month(window_sales, window_expenses)

    months_with_sales = sum(1 for m in months if m.units_sold > 0)
    months_with_expenses = sum(1 for m in months if m.total_costs > 0)
    total_units = sum(m.units_sold for m in months)
    total_revenue = sum(m.revenue for m in months)
    total_variable = sum(m.variable_costs for m in months)
    total_fixed = sum(m.fixed_costs for m in months)
    total_expenses = sum(m.total_costs for m in months)

    has_sufficient_data = (
        months_with_sales >= MIN_MONTHS_WITH_SALES
        and months_with_expenses >= MIN_MONTHS_WITH_EXPENSES
        and total_units > 0
    )
    if months_with_sales < MIN_MONTHS_WITH_SALES:
        warnings.append("Less than 3 months of sales data")
    if months_with_expenses < MIN_MONTHS_WITH_EXPENSES:
        warnings.append("Less than 2 months of expense data")
    if total_units == 0:
        warnings.append("No units sold in selected timeframe")

    # Price: revenue-weighted when crates were counted
    if total_units > 0:
        price = total_revenue / total_units
    elif window_sales:
        prices = [coerce_amount(record_value(s, "price_per_crate"), "price_per_crate") for s in window_sales]
        price = sum(prices) / len(prices)
        warnings.append("Using average price (no units sold)")
    else:
        price = DEFAULT_PRICE
        warnings.append("No sales data - using default price")

    if total_units > 0:
        unit_variable_cost = total_variable / total_units
    else:
        unit_variable_cost = price * DEFAULT_VARIABLE_COST_SHARE
        warnings.append("No units sold - estimating variable cost")

    # Every month with any activity counts, even those without fixed expenses.
    active_months = len(months)
    fixed_costs_per_month = total_fixed / active_months if active_months else 0.0
    if total_fixed == 0:
        warnings.append("No fixed expenses recorded")

    first_selling = next((m for m in months if m.units_sold > 0), None)
    if first_selling is not None:
        initial_units = float(first_selling.units_sold)
    else:
        initial_units = total_units / months_with_sales if months_with_sales else DEFAULT_INITIAL_UNITS
        warnings.append("No sales in first month - using average")

    growth_rate = compound_growth(months)
    if growth_rate is None:
        growth_rate = 0.0
        warnings.append("Insufficient data for growth rate - using 0%")
    elif growth_rate > MAX_MONTHLY_GROWTH:
        growth_rate = MAX_MONTHLY_GROWTH
        warnings.append("Growth rate capped at 20%/month")
    elif growth_rate < -MAX_MONTHLY_GROWTH:
        growth_rate = -MAX_MONTHLY_GROWTH
        warnings.append("Decline rate capped at 20%/month")

    if len(months) >= MIN_MONTHS_FOR_SEASONALITY:
        factors = seasonality_factors(months)
    else:
        factors = [1.0]
        warnings.append("Insufficient data for seasonality - using flat pattern")

    logger.info(
        "break_even_params_estimated",
        timeframe_months=timeframe_months,
        months=len(months),
        sufficient=has_sufficient_data,
        warnings=len(warnings),
    )

    return AutoCalculatedParams(
        params=BreakEvenParams(
            price=round_to(price),
            unit_variable_cost=round_to(unit_variable_cost),
            fixed_costs_per_month=round_to(fixed_costs_per_month),
            initial_units=round_to(initial_units, 0),
            growth_rate=round_to(growth_rate, 4),
            seasonality_factors=factors,
        ),
        data_quality=DataQuality(
            has_sufficient_data=has_sufficient_data,
            months_with_sales=months_with_sales,
            months_with_expenses=months_with_expenses,
            total_sales=total_units,
            total_expenses=round_to(total_expenses),
            warnings=warnings,
        ),
    )
