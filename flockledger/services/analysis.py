from datetime import date
from typing import Any, Iterable, Optional

import structlog

from flockledger.schemas.breakeven import (
    BreakEvenMetrics,
    DataSource,
    DateRange,
    DerivedValues,
    SuggestedAction,
)
from flockledger.services.costs import aggregate_by_month, fill_missing_months, month_key
from flockledger.services.estimator import (
    auto_calculate_break_even_params,
    filter_window,
    utc_today,
    window_start,
)
from flockledger.services.projector import (
    BreakEvenUnreachable,
    InvalidParameters,
    calculate_break_even,
)
from flockledger.utils.numbers import round_to

logger = structlog.get_logger(__name__)

SUGGESTED_ACTIONS = [
    SuggestedAction(label="Record a sale", route="/sales"),
    SuggestedAction(label="Add an expense", route="/expenses"),
]


def build_metrics(
    sales: Iterable[Any],
    expenses: Iterable[Any],
    timeframe_months: int,
    projection_months: int = 12,
    as_of: Optional[date] = None,
) -> BreakEvenMetrics:
    """Everything the break-even dashboard shows for one farm and one window."""
    as_of = as_of or utc_today()
    sales, expenses = list(sales), list(expenses)
    window_sales, window_expenses = filter_window(sales, expenses, timeframe_months, as_of)

    if not window_sales and not window_expenses:
        return BreakEvenMetrics(
            has_data=False,
            timeframe_months=timeframe_months,
            message=(
                f"No sales or expenses recorded in the last {timeframe_months} months. "
                "Record sales and expenses to generate a break-even analysis."
            ),
            suggested_actions=list(SUGGESTED_ACTIONS),
        )

    start = window_start(timeframe_months, as_of)
    aggregates = aggregate_by_month(window_sales, window_expenses)
    history = fill_missing_months(aggregates, month_key(start), month_key(as_of))
    estimate = auto_calculate_break_even_params(window_sales, window_expenses, timeframe_months, as_of)
    params = estimate.params

    metrics = BreakEvenMetrics(
        has_data=True,
        auto_calculated=True,
        timeframe_months=timeframe_months,
        data_source=DataSource(
            months_analyzed=len(aggregates),
            sales_records=len(window_sales),
            expense_records=len(window_expenses),
            date_range=DateRange(start_date=start, end_date=as_of),
        ),
        derived_values=DerivedValues(
            average_price=params.price,
            average_unit_variable_cost=params.unit_variable_cost,
            average_fixed_costs_per_month=params.fixed_costs_per_month,
            average_monthly_units=params.initial_units,
            calculated_growth_rate=round_to(params.growth_rate * 100),
        ),
        data_quality=estimate.data_quality,
        monthly_history=history,
    )
    if not estimate.data_quality.has_sufficient_data:
        metrics.suggested_actions = list(SUGGESTED_ACTIONS)

    try:
        metrics.results = calculate_break_even(params, projection_months=projection_months, as_of=as_of)
    except BreakEvenUnreachable as exc:
        logger.info("break_even_unreachable", error=str(exc))
        metrics.message = (
            "Average variable cost per crate is at or above the average selling price; "
            "break-even cannot be reached at current margins."
        )
    except InvalidParameters as exc:
        logger.info("break_even_inputs_invalid", error=str(exc))
        metrics.message = "Recorded sales do not yield a positive average price per crate."
    return metrics
