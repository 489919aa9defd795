from collections.abc import Mapping
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List

import structlog
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from flockledger.models import ExpenseCategory
from flockledger.schemas.breakeven import CostSplit, MonthlyAggregate
from flockledger.utils.numbers import coerce_amount

logger = structlog.get_logger(__name__)


class CostType(str, Enum):
    VARIABLE = "variable"
    FIXED = "fixed"


# Feed and medication scale with the number of birds; everything else is
# treated as a monthly overhead.
EXPENSE_CATEGORY_TO_COST_TYPE: Dict[str, CostType] = {
    ExpenseCategory.FEED.value: CostType.VARIABLE,
    ExpenseCategory.MEDICATION.value: CostType.VARIABLE,
    ExpenseCategory.LABOR.value: CostType.FIXED,
    ExpenseCategory.UTILITIES.value: CostType.FIXED,
    ExpenseCategory.EQUIPMENT.value: CostType.FIXED,
    ExpenseCategory.OTHER.value: CostType.FIXED,
}


def record_value(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from an ORM row, a pydantic model or a plain mapping."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def classify(category: Any) -> CostType:
    if isinstance(category, Enum):
        category = category.value
    return EXPENSE_CATEGORY_TO_COST_TYPE.get(category, CostType.FIXED)


def filter_expenses_by_type(expenses: Iterable[Any], cost_type: CostType) -> List[Any]:
    cost_type = CostType(cost_type)
    return [e for e in expenses if classify(record_value(e, "category")) == cost_type]


def total_amount(records: Iterable[Any], field: str = "amount") -> float:
    return sum((coerce_amount(record_value(r, field), field, allow_negative=False) for r in records), 0.0)


def split_by_type(expenses: Iterable[Any]) -> CostSplit:
    expenses = list(expenses)
    variable = total_amount(filter_expenses_by_type(expenses, CostType.VARIABLE))
    fixed = total_amount(filter_expenses_by_type(expenses, CostType.FIXED))
    return CostSplit(variable=variable, fixed=fixed, total=variable + fixed)


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def to_utc_date(value: Any) -> date:
    """Calendar date of a record in UTC.

    Bare ``YYYY-MM-DD`` values are taken as UTC midnight; timestamps carrying an
    offset are shifted to UTC first, naive timestamps are assumed to be UTC.
    """
    if isinstance(value, str):
        try:
            value = isoparse(value.strip())
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"unparseable date: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"unparseable date: {value!r}")


def month_key(value: Any) -> str:
    d = to_utc_date(value)
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(key: str) -> date:
    year, month = key.split("-")
    return date(int(year), int(month), 1)


def months_between(first_key: str, last_key: str) -> int:
    first, last = parse_month_key(first_key), parse_month_key(last_key)
    return (last.year - first.year) * 12 + (last.month - first.month)


def _safe_month_key(record: Any, date_field: str):
    try:
        return month_key(record_value(record, date_field))
    except ValueError as exc:
        logger.warning("record_date_unparseable", field=date_field, error=str(exc))
        return None


def aggregate_by_month(sales: Iterable[Any], expenses: Iterable[Any]) -> List[MonthlyAggregate]:
    buckets: Dict[str, MonthlyAggregate] = {}

    for sale in sales:
        key = _safe_month_key(sale, "sale_date")
        if key is None:
            continue
        bucket = buckets.setdefault(key, MonthlyAggregate(month=key))
        bucket.revenue += coerce_amount(record_value(sale, "total_amount"), "total_amount")
        crates = coerce_amount(record_value(sale, "crates_sold", 0), "crates_sold", allow_negative=False)
        bucket.units_sold += int(crates)

    for expense in expenses:
        key = _safe_month_key(expense, "expense_date")
        if key is None:
            continue
        bucket = buckets.setdefault(key, MonthlyAggregate(month=key))
        amount = coerce_amount(record_value(expense, "amount"), allow_negative=False)
        if classify(record_value(expense, "category")) == CostType.VARIABLE:
            bucket.variable_costs += amount
        else:
            bucket.fixed_costs += amount

    for bucket in buckets.values():
        bucket.total_costs = bucket.variable_costs + bucket.fixed_costs
        bucket.profit = bucket.revenue - bucket.total_costs

    # zero-padded keys sort chronologically
    return [buckets[key] for key in sorted(buckets)]


def fill_missing_months(aggregates: Iterable[MonthlyAggregate], start_key: str, end_key: str) -> List[MonthlyAggregate]:
    """Continuous month series for charts; absent months become zero rows."""
    by_month = {a.month: a for a in aggregates}
    filled: List[MonthlyAggregate] = []
    current, last = parse_month_key(start_key), parse_month_key(end_key)
    while current <= last:
        key = f"{current.year:04d}-{current.month:02d}"
        filled.append(by_month.get(key) or MonthlyAggregate(month=key))
        current += relativedelta(months=1)
    return filled
