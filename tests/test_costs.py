from datetime import date, datetime, timedelta, timezone

import pytest
from hypothesis import given, settings, strategies as st

from conftest import make_expense, make_sale
from flockledger.models import ExpenseCategory
from flockledger.schemas.breakeven import MonthlyAggregate
from flockledger.services.costs import (
    CostType,
    aggregate_by_month,
    classify,
    fill_missing_months,
    filter_expenses_by_type,
    month_key,
    months_between,
    split_by_type,
    to_utc_date,
)


class TestClassify:
    @pytest.mark.parametrize("category", ["feed", "medication", ExpenseCategory.FEED])
    def test_variable_categories(self, category):
        assert classify(category) == CostType.VARIABLE

    @pytest.mark.parametrize("category", ["labor", "utilities", "equipment", "other", "vaccines", "", None])
    def test_everything_else_is_fixed(self, category):
        assert classify(category) == CostType.FIXED

    @pytest.mark.property
    @given(category=st.text())
    def test_total_over_arbitrary_strings(self, category):
        assert classify(category) in (CostType.VARIABLE, CostType.FIXED)


class TestMonthKey:
    @pytest.mark.parametrize(
        "value", ["2024-03-15", "2024-03-15T23:59:59Z", "2024-03-01T00:00:00Z", date(2024, 3, 31)]
    )
    def test_same_utc_month(self, value):
        assert month_key(value) == "2024-03"

    def test_offsets_are_shifted_to_utc(self):
        assert month_key("2024-03-31T23:30:00-02:00") == "2024-04"
        assert month_key("2024-04-01T00:30:00+02:00") == "2024-03"
        tz = timezone(timedelta(hours=5))
        assert month_key(datetime(2024, 1, 1, 2, 0, tzinfo=tz)) == "2023-12"

    def test_naive_timestamp_taken_as_utc(self):
        assert to_utc_date(datetime(2024, 2, 29, 23, 59)) == date(2024, 2, 29)

    def test_unparseable(self):
        with pytest.raises(ValueError):
            month_key("last tuesday")


def test_months_between_counts_calendar_months():
    assert months_between("2024-01", "2024-04") == 3
    assert months_between("2023-11", "2024-02") == 3
    assert months_between("2024-05", "2024-05") == 0


class TestSplitByType:
    def test_totals_per_bucket(self):
        expenses = [
            make_expense("2024-01-01", "feed", "1200.50"),
            make_expense("2024-01-02", "medication", 300),
            make_expense("2024-01-03", "labor", 800),
            make_expense("2024-01-04", "mystery", 100),
            make_expense("2024-01-05", "utilities", "n/a"),
        ]
        split = split_by_type(expenses)
        assert split.variable == pytest.approx(1500.5)
        assert split.fixed == pytest.approx(900.0)
        assert split.total == pytest.approx(2400.5)

    def test_filter_returns_caller_records(self):
        feed = make_expense("2024-01-01", "feed", 10)
        labor = make_expense("2024-01-01", "labor", 10)
        assert filter_expenses_by_type([feed, labor], "variable") == [feed]
        assert filter_expenses_by_type([feed, labor], CostType.FIXED)[0] is labor

    def test_plain_mappings_are_accepted(self):
        split = split_by_type([{"category": "feed", "amount": 5}, {"category": "labor", "amount": "7"}])
        assert (split.variable, split.fixed) == (5.0, 7.0)


class TestAggregateByMonth:
    def test_empty_input(self):
        assert aggregate_by_month([], []) == []

    def test_folds_and_sorts_months(self):
        sales = [
            make_sale("2024-03-02", 4000, 10),
            make_sale("2024-01-15T10:00:00Z", "2000", 5),
            make_sale("2024-03-20", 800, 2),
        ]
        expenses = [
            make_expense("2024-02-01", "feed", 500),
            make_expense("2024-03-01", "feed", 1000),
            make_expense("2024-03-05", "labor", 1500),
        ]
        months = aggregate_by_month(sales, expenses)

        assert [m.month for m in months] == ["2024-01", "2024-02", "2024-03"]
        march = months[2]
        assert march.revenue == 4800
        assert march.units_sold == 12
        assert march.variable_costs == 1000
        assert march.fixed_costs == 1500
        assert march.total_costs == 2500
        assert march.profit == 2300
        assert months[1].revenue == 0 and months[1].profit == -500

    def test_malformed_amounts_count_as_zero(self):
        months = aggregate_by_month(
            [make_sale("2024-01-01", "oops", 3, 10)],
            [make_expense("2024-01-01", "feed", None)],
        )
        assert len(months) == 1
        assert months[0].revenue == 0
        assert months[0].units_sold == 3
        assert months[0].total_costs == 0

    def test_negative_costs_and_crates_count_as_zero(self):
        months = aggregate_by_month(
            [{"sale_date": "2024-01-05", "total_amount": 500, "crates_sold": -4}],
            [{"expense_date": "2024-01-06", "category": "feed", "amount": "-250"},
             {"expense_date": "2024-01-07", "category": "labor", "amount": 100}],
        )
        assert months[0].units_sold == 0
        assert months[0].revenue == 500
        assert months[0].variable_costs == 0
        assert months[0].fixed_costs == 100

    def test_records_with_bad_dates_are_skipped(self):
        months = aggregate_by_month(
            [make_sale("not-a-date", 100, 1), make_sale("2024-05-05", 100, 1)], []
        )
        assert [m.month for m in months] == ["2024-05"]

    def test_inputs_are_not_mutated(self):
        sales = [make_sale("2024-01-01", 100, 1)]
        expenses = [make_expense("2024-01-01", "feed", 10)]
        before = ([s.model_dump() for s in sales], [e.model_dump() for e in expenses])
        aggregate_by_month(sales, expenses)
        aggregate_by_month(sales, expenses)
        assert before == ([s.model_dump() for s in sales], [e.model_dump() for e in expenses])

    def test_repeated_calls_are_identical(self):
        sales = [make_sale("2024-01-01", 100.1, 1), make_sale("2024-02-01", 200.2, 2)]
        expenses = [make_expense("2024-02-01", "labor", 33.3)]
        assert aggregate_by_month(sales, expenses) == aggregate_by_month(sales, expenses)

    @pytest.mark.property
    @settings(max_examples=50, deadline=None)
    @given(
        sales=st.lists(
            st.tuples(
                st.dates(min_value=date(2022, 1, 1), max_value=date(2024, 12, 31)),
                st.floats(min_value=0, max_value=1e6, allow_nan=False),
                st.integers(min_value=0, max_value=500),
            ),
            max_size=40,
        ),
        expenses=st.lists(
            st.tuples(
                st.dates(min_value=date(2022, 1, 1), max_value=date(2024, 12, 31)),
                st.sampled_from([c.value for c in ExpenseCategory] + ["unknown"]),
                st.floats(min_value=0, max_value=1e6, allow_nan=False),
            ),
            max_size=40,
        ),
    )
    def test_conservation(self, sales, expenses):
        sale_records = [make_sale(d, amount, crates, 1) for d, amount, crates in sales]
        expense_records = [make_expense(d, category, amount) for d, category, amount in expenses]
        months = aggregate_by_month(sale_records, expense_records)

        assert sum(m.revenue for m in months) == pytest.approx(sum(a for _, a, _ in sales), rel=1e-9, abs=1e-6)
        assert sum(m.units_sold for m in months) == sum(c for _, _, c in sales)
        assert sum(m.total_costs for m in months) == pytest.approx(
            sum(a for _, _, a in expenses), rel=1e-9, abs=1e-6
        )
        assert len({m.month for m in months}) == len(months)


def test_fill_missing_months_zero_fills_gaps():
    months = aggregate_by_month([make_sale("2023-12-10", 100, 1), make_sale("2024-02-10", 300, 3)], [])
    filled = fill_missing_months(months, "2023-11", "2024-03")
    assert [m.month for m in filled] == ["2023-11", "2023-12", "2024-01", "2024-02", "2024-03"]
    assert filled[2] == MonthlyAggregate(month="2024-01")
    assert filled[3].units_sold == 3
