import csv
import io
from datetime import date

from flockledger.schemas.breakeven import BreakEvenMetrics

PROJECTION_HEADERS = [
    "Month",
    "Units",
    "Revenue",
    "Variable Costs",
    "Fixed Costs",
    "Total Costs",
    "Profit",
    "Cumulative Profit",
]


def export_filename(timeframe_months: int, generated_on: date) -> str:
    return f"break-even-analysis-{timeframe_months}months-{generated_on.isoformat()}.csv"


def _write_summary_section(writer, metrics: BreakEvenMetrics) -> None:
    writer.writerow(["AUTO-CALCULATED METRICS"])
    source = metrics.data_source
    writer.writerow(["Data Source", f"{source.months_analyzed if source else 0} months of historical data"])
    writer.writerow(["Sales Records", source.sales_records if source else 0])
    writer.writerow(["Expense Records", source.expense_records if source else 0])
    writer.writerow([])


def _write_derived_section(writer, metrics: BreakEvenMetrics) -> None:
    derived = metrics.derived_values
    if derived is None:
        return
    writer.writerow(["DERIVED VALUES"])
    writer.writerow(["Average Price/Crate", f"{derived.average_price:.2f}"])
    writer.writerow(["Avg Variable Cost/Crate", f"{derived.average_unit_variable_cost:.2f}"])
    writer.writerow(["Avg Fixed Costs/Month", f"{derived.average_fixed_costs_per_month:.2f}"])
    writer.writerow(["Avg Monthly Units", f"{derived.average_monthly_units:g}"])
    writer.writerow(["Calculated Growth Rate", f"{derived.calculated_growth_rate:.2f}%"])
    results = metrics.results
    if results is not None:
        writer.writerow(["Break-Even Units/Month", f"{results.break_even_units:.2f}"])
        writer.writerow(["Break-Even Month", results.break_even_month or "Not reached"])
    writer.writerow([])


def _write_warnings_section(writer, metrics: BreakEvenMetrics) -> None:
    if metrics.data_quality is None or not metrics.data_quality.warnings:
        return
    writer.writerow(["DATA QUALITY WARNINGS"])
    for warning in metrics.data_quality.warnings:
        writer.writerow([warning])
    writer.writerow([])


def render_metrics_csv(metrics: BreakEvenMetrics) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    _write_summary_section(writer, metrics)
    _write_derived_section(writer, metrics)
    _write_warnings_section(writer, metrics)

    writer.writerow(PROJECTION_HEADERS)
    projections = metrics.results.monthly_projections if metrics.results else []
    for row in projections:
        writer.writerow(
            [
                row.month,
                row.units,
                row.revenue,
                row.variable_costs,
                row.fixed_costs,
                row.total_costs,
                row.profit,
                row.cumulative_profit,
            ]
        )
    return buffer.getvalue()
