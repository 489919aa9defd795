from datetime import date, datetime
from typing import List, Literal, Optional, Union, get_args

from pydantic import BaseModel, Field

from flockledger.models import ExpenseCategory

RecordDate = Union[date, datetime, str]
RawAmount = Union[float, str, None]
RollingWindow = Literal[3, 6, 12]
ROLLING_WINDOWS = get_args(RollingWindow)


class SaleRecord(BaseModel):
    sale_date: RecordDate
    total_amount: RawAmount = None
    crates_sold: int = Field(default=0, ge=0)
    price_per_crate: RawAmount = None


class ExpenseRecord(BaseModel):
    expense_date: RecordDate
    category: str = ExpenseCategory.OTHER.value
    amount: RawAmount = None


class CostSplit(BaseModel):
    variable: float
    fixed: float
    total: float


class MonthlyAggregate(BaseModel):
    month: str  # YYYY-MM, UTC
    revenue: float = 0.0
    variable_costs: float = 0.0
    fixed_costs: float = 0.0
    total_costs: float = 0.0
    profit: float = 0.0
    units_sold: int = 0


class BreakEvenParams(BaseModel):
    price: float
    unit_variable_cost: float
    fixed_costs_per_month: float
    initial_units: float
    growth_rate: float = 0.0
    seasonality_factors: List[float] = Field(default_factory=list)


class BreakEvenRequest(BreakEvenParams):
    projection_months: int = Field(default=12, ge=1, le=120)


class DataQuality(BaseModel):
    has_sufficient_data: bool
    months_with_sales: int
    months_with_expenses: int
    total_sales: int
    total_expenses: float
    warnings: List[str] = Field(default_factory=list)


class AutoCalculatedParams(BaseModel):
    params: BreakEvenParams
    data_quality: DataQuality


class AutoCalculateRequest(BaseModel):
    sales: List[SaleRecord] = Field(default_factory=list)
    expenses: List[ExpenseRecord] = Field(default_factory=list)
    timeframe_months: RollingWindow = 6


class MonthlyProjection(BaseModel):
    month: int  # 1-based projection index
    units: float
    revenue: float
    variable_costs: float
    fixed_costs: float
    total_costs: float
    profit: float
    cumulative_profit: float


class BreakEvenResults(BaseModel):
    contribution_margin: float
    contribution_margin_ratio: float
    break_even_units: float
    break_even_revenue: float
    break_even_month: Optional[int] = None
    break_even_date: Optional[date] = None
    payback_period: Optional[int] = None
    cumulative_profits: List[float] = Field(default_factory=list)
    monthly_projections: List[MonthlyProjection] = Field(default_factory=list)


class SuggestedAction(BaseModel):
    label: str
    route: str


class DateRange(BaseModel):
    start_date: date
    end_date: date


class DataSource(BaseModel):
    months_analyzed: int
    sales_records: int
    expense_records: int
    date_range: DateRange


class DerivedValues(BaseModel):
    average_price: float
    average_unit_variable_cost: float
    average_fixed_costs_per_month: float
    average_monthly_units: float
    calculated_growth_rate: float  # percent per month


class BreakEvenMetrics(BaseModel):
    has_data: bool
    auto_calculated: bool = False
    timeframe_months: int
    message: Optional[str] = None
    suggested_actions: List[SuggestedAction] = Field(default_factory=list)
    data_source: Optional[DataSource] = None
    derived_values: Optional[DerivedValues] = None
    data_quality: Optional[DataQuality] = None
    monthly_history: List[MonthlyAggregate] = Field(default_factory=list)
    results: Optional[BreakEvenResults] = None
