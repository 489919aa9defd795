from datetime import date
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class ExpenseCategory(str, Enum):
    FEED = "feed"
    MEDICATION = "medication"
    LABOR = "labor"
    UTILITIES = "utilities"
    EQUIPMENT = "equipment"
    OTHER = "other"


class SaleBase(SQLModel):
    farm_id: int = Field(index=True)
    sale_date: date
    customer_name: Optional[str] = None
    crates_sold: int = Field(default=0, ge=0)
    price_per_crate: float = Field(ge=0, description="Price of one crate of eggs")
    total_amount: float = Field(ge=0, description="Amount invoiced for the sale")


class Sale(SaleBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class SaleCreate(SaleBase):
    pass


class ExpenseBase(SQLModel):
    farm_id: int = Field(index=True)
    expense_date: date
    category: ExpenseCategory = ExpenseCategory.OTHER
    description: Optional[str] = None
    amount: float = Field(ge=0)


class Expense(ExpenseBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class ExpenseCreate(ExpenseBase):
    pass
