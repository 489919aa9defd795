"""
Pytest configuration and fixtures for the flockledger test suite

Markers:
    - unit: Fast unit tests
    - property: Property-based tests (Hypothesis)
    - integration: HTTP tests against the FastAPI app
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from flockledger.db import get_session
from flockledger.main import app
from flockledger.schemas.breakeven import ExpenseRecord, SaleRecord

AS_OF = date(2024, 6, 15)


def make_sale(sale_date, total_amount, crates_sold, price_per_crate=None):
    if price_per_crate is None and crates_sold:
        price_per_crate = float(total_amount) / crates_sold
    return SaleRecord(
        sale_date=sale_date,
        total_amount=total_amount,
        crates_sold=crates_sold,
        price_per_crate=price_per_crate,
    )


def make_expense(expense_date, category, amount):
    return ExpenseRecord(expense_date=expense_date, category=category, amount=amount)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def steady_farm():
    """Three months of 10% crate growth at 400 per crate, in the window ending June 2024."""
    sales = [
        make_sale("2023-12-20", 400000, 1000),  # outside a 6 month window
        make_sale("2024-01-10", 40000, 100),
        make_sale("2024-02-12", 44000, 110),
        make_sale("2024-03-05", 24200, 60),
        make_sale("2024-03-25", 24200, 61),
    ]
    expenses = [
        make_expense("2024-01-03", "feed", 10000),
        make_expense("2024-01-28", "labor", 5000),
        make_expense("2024-02-03", "feed", 11000),
        make_expense("2024-02-28", "labor", 5000),
        make_expense("2024-03-03", "feed", 12100),
        make_expense("2024-03-15", "utilities", 2000),
        make_expense("2024-03-28", "labor", 5000),
    ]
    return sales, expenses


@pytest.fixture(scope="function")
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture
def client(db_session):
    def override_session():
        yield db_session

    app.dependency_overrides[get_session] = override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
