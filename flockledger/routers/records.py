from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from flockledger.db import get_session
from flockledger.models import Expense, ExpenseCreate, Sale, SaleCreate

router = APIRouter(prefix="/api", tags=["records"])


def farm_sales(session: Session, farm_id: int, limit: Optional[int] = None) -> List[Sale]:
    statement = select(Sale).where(Sale.farm_id == farm_id).order_by(Sale.sale_date.desc())
    if limit:
        statement = statement.limit(limit)
    return list(session.exec(statement).all())


def farm_expenses(session: Session, farm_id: int, limit: Optional[int] = None) -> List[Expense]:
    statement = select(Expense).where(Expense.farm_id == farm_id).order_by(Expense.expense_date.desc())
    if limit:
        statement = statement.limit(limit)
    return list(session.exec(statement).all())


@router.post("/sales", response_model=Sale, status_code=201)
def create_sale(payload: SaleCreate, session: Session = Depends(get_session)):
    sale = Sale.model_validate(payload)
    session.add(sale)
    session.commit()
    session.refresh(sale)
    return sale


@router.get("/sales", response_model=List[Sale])
def list_sales(
    farm_id: int = Query(...),
    limit: int = Query(50, ge=1, le=1000),
    session: Session = Depends(get_session),
):
    return farm_sales(session, farm_id, limit)


@router.delete("/sales/{sale_id}", status_code=204)
def delete_sale(sale_id: int, session: Session = Depends(get_session)):
    sale = session.get(Sale, sale_id)
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    session.delete(sale)
    session.commit()


@router.post("/expenses", response_model=Expense, status_code=201)
def create_expense(payload: ExpenseCreate, session: Session = Depends(get_session)):
    expense = Expense.model_validate(payload)
    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


@router.get("/expenses", response_model=List[Expense])
def list_expenses(
    farm_id: int = Query(...),
    limit: int = Query(50, ge=1, le=1000),
    session: Session = Depends(get_session),
):
    return farm_expenses(session, farm_id, limit)


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(expense_id: int, session: Session = Depends(get_session)):
    expense = session.get(Expense, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    session.delete(expense)
    session.commit()
