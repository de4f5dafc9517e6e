# backend/academy/routers/finance.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..date_utils import academy_today
from ..db import get_db
from ..responses import success_response
from ..security import require_admin
from ..services.finance import get_finance_summary

router = APIRouter(tags=["finance"], dependencies=[Depends(require_admin)])


# =========================================================
# SUMMARY
# =========================================================
@router.get("/finance/summary")
def finance_summary(year: Optional[int] = Query(None, ge=2000, le=2100), db: Session = Depends(get_db)):
    return success_response(get_finance_summary(db, year or academy_today().year))


# =========================================================
# REVENUES
# =========================================================
@router.get("/revenues")
def list_revenues(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
):
    rows = crud.list_revenues(db, year or academy_today().year, month)
    return success_response({"revenues": [schemas.RevenueOut.model_validate(r) for r in rows]})


@router.post("/revenues")
def create_revenue(payload: schemas.RevenueCreate, db: Session = Depends(get_db)):
    revenue = crud.create_revenue(db, payload)
    return success_response({"revenue": schemas.RevenueOut.model_validate(revenue)}, status_code=201)


@router.put("/revenues")
def update_revenue(payload: schemas.RevenueUpdate, db: Session = Depends(get_db)):
    revenue = crud.update_revenue(db, payload)
    return success_response({"revenue": schemas.RevenueOut.model_validate(revenue)})


@router.delete("/revenues")
def delete_revenue(id: int = Query(...), db: Session = Depends(get_db)):
    crud.delete_revenue(db, id)
    return success_response({"message": "Revenue deleted"})


# =========================================================
# EXPENSES
# =========================================================
@router.get("/expenses")
def list_expenses(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows = crud.list_expenses(db, year or academy_today().year, month, category)
    return success_response({"expenses": [schemas.ExpenseOut.model_validate(e) for e in rows]})


@router.post("/expenses")
def create_expense(payload: schemas.ExpenseCreate, db: Session = Depends(get_db)):
    expense = crud.create_expense(db, payload)
    return success_response({"expense": schemas.ExpenseOut.model_validate(expense)}, status_code=201)


@router.put("/expenses")
def update_expense(payload: schemas.ExpenseUpdate, db: Session = Depends(get_db)):
    expense = crud.update_expense(db, payload)
    return success_response({"expense": schemas.ExpenseOut.model_validate(expense)})


@router.delete("/expenses")
def delete_expense(id: int = Query(...), db: Session = Depends(get_db)):
    crud.delete_expense(db, id)
    return success_response({"message": "Expense deleted"})
