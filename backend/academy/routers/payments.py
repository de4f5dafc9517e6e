# backend/academy/routers/payments.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..date_utils import academy_today, month_key
from ..db import get_db
from ..responses import success_response
from ..security import require_admin
from ..services import payments

router = APIRouter(prefix="/payments", tags=["payments"], dependencies=[Depends(require_admin)])


@router.get("")
@router.get("/")
def list_payments(
    month_year: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    student_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    month_year = month_year or month_key(academy_today())
    rows = payments.list_payments(db, month_year, student_id)
    return success_response({
        "payments": [schemas.PaymentOut.model_validate(p) for p in rows],
        "month_year": month_year,
    })


@router.post("")
@router.post("/")
def create_payment(payload: schemas.PaymentCreate, db: Session = Depends(get_db)):
    payment = payments.create_payment(db, payload)
    return success_response(
        {
            "payment": schemas.PaymentOut.model_validate(payment),
            "family_discount": payment.family_discount,
        },
        status_code=201,
    )
