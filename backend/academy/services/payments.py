# backend/academy/services/payments.py
import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..responses import ApiError, ErrorCodes

logger = logging.getLogger(__name__)

# discount_tier -> percent off the list price
FAMILY_DISCOUNT_PERCENT = {0: 0, 1: 5, 2: 10}


def family_discount_rate(tier: Optional[int]) -> float:
    return FAMILY_DISCOUNT_PERCENT.get(tier or 0, 0) / 100


def compute_family_discount(base_amount: int, tier: Optional[int]) -> int:
    """floor(base_amount * rate), computed in integers so no float drift sneaks in."""
    percent = FAMILY_DISCOUNT_PERCENT.get(tier or 0, 0)
    return (base_amount * percent) // 100


def compute_final_amount(base_amount: int, family_discount: int, additional_discount: int = 0) -> int:
    # not clamped at zero: discounts larger than the base give a negative charge
    return base_amount - family_discount - additional_discount


def create_payment(db: Session, payload: schemas.PaymentCreate) -> models.Payment:
    """
    Record a payment. The family discount is read from the student's family
    at this moment and stored on the row; later tier changes do not touch it.
    """
    student = (
        db.query(models.Student)
        .options(selectinload(models.Student.family))
        .filter(models.Student.id == payload.student_id)
        .first()
    )
    if not student:
        raise ApiError(404, "Student not found", ErrorCodes.NOT_FOUND)

    tier = student.family.discount_tier if student.family else 0
    family_discount = compute_family_discount(payload.base_amount, tier)
    final_amount = compute_final_amount(payload.base_amount, family_discount, payload.additional_discount)
    if final_amount < 0:
        logger.warning(
            "Payment for student %s has negative final amount %s", student.id, final_amount
        )

    payment = models.Payment(
        student_id=student.id,
        base_amount=payload.base_amount,
        family_discount=family_discount,
        additional_discount=payload.additional_discount,
        final_amount=final_amount,
        payment_method=payload.payment_method,
        payment_date=payload.payment_date,
        month_year=payload.month_year,
        notes=payload.notes,
    )
    try:
        db.add(payment)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)
    return payment


def list_payments(db: Session, month_year: str, student_id: Optional[int] = None):
    q = db.query(models.Payment).filter(models.Payment.month_year == month_year)
    if student_id is not None:
        q = q.filter(models.Payment.student_id == student_id)
    return q.order_by(models.Payment.payment_date.desc(), models.Payment.id.desc()).all()
