# backend/academy/routers/kiosk.py
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..date_utils import academy_today
from ..db import get_db
from ..responses import ApiError, ErrorCodes, success_response
from ..security import client_ip
from ..services.rate_limit import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kiosk", tags=["kiosk"])


def rate_limited(name: str, max_requests: int, window_seconds: int):
    """Dependency that rejects a client IP once it exceeds the window."""

    def dependency(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        ip = client_ip(request)
        result = limiter.check(f"{name}:{ip}", max_requests, window_seconds)
        if not result.allowed:
            logger.warning("Rate limit hit on %s for %s", name, ip)
            raise ApiError(
                429,
                "Too many requests. Please try again shortly",
                ErrorCodes.RATE_LIMITED,
                extra={"retry_after": result.reset_in},
            )

    return dependency


@router.post("/search", dependencies=[Depends(rate_limited("kiosk-search", 10, 60))])
def search(payload: schemas.KioskSearch, db: Session = Depends(get_db)):
    students = crud.search_students_by_phone(db, payload.last4digits)
    # name and id only; the kiosk is public
    return success_response({"students": [{"id": s.id, "name": s.name} for s in students]})


@router.post("/checkin", dependencies=[Depends(rate_limited("kiosk-checkin", 5, 10))])
def checkin(payload: schemas.KioskCheckin, db: Session = Depends(get_db)):
    attendance, student = crud.check_in_student(db, payload.student_id, academy_today())
    return success_response(
        {
            "attendance": schemas.AttendanceOut.model_validate(attendance),
            "student_name": student.name,
            "message": "Check-in complete!",
        },
        status_code=201,
    )
