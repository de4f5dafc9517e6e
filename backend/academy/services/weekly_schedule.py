# backend/academy/services/weekly_schedule.py
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..date_utils import utcnow
from ..responses import ApiError, ErrorCodes
from .slots import snapshot_slot_number

logger = logging.getLogger(__name__)

STATUS_DRAFT = "draft"
STATUS_CONFIRMED = "confirmed"


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
def get_snapshot(db: Session, week_start: date) -> Optional[models.WeeklyScheduleSnapshot]:
    return (
        db.query(models.WeeklyScheduleSnapshot)
        .filter(models.WeeklyScheduleSnapshot.week_start == week_start)
        .first()
    )


def get_details(db: Session, snapshot_id: int) -> List[models.WeeklyScheduleDetail]:
    return (
        db.query(models.WeeklyScheduleDetail)
        .options(
            selectinload(models.WeeklyScheduleDetail.student),
            selectinload(models.WeeklyScheduleDetail.teacher),
        )
        .filter(models.WeeklyScheduleDetail.snapshot_id == snapshot_id)
        .order_by(
            models.WeeklyScheduleDetail.day_of_week,
            models.WeeklyScheduleDetail.slot_number,
            models.WeeklyScheduleDetail.start_time,
        )
        .all()
    )


# ---------------------------------------------------------
# Seeding
# ---------------------------------------------------------
def _details_from_last_week(db: Session, snapshot: models.WeeklyScheduleSnapshot) -> List[models.WeeklyScheduleDetail]:
    previous = get_snapshot(db, snapshot.week_start - timedelta(days=7))
    if previous is None:
        # nothing to copy; the new week simply starts empty
        return []
    return [
        models.WeeklyScheduleDetail(
            snapshot_id=snapshot.id,
            student_id=d.student_id,
            teacher_id=d.teacher_id,
            day_of_week=d.day_of_week,
            start_time=d.start_time,
            end_time=d.end_time,
            slot_number=d.slot_number,
            attendance_status="scheduled",
        )
        for d in previous.details
    ]


def _details_from_base_schedule(db: Session, snapshot: models.WeeklyScheduleSnapshot) -> List[models.WeeklyScheduleDetail]:
    base = db.query(models.Schedule).filter(models.Schedule.is_active == True).all()  # noqa: E712
    return [
        models.WeeklyScheduleDetail(
            snapshot_id=snapshot.id,
            student_id=s.student_id,
            teacher_id=s.teacher_id,
            day_of_week=s.day_of_week,
            start_time=s.start_time,
            end_time=s.end_time,
            slot_number=snapshot_slot_number(s.start_time),
            attendance_status="scheduled",
        )
        for s in base
    ]


# ---------------------------------------------------------
# Operations
# ---------------------------------------------------------
def get_or_create_snapshot(
    db: Session,
    week_start: date,
    week_end: date,
    confirm: bool = False,
    copy_from_last_week: bool = False,
) -> Tuple[models.WeeklyScheduleSnapshot, bool]:
    """
    Return the snapshot for ``week_start``, creating and seeding it if needed.

    An existing snapshot is reused as is (only ``confirm`` may still ratchet
    it to confirmed). A new one is filled from last week's snapshot when
    ``copy_from_last_week`` is set, otherwise from the active base schedule.
    Returns ``(snapshot, created)``.
    """
    snapshot = get_snapshot(db, week_start)
    if snapshot is not None:
        if confirm:
            confirm_snapshot(db, snapshot)
        return snapshot, False

    snapshot = models.WeeklyScheduleSnapshot(
        week_start=week_start,
        week_end=week_end,
        status=STATUS_CONFIRMED if confirm else STATUS_DRAFT,
        confirmed_at=utcnow() if confirm else None,
    )
    try:
        db.add(snapshot)
        db.flush()   # snapshot.id for the detail rows; unique week_start is checked here

        if copy_from_last_week:
            details = _details_from_last_week(db, snapshot)
        else:
            details = _details_from_base_schedule(db, snapshot)
        db.add_all(details)
        db.commit()
    except IntegrityError:
        # another request created the same week first; use theirs
        db.rollback()
        existing = get_snapshot(db, week_start)
        if existing is None:
            raise
        logger.info("Snapshot for week %s was created concurrently, reusing %s", week_start, existing.id)
        if confirm:
            confirm_snapshot(db, existing)
        return existing, False
    except Exception:
        db.rollback()
        raise

    db.refresh(snapshot)
    logger.info(
        "Created %s snapshot %s for week %s with %d lessons (%s)",
        snapshot.status, snapshot.id, week_start, len(details),
        "copied from last week" if copy_from_last_week else "from base schedule",
    )
    return snapshot, True


def confirm_snapshot(db: Session, snapshot: models.WeeklyScheduleSnapshot) -> models.WeeklyScheduleSnapshot:
    """draft -> confirmed, once. Confirming again writes nothing."""
    if snapshot.status == STATUS_CONFIRMED:
        return snapshot
    snapshot.status = STATUS_CONFIRMED
    snapshot.confirmed_at = utcnow()
    db.commit()
    db.refresh(snapshot)
    return snapshot


def confirm_snapshot_by_id(db: Session, snapshot_id: int) -> models.WeeklyScheduleSnapshot:
    snapshot = db.get(models.WeeklyScheduleSnapshot, snapshot_id)
    if snapshot is None:
        raise ApiError(404, "Snapshot not found", ErrorCodes.NOT_FOUND)
    return confirm_snapshot(db, snapshot)


def update_attendance(
    db: Session,
    detail_id: int,
    attendance_status: str,
    notes: Optional[str] = None,
    notes_set: bool = False,
) -> models.WeeklyScheduleDetail:
    """
    Overwrite a lesson's attendance status. Any status may follow any other
    so operators can correct mistakes; no history is kept.
    """
    detail = db.get(models.WeeklyScheduleDetail, detail_id)
    if detail is None:
        raise ApiError(404, "Schedule detail not found", ErrorCodes.NOT_FOUND)

    detail.attendance_status = attendance_status
    if notes_set:
        detail.notes = notes
    db.commit()
    db.refresh(detail)
    return detail


def get_snapshot_with_details(db: Session, week_start: date) -> Dict:
    snapshot = get_snapshot(db, week_start)
    if snapshot is None:
        # the client builds its view from the base schedule instead
        return {"snapshot": None, "details": [], "from_base_schedule": True}
    return {"snapshot": snapshot, "details": get_details(db, snapshot.id)}
