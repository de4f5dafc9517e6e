# backend/academy/routers/schedules.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..db import get_db
from ..responses import success_response
from ..security import require_admin
from ..services import weekly_schedule
from ..services.slots import board_labels, board_row, board_span

router = APIRouter(prefix="/schedules", tags=["schedules"], dependencies=[Depends(require_admin)])


# =========================================================
# WEEKLY SNAPSHOTS
# =========================================================
@router.get("/weekly")
def get_weekly_schedule(week_start: date = Query(...), db: Session = Depends(get_db)):
    found = weekly_schedule.get_snapshot_with_details(db, week_start)
    snapshot = found["snapshot"]
    data = {
        "snapshot": schemas.WeeklySnapshotOut.model_validate(snapshot) if snapshot else None,
        "details": [schemas.WeeklyDetailOut.model_validate(d) for d in found["details"]],
    }
    if found.get("from_base_schedule"):
        data["from_base_schedule"] = True
    return success_response(data)


@router.post("/weekly")
def create_weekly_schedule(payload: schemas.WeeklySnapshotCreate, db: Session = Depends(get_db)):
    snapshot, created = weekly_schedule.get_or_create_snapshot(
        db,
        payload.week_start,
        payload.week_end,
        confirm=payload.confirm,
        copy_from_last_week=payload.copy_from_last_week,
    )
    return success_response(
        {
            "snapshot": schemas.WeeklySnapshotOut.model_validate(snapshot),
            "details": [
                schemas.WeeklyDetailOut.model_validate(d) for d in weekly_schedule.get_details(db, snapshot.id)
            ],
            "created": created,
            "message": "Weekly schedule confirmed" if snapshot.status == "confirmed" else "Weekly schedule saved",
        },
        status_code=201,
    )


@router.put("/weekly")
def update_weekly_attendance(payload: schemas.AttendanceUpdate, db: Session = Depends(get_db)):
    detail = weekly_schedule.update_attendance(
        db,
        payload.id,
        payload.attendance_status,
        notes=payload.notes,
        notes_set="notes" in payload.model_fields_set,
    )
    return success_response({"detail": schemas.WeeklyDetailOut.model_validate(detail)})


@router.post("/weekly/{snapshot_id}/confirm")
def confirm_weekly_schedule(snapshot_id: int, db: Session = Depends(get_db)):
    snapshot = weekly_schedule.confirm_snapshot_by_id(db, snapshot_id)
    return success_response({"snapshot": schemas.WeeklySnapshotOut.model_validate(snapshot)})


# =========================================================
# BASE SCHEDULE
# =========================================================
@router.get("")
@router.get("/")
def list_schedules(
    day: Optional[int] = Query(None, ge=0, le=6),
    teacher_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    rows = []
    for s in crud.list_schedules(db, day_of_week=day, teacher_id=teacher_id):
        item = schemas.ScheduleOut.model_validate(s).model_dump()
        item["board_row"] = board_row(s.start_time)
        item["board_span"] = board_span(s.start_time, s.end_time)
        rows.append(item)
    return success_response({"schedules": rows, "board_labels": board_labels()})


@router.post("")
@router.post("/")
def create_schedule(payload: schemas.ScheduleCreate, db: Session = Depends(get_db)):
    schedule = crud.create_schedule(db, payload)
    return success_response({"schedule": schemas.ScheduleOut.model_validate(schedule)}, status_code=201)


@router.delete("")
@router.delete("/")
def delete_schedule(id: int = Query(...), db: Session = Depends(get_db)):
    crud.deactivate_schedule(db, id)
    return success_response({"message": "Schedule deactivated"})
