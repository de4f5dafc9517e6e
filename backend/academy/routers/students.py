# backend/academy/routers/students.py
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, models, schemas
from ..db import get_db
from ..responses import success_response
from ..security import require_admin

router = APIRouter(prefix="/students", tags=["students"], dependencies=[Depends(require_admin)])
family_router = APIRouter(prefix="/families", tags=["students"], dependencies=[Depends(require_admin)])


def student_out(student: models.Student) -> schemas.StudentDetailOut:
    out = schemas.StudentDetailOut.model_validate(student)
    out.schedules = [
        schemas.StudentScheduleOut.model_validate(s) for s in student.schedules if s.is_active
    ]
    return out


# =========================================================
# STUDENTS
# =========================================================
@router.get("")
@router.get("/")
def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    students, total = crud.list_students(db, page=page, limit=limit, search=search, is_active=is_active)
    return success_response({
        "students": [student_out(s) for s in students],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    })


@router.post("")
@router.post("/")
def create_student(payload: schemas.StudentCreate, db: Session = Depends(get_db)):
    student = crud.create_student(db, payload)
    return success_response({"student": schemas.StudentOut.model_validate(student)}, status_code=201)


@router.get("/{student_id}")
def get_student(student_id: int, db: Session = Depends(get_db)):
    student = crud.get_student(db, student_id)
    family = schemas.FamilyOut.model_validate(student.family) if student.family else None
    return success_response({"student": student_out(student), "family": family})


@router.patch("/{student_id}")
def update_student(student_id: int, payload: schemas.StudentUpdate, db: Session = Depends(get_db)):
    student = crud.update_student(db, student_id, payload)
    return success_response({"student": student_out(student)})


@router.delete("/{student_id}")
def delete_student(student_id: int, db: Session = Depends(get_db)):
    crud.deactivate_student(db, student_id)
    return success_response({"message": "Student deactivated"})


# =========================================================
# FAMILIES
# =========================================================
@family_router.post("")
@family_router.post("/")
def create_family(payload: schemas.FamilyCreate, db: Session = Depends(get_db)):
    family = crud.create_family(db, payload)
    return success_response({"family": schemas.FamilyOut.model_validate(family)}, status_code=201)


@family_router.get("/{family_id}")
def get_family(family_id: int, db: Session = Depends(get_db)):
    family = crud.get_family(db, family_id)
    return success_response({
        "family": schemas.FamilyOut.model_validate(family),
        "students": [schemas.StudentBrief.model_validate(s) for s in family.students],
    })


@family_router.patch("/{family_id}")
def update_family(family_id: int, payload: schemas.FamilyUpdate, db: Session = Depends(get_db)):
    family = crud.update_family(db, family_id, payload)
    return success_response({"family": schemas.FamilyOut.model_validate(family)})
