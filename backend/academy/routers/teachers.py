# backend/academy/routers/teachers.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..db import get_db
from ..responses import success_response
from ..security import require_admin

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get("")
@router.get("/")
def list_teachers(include_inactive: bool = False, db: Session = Depends(get_db)):
    # public: the kiosk and schedule board show teacher names and colours
    teachers = crud.list_teachers(db, include_inactive=include_inactive)
    return success_response({"teachers": [schemas.TeacherOut.model_validate(t) for t in teachers]})


@router.post("", dependencies=[Depends(require_admin)])
@router.post("/", dependencies=[Depends(require_admin)])
def create_teacher(payload: schemas.TeacherCreate, db: Session = Depends(get_db)):
    teacher = crud.create_teacher(db, payload)
    return success_response({"teacher": schemas.TeacherOut.model_validate(teacher)}, status_code=201)


@router.put("", dependencies=[Depends(require_admin)])
@router.put("/", dependencies=[Depends(require_admin)])
def update_teacher(payload: schemas.TeacherUpdate, db: Session = Depends(get_db)):
    teacher = crud.update_teacher(db, payload)
    return success_response({"teacher": schemas.TeacherOut.model_validate(teacher)})


@router.delete("", dependencies=[Depends(require_admin)])
@router.delete("/", dependencies=[Depends(require_admin)])
def delete_teacher(id: int = Query(...), db: Session = Depends(get_db)):
    crud.deactivate_teacher(db, id)
    return success_response({"message": "Teacher deactivated"})
