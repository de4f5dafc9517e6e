# backend/academy/crud.py
import hashlib
import logging
import re
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .date_utils import local_day_bounds_utc, month_bounds, utcnow, year_bounds
from .responses import ApiError, ErrorCodes

logger = logging.getLogger(__name__)


def hash_phone_last4(phone: str) -> str:
    """sha256 hex of the last four digits; the kiosk searches on this."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) < 4:
        raise ApiError(400, "Phone number needs at least 4 digits", ErrorCodes.VALIDATION_ERROR)
    return hashlib.sha256(digits[-4:].encode("utf-8")).hexdigest()


def _apply(obj, values: dict) -> None:
    for field, value in values.items():
        setattr(obj, field, value)


def _commit(db: Session, obj=None):
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    if obj is not None:
        db.refresh(obj)
    return obj


# ---------- FAMILIES ----------
def create_family(db: Session, payload: schemas.FamilyCreate) -> models.Family:
    family = models.Family(family_name=payload.family_name, discount_tier=payload.discount_tier)
    db.add(family)
    return _commit(db, family)


def get_family(db: Session, family_id: int) -> models.Family:
    family = db.get(models.Family, family_id)
    if not family:
        raise ApiError(404, "Family not found", ErrorCodes.NOT_FOUND)
    return family


def update_family(db: Session, family_id: int, payload: schemas.FamilyUpdate) -> models.Family:
    family = get_family(db, family_id)
    _apply(family, payload.model_dump(exclude_unset=True, exclude_none=True))
    return _commit(db, family)


# ---------- STUDENTS ----------
def create_student(db: Session, payload: schemas.StudentCreate) -> models.Student:
    """
    Create family (if none given), student, parent and their relation as one
    unit of work. Nothing is left behind when any step fails.
    """
    if not payload.consent_signed:
        raise ApiError(400, "Consent is required", ErrorCodes.VALIDATION_ERROR)

    student_hash = hash_phone_last4(payload.phone)
    parent_hash = hash_phone_last4(payload.parent.phone) if payload.parent else None

    try:
        if payload.family_id is not None:
            family = db.get(models.Family, payload.family_id)
            if not family:
                raise ApiError(404, "Family not found", ErrorCodes.NOT_FOUND)
        else:
            family = models.Family(family_name=f"{payload.name} family", discount_tier=0)
            db.add(family)
            db.flush()

        now = utcnow()
        student = models.Student(
            family_id=family.id,
            name=payload.name,
            phone_search_hash=student_hash,
            birth_date=payload.birth_date,
            school=payload.school,
            grade=payload.grade,
            notes=payload.notes,
            consent_signed=True,
            consent_date=now,
            is_active=True,
        )
        db.add(student)
        db.flush()  # student.id for the relation row

        if payload.parent:
            parent = models.Parent(
                family_id=family.id,
                name=payload.parent.name,
                phone_search_hash=parent_hash,
                birth_date=payload.parent.birth_date,
            )
            db.add(parent)
            db.flush()
            db.add(models.ParentStudentRelation(
                parent_id=parent.id,
                student_id=student.id,
                relation_type=payload.parent.relationship or "guardian",
                is_primary=True,
            ))

        db.commit()
    except Exception:
        db.rollback()
        logger.warning("Student creation for %r rolled back", payload.name)
        raise

    db.refresh(student)
    return student


def get_student(db: Session, student_id: int) -> models.Student:
    student = (
        db.query(models.Student)
        .options(selectinload(models.Student.schedules).selectinload(models.Schedule.teacher))
        .filter(models.Student.id == student_id)
        .first()
    )
    if not student:
        raise ApiError(404, "Student not found", ErrorCodes.NOT_FOUND)
    return student


def list_students(
    db: Session,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Tuple[List[models.Student], int]:
    q = db.query(models.Student)
    if is_active is not None:
        q = q.filter(models.Student.is_active == is_active)
    if search:
        q = q.filter(models.Student.name.ilike(f"%{search}%"))
    total = q.count()
    students = (
        q.options(selectinload(models.Student.schedules).selectinload(models.Schedule.teacher))
        .order_by(models.Student.created_at.desc(), models.Student.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return students, total


def update_student(db: Session, student_id: int, payload: schemas.StudentUpdate) -> models.Student:
    student = get_student(db, student_id)
    values = payload.model_dump(exclude_unset=True)
    phone = values.pop("phone", None)
    if phone:
        student.phone_search_hash = hash_phone_last4(phone)
    if values.get("family_id") is not None:
        get_family(db, values["family_id"])
    _apply(student, values)
    return _commit(db, student)


def deactivate_student(db: Session, student_id: int) -> models.Student:
    student = get_student(db, student_id)
    student.is_active = False
    return _commit(db, student)


def search_students_by_phone(db: Session, last4digits: str) -> List[models.Student]:
    return (
        db.query(models.Student)
        .filter(
            models.Student.phone_search_hash == hash_phone_last4(last4digits),
            models.Student.is_active == True,  # noqa: E712
        )
        .order_by(models.Student.name)
        .all()
    )


# ---------- TEACHERS ----------
def list_teachers(db: Session, include_inactive: bool = False) -> List[models.Teacher]:
    q = db.query(models.Teacher)
    if not include_inactive:
        q = q.filter(models.Teacher.is_active == True)  # noqa: E712
    return q.order_by(models.Teacher.name).all()


def get_teacher(db: Session, teacher_id: int) -> models.Teacher:
    teacher = db.get(models.Teacher, teacher_id)
    if not teacher:
        raise ApiError(404, "Teacher not found", ErrorCodes.NOT_FOUND)
    return teacher


def create_teacher(db: Session, payload: schemas.TeacherCreate) -> models.Teacher:
    teacher = models.Teacher(**payload.model_dump())
    db.add(teacher)
    return _commit(db, teacher)


def update_teacher(db: Session, payload: schemas.TeacherUpdate) -> models.Teacher:
    teacher = get_teacher(db, payload.id)
    _apply(teacher, payload.model_dump(exclude_unset=True, exclude={"id"}))
    return _commit(db, teacher)


def deactivate_teacher(db: Session, teacher_id: int) -> models.Teacher:
    teacher = get_teacher(db, teacher_id)
    teacher.is_active = False
    return _commit(db, teacher)


# ---------- BASE SCHEDULES ----------
def list_schedules(
    db: Session, day_of_week: Optional[int] = None, teacher_id: Optional[int] = None
) -> List[models.Schedule]:
    q = (
        db.query(models.Schedule)
        .options(selectinload(models.Schedule.student), selectinload(models.Schedule.teacher))
        .filter(models.Schedule.is_active == True)  # noqa: E712
    )
    if day_of_week is not None:
        q = q.filter(models.Schedule.day_of_week == day_of_week)
    if teacher_id is not None:
        q = q.filter(models.Schedule.teacher_id == teacher_id)
    return q.order_by(models.Schedule.start_time, models.Schedule.id).all()


def find_overlapping_schedule(db: Session, payload: schemas.ScheduleCreate) -> Optional[models.Schedule]:
    # half-open [start, end): back-to-back lessons do not clash
    return (
        db.query(models.Schedule)
        .filter(
            models.Schedule.teacher_id == payload.teacher_id,
            models.Schedule.day_of_week == payload.day_of_week,
            models.Schedule.is_active == True,  # noqa: E712
            models.Schedule.start_time < payload.end_time,
            models.Schedule.end_time > payload.start_time,
        )
        .first()
    )


def create_schedule(db: Session, payload: schemas.ScheduleCreate) -> models.Schedule:
    get_student(db, payload.student_id)
    get_teacher(db, payload.teacher_id)
    clash = find_overlapping_schedule(db, payload)
    if clash:
        raise ApiError(
            409,
            "Teacher already has a lesson at that time",
            ErrorCodes.DUPLICATE_ENTRY,
            extra={"conflict_id": clash.id},
        )
    schedule = models.Schedule(**payload.model_dump(), is_active=True)
    db.add(schedule)
    return _commit(db, schedule)


def deactivate_schedule(db: Session, schedule_id: int) -> models.Schedule:
    schedule = db.get(models.Schedule, schedule_id)
    if not schedule:
        raise ApiError(404, "Schedule not found", ErrorCodes.NOT_FOUND)
    schedule.is_active = False
    return _commit(db, schedule)


# ---------- REVENUES / EXPENSES ----------
def _period(year: int, month: Optional[int]) -> Tuple[date, date]:
    if month:
        return month_bounds(year, month)
    return year_bounds(year)


def list_revenues(db: Session, year: int, month: Optional[int] = None) -> List[models.Revenue]:
    start, end = _period(year, month)
    return (
        db.query(models.Revenue)
        .filter(models.Revenue.date >= start, models.Revenue.date <= end)
        .order_by(models.Revenue.date.desc(), models.Revenue.id.desc())
        .all()
    )


def create_revenue(db: Session, payload: schemas.RevenueCreate) -> models.Revenue:
    revenue = models.Revenue(**payload.model_dump())
    db.add(revenue)
    return _commit(db, revenue)


def update_revenue(db: Session, payload: schemas.RevenueUpdate) -> models.Revenue:
    revenue = db.get(models.Revenue, payload.id)
    if not revenue:
        raise ApiError(404, "Revenue not found", ErrorCodes.NOT_FOUND)
    _apply(revenue, payload.model_dump(exclude_unset=True, exclude={"id"}))
    return _commit(db, revenue)


def delete_revenue(db: Session, revenue_id: int) -> None:
    revenue = db.get(models.Revenue, revenue_id)
    if not revenue:
        raise ApiError(404, "Revenue not found", ErrorCodes.NOT_FOUND)
    db.delete(revenue)
    _commit(db)


def list_expenses(
    db: Session, year: int, month: Optional[int] = None, category: Optional[str] = None
) -> List[models.Expense]:
    start, end = _period(year, month)
    q = db.query(models.Expense).filter(models.Expense.date >= start, models.Expense.date <= end)
    if category:
        q = q.filter(models.Expense.category == category)
    return q.order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()


def create_expense(db: Session, payload: schemas.ExpenseCreate) -> models.Expense:
    expense = models.Expense(**payload.model_dump())
    db.add(expense)
    return _commit(db, expense)


def update_expense(db: Session, payload: schemas.ExpenseUpdate) -> models.Expense:
    expense = db.get(models.Expense, payload.id)
    if not expense:
        raise ApiError(404, "Expense not found", ErrorCodes.NOT_FOUND)
    _apply(expense, payload.model_dump(exclude_unset=True, exclude={"id"}))
    return _commit(db, expense)


def delete_expense(db: Session, expense_id: int) -> None:
    expense = db.get(models.Expense, expense_id)
    if not expense:
        raise ApiError(404, "Expense not found", ErrorCodes.NOT_FOUND)
    db.delete(expense)
    _commit(db)


# ---------- ATTENDANCE ----------
def check_in_student(db: Session, student_id: int, today: date) -> Tuple[models.Attendance, models.Student]:
    """One kiosk check-in per student per academy-local day."""
    student = db.get(models.Student, student_id)
    if not student or not student.is_active:
        raise ApiError(404, "Student not found", ErrorCodes.NOT_FOUND)

    day_start, day_end = local_day_bounds_utc(today)
    already = (
        db.query(models.Attendance.id)
        .filter(
            models.Attendance.student_id == student_id,
            models.Attendance.check_in_time >= day_start,
            models.Attendance.check_in_time < day_end,
        )
        .first()
    )
    if already:
        raise ApiError(409, "Already checked in today", ErrorCodes.DUPLICATE_ENTRY)

    attendance = models.Attendance(student_id=student_id, check_in_time=utcnow())
    db.add(attendance)
    _commit(db, attendance)
    return attendance, student
