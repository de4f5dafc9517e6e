# backend/academy/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import date, datetime, time
from datetime import date as date_type
from typing import List, Optional, Literal

from .date_utils import ensure_end_after_start

ExpenseCategory = Literal["rent", "salary", "utilities", "operations", "materials", "other"]
RevenueCategory = Literal["lesson", "material", "event", "other"]
AttendanceStatus = Literal["scheduled", "attended", "absent", "cancelled"]
PaymentMethod = Literal["card", "cash", "transfer"]

EXPENSE_CATEGORIES = ("rent", "salary", "utilities", "operations", "materials", "other")


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _reject_null(v, info):
    # a field may be left out of a partial update, but not cleared
    if v is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return v


# --------------------------------------------
# Family / Student / Parent
# --------------------------------------------
class FamilyCreate(BaseModel):
    family_name: str = Field(min_length=1)
    discount_tier: int = Field(0, ge=0, le=2)

class FamilyUpdate(BaseModel):
    family_name: Optional[str] = None
    discount_tier: Optional[int] = Field(None, ge=0, le=2)

class FamilyOut(OrmModel):
    id: int
    family_name: str
    discount_tier: int
    created_at: Optional[datetime]


class ParentIn(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=4)
    birth_date: Optional[date] = None
    relationship: Optional[str] = None


class StudentCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=4)
    birth_date: Optional[date] = None
    school: Optional[str] = None
    grade: Optional[int] = None
    notes: Optional[str] = None
    consent_signed: bool
    family_id: Optional[int] = None
    parent: Optional[ParentIn] = None

class StudentUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    school: Optional[str] = None
    grade: Optional[int] = None
    notes: Optional[str] = None
    family_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_active")
    @classmethod
    def not_null(cls, v, info):
        return _reject_null(v, info)


class TeacherBrief(OrmModel):
    id: int
    name: str
    color: Optional[str] = None

class StudentBrief(OrmModel):
    id: int
    name: str

class StudentScheduleOut(OrmModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time
    teacher: Optional[TeacherBrief] = None

class StudentOut(OrmModel):
    id: int
    family_id: Optional[int]
    name: str
    birth_date: Optional[date]
    school: Optional[str]
    grade: Optional[int]
    notes: Optional[str]
    consent_signed: bool
    consent_date: Optional[datetime]
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

class StudentDetailOut(StudentOut):
    schedules: List[StudentScheduleOut] = []


# --------------------------------------------
# Teacher
# --------------------------------------------
class TeacherCreate(BaseModel):
    name: str = Field(min_length=1)
    specialty: Optional[str] = None
    color: str = "#7BC4C4"
    email: Optional[str] = None
    hire_date: Optional[date] = None
    salary: int = 0

class TeacherUpdate(BaseModel):
    id: int
    name: Optional[str] = None
    specialty: Optional[str] = None
    color: Optional[str] = None
    email: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_active")
    @classmethod
    def not_null(cls, v, info):
        return _reject_null(v, info)

class TeacherOut(OrmModel):
    id: int
    name: str
    specialty: Optional[str]
    color: Optional[str]
    email: Optional[str]
    hire_date: Optional[date]
    salary: Optional[int]
    is_active: bool
    created_at: Optional[datetime]


# --------------------------------------------
# Base schedule
# --------------------------------------------
class ScheduleCreate(BaseModel):
    student_id: int
    teacher_id: int
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class ScheduleOut(OrmModel):
    id: int
    student_id: int
    teacher_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool
    student: Optional[StudentBrief] = None
    teacher: Optional[TeacherBrief] = None


# --------------------------------------------
# Weekly snapshot
# --------------------------------------------
class WeeklySnapshotCreate(BaseModel):
    week_start: date
    week_end: date
    confirm: bool = False
    copy_from_last_week: bool = False

    @model_validator(mode="after")
    def check_range(self):
        ensure_end_after_start(self.week_start, self.week_end)
        return self

class AttendanceUpdate(BaseModel):
    id: int
    attendance_status: AttendanceStatus
    notes: Optional[str] = None

class WeeklySnapshotOut(OrmModel):
    id: int
    week_start: date
    week_end: date
    status: str
    confirmed_at: Optional[datetime]
    created_at: Optional[datetime]

class WeeklyDetailOut(OrmModel):
    id: int
    snapshot_id: int
    student_id: int
    teacher_id: int
    day_of_week: int
    start_time: time
    end_time: time
    slot_number: int
    attendance_status: str
    notes: Optional[str]
    student: Optional[StudentBrief] = None
    teacher: Optional[TeacherBrief] = None


# --------------------------------------------
# Payments
# --------------------------------------------
class PaymentCreate(BaseModel):
    student_id: int
    base_amount: int = Field(gt=0)
    additional_discount: int = Field(0, ge=0)
    payment_method: Optional[PaymentMethod] = None
    payment_date: date
    month_year: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    notes: Optional[str] = None

class PaymentOut(OrmModel):
    id: int
    student_id: int
    base_amount: int
    family_discount: int
    additional_discount: int
    final_amount: int
    payment_method: Optional[str]
    payment_date: date
    month_year: str
    notes: Optional[str]
    created_at: Optional[datetime]


# --------------------------------------------
# Revenues / Expenses
# --------------------------------------------
class RevenueCreate(BaseModel):
    date: date_type
    description: str = Field(min_length=1)
    amount: int = Field(gt=0)
    category: RevenueCategory = "other"
    notes: Optional[str] = None

class RevenueUpdate(BaseModel):
    id: int
    date: Optional[date_type] = None
    description: Optional[str] = None
    amount: Optional[int] = Field(None, gt=0)
    category: Optional[RevenueCategory] = None
    notes: Optional[str] = None

    @field_validator("date", "description", "amount", "category")
    @classmethod
    def not_null(cls, v, info):
        return _reject_null(v, info)

class RevenueOut(OrmModel):
    id: int
    date: date_type
    description: str
    amount: int
    category: str
    notes: Optional[str]
    created_at: Optional[datetime]


class ExpenseCreate(BaseModel):
    date: date_type
    description: str = Field(min_length=1)
    amount: int = Field(gt=0)
    category: ExpenseCategory
    is_fixed: bool = False
    is_recurring: bool = False
    recurring_day: Optional[int] = Field(None, ge=1, le=31)
    recurring_until: Optional[date_type] = None
    notes: Optional[str] = None

class ExpenseUpdate(BaseModel):
    id: int
    date: Optional[date_type] = None
    description: Optional[str] = None
    amount: Optional[int] = Field(None, gt=0)
    category: Optional[ExpenseCategory] = None
    is_fixed: Optional[bool] = None
    is_recurring: Optional[bool] = None
    recurring_day: Optional[int] = Field(None, ge=1, le=31)
    recurring_until: Optional[date_type] = None
    notes: Optional[str] = None

    @field_validator("date", "description", "amount", "category", "is_fixed", "is_recurring")
    @classmethod
    def not_null(cls, v, info):
        return _reject_null(v, info)

class ExpenseOut(OrmModel):
    id: int
    date: date_type
    description: str
    amount: int
    category: str
    is_fixed: bool
    is_recurring: bool
    recurring_day: Optional[int]
    recurring_until: Optional[date_type]
    notes: Optional[str]
    created_at: Optional[datetime]


# --------------------------------------------
# Payhere imports
# --------------------------------------------
class SalesRecordIn(BaseModel):
    sale_date: date
    payment_date: Optional[date] = None
    payment_time: Optional[time] = None
    description: Optional[str] = None
    total_amount: int = 0
    amount: int = 0
    discount: int = 0
    point_used: int = 0
    status: Literal["completed", "pending", "refunded"] = "completed"
    source: Literal["excel", "manual"] = "excel"

class DailySummaryIn(BaseModel):
    date: date_type
    transaction_count: int = 0
    total_sales: int = 0
    net_sales: int = 0
    discount: int = 0
    point_used: int = 0
    refund_amount: int = 0
    source: Literal["excel", "manual"] = "excel"

class SalesRecordOut(OrmModel):
    id: int
    sale_date: date
    payment_date: Optional[date]
    payment_time: Optional[time]
    description: Optional[str]
    total_amount: int
    amount: int
    discount: int
    point_used: int
    status: str
    source: str
    import_batch_id: Optional[str]

class SettlementOut(OrmModel):
    id: int
    settlement_date: date
    period_start: date
    period_end: date
    total_amount: int
    fee: int
    net_amount: int
    status: str
    transaction_count: int

class ImportLogOut(OrmModel):
    id: int
    batch_id: str
    file_name: str
    file_type: str
    records_count: int
    success_count: int
    error_count: int
    errors: Optional[list]
    created_at: Optional[datetime]
    deleted_at: Optional[datetime]


# --------------------------------------------
# Kiosk
# --------------------------------------------
class KioskSearch(BaseModel):
    last4digits: str

    @field_validator("last4digits")
    @classmethod
    def four_digits(cls, v: str) -> str:
        if len(v) != 4 or not v.isdigit():
            raise ValueError("last4digits must be exactly four digits")
        return v

class KioskCheckin(BaseModel):
    student_id: int

class AttendanceOut(OrmModel):
    id: int
    student_id: int
    check_in_time: datetime
    check_out_time: Optional[datetime]
    notes: Optional[str]
