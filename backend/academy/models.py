# backend/academy/models.py
from sqlalchemy import (
    Column, Integer, String, Text, Date, Time, Boolean, ForeignKey, DateTime, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .db import Base
from .date_utils import utcnow


# --------------------------------------------------------
# PEOPLE
# --------------------------------------------------------
class Family(Base):
    __tablename__ = "families"

    id = Column("family_id", Integer, primary_key=True, index=True)
    family_name = Column("family_name", String, nullable=False)
    # 0 = none, 1 = 5%, 2 = 10%
    discount_tier = Column("discount_tier", Integer, nullable=False, default=0)
    created_at = Column("created_at", DateTime, default=utcnow)

    students = relationship("Student", back_populates="family")
    parents = relationship("Parent", back_populates="family")


class Student(Base):
    __tablename__ = "students"

    id = Column("student_id", Integer, primary_key=True, index=True)
    family_id = Column("family_id", Integer, ForeignKey("families.family_id"), nullable=True)
    name = Column("name", String, nullable=False)
    # sha256 of the last four phone digits, searched by the kiosk
    phone_search_hash = Column("phone_search_hash", String(64), nullable=True, index=True)
    birth_date = Column("birth_date", Date, nullable=True)
    school = Column("school", String, nullable=True)
    grade = Column("grade", Integer, nullable=True)
    notes = Column("notes", Text, nullable=True)
    consent_signed = Column("consent_signed", Boolean, default=False)
    consent_date = Column("consent_date", DateTime, nullable=True)
    is_active = Column("is_active", Boolean, default=True)
    created_at = Column("created_at", DateTime, default=utcnow)
    updated_at = Column("updated_at", DateTime, default=utcnow, onupdate=utcnow)

    family = relationship("Family", back_populates="students")
    schedules = relationship("Schedule", back_populates="student")
    payments = relationship("Payment", back_populates="student")


class Parent(Base):
    __tablename__ = "parents"

    id = Column("parent_id", Integer, primary_key=True, index=True)
    family_id = Column("family_id", Integer, ForeignKey("families.family_id"), nullable=True)
    name = Column("name", String, nullable=False)
    phone_search_hash = Column("phone_search_hash", String(64), nullable=True)
    birth_date = Column("birth_date", Date, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    family = relationship("Family", back_populates="parents")


class ParentStudentRelation(Base):
    __tablename__ = "parent_student_relations"

    id = Column("relation_id", Integer, primary_key=True, index=True)
    parent_id = Column("parent_id", Integer, ForeignKey("parents.parent_id"), nullable=False)
    student_id = Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False)
    relation_type = Column("relationship", String, default="guardian")
    is_primary = Column("is_primary", Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("parent_id", "student_id", name="unique_parent_student"),
    )


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column("teacher_id", Integer, primary_key=True, index=True)
    name = Column("name", String, nullable=False)
    specialty = Column("specialty", String, nullable=True)
    color = Column("color", String(16), default="#7BC4C4")
    email = Column("email", String, nullable=True)
    hire_date = Column("hire_date", Date, nullable=True)
    salary = Column("salary", Integer, default=0)
    is_active = Column("is_active", Boolean, default=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    schedules = relationship("Schedule", back_populates="teacher")


# --------------------------------------------------------
# SCHEDULES
# --------------------------------------------------------
class Schedule(Base):
    """Recurring weekly lesson slot; the seed for new weekly snapshots."""
    __tablename__ = "schedules"

    id = Column("schedule_id", Integer, primary_key=True, index=True)
    student_id = Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False)
    teacher_id = Column("teacher_id", Integer, ForeignKey("teachers.teacher_id"), nullable=False)
    # 0=Sun, 1=Mon, ..., 6=Sat
    day_of_week = Column("day_of_week", Integer, nullable=False)
    start_time = Column("start_time", Time, nullable=False)
    end_time = Column("end_time", Time, nullable=False)
    is_active = Column("is_active", Boolean, default=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    student = relationship("Student", back_populates="schedules")
    teacher = relationship("Teacher", back_populates="schedules")


class WeeklyScheduleSnapshot(Base):
    __tablename__ = "weekly_schedule_snapshots"

    id = Column("snapshot_id", Integer, primary_key=True, index=True)
    week_start = Column("week_start", Date, nullable=False)
    week_end = Column("week_end", Date, nullable=False)
    status = Column("status", String(16), nullable=False, default="draft")  # draft | confirmed
    confirmed_at = Column("confirmed_at", DateTime, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    details = relationship(
        "WeeklyScheduleDetail", back_populates="snapshot", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("week_start", name="unique_snapshot_week_start"),
    )


class WeeklyScheduleDetail(Base):
    __tablename__ = "weekly_schedule_details"

    id = Column("detail_id", Integer, primary_key=True, index=True)
    snapshot_id = Column(
        "snapshot_id", Integer, ForeignKey("weekly_schedule_snapshots.snapshot_id"), nullable=False, index=True
    )
    student_id = Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False)
    teacher_id = Column("teacher_id", Integer, ForeignKey("teachers.teacher_id"), nullable=False)
    day_of_week = Column("day_of_week", Integer, nullable=False)
    start_time = Column("start_time", Time, nullable=False)
    end_time = Column("end_time", Time, nullable=False)
    slot_number = Column("slot_number", Integer, nullable=False)   # 1..6
    attendance_status = Column("attendance_status", String(16), nullable=False, default="scheduled")
    notes = Column("notes", Text, nullable=True)

    snapshot = relationship("WeeklyScheduleSnapshot", back_populates="details")
    student = relationship("Student")
    teacher = relationship("Teacher")


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column("attendance_id", Integer, primary_key=True, index=True)
    student_id = Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False, index=True)
    check_in_time = Column("check_in_time", DateTime, nullable=False)
    check_out_time = Column("check_out_time", DateTime, nullable=True)
    notes = Column("notes", Text, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)


# --------------------------------------------------------
# MONEY
# --------------------------------------------------------
class Payment(Base):
    __tablename__ = "payments"

    id = Column("payment_id", Integer, primary_key=True, index=True)
    student_id = Column("student_id", Integer, ForeignKey("students.student_id"), nullable=False)
    base_amount = Column("base_amount", Integer, nullable=False)
    family_discount = Column("family_discount", Integer, nullable=False, default=0)
    additional_discount = Column("additional_discount", Integer, nullable=False, default=0)
    final_amount = Column("final_amount", Integer, nullable=False)
    payment_method = Column("payment_method", String(16), nullable=True)   # card | cash | transfer
    payment_date = Column("payment_date", Date, nullable=False)
    month_year = Column("month_year", String(7), nullable=False, index=True)   # "2025-02"
    notes = Column("notes", Text, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    student = relationship("Student", back_populates="payments")


class Revenue(Base):
    __tablename__ = "revenues"

    id = Column("revenue_id", Integer, primary_key=True, index=True)
    date = Column("date", Date, nullable=False, index=True)
    description = Column("description", String, nullable=False)
    amount = Column("amount", Integer, nullable=False)
    category = Column("category", String(32), nullable=False, default="other")
    notes = Column("notes", Text, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column("expense_id", Integer, primary_key=True, index=True)
    date = Column("date", Date, nullable=False, index=True)
    description = Column("description", String, nullable=False)
    amount = Column("amount", Integer, nullable=False)
    category = Column("category", String(32), nullable=False)
    is_fixed = Column("is_fixed", Boolean, default=False)
    # recurrence is advisory only; nothing materializes future rows
    is_recurring = Column("is_recurring", Boolean, default=False)
    recurring_day = Column("recurring_day", Integer, nullable=True)
    recurring_until = Column("recurring_until", Date, nullable=True)
    notes = Column("notes", Text, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)


# --------------------------------------------------------
# PAYHERE IMPORTS
# --------------------------------------------------------
class SalesRecord(Base):
    __tablename__ = "sales_records"

    id = Column("sales_record_id", Integer, primary_key=True, index=True)
    sale_date = Column("sale_date", Date, nullable=False, index=True)
    payment_date = Column("payment_date", Date, nullable=True)
    payment_time = Column("payment_time", Time, nullable=True)
    description = Column("description", String, nullable=True)
    total_amount = Column("total_amount", Integer, nullable=False, default=0)
    amount = Column("amount", Integer, nullable=False, default=0)
    discount = Column("discount", Integer, nullable=False, default=0)
    point_used = Column("point_used", Integer, nullable=False, default=0)
    status = Column("status", String(16), nullable=False, default="completed")   # completed | pending | refunded
    source = Column("source", String(16), nullable=False, default="excel")   # excel | manual
    import_batch_id = Column("import_batch_id", String(36), nullable=True, index=True)
    created_at = Column("created_at", DateTime, default=utcnow)


class DailySalesSummary(Base):
    __tablename__ = "daily_sales_summary"

    id = Column("summary_id", Integer, primary_key=True, index=True)
    date = Column("date", Date, nullable=False, index=True)
    transaction_count = Column("transaction_count", Integer, nullable=False, default=0)
    total_sales = Column("total_sales", Integer, nullable=False, default=0)
    net_sales = Column("net_sales", Integer, nullable=False, default=0)
    discount = Column("discount", Integer, nullable=False, default=0)
    point_used = Column("point_used", Integer, nullable=False, default=0)
    refund_amount = Column("refund_amount", Integer, nullable=False, default=0)
    source = Column("source", String(16), nullable=False, default="excel")
    import_batch_id = Column("import_batch_id", String(36), nullable=True, index=True)
    created_at = Column("created_at", DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("date", "source", name="unique_daily_summary_per_source"),
    )


class SettlementRecord(Base):
    __tablename__ = "settlements"

    id = Column("settlement_id", Integer, primary_key=True, index=True)
    period_start = Column("period_start", Date, nullable=False)
    period_end = Column("period_end", Date, nullable=False)
    settlement_date = Column("settlement_date", Date, nullable=False, index=True)
    total_amount = Column("total_amount", Integer, nullable=False, default=0)
    fee = Column("fee", Integer, nullable=False, default=0)
    net_amount = Column("net_amount", Integer, nullable=False, default=0)
    transaction_count = Column("transaction_count", Integer, nullable=False, default=0)
    status = Column("status", String(16), nullable=False, default="pending")   # pending | completed


class ImportLog(Base):
    __tablename__ = "import_logs"

    id = Column("import_log_id", Integer, primary_key=True, index=True)
    batch_id = Column("batch_id", String(36), nullable=False, unique=True)
    file_name = Column("file_name", String, nullable=False)
    file_type = Column("file_type", String(32), nullable=False)
    records_count = Column("records_count", Integer, nullable=False, default=0)
    success_count = Column("success_count", Integer, nullable=False, default=0)
    error_count = Column("error_count", Integer, nullable=False, default=0)
    errors = Column("errors", JSON, nullable=True)
    created_at = Column("created_at", DateTime, default=utcnow)
    deleted_at = Column("deleted_at", DateTime, nullable=True)
