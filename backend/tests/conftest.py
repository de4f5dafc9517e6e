"""Shared fixtures: an in-memory SQLite database and a TestClient bound to it."""
import os

# settings are read at import time; keep tests off the dev database file
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from datetime import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from academy import models
from academy.config import settings
from academy.db import Base, get_db
from academy.main import app
from academy.services.rate_limit import InMemoryRateLimiter, get_rate_limiter


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def limiter():
    return InMemoryRateLimiter(sweep_interval=60)


@pytest.fixture
def client(session_factory, limiter):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": settings.ADMIN_API_KEY}


def make_student(db, name="Kim Minji", tier=0, phone_hash=None, active=True):
    """Helper: a student in a fresh family with the given discount tier."""
    family = models.Family(family_name=f"{name} family", discount_tier=tier)
    db.add(family)
    db.flush()
    student = models.Student(
        family_id=family.id,
        name=name,
        phone_search_hash=phone_hash,
        consent_signed=True,
        is_active=active,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def make_teacher(db, name="Lee Sora", color="#7BC4C4"):
    teacher = models.Teacher(name=name, color=color)
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


def make_schedule(db, student, teacher, day=1, start=time(14, 10), end=time(15, 20), active=True):
    schedule = models.Schedule(
        student_id=student.id,
        teacher_id=teacher.id,
        day_of_week=day,
        start_time=start,
        end_time=end,
        is_active=active,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule
