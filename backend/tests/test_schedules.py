from datetime import time

from conftest import make_schedule, make_student, make_teacher


def _payload(student, teacher, start, end, day=1):
    return {
        "student_id": student.id,
        "teacher_id": teacher.id,
        "day_of_week": day,
        "start_time": start,
        "end_time": end,
    }


def test_overlapping_lesson_for_same_teacher_is_rejected(client, db, admin_headers):
    teacher = make_teacher(db)
    a = make_student(db, name="A")
    b = make_student(db, name="B")
    existing = make_schedule(db, a, teacher, day=1, start=time(14, 0), end=time(15, 0))

    resp = client.post("/schedules", json=_payload(b, teacher, "14:30", "15:30"), headers=admin_headers)
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "DUPLICATE_ENTRY"
    assert body["conflict_id"] == existing.id


def test_back_to_back_and_other_day_are_allowed(client, db, admin_headers):
    teacher = make_teacher(db)
    a = make_student(db, name="A")
    b = make_student(db, name="B")
    make_schedule(db, a, teacher, day=1, start=time(14, 0), end=time(15, 0))

    resp = client.post("/schedules", json=_payload(b, teacher, "15:00", "16:00"), headers=admin_headers)
    assert resp.status_code == 201
    resp = client.post("/schedules", json=_payload(b, teacher, "14:00", "15:00", day=2), headers=admin_headers)
    assert resp.status_code == 201


def test_other_teacher_and_inactive_schedules_do_not_clash(client, db, admin_headers):
    t1 = make_teacher(db, name="T1")
    t2 = make_teacher(db, name="T2")
    a = make_student(db, name="A")
    make_schedule(db, a, t1, day=1, start=time(14, 0), end=time(15, 0))
    make_schedule(db, a, t2, day=1, start=time(16, 0), end=time(17, 0), active=False)

    resp = client.post("/schedules", json=_payload(a, t2, "14:00", "15:00"), headers=admin_headers)
    assert resp.status_code == 201
    resp = client.post("/schedules", json=_payload(a, t2, "16:30", "17:30"), headers=admin_headers)
    assert resp.status_code == 201


def test_end_must_follow_start(client, db, admin_headers):
    teacher = make_teacher(db)
    a = make_student(db)
    resp = client.post("/schedules", json=_payload(a, teacher, "15:00", "14:00"), headers=admin_headers)
    assert resp.status_code == 400


def test_list_and_delete(client, db, admin_headers):
    teacher = make_teacher(db)
    a = make_student(db, name="A")
    late = make_schedule(db, a, teacher, day=1, start=time(16, 0), end=time(16, 50))
    make_schedule(db, a, teacher, day=1, start=time(14, 10), end=time(15, 0))
    make_schedule(db, a, teacher, day=4, start=time(13, 0), end=time(13, 50))

    resp = client.get("/schedules?day=1", headers=admin_headers)
    rows = resp.json()["data"]["schedules"]
    assert [r["start_time"] for r in rows] == ["14:10:00", "16:00:00"]
    assert rows[0]["board_row"] == 7
    assert rows[0]["board_span"] == 5

    resp = client.delete(f"/schedules?id={late.id}", headers=admin_headers)
    assert resp.status_code == 200
    resp = client.get("/schedules?day=1", headers=admin_headers)
    assert len(resp.json()["data"]["schedules"]) == 1
