import pytest

from academy.services.payments import compute_family_discount, compute_final_amount, family_discount_rate

from conftest import make_student


@pytest.mark.parametrize("tier, rate", [(0, 0.0), (1, 0.05), (2, 0.10), (None, 0.0)])
def test_family_discount_rate(tier, rate):
    assert family_discount_rate(tier) == pytest.approx(rate)


def test_discount_floors_in_integers():
    assert compute_family_discount(100000, 2) == 10000
    assert compute_family_discount(99999, 1) == 4999
    assert compute_family_discount(150000, 0) == 0


def test_final_amount_is_not_clamped():
    assert compute_final_amount(100000, 10000, 5000) == 85000
    assert compute_final_amount(10000, 1000, 20000) == -11000


def test_create_payment_snapshots_family_discount(client, db, admin_headers):
    student = make_student(db, tier=2)
    resp = client.post(
        "/payments",
        json={
            "student_id": student.id,
            "base_amount": 100000,
            "additional_discount": 5000,
            "payment_method": "card",
            "payment_date": "2025-02-03",
            "month_year": "2025-02",
        },
        headers=admin_headers,
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["family_discount"] == 10000
    assert data["payment"]["final_amount"] == 85000

    # a later tier change leaves the stored payment alone
    student.family.discount_tier = 0
    db.commit()
    resp = client.get("/payments?month_year=2025-02", headers=admin_headers)
    payments = resp.json()["data"]["payments"]
    assert len(payments) == 1
    assert payments[0]["family_discount"] == 10000


def test_create_payment_for_unknown_student(client, admin_headers):
    resp = client.post(
        "/payments",
        json={"student_id": 999, "base_amount": 100000, "payment_date": "2025-02-03", "month_year": "2025-02"},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Student not found", "code": "NOT_FOUND"}


def test_create_payment_rejects_bad_month(client, db, admin_headers):
    student = make_student(db)
    resp = client.post(
        "/payments",
        json={"student_id": student.id, "base_amount": 1000, "payment_date": "2025-02-03", "month_year": "2025-13"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
