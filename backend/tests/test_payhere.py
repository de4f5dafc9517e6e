import io
from datetime import date, datetime

import openpyxl

from academy import models
from academy.config import settings
from academy.services import payhere
from academy.services.excel_parser import parse_daily_summary_rows, parse_sales_rows

SALES_HEADER = ["영업일", "결제(환불)일", "결제 시간", "결제(환불)내역", "합계", "결제 금액", "할인", "포인트 사용"]
DAILY_HEADER = ["영업일", "결제 건수", "총 매출", "실 매출", "할인", "포인트 사용", "환불 금액"]


def _xlsx(rows):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _upload(client, headers, content, name="export.xlsx", file_type=None):
    data = {"fileType": file_type} if file_type else {}
    return client.post(
        "/payhere/upload",
        files={"file": (name, content, "application/octet-stream")},
        data=data,
        headers=headers,
    )


# ---------- upload ----------
def test_upload_sales_export(client, db, admin_headers):
    content = _xlsx([
        SALES_HEADER,
        ["2025.01.05", "2025.01.05", "14:00", "Piano lesson", 150000, 150000, 0, 0],
        ["bad", "2025.01.06", "15:00", "Piano lesson", 120000, 120000, 0, 0],
    ])
    resp = _upload(client, admin_headers, content)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["fileType"] == "sales"
    assert body["stats"] == {"totalRows": 2, "imported": 1, "errors": 1}
    assert body["errors"] == [{"row": 3, "message": "Invalid business date (영업일)"}]

    log = db.query(models.ImportLog).one()
    assert log.batch_id == body["batchId"]
    assert log.success_count == 1
    assert db.query(models.SalesRecord).one().import_batch_id == body["batchId"]


def test_upload_rejects_other_extensions(client, admin_headers):
    resp = _upload(client, admin_headers, b"hello", name="notes.txt")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_upload_rejects_large_files(client, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 10)
    resp = _upload(client, admin_headers, b"x" * 11, name="big.csv")
    assert resp.status_code == 400
    assert "10MB" in resp.json()["error"]


def test_upload_unrecognised_headers(client, admin_headers):
    content = _xlsx([["이름", "전화번호"], ["Kim", "010"]])
    resp = _upload(client, admin_headers, content)
    assert resp.status_code == 400
    assert resp.json()["headers"] == ["이름", "전화번호"]


def test_upload_legacy_xls_is_a_validation_error(client, admin_headers):
    resp = _upload(client, admin_headers, b"\xd0\xcf\x11\xe0 legacy", name="old.xls")
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_upload_csv_daily_summary_with_type_hint(client, db, admin_headers):
    csv_text = ",".join(DAILY_HEADER) + "\n2025.01.02,3,450000,440000,10000,0,0\n"
    resp = _upload(client, admin_headers, csv_text.encode("utf-8-sig"), name="daily.csv", file_type="daily_summary")
    assert resp.status_code == 200
    assert resp.json()["fileType"] == "daily_summary"
    assert db.query(models.DailySalesSummary).one().net_sales == 440000


# ---------- data access ----------
def test_reimporting_a_day_replaces_its_summary(db):
    first = parse_daily_summary_rows([DAILY_HEADER, ["2025.01.02", 3, 450000, 440000, 0, 0, 0]])
    second = parse_daily_summary_rows([DAILY_HEADER, ["2025.01.02", 4, 600000, 590000, 0, 0, 0]])
    payhere.import_batch(db, "a.xlsx", "daily_summary", first)
    log = payhere.import_batch(db, "b.xlsx", "daily_summary", second)

    row = db.query(models.DailySalesSummary).one()
    assert row.net_sales == 590000
    assert row.import_batch_id == log.batch_id


def test_delete_batch(client, db, admin_headers):
    result = parse_sales_rows([SALES_HEADER, ["2025.01.05", None, None, "Lesson", 150000, 150000, 0, 0]])
    log = payhere.import_batch(db, "a.xlsx", "sales", result)

    resp = client.delete(f"/payhere/imports/{log.batch_id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["deleted"] == {"sales_records": 1, "daily_summaries": 0}
    assert db.query(models.SalesRecord).count() == 0

    db.expire_all()
    assert db.query(models.ImportLog).one().deleted_at is not None

    resp = client.delete("/payhere/imports/no-such-batch", headers=admin_headers)
    assert resp.status_code == 404


def test_daily_sales_prefers_processor_summary(db):
    sales = parse_sales_rows([
        SALES_HEADER,
        ["2025.01.02", None, None, "Lesson", 100000, 100000, 0, 0],
        ["2025.01.03", None, None, "Lesson", 70000, 70000, 0, 0],
        ["2025.01.03", None, None, "Lesson", 30000, 30000, 0, 0],
    ])
    payhere.import_batch(db, "s.xlsx", "sales", sales)
    daily = parse_daily_summary_rows([DAILY_HEADER, ["2025.01.02", 2, 250000, 240000, 0, 0, 0]])
    payhere.import_batch(db, "d.xlsx", "daily_summary", daily)

    result = payhere.get_daily_sales(db, date(2025, 1, 1), date(2025, 1, 3))
    assert result["is_placeholder"] is False
    assert result["daily_sales"] == [
        {"date": date(2025, 1, 1), "amount": 0, "count": 0},
        {"date": date(2025, 1, 2), "amount": 240000, "count": 2},
        {"date": date(2025, 1, 3), "amount": 100000, "count": 2},
    ]


def test_sales_summary(db):
    sales = parse_sales_rows([
        SALES_HEADER,
        ["2025.01.20", None, None, "Lesson", 150000, 150000, 0, 0],
        ["2025.01.05", None, None, "Lesson", 100000, 100000, 0, 0],
        ["2024.12.31", None, None, "Lesson", 999000, 999000, 0, 0],
    ])
    payhere.import_batch(db, "s.xlsx", "sales", sales)
    db.add(models.SettlementRecord(
        period_start=date(2025, 1, 1), period_end=date(2025, 1, 15), settlement_date=date(2025, 1, 20),
        total_amount=100000, fee=3300, net_amount=96700, status="pending",
    ))
    db.commit()

    summary = payhere.get_sales_summary(db, today=date(2025, 1, 20))
    assert summary["today_sales"] == 150000
    assert summary["month_sales"] == 250000
    assert summary["pending_settlement"] == 96700
    assert summary["is_placeholder"] is False
    assert isinstance(summary["last_updated"], datetime)


def test_sales_list_pagination(db):
    sales = parse_sales_rows(
        [SALES_HEADER] + [[f"2025.01.{d:02d}", None, None, "Lesson", 1000 * d, 1000 * d, 0, 0] for d in range(1, 6)]
    )
    payhere.import_batch(db, "s.xlsx", "sales", sales)

    page = payhere.get_sales_list(db, date(2025, 1, 2), date(2025, 1, 5), limit=2, offset=0)
    assert page["total"] == 4
    assert [item.sale_date for item in page["items"]] == [date(2025, 1, 5), date(2025, 1, 4)]


# ---------- placeholders ----------
def test_placeholders_when_nothing_imported(client, db, admin_headers):
    daily = payhere.get_daily_sales(db, date(2025, 1, 1), date(2025, 1, 7))
    assert daily["is_placeholder"] is True
    assert len(daily["daily_sales"]) == 7
    # deterministic for the same request
    assert payhere.get_daily_sales(db, date(2025, 1, 1), date(2025, 1, 7)) == daily

    settlements = payhere.get_settlements(db, 2025, 3, limit=12)
    assert settlements["is_placeholder"] is True
    for item in settlements["items"]:
        assert item["net_amount"] == item["total_amount"] - item["fee"]
    assert [i["status"] for i in settlements["items"][:3]] == ["pending", "pending", "completed"]

    resp = client.get("/payhere/sales?type=list&limit=5", headers=admin_headers)
    data = resp.json()["data"]
    assert data["is_placeholder"] is True
    assert len(data["items"]) == 5

    resp = client.get("/payhere/sales?type=daily", headers=admin_headers)
    assert resp.status_code == 400

def test_daily_sales_range_is_capped(client, admin_headers):
    resp = client.get("/payhere/sales?type=daily&start_date=2024-01-01&end_date=2024-12-31", headers=admin_headers)
    assert resp.status_code == 200
    assert len(resp.json()["data"]["daily_sales"]) == 366

    resp = client.get("/payhere/sales?type=daily&start_date=2000-01-01&end_date=2099-12-31", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"
