import io
from datetime import date, datetime, time

import openpyxl
import pytest

from academy.services import excel_parser
from academy.services.excel_parser import (
    WorkbookReadError,
    detect_file_type,
    get_headers,
    load_rows,
    parse_daily_summary_rows,
    parse_date,
    parse_number,
    parse_sales_rows,
    parse_time,
)

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


# ---------- cell parsing ----------
@pytest.mark.parametrize("value, expected", [
    ("2025.01.05", "2025-01-05"),
    ("2025-1-5", "2025-01-05"),
    ("2025/01/05 13:20", "2025-01-05"),
    (date(2025, 1, 5), "2025-01-05"),
    (datetime(2025, 1, 5, 9, 30), "2025-01-05"),
    (45662, "2025-01-05"),
    ("", None),
    (None, None),
    ("not a date", None),
    ("2025.13.40", None),
])
def test_parse_date(value, expected):
    assert parse_date(value) == expected


@pytest.mark.parametrize("value, expected", [
    ("9:05", "09:05:00"),
    ("14:30:15", "14:30:15"),
    (0.5, "12:00:00"),
    (time(8, 15), "08:15:00"),
    ("25:00", None),
    (None, None),
])
def test_parse_time(value, expected):
    assert parse_time(value) == expected


@pytest.mark.parametrize("value, expected", [
    ("1,200원", 1200),
    ("14건", 14),
    (3500, 3500),
    (12.9, 12),
    ("-5,000", -5000),
    ("", 0),
    ("n/a", 0),
    (None, 0),
])
def test_parse_number(value, expected):
    assert parse_number(value) == expected


# ---------- header classification ----------
def test_detect_file_type_by_header_markers():
    assert detect_file_type(SALES_HEADER) == "sales"
    assert detect_file_type(DAILY_HEADER) == "daily_summary"
    assert detect_file_type(["정산일", "정산 금액", "수수료"]) == "settlement"
    assert detect_file_type(["Payment Date", "Amount"]) == "sales"
    assert detect_file_type(["이름", "전화번호"]) is None


def test_header_row_found_below_title_block():
    rows = [
        ["페이히어 결제 내역", None, None],
        ["기간: 2025.01.01 ~ 2025.01.31", None, None],
        SALES_HEADER,
        ["2025.01.05", "2025.01.05", "14:00", "Piano lesson", "150,000", "150,000", 0, 0],
    ]
    assert get_headers(rows) == SALES_HEADER


# ---------- sheet parsing ----------
def test_parse_sales_rows_skips_zero_rows_and_reports_bad_dates():
    rows = [
        SALES_HEADER,
        ["2025.01.05", "2025.01.05", "14:00", "Piano lesson", "150,000원", "150,000원", 0, 0],
        [None, None, None, None, None, None, None, None],
        ["합계", None, None, None, 0, 0, 0, 0],
        ["garbage", "2025.01.06", "15:00", "Piano lesson", 120000, 120000, 0, 0],
        ["2025-01-07", None, None, "Adult course", 200000, 0, 5000, 0],
    ]
    result = parse_sales_rows(rows)

    assert result.success is True
    assert result.total_rows == 5
    assert [r.sale_date for r in result.data] == [date(2025, 1, 5), date(2025, 1, 7)]
    assert result.errors == [{"row": 5, "message": "Invalid business date (영업일)"}]

    first = result.data[0]
    assert first.payment_time == time(14, 0)
    assert first.amount == 150000
    # amount falls back to the row total
    assert result.data[1].amount == 200000
    assert result.data[1].discount == 5000


def test_parse_daily_summary_rows():
    rows = [
        DAILY_HEADER,
        ["2025.01.02", "3건", "450,000", "440,000", "10,000", 0, 0],
        ["2025.01.03", "1건", "150,000", "150,000", 0, 0, 0],
    ]
    result = parse_daily_summary_rows(rows)

    assert result.success is True
    assert result.errors == []
    assert result.data[0].date == date(2025, 1, 2)
    assert result.data[0].transaction_count == 3
    assert result.data[0].net_sales == 440000
    assert result.data[1].total_sales == 150000


def test_sheet_without_data_rows():
    result = parse_sales_rows([SALES_HEADER])
    assert result.success is False
    assert result.errors == [{"row": 0, "message": "No data rows found"}]


def test_only_bad_rows_is_not_success():
    rows = [DAILY_HEADER, ["someday", 1, 100, 100, 0, 0, 0]]
    result = parse_daily_summary_rows(rows)
    assert result.success is False
    assert result.data == []
    assert len(result.errors) == 1


def test_parse_rows_rejects_unknown_type():
    with pytest.raises(ValueError):
        excel_parser.parse_rows([SALES_HEADER], "settlement")


# ---------- reading files ----------
def test_load_rows_from_xlsx():
    content = _xlsx([DAILY_HEADER, ["2025.01.02", 3, 450000, 440000, 10000, 0, 0]])
    rows = load_rows(content, "report.xlsx")
    assert [str(c) for c in rows[0]] == DAILY_HEADER
    assert rows[1][2] == 450000


def test_load_rows_from_cp949_csv():
    text = ",".join(DAILY_HEADER) + "\n2025.01.02,3,450000,440000,0,0,0\n"
    rows = load_rows(text.encode("cp949"), "report.csv")
    assert rows[0] == DAILY_HEADER
    assert rows[1][0] == "2025.01.02"


def test_load_rows_rejects_unreadable_workbook():
    with pytest.raises(WorkbookReadError):
        load_rows(b"this is not a workbook", "legacy.xls")
