# backend/academy/services/excel_parser.py
"""
Parser for the payhere POS spreadsheet exports.

Two export shapes are understood:

* ``sales``: the payment history export, one row per transaction
  (영업일, 결제(환불)일, 결제 시간, 결제(환불)내역, 합계, 결제 금액, 할인, 포인트 사용);
* ``daily_summary``: the period report, one row per business day
  (영업일, 결제 건수, 총 매출, 실 매출, 할인, 포인트 사용, 환불 금액).

Settlement exports are recognised but not imported.

Exports are messy: a title block may sit above the header, numbers come as
``"1,200원"`` or ``"14건"``, dates in three separator styles or as serials.
A bad row never aborts the batch; it is reported in ``errors`` and parsing
moves on.
"""
import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.utils.datetime import from_excel

from ..schemas import DailySummaryIn, SalesRecordIn

logger = logging.getLogger(__name__)

FILE_TYPE_SALES = "sales"
FILE_TYPE_DAILY_SUMMARY = "daily_summary"
FILE_TYPE_SETTLEMENT = "settlement"

HEADER_SCAN_ROWS = 5

SALES_MARKERS = ("결제(환불)일", "결제 시간", "payment date", "payment time")
DAILY_MARKERS = ("결제 건수", "총 매출", "실 매출", "transaction count", "total sales", "net sales")
SETTLEMENT_MARKERS = ("정산일", "수수료", "settlement date", "fee")

# field -> header substrings, checked in order; first matching field wins per column
SALES_COLUMNS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("payment_date", ("결제(환불)일", "payment date")),
    ("sale_date", ("영업일", "business date", "sale date")),
    ("payment_time", ("결제 시간", "payment time")),
    ("description", ("결제(환불)내역", "description")),
    ("amount", ("결제 금액", "payment amount")),
    ("total_amount", ("합계", "total")),
    ("discount", ("할인", "discount")),
    ("point_used", ("포인트 사용", "point")),
)

DAILY_COLUMNS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("date", ("영업일", "business date", "date")),
    ("transaction_count", ("결제 건수", "transaction count")),
    ("total_sales", ("총 매출", "total sales")),
    ("net_sales", ("실 매출", "net sales")),
    ("discount", ("할인", "discount")),
    ("point_used", ("포인트 사용", "point")),
    ("refund_amount", ("환불 금액", "refund")),
)

_DATE_RE = re.compile(r"^(\d{4})([.\-/])(\d{1,2})\2(\d{1,2})(?:[ T].*)?$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_NUMBER_RE = re.compile(r"^(-?\d+)")


class WorkbookReadError(Exception):
    pass


@dataclass
class ParseResult:
    success: bool
    data: List[Any] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0


# ---------------------------------------------------------
# Reading
# ---------------------------------------------------------
def load_rows(content: bytes, filename: str) -> List[List[Any]]:
    """Return the first sheet of an xlsx workbook (or a csv file) as a list of rows."""
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return _load_csv(content)
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        # openpyxl only reads the xlsx family; legacy .xls ends up here too
        raise WorkbookReadError(f"Could not read workbook: {e}") from e
    try:
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _load_csv(content: bytes) -> List[List[Any]]:
    for encoding in ("utf-8-sig", "cp949"):
        try:
            text = content.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise WorkbookReadError("Could not decode csv file (expected UTF-8 or CP949)")
    return [row for row in csv.reader(io.StringIO(text))]


# ---------------------------------------------------------
# Cell normalization
# ---------------------------------------------------------
def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_date(value) -> Optional[str]:
    """Normalize a date cell to YYYY-MM-DD, or None if it cannot be read."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        try:
            return from_excel(value).date().isoformat()
        except (ValueError, OverflowError, TypeError):
            return None

    m = _DATE_RE.match(str(value).strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(3)), int(m.group(4))).isoformat()
    except ValueError:
        return None


def parse_time(value) -> Optional[str]:
    """Normalize a time cell to HH:MM:SS, or None."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.time().replace(microsecond=0).isoformat()
    if isinstance(value, time):
        return value.replace(microsecond=0).isoformat()
    if isinstance(value, timedelta):
        value = value.total_seconds() / 86400
    if isinstance(value, (int, float)):
        # fraction of a day
        total_seconds = round((value % 1) * 24 * 60 * 60)
        if total_seconds >= 86400:
            total_seconds = 0
        h, rem = divmod(total_seconds, 3600)
        mi, s = divmod(rem, 60)
        return f"{h:02d}:{mi:02d}:{s:02d}"

    m = _TIME_RE.match(str(value).strip())
    if not m:
        return None
    h, mi, s = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    if h > 23 or mi > 59 or s > 59:
        return None
    return f"{h:02d}:{mi:02d}:{s:02d}"


def parse_number(value) -> int:
    """'1,200원' -> 1200, '14건' -> 14; anything unreadable counts as 0."""
    if _is_blank(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    s = str(value).replace(",", "").replace("원", "").strip()
    m = _NUMBER_RE.match(s)
    return int(m.group(1)) if m else 0


# ---------------------------------------------------------
# Header handling
# ---------------------------------------------------------
def _cell_text(value) -> str:
    return "" if value is None else str(value).strip()


def _count_known(row: Sequence[Any], columns) -> int:
    hits = 0
    for cell in row:
        text = _cell_text(cell).lower()
        if text and any(alias.lower() in text for _, aliases in columns for alias in aliases):
            hits += 1
    return hits


def find_header_row(rows: List[List[Any]], columns=None) -> int:
    """
    Index of the header row among the first few rows: the one naming the most
    known columns, or failing that the one with the most filled cells.
    """
    columns = columns or tuple(SALES_COLUMNS) + tuple(DAILY_COLUMNS)
    best_idx, best_hits = 0, 0
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        hits = _count_known(row or [], columns)
        if hits > best_hits:
            best_idx, best_hits = i, hits
    if best_hits:
        return best_idx

    best_cells = 0
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        filled = sum(1 for c in (row or []) if not _is_blank(c))
        if filled > best_cells:
            best_idx, best_cells = i, filled
    return best_idx


def get_headers(rows: List[List[Any]]) -> List[str]:
    if not rows:
        return []
    return [_cell_text(c) for c in rows[find_header_row(rows)]]


def detect_file_type(headers: Sequence[str]) -> Optional[str]:
    header_str = ",".join(h for h in headers if h).lower()
    if any(m.lower() in header_str for m in SALES_MARKERS):
        return FILE_TYPE_SALES
    if any(m.lower() in header_str for m in DAILY_MARKERS):
        return FILE_TYPE_DAILY_SUMMARY
    if any(m.lower() in header_str for m in SETTLEMENT_MARKERS):
        return FILE_TYPE_SETTLEMENT
    return None


def map_columns(headers: Sequence[str], columns) -> Dict[str, int]:
    col_map: Dict[str, int] = {}
    for index, header in enumerate(headers):
        text = header.lower()
        if not text:
            continue
        for name, aliases in columns:
            if name in col_map:
                continue
            if any(alias.lower() in text for alias in aliases):
                col_map[name] = index
                break
    return col_map


def _cell(row: Sequence[Any], col_map: Dict[str, int], name: str):
    idx = col_map.get(name)
    if idx is None or idx >= len(row):
        return None
    return row[idx]


# ---------------------------------------------------------
# Sheet parsers
# ---------------------------------------------------------
def _prepare(rows: List[List[Any]], columns):
    header_idx = find_header_row(rows, columns)
    headers = [_cell_text(c) for c in rows[header_idx]]
    return header_idx, map_columns(headers, columns)


def _no_data() -> ParseResult:
    return ParseResult(success=False, errors=[{"row": 0, "message": "No data rows found"}], total_rows=0)


def parse_sales_rows(rows: List[List[Any]]) -> ParseResult:
    """Parse a payment-history export into SalesRecordIn rows."""
    if len(rows) < 2:
        return _no_data()

    header_idx, col_map = _prepare(rows, SALES_COLUMNS)
    data: List[SalesRecordIn] = []
    errors: List[Dict[str, Any]] = []

    for i in range(header_idx + 1, len(rows)):
        row = rows[i] or []
        if all(_is_blank(c) for c in row):
            continue
        row_no = i + 1

        try:
            total_amount = parse_number(_cell(row, col_map, "total_amount"))
            amount = parse_number(_cell(row, col_map, "amount"))
            if total_amount == 0 and amount == 0:
                continue   # subtotal / padding rows carry no money

            sale_date = parse_date(_cell(row, col_map, "sale_date"))
            if not sale_date:
                errors.append({"row": row_no, "message": "Invalid business date (영업일)"})
                continue

            description = _cell(row, col_map, "description")
            data.append(SalesRecordIn(
                sale_date=sale_date,
                payment_date=parse_date(_cell(row, col_map, "payment_date")),
                payment_time=parse_time(_cell(row, col_map, "payment_time")),
                description=None if _is_blank(description) else str(description).strip(),
                total_amount=total_amount,
                amount=amount or total_amount,
                discount=parse_number(_cell(row, col_map, "discount")),
                point_used=parse_number(_cell(row, col_map, "point_used")),
                status="completed",
                source="excel",
            ))
        except Exception as e:
            errors.append({"row": row_no, "message": f"Parse error: {e}"})

    return ParseResult(
        success=not errors or bool(data),
        data=data,
        errors=errors,
        total_rows=len(rows) - header_idx - 1,
    )


def parse_daily_summary_rows(rows: List[List[Any]]) -> ParseResult:
    """Parse a period report (one row per day) into DailySummaryIn rows."""
    if len(rows) < 2:
        return _no_data()

    header_idx, col_map = _prepare(rows, DAILY_COLUMNS)
    data: List[DailySummaryIn] = []
    errors: List[Dict[str, Any]] = []

    for i in range(header_idx + 1, len(rows)):
        row = rows[i] or []
        if all(_is_blank(c) for c in row):
            continue
        row_no = i + 1

        try:
            day = parse_date(_cell(row, col_map, "date"))
            if not day:
                errors.append({"row": row_no, "message": "Invalid business date (영업일)"})
                continue

            data.append(DailySummaryIn(
                date=day,
                transaction_count=parse_number(_cell(row, col_map, "transaction_count")),
                total_sales=parse_number(_cell(row, col_map, "total_sales")),
                net_sales=parse_number(_cell(row, col_map, "net_sales")),
                discount=parse_number(_cell(row, col_map, "discount")),
                point_used=parse_number(_cell(row, col_map, "point_used")),
                refund_amount=parse_number(_cell(row, col_map, "refund_amount")),
                source="excel",
            ))
        except Exception as e:
            errors.append({"row": row_no, "message": f"Parse error: {e}"})

    return ParseResult(
        success=not errors or bool(data),
        data=data,
        errors=errors,
        total_rows=len(rows) - header_idx - 1,
    )


PARSERS = {
    FILE_TYPE_SALES: parse_sales_rows,
    FILE_TYPE_DAILY_SUMMARY: parse_daily_summary_rows,
}


def parse_rows(rows: List[List[Any]], file_type: str) -> ParseResult:
    try:
        parser = PARSERS[file_type]
    except KeyError:
        raise ValueError(f"Unsupported file type: {file_type}")
    result = parser(rows)
    logger.info(
        "Parsed %s sheet: %d rows, %d records, %d errors",
        file_type, result.total_rows, len(result.data), len(result.errors),
    )
    return result
