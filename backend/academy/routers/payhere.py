# backend/academy/routers/payhere.py
import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import schemas
from ..config import settings
from ..date_utils import academy_today
from ..db import get_db
from ..responses import ApiError, success_response
from ..security import require_admin
from ..services import excel_parser, payhere

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payhere", tags=["payhere"], dependencies=[Depends(require_admin)])

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")
MAX_DAILY_RANGE_DAYS = 366


# =========================================================
# UPLOAD
# =========================================================
@router.post("/upload")
async def upload_export(
    file: UploadFile = File(...),
    fileType: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    file_name = file.filename or ""
    if not file_name.lower().endswith(ALLOWED_EXTENSIONS):
        raise ApiError(400, "Unsupported file type. Only xlsx, xls and csv files can be uploaded")

    # read one byte past the limit so oversized files are caught without loading them whole
    content = await file.read(settings.UPLOAD_MAX_BYTES + 1)
    if len(content) > settings.UPLOAD_MAX_BYTES:
        raise ApiError(400, "File is larger than 10MB")

    try:
        rows = excel_parser.load_rows(content, file_name)
    except excel_parser.WorkbookReadError as e:
        logger.warning("Unreadable upload %s: %s", file_name, e)
        raise ApiError(400, "Could not read the file. Save it as .xlsx or .csv and try again")

    headers = excel_parser.get_headers(rows)
    file_type = fileType or excel_parser.detect_file_type(headers)
    if not file_type:
        raise ApiError(
            400,
            "Could not recognise the file format",
            extra={
                "headers": headers,
                "suggestion": "Choose the file type yourself (sales: payment history, daily_summary: period report)",
            },
        )
    if file_type not in excel_parser.PARSERS:
        raise ApiError(400, f"Unsupported file type: {file_type}")

    result = excel_parser.parse_rows(rows, file_type)
    if not result.success and not result.data:
        raise ApiError(400, "Could not parse any rows", extra={"errors": result.errors})

    log = payhere.import_batch(db, file_name, file_type, result)

    body = {
        "success": True,
        "message": f"{len(result.data)} records saved",
        "batchId": log.batch_id,
        "fileType": file_type,
        "stats": {
            "totalRows": result.total_rows,
            "imported": len(result.data),
            "errors": len(result.errors),
        },
    }
    if result.errors:
        body["errors"] = result.errors[:10]
    return JSONResponse(body)


@router.get("/imports")
def list_imports(limit: int = Query(50, ge=1, le=200), db: Session = Depends(get_db)):
    logs = payhere.list_imports(db, limit)
    return success_response({"imports": [schemas.ImportLogOut.model_validate(entry) for entry in logs]})


@router.delete("/imports/{batch_id}")
def delete_import(batch_id: str, db: Session = Depends(get_db)):
    deleted = payhere.delete_batch(db, batch_id)
    return success_response({"batch_id": batch_id, "deleted": deleted})


# =========================================================
# QUERIES
# =========================================================
@router.get("/sales")
def get_sales(
    type: Literal["summary", "list", "daily"] = "summary",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    if type == "list":
        return success_response(payhere.get_sales_list(db, start_date, end_date, limit, offset))
    if type == "daily":
        if not start_date or not end_date:
            raise ApiError(400, "start_date and end_date are required")
        if end_date < start_date:
            raise ApiError(400, "end_date must be the same as or after start_date")
        if (end_date - start_date).days >= MAX_DAILY_RANGE_DAYS:
            raise ApiError(400, f"Date range may span at most {MAX_DAILY_RANGE_DAYS} days")
        return success_response(payhere.get_daily_sales(db, start_date, end_date))
    return success_response(payhere.get_sales_summary(db, academy_today()))


@router.get("/settlements")
def get_settlements(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return success_response(payhere.get_settlements(db, year or academy_today().year, month, limit))
