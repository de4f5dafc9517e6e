# backend/academy/services/payhere.py
"""
Read/write access to imported payhere data.

Until the first spreadsheet is imported (or the first settlement is
recorded) the dashboard still needs something to draw, so every query falls
back to deterministic placeholder figures and flags them with
``is_placeholder``.
"""
import logging
import random
import uuid
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..date_utils import academy_today, daterange, month_bounds, utcnow
from ..responses import ApiError, ErrorCodes
from .excel_parser import FILE_TYPE_DAILY_SUMMARY, FILE_TYPE_SALES, ParseResult

logger = logging.getLogger(__name__)

SETTLEMENT_FEE_PERCENT = 3.3
PLACEHOLDER_PRODUCTS = ["Beginner", "Intermediate", "Advanced", "Adult"]
PLACEHOLDER_AMOUNTS = [150000, 180000, 200000, 120000]


# =========================================================
# IMPORTS
# =========================================================
def import_batch(db: Session, file_name: str, file_type: str, result: ParseResult) -> models.ImportLog:
    """
    Persist one parsed upload and its import log in a single transaction.
    Daily summaries are keyed on (date, source): a re-imported day replaces
    the previous figures.
    """
    batch_id = str(uuid.uuid4())
    try:
        if file_type == FILE_TYPE_SALES:
            for rec in result.data:
                db.add(models.SalesRecord(**rec.model_dump(), import_batch_id=batch_id))
        elif file_type == FILE_TYPE_DAILY_SUMMARY:
            _upsert_daily_summaries(db, result.data, batch_id)
        else:
            raise ValueError(f"Unsupported file type: {file_type}")

        log = models.ImportLog(
            batch_id=batch_id,
            file_name=file_name,
            file_type=file_type,
            records_count=result.total_rows,
            success_count=len(result.data),
            error_count=len(result.errors),
            errors=result.errors or None,
        )
        db.add(log)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(log)
    logger.info("Imported %s batch %s from %s: %d rows", file_type, batch_id, file_name, len(result.data))
    return log


def _upsert_daily_summaries(db: Session, rows: List[schemas.DailySummaryIn], batch_id: str) -> None:
    # last row wins when the same day appears twice in one file
    by_key: Dict[Tuple[date, str], schemas.DailySummaryIn] = {}
    for rec in rows:
        by_key[(rec.date, rec.source)] = rec
    if not by_key:
        return

    existing = {
        (r.date, r.source): r
        for r in db.query(models.DailySalesSummary)
        .filter(models.DailySalesSummary.date.in_(sorted({k[0] for k in by_key})))
        .all()
    }
    for key, rec in by_key.items():
        row = existing.get(key)
        if row is None:
            db.add(models.DailySalesSummary(**rec.model_dump(), import_batch_id=batch_id))
            continue
        for field, value in rec.model_dump().items():
            setattr(row, field, value)
        row.import_batch_id = batch_id


def delete_batch(db: Session, batch_id: str) -> Dict[str, int]:
    log = db.query(models.ImportLog).filter(models.ImportLog.batch_id == batch_id).first()
    if not log:
        raise ApiError(404, "Import batch not found", ErrorCodes.NOT_FOUND)
    try:
        sales_deleted = (
            db.query(models.SalesRecord)
            .filter(models.SalesRecord.import_batch_id == batch_id)
            .delete(synchronize_session=False)
        )
        daily_deleted = (
            db.query(models.DailySalesSummary)
            .filter(models.DailySalesSummary.import_batch_id == batch_id)
            .delete(synchronize_session=False)
        )
        log.deleted_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted import batch %s (%d sales, %d daily)", batch_id, sales_deleted, daily_deleted)
    return {"sales_records": sales_deleted, "daily_summaries": daily_deleted}


def list_imports(db: Session, limit: int = 50) -> List[models.ImportLog]:
    return (
        db.query(models.ImportLog)
        .order_by(models.ImportLog.created_at.desc(), models.ImportLog.id.desc())
        .limit(limit)
        .all()
    )


# =========================================================
# QUERIES
# =========================================================
def _has_sales_data(db: Session) -> bool:
    return (
        db.query(models.DailySalesSummary.id).first() is not None
        or db.query(models.SalesRecord.id).first() is not None
    )


def _daily_totals(db: Session, start: date, end: date) -> Dict[date, Dict[str, int]]:
    """
    Per-day {amount, count}. The processor's own daily summary is authoritative
    for a day; days without one fall back to summing completed transactions.
    """
    totals: Dict[date, Dict[str, int]] = {}

    rows = (
        db.query(
            models.SalesRecord.sale_date,
            func.coalesce(func.sum(models.SalesRecord.amount), 0),
            func.count(models.SalesRecord.id),
        )
        .filter(
            models.SalesRecord.sale_date >= start,
            models.SalesRecord.sale_date <= end,
            models.SalesRecord.status == "completed",
        )
        .group_by(models.SalesRecord.sale_date)
        .all()
    )
    for day, amount, count in rows:
        totals[day] = {"amount": int(amount), "count": int(count)}

    summaries = (
        db.query(models.DailySalesSummary)
        .filter(models.DailySalesSummary.date >= start, models.DailySalesSummary.date <= end)
        .all()
    )
    per_day = defaultdict(lambda: {"amount": 0, "count": 0})
    for s in summaries:
        per_day[s.date]["amount"] += s.net_sales
        per_day[s.date]["count"] += s.transaction_count
    totals.update(per_day)
    return totals


def get_sales_summary(db: Session, today: Optional[date] = None) -> Dict:
    today = today or academy_today()
    if not _has_sales_data(db):
        return _placeholder_summary(today)

    month_start, _ = month_bounds(today.year, today.month)
    totals = _daily_totals(db, month_start, today)
    pending = (
        db.query(func.coalesce(func.sum(models.SettlementRecord.net_amount), 0))
        .filter(models.SettlementRecord.status == "pending")
        .scalar()
    )
    last_import = db.query(func.max(models.ImportLog.created_at)).scalar()

    return {
        "today_sales": totals.get(today, {}).get("amount", 0),
        "month_sales": sum(v["amount"] for v in totals.values()),
        "pending_settlement": int(pending or 0),
        "last_updated": last_import or utcnow(),
        "is_placeholder": False,
    }


def get_sales_list(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 20,
    offset: int = 0,
) -> Dict:
    if db.query(models.SalesRecord.id).first() is None:
        return _placeholder_sales_list(start_date, end_date, limit, offset)

    q = db.query(models.SalesRecord)
    if start_date:
        q = q.filter(models.SalesRecord.sale_date >= start_date)
    if end_date:
        q = q.filter(models.SalesRecord.sale_date <= end_date)
    total = q.count()
    items = (
        q.order_by(
            models.SalesRecord.sale_date.desc(),
            models.SalesRecord.payment_time.desc(),
            models.SalesRecord.id.desc(),
        )
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "items": [schemas.SalesRecordOut.model_validate(r) for r in items],
        "total": total,
        "is_placeholder": False,
    }


def get_daily_sales(db: Session, start_date: date, end_date: date) -> Dict:
    if not _has_sales_data(db):
        return _placeholder_daily(start_date, end_date)

    totals = _daily_totals(db, start_date, end_date)
    daily = [
        {"date": d, **totals.get(d, {"amount": 0, "count": 0})}
        for d in daterange(start_date, end_date)
    ]
    return {"daily_sales": daily, "is_placeholder": False}


def get_settlements(db: Session, year: int, month: Optional[int] = None, limit: int = 12) -> Dict:
    if db.query(models.SettlementRecord.id).first() is None:
        return _placeholder_settlements(year, month, limit)

    if month:
        start, end = month_bounds(year, month)
    else:
        start, end = date(year, 1, 1), date(year, 12, 31)
    q = db.query(models.SettlementRecord).filter(
        models.SettlementRecord.settlement_date >= start,
        models.SettlementRecord.settlement_date <= end,
    )
    total = q.count()
    items = q.order_by(models.SettlementRecord.settlement_date.desc()).limit(limit).all()
    return {
        "items": [schemas.SettlementOut.model_validate(s) for s in items],
        "total": total,
        "is_placeholder": False,
    }


# =========================================================
# PLACEHOLDERS
# =========================================================
def _rng(*parts) -> random.Random:
    return random.Random("|".join(str(p) for p in parts))


def _placeholder_summary(today: date) -> Dict:
    rng = _rng("summary", today)
    return {
        "today_sales": rng.randrange(100000, 600000, 1000),
        "month_sales": rng.randrange(2000000, 7000000, 1000),
        "pending_settlement": rng.randrange(500000, 1500000, 1000),
        "last_updated": utcnow(),
        "is_placeholder": True,
    }


def _placeholder_sales_list(start_date, end_date, limit: int, offset: int) -> Dict:
    end = end_date or academy_today()
    start = start_date or end - timedelta(days=29)
    rng = _rng("sales", start, end)
    span = max(0, (end - start).days)

    items = []
    for i in range(50):
        amount = rng.choice(PLACEHOLDER_AMOUNTS)
        items.append({
            "id": -(i + 1),
            "sale_date": start + timedelta(days=rng.randint(0, span)),
            "payment_date": None,
            "payment_time": None,
            "description": rng.choice(PLACEHOLDER_PRODUCTS),
            "total_amount": amount,
            "amount": amount,
            "discount": 0,
            "point_used": 0,
            "status": "completed" if rng.random() > 0.05 else "pending",
            "source": "manual",
            "import_batch_id": None,
        })
    items.sort(key=lambda x: x["sale_date"], reverse=True)
    return {"items": items[offset:offset + limit], "total": len(items), "is_placeholder": True}


def _placeholder_daily(start_date: date, end_date: date) -> Dict:
    rng = _rng("daily", start_date, end_date)
    daily = [
        {"date": d, "amount": rng.randrange(50000, 550000, 1000), "count": rng.randint(1, 5)}
        for d in daterange(start_date, end_date)
    ]
    return {"daily_sales": daily, "is_placeholder": True}


def _placeholder_settlements(year: int, month: Optional[int], limit: int) -> Dict:
    rng = _rng("settlements", year, month)
    anchor_month = month or 12
    items = []
    for i in range(12):
        y, m = divmod((anchor_month - 1) - i, 12)
        y, m = year + y, m + 1
        period_start, period_end = month_bounds(y, m)
        total_amount = rng.randrange(2000000, 5000000, 1000)
        fee = int(total_amount * SETTLEMENT_FEE_PERCENT // 100)
        items.append({
            "id": -(i + 1),
            "settlement_date": date(y, m, 15),
            "period_start": period_start,
            "period_end": period_end,
            "total_amount": total_amount,
            "fee": fee,
            "net_amount": total_amount - fee,
            "status": "pending" if i < 2 else "completed",
            "transaction_count": rng.randint(10, 39),
        })
    return {"items": items[:limit], "total": len(items), "is_placeholder": True}
