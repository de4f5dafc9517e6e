# backend/academy/services/finance.py
from datetime import date
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from .. import models
from ..date_utils import year_bounds
from ..schemas import EXPENSE_CATEGORIES

MONTH_FIELDS = ("payhere_sales", "revenues", "expenses", "fixed_expenses", "variable_expenses")


def _get(record, name):
    if isinstance(record, dict):
        return record[name]
    return getattr(record, name)


def build_finance_summary(
    year: int,
    daily_sales: Iterable,
    revenues: Iterable,
    expenses: Iterable,
) -> Dict:
    """
    Fold the three income/cost streams of one year into a monthly P&L.

    ``daily_sales`` rows carry ``date`` and ``net_sales``; ``revenues`` rows
    ``date`` and ``amount``; ``expenses`` rows ``date``, ``amount``,
    ``category`` and ``is_fixed``. Rows may be ORM objects or dicts. Anything
    dated outside ``year`` is ignored. Yearly figures are the sum of the
    monthly buckets, so the two always agree.
    """
    months: List[Dict[str, int]] = [dict.fromkeys(MONTH_FIELDS, 0) for _ in range(12)]
    by_category: Dict[str, int] = dict.fromkeys(EXPENSE_CATEGORIES, 0)

    def bucket(d: date):
        if d is None or d.year != year:
            return None
        return months[d.month - 1]

    for row in daily_sales:
        m = bucket(_get(row, "date"))
        if m is not None:
            m["payhere_sales"] += _get(row, "net_sales") or 0

    for row in revenues:
        m = bucket(_get(row, "date"))
        if m is not None:
            m["revenues"] += _get(row, "amount") or 0

    for row in expenses:
        m = bucket(_get(row, "date"))
        if m is None:
            continue
        amount = _get(row, "amount") or 0
        m["expenses"] += amount
        if _get(row, "is_fixed"):
            m["fixed_expenses"] += amount
        else:
            m["variable_expenses"] += amount
        # unknown categories from older rows are kept under their own key
        category = _get(row, "category") or "other"
        by_category[category] = by_category.get(category, 0) + amount

    monthly = []
    for idx, m in enumerate(months, start=1):
        total_income = m["payhere_sales"] + m["revenues"]
        monthly.append({
            "month": f"{year}-{idx:02d}",
            **m,
            "total_income": total_income,
            "net_profit": total_income - m["expenses"],
        })

    yearly = {
        "total_payhere_sales": sum(m["payhere_sales"] for m in monthly),
        "total_revenues": sum(m["revenues"] for m in monthly),
        "total_income": sum(m["total_income"] for m in monthly),
        "total_expenses": sum(m["expenses"] for m in monthly),
        "total_fixed_expenses": sum(m["fixed_expenses"] for m in monthly),
        "total_variable_expenses": sum(m["variable_expenses"] for m in monthly),
        "net_profit": sum(m["net_profit"] for m in monthly),
    }

    return {
        "year": year,
        "monthly": monthly,
        "yearly": yearly,
        "expenses_by_category": by_category,
    }


def get_finance_summary(db: Session, year: int) -> Dict:
    start, end = year_bounds(year)

    daily_sales = (
        db.query(models.DailySalesSummary.date, models.DailySalesSummary.net_sales)
        .filter(models.DailySalesSummary.date >= start, models.DailySalesSummary.date <= end)
        .all()
    )
    revenues = (
        db.query(models.Revenue.date, models.Revenue.amount)
        .filter(models.Revenue.date >= start, models.Revenue.date <= end)
        .all()
    )
    expenses = (
        db.query(models.Expense.date, models.Expense.amount, models.Expense.category, models.Expense.is_fixed)
        .filter(models.Expense.date >= start, models.Expense.date <= end)
        .all()
    )
    return build_finance_summary(year, daily_sales, revenues, expenses)
