"""Aggregations behind the dashboard, the reports page and the CSV exports."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from dateutil.relativedelta import relativedelta
from io import StringIO
from typing import Dict, Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
import csv

from database import Expense, ExpenseCategory
from formatting import format_currency

RECENT_DAYS = 7


def _day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def month_key(value) -> str:
    return _day(value).strftime("%Y-%m")


def _month_total(records: Iterable, month: str) -> float:
    return sum(r.amount for r in records if month_key(r.date) == month)


def monthly_totals(expenses: Iterable, months: int = 6, today: Optional[date] = None) -> List[dict]:
    """Totals for the last ``months`` months (current one included), oldest first.

    Months without expenses are reported with a total of 0.
    """
    today = today or date.today()
    first_of_month = today.replace(day=1)
    keys = [
        (first_of_month - relativedelta(months=offset)).strftime("%Y-%m")
        for offset in reversed(range(months))
    ]
    totals = dict.fromkeys(keys, 0.0)
    for expense in expenses:
        key = month_key(expense.date)
        if key in totals:
            totals[key] += expense.amount
    return [{"month": key, "total": total} for key, total in totals.items()]


def category_totals(
    expenses: Iterable,
    category_names: Dict[int, str],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[dict]:
    totals: Dict[int, float] = defaultdict(float)
    for expense in expenses:
        day = _day(expense.date)
        if start_date and day < start_date:
            continue
        if end_date and day > end_date:
            continue
        totals[expense.category_id] += expense.amount

    rows = [
        {
            "category_id": category_id,
            "category": category_names.get(category_id, "Uncategorized"),
            "total": total,
        }
        for category_id, total in totals.items()
    ]
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def dashboard_summary(
    expenses: List,
    incomes: List,
    category_names: Dict[int, str],
    today: Optional[date] = None,
) -> dict:
    today = today or date.today()
    this_month = today.strftime("%Y-%m")
    last_month = (today.replace(day=1) - relativedelta(months=1)).strftime("%Y-%m")

    current_total = _month_total(expenses, this_month)
    previous_total = _month_total(expenses, last_month)
    if previous_total:
        percent_change = round((current_total - previous_total) / previous_total * 100, 1)
    else:
        percent_change = 0.0

    this_month_expenses = [e for e in expenses if month_key(e.date) == this_month]
    by_category = category_totals(this_month_expenses, category_names)
    highest_category = by_category[0]["category"] if by_category else None

    recent_since = today - timedelta(days=RECENT_DAYS)
    recent_entries_count = sum(1 for e in expenses if _day(e.date) >= recent_since)

    return {
        "total_expenses": current_total,
        "total_income": _month_total(incomes, this_month),
        "percent_change": percent_change,
        "highest_category": highest_category,
        "recent_entries_count": recent_entries_count,
    }


def category_trends(
    db: Session,
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[dict]:
    month = func.strftime("%Y-%m", Expense.date).label("month")
    query = (
        db.query(
            ExpenseCategory.id.label("category_id"),
            ExpenseCategory.name.label("category"),
            month,
            func.sum(Expense.amount).label("total"),
        )
        .join(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
        .filter(Expense.user_id == user_id)
    )

    if start_date:
        query = query.filter(func.date(Expense.date) >= start_date.isoformat())
    if end_date:
        query = query.filter(func.date(Expense.date) <= end_date.isoformat())

    trends = (
        query.group_by(ExpenseCategory.id, ExpenseCategory.name, month)
        .order_by("month", ExpenseCategory.name, ExpenseCategory.id)
        .all()
    )

    return [
        {
            "category_id": row.category_id,
            "category": row.category,
            "month": row.month,
            "total": row.total or 0.0,
        }
        for row in trends
    ]


# CSV exports


def _format_date(value) -> str:
    return _day(value).strftime("%b %d, %Y")


def _write_csv(header: List[str], rows: Iterable[List]) -> str:
    csv_data = StringIO()
    writer = csv.writer(csv_data)
    writer.writerow(header)
    writer.writerows(rows)
    return csv_data.getvalue()


def expenses_csv(expenses: Iterable, category_names: Dict[int, str], currency: str) -> str:
    return _write_csv(
        ["Date", "Description", "Category", "Merchant", "Amount", "Notes"],
        (
            [
                _format_date(e.date),
                e.description,
                category_names.get(e.category_id, "Uncategorized"),
                e.merchant or "",
                format_currency(e.amount, currency),
                e.notes or "",
            ]
            for e in expenses
        ),
    )


def incomes_csv(incomes: Iterable, category_names: Dict[int, str], currency: str) -> str:
    return _write_csv(
        ["Date", "Description", "Category", "Amount", "Source", "Notes"],
        (
            [
                _format_date(i.date),
                i.description,
                category_names.get(i.category_id, "Uncategorized"),
                format_currency(i.amount, currency),
                i.source or "",
                i.notes or "",
            ]
            for i in incomes
        ),
    )


def budgets_csv(budgets: Iterable, currency: str) -> str:
    return _write_csv(
        ["Name", "Period", "Start Date", "End Date", "Allocated Amount", "Notes"],
        (
            [
                b.name,
                b.period,
                _format_date(b.start_date),
                _format_date(b.end_date),
                format_currency(b.amount, currency),
                b.notes or "",
            ]
            for b in budgets
        ),
    )


def financial_report_csv(expenses: List, category_names: Dict[int, str]) -> str:
    """All expenses followed by a per-category spending summary."""
    csv_data = StringIO()
    writer = csv.writer(csv_data)

    writer.writerow(["Date", "Category", "Amount", "Description"])
    for e in expenses:
        writer.writerow(
            [
                _day(e.date).isoformat(),
                category_names.get(e.category_id, "Uncategorized"),
                e.amount,
                e.description,
            ]
        )

    writer.writerow([])
    writer.writerow(["Category", "Total Spending"])
    for row in category_totals(expenses, category_names):
        writer.writerow([row["category"], row["total"]])

    return csv_data.getvalue()
