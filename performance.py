"""Budget performance: allocated vs. actually spent for a budget's interval.

Works on any objects exposing the attributes of the ORM models, so it can be
fed rows straight from the repositories or plain test doubles.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class CategoryPerformance:
    category_id: int
    allocated: float
    spent: float
    remaining: float


@dataclass(frozen=True)
class BudgetPerformance:
    allocated: float = 0
    spent: float = 0
    remaining: float = 0
    categories: List[CategoryPerformance] = field(default_factory=list)


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _in_interval(expense, start: date, end: date) -> bool:
    day = _as_date(getattr(expense, "date", None))
    if day is None:
        return False
    return start <= day <= end


def spent_by_category(expenses: Iterable, start: date, end: date) -> Dict[int, float]:
    """Sum expense amounts per category for expenses dated within [start, end]."""
    totals: Dict[int, float] = defaultdict(float)
    for expense in expenses:
        if _in_interval(expense, start, end):
            totals[expense.category_id] += expense.amount or 0
    return totals


def calculate_budget_performance(budget, allocations: Iterable, expenses: Iterable) -> BudgetPerformance:
    """Compute allocated/spent/remaining for ``budget``, overall and per allocation.

    ``expenses`` must be every expense of the budget's owner; filtering by date
    happens here. Spend in categories without an allocation is not counted.
    """
    start = _as_date(budget.start_date)
    end = _as_date(budget.end_date)
    spent_map = spent_by_category(expenses, start, end)

    categories = []
    for allocation in allocations:
        allocated = allocation.amount or 0
        spent = spent_map.get(allocation.category_id, 0)
        categories.append(
            CategoryPerformance(
                category_id=allocation.category_id,
                allocated=allocated,
                spent=spent,
                remaining=allocated - spent,
            )
        )

    allocated_total = sum(c.allocated for c in categories)
    spent_total = sum(c.spent for c in categories)
    return BudgetPerformance(
        allocated=allocated_total,
        spent=spent_total,
        remaining=allocated_total - spent_total,
        categories=categories,
    )
