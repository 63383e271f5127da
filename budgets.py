from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from dateutil.relativedelta import relativedelta
from datetime import date
from typing import List, Optional
import logging

from database import get_db, User, Budget, BudgetAllocation, ExpenseCategory
from schemas import (
    BudgetCreate,
    BudgetUpdate,
    BudgetOut,
    BudgetSummary,
    AllocationCreate,
    AllocationUpdate,
    AllocationOut,
    BudgetPerformance,
)
from auth import get_current_user
from crud import get_owned_or_404, visible_categories, check_subcategory
from performance import calculate_budget_performance
from repository import BudgetRepository, ExpenseRepository

logger = logging.getLogger(__name__)

budget_router = APIRouter()

PERIOD_LENGTHS = {
    "weekly": relativedelta(days=+7),
    "monthly": relativedelta(months=+1),
    "quarterly": relativedelta(months=+3),
    "biannual": relativedelta(months=+6),
    "annual": relativedelta(years=+1),
}


def period_end_date(period: str, start_date: date) -> Optional[date]:
    """End of a budget starting on ``start_date``; None for custom periods."""
    delta = PERIOD_LENGTHS.get(period)
    if delta is None:
        return None
    return start_date + delta


def _resolve_end_date(period: str, start_date: date, end_date: Optional[date]) -> date:
    if end_date is None:
        end_date = period_end_date(period, start_date)
        if end_date is None:
            raise HTTPException(
                status_code=400, detail="End date is required for custom budgets"
            )
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="Start date must not be after end date")
    return end_date


def _get_budget(db: Session, budget_id: int, user: User) -> Budget:
    return get_owned_or_404(db, Budget, budget_id, user, "Budget")


def _check_allocation_category(db: Session, category_id: int, user: User):
    category = (
        visible_categories(db, ExpenseCategory, user)
        .filter(ExpenseCategory.id == category_id)
        .first()
    )
    if category is None:
        raise HTTPException(status_code=400, detail="Invalid category")
    return category


def _allocation_out(allocation: BudgetAllocation, category_names: dict) -> AllocationOut:
    out = AllocationOut.model_validate(allocation)
    out.category_name = category_names.get(allocation.category_id)
    return out


@budget_router.get("/budgets", response_model=List[BudgetSummary])
async def list_budgets(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    budget_repo = BudgetRepository(db)
    expenses = ExpenseRepository(db).list_by_user(current_user.id)

    summaries = []
    for budget in budget_repo.list_by_user(current_user.id):
        allocations = budget_repo.list_allocations(budget.id)
        performance = calculate_budget_performance(budget, allocations, expenses)
        summary = BudgetSummary.model_validate(budget)
        summary.category_count = len({a.category_id for a in allocations})
        summary.allocated_amount = performance.allocated
        summary.spent_amount = performance.spent
        summaries.append(summary)
    return summaries


@budget_router.post("/budgets", response_model=BudgetOut, status_code=status.HTTP_201_CREATED)
async def create_budget(
    budget: BudgetCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_budget = Budget(
        user_id=current_user.id,
        name=budget.name,
        period=budget.period,
        start_date=budget.start_date,
        end_date=_resolve_end_date(budget.period, budget.start_date, budget.end_date),
        amount=budget.amount,
        notes=budget.notes or None,
    )
    db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    return db_budget


@budget_router.get("/budgets/{budget_id}", response_model=BudgetOut)
async def get_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _get_budget(db, budget_id, current_user)


@budget_router.patch("/budgets/{budget_id}", response_model=BudgetOut)
async def update_budget(
    budget_id: int,
    budget: BudgetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_budget = _get_budget(db, budget_id, current_user)
    changes = budget.model_dump(exclude_unset=True)

    period = changes.get("period") or db_budget.period
    start_date = changes.get("start_date") or db_budget.start_date
    end_date = changes.get("end_date")
    if end_date is None and not ({"period", "start_date"} & changes.keys()):
        end_date = db_budget.end_date

    db_budget.period = period
    db_budget.start_date = start_date
    db_budget.end_date = _resolve_end_date(period, start_date, end_date)
    if changes.get("name") is not None:
        db_budget.name = changes["name"]
    if changes.get("amount") is not None:
        db_budget.amount = changes["amount"]
    if "notes" in changes:
        db_budget.notes = changes["notes"] or None

    db.commit()
    db.refresh(db_budget)
    return db_budget


@budget_router.delete("/budgets/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_budget = _get_budget(db, budget_id, current_user)
    db.delete(db_budget)
    db.commit()
    logger.info("User %s deleted budget %s", current_user.id, budget_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Allocations


@budget_router.get("/budgets/{budget_id}/allocations", response_model=List[AllocationOut])
async def list_allocations(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_budget(db, budget_id, current_user)
    category_names = {
        c.id: c.name for c in visible_categories(db, ExpenseCategory, current_user)
    }
    return [
        _allocation_out(a, category_names)
        for a in BudgetRepository(db).list_allocations(budget_id)
    ]


@budget_router.post(
    "/budgets/{budget_id}/allocations",
    response_model=AllocationOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_allocation(
    budget_id: int,
    allocation: AllocationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_budget(db, budget_id, current_user)
    category = _check_allocation_category(db, allocation.category_id, current_user)

    db_allocation = BudgetAllocation(
        budget_id=budget_id,
        category_id=category.id,
        subcategory_id=check_subcategory(
            db, allocation.subcategory_id, category.id, current_user
        ),
        amount=allocation.amount,
    )
    db.add(db_allocation)
    db.commit()
    db.refresh(db_allocation)
    return _allocation_out(db_allocation, {category.id: category.name})


def _get_allocation(db: Session, budget_id: int, allocation_id: int) -> BudgetAllocation:
    allocation = db.get(BudgetAllocation, allocation_id)
    if allocation is None or allocation.budget_id != budget_id:
        raise HTTPException(status_code=404, detail="Allocation not found")
    return allocation


@budget_router.patch(
    "/budgets/{budget_id}/allocations/{allocation_id}", response_model=AllocationOut
)
async def update_allocation(
    budget_id: int,
    allocation_id: int,
    allocation: AllocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_budget(db, budget_id, current_user)
    db_allocation = _get_allocation(db, budget_id, allocation_id)
    changes = allocation.model_dump(exclude_unset=True)

    if changes.get("category_id") is not None:
        category_id = _check_allocation_category(db, changes["category_id"], current_user).id
        if category_id != db_allocation.category_id and "subcategory_id" not in changes:
            db_allocation.subcategory_id = None
        db_allocation.category_id = category_id
    if "subcategory_id" in changes:
        db_allocation.subcategory_id = check_subcategory(
            db, changes["subcategory_id"], db_allocation.category_id, current_user
        )
    if changes.get("amount") is not None:
        db_allocation.amount = changes["amount"]

    db.commit()
    db.refresh(db_allocation)
    category = db.get(ExpenseCategory, db_allocation.category_id)
    return _allocation_out(db_allocation, {category.id: category.name})


@budget_router.delete(
    "/budgets/{budget_id}/allocations/{allocation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_allocation(
    budget_id: int,
    allocation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_budget(db, budget_id, current_user)
    db_allocation = _get_allocation(db, budget_id, allocation_id)
    db.delete(db_allocation)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@budget_router.get("/budgets/{budget_id}/performance", response_model=BudgetPerformance)
async def get_budget_performance(
    budget_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    budget_repo = BudgetRepository(db)
    budget = budget_repo.get(budget_id)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    if budget.user_id != current_user.id:
        raise HTTPException(
            status_code=403, detail="You don't have permission to access this budget"
        )

    return calculate_budget_performance(
        budget,
        budget_repo.list_allocations(budget.id),
        ExpenseRepository(db).list_by_user(budget.user_id),
    )
