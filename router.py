from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import List, Optional
import logging

from database import (
    get_db,
    User,
    Expense,
    Income,
    ExpenseCategory,
    ExpenseSubcategory,
    IncomeCategory,
    BudgetAllocation,
)
from schemas import (
    UserOut,
    UserSettings,
    CategoryCreate,
    CategoryUpdate,
    CategoryOut,
    SubcategoryOut,
    ExpenseCreate,
    ExpenseOut,
    IncomeCreate,
    IncomeOut,
    CategoryTrend,
    MonthlyTotal,
    CategoryTotal,
    DashboardSummary,
)
from auth import get_current_user
from crud import (
    get_owned_or_404,
    get_editable_category_or_404,
    visible_categories,
    resolve_expense_category,
    resolve_income_category,
    check_subcategory,
)
from repository import BudgetRepository, ExpenseRepository
import reports

logger = logging.getLogger(__name__)

router = APIRouter()


def _category_names(db: Session, model, user: User):
    return {c.id: c.name for c in visible_categories(db, model, user)}


def _csv_response(content: str, prefix: str) -> StreamingResponse:
    filename = f"{prefix}-{datetime.now().strftime('%Y-%m-%d-%H%M%S')}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# User


@router.get("/user", response_model=UserOut)
async def get_user(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/user/settings", response_model=UserOut)
async def update_user_settings(
    settings: UserSettings,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.currency = settings.currency
    db.commit()
    db.refresh(current_user)
    return current_user


# Expense categories


@router.get("/expense-categories", response_model=List[CategoryOut])
async def list_expense_categories(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return (
        visible_categories(db, ExpenseCategory, current_user)
        .order_by(ExpenseCategory.is_system.desc(), ExpenseCategory.name)
        .all()
    )


@router.post(
    "/expense-categories",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_category = ExpenseCategory(
        user_id=current_user.id,
        name=category.name,
        description=category.description,
        is_system=False,
    )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.patch("/expense-categories/{category_id}", response_model=CategoryOut)
async def update_expense_category(
    category_id: int,
    category: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_category = get_editable_category_or_404(db, ExpenseCategory, category_id, current_user)
    changes = category.model_dump(exclude_unset=True)
    # name is NOT NULL; a null name leaves it unchanged
    if changes.get("name", "") is None:
        del changes["name"]
    for field, value in changes.items():
        setattr(db_category, field, value)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.delete("/expense-categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_category = get_editable_category_or_404(db, ExpenseCategory, category_id, current_user)
    in_use = (
        db.query(Expense).filter(Expense.category_id == category_id).first()
        or db.query(BudgetAllocation).filter(BudgetAllocation.category_id == category_id).first()
    )
    if in_use:
        raise HTTPException(status_code=400, detail="Category is in use")
    db.delete(db_category)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/expense-categories/{category_id}/subcategories",
    response_model=List[SubcategoryOut],
)
async def list_subcategories(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(ExpenseSubcategory)
        .filter(
            ExpenseSubcategory.category_id == category_id,
            ExpenseSubcategory.user_id == current_user.id,
        )
        .order_by(ExpenseSubcategory.name)
        .all()
    )


@router.post(
    "/expense-categories/{category_id}/subcategories",
    response_model=SubcategoryOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_subcategory(
    category_id: int,
    subcategory: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category = (
        visible_categories(db, ExpenseCategory, current_user)
        .filter(ExpenseCategory.id == category_id)
        .first()
    )
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    db_subcategory = ExpenseSubcategory(
        category_id=category.id,
        user_id=current_user.id,
        name=subcategory.name,
        description=subcategory.description,
    )
    db.add(db_subcategory)
    db.commit()
    db.refresh(db_subcategory)
    return db_subcategory


@router.delete("/expense-subcategories/{subcategory_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subcategory(
    subcategory_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    subcategory = get_owned_or_404(
        db, ExpenseSubcategory, subcategory_id, current_user, "Subcategory"
    )
    db.query(Expense).filter(Expense.subcategory_id == subcategory_id).update(
        {Expense.subcategory_id: None}
    )
    db.query(BudgetAllocation).filter(
        BudgetAllocation.subcategory_id == subcategory_id
    ).update({BudgetAllocation.subcategory_id: None})
    db.delete(subcategory)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Income categories


@router.get("/income-categories", response_model=List[CategoryOut])
async def list_income_categories(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return (
        visible_categories(db, IncomeCategory, current_user)
        .order_by(IncomeCategory.is_system.desc(), IncomeCategory.name)
        .all()
    )


@router.post(
    "/income-categories",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_income_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_category = IncomeCategory(
        user_id=current_user.id,
        name=category.name,
        description=category.description,
        is_system=False,
    )
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.delete("/income-categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_income_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_category = get_editable_category_or_404(db, IncomeCategory, category_id, current_user)
    if db.query(Income).filter(Income.category_id == category_id).first():
        raise HTTPException(status_code=400, detail="Category is in use")
    db.delete(db_category)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Expenses


@router.get("/expenses", response_model=List[ExpenseOut])
async def get_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses = ExpenseRepository(db).list_by_user(current_user.id)
    if start_date:
        expenses = [e for e in expenses if e.date.date() >= start_date]
    if end_date:
        expenses = [e for e in expenses if e.date.date() <= end_date]
    if category_id is not None:
        expenses = [e for e in expenses if e.category_id == category_id]
    return expenses


@router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category_id = resolve_expense_category(db, expense.category_ref(), current_user)
    subcategory_id = check_subcategory(db, expense.subcategory_id, category_id, current_user)

    db_expense = Expense(
        user_id=current_user.id,
        amount=expense.amount,
        description=expense.description,
        date=expense.date,
        category_id=category_id,
        subcategory_id=subcategory_id,
        merchant=expense.merchant or None,
        notes=expense.notes or None,
    )
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)
    return db_expense


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
async def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_owned_or_404(db, Expense, expense_id, current_user, "Expense")


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
async def update_expense(
    expense_id: int,
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_expense = get_owned_or_404(db, Expense, expense_id, current_user, "Expense")
    category_id = resolve_expense_category(db, expense.category_ref(), current_user)

    db_expense.amount = expense.amount
    db_expense.description = expense.description
    db_expense.date = expense.date
    db_expense.category_id = category_id
    db_expense.subcategory_id = check_subcategory(
        db, expense.subcategory_id, category_id, current_user
    )
    db_expense.merchant = expense.merchant or None
    db_expense.notes = expense.notes or None
    db.commit()
    db.refresh(db_expense)
    return db_expense


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expense = get_owned_or_404(db, Expense, expense_id, current_user, "Expense")
    db.delete(expense)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Incomes


@router.get("/incomes", response_model=List[IncomeOut])
async def get_incomes(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    return (
        db.query(Income)
        .filter(Income.user_id == current_user.id)
        .order_by(Income.date.desc(), Income.id.desc())
        .all()
    )


@router.post("/incomes", response_model=IncomeOut, status_code=status.HTTP_201_CREATED)
async def create_income(
    income: IncomeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_income = Income(
        user_id=current_user.id,
        amount=income.amount,
        description=income.description,
        date=income.date,
        category_id=resolve_income_category(db, income.category_ref(), current_user),
        source=income.source or None,
        notes=income.notes or None,
    )
    db.add(db_income)
    db.commit()
    db.refresh(db_income)
    return db_income


@router.get("/incomes/{income_id}", response_model=IncomeOut)
async def get_income(
    income_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_owned_or_404(db, Income, income_id, current_user, "Income")


@router.patch("/incomes/{income_id}", response_model=IncomeOut)
async def update_income(
    income_id: int,
    income: IncomeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_income = get_owned_or_404(db, Income, income_id, current_user, "Income")
    db_income.amount = income.amount
    db_income.description = income.description
    db_income.date = income.date
    db_income.category_id = resolve_income_category(db, income.category_ref(), current_user)
    db_income.source = income.source or None
    db_income.notes = income.notes or None
    db.commit()
    db.refresh(db_income)
    return db_income


@router.delete("/incomes/{income_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_income(
    income_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    income = get_owned_or_404(db, Income, income_id, current_user, "Income")
    db.delete(income)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Reports


@router.get("/reports/summary", response_model=DashboardSummary)
async def get_summary(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    expenses = ExpenseRepository(db).list_by_user(current_user.id)
    incomes = db.query(Income).filter(Income.user_id == current_user.id).all()
    return reports.dashboard_summary(
        expenses, incomes, _category_names(db, ExpenseCategory, current_user)
    )


@router.get("/reports/monthly", response_model=List[MonthlyTotal])
async def get_monthly_totals(
    months: int = Query(default=6, ge=1, le=36),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses = ExpenseRepository(db).list_by_user(current_user.id)
    return reports.monthly_totals(expenses, months)


@router.get("/reports/categories", response_model=List[CategoryTotal])
async def get_category_totals(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expenses = ExpenseRepository(db).list_by_user(current_user.id)
    return reports.category_totals(
        expenses,
        _category_names(db, ExpenseCategory, current_user),
        start_date,
        end_date,
    )


@router.get("/analytics/category-trends", response_model=List[CategoryTrend])
async def get_category_trends(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return reports.category_trends(db, current_user.id, start_date, end_date)


# Exports


@router.get("/export/expenses")
async def export_expenses(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    content = reports.expenses_csv(
        ExpenseRepository(db).list_by_user(current_user.id),
        _category_names(db, ExpenseCategory, current_user),
        current_user.currency,
    )
    return _csv_response(content, "expenses")


@router.get("/export/incomes")
async def export_incomes(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    incomes = (
        db.query(Income)
        .filter(Income.user_id == current_user.id)
        .order_by(Income.date.desc())
        .all()
    )
    content = reports.incomes_csv(
        incomes,
        _category_names(db, IncomeCategory, current_user),
        current_user.currency,
    )
    return _csv_response(content, "incomes")


@router.get("/export/budgets")
async def export_budgets(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user)
):
    content = reports.budgets_csv(
        BudgetRepository(db).list_by_user(current_user.id), current_user.currency
    )
    return _csv_response(content, "budgets")


@router.get("/export-report")
async def export_financial_report(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Exports financial report as CSV containing:
    - All expenses
    - Category-wise totals
    """
    content = reports.financial_report_csv(
        ExpenseRepository(db).list_by_user(current_user.id),
        _category_names(db, ExpenseCategory, current_user),
    )
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={current_user.username}_financial_report.csv"
        },
    )
