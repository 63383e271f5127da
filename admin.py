from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from typing import List
import logging

from database import (
    get_db,
    User,
    Expense,
    Income,
    Budget,
    ExpenseCategory,
    ExpenseSubcategory,
    IncomeCategory,
)
from schemas import UserOut, RoleUpdate, ExpenseOut, BudgetOut
from auth import require_admin

logger = logging.getLogger(__name__)

admin_router = APIRouter()


@admin_router.get("/users", response_model=List[UserOut])
async def list_users(
    db: Session = Depends(get_db), admin: User = Depends(require_admin)
):
    return db.query(User).order_by(User.id).all()


@admin_router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # SQLite does not enforce ON DELETE CASCADE unless foreign keys are enabled
    db.query(Expense).filter(Expense.user_id == user_id).delete()
    db.query(Income).filter(Income.user_id == user_id).delete()
    for budget in db.query(Budget).filter(Budget.user_id == user_id).all():
        db.delete(budget)
    db.flush()
    db.query(ExpenseSubcategory).filter(ExpenseSubcategory.user_id == user_id).delete()
    db.query(ExpenseCategory).filter(ExpenseCategory.user_id == user_id).delete()
    db.query(IncomeCategory).filter(IncomeCategory.user_id == user_id).delete()
    username = user.username
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s", admin.username, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: int,
    role_update: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user.role = role_update.role
    db.commit()
    logger.info("Admin %s set role of %s to %s", admin.username, user.username, user.role)
    return {"message": "User role updated"}


@admin_router.get("/expenses", response_model=List[ExpenseOut])
async def list_all_expenses(
    db: Session = Depends(get_db), admin: User = Depends(require_admin)
):
    return db.query(Expense).order_by(Expense.date.desc()).all()


@admin_router.get("/budgets", response_model=List[BudgetOut])
async def list_all_budgets(
    db: Session = Depends(get_db), admin: User = Depends(require_admin)
):
    return db.query(Budget).order_by(Budget.start_date.desc()).all()
