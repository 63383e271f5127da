from sqlalchemy.orm import Session
from typing import List, Optional

from database import Budget, BudgetAllocation, Expense


class ExpenseRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_by_user(self, user_id: int) -> List[Expense]:
        """All expenses of ``user_id``, newest first, regardless of date range."""
        return (
            self.db.query(Expense)
            .filter(Expense.user_id == user_id)
            .order_by(Expense.date.desc(), Expense.id.desc())
            .all()
        )

    def get(self, expense_id: int) -> Optional[Expense]:
        return self.db.get(Expense, expense_id)


class BudgetRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, budget_id: int) -> Optional[Budget]:
        return self.db.get(Budget, budget_id)

    def list_by_user(self, user_id: int) -> List[Budget]:
        return (
            self.db.query(Budget)
            .filter(Budget.user_id == user_id)
            .order_by(Budget.start_date.desc(), Budget.id.desc())
            .all()
        )

    def list_allocations(self, budget_id: int) -> List[BudgetAllocation]:
        return (
            self.db.query(BudgetAllocation)
            .filter(BudgetAllocation.budget_id == budget_id)
            .order_by(BudgetAllocation.id)
            .all()
        )
