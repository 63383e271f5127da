"""Lookup helpers shared by the routers: ownership checks and category resolution."""

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
import logging

from database import ExpenseCategory, ExpenseSubcategory, IncomeCategory, User
from schemas import CategoryById, CategoryByName, CategoryRef

logger = logging.getLogger(__name__)


def get_owned_or_404(db: Session, model, record_id: int, user: User, label: str):
    """Fetch ``model`` by id, 404 if it is missing and 403 if another user owns it."""
    record = db.get(model, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    if record.user_id != user.id:
        raise HTTPException(
            status_code=403,
            detail=f"You don't have permission to access this {label.lower()}",
        )
    return record


def get_editable_category_or_404(db: Session, model, category_id: int, user: User):
    category = db.get(model, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    if category.is_system or category.user_id != user.id:
        raise HTTPException(
            status_code=403, detail="You don't have permission to modify this category"
        )
    return category


def visible_categories(db: Session, model, user: User):
    """System categories plus the ones ``user`` created."""
    return db.query(model).filter(
        or_(model.is_system.is_(True), model.user_id == user.id)
    )


def _resolve_category(db: Session, model, ref: CategoryRef, user: User) -> int:
    if isinstance(ref, CategoryById):
        category = visible_categories(db, model, user).filter(model.id == ref.id).first()
        if category is None:
            raise HTTPException(status_code=400, detail="Invalid category")
        return category.id

    if isinstance(ref, CategoryByName):
        category = (
            visible_categories(db, model, user)
            .filter(func.lower(model.name) == ref.name.lower())
            .order_by(model.is_system.desc(), model.id)
            .first()
        )
        if category is None:
            category = model(user_id=user.id, name=ref.name, is_system=False)
            db.add(category)
            db.flush()
            logger.info("Created category %r for user %s from legacy name", ref.name, user.id)
        return category.id

    raise TypeError(f"Unsupported category reference: {ref!r}")


def resolve_expense_category(db: Session, ref: CategoryRef, user: User) -> int:
    return _resolve_category(db, ExpenseCategory, ref, user)


def resolve_income_category(db: Session, ref: CategoryRef, user: User) -> int:
    return _resolve_category(db, IncomeCategory, ref, user)


def check_subcategory(db: Session, subcategory_id, category_id: int, user: User):
    """Reject a subcategory that is missing, foreign, or under another category."""
    if subcategory_id is None:
        return None
    subcategory = db.get(ExpenseSubcategory, subcategory_id)
    if (
        subcategory is None
        or subcategory.user_id != user.id
        or subcategory.category_id != category_id
    ):
        raise HTTPException(status_code=400, detail="Invalid subcategory")
    return subcategory.id
