from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    ForeignKey,
    Boolean,
    Text,
    func,
)
from sqlalchemy.orm import sessionmaker, declarative_base, relationship
import logging

import config

logger = logging.getLogger(__name__)

connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    currency = Column(String, nullable=False, default=config.DEFAULT_CURRENCY)
    role = Column(String, nullable=False, default="user")


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # NULL for system categories shared by every user
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_system = Column(Boolean, nullable=False, default=False)

    subcategories = relationship(
        "ExpenseSubcategory", back_populates="category", cascade="all, delete-orphan"
    )


class ExpenseSubcategory(Base):
    __tablename__ = "expense_subcategories"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    category_id = Column(
        Integer, ForeignKey("expense_categories.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)

    category = relationship("ExpenseCategory", back_populates="subcategories")


class IncomeCategory(Base):
    __tablename__ = "income_categories"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_system = Column(Boolean, nullable=False, default=False)


class Expense(Base):
    __tablename__ = "expenses"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(String, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=False)
    subcategory_id = Column(
        Integer, ForeignKey("expense_subcategories.id", ondelete="SET NULL"), nullable=True
    )
    merchant = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    category = relationship("ExpenseCategory")


class Income(Base):
    __tablename__ = "incomes"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(String, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("income_categories.id"), nullable=False)
    source = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    category = relationship("IncomeCategory")


class Budget(Base):
    __tablename__ = "budgets"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    period = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    allocations = relationship(
        "BudgetAllocation", back_populates="budget", cascade="all, delete-orphan"
    )


class BudgetAllocation(Base):
    __tablename__ = "budget_allocations"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    budget_id = Column(Integer, ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=False)
    subcategory_id = Column(
        Integer, ForeignKey("expense_subcategories.id", ondelete="SET NULL"), nullable=True
    )
    amount = Column(Float, nullable=False)

    budget = relationship("Budget", back_populates="allocations")


def seed_default_categories(db):
    """Insert the shared system categories once."""
    if not db.query(ExpenseCategory).filter(ExpenseCategory.is_system.is_(True)).first():
        for name, description in config.DEFAULT_EXPENSE_CATEGORIES:
            db.add(ExpenseCategory(name=name, description=description, is_system=True))
    if not db.query(IncomeCategory).filter(IncomeCategory.is_system.is_(True)).first():
        for name, description in config.DEFAULT_INCOME_CATEGORIES:
            db.add(IncomeCategory(name=name, description=description, is_system=True))
    db.commit()


def init_db():
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_default_categories(db)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
