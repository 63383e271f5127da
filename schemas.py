from pydantic import BaseModel, Field, constr, model_validator
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Literal, Optional, Union

BudgetPeriod = Literal["weekly", "monthly", "quarterly", "biannual", "annual", "custom"]
Role = Literal["admin", "user"]


class UserBase(BaseModel):
    username: constr(min_length=3, max_length=50)


class UserCreate(UserBase):
    # bcrypt only hashes the first 72 bytes
    password: constr(min_length=6, max_length=72)
    name: constr(min_length=1, max_length=100)
    email: constr(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserLogin(UserBase):
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    id: int
    username: str
    name: str
    email: str
    currency: str
    role: str

    class Config:
        from_attributes = True


class UserSettings(BaseModel):
    currency: constr(min_length=3, max_length=3, to_upper=True)


class RoleUpdate(BaseModel):
    role: Role


# Categories


class CategoryCreate(BaseModel):
    name: constr(min_length=1, max_length=50)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[constr(min_length=1, max_length=50)] = None
    description: Optional[str] = None


class CategoryOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    is_system: bool

    class Config:
        from_attributes = True


class SubcategoryOut(BaseModel):
    id: int
    category_id: int
    user_id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


@dataclass(frozen=True)
class CategoryById:
    id: int


@dataclass(frozen=True)
class CategoryByName:
    name: str


CategoryRef = Union[CategoryById, CategoryByName]


class CategoryRefMixin(BaseModel):
    """Accepts either ``category_id`` or the legacy free-text ``category``."""

    category_id: Optional[int] = None
    category: Optional[constr(strip_whitespace=True, min_length=1, max_length=50)] = None

    @model_validator(mode="after")
    def check_category_given(self):
        if self.category_id is None and self.category is None:
            raise ValueError("Either category_id or category is required")
        return self

    def category_ref(self) -> CategoryRef:
        if self.category_id is not None:
            return CategoryById(self.category_id)
        return CategoryByName(self.category)


# Expenses and incomes


class ExpenseCreate(CategoryRefMixin):
    amount: float = Field(..., ge=0)
    description: constr(min_length=1, max_length=200)
    date: datetime
    subcategory_id: Optional[int] = None
    merchant: Optional[str] = None
    notes: Optional[str] = None


class ExpenseOut(BaseModel):
    id: int
    user_id: int
    amount: float
    description: str
    date: datetime
    category_id: int
    subcategory_id: Optional[int] = None
    merchant: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class IncomeCreate(CategoryRefMixin):
    amount: float = Field(..., ge=0)
    description: constr(min_length=1, max_length=200)
    date: datetime
    source: Optional[str] = None
    notes: Optional[str] = None


class IncomeOut(BaseModel):
    id: int
    user_id: int
    amount: float
    description: str
    date: datetime
    category_id: int
    source: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Budgets


class BudgetCreate(BaseModel):
    name: constr(min_length=1, max_length=100)
    period: BudgetPeriod = "monthly"
    start_date: date
    end_date: Optional[date] = None
    amount: float = Field(..., ge=0)
    notes: Optional[str] = None


class BudgetUpdate(BaseModel):
    name: Optional[constr(min_length=1, max_length=100)] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    amount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class BudgetOut(BaseModel):
    id: int
    user_id: int
    name: str
    period: str
    start_date: date
    end_date: date
    amount: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class BudgetSummary(BudgetOut):
    category_count: int = 0
    allocated_amount: float = 0.0
    spent_amount: float = 0.0


class AllocationCreate(BaseModel):
    category_id: int
    subcategory_id: Optional[int] = None
    amount: float = Field(..., ge=0)


class AllocationUpdate(BaseModel):
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    amount: Optional[float] = Field(None, ge=0)


class AllocationOut(BaseModel):
    id: int
    budget_id: int
    category_id: int
    subcategory_id: Optional[int] = None
    amount: float
    category_name: Optional[str] = None

    class Config:
        from_attributes = True


class CategoryPerformance(BaseModel):
    category_id: int
    allocated: float
    spent: float
    remaining: float

    class Config:
        from_attributes = True


class BudgetPerformance(BaseModel):
    allocated: float
    spent: float
    remaining: float
    categories: List[CategoryPerformance]

    class Config:
        from_attributes = True


# Reports


class CategoryTrend(BaseModel):
    category_id: int
    category: str
    month: str
    total: float

    class Config:
        from_attributes = True


class MonthlyTotal(BaseModel):
    month: str
    total: float


class CategoryTotal(BaseModel):
    category_id: int
    category: str
    total: float


class DashboardSummary(BaseModel):
    total_expenses: float
    total_income: float
    percent_change: float
    highest_category: Optional[str] = None
    recent_entries_count: int
