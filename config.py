"""Configuration for the ExpenseTrack API.

All values can be overridden through environment variables.
"""

import os

DATABASE_URL = os.getenv("EXPENSETRACK_DATABASE_URL", "sqlite:///./expensetrack.db")

SECRET_KEY = os.getenv("EXPENSETRACK_SECRET_KEY", "change-me-in-production")
ALGORITHM = os.getenv("EXPENSETRACK_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("EXPENSETRACK_TOKEN_EXPIRE_MINUTES", "30"))

DEFAULT_CURRENCY = os.getenv("EXPENSETRACK_DEFAULT_CURRENCY", "USD")
LOG_LEVEL = os.getenv("EXPENSETRACK_LOG_LEVEL", "INFO").upper()

# Creates the demo and admin accounts on start-up
SEED_DEMO_DATA = os.getenv("EXPENSETRACK_SEED_DEMO", "").lower() in ("1", "true", "yes")

DEFAULT_EXPENSE_CATEGORIES = [
    ("Food", "Groceries, restaurants and snacks"),
    ("Transportation", "Fuel, transit and ride sharing"),
    ("Housing", "Rent, mortgage and maintenance"),
    ("Utilities", "Electricity, water, internet and phone"),
    ("Entertainment", "Streaming, events and hobbies"),
    ("Health", "Medical, pharmacy and insurance"),
    ("Shopping", "Clothing and household items"),
    ("Other", "Anything else"),
]

DEFAULT_INCOME_CATEGORIES = [
    ("Salary", "Regular employment income"),
    ("Freelance", "Contract and side work"),
    ("Investments", "Dividends, interest and gains"),
    ("Other", "Anything else"),
]
