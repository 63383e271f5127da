from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timedelta
import logging
import uvicorn

import config
from router import router
from auth import auth_router, hash_password
from budgets import budget_router
from admin import admin_router
from database import SessionLocal, User, Expense, ExpenseCategory, init_db

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def seed_demo_accounts():
    """Create the ``demo`` and ``admin`` accounts with a few sample expenses."""
    with SessionLocal() as db:
        if not db.query(User).filter(User.username == "demo").first():
            demo = User(
                username="demo",
                password=hash_password("password"),
                name="Demo User",
                email="demo@example.com",
                currency=config.DEFAULT_CURRENCY,
                role="user",
            )
            db.add(demo)
            db.flush()

            categories = {
                c.name: c.id
                for c in db.query(ExpenseCategory).filter(ExpenseCategory.is_system.is_(True))
            }
            now = datetime.now()
            samples = [
                (25.99, "Groceries", 1, "Food", "Supermarket", "Weekly shopping"),
                (45.50, "Gas", 4, "Transportation", "Gas Station", None),
                (12.99, "Netflix subscription", 9, "Entertainment", "Netflix", "Monthly subscription"),
            ]
            for amount, description, days_ago, category, merchant, notes in samples:
                db.add(
                    Expense(
                        user_id=demo.id,
                        amount=amount,
                        description=description,
                        date=now - timedelta(days=days_ago),
                        category_id=categories[category],
                        merchant=merchant,
                        notes=notes,
                    )
                )

        if not db.query(User).filter(User.username == "admin").first():
            db.add(
                User(
                    username="admin",
                    password=hash_password("password"),
                    name="Admin User",
                    email="admin@example.com",
                    currency=config.DEFAULT_CURRENCY,
                    role="admin",
                )
            )
        db.commit()
    logger.info("Demo accounts ready")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if config.SEED_DEMO_DATA:
        seed_demo_accounts()
    yield


app = FastAPI(title="ExpenseTrack API", lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(router, prefix="/api", tags=["expenses"])
app.include_router(budget_router, prefix="/api", tags=["budgets"])
app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
app.include_router(auth_router, prefix="/auth", tags=["authentication"])


@app.get("/")
def home():
    return {"message": "Welcome to ExpenseTrack API"}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
