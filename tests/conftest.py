import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, User, get_db, seed_default_categories
from main import app


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with factory() as db:
        seed_default_categories(db)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # not used as a context manager so the lifespan (and the real database) is skipped
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username, email=None):
    response = client.post(
        "/auth/register",
        json={
            "username": username,
            "password": "secret123",
            "name": username.title(),
            "email": email or f"{username}@example.com",
        },
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def alice(client):
    return register(client, "alice")


@pytest.fixture
def bob(client):
    return register(client, "bob")


@pytest.fixture
def admin(client, session_factory):
    headers = register(client, "root")
    with session_factory() as db:
        user = db.query(User).filter(User.username == "root").one()
        user.role = "admin"
        db.commit()
    return headers


def category_id(client, headers, name):
    categories = client.get("/api/expense-categories", headers=headers).json()
    return next(c["id"] for c in categories if c["name"] == name)
