from __future__ import annotations

import os
import pathlib
import sys
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[3]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("FINFUSION_DATABASE_URL", "sqlite://")
os.environ.setdefault("FINFUSION_BCRYPT_ROUNDS", "4")

import finfusion.api.models  # noqa: E402,F401  # Ensure models are registered with metadata
from finfusion.api import auth, crud, database, models, schemas  # noqa: E402
from finfusion.api.database import Base  # noqa: E402
from finfusion.api.server import app  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    TestingSessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False, future=True)
    session: Session = TestingSessionLocal()
    crud.seed.seed_all(session)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[database.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session) -> Callable[..., models.User]:
    def _make_user(username: str = "alice", role: str = "USER", password: str = "secret123") -> models.User:
        user_in = schemas.RegisterRequest(
            email=f"{username}@example.com", username=username, password=password, name=username.title()
        )
        return crud.users.create_user(db_session, user_in, role=role)

    return _make_user


def bearer(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth.create_access_token(user.id)}"}


@pytest.fixture()
def user(make_user) -> models.User:
    return make_user("alice")


@pytest.fixture()
def auth_headers(user) -> dict[str, str]:
    return bearer(user)


@pytest.fixture()
def admin_headers(make_user) -> dict[str, str]:
    return bearer(make_user("root", role="ADMIN"))


@pytest.fixture()
def cash_account(db_session, user) -> models.Account:
    return db_session.scalars(select(models.Account).where(models.Account.user_id == user.id)).one()


def system_category(session: Session, name: str) -> models.Category:
    return session.scalars(
        select(models.Category).where(models.Category.is_system.is_(True), models.Category.name == name)
    ).one()


@pytest.fixture()
def food(db_session) -> models.Category:
    return system_category(db_session, "Food & Dining")


@pytest.fixture()
def salary(db_session) -> models.Category:
    return system_category(db_session, "Salary")


@pytest.fixture()
def headers_for() -> Callable[[models.User], dict[str, str]]:
    return bearer
