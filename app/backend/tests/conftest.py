from __future__ import annotations

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quotegen.core.security import hash_password, utcnow
from quotegen.db.base import Base
from quotegen.db.dependencies import get_db_session
import quotegen.models  # noqa: F401
from quotegen.main import create_app
from quotegen.models.entities import User

DEFAULT_PASSWORD = "secret123"


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_user(
    db: Session,
    *,
    email: str,
    role: str = "User",
    first_name: str = "Test",
    last_name: str = "User",
    password: str = DEFAULT_PASSWORD,
) -> User:
    now = utcnow()
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email.lower(),
        role=role,
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def factory(**kwargs) -> User:
        return _create_user(db_session, **kwargs)

    return factory


@pytest.fixture()
def admin_user(make_user: Callable[..., User]) -> User:
    return make_user(email="admin@test.local", role="Admin", first_name="Ada", last_name="Admin")


@pytest.fixture()
def regular_user(make_user: Callable[..., User]) -> User:
    return make_user(email="user@test.local", first_name="Uma", last_name="User")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user(email="other@test.local", first_name="Olly", last_name="Other")
