from __future__ import annotations

from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from quotegen.core.auth import issue_token
from quotegen.core.security import decode_access_token, hash_password, utcnow, verify_password
from quotegen.models.entities import ActivityLog, User


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _registration(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "firstName": "Grace",
        "lastName": "Hopper",
        "email": "Grace@Example.com",
        "password": "cobol1959",
        "confirmPassword": "cobol1959",
        "terms": True,
    }
    payload.update(overrides)
    return payload


def test_password_hash_round_trip() -> None:
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret!", None)


def test_register_creates_user_and_audit_entry(client: TestClient, db_session: Session) -> None:
    response = client.post("/api/v1/auth/register", json=_registration())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "grace@example.com"
    assert body["user"]["role"] == "User"
    assert decode_access_token(body["token"])["email"] == "grace@example.com"

    user = db_session.scalar(select(User).where(User.email == "grace@example.com"))
    assert user is not None
    assert user.password_hash != "cobol1959"

    audit = db_session.scalars(select(ActivityLog).where(ActivityLog.entity_name == "User")).all()
    assert len(audit) == 1
    assert audit[0].action_type == "Create"
    assert audit[0].record_id == user.id
    assert audit[0].user_id == user.id


def test_register_requires_terms(client: TestClient) -> None:
    response = client.post("/api/v1/auth/register", json=_registration(terms=False))

    assert response.status_code == 400


def test_register_rejects_short_or_mismatched_password(client: TestClient) -> None:
    short = client.post("/api/v1/auth/register", json=_registration(password="abc", confirmPassword="abc"))
    mismatch = client.post("/api/v1/auth/register", json=_registration(confirmPassword="different"))

    assert short.status_code == 400
    assert mismatch.status_code == 400


def test_register_rejects_duplicate_email(client: TestClient, regular_user: User) -> None:
    response = client.post("/api/v1/auth/register", json=_registration(email="USER@test.local"))

    assert response.status_code == 400


def test_login_success_and_remember_me_extends_expiry(client: TestClient, regular_user: User) -> None:
    short = client.post("/api/v1/auth/login", json={"email": "user@test.local", "password": "secret123"})
    long = client.post(
        "/api/v1/auth/login",
        json={"email": "user@test.local", "password": "secret123", "rememberMe": True},
    )

    assert short.status_code == 200
    assert long.status_code == 200
    short_expiry = datetime.fromisoformat(short.json()["expires_at"])
    long_expiry = datetime.fromisoformat(long.json()["expires_at"])
    assert short_expiry - utcnow() < timedelta(days=2)
    assert long_expiry - utcnow() > timedelta(days=29)


def test_login_with_bad_credentials_is_unauthorized(client: TestClient, regular_user: User) -> None:
    wrong_password = client.post("/api/v1/auth/login", json={"email": "user@test.local", "password": "nope"})
    unknown_user = client.post("/api/v1/auth/login", json={"email": "ghost@test.local", "password": "secret123"})

    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401


def test_me_returns_current_user(client: TestClient, regular_user: User) -> None:
    response = client.get("/api/v1/auth/me", headers=_headers(regular_user))

    assert response.status_code == 200
    assert response.json()["email"] == "user@test.local"


def test_register_admin_requires_admin_role(client: TestClient, regular_user: User) -> None:
    response = client.post(
        "/api/v1/auth/register-admin",
        headers=_headers(regular_user),
        json={"firstName": "New", "lastName": "Person", "email": "new@test.local", "password": "secret123"},
    )

    assert response.status_code == 403


def test_register_admin_creates_user_with_role(
    client: TestClient,
    db_session: Session,
    admin_user: User,
) -> None:
    response = client.post(
        "/api/v1/auth/register-admin",
        headers=_headers(admin_user),
        json={
            "firstName": "New",
            "lastName": "Admin",
            "email": "second.admin@test.local",
            "password": "secret123",
            "role": "Admin",
        },
    )

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "Admin"
    audit = db_session.scalars(select(ActivityLog).where(ActivityLog.action_type == "Created")).all()
    assert len(audit) == 1
    assert audit[0].performed_by == "admin@test.local"


def test_register_admin_rejects_unknown_role(client: TestClient, admin_user: User) -> None:
    response = client.post(
        "/api/v1/auth/register-admin",
        headers=_headers(admin_user),
        json={
            "firstName": "New",
            "lastName": "Person",
            "email": "new@test.local",
            "password": "secret123",
            "role": "Owner",
        },
    )

    assert response.status_code == 400
