from __future__ import annotations

from datetime import datetime

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from quotegen.core.auth import build_user_context, issue_token
from quotegen.models.entities import ActivityLog, User
from quotegen.services.activity_logger import ActivityLogger


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _log(
    db: Session,
    *,
    entity: str,
    record_id: int,
    action: str,
    timestamp: datetime,
    user: User | None = None,
    performed_by: str | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        entity_name=entity,
        record_id=record_id,
        action_type=action,
        description=f"{action} {entity}",
        performed_by=performed_by or (user.email if user else "System"),
        performed_by_email=user.email if user else None,
        performed_by_role=user.role if user else None,
        user_id=user.id if user else None,
        timestamp=timestamp,
    )
    db.add(entry)
    db.commit()
    return entry


def test_logger_snapshots_context_identity(db_session: Session, regular_user: User) -> None:
    entry = ActivityLogger(db_session).log("Client", 7, "Update", context=build_user_context(regular_user))

    assert entry is not None
    assert entry.description == "Update Client"
    assert entry.performed_by == "user@test.local"
    assert entry.performed_by_role == "User"
    assert entry.user_id == regular_user.id


def test_logger_without_context_records_system(db_session: Session) -> None:
    entry = ActivityLogger(db_session).log("Item", 3, "Delete", "Nightly cleanup")

    assert entry is not None
    assert entry.performed_by == "System"
    assert entry.user_id is None


def test_logger_swallows_persistence_failures(db_session: Session) -> None:
    # entity_name is NOT NULL, so the insert fails.
    entry = ActivityLogger(db_session).log(None, 1, "Create")  # type: ignore[arg-type]

    assert entry is None
    assert db_session.scalars(select(ActivityLog)).all() == []


def test_non_admin_does_not_see_admin_entries(
    client: TestClient,
    db_session: Session,
    regular_user: User,
    admin_user: User,
) -> None:
    _log(db_session, entity="Client", record_id=1, action="Create", timestamp=datetime(2024, 1, 1), user=regular_user)
    _log(db_session, entity="Client", record_id=2, action="Create", timestamp=datetime(2024, 1, 2), user=admin_user)
    _log(
        db_session,
        entity="Item",
        record_id=3,
        action="Delete",
        timestamp=datetime(2024, 1, 3),
        performed_by="admin@legacy.local",
    )
    _log(db_session, entity="Item", record_id=4, action="Update", timestamp=datetime(2024, 1, 4))

    as_user = client.get("/api/v1/activity-logs", headers=_headers(regular_user))
    as_admin = client.get("/api/v1/activity-logs", headers=_headers(admin_user))

    assert [row["record_id"] for row in as_user.json()] == [4, 1]
    assert [row["record_id"] for row in as_admin.json()] == [4, 3, 2, 1]


def test_my_recent_returns_only_callers_entries(
    client: TestClient,
    db_session: Session,
    regular_user: User,
    other_user: User,
) -> None:
    for day in range(1, 8):
        _log(db_session, entity="Item", record_id=day, action="Update", timestamp=datetime(2024, 2, day), user=regular_user)
    _log(db_session, entity="Item", record_id=99, action="Update", timestamp=datetime(2024, 2, 9), user=other_user)

    default_limit = client.get("/api/v1/activity-logs/my-recent", headers=_headers(regular_user))
    fallback = client.get("/api/v1/activity-logs/my-recent", headers=_headers(regular_user), params={"limit": 0})

    assert [row["record_id"] for row in default_limit.json()] == [7, 6, 5, 4, 3]
    assert len(fallback.json()) == 5


def test_filter_by_window_action_synonyms_and_entity(
    client: TestClient,
    db_session: Session,
    admin_user: User,
) -> None:
    _log(db_session, entity="Client", record_id=1, action="Create", timestamp=datetime(2024, 1, 10, 9), user=admin_user)
    _log(db_session, entity="User", record_id=2, action="Created", timestamp=datetime(2024, 1, 31, 23, 59, 59), user=admin_user)
    _log(db_session, entity="Client", record_id=3, action="Update", timestamp=datetime(2024, 1, 15), user=admin_user)
    _log(db_session, entity="Client", record_id=4, action="Create", timestamp=datetime(2024, 2, 1), user=admin_user)

    created = client.post(
        "/api/v1/activity-logs/filter",
        headers=_headers(admin_user),
        json={"startDate": "2024-01-01", "endDate": "2024-01-31", "actionType": "created"},
    )
    clients_only = client.post(
        "/api/v1/activity-logs/filter",
        headers=_headers(admin_user),
        json={"actionType": "all", "entityName": "client"},
    )

    assert created.status_code == 200
    assert [row["record_id"] for row in created.json()] == [2, 1]
    assert [row["record_id"] for row in clients_only.json()] == [4, 3, 1]


def test_record_history(client: TestClient, db_session: Session, admin_user: User) -> None:
    _log(db_session, entity="Quotation", record_id=5, action="Create", timestamp=datetime(2024, 3, 1), user=admin_user)
    _log(db_session, entity="Quotation", record_id=5, action="Update", timestamp=datetime(2024, 3, 2), user=admin_user)
    _log(db_session, entity="Quotation", record_id=6, action="Create", timestamp=datetime(2024, 3, 3), user=admin_user)

    response = client.get("/api/v1/activity-logs/Quotation/5", headers=_headers(admin_user))

    assert [row["action_type"] for row in response.json()] == ["Update", "Create"]
