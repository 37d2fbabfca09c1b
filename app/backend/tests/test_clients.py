from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from quotegen.core.auth import issue_token
from quotegen.models.entities import ActivityLog, ClientContact, User


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _create_client(client: TestClient, headers: dict[str, str], **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "client_name": "Acme Corp",
        "client_email": "billing@acme.test",
        "client_contact_number": "555-0101",
        "billing_city": "Springfield",
        "contacts": [
            {"first_name": "Wile", "last_name": "Coyote", "email": "wile@acme.test", "add_to_invoices": True},
        ],
    }
    payload.update(overrides)
    response = client.post("/api/v1/clients", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()


def test_next_id_is_formatted(client: TestClient, regular_user: User) -> None:
    response = client.get("/api/v1/clients/next-id", headers=_headers(regular_user))

    assert response.status_code == 200
    assert response.json()["next_id"] == 1
    assert response.json()["formatted_client_id"] == "CLT-000001"


def test_create_client_assigns_defaults_and_audits(
    client: TestClient,
    db_session: Session,
    regular_user: User,
) -> None:
    created = _create_client(client, _headers(regular_user))

    assert created["client_id_formatted"] == f"CLT-{created['id']:06d}"
    assert created["assigned_user"] == "user@test.local"
    assert created["is_active"] is True
    assert [contact["first_name"] for contact in created["contacts"]] == ["Wile"]

    audit = db_session.scalars(select(ActivityLog).where(ActivityLog.entity_name == "Client")).all()
    assert [(entry.action_type, entry.record_id) for entry in audit] == [("Create", created["id"])]
    assert audit[0].performed_by_email == "user@test.local"


def test_create_client_requires_name_and_email(client: TestClient, regular_user: User) -> None:
    response = client.post(
        "/api/v1/clients",
        headers=_headers(regular_user),
        json={"client_name": "  ", "client_email": "x@test.local"},
    )

    assert response.status_code == 400


def test_list_clients_filters_by_search_and_activity(client: TestClient, regular_user: User) -> None:
    headers = _headers(regular_user)
    _create_client(client, headers, client_name="Acme Corp", client_email="a@acme.test")
    _create_client(client, headers, client_name="Globex", client_email="g@globex.test", is_active=False)

    searched = client.get("/api/v1/clients", headers=headers, params={"filter": "glob"})
    active = client.get("/api/v1/clients", headers=headers, params={"is_active": "true"})
    everything = client.get("/api/v1/clients", headers=headers)

    assert [row["client_name"] for row in searched.json()] == ["Globex"]
    assert [row["client_name"] for row in active.json()] == ["Acme Corp"]
    assert [row["client_name"] for row in everything.json()] == ["Globex", "Acme Corp"]


def test_update_client_patches_fields_and_replaces_contacts(
    client: TestClient,
    db_session: Session,
    regular_user: User,
) -> None:
    headers = _headers(regular_user)
    created = _create_client(client, headers)

    response = client.put(
        f"/api/v1/clients/{created['id']}",
        headers=headers,
        json={
            "website": "https://acme.test",
            "contacts": [
                {"first_name": "Road", "last_name": "Runner"},
                {"first_name": "Marvin", "last_name": "Martian"},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["client_name"] == "Acme Corp"
    assert body["website"] == "https://acme.test"
    assert [contact["first_name"] for contact in body["contacts"]] == ["Road", "Marvin"]
    assert len(db_session.scalars(select(ClientContact)).all()) == 2


def test_get_missing_client_is_not_found(client: TestClient, regular_user: User) -> None:
    response = client.get("/api/v1/clients/999", headers=_headers(regular_user))

    assert response.status_code == 404


def test_delete_client_removes_contacts(client: TestClient, db_session: Session, regular_user: User) -> None:
    headers = _headers(regular_user)
    created = _create_client(client, headers)

    response = client.delete(f"/api/v1/clients/{created['id']}", headers=headers)

    assert response.status_code == 204
    assert client.get(f"/api/v1/clients/{created['id']}", headers=headers).status_code == 404
    assert db_session.scalars(select(ClientContact)).all() == []


def test_bulk_delete_clients(client: TestClient, db_session: Session, regular_user: User) -> None:
    headers = _headers(regular_user)
    first = _create_client(client, headers, client_name="One", client_email="one@test.local")
    second = _create_client(client, headers, client_name="Two", client_email="two@test.local")

    empty = client.request("DELETE", "/api/v1/clients/bulk", headers=headers, json=[])
    missing = client.request("DELETE", "/api/v1/clients/bulk", headers=headers, json=[998, 999])
    deleted = client.request("DELETE", "/api/v1/clients/bulk", headers=headers, json=[first["id"], second["id"]])

    assert empty.status_code == 400
    assert missing.status_code == 404
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] == 2
    deletes = db_session.scalars(select(ActivityLog).where(ActivityLog.action_type == "Delete")).all()
    assert sorted(entry.record_id for entry in deletes) == sorted([first["id"], second["id"]])
