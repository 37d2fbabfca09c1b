from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from quotegen.core.auth import issue_token
from quotegen.models.entities import ActivityLog, User


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _create_item(client: TestClient, headers: dict[str, str], **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "title": "Widget",
        "description": "Standard widget",
        "price": "1250.50",
        "quantity": 3,
    }
    payload.update(overrides)
    response = client.post("/api/v1/items", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_item_formats_price(client: TestClient, regular_user: User) -> None:
    created = _create_item(client, _headers(regular_user))

    assert created["price"] == "$1,250.50"
    assert created["price_value"] == "1250.50"
    assert created["quantity"] == 3


def test_create_item_validation(client: TestClient, regular_user: User) -> None:
    headers = _headers(regular_user)

    no_title = client.post("/api/v1/items", headers=headers, json={"title": " ", "price": "1", "quantity": 1})
    zero_price = client.post("/api/v1/items", headers=headers, json={"title": "A", "price": "0", "quantity": 1})
    zero_qty = client.post("/api/v1/items", headers=headers, json={"title": "A", "price": "1", "quantity": 0})

    assert no_title.status_code == 400
    assert zero_price.status_code == 400
    assert zero_qty.status_code == 400


def test_update_item_ignores_blank_and_non_positive_values(client: TestClient, regular_user: User) -> None:
    headers = _headers(regular_user)
    created = _create_item(client, headers)

    response = client.put(
        f"/api/v1/items/{created['id']}",
        headers=headers,
        json={"title": "", "price": "-5", "quantity": 0, "description": "Improved widget"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Widget"
    assert body["price_value"] == "1250.50"
    assert body["quantity"] == 3
    assert body["description"] == "Improved widget"


def test_list_items_newest_first_with_search(client: TestClient, regular_user: User) -> None:
    headers = _headers(regular_user)
    _create_item(client, headers, title="Bolt")
    _create_item(client, headers, title="Nut")

    everything = client.get("/api/v1/items", headers=headers)
    searched = client.get("/api/v1/items", headers=headers, params={"filter": "bol"})

    assert [row["title"] for row in everything.json()] == ["Nut", "Bolt"]
    assert [row["title"] for row in searched.json()] == ["Bolt"]


def test_delete_and_bulk_delete_items(client: TestClient, db_session: Session, regular_user: User) -> None:
    headers = _headers(regular_user)
    first = _create_item(client, headers, title="One")
    second = _create_item(client, headers, title="Two")
    third = _create_item(client, headers, title="Three")

    single = client.delete(f"/api/v1/items/{first['id']}", headers=headers)
    bulk = client.request("DELETE", "/api/v1/items/bulk", headers=headers, json=[second["id"], third["id"]])

    assert single.status_code == 204
    assert bulk.status_code == 200
    assert "2 item(s)" in bulk.json()["message"]
    assert client.get("/api/v1/items", headers=headers).json() == []
    deletes = db_session.scalars(
        select(ActivityLog).where(ActivityLog.entity_name == "Item", ActivityLog.action_type == "Delete")
    ).all()
    assert len(deletes) == 3
