from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from quotegen.core.auth import issue_token
from quotegen.models.entities import ActivityLog, Client, Item, Quotation, User
from quotegen.services.report_service import (
    ColumnKind,
    ReportColumn,
    ReportFilters,
    ReportOptions,
    ReportRequest,
    ReportService,
    ReportTable,
    parse_report_date,
    parse_sort_directive,
    resolve_action_names,
    resolve_date_window,
    resolve_report_definition,
    sort_table,
)


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _client(db: Session, *, name: str, created: datetime, is_active: bool = True) -> Client:
    row = Client(client_name=name, client_email=f"{name.lower()}@test.local", created_date=created, is_active=is_active)
    db.add(row)
    db.commit()
    return row


def _log(db: Session, *, entity: str, record_id: int, action: str, timestamp: datetime) -> None:
    db.add(
        ActivityLog(
            entity_name=entity,
            record_id=record_id,
            action_type=action,
            description=f"{action} {entity} {record_id}",
            performed_by="admin@test.local",
            timestamp=timestamp,
        )
    )
    db.commit()


@pytest.fixture()
def january_clients(db_session: Session) -> dict[str, Client]:
    early = _client(db_session, name="Early", created=datetime(2023, 12, 31, 23, 59, 59))
    first = _client(db_session, name="First", created=datetime(2024, 1, 1, 0, 0, 0))
    last = _client(db_session, name="Last", created=datetime(2024, 1, 31, 23, 59, 59))
    unlogged = _client(db_session, name="Unlogged", created=datetime(2024, 1, 15))
    updated_only = _client(db_session, name="UpdatedOnly", created=datetime(2024, 1, 20))
    late = _client(db_session, name="Late", created=datetime(2024, 2, 1))

    _log(db_session, entity="Client", record_id=early.id, action="Create", timestamp=early.created_date)
    _log(db_session, entity="Client", record_id=first.id, action="Create", timestamp=first.created_date)
    _log(db_session, entity="Client", record_id=last.id, action="Created", timestamp=last.created_date)
    _log(db_session, entity="Client", record_id=updated_only.id, action="Update", timestamp=datetime(2024, 1, 21))
    _log(db_session, entity="Client", record_id=late.id, action="Create", timestamp=late.created_date)
    return {
        "early": early,
        "first": first,
        "last": last,
        "unlogged": unlogged,
        "updated_only": updated_only,
        "late": late,
    }


def _request(report_type: str, **filters: object) -> ReportRequest:
    sort_by = filters.pop("sort_by", None)
    return ReportRequest(report_type=report_type, filters=ReportFilters(**filters), options=ReportOptions(sort_by=sort_by))


def _names(rows: list[dict[str, object]], column: str = "Client Name") -> list[object]:
    return [row[column] for row in rows]


def test_parse_report_date_accepts_common_formats_and_ignores_garbage() -> None:
    assert parse_report_date("2024-01-31") == datetime(2024, 1, 31)
    assert parse_report_date("2024-01-31T10:30:00Z") == datetime(2024, 1, 31, 10, 30)
    assert parse_report_date("01/31/2024") == datetime(2024, 1, 31)
    assert parse_report_date("not a date") is None
    assert parse_report_date("  ") is None


def test_bare_end_date_extends_to_end_of_day() -> None:
    start_at, end_at = resolve_date_window("2024-01-01", "2024-01-31")

    assert start_at == datetime(2024, 1, 1)
    assert end_at == datetime(2024, 1, 31, 23, 59, 59)


def test_action_names_treat_all_as_unfiltered_and_merge_spellings() -> None:
    assert resolve_action_names("all") is None
    assert resolve_action_names("ALL") is None
    assert resolve_action_names("") is None
    assert resolve_action_names("created") == resolve_action_names("Create") == {"create", "created"}
    assert resolve_action_names("Archived") == {"archived"}


def test_unknown_report_type_falls_back_to_activity() -> None:
    assert resolve_report_definition("Spaceships").name == "Activity"
    assert resolve_report_definition("quotes").name == "Quotes"


@pytest.mark.parametrize(
    ("sort_by", "expected"),
    [
        ("Created Date", ("Created Date", False)),
        ("Created Date DESC", ("Created Date", True)),
        ("client name:desc", ("Client Name", True)),
        ("Email|asc", ("Email", False)),
        ("Status d", ("Status", True)),
        ("Nonexistent", None),
    ],
)
def test_parse_sort_directive(sort_by: str, expected: tuple[str, bool] | None) -> None:
    columns = ["Client Name", "Email", "Phone", "Address", "Status", "Created Date"]

    assert parse_sort_directive(sort_by, columns) == expected


def test_january_created_clients_scenario(db_session: Session, january_clients: dict[str, Client]) -> None:
    rows = ReportService(db_session).generate_rows(
        _request("Clients", start_date="2024-01-01", end_date="2024-01-31", action_type="created")
    )

    assert _names(rows) == ["First", "Last"]
    assert list(rows[0]) == ["Client Name", "Email", "Phone", "Address", "Status", "Created Date"]
    assert rows[1]["Created Date"] == "2024-01-31 23:59:59"


def test_created_and_create_return_identical_rows(db_session: Session, january_clients: dict[str, Client]) -> None:
    service = ReportService(db_session)

    created = service.generate_rows(_request("Clients", action_type="created"))
    create = service.generate_rows(_request("Clients", action_type="Create"))

    assert created == create
    assert _names(created) == ["Early", "First", "Last", "Late"]


def test_all_action_type_returns_unfiltered_set(db_session: Session, january_clients: dict[str, Client]) -> None:
    service = ReportService(db_session)

    everything = service.generate_rows(_request("Clients", action_type="all"))
    unfiltered = service.generate_rows(_request("Clients"))

    assert everything == unfiltered
    assert len(everything) == 6


def test_activity_alias_fields_feed_the_action_filter(db_session: Session, january_clients: dict[str, Client]) -> None:
    service = ReportService(db_session)

    via_activity = service.generate_rows(_request("Clients", activity="update"))
    via_root = service.generate_rows(
        ReportRequest(report_type="Clients", action_type="update", filters=ReportFilters())
    )

    assert _names(via_activity) == ["UpdatedOnly"]
    assert via_root == via_activity


def test_invalid_dates_are_ignored(db_session: Session, january_clients: dict[str, Client]) -> None:
    rows = ReportService(db_session).generate_rows(_request("Clients", start_date="yesterday-ish", end_date="??"))

    assert len(rows) == 6


def test_identical_requests_are_idempotent(db_session: Session, january_clients: dict[str, Client]) -> None:
    service = ReportService(db_session)

    first = service.generate_rows(_request("Activity"))
    second = service.generate_rows(_request("Activity"))

    assert first == second
    assert [row["Record ID"] for row in first] == [
        january_clients[key].id for key in ("early", "first", "updated_only", "last", "late")
    ]


def test_sort_directive_orders_rows(db_session: Session, january_clients: dict[str, Client]) -> None:
    rows = ReportService(db_session).generate_rows(_request("Clients", sort_by="Client Name DESC"))

    assert _names(rows) == ["UpdatedOnly", "Unlogged", "Late", "Last", "First", "Early"]


def test_unknown_sort_column_leaves_default_order(db_session: Session, january_clients: dict[str, Client]) -> None:
    rows = ReportService(db_session).generate_rows(_request("Clients", sort_by="Shoe Size"))

    assert _names(rows) == ["Early", "First", "Last", "Unlogged", "UpdatedOnly", "Late"]


def test_sort_failure_leaves_rows_unsorted(caplog: pytest.LogCaptureFixture) -> None:
    rows = [[Decimal("2.00")], ["n/a"], [Decimal("1.00")]]
    table = ReportTable(title="Quotes", columns=[ReportColumn("Amount", ColumnKind.DECIMAL)], rows=list(rows))

    with caplog.at_level(logging.WARNING, logger="quotegen.services.report_service"):
        result = sort_table(table, "Amount DESC")

    assert result.rows == rows
    assert "Failed to apply sort: Amount DESC" in caplog.text


def test_delete_filter_includes_inactive_clients(db_session: Session) -> None:
    _client(db_session, name="Active", created=datetime(2024, 1, 1))
    inactive = _client(db_session, name="Dormant", created=datetime(2024, 1, 2), is_active=False)

    rows = ReportService(db_session).generate_rows(_request("Clients", action_type="delete"))

    assert _names(rows) == ["Dormant"]
    assert rows[0]["Status"] == "Inactive"
    assert inactive.id is not None


def test_quotes_report_filters_by_status_amount_and_search(db_session: Session) -> None:
    for client_name, status, total in (
        ("Acme", "Sent", "150.00"),
        ("Globex", "Accepted", "75.00"),
        ("Initech", "Sent", "20.00"),
    ):
        db_session.add(
            Quotation(
                quote_number=client_name[:4],
                client_name=client_name,
                quote_date=datetime(2024, 1, 5),
                valid_until=datetime(2024, 2, 5),
                status=status,
                total=Decimal(total),
            )
        )
    db_session.commit()
    service = ReportService(db_session)

    sent = service.generate_rows(_request("Quotes", status="sent"))
    bounded = service.generate_rows(_request("Quotes", min_amount=Decimal("50"), max_amount=Decimal("150")))
    searched = service.generate_rows(_request("Invoices", search="INIT"))

    assert _names(sent, "Client") == ["Acme", "Initech"]
    assert _names(bounded, "Client") == ["Acme", "Globex"]
    assert bounded[0]["Amount"] == Decimal("150.00")
    assert bounded[0]["Expiry Date"] == "2024-02-05"
    assert _names(searched, "Client") == ["Initech"]
    assert list(searched[0]) == ["Invoice ID", "Client", "Amount", "Date", "Status", "Due Date"]


def test_products_report_uses_typed_cells(db_session: Session) -> None:
    db_session.add(Item(title="Bolt", description="Hardware", price=Decimal("2.50"), quantity=40))
    db_session.commit()

    rows = ReportService(db_session).generate_rows(_request("Products"))

    assert rows[0]["Product Name"] == "Bolt"
    assert rows[0]["Price"] == Decimal("2.50")
    assert rows[0]["Stock"] == 40


def test_users_report_filters_by_user(db_session: Session, regular_user: User, admin_user: User) -> None:
    rows = ReportService(db_session).generate_rows(_request("Users", user="ada"))

    assert _names(rows, "User Name") == ["Ada Admin"]
    assert rows[0]["Role"] == "Admin"


def test_generate_endpoint_accepts_camel_case_request(
    client: TestClient,
    admin_user: User,
    january_clients: dict[str, Client],
) -> None:
    response = client.post(
        "/api/v1/reports/generate",
        headers=_headers(admin_user),
        json={
            "reportType": "Clients",
            "filters": {"startDate": "2024-01-01", "endDate": "2024-01-31", "actionType": "created"},
            "options": {"sortBy": "Client Name DESC", "format": "CSV"},
        },
    )

    assert response.status_code == 200
    assert [row["Client Name"] for row in response.json()] == ["Last", "First"]


def test_generate_endpoint_requires_authentication(client: TestClient) -> None:
    response = client.post("/api/v1/reports/generate", json={"reportType": "Clients"})

    assert response.status_code == 401
