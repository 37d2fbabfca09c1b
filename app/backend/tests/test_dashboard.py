from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from quotegen.core.auth import build_user_context, issue_token
from quotegen.core.security import utcnow
from quotegen.models.entities import Client, Item, Quotation, User
from quotegen.services.dashboard_service import DashboardService, resolve_period


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user)}"}


def _quotation(
    db: Session,
    *,
    quote_date: datetime,
    status: str,
    total: str,
    owner: User | None = None,
    assigned_user: str | None = None,
) -> Quotation:
    quotation = Quotation(
        quote_number=f"Q-{quote_date:%Y%m%d}-{status}",
        client_name="Acme",
        quote_date=quote_date,
        status=status,
        total=Decimal(total),
        created_by_id=owner.id if owner else None,
        created_by_email=owner.email if owner else None,
        assigned_user=assigned_user,
    )
    db.add(quotation)
    db.commit()
    return quotation


def _client(db: Session, *, name: str, created_date: datetime, owner: User | None = None) -> Client:
    row = Client(
        client_name=name,
        client_email=f"{name.lower()}@test.local",
        created_by_id=owner.id if owner else None,
        created_date=created_date,
    )
    db.add(row)
    db.commit()
    return row


def test_week_period_runs_monday_to_sunday() -> None:
    window = resolve_period("this week", date(2024, 5, 16))

    assert window.label == "This Week"
    assert window.start_at == datetime(2024, 5, 13, 0, 0, 0)
    assert window.end_at.date() == date(2024, 5, 19)
    assert window.bucket_names == ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def test_month_period_has_one_bucket_per_day_and_is_default() -> None:
    window = resolve_period("fortnight", date(2024, 2, 10))

    assert window.label == "This Month"
    assert window.bucket_names[0] == "1"
    assert window.bucket_names[-1] == "29"
    assert len(window.bucket_names) == 29


def test_year_period_has_month_buckets() -> None:
    window = resolve_period("THIS YEAR", date(2024, 7, 4))

    assert window.start_at == datetime(2024, 1, 1)
    assert window.end_at.date() == date(2024, 12, 31)
    assert len(window.bucket_names) == 12


def test_overview_counts_and_pipeline(db_session: Session, admin_user: User) -> None:
    _quotation(db_session, quote_date=datetime(2024, 3, 2, 9), status="Draft", total="100.00")
    _quotation(db_session, quote_date=datetime(2024, 3, 2, 15), status="Sent", total="50.00")
    _quotation(db_session, quote_date=datetime(2024, 3, 10), status="Accepted", total="25.25")
    _quotation(db_session, quote_date=datetime(2024, 3, 31, 23), status="Declined", total="10.00")
    _quotation(db_session, quote_date=datetime(2024, 3, 20), status="Expired", total="5.00")
    _quotation(db_session, quote_date=datetime(2024, 4, 1), status="Sent", total="999.00")
    db_session.add(Item(title="Bolt", price=Decimal("1.00"), quantity=1))
    db_session.commit()

    overview = DashboardService(db_session).overview(
        context=build_user_context(admin_user),
        period="This Month",
        today=date(2024, 3, 15),
    )

    assert overview["total_quotations"] == 5
    assert overview["total_items"] == 1
    assert overview["total_quotation_amount"] == "190.25"
    assert overview["pending_quotations"] == 1
    assert overview["approved_quotations"] == 1
    assert overview["rejected_quotations"] == 2

    pipeline = overview["quotation_pipeline_data"]
    assert len(pipeline) == 31
    assert pipeline[1] == {"name": "2", "draft": 1, "sent": 1, "accepted": 0, "rejected": 0, "expired": 0}
    assert pipeline[30]["rejected"] == 1
    assert pipeline[19]["expired"] == 1
    assert pipeline[0] == {"name": "1", "draft": 0, "sent": 0, "accepted": 0, "rejected": 0, "expired": 0}


def test_overview_is_scoped_for_non_admins(db_session: Session, regular_user: User, other_user: User) -> None:
    _quotation(db_session, quote_date=datetime(2024, 3, 5), status="Sent", total="10.00", owner=regular_user)
    _quotation(
        db_session,
        quote_date=datetime(2024, 3, 6),
        status="Sent",
        total="20.00",
        owner=other_user,
        assigned_user="User@Test.Local",
    )
    _quotation(db_session, quote_date=datetime(2024, 3, 7), status="Sent", total="40.00", owner=other_user)
    _client(db_session, name="Mine", created_date=datetime(2024, 3, 1), owner=regular_user)
    _client(db_session, name="Theirs", created_date=datetime(2024, 3, 1), owner=other_user)

    overview = DashboardService(db_session).overview(
        context=build_user_context(regular_user),
        period="This Month",
        today=date(2024, 3, 15),
    )

    assert overview["total_quotations"] == 2
    assert overview["total_quotation_amount"] == "30.00"
    assert overview["total_clients"] == 1


def test_recent_quotations_match_email_case_insensitively(
    client: TestClient,
    db_session: Session,
    regular_user: User,
    other_user: User,
) -> None:
    _quotation(db_session, quote_date=datetime(2024, 1, 1), status="Draft", total="1.00", assigned_user="USER@TEST.LOCAL")
    _quotation(db_session, quote_date=datetime(2024, 1, 2), status="Draft", total="2.00", owner=other_user)

    response = client.get("/api/v1/dashboard/recent-quotations", headers=_headers(regular_user))

    assert response.status_code == 200
    assert [row["total"] for row in response.json()] == ["1.00"]


def test_recent_limit_falls_back_to_default(client: TestClient, db_session: Session, admin_user: User) -> None:
    for day in range(1, 9):
        _client(db_session, name=f"Client{day}", created_date=datetime(2024, 1, day))

    default = client.get("/api/v1/dashboard/recent-clients", headers=_headers(admin_user), params={"limit": 0})
    negative = client.get("/api/v1/dashboard/recent-clients", headers=_headers(admin_user), params={"limit": -3})
    explicit = client.get("/api/v1/dashboard/recent-clients", headers=_headers(admin_user), params={"limit": 2})

    assert [row["client_name"] for row in default.json()] == ["Client8", "Client7", "Client6", "Client5", "Client4"]
    assert len(negative.json()) == 5
    assert len(explicit.json()) == 2


def test_dashboard_data_bundles_overview_and_feeds(client: TestClient, db_session: Session, admin_user: User) -> None:
    _quotation(db_session, quote_date=utcnow(), status="Accepted", total="12.00")

    response = client.get("/api/v1/dashboard/data", headers=_headers(admin_user))
    pipeline = client.get(
        "/api/v1/dashboard/quotation-pipeline",
        headers=_headers(admin_user),
        params={"period": "This Year"},
    )

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"overview", "recent_clients", "recent_activities", "recent_quotations"}
    assert body["overview"]["period"] == "This Month"
    assert body["overview"]["approved_quotations"] == 1
    assert len(body["recent_quotations"]) == 1
    assert len(pipeline.json()["quotation_pipeline_data"]) == 12
