"""Dashboard overview, quotation pipeline and recent-activity feeds."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.config import get_settings
from quotegen.core.security import utcnow
from quotegen.models.entities import ActivityLog, Client, Quotation
from quotegen.repositories.sales_repository import OwnerScope, SalesRepository

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

PERIOD_WEEK = "This Week"
PERIOD_MONTH = "This Month"
PERIOD_YEAR = "This Year"


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Inclusive date window plus the ordered chart buckets it is split into."""

    label: str
    start_at: datetime
    end_at: datetime
    bucket_names: tuple[str, ...]

    def bucket_index(self, moment: datetime) -> int:
        if self.label == PERIOD_WEEK:
            return moment.weekday()
        if self.label == PERIOD_YEAR:
            return moment.month - 1
        return moment.day - 1


def resolve_period(period: str | None, today: date) -> PeriodWindow:
    """Window for ``This Week`` / ``This Month`` / ``This Year``; unknown tags mean this month."""

    normalized = (period or "").strip().lower()
    if normalized == PERIOD_WEEK.lower():
        start_day = today - timedelta(days=today.weekday())
        end_day = start_day + timedelta(days=6)
        label = PERIOD_WEEK
        names = WEEKDAY_NAMES
    elif normalized == PERIOD_YEAR.lower():
        start_day = date(today.year, 1, 1)
        end_day = date(today.year, 12, 31)
        label = PERIOD_YEAR
        names = MONTH_NAMES
    else:
        days_in_month = calendar.monthrange(today.year, today.month)[1]
        start_day = date(today.year, today.month, 1)
        end_day = date(today.year, today.month, days_in_month)
        label = PERIOD_MONTH
        names = tuple(str(day) for day in range(1, days_in_month + 1))

    return PeriodWindow(
        label=label,
        start_at=datetime.combine(start_day, time.min),
        end_at=datetime.combine(end_day, time.max),
        bucket_names=names,
    )


class DashboardService:
    """Aggregates shown on the landing dashboard, scoped to the caller."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.settings = get_settings()

    # ---------- Scope ----------
    @staticmethod
    def _scope(context: RequestUserContext) -> OwnerScope | None:
        if context.is_admin:
            return None
        return OwnerScope(user_id=context.user_id, email=context.email)

    def _limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.settings.dashboard_recent_limit
        return limit

    # ---------- Serialization ----------
    @staticmethod
    def serialize_recent_client(client: Client) -> dict[str, object]:
        return {
            "id": client.id,
            "client_name": client.client_name or "",
            "client_email": client.client_email or "",
            "client_contact_number": client.client_contact_number or "",
            "city": client.billing_city or "",
            "created_date": client.created_date.isoformat(),
        }

    @staticmethod
    def serialize_recent_activity(entry: ActivityLog) -> dict[str, object]:
        return {
            "id": entry.id,
            "entity_name": entry.entity_name,
            "record_id": entry.record_id,
            "action_type": entry.action_type,
            "description": entry.description,
            "performed_by": entry.performed_by,
            "timestamp": entry.timestamp.isoformat(),
        }

    @staticmethod
    def serialize_recent_quotation(quotation: Quotation) -> dict[str, object]:
        return {
            "id": quotation.id,
            "quote_number": quotation.quote_number,
            "client_name": quotation.client_name,
            "quote_date": quotation.quote_date.isoformat(),
            "total": str(quotation.total),
            "status": quotation.status,
            "valid_until": quotation.valid_until.isoformat() if quotation.valid_until else None,
        }

    # ---------- Overview ----------
    def overview(
        self,
        *,
        context: RequestUserContext,
        period: str | None = PERIOD_MONTH,
        today: date | None = None,
    ) -> dict[str, object]:
        window = resolve_period(period, today or utcnow().date())
        scope = self._scope(context)
        quotations = self.repo.list_quotations_in_window(
            start_at=window.start_at,
            end_at=window.end_at,
            scope=scope,
        )

        pending_statuses = set(self.settings.dashboard_pending_statuses)
        approved_statuses = set(self.settings.dashboard_approved_statuses)
        rejected_statuses = set(self.settings.dashboard_rejected_statuses)

        pipeline = [
            {"name": name, "draft": 0, "sent": 0, "accepted": 0, "rejected": 0, "expired": 0}
            for name in window.bucket_names
        ]
        pending = approved = rejected = 0
        total_amount = ZERO
        for quotation in quotations:
            status_name = (quotation.status or "").strip().lower()
            total_amount += quotation.total or ZERO
            if status_name in pending_statuses:
                pending += 1
            if status_name in approved_statuses:
                approved += 1
            if status_name in rejected_statuses:
                rejected += 1

            point = pipeline[window.bucket_index(quotation.quote_date)]
            if status_name in {"declined", "rejected"}:
                point["rejected"] += 1
            elif status_name in {"draft", "sent", "accepted", "expired"}:
                point[status_name] += 1

        return {
            "period": window.label,
            "total_clients": self.repo.count_clients(scope),
            "total_quotations": len(quotations),
            "total_items": self.repo.count_items(),
            "total_quotation_amount": str(total_amount.quantize(Q2)),
            "pending_quotations": pending,
            "approved_quotations": approved,
            "rejected_quotations": rejected,
            "quotation_pipeline_data": pipeline,
        }

    # ---------- Recent feeds ----------
    def recent_clients(self, *, context: RequestUserContext, limit: int | None = None) -> list[dict[str, object]]:
        rows = self.repo.recent_clients(limit=self._limit(limit), scope=self._scope(context))
        return [self.serialize_recent_client(row) for row in rows]

    def recent_activities(self, *, context: RequestUserContext, limit: int | None = None) -> list[dict[str, object]]:
        rows = self.repo.recent_activity_logs(limit=self._limit(limit), scope=self._scope(context))
        return [self.serialize_recent_activity(row) for row in rows]

    def recent_quotations(self, *, context: RequestUserContext, limit: int | None = None) -> list[dict[str, object]]:
        rows = self.repo.recent_quotations(limit=self._limit(limit), scope=self._scope(context))
        return [self.serialize_recent_quotation(row) for row in rows]

    def dashboard_data(self, *, context: RequestUserContext, today: date | None = None) -> dict[str, object]:
        return {
            "overview": self.overview(context=context, period=PERIOD_MONTH, today=today),
            "recent_clients": self.recent_clients(context=context),
            "recent_activities": self.recent_activities(context=context),
            "recent_quotations": self.recent_quotations(context=context),
        }
