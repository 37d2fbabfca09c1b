"""Read access to the audit trail."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.config import get_settings
from quotegen.models.entities import ActivityLog
from quotegen.repositories.sales_repository import OwnerScope, SalesRepository
from quotegen.services.report_service import resolve_action_names, resolve_date_window


@dataclass(slots=True)
class ActivityLogFilterData:
    start_date: str | None = None
    end_date: str | None = None
    action_type: str | None = None
    entity_name: str | None = None


class ActivityLogService:
    """Audit trail queries. Non-admin callers never see entries performed by admins."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.settings = get_settings()

    @staticmethod
    def serialize_entry(entry: ActivityLog) -> dict[str, object]:
        return {
            "id": entry.id,
            "entity_name": entry.entity_name,
            "record_id": entry.record_id,
            "action_type": entry.action_type,
            "description": entry.description,
            "performed_by": entry.performed_by,
            "timestamp": entry.timestamp.isoformat(),
        }

    def _list(self, context: RequestUserContext, **filters) -> list[ActivityLog]:
        return self.repo.list_activity_logs(
            hide_admin_entries=not context.is_admin,
            admin_roles=self.settings.admin_role_names,
            **filters,
        )

    def my_recent(self, *, context: RequestUserContext, limit: int = 5) -> list[ActivityLog]:
        if limit <= 0:
            limit = self.settings.dashboard_recent_limit
        scope = OwnerScope(user_id=context.user_id, email=context.email)
        return self.repo.recent_activity_logs(limit=limit, scope=scope)

    def filter_entries(self, *, context: RequestUserContext, data: ActivityLogFilterData) -> list[ActivityLog]:
        start_at, end_at = resolve_date_window(data.start_date, data.end_date)
        entity_name = data.entity_name.strip() if data.entity_name and data.entity_name.strip() else None
        return self._list(
            context,
            start_at=start_at,
            end_at=end_at,
            action_names=resolve_action_names(data.action_type),
            entity_name=entity_name,
        )

    def list_all(self, *, context: RequestUserContext) -> list[ActivityLog]:
        return self._list(context)

    def list_for_record(self, *, context: RequestUserContext, entity_name: str, record_id: int) -> list[ActivityLog]:
        return self._list(context, entity_name=entity_name, record_id=record_id)
