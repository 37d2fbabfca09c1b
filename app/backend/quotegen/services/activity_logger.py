"""Audit trail writer invoked after each committed mutation."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.security import utcnow
from quotegen.models.entities import ActivityLog
from quotegen.repositories.sales_repository import SalesRepository

logger = logging.getLogger(__name__)

SYSTEM_PERFORMER = "System"


class ActivityLogger:
    """Append-only writer for ``activity_logs``.

    Call :meth:`log` once the business transaction has committed. The audit row
    is written in its own commit; any failure is rolled back, logged and
    swallowed so the caller's response is never affected.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)

    def log(
        self,
        entity_name: str,
        record_id: int,
        action_type: str,
        description: str | None = None,
        performed_by: str | None = None,
        *,
        context: RequestUserContext | None = None,
    ) -> ActivityLog | None:
        try:
            performer_email = SYSTEM_PERFORMER
            performer_role: str | None = None
            user_id: int | None = None
            if context is not None:
                user_id = context.user_id
                performer_email = context.email or SYSTEM_PERFORMER
                performer_role = context.role

            performer = performed_by.strip() if performed_by and performed_by.strip() else performer_email

            entry = ActivityLog(
                entity_name=entity_name,
                record_id=record_id,
                action_type=action_type,
                description=description if description is not None else f"{action_type} {entity_name}",
                performed_by=performer,
                performed_by_email=performer_email,
                performed_by_role=performer_role,
                user_id=user_id,
                timestamp=utcnow(),
            )
            self.repo.add_activity_log(entry)
            self.db.commit()
            return entry
        except Exception:
            self.db.rollback()
            logger.exception(
                "Activity logging failed for %s #%s (%s)", entity_name, record_id, action_type
            )
            return None
