"""Audit trail endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.activity_log_service import ActivityLogFilterData, ActivityLogService

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


class ActivityLogFilterPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    action_type: str | None = Field(default=None, alias="actionType")
    entity_name: str | None = Field(default=None, alias="entityName")


def _service(db: Session) -> ActivityLogService:
    return ActivityLogService(db)


@router.get("/my-recent")
def my_recent_activity(
    limit: int = Query(default=5),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    return [service.serialize_entry(entry) for entry in service.my_recent(context=context, limit=limit)]


@router.post("/filter")
def filter_activity_logs(
    payload: ActivityLogFilterPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    rows = service.filter_entries(
        context=context,
        data=ActivityLogFilterData(
            start_date=payload.start_date,
            end_date=payload.end_date,
            action_type=payload.action_type,
            entity_name=payload.entity_name,
        ),
    )
    return [service.serialize_entry(entry) for entry in rows]


@router.get("")
def list_activity_logs(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    return [service.serialize_entry(entry) for entry in service.list_all(context=context)]


@router.get("/{entity_name}/{record_id}")
def record_history(
    entity_name: str,
    record_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    rows = service.list_for_record(context=context, entity_name=entity_name, record_id=record_id)
    return [service.serialize_entry(entry) for entry in rows]
