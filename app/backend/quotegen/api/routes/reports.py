"""Report generation and export endpoints."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.report_export import export_table
from quotegen.services.report_service import (
    CellValue,
    ReportFilters,
    ReportOptions,
    ReportRequest,
    ReportService,
)

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportFiltersPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    action_type: str | None = Field(default=None, alias="actionType")
    activity: str | None = None
    entity_name: str | None = Field(default=None, alias="entityName")
    status: str | None = None
    client: str | None = None
    user: str | None = None
    search: str | None = None
    min_amount: Decimal | None = Field(default=None, alias="minAmount")
    max_amount: Decimal | None = Field(default=None, alias="maxAmount")
    include_deleted: bool = Field(default=False, alias="includeDeleted")


class ReportOptionsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_by: str | None = Field(default=None, alias="groupBy")
    sort_by: str | None = Field(default=None, alias="sortBy")
    format: str | None = None
    send_email: bool = Field(default=False, alias="sendEmail")


class ReportRequestPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_type: str = Field(default="Activity", alias="reportType")
    action_type: str | None = Field(default=None, alias="actionType")
    filters: ReportFiltersPayload = Field(default_factory=ReportFiltersPayload)
    options: ReportOptionsPayload = Field(default_factory=ReportOptionsPayload)


def _service(db: Session) -> ReportService:
    return ReportService(db)


def _report_request(payload: ReportRequestPayload) -> ReportRequest:
    return ReportRequest(
        report_type=payload.report_type,
        action_type=payload.action_type,
        filters=ReportFilters(**payload.filters.model_dump()),
        options=ReportOptions(**payload.options.model_dump()),
    )


@router.post("/generate")
def generate_report(
    payload: ReportRequestPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, CellValue]]:
    return _service(db).generate_rows(_report_request(payload))


@router.post("/export")
def export_report(
    payload: ReportRequestPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    request = _report_request(payload)
    table = _service(db).generate_table(request)
    exported = export_table(table, request.options.format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
