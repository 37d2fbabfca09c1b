"""Dashboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.dashboard_service import PERIOD_MONTH, DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _service(db: Session) -> DashboardService:
    return DashboardService(db)


@router.get("/quotation-pipeline")
def quotation_pipeline(
    period: str = Query(default=PERIOD_MONTH),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).overview(context=context, period=period)


@router.get("/recent-clients")
def dashboard_recent_clients(
    limit: int = Query(default=5),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).recent_clients(context=context, limit=limit)


@router.get("/recent-activities")
def dashboard_recent_activities(
    limit: int = Query(default=5),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).recent_activities(context=context, limit=limit)


@router.get("/recent-quotations")
def dashboard_recent_quotations(
    limit: int = Query(default=5),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    return _service(db).recent_quotations(context=context, limit=limit)


@router.get("/data")
def dashboard_data(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).dashboard_data(context=context)
