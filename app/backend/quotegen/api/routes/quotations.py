"""Quotation endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.quotation_service import LineItemData, QuotationData, QuotationService

router = APIRouter(prefix="/quotations", tags=["quotations"])


class LineItemPayload(BaseModel):
    item_name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    unit_cost: Decimal = Field(ge=0)
    quantity: int = Field(ge=0)


class QuotationPayload(BaseModel):
    quote_number: str | None = Field(default=None, max_length=50)
    po_number: str | None = Field(default=None, max_length=100)
    client_id: int | None = None
    client_name: str | None = Field(default=None, max_length=200)
    quote_date: datetime | None = None
    valid_until: datetime | None = None
    partial_deposit: Decimal | None = None
    discount_type: str | None = Field(default=None, max_length=20)
    discount: Decimal | None = None
    project: str | None = Field(default=None, max_length=200)
    assigned_user: str | None = Field(default=None, max_length=200)
    exchange_rate: Decimal | None = None
    vendor: str | None = Field(default=None, max_length=200)
    design: str | None = Field(default=None, max_length=100)
    inclusive_taxes: bool | None = None
    items: list[LineItemPayload] | None = None


class StatusPayload(BaseModel):
    status: str = Field(min_length=1, max_length=20)


def _service(db: Session) -> QuotationService:
    return QuotationService(db)


def _quotation_data(payload: QuotationPayload) -> QuotationData:
    items = None
    if payload.items is not None:
        items = [
            LineItemData(
                item_name=line.item_name,
                description=line.description,
                unit_cost=line.unit_cost,
                quantity=line.quantity,
            )
            for line in payload.items
        ]
    return QuotationData(
        quote_number=payload.quote_number,
        po_number=payload.po_number,
        client_id=payload.client_id,
        client_name=payload.client_name,
        quote_date=payload.quote_date,
        valid_until=payload.valid_until,
        partial_deposit=payload.partial_deposit,
        discount_type=payload.discount_type,
        discount=payload.discount,
        project=payload.project,
        assigned_user=payload.assigned_user,
        exchange_rate=payload.exchange_rate,
        vendor=payload.vendor,
        design=payload.design,
        inclusive_taxes=payload.inclusive_taxes,
        items=items,
    )


@router.get("")
def list_quotations(
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    rows = service.list_quotations(context=context, status_filter=status_filter, search=search)
    return [service.serialize_summary(row) for row in rows]


@router.get("/next-number")
def next_quotation_number(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, str]:
    return {"next_number": _service(db).next_number()}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_quotation(
    payload: QuotationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    quotation = service.create_quotation(context=context, data=_quotation_data(payload))
    return service.serialize_quotation(quotation)


@router.get("/{quotation_id}")
def get_quotation(
    quotation_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_quotation(service.get_quotation(context=context, quotation_id=quotation_id))


@router.put("/{quotation_id}")
def update_quotation(
    quotation_id: int,
    payload: QuotationPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    quotation = service.update_quotation(
        context=context,
        quotation_id=quotation_id,
        data=_quotation_data(payload),
    )
    return service.serialize_quotation(quotation)


@router.patch("/{quotation_id}/status")
def update_quotation_status(
    quotation_id: int,
    payload: StatusPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    quotation = service.update_status(context=context, quotation_id=quotation_id, new_status=payload.status)
    return service.serialize_summary(quotation)


@router.delete("/{quotation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quotation(
    quotation_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_quotation(context=context, quotation_id=quotation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
