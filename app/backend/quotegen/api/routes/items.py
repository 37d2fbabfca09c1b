"""Catalog item endpoints."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.item_service import ItemData, ItemService

router = APIRouter(prefix="/items", tags=["items"])


class ItemPayload(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    price: Decimal | None = None
    quantity: int | None = None
    image_url: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None


def _service(db: Session) -> ItemService:
    return ItemService(db)


def _item_data(payload: ItemPayload) -> ItemData:
    return ItemData(
        title=payload.title,
        description=payload.description,
        price=payload.price,
        quantity=payload.quantity,
        image_url=payload.image_url,
        is_active=payload.is_active,
    )


@router.get("")
def list_items(
    search: str | None = Query(default=None, alias="filter"),
    is_active: bool | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    return [service.serialize_item(item) for item in service.list_items(search=search, is_active=is_active)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_item(
    payload: ItemPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_item(service.create_item(context=context, data=_item_data(payload)))


@router.delete("/bulk")
def bulk_delete_items(
    item_ids: list[int] = Body(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    deleted = _service(db).bulk_delete(context=context, item_ids=item_ids)
    return {"message": f"{deleted} item(s) deleted successfully.", "deleted": deleted}


@router.get("/{item_id}")
def get_item(
    item_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_item(service.get_item(item_id))


@router.put("/{item_id}")
def update_item(
    item_id: int,
    payload: ItemPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    item = service.update_item(context=context, item_id=item_id, data=_item_data(payload))
    return service.serialize_item(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_item(context=context, item_id=item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
