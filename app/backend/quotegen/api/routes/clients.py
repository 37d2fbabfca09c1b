"""Client endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.client_service import ClientData, ClientService, ContactData

router = APIRouter(prefix="/clients", tags=["clients"])


class ContactPayload(BaseModel):
    first_name: str = Field(default="", max_length=200)
    last_name: str = Field(default="", max_length=200)
    email: str = Field(default="", max_length=200)
    phone: str = Field(default="", max_length=50)
    add_to_invoices: bool = False


class ClientPayload(BaseModel):
    client_name: str | None = Field(default=None, max_length=200)
    client_id_number: str | None = Field(default=None, max_length=100)
    client_contact_number: str | None = Field(default=None, max_length=50)
    client_address: str | None = Field(default=None, max_length=1000)
    client_email: str | None = Field(default=None, max_length=200)
    name: str | None = Field(default=None, max_length=200)
    number: str | None = Field(default=None, max_length=100)
    group: str | None = Field(default=None, max_length=100)
    assigned_user: str | None = Field(default=None, max_length=200)
    id_number: str | None = Field(default=None, max_length=100)
    vat_number: str | None = Field(default=None, max_length=100)
    website: str | None = Field(default=None, max_length=300)
    phone: str | None = Field(default=None, max_length=50)
    routing_id: str | None = Field(default=None, max_length=100)
    valid_vat: bool | None = None
    tax_exempt: bool | None = None
    classification: str | None = Field(default=None, max_length=100)
    billing_street: str | None = Field(default=None, max_length=300)
    billing_suite: str | None = Field(default=None, max_length=100)
    billing_city: str | None = Field(default=None, max_length=100)
    billing_state: str | None = Field(default=None, max_length=100)
    billing_postal_code: str | None = Field(default=None, max_length=20)
    billing_country: str | None = Field(default=None, max_length=100)
    shipping_street: str | None = Field(default=None, max_length=300)
    shipping_suite: str | None = Field(default=None, max_length=100)
    shipping_city: str | None = Field(default=None, max_length=100)
    shipping_state: str | None = Field(default=None, max_length=100)
    shipping_postal_code: str | None = Field(default=None, max_length=20)
    shipping_country: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None
    contacts: list[ContactPayload] | None = None


def _service(db: Session) -> ClientService:
    return ClientService(db)


def _client_data(payload: ClientPayload) -> ClientData:
    values = payload.model_dump(exclude={"contacts"})
    contacts = None
    if payload.contacts is not None:
        contacts = [ContactData(**contact.model_dump()) for contact in payload.contacts]
    return ClientData(**values, contacts=contacts)


@router.get("/next-id")
def next_client_id(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).next_id()


@router.get("")
def list_clients(
    search: str | None = Query(default=None, alias="filter"),
    is_active: bool | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    rows = service.list_clients(search=search, is_active=is_active)
    return [service.serialize_client(row) for row in rows]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.create_client(context=context, data=_client_data(payload))
    return service.serialize_client(client, include_contacts=True)


@router.delete("/bulk")
def bulk_delete_clients(
    client_ids: list[int] = Body(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    deleted = _service(db).bulk_delete(context=context, client_ids=client_ids)
    return {"message": f"{deleted} client(s) deleted successfully.", "deleted": deleted}


@router.get("/{client_id}")
def get_client(
    client_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_client(service.get_client(client_id), include_contacts=True)


@router.put("/{client_id}")
def update_client(
    client_id: int,
    payload: ClientPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.update_client(context=context, client_id=client_id, data=_client_data(payload))
    return service.serialize_client(client, include_contacts=True)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(
    client_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_client(context=context, client_id=client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
