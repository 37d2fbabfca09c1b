"""Client CRUD service layer."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.config import get_settings
from quotegen.core.security import utcnow
from quotegen.models.entities import Client, ClientContact
from quotegen.repositories.sales_repository import SalesRepository
from quotegen.services.activity_logger import ActivityLogger


@dataclass(slots=True)
class ContactData:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    add_to_invoices: bool = False


@dataclass(slots=True)
class ClientData:
    client_name: str | None = None
    client_id_number: str | None = None
    client_contact_number: str | None = None
    client_address: str | None = None
    client_email: str | None = None
    name: str | None = None
    number: str | None = None
    group: str | None = None
    assigned_user: str | None = None
    id_number: str | None = None
    vat_number: str | None = None
    website: str | None = None
    phone: str | None = None
    routing_id: str | None = None
    valid_vat: bool | None = None
    tax_exempt: bool | None = None
    classification: str | None = None
    billing_street: str | None = None
    billing_suite: str | None = None
    billing_city: str | None = None
    billing_state: str | None = None
    billing_postal_code: str | None = None
    billing_country: str | None = None
    shipping_street: str | None = None
    shipping_suite: str | None = None
    shipping_city: str | None = None
    shipping_state: str | None = None
    shipping_postal_code: str | None = None
    shipping_country: str | None = None
    is_active: bool | None = None
    contacts: list[ContactData] | None = field(default=None)


_SCALAR_FIELDS = tuple(f.name for f in fields(ClientData) if f.name != "contacts")


def format_client_id(prefix: str, client_id: int) -> str:
    return f"{prefix}-{client_id:06d}"


class ClientService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.settings = get_settings()
        self.activity = ActivityLogger(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_contact(contact: ClientContact) -> dict[str, object]:
        return {
            "id": contact.id,
            "first_name": contact.first_name,
            "last_name": contact.last_name,
            "email": contact.email,
            "phone": contact.phone,
            "add_to_invoices": contact.add_to_invoices,
        }

    @classmethod
    def serialize_client(cls, client: Client, *, include_contacts: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": client.id,
            "client_id_formatted": client.client_id_formatted,
        }
        for name in _SCALAR_FIELDS:
            payload[name] = getattr(client, name)
        payload["created_date"] = client.created_date.isoformat()
        payload["updated_at"] = client.updated_at.isoformat() if client.updated_at else None
        if include_contacts:
            payload["contacts"] = [cls.serialize_contact(contact) for contact in client.contacts]
        return payload

    # ---------- Helpers ----------
    def _get_client_or_404(self, client_id: int) -> Client:
        client = self.repo.get_client(client_id)
        if client is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Client with ID {client_id} not found.")
        return client

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Client could not be saved because it conflicts with existing data.",
            ) from exc

    @staticmethod
    def _build_contacts(contacts: list[ContactData]) -> list[ClientContact]:
        return [
            ClientContact(
                first_name=contact.first_name or "",
                last_name=contact.last_name or "",
                email=contact.email or "",
                phone=contact.phone or "",
                add_to_invoices=bool(contact.add_to_invoices),
            )
            for contact in contacts
        ]

    # ---------- Queries ----------
    def next_id(self) -> dict[str, object]:
        next_id = self.repo.last_client_id() + 1
        return {
            "next_id": next_id,
            "formatted_client_id": format_client_id(self.settings.client_id_prefix, next_id),
            "message": "Next client ID generated successfully",
        }

    def list_clients(self, *, search: str | None = None, is_active: bool | None = None) -> list[Client]:
        return self.repo.list_clients(search=search, is_active=is_active)

    def get_client(self, client_id: int) -> Client:
        return self._get_client_or_404(client_id)

    # ---------- Mutations ----------
    def create_client(self, *, context: RequestUserContext, data: ClientData) -> Client:
        client_name = (data.client_name or "").strip()
        client_email = (data.client_email or "").strip()
        if not client_name or not client_email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Client name and email are required.",
            )

        client = Client(created_by_id=context.user_id, created_date=utcnow())
        for name in _SCALAR_FIELDS:
            value = getattr(data, name)
            if value is not None:
                setattr(client, name, value)
        client.client_name = client_name
        client.client_email = client_email
        client.valid_vat = bool(data.valid_vat)
        client.tax_exempt = bool(data.tax_exempt)
        client.is_active = True if data.is_active is None else data.is_active
        if not (data.assigned_user or "").strip():
            client.assigned_user = context.email
        client.contacts = self._build_contacts(data.contacts or [])

        try:
            self.repo.add_client(client)
            client.client_id_formatted = format_client_id(self.settings.client_id_prefix, client.id)
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Client could not be saved because it conflicts with existing data.",
            ) from exc
        self._commit()
        self.db.refresh(client)

        self.activity.log("Client", client.id, "Create", f"Created client: {client.client_name}", context=context)
        return client

    def update_client(self, *, context: RequestUserContext, client_id: int, data: ClientData) -> Client:
        client = self._get_client_or_404(client_id)

        for name in _SCALAR_FIELDS:
            value = getattr(data, name)
            if value is not None:
                setattr(client, name, value)
        if not (client.client_name or "").strip() or not (client.client_email or "").strip():
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Client name and email cannot be blank.",
            )
        if data.contacts is not None:
            client.contacts = self._build_contacts(data.contacts)
        client.updated_at = utcnow()

        self._commit()
        self.db.refresh(client)

        self.activity.log("Client", client.id, "Update", f"Updated client: {client.client_name}", context=context)
        return client

    def delete_client(self, *, context: RequestUserContext, client_id: int) -> None:
        client = self._get_client_or_404(client_id)
        client_name = client.client_name
        self.repo.delete_client(client)
        self._commit()

        self.activity.log("Client", client_id, "Delete", f"Deleted client: {client_name}", context=context)

    def bulk_delete(self, *, context: RequestUserContext, client_ids: list[int]) -> int:
        if not client_ids:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No client IDs provided.")
        clients = self.repo.list_clients_by_ids(client_ids)
        if not clients:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No clients found with the provided IDs.",
            )

        deleted = [(client.id, client.client_name) for client in clients]
        for client in clients:
            self.repo.delete_client(client)
        self._commit()

        for deleted_id, deleted_name in deleted:
            self.activity.log("Client", deleted_id, "Delete", f"Deleted client: {deleted_name}", context=context)
        return len(deleted)
