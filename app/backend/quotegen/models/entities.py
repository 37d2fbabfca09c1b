"""ORM entities for the quotation generator schema."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotegen.core.security import utcnow
from quotegen.db.base import Base


class UserRole(str, enum.Enum):
    USER = "User"
    ADMIN = "Admin"


class QuotationStatus(str, enum.Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    EXPIRED = "Expired"


class DiscountType(str, enum.Enum):
    AMOUNT = "amount"
    PERCENTAGE = "percentage"


class ActionType(str, enum.Enum):
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=UserRole.USER.value)
    password_hash: Mapped[str | None] = mapped_column(String(200), nullable=True)

    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    street: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    id_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    preferred_contact_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    two_factor_auth: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    login_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    task_assign_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    disable_recurring_payment_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Per-event notification channel preferences ("email", "sms", ...).
    all_events: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_created: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_sent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    quote_created: Mapped[str | None] = mapped_column(String(50), nullable=True)
    quote_sent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    quote_view: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_details: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        Index("ix_clients_created_date", "created_date"),
        Index("ix_clients_assigned_user", "assigned_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id_formatted: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)

    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_id_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_contact_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    client_address: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    client_email: Mapped[str] = mapped_column(String(200), nullable=False)

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    group: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assigned_user: Mapped[str | None] = mapped_column(String(200), nullable=True)
    id_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vat_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    website: Mapped[str | None] = mapped_column(String(300), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    routing_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    valid_vat: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    classification: Mapped[str | None] = mapped_column(String(100), nullable=True)

    billing_street: Mapped[str | None] = mapped_column(String(300), nullable=True)
    billing_suite: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    billing_country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    shipping_street: Mapped[str | None] = mapped_column(String(300), nullable=True)
    shipping_suite: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shipping_country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    contacts: Mapped[list[ClientContact]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="ClientContact.id",
    )


class ClientContact(Base):
    __tablename__ = "client_contacts"
    __table_args__ = (Index("ix_client_contacts_client_id", "client_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    first_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    add_to_invoices: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    client: Mapped[Client] = relationship(back_populates="contacts")


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_items_price_non_negative"),
        Index("ix_items_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class Quotation(Base):
    __tablename__ = "quotations"
    __table_args__ = (
        Index("ix_quotations_quote_date", "quote_date"),
        Index("ix_quotations_created_by_email", "created_by_email"),
        Index("ix_quotations_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quote_number: Mapped[str] = mapped_column(String(50), nullable=False)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    quote_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    partial_deposit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))

    discount_type: Mapped[str] = mapped_column(String(20), nullable=False, default=DiscountType.AMOUNT.value)
    discount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    net_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=QuotationStatus.DRAFT.value)

    project: Mapped[str | None] = mapped_column(String(200), nullable=True)
    assigned_user: Mapped[str | None] = mapped_column(String(200), nullable=True)
    exchange_rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    design: Mapped[str | None] = mapped_column(String(100), nullable=True)
    inclusive_taxes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    items: Mapped[list[QuotationItem]] = relationship(
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
    )


class QuotationItem(Base):
    __tablename__ = "quotation_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_quotation_items_quantity_non_negative"),
        Index("ix_quotation_items_quotation_id", "quotation_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quotation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    quotation: Mapped[Quotation] = relationship(back_populates="items")


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_entity_record", "entity_name", "record_id"),
        Index("ix_activity_logs_timestamp", "timestamp"),
        Index("ix_activity_logs_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_name: Mapped[str] = mapped_column(String(100), nullable=False)
    record_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    performed_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    performed_by_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    performed_by_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    user: Mapped[User | None] = relationship()
