"""ORM model package."""

from quotegen.models.entities import (
    ActionType,
    ActivityLog,
    Client,
    ClientContact,
    DiscountType,
    Item,
    Quotation,
    QuotationItem,
    QuotationStatus,
    User,
    UserRole,
)

__all__ = [
    "ActionType",
    "ActivityLog",
    "Client",
    "ClientContact",
    "DiscountType",
    "Item",
    "Quotation",
    "QuotationItem",
    "QuotationStatus",
    "User",
    "UserRole",
]
