"""Catalog item service layer."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.security import utcnow
from quotegen.models.entities import Item
from quotegen.repositories.sales_repository import SalesRepository
from quotegen.services.activity_logger import ActivityLogger

Q2 = Decimal("0.01")


@dataclass(slots=True)
class ItemData:
    title: str | None = None
    description: str | None = None
    price: Decimal | None = None
    quantity: int | None = None
    image_url: str | None = None
    is_active: bool | None = None


def format_price(price: Decimal) -> str:
    return f"${price.quantize(Q2):,.2f}"


class ItemService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.activity = ActivityLogger(db)

    @staticmethod
    def serialize_item(item: Item) -> dict[str, object]:
        return {
            "id": item.id,
            "title": item.title,
            "description": item.description,
            "price": format_price(item.price),
            "price_value": str(item.price),
            "quantity": item.quantity,
            "image_url": item.image_url,
            "is_active": item.is_active,
            "created_at": item.created_at.isoformat(),
            "updated_at": item.updated_at.isoformat() if item.updated_at else None,
        }

    def _get_item_or_404(self, item_id: int) -> Item:
        item = self.repo.get_item(item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item with ID {item_id} not found.")
        return item

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Item could not be saved because it conflicts with existing data.",
            ) from exc

    def list_items(self, *, search: str | None = None, is_active: bool | None = None) -> list[Item]:
        return self.repo.list_items(search=search, is_active=is_active)

    def get_item(self, item_id: int) -> Item:
        return self._get_item_or_404(item_id)

    def create_item(self, *, context: RequestUserContext, data: ItemData) -> Item:
        title = (data.title or "").strip()
        if not title:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required.")
        if data.price is None or data.price <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Price must be greater than zero.")
        if data.quantity is None or data.quantity <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity must be greater than zero.")

        item = Item(
            title=title,
            description=data.description,
            price=data.price.quantize(Q2),
            quantity=data.quantity,
            image_url=data.image_url,
            is_active=True if data.is_active is None else data.is_active,
            created_at=utcnow(),
        )
        self.repo.add_item(item)
        self._commit()
        self.db.refresh(item)

        self.activity.log("Item", item.id, "Create", f"Created item: {item.title}", context=context)
        return item

    def update_item(self, *, context: RequestUserContext, item_id: int, data: ItemData) -> Item:
        item = self._get_item_or_404(item_id)

        # Blank strings and non-positive numbers leave the stored value untouched.
        if data.title and data.title.strip():
            item.title = data.title.strip()
        if data.description and data.description.strip():
            item.description = data.description
        if data.price is not None and data.price > 0:
            item.price = data.price.quantize(Q2)
        if data.quantity is not None and data.quantity > 0:
            item.quantity = data.quantity
        if data.image_url and data.image_url.strip():
            item.image_url = data.image_url
        if data.is_active is not None:
            item.is_active = data.is_active
        item.updated_at = utcnow()

        self._commit()
        self.db.refresh(item)

        self.activity.log("Item", item.id, "Update", f"Updated item: {item.title}", context=context)
        return item

    def delete_item(self, *, context: RequestUserContext, item_id: int) -> None:
        item = self._get_item_or_404(item_id)
        title = item.title
        self.repo.delete_item(item)
        self._commit()

        self.activity.log("Item", item_id, "Delete", f"Deleted item: {title}", context=context)

    def bulk_delete(self, *, context: RequestUserContext, item_ids: list[int]) -> int:
        if not item_ids:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No item IDs provided.")
        items = self.repo.list_items_by_ids(item_ids)
        if not items:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No items found with the provided IDs.")

        deleted = [(item.id, item.title) for item in items]
        for item in items:
            self.repo.delete_item(item)
        self._commit()

        for deleted_id, title in deleted:
            self.activity.log("Item", deleted_id, "Delete", f"Deleted item: {title}", context=context)
        return len(deleted)
