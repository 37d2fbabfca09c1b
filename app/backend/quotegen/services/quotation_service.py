"""Quotation CRUD, numbering and totals computation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext
from quotegen.core.security import utcnow
from quotegen.models.entities import DiscountType, Quotation, QuotationItem, QuotationStatus
from quotegen.repositories.sales_repository import OwnerScope, SalesRepository
from quotegen.services.activity_logger import ActivityLogger

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


@dataclass(slots=True)
class LineItemData:
    item_name: str
    unit_cost: Decimal
    quantity: int
    description: str | None = None


@dataclass(slots=True)
class QuotationData:
    quote_number: str | None = None
    po_number: str | None = None
    client_id: int | None = None
    client_name: str | None = None
    quote_date: datetime | None = None
    valid_until: datetime | None = None
    partial_deposit: Decimal | None = None
    discount_type: str | None = None
    discount: Decimal | None = None
    project: str | None = None
    assigned_user: str | None = None
    exchange_rate: Decimal | None = None
    vendor: str | None = None
    design: str | None = None
    inclusive_taxes: bool | None = None
    items: list[LineItemData] | None = None


@dataclass(frozen=True, slots=True)
class QuotationTotals:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    net_amount: Decimal


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Q2, rounding=ROUND_HALF_UP)


def line_total(unit_cost: Decimal, quantity: int) -> Decimal:
    # Costs are stored to the cent; the total must match the stored cost.
    return _money(_money(unit_cost) * quantity)


def compute_totals(line_totals: Iterable[Decimal], discount_type: str | None, discount: Decimal | None) -> QuotationTotals:
    """Subtotal, discount amount, total and net amount for a set of line totals.

    A ``percentage`` discount type (any case) treats ``discount`` as a percent of
    the subtotal; every other type treats it as a flat amount.
    """

    subtotal = _money(sum(line_totals, ZERO))
    discount_value = Decimal(discount or 0)
    if (discount_type or "").strip().lower() == DiscountType.PERCENTAGE.value:
        discount_amount = _money(subtotal * discount_value / 100)
    else:
        discount_amount = _money(discount_value)
    total = _money(subtotal - discount_amount)
    return QuotationTotals(subtotal=subtotal, discount_amount=discount_amount, total=total, net_amount=total)


def canonical_status(value: str | None) -> str | None:
    normalized = (value or "").strip().lower()
    for candidate in QuotationStatus:
        if candidate.value.lower() == normalized:
            return candidate.value
    return None


def format_quote_number(number: int) -> str:
    return f"{number:04d}"


class QuotationService:
    """Quotation lifecycle. Non-admin callers only reach quotations they created or are assigned to."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.activity = ActivityLogger(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_line_item(line: QuotationItem) -> dict[str, object]:
        return {
            "id": line.id,
            "item_name": line.item_name,
            "description": line.description,
            "unit_cost": str(line.unit_cost),
            "quantity": line.quantity,
            "line_total": str(line.line_total),
        }

    @staticmethod
    def serialize_summary(quotation: Quotation) -> dict[str, object]:
        return {
            "id": quotation.id,
            "quote_number": quotation.quote_number,
            "client_id": quotation.client_id,
            "client_name": quotation.client_name,
            "quote_date": quotation.quote_date.isoformat(),
            "valid_until": quotation.valid_until.isoformat() if quotation.valid_until else None,
            "total": str(quotation.total),
            "status": quotation.status,
            "assigned_user": quotation.assigned_user,
            "created_by_email": quotation.created_by_email,
        }

    @classmethod
    def serialize_quotation(cls, quotation: Quotation) -> dict[str, object]:
        payload = cls.serialize_summary(quotation)
        payload.update(
            {
                "po_number": quotation.po_number,
                "partial_deposit": str(quotation.partial_deposit),
                "discount_type": quotation.discount_type,
                "discount": str(quotation.discount),
                "subtotal": str(quotation.subtotal),
                "discount_amount": str(quotation.discount_amount),
                "net_amount": str(quotation.net_amount),
                "project": quotation.project,
                "exchange_rate": str(quotation.exchange_rate) if quotation.exchange_rate is not None else None,
                "vendor": quotation.vendor,
                "design": quotation.design,
                "inclusive_taxes": quotation.inclusive_taxes,
                "created_at": quotation.created_at.isoformat(),
                "updated_at": quotation.updated_at.isoformat(),
                "items": [cls.serialize_line_item(line) for line in quotation.items],
            }
        )
        return payload

    # ---------- Helpers ----------
    @staticmethod
    def _scope(context: RequestUserContext) -> OwnerScope | None:
        if context.is_admin:
            return None
        return OwnerScope(user_id=context.user_id, email=context.email)

    def _get_quotation_or_404(self, context: RequestUserContext, quotation_id: int) -> Quotation:
        quotation = self.repo.get_quotation(quotation_id, scope=self._scope(context))
        if quotation is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Quotation with ID {quotation_id} not found.",
            )
        return quotation

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Quotation could not be saved because it conflicts with existing data.",
            ) from exc

    @staticmethod
    def _validate_lines(lines: list[LineItemData]) -> None:
        for line in lines:
            if not (line.item_name or "").strip():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Every item needs a name.")
            if line.unit_cost < 0 or line.quantity < 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Item cost and quantity cannot be negative.",
                )

    @staticmethod
    def _build_lines(lines: list[LineItemData]) -> list[QuotationItem]:
        items: list[QuotationItem] = []
        for position, line in enumerate(lines):
            cost = _money(line.unit_cost)
            items.append(
                QuotationItem(
                    position=position,
                    item_name=line.item_name.strip(),
                    description=line.description,
                    unit_cost=cost,
                    quantity=line.quantity,
                    line_total=line_total(cost, line.quantity),
                )
            )
        return items

    @staticmethod
    def _apply_totals(quotation: Quotation) -> None:
        totals = compute_totals(
            (line.line_total for line in quotation.items),
            quotation.discount_type,
            quotation.discount,
        )
        quotation.subtotal = totals.subtotal
        quotation.discount_amount = totals.discount_amount
        quotation.total = totals.total
        quotation.net_amount = totals.net_amount

    def _resolve_client_name(self, client_id: int | None, client_name: str | None) -> str | None:
        if client_name and client_name.strip():
            return client_name.strip()
        if client_id is None:
            return client_name
        return self.repo.client_names_by_id([client_id]).get(client_id, client_name)

    # ---------- Queries ----------
    def list_quotations(
        self,
        *,
        context: RequestUserContext,
        status_filter: str | None = None,
        search: str | None = None,
    ) -> list[Quotation]:
        if status_filter and status_filter.strip().lower() == "all":
            status_filter = None
        return self.repo.list_quotations(scope=self._scope(context), status=status_filter, search=search)

    def next_number(self) -> str:
        last = self.repo.last_quotation()
        if last is None:
            return format_quote_number(1)
        try:
            return format_quote_number(int(last.quote_number) + 1)
        except (TypeError, ValueError):
            return format_quote_number(last.id + 1)

    def get_quotation(self, *, context: RequestUserContext, quotation_id: int) -> Quotation:
        return self._get_quotation_or_404(context, quotation_id)

    # ---------- Mutations ----------
    def create_quotation(self, *, context: RequestUserContext, data: QuotationData) -> Quotation:
        lines = data.items or []
        self._validate_lines(lines)
        if data.discount is not None and data.discount < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Discount cannot be negative.")

        now = utcnow()
        quotation = Quotation(
            quote_number=(data.quote_number or "").strip() or self.next_number(),
            po_number=data.po_number,
            client_id=data.client_id,
            client_name=self._resolve_client_name(data.client_id, data.client_name),
            quote_date=data.quote_date or now,
            valid_until=data.valid_until,
            partial_deposit=_money(data.partial_deposit or ZERO),
            discount_type=data.discount_type or DiscountType.AMOUNT.value,
            discount=_money(data.discount or ZERO),
            status=QuotationStatus.DRAFT.value,
            project=data.project,
            assigned_user=data.assigned_user,
            exchange_rate=data.exchange_rate,
            vendor=data.vendor,
            design=data.design,
            inclusive_taxes=bool(data.inclusive_taxes),
            created_by_id=context.user_id,
            created_by_email=context.email,
            created_at=now,
            updated_at=now,
        )
        quotation.items = self._build_lines(lines)
        self._apply_totals(quotation)

        try:
            self.repo.add_quotation(quotation)
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Quotation could not be saved because it conflicts with existing data.",
            ) from exc
        self._commit()
        self.db.refresh(quotation)

        self.activity.log(
            "Quotation",
            quotation.id,
            "Create",
            f"Created quotation: {quotation.quote_number}",
            context=context,
        )
        return quotation

    def update_quotation(self, *, context: RequestUserContext, quotation_id: int, data: QuotationData) -> Quotation:
        quotation = self._get_quotation_or_404(context, quotation_id)
        if data.items is not None:
            self._validate_lines(data.items)
        if data.discount is not None and data.discount < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Discount cannot be negative.")

        for name in ("quote_number", "po_number", "project", "assigned_user", "vendor", "design"):
            value = getattr(data, name)
            if value is not None:
                setattr(quotation, name, value)
        if data.client_id is not None:
            quotation.client_id = data.client_id
        if data.client_id is not None or data.client_name is not None:
            quotation.client_name = self._resolve_client_name(quotation.client_id, data.client_name)
        if data.quote_date is not None:
            quotation.quote_date = data.quote_date
        if data.valid_until is not None:
            quotation.valid_until = data.valid_until
        if data.partial_deposit is not None:
            quotation.partial_deposit = _money(data.partial_deposit)
        if data.exchange_rate is not None:
            quotation.exchange_rate = data.exchange_rate
        if data.inclusive_taxes is not None:
            quotation.inclusive_taxes = data.inclusive_taxes

        discount_changed = data.discount_type is not None or data.discount is not None
        if data.discount_type is not None:
            quotation.discount_type = data.discount_type
        if data.discount is not None:
            quotation.discount = _money(data.discount)

        if data.items is not None:
            quotation.items = self._build_lines(data.items)
        if data.items is not None or discount_changed:
            self._apply_totals(quotation)
        quotation.updated_at = utcnow()

        self._commit()
        self.db.refresh(quotation)

        self.activity.log(
            "Quotation",
            quotation.id,
            "Update",
            f"Updated quotation: {quotation.quote_number}",
            context=context,
        )
        return quotation

    def update_status(self, *, context: RequestUserContext, quotation_id: int, new_status: str | None) -> Quotation:
        canonical = canonical_status(new_status)
        if canonical is None:
            allowed = ", ".join(candidate.value for candidate in QuotationStatus)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown quotation status '{new_status}'. Allowed values: {allowed}.",
            )
        quotation = self._get_quotation_or_404(context, quotation_id)
        previous = quotation.status
        quotation.status = canonical
        quotation.updated_at = utcnow()

        self._commit()
        self.db.refresh(quotation)

        self.activity.log(
            "Quotation",
            quotation.id,
            "Update",
            f"Changed quotation {quotation.quote_number} status from {previous} to {canonical}",
            context=context,
        )
        return quotation

    def delete_quotation(self, *, context: RequestUserContext, quotation_id: int) -> None:
        quotation = self._get_quotation_or_404(context, quotation_id)
        quote_number = quotation.quote_number
        self.repo.delete_quotation(quotation)
        self._commit()

        self.activity.log("Quotation", quotation_id, "Delete", f"Deleted quotation: {quote_number}", context=context)
