"""Tabular report generation over clients, catalog, quotations, users and audit logs."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session

from quotegen.core.config import get_settings
from quotegen.repositories.sales_repository import SalesRepository

logger = logging.getLogger(__name__)

CellValue = str | int | Decimal | bool | None

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

_EXTRA_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%d %b %Y",
    "%b %d %Y",
)

# Audit rows are written with both spellings ("Create" and "Created").
ACTION_SYNONYMS: dict[str, frozenset[str]] = {
    "create": frozenset({"create", "created"}),
    "created": frozenset({"create", "created"}),
    "update": frozenset({"update", "updated"}),
    "updated": frozenset({"update", "updated"}),
    "delete": frozenset({"delete", "deleted"}),
    "deleted": frozenset({"delete", "deleted"}),
}
DELETE_ACTIONS = ACTION_SYNONYMS["delete"]


class ColumnKind(str, Enum):
    TEXT = "text"
    DECIMAL = "decimal"
    INTEGER = "integer"
    BOOLEAN = "boolean"


@dataclass(frozen=True, slots=True)
class ReportColumn:
    name: str
    kind: ColumnKind = ColumnKind.TEXT


@dataclass(slots=True)
class ReportTable:
    """Ordered typed columns plus rows of native cell values."""

    title: str
    columns: list[ReportColumn]
    rows: list[list[CellValue]] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def column_index(self, name: str) -> int | None:
        """Resolve a column by exact name, then case-insensitively."""

        for index, column in enumerate(self.columns):
            if column.name == name:
                return index
        lowered = name.lower()
        for index, column in enumerate(self.columns):
            if column.name.lower() == lowered:
                return index
        return None

    def as_dicts(self) -> list[dict[str, CellValue]]:
        names = self.column_names
        return [dict(zip(names, row)) for row in self.rows]


@dataclass(slots=True)
class ReportFilters:
    start_date: str | None = None
    end_date: str | None = None
    action_type: str | None = None
    activity: str | None = None
    entity_name: str | None = None
    status: str | None = None
    client: str | None = None
    user: str | None = None
    search: str | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    include_deleted: bool = False


@dataclass(slots=True)
class ReportOptions:
    group_by: str | None = None
    sort_by: str | None = None
    format: str | None = None
    send_email: bool = False


@dataclass(slots=True)
class ReportRequest:
    report_type: str = "Activity"
    action_type: str | None = None
    filters: ReportFilters = field(default_factory=ReportFilters)
    options: ReportOptions = field(default_factory=ReportOptions)

    @property
    def effective_action_type(self) -> str | None:
        return self.filters.action_type or self.filters.activity or self.action_type


@dataclass(slots=True)
class ReportQuery:
    """Normalized filter values shared by every report builder."""

    start_at: datetime | None
    end_at: datetime | None
    action_names: set[str] | None
    entity_name: str | None


@dataclass(frozen=True, slots=True)
class ReportDefinition:
    name: str
    columns: tuple[ReportColumn, ...]
    status_column: str | None = None
    amount_column: str | None = None
    client_columns: tuple[str, ...] = ()
    user_columns: tuple[str, ...] = ()


ACTIVITY_REPORT = ReportDefinition(
    name="Activity",
    columns=(
        ReportColumn("Date"),
        ReportColumn("Entity"),
        ReportColumn("Record ID", ColumnKind.INTEGER),
        ReportColumn("Action"),
        ReportColumn("Description"),
        ReportColumn("Performed By"),
    ),
    user_columns=("Performed By",),
)
CLIENTS_REPORT = ReportDefinition(
    name="Clients",
    columns=(
        ReportColumn("Client Name"),
        ReportColumn("Email"),
        ReportColumn("Phone"),
        ReportColumn("Address"),
        ReportColumn("Status"),
        ReportColumn("Created Date"),
    ),
    status_column="Status",
    client_columns=("Client Name",),
)
PRODUCTS_REPORT = ReportDefinition(
    name="Products",
    columns=(
        ReportColumn("Product Name"),
        ReportColumn("SKU"),
        ReportColumn("Category"),
        ReportColumn("Price", ColumnKind.DECIMAL),
        ReportColumn("Stock", ColumnKind.INTEGER),
        ReportColumn("Created Date"),
    ),
    amount_column="Price",
)
USERS_REPORT = ReportDefinition(
    name="Users",
    columns=(
        ReportColumn("User Name"),
        ReportColumn("Email"),
        ReportColumn("Role"),
        ReportColumn("Status"),
        ReportColumn("Created Date"),
    ),
    status_column="Status",
    user_columns=("User Name", "Email"),
)
INVOICES_REPORT = ReportDefinition(
    name="Invoices",
    columns=(
        ReportColumn("Invoice ID", ColumnKind.INTEGER),
        ReportColumn("Client"),
        ReportColumn("Amount", ColumnKind.DECIMAL),
        ReportColumn("Date"),
        ReportColumn("Status"),
        ReportColumn("Due Date"),
    ),
    status_column="Status",
    amount_column="Amount",
    client_columns=("Client",),
)
QUOTES_REPORT = ReportDefinition(
    name="Quotes",
    columns=(
        ReportColumn("Quote ID", ColumnKind.INTEGER),
        ReportColumn("Client"),
        ReportColumn("Amount", ColumnKind.DECIMAL),
        ReportColumn("Date"),
        ReportColumn("Status"),
        ReportColumn("Expiry Date"),
    ),
    status_column="Status",
    amount_column="Amount",
    client_columns=("Client",),
)

REPORT_DEFINITIONS: dict[str, ReportDefinition] = {
    definition.name.lower(): definition
    for definition in (
        ACTIVITY_REPORT,
        CLIENTS_REPORT,
        PRODUCTS_REPORT,
        USERS_REPORT,
        INVOICES_REPORT,
        QUOTES_REPORT,
    )
}


def resolve_report_definition(report_type: str | None) -> ReportDefinition:
    """Look up a report type case-insensitively; unknown types fall back to Activity."""

    if not report_type:
        return ACTIVITY_REPORT
    return REPORT_DEFINITIONS.get(report_type.strip().lower(), ACTIVITY_REPORT)


def parse_report_date(value: str | None) -> datetime | None:
    """Parse a loosely formatted date string into naive UTC; invalid input yields ``None``."""

    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _EXTRA_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def end_of_day(value: datetime) -> datetime:
    """Start of the following calendar day minus one second."""

    return datetime.combine(value.date(), time.min) + timedelta(days=1) - timedelta(seconds=1)


def resolve_date_window(start_value: str | None, end_value: str | None) -> tuple[datetime | None, datetime | None]:
    start_at = parse_report_date(start_value)
    end_at = parse_report_date(end_value)
    if end_at is not None:
        end_at = end_of_day(end_at)
    return start_at, end_at


def resolve_action_names(action_type: str | None) -> set[str] | None:
    """Lower-case action spellings to match, or ``None`` when the filter is off."""

    if action_type is None:
        return None
    normalized = action_type.strip().lower()
    if not normalized or normalized == "all":
        return None
    return set(ACTION_SYNONYMS.get(normalized, {normalized}))


def parse_sort_directive(sort_by: str | None, column_names: list[str]) -> tuple[str, bool] | None:
    """Resolve ``Column``, ``Column ASC|DESC``, ``Column:dir`` or ``Column|dir``.

    Returns the matched column name and whether the order is descending, or
    ``None`` when no column matches. Direction tokens starting with ``d`` mean
    descending.
    """

    if not sort_by or not sort_by.strip() or not column_names:
        return None

    raw = sort_by.strip()
    candidates: list[tuple[str, bool]] = []
    if ":" in raw:
        column, direction = raw.split(":", 1)
        candidates.append((column.strip(), direction.strip().lower().startswith("d")))
    elif "|" in raw:
        column, direction = raw.split("|", 1)
        candidates.append((column.strip(), direction.strip().lower().startswith("d")))
    else:
        # Column names may contain spaces ("Created Date").
        candidates.append((raw, False))
        parts = raw.rsplit(None, 1)
        if len(parts) == 2:
            candidates.append((parts[0].strip(), parts[1].strip().lower().startswith("d")))

    for column, descending in candidates:
        if column in column_names:
            return column, descending
    for column, descending in candidates:
        lowered = column.lower()
        for name in column_names:
            if name.lower() == lowered:
                return name, descending
    return None


def _sort_key(value: CellValue) -> tuple:
    if value is None:
        return (0, "")
    if isinstance(value, str):
        return (1, value.casefold())
    return (1, value)


def sort_table(table: ReportTable, sort_by: str | None) -> ReportTable:
    """Sort rows in place by the directive; failures leave the table unsorted."""

    if not sort_by or not table.columns:
        return table
    try:
        directive = parse_sort_directive(sort_by, table.column_names)
        if directive is None:
            return table
        column, descending = directive
        index = table.column_index(column)
        table.rows = sorted(table.rows, key=lambda row: _sort_key(row[index]), reverse=descending)
    except Exception:
        logger.warning("Failed to apply sort: %s", sort_by, exc_info=True)
    return table


def _text(value: object | None) -> str:
    return "" if value is None else str(value)


def _format_datetime(value: datetime | None, fmt: str = DATETIME_FORMAT) -> str:
    return value.strftime(fmt) if value is not None else ""


class ReportService:
    """Builds report tables; JSON rows and exports share one row builder."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.settings = get_settings()

    # ---------- Public API ----------
    def generate_rows(self, request: ReportRequest) -> list[dict[str, CellValue]]:
        return self.generate_table(request).as_dicts()

    def generate_table(self, request: ReportRequest) -> ReportTable:
        definition = resolve_report_definition(request.report_type)
        filters = request.filters
        start_at, end_at = resolve_date_window(filters.start_date, filters.end_date)
        action_type = request.effective_action_type
        query = ReportQuery(
            start_at=start_at,
            end_at=end_at,
            action_names=resolve_action_names(action_type),
            entity_name=filters.entity_name.strip() if filters.entity_name and filters.entity_name.strip() else None,
        )

        logger.info(
            "Report request type=%s action=%s start=%s end=%s sort=%s",
            definition.name,
            action_type or "all",
            start_at,
            end_at,
            request.options.sort_by,
        )

        builders: dict[str, Callable[[ReportQuery], list[list[CellValue]]]] = {
            "Activity": self._activity_rows,
            "Clients": self._client_rows,
            "Products": self._product_rows,
            "Users": self._user_rows,
            "Invoices": self._invoice_rows,
            "Quotes": self._quote_rows,
        }
        table = ReportTable(
            title=definition.name,
            columns=list(definition.columns),
            rows=builders[definition.name](query),
        )
        self._apply_row_filters(table, definition, filters)
        return sort_table(table, request.options.sort_by)

    # ---------- Row builders ----------
    def _activity_rows(self, query: ReportQuery) -> list[list[CellValue]]:
        logs = self.repo.list_activity_logs_for_report(
            start_at=query.start_at,
            end_at=query.end_at,
            action_names=query.action_names,
            entity_name=query.entity_name,
        )
        return [
            [
                _format_datetime(log.timestamp),
                _text(log.entity_name),
                log.record_id,
                _text(log.action_type),
                _text(log.description),
                _text(log.performed_by),
            ]
            for log in logs
        ]

    def _client_rows(self, query: ReportQuery) -> list[list[CellValue]]:
        clients = self.repo.list_clients_for_report(
            start_at=query.start_at,
            end_at=query.end_at,
            action_names=query.action_names,
            inactive_counts_as_deleted=self._is_delete_filter(query),
        )
        return [
            [
                _text(client.client_name),
                _text(client.client_email),
                client.client_contact_number or client.phone or "",
                _text(client.client_address),
                "Active" if client.is_active else "Inactive",
                _format_datetime(client.created_date),
            ]
            for client in clients
        ]

    def _product_rows(self, query: ReportQuery) -> list[list[CellValue]]:
        items = self.repo.list_items_for_report(
            start_at=query.start_at,
            end_at=query.end_at,
            action_names=query.action_names,
            inactive_counts_as_deleted=self._is_delete_filter(query),
        )
        return [
            [
                _text(item.title),
                str(item.id),
                _text(item.description),
                Decimal(item.price),
                int(item.quantity),
                _format_datetime(item.created_at),
            ]
            for item in items
        ]

    def _user_rows(self, query: ReportQuery) -> list[list[CellValue]]:
        users = self.repo.list_users_for_report(
            start_at=query.start_at,
            end_at=query.end_at,
            action_names=query.action_names,
        )
        return [
            [
                user.full_name,
                _text(user.email),
                user.role or "User",
                "Active",
                _format_datetime(user.created_at),
            ]
            for user in users
        ]

    def _quotation_rows(self, query: ReportQuery) -> list[list[CellValue]]:
        quotations = self.repo.list_quotations_for_report(
            start_at=query.start_at,
            end_at=query.end_at,
            action_names=query.action_names,
        )
        client_names = self.repo.client_names_by_id(
            quotation.client_id for quotation in quotations if quotation.client_id is not None
        )
        return [
            [
                quotation.id,
                quotation.client_name or client_names.get(quotation.client_id, ""),
                Decimal(quotation.total),
                _format_datetime(quotation.quote_date, DATE_FORMAT),
                _text(quotation.status),
                _format_datetime(quotation.valid_until, DATE_FORMAT),
            ]
            for quotation in quotations
        ]

    # Invoices are quotations viewed through the billing columns.
    _invoice_rows = _quotation_rows
    _quote_rows = _quotation_rows

    @staticmethod
    def _is_delete_filter(query: ReportQuery) -> bool:
        return query.action_names is not None and bool(query.action_names & DELETE_ACTIONS)

    # ---------- Row filters ----------
    @staticmethod
    def _apply_row_filters(table: ReportTable, definition: ReportDefinition, filters: ReportFilters) -> None:
        predicates: list[Callable[[list[CellValue]], bool]] = []

        status_filter = (filters.status or "").strip().lower()
        if status_filter and status_filter != "all" and definition.status_column:
            index = table.column_index(definition.status_column)
            predicates.append(lambda row, i=index: _text(row[i]).lower() == status_filter)

        client_filter = (filters.client or "").strip().lower()
        if client_filter and definition.client_columns:
            indexes = [table.column_index(name) for name in definition.client_columns]
            predicates.append(
                lambda row, ix=indexes: any(client_filter in _text(row[i]).lower() for i in ix)
            )

        user_filter = (filters.user or "").strip().lower()
        if user_filter and definition.user_columns:
            indexes = [table.column_index(name) for name in definition.user_columns]
            predicates.append(lambda row, ix=indexes: any(user_filter in _text(row[i]).lower() for i in ix))

        if definition.amount_column and (filters.min_amount is not None or filters.max_amount is not None):
            index = table.column_index(definition.amount_column)
            minimum = filters.min_amount
            maximum = filters.max_amount

            def within_amount(row: list[CellValue], i: int = index) -> bool:
                value = row[i]
                if value is None:
                    return False
                if minimum is not None and value < minimum:
                    return False
                if maximum is not None and value > maximum:
                    return False
                return True

            predicates.append(within_amount)

        search = (filters.search or "").strip().lower()
        if search:
            text_indexes = [
                index for index, column in enumerate(table.columns) if column.kind == ColumnKind.TEXT
            ]
            predicates.append(
                lambda row, ix=text_indexes: any(search in _text(row[i]).lower() for i in ix)
            )

        if predicates:
            table.rows = [row for row in table.rows if all(predicate(row) for predicate in predicates)]
