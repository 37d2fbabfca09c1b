"""Repository helpers for the clients, catalog, quotation and audit domain."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import and_, false, func, not_, or_, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from quotegen.models.entities import ActivityLog, Client, Item, Quotation, User


@dataclass(frozen=True, slots=True)
class OwnerScope:
    """Row visibility for a non-admin caller. ``None`` scope means unrestricted."""

    user_id: int | None
    email: str | None

    @property
    def normalized_email(self) -> str | None:
        if not self.email or not self.email.strip():
            return None
        return self.email.strip().lower()


def _lower_equals(column: Any, value: str) -> ColumnElement[bool]:
    return and_(column.is_not(None), func.lower(column) == value)


def quotation_scope_clause(scope: OwnerScope) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    if scope.user_id is not None:
        clauses.append(Quotation.created_by_id == scope.user_id)
    email = scope.normalized_email
    if email is not None:
        clauses.append(_lower_equals(Quotation.created_by_email, email))
        clauses.append(_lower_equals(Quotation.assigned_user, email))
    if not clauses:
        return false()
    return or_(*clauses)


def client_scope_clause(scope: OwnerScope) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    if scope.user_id is not None:
        clauses.append(Client.created_by_id == scope.user_id)
    email = scope.normalized_email
    if email is not None:
        clauses.append(_lower_equals(Client.assigned_user, email))
    if not clauses:
        return false()
    return or_(*clauses)


def activity_scope_clause(scope: OwnerScope) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    if scope.user_id is not None:
        clauses.append(ActivityLog.user_id == scope.user_id)
    email = scope.normalized_email
    if email is not None:
        clauses.append(_lower_equals(ActivityLog.performed_by, email))
        clauses.append(_lower_equals(ActivityLog.performed_by_email, email))
    if not clauses:
        return false()
    return or_(*clauses)


def _contains_ci(column: Any, term: str) -> ColumnElement[bool]:
    return and_(column.is_not(None), func.lower(column).contains(term.lower(), autoescape=True))


class SalesRepository:
    """Persistence operations used by the CRUD, reporting and dashboard services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Users ----------
    def get_user(self, user_id: int) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(func.lower(User.email) == email.strip().lower()))

    def email_in_use(self, email: str, *, exclude_user_id: int | None = None) -> bool:
        stmt = select(User.id).where(func.lower(User.email) == email.strip().lower())
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        return self.db.scalar(stmt.limit(1)) is not None

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def list_users_for_report(
        self,
        *,
        start_at: datetime | None,
        end_at: datetime | None,
        action_names: set[str] | None,
    ) -> list[User]:
        stmt = select(User)
        stmt = self._apply_report_window(stmt, User.created_at, start_at, end_at)
        if action_names is not None:
            stmt = stmt.where(User.id.in_(self._logged_record_ids("User", action_names)))
        return self.db.scalars(stmt.order_by(User.id.asc())).all()

    # ---------- Clients ----------
    def get_client(self, client_id: int) -> Client | None:
        return self.db.scalar(
            select(Client).options(selectinload(Client.contacts)).where(Client.id == client_id)
        )

    def list_clients(self, *, search: str | None = None, is_active: bool | None = None) -> list[Client]:
        stmt = select(Client)
        if search:
            term = search.strip()
            stmt = stmt.where(
                or_(
                    _contains_ci(Client.client_name, term),
                    _contains_ci(Client.name, term),
                    _contains_ci(Client.client_email, term),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Client.is_active.is_(is_active))
        return self.db.scalars(stmt.order_by(Client.created_date.desc(), Client.id.desc())).all()

    def list_clients_by_ids(self, client_ids: Iterable[int]) -> list[Client]:
        ids = list(dict.fromkeys(client_ids))
        if not ids:
            return []
        return self.db.scalars(select(Client).where(Client.id.in_(ids)).order_by(Client.id.asc())).all()

    def last_client_id(self) -> int:
        return self.db.scalar(select(func.max(Client.id))) or 0

    def add_client(self, client: Client) -> Client:
        self.db.add(client)
        self.db.flush()
        return client

    def delete_client(self, client: Client) -> None:
        self.db.delete(client)
        self.db.flush()

    def count_clients(self, scope: OwnerScope | None = None) -> int:
        stmt = select(func.count(Client.id))
        if scope is not None:
            stmt = stmt.where(client_scope_clause(scope))
        return int(self.db.scalar(stmt) or 0)

    def recent_clients(self, *, limit: int, scope: OwnerScope | None = None) -> list[Client]:
        stmt = select(Client)
        if scope is not None:
            stmt = stmt.where(client_scope_clause(scope))
        return self.db.scalars(
            stmt.order_by(Client.created_date.desc(), Client.id.desc()).limit(limit)
        ).all()

    def list_clients_for_report(
        self,
        *,
        start_at: datetime | None,
        end_at: datetime | None,
        action_names: set[str] | None,
        inactive_counts_as_deleted: bool,
    ) -> list[Client]:
        stmt = select(Client)
        stmt = self._apply_report_window(stmt, Client.created_date, start_at, end_at)
        if action_names is not None:
            logged = Client.id.in_(self._logged_record_ids("Client", action_names))
            if inactive_counts_as_deleted:
                logged = or_(logged, Client.is_active.is_(False))
            stmt = stmt.where(logged)
        return self.db.scalars(stmt.order_by(Client.id.asc())).all()

    # ---------- Items ----------
    def get_item(self, item_id: int) -> Item | None:
        return self.db.scalar(select(Item).where(Item.id == item_id))

    def list_items(self, *, search: str | None = None, is_active: bool | None = None) -> list[Item]:
        stmt = select(Item)
        if search:
            term = search.strip()
            stmt = stmt.where(or_(_contains_ci(Item.title, term), _contains_ci(Item.description, term)))
        if is_active is not None:
            stmt = stmt.where(Item.is_active.is_(is_active))
        return self.db.scalars(stmt.order_by(Item.created_at.desc(), Item.id.desc())).all()

    def list_items_by_ids(self, item_ids: Iterable[int]) -> list[Item]:
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return []
        return self.db.scalars(select(Item).where(Item.id.in_(ids)).order_by(Item.id.asc())).all()

    def add_item(self, item: Item) -> Item:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, item: Item) -> None:
        self.db.delete(item)
        self.db.flush()

    def count_items(self) -> int:
        return int(self.db.scalar(select(func.count(Item.id))) or 0)

    def list_items_for_report(
        self,
        *,
        start_at: datetime | None,
        end_at: datetime | None,
        action_names: set[str] | None,
        inactive_counts_as_deleted: bool,
    ) -> list[Item]:
        stmt = select(Item)
        stmt = self._apply_report_window(stmt, Item.created_at, start_at, end_at)
        if action_names is not None:
            logged = Item.id.in_(self._logged_record_ids("Item", action_names))
            if inactive_counts_as_deleted:
                logged = or_(logged, Item.is_active.is_(False))
            stmt = stmt.where(logged)
        return self.db.scalars(stmt.order_by(Item.id.asc())).all()

    # ---------- Quotations ----------
    def get_quotation(self, quotation_id: int, scope: OwnerScope | None = None) -> Quotation | None:
        stmt = (
            select(Quotation)
            .options(selectinload(Quotation.items))
            .where(Quotation.id == quotation_id)
        )
        if scope is not None:
            stmt = stmt.where(quotation_scope_clause(scope))
        return self.db.scalar(stmt)

    def list_quotations(
        self,
        *,
        scope: OwnerScope | None = None,
        status: str | None = None,
        search: str | None = None,
    ) -> list[Quotation]:
        stmt = select(Quotation)
        if scope is not None:
            stmt = stmt.where(quotation_scope_clause(scope))
        if status:
            stmt = stmt.where(func.lower(Quotation.status) == status.strip().lower())
        if search:
            term = search.strip()
            stmt = stmt.where(or_(_contains_ci(Quotation.client_name, term), _contains_ci(Quotation.quote_number, term)))
        return self.db.scalars(stmt.order_by(Quotation.created_at.desc(), Quotation.id.desc())).all()

    def last_quotation(self) -> Quotation | None:
        return self.db.scalar(select(Quotation).order_by(Quotation.id.desc()).limit(1))

    def add_quotation(self, quotation: Quotation) -> Quotation:
        self.db.add(quotation)
        self.db.flush()
        return quotation

    def delete_quotation(self, quotation: Quotation) -> None:
        self.db.delete(quotation)
        self.db.flush()

    def list_quotations_in_window(
        self,
        *,
        start_at: datetime,
        end_at: datetime,
        scope: OwnerScope | None = None,
    ) -> list[Quotation]:
        stmt = select(Quotation).where(and_(Quotation.quote_date >= start_at, Quotation.quote_date <= end_at))
        if scope is not None:
            stmt = stmt.where(quotation_scope_clause(scope))
        return self.db.scalars(stmt.order_by(Quotation.quote_date.asc(), Quotation.id.asc())).all()

    def recent_quotations(self, *, limit: int, scope: OwnerScope | None = None) -> list[Quotation]:
        stmt = select(Quotation)
        if scope is not None:
            stmt = stmt.where(quotation_scope_clause(scope))
        return self.db.scalars(
            stmt.order_by(Quotation.quote_date.desc(), Quotation.id.desc()).limit(limit)
        ).all()

    def _assigned_quotations_stmt(self, assignee_names: list[str], status: str | None):
        stmt = select(Quotation).where(Quotation.assigned_user.in_(assignee_names))
        if status:
            stmt = stmt.where(Quotation.status == status)
        return stmt

    def list_quotations_assigned_to(
        self,
        assignee_names: list[str],
        *,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Quotation]:
        if not assignee_names:
            return []
        stmt = self._assigned_quotations_stmt(assignee_names, status).order_by(
            Quotation.created_at.desc(), Quotation.id.desc()
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.db.scalars(stmt).all()

    def count_quotations_assigned_to(self, assignee_names: list[str], *, status: str | None = None) -> int:
        if not assignee_names:
            return 0
        subquery = self._assigned_quotations_stmt(assignee_names, status).subquery()
        return int(self.db.scalar(select(func.count()).select_from(subquery)) or 0)

    def list_quotations_for_report(
        self,
        *,
        start_at: datetime | None,
        end_at: datetime | None,
        action_names: set[str] | None,
    ) -> list[Quotation]:
        stmt = select(Quotation)
        stmt = self._apply_report_window(stmt, Quotation.quote_date, start_at, end_at)
        if action_names is not None:
            stmt = stmt.where(Quotation.id.in_(self._logged_record_ids("Quotation", action_names)))
        return self.db.scalars(stmt.order_by(Quotation.id.asc())).all()

    def client_names_by_id(self, client_ids: Iterable[int]) -> dict[int, str]:
        ids = [client_id for client_id in dict.fromkeys(client_ids) if client_id is not None]
        if not ids:
            return {}
        rows = self.db.execute(select(Client.id, Client.client_name).where(Client.id.in_(ids))).all()
        return {row.id: row.client_name for row in rows}

    # ---------- Activity logs ----------
    def add_activity_log(self, entry: ActivityLog) -> ActivityLog:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_activity_logs(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        action_names: set[str] | None = None,
        entity_name: str | None = None,
        record_id: int | None = None,
        hide_admin_entries: bool = False,
        admin_roles: Iterable[str] = (),
    ) -> list[ActivityLog]:
        stmt = select(ActivityLog)
        stmt = self._apply_report_window(stmt, ActivityLog.timestamp, start_at, end_at)
        if action_names is not None:
            stmt = stmt.where(func.lower(ActivityLog.action_type).in_(sorted(action_names)))
        if entity_name:
            stmt = stmt.where(func.lower(ActivityLog.entity_name) == entity_name.strip().lower())
        if record_id is not None:
            stmt = stmt.where(ActivityLog.record_id == record_id)
        if hide_admin_entries:
            roles = sorted({role.strip().lower() for role in admin_roles if role.strip()})
            stmt = stmt.outerjoin(User, User.id == ActivityLog.user_id).where(
                or_(
                    and_(
                        ActivityLog.user_id.is_(None),
                        not_(func.lower(func.coalesce(ActivityLog.performed_by, "")).contains("admin")),
                    ),
                    and_(
                        ActivityLog.user_id.is_not(None),
                        not_(func.lower(func.coalesce(User.role, "")).in_(roles)),
                    ),
                )
            )
        return self.db.scalars(stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())).all()

    def list_activity_logs_for_report(
        self,
        *,
        start_at: datetime | None,
        end_at: datetime | None,
        action_names: set[str] | None,
        entity_name: str | None,
    ) -> list[ActivityLog]:
        stmt = select(ActivityLog)
        stmt = self._apply_report_window(stmt, ActivityLog.timestamp, start_at, end_at)
        if action_names is not None:
            stmt = stmt.where(func.lower(ActivityLog.action_type).in_(sorted(action_names)))
        if entity_name:
            stmt = stmt.where(func.lower(ActivityLog.entity_name) == entity_name.strip().lower())
        return self.db.scalars(stmt.order_by(ActivityLog.timestamp.asc(), ActivityLog.id.asc())).all()

    def recent_activity_logs(self, *, limit: int, scope: OwnerScope | None = None) -> list[ActivityLog]:
        stmt = select(ActivityLog)
        if scope is not None:
            stmt = stmt.where(activity_scope_clause(scope))
        return self.db.scalars(
            stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit)
        ).all()

    # ---------- Report helpers ----------
    @staticmethod
    def _apply_report_window(stmt, column: Any, start_at: datetime | None, end_at: datetime | None):
        if start_at is not None:
            stmt = stmt.where(column >= start_at)
        if end_at is not None:
            stmt = stmt.where(column <= end_at)
        return stmt

    @staticmethod
    def _logged_record_ids(entity_name: str, action_names: set[str]):
        return select(ActivityLog.record_id).where(
            and_(
                ActivityLog.entity_name == entity_name,
                func.lower(ActivityLog.action_type).in_(sorted(action_names)),
            )
        )
