"""Registration, login, profile and user settings service layer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from urllib.parse import urlparse

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, build_user_context, issue_token
from quotegen.core.config import get_settings
from quotegen.core.security import hash_password, token_expiry, utcnow, verify_password
from quotegen.models.entities import Quotation, User, UserRole
from quotegen.repositories.sales_repository import SalesRepository
from quotegen.services.activity_logger import ActivityLogger

MIN_PASSWORD_LENGTH = 6
PROFILE_RECENT_QUOTATIONS = 10
ZERO = Decimal("0.00")


@dataclass(slots=True)
class RegistrationData:
    first_name: str
    last_name: str
    email: str
    password: str
    confirm_password: str
    terms: bool


@dataclass(slots=True)
class AdminRegistrationData:
    first_name: str
    last_name: str
    email: str
    password: str
    role: str


@dataclass(slots=True)
class ProfileUpdateData:
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    language: str | None = None
    preferred_contact_method: str | None = None
    notifications: bool | None = None


@dataclass(slots=True)
class PasswordChangeData:
    current_password: str
    new_password: str
    confirm_password: str


@dataclass(slots=True)
class UserSettingsData:
    id: int
    first_name: str | None
    last_name: str | None
    email: str | None
    language: str | None
    phone_number: str | None
    address: str | None
    id_number: str | None
    current_password: str | None
    new_password: str | None
    two_factor_auth: bool
    login_notification: bool
    task_assign_notification: bool
    disable_recurring_payment_notification: bool
    all_events: str | None
    invoice_created: str | None
    invoice_sent: str | None
    quote_created: str | None
    quote_sent: str | None
    quote_view: str | None
    payment_details: str | None


@dataclass(slots=True)
class AuthResult:
    user: User
    token: str | None
    expires_at: str | None
    message: str


def _normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A valid email address is required.")
    return normalized


def _validate_new_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
        )


class UserService:
    """Accounts, credentials and per-user preferences."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = SalesRepository(db)
        self.settings = get_settings()
        self.activity = ActivityLogger(db)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_user(user: User) -> dict[str, object]:
        return {
            "id": user.id,
            "first_name": user.first_name or "",
            "last_name": user.last_name or "",
            "email": user.email or "",
            "role": user.role or UserRole.USER.value,
        }

    @classmethod
    def serialize_auth(cls, result: AuthResult) -> dict[str, object]:
        return {
            "success": True,
            "message": result.message,
            "token": result.token,
            "expires_at": result.expires_at,
            "user": cls.serialize_user(result.user),
        }

    @staticmethod
    def serialize_quotation_history(quotation: Quotation) -> dict[str, object]:
        return {
            "id": quotation.id,
            "quote_no": quotation.quote_number,
            "date": quotation.quote_date.isoformat(),
            "status": quotation.status,
            "amount": str(quotation.total),
        }

    @staticmethod
    def serialize_settings(user: User) -> dict[str, object]:
        return {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "language": user.language,
            "phone_number": user.phone_number,
            "address": user.address,
            "id_number": user.id_number,
            "two_factor_auth": user.two_factor_auth,
            "login_notification": user.login_notification,
            "task_assign_notification": user.task_assign_notification,
            "disable_recurring_payment_notification": user.disable_recurring_payment_notification,
            "all_events": user.all_events,
            "invoice_created": user.invoice_created,
            "invoice_sent": user.invoice_sent,
            "quote_created": user.quote_created,
            "quote_sent": user.quote_sent,
            "quote_view": user.quote_view,
            "payment_details": user.payment_details,
        }

    # ---------- Helpers ----------
    def _get_user_or_404(self, user_id: int) -> User:
        user = self.repo.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User with ID {user_id} not found.")
        return user

    def _ensure_email_available(self, email: str, *, exclude_user_id: int | None = None) -> None:
        if self.repo.email_in_use(email, exclude_user_id=exclude_user_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An account with this email already exists.",
            )

    def _commit(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    @staticmethod
    def _assignee_names(user: User) -> list[str]:
        names = [user.email or ""]
        full_name = f"{user.first_name or ''} {user.last_name or ''}"
        if full_name.strip():
            names.append(full_name)
        return [name for name in names if name]

    def _new_user(self, *, first_name: str, last_name: str, email: str, password: str, role: str) -> User:
        now = utcnow()
        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=role,
            two_factor_auth=False,
            login_notification=True,
            task_assign_notification=True,
            disable_recurring_payment_notification=False,
            notifications_enabled=True,
            created_at=now,
            updated_at=now,
        )
        try:
            self.repo.add_user(user)
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists.",
            ) from exc
        self._commit("An account with this email already exists.")
        self.db.refresh(user)
        return user

    # ---------- Authentication ----------
    def register(self, data: RegistrationData) -> AuthResult:
        if not data.terms:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You must accept the Terms of Use & Privacy Policy.",
            )
        if not data.first_name.strip() or not data.last_name.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="First and last name are required.")
        email = _normalize_email(data.email)
        _validate_new_password(data.password)
        if data.password != data.confirm_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match.")
        self._ensure_email_available(email)

        user = self._new_user(
            first_name=data.first_name,
            last_name=data.last_name,
            email=email,
            password=data.password,
            role=UserRole.USER.value,
        )
        self.activity.log(
            "User",
            user.id,
            "Create",
            f"User registered: {user.email}",
            context=build_user_context(user),
        )
        return AuthResult(
            user=user,
            token=issue_token(user),
            expires_at=token_expiry().isoformat(),
            message="Registration successful",
        )

    def login(self, *, email: str, password: str, remember_me: bool = False) -> AuthResult:
        user = self.repo.get_user_by_email(email or "")
        if user is None or not verify_password(password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password.",
            )
        return AuthResult(
            user=user,
            token=issue_token(user, remember_me=remember_me),
            expires_at=token_expiry(remember_me).isoformat(),
            message="Login successful",
        )

    def current_user(self, *, context: RequestUserContext) -> User:
        return self._get_user_or_404(context.user_id)

    def register_by_admin(self, *, context: RequestUserContext, data: AdminRegistrationData) -> User:
        email = _normalize_email(data.email)
        self._ensure_email_available(email)
        if data.role not in {UserRole.USER.value, UserRole.ADMIN.value}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Role must be either 'User' or 'Admin'.",
            )
        _validate_new_password(data.password)

        user = self._new_user(
            first_name=data.first_name,
            last_name=data.last_name,
            email=email,
            password=data.password,
            role=data.role,
        )
        self.activity.log(
            "User",
            user.id,
            "Created",
            f"User '{user.email}' with role '{user.role}' created by admin '{context.email}'",
            context=context,
        )
        return user

    # ---------- Profile ----------
    def profile(self, *, context: RequestUserContext) -> dict[str, object]:
        user = self._get_user_or_404(context.user_id)
        quotations = self.repo.list_quotations_assigned_to(self._assignee_names(user))

        summary = {
            "total": len(quotations),
            "pending": sum(1 for q in quotations if q.status in {"Draft", "Sent"}),
            "approved": sum(1 for q in quotations if q.status == "Accepted"),
            "rejected": sum(1 for q in quotations if q.status in {"Declined", "Expired"}),
            "total_value": str(sum((q.total for q in quotations), ZERO)),
        }
        return {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "phone": user.phone_number,
            "profile_image_url": user.profile_image_url,
            "role": user.role,
            "street": user.street,
            "city": user.city,
            "state": user.state,
            "postal_code": user.postal_code,
            "country": user.country,
            "language": user.language or "English",
            "preferred_contact_method": user.preferred_contact_method or "Email",
            "notifications": user.notifications_enabled,
            "notes": user.notes,
            "quotation_summary": summary,
            "quotations": [
                self.serialize_quotation_history(q) for q in quotations[:PROFILE_RECENT_QUOTATIONS]
            ],
            "created_at": user.created_at.isoformat(),
            "updated_at": user.updated_at.isoformat(),
        }

    def update_profile(self, *, context: RequestUserContext, data: ProfileUpdateData) -> User:
        user = self._get_user_or_404(context.user_id)

        if data.email and data.email.strip().lower() != (user.email or "").lower():
            email = _normalize_email(data.email)
            if self.repo.email_in_use(email, exclude_user_id=user.id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email is already in use by another account.",
                )
            user.email = email

        field_map = {
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone_number": data.phone,
            "street": data.street,
            "city": data.city,
            "state": data.state,
            "postal_code": data.postal_code,
            "country": data.country,
            "language": data.language,
            "preferred_contact_method": data.preferred_contact_method,
            "notifications_enabled": data.notifications,
        }
        for attribute, value in field_map.items():
            if value is not None:
                setattr(user, attribute, value)
        user.updated_at = utcnow()

        self._commit("Email is already in use by another account.")
        self.activity.log("User", user.id, "Update", f"Updated profile: {user.email}", context=context)
        return user

    def change_password(self, *, context: RequestUserContext, data: PasswordChangeData) -> None:
        user = self._get_user_or_404(context.user_id)
        if not verify_password(data.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect.")
        if data.new_password != data.confirm_password:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="New passwords do not match.")
        _validate_new_password(data.new_password)

        user.password_hash = hash_password(data.new_password)
        user.updated_at = utcnow()
        self.db.commit()
        self.activity.log("User", user.id, "Update", f"Changed password: {user.email}", context=context)

    def update_notes(self, *, context: RequestUserContext, notes: str | None) -> None:
        user = self._get_user_or_404(context.user_id)
        user.notes = notes
        user.updated_at = utcnow()
        self.db.commit()
        self.activity.log("User", user.id, "Update", f"Updated notes: {user.email}", context=context)

    def set_profile_image(self, *, context: RequestUserContext, image_url: str | None) -> str:
        user = self._get_user_or_404(context.user_id)
        url = (image_url or "").strip()
        if not url:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image URL is required.")
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid URL format.")

        user.profile_image_url = url
        user.updated_at = utcnow()
        self.db.commit()
        self.activity.log("User", user.id, "Update", f"Updated profile image: {user.email}", context=context)
        return url

    def delete_profile_image(self, *, context: RequestUserContext) -> None:
        user = self._get_user_or_404(context.user_id)
        if not user.profile_image_url:
            return
        user.profile_image_url = None
        user.updated_at = utcnow()
        self.db.commit()
        self.activity.log("User", user.id, "Update", f"Deleted profile image: {user.email}", context=context)

    def quotation_history(
        self,
        *,
        context: RequestUserContext,
        page: int,
        page_size: int,
        status_filter: str | None = None,
    ) -> tuple[list[Quotation], int, int]:
        """Return one page of assigned quotations, the total count and the page count."""

        user = self._get_user_or_404(context.user_id)
        names = self._assignee_names(user)
        total = self.repo.count_quotations_assigned_to(names, status=status_filter)
        rows = self.repo.list_quotations_assigned_to(
            names,
            status=status_filter,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return rows, total, math.ceil(total / page_size)

    # ---------- Settings ----------
    def _ensure_self_or_admin(self, context: RequestUserContext, user_id: int) -> None:
        if context.user_id != user_id and not context.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )

    def get_user_settings(self, *, context: RequestUserContext, user_id: int) -> User:
        self._ensure_self_or_admin(context, user_id)
        return self._get_user_or_404(user_id)

    def update_user_settings(self, *, context: RequestUserContext, user_id: int, data: UserSettingsData) -> None:
        if user_id != data.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ID mismatch.")
        self._ensure_self_or_admin(context, user_id)
        user = self._get_user_or_404(user_id)

        if data.new_password:
            if not data.current_password:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is required to change password.",
                )
            if not verify_password(data.current_password, user.password_hash):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect.")
            _validate_new_password(data.new_password)

        email = user.email
        if data.email and data.email.strip().lower() != (user.email or "").lower():
            email = _normalize_email(data.email)
            if self.repo.email_in_use(email, exclude_user_id=user.id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email is already in use by another account.",
                )

        user.first_name = data.first_name
        user.last_name = data.last_name
        user.email = email
        user.language = data.language
        user.phone_number = data.phone_number
        user.address = data.address
        user.id_number = data.id_number
        if data.new_password:
            user.password_hash = hash_password(data.new_password)
        user.two_factor_auth = data.two_factor_auth
        user.login_notification = data.login_notification
        user.task_assign_notification = data.task_assign_notification
        user.disable_recurring_payment_notification = data.disable_recurring_payment_notification
        user.all_events = data.all_events
        user.invoice_created = data.invoice_created
        user.invoice_sent = data.invoice_sent
        user.quote_created = data.quote_created
        user.quote_sent = data.quote_sent
        user.quote_view = data.quote_view
        user.payment_details = data.payment_details
        user.updated_at = utcnow()

        self._commit("Email is already in use by another account.")
        self.activity.log("User", user.id, "Update", f"Updated user settings: {user.email}", context=context)
