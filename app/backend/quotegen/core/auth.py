"""Authentication context extraction and admin guard utilities."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from quotegen.core.config import get_settings
from quotegen.core.security import create_access_token, decode_access_token
from quotegen.db.dependencies import get_db_session
from quotegen.models.entities import User

bearer_scheme = HTTPBearer(auto_error=False)


def is_admin_role(role: str | None) -> bool:
    """Whether ``role`` is one of the configured admin role names."""

    if not role:
        return False
    admin_roles = {name.strip().lower() for name in get_settings().admin_role_names}
    return role.strip().lower() in admin_roles


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from the bearer token and DB state."""

    user_id: int
    email: str
    display_name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()


def build_user_context(user: User) -> RequestUserContext:
    email = (user.email or "").strip().lower()
    return RequestUserContext(
        user_id=user.id,
        email=email,
        display_name=user.full_name or email,
        role=user.role,
    )


def issue_token(user: User, *, remember_me: bool = False) -> str:
    """Create the access token handed to a client after login or registration."""

    claims = {
        "sub": str(user.id),
        "email": user.email or "",
        "role": user.role,
        "given_name": user.first_name or "",
        "family_name": user.last_name or "",
    }
    return create_access_token(claims, remember_me=remember_me)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user from the ``Authorization: Bearer`` header."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing bearer token.")

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid or expired token.")

    try:
        user_id = int(claims.get("sub", ""))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject.") from None

    user = db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise _unauthorized("User not found.")

    return build_user_context(user)


def require_admin(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
    """Dependency requiring an admin caller."""

    if not context.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient role permissions for this operation.",
        )
    return context
