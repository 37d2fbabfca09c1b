"""Registration and login endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context, require_admin
from quotegen.db.dependencies import get_db_session
from quotegen.services.user_service import AdminRegistrationData, RegistrationData, UserService

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(min_length=1, max_length=200, alias="firstName")
    last_name: str = Field(min_length=1, max_length=200, alias="lastName")
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(max_length=200)
    confirm_password: str = Field(max_length=200, alias="confirmPassword")
    terms: bool = False


class LoginPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(min_length=1, max_length=200)
    password: str = Field(max_length=200)
    remember_me: bool = Field(default=False, alias="rememberMe")


class AdminRegisterPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(min_length=1, max_length=200, alias="firstName")
    last_name: str = Field(min_length=1, max_length=200, alias="lastName")
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(max_length=200)
    role: str = Field(default="User", max_length=50)


def _service(db: Session) -> UserService:
    return UserService(db)


@router.post("/register")
def register(payload: RegisterPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _service(db)
    result = service.register(
        RegistrationData(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            confirm_password=payload.confirm_password,
            terms=payload.terms,
        )
    )
    return service.serialize_auth(result)


@router.post("/login")
def login(payload: LoginPayload, db: Session = Depends(get_db_session)) -> dict[str, object]:
    service = _service(db)
    result = service.login(email=payload.email, password=payload.password, remember_me=payload.remember_me)
    return service.serialize_auth(result)


@router.get("/me")
def me(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_user(service.current_user(context=context))


@router.post("/register-admin", status_code=status.HTTP_201_CREATED)
def register_by_admin(
    payload: AdminRegisterPayload,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    user = service.register_by_admin(
        context=context,
        data=AdminRegistrationData(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        ),
    )
    return {"message": "User registered successfully.", "user": service.serialize_user(user)}
