"""User profile and settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from quotegen.core.auth import RequestUserContext, get_current_user_context
from quotegen.db.dependencies import get_db_session
from quotegen.services.user_service import (
    PasswordChangeData,
    ProfileUpdateData,
    UserService,
    UserSettingsData,
)

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str | None = Field(default=None, max_length=200, alias="firstName")
    last_name: str | None = Field(default=None, max_length=200, alias="lastName")
    email: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=20)
    street: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20, alias="postalCode")
    country: str | None = Field(default=None, max_length=100)
    language: str | None = Field(default=None, max_length=50)
    preferred_contact_method: str | None = Field(default=None, max_length=50, alias="preferredContactMethod")
    notifications: bool | None = None


class PasswordChangePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")
    confirm_password: str = Field(alias="confirmPassword")


class NotesPayload(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class ProfileImagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str | None = Field(default=None, max_length=500, alias="imageUrl")


class UserSettingsPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    first_name: str | None = Field(default=None, max_length=200, alias="firstName")
    last_name: str | None = Field(default=None, max_length=200, alias="lastName")
    email: str | None = Field(default=None, max_length=200)
    language: str | None = Field(default=None, max_length=50)
    phone_number: str | None = Field(default=None, max_length=20, alias="phoneNumber")
    address: str | None = Field(default=None, max_length=1000)
    id_number: str | None = Field(default=None, max_length=100, alias="idNumber")
    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")
    two_factor_auth: bool = Field(default=False, alias="twoFactorAuth")
    login_notification: bool = Field(default=True, alias="loginNotification")
    task_assign_notification: bool = Field(default=True, alias="taskAssignNotification")
    disable_recurring_payment_notification: bool = Field(
        default=False, alias="disableRecurringPaymentNotification"
    )
    all_events: str | None = Field(default=None, max_length=50, alias="allEvents")
    invoice_created: str | None = Field(default=None, max_length=50, alias="invoiceCreated")
    invoice_sent: str | None = Field(default=None, max_length=50, alias="invoiceSent")
    quote_created: str | None = Field(default=None, max_length=50, alias="quoteCreated")
    quote_sent: str | None = Field(default=None, max_length=50, alias="quoteSent")
    quote_view: str | None = Field(default=None, max_length=50, alias="quoteView")
    payment_details: str | None = Field(default=None, max_length=50, alias="paymentDetails")


def _service(db: Session) -> UserService:
    return UserService(db)


@router.get("/profile")
def get_profile(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).profile(context=context)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    service.update_profile(
        context=context,
        data=ProfileUpdateData(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            street=payload.street,
            city=payload.city,
            state=payload.state,
            postal_code=payload.postal_code,
            country=payload.country,
            language=payload.language,
            preferred_contact_method=payload.preferred_contact_method,
            notifications=payload.notifications,
        ),
    )
    return service.profile(context=context)


@router.put("/profile/password")
def change_password(
    payload: PasswordChangePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, str]:
    _service(db).change_password(
        context=context,
        data=PasswordChangeData(
            current_password=payload.current_password,
            new_password=payload.new_password,
            confirm_password=payload.confirm_password,
        ),
    )
    return {"message": "Password changed successfully."}


@router.put("/profile/notes")
def update_notes(
    payload: NotesPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, str]:
    _service(db).update_notes(context=context, notes=payload.notes)
    return {"message": "Notes updated successfully."}


@router.post("/profile/image")
def set_profile_image(
    payload: ProfileImagePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, str]:
    url = _service(db).set_profile_image(context=context, image_url=payload.image_url)
    return {"message": "Profile image updated successfully.", "image_url": url}


@router.delete("/profile/image", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile_image(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    _service(db).delete_profile_image(context=context)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/profile/quotations")
def profile_quotations(
    response: Response,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    status_filter: str | None = Query(default=None, alias="status"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> list[dict[str, object]]:
    service = _service(db)
    rows, total, total_pages = service.quotation_history(
        context=context,
        page=page,
        page_size=page_size,
        status_filter=status_filter,
    )
    response.headers["X-Total-Count"] = str(total)
    response.headers["X-Page"] = str(page)
    response.headers["X-Page-Size"] = str(page_size)
    response.headers["X-Total-Pages"] = str(total_pages)
    return [service.serialize_quotation_history(row) for row in rows]


@router.get("/{user_id}")
def get_user_settings(
    user_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_settings(service.get_user_settings(context=context, user_id=user_id))


@router.put("/{user_id}/settings")
def update_user_settings(
    user_id: int,
    payload: UserSettingsPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, str]:
    _service(db).update_user_settings(
        context=context,
        user_id=user_id,
        data=UserSettingsData(
            id=payload.id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            language=payload.language,
            phone_number=payload.phone_number,
            address=payload.address,
            id_number=payload.id_number,
            current_password=payload.current_password,
            new_password=payload.new_password,
            two_factor_auth=payload.two_factor_auth,
            login_notification=payload.login_notification,
            task_assign_notification=payload.task_assign_notification,
            disable_recurring_payment_notification=payload.disable_recurring_payment_notification,
            all_events=payload.all_events,
            invoice_created=payload.invoice_created,
            invoice_sent=payload.invoice_sent,
            quote_created=payload.quote_created,
            quote_sent=payload.quote_sent,
            quote_view=payload.quote_view,
            payment_details=payload.payment_details,
        ),
    )
    return {"message": "User settings updated successfully."}
