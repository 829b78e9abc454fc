"""
Authentication routes.

Endpoints:
    POST /auth/register  — Create a patient, nurse or admin account and sign in
    POST /auth/login     — Exchange email + password for a session token
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.common import success
from homecare.config import get_settings
from homecare.db.database import get_db
from homecare.exceptions import Forbidden
from homecare.models.user import UserRole
from homecare.services import auth_service, user_service
from homecare.services.notification_service import NotificationKind, notify

router = APIRouter()


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    user_type: UserRole = Field(..., validation_alias=AliasChoices("user_type", "userType"))
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    national_id: Optional[str] = Field(None, validation_alias=AliasChoices("national_id", "nationalId"))


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a new account. Patients and nurses wait for admin activation."""
    if payload.user_type == UserRole.ADMIN and not get_settings().ALLOW_ADMIN_REGISTRATION:
        raise Forbidden("Admin accounts cannot be self-registered")

    user = await user_service.create_user(
        db,
        role=payload.user_type,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        phone=payload.phone,
        national_id=payload.national_id,
    )

    admin = await user_service.get_first_admin(db)
    if admin is not None and admin.id != user.id:
        notify(NotificationKind.NEW_REGISTRATION, admin, {
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
            "registration_date": user.registration_date.isoformat() if user.registration_date else None,
        }, db=db)

    return success(auth_service.issue_session(user))


@router.post("/auth/login")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate by email and password. Inactive accounts can still sign in."""
    session = await auth_service.authenticate(db, payload.email, payload.password)
    return success(session)
