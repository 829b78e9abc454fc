"""
Self-service profile routes, shared by every role.

Endpoints:
    GET  /user/profile                — Current account
    POST /user/profile                — Fill in profile fields
    PUT  /user/profile                — Update profile fields
    PUT  /user/complete-profile       — Update and mark the profile complete
    POST /user/upload-profile-image   — Set the profile image URL

The account type, email, credential, activation state and nurse balances are
not profile fields and are never changed here.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.common import success
from homecare.api.middleware.auth import get_current_user
from homecare.db.database import get_db
from homecare.exceptions import ValidationError
from homecare.models.user import User
from homecare.services import user_service

router = APIRouter()


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    national_id: Optional[str] = Field(None, validation_alias=AliasChoices("national_id", "nationalId"))
    # Patient
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    emergency_contact: Optional[str] = None
    blood_type: Optional[str] = None
    medical_conditions: Optional[list[str]] = None
    allergies: Optional[list[str]] = None
    # Nurse
    license_id: Optional[str] = None
    specializations: Optional[list[str]] = None
    experience: Optional[str] = None


class ProfileImageRequest(BaseModel):
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("image_url", "imageUrl"))


@router.get("/user/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return success(user_service.user_to_dict(current_user))


@router.post("/user/profile")
async def create_profile(
    payload: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.update_user(db, current_user, payload.model_dump(exclude_unset=True))
    return success(user_service.user_to_dict(user))


@router.put("/user/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.update_user(db, current_user, payload.model_dump(exclude_unset=True))
    return success(user_service.user_to_dict(user))


@router.put("/user/complete-profile")
async def complete_profile(
    payload: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await user_service.update_user(
        db, current_user, payload.model_dump(exclude_unset=True), mark_complete=True,
    )
    return success(user_service.user_to_dict(user))


@router.post("/user/upload-profile-image")
async def upload_profile_image(
    payload: ProfileImageRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Store a profile image reference. The file itself is hosted elsewhere."""
    if not payload.image_url:
        raise ValidationError("No image URL provided")

    user = await user_service.update_user(db, current_user, {"profile_image": payload.image_url})
    return success({"image_url": user.profile_image})
