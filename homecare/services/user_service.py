"""
User service — the identity store for patient, nurse and admin accounts.

All public functions accept an ``AsyncSession`` so the caller (route layer)
controls the transaction boundary. Reads never expose the password hash.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.middleware.auth import hash_password
from homecare.exceptions import DuplicateEmail, NotFound, ValidationError
from homecare.models.user import User, UserRole, Nurse, Admin, ROLE_MODELS

logger = logging.getLogger(__name__)

# Fields a user may change on their own profile, per role
COMMON_PROFILE_FIELDS = {"name", "phone", "address", "national_id", "profile_image"}
ROLE_PROFILE_FIELDS = {
    UserRole.PATIENT: {
        "date_of_birth", "gender", "emergency_contact", "blood_type",
        "medical_conditions", "allergies",
    },
    UserRole.NURSE: {"license_id", "specializations", "experience"},
    UserRole.ADMIN: set(),
}
REQUIRED_FIELDS = ("email", "password", "name", "phone")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_to_dict(user: User) -> dict[str, Any]:
    """Serialise a User ORM instance into a plain dict (no credential)."""
    data = {
        "id": str(user.id),
        "email": user.email,
        "user_type": user.role.value if user.role else None,
        "name": user.name,
        "phone": user.phone,
        "address": user.address,
        "national_id": user.national_id,
        "profile_complete": bool(user.profile_complete),
        "profile_image": user.profile_image,
        "is_active": bool(user.is_active),
        "registration_date": user.registration_date.isoformat() if user.registration_date else None,
        "activation_date": user.activation_date.isoformat() if user.activation_date else None,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }
    if user.role == UserRole.PATIENT:
        data.update({
            "date_of_birth": user.date_of_birth,
            "gender": user.gender,
            "emergency_contact": user.emergency_contact,
            "blood_type": user.blood_type,
            "medical_conditions": user.medical_conditions or [],
            "allergies": user.allergies or [],
        })
    elif user.role == UserRole.NURSE:
        data.update({
            "license_id": user.license_id,
            "specializations": user.specializations or [],
            "experience": user.experience,
            "is_available": bool(user.is_available),
            "location": (
                {"latitude": user.latitude, "longitude": user.longitude}
                if user.latitude is not None and user.longitude is not None else None
            ),
            "balance": user.balance or 0.0,
            "total_earned": user.total_earned or 0.0,
        })
    return data


def public_contact(user: User | None) -> dict[str, Any] | None:
    """Name, phone and picture only: what a patient sees of their nurse."""
    if user is None:
        return None
    return {
        "id": str(user.id),
        "name": user.name,
        "phone": user.phone,
        "profile_image": user.profile_image,
    }


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def create_user(
    db: AsyncSession,
    *,
    role: str | UserRole,
    email: str,
    password: str,
    name: str,
    phone: str,
    national_id: str | None = None,
    **profile: Any,
) -> User:
    """Create an account of the given role.

    Patients and nurses start inactive and wait for an admin; admins are
    created active. Raises ``DuplicateEmail`` if the email is taken (in any
    role) and ``ValidationError`` for missing fields or an unknown role.
    """
    try:
        role = UserRole(role)
    except ValueError:
        raise ValidationError("Invalid user type")

    values = {"email": email, "password": password, "name": name, "phone": phone}
    missing = [field for field in REQUIRED_FIELDS if not values.get(field)]
    if missing:
        raise ValidationError("Validation error", details=[f"{field} is required" for field in missing])

    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        logger.info("Registration rejected: email %s already in use", email)
        raise DuplicateEmail()

    allowed = COMMON_PROFILE_FIELDS | ROLE_PROFILE_FIELDS[role]
    extra = {k: v for k, v in profile.items() if k in allowed and v is not None}

    now = datetime.utcnow()
    model = ROLE_MODELS[role]
    user = model(
        id=uuid.uuid4(),
        email=email,
        hashed_password=hash_password(password),
        name=name,
        phone=phone,
        national_id=national_id,
        is_active=role == UserRole.ADMIN,
        activation_date=now if role == UserRole.ADMIN else None,
        registration_date=now,
        **extra,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        raise DuplicateEmail()
    await db.refresh(user)

    logger.info("Registered %s account %s (%s)", role.value, user.id, email)
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await db.get(User, user_id)


async def get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession, *, role: str | UserRole | None = None) -> list[User]:
    query = select(User).order_by(User.created_at.desc())
    if role:
        try:
            query = query.where(User.role == UserRole(role))
        except ValueError:
            raise ValidationError("Invalid user type")
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_first_admin(db: AsyncSession) -> Admin | None:
    result = await db.execute(
        select(Admin).order_by(Admin.created_at.asc()).limit(1)
    )
    return result.scalar_one_or_none()


async def update_user(
    db: AsyncSession,
    user: User,
    data: dict[str, Any],
    *,
    mark_complete: bool = False,
) -> User:
    """Apply a partial profile update.

    The role is fixed at creation: a ``role``/``user_type`` value that differs
    from the current one is rejected. Fields outside the profile whitelist for
    the user's role (email, credential, activation, balances) are dropped.
    """
    for key in ("role", "user_type"):
        requested = data.get(key)
        if requested is not None and str(getattr(requested, "value", requested)) != user.role.value:
            raise ValidationError("Account type cannot be changed")

    allowed = COMMON_PROFILE_FIELDS | ROLE_PROFILE_FIELDS[user.role]
    ignored = sorted(k for k in data if k not in allowed and k not in ("role", "user_type"))
    if ignored:
        logger.debug("Ignoring non-profile fields for user %s: %s", user.id, ignored)

    for key, value in data.items():
        if key not in allowed:
            continue
        if key in ("name", "phone") and not value:
            raise ValidationError(f"{key} cannot be empty")
        setattr(user, key, value)

    if mark_complete:
        user.profile_complete = True

    user.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(user)
    logger.info("Updated profile of user %s", user.id)
    return user


async def set_activation(db: AsyncSession, user_id: uuid.UUID, active: bool) -> User:
    """Activate or deactivate an account. The first activation is timestamped."""
    user = await get_user_or_404(db, user_id)
    user.is_active = active
    if active and user.activation_date is None:
        user.activation_date = datetime.utcnow()
    user.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(user)

    logger.info("User %s %s", user_id, "activated" if active else "deactivated")
    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await get_user_or_404(db, user_id)
    await db.delete(user)
    await db.flush()
    logger.info("Deleted user %s (%s)", user_id, user.email)
    return user


# ---------------------------------------------------------------------------
# Nurse helpers
# ---------------------------------------------------------------------------

async def set_nurse_location(
    db: AsyncSession,
    nurse: Nurse,
    latitude: float | None,
    longitude: float | None,
) -> None:
    if latitude is None or longitude is None:
        return
    nurse.latitude = latitude
    nurse.longitude = longitude
    await db.flush()


async def set_nurse_availability(
    db: AsyncSession,
    nurse: Nurse,
    available: bool,
    latitude: float | None = None,
    longitude: float | None = None,
) -> Nurse:
    nurse.is_available = available
    await set_nurse_location(db, nurse, latitude, longitude)
    nurse.updated_at = datetime.utcnow()
    await db.flush()
    await db.refresh(nurse)
    logger.info("Nurse %s availability -> %s", nurse.id, available)
    return nurse


async def count_available_nurses(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Nurse.id)).where(Nurse.is_available.is_(True))
    )
    return result.scalar_one()
