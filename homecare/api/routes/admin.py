"""
Admin API routes.

Endpoints:
    GET    /admin/users                   — List all users (optional ?role=)
    GET    /admin/users/{id}              — Get one user
    PUT    /admin/users/{id}/activate     — Activate an account and notify its owner
    PUT    /admin/users/{id}/deactivate   — Deactivate an account
    DELETE /admin/users/{id}              — Delete an account
    GET    /admin/service-requests        — All service requests, newest first
    GET    /admin/service-stats           — Request counts and average rating
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.common import success, success_list
from homecare.api.middleware.audit import record_action
from homecare.api.middleware.auth import require_role
from homecare.db.database import get_db
from homecare.models.user import User, UserRole
from homecare.services import reporting_service, service_request_service, user_service
from homecare.services.notification_service import NotificationKind, notify

router = APIRouter()


# ---------------------------------------------------------------------------
# User Management Endpoints
# ---------------------------------------------------------------------------

@router.get("/admin/users")
async def list_users(
    role: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    users = await user_service.list_users(db, role=role)
    return success_list([user_service.user_to_dict(u) for u in users])


@router.get("/admin/users/{user_id}")
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    user = await user_service.get_user_or_404(db, user_id)
    return success(user_service.user_to_dict(user))


@router.put("/admin/users/{user_id}/activate")
async def activate_user(
    user_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    """Activate an account. The email to the user is best-effort."""
    user = await user_service.set_activation(db, user_id, True)

    await record_action(
        db,
        actor=current_user,
        action="activate",
        resource="user",
        resource_id=str(user_id),
        details=f"Activated {user.role.value} {user.email}",
        request=request,
    )

    notify(NotificationKind.ACCOUNT_ACTIVATED, user, db=db)

    return success(user_service.user_to_dict(user), message="User account activated successfully")


@router.put("/admin/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    user = await user_service.set_activation(db, user_id, False)

    await record_action(
        db,
        actor=current_user,
        action="deactivate",
        resource="user",
        resource_id=str(user_id),
        details=f"Deactivated {user.role.value} {user.email}",
        request=request,
    )

    return success(user_service.user_to_dict(user), message="User account deactivated successfully")


@router.delete("/admin/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    """Delete an account. Its requests and questions keep the dangling id."""
    user = await user_service.delete_user(db, user_id)

    await record_action(
        db,
        actor=current_user,
        action="delete",
        resource="user",
        resource_id=str(user_id),
        details=f"Deleted user {user.email}",
        request=request,
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Service requests & stats
# ---------------------------------------------------------------------------

@router.get("/admin/service-requests")
async def list_service_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    requests_list = await service_request_service.list_all_requests(db)
    return success_list(requests_list)


@router.get("/admin/service-stats")
async def get_service_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    stats = await reporting_service.get_service_stats(db)
    return success(stats)
