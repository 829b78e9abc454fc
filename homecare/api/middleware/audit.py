"""
Audit trail for admin account management and service-request transitions.

Rows are added to the caller's session, so an audit entry is committed or
rolled back together with the change it describes.
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.models.audit_log import AuditLog
from homecare.models.user import User

logger = logging.getLogger(__name__)


def client_ip(request: Optional[Request]) -> Optional[str]:
    """First hop of ``X-Forwarded-For`` when behind a proxy, else the peer address."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def record_action(
    db: AsyncSession,
    *,
    actor: User,
    action: str,
    resource: str,
    resource_id=None,
    details: Optional[str] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=actor.id,
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") if request else None,
    )
    db.add(entry)
    await db.flush()

    logger.debug("Audit: %s %s %s/%s", actor.role.value, action, resource, entry.resource_id)
    return entry
