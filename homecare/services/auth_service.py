"""
Credential & session issuer — password verification and JWT issuance.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from homecare.api.middleware.auth import create_access_token, verify_password
from homecare.exceptions import InvalidCredentials
from homecare.models.user import User
from homecare.services import user_service

logger = logging.getLogger(__name__)


def issue_session(user: User) -> dict[str, Any]:
    """Sign a session for ``user`` and build the auth response payload."""
    token, expires_at = create_access_token(
        data={"sub": str(user.id), "role": user.role.value}
    )
    return {
        "token": token,
        "token_type": "bearer",
        "user_type": user.role.value,
        "expires_at": expires_at.isoformat(),
        "user": user_service.user_to_dict(user),
    }


async def authenticate(db: AsyncSession, email: str, password: str) -> dict[str, Any]:
    """Verify credentials and issue a session.

    Clients always get the same ``InvalidCredentials`` error; which check
    failed is only written to the server log.
    """
    user = await user_service.get_user_by_email(db, email)
    if user is None:
        logger.info("Login failed for %s: no such account", email)
        raise InvalidCredentials()

    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for %s: wrong password", email)
        raise InvalidCredentials()

    if not user.is_active:
        # Inactive accounts may still sign in to see their pending status
        logger.info("Login for %s: account not activated yet", email)

    logger.info("Login successful: %s (%s) id=%s", user.email, user.role.value, user.id)
    return issue_session(user)
