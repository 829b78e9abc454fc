"""
Credential hashing, session tokens and the authorization gate.

Sessions are stateless HS256 JWTs: validity is decided by signature and
expiry alone, so logging out is client-side only and a token keeps working
until it expires even if its account is deactivated. A deleted account is
caught when the token's subject is resolved.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from homecare.config import get_settings
from homecare.db.database import get_db
from homecare.exceptions import (
    AccountInactive,
    AccountNotFound,
    ExpiredSession,
    Forbidden,
    InvalidSession,
    Unauthenticated,
)
from homecare.models.user import User, UserRole

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    user_id: str
    role: UserRole
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> tuple[str, datetime]:
    """Sign ``data`` into a JWT. Returns the token and its expiry time."""
    to_encode = data.copy()
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES))
    to_encode.update({"iat": now, "exp": expire})
    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expire


def decode_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredSession()
    except JWTError:
        raise InvalidSession()

    try:
        return TokenData(
            user_id=payload["sub"],
            role=payload["role"],
            issued_at=datetime.utcfromtimestamp(payload["iat"]) if "iat" in payload else None,
            expires_at=datetime.utcfromtimestamp(payload["exp"]) if "exp" in payload else None,
        )
    except (KeyError, ValueError):
        raise InvalidSession()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    token_data = decode_token(credentials.credentials)
    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise InvalidSession()

    user = await db.get(User, user_id)
    if user is None:
        raise AccountNotFound()
    return user


def require_role(*roles: UserRole):
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise Forbidden()
        return current_user
    return role_checker


def require_active(*roles: UserRole):
    """Role guard followed by the activation guard, for value-bearing operations."""
    async def active_checker(current_user: User = Depends(require_role(*roles))) -> User:
        if not current_user.is_active:
            raise AccountInactive()
        return current_user
    return active_checker
