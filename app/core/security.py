"""
Security utilities for authentication and authorization.

Uses bcrypt directly instead of passlib (deprecated/unmaintained).
Every business endpoint works inside the tenant of the authenticated user.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    MissingTenantException,
)
from app.core.logging import tenant_id_var, user_id_var
from app.models.user import ADMIN_ROLES, EDITOR_ROLES, User, UserRole

security_scheme = HTTPBearer(auto_error=False)


# ============== Password Utilities ==============


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash using bcrypt."""
    password_bytes = plain_password.encode("utf-8")
    hash_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(password_bytes, hash_bytes)


def get_password_hash(password: str) -> str:
    """Generate password hash using bcrypt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


# ============== Token Utilities ==============


def create_access_token(
    user_id: UUID,
    role: UserRole,
    tenant_id: Optional[UUID] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create JWT access token."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "role": role.value,
        "tenant_id": str(tenant_id) if tenant_id else None,
        "exp": expire,
        "type": "access",
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_driver_token(user: User) -> str:
    """Long-lived access token for the driver mobile app."""
    return create_access_token(
        user.id,
        user.role,
        user.tenant_id,
        expires_delta=timedelta(days=settings.DRIVER_TOKEN_EXPIRE_DAYS),
    )


def create_refresh_token(user_id: UUID) -> str:
    """Create refresh token with longer expiration."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "refresh",
        "jti": secrets.token_hex(16),  # unique token id
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


# ============== Dependencies ==============


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT token."""
    if credentials is None:
        raise AuthenticationException()

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise AuthenticationException()

    try:
        user_uuid = UUID(payload.get("sub") or "")
    except ValueError:
        raise AuthenticationException()

    user = await get_user_by_id(db, user_uuid)
    if user is None:
        raise AuthenticationException()

    if not user.is_active:
        raise AuthorizationException("Konto jest nieaktywne")

    request.state.user = user
    user_id_var.set(str(user.id))
    if user.tenant_id:
        tenant_id_var.set(str(user.tenant_id))
    return user


async def get_tenant_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Authenticated user that belongs to a tenant."""
    if current_user.tenant_id is None:
        raise MissingTenantException()
    return current_user


def require_role(*allowed_roles: UserRole, message: Optional[str] = None):
    """Dependency factory for role-based access control."""

    async def role_checker(
        current_user: User = Depends(get_tenant_user),
    ) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationException(
                message or "Brak uprawnien do wykonania tej operacji",
                details={"required_roles": [r.value for r in allowed_roles]},
            )
        return current_user

    return role_checker


# Shorthands used by the resource routers
get_editor_user = require_role(*EDITOR_ROLES)
get_admin_user = require_role(*ADMIN_ROLES)


async def get_current_driver(
    current_user: User = Depends(get_tenant_user),
) -> User:
    """Mobile app user; must have the DRIVER role."""
    if current_user.role != UserRole.DRIVER:
        raise AuthorizationException("Dostep tylko dla kierowcow")
    return current_user


# ============== Utility Functions ==============


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
) -> Optional[User]:
    """Authenticate user by email and password."""
    user = await get_user_by_email(db, email)

    if user is None:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Get user by email (case insensitive)."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    """Get user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()
