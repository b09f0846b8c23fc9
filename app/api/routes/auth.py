"""
Authentication endpoints.
"""
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationException, AuthorizationException
from app.core.rate_limit import RateLimits, limiter
from app.core.security import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_user_by_id,
)
from app.models.audit_log import AuditAction
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    Token,
    UserResponse,
)
from app.services.audit_service import log_audit

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============== Public Endpoints ==============

@router.post("/login", response_model=LoginResponse)
@limiter.limit(RateLimits.AUTH_LOGIN)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Login with email and password.

    Returns access and refresh tokens.
    """
    user = await authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise AuthenticationException("Nieprawidlowy email lub haslo")

    if not user.is_active:
        raise AuthorizationException("Konto jest nieaktywne")

    # Create tokens
    access_token = create_access_token(user.id, user.role, user.tenant_id)
    refresh_token = create_refresh_token(user.id)

    # Store refresh token
    user.refresh_token = refresh_token
    user.last_login_at = datetime.now(timezone.utc)
    log_audit(db, user=user, action=AuditAction.LOGIN, entity_type="User", entity_id=user.id, request=request)
    await db.commit()
    await db.refresh(user)

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=Token)
@limiter.limit(RateLimits.AUTH_REFRESH)
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Refresh access token using refresh token.
    """
    payload = decode_token(body.refresh_token)

    if payload is None or payload.get("type") != "refresh":
        raise AuthenticationException("Nieprawidlowy token odswiezania")

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise AuthenticationException("Nieprawidlowy token odswiezania")

    user = await get_user_by_id(db, user_id)

    if not user:
        raise AuthenticationException("Nieprawidlowy token odswiezania")

    if not user.is_active:
        raise AuthorizationException("Konto jest nieaktywne")

    # Verify stored refresh token matches
    if user.refresh_token != body.refresh_token:
        raise AuthenticationException("Token odswiezania zostal uniewazniony")

    # Create new tokens
    access_token = create_access_token(user.id, user.role, user.tenant_id)
    new_refresh_token = create_refresh_token(user.id)

    # Update stored refresh token
    user.refresh_token = new_refresh_token
    await db.commit()

    return Token(
        access_token=access_token,
        refresh_token=new_refresh_token,
        token_type="bearer",
    )


# ============== Current User Endpoints ==============

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Logout current user (invalidate refresh token).
    """
    current_user.refresh_token = None
    log_audit(
        db,
        user=current_user,
        action=AuditAction.LOGOUT,
        entity_type="User",
        entity_id=current_user.id,
        request=request,
    )
    await db.commit()
    return None


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
):
    """
    Get current user profile.
    """
    return UserResponse.model_validate(current_user)
