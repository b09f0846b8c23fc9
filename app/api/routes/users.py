"""
User management endpoints (tenant administrators) and own profile.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_reference, get_tenant_entity, paginate
from app.core.database import get_db
from app.core.exceptions import (
    AuthorizationException,
    DuplicateEntityException,
    ValidationException,
)
from app.core.security import (
    get_admin_user,
    get_password_hash,
    get_tenant_user,
    get_user_by_email,
    verify_password,
)
from app.models.audit_log import AuditAction
from app.models.driver import Driver
from app.models.user import User, UserRole
from app.schemas.auth import (
    ProfileUpdate,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot

router = APIRouter(prefix="/users", tags=["Users"])

USER_NOT_FOUND = "Nie znaleziono uzytkownika"


# ============== Own Profile ==============

@router.get("/me", response_model=UserResponse)
async def get_profile(
    current_user: User = Depends(get_tenant_user),
):
    """Get current user profile."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    update: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update own name, phone or password.

    Changing the password requires the current one and revokes the
    stored refresh token.
    """
    old = snapshot(current_user)

    if update.new_password:
        if not update.current_password or not verify_password(
            update.current_password, current_user.hashed_password
        ):
            raise ValidationException("Nieprawidlowe aktualne haslo")
        current_user.hashed_password = get_password_hash(update.new_password)
        current_user.refresh_token = None

    for field, value in update.model_dump(
        exclude_unset=True, exclude={"current_password", "new_password"}
    ).items():
        setattr(current_user, field, value)

    changes = get_entity_changes(old, snapshot(current_user))
    if update.new_password:
        changes = {**(changes or {}), "password": {"old": None, "new": "***"}}
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=current_user.id,
        changes=changes,
        request=request,
    )
    await db.commit()
    await db.refresh(current_user)
    return UserResponse.model_validate(current_user)


# ============== Admin User Management ==============

@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, description="Search by email or name"),
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """List users of the tenant (admin only)."""
    query = select(User).where(User.tenant_id == admin.tenant_id)

    if role:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    if search:
        search_filter = f"%{search}%"
        query = query.where(or_(User.email.ilike(search_filter), User.name.ilike(search_filter)))

    users, pagination = await paginate(db, query.order_by(User.created_at.desc()), page, limit)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        pagination=pagination,
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a user in the admin's tenant.

    Only a SUPER_ADMIN may create another SUPER_ADMIN.
    """
    if data.role == UserRole.SUPER_ADMIN and admin.role != UserRole.SUPER_ADMIN:
        raise AuthorizationException("Tylko Super Admin moze tworzyc Super Adminow")

    if await get_user_by_email(db, data.email):
        raise DuplicateEntityException(
            "Uzytkownik o tym adresie email juz istnieje", field="email", value=data.email
        )

    await ensure_reference(db, Driver, data.driver_id, admin.tenant_id, "driver_id", "Kierowca nie istnieje")

    user = User(
        email=data.email,
        hashed_password=get_password_hash(data.password),
        name=data.name,
        phone=data.phone,
        role=data.role,
        is_active=data.is_active,
        driver_id=data.driver_id,
        tenant_id=admin.tenant_id,
    )
    db.add(user)
    await db.flush()

    log_audit(
        db,
        user=admin,
        action=AuditAction.CREATE,
        entity_type="User",
        entity_id=user.id,
        changes=get_entity_changes(None, snapshot(user)),
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Get user by ID (admin only)."""
    user = await get_tenant_entity(db, User, user_id, admin.tenant_id, USER_NOT_FOUND)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    update: UserUpdate,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Update user (admin only)."""
    user = await get_tenant_entity(db, User, user_id, admin.tenant_id, USER_NOT_FOUND)

    if update.role == UserRole.SUPER_ADMIN and admin.role != UserRole.SUPER_ADMIN:
        raise AuthorizationException("Tylko Super Admin moze nadawac role Super Admin")
    if user.id == admin.id and update.is_active is False:
        raise ValidationException("Nie mozesz dezaktywowac wlasnego konta")

    update_data = update.model_dump(exclude_unset=True)
    if "driver_id" in update_data:
        await ensure_reference(
            db, Driver, update_data["driver_id"], admin.tenant_id, "driver_id", "Kierowca nie istnieje"
        )

    old = snapshot(user)
    password = update_data.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)
        user.refresh_token = None
    for field, value in update_data.items():
        setattr(user, field, value)

    log_audit(
        db,
        user=admin,
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user.id,
        changes=get_entity_changes(old, snapshot(user)),
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    request: Request,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete user (admin only).

    Actually deactivates the user instead of hard delete.
    """
    user = await get_tenant_entity(db, User, user_id, admin.tenant_id, USER_NOT_FOUND)

    # Prevent self-deletion
    if user.id == admin.id:
        raise ValidationException("Nie mozesz dezaktywowac wlasnego konta")

    # Soft delete
    user.is_active = False
    user.refresh_token = None
    log_audit(db, user=admin, action=AuditAction.DELETE, entity_type="User", entity_id=user.id, request=request)
    await db.commit()

    return None
