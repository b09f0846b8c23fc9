"""
Driver mobile app API.

Drivers sign in with a long-lived token and only see orders where their
driver profile is the primary crew.
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationException, AuthorizationException, NotFoundException, ValidationException
from app.core.rate_limit import RateLimits, limiter
from app.core.security import authenticate_user, create_driver_token, get_current_driver
from app.models.audit_log import AuditAction
from app.models.driver import Driver
from app.models.order import CLOSED_ORDER_STATUSES, Order, OrderLocation, OrderPhoto
from app.models.push_token import PushToken
from app.models.user import User, UserRole
from app.models.vehicle import Vehicle
from app.schemas.auth import LoginRequest
from app.schemas.common import MessageResponse
from app.schemas.driver_app import (
    DriverLoginResponse,
    DriverOrderDetailResponse,
    DriverOrderResponse,
    DriverProfile,
    DriverStatusUpdate,
    LocationUpdate,
    OrderPhotoResponse,
    PhotoUploadResponse,
    PushTokenRequest,
    SignatureCreate,
)
from app.services.audit_service import log_audit
from app.services.file_storage import IMAGE_MIME_TYPES, render_signature_svg, save_uploads, write_file
from app.services.status_flow import apply_status_change
from app.services.webhook_service import trigger_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/driver", tags=["driver-app"])

ORDER_NOT_FOUND = "Nie znaleziono zlecenia"


async def _profile(db: AsyncSession, user: User) -> DriverProfile:
    vehicle_number = None
    if user.driver_id:
        result = await db.execute(
            select(Vehicle.registration_number)
            .join(Driver, Driver.current_vehicle_id == Vehicle.id)
            .where(Driver.id == user.driver_id)
        )
        vehicle_number = result.scalar_one_or_none()

    return DriverProfile(
        id=user.id,
        email=user.email,
        name=user.name,
        phone=user.phone,
        role=user.role.value,
        is_active=user.is_active,
        tenant_id=user.tenant_id,
        driver_id=user.driver_id,
        vehicle_number=vehicle_number,
    )


async def _driver_order(db: AsyncSession, user: User, order_id: UUID) -> Order:
    """Order of the driver's tenant where the driver is on the primary crew."""
    if user.driver_id is None:
        raise NotFoundException(ORDER_NOT_FOUND)
    result = await db.execute(
        select(Order)
        .where(
            Order.id == order_id,
            Order.tenant_id == user.tenant_id,
            Order.driver_id == user.driver_id,
        )
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundException(ORDER_NOT_FOUND)
    return order


async def _photos(db: AsyncSession, order_id: UUID) -> list[OrderPhoto]:
    result = await db.execute(
        select(OrderPhoto).where(OrderPhoto.order_id == order_id).order_by(OrderPhoto.created_at)
    )
    return list(result.scalars().all())


async def _detail(db: AsyncSession, order: Order) -> DriverOrderDetailResponse:
    detail = DriverOrderDetailResponse.model_validate(order)
    detail.photos = [OrderPhotoResponse.model_validate(p) for p in await _photos(db, order.id)]
    return detail


# ============== Auth ==============

@router.post("/auth/login", response_model=DriverLoginResponse)
@limiter.limit(RateLimits.DRIVER_LOGIN)
async def driver_login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Login for the mobile app. Only DRIVER accounts are accepted."""
    user = await authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise AuthenticationException("Nieprawidlowy email lub haslo")
    if not user.is_active:
        raise AuthorizationException("Konto jest nieaktywne")
    if user.role != UserRole.DRIVER:
        raise AuthorizationException("Dostep tylko dla kierowcow")

    user.last_login_at = datetime.now(timezone.utc)
    log_audit(
        db,
        user=user,
        action=AuditAction.LOGIN,
        entity_type="User",
        entity_id=user.id,
        metadata={"client": "driver-app"},
        request=request,
    )
    await db.commit()
    await db.refresh(user)

    return DriverLoginResponse(
        token=create_driver_token(user),
        expires_in=settings.DRIVER_TOKEN_EXPIRE_DAYS * 24 * 3600,
        user=await _profile(db, user),
    )


@router.get("/auth/me", response_model=DriverProfile)
async def driver_me(
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    return await _profile(db, current_user)


# ============== Orders ==============

@router.get("/orders", response_model=list[DriverOrderResponse])
async def list_driver_orders(
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Open orders of the driver, soonest loading first."""
    if current_user.driver_id is None:
        return []
    result = await db.execute(
        select(Order)
        .where(
            Order.tenant_id == current_user.tenant_id,
            Order.driver_id == current_user.driver_id,
            Order.status.not_in(CLOSED_ORDER_STATUSES),
        )
        .order_by(Order.loading_date.asc(), Order.created_at.desc())
    )
    return result.scalars().all()


@router.get("/orders/{order_id}", response_model=DriverOrderDetailResponse)
async def get_driver_order(
    order_id: UUID,
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    order = await _driver_order(db, current_user, order_id)
    return await _detail(db, order)


@router.patch("/orders/{order_id}", response_model=DriverOrderDetailResponse)
async def update_driver_order_status(
    order_id: UUID,
    body: DriverStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Report progress on the road; the status workflow still applies."""
    order = await _driver_order(db, current_user, order_id)

    previous = apply_status_change(order, body.status)
    log_audit(
        db,
        user=current_user,
        action=AuditAction.STATUS_CHANGE,
        entity_type="Order",
        entity_id=order.id,
        changes={"status": {"old": previous.value, "new": body.status.value}},
        metadata={"client": "driver-app"},
        request=request,
    )
    await db.commit()

    order = await _driver_order(db, current_user, order_id)
    if previous != order.status:
        logger.info(f"Driver {current_user.id} moved order {order.order_number} to {order.status.value}")
        background_tasks.add_task(
            trigger_webhook,
            order.tenant_id,
            "order.status_changed",
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "status": order.status.value,
                "previous_status": previous.value,
            },
        )
    return await _detail(db, order)


@router.post("/orders/{order_id}/location", response_model=MessageResponse)
async def report_location(
    order_id: UUID,
    body: LocationUpdate,
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Store a GPS breadcrumb and the order's last known position."""
    order = await _driver_order(db, current_user, order_id)
    now = datetime.now(timezone.utc)

    db.add(
        OrderLocation(
            order_id=order.id,
            latitude=body.latitude,
            longitude=body.longitude,
            speed=body.speed,
            recorded_at=now,
        )
    )
    order.last_latitude = body.latitude
    order.last_longitude = body.longitude
    order.last_location_at = now
    await db.commit()

    return MessageResponse(success=True, message="Lokalizacja zapisana")


@router.post("/orders/{order_id}/photos", response_model=PhotoUploadResponse)
@limiter.limit(RateLimits.UPLOAD)
async def upload_order_photos(
    order_id: UUID,
    request: Request,
    photos: list[UploadFile] = File(...),
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Documentation photos (JPG, PNG, WebP) taken by the driver."""
    order = await _driver_order(db, current_user, order_id)
    if not photos:
        raise ValidationException("Nie przeslano zdjec")

    saved = []
    for stored in await save_uploads(photos, f"orders/{order.id}", allowed=IMAGE_MIME_TYPES):
        record = OrderPhoto(order_id=order.id, url=stored.url, uploaded_by_id=current_user.id)
        db.add(record)
        saved.append(record)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="OrderPhoto",
        entity_id=order.id,
        metadata={"photo_count": len(saved)},
        request=request,
    )
    await db.commit()

    return PhotoUploadResponse(photos=[OrderPhotoResponse.model_validate(p) for p in saved])


@router.post("/orders/{order_id}/signature", response_model=MessageResponse)
async def save_signature(
    order_id: UUID,
    body: SignatureCreate,
    request: Request,
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Proof of delivery: recipient's signature rendered to SVG."""
    order = await _driver_order(db, current_user, order_id)
    now = datetime.now(timezone.utc)

    svg = render_signature_svg(body.paths, body.width, body.height)
    filename = f"signature-{int(now.timestamp() * 1000)}.svg"
    url = write_file(f"signatures/{order.id}", filename, svg.encode("utf-8"))

    order.pod_signature_url = url
    order.pod_recipient_name = body.recipient_name
    order.pod_signed_at = now

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Order",
        entity_id=order.id,
        changes={
            "pod_signature_url": {"old": None, "new": url},
            "pod_recipient_name": {"old": None, "new": body.recipient_name},
        },
        request=request,
    )
    await db.commit()

    return MessageResponse(success=True, message="Podpis zapisany")


# ============== Push notifications ==============

@router.post("/push-token", response_model=MessageResponse)
async def register_push_token(
    body: PushTokenRequest,
    current_user: User = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db),
):
    """Register the device token; one token per user."""
    result = await db.execute(select(PushToken).where(PushToken.user_id == current_user.id))
    push_token: Optional[PushToken] = result.scalar_one_or_none()
    if push_token is None:
        db.add(PushToken(user_id=current_user.id, token=body.token, platform=body.platform))
    else:
        push_token.token = body.token
        push_token.platform = body.platform
    await db.commit()

    return MessageResponse(success=True, message="Token zapisany")
