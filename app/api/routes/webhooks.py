"""
Webhook subscription management endpoints.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field, HttpUrl, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_tenant_entity
from app.core.database import get_db
from app.core.security import get_admin_user
from app.models.audit_log import AuditAction
from app.models.user import User
from app.models.webhook import WEBHOOK_EVENTS, WebhookDelivery, WebhookSubscription
from app.services.audit_service import get_entity_changes, log_audit, snapshot
from app.services.webhook_service import webhook_service

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

WEBHOOK_NOT_FOUND = "Nie znaleziono webhooka"
TEST_EVENT = "webhook.test"


def _check_events(events: Optional[List[str]]) -> Optional[List[str]]:
    if events is None:
        return events
    unknown = [e for e in events if e not in WEBHOOK_EVENTS]
    if unknown:
        raise ValueError(f"Nieznane zdarzenia: {', '.join(unknown)}")
    return list(dict.fromkeys(events))


class WebhookCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    url: HttpUrl
    secret: Optional[str] = Field(None, min_length=16, max_length=100)
    events: List[str] = Field(..., min_length=1)
    description: Optional[str] = Field(None, max_length=255)
    is_active: bool = True

    _events = field_validator("events")(_check_events)


class WebhookUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    url: Optional[HttpUrl] = None
    secret: Optional[str] = Field(None, min_length=16, max_length=100)
    events: Optional[List[str]] = Field(None, min_length=1)
    description: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None

    _events = field_validator("events")(_check_events)


class WebhookResponse(BaseModel):
    id: uuid.UUID
    name: str
    url: str
    events: List[str]
    description: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WebhookCreatedResponse(WebhookResponse):
    """Only returned once, on creation."""
    secret: str


class WebhookDeliveryResponse(BaseModel):
    id: uuid.UUID
    event: str
    payload: Dict[str, Any]
    success: bool
    status_code: Optional[int]
    error: Optional[str]
    attempts: int
    duration_ms: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class WebhookTestResponse(BaseModel):
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    attempts: int
    duration_ms: int


@router.get("/events", response_model=Dict[str, str])
async def list_webhook_events(
    current_user: User = Depends(get_admin_user),
) -> Dict[str, str]:
    """Events a subscription can listen to, with descriptions."""
    return WEBHOOK_EVENTS


@router.get("", response_model=List[WebhookResponse])
async def list_webhooks(
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """List the tenant's webhooks."""
    result = await db.execute(
        select(WebhookSubscription)
        .where(WebhookSubscription.tenant_id == current_user.tenant_id)
        .order_by(WebhookSubscription.created_at)
    )
    return result.scalars().all()


@router.post("", response_model=WebhookCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    webhook: WebhookCreate,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a new webhook. A secret is generated when none is given."""
    new_hook = WebhookSubscription(
        tenant_id=current_user.tenant_id,
        name=webhook.name,
        url=str(webhook.url),
        secret=webhook.secret or webhook_service.generate_secret(),
        events=webhook.events,
        description=webhook.description,
        is_active=webhook.is_active,
        owner_id=current_user.id,
    )
    db.add(new_hook)
    await db.flush()

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Webhook",
        entity_id=new_hook.id,
        metadata={"url": new_hook.url, "events": new_hook.events},
        request=request,
    )
    await db.commit()
    await db.refresh(new_hook)

    return new_hook


@router.get("/{webhook_id}", response_model=WebhookResponse)
async def get_webhook(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_tenant_entity(db, WebhookSubscription, webhook_id, current_user.tenant_id, WEBHOOK_NOT_FOUND)


@router.patch("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    webhook_id: uuid.UUID,
    data: WebhookUpdate,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    hook = await get_tenant_entity(db, WebhookSubscription, webhook_id, current_user.tenant_id, WEBHOOK_NOT_FOUND)

    update_data = data.model_dump(exclude_unset=True)
    if "url" in update_data and update_data["url"] is not None:
        update_data["url"] = str(update_data["url"])

    old = snapshot(hook)
    for field, value in update_data.items():
        setattr(hook, field, value)

    changes = get_entity_changes(old, snapshot(hook))
    if changes and "secret" in changes:
        changes["secret"] = {"old": "***", "new": "***"}
    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Webhook",
        entity_id=hook.id,
        changes=changes,
        request=request,
    )
    await db.commit()
    await db.refresh(hook)

    return hook


@router.delete("/{webhook_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_webhook(
    webhook_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a webhook together with its delivery log."""
    hook = await get_tenant_entity(db, WebhookSubscription, webhook_id, current_user.tenant_id, WEBHOOK_NOT_FOUND)

    deliveries = await db.execute(select(WebhookDelivery).where(WebhookDelivery.webhook_id == hook.id))
    for delivery in deliveries.scalars().all():
        await db.delete(delivery)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Webhook",
        entity_id=hook.id,
        request=request,
    )
    await db.delete(hook)
    await db.commit()
    return None


@router.get("/{webhook_id}/deliveries", response_model=List[WebhookDeliveryResponse])
async def list_webhook_deliveries(
    webhook_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Most recent delivery attempts of a webhook."""
    hook = await get_tenant_entity(db, WebhookSubscription, webhook_id, current_user.tenant_id, WEBHOOK_NOT_FOUND)
    result = await db.execute(
        select(WebhookDelivery)
        .where(WebhookDelivery.webhook_id == hook.id)
        .order_by(WebhookDelivery.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()


@router.post("/{webhook_id}/test", response_model=WebhookTestResponse)
async def test_webhook(
    webhook_id: uuid.UUID,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Send a signed test event to the webhook URL right away."""
    hook = await get_tenant_entity(db, WebhookSubscription, webhook_id, current_user.tenant_id, WEBHOOK_NOT_FOUND)

    payload = webhook_service.build_payload(
        TEST_EVENT,
        {"message": "Testowe powiadomienie", "webhook_id": str(hook.id)},
    )
    result = await webhook_service.deliver(hook, TEST_EVENT, payload)
    webhook_service.record_delivery(db, hook, TEST_EVENT, payload, result)
    await db.commit()

    return WebhookTestResponse(**result.to_dict())
