"""
Service for dispatching webhooks with HMAC-SHA256 signatures.

Security features:
- HMAC-SHA256 signature for payload verification
- Timestamp included to prevent replay attacks
- Retry logic with exponential backoff
- Every delivery stored in the tenant's delivery log
"""
import asyncio
import hashlib
import hmac
import json
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import database
from app.core.config import settings
from app.models.webhook import WEBHOOK_EVENTS, WebhookDelivery, WebhookSubscription

logger = logging.getLogger(__name__)


class WebhookDeliveryResult:
    """Result of a webhook delivery attempt."""

    def __init__(
        self,
        subscription_id: str,
        url: str,
        success: bool,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
        attempts: int = 1,
        duration_ms: float = 0,
    ):
        self.subscription_id = subscription_id
        self.url = url
        self.success = success
        self.status_code = status_code
        self.error = error
        self.attempts = attempts
        self.duration_ms = duration_ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "status_code": self.status_code,
            "error": self.error,
            "attempts": self.attempts,
            "duration_ms": int(self.duration_ms),
        }


class WebhookService:
    """
    Manages webhook dispatching with security and reliability features.

    Features:
    - HMAC-SHA256 signatures with timestamp (prevents replay attacks)
    - Retry logic with exponential backoff (3 attempts: 1s, 2s, 4s)
    - Client errors (4xx other than 429) are not retried
    - Async concurrent delivery for multiple subscriptions
    """

    MAX_RETRIES = 3
    RETRY_DELAYS = [1, 2, 4]  # Exponential backoff in seconds
    TIMEOUT_SECONDS = 30.0

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Custom transport lets tests answer requests without a network
        self.transport = transport

    @staticmethod
    def generate_signature(
        secret: str,
        payload: str,
        timestamp: int,
    ) -> str:
        """
        Generate HMAC-SHA256 signature.

        The signature is computed over: timestamp.payload
        This prevents replay attacks as timestamp must be recent.

        Args:
            secret: The webhook secret key
            payload: JSON payload string
            timestamp: Unix timestamp (seconds)

        Returns:
            Hex-encoded HMAC-SHA256 signature
        """
        message = f"{timestamp}.{payload}"
        return hmac.new(
            secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256
        ).hexdigest()

    @staticmethod
    def verify_signature(
        secret: str,
        payload: str,
        timestamp: int,
        signature: str,
        tolerance_seconds: int = 300,  # 5 minutes
    ) -> bool:
        """
        Verify webhook signature from incoming request.

        Args:
            secret: The webhook secret key
            payload: Raw request body
            timestamp: Timestamp from X-Webhook-Timestamp header
            signature: Signature from X-Webhook-Signature header,
                with or without the ``sha256=`` prefix
            tolerance_seconds: Max age of request in seconds

        Returns:
            True if signature is valid and timestamp is recent
        """
        now = int(time.time())
        if abs(now - timestamp) > tolerance_seconds:
            logger.warning(f"Webhook timestamp too old: {timestamp}, now: {now}")
            return False

        if signature.startswith("sha256="):
            signature = signature[len("sha256="):]

        expected = WebhookService.generate_signature(secret, payload, timestamp)
        return hmac.compare_digest(expected, signature)

    @staticmethod
    def generate_secret() -> str:
        """Random secret for subscriptions created without one."""
        return secrets.token_hex(32)

    @staticmethod
    def build_payload(event_type: str, data: Dict[str, Any], delivery_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": delivery_id or str(uuid4()),
            "event": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "data": data,
        }

    async def dispatch_event(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        event_type: str,
        data: Dict[str, Any],
    ) -> List[WebhookDeliveryResult]:
        """
        Dispatch event to all subscribed webhooks of a tenant.

        Args:
            db: Database session used for lookup and the delivery log
            tenant_id: Tenant that owns the event
            event_type: Event type (e.g., "order.created")
            data: Event payload data

        Returns:
            List of delivery results for each subscription
        """
        if event_type not in WEBHOOK_EVENTS:
            raise ValueError(f"Unknown webhook event: {event_type}")

        query = select(WebhookSubscription).where(
            WebhookSubscription.tenant_id == tenant_id,
            WebhookSubscription.is_active.is_(True),
        )
        result = await db.execute(query)
        target_subs = [s for s in result.scalars().all() if event_type in (s.events or [])]

        if not target_subs:
            logger.debug(f"No webhooks subscribed to event: {event_type}")
            return []

        payload = self.build_payload(event_type, data)

        results = await asyncio.gather(
            *(self.deliver(sub, event_type, payload) for sub in target_subs),
            return_exceptions=True,
        )

        delivery_results = []
        for sub, outcome in zip(target_subs, results):
            if isinstance(outcome, Exception):
                outcome = WebhookDeliveryResult(
                    subscription_id=str(sub.id),
                    url=sub.url,
                    success=False,
                    error=str(outcome),
                )
            self.record_delivery(db, sub, event_type, payload, outcome)
            delivery_results.append(outcome)
        await db.commit()

        success_count = sum(1 for r in delivery_results if r.success)
        logger.info(
            f"Webhook dispatch: event={event_type}, "
            f"total={len(delivery_results)}, success={success_count}"
        )

        return delivery_results

    @staticmethod
    def record_delivery(
        db: AsyncSession,
        sub: WebhookSubscription,
        event_type: str,
        payload: Dict[str, Any],
        result: WebhookDeliveryResult,
    ) -> WebhookDelivery:
        delivery = WebhookDelivery(
            webhook_id=sub.id,
            event=event_type,
            payload=json.loads(json.dumps(payload, default=str)),
            success=result.success,
            status_code=result.status_code,
            error=result.error,
            attempts=result.attempts,
            duration_ms=int(result.duration_ms),
        )
        db.add(delivery)
        return delivery

    async def deliver(
        self,
        sub: WebhookSubscription,
        event_type: str,
        payload: Dict[str, Any],
    ) -> WebhookDeliveryResult:
        """
        Deliver webhook to a single subscription with retry logic.
        """
        payload_json = json.dumps(payload, default=str)
        timestamp = int(time.time())

        secret = sub.secret or settings.WEBHOOK_SECRET_KEY
        if not secret:
            logger.warning(f"No secret configured for webhook {sub.id}")
        signature = self.generate_signature(secret or "", payload_json, timestamp)

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-ID": str(sub.id),
            "X-Webhook-Event": event_type,
            "X-Webhook-Timestamp": str(timestamp),
            "X-Webhook-Signature": f"sha256={signature}",
            "User-Agent": f"{settings.APP_NAME.replace(' ', '-')}-Webhook/{settings.APP_VERSION}",
        }

        start_time = time.time()
        last_error = None
        last_status = None
        attempts = 0

        async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS, transport=self.transport) as client:
            for attempt in range(self.MAX_RETRIES):
                attempts = attempt + 1
                try:
                    response = await client.post(
                        sub.url,
                        content=payload_json,
                        headers=headers,
                    )
                    last_status = response.status_code

                    if response.status_code < 400:
                        logger.debug(
                            f"Webhook delivered: url={sub.url}, "
                            f"status={response.status_code}, "
                            f"attempts={attempts}"
                        )
                        return WebhookDeliveryResult(
                            subscription_id=str(sub.id),
                            url=sub.url,
                            success=True,
                            status_code=response.status_code,
                            attempts=attempts,
                            duration_ms=(time.time() - start_time) * 1000,
                        )

                    last_error = f"HTTP {response.status_code}"
                    logger.warning(
                        f"Webhook failed: url={sub.url}, "
                        f"status={response.status_code}, "
                        f"attempt={attempts}/{self.MAX_RETRIES}"
                    )
                    # Receiver rejected the payload; retrying will not help
                    if 400 <= response.status_code < 500 and response.status_code != 429:
                        break

                except httpx.TimeoutException:
                    last_error = f"Timeout ({int(self.TIMEOUT_SECONDS)}s)"
                    logger.warning(
                        f"Webhook timeout: url={sub.url}, "
                        f"attempt={attempts}/{self.MAX_RETRIES}"
                    )

                except httpx.RequestError as e:
                    last_error = str(e) or e.__class__.__name__
                    logger.warning(
                        f"Webhook request error: url={sub.url}, "
                        f"error={e}, attempt={attempts}/{self.MAX_RETRIES}"
                    )

                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAYS[attempt])

        logger.error(
            f"Webhook delivery failed after {attempts} attempts: "
            f"url={sub.url}, error={last_error}"
        )

        return WebhookDeliveryResult(
            subscription_id=str(sub.id),
            url=sub.url,
            success=False,
            status_code=last_status,
            error=last_error,
            attempts=attempts,
            duration_ms=(time.time() - start_time) * 1000,
        )


# Singleton instance
webhook_service = WebhookService()


async def trigger_webhook(tenant_id: UUID, event_type: str, data: Dict[str, Any]) -> None:
    """
    Background-task entry point.

    Runs after the response is sent, so it opens its own session.
    """
    async with database.AsyncSessionLocal() as db:
        try:
            await webhook_service.dispatch_event(db, tenant_id, event_type, data)
        except Exception:
            logger.exception(f"Webhook dispatch failed: event={event_type}, tenant={tenant_id}")
