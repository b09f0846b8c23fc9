"""
Tests for webhook signing, delivery and dispatch.
"""
import json
import time
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest
from sqlalchemy import select

from app.models.webhook import WebhookDelivery, WebhookSubscription
from app.services.webhook_service import WebhookService, trigger_webhook

SECRET = "s3cr3t-s3cr3t-s3cr3t"


def subscription(url="https://hooks.firma.pl/tms", secret=SECRET):
    return SimpleNamespace(id=uuid4(), url=url, secret=secret)


def service_with(handler) -> WebhookService:
    service = WebhookService(transport=httpx.MockTransport(handler))
    service.RETRY_DELAYS = [0, 0, 0]
    return service


class TestSignature:
    """HMAC-SHA256 over ``timestamp.payload``."""

    def test_deterministic(self):
        a = WebhookService.generate_signature(SECRET, '{"a":1}', 1700000000)
        b = WebhookService.generate_signature(SECRET, '{"a":1}', 1700000000)
        assert a == b
        assert len(a) == 64

    def test_depends_on_timestamp(self):
        a = WebhookService.generate_signature(SECRET, "{}", 1700000000)
        b = WebhookService.generate_signature(SECRET, "{}", 1700000001)
        assert a != b

    def test_verify_with_prefix(self):
        ts = int(time.time())
        signature = WebhookService.generate_signature(SECRET, "{}", ts)
        assert WebhookService.verify_signature(SECRET, "{}", ts, f"sha256={signature}")
        assert WebhookService.verify_signature(SECRET, "{}", ts, signature)

    def test_verify_rejects_wrong_secret(self):
        ts = int(time.time())
        signature = WebhookService.generate_signature(SECRET, "{}", ts)
        assert not WebhookService.verify_signature("other-secret", "{}", ts, signature)

    def test_verify_rejects_old_timestamp(self):
        ts = int(time.time()) - 600
        signature = WebhookService.generate_signature(SECRET, "{}", ts)
        assert not WebhookService.verify_signature(SECRET, "{}", ts, signature)

    def test_generate_secret(self):
        assert len(WebhookService.generate_secret()) == 64
        assert WebhookService.generate_secret() != WebhookService.generate_secret()

    def test_payload_envelope(self):
        payload = WebhookService.build_payload("order.created", {"id": "1"})
        assert payload["event"] == "order.created"
        assert payload["data"] == {"id": "1"}
        assert payload["timestamp"].endswith("Z")


class TestDelivery:

    @pytest.mark.asyncio
    async def test_signed_request(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["headers"] = request.headers
            captured["body"] = request.content.decode()
            return httpx.Response(200)

        sub = subscription()
        payload = WebhookService.build_payload("order.created", {"id": "1"})
        result = await service_with(handler).deliver(sub, "order.created", payload)

        assert result.success
        assert result.attempts == 1
        headers = captured["headers"]
        assert headers["X-Webhook-Event"] == "order.created"
        assert WebhookService.verify_signature(
            SECRET,
            captured["body"],
            int(headers["X-Webhook-Timestamp"]),
            headers["X-Webhook-Signature"],
        )
        assert json.loads(captured["body"])["data"] == {"id": "1"}

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        result = await service_with(handler).deliver(subscription(), "order.created", {})

        assert not result.success
        assert result.attempts == 3
        assert result.status_code == 503
        assert result.error == "HTTP 503"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(410)

        result = await service_with(handler).deliver(subscription(), "order.created", {})

        assert not result.success
        assert result.attempts == 1
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self):
        responses = iter([httpx.Response(500), httpx.Response(202)])

        result = await service_with(lambda request: next(responses)).deliver(subscription(), "order.created", {})

        assert result.success
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        result = await service_with(handler).deliver(subscription(), "order.created", {})

        assert not result.success
        assert "connection refused" in result.error


class TestDispatch:

    @pytest.mark.asyncio
    async def test_unknown_event(self, db_session, tenant):
        with pytest.raises(ValueError):
            await WebhookService().dispatch_event(db_session, tenant.id, "order.exploded", {})

    @pytest.mark.asyncio
    async def test_only_subscribed_active_hooks(self, db_session, tenant, other_tenant):
        db_session.add_all([
            WebhookSubscription(
                tenant_id=tenant.id, name="ERP", url="https://erp.firma.pl/hook",
                secret=SECRET, events=["order.created"], is_active=True,
            ),
            WebhookSubscription(
                tenant_id=tenant.id, name="Faktury", url="https://fk.firma.pl/hook",
                secret=SECRET, events=["invoice.paid"], is_active=True,
            ),
            WebhookSubscription(
                tenant_id=tenant.id, name="Wylaczony", url="https://off.firma.pl/hook",
                secret=SECRET, events=["order.created"], is_active=False,
            ),
            WebhookSubscription(
                tenant_id=other_tenant.id, name="Obcy", url="https://obcy.firma.pl/hook",
                secret=SECRET, events=["order.created"], is_active=True,
            ),
        ])
        await db_session.commit()

        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200)

        results = await service_with(handler).dispatch_event(
            db_session, tenant.id, "order.created", {"order_number": "ZL/1"}
        )

        assert len(results) == 1
        assert hosts == ["erp.firma.pl"]

        deliveries = (await db_session.execute(select(WebhookDelivery))).scalars().all()
        assert len(deliveries) == 1
        assert deliveries[0].success
        assert deliveries[0].event == "order.created"
        assert deliveries[0].payload["data"] == {"order_number": "ZL/1"}

    @pytest.mark.asyncio
    async def test_trigger_swallows_errors(self, monkeypatch, session_factory, tenant):
        from app.core import database

        monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)

        # Unknown events raise inside dispatch; the background task only logs
        await trigger_webhook(tenant.id, "order.exploded", {})
