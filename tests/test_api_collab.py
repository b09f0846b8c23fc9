"""
Tests for documents, the notes board, audit trail and webhook management.
"""
from datetime import date, timedelta

import httpx
import pytest
from httpx import AsyncClient

from app.services.webhook_service import WebhookService


class TestDocuments:
    """Tests for /documents."""

    @pytest.mark.asyncio
    async def test_upload_and_register(self, client: AsyncClient, api_prefix, manager_headers, driver_profile):
        upload = await client.post(
            f"{api_prefix}/documents/upload",
            headers=manager_headers,
            files={"file": ("badania.pdf", b"%PDF-1.4 test", "application/pdf")},
            data={"entity_type": "driver", "entity_id": str(driver_profile.id)},
        )

        assert upload.status_code == 201, upload.text
        stored = upload.json()
        assert stored["url"].startswith(f"/uploads/documents/driver/{driver_profile.id}/")
        assert stored["url"].endswith(".pdf")
        assert stored["file_name"] == "badania.pdf"
        assert stored["mime_type"] == "application/pdf"

        expiry = date.today() + timedelta(days=10)
        response = await client.post(
            f"{api_prefix}/documents",
            headers=manager_headers,
            json={
                "type": "DRIVER_MEDICAL",
                "name": "Badania lekarskie",
                "file_url": stored["url"],
                "file_size": stored["file_size"],
                "mime_type": stored["mime_type"],
                "expiry_date": expiry.isoformat(),
                "driver_id": str(driver_profile.id),
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["days_until_expiry"] == 10
        assert data["type_label"]

        expiring = await client.get(
            f"{api_prefix}/documents", headers=manager_headers, params={"expiring_soon": "true"}
        )
        assert expiring.json()["pagination"]["total"] == 1

        company = await client.get(
            f"{api_prefix}/documents", headers=manager_headers, params={"entity_type": "company"}
        )
        assert company.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_upload_rejects_type(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/documents/upload",
            headers=manager_headers,
            files={"file": ("skrypt.exe", b"MZ", "application/octet-stream")},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_linked_entity(self, client: AsyncClient, api_prefix, manager_headers):
        from uuid import uuid4

        response = await client.post(
            f"{api_prefix}/documents",
            headers=manager_headers,
            json={
                "type": "VEHICLE_INSPECTION",
                "name": "Przeglad",
                "file_url": "/uploads/x.pdf",
                "vehicle_id": str(uuid4()),
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REFERENCE"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, api_prefix, manager_headers, admin_headers):
        document = (
            await client.post(
                f"{api_prefix}/documents",
                headers=manager_headers,
                json={"type": "COMPANY_LICENSE", "name": "Licencja", "file_url": "/uploads/licencja.pdf"},
            )
        ).json()

        renamed = await client.patch(
            f"{api_prefix}/documents/{document['id']}",
            headers=manager_headers,
            json={"name": "Licencja transportowa"},
        )
        assert renamed.json()["name"] == "Licencja transportowa"

        url = f"{api_prefix}/documents/{document['id']}"
        assert (await client.delete(url, headers=manager_headers)).status_code == 403
        deleted = await client.delete(url, headers=admin_headers)
        assert deleted.status_code == 204


class TestNotes:
    """Tests for /notes."""

    @pytest.mark.asyncio
    async def test_general_note_visible_to_tenant(
        self, client: AsyncClient, api_prefix, manager_headers, viewer_headers, other_admin_headers
    ):
        created = await client.post(
            f"{api_prefix}/notes",
            headers=manager_headers,
            json={"title": "Zmiana grafiku", "content": "Od poniedzialku zaladunki od 6:00"},
        )
        assert created.status_code == 201
        note = created.json()
        assert note["author"]["email"] == "manager@transpol.pl"
        assert note["is_read"] is True

        viewer_list = await client.get(f"{api_prefix}/notes", headers=viewer_headers)
        assert [n["id"] for n in viewer_list.json()["items"]] == [note["id"]]
        assert viewer_list.json()["items"][0]["is_read"] is False

        other = await client.get(f"{api_prefix}/notes", headers=other_admin_headers)
        assert other.json()["items"] == []

    @pytest.mark.asyncio
    async def test_unread_count(self, client: AsyncClient, api_prefix, manager_headers, viewer_headers):
        note = (
            await client.post(f"{api_prefix}/notes", headers=manager_headers, json={"content": "Nowa trasa"})
        ).json()

        before = await client.get(f"{api_prefix}/notes/unread-count", headers=viewer_headers)
        assert before.json() == {"count": 1}

        await client.post(f"{api_prefix}/notes/{note['id']}/read", headers=viewer_headers)

        after = await client.get(f"{api_prefix}/notes/unread-count", headers=viewer_headers)
        assert after.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_private_note(
        self, client: AsyncClient, api_prefix, manager_headers, admin_headers, viewer_headers, viewer_user
    ):
        no_recipients = await client.post(
            f"{api_prefix}/notes", headers=manager_headers, json={"content": "Tajne", "type": "PRIVATE"}
        )
        assert no_recipients.status_code == 400

        note = (
            await client.post(
                f"{api_prefix}/notes",
                headers=manager_headers,
                json={"content": "Premia za marzec", "type": "PRIVATE", "recipient_ids": [str(viewer_user.id)]},
            )
        ).json()

        assert (await client.get(f"{api_prefix}/notes/{note['id']}", headers=viewer_headers)).status_code == 200
        assert (await client.get(f"{api_prefix}/notes/{note['id']}", headers=admin_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_announcement_is_admin_only(self, client: AsyncClient, api_prefix, manager_headers, admin_headers):
        payload = {"content": "Wigilia firmowa", "type": "ANNOUNCEMENT"}
        assert (await client.post(f"{api_prefix}/notes", headers=manager_headers, json=payload)).status_code == 403
        assert (await client.post(f"{api_prefix}/notes", headers=admin_headers, json=payload)).status_code == 201

    @pytest.mark.asyncio
    async def test_viewer_cannot_pin(self, client: AsyncClient, api_prefix, viewer_headers):
        response = await client.post(
            f"{api_prefix}/notes", headers=viewer_headers, json={"content": "Wazne", "is_pinned": True}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_only_author_or_admin_modifies(
        self, client: AsyncClient, api_prefix, manager_headers, viewer_headers, admin_headers
    ):
        note = (await client.post(f"{api_prefix}/notes", headers=manager_headers, json={"content": "Tekst"})).json()
        url = f"{api_prefix}/notes/{note['id']}"

        assert (await client.patch(url, headers=viewer_headers, json={"content": "Zmiana"})).status_code == 403
        assert (await client.patch(url, headers=admin_headers, json={"is_archived": True})).status_code == 200

        listed = await client.get(f"{api_prefix}/notes", headers=manager_headers)
        assert listed.json()["items"] == []

    @pytest.mark.asyncio
    async def test_reactions_toggle(self, client: AsyncClient, api_prefix, manager_headers, viewer_headers):
        note = (await client.post(f"{api_prefix}/notes", headers=manager_headers, json={"content": "Brawo"})).json()
        url = f"{api_prefix}/notes/{note['id']}/reactions"

        added = await client.post(url, headers=viewer_headers, json={"emoji": "👍"})
        assert added.json() == {"action": "added", "emoji": "👍"}

        detail = (await client.get(f"{api_prefix}/notes/{note['id']}", headers=viewer_headers)).json()
        assert detail["reactions_count"] == {"👍": 1}
        assert detail["user_reactions"] == ["👍"]

        removed = await client.post(url, headers=viewer_headers, json={"emoji": "👍"})
        assert removed.json()["action"] == "removed"

    @pytest.mark.asyncio
    async def test_comments(self, client: AsyncClient, api_prefix, manager_headers, viewer_headers):
        note = (await client.post(f"{api_prefix}/notes", headers=manager_headers, json={"content": "Pytania?"})).json()
        url = f"{api_prefix}/notes/{note['id']}/comments"

        blank = await client.post(url, headers=viewer_headers, json={"content": "   "})
        assert blank.status_code == 400

        created = await client.post(url, headers=viewer_headers, json={"content": "  Kiedy tankujemy?  "})
        assert created.status_code == 201
        assert created.json()["content"] == "Kiedy tankujemy?"

        comments = await client.get(url, headers=manager_headers)
        assert [c["author"]["email"] for c in comments.json()] == ["viewer@transpol.pl"]

        detail = (await client.get(f"{api_prefix}/notes/{note['id']}", headers=manager_headers)).json()
        assert detail["comments_count"] == 1

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, api_prefix, manager_headers, viewer_headers):
        note = (await client.post(f"{api_prefix}/notes", headers=manager_headers, json={"content": "Usun"})).json()
        await client.post(f"{api_prefix}/notes/{note['id']}/comments", headers=viewer_headers, json={"content": "ok"})

        response = await client.delete(f"{api_prefix}/notes/{note['id']}", headers=manager_headers)
        assert response.status_code == 204
        assert (await client.get(f"{api_prefix}/notes/{note['id']}", headers=manager_headers)).status_code == 404


class TestAuditLogs:

    @pytest.mark.asyncio
    async def test_changes_are_recorded(self, client: AsyncClient, api_prefix, admin_headers, sample_contractor_data):
        contractor = (
            await client.post(f"{api_prefix}/contractors", headers=admin_headers, json=sample_contractor_data)
        ).json()
        await client.patch(
            f"{api_prefix}/contractors/{contractor['id']}", headers=admin_headers, json={"payment_days": 45}
        )

        response = await client.get(
            f"{api_prefix}/audit-logs",
            headers=admin_headers,
            params={"entity_type": "Contractor", "entity_id": contractor["id"]},
        )

        items = response.json()["items"]
        assert {i["action"] for i in items} == {"UPDATE", "CREATE"}
        update = next(i for i in items if i["action"] == "UPDATE")
        assert update["changes"] == {"payment_days": {"old": 30, "new": 45}}
        assert update["user_email"] == "admin@transpol.pl"

    @pytest.mark.asyncio
    async def test_admin_only(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(f"{api_prefix}/audit-logs", headers=manager_headers)
        assert response.status_code == 403


class TestWebhooks:
    """Tests for /webhooks."""

    @pytest.fixture
    def captured(self, monkeypatch) -> list:
        from app.services.webhook_service import webhook_service

        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        monkeypatch.setattr(webhook_service, "transport", httpx.MockTransport(handler))
        monkeypatch.setattr(webhook_service, "RETRY_DELAYS", [0, 0, 0])
        return requests

    @pytest.mark.asyncio
    async def test_events(self, client: AsyncClient, api_prefix, admin_headers):
        response = await client.get(f"{api_prefix}/webhooks/events", headers=admin_headers)
        assert "order.status_changed" in response.json()

    @pytest.mark.asyncio
    async def test_create_returns_secret_once(self, client: AsyncClient, api_prefix, admin_headers):
        created = await client.post(
            f"{api_prefix}/webhooks",
            headers=admin_headers,
            json={"name": "ERP", "url": "https://erp.firma.pl/hook", "events": ["order.created", "order.created"]},
        )

        assert created.status_code == 201
        data = created.json()
        assert len(data["secret"]) == 64
        assert data["events"] == ["order.created"]

        detail = await client.get(f"{api_prefix}/webhooks/{data['id']}", headers=admin_headers)
        assert "secret" not in detail.json()

    @pytest.mark.asyncio
    async def test_unknown_event(self, client: AsyncClient, api_prefix, admin_headers):
        response = await client.post(
            f"{api_prefix}/webhooks",
            headers=admin_headers,
            json={"name": "ERP", "url": "https://erp.firma.pl/hook", "events": ["order.exploded"]},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_manager_forbidden(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(f"{api_prefix}/webhooks", headers=manager_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_test_delivery(self, client: AsyncClient, api_prefix, admin_headers, captured):
        secret = "erp-secret-erp-secret"
        hook = (
            await client.post(
                f"{api_prefix}/webhooks",
                headers=admin_headers,
                json={
                    "name": "ERP",
                    "url": "https://erp.firma.pl/hook",
                    "secret": secret,
                    "events": ["invoice.paid"],
                },
            )
        ).json()

        response = await client.post(f"{api_prefix}/webhooks/{hook['id']}/test", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["attempts"] == 1

        request = captured[0]
        assert request.headers["X-Webhook-Event"] == "webhook.test"
        assert WebhookService.verify_signature(
            secret,
            request.content.decode(),
            int(request.headers["X-Webhook-Timestamp"]),
            request.headers["X-Webhook-Signature"],
        )

        deliveries = await client.get(f"{api_prefix}/webhooks/{hook['id']}/deliveries", headers=admin_headers)
        assert [d["event"] for d in deliveries.json()] == ["webhook.test"]

    @pytest.mark.asyncio
    async def test_order_event_is_dispatched(
        self, client: AsyncClient, api_prefix, admin_headers, sample_order_data, captured
    ):
        hook = (
            await client.post(
                f"{api_prefix}/webhooks",
                headers=admin_headers,
                json={"name": "ERP", "url": "https://erp.firma.pl/hook", "events": ["order.created"]},
            )
        ).json()

        await client.post(f"{api_prefix}/orders", headers=admin_headers, json=sample_order_data)

        assert [r.headers["X-Webhook-Event"] for r in captured] == ["order.created"]
        deliveries = await client.get(f"{api_prefix}/webhooks/{hook['id']}/deliveries", headers=admin_headers)
        assert deliveries.json()[0]["payload"]["data"]["order_number"] == "ZL/2026/001"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, api_prefix, admin_headers):
        hook = (
            await client.post(
                f"{api_prefix}/webhooks",
                headers=admin_headers,
                json={"name": "ERP", "url": "https://erp.firma.pl/hook", "events": ["order.created"]},
            )
        ).json()
        url = f"{api_prefix}/webhooks/{hook['id']}"

        updated = await client.patch(url, headers=admin_headers, json={"is_active": False})
        assert updated.json()["is_active"] is False

        assert (await client.delete(url, headers=admin_headers)).status_code == 204
        assert (await client.get(url, headers=admin_headers)).status_code == 404
