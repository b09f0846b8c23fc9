"""
Tests for the driver mobile app API.
"""
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from app.models.order import OrderLocation, OrderPhoto
from app.models.push_token import PushToken

TEST_PASSWORD = "Haslo12345"


@pytest_asyncio.fixture
async def driver_order(client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile) -> dict:
    response = await client.post(
        f"{api_prefix}/orders",
        headers=manager_headers,
        json={**sample_order_data, "driver_id": str(driver_profile.id)},
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestDriverAuth:

    @pytest.mark.asyncio
    async def test_login(self, client: AsyncClient, api_prefix, driver_user):
        response = await client.post(
            f"{api_prefix}/driver/auth/login",
            json={"email": "jan.kowalski@transpol.pl", "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["expires_in"] > 24 * 3600
        assert data["user"]["driver_id"] == str(driver_user.driver_id)

        me = await client.get(
            f"{api_prefix}/driver/auth/me",
            headers={"Authorization": f"Bearer {data['token']}"},
        )
        assert me.json()["email"] == "jan.kowalski@transpol.pl"

    @pytest.mark.asyncio
    async def test_office_user_rejected(self, client: AsyncClient, api_prefix, manager_user):
        response = await client.post(
            f"{api_prefix}/driver/auth/login",
            json={"email": "manager@transpol.pl", "password": TEST_PASSWORD},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_office_token_rejected(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(f"{api_prefix}/driver/orders", headers=manager_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, api_prefix, driver_user):
        response = await client.post(
            f"{api_prefix}/driver/auth/login",
            json={"email": "jan.kowalski@transpol.pl", "password": "zle-haslo"},
        )
        assert response.status_code == 401


class TestDriverOrders:

    @pytest.mark.asyncio
    async def test_list_only_own_open_orders(
        self, client: AsyncClient, api_prefix, manager_headers, driver_headers, driver_order, sample_order_data
    ):
        await client.post(
            f"{api_prefix}/orders",
            headers=manager_headers,
            json={**sample_order_data, "order_number": "ZL/2026/099"},
        )

        response = await client.get(f"{api_prefix}/driver/orders", headers=driver_headers)

        assert response.status_code == 200
        assert [o["order_number"] for o in response.json()] == ["ZL/2026/001"]

        await client.patch(
            f"{api_prefix}/orders/{driver_order['id']}/status", headers=manager_headers, json={"status": "CANCELLED"}
        )
        assert (await client.get(f"{api_prefix}/driver/orders", headers=driver_headers)).json() == []

    @pytest.mark.asyncio
    async def test_other_order_is_404(
        self, client: AsyncClient, api_prefix, manager_headers, driver_headers, sample_order_data
    ):
        order = (await client.post(f"{api_prefix}/orders", headers=manager_headers, json=sample_order_data)).json()
        response = await client.get(f"{api_prefix}/driver/orders/{order['id']}", headers=driver_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_detail(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        response = await client.get(f"{api_prefix}/driver/orders/{driver_order['id']}", headers=driver_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["order_number"] == "ZL/2026/001"
        assert data["photos"] == []

    @pytest.mark.asyncio
    async def test_status_progress(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        url = f"{api_prefix}/driver/orders/{driver_order['id']}"

        accepted = await client.patch(url, headers=driver_headers, json={"status": "ACCEPTED"})
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "ACCEPTED"

        skipped = await client.patch(url, headers=driver_headers, json={"status": "DELIVERED"})
        assert skipped.status_code == 400
        assert skipped.json()["code"] == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_driver_cannot_cancel(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        response = await client.patch(
            f"{api_prefix}/driver/orders/{driver_order['id']}", headers=driver_headers, json={"status": "CANCELLED"}
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "status"

    @pytest.mark.asyncio
    async def test_location(self, client: AsyncClient, api_prefix, driver_headers, driver_order, db_session):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/location",
            headers=driver_headers,
            json={"latitude": 52.2297, "longitude": 21.0122, "speed": 82.5},
        )
        assert response.status_code == 200

        detail = await client.get(f"{api_prefix}/driver/orders/{driver_order['id']}", headers=driver_headers)
        assert detail.json()["last_latitude"] == 52.2297

        points = (await db_session.execute(select(OrderLocation))).scalars().all()
        assert len(points) == 1
        assert points[0].speed == 82.5

    @pytest.mark.asyncio
    async def test_location_out_of_range(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/location",
            headers=driver_headers,
            json={"latitude": 120, "longitude": 21.0},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_photos(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/photos",
            headers=driver_headers,
            files=[
                ("photos", ("zaladunek.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")),
                ("photos", ("plomba.png", b"\x89PNG\r\n", "image/png")),
            ],
        )

        assert response.status_code == 200, response.text
        photos = response.json()["photos"]
        assert len(photos) == 2
        assert all(p["url"].startswith(f"/uploads/orders/{driver_order['id']}/") for p in photos)
        assert photos[0]["type"] == "DOCUMENTATION"

        detail = await client.get(f"{api_prefix}/driver/orders/{driver_order['id']}", headers=driver_headers)
        assert len(detail.json()["photos"]) == 2

    @pytest.mark.asyncio
    async def test_photos_reject_pdf(self, client: AsyncClient, api_prefix, driver_headers, driver_order):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/photos",
            headers=driver_headers,
            files=[("photos", ("cmr.pdf", b"%PDF-1.4", "application/pdf"))],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_photos_mixed_batch_writes_nothing(
        self, client: AsyncClient, api_prefix, driver_headers, driver_order, db_session, tmp_path
    ):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/photos",
            headers=driver_headers,
            files=[
                ("photos", ("zaladunek.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")),
                ("photos", ("cmr.pdf", b"%PDF-1.4", "application/pdf")),
            ],
        )
        assert response.status_code == 400

        order_dir = tmp_path / "uploads" / "orders" / driver_order["id"]
        assert not order_dir.exists() or not any(order_dir.iterdir())

        order_id = uuid.UUID(driver_order["id"])
        photos = await db_session.execute(select(OrderPhoto).where(OrderPhoto.order_id == order_id))
        assert photos.scalars().all() == []

    @pytest.mark.asyncio
    async def test_signature(self, client: AsyncClient, api_prefix, driver_headers, driver_order, tmp_path):
        response = await client.post(
            f"{api_prefix}/driver/orders/{driver_order['id']}/signature",
            headers=driver_headers,
            json={"paths": ["M10 10 L50 40", "M60 10 L90 40"], "width": 300, "height": 120, "recipient_name": "A. Schmidt"},
        )
        assert response.status_code == 200

        detail = (await client.get(f"{api_prefix}/driver/orders/{driver_order['id']}", headers=driver_headers)).json()
        assert detail["pod_recipient_name"] == "A. Schmidt"
        assert detail["pod_signature_url"].endswith(".svg")

        relative = detail["pod_signature_url"].removeprefix("/uploads/")
        svg = (tmp_path / "uploads" / relative).read_text()
        assert svg.count("<path ") == 2

    @pytest.mark.asyncio
    async def test_push_token_upsert(self, client: AsyncClient, api_prefix, driver_headers, driver_user, db_session):
        url = f"{api_prefix}/driver/push-token"
        assert (await client.post(url, headers=driver_headers, json={"token": "ExponentPushToken[a]"})).status_code == 200
        await client.post(url, headers=driver_headers, json={"token": "ExponentPushToken[b]", "platform": "fcm"})

        tokens = (
            await db_session.execute(select(PushToken).where(PushToken.user_id == driver_user.id))
        ).scalars().all()
        assert len(tokens) == 1
        assert tokens[0].token == "ExponentPushToken[b]"
        assert tokens[0].platform == "fcm"
