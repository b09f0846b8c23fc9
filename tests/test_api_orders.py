"""
Tests for orders, status workflow and crew assignments.
"""
from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.models.driver import Driver
from app.models.vehicle import Vehicle


@pytest_asyncio.fixture
async def second_driver(db_session, tenant) -> Driver:
    driver = Driver(tenant_id=tenant.id, first_name="Marek", last_name="Lewandowski")
    db_session.add(driver)
    await db_session.commit()
    await db_session.refresh(driver)
    return driver


@pytest_asyncio.fixture
async def vehicle(db_session, tenant) -> Vehicle:
    vehicle = Vehicle(tenant_id=tenant.id, registration_number="WI12345", brand="Volvo")
    db_session.add(vehicle)
    await db_session.commit()
    await db_session.refresh(vehicle)
    return vehicle


async def create_order(client, api_prefix, headers, data, **overrides) -> dict:
    response = await client.post(f"{api_prefix}/orders", headers=headers, json={**data, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestOrderEndpoints:
    """Tests for /orders."""

    @pytest.mark.asyncio
    async def test_create_order(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        data = await create_order(
            client,
            api_prefix,
            manager_headers,
            sample_order_data,
            waypoints=[
                {"address": "Frankfurt (Oder)", "sequence": 5},
                {"address": "Poznan, Magazyn 3", "type": "LOADING"},
            ],
        )

        assert data["status"] == "NEW"
        assert data["status_label"] == "Nowe"
        assert data["order_number"] == "ZL/2026/001"
        assert [w["address"] for w in data["waypoints"]] == ["Poznan, Magazyn 3", "Frankfurt (Oder)"]
        assert data["waypoints"][0]["type"] == "LOADING"
        assert data["waypoints"][1]["type"] == "STOP"
        assert data["assignments"] == []

    @pytest.mark.asyncio
    async def test_optional_phones(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        created = await create_order(
            client, api_prefix, manager_headers, sample_order_data, loading_phone="600-100-200", unloading_phone=None
        )

        detail = await client.get(f"{api_prefix}/orders/{created['id']}", headers=manager_headers)
        assert detail.status_code == 200
        assert detail.json()["loading_phone"] == "600-100-200"
        assert detail.json()["unloading_phone"] is None

        updated = await client.patch(
            f"{api_prefix}/orders/{created['id']}", headers=manager_headers, json={"loading_phone": None}
        )
        assert updated.status_code == 200, updated.text
        assert updated.json()["loading_phone"] is None

    @pytest.mark.asyncio
    async def test_unloading_before_loading(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        response = await client.post(
            f"{api_prefix}/orders",
            headers=manager_headers,
            json={**sample_order_data, "unloading_date": "2026-03-01"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_duplicate_number(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        await create_order(client, api_prefix, manager_headers, sample_order_data)
        response = await client.post(f"{api_prefix}/orders", headers=manager_headers, json=sample_order_data)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_driver_becomes_primary_assignment(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile, vehicle
    ):
        data = await create_order(
            client,
            api_prefix,
            manager_headers,
            sample_order_data,
            driver_id=str(driver_profile.id),
            vehicle_id=str(vehicle.id),
        )

        assert len(data["assignments"]) == 1
        assignment = data["assignments"][0]
        assert assignment["is_primary"] is True
        assert assignment["revenue_share"] == 1.0
        assert assignment["allocated_amount"] == 4200.0
        assert assignment["start_date"] == sample_order_data["loading_date"]
        assert data["driver_id"] == str(driver_profile.id)

    @pytest.mark.asyncio
    async def test_unknown_reference(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        from uuid import uuid4

        response = await client.post(
            f"{api_prefix}/orders",
            headers=manager_headers,
            json={**sample_order_data, "contractor_id": str(uuid4())},
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "contractor_id"

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        await create_order(client, api_prefix, manager_headers, sample_order_data)
        await create_order(
            client,
            api_prefix,
            manager_headers,
            sample_order_data,
            order_number="ZL/2026/002",
            destination="Praga",
            destination_city="Praga",
            loading_date="2026-04-10",
            unloading_date="2026-04-11",
        )

        by_search = await client.get(f"{api_prefix}/orders", headers=manager_headers, params={"search": "praga"})
        assert [o["order_number"] for o in by_search.json()["items"]] == ["ZL/2026/002"]

        by_date = await client.get(
            f"{api_prefix}/orders",
            headers=manager_headers,
            params={"date_from": "2026-03-01", "date_to": "2026-03-31"},
        )
        assert [o["order_number"] for o in by_date.json()["items"]] == ["ZL/2026/001"]

        newest_first = await client.get(f"{api_prefix}/orders", headers=manager_headers)
        assert newest_first.json()["items"][0]["order_number"] == "ZL/2026/002"

    @pytest.mark.asyncio
    async def test_tenant_isolation(
        self, client: AsyncClient, api_prefix, manager_headers, other_admin_headers, sample_order_data
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        response = await client.get(f"{api_prefix}/orders/{order['id']}", headers=other_admin_headers)
        assert response.status_code == 404

        listed = await client.get(f"{api_prefix}/orders", headers=other_admin_headers)
        assert listed.json()["pagination"]["total"] == 0

        # Order numbers are unique per tenant only
        await create_order(client, api_prefix, other_admin_headers, sample_order_data)

    @pytest.mark.asyncio
    async def test_update_price_reallocates(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile
    ):
        order = await create_order(
            client, api_prefix, manager_headers, sample_order_data, driver_id=str(driver_profile.id)
        )

        response = await client.patch(
            f"{api_prefix}/orders/{order['id']}", headers=manager_headers, json={"price_net": 5000}
        )
        assert response.status_code == 200
        assert response.json()["assignments"][0]["allocated_amount"] == 5000.0

    @pytest.mark.asyncio
    async def test_update_replaces_waypoints(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data
    ):
        order = await create_order(
            client, api_prefix, manager_headers, sample_order_data, waypoints=[{"address": "Lodz"}]
        )

        response = await client.patch(
            f"{api_prefix}/orders/{order['id']}",
            headers=manager_headers,
            json={"waypoints": [{"address": "Kutno"}, {"address": "Konin"}]},
        )
        assert [w["address"] for w in response.json()["waypoints"]] == ["Kutno", "Konin"]

    @pytest.mark.asyncio
    async def test_viewer_is_read_only(
        self, client: AsyncClient, api_prefix, manager_headers, viewer_headers, sample_order_data
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        assert (await client.get(f"{api_prefix}/orders/{order['id']}", headers=viewer_headers)).status_code == 200
        response = await client.patch(
            f"{api_prefix}/orders/{order['id']}", headers=viewer_headers, json={"notes": "x"}
        )
        assert response.status_code == 403


class TestOrderStatusFlow:

    @pytest.mark.asyncio
    async def test_happy_path(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        url = f"{api_prefix}/orders/{order['id']}/status"

        for status in ("ACCEPTED", "LOADING", "IN_TRANSIT", "UNLOADING", "DELIVERED"):
            response = await client.patch(url, headers=manager_headers, json={"status": status})
            assert response.status_code == 200, response.text

        data = response.json()
        assert data["status"] == "DELIVERED"
        assert data["delivered_at"] is not None

        completed = await client.patch(url, headers=manager_headers, json={"status": "COMPLETED"})
        assert completed.json()["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        response = await client.patch(
            f"{api_prefix}/orders/{order['id']}/status", headers=manager_headers, json={"status": "COMPLETED"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_STATUS_TRANSITION"
        assert "ACCEPTED" in body["details"]["allowed"]

    @pytest.mark.asyncio
    async def test_status_through_patch_is_validated(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        response = await client.patch(
            f"{api_prefix}/orders/{order['id']}", headers=manager_headers, json={"status": "DELIVERED"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, client: AsyncClient, api_prefix, admin_headers, sample_order_data):
        order = await create_order(client, api_prefix, admin_headers, sample_order_data)
        await client.patch(
            f"{api_prefix}/orders/{order['id']}/status", headers=admin_headers, json={"status": "CANCELLED"}
        )

        logs = await client.get(
            f"{api_prefix}/audit-logs",
            headers=admin_headers,
            params={"entity_type": "Order", "entity_id": order["id"], "action": "STATUS_CHANGE"},
        )
        items = logs.json()["items"]
        assert len(items) == 1
        assert items[0]["changes"]["status"] == {"old": "NEW", "new": "CANCELLED"}


class TestOrderDuplicateAndDelete:

    @pytest.mark.asyncio
    async def test_duplicate(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile
    ):
        order = await create_order(
            client,
            api_prefix,
            manager_headers,
            sample_order_data,
            driver_id=str(driver_profile.id),
            waypoints=[{"address": "Lodz"}],
        )
        await client.patch(
            f"{api_prefix}/orders/{order['id']}/status", headers=manager_headers, json={"status": "ACCEPTED"}
        )

        first = await client.post(f"{api_prefix}/orders/{order['id']}/duplicate", headers=manager_headers)
        second = await client.post(f"{api_prefix}/orders/{order['id']}/duplicate", headers=manager_headers)

        assert first.status_code == 201
        copy = first.json()
        assert copy["order_number"] == "ZL/2026/001-KOPIA"
        assert second.json()["order_number"] == "ZL/2026/001-KOPIA-2"
        assert copy["status"] == "NEW"
        assert copy["price_net"] == 4200.0
        assert copy["assignments"] == []
        assert [w["address"] for w in copy["waypoints"]] == ["Lodz"]

    @pytest.mark.asyncio
    async def test_duplicate_with_offset(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        response = await client.post(
            f"{api_prefix}/orders/{order['id']}/duplicate",
            headers=manager_headers,
            params={"days_offset": 7},
        )

        copy = response.json()
        loading = date.today() + timedelta(days=7)
        assert copy["loading_date"] == loading.isoformat()
        assert copy["unloading_date"] == (loading + timedelta(days=2)).isoformat()

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, api_prefix, manager_headers, admin_headers, sample_order_data):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        forbidden = await client.delete(f"{api_prefix}/orders/{order['id']}", headers=manager_headers)
        assert forbidden.status_code == 403

        response = await client.delete(f"{api_prefix}/orders/{order['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert (await client.get(f"{api_prefix}/orders/{order['id']}", headers=manager_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_cmr_pdf(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)

        response = await client.get(f"{api_prefix}/orders/{order['id']}/cmr", headers=manager_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "CMR-ZL_2026_001.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")


class TestAssignments:
    """Tests for /orders/{id}/assignments."""

    @pytest.mark.asyncio
    async def test_split_revenue(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile, second_driver
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        url = f"{api_prefix}/orders/{order['id']}/assignments"

        first = await client.post(url, headers=manager_headers, json={"driver_id": str(driver_profile.id), "revenue_share": 0.6})
        second = await client.post(
            url,
            headers=manager_headers,
            json={"driver_id": str(second_driver.id), "revenue_share": 0.4, "start_date": "2026-03-03"},
        )

        assert first.status_code == 201
        assert first.json()["is_primary"] is True
        assert first.json()["allocated_amount"] == 2520.0
        assert second.json()["is_primary"] is False

        listing = (await client.get(url, headers=manager_headers)).json()
        assert listing["summary"]["total"] == 2
        assert listing["summary"]["total_revenue_share"] == 1.0
        assert listing["summary"]["remaining_share"] == 0.0
        assert listing["summary"]["total_allocated"] == 4200.0

    @pytest.mark.asyncio
    async def test_share_limit(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile, second_driver
    ):
        order = await create_order(
            client, api_prefix, manager_headers, sample_order_data, driver_id=str(driver_profile.id)
        )

        response = await client.post(
            f"{api_prefix}/orders/{order['id']}/assignments",
            headers=manager_headers,
            json={"driver_id": str(second_driver.id), "revenue_share": 0.5},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "REVENUE_SHARE_EXCEEDED"
        assert body["details"]["available"] == 0

    @pytest.mark.asyncio
    async def test_end_frees_share(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile, second_driver
    ):
        order = await create_order(
            client, api_prefix, manager_headers, sample_order_data, driver_id=str(driver_profile.id)
        )
        url = f"{api_prefix}/orders/{order['id']}/assignments"
        first_id = order["assignments"][0]["id"]

        ended = await client.patch(
            f"{url}/{first_id}",
            headers=manager_headers,
            json={"action": "end", "end_date": "2026-03-03", "reason": "VEHICLE_BREAKDOWN"},
        )
        assert ended.status_code == 200
        assert ended.json()["end_date"] == "2026-03-03"

        replacement = await client.post(
            url,
            headers=manager_headers,
            json={
                "driver_id": str(second_driver.id),
                "revenue_share": 1.0,
                "start_date": "2026-03-03",
                "reason": "VEHICLE_BREAKDOWN",
                "is_primary": True,
            },
        )
        assert replacement.status_code == 201

        detail = (await client.get(f"{api_prefix}/orders/{order['id']}", headers=manager_headers)).json()
        assert detail["driver_id"] == str(second_driver.id)

    @pytest.mark.asyncio
    async def test_same_driver_twice(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        url = f"{api_prefix}/orders/{order['id']}/assignments"
        await client.post(url, headers=manager_headers, json={"driver_id": str(driver_profile.id), "revenue_share": 0.5})

        response = await client.post(
            url, headers=manager_headers, json={"driver_id": str(driver_profile.id), "revenue_share": 0.5}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_start_before_loading(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        response = await client.post(
            f"{api_prefix}/orders/{order['id']}/assignments",
            headers=manager_headers,
            json={"driver_id": str(driver_profile.id), "start_date": "2026-02-20"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_inactive_driver_rejected(
        self, client: AsyncClient, api_prefix, admin_headers, sample_order_data, second_driver
    ):
        await client.delete(f"{api_prefix}/drivers/{second_driver.id}", headers=admin_headers)
        order = await create_order(client, api_prefix, admin_headers, sample_order_data)

        response = await client.post(
            f"{api_prefix}/orders/{order['id']}/assignments",
            headers=admin_headers,
            json={"driver_id": str(second_driver.id)},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REFERENCE"

    @pytest.mark.asyncio
    async def test_delete_primary_promotes_next(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile, second_driver
    ):
        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        url = f"{api_prefix}/orders/{order['id']}/assignments"
        primary = (
            await client.post(url, headers=manager_headers, json={"driver_id": str(driver_profile.id), "revenue_share": 0.5})
        ).json()
        await client.post(url, headers=manager_headers, json={"driver_id": str(second_driver.id), "revenue_share": 0.5})

        response = await client.delete(f"{url}/{primary['id']}", headers=manager_headers)
        assert response.status_code == 204

        detail = (await client.get(f"{api_prefix}/orders/{order['id']}", headers=manager_headers)).json()
        assert len(detail["assignments"]) == 1
        assert detail["assignments"][0]["is_primary"] is True
        assert detail["driver_id"] == str(second_driver.id)

    @pytest.mark.asyncio
    async def test_unknown_assignment(
        self, client: AsyncClient, api_prefix, manager_headers, sample_order_data
    ):
        from uuid import uuid4

        order = await create_order(client, api_prefix, manager_headers, sample_order_data)
        response = await client.delete(
            f"{api_prefix}/orders/{order['id']}/assignments/{uuid4()}", headers=manager_headers
        )
        assert response.status_code == 404
