"""
Tests for drivers, vehicles, trailers and contractors endpoints.
"""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient


class TestDriverEndpoints:
    """Tests for /drivers."""

    @pytest.mark.asyncio
    async def test_create_driver(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/drivers",
            headers=manager_headers,
            json={
                "first_name": "Piotr",
                "last_name": "Zielinski",
                "pesel": "85010112345",
                "phone": "+48 601 202 303",
                "license_categories": "C,CE",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["first_name"] == "Piotr"
        assert data["status"] == "ACTIVE"
        assert data["expiry_warnings"] == []

    @pytest.mark.asyncio
    async def test_invalid_pesel(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/drivers",
            headers=manager_headers,
            json={"first_name": "Piotr", "last_name": "Zielinski", "pesel": "12345"},
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "pesel"

    @pytest.mark.asyncio
    async def test_duplicate_pesel(self, client: AsyncClient, api_prefix, manager_headers):
        payload = {"first_name": "Piotr", "last_name": "Zielinski", "pesel": "85010112345"}
        await client.post(f"{api_prefix}/drivers", headers=manager_headers, json=payload)

        response = await client.post(
            f"{api_prefix}/drivers",
            headers=manager_headers,
            json={**payload, "first_name": "Pawel"},
        )
        assert response.status_code == 409
        assert response.json()["details"]["field"] == "pesel"

    @pytest.mark.asyncio
    async def test_viewer_cannot_create(self, client: AsyncClient, api_prefix, viewer_headers):
        response = await client.post(
            f"{api_prefix}/drivers",
            headers=viewer_headers,
            json={"first_name": "Piotr", "last_name": "Zielinski"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_expiry_warnings(self, client: AsyncClient, api_prefix, manager_headers):
        soon = date.today() + timedelta(days=10)
        expired = date.today() - timedelta(days=3)
        created = await client.post(
            f"{api_prefix}/drivers",
            headers=manager_headers,
            json={
                "first_name": "Adam",
                "last_name": "Wrobel",
                "license_expiry": soon.isoformat(),
                "medical_expiry": expired.isoformat(),
                "adr_expiry": (date.today() + timedelta(days=400)).isoformat(),
            },
        )
        warnings = created.json()["expiry_warnings"]

        assert [w["type"] for w in warnings] == ["medical", "license"]
        assert warnings[0]["is_expired"] is True
        assert warnings[1]["days_until_expiry"] == 10

        listed = await client.get(
            f"{api_prefix}/drivers", headers=manager_headers, params={"has_expiring_documents": True}
        )
        assert [d["last_name"] for d in listed.json()["items"]] == ["Wrobel"]

    @pytest.mark.asyncio
    async def test_list_search_and_pagination(self, client: AsyncClient, api_prefix, manager_headers):
        for last_name in ("Adamczyk", "Baran", "Cieslak"):
            await client.post(
                f"{api_prefix}/drivers",
                headers=manager_headers,
                json={"first_name": "Jan", "last_name": last_name},
            )

        page = await client.get(f"{api_prefix}/drivers", headers=manager_headers, params={"limit": 2})
        data = page.json()
        assert [d["last_name"] for d in data["items"]] == ["Adamczyk", "Baran"]
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["has_next_page"] is True

        search = await client.get(f"{api_prefix}/drivers", headers=manager_headers, params={"search": "cies"})
        assert [d["last_name"] for d in search.json()["items"]] == ["Cieslak"]

    @pytest.mark.asyncio
    async def test_update_driver(self, client: AsyncClient, api_prefix, manager_headers, driver_profile):
        response = await client.patch(
            f"{api_prefix}/drivers/{driver_profile.id}",
            headers=manager_headers,
            json={"status": "ON_LEAVE", "notes": "Urlop do konca miesiaca"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ON_LEAVE"

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_read(self, client: AsyncClient, api_prefix, other_admin_headers, driver_profile):
        response = await client.get(f"{api_prefix}/drivers/{driver_profile.id}", headers=other_admin_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_deactivates(self, client: AsyncClient, api_prefix, admin_headers, driver_profile):
        response = await client.delete(f"{api_prefix}/drivers/{driver_profile.id}", headers=admin_headers)
        assert response.status_code == 204

        detail = await client.get(f"{api_prefix}/drivers/{driver_profile.id}", headers=admin_headers)
        assert detail.json()["is_active"] is False
        assert detail.json()["status"] == "TERMINATED"

    @pytest.mark.asyncio
    async def test_delete_with_active_order(
        self, client: AsyncClient, api_prefix, admin_headers, driver_profile, sample_order_data
    ):
        await client.post(
            f"{api_prefix}/orders",
            headers=admin_headers,
            json={**sample_order_data, "driver_id": str(driver_profile.id)},
        )

        response = await client.delete(f"{api_prefix}/drivers/{driver_profile.id}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["details"]["active_count"] == 1


class TestVehicleEndpoints:
    """Tests for /vehicles and /trailers."""

    @pytest.mark.asyncio
    async def test_create_vehicle_normalizes_plate(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/vehicles",
            headers=manager_headers,
            json={"registration_number": " wi 12345 ", "type": "TRUCK", "brand": "Volvo", "model": "FH16"},
        )
        assert response.status_code == 201
        assert response.json()["registration_number"] == "WI 12345"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client: AsyncClient, api_prefix, manager_headers):
        await client.post(f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "WI12345"})
        response = await client.post(
            f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "wi12345"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_ENTITY"

    @pytest.mark.asyncio
    async def test_same_plate_in_other_tenant(
        self, client: AsyncClient, api_prefix, manager_headers, other_admin_headers
    ):
        first = await client.post(
            f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "PO55555"}
        )
        second = await client.post(
            f"{api_prefix}/vehicles", headers=other_admin_headers, json={"registration_number": "PO55555"}
        )
        assert first.status_code == 201
        assert second.status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_driver_reference(self, client: AsyncClient, api_prefix, manager_headers, other_tenant):
        from uuid import uuid4

        response = await client.post(
            f"{api_prefix}/vehicles",
            headers=manager_headers,
            json={"registration_number": "WI77777", "current_driver_id": str(uuid4())},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REFERENCE"

    @pytest.mark.asyncio
    async def test_filter_by_type(self, client: AsyncClient, api_prefix, manager_headers):
        await client.post(f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "WI1", "type": "TRUCK"})
        await client.post(f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "WI2", "type": "BUS"})

        response = await client.get(f"{api_prefix}/vehicles", headers=manager_headers, params={"type": "BUS"})
        assert [v["registration_number"] for v in response.json()["items"]] == ["WI2"]

    @pytest.mark.asyncio
    async def test_delete_vehicle(self, client: AsyncClient, api_prefix, admin_headers):
        created = await client.post(
            f"{api_prefix}/vehicles", headers=admin_headers, json={"registration_number": "WI99999"}
        )
        vehicle_id = created.json()["id"]

        response = await client.delete(f"{api_prefix}/vehicles/{vehicle_id}", headers=admin_headers)
        assert response.status_code == 204

        detail = await client.get(f"{api_prefix}/vehicles/{vehicle_id}", headers=admin_headers)
        assert detail.json()["status"] == "INACTIVE"

    @pytest.mark.asyncio
    async def test_manager_cannot_delete(self, client: AsyncClient, api_prefix, manager_headers):
        created = await client.post(
            f"{api_prefix}/vehicles", headers=manager_headers, json={"registration_number": "WI88888"}
        )
        response = await client.delete(f"{api_prefix}/vehicles/{created.json()['id']}", headers=manager_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_trailer_crud(self, client: AsyncClient, api_prefix, admin_headers):
        created = await client.post(
            f"{api_prefix}/trailers",
            headers=admin_headers,
            json={"registration_number": "wi4567p", "type": "REFRIGERATOR", "axles": 3},
        )
        assert created.status_code == 201
        trailer = created.json()
        assert trailer["registration_number"] == "WI4567P"

        updated = await client.patch(
            f"{api_prefix}/trailers/{trailer['id']}", headers=admin_headers, json={"status": "IN_SERVICE"}
        )
        assert updated.json()["status"] == "IN_SERVICE"

        listed = await client.get(f"{api_prefix}/trailers", headers=admin_headers)
        assert listed.json()["pagination"]["total"] == 1

        deleted = await client.delete(f"{api_prefix}/trailers/{trailer['id']}", headers=admin_headers)
        assert deleted.status_code == 204


class TestContractorEndpoints:
    """Tests for /contractors."""

    @pytest.mark.asyncio
    async def test_create_contractor(self, client: AsyncClient, api_prefix, manager_headers, sample_contractor_data):
        response = await client.post(
            f"{api_prefix}/contractors",
            headers=manager_headers,
            json={**sample_contractor_data, "nip": "PL 526-025-02-74"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["nip"] == "5260250274"
        assert data["payment_days"] == 30

    @pytest.mark.asyncio
    async def test_optional_phones(self, client: AsyncClient, api_prefix, manager_headers, sample_contractor_data):
        response = await client.post(
            f"{api_prefix}/contractors",
            headers=manager_headers,
            json={**sample_contractor_data, "phone": "+48 600 100 200", "contact_phone": None},
        )
        assert response.status_code == 201, response.text
        contractor_id = response.json()["id"]

        detail = await client.get(f"{api_prefix}/contractors/{contractor_id}", headers=manager_headers)
        assert detail.status_code == 200
        assert detail.json()["phone"] == "+48 600 100 200"
        assert detail.json()["contact_phone"] is None

        updated = await client.patch(
            f"{api_prefix}/contractors/{contractor_id}", headers=manager_headers, json={"phone": None}
        )
        assert updated.status_code == 200, updated.text
        assert updated.json()["phone"] is None

    @pytest.mark.asyncio
    async def test_invalid_nip(self, client: AsyncClient, api_prefix, manager_headers, sample_contractor_data):
        response = await client.post(
            f"{api_prefix}/contractors",
            headers=manager_headers,
            json={**sample_contractor_data, "nip": "123"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_nip(self, client: AsyncClient, api_prefix, manager_headers, sample_contractor_data):
        await client.post(f"{api_prefix}/contractors", headers=manager_headers, json=sample_contractor_data)
        response = await client.post(
            f"{api_prefix}/contractors",
            headers=manager_headers,
            json={**sample_contractor_data, "name": "Inna nazwa"},
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_filter_by_type(self, client: AsyncClient, api_prefix, manager_headers, sample_contractor_data):
        await client.post(f"{api_prefix}/contractors", headers=manager_headers, json=sample_contractor_data)
        await client.post(
            f"{api_prefix}/contractors",
            headers=manager_headers,
            json={"name": "Przewoznik XYZ", "type": "CARRIER"},
        )

        response = await client.get(f"{api_prefix}/contractors", headers=manager_headers, params={"type": "CARRIER"})
        assert [c["name"] for c in response.json()["items"]] == ["Przewoznik XYZ"]

    @pytest.mark.asyncio
    async def test_delete_with_active_order(
        self, client: AsyncClient, api_prefix, admin_headers, sample_contractor_data, sample_order_data
    ):
        contractor = (
            await client.post(f"{api_prefix}/contractors", headers=admin_headers, json=sample_contractor_data)
        ).json()
        await client.post(
            f"{api_prefix}/orders",
            headers=admin_headers,
            json={**sample_order_data, "contractor_id": contractor["id"]},
        )

        response = await client.delete(f"{api_prefix}/contractors/{contractor['id']}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "ENTITY_IN_USE"
