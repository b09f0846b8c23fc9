"""
Tests for invoices, costs, finance export, CSV import and dashboard.
"""
import json
from datetime import date

import pytest
import pytest_asyncio
from httpx import AsyncClient

INVOICE_ITEM = {
    "description": "Transport Warszawa - Berlin",
    "quantity": 1,
    "unit_price_net": 4200,
    "vat_rate": 23,
}


@pytest_asyncio.fixture
async def contractor(client: AsyncClient, api_prefix, manager_headers, sample_contractor_data) -> dict:
    response = await client.post(f"{api_prefix}/contractors", headers=manager_headers, json=sample_contractor_data)
    assert response.status_code == 201, response.text
    return response.json()


async def create_invoice(client, api_prefix, headers, contractor_id, **overrides) -> dict:
    payload = {
        "contractor_id": contractor_id,
        "issue_date": "2026-03-10",
        "items": [INVOICE_ITEM],
        **overrides,
    }
    response = await client.post(f"{api_prefix}/invoices", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestInvoices:
    """Tests for /invoices."""

    @pytest.mark.asyncio
    async def test_create_draft(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        data = await create_invoice(client, api_prefix, manager_headers, contractor["id"])

        assert data["invoice_number"] == "FV/2026/03/0001"
        assert data["status"] == "DRAFT"
        assert data["net_amount"] == 4200.0
        assert data["vat_amount"] == 966.0
        assert data["gross_amount"] == 5166.0
        assert data["due_date"] == "2026-04-09"
        assert data["items"][0]["position"] == 1
        assert data["is_paid"] is False

    @pytest.mark.asyncio
    async def test_numbering_per_month(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        second = await create_invoice(client, api_prefix, manager_headers, contractor["id"], issue_date="2026-03-28")
        april = await create_invoice(client, api_prefix, manager_headers, contractor["id"], issue_date="2026-04-01")

        assert second["invoice_number"] == "FV/2026/03/0002"
        assert april["invoice_number"] == "FV/2026/04/0001"

    @pytest.mark.asyncio
    async def test_requires_items(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        response = await client.post(
            f"{api_prefix}/invoices",
            headers=manager_headers,
            json={"contractor_id": contractor["id"], "items": []},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_items_recalculates(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])

        response = await client.patch(
            f"{api_prefix}/invoices/{invoice['id']}",
            headers=manager_headers,
            json={
                "items": [
                    INVOICE_ITEM,
                    {"description": "Postoj", "quantity": 2, "unit_price_net": 150, "vat_rate": 23},
                ]
            },
        )

        data = response.json()
        assert data["net_amount"] == 4500.0
        assert data["gross_amount"] == 5535.0
        assert [i["position"] for i in data["items"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_issued_invoice_is_locked(
        self, client: AsyncClient, api_prefix, manager_headers, admin_headers, contractor
    ):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        url = f"{api_prefix}/invoices/{invoice['id']}"

        issued = await client.patch(url, headers=manager_headers, json={"status": "ISSUED"})
        assert issued.json()["status"] == "ISSUED"

        locked = await client.patch(url, headers=manager_headers, json={"notes": "zmiana"})
        assert locked.status_code == 400
        assert locked.json()["code"] == "INVOICE_LOCKED"

        deleted = await client.delete(url, headers=admin_headers)
        assert deleted.status_code == 400

    @pytest.mark.asyncio
    async def test_mark_paid(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        url = f"{api_prefix}/invoices/{invoice['id']}"
        await client.patch(url, headers=manager_headers, json={"status": "ISSUED"})

        response = await client.patch(url, headers=manager_headers, json={"is_paid": True, "paid_date": "2026-03-20"})

        data = response.json()
        assert data["status"] == "PAID"
        assert data["is_paid"] is True
        assert data["paid_amount"] == 5166.0
        assert data["paid_date"] == "2026-03-20"

        unpaid = await client.get(f"{api_prefix}/invoices", headers=manager_headers, params={"is_paid": "false"})
        assert unpaid.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_unmark_paid(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        url = f"{api_prefix}/invoices/{invoice['id']}"
        await client.patch(url, headers=manager_headers, json={"status": "ISSUED"})
        await client.patch(url, headers=manager_headers, json={"is_paid": True, "paid_date": "2026-03-20"})

        response = await client.patch(url, headers=manager_headers, json={"is_paid": False})

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "ISSUED"
        assert data["is_paid"] is False
        assert data["paid_amount"] is None
        assert data["paid_date"] is None

    @pytest.mark.asyncio
    async def test_payment_method_on_issued(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        url = f"{api_prefix}/invoices/{invoice['id']}"
        await client.patch(url, headers=manager_headers, json={"status": "ISSUED"})

        response = await client.patch(url, headers=manager_headers, json={"payment_method": "CASH"})

        assert response.status_code == 200, response.text
        assert response.json()["payment_method"] == "CASH"

    @pytest.mark.asyncio
    async def test_fractional_amounts(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        item = {"description": "Postoj", "quantity": 1, "unit_price_net": 10.5, "vat_rate": 5}
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"], items=[item])

        assert invoice["net_amount"] == 10.5
        assert invoice["vat_amount"] == 0.53
        assert invoice["gross_amount"] == 11.03

    @pytest.mark.asyncio
    async def test_order_linking(
        self, client: AsyncClient, api_prefix, manager_headers, admin_headers, contractor, sample_order_data
    ):
        order = (await client.post(f"{api_prefix}/orders", headers=manager_headers, json=sample_order_data)).json()
        invoice = await create_invoice(
            client, api_prefix, manager_headers, contractor["id"], order_ids=[order["id"]]
        )
        assert invoice["order_ids"] == [order["id"]]

        blocked = await client.delete(f"{api_prefix}/orders/{order['id']}", headers=admin_headers)
        assert blocked.status_code == 400

        second = await client.post(
            f"{api_prefix}/invoices",
            headers=manager_headers,
            json={"contractor_id": contractor["id"], "items": [INVOICE_ITEM], "order_ids": [order["id"]]},
        )
        assert second.status_code == 400

        url = f"{api_prefix}/invoices/{invoice['id']}"
        assert (await client.delete(url, headers=manager_headers)).status_code == 403

        # Deleting the draft releases the order
        await client.delete(url, headers=admin_headers)
        detail = await client.get(f"{api_prefix}/orders/{order['id']}", headers=manager_headers)
        assert detail.json()["invoice_id"] is None

    @pytest.mark.asyncio
    async def test_pdf(self, client: AsyncClient, api_prefix, manager_headers, contractor):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])

        response = await client.get(f"{api_prefix}/invoices/{invoice['id']}/pdf", headers=manager_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "faktura-FV_2026_03_0001.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see(
        self, client: AsyncClient, api_prefix, manager_headers, other_admin_headers, contractor
    ):
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        response = await client.get(f"{api_prefix}/invoices/{invoice['id']}", headers=other_admin_headers)
        assert response.status_code == 404


class TestCosts:
    """Tests for /costs."""

    @pytest.mark.asyncio
    async def test_create_and_summary(self, client: AsyncClient, api_prefix, manager_headers):
        for payload in (
            {"category": "FUEL", "description": "Tankowanie Orlen", "amount": 500, "date": "2026-03-05"},
            {"category": "FUEL", "description": "Tankowanie Shell", "amount": 250.25, "date": "2026-03-06"},
            {"category": "TOLL", "description": "Viatoll A2", "amount": 120.5, "date": "2026-03-06"},
        ):
            response = await client.post(f"{api_prefix}/costs", headers=manager_headers, json=payload)
            assert response.status_code == 201, response.text

        assert response.json()["category_label"] == "Opłaty drogowe"

        listing = await client.get(f"{api_prefix}/costs", headers=manager_headers)
        summary = listing.json()["summary"]
        assert summary["category_totals"] == {"FUEL": 750.25, "TOLL": 120.5}
        assert summary["total"] == 870.75

        fuel = await client.get(f"{api_prefix}/costs", headers=manager_headers, params={"category": "FUEL", "limit": 1})
        assert fuel.json()["pagination"]["total"] == 2
        assert fuel.json()["summary"]["total"] == 750.25

    @pytest.mark.asyncio
    async def test_amount_must_be_positive(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/costs",
            headers=manager_headers,
            json={"category": "FUEL", "description": "Zero", "amount": 0, "date": "2026-03-05"},
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "amount"

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, api_prefix, manager_headers, admin_headers):
        cost = (
            await client.post(
                f"{api_prefix}/costs",
                headers=manager_headers,
                json={"category": "PARKING", "description": "Parking Swiecko", "amount": 60, "date": "2026-03-05"},
            )
        ).json()

        updated = await client.patch(f"{api_prefix}/costs/{cost['id']}", headers=manager_headers, json={"amount": 80})
        assert updated.json()["amount"] == 80.0

        assert (await client.delete(f"{api_prefix}/costs/{cost['id']}", headers=manager_headers)).status_code == 403
        deleted = await client.delete(f"{api_prefix}/costs/{cost['id']}", headers=admin_headers)
        assert deleted.status_code == 204


class TestExport:
    """Tests for /export."""

    @pytest_asyncio.fixture
    async def paid_invoice(self, client: AsyncClient, api_prefix, manager_headers, contractor) -> dict:
        invoice = await create_invoice(client, api_prefix, manager_headers, contractor["id"])
        response = await client.patch(
            f"{api_prefix}/invoices/{invoice['id']}",
            headers=manager_headers,
            json={"status": "PAID"},
        )
        return response.json()

    PERIOD = {"date_from": "2026-03-01", "date_to": "2026-03-31"}

    @pytest.mark.asyncio
    async def test_invoices_csv(self, client: AsyncClient, api_prefix, manager_headers, paid_invoice):
        response = await client.get(
            f"{api_prefix}/export", headers=manager_headers, params={"type": "invoices", "format": "csv", **self.PERIOD}
        )

        assert response.status_code == 200
        assert response.headers["x-record-count"] == "1"
        assert "faktury-20260301-20260331.csv" in response.headers["content-disposition"]
        text = response.content.decode("utf-8")
        assert text.startswith("\ufeff")
        assert "FV/2026/03/0001" in text

    @pytest.mark.asyncio
    async def test_invoices_json(self, client: AsyncClient, api_prefix, manager_headers, paid_invoice):
        response = await client.get(
            f"{api_prefix}/export", headers=manager_headers, params={"type": "invoices", "format": "json", **self.PERIOD}
        )

        data = json.loads(response.content)
        assert data["record_count"] == 1
        invoice = data["invoices"][0]
        assert invoice["contractor"]["nip"] == "5260250274"
        assert invoice["amounts"]["gross"] == 5166.0
        assert invoice["status"] == "PAID"

    @pytest.mark.asyncio
    async def test_settlement(self, client: AsyncClient, api_prefix, manager_headers, paid_invoice):
        await client.post(
            f"{api_prefix}/costs",
            headers=manager_headers,
            json={"category": "FUEL", "description": "Tankowanie", "amount": 1200, "date": "2026-03-12"},
        )

        response = await client.get(
            f"{api_prefix}/export",
            headers=manager_headers,
            params={"type": "settlement", "format": "json", **self.PERIOD},
        )

        assert response.headers["x-record-count"] == "2"
        data = json.loads(response.content)
        assert data["invoices"]["paid"] == 1
        assert data["costs"]["by_category"]["FUEL"]["label"] == "Paliwo"
        assert data["profit"] == {"net": 3000.0, "gross": 3966.0}

    @pytest.mark.asyncio
    async def test_empty_period(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(
            f"{api_prefix}/export", headers=manager_headers, params={"type": "costs", **self.PERIOD}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_preview(self, client: AsyncClient, api_prefix, manager_headers, paid_invoice):
        response = await client.post(
            f"{api_prefix}/export",
            headers=manager_headers,
            json={"type": "invoices", "format": "xml", **self.PERIOD},
        )
        assert response.json() == {
            "type": "invoices",
            "format": "xml",
            "record_count": 1,
            "filename": "faktury-20260301-20260331.xml",
        }

    @pytest.mark.asyncio
    async def test_viewer_cannot_export(self, client: AsyncClient, api_prefix, viewer_headers):
        response = await client.get(
            f"{api_prefix}/export", headers=viewer_headers, params={"type": "invoices", **self.PERIOD}
        )
        assert response.status_code == 403


class TestImport:
    """Tests for /import."""

    @pytest.mark.asyncio
    async def test_columns(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(f"{api_prefix}/import", headers=manager_headers, params={"type": "contractors"})
        data = response.json()
        assert data["type"] == "contractors"
        assert "name" in data["required"]

    @pytest.mark.asyncio
    async def test_template(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.get(
            f"{api_prefix}/import", headers=manager_headers, params={"type": "vehicles", "action": "template"}
        )
        assert response.status_code == 200
        assert response.content.startswith(b"\xef\xbb\xbf")
        assert b"registration_number;type" in response.content

    @pytest.mark.asyncio
    async def test_import_drivers(self, client: AsyncClient, api_prefix, manager_headers, driver_profile):
        content = "first_name;last_name;city\nAdam;Mazur;Gdansk\nEwa;;Opole\nJan;Kowalski;Warszawa\n"

        response = await client.post(
            f"{api_prefix}/import",
            headers=manager_headers,
            params={"type": "drivers"},
            files={"file": ("kierowcy.csv", content.encode("utf-8"), "text/csv")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["imported"] == 1
        assert data["skipped"] == 2
        assert sorted(e["row"] for e in data["errors"]) == [3, 4]

        drivers = await client.get(f"{api_prefix}/drivers", headers=manager_headers, params={"search": "Mazur"})
        assert drivers.json()["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_rejects_non_csv(self, client: AsyncClient, api_prefix, manager_headers):
        response = await client.post(
            f"{api_prefix}/import",
            headers=manager_headers,
            params={"type": "drivers"},
            files={"file": ("kierowcy.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 400


class TestDashboard:

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, api_prefix, manager_headers, sample_order_data, driver_profile):
        today = date.today().isoformat()
        await client.post(
            f"{api_prefix}/orders",
            headers=manager_headers,
            json={**sample_order_data, "loading_date": today, "unloading_date": today},
        )
        await client.post(
            f"{api_prefix}/costs",
            headers=manager_headers,
            json={"category": "SERVICE", "description": "Wymiana oleju", "amount": 900, "date": today},
        )

        response = await client.get(f"{api_prefix}/dashboard/stats", headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["drivers"]["active"] == 1
        assert data["orders"]["today"] == 1
        assert data["orders"]["planned"] == 1
        assert data["orders"]["this_month"] == 1
        assert data["costs"]["this_month"] == 900.0
        assert data["recent_orders"][0]["order_number"] == "ZL/2026/001"
