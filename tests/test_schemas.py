"""
Tests for shared schema validators.
"""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.schemas.contractor import ContractorCreate, ContractorUpdate
from app.schemas.cost import CostCreate
from app.schemas.order import OrderUpdate
from app.schemas.vehicle import VehicleUpdate


class TestOptionalFields:

    def test_missing_and_null_are_accepted(self):
        contractor = ContractorCreate(name="Trans-Pol", phone=None)
        assert contractor.phone is None
        assert contractor.contact_phone is None

        assert VehicleUpdate(registration_number=None).registration_number is None
        assert OrderUpdate(origin_country=None, loading_phone=None).origin_country is None
        assert ContractorUpdate(country=None).country is None

    def test_values_are_normalized(self):
        assert VehicleUpdate(registration_number=" wa 12345 ").registration_number == "WA 12345"
        assert OrderUpdate(origin_country="de").origin_country == "DE"
        assert ContractorCreate(name="Trans-Pol", phone="").phone is None

    def test_constraints_still_apply(self):
        with pytest.raises(ValidationError):
            VehicleUpdate(registration_number="W")
        with pytest.raises(ValidationError):
            OrderUpdate(origin_country="DEU")
        with pytest.raises(ValidationError):
            ContractorCreate(name="Trans-Pol", phone="12")


class TestMoney:

    def test_decimal_in_python_number_in_json(self):
        cost = CostCreate(category="FUEL", description="Tankowanie", amount="750.25", date="2026-03-05")
        assert cost.amount == Decimal("750.25")
        assert cost.model_dump(mode="json")["amount"] == 750.25

    def test_more_than_two_decimals_rejected(self):
        with pytest.raises(ValidationError):
            CostCreate(category="FUEL", description="Tankowanie", amount="10.001", date="2026-03-05")
