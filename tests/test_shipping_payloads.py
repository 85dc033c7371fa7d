"""
Shiprocket payload mapping and request validation.

Pure functions only: no token, no network.
"""
import pytest

from app.config import Settings
from app.exceptions import ShippingValidationError
from app.services.shipping_relay_service import (
    ServiceabilityRequest,
    ShippingOrderRequest,
    build_order_payload,
    build_serviceability_payload,
    pickup_location_from_settings,
)
from app.utils.helpers import (
    is_valid_phone,
    is_valid_pincode,
    leading_int,
    number_or_default,
    only_digits,
    utcnow,
)

PICKUP = {"name": "Test Pickup", "pincode": "841206"}


def _order(**overrides):
    body = {
        "order_id": "a1b2c3",
        "order_date": "2026-10-14 15:30",
        "customer_email": "ravi@example.com",
        "address_details": {
            "fullName": "Ravi Kumar",
            "phone": "98765-43210",
            "streetAddress": "12 MG Road",
            "city": "Patna",
            "state": "Bihar",
            "pincode": "800001",
            "postOffice": "GPO",
        },
        "items": [
            {"id": "P1", "name": "Kurta", "price": 799, "quantity": 2, "imageUrl": "x.jpg"},
        ],
        "total_amount": 1598,
        "payment_method": "cod",
    }
    body.update(overrides)
    return ShippingOrderRequest.model_validate(body)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_only_digits_strips_separators():
    assert only_digits("+91 98765-43210") == "919876543210"
    assert only_digits(None) == ""


def test_phone_and_pincode_rules():
    assert is_valid_phone("98765 43210")
    assert not is_valid_phone("+91 98765 43210")
    assert is_valid_pincode(800001)
    assert not is_valid_pincode("8000")


def test_number_or_default_treats_falsy_as_missing():
    assert number_or_default(None, 10) == 10
    assert number_or_default(0, 0.5) == 0.5
    assert number_or_default("12.5") == 12.5


def test_leading_int_reads_integer_prefix():
    assert leading_int("2.5") == 2
    assert leading_int(" 3 pcs") == 3
    assert leading_int(4.9) == 4
    assert leading_int("two") is None
    assert leading_int(None) is None
    assert leading_int(True) is None


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_fractional_quantity_becomes_whole_units():
    order = _order(items=[{"id": "P1", "price": 799, "quantity": "2.5"}, {"id": "P2", "quantity": "lots"}])

    items = build_order_payload(order, PICKUP, "1")["order_items"]

    assert [item["units"] for item in items] == [2, 1]


def test_non_list_items_read_as_missing():
    with pytest.raises(ShippingValidationError, match="items array required"):
        build_order_payload(_order(items="nope"), PICKUP, "1")


# ---------------------------------------------------------------------------
# Create-order payload
# ---------------------------------------------------------------------------

class TestOrderPayload:

    def test_address_maps_to_billing_and_shipping(self):
        payload = build_order_payload(_order(address_details={
            "fullName": "Ravi Kumar",
            "phone": "98765-43210",
            "streetAddress": "12 MG Road",
            "city": "Patna",
            "state": "Bihar",
            "pincode": "800001",
            "landmark": "Near Gandhi Maidan",
        }), PICKUP, "123")

        for prefix in ("billing", "shipping"):
            assert payload[f"{prefix}_customer_name"] == "Ravi Kumar"
            assert payload[f"{prefix}_last_name"] == ""
            assert payload[f"{prefix}_address"] == "12 MG Road"
            assert payload[f"{prefix}_address_2"] == "Near Gandhi Maidan"
            assert payload[f"{prefix}_city"] == "Patna"
            assert payload[f"{prefix}_state"] == "Bihar"
            assert payload[f"{prefix}_pincode"] == "800001"
            assert payload[f"{prefix}_country"] == "India"
            assert payload[f"{prefix}_email"] == "ravi@example.com"
            assert payload[f"{prefix}_phone"] == "9876543210"

    def test_fixed_fields(self):
        payload = build_order_payload(_order(address_details={
            "fullName": "Ravi", "phone": "9876543210", "streetAddress": "x",
            "city": "Patna", "state": "Bihar", "pincode": "800001",
        }), PICKUP, "9191867")

        assert payload["order_id"] == "a1b2c3"
        assert payload["order_date"] == "2026-10-14 15:30"
        assert payload["shipping_is_billing"] is True
        assert payload["pickup_location"] == PICKUP
        assert payload["channel_id"] == "9191867"
        assert payload["comment"] == "Order from website"

    def test_items_hard_zero_discount_and_tax(self):
        order = _order(
            address_details={"fullName": "R", "phone": "9876543210", "pincode": "800001"},
            items=[
                {"id": "P1", "name": "Kurta", "price": 799, "quantity": 2, "discount": 50, "tax": 18},
                {"sku": "SKU-9", "price": "250"},
                {},
            ],
        )

        items = build_order_payload(order, PICKUP, "1")["order_items"]

        assert items[0] == {
            "name": "Kurta", "sku": "P1", "units": 2, "selling_price": 799.0,
            "discount": 0, "tax": 0, "hsn": "",
        }
        assert items[1]["sku"] == "SKU-9"
        assert items[1]["units"] == 1
        assert items[1]["selling_price"] == 250.0
        assert items[2]["name"] == "Item"
        assert items[2]["sku"] == "SKU"

    def test_defaults_for_dimensions_weight_and_charges(self):
        order = _order(address_details={"fullName": "R", "phone": "9876543210", "pincode": "800001"})
        payload = build_order_payload(order, PICKUP, "1")

        assert (payload["length"], payload["breadth"], payload["height"]) == (10, 10, 10)
        assert payload["weight"] == 0.5
        assert payload["shipping_charges"] == 0
        assert payload["total_discount"] == 0
        assert payload["sub_total"] == 1598.0

    def test_explicit_dimensions_and_weight(self):
        order = _order(
            address_details={"fullName": "R", "phone": "9876543210", "pincode": "800001"},
            dimensions={"length": 30, "breadth": 20},
            weight=1.2,
        )
        payload = build_order_payload(order, PICKUP, "1")

        assert (payload["length"], payload["breadth"], payload["height"]) == (30, 20, 10)
        assert payload["weight"] == 1.2

    @pytest.mark.parametrize("method,expected", [
        ("cod", "COD"), ("COD", "COD"), ("qr_code", "Prepaid"), ("phonepe", "Prepaid"), (None, "Prepaid"),
    ])
    def test_payment_method(self, method, expected):
        order = _order(
            address_details={"fullName": "R", "phone": "9876543210", "pincode": "800001"},
            payment_method=method,
        )
        assert build_order_payload(order, PICKUP, "1")["payment_method"] == expected

    def test_numeric_order_id_is_stringified(self):
        order = _order(
            order_id=42,
            address_details={"fullName": "R", "phone": "9876543210", "pincode": "800001"},
        )
        assert build_order_payload(order, PICKUP, "1")["order_id"] == "42"

    def test_invalid_billing_phone_and_pincode_fall_back_to_shipping(self):
        order = _order(
            address_details={"fullName": "Ravi", "phone": "9876543210", "pincode": "800001"},
            billing_address={"fullName": "Asha", "phone": "123", "pincode": "12"},
        )
        payload = build_order_payload(order, PICKUP, "1")

        assert payload["billing_customer_name"] == "Asha"
        assert payload["billing_phone"] == "9876543210"
        assert payload["billing_pincode"] == "800001"


class TestOrderValidation:

    @pytest.mark.parametrize("overrides,message", [
        ({"order_id": None}, "order_id is required"),
        ({"order_date": ""}, "order_date is required (YYYY-MM-DD HH:MM)"),
        ({"items": []}, "items array required with at least one item"),
        ({"address_details": None}, "address_details required"),
    ])
    def test_required_fields(self, overrides, message):
        with pytest.raises(ShippingValidationError) as exc_info:
            build_order_payload(_order(**overrides), PICKUP, "1")
        assert exc_info.value.message == message
        assert exc_info.value.status_code == 400

    def test_shipping_phone_must_be_ten_digits(self):
        order = _order(address_details={"fullName": "R", "phone": "12345", "pincode": "800001"})
        with pytest.raises(ShippingValidationError, match="phone must be 10 digits"):
            build_order_payload(order, PICKUP, "1")

    def test_shipping_pincode_must_be_six_digits(self):
        order = _order(address_details={"fullName": "R", "phone": "9876543210", "pincode": "8000"})
        with pytest.raises(ShippingValidationError, match="pincode must be 6 digits"):
            build_order_payload(order, PICKUP, "1")


# ---------------------------------------------------------------------------
# Serviceability payload
# ---------------------------------------------------------------------------

class TestServiceabilityPayload:

    def test_cod_and_declared_value(self):
        req = ServiceabilityRequest(
            pickup_postcode="841206", delivery_postcode="800001",
            weight=1.5, cod_amount=1598, order_amount=1598,
        )
        payload = build_serviceability_payload(req, now=1_700_000_000.5)

        assert payload["pickup_postcode"] == "841206"
        assert payload["delivery_postcode"] == "800001"
        assert payload["weight"] == 1.5
        assert payload["cod"] == 1598
        assert payload["declared_value"] == 1598
        assert payload["order_id"] == "SERVICE_CHECK_1700000000500"

    def test_defaults(self):
        req = ServiceabilityRequest.model_validate({"pickup_postcode": 841206, "delivery_postcode": 800001})
        payload = build_serviceability_payload(req, now=0)

        assert payload["pickup_postcode"] == "841206"
        assert payload["weight"] == 0.5
        assert payload["cod"] == 0
        assert payload["declared_value"] == 0
        assert (payload["length"], payload["breadth"], payload["height"]) == (10, 10, 10)

    def test_postcodes_required(self):
        with pytest.raises(ShippingValidationError, match="pickup_postcode and delivery_postcode required"):
            build_serviceability_payload(ServiceabilityRequest(pickup_postcode="841206"), now=0)


def test_pickup_email_falls_back_to_account_email():
    settings = Settings(shiprocket_email="shop@example.com", pickup_email=None)
    assert pickup_location_from_settings(settings)["email"] == "shop@example.com"
