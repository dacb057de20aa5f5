"""Integration tests for Cart API endpoints via TestClient."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from ordering.api.application import create_app
from ordering.errors import CatalogueUnavailableError


def _add_item(client, product_id="prod-mug", quantity=1, session_id="sess-001"):
    return client.post(f"/carts/{session_id}/items", json={"product_id": product_id, "quantity": quantity})


class TestAddItemEndpoint:
    def test_add_item_prices_the_line(self, client):
        response = _add_item(client, quantity=2)
        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == "sess-001"
        assert data["status"] == "Active"
        assert data["item_count"] == 2

        item = data["items"][0]
        assert item["name"] == "Ceramic Mug"
        assert item["description"] == "350 ml"
        assert item["unit_price_ht"] == "10.00"
        assert item["unit_price_ttc"] == "12.10"
        assert item["total_price_ht"] == "20.00"
        assert item["total_price_ttc"] == "24.20"
        assert item["vat_rate"] == "21.00"

        assert data["subtotal_ht"] == "20.00"
        assert data["tax"] == "4.20"
        assert data["total_ttc"] == "24.20"
        assert data["vat_breakdown"] == [{"rate": "21.00", "amount": "4.20"}]

    def test_mixed_rates(self, client):
        _add_item(client, "prod-mug", 2)
        data = _add_item(client, "prod-book", 1).json()
        assert data["subtotal_ht"] == "40.00"
        assert data["tax"] == "5.40"
        assert data["total_ttc"] == "45.40"
        assert data["vat_breakdown"] == [
            {"rate": "6.00", "amount": "1.20"},
            {"rate": "21.00", "amount": "4.20"},
        ]

    def test_catalogue_is_consulted_once_per_add(self, client, catalogue):
        _add_item(client, "prod-tea", 3)
        assert catalogue.lookups == ["prod-tea"]
        data = client.get("/carts/sess-001").json()
        assert data["items"][0]["unit_price_ttc"] == "5.29"
        assert catalogue.lookups == ["prod-tea"]

    def test_unknown_product(self, client):
        response = _add_item(client, "prod-ghost")
        assert response.status_code == 404

    def test_inactive_product(self, client):
        response = _add_item(client, "prod-retired")
        assert response.status_code == 404

    def test_zero_quantity(self, client):
        response = _add_item(client, quantity=0)
        assert response.status_code == 400

    def test_catalogue_outage(self, container):
        container.catalogue = MagicMock()
        container.catalogue.get_product.side_effect = CatalogueUnavailableError("Catalogue unreachable")
        client = TestClient(create_app(container))

        response = _add_item(client)
        assert response.status_code == 502
        assert response.json()["service"] == "catalogue"


class TestGetCartEndpoint:
    def test_get_cart(self, client):
        _add_item(client)
        response = client.get("/carts/sess-001")
        assert response.status_code == 200
        assert len(response.json()["items"]) == 1

    def test_no_cart(self, client):
        response = client.get("/carts/sess-none")
        assert response.status_code == 404
        assert "error" in response.json()


class TestUpdateAndRemoveEndpoints:
    def test_update_quantity(self, client):
        _add_item(client)
        response = client.put("/carts/sess-001/items/prod-mug", json={"quantity": 3})
        assert response.status_code == 200
        assert response.json()["total_ttc"] == "36.30"

    def test_zero_quantity_is_rejected(self, client):
        _add_item(client, quantity=2)
        response = client.put("/carts/sess-001/items/prod-mug", json={"quantity": 0})
        assert response.status_code == 400
        assert client.get("/carts/sess-001").json()["items"][0]["quantity"] == 2

    def test_update_missing_line(self, client):
        _add_item(client)
        response = client.put("/carts/sess-001/items/prod-book", json={"quantity": 1})
        assert response.status_code == 404

    def test_remove_item(self, client):
        _add_item(client, "prod-mug")
        _add_item(client, "prod-book")
        response = client.delete("/carts/sess-001/items/prod-mug")
        assert response.status_code == 200
        data = response.json()
        assert [item["product_id"] for item in data["items"]] == ["prod-book"]
        assert data["vat_breakdown"] == [{"rate": "6.00", "amount": "1.20"}]

    def test_clear_cart(self, client):
        _add_item(client, "prod-mug")
        _add_item(client, "prod-book")
        response = client.delete("/carts/sess-001")
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total_ttc"] == "0.00"
        assert data["vat_breakdown"] == []


class TestCheckoutDetailsEndpoint:
    def test_record_details(self, client, customer_data, shipping_data, billing_data):
        _add_item(client)
        response = client.put(
            "/carts/sess-001/checkout-details",
            json={
                "customer": customer_data,
                "shipping_address": shipping_data,
                "billing_address": billing_data,
                "use_same_billing_address": False,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["customer"]["email"] == "jane@example.com"
        assert data["shipping_address"]["city"] == "Brussels"
        assert data["billing_address"]["city"] == "Ixelles"

    def test_invalid_email(self, client, shipping_data):
        _add_item(client)
        response = client.put(
            "/carts/sess-001/checkout-details",
            json={"customer": {"email": "not-an-email"}, "shipping_address": shipping_data},
        )
        assert response.status_code == 422
