import pytest
from container import Container
from fastapi.testclient import TestClient
from ordering.api.application import create_app
from settings import Settings


@pytest.fixture()
def container(catalogue, gateway, mailer, cart_locks):
    return Container(
        settings=Settings(environment="test"),
        catalogue=catalogue,
        gateway=gateway,
        mailer=mailer,
        cart_locks=cart_locks,
    )


@pytest.fixture()
def client(container):
    return TestClient(create_app(container))


@pytest.fixture()
def checkout_body(customer_data, shipping_data):
    return {
        "cart_session_id": "sess-001",
        "customer": customer_data,
        "shipping_address": shipping_data,
        "use_same_billing_address": True,
        "success_url": "https://shop.example/success",
        "cancel_url": "https://shop.example/cart",
    }


@pytest.fixture()
def api_order(client, gateway, checkout_body):
    """Check out a mug and a book through the API and return the order id."""

    def _order(session_id="sess-001", customer_id=None):
        client.post(f"/carts/{session_id}/items", json={"product_id": "prod-mug", "quantity": 2})
        client.post(f"/carts/{session_id}/items", json={"product_id": "prod-book", "quantity": 1})
        body = {**checkout_body, "cart_session_id": session_id, "customer_id": customer_id}
        started = client.post("/checkout/start", json=body)
        assert started.status_code == 201, started.text
        payment_session_id = started.json()["payment_session_id"]
        gateway.complete_payment(payment_session_id)
        finalized = client.post("/checkout/finalize", json={"payment_session_id": payment_session_id})
        assert finalized.status_code == 201, finalized.text
        return finalized.json()["order_id"]

    return _order
