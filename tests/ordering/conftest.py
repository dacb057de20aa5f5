from decimal import Decimal

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Shared checkout data
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_data():
    return {
        "email": "jane@example.com",
        "first_name": "Jane",
        "last_name": "Doe",
        "phone": "+32 470 00 00 00",
    }


@pytest.fixture()
def shipping_data():
    return {
        "address": "Rue de la Loi 16",
        "postal_code": "1000",
        "city": "Brussels",
        "country": "Belgium",
    }


@pytest.fixture()
def billing_data():
    return {
        "address": "Avenue Louise 54",
        "postal_code": "1050",
        "city": "Ixelles",
        "country": "Belgium",
    }


@pytest.fixture()
def catalogue():
    from catalogue.lookup import InMemoryCatalogue

    catalogue = InMemoryCatalogue()
    catalogue.add_product("prod-mug", "Ceramic Mug", Decimal("10.00"), Decimal("21"), description="350 ml")
    catalogue.add_product("prod-book", "Cook Book", Decimal("20.00"), Decimal("6"))
    catalogue.add_product("prod-tea", "Green Tea", Decimal("4.99"), Decimal("6"))
    catalogue.add_product("prod-retired", "Old Poster", Decimal("15.00"), Decimal("21"), is_active=False)
    return catalogue


# ---------------------------------------------------------------------------
# Checkout collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from payments.gateway.fake_adapter import FakeGateway

    return FakeGateway()


@pytest.fixture()
def mailer():
    from notifications.channel.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture()
def cart_locks():
    from ordering.cart.locking import InProcessCartLocks

    return InProcessCartLocks(timeout=1.0)


@pytest.fixture()
def checkout_service(gateway, mailer, cart_locks):
    from ordering.checkout.service import CheckoutService

    return CheckoutService(gateway=gateway, mailer=mailer, cart_locks=cart_locks)


@pytest.fixture()
def fill_cart():
    """Add ``(product_id, name, unit_price_ht_cents, vat_rate, quantity)`` lines to a session's cart."""
    from ordering.cart.items import AddToCart
    from protean import current_domain

    def _fill(session_id, *lines):
        cart_id = None
        for product_id, name, unit_price_ht_cents, vat_rate, quantity in lines:
            cart_id = current_domain.process(
                AddToCart(
                    session_id=session_id,
                    product_id=product_id,
                    name=name,
                    unit_price_ht_cents=unit_price_ht_cents,
                    vat_rate=vat_rate,
                    quantity=quantity,
                ),
                asynchronous=False,
            )
        return cart_id

    return _fill


MUG = ("prod-mug", "Ceramic Mug", 1000, 21.0, 2)
BOOK = ("prod-book", "Cook Book", 2000, 6.0, 1)


@pytest.fixture()
def place_paid_order(fill_cart, checkout_service, gateway, customer_data, shipping_data):
    """Run a full checkout for ``session_id`` and return the finalized result."""

    def _place(session_id="sess-001", lines=(MUG, BOOK), customer_id="cust-001"):
        fill_cart(session_id, *lines)
        started = checkout_service.start(
            cart_session_id=session_id,
            customer=customer_data,
            shipping_address=shipping_data,
            customer_id=customer_id,
            success_url="https://shop.example/success",
            cancel_url="https://shop.example/cart",
        )
        gateway.complete_payment(started.payment_session_id)
        return checkout_service.finalize(started.payment_session_id)

    return _place
