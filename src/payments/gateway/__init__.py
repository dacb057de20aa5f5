"""Payment gateway factory.

``build_gateway`` picks the adapter named by the application settings. The
result is owned by the application container; nothing here keeps global
state.
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

GATEWAYS = ("fake",)


def build_gateway(name: str = "fake", base_url: str | None = None) -> PaymentGateway:
    """Return a new gateway adapter for ``name``."""
    if name == "fake":
        return FakeGateway(base_url=base_url) if base_url else FakeGateway()
    raise ValueError(f"Unknown payment gateway: {name!r} (expected one of {', '.join(GATEWAYS)})")
