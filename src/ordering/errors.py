"""Error taxonomy for the Ordering domain.

Validation problems reuse Protean's ``ValidationError`` so they surface as
400 responses through the standard FastAPI handlers. The remaining classes
map to 404, 409 and 502 respectively (see ``ordering.api.errors``).
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class InvalidQuantityError(ValidationError):
    """A line quantity is not a positive integer."""

    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__({"quantity": [f"Quantity must be a positive integer, got {quantity!r}"]})


class InvalidVatRateError(ValidationError):
    """A VAT rate lies outside the 0-100 percent range."""

    def __init__(self, vat_rate):
        self.vat_rate = vat_rate
        super().__init__({"vat_rate": [f"VAT rate must be between 0 and 100, got {vat_rate!r}"]})


class NotFoundError(ObjectNotFoundError):
    """A cart, order, credit note or product does not exist."""


class ConflictError(InvalidOperationError):
    """The request conflicts with the current state (duplicate checkout, stale cart)."""


class UpstreamServiceError(Exception):
    """A collaborating service (catalogue, payment gateway) could not be reached."""

    service = "upstream"

    def __init__(self, message, service=None):
        super().__init__(message)
        if service is not None:
            self.service = service


class CatalogueUnavailableError(UpstreamServiceError):
    service = "catalogue"


class PaymentGatewayError(UpstreamServiceError):
    service = "payment-gateway"
