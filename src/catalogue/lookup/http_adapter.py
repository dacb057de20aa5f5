"""Catalogue lookup over the product service's HTTP API."""

from decimal import Decimal, InvalidOperation

import requests
import structlog

from catalogue.lookup.port import Catalogue, Product
from ordering.errors import CatalogueUnavailableError

logger = structlog.get_logger(__name__)


def _first(payload: dict, *keys, default=None):
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return default


def product_from_payload(payload: dict) -> Product:
    """Build a Product from either the snake_case or the camelCase wire shape."""
    if "product" in payload and isinstance(payload["product"], dict):
        payload = payload["product"]
    try:
        return Product(
            id=str(payload["id"]),
            name=payload["name"],
            price_ht=Decimal(str(_first(payload, "price_ht", "price"))),
            vat_rate=Decimal(str(_first(payload, "vat_rate", "vatRate"))),
            is_active=bool(_first(payload, "is_active", "isActive", default=True)),
            description=payload.get("description"),
            image_url=_first(payload, "image_url", "imageUrl"),
        )
    except (KeyError, TypeError, InvalidOperation) as exc:
        raise CatalogueUnavailableError(f"Malformed product payload: {exc}") from exc


class HttpCatalogue(Catalogue):
    def __init__(self, base_url: str, timeout: float = 5.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_product(self, product_id: str) -> Product | None:
        url = f"{self.base_url}/products/{product_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Catalogue request failed", url=url, error=str(exc))
            raise CatalogueUnavailableError(f"Catalogue unreachable: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.error("Catalogue returned an error", url=url, status_code=response.status_code)
            raise CatalogueUnavailableError(f"Catalogue answered {response.status_code} for product {product_id}")

        return product_from_payload(response.json())
