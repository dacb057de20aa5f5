"""Catalogue lookup port: what ordering needs to know about a product.

The catalogue is consulted once, when a product is added to a cart. The
returned values are snapshotted onto the cart line and never fetched again
for that line.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price_ht: Decimal
    vat_rate: Decimal
    is_active: bool = True
    description: str | None = None
    image_url: str | None = None


class Catalogue(ABC):
    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return the product, or ``None`` if the catalogue does not know it."""
        ...
