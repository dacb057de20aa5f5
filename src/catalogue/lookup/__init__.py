"""Catalogue lookup adapters.

``build_catalogue`` returns the HTTP adapter when a product service URL is
configured and an empty in-memory catalogue otherwise.
"""

from catalogue.lookup.memory import InMemoryCatalogue
from catalogue.lookup.port import Catalogue, Product


def build_catalogue(base_url: str | None = None, timeout: float = 5.0) -> Catalogue:
    if not base_url:
        return InMemoryCatalogue()

    from catalogue.lookup.http_adapter import HttpCatalogue

    return HttpCatalogue(base_url=base_url, timeout=timeout)


__all__ = ["Catalogue", "InMemoryCatalogue", "Product", "build_catalogue"]
