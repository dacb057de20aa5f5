"""In-memory catalogue for development and tests."""

from decimal import Decimal

from catalogue.lookup.port import Catalogue, Product


class InMemoryCatalogue(Catalogue):
    def __init__(self, products=None):
        self.products: dict[str, Product] = {}
        self.lookups: list[str] = []
        for product in products or []:
            self.add(product)

    def add(self, product: Product) -> Product:
        self.products[str(product.id)] = product
        return product

    def add_product(self, product_id, name, price_ht, vat_rate, is_active=True, description=None, image_url=None):
        return self.add(
            Product(
                id=str(product_id),
                name=name,
                price_ht=Decimal(str(price_ht)),
                vat_rate=Decimal(str(vat_rate)),
                is_active=is_active,
                description=description,
                image_url=image_url,
            )
        )

    def get_product(self, product_id: str) -> Product | None:
        self.lookups.append(str(product_id))
        return self.products.get(str(product_id))
