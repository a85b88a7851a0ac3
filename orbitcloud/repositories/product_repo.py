"""
Read-only product catalog, injected into the order service.

The built-in catalog can be replaced with a JSON file of the same shape
(``{"linux": [...], "windows": [...], "nodejs": [...]}``) via ``CATALOG_PATH``.
"""
import json
from pathlib import Path

from orbitcloud.models.product import Product

DEFAULT_CATALOG = {
    "linux": [
        {"id": "linux_1", "name": "Nano Linux", "price": 15000, "ram": 1024, "disk": 2048, "cpu": 50, "extra": "Slot: 30 Players", "category": "linux"},
        {"id": "linux_2", "name": "Mega Linux", "price": 35000, "ram": 2048, "disk": 5120, "cpu": 100, "extra": "Slot: 100 Players", "category": "linux"},
        {"id": "linux_3", "name": "Giga Linux", "price": 65000, "ram": 4096, "disk": 10240, "cpu": 200, "extra": "Slot: Unlimited", "category": "linux"},
    ],
    "windows": [
        {"id": "win_1", "name": "Starter Win", "price": 45000, "ram": 2048, "disk": 15360, "cpu": 100, "extra": "RDP Access", "category": "windows"},
        {"id": "win_2", "name": "Pro Win", "price": 85000, "ram": 4096, "disk": 25600, "cpu": 200, "extra": "RDP + Admin", "category": "windows"},
    ],
    "nodejs": [
        {"id": "node_1", "name": "Bot Starter", "price": 10000, "ram": 512, "disk": 1024, "cpu": 40, "extra": "NPM Support", "category": "nodejs"},
        {"id": "node_2", "name": "Bot Pro", "price": 25000, "ram": 1024, "disk": 2048, "cpu": 80, "extra": "NPM + PM2", "category": "nodejs"},
        {"id": "node_3", "name": "Bot Master", "price": 50000, "ram": 2048, "disk": 5120, "cpu": 150, "extra": "Priority Support", "category": "nodejs"},
    ],
}


class Catalog:
    def __init__(self, categories: dict[str, list[dict]]):
        self._categories = {
            name: tuple(Product.model_validate(p) for p in items)
            for name, items in categories.items()
        }

    @classmethod
    def from_file(cls, path: str | Path) -> "Catalog":
        with open(path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    def get_by_id(self, product_id: str) -> Product | None:
        """
        Scan every category and return the first product with this id.
        """
        for items in self._categories.values():
            for p in items:
                if p.id == product_id:
                    return p
        return None

    def list_by_category(self, category: str) -> list[Product]:
        return list(self._categories.get(category, ()))

    def as_dict(self) -> dict[str, list[dict]]:
        return {name: [p.model_dump() for p in items] for name, items in self._categories.items()}


def load_catalog(path: str | None = None) -> Catalog:
    return Catalog.from_file(path) if path else Catalog(DEFAULT_CATALOG)
