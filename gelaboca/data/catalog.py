"""Catalog helpers: list menu and promotional products from the vector index.

The index is the source of truth. When it cannot be reached the sample menu
from raw/sample_products.json is served instead, so the table UI never shows
an empty menu.
"""
import json
import os
from typing import Dict, List, Optional

from .models import Product, product_from_match
from ..app.config import Config
from ..utils.logger import get_logger

logger = get_logger()

SAMPLE_PATH = os.path.join(os.path.dirname(__file__), "raw", "sample_products.json")

_samples: Optional[Dict[str, List[Product]]] = None


def get_sample_products() -> Dict[str, List[Product]]:
    """Sample menu, loaded once: ``{"menu": [...], "promotional": [...]}``."""
    global _samples
    if _samples is None:
        with open(SAMPLE_PATH, encoding="utf-8") as f:
            raw = json.load(f)
        _samples = {
            section: [Product.model_validate(row) for row in rows]
            for section, rows in raw.items()
        }
    return _samples


class CatalogService:
    def __init__(self, index, dimensions: Optional[int] = None):
        self.index = index
        self.dimensions = dimensions or Config.EMBEDDING_DIMENSIONS

    def _query_all(self) -> List[Product]:
        # a zero vector turns the similarity query into a plain listing
        matches = self.index.query(
            vector=[0.0] * self.dimensions,
            top_k=Config.CATALOG_TOP_K,
            include_metadata=True,
        )
        products = []
        for match in matches:
            product = product_from_match(match)
            if product is not None:
                products.append(product)
        return products

    def list_active(self) -> List[Product]:
        try:
            products = [p for p in self._query_all() if p.active]
            logger.info("Found %d active products", len(products))
            return products
        except Exception as e:
            logger.error("Failed to fetch menu products, serving sample menu: %s", e)
            return list(get_sample_products()["menu"])

    def list_promotional(self) -> List[Product]:
        try:
            products = [p for p in self._query_all() if p.active and p.promotional]
            products = products[:Config.PROMOTIONAL_LIMIT]
            logger.info("Found %d promotional products", len(products))
            return products
        except Exception as e:
            logger.error("Failed to fetch promotional products, serving samples: %s", e)
            return list(get_sample_products()["promotional"])

    def find_by_name(self, name: str) -> Optional[Product]:
        for product in self.list_active():
            if product.name == name:
                return product
        return None


def group_by_category(products: List[Product]) -> List[Dict[str, object]]:
    """Products grouped per category, categories in alphabetical order."""
    groups: Dict[str, List[Product]] = {}
    for product in products:
        groups.setdefault(product.category, []).append(product)
    return [
        {"category": category, "products": groups[category]}
        for category in sorted(groups)
    ]
