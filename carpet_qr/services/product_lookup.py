#carpet_qr/services/product_lookup.py

import json
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from carpet_qr.api.schemas import (
    IndividualProductRecord,
    Kind,
    MainProductRecord,
    ReferencePayload,
)
from carpet_qr.core.config import settings
from carpet_qr.core.errors import ReferenceResolutionFailure
from carpet_qr.core.logger import setup_logger

logger = setup_logger(__name__)


class ProductCatalog:
    """
    Read-only lookup used to turn a scanned reference link into full records.

    The catalog file is JSON with two lists: `products` (catalog products)
    and `individual_products` (physical items).
    """

    def __init__(self, products=(), individual_products=()):
        self.products: Dict[str, MainProductRecord] = {p.product_id: p for p in products}
        self.individual_products: Dict[str, IndividualProductRecord] = {
            i.id: i for i in individual_products
        }

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "ProductCatalog":
        path = Path(path or settings.CATALOG_PATH)
        if not path.exists():
            logger.warning(f"Catalog file not found at {path.resolve()}, starting empty")
            return cls()

        with open(path, "r", encoding="utf-8-sig") as f:
            raw = json.load(f)

        try:
            products = [MainProductRecord.model_validate(p) for p in raw.get("products", [])]
            items = [
                IndividualProductRecord.model_validate(i)
                for i in raw.get("individual_products", [])
            ]
        except ValidationError as e:
            logger.error(f"Catalog file {path} has invalid records: {e}")
            raise

        logger.info(f"Loaded {len(products)} products and {len(items)} items from {path}")
        return cls(products, items)

    def resolve_product(self, product_id: str) -> MainProductRecord:
        product = self.products.get(product_id)
        if product is None:
            raise ReferenceResolutionFailure(f"Product {product_id} not found")
        return product

    def resolve_individual_item(self, product_id: str, item_id: str) -> IndividualProductRecord:
        item = self.individual_products.get(item_id)
        # an item id pointing at another product is treated as not found
        if item is None or item.product_id != product_id:
            raise ReferenceResolutionFailure(
                f"Individual product {item_id} not found for product {product_id}"
            )
        return item

    def resolve_reference(
        self, reference: ReferencePayload
    ) -> Tuple[Optional[MainProductRecord], Optional[IndividualProductRecord]]:
        """
        Return (product, individual_product) for a reference.

        For individual references the parent product is context only and may
        be missing; the item itself must exist.
        """
        if reference.kind == Kind.main:
            return self.resolve_product(reference.product_id), None

        item = self.resolve_individual_item(reference.product_id, reference.individual_item_id)
        product = self.products.get(reference.product_id)
        if product is None:
            logger.warning(f"Parent product {reference.product_id} missing for item {item.id}")
        return product, item
