"""Service layer for the shared product catalog."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from shopsquad.core.constants import (
    CATALOG_COLLECTION,
    CATALOG_DOCUMENT,
    CATALOG_PAGE_SIZE,
    DEFAULT_SIZE,
    DEFAULT_VARIANT,
)
from shopsquad.errors import NotFoundError, ValidationError

from .models import CatalogProduct, Variant

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


class CatalogService:
    """The catalog is one document holding every product; edits replace it whole."""

    @staticmethod
    def _ref(db: Client) -> Any:
        return db.collection(CATALOG_COLLECTION).document(CATALOG_DOCUMENT)

    @staticmethod
    def get_catalog(db: Client | None = None) -> list[CatalogProduct]:
        """Load every catalog product."""
        if db is None:
            db = firestore.client()
        doc = cast("DocumentSnapshot", CatalogService._ref(db).get())
        if not doc.exists:
            return []
        return list((doc.to_dict() or {}).get("products") or [])

    @staticmethod
    def replace_catalog(
        db: Client, products: Sequence[CatalogProduct]
    ) -> list[CatalogProduct]:
        """Overwrite the catalog document with ``products``."""
        seen = set()
        for product in products:
            if not product.get("id") or not product.get("title"):
                raise ValidationError("Every catalog product needs an id and a title.")
            if product["id"] in seen:
                raise ValidationError(f"Duplicate catalog product id '{product['id']}'.")
            seen.add(product["id"])
        CatalogService._ref(db).set({"products": list(products)})
        return list(products)

    @staticmethod
    def delete_products(db: Client, product_ids: Iterable[str]) -> int:
        """Remove the given products; returns how many were removed."""
        ids = set(product_ids)
        products = CatalogService.get_catalog(db)
        remaining = [p for p in products if p.get("id") not in ids]
        CatalogService._ref(db).set({"products": remaining})
        return len(products) - len(remaining)

    @staticmethod
    def delete_all(db: Client) -> None:
        """Empty the catalog."""
        CatalogService._ref(db).set({"products": []})

    @staticmethod
    def find_product(db: Client, product_id: str) -> CatalogProduct:
        """Fetch one catalog product or raise ``NotFoundError``."""
        for product in CatalogService.get_catalog(db):
            if product.get("id") == product_id:
                return product
        raise NotFoundError("Product not found in catalog.")

    @staticmethod
    def resolve_variant(
        product: CatalogProduct, size: str | None, color: str | None
    ) -> tuple[Variant, dict[str, str]]:
        """Pick the catalog variant for the requested size and color.

        ``Default`` matches anything. Falls back to the first variant when
        nothing matches. Returns the variant and the size/color to record.
        """
        size = size or DEFAULT_VARIANT
        color = color or DEFAULT_VARIANT
        variants = product.get("variants") or []
        if not variants:
            raise ValidationError("No variant available for this product")

        chosen = next(
            (
                v
                for v in variants
                if (v.get("size") == size or size == DEFAULT_VARIANT)
                and (v.get("color") == color or color == DEFAULT_VARIANT)
            ),
            variants[0],
        )
        selected = {
            "size": (chosen.get("size") or DEFAULT_SIZE)
            if size == DEFAULT_VARIANT
            else size,
            "color": (chosen.get("color") or DEFAULT_VARIANT)
            if color == DEFAULT_VARIANT
            else color,
        }
        return chosen, selected

    @staticmethod
    def search(
        products: Sequence[CatalogProduct],
        term: str | None = None,
        categories: Iterable[str] | None = None,
        brands: Iterable[str] | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[CatalogProduct]:
        """Filter by text (title, vendor, type), category, brand and price range."""
        term = (term or "").strip().lower()
        categories = set(categories or [])
        brands = set(brands or [])

        results = []
        for product in products:
            if term and not any(
                term in (product.get(key) or "").lower()
                for key in ("title", "vendor", "productType")
            ):
                continue
            if categories and product.get("productType") not in categories:
                continue
            if brands and product.get("vendor") not in brands:
                continue
            price = product.get("basePrice") or 0
            if min_price is not None and price < min_price:
                continue
            if max_price is not None and price > max_price:
                continue
            results.append(product)
        return results

    @staticmethod
    def facets(products: Sequence[CatalogProduct]) -> dict[str, list[str]]:
        """Distinct categories and brands, for filter menus."""
        return {
            "categories": sorted({p["productType"] for p in products if p.get("productType")}),
            "brands": sorted({p["vendor"] for p in products if p.get("vendor")}),
        }

    @staticmethod
    def paginate(
        items: Sequence[Any], page: int = 1, per_page: int = CATALOG_PAGE_SIZE
    ) -> dict[str, Any]:
        """Slice ``items`` into a page, clamping ``page`` to at least 1."""
        page = max(page, 1)
        start = (page - 1) * per_page
        return {
            "items": list(items[start : start + per_page]),
            "page": page,
            "pages": math.ceil(len(items) / per_page) if items else 0,
            "total": len(items),
        }
