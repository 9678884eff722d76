"""Data models for the catalog blueprint."""

from __future__ import annotations

from typing import TypedDict


class Variant(TypedDict, total=False):
    """One purchasable size/color combination."""

    size: str
    color: str
    price: float


class CatalogProduct(TypedDict, total=False):
    """An admin-managed item in ``catalog/products``."""

    id: str
    title: str
    body: str
    vendor: str
    productType: str
    basePrice: float
    images: list[str]
    variants: list[Variant]
