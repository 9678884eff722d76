"""The catalog blueprint."""

from flask import Blueprint

bp = Blueprint("catalog", __name__, url_prefix="/catalog")

from . import routes  # noqa: E402, F401
from .models import CatalogProduct, Variant  # noqa: E402
from .services import CatalogService  # noqa: E402

__all__ = ["CatalogProduct", "CatalogService", "Variant", "routes"]
