"""Routes for browsing the product catalog."""

from firebase_admin import firestore
from flask import current_app, jsonify, request

from shopsquad.auth.decorators import login_required

from . import bp
from .services import CatalogService


def _price_arg(name):
    return request.args.get(name, type=float)


@bp.route("/", methods=["GET"])
@login_required
def list_products():
    """Search, filter and page through the catalog."""
    products = CatalogService.get_catalog(firestore.client())
    results = CatalogService.search(
        products,
        term=request.args.get("search", ""),
        categories=request.args.getlist("category"),
        brands=request.args.getlist("brand"),
        min_price=_price_arg("min_price"),
        max_price=_price_arg("max_price"),
    )
    page = CatalogService.paginate(
        results,
        page=request.args.get("page", 1, type=int),
        per_page=current_app.config["CATALOG_PAGE_SIZE"],
    )
    page["facets"] = CatalogService.facets(products)
    return jsonify(page)


@bp.route("/<string:product_id>", methods=["GET"])
@login_required
def view_product(product_id):
    """One catalog product with all of its variants."""
    return jsonify(CatalogService.find_product(firestore.client(), product_id))
