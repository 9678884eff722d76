"""Admin routes for managing the product catalog."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from shopsquad.auth.decorators import login_required
from shopsquad.catalog.services import CatalogService
from shopsquad.errors import ValidationError

from . import bp


@bp.route("/catalog", methods=["PUT"])
@login_required(admin_required=True)
def replace_catalog():
    """Replace the whole catalog with an imported product list."""
    data = request.get_json(silent=True)
    products = data.get("products") if isinstance(data, dict) else data
    if not isinstance(products, list):
        raise ValidationError("Expected a list of products.")

    saved = CatalogService.replace_catalog(firestore.client(), products)
    current_app.logger.info(f"Catalog replaced with {len(saved)} products by {g.user['uid']}")
    return jsonify(
        {"status": "success", "message": f"Imported {len(saved)} products."}
    )


@bp.route("/catalog/delete", methods=["POST"])
@login_required(admin_required=True)
def delete_products():
    """Delete the selected catalog products."""
    ids = (request.get_json(silent=True) or {}).get("ids") or []
    if not ids:
        raise ValidationError("Select at least one product to delete.")
    removed = CatalogService.delete_products(firestore.client(), ids)
    return jsonify(
        {"status": "success", "message": f"Deleted {removed} products.", "deleted": removed}
    )


@bp.route("/catalog", methods=["DELETE"])
@login_required(admin_required=True)
def delete_all():
    """Empty the catalog."""
    CatalogService.delete_all(firestore.client())
    current_app.logger.warning(f"Catalog emptied by {g.user['uid']}")
    return jsonify({"status": "success", "message": "All products deleted."})
