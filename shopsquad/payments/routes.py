"""Routes for the payments blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from shopsquad.auth.decorators import login_required
from shopsquad.party.services import PartyService
from shopsquad.party.status import StatusPolicy

from . import bp
from .services import PaymentService


@bp.route("/<string:party_id>/order", methods=["GET"])
@login_required
def order(party_id):
    """Amount and currency the checkout widget should charge the user."""
    party = PartyService.get_party(party_id, firestore.client())
    order = PaymentService.order_for(
        party, g.user["uid"], current_app.config["PAYMENT_CURRENCY"]
    )
    order["clientId"] = current_app.config.get("PAYPAL_CLIENT_ID")
    return jsonify(order)


@bp.route("/<string:party_id>/capture", methods=["POST"])
@login_required
def capture(party_id):
    """Record a payment the checkout widget has captured."""
    data = request.get_json(silent=True) or {}
    payment = PaymentService.record_payment(
        firestore.client(),
        party_id,
        g.user,
        data.get("orderId"),
        StatusPolicy.from_config(current_app.config),
    )
    current_app.logger.info(f"Payment recorded for squad {party_id} by {g.user['uid']}")
    return (
        jsonify(
            {
                "status": "success",
                "message": "Payment completed successfully!",
                "payment": payment,
            }
        ),
        201,
    )


@bp.route("/<string:party_id>/error", methods=["POST"])
@login_required
def provider_error(party_id):
    """The checkout widget reported a failed or cancelled payment."""
    data = request.get_json(silent=True) or {}
    message = PaymentService.report_provider_error(
        party_id, g.user["uid"], data.get("error")
    )
    return jsonify({"status": "error", "message": message}), 402
