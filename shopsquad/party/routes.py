"""Routes for the party (squad) blueprint."""

from firebase_admin import firestore
from flask import (
    Response,
    current_app,
    g,
    jsonify,
    stream_with_context,
)

from shopsquad.auth.decorators import login_required
from shopsquad.errors import ValidationError
from shopsquad.utils import first_form_error

from . import bp, sync
from .forms import (
    AddProductForm,
    CouponForm,
    InviteForm,
    MessageForm,
    PartyForm,
    ProductStatusForm,
    ReactionForm,
    StatusForm,
)
from .models import PartySubmission
from .services import PartyService
from .status import StatusPolicy
from .subscriptions import HEARTBEAT, PartySubscription


def _validated(form):
    if not form.validate_on_submit():
        raise ValidationError(first_form_error(form))
    return form


def _policy():
    return StatusPolicy.from_config(current_app.config)


def _party_response(party, status_code=200):
    summary = PartyService.summary(party, g.user["uid"], _policy())
    return jsonify({"party": party, "summary": summary}), status_code


@bp.route("/", methods=["GET"])
@login_required
def list_parties():
    """The user's squads, most recent date first."""
    db = firestore.client()
    return jsonify({"parties": PartyService.list_parties(db, g.user["uid"])})


@bp.route("/history", methods=["GET"])
@login_required
def history():
    """The user's completed squads."""
    db = firestore.client()
    return jsonify({"parties": PartyService.list_history(db, g.user["uid"])})


@bp.route("/create", methods=["POST"])
@login_required
def create_party():
    """Create a new squad with the current user as leader."""
    form = _validated(PartyForm())
    submission = PartySubmission(
        title=form.title.data, date=form.date.data, location=form.location.data
    )
    party = PartyService.create_party(firestore.client(), g.user, submission)
    return _party_response(party, 201)


@bp.route("/<string:party_id>", methods=["GET"])
@login_required
def view_party(party_id):
    """A squad with its totals, shares and what the user may do next."""
    party = PartyService.get_party_for_user(firestore.client(), party_id, g.user["uid"])
    return _party_response(party)


@bp.route("/<string:party_id>/stream", methods=["GET"])
@login_required
def stream_party(party_id):
    """Push every change to the squad as a server-sent event."""
    db = firestore.client()
    PartyService.get_party_for_user(db, party_id, g.user["uid"])
    heartbeat = current_app.config.get("SQUAD_STREAM_HEARTBEAT", 15)
    subscription = PartySubscription(db, party_id)

    def generate():
        with sync.watch(party_id) as state:
            wake = subscription.wake
            state.add_listener(wake)
            sent = state.version
            try:
                for snapshot in subscription.snapshots(heartbeat=heartbeat):
                    if snapshot is not HEARTBEAT:
                        party = state.apply_snapshot(snapshot)
                    elif state.version != sent and state.remote:
                        # Writes from this server that no snapshot has confirmed yet.
                        party = state.view()
                    else:
                        yield ": keep-alive\n\n"
                        continue
                    sent = state.version
                    yield f"data: {current_app.json.dumps(party)}\n\n"
                    if party.get("deleted"):
                        break
            finally:
                state.remove_listener(wake)
                subscription.close()

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@bp.route("/<string:party_id>/join", methods=["POST"])
@login_required
def join_party(party_id):
    """Join a squad through its invite link."""
    party = PartyService.join_party(firestore.client(), party_id, g.user)
    return _party_response(party)


@bp.route("/<string:party_id>/invite", methods=["POST"])
@login_required
def invite(party_id):
    """Invite another user to the squad."""
    form = _validated(InviteForm())
    notification = PartyService.invite(
        firestore.client(), party_id, g.user, form.user_id.data
    )
    return jsonify({"status": "success", "notification": notification}), 201


@bp.route("/<string:party_id>/close_invitations", methods=["POST"])
@login_required
def close_invitations(party_id):
    """Stop new members from joining."""
    party = PartyService.close_invitations(firestore.client(), party_id, g.user["uid"])
    return _party_response(party)


@bp.route("/<string:party_id>/products", methods=["POST"])
@login_required
def add_product(party_id):
    """Add a catalog product to the squad."""
    form = _validated(AddProductForm())
    product = PartyService.add_product(
        firestore.client(),
        party_id,
        g.user,
        form.product_id.data,
        size=form.size.data or None,
        color=form.color.data or None,
    )
    return jsonify({"status": "success", "product": product}), 201


@bp.route("/<string:party_id>/products/<string:product_id>", methods=["DELETE"])
@login_required
def remove_product(party_id, product_id):
    """Remove a product from the squad."""
    PartyService.remove_product(
        firestore.client(), party_id, g.user["uid"], product_id
    )
    return jsonify({"status": "success", "message": "Product removed."})


@bp.route("/<string:party_id>/products/<string:product_id>/status", methods=["POST"])
@login_required
def set_product_status(party_id, product_id):
    """Keep or return a product that was tried on."""
    form = _validated(ProductStatusForm())
    product = PartyService.set_product_status(
        firestore.client(), party_id, g.user["uid"], product_id, form.status.data
    )
    return jsonify({"status": "success", "product": product})


@bp.route(
    "/<string:party_id>/products/<string:product_id>/reactions", methods=["POST"]
)
@login_required
def react(party_id, product_id):
    """Like or dislike a product; repeating a reaction removes it."""
    form = _validated(ReactionForm())
    product = PartyService.toggle_reaction(
        firestore.client(), party_id, g.user, product_id, form.type.data
    )
    return jsonify({"status": "success", "product": product})


@bp.route("/<string:party_id>/coupon", methods=["POST"])
@login_required
def apply_coupon(party_id):
    """Apply a coupon code to every product in the squad."""
    form = _validated(CouponForm())
    products = PartyService.apply_coupon(
        firestore.client(), party_id, g.user["uid"], form.code.data
    )
    return jsonify(
        {"status": "success", "message": "Coupon applied.", "products": products}
    )


@bp.route("/<string:party_id>/messages", methods=["GET"])
@login_required
def list_messages(party_id):
    """The squad chat in posting order."""
    messages = PartyService.list_messages(firestore.client(), party_id, g.user["uid"])
    return jsonify({"messages": messages})


@bp.route("/<string:party_id>/messages", methods=["POST"])
@login_required
def post_message(party_id):
    """Post a chat message."""
    form = _validated(MessageForm())
    message = PartyService.post_message(
        firestore.client(), party_id, g.user, form.text.data
    )
    return jsonify(message), 201


@bp.route("/<string:party_id>/status", methods=["POST"])
@login_required
def update_status(party_id):
    """Move the squad to another status (leader only)."""
    form = _validated(StatusForm())
    party = PartyService.advance_status(
        firestore.client(), party_id, g.user["uid"], form.status.data, _policy()
    )
    return _party_response(party)


@bp.route("/<string:party_id>/reopen_request", methods=["POST"])
@login_required
def request_reopen(party_id):
    """Ask the leader to reopen a completed squad."""
    notification = PartyService.request_reopen(firestore.client(), party_id, g.user)
    current_app.logger.info(
        f"User {g.user['uid']} asked to reopen squad {party_id}"
    )
    return (
        jsonify(
            {
                "status": "success",
                "message": "Reopen request sent to the squad leader.",
                "notification": notification,
            }
        ),
        201,
    )


@bp.route("/reopen_requests/<string:notification_id>/approve", methods=["POST"])
@login_required
def approve_reopen(notification_id):
    """Reopen the squad a member asked about, as its leader."""
    party = PartyService.approve_reopen(
        firestore.client(), g.user["uid"], notification_id, _policy()
    )
    current_app.logger.info(f"Squad {party['id']} reopened by {g.user['uid']}")
    return _party_response(party)
