"""Routes for the notifications blueprint."""

from firebase_admin import firestore
from flask import g, jsonify

from shopsquad.auth.decorators import login_required

from . import bp
from .services import NotificationService


@bp.route("/", methods=["GET"])
@login_required
def list_notifications():
    """The user's notifications, newest first, with the unread count."""
    items = NotificationService.list_notifications(firestore.client(), g.user["uid"])
    unread = sum(1 for item in items if not item.get("read"))
    return jsonify({"notifications": items, "unreadCount": unread})


@bp.route("/<string:notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id):
    """Mark one notification read."""
    item = NotificationService.mark_read(
        firestore.client(), g.user["uid"], notification_id
    )
    return jsonify({"status": "success", "notification": item})


@bp.route("/read_all", methods=["POST"])
@login_required
def mark_all_read():
    """Mark every notification read."""
    count = NotificationService.mark_all_read(firestore.client(), g.user["uid"])
    return jsonify({"status": "success", "updated": count})


@bp.route("/<string:notification_id>", methods=["DELETE"])
@login_required
def remove(notification_id):
    """Dismiss one notification."""
    NotificationService.remove(firestore.client(), g.user["uid"], notification_id)
    return jsonify({"status": "success"})


@bp.route("/", methods=["DELETE"])
@login_required
def clear_all():
    """Dismiss every notification."""
    NotificationService.clear_all(firestore.client(), g.user["uid"])
    return jsonify({"status": "success"})


@bp.route("/unread_count", methods=["GET"])
@login_required
def unread_count():
    """Badge count for the notification bell."""
    count = NotificationService.unread_count(firestore.client(), g.user["uid"])
    return jsonify({"unreadCount": count})
