"""Service layer for per-user notifications."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from shopsquad.core.constants import NOTIFICATION_KINDS, NOTIFICATIONS_COLLECTION
from shopsquad.errors import NotFoundError, ValidationError
from shopsquad.utils import to_datetime, utcnow

from .models import Notification

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class NotificationService:
    """Appends, reads and marks entries in ``notifications/{userId}``."""

    @staticmethod
    def _ref(db: Client, user_id: str) -> Any:
        return db.collection(NOTIFICATIONS_COLLECTION).document(user_id)

    @staticmethod
    def build_notification(
        recipient_id: str,
        kind: str,
        title: str,
        message: str,
        party_id: str | None = None,
        requester_id: str | None = None,
        requester_name: str | None = None,
    ) -> Notification:
        """Create a new unread notification with a fresh id."""
        if kind not in NOTIFICATION_KINDS:
            raise ValidationError(f"Unknown notification type '{kind}'.")
        if not recipient_id:
            raise ValidationError("A notification needs a recipient.")

        notification: Notification = {
            "id": uuid.uuid4().hex,
            "type": kind,
            "title": title,
            "message": message,
            "userId": recipient_id,
            # Sentinels are not allowed inside array elements.
            "timestamp": utcnow(),
            "read": False,
        }
        if party_id:
            notification["partyId"] = party_id
        if requester_id:
            notification["requesterId"] = requester_id
        if requester_name:
            notification["requesterName"] = requester_name
        return notification

    @staticmethod
    def notify(
        db: Client,
        recipient_id: str,
        kind: str,
        title: str,
        message: str,
        party_id: str | None = None,
        requester_id: str | None = None,
        requester_name: str | None = None,
    ) -> Notification:
        """Append a notification to the recipient's document.

        The document is created if it does not exist yet. Calling this twice
        with the same content stores two notifications.
        """
        notification = NotificationService.build_notification(
            recipient_id,
            kind,
            title,
            message,
            party_id=party_id,
            requester_id=requester_id,
            requester_name=requester_name,
        )
        NotificationService._ref(db, recipient_id).set(
            {"items": firestore.ArrayUnion([notification])}, merge=True
        )
        logger.info(f"Notified {recipient_id}: {kind}")
        return notification

    @staticmethod
    def notify_many(
        db: Client,
        recipient_ids: Iterable[str],
        kind: str,
        title: str,
        message: str,
        party_id: str | None = None,
        exclude: str | None = None,
    ) -> int:
        """Notify every recipient except ``exclude``; returns how many were sent."""
        sent = 0
        for recipient_id in recipient_ids:
            if not recipient_id or recipient_id == exclude:
                continue
            NotificationService.notify(
                db, recipient_id, kind, title, message, party_id=party_id
            )
            sent += 1
        return sent

    @staticmethod
    def list_notifications(db: Client, user_id: str) -> list[Notification]:
        """Return the user's notifications, newest first."""
        doc = cast("DocumentSnapshot", NotificationService._ref(db, user_id).get())
        if not doc.exists:
            return []
        items = list((doc.to_dict() or {}).get("items", []))

        def sort_key(item: Notification) -> float:
            dt = to_datetime(item.get("timestamp"))
            return dt.timestamp() if dt else 0.0

        items.sort(key=sort_key, reverse=True)
        return items

    @staticmethod
    def unread_count(db: Client, user_id: str) -> int:
        """Count notifications the user has not opened."""
        return sum(
            1
            for n in NotificationService.list_notifications(db, user_id)
            if not n.get("read")
        )

    @staticmethod
    def get_notification(db: Client, user_id: str, notification_id: str) -> Notification:
        """Fetch one notification or raise ``NotFoundError``."""
        for item in NotificationService.list_notifications(db, user_id):
            if item.get("id") == notification_id:
                return item
        raise NotFoundError("Notification not found.")

    @staticmethod
    def mark_read(db: Client, user_id: str, notification_id: str) -> Notification:
        """Flip one notification to read."""
        notification = NotificationService.get_notification(
            db, user_id, notification_id
        )
        if notification.get("read"):
            return notification

        updated = {**notification, "read": True}
        items = NotificationService.list_notifications(db, user_id)
        NotificationService._ref(db, user_id).update(
            {
                "items": [
                    updated if n.get("id") == notification_id else n for n in items
                ]
            }
        )
        return cast(Notification, updated)

    @staticmethod
    def mark_all_read(db: Client, user_id: str) -> int:
        """Mark every notification read; returns how many changed."""
        items = NotificationService.list_notifications(db, user_id)
        changed = sum(1 for n in items if not n.get("read"))
        if changed:
            NotificationService._ref(db, user_id).update(
                {"items": [{**n, "read": True} for n in items]}
            )
        return changed

    @staticmethod
    def remove(db: Client, user_id: str, notification_id: str) -> None:
        """Drop a handled notification, such as an approved reopen request."""
        notification = NotificationService.get_notification(
            db, user_id, notification_id
        )
        NotificationService._ref(db, user_id).update(
            {"items": firestore.ArrayRemove([notification])}
        )

    @staticmethod
    def clear_all(db: Client, user_id: str) -> None:
        """Overwrite the whole document with an empty list."""
        NotificationService._ref(db, user_id).set({"items": []})
