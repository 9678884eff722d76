"""Service layer for squad (party) business logic."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from shopsquad.catalog.services import CatalogService
from shopsquad.core.constants import (
    NOTIFY_INVITE,
    NOTIFY_PAYMENT_REQUEST,
    NOTIFY_REOPEN_REQUEST,
    NOTIFY_SQUAD_CLOSED,
    NOTIFY_SQUAD_COMPLETED,
    NOTIFY_SQUAD_REOPENED,
    PAYMENT_COMPLETED,
    PARTIES_COLLECTION,
    PRODUCT_KEPT,
    PRODUCT_RETURNED,
    STATUS_COMPLETED,
    STATUS_IN_PAYMENT,
    STATUS_TRYING,
    STATUS_UPCOMING,
    USER_PARTIES_COLLECTION,
)
from shopsquad.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from shopsquad.notifications.emails import (
    PARTY_COMPLETE,
    PAYMENT_REQUEST,
    party_email_data,
    try_send_party_email,
)
from shopsquad.notifications.services import NotificationService
from shopsquad.utils import avatar_url, display_name, to_datetime, utcnow

from . import coupons, reactions, shares, status, sync
from .models import Message, Participant, Party, PartySubmission, Payment, Product

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

    from shopsquad.notifications.models import Notification

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


class PartyService:
    """Handles business logic and data access for squads."""

    @staticmethod
    def _ref(db: Client, party_id: str) -> DocumentReference:
        return db.collection(PARTIES_COLLECTION).document(party_id)

    @staticmethod
    def _index_ref(db: Client, user_id: str) -> DocumentReference:
        return db.collection(USER_PARTIES_COLLECTION).document(user_id)

    @staticmethod
    def participant_from_user(user: dict[str, Any]) -> Participant:
        """Build the participant record stored on the party for a user."""
        return {
            "id": user.get("uid") or user.get("id", ""),
            "name": user.get("name") or user.get("displayName") or display_name(None),
            "email": user.get("email") or "",
            "avatar": avatar_url(user),
        }

    @staticmethod
    def participant_ids(party: Party) -> list[str]:
        """Ids of everyone in the squad."""
        return [p.get("id", "") for p in party.get("participants") or []]

    @staticmethod
    def is_participant(party: Party, user_id: str) -> bool:
        """Return True if the user is a squad member."""
        return user_id in PartyService.participant_ids(party)

    @staticmethod
    def _require_participant(party: Party, user_id: str) -> None:
        if not PartyService.is_participant(party, user_id):
            raise PermissionDeniedError("You are not a member of this squad.")

    @staticmethod
    def _require_organizer(party: Party, user_id: str, message: str) -> None:
        if not status.is_organizer(party, user_id):
            raise PermissionDeniedError(message)

    @staticmethod
    def get_party(party_id: str, db: Client | None = None) -> Party:
        """Fetch a squad or raise ``NotFoundError``."""
        if db is None:
            db = firestore.client()
        doc = cast("DocumentSnapshot", PartyService._ref(db, party_id).get())
        if not doc.exists:
            raise NotFoundError("Squad not found.")
        party = cast(Party, doc.to_dict() or {})
        party["id"] = doc.id
        return party

    @staticmethod
    def get_party_for_user(db: Client, party_id: str, user_id: str) -> Party:
        """Fetch a squad the user belongs to."""
        party = PartyService.get_party(party_id, db)
        PartyService._require_participant(party, user_id)
        return party

    @staticmethod
    def create_party(
        db: Client, user: dict[str, Any], submission: PartySubmission
    ) -> Party:
        """Create a squad with the user as organizer and first participant."""
        try:
            submission.validate()
        except ValueError as e:
            raise ValidationError(str(e)) from e

        participant = PartyService.participant_from_user(user)
        payload: dict[str, Any] = {
            "title": submission.title.strip(),
            "date": submission.date,
            "location": submission.location.strip(),
            "organizerId": participant["id"],
            "organizer": user.get("name") or user.get("email") or display_name(None),
            "participants": [participant],
            "products": [],
            "messages": [],
            "payments": [],
            "status": STATUS_UPCOMING,
            "invitationsClosed": False,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        _, ref = db.collection(PARTIES_COLLECTION).add(payload)
        PartyService._index_party(db, participant["id"], ref.id)
        logger.info(f"Squad {ref.id} created by {participant['id']}")
        return PartyService.get_party(ref.id, db)

    @staticmethod
    def _index_party(db: Client, user_id: str, party_id: str) -> None:
        PartyService._index_ref(db, user_id).set(
            {"partyIds": firestore.ArrayUnion([party_id])}, merge=True
        )

    @staticmethod
    def list_parties(db: Client, user_id: str) -> list[Party]:
        """Every squad the user belongs to, most recent date first."""
        index = cast("DocumentSnapshot", PartyService._index_ref(db, user_id).get())
        party_ids = (index.to_dict() or {}).get("partyIds", []) if index.exists else []
        if not party_ids:
            return []

        refs = [PartyService._ref(db, pid) for pid in party_ids]
        parties = []
        for doc in cast(list[Any], db.get_all(refs)):
            if not doc.exists:
                continue
            party = cast(Party, doc.to_dict() or {})
            party["id"] = doc.id
            if PartyService.is_participant(party, user_id):
                parties.append(party)

        def sort_key(party: Party) -> float:
            dt = to_datetime(party.get("date"))
            return dt.timestamp() if dt else 0.0

        parties.sort(key=sort_key, reverse=True)
        return parties

    @staticmethod
    def list_history(db: Client, user_id: str) -> list[Party]:
        """The user's completed squads."""
        return [
            p
            for p in PartyService.list_parties(db, user_id)
            if p.get("status") == STATUS_COMPLETED
        ]

    @staticmethod
    def can_join(party: Party) -> bool:
        """Joining closes when the leader closes invitations or has paid."""
        return not party.get("invitationsClosed") and not status.organizer_has_paid(
            party
        )

    @staticmethod
    def join_party(db: Client, party_id: str, user: dict[str, Any]) -> Party:
        """Add the user to the squad. Joining twice is a no-op."""
        party = PartyService.get_party(party_id, db)
        participant = PartyService.participant_from_user(user)
        if PartyService.is_participant(party, participant["id"]):
            return party
        if not PartyService.can_join(party):
            raise ValidationError("This squad is no longer accepting new members.")

        PartyService._ref(db, party_id).update(
            {"participants": firestore.ArrayUnion([participant])}
        )
        PartyService._index_party(db, participant["id"], party_id)
        return PartyService.get_party(party_id, db)

    @staticmethod
    def invite(
        db: Client, party_id: str, inviter: dict[str, Any], invitee_id: str
    ) -> Notification:
        """Send an invite notification to another user."""
        party = PartyService.get_party(party_id, db)
        inviter_id = inviter.get("uid", "")
        PartyService._require_participant(party, inviter_id)
        if PartyService.is_participant(party, invitee_id):
            raise ValidationError("This user is already in the squad.")
        if not PartyService.can_join(party):
            raise ValidationError("This squad is no longer accepting new members.")

        return NotificationService.notify(
            db,
            invitee_id,
            NOTIFY_INVITE,
            "Squad Invitation",
            f'{display_name(inviter)} invited you to join "{party.get("title")}"',
            party_id=party_id,
            requester_id=inviter_id,
            requester_name=display_name(inviter),
        )

    @staticmethod
    def close_invitations(db: Client, party_id: str, user_id: str) -> Party:
        """Stop new members from joining."""
        party = PartyService.get_party(party_id, db)
        PartyService._require_organizer(
            party, user_id, "Only the squad leader can close invitations."
        )
        if party.get("invitationsClosed"):
            return party

        PartyService._ref(db, party_id).update({"invitationsClosed": True})
        NotificationService.notify_many(
            db,
            PartyService.participant_ids(party),
            NOTIFY_SQUAD_CLOSED,
            "Squad Closed",
            f'Invitations for "{party.get("title")}" are now closed',
            party_id=party_id,
            exclude=user_id,
        )
        party["invitationsClosed"] = True
        return party

    @staticmethod
    def add_product(
        db: Client,
        party_id: str,
        user: dict[str, Any],
        catalog_product_id: str,
        size: str | None = None,
        color: str | None = None,
    ) -> Product:
        """Copy a catalog product into the squad on behalf of the user."""
        user_id = user.get("uid", "")
        party = PartyService.get_party_for_user(db, party_id, user_id)
        if status.organizer_has_paid(party):
            raise ValidationError("Products can no longer be added to this squad.")

        catalog_product = CatalogService.find_product(db, catalog_product_id)
        variant, selected = CatalogService.resolve_variant(catalog_product, size, color)

        product: Product = {
            "id": uuid.uuid4().hex,
            "title": catalog_product.get("title", ""),
            "price": variant.get("price") or catalog_product.get("basePrice") or 0,
            "images": list(catalog_product.get("images") or []),
            "description": catalog_product.get("body", ""),
            "vendor": catalog_product.get("vendor", ""),
            "productType": catalog_product.get("productType", ""),
            "selectedVariant": {"size": selected["size"], "color": selected["color"]},
            "addedBy": user_id,
            "addedAt": utcnow(),
        }
        with sync.pending_write(party_id, sync.add_product_mutation(product)):
            PartyService._ref(db, party_id).update(
                {"products": firestore.ArrayUnion([product])}
            )
        return product

    @staticmethod
    def _find_product(party: Party, product_id: str) -> Product:
        for product in party.get("products") or []:
            if product.get("id") == product_id:
                return product
        raise NotFoundError("Product not found")

    @staticmethod
    def remove_product(
        db: Client, party_id: str, user_id: str, product_id: str
    ) -> None:
        """Remove a product; only whoever added it or the leader may."""
        party = PartyService.get_party_for_user(db, party_id, user_id)
        product = PartyService._find_product(party, product_id)
        if product.get("addedBy") != user_id and not status.is_organizer(
            party, user_id
        ):
            raise PermissionDeniedError("You can only remove your own products.")
        if status.has_paid(party, product.get("addedBy", "")):
            raise ValidationError("This product has already been paid for.")

        with sync.pending_write(party_id, sync.remove_product_mutation(product_id)):
            PartyService._ref(db, party_id).update(
                {"products": firestore.ArrayRemove([product])}
            )

    @staticmethod
    def _replace_product(
        db: Client, party_id: str, party: Party, updated: Product
    ) -> None:
        products = [
            updated if p.get("id") == updated.get("id") else p
            for p in party.get("products") or []
        ]
        PartyService._ref(db, party_id).update({"products": products})

    @staticmethod
    def set_product_status(
        db: Client, party_id: str, user_id: str, product_id: str, new_status: str
    ) -> Product:
        """Mark a product kept or returned while the squad is trying items on."""
        if new_status not in (PRODUCT_KEPT, PRODUCT_RETURNED):
            raise ValidationError(f"Unknown product status '{new_status}'.")
        party = PartyService.get_party_for_user(db, party_id, user_id)
        if party.get("status") != STATUS_TRYING:
            raise InvalidTransitionError(
                "Products can only be kept or returned while trying them on."
            )
        product = PartyService._find_product(party, product_id)
        if product.get("addedBy") != user_id:
            raise PermissionDeniedError("You can only decide on your own products.")
        if product.get("status") in (PRODUCT_KEPT, PRODUCT_RETURNED):
            raise ValidationError("You already decided on this product.")

        updated = cast(Product, {**product, "status": new_status})
        PartyService._replace_product(db, party_id, party, updated)
        return updated

    @staticmethod
    def toggle_reaction(
        db: Client, party_id: str, user: dict[str, Any], product_id: str, kind: str
    ) -> Product:
        """Like/dislike a product, toggling off a repeated reaction."""
        user_id = user.get("uid", "")
        party = PartyService.get_party_for_user(db, party_id, user_id)
        product = PartyService._find_product(party, product_id)
        updated = cast(
            Product,
            {
                **product,
                "reactions": reactions.toggle_reaction(
                    product.get("reactions"),
                    user_id,
                    display_name(user),
                    kind,
                    timestamp=utcnow(),
                ),
            },
        )
        PartyService._replace_product(db, party_id, party, updated)
        return updated

    @staticmethod
    def apply_coupon(
        db: Client, party_id: str, user_id: str, code: str
    ) -> list[Product]:
        """Reprice every product with a coupon. A coupon can never be removed."""
        party = PartyService.get_party_for_user(db, party_id, user_id)
        products = coupons.apply_coupon(party, code)
        PartyService._ref(db, party_id).update(
            {"products": products, "appliedCoupon": coupons.normalize_code(code)}
        )
        return products

    @staticmethod
    def post_message(
        db: Client, party_id: str, user: dict[str, Any], text: str
    ) -> Message:
        """Append a chat message to the squad."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty.")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Messages are limited to {MAX_MESSAGE_LENGTH} characters."
            )
        user_id = user.get("uid", "")
        PartyService.get_party_for_user(db, party_id, user_id)

        message: Message = {
            "id": uuid.uuid4().hex,
            "text": text,
            "senderId": user_id,
            "senderName": display_name(user),
            "senderAvatar": avatar_url(user),
            "timestamp": utcnow(),
        }
        with sync.pending_write(party_id, sync.message_mutation(message)):
            PartyService._ref(db, party_id).update(
                {"messages": firestore.ArrayUnion([message])}
            )
        return message

    @staticmethod
    def list_messages(db: Client, party_id: str, user_id: str) -> list[Message]:
        """Chat messages in the order they were posted."""
        party = PartyService.get_party_for_user(db, party_id, user_id)
        return list(party.get("messages") or [])

    @staticmethod
    def start_payment_collection(
        db: Client,
        party_id: str,
        user_id: str,
        policy: status.StatusPolicy | None = None,
    ) -> Party:
        """Move to ``in_payment``, snapshot the total and ask everyone to pay."""
        party = PartyService.get_party(party_id, db)
        status.validate_transition(party, user_id, STATUS_IN_PAYMENT, policy)
        products = party.get("products") or []
        if not products:
            raise ValidationError("Add at least one product before collecting payments.")

        total = shares.total_amount(products)
        PartyService._ref(db, party_id).update(
            {"status": STATUS_IN_PAYMENT, "totalAmount": total}
        )
        party["status"] = STATUS_IN_PAYMENT
        party["totalAmount"] = total

        leader = party.get("organizer") or "Squad Leader"
        for share in shares.calculate_shares(products, party.get("participants") or []):
            recipient = share.participant
            if recipient.get("id") == user_id:
                continue
            NotificationService.notify(
                db,
                recipient.get("id", ""),
                NOTIFY_PAYMENT_REQUEST,
                "Payment Request",
                f'{leader} has started collecting payments for "{party.get("title")}"',
                party_id=party_id,
            )
            try_send_party_email(
                recipient.get("email"),
                PAYMENT_REQUEST,
                party_email_data(
                    party,
                    recipientName=recipient.get("name"),
                    amount=share.amount,
                    products=[
                        {"title": p.get("title"), "price": p.get("price", 0)}
                        for p in share.products
                    ],
                ),
            )
        logger.info(f"Payment collection started for squad {party_id}")
        return party

    @staticmethod
    def add_payment(db: Client, party_id: str, payment: Payment) -> None:
        """Append a payment record to the squad."""
        PartyService._ref(db, party_id).update(
            {"payments": firestore.ArrayUnion([payment])}
        )

    @staticmethod
    def complete_party(
        db: Client,
        party_id: str,
        user_id: str,
        policy: status.StatusPolicy | None = None,
    ) -> Party:
        """Mark the squad completed and tell everyone."""
        party = PartyService.get_party(party_id, db)
        status.validate_transition(party, user_id, STATUS_COMPLETED, policy)
        PartyService._ref(db, party_id).update({"status": STATUS_COMPLETED})
        party["status"] = STATUS_COMPLETED

        NotificationService.notify_many(
            db,
            PartyService.participant_ids(party),
            NOTIFY_SQUAD_COMPLETED,
            "Squad Completed",
            f'All payments are in for "{party.get("title")}"',
            party_id=party_id,
            exclude=user_id,
        )
        for participant in party.get("participants") or []:
            try_send_party_email(
                participant.get("email"),
                PARTY_COMPLETE,
                party_email_data(party, recipientName=participant.get("name")),
            )
        return party

    @staticmethod
    def reopen(
        db: Client,
        party_id: str,
        user_id: str,
        policy: status.StatusPolicy | None = None,
    ) -> Party:
        """Move a completed squad back to ``upcoming``."""
        party = PartyService.get_party(party_id, db)
        status.validate_transition(party, user_id, STATUS_UPCOMING, policy)
        PartyService._ref(db, party_id).update({"status": STATUS_UPCOMING})
        party["status"] = STATUS_UPCOMING

        NotificationService.notify_many(
            db,
            PartyService.participant_ids(party),
            NOTIFY_SQUAD_REOPENED,
            "Squad Reopened",
            f"{party.get('title')} has been reopened",
            party_id=party_id,
            exclude=user_id,
        )
        return party

    @staticmethod
    def request_reopen(
        db: Client, party_id: str, user: dict[str, Any]
    ) -> Notification:
        """Ask the leader to reopen a completed squad. Changes nothing else."""
        user_id = user.get("uid", "")
        party = PartyService.get_party_for_user(db, party_id, user_id)
        if status.is_organizer(party, user_id):
            raise ValidationError("As the squad leader you can reopen the squad directly.")
        if party.get("status") != STATUS_COMPLETED:
            raise InvalidTransitionError("Only completed squads can be reopened.")

        name = display_name(user)
        return NotificationService.notify(
            db,
            party.get("organizerId", ""),
            NOTIFY_REOPEN_REQUEST,
            "Squad Reopen Request",
            f'{name} has requested to reopen "{party.get("title")}"',
            party_id=party_id,
            requester_id=user_id,
            requester_name=name,
        )

    @staticmethod
    def approve_reopen(
        db: Client,
        user_id: str,
        notification_id: str,
        policy: status.StatusPolicy | None = None,
    ) -> Party:
        """Approve a reopen request from the leader's notifications."""
        notification = NotificationService.get_notification(db, user_id, notification_id)
        if notification.get("type") != NOTIFY_REOPEN_REQUEST or not notification.get(
            "partyId"
        ):
            raise ValidationError("This notification is not a reopen request.")

        party = PartyService.reopen(db, notification["partyId"], user_id, policy)
        NotificationService.remove(db, user_id, notification_id)
        return party

    @staticmethod
    def advance_status(
        db: Client,
        party_id: str,
        user_id: str,
        target: str,
        policy: status.StatusPolicy | None = None,
    ) -> Party:
        """Apply an organizer-requested status change with its side effects."""
        party = PartyService.get_party(party_id, db)
        current = party.get("status", STATUS_UPCOMING)

        if target == STATUS_IN_PAYMENT and current == STATUS_UPCOMING:
            return PartyService.start_payment_collection(db, party_id, user_id, policy)
        if target == STATUS_UPCOMING and current == STATUS_COMPLETED:
            return PartyService.reopen(db, party_id, user_id, policy)
        if target == STATUS_COMPLETED:
            return PartyService.complete_party(db, party_id, user_id, policy)

        status.validate_transition(party, user_id, target, policy)
        with sync.pending_write(party_id, sync.status_mutation(target)):
            PartyService._ref(db, party_id).update({"status": target})
        party["status"] = target
        return party

    @staticmethod
    def summary(
        party: Party, user_id: str, policy: status.StatusPolicy | None = None
    ) -> dict[str, Any]:
        """Totals, shares and permissions the payment panel shows."""
        products = party.get("products") or []
        participants = party.get("participants") or []
        share_list = shares.calculate_shares(products, participants)
        completed = [
            p for p in party.get("payments") or [] if p.get("status") == PAYMENT_COMPLETED
        ]
        is_organizer = status.is_organizer(party, user_id)
        current = party.get("status", STATUS_UPCOMING)
        return {
            "total": shares.total_amount(products),
            "shares": [s.to_dict() for s in share_list],
            "yourShare": shares.share_for(products, participants, user_id),
            "unassignedProducts": shares.unassigned_products(products, participants),
            "paymentsCompleted": len(completed),
            "unpaidParticipants": status.unpaid_participants(party),
            "participantCount": len(participants),
            "isOrganizer": is_organizer,
            "organizerPaid": status.organizer_has_paid(party),
            "youPaid": status.has_paid(party, user_id),
            "canAddProducts": not status.organizer_has_paid(party),
            "canJoin": PartyService.can_join(party),
            "canApplyCoupon": coupons.can_apply_coupon(party),
            "canReopen": is_organizer and current == STATUS_COMPLETED,
            "canRequestReopen": not is_organizer and current == STATUS_COMPLETED,
            "reactions": {
                p.get("id", ""): {
                    **reactions.reaction_counts(p.get("reactions")),
                    "yours": reactions.user_reaction(p.get("reactions"), user_id),
                }
                for p in products
            },
            "allowedTransitions": status.allowed_transitions(party, user_id, policy),
        }
