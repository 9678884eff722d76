"""Service layer for settling squad payments.

The checkout widget creates and captures the order with the provider; this
module decides the amount and records the captured payment on the squad.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from shopsquad.core.constants import (
    DEFAULT_CURRENCY,
    NOTIFY_PAYMENT_RECEIVED,
    PAYMENT_COMPLETED,
    PAYMENT_FAILED_MESSAGE,
    PAYMENT_RECONCILIATION_COLLECTION,
    PAYMENT_TYPE_PREORDER,
    STATUS_IN_PAYMENT,
)
from shopsquad.errors import (
    AppError,
    DuplicateResourceError,
    PaymentRecordError,
    ValidationError,
)
from shopsquad.notifications.emails import (
    PAYMENT_CONFIRMATION,
    PAYMENT_NOTIFICATION,
    party_email_data,
    try_send_party_email,
)
from shopsquad.notifications.services import NotificationService
from shopsquad.party.models import Party, Payment
from shopsquad.party.services import PartyService
from shopsquad.party.shares import share_for
from shopsquad.party.status import (
    StatusPolicy,
    has_paid,
    is_organizer,
    organizer_has_paid,
    should_auto_complete,
)
from shopsquad.utils import display_name, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class PaymentService:
    """Handles the amount owed and the record of each captured payment."""

    @staticmethod
    def check_can_pay(party: Party, user_id: str) -> None:
        """Raise unless the user may pay for their share right now.

        The leader pays first, once collection has started; members can pay
        after the leader has.
        """
        if not PartyService.is_participant(party, user_id):
            raise ValidationError("You are not a member of this squad.")
        if has_paid(party, user_id):
            raise DuplicateResourceError("You have already paid for this squad.")
        if party.get("status") != STATUS_IN_PAYMENT:
            raise ValidationError("Payment collection is not open for this squad.")
        if not is_organizer(party, user_id) and not organizer_has_paid(party):
            raise ValidationError("The squad leader has to pay first.")

    @staticmethod
    def order_for(
        party: Party, user_id: str, currency: str = DEFAULT_CURRENCY
    ) -> dict[str, Any]:
        """The order the checkout widget should create for the user."""
        PaymentService.check_can_pay(party, user_id)
        amount = share_for(
            party.get("products") or [], party.get("participants") or [], user_id
        )
        if amount <= 0:
            raise ValidationError("You have no items to pay for.")
        return {
            "partyId": party.get("id"),
            "amount": f"{amount:.2f}",
            "currency": currency,
            "description": f"ShopSquad: {party.get('title', '')}",
        }

    @staticmethod
    def record_payment(
        db: Client,
        party_id: str,
        user: dict[str, Any],
        order_id: str | None,
        policy: StatusPolicy | None = None,
    ) -> Payment:
        """Store a captured payment on the squad and notify the leader.

        A user with nothing to pay confirms without an order id. When a
        captured order cannot be stored on the squad, because the squad no
        longer accepts it or the write fails, a reconciliation record is kept
        and ``PaymentRecordError`` is raised.
        """
        policy = policy or StatusPolicy()
        user_id = user.get("uid", "")
        party = PartyService.get_party(party_id, db)
        amount = share_for(
            party.get("products") or [], party.get("participants") or [], user_id
        )
        payment: Payment = {
            "userId": user_id,
            "userName": display_name(user),
            "amount": amount,
            "status": PAYMENT_COMPLETED,
            "timestamp": utcnow(),
            "type": PAYMENT_TYPE_PREORDER,
        }
        if order_id:
            payment["orderId"] = order_id

        try:
            PaymentService.check_can_pay(party, user_id)
        except AppError as e:
            if not order_id:
                raise
            # The provider already captured this order.
            logger.error(
                f"Captured order {order_id} refused for squad {party_id}: {e.message}"
            )
            PaymentService._keep_for_reconciliation(db, party_id, payment, e.message)
            raise PaymentRecordError() from e
        if amount > 0 and not order_id:
            raise ValidationError("Missing payment order id.")

        try:
            PartyService.add_payment(db, party_id, payment)
        except Exception as e:
            logger.error(f"Error recording payment for squad {party_id}: {e}")
            PaymentService._keep_for_reconciliation(db, party_id, payment, str(e))
            raise PaymentRecordError() from e

        if not is_organizer(party, user_id):
            NotificationService.notify(
                db,
                party.get("organizerId", ""),
                NOTIFY_PAYMENT_RECEIVED,
                "Payment Received",
                f'{display_name(user)} has completed their payment for "{party.get("title")}"',
                party_id=party_id,
            )
            organizer = next(
                (
                    p
                    for p in party.get("participants") or []
                    if p.get("id") == party.get("organizerId")
                ),
                {},
            )
            try_send_party_email(
                organizer.get("email"),
                PAYMENT_NOTIFICATION,
                party_email_data(party, payerName=display_name(user)),
            )

        try_send_party_email(
            user.get("email"),
            PAYMENT_CONFIRMATION,
            party_email_data(party, recipientName=display_name(user), amount=amount),
        )

        party["payments"] = [*(party.get("payments") or []), payment]
        if should_auto_complete(party, policy):
            PartyService.complete_party(db, party_id, party["organizerId"], policy)
        return payment

    @staticmethod
    def _keep_for_reconciliation(
        db: Client, party_id: str, payment: Payment, error: str
    ) -> None:
        try:
            db.collection(PAYMENT_RECONCILIATION_COLLECTION).add(
                {
                    "partyId": party_id,
                    "payment": payment,
                    "error": error,
                    "resolved": False,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                }
            )
        except Exception as e:
            logger.critical(
                f"Captured payment {payment.get('orderId')} for squad {party_id} "
                f"could not be recorded or kept for reconciliation: {e}"
            )

    @staticmethod
    def report_provider_error(party_id: str, user_id: str, error: Any) -> str:
        """Log a failed or cancelled checkout and return the message to show."""
        logger.warning(f"Payment error for squad {party_id} by {user_id}: {error}")
        return PAYMENT_FAILED_MESSAGE
