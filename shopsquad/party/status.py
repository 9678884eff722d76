"""Lifecycle rules for a squad's status field.

upcoming -> in_payment -> in_preorder -> trying -> finalizing -> completed,
with completed -> upcoming as the reopen back-edge and in_payment -> completed
once everyone has paid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from shopsquad.core.constants import (
    PARTY_STATUSES,
    PAYMENT_COMPLETED,
    STATUS_COMPLETED,
    STATUS_FINALIZING,
    STATUS_IN_PAYMENT,
    STATUS_IN_PREORDER,
    STATUS_TRYING,
    STATUS_UPCOMING,
)
from shopsquad.errors import InvalidTransitionError, PermissionDeniedError

from .models import Party, Payment

# Manual organizer steps after payment collection has started.
MANUAL_CHAIN = {
    STATUS_IN_PAYMENT: STATUS_IN_PREORDER,
    STATUS_IN_PREORDER: STATUS_TRYING,
    STATUS_TRYING: STATUS_FINALIZING,
    STATUS_FINALIZING: STATUS_COMPLETED,
}


@dataclass(frozen=True)
class StatusPolicy:
    """Configurable rules for the transitions the app does not force."""

    auto_complete: bool = False
    manual_transitions: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> StatusPolicy:
        """Build the policy from Flask config keys."""
        return cls(
            auto_complete=bool(config.get("SQUAD_AUTO_COMPLETE", False)),
            manual_transitions=bool(config.get("SQUAD_MANUAL_TRANSITIONS", True)),
        )


def is_organizer(party: Party, user_id: str | None) -> bool:
    """Return True if the user created the squad."""
    return bool(user_id) and party.get("organizerId") == user_id


def find_payment(party: Party, user_id: str) -> Payment | None:
    """Return the user's payment record, if any."""
    for payment in party.get("payments") or []:
        if payment.get("userId") == user_id:
            return payment
    return None


def has_paid(party: Party, user_id: str) -> bool:
    """Return True if the user has a completed payment."""
    payment = find_payment(party, user_id)
    return bool(payment) and payment.get("status") == PAYMENT_COMPLETED


def organizer_has_paid(party: Party) -> bool:
    """The organizer paying signals that collection has begun.

    Adding products and joining are gated on this, whatever the status field says.
    """
    return has_paid(party, party.get("organizerId", ""))


def all_paid(party: Party) -> bool:
    """Return True once every participant has a completed payment."""
    participants = party.get("participants") or []
    if not participants:
        return False
    return all(has_paid(party, p.get("id", "")) for p in participants)


def unpaid_participants(party: Party) -> list[str]:
    """Ids of participants without a completed payment."""
    return [
        p.get("id", "")
        for p in party.get("participants") or []
        if not has_paid(party, p.get("id", ""))
    ]


def validate_transition(
    party: Party,
    actor_id: str,
    target: str,
    policy: StatusPolicy | None = None,
) -> None:
    """Raise if ``actor_id`` may not move the squad to ``target``."""
    policy = policy or StatusPolicy()
    current = party.get("status", STATUS_UPCOMING)

    if target not in PARTY_STATUSES:
        raise InvalidTransitionError(f"Unknown status '{target}'.")
    if not is_organizer(party, actor_id):
        raise PermissionDeniedError("Only the squad leader can change the squad status.")
    if current == target:
        raise InvalidTransitionError(f"The squad is already {current}.")

    if current == STATUS_UPCOMING and target == STATUS_IN_PAYMENT:
        return
    if current == STATUS_COMPLETED and target == STATUS_UPCOMING:
        return
    if current == STATUS_IN_PAYMENT and target == STATUS_COMPLETED:
        if not all_paid(party):
            raise InvalidTransitionError(
                "All participants must complete their payment first."
            )
        return
    if MANUAL_CHAIN.get(current) == target:
        if not policy.manual_transitions:
            raise InvalidTransitionError(
                f"Moving from {current} to {target} is disabled."
            )
        if current == STATUS_IN_PAYMENT and unpaid_participants(party):
            raise InvalidTransitionError(
                "All participants must complete their payment before pre-order."
            )
        return
    raise InvalidTransitionError(f"Cannot move the squad from {current} to {target}.")


def allowed_transitions(
    party: Party, actor_id: str, policy: StatusPolicy | None = None
) -> list[str]:
    """List the statuses ``actor_id`` could move the squad to right now."""
    allowed = []
    for target in PARTY_STATUSES:
        try:
            validate_transition(party, actor_id, target, policy)
        except (InvalidTransitionError, PermissionDeniedError):
            continue
        allowed.append(target)
    return allowed


def should_auto_complete(party: Party, policy: StatusPolicy) -> bool:
    """Return True if the policy completes the squad now that everyone paid."""
    return (
        policy.auto_complete
        and party.get("status") == STATUS_IN_PAYMENT
        and all_paid(party)
    )
