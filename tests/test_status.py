"""Tests for squad status transitions."""

import unittest

from shopsquad.errors import InvalidTransitionError, PermissionDeniedError
from shopsquad.party import status
from shopsquad.party.status import StatusPolicy
from tests.conftest import paid


def make_party(current="upcoming", payments=None):
    return {
        "organizerId": "leader",
        "status": current,
        "participants": [{"id": "leader"}, {"id": "member"}],
        "payments": payments or [],
    }


class StatusTransitionTestCase(unittest.TestCase):
    def test_leader_starts_payment_collection(self):
        status.validate_transition(make_party(), "leader", "in_payment")

    def test_member_cannot_change_status(self):
        party = make_party()
        with self.assertRaises(PermissionDeniedError):
            status.validate_transition(party, "member", "in_payment")
        self.assertEqual(party["status"], "upcoming")

    def test_unknown_status_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(make_party(), "leader", "shipped")

    def test_same_status_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(make_party(), "leader", "upcoming")

    def test_completion_requires_every_payment(self):
        party = make_party("in_payment", [paid("leader", 10)])
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(party, "leader", "completed")

        party["payments"].append(paid("member", 5))
        status.validate_transition(party, "leader", "completed")

    def test_manual_chain(self):
        everyone_paid = [paid("leader", 10), paid("member", 5)]
        for current, target in status.MANUAL_CHAIN.items():
            status.validate_transition(
                make_party(current, list(everyone_paid)), "leader", target
            )

    def test_preorder_waits_for_every_payment(self):
        party = make_party("in_payment", [paid("leader", 10)])
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(party, "leader", "in_preorder")

        party["payments"].append(paid("member", 5))
        status.validate_transition(party, "leader", "in_preorder")

    def test_manual_chain_can_be_disabled(self):
        policy = StatusPolicy(manual_transitions=False)
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(
                make_party("in_payment"), "leader", "in_preorder", policy
            )

    def test_cannot_skip_steps(self):
        with self.assertRaises(InvalidTransitionError):
            status.validate_transition(make_party("upcoming"), "leader", "trying")

    def test_completed_squad_can_reopen(self):
        status.validate_transition(make_party("completed"), "leader", "upcoming")

    def test_allowed_transitions(self):
        self.assertEqual(
            status.allowed_transitions(make_party(), "leader"), ["in_payment"]
        )
        self.assertEqual(status.allowed_transitions(make_party(), "member"), [])
        self.assertEqual(
            status.allowed_transitions(make_party("in_payment"), "leader"), []
        )
        everyone_paid = make_party("in_payment", [paid("leader", 1), paid("member", 1)])
        self.assertEqual(
            status.allowed_transitions(everyone_paid, "leader"),
            ["in_preorder", "completed"],
        )

    def test_policy_from_config(self):
        policy = StatusPolicy.from_config(
            {"SQUAD_AUTO_COMPLETE": True, "SQUAD_MANUAL_TRANSITIONS": False}
        )
        self.assertTrue(policy.auto_complete)
        self.assertFalse(policy.manual_transitions)
        self.assertEqual(StatusPolicy.from_config({}), StatusPolicy())


class PaymentStateTestCase(unittest.TestCase):
    def test_organizer_has_paid(self):
        party = make_party("in_payment")
        self.assertFalse(status.organizer_has_paid(party))
        party["payments"].append(paid("leader", 10))
        self.assertTrue(status.organizer_has_paid(party))

    def test_unpaid_participants(self):
        party = make_party("in_payment", [paid("leader", 10)])
        self.assertEqual(status.unpaid_participants(party), ["member"])

    def test_all_paid_needs_participants(self):
        self.assertFalse(status.all_paid({"participants": [], "payments": []}))

    def test_should_auto_complete(self):
        party = make_party("in_payment", [paid("leader", 1), paid("member", 1)])
        self.assertFalse(status.should_auto_complete(party, StatusPolicy()))
        self.assertTrue(
            status.should_auto_complete(party, StatusPolicy(auto_complete=True))
        )


if __name__ == "__main__":
    unittest.main()
