"""Common utilities for tests."""

from __future__ import annotations

import datetime
import unittest
from typing import Any, Iterator
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore
from mockfirestore.document import DocumentReference

FIXED_TIMESTAMP = datetime.datetime(2025, 3, 1, 9, 0, tzinfo=datetime.timezone.utc)

# Every module that talks to Firestore through ``firebase_admin.firestore``.
FIRESTORE_MODULES = (
    "shopsquad.firestore",
    "shopsquad.auth.routes.firestore",
    "shopsquad.party.routes.firestore",
    "shopsquad.party.services.firestore",
    "shopsquad.payments.routes.firestore",
    "shopsquad.payments.services.firestore",
    "shopsquad.notifications.routes.firestore",
    "shopsquad.notifications.services.firestore",
    "shopsquad.catalog.routes.firestore",
    "shopsquad.catalog.services.firestore",
    "shopsquad.admin.routes.firestore",
)


class MockArrayUnion:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


class MockArrayRemove:
    def __init__(self, values: list[Any]) -> None:
        self.values = values

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


def _resolve_sentinels(current_data: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    new_data = {}
    for k, v in data.items():
        if isinstance(v, MockArrayUnion):
            existing = current_data.get(k, [])
            if not isinstance(existing, list):
                existing = []
            # Simple append for mock, firestore does set union
            merged = list(existing)
            for item in v.values:
                if item not in merged:
                    merged.append(item)
            new_data[k] = merged
        elif isinstance(v, MockArrayRemove):
            existing = current_data.get(k, [])
            if not isinstance(existing, list):
                existing = []
            new_data[k] = [i for i in existing if i not in v.values]
        else:
            new_data[k] = v
    return new_data


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support array sentinels and get_all."""

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq

    # get_all() puts references in a set.
    if getattr(DocumentReference, "__hash__", None) is None:
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    if not hasattr(DocumentReference, "_orig_update"):
        DocumentReference._orig_update = DocumentReference.update

        def patched_update(self: Any, data: dict[str, Any]) -> Any:
            current_data = self.get().to_dict() or {}
            return self._orig_update(_resolve_sentinels(current_data, data))

        DocumentReference.update = patched_update

    if not hasattr(DocumentReference, "_orig_set"):
        DocumentReference._orig_set = DocumentReference.set

        def patched_set(self: Any, data: dict[str, Any], merge: bool = False) -> Any:
            # set(merge=True) creates the document when it is missing.
            if merge and self.get().exists:
                return self.update(data)
            return self._orig_set(_resolve_sentinels({}, data))

        DocumentReference.set = patched_set


def mock_firestore_module(db: MockFirestore) -> MagicMock:
    """A stand-in for ``firebase_admin.firestore`` backed by ``db``."""
    module = MagicMock()
    module.client.return_value = db
    module.ArrayUnion = MockArrayUnion
    module.ArrayRemove = MockArrayRemove
    module.SERVER_TIMESTAMP = FIXED_TIMESTAMP
    return module


def patch_firestore(test_case: unittest.TestCase, db: MockFirestore) -> MagicMock:
    """Point every Firestore-using module at ``db`` for the test's lifetime."""
    patch_mockfirestore()
    module = mock_firestore_module(db)
    for target in FIRESTORE_MODULES:
        patcher = patch(target, new=module)
        patcher.start()
        test_case.addCleanup(patcher.stop)
    return module


def seed_party(db: MockFirestore, party_id: str, **fields: Any) -> dict[str, Any]:
    """Write a squad with sensible defaults and index it for its participants."""
    party = {
        "title": "Spring Haul",
        "date": datetime.datetime(2025, 3, 1, 9, 0),
        "location": "Main Street",
        "organizerId": "leader",
        "organizer": "Lea Leader",
        "participants": [
            {"id": "leader", "name": "Lea Leader", "email": "lea@example.com", "avatar": ""},
            {"id": "member", "name": "Max Member", "email": "max@example.com", "avatar": ""},
        ],
        "products": [],
        "messages": [],
        "payments": [],
        "status": "upcoming",
        "invitationsClosed": False,
    }
    party.update(fields)
    db.collection("parties").document(party_id).set(party)
    for participant in party["participants"]:
        index = db.collection("user_parties").document(participant["id"])
        ids = (index.get().to_dict() or {}).get("partyIds", [])
        index.set({"partyIds": [*ids, party_id]})
    return party


def product(product_id: str, added_by: str, price: float, **fields: Any) -> dict[str, Any]:
    """A squad product as stored on the party."""
    data = {
        "id": product_id,
        "title": f"Item {product_id}",
        "price": price,
        "images": [],
        "addedBy": added_by,
        "selectedVariant": {"size": "M", "color": "Black"},
    }
    data.update(fields)
    return data


def paid(user_id: str, amount: float) -> dict[str, Any]:
    """A completed payment record."""
    return {
        "userId": user_id,
        "userName": user_id,
        "amount": amount,
        "status": "completed",
        "timestamp": FIXED_TIMESTAMP,
        "type": "preorder",
    }
