"""Shared document types."""

from datetime import datetime
from typing import Any, TypedDict, Union

# Firestore hands back DatetimeWithNanoseconds; writes may carry SERVER_TIMESTAMP.
Timestamp = Union[datetime, Any]


class _FirestoreDocumentBase(TypedDict):
    id: str


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Fields every stored document carries once read back with its id."""

    createdAt: Timestamp
    updatedAt: Timestamp
