"""Data models for the party blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypedDict

from shopsquad.core.types import FirestoreDocument


class Participant(TypedDict, total=False):
    """A squad member as stored on the party document."""

    id: str
    name: str
    email: str
    avatar: str


class SelectedVariant(TypedDict):
    """The size and color picked when a product was added."""

    size: str
    color: str


class Reaction(TypedDict):
    """One user's like or dislike on a product."""

    userId: str
    userName: str
    type: str
    timestamp: Any


class Product(TypedDict, total=False):
    """A product added to a squad, copied from the catalog."""

    id: str
    title: str
    price: float
    originalPrice: float
    images: list[str]
    description: str
    vendor: str
    productType: str
    selectedVariant: SelectedVariant
    addedBy: str
    addedAt: Any
    status: str
    reactions: list[Reaction]


class Payment(TypedDict, total=False):
    """A settlement record for one participant."""

    userId: str
    userName: str
    amount: float
    status: str
    timestamp: Any
    type: str
    orderId: str


class Message(TypedDict, total=False):
    """A chat message posted to a squad."""

    id: str
    text: str
    senderId: str
    senderName: str
    senderAvatar: str
    timestamp: Any


class Party(FirestoreDocument, total=False):
    """A party (shopping squad) document in Firestore."""

    title: str
    date: Any
    location: str
    organizerId: str
    organizer: str
    participants: list[Participant]
    products: list[Product]
    payments: list[Payment]
    messages: list[Message]
    status: str
    totalAmount: float
    appliedCoupon: str
    invitationsClosed: bool


@dataclass
class Share:
    """What one participant owes: their products and the sum of their prices."""

    participant: Participant
    products: list[Product] = field(default_factory=list)
    amount: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize the share for the API."""
        return {
            "participant": dict(self.participant),
            "products": [dict(p) for p in self.products],
            "amount": self.amount,
        }


@dataclass
class PartySubmission:
    """Dataclass for a new squad submitted by its organizer."""

    title: str
    date: Any
    location: str

    def validate(self) -> None:
        """Validate the submission before anything is written."""
        if not self.title or not self.title.strip():
            raise ValueError("Please fill in all fields")
        if not self.location or not self.location.strip():
            raise ValueError("Please fill in all fields")
        if self.date is None:
            raise ValueError("Invalid date or time")
