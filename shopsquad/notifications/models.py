"""Data models for the notifications blueprint."""

from __future__ import annotations

from typing import Any, TypedDict


class Notification(TypedDict, total=False):
    """One entry in a user's notification document."""

    id: str
    type: str
    title: str
    message: str
    timestamp: Any
    read: bool
    userId: str
    partyId: str
    requesterId: str
    requesterName: str


class NotificationDocument(TypedDict, total=False):
    """The per-user ``notifications/{userId}`` document."""

    items: list[Notification]
