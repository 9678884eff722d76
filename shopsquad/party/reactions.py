"""Like/dislike toggling on squad products."""

from __future__ import annotations

from typing import Any

from shopsquad.core.constants import REACTION_DISLIKE, REACTION_LIKE, REACTION_TYPES
from shopsquad.errors import ValidationError

from .models import Reaction


def toggle_reaction(
    reactions: list[Reaction] | None,
    user_id: str,
    user_name: str,
    kind: str,
    timestamp: Any = None,
) -> list[Reaction]:
    """Return the reactions after ``user_id`` clicks ``kind``.

    Each user holds at most one reaction. The same kind again removes it; the
    opposite kind replaces it in place.
    """
    if kind not in REACTION_TYPES:
        raise ValidationError(f"Unknown reaction '{kind}'.")

    updated = list(reactions or [])
    for index, reaction in enumerate(updated):
        if reaction.get("userId") != user_id:
            continue
        if reaction.get("type") == kind:
            del updated[index]
        else:
            updated[index] = {
                "userId": user_id,
                "userName": user_name,
                "type": kind,
                "timestamp": timestamp,
            }
        return updated

    updated.append(
        {"userId": user_id, "userName": user_name, "type": kind, "timestamp": timestamp}
    )
    return updated


def reaction_counts(reactions: list[Reaction] | None) -> dict[str, int]:
    """Count likes and dislikes."""
    reactions = reactions or []
    return {
        "likes": sum(1 for r in reactions if r.get("type") == REACTION_LIKE),
        "dislikes": sum(1 for r in reactions if r.get("type") == REACTION_DISLIKE),
    }


def user_reaction(reactions: list[Reaction] | None, user_id: str) -> str | None:
    """Return the kind of reaction ``user_id`` currently holds."""
    for reaction in reactions or []:
        if reaction.get("userId") == user_id:
            return reaction.get("type")
    return None
