"""Split a squad's product list into per-participant payment shares.

Prices are summed with native float arithmetic. No rounding or currency
reconciliation happens here; format amounts only for display.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Participant, Product, Share


def total_amount(products: Iterable[Product]) -> float:
    """Sum every product price, regardless of who added it."""
    return sum(p.get("price", 0) for p in products)


def calculate_shares(
    products: Sequence[Product], participants: Sequence[Participant]
) -> list[Share]:
    """Compute what each participant owes for the products they added.

    Products whose ``addedBy`` matches no listed participant are left out of
    every share, so the shares can sum to less than ``total_amount``.
    """
    shares = []
    for participant in participants:
        owned = [p for p in products if p.get("addedBy") == participant.get("id")]
        shares.append(
            Share(
                participant=participant,
                products=owned,
                amount=total_amount(owned),
            )
        )
    return shares


def share_for(
    products: Sequence[Product], participants: Sequence[Participant], user_id: str
) -> float:
    """Return one participant's amount, or 0 if they are not in the squad."""
    for share in calculate_shares(products, participants):
        if share.participant.get("id") == user_id:
            return share.amount
    return 0.0


def unassigned_products(
    products: Sequence[Product], participants: Sequence[Participant]
) -> list[Product]:
    """Products that count toward the total but toward nobody's share."""
    ids = {p.get("id") for p in participants}
    return [p for p in products if p.get("addedBy") not in ids]
