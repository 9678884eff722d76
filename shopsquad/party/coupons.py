"""One-shot coupon codes for a squad's products."""

from __future__ import annotations

from dataclasses import dataclass

from shopsquad.core.constants import STATUS_IN_PAYMENT, STATUS_UPCOMING
from shopsquad.errors import InvalidCouponError

from .models import Party, Product


@dataclass(frozen=True)
class Coupon:
    """A coupon that overwrites every product price."""

    discount: str
    value: float
    description: str


COUPONS = {
    "KICKOFF": Coupon(
        discount="fixed", value=0.01, description="All products for €0.01 each!"
    ),
}

COUPON_STATUSES = (STATUS_UPCOMING, STATUS_IN_PAYMENT)


def normalize_code(code: str | None) -> str:
    """Codes are matched case-insensitively, ignoring surrounding spaces."""
    return (code or "").strip().upper()


def get_coupon(code: str | None) -> Coupon:
    """Look up a coupon, raising ``InvalidCouponError`` if it does not exist."""
    coupon = COUPONS.get(normalize_code(code))
    if coupon is None:
        raise InvalidCouponError("Invalid coupon code")
    return coupon


def can_apply_coupon(party: Party) -> bool:
    """A coupon fits only once, and only before items are pre-ordered."""
    return not party.get("appliedCoupon") and party.get("status") in COUPON_STATUSES


def apply_coupon(party: Party, code: str | None) -> list[Product]:
    """Return the squad's products repriced by ``code``.

    Every product keeps its previous price in ``originalPrice``. The party
    itself is not modified.
    """
    coupon = get_coupon(code)
    if party.get("appliedCoupon"):
        raise InvalidCouponError(
            f"Coupon {party['appliedCoupon']} has already been applied."
        )
    if party.get("status") not in COUPON_STATUSES:
        raise InvalidCouponError("Coupons can no longer be applied to this squad.")

    return [
        {**product, "originalPrice": product.get("price"), "price": coupon.value}
        for product in party.get("products") or []
    ]
