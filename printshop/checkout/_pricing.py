"""
Pricing — money helpers and add-on pricing variants.

Amounts are accumulated unrounded. Rounding happens only where a value
leaves the core (display, wire responses, order snapshots).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from printshop._types import Money
from printshop.checkout._types import CartItem


# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

_CENT = Decimal("0.01")


def round_money(amount: Money) -> Money:
    """Round half-up to cents."""
    return float(Decimal(repr(amount)).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_money(amount: Money, currency: str = "$") -> str:
    """
    Display form.

    >>> format_money(1234.5)
    '$1,234.50'
    >>> format_money(-10)
    '-$10.00'
    """
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency}{abs(rounded):,.2f}"


def cart_subtotal(items: Iterable[CartItem]) -> Money:
    return sum((item.total_price for item in items), 0.0)


# ═══════════════════════════════════════════════════════════════════════════════
# Add-ons — tagged by pricing model
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class FlatAddOn:
    """Fixed price per line item, regardless of quantity."""
    id: str
    name: str
    price: Money


@dataclass(frozen=True, slots=True)
class PerPieceAddOn:
    id: str
    name: str
    price_per_piece: Money


@dataclass(frozen=True, slots=True)
class SetupPlusPerPieceAddOn:
    """One-time setup fee plus a per-piece charge."""
    id: str
    name: str
    setup_fee: Money
    price_per_piece: Money


type AddOn = FlatAddOn | PerPieceAddOn | SetupPlusPerPieceAddOn


def price_add_on(add_on: AddOn, quantity: int) -> Money:
    if quantity < 1:
        raise ValueError(f"quantity must be positive, got {quantity}")

    match add_on:
        case FlatAddOn(price=price):
            return price
        case PerPieceAddOn(price_per_piece=per_piece):
            return per_piece * quantity
        case SetupPlusPerPieceAddOn(setup_fee=setup, price_per_piece=per_piece):
            return setup + per_piece * quantity
        case _:
            raise TypeError(f"Unknown add-on variant: {type(add_on).__name__}")


def price_add_ons(add_ons: Iterable[AddOn], quantity: int) -> Money:
    return sum((price_add_on(a, quantity) for a in add_ons), 0.0)


__all__ = (
    "round_money",
    "format_money",
    "cart_subtotal",
    "FlatAddOn",
    "PerPieceAddOn",
    "SetupPlusPerPieceAddOn",
    "AddOn",
    "price_add_on",
    "price_add_ons",
)
