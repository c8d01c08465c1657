"""
Row codec — checkout types to and from gateway rows.

Rows are JSON-shaped: datetimes become ISO strings, tuples become lists,
payment methods carry a `type` tag. Derived money fields (`subtotal`,
`total_amount`) are written for consumers and ignored when read back.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any

from printshop._types import Row
from printshop.checkout._types import (
    Configuration,
    PriceBreakdown,
    CartItem,
    Address,
    AddressVerdict,
    ShippingMethod,
    TaxCalculation,
    PaymentGateway,
    CardPayment,
    PayPalPayment,
    CashAppPayment,
    PaymentMethod,
    PaymentOutcome,
    CheckoutSession,
)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════

def cart_item_to_row(item: CartItem) -> Row:
    row = asdict(item)
    row["configuration"]["add_on_ids"] = list(item.configuration.add_on_ids)
    return row


def cart_item_from_row(row: Row) -> CartItem:
    config: Row = dict(row.get("configuration") or {})
    config["add_on_ids"] = tuple(config.get("add_on_ids") or ())
    return CartItem(
        id=row["id"],
        product_id=row["product_id"],
        product_name=row["product_name"],
        quantity=int(row["quantity"]),
        unit_price=float(row["unit_price"]),
        total_price=float(row["total_price"]),
        configuration=Configuration(**config),
        price_breakdown=PriceBreakdown(**(row.get("price_breakdown") or {})),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Addresses, Shipping, Tax
# ═══════════════════════════════════════════════════════════════════════════════

def address_to_row(address: Address) -> Row:
    return asdict(address)


def address_from_row(row: Row) -> Address:
    return Address(**row)


def shipping_method_to_row(method: ShippingMethod) -> Row:
    return asdict(method)


def shipping_method_from_row(row: Row) -> ShippingMethod:
    return ShippingMethod(
        id=row["id"],
        name=row["name"],
        description=row.get("description", ""),
        carrier=row["carrier"],
        cost=float(row["cost"]),
        estimated_days=int(row["estimated_days"]),
    )


def address_verdict_from_row(row: Row) -> AddressVerdict:
    corrected = row.get("corrected_address")
    return AddressVerdict(
        is_valid=bool(row["is_valid"]),
        errors=tuple(row.get("errors") or ()),
        corrected_address=address_from_row(corrected) if corrected else None,
    )


def tax_from_row(row: Row) -> TaxCalculation:
    breakdown: Row = row.get("breakdown") or {}
    return TaxCalculation(
        rate=float(row["rate"]),
        amount=float(row["amount"]),
        state_tax=float(breakdown.get("state_tax", 0.0)),
        local_tax=float(breakdown.get("local_tax", 0.0)),
        county_tax=float(breakdown.get("county_tax", 0.0)),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Payment
# ═══════════════════════════════════════════════════════════════════════════════

def payment_method_to_row(method: PaymentMethod) -> Row:
    return {"type": method.gateway.value, **asdict(method)}


def payment_method_from_row(row: Row) -> PaymentMethod:
    fields = {k: v for k, v in row.items() if k != "type"}
    match PaymentGateway(row["type"]):
        case PaymentGateway.CARD:
            return CardPayment(**fields)
        case PaymentGateway.PAYPAL:
            return PayPalPayment(**fields)
        case PaymentGateway.CASHAPP:
            return CashAppPayment(**fields)


def payment_outcome_from_row(row: Row) -> PaymentOutcome:
    return PaymentOutcome(
        success=bool(row["success"]),
        reference_number=row.get("reference_number"),
        error=row.get("error"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════

def _optional[T](value: T | None, encode: Any) -> Any:
    return encode(value) if value is not None else None


def session_to_row(session: CheckoutSession) -> Row:
    return {
        "id": session.id,
        "cart_items": [cart_item_to_row(i) for i in session.cart_items],
        "subtotal": session.subtotal,
        "shipping_cost": session.shipping_cost,
        "tax_amount": session.tax_amount,
        "discount_amount": session.discount_amount,
        "total_amount": session.total_amount,
        "shipping_address": _optional(session.shipping_address, address_to_row),
        "billing_address": (
            None
            if session.billing_same_as_shipping
            else _optional(session.billing_address, address_to_row)
        ),
        "billing_same_as_shipping": session.billing_same_as_shipping,
        "shipping_method": _optional(session.shipping_method, shipping_method_to_row),
        "payment_method": _optional(session.payment_method, payment_method_to_row),
        "special_instructions": session.special_instructions,
        "reference_number": session.reference_number,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "expires_at": session.expires_at.isoformat(),
    }


def session_from_row(row: Row) -> CheckoutSession:
    shipping = _optional(row.get("shipping_address"), address_from_row)
    same = bool(row.get("billing_same_as_shipping", False))
    billing = shipping if same else _optional(row.get("billing_address"), address_from_row)

    return CheckoutSession(
        id=row["id"],
        cart_items=tuple(cart_item_from_row(i) for i in row["cart_items"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        expires_at=datetime.fromisoformat(row["expires_at"]),
        shipping_cost=float(row.get("shipping_cost", 0.0)),
        tax_amount=float(row.get("tax_amount", 0.0)),
        discount_amount=float(row.get("discount_amount", 0.0)),
        shipping_address=shipping,
        billing_address=billing,
        billing_same_as_shipping=same,
        shipping_method=_optional(row.get("shipping_method"), shipping_method_from_row),
        payment_method=_optional(row.get("payment_method"), payment_method_from_row),
        special_instructions=row.get("special_instructions"),
        reference_number=row.get("reference_number"),
    )


__all__ = (
    "cart_item_to_row",
    "cart_item_from_row",
    "address_to_row",
    "address_from_row",
    "shipping_method_to_row",
    "shipping_method_from_row",
    "address_verdict_from_row",
    "tax_from_row",
    "payment_method_to_row",
    "payment_method_from_row",
    "payment_outcome_from_row",
    "session_to_row",
    "session_from_row",
)
