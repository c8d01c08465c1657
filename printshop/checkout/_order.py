"""
Order snapshot — what a placed session becomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from printshop._types import Money
from printshop.checkout._types import (
    Address,
    CheckoutSession,
    Configuration,
    PaymentGateway,
    PaymentMethod,
)
from printshop.checkout._errors import IncompleteSessionError
from printshop.checkout._pricing import round_money


class OrderStatus(StrEnum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ON_HOLD_AWAITING_FILES = "on_hold_awaiting_files"


@dataclass(frozen=True, slots=True)
class OrderJob:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Money
    total_price: Money
    configuration: Configuration


@dataclass(frozen=True, slots=True)
class OrderDraft:
    """Session snapshot with money rounded for presentation."""
    session_id: str
    reference_number: str
    status: OrderStatus
    subtotal: Money
    shipping_cost: Money
    tax_amount: Money
    discount_amount: Money
    total_amount: Money
    shipping_address: Address
    billing_address: Address
    payment_method: PaymentGateway
    jobs: tuple[OrderJob, ...]
    special_instructions: str | None = None


def require_payable(session: CheckoutSession) -> tuple[Address, Address, PaymentMethod]:
    """
    Shipping address, billing address and payment method of `session`.

    Checked before any charge is attempted.

    Raises:
        IncompleteSessionError: any of the three is missing
    """
    shipping = session.shipping_address
    billing = session.effective_billing_address
    payment = session.payment_method
    if shipping is None or billing is None or payment is None:
        raise IncompleteSessionError(
            tuple(
                name
                for name, value in (
                    ("shipping_address", shipping),
                    ("billing_address", billing),
                    ("payment_method", payment),
                )
                if value is None
            )
        )
    return shipping, billing, payment


def build_order(
    session: CheckoutSession,
    reference_number: str,
    status: OrderStatus = OrderStatus.PAYMENT_CONFIRMED,
) -> OrderDraft:
    """
    Snapshot `session` as an order.

    Raises:
        IncompleteSessionError: shipping, billing or payment is missing
    """
    shipping, billing, payment = require_payable(session)

    return OrderDraft(
        session_id=session.id,
        reference_number=reference_number,
        status=status,
        subtotal=round_money(session.subtotal),
        shipping_cost=round_money(session.shipping_cost),
        tax_amount=round_money(session.tax_amount),
        discount_amount=round_money(session.discount_amount),
        total_amount=round_money(session.total_amount),
        shipping_address=shipping,
        billing_address=billing,
        payment_method=payment.gateway,
        jobs=tuple(
            OrderJob(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                configuration=item.configuration,
            )
            for item in session.cart_items
        ),
        special_instructions=session.special_instructions,
    )


__all__ = (
    "OrderStatus",
    "OrderJob",
    "OrderDraft",
    "require_payable",
    "build_order",
)
