"""
Boundary services — address, shipping, tax and payment calls.

Each call is one remote procedure on the gateway. GatewayError
propagates unmodified; callers decide whether to retry.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from printshop.gateway import Gateway
from printshop.checkout._types import (
    Address,
    AddressVerdict,
    CartItem,
    ShippingQuote,
    TaxCalculation,
    PaymentRequest,
    PaymentOutcome,
)
from printshop.checkout._codec import (
    address_to_row,
    cart_item_to_row,
    address_verdict_from_row,
    shipping_method_from_row,
    tax_from_row,
    payment_method_to_row,
    payment_outcome_from_row,
)

logger = logging.getLogger(__name__)


class CheckoutServices(Protocol):
    """
    Remote checkout endpoints.

    Implement this to back checkout with a different provider
    (a USPS address API, a carrier rate shop, a payment processor).
    """

    async def validate_address(self, address: Address) -> AddressVerdict: ...

    async def calculate_shipping(
        self, address: Address, cart_items: Sequence[CartItem]
    ) -> ShippingQuote: ...

    async def calculate_tax(
        self, address: Address, cart_items: Sequence[CartItem], shipping_cost: float
    ) -> TaxCalculation: ...

    async def process_payment(self, request: PaymentRequest) -> PaymentOutcome: ...


class RpcCheckoutServices:
    """Checkout endpoints as gateway remote procedures."""

    VALIDATE_ADDRESS = "validate_address"
    CALCULATE_SHIPPING = "calculate_shipping"
    CALCULATE_TAX = "calculate_tax"
    PROCESS_PAYMENT = "process_payment"

    def __init__(self, gateway: Gateway) -> None:
        self._gateway = gateway

    async def validate_address(self, address: Address) -> AddressVerdict:
        row = await self._gateway.rpc(
            self.VALIDATE_ADDRESS, {"address": address_to_row(address)}
        )
        return address_verdict_from_row(row)

    async def calculate_shipping(
        self, address: Address, cart_items: Sequence[CartItem]
    ) -> ShippingQuote:
        rows = await self._gateway.rpc(
            self.CALCULATE_SHIPPING,
            {
                "address": address_to_row(address),
                "cart_items": [cart_item_to_row(i) for i in cart_items],
            },
        )
        return ShippingQuote(tuple(shipping_method_from_row(r) for r in rows or ()))

    async def calculate_tax(
        self, address: Address, cart_items: Sequence[CartItem], shipping_cost: float
    ) -> TaxCalculation:
        row = await self._gateway.rpc(
            self.CALCULATE_TAX,
            {
                "address": address_to_row(address),
                "cart_items": [cart_item_to_row(i) for i in cart_items],
                "shipping_cost": shipping_cost,
            },
        )
        return tax_from_row(row)

    async def process_payment(self, request: PaymentRequest) -> PaymentOutcome:
        row = await self._gateway.rpc(
            self.PROCESS_PAYMENT,
            {
                "session_id": request.session_id,
                "payment_method": payment_method_to_row(request.payment_method),
                "payment_token": request.payment_token,
                "save_payment_method": request.save_payment_method,
            },
        )
        outcome = payment_outcome_from_row(row)
        if outcome.success:
            logger.info(
                "payment accepted session=%s reference=%s",
                request.session_id,
                outcome.reference_number,
            )
        else:
            logger.warning(
                "payment declined session=%s reason=%s", request.session_id, outcome.error
            )
        return outcome


__all__ = (
    "CheckoutServices",
    "RpcCheckoutServices",
)
