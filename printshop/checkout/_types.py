"""
Checkout types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, StrEnum, auto
from typing import ClassVar

from printshop._types import Money


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Configuration:
    """Product selections. Ids are opaque catalog references."""
    paper_stock_id: str | None = None
    print_size_id: str | None = None
    turnaround_time_id: str | None = None
    add_on_ids: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    base_price: Money = 0.0
    paper_cost: Money = 0.0
    size_modifier: Money = 0.0
    turnaround_modifier: Money = 0.0
    add_on_costs: Money = 0.0
    subtotal: Money = 0.0
    quantity_discount: Money = 0.0
    broker_discount: Money = 0.0
    savings: Money = 0.0


@dataclass(frozen=True, slots=True)
class CartItem:
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Money
    total_price: Money
    configuration: Configuration = field(default_factory=Configuration)
    price_breakdown: PriceBreakdown = field(default_factory=PriceBreakdown)

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity must be positive, got {self.quantity}")


# ═══════════════════════════════════════════════════════════════════════════════
# Addresses & Shipping
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class Address:
    first_name: str
    last_name: str
    street_address: str
    city: str
    state: str
    postal_code: str
    country: str = "US"
    company: str | None = None
    street_address_2: str | None = None
    phone: str | None = None


@dataclass(frozen=True, slots=True)
class AddressVerdict:
    """Outcome of address validation. A correction is a suggestion only."""
    is_valid: bool
    errors: tuple[str, ...] = ()
    corrected_address: Address | None = None


@dataclass(frozen=True, slots=True)
class ShippingMethod:
    id: str
    name: str
    description: str
    carrier: str
    cost: Money
    estimated_days: int


@dataclass(frozen=True, slots=True)
class ShippingQuote:
    """Methods offered for an address. Empty is a valid answer."""
    methods: tuple[ShippingMethod, ...]

    @property
    def available(self) -> bool:
        return bool(self.methods)

    def find(self, method_id: str) -> ShippingMethod | None:
        return next((m for m in self.methods if m.id == method_id), None)


@dataclass(frozen=True, slots=True)
class TaxCalculation:
    rate: float
    amount: Money
    state_tax: Money = 0.0
    local_tax: Money = 0.0
    county_tax: Money = 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Methods — tagged by gateway
# ═══════════════════════════════════════════════════════════════════════════════

class PaymentGateway(StrEnum):
    CARD = "card"
    PAYPAL = "paypal"
    CASHAPP = "cashapp"


@dataclass(frozen=True, slots=True)
class CardPayment:
    """Tokenized card. Raw card data never reaches this object."""
    token: str
    last_four: str
    exp_month: int
    exp_year: int
    brand: str | None = None

    gateway: ClassVar[PaymentGateway] = PaymentGateway.CARD

    def __post_init__(self) -> None:
        if len(self.last_four) != 4 or not self.last_four.isdigit():
            raise ValueError("last_four must be 4 digits")
        if not 1 <= self.exp_month <= 12:
            raise ValueError(f"exp_month out of range: {self.exp_month}")


@dataclass(frozen=True, slots=True)
class PayPalPayment:
    token: str
    email: str | None = None

    gateway: ClassVar[PaymentGateway] = PaymentGateway.PAYPAL


@dataclass(frozen=True, slots=True)
class CashAppPayment:
    token: str
    cashtag: str | None = None

    gateway: ClassVar[PaymentGateway] = PaymentGateway.CASHAPP


type PaymentMethod = CardPayment | PayPalPayment | CashAppPayment


@dataclass(frozen=True, slots=True)
class PaymentRequest:
    session_id: str
    payment_method: PaymentMethod
    payment_token: str
    save_payment_method: bool = False


@dataclass(frozen=True, slots=True)
class PaymentOutcome:
    success: bool
    reference_number: str | None = None
    error: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════

class SessionStage(Enum):
    """Derived from populated fields; never stored."""
    EMPTY = auto()
    SHIPPING_SET = auto()
    BILLING_SET = auto()
    SHIPPING_METHOD_SET = auto()
    PAYMENT_SET = auto()
    PLACED = auto()


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    """
    Checkout session snapshot.

    `subtotal` and `total_amount` are derived. Every observable snapshot
    satisfies total = subtotal + shipping + tax - discount, unrounded.

    With `billing_same_as_shipping` set, `billing_address` is the
    shipping address itself and follows later shipping changes.
    """
    id: str
    cart_items: tuple[CartItem, ...]
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    shipping_cost: Money = 0.0
    tax_amount: Money = 0.0
    discount_amount: Money = 0.0
    shipping_address: Address | None = None
    billing_address: Address | None = None
    billing_same_as_shipping: bool = False
    shipping_method: ShippingMethod | None = None
    payment_method: PaymentMethod | None = None
    special_instructions: str | None = None
    reference_number: str | None = None

    @property
    def subtotal(self) -> Money:
        return sum((item.total_price for item in self.cart_items), 0.0)

    @property
    def total_amount(self) -> Money:
        return self.subtotal + self.shipping_cost + self.tax_amount - self.discount_amount

    @property
    def effective_billing_address(self) -> Address | None:
        return self.billing_address or (
            self.shipping_address if self.billing_same_as_shipping else None
        )

    @property
    def stage(self) -> SessionStage:
        if self.reference_number is not None:
            return SessionStage.PLACED
        reached = SessionStage.EMPTY
        for populated, stage in (
            (self.shipping_address, SessionStage.SHIPPING_SET),
            (self.billing_address, SessionStage.BILLING_SET),
            (self.shipping_method, SessionStage.SHIPPING_METHOD_SET),
            (self.payment_method, SessionStage.PAYMENT_SET),
        ):
            if populated is None:
                break
            reached = stage
        return reached

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


CLEARABLE_FIELDS: frozenset[str] = frozenset({
    "shipping_address",
    "billing_address",
    "shipping_method",
    "payment_method",
    "special_instructions",
})


@dataclass(frozen=True, slots=True)
class SessionUpdate:
    """
    Partial session update.

    None leaves a field unchanged; fields named in `clear` are reset.
    """
    shipping_address: Address | None = None
    billing_address: Address | None = None
    billing_same_as_shipping: bool | None = None
    shipping_method: ShippingMethod | None = None
    payment_method: PaymentMethod | None = None
    tax_amount: Money | None = None
    discount_amount: Money | None = None
    special_instructions: str | None = None
    clear: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class SessionValidation:
    is_valid: bool
    errors: tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Cart
    "Configuration",
    "PriceBreakdown",
    "CartItem",
    # Addresses & shipping
    "Address",
    "AddressVerdict",
    "ShippingMethod",
    "ShippingQuote",
    "TaxCalculation",
    # Payment
    "PaymentGateway",
    "CardPayment",
    "PayPalPayment",
    "CashAppPayment",
    "PaymentMethod",
    "PaymentRequest",
    "PaymentOutcome",
    # Session
    "SessionStage",
    "CheckoutSession",
    "CLEARABLE_FIELDS",
    "SessionUpdate",
    "SessionValidation",
)
