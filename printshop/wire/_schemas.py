"""
Wire schemas — pydantic payloads that convert to domain values and back.

    # class ...In(BaseModel):  implements to_domain()
    # class ...Out(BaseModel): implements from_domain()

Money leaves the core here, so every outgoing amount is rounded to cents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Protocol, TypeVar

from pydantic import BaseModel, Field

from printshop.checkout import (
    Address,
    AddressVerdict,
    CardPayment,
    CartItem,
    CashAppPayment,
    CheckoutSession,
    Configuration,
    OrderDraft,
    PaymentMethod,
    PaymentOutcome,
    PayPalPayment,
    PriceBreakdown,
    SessionUpdate,
    SessionValidation,
    ShippingMethod,
    ShippingQuote,
    round_money,
)
from printshop.files import ArtworkSubmission, FileValidationResult


DomainT_co = TypeVar("DomainT_co", covariant=True)
DomainT_contra = TypeVar("DomainT_contra", contravariant=True)


class ToDomain(Protocol[DomainT_co]):
    def to_domain(self) -> DomainT_co: ...


class FromDomain(Protocol[DomainT_contra]):
    @classmethod
    def from_domain(cls, dom: DomainT_contra) -> "FromDomain[DomainT_contra]": ...


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════

class ConfigurationIn(BaseModel):
    paper_stock_id: str | None = None
    print_size_id: str | None = None
    turnaround_time_id: str | None = None
    add_on_ids: list[str] = Field(default_factory=list)
    notes: str | None = None

    def to_domain(self) -> Configuration:
        return Configuration(
            paper_stock_id=self.paper_stock_id,
            print_size_id=self.print_size_id,
            turnaround_time_id=self.turnaround_time_id,
            add_on_ids=tuple(self.add_on_ids),
            notes=self.notes,
        )


class PriceBreakdownIn(BaseModel):
    base_price: float = 0.0
    paper_cost: float = 0.0
    size_modifier: float = 0.0
    turnaround_modifier: float = 0.0
    add_on_costs: float = 0.0
    subtotal: float = 0.0
    quantity_discount: float = 0.0
    broker_discount: float = 0.0
    savings: float = 0.0

    def to_domain(self) -> PriceBreakdown:
        return PriceBreakdown(**self.model_dump())


class CartItemIn(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)
    total_price: float = Field(ge=0)
    configuration: ConfigurationIn = Field(default_factory=ConfigurationIn)
    price_breakdown: PriceBreakdownIn = Field(default_factory=PriceBreakdownIn)

    def to_domain(self) -> CartItem:
        return CartItem(
            id=self.id,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_price=self.total_price,
            configuration=self.configuration.to_domain(),
            price_breakdown=self.price_breakdown.to_domain(),
        )


class CreateSessionIn(BaseModel):
    cart_items: list[CartItemIn]

    def to_domain(self) -> list[CartItem]:
        return [item.to_domain() for item in self.cart_items]


class CartItemOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_price: float

    @classmethod
    def from_domain(cls, dom: CartItem) -> CartItemOut:
        return cls(
            id=dom.id,
            product_id=dom.product_id,
            product_name=dom.product_name,
            quantity=dom.quantity,
            unit_price=round_money(dom.unit_price),
            total_price=round_money(dom.total_price),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Addresses & Shipping
# ═══════════════════════════════════════════════════════════════════════════════

class AddressBody(BaseModel):
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

    def to_domain(self) -> Address:
        return Address(**self.model_dump())

    @classmethod
    def from_domain(cls, dom: Address) -> AddressBody:
        return cls(
            first_name=dom.first_name,
            last_name=dom.last_name,
            street_address=dom.street_address,
            city=dom.city,
            state=dom.state,
            postal_code=dom.postal_code,
            country=dom.country,
            company=dom.company,
            street_address_2=dom.street_address_2,
            phone=dom.phone,
        )


class AddressVerdictOut(BaseModel):
    is_valid: bool
    errors: list[str]
    corrected_address: AddressBody | None = None

    @classmethod
    def from_domain(cls, dom: AddressVerdict) -> AddressVerdictOut:
        return cls(
            is_valid=dom.is_valid,
            errors=list(dom.errors),
            corrected_address=(
                AddressBody.from_domain(dom.corrected_address)
                if dom.corrected_address
                else None
            ),
        )


class ShippingMethodBody(BaseModel):
    id: str
    name: str
    description: str = ""
    carrier: str
    cost: float = Field(ge=0)
    estimated_days: int = Field(ge=0)

    def to_domain(self) -> ShippingMethod:
        return ShippingMethod(**self.model_dump())

    @classmethod
    def from_domain(cls, dom: ShippingMethod) -> ShippingMethodBody:
        return cls(
            id=dom.id,
            name=dom.name,
            description=dom.description,
            carrier=dom.carrier,
            cost=round_money(dom.cost),
            estimated_days=dom.estimated_days,
        )


class ShippingRequestIn(BaseModel):
    address: AddressBody


class ShippingQuoteOut(BaseModel):
    available: bool
    shipping_methods: list[ShippingMethodBody]

    @classmethod
    def from_domain(cls, dom: ShippingQuote) -> ShippingQuoteOut:
        return cls(
            available=dom.available,
            shipping_methods=[ShippingMethodBody.from_domain(m) for m in dom.methods],
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Payment
# ═══════════════════════════════════════════════════════════════════════════════

class CardPaymentIn(BaseModel):
    type: Literal["card"] = "card"
    token: str
    last_four: str = Field(pattern=r"^\d{4}$")
    exp_month: int = Field(ge=1, le=12)
    exp_year: int
    brand: str | None = None

    def to_domain(self) -> CardPayment:
        return CardPayment(
            token=self.token,
            last_four=self.last_four,
            exp_month=self.exp_month,
            exp_year=self.exp_year,
            brand=self.brand,
        )


class PayPalPaymentIn(BaseModel):
    type: Literal["paypal"] = "paypal"
    token: str
    email: str | None = None

    def to_domain(self) -> PayPalPayment:
        return PayPalPayment(token=self.token, email=self.email)


class CashAppPaymentIn(BaseModel):
    type: Literal["cashapp"] = "cashapp"
    token: str
    cashtag: str | None = None

    def to_domain(self) -> CashAppPayment:
        return CashAppPayment(token=self.token, cashtag=self.cashtag)


PaymentMethodIn = Annotated[
    CardPaymentIn | PayPalPaymentIn | CashAppPaymentIn,
    Field(discriminator="type"),
]


class PaymentMethodOut(BaseModel):
    """Display form; tokens never leave the server."""
    type: str
    last_four: str | None = None

    @classmethod
    def from_domain(cls, dom: PaymentMethod) -> PaymentMethodOut:
        return cls(
            type=dom.gateway.value,
            last_four=dom.last_four if isinstance(dom, CardPayment) else None,
        )


class PaymentIn(BaseModel):
    payment_token: str
    save_payment_method: bool = False


class PaymentOut(BaseModel):
    success: bool
    reference_number: str | None = None
    error: str | None = None
    total_amount: float | None = None

    @classmethod
    def from_domain(cls, dom: tuple[PaymentOutcome, OrderDraft | None]) -> PaymentOut:
        outcome, order = dom
        return cls(
            success=outcome.success,
            reference_number=outcome.reference_number,
            error=outcome.error,
            total_amount=order.total_amount if order else None,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════

class SessionUpdateIn(BaseModel):
    shipping_address: AddressBody | None = None
    billing_address: AddressBody | None = None
    billing_same_as_shipping: bool | None = None
    shipping_method: ShippingMethodBody | None = None
    payment_method: PaymentMethodIn | None = None
    discount_amount: float | None = Field(default=None, ge=0)
    special_instructions: str | None = None
    clear: list[
        Literal[
            "shipping_address",
            "billing_address",
            "shipping_method",
            "payment_method",
            "special_instructions",
        ]
    ] = []

    def to_domain(self) -> SessionUpdate:
        return SessionUpdate(
            shipping_address=self.shipping_address.to_domain() if self.shipping_address else None,
            billing_address=self.billing_address.to_domain() if self.billing_address else None,
            billing_same_as_shipping=self.billing_same_as_shipping,
            shipping_method=self.shipping_method.to_domain() if self.shipping_method else None,
            payment_method=self.payment_method.to_domain() if self.payment_method else None,
            discount_amount=self.discount_amount,
            special_instructions=self.special_instructions,
            clear=frozenset(self.clear),
        )


class SessionOut(BaseModel):
    id: str
    stage: str
    cart_items: list[CartItemOut]
    subtotal: float
    shipping_cost: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    shipping_address: AddressBody | None = None
    billing_address: AddressBody | None = None
    billing_same_as_shipping: bool = False
    shipping_method: ShippingMethodBody | None = None
    payment_method: PaymentMethodOut | None = None
    special_instructions: str | None = None
    expires_at: datetime

    @classmethod
    def from_domain(cls, dom: CheckoutSession) -> SessionOut:
        return cls(
            id=dom.id,
            stage=dom.stage.name.lower(),
            cart_items=[CartItemOut.from_domain(i) for i in dom.cart_items],
            subtotal=round_money(dom.subtotal),
            shipping_cost=round_money(dom.shipping_cost),
            tax_amount=round_money(dom.tax_amount),
            discount_amount=round_money(dom.discount_amount),
            total_amount=round_money(dom.total_amount),
            shipping_address=(
                AddressBody.from_domain(dom.shipping_address) if dom.shipping_address else None
            ),
            billing_address=(
                AddressBody.from_domain(dom.billing_address) if dom.billing_address else None
            ),
            billing_same_as_shipping=dom.billing_same_as_shipping,
            shipping_method=(
                ShippingMethodBody.from_domain(dom.shipping_method)
                if dom.shipping_method
                else None
            ),
            payment_method=(
                PaymentMethodOut.from_domain(dom.payment_method) if dom.payment_method else None
            ),
            special_instructions=dom.special_instructions,
            expires_at=dom.expires_at,
        )


class SessionValidationOut(BaseModel):
    is_valid: bool
    errors: list[str]

    @classmethod
    def from_domain(cls, dom: SessionValidation) -> SessionValidationOut:
        return cls(is_valid=dom.is_valid, errors=list(dom.errors))


# ═══════════════════════════════════════════════════════════════════════════════
# Files
# ═══════════════════════════════════════════════════════════════════════════════

class IssueOut(BaseModel):
    code: str
    message: str
    field: str | None = None
    suggestion: str | None = None


class FileValidationOut(BaseModel):
    is_valid: bool
    errors: list[IssueOut]
    warnings: list[IssueOut]
    suggestions: list[str]
    detected_type: str | None = None

    @classmethod
    def from_domain(cls, dom: FileValidationResult) -> FileValidationOut:
        return cls(
            is_valid=dom.is_valid,
            errors=[
                IssueOut(code=e.code.value, message=e.message, field=e.field)
                for e in dom.errors
            ],
            warnings=[
                IssueOut(code=w.code.value, message=w.message, suggestion=w.suggestion)
                for w in dom.warnings
            ],
            suggestions=list(dom.suggestions),
            detected_type=dom.info.detected_type,
        )


class ArtworkOut(BaseModel):
    id: str
    original_filename: str
    stored_filename: str
    file_path: str
    validation_status: str
    validation_notes: str | None = None
    validation: FileValidationOut

    @classmethod
    def from_domain(cls, dom: ArtworkSubmission) -> ArtworkOut:
        artwork = dom.artwork
        return cls(
            id=artwork.id,
            original_filename=artwork.original_filename,
            stored_filename=artwork.stored_filename,
            file_path=artwork.file_path,
            validation_status=artwork.validation_status.value,
            validation_notes=artwork.validation_notes,
            validation=FileValidationOut.from_domain(dom.result),
        )


class ErrorOut(BaseModel):
    code: str
    message: str


__all__ = (
    "ToDomain",
    "FromDomain",
    "ConfigurationIn",
    "PriceBreakdownIn",
    "CartItemIn",
    "CreateSessionIn",
    "CartItemOut",
    "AddressBody",
    "AddressVerdictOut",
    "ShippingMethodBody",
    "ShippingRequestIn",
    "ShippingQuoteOut",
    "CardPaymentIn",
    "PayPalPaymentIn",
    "CashAppPaymentIn",
    "PaymentMethodIn",
    "PaymentMethodOut",
    "PaymentIn",
    "PaymentOut",
    "SessionUpdateIn",
    "SessionOut",
    "SessionValidationOut",
    "IssueOut",
    "FileValidationOut",
    "ArtworkOut",
    "ErrorOut",
)
