"""
Checkout — session state machine and wizard controller.

Session operations:
    create_session(cart_items)   → CheckoutSession (InvalidCartError on empty cart)
    update_session(update)       → reprice + one gateway write
    validate_address(address)    → AddressVerdict (never mutates the session)
    calculate_shipping(address)  → ShippingQuote (empty is a valid answer)
    calculate_tax(...) / apply_tax()
    process_payment(request)     → PaymentOutcome (session left intact)

Wizard:
    next_step() / prev_step() / go_to_step(i) / can_proceed_to_step(i)

Example:
    from printshop.checkout import CheckoutSessionMachine, WizardController

    machine = CheckoutSessionMachine(gateway)
    wizard = WizardController(machine, cart)
    await wizard.start()
"""

from printshop.checkout._types import (
    Configuration,
    PriceBreakdown,
    CartItem,
    Address,
    AddressVerdict,
    ShippingMethod,
    ShippingQuote,
    TaxCalculation,
    PaymentGateway,
    CardPayment,
    PayPalPayment,
    CashAppPayment,
    PaymentMethod,
    PaymentRequest,
    PaymentOutcome,
    SessionStage,
    CheckoutSession,
    CLEARABLE_FIELDS,
    SessionUpdate,
    SessionValidation,
)
from printshop.checkout._errors import (
    CheckoutError,
    InvalidCartError,
    SessionNotFoundError,
    SessionExpiredError,
    PersistenceError,
    IncompleteSessionError,
    StepConfigurationError,
)
from printshop.checkout._pricing import (
    round_money,
    format_money,
    cart_subtotal,
    FlatAddOn,
    PerPieceAddOn,
    SetupPlusPerPieceAddOn,
    AddOn,
    price_add_on,
    price_add_ons,
)
from printshop.checkout._codec import session_to_row, session_from_row
from printshop.checkout._services import CheckoutServices, RpcCheckoutServices
from printshop.checkout._session import (
    SESSIONS_TABLE,
    DEFAULT_SESSION_TTL,
    merge_update,
    CheckoutSessionMachine,
)
from printshop.checkout._order import (
    OrderStatus,
    OrderJob,
    OrderDraft,
    require_payable,
    build_order,
)
from printshop.checkout._wizard import (
    StepId,
    CheckoutStep,
    STEP_PREDICATES,
    DEFAULT_STEPS,
    validate_steps,
    WizardView,
    LoadingFlags,
    CartPort,
    WizardController,
)

__all__ = (
    # Types
    "Configuration",
    "PriceBreakdown",
    "CartItem",
    "Address",
    "AddressVerdict",
    "ShippingMethod",
    "ShippingQuote",
    "TaxCalculation",
    "PaymentGateway",
    "CardPayment",
    "PayPalPayment",
    "CashAppPayment",
    "PaymentMethod",
    "PaymentRequest",
    "PaymentOutcome",
    "SessionStage",
    "CheckoutSession",
    "CLEARABLE_FIELDS",
    "SessionUpdate",
    "SessionValidation",
    # Errors
    "CheckoutError",
    "InvalidCartError",
    "SessionNotFoundError",
    "SessionExpiredError",
    "PersistenceError",
    "IncompleteSessionError",
    "StepConfigurationError",
    # Pricing
    "round_money",
    "format_money",
    "cart_subtotal",
    "FlatAddOn",
    "PerPieceAddOn",
    "SetupPlusPerPieceAddOn",
    "AddOn",
    "price_add_on",
    "price_add_ons",
    # Codec
    "session_to_row",
    "session_from_row",
    # Services
    "CheckoutServices",
    "RpcCheckoutServices",
    # Session
    "SESSIONS_TABLE",
    "DEFAULT_SESSION_TTL",
    "merge_update",
    "CheckoutSessionMachine",
    # Orders
    "OrderStatus",
    "OrderJob",
    "OrderDraft",
    "require_payable",
    "build_order",
    # Wizard
    "StepId",
    "CheckoutStep",
    "STEP_PREDICATES",
    "DEFAULT_STEPS",
    "validate_steps",
    "WizardView",
    "LoadingFlags",
    "CartPort",
    "WizardController",
)
