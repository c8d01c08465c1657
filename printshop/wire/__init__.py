"""
Wire — pydantic schemas and the FastAPI app.

Schemas convert at the edge (`to_domain()` / `from_domain()`); the app maps
domain errors to HTTP status codes:

    InvalidCartError, IncompleteSessionError, ValueError   → 422
    SessionNotFoundError                                   → 404
    SessionExpiredError                                    → 410
    PersistenceError, GatewayError                         → 503
"""

from printshop.wire._schemas import (
    ToDomain,
    FromDomain,
    ConfigurationIn,
    PriceBreakdownIn,
    CartItemIn,
    CreateSessionIn,
    CartItemOut,
    AddressBody,
    AddressVerdictOut,
    ShippingMethodBody,
    ShippingRequestIn,
    ShippingQuoteOut,
    CardPaymentIn,
    PayPalPaymentIn,
    CashAppPaymentIn,
    PaymentMethodIn,
    PaymentMethodOut,
    PaymentIn,
    PaymentOut,
    SessionUpdateIn,
    SessionOut,
    SessionValidationOut,
    IssueOut,
    FileValidationOut,
    ArtworkOut,
    ErrorOut,
)
from printshop.wire._app import status_for_error, create_app

__all__ = (
    # Codecs
    "ToDomain",
    "FromDomain",
    # Schemas
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
    # App
    "status_for_error",
    "create_app",
)
