"""
Reference remote procedures.

Sandbox implementations of the checkout endpoints the hosted backend
exposes. Registered on a gateway for local runs and tests:

    gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)

Payment tokens beginning with `tok_fail` are declined.
"""

from __future__ import annotations

import re
import secrets
import string
import time
from collections.abc import Mapping

from printshop._types import Row
from printshop.gateway._types import RpcHandler


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════

STATE_TAX_RATES: Mapping[str, float] = {
    "CA": 0.0875,
    "NY": 0.08,
    "TX": 0.0625,
    "FL": 0.06,
    "WA": 0.065,
    "OR": 0.0,
    "MT": 0.0,
    "NH": 0.0,
    "DE": 0.0,
}
DEFAULT_STATE_TAX_RATE = 0.05
LOCAL_TAX_RATE = 0.01
COUNTY_TAX_RATE = 0.005

FREE_STANDARD_SHIPPING_OVER = 100.0
OVERNIGHT_MAX_WEIGHT = 10.0
WEIGHT_PER_PIECE = 0.1

DECLINED_TOKEN_PREFIX = "tok_fail"

_POSTAL_CODE = re.compile(r"^\d{5}(-\d{4})?$")
_ST_ABBREVIATION = re.compile(r"\bst\b", re.IGNORECASE)


def _subtotal(cart_items: list[Row]) -> float:
    return sum(float(item["total_price"]) for item in cart_items)


def _round(amount: float) -> float:
    return round(amount * 100) / 100


def reference_number() -> str:
    """`ORD-<epoch ms>-<6 uppercase alphanumerics>`."""
    suffix = "".join(
        secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6)
    )
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


# ═══════════════════════════════════════════════════════════════════════════════
# Procedures
# ═══════════════════════════════════════════════════════════════════════════════

async def validate_address(args: Row) -> Row:
    address: Row = args["address"]
    errors: list[str] = []

    street = (address.get("street_address") or "").strip()
    if len(street) < 5:
        errors.append("Street address must be at least 5 characters")
    if len((address.get("city") or "").strip()) < 2:
        errors.append("City is required")
    if len(address.get("state") or "") != 2:
        errors.append("State must be a valid 2-letter code")
    if not _POSTAL_CODE.match(address.get("postal_code") or ""):
        errors.append("Postal code must be in format 12345 or 12345-6789")

    corrected: Row | None = None
    if not errors and _ST_ABBREVIATION.search(street):
        corrected = {
            **address,
            "street_address": _ST_ABBREVIATION.sub("Street", address["street_address"]),
        }

    return {
        "is_valid": not errors,
        "errors": errors,
        "corrected_address": corrected,
    }


async def calculate_shipping(args: Row) -> list[Row]:
    address: Row = args["address"]
    cart_items: list[Row] = args["cart_items"]

    weight = sum(int(item["quantity"]) * WEIGHT_PER_PIECE for item in cart_items)
    subtotal = _subtotal(cart_items)

    methods: list[Row] = [
        {
            "id": "standard",
            "name": "Standard Shipping",
            "description": "5-7 business days",
            "carrier": "USPS",
            "cost": 0.0 if subtotal > FREE_STANDARD_SHIPPING_OVER else 15.0,
            "estimated_days": 6,
        },
        {
            "id": "expedited",
            "name": "Expedited Shipping",
            "description": "2-3 business days",
            "carrier": "UPS",
            "cost": 25.0,
            "estimated_days": 3,
        },
    ]
    if weight < OVERNIGHT_MAX_WEIGHT and address.get("state") != "AK":
        methods.append({
            "id": "overnight",
            "name": "Overnight Shipping",
            "description": "Next business day",
            "carrier": "FedEx",
            "cost": 45.0,
            "estimated_days": 1,
        })
    return methods


async def calculate_tax(args: Row) -> Row:
    address: Row = args["address"]
    taxable = _subtotal(args["cart_items"]) + float(args.get("shipping_cost", 0.0))

    state_rate = STATE_TAX_RATES.get(address.get("state") or "", DEFAULT_STATE_TAX_RATE)
    local_rate = LOCAL_TAX_RATE if state_rate > 0 else 0.0
    county_rate = COUNTY_TAX_RATE if state_rate > 0 else 0.0
    rate = state_rate + local_rate + county_rate

    return {
        "rate": rate,
        "amount": _round(taxable * rate),
        "breakdown": {
            "state_tax": _round(taxable * state_rate),
            "local_tax": _round(taxable * local_rate),
            "county_tax": _round(taxable * county_rate),
        },
    }


async def process_payment(args: Row) -> Row:
    token = args.get("payment_token") or ""
    if not token:
        return {"success": False, "reference_number": None, "error": "Missing payment token"}
    if token.startswith(DECLINED_TOKEN_PREFIX):
        return {"success": False, "reference_number": None, "error": "Card declined"}
    return {"success": True, "reference_number": reference_number(), "error": None}


REFERENCE_PROCEDURES: Mapping[str, RpcHandler] = {
    "validate_address": validate_address,
    "calculate_shipping": calculate_shipping,
    "calculate_tax": calculate_tax,
    "process_payment": process_payment,
}


__all__ = (
    "STATE_TAX_RATES",
    "DEFAULT_STATE_TAX_RATE",
    "DECLINED_TOKEN_PREFIX",
    "reference_number",
    "validate_address",
    "calculate_shipping",
    "calculate_tax",
    "process_payment",
    "REFERENCE_PROCEDURES",
)
