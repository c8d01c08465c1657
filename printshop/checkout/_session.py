"""
Checkout session state machine.

Owns the active session and the only path that changes it. Every change
is one gateway write; the in-memory snapshot is replaced only after the
write succeeds.

    machine = CheckoutSessionMachine(gateway)
    session = await machine.create_session(cart_items)
    session = await machine.update_session(SessionUpdate(shipping_address=addr))
    quote = await machine.calculate_shipping(addr)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from printshop import lift as L
from printshop._types import Row
from printshop.config import Settings
from printshop.gateway import Gateway, GatewayError
from printshop.checkout._types import (
    CLEARABLE_FIELDS,
    Address,
    AddressVerdict,
    CartItem,
    CheckoutSession,
    PaymentOutcome,
    PaymentRequest,
    SessionUpdate,
    SessionValidation,
    ShippingQuote,
    TaxCalculation,
)
from printshop.checkout._errors import (
    InvalidCartError,
    SessionNotFoundError,
    SessionExpiredError,
    PersistenceError,
    IncompleteSessionError,
)
from printshop.checkout._codec import session_to_row, session_from_row
from printshop.checkout._services import CheckoutServices, RpcCheckoutServices

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "checkout_sessions"
DEFAULT_SESSION_TTL = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(UTC)


def _to_persistence_error(e: Exception) -> Exception:
    if isinstance(e, GatewayError):
        error = PersistenceError(e.message)
        error.__cause__ = e
        return error
    return e


# ═══════════════════════════════════════════════════════════════════════════════
# Merge
# ═══════════════════════════════════════════════════════════════════════════════

def merge_update(
    current: CheckoutSession,
    update: SessionUpdate,
    now: datetime,
) -> CheckoutSession:
    """
    Apply a partial update and reprice.

    Shipping cost always follows the chosen method. An explicit billing
    address turns aliasing off unless the same update turns it back on;
    so does clearing billing. Clearing shipping clears an aliased billing
    address with it.
    """
    for name, amount in (("tax_amount", update.tax_amount), ("discount_amount", update.discount_amount)):
        if amount is not None and amount < 0:
            raise ValueError(f"{name} must not be negative, got {amount}")

    if unknown := update.clear - CLEARABLE_FIELDS:
        raise ValueError(f"Cannot clear {sorted(unknown)}")
    if both := {name for name in update.clear if getattr(update, name) is not None}:
        raise ValueError(f"Cannot both set and clear {sorted(both)}")

    def pick(name: str):
        if name in update.clear:
            return None
        value = getattr(update, name)
        return value if value is not None else getattr(current, name)

    shipping = pick("shipping_address")
    clears_billing = "billing_address" in update.clear

    if update.billing_same_as_shipping is not None:
        same = update.billing_same_as_shipping
    elif update.billing_address is not None or clears_billing:
        same = False
    else:
        same = current.billing_same_as_shipping

    if same:
        billing = shipping
    elif update.billing_address is not None:
        billing = update.billing_address
    elif current.billing_same_as_shipping or clears_billing:
        billing = None
    else:
        billing = current.billing_address

    method = pick("shipping_method")

    return replace(
        current,
        shipping_address=shipping,
        billing_address=billing,
        billing_same_as_shipping=same,
        shipping_method=method,
        shipping_cost=method.cost if method is not None else 0.0,
        payment_method=pick("payment_method"),
        tax_amount=(
            update.tax_amount if update.tax_amount is not None else current.tax_amount
        ),
        discount_amount=(
            update.discount_amount
            if update.discount_amount is not None
            else current.discount_amount
        ),
        special_instructions=pick("special_instructions"),
        updated_at=now,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Machine
# ═══════════════════════════════════════════════════════════════════════════════

class CheckoutSessionMachine:
    """
    One customer's checkout session.

    Updates are serialized and applied in issue order. Boundary calls
    (address, shipping, tax, payment) never touch the session and let
    GatewayError through unchanged.
    """

    def __init__(
        self,
        gateway: Gateway,
        services: CheckoutServices | None = None,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._services = services or RpcCheckoutServices(gateway)
        self._ttl = ttl
        self._clock = clock
        self._session: CheckoutSession | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        gateway: Gateway,
        settings: Settings,
        services: CheckoutServices | None = None,
    ) -> CheckoutSessionMachine:
        return cls(gateway, services, ttl=settings.session_ttl)

    @property
    def session(self) -> CheckoutSession | None:
        return self._session

    @property
    def services(self) -> CheckoutServices:
        return self._services

    def _require_session(self) -> CheckoutSession:
        if self._session is None:
            raise SessionNotFoundError()
        return self._session

    async def _call[T](self, fn: Callable[[], Awaitable[T]]) -> T:
        return await L.run_or_raise(L.catching_async(fn, on_error=_to_persistence_error))

    # ─── lifecycle ────────────────────────────────────────────────────────────

    async def create_session(self, cart_items: Iterable[CartItem]) -> CheckoutSession:
        """
        Start a session from a cart snapshot.

        Raises:
            InvalidCartError: cart is empty
            PersistenceError: gateway insert failed
        """
        items = tuple(cart_items)
        if not items:
            raise InvalidCartError()

        now = self._clock()
        session = CheckoutSession(
            id=str(uuid.uuid4()),
            cart_items=items,
            created_at=now,
            updated_at=now,
            expires_at=now + self._ttl,
        )

        async with self._lock:
            await self._call(
                lambda: self._gateway.insert(SESSIONS_TABLE, session_to_row(session))
            )
            self._session = session

        logger.info(
            "checkout session created id=%s items=%d subtotal=%.2f",
            session.id,
            len(items),
            session.subtotal,
        )
        return session

    async def resume(self, session_id: str) -> CheckoutSession:
        """Load a persisted session and make it active."""
        rows: list[Row] = await self._call(
            lambda: self._gateway.query(SESSIONS_TABLE, {"id": session_id})
        )
        if not rows:
            raise SessionNotFoundError(session_id)

        session = session_from_row(rows[0])
        if session.is_expired(self._clock()):
            raise SessionExpiredError(session_id)

        self._session = session
        logger.info("checkout session resumed id=%s stage=%s", session.id, session.stage.name)
        return session

    async def update_session(self, update: SessionUpdate) -> CheckoutSession:
        """
        Merge `update` into the active session, reprice and persist.

        Raises:
            SessionNotFoundError: no active session
            SessionExpiredError: active session is past its expiry
            PersistenceError: gateway write failed; session unchanged
        """
        async with self._lock:
            current = self._require_session()
            now = self._clock()
            if current.is_expired(now):
                raise SessionExpiredError(current.id)

            updated = merge_update(current, update, now)
            await self._call(
                lambda: self._gateway.update(
                    SESSIONS_TABLE, updated.id, session_to_row(updated)
                )
            )
            self._session = updated

        logger.info(
            "checkout session updated id=%s stage=%s total=%.2f",
            updated.id,
            updated.stage.name,
            updated.total_amount,
        )
        return updated

    async def complete(self, reference_number: str) -> CheckoutSession:
        """
        Mark the session placed and release it. Returns the final snapshot.

        Called after payment went through, so it never fails on the gateway:
        a row that cannot be deleted is left for `purge_expired`.
        """
        async with self._lock:
            current = self._require_session()
            placed = replace(current, reference_number=reference_number, updated_at=self._clock())
            self._session = None
            try:
                await self._gateway.delete(SESSIONS_TABLE, current.id)
            except GatewayError as e:
                logger.warning(
                    "placed session %s not deleted, left for purge: %s", current.id, e
                )

        logger.info("checkout session placed id=%s reference=%s", placed.id, reference_number)
        return placed

    async def clear_session(self) -> None:
        """Abandon the active session, if any."""
        async with self._lock:
            current = self._session
            if current is None:
                return
            await self._call(lambda: self._gateway.delete(SESSIONS_TABLE, current.id))
            self._session = None

        logger.info("checkout session cleared id=%s", current.id)

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete persisted sessions past their expiry. Returns count."""
        cutoff = now or self._clock()
        rows: list[Row] = await self._call(lambda: self._gateway.query(SESSIONS_TABLE))
        stale = [
            row["id"]
            for row in rows
            if datetime.fromisoformat(row["expires_at"]) <= cutoff
        ]
        for session_id in stale:
            await self._call(
                lambda session_id=session_id: self._gateway.delete(SESSIONS_TABLE, session_id)
            )

        if self._session is not None and self._session.id in stale:
            self._session = None
        if stale:
            logger.info("purged %d expired checkout sessions", len(stale))
        return len(stale)

    # ─── boundary calls ───────────────────────────────────────────────────────

    async def validate_address(self, address: Address) -> AddressVerdict:
        return await self._services.validate_address(address)

    async def calculate_shipping(
        self,
        address: Address,
        cart_items: Sequence[CartItem] | None = None,
    ) -> ShippingQuote:
        items = cart_items if cart_items is not None else self._require_session().cart_items
        return await self._services.calculate_shipping(address, items)

    async def calculate_tax(
        self,
        address: Address | None = None,
        cart_items: Sequence[CartItem] | None = None,
        shipping_cost: float | None = None,
    ) -> TaxCalculation:
        if address is None or cart_items is None or shipping_cost is None:
            session = self._require_session()
            address = address or session.shipping_address
            cart_items = cart_items if cart_items is not None else session.cart_items
            shipping_cost = shipping_cost if shipping_cost is not None else session.shipping_cost
        if address is None:
            raise IncompleteSessionError(("shipping_address",))
        return await self._services.calculate_tax(address, cart_items, shipping_cost)

    async def apply_tax(self) -> CheckoutSession:
        """Calculate tax for the current shipping address and store it."""
        tax = await self.calculate_tax()
        return await self.update_session(SessionUpdate(tax_amount=tax.amount))

    async def process_payment(self, request: PaymentRequest) -> PaymentOutcome:
        """
        Submit payment. The session is left as is either way; on success the
        caller clears the cart and calls `complete()`.
        """
        return await self._services.process_payment(request)

    async def validate_session(self) -> SessionValidation:
        session = self._require_session()
        errors: list[str] = []

        if session.is_expired(self._clock()):
            errors.append("Checkout session has expired")
        if not session.cart_items:
            errors.append("Cart is empty")

        if session.shipping_address is not None:
            verdict = await self._services.validate_address(session.shipping_address)
            if not verdict.is_valid:
                errors.append("Shipping address is invalid")

            if session.shipping_method is not None:
                quote = await self._services.calculate_shipping(
                    session.shipping_address, session.cart_items
                )
                if quote.find(session.shipping_method.id) is None:
                    errors.append("Selected shipping method is no longer available")

        return SessionValidation(is_valid=not errors, errors=tuple(errors))


__all__ = (
    "SESSIONS_TABLE",
    "DEFAULT_SESSION_TTL",
    "utcnow",
    "merge_update",
    "CheckoutSessionMachine",
)
