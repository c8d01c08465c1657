"""
Checkout wizard controller.

Drives a CheckoutSessionMachine through an ordered list of steps. A step
is reachable when all of its prerequisites are completed; completion is
read from the session on every check.

    wizard = WizardController(machine, cart)
    await wizard.start()
    verdict = await wizard.submit_shipping_address(address, billing_same_as_shipping=True)
    wizard.next_step()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum, StrEnum, auto
from typing import Literal, Protocol

from printshop.gateway import GatewayError
from printshop.checkout._types import (
    Address,
    AddressVerdict,
    CartItem,
    CheckoutSession,
    PaymentMethod,
    PaymentOutcome,
    PaymentRequest,
    SessionUpdate,
    ShippingQuote,
)
from printshop.checkout._errors import (
    InvalidCartError,
    PersistenceError,
    SessionExpiredError,
    SessionNotFoundError,
    StepConfigurationError,
)
from printshop.checkout._order import OrderDraft, build_order, require_payable
from printshop.checkout._session import CheckoutSessionMachine

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════

class StepId(StrEnum):
    SHIPPING = "shipping"
    BILLING = "billing"
    SHIPPING_METHOD = "shipping_method"
    PAYMENT = "payment"
    REVIEW = "review"


@dataclass(frozen=True, slots=True)
class CheckoutStep:
    """
    Step definition.

    `requires=None` means every earlier step, optional ones included.
    """
    id: StepId
    title: str
    order: int
    required: bool = True
    requires: tuple[StepId, ...] | None = None


STEP_PREDICATES: Mapping[StepId, Callable[[CheckoutSession], bool]] = {
    StepId.SHIPPING: lambda s: s.shipping_address is not None,
    StepId.BILLING: lambda s: s.billing_address is not None,
    StepId.SHIPPING_METHOD: lambda s: s.shipping_method is not None,
    StepId.PAYMENT: lambda s: s.payment_method is not None,
    # Completed only by placing the order
    StepId.REVIEW: lambda s: False,
}

DEFAULT_STEPS: tuple[CheckoutStep, ...] = (
    CheckoutStep(StepId.SHIPPING, "Shipping Address", 1),
    CheckoutStep(StepId.BILLING, "Billing Information", 2),
    CheckoutStep(StepId.SHIPPING_METHOD, "Shipping Method", 3),
    CheckoutStep(StepId.PAYMENT, "Payment", 4),
    CheckoutStep(StepId.REVIEW, "Review Order", 5),
)


def validate_steps(steps: Sequence[CheckoutStep]) -> tuple[CheckoutStep, ...]:
    """
    Sort steps by `order` and check their prerequisites.

    Raises:
        StepConfigurationError: empty list, duplicate ids or orders, unknown
            prerequisite, or a prerequisite that does not come earlier
    """
    if not steps:
        raise StepConfigurationError("At least one checkout step is required")

    ordered = tuple(sorted(steps, key=lambda s: s.order))
    ids = [s.id for s in ordered]
    if len(set(ids)) != len(ids):
        raise StepConfigurationError(f"Duplicate step ids: {ids}")
    if len({s.order for s in ordered}) != len(ordered):
        raise StepConfigurationError("Step orders must be unique")

    position = {s.id: i for i, s in enumerate(ordered)}
    for index, step in enumerate(ordered):
        for dep in step.requires or ():
            if dep not in position:
                raise StepConfigurationError(f"Step {step.id} requires unknown step {dep}")
            if position[dep] >= index:
                raise StepConfigurationError(
                    f"Step {step.id} requires {dep}, which does not come before it"
                )
    return ordered


# ═══════════════════════════════════════════════════════════════════════════════
# View State
# ═══════════════════════════════════════════════════════════════════════════════

class WizardView(Enum):
    LOADING = auto()
    STEPS = auto()
    EMPTY_CART = auto()
    CONFIRMATION = auto()


type LoadingGroup = Literal["session", "address", "shipping", "tax", "payment"]


@dataclass(slots=True)
class LoadingFlags:
    """One flag per operation group; groups do not block each other."""
    session: bool = False
    address: bool = False
    shipping: bool = False
    tax: bool = False
    payment: bool = False

    @property
    def any(self) -> bool:
        return self.session or self.address or self.shipping or self.tax or self.payment


class CartPort(Protocol):
    """Source of cart items; cleared after a successful payment."""

    async def items(self) -> Sequence[CartItem]: ...

    async def clear(self) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Controller
# ═══════════════════════════════════════════════════════════════════════════════

class WizardController:
    def __init__(
        self,
        machine: CheckoutSessionMachine,
        cart: CartPort,
        steps: Sequence[CheckoutStep] = DEFAULT_STEPS,
    ) -> None:
        self._machine = machine
        self._cart = cart
        self._steps = validate_steps(steps)
        self._current = 0

        self.view = WizardView.LOADING
        self.loading = LoadingFlags()
        self.error: str | None = None
        self.address_verdict: AddressVerdict | None = None
        self.shipping_quote: ShippingQuote | None = None
        self.order: OrderDraft | None = None

    # ─── navigation ───────────────────────────────────────────────────────────

    @property
    def steps(self) -> tuple[CheckoutStep, ...]:
        return self._steps

    @property
    def current_step(self) -> int:
        return self._current

    @property
    def current(self) -> CheckoutStep:
        return self._steps[self._current]

    @property
    def progress(self) -> float:
        return (self._current + 1) / len(self._steps)

    @property
    def session(self) -> CheckoutSession | None:
        return self._machine.session

    def is_step_completed(self, index: int) -> bool:
        session = self._machine.session
        if session is None or not 0 <= index < len(self._steps):
            return False
        return STEP_PREDICATES[self._steps[index].id](session)

    def prerequisites(self, index: int) -> tuple[int, ...]:
        step = self._steps[index]
        if step.requires is None:
            return tuple(range(index))
        position = {s.id: i for i, s in enumerate(self._steps)}
        return tuple(position[dep] for dep in step.requires)

    def can_proceed_to_step(self, index: int) -> bool:
        if not 0 <= index < len(self._steps):
            return False
        if index == 0:
            return True
        return all(self.is_step_completed(i) for i in self.prerequisites(index))

    def blocking_steps(self, index: int) -> tuple[StepId, ...]:
        """Prerequisites of step `index` that are not completed yet."""
        if not 0 <= index < len(self._steps):
            return ()
        return tuple(
            self._steps[i].id
            for i in self.prerequisites(index)
            if not self.is_step_completed(i)
        )

    def next_step(self) -> None:
        self._current = min(self._current + 1, len(self._steps) - 1)

    def prev_step(self) -> None:
        self._current = max(self._current - 1, 0)

    def go_to_step(self, index: int) -> bool:
        if not self.can_proceed_to_step(index):
            return False
        self._current = index
        return True

    # ─── actions ──────────────────────────────────────────────────────────────

    @asynccontextmanager
    async def _busy(self, group: LoadingGroup) -> AsyncIterator[None]:
        setattr(self.loading, group, True)
        self.error = None
        try:
            yield
        except (GatewayError, PersistenceError, SessionExpiredError) as e:
            self.error = str(e)
            logger.warning("checkout %s failed: %s", group, e)
        finally:
            setattr(self.loading, group, False)

    async def start(self) -> WizardView:
        """Create the session from the cart, or show the empty-cart view."""
        self.view = WizardView.LOADING
        async with self._busy("session"):
            try:
                await self._machine.create_session(await self._cart.items())
            except InvalidCartError:
                self.view = WizardView.EMPTY_CART
                return self.view
            self.view = WizardView.STEPS
        return self.view

    async def submit_shipping_address(
        self,
        address: Address,
        *,
        billing_same_as_shipping: bool | None = None,
    ) -> AddressVerdict | None:
        """
        Validate and store the shipping address.

        A suggested correction is kept in `address_verdict` and applied only
        through `accept_corrected_address()`.
        """
        verdict: AddressVerdict | None = None
        async with self._busy("address"):
            verdict = await self._machine.validate_address(address)
            self.address_verdict = verdict
            if verdict.is_valid:
                await self._machine.update_session(
                    SessionUpdate(
                        shipping_address=address,
                        billing_same_as_shipping=billing_same_as_shipping,
                    )
                )
        return verdict

    async def accept_corrected_address(self) -> CheckoutSession | None:
        verdict = self.address_verdict
        if verdict is None or verdict.corrected_address is None:
            return None

        session: CheckoutSession | None = None
        async with self._busy("address"):
            session = await self._machine.update_session(
                SessionUpdate(shipping_address=verdict.corrected_address)
            )
            self.address_verdict = None
        return session

    async def submit_billing(
        self,
        address: Address | None = None,
        *,
        same_as_shipping: bool = False,
    ) -> CheckoutSession | None:
        if address is None and not same_as_shipping:
            raise ValueError("Billing address required unless same as shipping")

        session: CheckoutSession | None = None
        async with self._busy("address"):
            session = await self._machine.update_session(
                SessionUpdate(
                    billing_address=address,
                    billing_same_as_shipping=same_as_shipping,
                )
            )
        return session

    async def load_shipping_methods(self) -> ShippingQuote | None:
        session = self._machine.session
        if session is None or session.shipping_address is None:
            return None

        async with self._busy("shipping"):
            self.shipping_quote = await self._machine.calculate_shipping(
                session.shipping_address, session.cart_items
            )
        return self.shipping_quote

    async def select_shipping_method(self, method_id: str) -> CheckoutSession | None:
        """Store the quoted method, then reprice tax against the new shipping cost."""
        quote = self.shipping_quote
        method = quote.find(method_id) if quote is not None else None
        if method is None:
            raise ValueError(f"Shipping method {method_id!r} was not offered")

        session: CheckoutSession | None = None
        async with self._busy("shipping"):
            session = await self._machine.update_session(SessionUpdate(shipping_method=method))
        if session is None:
            return None

        async with self._busy("tax"):
            session = await self._machine.apply_tax()
        return session

    async def attach_payment(self, method: PaymentMethod) -> CheckoutSession | None:
        session: CheckoutSession | None = None
        async with self._busy("payment"):
            session = await self._machine.update_session(SessionUpdate(payment_method=method))
        return session

    async def place_order(
        self,
        payment_token: str,
        *,
        save_payment_method: bool = False,
    ) -> PaymentOutcome | None:
        """
        Process payment.

        The session must have shipping, billing and payment before anything
        is charged. On success the cart is cleared, the session released and
        the view switches to CONFIRMATION. On failure the session is
        untouched and the gateway's reason becomes the banner.

        Raises:
            IncompleteSessionError: shipping, billing or payment is missing
        """
        session = self._machine.session
        if session is None:
            raise SessionNotFoundError()
        _, _, payment_method = require_payable(session)

        outcome: PaymentOutcome | None = None
        async with self._busy("payment"):
            outcome = await self._machine.process_payment(
                PaymentRequest(
                    session_id=session.id,
                    payment_method=payment_method,
                    payment_token=payment_token,
                    save_payment_method=save_payment_method,
                )
            )
        if outcome is None:
            return None
        if not outcome.success or outcome.reference_number is None:
            self.error = outcome.error or "Payment failed"
            return outcome

        # Charged: nothing below may send the customer back to pay again
        placed = await self._machine.complete(outcome.reference_number)
        self.order = build_order(placed, outcome.reference_number)
        self.view = WizardView.CONFIRMATION
        await self._cart.clear()
        return outcome

    async def reset(self) -> None:
        async with self._busy("session"):
            await self._machine.clear_session()
        self._current = 0
        self.view = WizardView.LOADING
        self.address_verdict = None
        self.shipping_quote = None
        self.order = None


__all__ = (
    "StepId",
    "CheckoutStep",
    "STEP_PREDICATES",
    "DEFAULT_STEPS",
    "validate_steps",
    "WizardView",
    "LoadingGroup",
    "LoadingFlags",
    "CartPort",
    "WizardController",
)
