import unittest
from unittest.mock import AsyncMock

from printshop.checkout import (
    CheckoutSessionMachine,
    CheckoutStep,
    DEFAULT_STEPS,
    IncompleteSessionError,
    SessionNotFoundError,
    SessionUpdate,
    StepConfigurationError,
    StepId,
    WizardController,
    WizardView,
    validate_steps,
)
from printshop.gateway import (
    GatewayError,
    GatewayErrorKind,
    MemoryGateway,
    REFERENCE_PROCEDURES,
)

from tests.factories import FakeCart, FakeClock, make_address, make_card, make_item


class TestStepConfiguration(unittest.TestCase):

    def test_default_steps(self):
        ordered = validate_steps(DEFAULT_STEPS)
        self.assertEqual(
            [s.title for s in ordered],
            ["Shipping Address", "Billing Information", "Shipping Method", "Payment", "Review Order"],
        )

    def test_steps_are_sorted_by_order(self):
        shuffled = (DEFAULT_STEPS[2], DEFAULT_STEPS[0], DEFAULT_STEPS[1])
        self.assertEqual(
            [s.id for s in validate_steps(shuffled)],
            [StepId.SHIPPING, StepId.BILLING, StepId.SHIPPING_METHOD],
        )

    def test_invalid_configurations(self):
        with self.assertRaises(StepConfigurationError):
            validate_steps(())
        with self.assertRaises(StepConfigurationError):
            validate_steps((DEFAULT_STEPS[0], DEFAULT_STEPS[0]))
        with self.assertRaises(StepConfigurationError):
            validate_steps((
                CheckoutStep(StepId.SHIPPING, "Shipping", 1, requires=(StepId.PAYMENT,)),
                CheckoutStep(StepId.PAYMENT, "Payment", 2),
            ))
        with self.assertRaises(StepConfigurationError):
            validate_steps((CheckoutStep(StepId.PAYMENT, "Payment", 1, requires=(StepId.REVIEW,)),))


class WizardTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
        self.machine = CheckoutSessionMachine(self.gateway, clock=FakeClock())
        self.cart = FakeCart([make_item(85.50, quantity=50)])
        self.wizard = WizardController(self.machine, self.cart)

    async def fill_until_payment(self):
        await self.wizard.start()
        await self.wizard.submit_shipping_address(make_address(), billing_same_as_shipping=True)
        await self.wizard.load_shipping_methods()
        await self.wizard.select_shipping_method("expedited")
        await self.wizard.attach_payment(make_card())


class TestWizardNavigation(WizardTestCase):

    async def test_start_with_empty_cart(self):
        """
        Scenario: the customer opens checkout with an empty cart.
        """
        wizard = WizardController(self.machine, FakeCart())
        view = await wizard.start()

        self.assertEqual(view, WizardView.EMPTY_CART)
        self.assertIsNone(self.machine.session)
        self.assertFalse(wizard.loading.any)

    async def test_first_step_is_always_reachable(self):
        await self.wizard.start()

        self.assertEqual(self.wizard.view, WizardView.STEPS)
        self.assertTrue(self.wizard.can_proceed_to_step(0))
        self.assertFalse(self.wizard.can_proceed_to_step(1))
        self.assertFalse(self.wizard.go_to_step(3))
        self.assertEqual(self.wizard.current_step, 0)

    async def test_out_of_range_indexes(self):
        await self.wizard.start()
        self.assertFalse(self.wizard.can_proceed_to_step(-1))
        self.assertFalse(self.wizard.can_proceed_to_step(len(DEFAULT_STEPS)))
        self.assertFalse(self.wizard.is_step_completed(99))
        self.assertEqual(self.wizard.blocking_steps(99), ())

    async def test_steps_unlock_in_order(self):
        await self.wizard.start()
        await self.wizard.submit_shipping_address(make_address())

        self.assertTrue(self.wizard.can_proceed_to_step(1))
        self.assertFalse(self.wizard.can_proceed_to_step(2))
        self.assertEqual(self.wizard.blocking_steps(2), (StepId.BILLING,))

        await self.wizard.submit_billing(same_as_shipping=True)
        self.assertTrue(self.wizard.can_proceed_to_step(2))
        self.assertTrue(self.wizard.go_to_step(2))
        self.assertEqual(self.wizard.current.id, StepId.SHIPPING_METHOD)

    async def test_reachability_is_monotonic(self):
        await self.fill_until_payment()

        reachable = [self.wizard.can_proceed_to_step(i) for i in range(len(DEFAULT_STEPS))]
        self.assertEqual(reachable, [True, True, True, True, True])

        # Once i is reachable, every j < i is as well
        for i, ok in enumerate(reachable):
            if ok:
                self.assertTrue(all(reachable[:i]))

    async def test_next_and_prev_are_clamped(self):
        await self.wizard.start()
        self.wizard.prev_step()
        self.assertEqual(self.wizard.current_step, 0)
        self.assertAlmostEqual(self.wizard.progress, 0.2)

        for _ in range(10):
            self.wizard.next_step()
        self.assertEqual(self.wizard.current_step, len(DEFAULT_STEPS) - 1)
        self.assertAlmostEqual(self.wizard.progress, 1.0)

    async def test_every_earlier_step_gates_by_default(self):
        steps = (
            CheckoutStep(StepId.SHIPPING, "Shipping", 1),
            CheckoutStep(StepId.BILLING, "Billing", 2, required=False),
            CheckoutStep(StepId.PAYMENT, "Payment", 3),
        )
        wizard = WizardController(self.machine, self.cart, steps)
        await wizard.start()
        await wizard.submit_shipping_address(make_address())

        # Optional steps still gate the steps after them
        self.assertEqual(wizard.prerequisites(2), (0, 1))
        self.assertFalse(wizard.can_proceed_to_step(2))
        self.assertEqual(wizard.blocking_steps(2), (StepId.BILLING,))

    async def test_explicit_prerequisites_narrow_the_gate(self):
        steps = (
            CheckoutStep(StepId.SHIPPING, "Shipping", 1),
            CheckoutStep(StepId.BILLING, "Billing", 2, required=False),
            CheckoutStep(StepId.PAYMENT, "Payment", 3, requires=(StepId.SHIPPING,)),
        )
        wizard = WizardController(self.machine, self.cart, steps)
        await wizard.start()
        await wizard.submit_shipping_address(make_address())

        self.assertEqual(wizard.prerequisites(2), (0,))
        self.assertTrue(wizard.can_proceed_to_step(2))

    async def test_clearing_shipping_address_locks_later_steps(self):
        """
        Scenario: the customer removes the shipping address after billing was set.
        """
        await self.fill_until_payment()
        self.assertTrue(all(self.wizard.can_proceed_to_step(i) for i in range(5)))

        session = await self.machine.update_session(
            SessionUpdate(clear=frozenset({"shipping_address"}))
        )

        self.assertIsNone(session.shipping_address)
        self.assertIsNone(session.billing_address)
        self.assertTrue(self.wizard.can_proceed_to_step(0))
        for i in range(1, 5):
            self.assertFalse(self.wizard.can_proceed_to_step(i))

    async def test_clearing_shipping_method_resets_cost(self):
        await self.fill_until_payment()
        self.assertEqual(self.machine.session.shipping_cost, 25.0)

        session = await self.machine.update_session(
            SessionUpdate(clear=frozenset({"shipping_method"}))
        )

        self.assertIsNone(session.shipping_method)
        self.assertEqual(session.shipping_cost, 0.0)
        self.assertAlmostEqual(
            session.total_amount, session.subtotal + session.tax_amount - session.discount_amount
        )
        self.assertFalse(self.wizard.can_proceed_to_step(3))


class TestWizardActions(WizardTestCase):

    async def test_invalid_address_is_not_stored(self):
        await self.wizard.start()
        verdict = await self.wizard.submit_shipping_address(make_address(postal_code="9410"))

        self.assertFalse(verdict.is_valid)
        self.assertIsNone(self.machine.session.shipping_address)
        self.assertFalse(self.wizard.is_step_completed(0))

    async def test_accept_corrected_address(self):
        await self.wizard.start()
        await self.wizard.submit_shipping_address(make_address(street_address="12 Oak st"))
        self.assertEqual(self.machine.session.shipping_address.street_address, "12 Oak st")

        session = await self.wizard.accept_corrected_address()

        self.assertEqual(session.shipping_address.street_address, "12 Oak Street")
        self.assertIsNone(self.wizard.address_verdict)
        self.assertIsNone(await self.wizard.accept_corrected_address())

    async def test_billing_requires_address_or_alias(self):
        await self.wizard.start()
        with self.assertRaises(ValueError):
            await self.wizard.submit_billing()

    async def test_select_method_reprices_tax(self):
        await self.wizard.start()
        await self.wizard.submit_shipping_address(make_address(state="NY"), billing_same_as_shipping=True)
        quote = await self.wizard.load_shipping_methods()
        self.assertTrue(quote.available)

        session = await self.wizard.select_shipping_method("expedited")

        self.assertEqual(session.shipping_cost, 25.0)
        self.assertAlmostEqual(session.tax_amount, (85.50 + 25.0) * 0.095, delta=0.01)
        self.assertAlmostEqual(
            session.total_amount,
            session.subtotal + session.shipping_cost + session.tax_amount,
        )

    async def test_unknown_method_is_rejected(self):
        await self.wizard.start()
        await self.wizard.submit_shipping_address(make_address())
        await self.wizard.load_shipping_methods()
        with self.assertRaises(ValueError):
            await self.wizard.select_shipping_method("teleport")

    async def test_gateway_failure_becomes_error_banner(self):
        await self.wizard.start()
        self.gateway.update = AsyncMock(
            side_effect=GatewayError(GatewayErrorKind.CONNECTION, "database unavailable")
        )

        await self.wizard.submit_shipping_address(make_address())

        self.assertEqual(self.wizard.error, "database unavailable")
        self.assertFalse(self.wizard.loading.address)
        self.assertIsNone(self.machine.session.shipping_address)


class TestPlaceOrder(WizardTestCase):

    async def test_successful_payment(self):
        """
        Scenario: the customer completes every step and pays.
        """
        await self.fill_until_payment()
        self.assertTrue(self.wizard.can_proceed_to_step(4))

        outcome = await self.wizard.place_order("tok_visa")

        self.assertTrue(outcome.success)
        self.assertEqual(self.wizard.view, WizardView.CONFIRMATION)
        self.assertTrue(self.cart.cleared)
        self.assertIsNone(self.machine.session)
        self.assertEqual(self.wizard.order.reference_number, outcome.reference_number)
        self.assertEqual(self.wizard.order.billing_address, make_address())
        self.assertEqual(self.wizard.order.total_amount, round(self.wizard.order.total_amount, 2))

    async def test_declined_payment(self):
        """
        Scenario: the card is declined; nothing is lost.
        """
        await self.fill_until_payment()
        session = self.machine.session

        outcome = await self.wizard.place_order("tok_fail_insufficient_funds")

        self.assertFalse(outcome.success)
        self.assertEqual(self.wizard.error, "Card declined")
        self.assertEqual(self.wizard.view, WizardView.STEPS)
        self.assertIs(self.machine.session, session)
        self.assertFalse(self.cart.cleared)
        self.assertIsNone(self.wizard.order)

    async def test_payment_method_required(self):
        await self.wizard.start()
        with self.assertRaises(IncompleteSessionError) as ctx:
            await self.wizard.place_order("tok_visa")
        self.assertIn("payment_method", ctx.exception.missing)

    async def test_incomplete_session_is_never_charged(self):
        """
        Scenario: shipping and card are set but billing never was.
        """
        charge = AsyncMock(wraps=REFERENCE_PROCEDURES["process_payment"])
        self.gateway.register("process_payment", charge)
        await self.wizard.start()
        session = await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), payment_method=make_card())
        )

        with self.assertRaises(IncompleteSessionError) as ctx:
            await self.wizard.place_order("tok_visa")

        self.assertEqual(ctx.exception.missing, ("billing_address",))
        charge.assert_not_awaited()
        self.assertIs(self.machine.session, session)
        self.assertFalse(self.cart.cleared)
        self.assertEqual(self.wizard.view, WizardView.STEPS)

    async def test_cleanup_failure_after_payment_still_confirms(self):
        """
        Scenario: the card is charged but the session row cannot be deleted.
        """
        charge = AsyncMock(wraps=REFERENCE_PROCEDURES["process_payment"])
        self.gateway.register("process_payment", charge)
        await self.fill_until_payment()
        self.gateway.delete = AsyncMock(
            side_effect=GatewayError(GatewayErrorKind.CONNECTION, "db down")
        )

        outcome = await self.wizard.place_order("tok_visa")

        self.assertTrue(outcome.success)
        self.assertEqual(self.wizard.view, WizardView.CONFIRMATION)
        self.assertIsNone(self.wizard.error)
        self.assertTrue(self.cart.cleared)
        self.assertIsNone(self.machine.session)
        self.assertEqual(self.wizard.order.reference_number, outcome.reference_number)
        charge.assert_awaited_once()

        # Nothing is left to pay for
        with self.assertRaises(SessionNotFoundError):
            await self.wizard.place_order("tok_visa")
        charge.assert_awaited_once()

    async def test_reset(self):
        await self.fill_until_payment()
        self.wizard.next_step()
        await self.wizard.reset()

        self.assertIsNone(self.machine.session)
        self.assertEqual(self.wizard.current_step, 0)
        self.assertEqual(self.wizard.view, WizardView.LOADING)


if __name__ == "__main__":
    unittest.main()
