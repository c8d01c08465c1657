import asyncio
import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

from printshop.checkout import (
    CheckoutSessionMachine,
    IncompleteSessionError,
    InvalidCartError,
    PaymentRequest,
    PersistenceError,
    SESSIONS_TABLE,
    SessionExpiredError,
    SessionNotFoundError,
    SessionStage,
    SessionUpdate,
    ShippingQuote,
)
from printshop.gateway import (
    GatewayError,
    GatewayErrorKind,
    MemoryGateway,
    REFERENCE_PROCEDURES,
)

from tests.factories import (
    FakeClock,
    make_address,
    make_card,
    make_item,
    make_method,
)


class TestSessionLifecycle(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
        self.clock = FakeClock()
        self.machine = CheckoutSessionMachine(
            self.gateway, ttl=timedelta(hours=24), clock=self.clock
        )

    async def test_create_session_persists_snapshot(self):
        session = await self.machine.create_session([make_item(85.50)])

        self.assertIs(self.machine.session, session)
        self.assertEqual(session.stage, SessionStage.EMPTY)
        self.assertEqual(session.expires_at, self.clock.now + timedelta(hours=24))

        rows = await self.gateway.query(SESSIONS_TABLE, {"id": session.id})
        self.assertEqual(len(rows), 1)
        self.assertAlmostEqual(rows[0]["total_amount"], 85.50)

    async def test_empty_cart_is_rejected(self):
        """
        Scenario: starting checkout with nothing in the cart.
        """
        with self.assertRaises(InvalidCartError):
            await self.machine.create_session([])

        self.assertIsNone(self.machine.session)
        self.assertEqual(await self.gateway.query(SESSIONS_TABLE), [])

    async def test_update_without_session(self):
        with self.assertRaises(SessionNotFoundError):
            await self.machine.update_session(SessionUpdate(special_instructions="rush"))

    async def test_update_after_expiry(self):
        await self.machine.create_session([make_item()])
        self.clock.advance(hours=24)

        with self.assertRaises(SessionExpiredError):
            await self.machine.update_session(SessionUpdate(special_instructions="rush"))

    async def test_resume_from_another_machine(self):
        session = await self.machine.create_session([make_item()])
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_same_as_shipping=True)
        )

        other = CheckoutSessionMachine(self.gateway, clock=self.clock)
        resumed = await other.resume(session.id)

        self.assertEqual(resumed.id, session.id)
        self.assertEqual(resumed.shipping_address, make_address())
        self.assertIs(resumed.billing_address, resumed.shipping_address)
        self.assertEqual(resumed.stage, SessionStage.BILLING_SET)

    async def test_resume_unknown_or_expired(self):
        with self.assertRaises(SessionNotFoundError):
            await self.machine.resume("missing")

        session = await self.machine.create_session([make_item()])
        self.clock.advance(hours=25)
        with self.assertRaises(SessionExpiredError):
            await CheckoutSessionMachine(self.gateway, clock=self.clock).resume(session.id)

    async def test_gateway_failure_leaves_session_unchanged(self):
        """
        Scenario: the database rejects an update.
        """
        session = await self.machine.create_session([make_item()])
        self.gateway.update = AsyncMock(
            side_effect=GatewayError(GatewayErrorKind.CONNECTION, "connection reset")
        )

        with self.assertRaises(PersistenceError) as ctx:
            await self.machine.update_session(SessionUpdate(shipping_method=make_method()))

        self.assertEqual(ctx.exception.message, "connection reset")
        self.assertIsInstance(ctx.exception.__cause__, GatewayError)
        self.assertIs(self.machine.session, session)
        self.assertEqual(self.machine.session.shipping_cost, 0.0)

    async def test_insert_failure_creates_nothing(self):
        self.gateway.insert = AsyncMock(
            side_effect=GatewayError(GatewayErrorKind.TIMEOUT, "timed out")
        )
        with self.assertRaises(PersistenceError):
            await self.machine.create_session([make_item()])
        self.assertIsNone(self.machine.session)

    async def test_complete_discards_session(self):
        session = await self.machine.create_session([make_item()])
        placed = await self.machine.complete("ORD-1-ABCDEF")

        self.assertEqual(placed.stage, SessionStage.PLACED)
        self.assertEqual(placed.id, session.id)
        self.assertIsNone(self.machine.session)
        self.assertEqual(await self.gateway.query(SESSIONS_TABLE), [])

    async def test_complete_survives_failed_delete(self):
        """
        Scenario: payment went through but the database is down.
        """
        session = await self.machine.create_session([make_item()])
        self.gateway.delete = AsyncMock(
            side_effect=GatewayError(GatewayErrorKind.CONNECTION, "db down")
        )

        with self.assertLogs("printshop.checkout._session", "WARNING"):
            placed = await self.machine.complete("ORD-1-ABCDEF")

        self.assertEqual(placed.stage, SessionStage.PLACED)
        self.assertIsNone(self.machine.session)

        # The row is left for purge_expired
        del self.gateway.delete
        self.clock.advance(hours=25)
        self.assertEqual(await self.machine.purge_expired(), 1)
        self.assertEqual(await self.gateway.query(SESSIONS_TABLE, {"id": session.id}), [])

    async def test_clear_session(self):
        await self.machine.create_session([make_item()])
        await self.machine.clear_session()
        self.assertIsNone(self.machine.session)
        # Clearing twice is a no-op
        await self.machine.clear_session()

    async def test_purge_expired(self):
        stale = await self.machine.create_session([make_item()])
        self.clock.advance(hours=20)
        fresh = await CheckoutSessionMachine(self.gateway, clock=self.clock).create_session(
            [make_item()]
        )
        self.clock.advance(hours=5)

        purged = await self.machine.purge_expired()

        self.assertEqual(purged, 1)
        self.assertIsNone(self.machine.session)
        remaining = [row["id"] for row in await self.gateway.query(SESSIONS_TABLE)]
        self.assertEqual(remaining, [fresh.id])
        self.assertNotIn(stale.id, remaining)

    async def test_updates_apply_in_issue_order(self):
        await self.machine.create_session([make_item()])
        await asyncio.gather(
            self.machine.update_session(SessionUpdate(special_instructions="first")),
            self.machine.update_session(SessionUpdate(special_instructions="second")),
        )
        self.assertEqual(self.machine.session.special_instructions, "second")


class TestBillingAliasing(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.machine = CheckoutSessionMachine(
            MemoryGateway(procedures=REFERENCE_PROCEDURES), clock=FakeClock()
        )
        await self.machine.create_session([make_item()])

    async def test_billing_follows_shipping(self):
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_same_as_shipping=True)
        )
        moved = make_address(street_address="500 Market Street")
        session = await self.machine.update_session(SessionUpdate(shipping_address=moved))

        self.assertIs(session.billing_address, moved)

    async def test_explicit_billing_turns_aliasing_off(self):
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_same_as_shipping=True)
        )
        billing = make_address(first_name="Charles")
        session = await self.machine.update_session(SessionUpdate(billing_address=billing))

        self.assertFalse(session.billing_same_as_shipping)
        self.assertEqual(session.billing_address, billing)

    async def test_turning_aliasing_off_clears_billing(self):
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_same_as_shipping=True)
        )
        session = await self.machine.update_session(
            SessionUpdate(billing_same_as_shipping=False)
        )
        self.assertIsNone(session.billing_address)
        self.assertEqual(session.stage, SessionStage.SHIPPING_SET)


class TestClearingFields(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.machine = CheckoutSessionMachine(
            MemoryGateway(procedures=REFERENCE_PROCEDURES), clock=FakeClock()
        )
        await self.machine.create_session([make_item()])

    async def test_clearing_shipping_keeps_explicit_billing(self):
        billing = make_address(first_name="Charles")
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_address=billing)
        )

        session = await self.machine.update_session(
            SessionUpdate(clear=frozenset({"shipping_address"}))
        )

        self.assertIsNone(session.shipping_address)
        self.assertEqual(session.billing_address, billing)
        self.assertEqual(session.stage, SessionStage.EMPTY)

    async def test_clearing_billing_turns_aliasing_off(self):
        await self.machine.update_session(
            SessionUpdate(shipping_address=make_address(), billing_same_as_shipping=True)
        )

        session = await self.machine.update_session(
            SessionUpdate(clear=frozenset({"billing_address"}))
        )

        self.assertFalse(session.billing_same_as_shipping)
        self.assertIsNone(session.billing_address)
        self.assertEqual(session.shipping_address, make_address())

    async def test_clearing_payment_and_instructions(self):
        await self.machine.update_session(
            SessionUpdate(payment_method=make_card(), special_instructions="rush")
        )

        session = await self.machine.update_session(
            SessionUpdate(clear=frozenset({"payment_method", "special_instructions"}))
        )

        self.assertIsNone(session.payment_method)
        self.assertIsNone(session.special_instructions)

    async def test_invalid_clears_are_rejected(self):
        before = self.machine.session

        with self.assertRaises(ValueError):
            await self.machine.update_session(SessionUpdate(clear=frozenset({"cart_items"})))
        with self.assertRaises(ValueError):
            await self.machine.update_session(
                SessionUpdate(
                    shipping_address=make_address(),
                    clear=frozenset({"shipping_address"}),
                )
            )
        self.assertIs(self.machine.session, before)


class TestBoundaryCalls(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
        self.machine = CheckoutSessionMachine(self.gateway, clock=FakeClock())
        self.session = await self.machine.create_session([make_item(200.0, quantity=50)])

    async def test_address_validation_never_mutates_session(self):
        verdict = await self.machine.validate_address(make_address(postal_code="ABCDE"))

        self.assertFalse(verdict.is_valid)
        self.assertIn("Postal code must be in format 12345 or 12345-6789", verdict.errors)
        self.assertIs(self.machine.session, self.session)

    async def test_correction_is_only_suggested(self):
        verdict = await self.machine.validate_address(make_address(street_address="12 Oak st"))

        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.corrected_address.street_address, "12 Oak Street")
        self.assertIsNone(self.machine.session.shipping_address)

    async def test_shipping_quote(self):
        quote = await self.machine.calculate_shipping(make_address())

        self.assertEqual([m.id for m in quote.methods], ["standard", "expedited", "overnight"])
        self.assertEqual(quote.find("standard").cost, 0.0)

    async def test_empty_quote_is_a_valid_answer(self):
        self.gateway.register("calculate_shipping", AsyncMock(return_value=[]))
        quote = await self.machine.calculate_shipping(make_address())

        self.assertEqual(quote, ShippingQuote(()))
        self.assertFalse(quote.available)

    async def test_rpc_failure_propagates_unchanged(self):
        failure = GatewayError(GatewayErrorKind.TIMEOUT, "rates service timed out")
        self.gateway.register("calculate_shipping", AsyncMock(side_effect=failure))

        with self.assertRaises(GatewayError) as ctx:
            await self.machine.calculate_shipping(make_address())
        self.assertIs(ctx.exception, failure)

    async def test_apply_tax(self):
        await self.machine.update_session(SessionUpdate(shipping_address=make_address(state="NY")))
        tax = await self.machine.calculate_tax()
        session = await self.machine.apply_tax()

        self.assertAlmostEqual(tax.rate, 0.095)
        self.assertAlmostEqual(tax.amount, 19.0)
        self.assertAlmostEqual(tax.state_tax, 16.0)
        self.assertAlmostEqual(session.tax_amount, 19.0)
        self.assertAlmostEqual(session.total_amount, 219.0)

    async def test_tax_requires_address(self):
        with self.assertRaises(IncompleteSessionError) as ctx:
            await self.machine.calculate_tax()
        self.assertEqual(ctx.exception.missing, ("shipping_address",))

    async def test_payment_leaves_session_intact(self):
        await self.machine.update_session(SessionUpdate(payment_method=make_card()))
        before = self.machine.session

        declined = await self.machine.process_payment(
            PaymentRequest(self.session.id, make_card(), "tok_fail_card")
        )
        accepted = await self.machine.process_payment(
            PaymentRequest(self.session.id, make_card(), "tok_visa")
        )

        self.assertFalse(declined.success)
        self.assertEqual(declined.error, "Card declined")
        self.assertTrue(accepted.success)
        self.assertTrue(accepted.reference_number.startswith("ORD-"))
        self.assertIs(self.machine.session, before)

    async def test_payment_uses_injected_services(self):
        services = Mock()
        services.process_payment = AsyncMock(return_value="outcome")
        machine = CheckoutSessionMachine(self.gateway, services, clock=FakeClock())
        request = PaymentRequest("s-1", make_card(), "tok_visa")

        self.assertEqual(await machine.process_payment(request), "outcome")
        services.process_payment.assert_awaited_once_with(request)


class TestValidateSession(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.gateway = MemoryGateway(procedures=REFERENCE_PROCEDURES)
        self.clock = FakeClock()
        self.machine = CheckoutSessionMachine(self.gateway, clock=self.clock)
        await self.machine.create_session([make_item(quantity=50)])

    async def test_complete_session_is_valid(self):
        await self.machine.update_session(
            SessionUpdate(
                shipping_address=make_address(),
                billing_same_as_shipping=True,
                shipping_method=make_method(25.0, "expedited"),
            )
        )
        result = await self.machine.validate_session()
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, ())

    async def test_withdrawn_method_and_expiry(self):
        await self.machine.update_session(
            SessionUpdate(
                shipping_address=make_address(state="AK"),
                shipping_method=make_method(45.0, "overnight"),
            )
        )
        self.clock.advance(days=2)

        result = await self.machine.validate_session()

        self.assertFalse(result.is_valid)
        self.assertIn("Checkout session has expired", result.errors)
        self.assertIn("Selected shipping method is no longer available", result.errors)


if __name__ == "__main__":
    unittest.main()
