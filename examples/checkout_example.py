"""
Checkout — wizard from cart to confirmation.

Run: python -m examples.checkout_example
"""

from printshop.checkout import (
    Address,
    CardPayment,
    CheckoutSessionMachine,
    WizardController,
    WizardView,
    format_money,
)
from printshop.gateway import REFERENCE_PROCEDURES, create_gateway
from examples._infra import DEMO_ITEMS, DemoCart, banner, run


async def main() -> None:
    banner("Checkout Wizard")

    gateway = await create_gateway(procedures=REFERENCE_PROCEDURES)
    machine = CheckoutSessionMachine(gateway)
    wizard = WizardController(machine, DemoCart(DEMO_ITEMS))

    try:
        await wizard.start()
        print(f"1. Session {machine.session.id[:8]}, subtotal {format_money(machine.session.subtotal)}")

        # Address with a suggested correction
        address = Address(
            first_name="Ada",
            last_name="Lovelace",
            street_address="221 Baker st",
            city="Portland",
            state="OR",
            postal_code="97201",
        )
        verdict = await wizard.submit_shipping_address(address, billing_same_as_shipping=True)
        print(f"2. Address valid: {verdict.is_valid}")
        if verdict.corrected_address:
            print(f"   Suggested: {verdict.corrected_address.street_address}")
            await wizard.accept_corrected_address()

        quote = await wizard.load_shipping_methods()
        for method in quote.methods:
            print(f"   {method.name:<22} {format_money(method.cost):>8}  {method.carrier}")
        session = await wizard.select_shipping_method("expedited")
        print(f"3. Total with shipping and tax: {format_money(session.total_amount)}")

        await wizard.attach_payment(
            CardPayment(token="tok_demo", last_four="4242", exp_month=12, exp_year=2030)
        )
        print(f"4. Review reachable: {wizard.can_proceed_to_step(4)}")

        # Declined first, then accepted
        await wizard.place_order("tok_fail_demo")
        print(f"5. Declined: {wizard.error}")

        await wizard.place_order("tok_visa")
        if wizard.view is WizardView.CONFIRMATION and wizard.order:
            print(f"6. Placed {wizard.order.reference_number} for {format_money(wizard.order.total_amount)}")
    finally:
        await gateway.close()


if __name__ == "__main__":
    run(main)
