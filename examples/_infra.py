"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Sequence

from printshop.checkout import CartItem, Configuration
from printshop.config import Settings, configure_logging


# Fake cart
class DemoCart:
    def __init__(self, items: Sequence[CartItem]) -> None:
        self._items = list(items)

    async def items(self) -> list[CartItem]:
        return list(self._items)

    async def clear(self) -> None:
        self._items.clear()


DEMO_ITEMS: tuple[CartItem, ...] = (
    CartItem(
        id="line-1",
        product_id="business-cards",
        product_name="Business Cards",
        quantity=500,
        unit_price=0.09,
        total_price=45.00,
        configuration=Configuration(paper_stock_id="16pt-gloss", add_on_ids=("rounded-corners",)),
    ),
    CartItem(
        id="line-2",
        product_id="flyers",
        product_name="Flyers 8.5x11",
        quantity=40,
        unit_price=1.0125,
        total_price=40.50,
    ),
)


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging(Settings(log_level="WARNING"))
    asyncio.run(main())
