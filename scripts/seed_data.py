"""Seed initial stock and demo menu codes for the shop."""

import asyncio

from bingsu.services import ShopServices
from bingsu.state.manager import StateManager
from bingsu.state.seed import seed_menu_codes, seed_stock
from bingsu.utils.logging import setup_logging


async def seed_menu_and_stock(services: ShopServices) -> None:
    """Seed flavors and toppings."""
    print("Seeding menu and stock...")

    created = await seed_stock(services.stock)
    for item in await services.stock.list_items():
        print(f"  ✓ {item.category.value:<8} {item.name} (stock: {item.quantity})")

    print(f"✓ Stock seeded successfully ({created} new items)\n")


async def seed_demo_codes(services: ShopServices) -> None:
    """Seed demo menu codes."""
    print("Seeding demo menu codes...")

    created = await seed_menu_codes(services.codes)
    for menu_code in await services.codes.list_codes():
        print(f"  ✓ {menu_code.code} ({menu_code.cup_size.value}, expires {menu_code.expires_at:%Y-%m-%d})")

    print(f"✓ Menu codes seeded successfully ({created} new codes)\n")


async def main() -> None:
    """Run all seed functions."""
    setup_logging()

    print("\n" + "=" * 50)
    print("  Seeding Bingsu Shop Data")
    print("=" * 50 + "\n")

    state_manager = StateManager()
    await state_manager.connect()
    services = ShopServices.build(state_manager)

    try:
        await seed_menu_and_stock(services)
        await seed_demo_codes(services)
    finally:
        await state_manager.disconnect()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
