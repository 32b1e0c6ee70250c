"""Reset all shop state in Redis (useful for testing)."""

import asyncio

from bingsu.state.manager import StateManager


async def reset_all_state() -> None:
    """Delete every key under the shop's prefix."""
    state_manager = StateManager()

    print(f"\n⚠️  WARNING: This will delete ALL '{state_manager.prefix}:*' keys from Redis!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")
    await state_manager.connect()

    try:
        # Only keys under our prefix; never FLUSHDB
        keys = [key async for key in state_manager.scan_keys("*")]
        removed = await state_manager.delete(*keys) if keys else 0
    finally:
        await state_manager.disconnect()

    print(f"✓ Removed {removed} keys\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())
