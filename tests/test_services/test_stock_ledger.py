"""Tests for the stock ledger."""

import asyncio

import pytest

from bingsu.errors import InsufficientStock, NotFound, ValidationFailed
from bingsu.models.stock import StockCategory
from bingsu.services import ShopServices

FLAVOR = StockCategory.FLAVOR
TOPPING = StockCategory.TOPPING


@pytest.mark.asyncio
async def test_set_absolute_creates_item_with_defaults(services: ShopServices) -> None:
    item = await services.stock.set_absolute(FLAVOR, "Thai Tea", 30)

    assert item.name == "Thai Tea"
    assert item.quantity == 30
    assert item.reorder_threshold == 20
    assert item.active is True
    assert item.unit == "cups"


@pytest.mark.asyncio
async def test_names_are_case_insensitive(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Thai Tea", 30)

    item = await services.stock.get(FLAVOR, "thai  tea")

    assert item.quantity == 30


@pytest.mark.asyncio
async def test_same_name_in_both_categories_is_separate(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Strawberry", 10)
    await services.stock.set_absolute(TOPPING, "Strawberry", 3)

    assert (await services.stock.get(FLAVOR, "Strawberry")).quantity == 10
    assert (await services.stock.get(TOPPING, "Strawberry")).quantity == 3


@pytest.mark.asyncio
async def test_decrement_never_goes_negative(services: ShopServices) -> None:
    await services.stock.set_absolute(TOPPING, "Mango", 1)

    item = await services.stock.decrement(TOPPING, "Mango")
    assert item.quantity == 0

    with pytest.raises(InsufficientStock) as exc_info:
        await services.stock.decrement(TOPPING, "Mango")

    assert exc_info.value.details["available"] == 0
    assert (await services.stock.get(TOPPING, "Mango")).quantity == 0


@pytest.mark.asyncio
async def test_concurrent_decrements_respect_quantity(services: ShopServices) -> None:
    await services.stock.set_absolute(TOPPING, "Banana", 3)

    results = await asyncio.gather(
        *[services.stock.decrement(TOPPING, "Banana") for _ in range(5)],
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, InsufficientStock)]
    assert len(failures) == 2
    assert (await services.stock.get(TOPPING, "Banana")).quantity == 0


@pytest.mark.asyncio
async def test_decrement_missing_item(services: ShopServices) -> None:
    with pytest.raises(NotFound):
        await services.stock.decrement(TOPPING, "Durian")


@pytest.mark.asyncio
async def test_increment_creates_then_adds(services: ShopServices) -> None:
    item = await services.stock.increment(TOPPING, "Kiwi", 5)
    assert item.quantity == 5

    item = await services.stock.increment(TOPPING, "Kiwi", 7)
    assert item.quantity == 12

    names = [i.name for i in await services.stock.list_items(TOPPING)]
    assert names == ["Kiwi"]


@pytest.mark.asyncio
async def test_increment_rejects_non_positive_amount(services: ShopServices) -> None:
    with pytest.raises(ValidationFailed):
        await services.stock.increment(TOPPING, "Kiwi", 0)


@pytest.mark.asyncio
async def test_quantity_is_conserved(services: ShopServices) -> None:
    """Quantity equals initial minus decrements plus increments."""
    await services.stock.set_absolute(FLAVOR, "Matcha", 10)

    for _ in range(4):
        await services.stock.decrement(FLAVOR, "Matcha")
    await services.stock.increment(FLAVOR, "Matcha", 6)
    await services.stock.decrement(FLAVOR, "Matcha", 3)

    assert (await services.stock.get(FLAVOR, "Matcha")).quantity == 10 - 4 + 6 - 3


@pytest.mark.asyncio
async def test_adjust_rejects_negative_result(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Milk", 2)

    assert (await services.stock.adjust(FLAVOR, "Milk", 5)).quantity == 7
    assert (await services.stock.adjust(FLAVOR, "Milk", -7)).quantity == 0

    with pytest.raises(InsufficientStock):
        await services.stock.adjust(FLAVOR, "Milk", -1)


@pytest.mark.asyncio
async def test_restore_returns_units_without_marking_a_restock(
    services: ShopServices, clock
) -> None:
    await services.stock.set_absolute(FLAVOR, "Matcha", 5)
    stocked_at = (await services.stock.get(FLAVOR, "Matcha")).last_restocked_at
    await services.stock.decrement(FLAVOR, "Matcha", 2)
    clock.advance(hours=5)

    await services.stock.restore(FLAVOR, "Matcha", 2)

    item = await services.stock.get(FLAVOR, "Matcha")
    assert item.quantity == 5
    assert item.last_restocked_at == stocked_at

    with pytest.raises(NotFound):
        await services.stock.restore(FLAVOR, "Durian")


@pytest.mark.asyncio
async def test_restock_adds_threshold_units(services: ShopServices, clock) -> None:
    await services.stock.set_absolute(FLAVOR, "Matcha", 5, reorder_threshold=20)
    clock.advance(hours=2)

    item = await services.stock.restock_to_threshold(FLAVOR, "Matcha")

    assert item.quantity == 25
    assert item.last_restocked_at == clock()


@pytest.mark.asyncio
async def test_low_stock_is_strictly_below_threshold(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Matcha", 20, reorder_threshold=20)
    await services.stock.set_absolute(FLAVOR, "Milk", 19, reorder_threshold=20)

    low = await services.stock.list_low()

    assert [i.name for i in low] == ["Milk"]


@pytest.mark.asyncio
async def test_inactive_or_empty_items_are_unavailable(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Matcha", 10)
    await services.stock.set_absolute(FLAVOR, "Milk", 10, active=False)
    await services.stock.set_absolute(FLAVOR, "Green Tea", 0)

    availability = await services.stock.availability()

    assert availability.flavors == ["Matcha"]
    assert await services.stock.is_available(FLAVOR, "Milk") is False
    assert await services.stock.is_available(FLAVOR, "Nope") is False


@pytest.mark.asyncio
async def test_set_absolute_lists_every_invalid_field(services: ShopServices) -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        await services.stock.set_absolute(FLAVOR, "Matcha", -1, reorder_threshold=-5)

    assert set(exc_info.value.details["fields"]) == {"quantity", "reorder_threshold"}


@pytest.mark.asyncio
async def test_delete_removes_item(services: ShopServices) -> None:
    await services.stock.set_absolute(TOPPING, "Apple", 4)

    await services.stock.delete(TOPPING, "Apple")

    assert await services.stock.list_items() == []
    with pytest.raises(NotFound):
        await services.stock.delete(TOPPING, "Apple")


@pytest.mark.asyncio
async def test_overview_groups_items(services: ShopServices) -> None:
    await services.stock.set_absolute(FLAVOR, "Matcha", 50)
    await services.stock.set_absolute(TOPPING, "Apple", 2)

    overview = await services.stock.overview()

    assert overview.total == 2
    assert [i.name for i in overview.flavors] == ["Matcha"]
    assert [i.name for i in overview.low_stock] == ["Apple"]
