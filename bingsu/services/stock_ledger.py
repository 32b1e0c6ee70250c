"""Stock ledger - per-item quantities with reorder thresholds."""

from bingsu.config import Settings
from bingsu.errors import InsufficientStock, NotFound, ValidationFailed
from bingsu.models.common import normalize_name, to_epoch
from bingsu.models.stock import (
    StockAvailability,
    StockCategory,
    StockItem,
    StockOverview,
)
from bingsu.services.base import BaseService, Clock
from bingsu.state import scripts
from bingsu.state.manager import StateManager

INDEX_KEY = "stock:index"


class StockLedger(BaseService):
    """
    Tracks ingredient stock.

    Quantities only change through Lua scripts that check and write in one
    step, so concurrent orders can never drive an item below zero.
    """

    def __init__(
        self,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__("stock_ledger", state, settings, clock)

    def _member(self, category: StockCategory, name: str) -> str:
        return f"{StockCategory(category).value}:{normalize_name(name)}"

    def _item_key(self, category: StockCategory, name: str) -> str:
        return f"stock:{self._member(category, name)}"

    def _not_found(self, category: StockCategory, name: str) -> NotFound:
        return NotFound(
            f"Stock item not found: {StockCategory(category).value}/{name}",
            {"category": StockCategory(category).value, "name": name},
        )

    async def get(self, category: StockCategory, name: str) -> StockItem:
        data = await self.state.hgetall(self._item_key(category, name))
        if not data:
            raise self._not_found(category, name)
        return StockItem.from_hash(data)

    async def decrement(
        self,
        category: StockCategory,
        name: str,
        amount: int = 1,
    ) -> StockItem:
        """Atomically take ``amount`` units; never drives quantity negative."""
        if amount < 1:
            raise ValidationFailed("Amount must be positive", {"amount": str(amount)})

        status, quantity = await self.state.eval(
            scripts.ADJUST_STOCK,
            [self._item_key(category, name)],
            [-amount],
        )

        if status == -1:
            raise self._not_found(category, name)
        if status == -2:
            self.logger.log_rejection(
                "decrement",
                "insufficient_stock",
                item=name,
                available=quantity,
                requested=amount,
            )
            raise InsufficientStock(name, int(quantity), amount)

        self.logger.log_operation("decrement", item=name, amount=amount, quantity=quantity)
        return await self.get(category, name)

    async def increment(
        self,
        category: StockCategory,
        name: str,
        amount: int,
    ) -> StockItem:
        """Add stock, creating the item at ``amount`` if it does not exist."""
        if amount < 1:
            raise ValidationFailed("Amount must be positive", {"amount": str(amount)})

        member = self._member(category, name)
        async with self.operation("increment", item=name, amount=amount):
            await self.state.eval(
                scripts.INCREMENT_STOCK,
                [self._item_key(category, name), INDEX_KEY],
                [
                    amount,
                    to_epoch(self.now()),
                    StockCategory(category).value,
                    name.strip(),
                    self.settings.default_reorder_threshold,
                    self.settings.stock_unit,
                    member,
                ],
            )

        return await self.get(category, name)

    async def restore(
        self,
        category: StockCategory,
        name: str,
        amount: int = 1,
    ) -> None:
        """Give back units taken by a failed order; not recorded as a restock."""
        status, quantity = await self.state.eval(
            scripts.ADJUST_STOCK,
            [self._item_key(category, name)],
            [amount],
        )
        if status == -1:
            raise self._not_found(category, name)

        self.logger.log_operation("restore", item=name, amount=amount, quantity=quantity)

    async def adjust(
        self,
        category: StockCategory,
        name: str,
        delta: int,
    ) -> StockItem:
        """Signed admin adjustment; rejected if the result would be negative."""
        if delta == 0:
            return await self.get(category, name)
        if delta < 0:
            return await self.decrement(category, name, -delta)

        status, _ = await self.state.eval(
            scripts.ADJUST_STOCK,
            [self._item_key(category, name)],
            [delta, to_epoch(self.now())],
        )
        if status == -1:
            raise self._not_found(category, name)

        self.logger.log_operation("adjust", item=name, delta=delta)
        return await self.get(category, name)

    async def set_absolute(
        self,
        category: StockCategory,
        name: str,
        quantity: int,
        reorder_threshold: int | None = None,
        active: bool | None = None,
    ) -> StockItem:
        """Upsert exact values, as used by the admin stock editor."""
        errors = {}
        if quantity < 0:
            errors["quantity"] = "must be >= 0"
        if reorder_threshold is not None and reorder_threshold < 0:
            errors["reorder_threshold"] = "must be >= 0"
        if not name.strip():
            errors["name"] = "must not be empty"
        if errors:
            raise ValidationFailed("Invalid stock values", errors)

        key = self._item_key(category, name)
        now = to_epoch(self.now())
        mapping: dict[str, str | int | float] = {
            "category": StockCategory(category).value,
            "name": name.strip(),
            "quantity": quantity,
            "last_restocked_at": now,
        }
        if reorder_threshold is not None:
            mapping["reorder_threshold"] = reorder_threshold
        if active is not None:
            mapping["active"] = "1" if active else "0"

        client = await self.state.client()
        full_key = self.state.key(key)
        async with self.operation("set_absolute", item=name, quantity=quantity):
            async with client.pipeline(transaction=True) as pipe:
                pipe.hset(full_key, mapping=mapping)
                pipe.hsetnx(full_key, "reorder_threshold", self.settings.default_reorder_threshold)
                pipe.hsetnx(full_key, "active", "1")
                pipe.hsetnx(full_key, "unit", self.settings.stock_unit)
                pipe.hsetnx(full_key, "created_at", now)
                pipe.sadd(self.state.key(INDEX_KEY), self._member(category, name))
                await pipe.execute()

        return await self.get(category, name)

    async def restock_to_threshold(self, category: StockCategory, name: str) -> StockItem:
        """Top up by exactly ``reorder_threshold`` units (additive)."""
        status, quantity = await self.state.eval(
            scripts.RESTOCK_TO_THRESHOLD,
            [self._item_key(category, name)],
            [to_epoch(self.now())],
        )
        if status == -1:
            raise self._not_found(category, name)

        self.logger.log_operation("restock_to_threshold", item=name, quantity=quantity)
        return await self.get(category, name)

    async def delete(self, category: StockCategory, name: str) -> None:
        removed = await self.state.delete(self._item_key(category, name))
        if not removed:
            raise self._not_found(category, name)

        await self.state.srem(INDEX_KEY, self._member(category, name))
        self.logger.log_operation("delete", item=name, category=StockCategory(category).value)

    async def is_available(self, category: StockCategory, name: str) -> bool:
        """True iff the item exists, is active, and has stock left."""
        data = await self.state.hgetall(self._item_key(category, name))
        if not data:
            return False
        return StockItem.from_hash(data).is_available

    async def list_items(self, category: StockCategory | None = None) -> list[StockItem]:
        members = sorted(await self.state.smembers(INDEX_KEY))
        if category is not None:
            prefix = f"{StockCategory(category).value}:"
            members = [m for m in members if m.startswith(prefix)]

        hashes = await self.state.hgetall_many([f"stock:{m}" for m in members])

        # Entries whose hash vanished are skipped rather than rebuilt
        return [StockItem.from_hash(data) for data in hashes if data]

    async def list_low(self) -> list[StockItem]:
        """Items strictly below their reorder threshold."""
        return [item for item in await self.list_items() if item.is_low_stock]

    async def availability(self) -> StockAvailability:
        items = await self.list_items()
        return StockAvailability(
            flavors=[i.name for i in items if i.category == StockCategory.FLAVOR and i.is_available],
            toppings=[i.name for i in items if i.category == StockCategory.TOPPING and i.is_available],
        )

    async def overview(self) -> StockOverview:
        items = await self.list_items()
        return StockOverview(
            flavors=[i for i in items if i.category == StockCategory.FLAVOR],
            toppings=[i for i in items if i.category == StockCategory.TOPPING],
            low_stock=[i for i in items if i.is_low_stock],
            total=len(items),
        )
