"""Order builder - turns a redeemed menu code and a selection into an order."""

import random
import string
import time
from datetime import date
from typing import Awaitable, Callable

from redis.exceptions import WatchError

from bingsu.config import Settings
from bingsu.errors import (
    CodeSpaceExhausted,
    Conflict,
    Forbidden,
    InsufficientStock,
    InvalidTransition,
    ItemUnavailable,
    NotFound,
    OrderNotFound,
    ValidationFailed,
)
from bingsu.models.common import to_epoch
from bingsu.models.customer import LoyaltyResult
from bingsu.models.menu_code import CupSize
from bingsu.models.order import (
    PAYMENT_TRANSITIONS,
    CustomerOwner,
    GuestOwner,
    Order,
    OrderOwner,
    OrderReceipt,
    OrderStatus,
    PaymentStatus,
    Pricing,
    Selection,
    StatusTimestamps,
    calculate_pricing,
)
from bingsu.models.stock import StockCategory
from bingsu.services.base import BaseService, Clock
from bingsu.services.customers import CustomerDirectory
from bingsu.services.loyalty import LoyaltyCounter
from bingsu.services.menu_codes import CODE_ALPHABET, MenuCodeIssuer
from bingsu.services.stock_ledger import StockLedger
from bingsu.state.manager import StateManager
from bingsu.state.workflow import OrderTransitions
from bingsu.utils.tracing import CommitTracer

INDEX_KEY = "orders:index"
IDS_KEY = "orders:ids"
TRACKING_KEY = "orders:tracking"

Compensation = tuple[str, Callable[[], Awaitable[object]]]


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


def customer_orders_key(customer_id: str) -> str:
    return f"customer:{customer_id}:orders"


def normalize_tracking_code(tracking_code: str) -> str:
    """Accepts "#abcde", "ABCDE" or " #AbCdE " alike."""
    return tracking_code.strip().upper().lstrip("#")


def _base36(value: int) -> str:
    digits = string.digits + string.ascii_uppercase
    out = ""
    while value:
        value, remainder = divmod(value, 36)
        out = digits[remainder] + out
    return out or "0"


class OrderBuilder(BaseService):
    """
    Builds and tracks orders.

    Responsibilities:
    - Validate the menu code and every selected ingredient
    - Price the order
    - Commit stock, code usage and loyalty as one logical unit
    - Move orders through their status workflow
    """

    def __init__(
        self,
        state: StateManager,
        stock: StockLedger,
        codes: MenuCodeIssuer,
        loyalty: LoyaltyCounter,
        customers: CustomerDirectory,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__("order_builder", state, settings, clock)
        self.stock = stock
        self.codes = codes
        self.loyalty = loyalty
        self.customers = customers

    def price(self, cup_size: CupSize, toppings_count: int, is_free: bool = False) -> Pricing:
        return calculate_pricing(
            cup_size,
            toppings_count,
            is_free=is_free,
            base_price=self.settings.base_price,
            size_surcharges=self.settings.size_surcharges,
            topping_price=self.settings.topping_price,
        )

    def _validate_selection(
        self,
        toppings: list[Selection],
        special_instructions: str,
    ) -> None:
        errors = {}
        if len(toppings) > self.settings.max_toppings:
            errors["toppings"] = f"at most {self.settings.max_toppings} toppings allowed"
        if len(special_instructions) > self.settings.special_instructions_max_length:
            errors["special_instructions"] = (
                f"at most {self.settings.special_instructions_max_length} characters"
            )
        if errors:
            raise ValidationFailed("Invalid order", errors)

    async def _check_owner(self, owner: OrderOwner) -> None:
        if not isinstance(owner, CustomerOwner):
            return
        profile = await self.customers.get(owner.customer_id)
        if not profile.is_active:
            raise Forbidden("Customer account is disabled", {"customer_id": owner.customer_id})

    def _stock_lines(
        self,
        flavor: Selection,
        toppings: list[Selection],
    ) -> list[tuple[StockCategory, str]]:
        return [(StockCategory.FLAVOR, flavor.name)] + [
            (StockCategory.TOPPING, topping.name) for topping in toppings
        ]

    async def _claim_order_id(self) -> str:
        for _ in range(self.settings.code_generation_max_attempts):
            stamp = _base36(int(time.time() * 1000))
            suffix = "".join(random.choices(CODE_ALPHABET, k=3))
            order_id = f"ORD{stamp}{suffix}"
            if await self.state.sadd(IDS_KEY, order_id):
                return order_id
        raise CodeSpaceExhausted(self.settings.code_generation_max_attempts)

    async def _claim_tracking_code(self, order_id: str) -> str:
        for _ in range(self.settings.code_generation_max_attempts):
            candidate = "".join(random.choices(CODE_ALPHABET, k=5))
            if await self.state.hsetnx(TRACKING_KEY, candidate, order_id):
                return candidate
        raise CodeSpaceExhausted(self.settings.code_generation_max_attempts)

    async def _decrement_all(
        self,
        lines: list[tuple[StockCategory, str]],
        compensations: list[Compensation],
    ) -> None:
        """Take one unit of every line; report every line that could not be taken."""
        failed = []
        for category, name in lines:
            try:
                await self.stock.decrement(category, name)
            except (InsufficientStock, NotFound):
                failed.append(name)
                continue
            compensations.append(
                (
                    f"stock:{category.value}:{name}",
                    lambda category=category, name=name: self.stock.restore(category, name),
                )
            )
        if failed:
            raise ItemUnavailable(failed)

    async def _compensate(self, order_id: str, compensations: list[Compensation]) -> None:
        for step, undo in reversed(compensations):
            try:
                await undo()
                self.logger.log_compensation(step, True, order_id=order_id)
            except Exception as e:
                # Keep undoing the rest; the original error is what the caller sees
                self.logger.log_compensation(step, False, order_id=order_id, error=str(e))

    async def create(
        self,
        code: str,
        flavor: Selection,
        toppings: list[Selection] | None = None,
        special_instructions: str = "",
        owner: OrderOwner | None = None,
    ) -> OrderReceipt:
        """
        Place an order against a menu code.

        Args:
            code: Menu code handed out by staff
            flavor: Shaved-ice flavor
            toppings: Up to three toppings
            special_instructions: Free text for the kitchen
            owner: Guest or signed-in customer

        Returns:
            OrderReceipt with the stored order and its tracking code
        """
        toppings = list(toppings or [])
        owner = owner or GuestOwner()
        special_instructions = special_instructions or ""

        self._validate_selection(toppings, special_instructions)
        await self._check_owner(owner)

        validation = await self.codes.validate(code)

        lines = self._stock_lines(flavor, toppings)
        unavailable = [
            name for category, name in lines
            if not await self.stock.is_available(category, name)
        ]
        if unavailable:
            self.logger.log_rejection("create", "item_unavailable", items=unavailable)
            raise ItemUnavailable(unavailable)

        pricing = self.price(validation.cup_size, len(toppings))

        order_id = await self._claim_order_id()
        compensations: list[Compensation] = [
            ("order_id", lambda: self.state.srem(IDS_KEY, order_id)),
        ]
        tracer = CommitTracer(order_id)

        try:
            tracking_code = await self._claim_tracking_code(order_id)
            compensations.append(
                ("tracking_code", lambda: self.state.hdel(TRACKING_KEY, tracking_code))
            )

            with tracer.trace_step("decrement_stock", items=[name for _, name in lines]):
                await self._decrement_all(lines, compensations)

            with tracer.trace_step("redeem_code", code=validation.code):
                await self.codes.redeem(validation.code, order_id)
            compensations.append(
                ("menu_code", lambda: self.codes.release(validation.code, order_id))
            )

            loyalty_result: LoyaltyResult | None = None
            if isinstance(owner, CustomerOwner):
                with tracer.trace_step("loyalty_stamp", customer_id=owner.customer_id):
                    loyalty_result = await self.loyalty.record_paid_order(
                        owner.customer_id, pricing.total
                    )
                compensations.append(
                    ("loyalty", lambda: self.loyalty.revert(loyalty_result))
                )
                if loyalty_result.earned_free_order:
                    pricing = self.price(validation.cup_size, len(toppings), is_free=True)

            now = self.now()
            order = Order(
                order_id=order_id,
                owner=owner,
                tracking_code=f"#{tracking_code}",
                menu_code=validation.code,
                cup_size=validation.cup_size,
                flavor=flavor,
                toppings=toppings,
                pricing=pricing,
                payment_status=PaymentStatus.PAID,
                special_instructions=special_instructions,
                status_timestamps=StatusTimestamps(ordered=now),
                is_free_redemption=bool(loyalty_result and loyalty_result.earned_free_order),
                earned_points=loyalty_result.points_awarded if loyalty_result else 0,
                created_at=now,
                updated_at=now,
            )

            with tracer.trace_step("persist_order"):
                await self._persist(order)

        except Exception:
            self.logger.logger.warning(
                "order_commit_failed",
                order_id=order_id,
                trace=tracer.get_trace_summary(),
            )
            await self._compensate(order_id, compensations)
            raise

        self.logger.log_operation(
            "create",
            duration_ms=tracer.get_trace_summary()["total_duration_ms"],
            order_id=order_id,
            tracking_code=order.tracking_code,
            total=order.pricing.total,
            is_free_redemption=order.is_free_redemption,
        )

        return OrderReceipt(
            order=order,
            tracking_code=order.tracking_code,
            earned_free_order=order.is_free_redemption,
        )

    async def _persist(self, order: Order) -> None:
        client = await self.state.client()
        score = to_epoch(order.created_at)

        async with client.pipeline(transaction=True) as pipe:
            pipe.set(self.state.key(order_key(order.order_id)), order.model_dump_json())
            pipe.zadd(self.state.key(INDEX_KEY), {order.order_id: score})
            if order.customer_id:
                pipe.zadd(
                    self.state.key(customer_orders_key(order.customer_id)),
                    {order.order_id: score},
                )
            await pipe.execute()

    async def get(self, order_id: str) -> Order:
        data = await self.state.get(order_key(order_id))
        if not data:
            raise OrderNotFound("Order not found", {"order_id": order_id})
        return Order.model_validate(data)

    async def track_by_code(self, tracking_code: str) -> Order:
        """Look an order up by the code printed on the customer's receipt."""
        code = normalize_tracking_code(tracking_code)
        order_id = await self.state.hget(TRACKING_KEY, code) if code else None
        if not order_id:
            raise OrderNotFound("Order not found", {"tracking_code": tracking_code})
        return await self.get(order_id)

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        override: bool = False,
    ) -> Order:
        """
        Move an order along its workflow.

        Only forward moves (and cancelling a non-terminal order) are allowed
        unless ``override`` is set, which is reserved for admin corrections.
        """
        new_status = OrderStatus(new_status)
        now = self.now()

        def mutate(data: dict) -> dict:
            order = Order.model_validate(data)
            if not override and not OrderTransitions.can_transition(order.status, new_status):
                raise InvalidTransition(order.status.value, new_status.value)
            return order.with_status(new_status, now).model_dump(mode="json")

        try:
            updated = await self.state.compare_and_set(order_key(order_id), mutate)
        except WatchError as e:
            raise Conflict(
                "Order was modified concurrently", {"order_id": order_id}
            ) from e
        except InvalidTransition as e:
            self.logger.log_rejection("update_status", "invalid_transition", order_id=order_id, **e.details)
            raise

        if updated is None:
            raise OrderNotFound("Order not found", {"order_id": order_id})

        self.logger.log_operation(
            "update_status",
            order_id=order_id,
            status=new_status.value,
            override=override,
        )
        return Order.model_validate(updated)

    async def update_payment_status(self, order_id: str, new_status: PaymentStatus) -> Order:
        new_status = PaymentStatus(new_status)
        now = self.now()

        def mutate(data: dict) -> dict:
            order = Order.model_validate(data)
            if new_status not in PAYMENT_TRANSITIONS[order.payment_status]:
                raise InvalidTransition(order.payment_status.value, new_status.value)
            return order.with_payment_status(new_status, now).model_dump(mode="json")

        try:
            updated = await self.state.compare_and_set(order_key(order_id), mutate)
        except WatchError as e:
            raise Conflict(
                "Order was modified concurrently", {"order_id": order_id}
            ) from e

        if updated is None:
            raise OrderNotFound("Order not found", {"order_id": order_id})

        self.logger.log_operation("update_payment_status", order_id=order_id, status=new_status.value)
        return Order.model_validate(updated)

    async def _load(self, order_ids: list[str]) -> list[Order]:
        return [
            Order.model_validate(data)
            for data in await self.state.get_many([order_key(i) for i in order_ids])
            if data
        ]

    async def list_orders(
        self,
        status: OrderStatus | None = None,
        day: date | None = None,
    ) -> list[Order]:
        """Newest first, optionally limited to one status and one UTC day."""
        orders = await self._load(await self.state.zrange(INDEX_KEY, desc=True))

        if status is not None:
            orders = [o for o in orders if o.status == status]
        if day is not None:
            orders = [o for o in orders if o.created_at.date() == day]
        return orders

    async def list_customer_orders(self, customer_id: str) -> list[Order]:
        return await self._load(
            await self.state.zrange(customer_orders_key(customer_id), desc=True)
        )
