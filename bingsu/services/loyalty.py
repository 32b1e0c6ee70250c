"""Loyalty counter - one stamp per paid order, a free order every N stamps."""

from bingsu.config import Settings
from bingsu.errors import NotFound
from bingsu.models.customer import LoyaltyAccount, LoyaltyResult
from bingsu.services.base import BaseService, Clock
from bingsu.services.customers import customer_key
from bingsu.state import scripts
from bingsu.state.manager import StateManager


class LoyaltyCounter(BaseService):
    """Advances the stamp card embedded in each customer profile."""

    def __init__(
        self,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__("loyalty_counter", state, settings, clock)

    async def record_paid_order(self, customer_id: str, order_total: int) -> LoyaltyResult:
        """
        Stamp one paid order.

        Must be called at most once per order. When the stamp would reach the
        threshold the card resets and the result signals a free order; the
        caller re-prices that order to 0, and points are accrued on the final
        total.

        Args:
            customer_id: Customer whose card is stamped
            order_total: Full price of the order before any free redemption

        Returns:
            LoyaltyResult describing what changed
        """
        status, earned, stamp_count, points = await self.state.eval(
            scripts.RECORD_STAMP,
            [customer_key(customer_id)],
            [
                self.settings.loyalty_stamp_threshold,
                order_total,
                self.settings.loyalty_points_divisor,
            ],
        )
        if status == -1:
            raise NotFound("Customer not found", {"customer_id": customer_id})

        result = LoyaltyResult(
            customer_id=customer_id,
            earned_free_order=bool(earned),
            stamp_count=int(stamp_count),
            points_awarded=int(points),
        )

        self.logger.log_operation(
            "record_paid_order",
            customer_id=customer_id,
            stamp_count=result.stamp_count,
            earned_free_order=result.earned_free_order,
            points_awarded=result.points_awarded,
        )
        return result

    async def revert(self, result: LoyaltyResult) -> None:
        """Undo a stamp recorded for an order that was not created."""
        await self.state.eval(
            scripts.REVERT_STAMP,
            [customer_key(result.customer_id)],
            [
                1 if result.earned_free_order else 0,
                result.points_awarded,
                self.settings.loyalty_stamp_threshold,
            ],
        )
        self.logger.log_compensation("loyalty_stamp", True, customer_id=result.customer_id)

    async def get_account(self, customer_id: str) -> LoyaltyAccount:
        data = await self.state.hgetall(customer_key(customer_id))
        if not data:
            raise NotFound("Customer not found", {"customer_id": customer_id})

        return LoyaltyAccount(
            stamp_count=int(data.get("stamp_count", 0)),
            total_free_redemptions=int(data.get("total_free_redemptions", 0)),
            reward_points=max(int(data.get("reward_points", 0)), 0),
        )
