"""Dashboard statistics for the admin pages."""

from collections import Counter

from pydantic import BaseModel, Field

from bingsu.models.menu_code import CodeStats
from bingsu.models.order import OrderStatus, PaymentStatus
from bingsu.models.stock import StockOverview
from bingsu.services.menu_codes import MenuCodeIssuer
from bingsu.services.order_builder import OrderBuilder
from bingsu.services.stock_ledger import StockLedger


class FlavorCount(BaseModel):
    flavor: str
    count: int


class OrderStats(BaseModel):
    today_orders: int = 0
    today_revenue: int = 0
    pending_orders: int = 0
    popular_flavors: list[FlavorCount] = Field(default_factory=list)


class ShopStatistics:
    """Read-only aggregates over orders, codes and stock."""

    def __init__(self, orders: OrderBuilder, codes: MenuCodeIssuer, stock: StockLedger):
        self.orders = orders
        self.codes = codes
        self.stock = stock

    async def order_stats(self, top_flavors: int = 5) -> OrderStats:
        orders = await self.orders.list_orders()
        today = self.orders.now().date()

        todays = [o for o in orders if o.created_at.date() == today]
        flavors = Counter(o.flavor.name for o in orders)

        return OrderStats(
            today_orders=len(todays),
            today_revenue=sum(
                o.pricing.total for o in todays if o.payment_status == PaymentStatus.PAID
            ),
            pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING),
            popular_flavors=[
                FlavorCount(flavor=name, count=count)
                for name, count in flavors.most_common(top_flavors)
            ],
        )

    async def code_stats(self) -> CodeStats:
        return await self.codes.stats()

    async def stock_overview(self) -> StockOverview:
        return await self.stock.overview()
