"""Shop services, wired together over one store handle."""

from dataclasses import dataclass

from bingsu.config import Settings
from bingsu.services.base import BaseService, Clock
from bingsu.services.customers import CustomerDirectory
from bingsu.services.loyalty import LoyaltyCounter
from bingsu.services.menu_codes import MenuCodeIssuer
from bingsu.services.order_builder import OrderBuilder
from bingsu.services.reviews import ReviewAggregator
from bingsu.services.statistics import ShopStatistics
from bingsu.services.stock_ledger import StockLedger
from bingsu.state.manager import StateManager


@dataclass
class ShopServices:
    """Every service the API needs, sharing a single StateManager."""

    state: StateManager
    stock: StockLedger
    codes: MenuCodeIssuer
    customers: CustomerDirectory
    loyalty: LoyaltyCounter
    orders: OrderBuilder
    reviews: ReviewAggregator
    statistics: ShopStatistics

    @classmethod
    def build(
        cls,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> "ShopServices":
        stock = StockLedger(state, settings, clock)
        codes = MenuCodeIssuer(state, settings, clock)
        customers = CustomerDirectory(state, settings, clock)
        loyalty = LoyaltyCounter(state, settings, clock)
        orders = OrderBuilder(state, stock, codes, loyalty, customers, settings, clock)

        return cls(
            state=state,
            stock=stock,
            codes=codes,
            customers=customers,
            loyalty=loyalty,
            orders=orders,
            reviews=ReviewAggregator(state, settings, clock),
            statistics=ShopStatistics(orders, codes, stock),
        )


__all__ = [
    "BaseService",
    "CustomerDirectory",
    "LoyaltyCounter",
    "MenuCodeIssuer",
    "OrderBuilder",
    "ReviewAggregator",
    "ShopServices",
    "ShopStatistics",
    "StockLedger",
]
