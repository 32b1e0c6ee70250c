"""Data models for the bingsu shop."""

from bingsu.models.customer import (
    CustomerProfile,
    CustomerRole,
    LoyaltyAccount,
    LoyaltyResult,
)
from bingsu.models.menu_code import (
    CodeStats,
    CodeStatus,
    CodeUsage,
    CodeValidation,
    CupSize,
    MenuCode,
)
from bingsu.models.order import (
    CustomerOwner,
    GuestOwner,
    Order,
    OrderOwner,
    OrderReceipt,
    OrderStatus,
    PaymentStatus,
    Pricing,
    Selection,
    calculate_pricing,
)
from bingsu.models.review import Review, ReviewSummary
from bingsu.models.stock import StockAvailability, StockCategory, StockItem, StockOverview

__all__ = [
    # Customer
    "CustomerProfile",
    "CustomerRole",
    "LoyaltyAccount",
    "LoyaltyResult",
    # Menu codes
    "CodeStats",
    "CodeStatus",
    "CodeUsage",
    "CodeValidation",
    "CupSize",
    "MenuCode",
    # Order
    "CustomerOwner",
    "GuestOwner",
    "Order",
    "OrderOwner",
    "OrderReceipt",
    "OrderStatus",
    "PaymentStatus",
    "Pricing",
    "Selection",
    "calculate_pricing",
    # Review
    "Review",
    "ReviewSummary",
    # Stock
    "StockAvailability",
    "StockCategory",
    "StockItem",
    "StockOverview",
]
