"""Stock ledger models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from bingsu.models.common import from_epoch, utc_now


class StockCategory(str, Enum):
    """Kinds of stocked ingredients."""

    FLAVOR = "flavor"
    TOPPING = "topping"


class StockItem(BaseModel):
    """Inventory item with stock levels."""

    category: StockCategory
    name: str
    quantity: int = Field(ge=0)
    unit: str = "cups"
    reorder_threshold: int = Field(default=20, ge=0)
    active: bool = True
    last_restocked_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_low_stock(self) -> bool:
        """Check if item is below its reorder threshold."""
        return self.quantity < self.reorder_threshold

    @property
    def is_available(self) -> bool:
        """Check if item can be put in an order."""
        return self.active and self.quantity > 0

    @classmethod
    def from_hash(cls, data: dict[str, str]) -> "StockItem":
        """Build an item from its Redis hash."""
        return cls(
            category=data["category"],
            name=data["name"],
            quantity=int(data["quantity"]),
            unit=data.get("unit") or "cups",
            reorder_threshold=int(data["reorder_threshold"]),
            # Items written without the flag count as active
            active=data.get("active", "1") == "1",
            last_restocked_at=from_epoch(data.get("last_restocked_at")) or utc_now(),
            created_at=from_epoch(data.get("created_at")) or utc_now(),
        )


class StockAvailability(BaseModel):
    """What a customer can currently pick from."""

    flavors: list[str] = Field(default_factory=list)
    toppings: list[str] = Field(default_factory=list)


class StockOverview(BaseModel):
    """Admin view of the whole ledger."""

    flavors: list[StockItem] = Field(default_factory=list)
    toppings: list[StockItem] = Field(default_factory=list)
    low_stock: list[StockItem] = Field(default_factory=list)
    total: int = 0
