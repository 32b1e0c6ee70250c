"""Order-related data models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from bingsu.models.common import utc_now
from bingsu.models.menu_code import CupSize


class OrderStatus(str, Enum):
    """Order status progression."""

    PENDING = "Pending"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"
    REFUNDED = "Refunded"


PAYMENT_TRANSITIONS = {
    PaymentStatus.UNPAID: [PaymentStatus.PAID],
    PaymentStatus.PAID: [PaymentStatus.REFUNDED],
    PaymentStatus.REFUNDED: [],
}


class GuestOwner(BaseModel):
    """Order placed without signing in."""

    kind: Literal["guest"] = "guest"


class CustomerOwner(BaseModel):
    """Order placed by a signed-in customer."""

    kind: Literal["customer"] = "customer"
    customer_id: str


OrderOwner = Annotated[Union[GuestOwner, CustomerOwner], Field(discriminator="kind")]


class Selection(BaseModel):
    """A chosen flavor or topping."""

    name: str = Field(min_length=1, max_length=50)
    weight: int = Field(default=0, ge=0)


class Pricing(BaseModel):
    """Itemized price; total is 0 for free redemptions."""

    base_price: int = Field(ge=0)
    size_surcharge: int = Field(ge=0)
    toppings_surcharge: int = Field(ge=0)
    total: int = Field(ge=0)

    @property
    def full_price(self) -> int:
        return self.base_price + self.size_surcharge + self.toppings_surcharge


class StatusTimestamps(BaseModel):
    ordered: datetime = Field(default_factory=utc_now)
    prepared: datetime | None = None
    ready: datetime | None = None
    completed: datetime | None = None
    cancelled: datetime | None = None


STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.PREPARING: "prepared",
    OrderStatus.READY: "ready",
    OrderStatus.COMPLETED: "completed",
    OrderStatus.CANCELLED: "cancelled",
}


def calculate_pricing(
    cup_size: CupSize,
    toppings_count: int,
    is_free: bool = False,
    base_price: int = 60,
    size_surcharges: dict[str, int] | None = None,
    topping_price: int = 10,
) -> Pricing:
    """Price an order. Pure: same inputs always give the same breakdown."""
    surcharges = size_surcharges or {"S": 0, "M": 10, "L": 20}
    size_surcharge = surcharges[CupSize(cup_size).value]
    toppings_surcharge = toppings_count * topping_price
    total = base_price + size_surcharge + toppings_surcharge

    return Pricing(
        base_price=base_price,
        size_surcharge=size_surcharge,
        toppings_surcharge=toppings_surcharge,
        total=0 if is_free else total,
    )


class Order(BaseModel):
    """Complete order details."""

    order_id: str
    owner: OrderOwner = Field(default_factory=GuestOwner)
    tracking_code: str
    menu_code: str
    cup_size: CupSize
    flavor: Selection
    toppings: list[Selection] = Field(default_factory=list, max_length=3)
    pricing: Pricing
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    special_instructions: str = Field(default="", max_length=200)
    status_timestamps: StatusTimestamps = Field(default_factory=StatusTimestamps)
    is_free_redemption: bool = False
    earned_points: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def customer_id(self) -> str | None:
        if isinstance(self.owner, CustomerOwner):
            return self.owner.customer_id
        return None

    def with_status(self, new_status: OrderStatus, now: datetime) -> "Order":
        """Return a copy moved to ``new_status`` with its timestamp stamped."""
        timestamps = self.status_timestamps.model_copy()
        field = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if field:
            setattr(timestamps, field, now)

        return self.model_copy(
            update={
                "status": new_status,
                "status_timestamps": timestamps,
                "updated_at": now,
            }
        )

    def with_payment_status(self, new_status: PaymentStatus, now: datetime) -> "Order":
        return self.model_copy(update={"payment_status": new_status, "updated_at": now})


class OrderReceipt(BaseModel):
    """What a customer gets back after placing an order."""

    order: Order
    tracking_code: str
    earned_free_order: bool = False
