"""Customer-related models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field

from bingsu.models.common import from_epoch, utc_now


class CustomerRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class LoyaltyAccount(BaseModel):
    """Stamp card embedded in a customer profile."""

    stamp_count: int = Field(default=0, ge=0)
    total_free_redemptions: int = Field(default=0, ge=0)
    reward_points: int = Field(default=0, ge=0)


class CustomerProfile(BaseModel):
    """Customer profile."""

    customer_id: str
    name: str
    email: EmailStr | None = None
    role: CustomerRole = CustomerRole.CUSTOMER
    is_active: bool = True
    loyalty: LoyaltyAccount = Field(default_factory=LoyaltyAccount)
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_hash(cls, data: dict[str, str]) -> "CustomerProfile":
        return cls(
            customer_id=data["customer_id"],
            name=data["name"],
            email=data.get("email") or None,
            role=data.get("role", CustomerRole.CUSTOMER.value),
            is_active=data.get("is_active", "1") == "1",
            loyalty=LoyaltyAccount(
                stamp_count=int(data.get("stamp_count", 0)),
                total_free_redemptions=int(data.get("total_free_redemptions", 0)),
                reward_points=max(int(data.get("reward_points", 0)), 0),
            ),
            created_at=from_epoch(data.get("created_at")) or utc_now(),
        )


class LoyaltyResult(BaseModel):
    """Outcome of stamping one paid order."""

    customer_id: str
    earned_free_order: bool
    stamp_count: int
    points_awarded: int
