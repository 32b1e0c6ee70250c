"""Menu code models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from bingsu.models.common import from_epoch


class CupSize(str, Enum):
    """Cup sizes a menu code can be bound to."""

    SMALL = "S"
    MEDIUM = "M"
    LARGE = "L"


class CodeStatus(str, Enum):
    """Admin listing filters."""

    USED = "used"
    UNUSED = "unused"
    EXPIRED = "expired"
    FULL = "full"


class CodeUsage(BaseModel):
    """One redemption of a code."""

    order_ref: str
    used_at: datetime


class MenuCode(BaseModel):
    """A short-lived, multi-use redemption code."""

    code: str = Field(min_length=5, max_length=5, pattern=r"^[A-Z0-9]+$")
    cup_size: CupSize
    usage_count: int = Field(default=0, ge=0)
    max_usage: int = Field(default=5, ge=1)
    created_by: str
    used_by: list[CodeUsage] = Field(default_factory=list)
    expires_at: datetime
    created_at: datetime

    @property
    def remaining_uses(self) -> int:
        return max(self.max_usage - self.usage_count, 0)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def unusable_reason(self, now: datetime) -> str | None:
        """None when the code can take another order."""
        if self.is_expired(now):
            return "expired"
        if self.usage_count >= self.max_usage:
            return "usage_limit"
        return None

    def matches(self, status: CodeStatus, now: datetime) -> bool:
        if status == CodeStatus.USED:
            return self.usage_count >= 1
        if status == CodeStatus.UNUSED:
            return self.usage_count == 0
        if status == CodeStatus.EXPIRED:
            return self.usage_count < self.max_usage and self.is_expired(now)
        return self.usage_count >= self.max_usage

    @classmethod
    def from_hash(cls, data: dict[str, str], used_by: list[CodeUsage]) -> "MenuCode":
        return cls(
            code=data["code"],
            cup_size=data["cup_size"],
            usage_count=int(data["usage_count"]),
            max_usage=int(data["max_usage"]),
            created_by=data["created_by"],
            used_by=used_by,
            expires_at=from_epoch(data["expires_at"]),
            created_at=from_epoch(data["created_at"]),
        )


class CodeValidation(BaseModel):
    """Result of a read-only code check."""

    valid: bool = True
    code: str
    cup_size: CupSize
    remaining_uses: int
    max_usage: int
    expires_at: datetime
    message: str


class CupSizeUsage(BaseModel):
    cup_size: CupSize
    count: int
    total_usage: int


class CodeStats(BaseModel):
    """Aggregate counts over every stored code."""

    total: int = 0
    partially_used: int = 0
    fully_used: int = 0
    unused: int = 0
    expired: int = 0
    by_cup_size: list[CupSizeUsage] = Field(default_factory=list)
