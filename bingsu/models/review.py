"""Review models."""

from datetime import datetime

from pydantic import BaseModel, Field

from bingsu.models.common import utc_now


class Review(BaseModel):
    """A customer rating with an optional comment."""

    review_id: str
    customer_name: str
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    order_ref: str | None = None
    visible: bool = True
    created_at: datetime = Field(default_factory=utc_now)


class ReviewSummary(BaseModel):
    average_rating: float = 0.0
    count: int = 0
    distribution: dict[int, int] = Field(
        default_factory=lambda: {star: 0 for star in range(1, 6)}
    )
