"""Review aggregator - ratings, comments and the average shown on the home page."""

from uuid import uuid4

from bingsu.config import Settings
from bingsu.errors import CommentTooLong, InvalidRating, NotFound, ValidationFailed
from bingsu.models.review import Review, ReviewSummary
from bingsu.services.base import BaseService, Clock
from bingsu.state.manager import StateManager

INDEX_KEY = "reviews:index"


def review_key(review_id: str) -> str:
    return f"review:{review_id}"


class ReviewAggregator(BaseService):
    """Stores reviews; averages are computed on read and never stored."""

    def __init__(
        self,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        super().__init__("review_aggregator", state, settings, clock)

    async def submit(
        self,
        rating: int,
        comment: str,
        customer_name: str,
        order_ref: str | None = None,
    ) -> Review:
        if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
            raise InvalidRating(rating)

        comment = (comment or "").strip()
        max_length = self.settings.review_comment_max_length
        if len(comment) > max_length:
            raise CommentTooLong(len(comment), max_length)

        if not customer_name or not customer_name.strip():
            raise ValidationFailed(
                "Customer name is required", {"customer_name": "must not be empty"}
            )

        review = Review(
            review_id=uuid4().hex,
            customer_name=customer_name.strip(),
            rating=rating,
            comment=comment,
            order_ref=order_ref,
            created_at=self.now(),
        )

        await self._save(review)
        await self.state.zadd(INDEX_KEY, {review.review_id: review.created_at.timestamp()})

        self.logger.log_operation("submit", review_id=review.review_id, rating=rating)
        return review

    async def _save(self, review: Review) -> None:
        await self.state.set(review_key(review.review_id), review.model_dump(mode="json"))

    async def get(self, review_id: str) -> Review:
        data = await self.state.get(review_key(review_id))
        if not data:
            raise NotFound("Review not found", {"review_id": review_id})
        return Review.model_validate(data)

    async def list_reviews(self, include_hidden: bool = False) -> list[Review]:
        """Newest first; hidden reviews only when asked for."""
        ids = await self.state.zrange(INDEX_KEY, desc=True)
        reviews = [
            Review.model_validate(data)
            for data in await self.state.get_many([review_key(i) for i in ids])
            if data
        ]
        if include_hidden:
            return reviews
        return [r for r in reviews if r.visible]

    async def set_visibility(self, review_id: str, visible: bool) -> Review:
        review = await self.get(review_id)
        review = review.model_copy(update={"visible": visible})
        await self._save(review)

        self.logger.log_operation("set_visibility", review_id=review_id, visible=visible)
        return review

    async def average_rating(self) -> float:
        """Mean rating of visible reviews; 0 when there are none."""
        reviews = await self.list_reviews()
        if not reviews:
            return 0.0
        return sum(r.rating for r in reviews) / len(reviews)

    async def summary(self) -> ReviewSummary:
        reviews = await self.list_reviews()
        summary = ReviewSummary(count=len(reviews))
        for review in reviews:
            summary.distribution[review.rating] += 1
        if reviews:
            summary.average_rating = round(sum(r.rating for r in reviews) / len(reviews), 2)
        return summary
