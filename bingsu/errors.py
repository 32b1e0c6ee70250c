"""Typed failures raised by the shop services.

Every error carries the HTTP status it maps to; the API layer renders them
all through one exception handler.
"""

from typing import Any


class ShopError(Exception):
    """Base class for business-rule failures."""

    status_code = 400
    error_code = "shop_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "status_code": self.status_code,
        }


class NotFound(ShopError):
    status_code = 404
    error_code = "not_found"


class OrderNotFound(NotFound):
    error_code = "order_not_found"


class Conflict(ShopError):
    status_code = 409
    error_code = "conflict"


class InvalidTransition(Conflict):
    error_code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move order from {current} to {requested}",
            {"current": current, "requested": requested},
        )


class CodeSpaceExhausted(Conflict):
    status_code = 503
    error_code = "code_space_exhausted"

    def __init__(self, attempts: int):
        super().__init__(
            f"Unable to generate unique code after {attempts} attempts",
            {"attempts": attempts},
        )


class InsufficientStock(ShopError):
    error_code = "insufficient_stock"

    def __init__(self, name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {name}. Available: {available}",
            {"name": name, "available": available, "requested": requested},
        )


class ItemUnavailable(ShopError):
    error_code = "item_unavailable"

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(
            f"Currently unavailable: {', '.join(self.names)}",
            {"items": self.names},
        )


class InvalidCode(ShopError):
    error_code = "invalid_code"

    def __init__(self, code: str):
        super().__init__("Invalid code", {"code": code})


class CodeExpired(ShopError):
    error_code = "code_expired"

    def __init__(self, code: str):
        super().__init__("Code has expired", {"code": code})


class UsageLimitReached(ShopError):
    error_code = "usage_limit_reached"

    def __init__(self, code: str, max_usage: int):
        super().__init__(
            f"Code usage limit reached (maximum {max_usage} orders per code)",
            {"code": code, "max_usage": max_usage},
        )


class ValidationFailed(ShopError):
    error_code = "validation_failed"

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        super().__init__(message, {"fields": fields or {}})


class InvalidRating(ValidationFailed):
    error_code = "invalid_rating"

    def __init__(self, rating: int):
        super().__init__("Rating must be between 1 and 5", {"rating": str(rating)})


class CommentTooLong(ValidationFailed):
    error_code = "comment_too_long"

    def __init__(self, length: int, max_length: int):
        super().__init__(
            f"Comment exceeds {max_length} characters",
            {"comment": f"{length} > {max_length}"},
        )


class Unauthorized(ShopError):
    status_code = 401
    error_code = "unauthorized"


class Forbidden(ShopError):
    status_code = 403
    error_code = "forbidden"
