"""Customer-facing API routes."""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from bingsu.api.dependencies import Caller, get_caller, get_services, require_customer
from bingsu.config import get_settings
from bingsu.models.customer import CustomerProfile, LoyaltyAccount
from bingsu.models.menu_code import CodeValidation
from bingsu.models.order import (
    CustomerOwner,
    GuestOwner,
    Order,
    OrderReceipt,
    Selection,
)
from bingsu.models.review import Review, ReviewSummary
from bingsu.services import ShopServices
from bingsu.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models


class MenuResponse(BaseModel):
    """What the order page can offer right now."""

    flavors: list[str]
    toppings: list[str]
    base_price: int
    size_surcharges: dict[str, int]
    topping_price: int
    max_toppings: int


class ValidateCodeRequest(BaseModel):
    code: str = Field(min_length=5, max_length=5)


class CreateOrderRequest(BaseModel):
    """Selection submitted from the order page."""

    menu_code: str = Field(min_length=5, max_length=5)
    flavor: Selection
    toppings: list[Selection] = Field(default_factory=list)
    special_instructions: str = ""


class TrackOrderResponse(BaseModel):
    order: Order


class OrderListResponse(BaseModel):
    orders: list[Order]


class SubmitReviewRequest(BaseModel):
    rating: int
    comment: str = ""
    customer_name: str
    order_ref: str | None = None


class ReviewListResponse(BaseModel):
    reviews: list[Review]
    average_rating: float


class RegisterCustomerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = None


# Routes


@router.get("/menu/availability", response_model=MenuResponse)
async def get_menu(services: ShopServices = Depends(get_services)) -> MenuResponse:
    """Flavors and toppings that are active and in stock, with prices."""
    settings = get_settings()
    availability = await services.stock.availability()

    return MenuResponse(
        flavors=availability.flavors,
        toppings=availability.toppings,
        base_price=settings.base_price,
        size_surcharges=settings.size_surcharges,
        topping_price=settings.topping_price,
        max_toppings=settings.max_toppings,
    )


@router.post("/menu-codes/validate", response_model=CodeValidation)
async def validate_menu_code(
    request: ValidateCodeRequest,
    services: ShopServices = Depends(get_services),
) -> CodeValidation:
    """Check a menu code before the customer builds a cup."""
    return await services.codes.validate(request.code)


@router.post(
    "/orders",
    response_model=OrderReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    request: CreateOrderRequest,
    caller: Caller = Depends(get_caller),
    services: ShopServices = Depends(get_services),
) -> OrderReceipt:
    """
    Place an order.

    Guests get a tracking code only; signed-in customers also collect a
    loyalty stamp.
    """
    owner = (
        CustomerOwner(customer_id=caller.caller_id)
        if caller.is_authenticated
        else GuestOwner()
    )

    receipt = await services.orders.create(
        code=request.menu_code,
        flavor=request.flavor,
        toppings=request.toppings,
        special_instructions=request.special_instructions,
        owner=owner,
    )

    logger.info(
        "order_placed",
        order_id=receipt.order.order_id,
        tracking_code=receipt.tracking_code,
        guest=not caller.is_authenticated,
    )
    return receipt


@router.get("/orders/track/{tracking_code}", response_model=TrackOrderResponse)
async def track_order(
    tracking_code: str,
    services: ShopServices = Depends(get_services),
) -> TrackOrderResponse:
    """Look up an order by its tracking code; no sign-in needed."""
    return TrackOrderResponse(order=await services.orders.track_by_code(tracking_code))


@router.get("/orders/mine", response_model=OrderListResponse)
async def my_orders(
    caller: Caller = Depends(require_customer),
    services: ShopServices = Depends(get_services),
) -> OrderListResponse:
    return OrderListResponse(
        orders=await services.orders.list_customer_orders(caller.caller_id)
    )


@router.post(
    "/reviews",
    response_model=Review,
    status_code=status.HTTP_201_CREATED,
)
async def submit_review(
    request: SubmitReviewRequest,
    services: ShopServices = Depends(get_services),
) -> Review:
    return await services.reviews.submit(
        rating=request.rating,
        comment=request.comment,
        customer_name=request.customer_name,
        order_ref=request.order_ref,
    )


@router.get("/reviews", response_model=ReviewListResponse)
async def list_reviews(services: ShopServices = Depends(get_services)) -> ReviewListResponse:
    return ReviewListResponse(
        reviews=await services.reviews.list_reviews(),
        average_rating=await services.reviews.average_rating(),
    )


@router.get("/reviews/summary", response_model=ReviewSummary)
async def review_summary(services: ShopServices = Depends(get_services)) -> ReviewSummary:
    return await services.reviews.summary()


@router.post(
    "/customers",
    response_model=CustomerProfile,
    status_code=status.HTTP_201_CREATED,
)
async def register_customer(
    request: RegisterCustomerRequest,
    services: ShopServices = Depends(get_services),
) -> CustomerProfile:
    """Create a customer profile with an empty stamp card."""
    return await services.customers.register(request.name, request.email)


@router.get("/customers/me/loyalty", response_model=LoyaltyAccount)
async def my_loyalty(
    caller: Caller = Depends(require_customer),
    services: ShopServices = Depends(get_services),
) -> LoyaltyAccount:
    return await services.loyalty.get_account(caller.caller_id)

