"""Admin API routes: codes, stock, orders, reviews and customers."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from bingsu.api.dependencies import Caller, get_services, require_admin
from bingsu.models.customer import CustomerProfile, CustomerRole
from bingsu.models.menu_code import CodeStats, CodeStatus, CupSize, MenuCode
from bingsu.models.order import Order, OrderStatus, PaymentStatus
from bingsu.models.review import Review
from bingsu.models.stock import StockCategory, StockItem, StockOverview
from bingsu.services import ShopServices
from bingsu.services.statistics import OrderStats
from bingsu.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


# Request/Response Models


class GenerateCodeRequest(BaseModel):
    cup_size: CupSize


class CodeListResponse(BaseModel):
    codes: list[MenuCode]
    total: int


class CleanupResponse(BaseModel):
    deleted: int


class SetStockRequest(BaseModel):
    category: StockCategory
    name: str
    quantity: int
    reorder_threshold: int | None = None
    active: bool | None = None


class AdjustStockRequest(BaseModel):
    category: StockCategory
    name: str
    delta: int


class RestockRequest(BaseModel):
    category: StockCategory
    name: str


class StockListResponse(BaseModel):
    items: list[StockItem]


class OrderListResponse(BaseModel):
    orders: list[Order]
    total: int


class UpdateStatusRequest(BaseModel):
    status: OrderStatus
    override: bool = False


class UpdatePaymentRequest(BaseModel):
    payment_status: PaymentStatus


class VisibilityRequest(BaseModel):
    visible: bool


class CustomerListResponse(BaseModel):
    customers: list[CustomerProfile] = Field(default_factory=list)


class UpdateCustomerRequest(BaseModel):
    role: CustomerRole | None = None
    active: bool | None = None


# Menu codes


@router.post(
    "/menu-codes",
    response_model=MenuCode,
    status_code=status.HTTP_201_CREATED,
)
async def generate_menu_code(
    request: GenerateCodeRequest,
    caller: Caller = Depends(require_admin),
    services: ShopServices = Depends(get_services),
) -> MenuCode:
    """Issue a fresh code for the given cup size."""
    menu_code = await services.codes.generate(request.cup_size, issued_by=caller.caller_id)
    logger.info("admin_code_generated", code=menu_code.code, admin=caller.caller_id)
    return menu_code


@router.get("/menu-codes", response_model=CodeListResponse)
async def list_menu_codes(
    code_status: CodeStatus | None = Query(default=None, alias="status"),
    cup_size: CupSize | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    services: ShopServices = Depends(get_services),
) -> CodeListResponse:
    codes = await services.codes.list_codes(status=code_status, cup_size=cup_size, limit=limit)
    return CodeListResponse(codes=codes, total=len(codes))


@router.get("/menu-codes/stats", response_model=CodeStats)
async def menu_code_stats(services: ShopServices = Depends(get_services)) -> CodeStats:
    return await services.statistics.code_stats()


@router.delete("/menu-codes/expired", response_model=CleanupResponse)
async def cleanup_expired_codes(
    services: ShopServices = Depends(get_services),
) -> CleanupResponse:
    return CleanupResponse(deleted=await services.codes.cleanup_expired())


# Stock


@router.get("/stock", response_model=StockOverview)
async def stock_overview(services: ShopServices = Depends(get_services)) -> StockOverview:
    return await services.statistics.stock_overview()


@router.get("/stock/low", response_model=StockListResponse)
async def low_stock(services: ShopServices = Depends(get_services)) -> StockListResponse:
    return StockListResponse(items=await services.stock.list_low())


@router.put("/stock", response_model=StockItem)
async def set_stock(
    request: SetStockRequest,
    services: ShopServices = Depends(get_services),
) -> StockItem:
    """Create or overwrite a stock item."""
    return await services.stock.set_absolute(
        request.category,
        request.name,
        request.quantity,
        reorder_threshold=request.reorder_threshold,
        active=request.active,
    )


@router.post("/stock/adjust", response_model=StockItem)
async def adjust_stock(
    request: AdjustStockRequest,
    services: ShopServices = Depends(get_services),
) -> StockItem:
    return await services.stock.adjust(request.category, request.name, request.delta)


@router.post("/stock/restock", response_model=StockItem)
async def restock(
    request: RestockRequest,
    services: ShopServices = Depends(get_services),
) -> StockItem:
    """Top an item up to its reorder threshold."""
    return await services.stock.restock_to_threshold(request.category, request.name)


@router.delete("/stock/{category}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stock(
    category: StockCategory,
    name: str,
    services: ShopServices = Depends(get_services),
) -> None:
    await services.stock.delete(category, name)


# Orders


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    day: date | None = None,
    services: ShopServices = Depends(get_services),
) -> OrderListResponse:
    orders = await services.orders.list_orders(status=order_status, day=day)
    return OrderListResponse(orders=orders, total=len(orders))


@router.get("/orders/stats", response_model=OrderStats)
async def order_stats(services: ShopServices = Depends(get_services)) -> OrderStats:
    return await services.statistics.order_stats()


@router.put("/orders/{order_id}/status", response_model=Order)
async def update_order_status(
    order_id: str,
    request: UpdateStatusRequest,
    caller: Caller = Depends(require_admin),
    services: ShopServices = Depends(get_services),
) -> Order:
    """Move an order along its workflow; `override` skips the transition check."""
    order = await services.orders.update_status(order_id, request.status, override=request.override)
    logger.info(
        "admin_status_updated",
        order_id=order_id,
        status=order.status.value,
        override=request.override,
        admin=caller.caller_id,
    )
    return order


@router.put("/orders/{order_id}/payment", response_model=Order)
async def update_payment_status(
    order_id: str,
    request: UpdatePaymentRequest,
    services: ShopServices = Depends(get_services),
) -> Order:
    return await services.orders.update_payment_status(order_id, request.payment_status)


# Reviews


@router.put("/reviews/{review_id}/visibility", response_model=Review)
async def set_review_visibility(
    review_id: str,
    request: VisibilityRequest,
    services: ShopServices = Depends(get_services),
) -> Review:
    return await services.reviews.set_visibility(review_id, request.visible)


# Customers


@router.get("/customers", response_model=CustomerListResponse)
async def list_customers(
    services: ShopServices = Depends(get_services),
) -> CustomerListResponse:
    return CustomerListResponse(customers=await services.customers.list_customers())


@router.put("/customers/{customer_id}", response_model=CustomerProfile)
async def update_customer(
    customer_id: str,
    request: UpdateCustomerRequest,
    services: ShopServices = Depends(get_services),
) -> CustomerProfile:
    """Change a customer's role and/or deactivate them."""
    profile = await services.customers.get(customer_id)
    if request.role is not None:
        profile = await services.customers.set_role(customer_id, request.role)
    if request.active is not None:
        profile = await services.customers.set_active(customer_id, request.active)
    return profile
