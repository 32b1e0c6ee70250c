"""Tests for the HTTP API."""

import pytest
from httpx import AsyncClient

from bingsu.models.menu_code import CupSize, MenuCode
from bingsu.services import ShopServices

ADMIN_HEADERS = {"X-Caller-Id": "admin-1", "X-Caller-Role": "admin"}


def order_body(code: str = "ABC12", *toppings: str, flavor: str = "Matcha") -> dict:
    return {
        "menu_code": code,
        "flavor": {"name": flavor, "weight": 100},
        "toppings": [{"name": t} for t in toppings],
    }


@pytest.mark.asyncio
async def test_health_and_root(test_client: AsyncClient) -> None:
    response = await test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["store"] == "ok"

    response = await test_client.get("/")
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_menu_availability(test_client: AsyncClient, stocked_menu: ShopServices) -> None:
    response = await test_client.get("/api/v1/menu/availability")

    assert response.status_code == 200
    data = response.json()
    assert "Matcha" in data["flavors"]
    assert "Mango" in data["toppings"]
    assert data["base_price"] == 60
    assert data["size_surcharges"] == {"S": 0, "M": 10, "L": 20}


@pytest.mark.asyncio
async def test_validate_code(test_client: AsyncClient, medium_code: MenuCode) -> None:
    response = await test_client.post("/api/v1/menu-codes/validate", json={"code": "abc12"})

    assert response.status_code == 200
    assert response.json()["cup_size"] == "M"
    assert response.json()["remaining_uses"] == 5

    response = await test_client.post("/api/v1/menu-codes/validate", json={"code": "ZZZZZ"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_code"
    assert response.json()["message"] == "Invalid code"


@pytest.mark.asyncio
async def test_guest_order_and_tracking(
    test_client: AsyncClient,
    stocked_menu: ShopServices,
    medium_code: MenuCode,
) -> None:
    response = await test_client.post("/api/v1/orders", json=order_body("ABC12", "Banana"))

    assert response.status_code == 201
    receipt = response.json()
    assert receipt["order"]["pricing"]["total"] == 80
    assert receipt["order"]["owner"] == {"kind": "guest"}

    bare = receipt["tracking_code"].lstrip("#").lower()
    response = await test_client.get(f"/api/v1/orders/track/{bare}")

    assert response.status_code == 200
    assert response.json()["order"]["order_id"] == receipt["order"]["order_id"]

    response = await test_client.get("/api/v1/orders/track/%23" + bare.upper())
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_order_with_unavailable_items(
    test_client: AsyncClient,
    stocked_menu: ShopServices,
    medium_code: MenuCode,
) -> None:
    response = await test_client.post(
        "/api/v1/orders", json=order_body("ABC12", "Lychee", flavor="Durian")
    )

    assert response.status_code == 400
    assert response.json()["code"] == "item_unavailable"
    assert response.json()["details"]["items"] == ["Durian", "Lychee"]


@pytest.mark.asyncio
async def test_request_validation_lists_every_field(test_client: AsyncClient) -> None:
    response = await test_client.post("/api/v1/orders", json={"menu_code": "AB"})

    assert response.status_code == 400
    fields = response.json()["details"]["fields"]
    assert "menu_code" in fields
    assert "flavor" in fields


@pytest.mark.asyncio
async def test_customer_order_collects_stamp(
    test_client: AsyncClient,
    stocked_menu: ShopServices,
    medium_code: MenuCode,
) -> None:
    response = await test_client.post(
        "/api/v1/customers", json={"name": "Ploy", "email": "ploy@example.com"}
    )
    assert response.status_code == 201
    headers = {"X-Caller-Id": response.json()["customer_id"], "X-Caller-Role": "customer"}

    response = await test_client.post("/api/v1/orders", json=order_body(), headers=headers)
    assert response.status_code == 201
    assert response.json()["order"]["earned_points"] == 7

    response = await test_client.get("/api/v1/orders/mine", headers=headers)
    assert len(response.json()["orders"]) == 1

    response = await test_client.get("/api/v1/customers/me/loyalty", headers=headers)
    assert response.json()["stamp_count"] == 1


@pytest.mark.asyncio
async def test_my_orders_requires_identity(test_client: AsyncClient) -> None:
    response = await test_client.get("/api/v1/orders/mine")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_reviews(test_client: AsyncClient) -> None:
    response = await test_client.get("/api/v1/reviews")
    assert response.json() == {"reviews": [], "average_rating": 0.0}

    response = await test_client.post(
        "/api/v1/reviews", json={"rating": 5, "comment": "Best bingsu", "customer_name": "Nok"}
    )
    assert response.status_code == 201

    response = await test_client.post(
        "/api/v1/reviews", json={"rating": 9, "customer_name": "Nok"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_rating"

    response = await test_client.get("/api/v1/reviews/summary")
    assert response.json()["average_rating"] == 5.0


# Admin


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(test_client: AsyncClient) -> None:
    response = await test_client.get("/api/v1/admin/stock")
    assert response.status_code == 401

    response = await test_client.get(
        "/api/v1/admin/stock",
        headers={"X-Caller-Id": "c-1", "X-Caller-Role": "customer"},
    )
    assert response.status_code == 403

    response = await test_client.get(
        "/api/v1/admin/stock",
        headers={"X-Caller-Id": "c-1", "X-Caller-Role": "wizard"},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_code_management(test_client: AsyncClient, clock) -> None:
    response = await test_client.post(
        "/api/v1/admin/menu-codes", json={"cup_size": "L"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 201
    code = response.json()["code"]
    assert response.json()["created_by"] == "admin-1"

    response = await test_client.get(
        "/api/v1/admin/menu-codes", params={"status": "unused"}, headers=ADMIN_HEADERS
    )
    assert [c["code"] for c in response.json()["codes"]] == [code]

    response = await test_client.get("/api/v1/admin/menu-codes/stats", headers=ADMIN_HEADERS)
    assert response.json()["total"] == 1

    clock.advance(days=2)
    response = await test_client.delete("/api/v1/admin/menu-codes/expired", headers=ADMIN_HEADERS)
    assert response.json() == {"deleted": 1}


@pytest.mark.asyncio
async def test_admin_stock_management(test_client: AsyncClient) -> None:
    response = await test_client.put(
        "/api/v1/admin/stock",
        json={"category": "topping", "name": "Mango", "quantity": 5, "reorder_threshold": 10},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["quantity"] == 5

    response = await test_client.get("/api/v1/admin/stock/low", headers=ADMIN_HEADERS)
    assert [i["name"] for i in response.json()["items"]] == ["Mango"]

    response = await test_client.post(
        "/api/v1/admin/stock/restock",
        json={"category": "topping", "name": "mango"},
        headers=ADMIN_HEADERS,
    )
    assert response.json()["quantity"] == 15

    response = await test_client.post(
        "/api/v1/admin/stock/adjust",
        json={"category": "topping", "name": "Mango", "delta": -20},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "insufficient_stock"

    response = await test_client.delete(
        "/api/v1/admin/stock/topping/Mango", headers=ADMIN_HEADERS
    )
    assert response.status_code == 204

    response = await test_client.delete(
        "/api/v1/admin/stock/topping/Mango", headers=ADMIN_HEADERS
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_order_workflow(
    test_client: AsyncClient,
    stocked_menu: ShopServices,
    medium_code: MenuCode,
) -> None:
    response = await test_client.post("/api/v1/orders", json=order_body())
    order_id = response.json()["order"]["order_id"]
    status_url = f"/api/v1/admin/orders/{order_id}/status"

    for status in ("Preparing", "Ready", "Completed"):
        response = await test_client.put(status_url, json={"status": status}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["status"] == status

    response = await test_client.put(
        status_url, json={"status": "Preparing"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 409
    assert response.json()["code"] == "invalid_transition"

    response = await test_client.put(
        f"/api/v1/admin/orders/{order_id}/payment",
        json={"payment_status": "Refunded"},
        headers=ADMIN_HEADERS,
    )
    assert response.json()["payment_status"] == "Refunded"

    response = await test_client.get(
        "/api/v1/admin/orders", params={"status": "Completed"}, headers=ADMIN_HEADERS
    )
    assert response.json()["total"] == 1

    response = await test_client.get("/api/v1/admin/orders/stats", headers=ADMIN_HEADERS)
    stats = response.json()
    assert stats["today_orders"] == 1
    assert stats["today_revenue"] == 0
    assert stats["popular_flavors"] == [{"flavor": "Matcha", "count": 1}]

    response = await test_client.put(
        "/api/v1/admin/orders/ORDMISSING/status",
        json={"status": "Ready"},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_review_and_customer_management(
    test_client: AsyncClient,
    services: ShopServices,
) -> None:
    review = await services.reviews.submit(1, "meh", "Bot")
    customer = await services.customers.register("Ploy")

    response = await test_client.put(
        f"/api/v1/admin/reviews/{review.review_id}/visibility",
        json={"visible": False},
        headers=ADMIN_HEADERS,
    )
    assert response.json()["visible"] is False
    assert (await test_client.get("/api/v1/reviews")).json()["reviews"] == []

    response = await test_client.put(
        f"/api/v1/admin/customers/{customer.customer_id}",
        json={"role": "admin", "active": False},
        headers=ADMIN_HEADERS,
    )
    assert response.json()["role"] == "admin"
    assert response.json()["is_active"] is False

    response = await test_client.get("/api/v1/admin/customers", headers=ADMIN_HEADERS)
    assert len(response.json()["customers"]) == 1


@pytest.mark.asyncio
async def test_admin_issues_code_for_large_cup(
    test_client: AsyncClient,
    stocked_menu: ShopServices,
) -> None:
    await stocked_menu.codes.issue("BIG01", CupSize.LARGE, "admin-1")

    response = await test_client.post(
        "/api/v1/orders", json=order_body("BIG01", "Banana", "Cherry", "Apple")
    )

    assert response.json()["order"]["pricing"]["total"] == 110
