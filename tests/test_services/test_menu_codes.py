"""Tests for menu code issuing, validation and redemption."""

import asyncio

import pytest

from bingsu.config import Settings
from bingsu.errors import (
    CodeExpired,
    CodeSpaceExhausted,
    Conflict,
    InvalidCode,
    UsageLimitReached,
    ValidationFailed,
)
from bingsu.models.menu_code import CodeStatus, CupSize
from bingsu.services import ShopServices
from bingsu.services.menu_codes import CODE_PATTERN, MenuCodeIssuer, random_code
from bingsu.state.manager import StateManager


def fixed_issuer(state_manager: StateManager, clock, code: str, **settings) -> MenuCodeIssuer:
    return MenuCodeIssuer(
        state_manager,
        Settings(log_format="text", **settings),
        clock,
        code_factory=lambda: code,
    )


def test_random_code_shape() -> None:
    for _ in range(50):
        assert CODE_PATTERN.match(random_code())


@pytest.mark.asyncio
async def test_abcde_scenario(state_manager: StateManager, clock) -> None:
    """Five redemptions succeed, the sixth hits the usage limit."""
    issuer = fixed_issuer(state_manager, clock, "ABCDE")

    menu_code = await issuer.generate(CupSize.MEDIUM, "admin-1")
    assert menu_code.code == "ABCDE"
    assert menu_code.max_usage == 5

    redeemed = await issuer.redeem("ABCDE", "order-1")
    assert redeemed.usage_count == 1
    assert redeemed.remaining_uses == 4

    for i in range(2, 6):
        redeemed = await issuer.redeem("ABCDE", f"order-{i}")
    assert redeemed.usage_count == 5
    assert [u.order_ref for u in redeemed.used_by] == [f"order-{i}" for i in range(1, 6)]

    with pytest.raises(UsageLimitReached) as exc_info:
        await issuer.redeem("ABCDE", "order-6")
    assert "maximum 5" in exc_info.value.message


@pytest.mark.asyncio
async def test_concurrent_redemptions_stop_at_max_usage(services: ShopServices) -> None:
    await services.codes.issue("RUSH1", CupSize.SMALL, "admin-1")

    results = await asyncio.gather(
        *[services.codes.redeem("RUSH1", f"order-{i}") for i in range(9)],
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, UsageLimitReached)]
    assert len(successes) == 5
    assert len(rejected) == 4
    assert (await services.codes.get("RUSH1")).usage_count == 5


@pytest.mark.asyncio
async def test_generate_gives_up_after_max_attempts(state_manager: StateManager, clock) -> None:
    issuer = fixed_issuer(state_manager, clock, "SAME1", code_generation_max_attempts=3)
    await issuer.generate(CupSize.LARGE, "admin-1")

    with pytest.raises(CodeSpaceExhausted) as exc_info:
        await issuer.generate(CupSize.LARGE, "admin-1")

    assert exc_info.value.details["attempts"] == 3
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_issue_rejects_duplicates_and_bad_shapes(services: ShopServices) -> None:
    await services.codes.issue("demo1", CupSize.SMALL, "admin-1")

    with pytest.raises(Conflict):
        await services.codes.issue("DEMO1", CupSize.LARGE, "admin-1")
    with pytest.raises(InvalidCode):
        await services.codes.issue("TOO-LONG", CupSize.LARGE, "admin-1")


@pytest.mark.asyncio
async def test_issue_honours_explicit_max_usage(services: ShopServices) -> None:
    once = await services.codes.issue("ONCE1", CupSize.SMALL, "admin-1", max_usage=1)
    plain = await services.codes.issue("PLAIN", CupSize.SMALL, "admin-1")

    assert once.max_usage == 1
    assert plain.max_usage == 5

    with pytest.raises(ValidationFailed):
        await services.codes.issue("ZERO1", CupSize.SMALL, "admin-1", max_usage=0)

    with pytest.raises(InvalidCode):
        await services.codes.get("ZERO1")


@pytest.mark.asyncio
async def test_validate_is_case_insensitive_and_read_only(services: ShopServices) -> None:
    await services.codes.issue("ABC12", CupSize.MEDIUM, "admin-1")

    validation = await services.codes.validate(" abc12 ")

    assert validation.valid is True
    assert validation.cup_size == CupSize.MEDIUM
    assert validation.remaining_uses == 5
    assert (await services.codes.get("ABC12")).usage_count == 0


@pytest.mark.asyncio
async def test_validate_unknown_code(services: ShopServices) -> None:
    with pytest.raises(InvalidCode) as exc_info:
        await services.codes.validate("ZZZZZ")
    assert exc_info.value.message == "Invalid code"


@pytest.mark.asyncio
async def test_code_expires_at_expiry_time(services: ShopServices, clock) -> None:
    await services.codes.issue("LATE1", CupSize.SMALL, "admin-1")

    clock.advance(hours=23, minutes=59)
    await services.codes.validate("LATE1")

    clock.advance(minutes=1)
    with pytest.raises(CodeExpired) as exc_info:
        await services.codes.validate("LATE1")
    assert exc_info.value.message == "Code has expired"

    with pytest.raises(CodeExpired):
        await services.codes.redeem("LATE1", "order-1")


@pytest.mark.asyncio
async def test_validate_reports_usage_limit(services: ShopServices) -> None:
    await services.codes.issue("ONCE1", CupSize.SMALL, "admin-1", max_usage=1)
    await services.codes.redeem("ONCE1", "order-1")

    with pytest.raises(UsageLimitReached):
        await services.codes.validate("ONCE1")


@pytest.mark.asyncio
async def test_release_undoes_one_redemption(services: ShopServices) -> None:
    await services.codes.issue("UNDO1", CupSize.SMALL, "admin-1")
    await services.codes.redeem("UNDO1", "order-1")
    await services.codes.redeem("UNDO1", "order-2")

    assert await services.codes.release("UNDO1", "order-1") is True
    assert await services.codes.release("UNDO1", "order-1") is False

    menu_code = await services.codes.get("UNDO1")
    assert menu_code.usage_count == 1
    assert [u.order_ref for u in menu_code.used_by] == ["order-2"]


@pytest.mark.asyncio
async def test_cleanup_removes_only_unused_expired_codes(services: ShopServices, clock) -> None:
    await services.codes.issue("OLD01", CupSize.SMALL, "admin-1")
    await services.codes.issue("OLD02", CupSize.SMALL, "admin-1")
    await services.codes.redeem("OLD02", "order-1")
    clock.advance(hours=25)
    await services.codes.issue("NEW01", CupSize.SMALL, "admin-1")

    removed = await services.codes.cleanup_expired()

    assert removed == 1
    remaining = {c.code for c in await services.codes.list_codes()}
    assert remaining == {"OLD02", "NEW01"}
    with pytest.raises(InvalidCode):
        await services.codes.get("OLD01")


@pytest.mark.asyncio
async def test_list_codes_filters(services: ShopServices, clock) -> None:
    await services.codes.issue("AAAA1", CupSize.SMALL, "admin-1")
    clock.advance(minutes=1)
    await services.codes.issue("BBBB2", CupSize.LARGE, "admin-1", max_usage=1)
    await services.codes.redeem("BBBB2", "order-1")

    assert [c.code for c in await services.codes.list_codes()] == ["BBBB2", "AAAA1"]
    assert [c.code for c in await services.codes.list_codes(CodeStatus.UNUSED)] == ["AAAA1"]
    assert [c.code for c in await services.codes.list_codes(CodeStatus.FULL)] == ["BBBB2"]
    assert [c.code for c in await services.codes.list_codes(cup_size=CupSize.SMALL)] == ["AAAA1"]
    assert await services.codes.list_codes(CodeStatus.EXPIRED) == []


@pytest.mark.asyncio
async def test_stats(services: ShopServices) -> None:
    await services.codes.issue("STAT1", CupSize.SMALL, "admin-1")
    await services.codes.issue("STAT2", CupSize.SMALL, "admin-1")
    await services.codes.issue("STAT3", CupSize.LARGE, "admin-1", max_usage=1)
    await services.codes.redeem("STAT2", "order-1")
    await services.codes.redeem("STAT3", "order-2")

    stats = await services.codes.stats()

    assert stats.total == 3
    assert (stats.unused, stats.partially_used, stats.fully_used) == (1, 1, 1)
    assert [(u.cup_size, u.count, u.total_usage) for u in stats.by_cup_size] == [
        (CupSize.SMALL, 2, 1),
        (CupSize.LARGE, 1, 1),
    ]
