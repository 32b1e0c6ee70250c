"""Menu code issuer - short, multi-use redemption codes bound to a cup size."""

import json
import re
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable

from bingsu.config import Settings
from bingsu.errors import (
    CodeExpired,
    CodeSpaceExhausted,
    Conflict,
    InvalidCode,
    UsageLimitReached,
    ValidationFailed,
)
from bingsu.models.common import to_epoch
from bingsu.models.menu_code import (
    CodeStats,
    CodeStatus,
    CodeUsage,
    CodeValidation,
    CupSize,
    CupSizeUsage,
    MenuCode,
)
from bingsu.services.base import BaseService, Clock
from bingsu.state import scripts
from bingsu.state.manager import StateManager

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 5
CODE_PATTERN = re.compile(r"^[A-Z0-9]{5}$")
INDEX_KEY = "menu_codes:index"


def random_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


class MenuCodeIssuer(BaseService):
    """
    Issues, validates and consumes menu codes.

    Responsibilities:
    - Generate collision-free codes with a bounded number of attempts
    - Read-only validation for the code entry screen
    - Atomic redemption guarded by the usage cap
    - Sweep codes that expired without ever being used
    """

    def __init__(
        self,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
        code_factory: Callable[[], str] | None = None,
    ):
        super().__init__("menu_code_issuer", state, settings, clock)
        self.code_factory = code_factory or random_code

    def _code_key(self, code: str) -> str:
        return f"menu_code:{code}"

    def _used_by_key(self, code: str) -> str:
        return f"menu_code:{code}:used_by"

    async def _create(
        self,
        code: str,
        cup_size: CupSize,
        issued_by: str,
        ttl: timedelta,
        max_usage: int,
    ) -> MenuCode | None:
        """Store a new code unless it already exists."""
        now = self.now()
        expires_at = now + ttl

        created = await self.state.eval(
            scripts.CREATE_CODE,
            [self._code_key(code), INDEX_KEY],
            [
                code,
                CupSize(cup_size).value,
                max_usage,
                issued_by,
                to_epoch(now),
                to_epoch(expires_at),
            ],
        )
        if not created:
            return None

        return MenuCode(
            code=code,
            cup_size=cup_size,
            max_usage=max_usage,
            created_by=issued_by,
            expires_at=expires_at,
            created_at=now,
        )

    async def generate(self, cup_size: CupSize, issued_by: str) -> MenuCode:
        """
        Generate a fresh code for ``cup_size``.

        Args:
            cup_size: Cup size the code unlocks
            issued_by: Admin id recorded as the creator

        Returns:
            The stored menu code
        """
        ttl = timedelta(hours=self.settings.menu_code_ttl_hours)
        max_attempts = self.settings.code_generation_max_attempts

        for attempt in range(1, max_attempts + 1):
            candidate = self.code_factory()
            menu_code = await self._create(
                candidate, cup_size, issued_by, ttl, self.settings.menu_code_max_usage
            )
            if menu_code:
                self.logger.log_operation(
                    "generate",
                    code=menu_code.code,
                    cup_size=menu_code.cup_size.value,
                    attempts=attempt,
                )
                return menu_code

        self.logger.log_error("code_space_exhausted", attempts=max_attempts)
        raise CodeSpaceExhausted(max_attempts)

    async def issue(
        self,
        code: str,
        cup_size: CupSize,
        issued_by: str,
        ttl: timedelta | None = None,
        max_usage: int | None = None,
    ) -> MenuCode:
        """Store a fixed code, e.g. demo codes handed out at launch."""
        code = normalize_code(code)
        if not CODE_PATTERN.match(code):
            raise InvalidCode(code)
        if max_usage is None:
            max_usage = self.settings.menu_code_max_usage
        if max_usage < 1:
            raise ValidationFailed("Max usage must be positive", {"max_usage": str(max_usage)})

        menu_code = await self._create(
            code,
            cup_size,
            issued_by,
            ttl or timedelta(hours=self.settings.menu_code_ttl_hours),
            max_usage,
        )
        if menu_code is None:
            raise Conflict(f"Menu code {code} already exists", {"code": code})

        self.logger.log_operation("issue", code=code, cup_size=CupSize(cup_size).value)
        return menu_code

    async def get(self, code: str) -> MenuCode:
        code = normalize_code(code)
        if not CODE_PATTERN.match(code):
            raise InvalidCode(code)

        data = await self.state.hgetall(self._code_key(code))
        if not data:
            raise InvalidCode(code)

        entries = await self.state.lrange(self._used_by_key(code))
        return MenuCode.from_hash(data, [CodeUsage(**json.loads(e)) for e in entries])

    def _check_usable(self, menu_code: MenuCode, now: datetime) -> None:
        reason = menu_code.unusable_reason(now)
        if reason == "expired":
            raise CodeExpired(menu_code.code)
        if reason == "usage_limit":
            raise UsageLimitReached(menu_code.code, menu_code.max_usage)

    async def validate(self, code: str) -> CodeValidation:
        """Check a code without consuming it."""
        menu_code = await self.get(code)
        self._check_usable(menu_code, self.now())

        return CodeValidation(
            code=menu_code.code,
            cup_size=menu_code.cup_size,
            remaining_uses=menu_code.remaining_uses,
            max_usage=menu_code.max_usage,
            expires_at=menu_code.expires_at,
            message=f"Code is valid. {menu_code.remaining_uses} uses remaining.",
        )

    async def redeem(self, code: str, order_ref: str) -> MenuCode:
        """Consume one use of ``code`` for ``order_ref``.

        The expiry and usage checks run inside the same Lua script as the
        increment, so the usage cap holds under concurrent redemptions.
        """
        code = normalize_code(code)
        if not CODE_PATTERN.match(code):
            raise InvalidCode(code)

        now = self.now()
        entry = CodeUsage(order_ref=order_ref, used_at=now).model_dump_json()

        status, value = await self.state.eval(
            scripts.REDEEM_CODE,
            [self._code_key(code), self._used_by_key(code)],
            [to_epoch(now), entry],
        )

        if status == -1:
            raise InvalidCode(code)
        if status == -2:
            self.logger.log_rejection("redeem", "expired", code=code)
            raise CodeExpired(code)
        if status == -3:
            self.logger.log_rejection("redeem", "usage_limit", code=code)
            raise UsageLimitReached(code, int(value))

        self.logger.log_operation("redeem", code=code, order_ref=order_ref, usage_count=value)
        return await self.get(code)

    async def release(self, code: str, order_ref: str) -> bool:
        """Undo the redemption made for ``order_ref``; False if there was none."""
        code = normalize_code(code)
        entries = await self.state.lrange(self._used_by_key(code))

        for entry in entries:
            if json.loads(entry).get("order_ref") != order_ref:
                continue
            removed = await self.state.eval(
                scripts.RELEASE_CODE,
                [self._code_key(code), self._used_by_key(code)],
                [entry],
            )
            if removed:
                self.logger.log_operation("release", code=code, order_ref=order_ref)
                return True

        return False

    async def cleanup_expired(self) -> int:
        """Delete codes that expired without a single use; used codes stay."""
        now = to_epoch(self.now())
        removed = 0

        for code in await self.state.zrange(INDEX_KEY):
            removed += await self.state.eval(
                scripts.CLEANUP_CODE,
                [self._code_key(code), self._used_by_key(code), INDEX_KEY],
                [now, code],
            )

        self.logger.log_operation("cleanup_expired", removed=removed)
        return removed

    async def _all_codes(self, limit: int | None = None) -> list[MenuCode]:
        end = -1 if limit is None else limit - 1
        codes = await self.state.zrange(INDEX_KEY, 0, end, desc=True)

        hashes = await self.state.hgetall_many([self._code_key(c) for c in codes])

        result = []
        for code, data in zip(codes, hashes):
            if not data:
                continue
            entries = await self.state.lrange(self._used_by_key(code))
            result.append(
                MenuCode.from_hash(data, [CodeUsage(**json.loads(e)) for e in entries])
            )
        return result

    async def list_codes(
        self,
        status: CodeStatus | None = None,
        cup_size: CupSize | None = None,
        limit: int = 100,
    ) -> list[MenuCode]:
        """Newest first, filtered by usage status and cup size."""
        now = self.now()
        matched = []

        for menu_code in await self._all_codes():
            if status is not None and not menu_code.matches(status, now):
                continue
            if cup_size is not None and menu_code.cup_size != cup_size:
                continue
            matched.append(menu_code)
            if len(matched) >= limit:
                break

        return matched

    async def stats(self) -> CodeStats:
        now = self.now()
        codes = await self._all_codes()
        stats = CodeStats(total=len(codes))

        by_size: dict[CupSize, CupSizeUsage] = {}
        for menu_code in codes:
            if menu_code.usage_count == 0:
                stats.unused += 1
            elif menu_code.usage_count < menu_code.max_usage:
                stats.partially_used += 1
            else:
                stats.fully_used += 1

            if menu_code.matches(CodeStatus.EXPIRED, now):
                stats.expired += 1

            usage = by_size.setdefault(
                menu_code.cup_size,
                CupSizeUsage(cup_size=menu_code.cup_size, count=0, total_usage=0),
            )
            usage.count += 1
            usage.total_usage += menu_code.usage_count

        stats.by_cup_size = [by_size[size] for size in CupSize if size in by_size]
        return stats
