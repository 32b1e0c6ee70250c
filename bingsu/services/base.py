"""Base service class with functionality shared by all shop services."""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, Callable

from bingsu.config import Settings, get_settings
from bingsu.models.common import utc_now
from bingsu.state.manager import StateManager
from bingsu.utils.logging import ServiceLogger

Clock = Callable[[], datetime]


class BaseService:
    """Stateless service operating on an injected store handle."""

    def __init__(
        self,
        service_id: str,
        state: StateManager,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self.service_id = service_id
        self.state = state
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.logger = ServiceLogger(service_id)

    def now(self) -> datetime:
        return self.clock()

    @asynccontextmanager
    async def operation(self, action: str, **kwargs: Any) -> AsyncGenerator[None, None]:
        """Time a state-changing operation and log it once it succeeds."""
        start_time = time.time()
        yield
        self.logger.log_operation(
            action,
            duration_ms=(time.time() - start_time) * 1000,
            **kwargs,
        )
