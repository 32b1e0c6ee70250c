"""Step tracing for multi-step order commits."""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generator

from bingsu.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TraceEvent:
    """Individual step recorded while committing an order."""

    timestamp: datetime
    step: str
    success: bool
    duration_ms: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CommitTracer:
    """Traces the steps of one order commit, including compensations."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        self.events: list[TraceEvent] = []
        self.start_time = time.time()

    def add_event(
        self,
        step: str,
        success: bool = True,
        duration_ms: float | None = None,
        **metadata: Any,
    ) -> None:
        """Add a trace event."""
        event = TraceEvent(
            timestamp=datetime.now(timezone.utc),
            step=step,
            success=success,
            duration_ms=duration_ms,
            metadata=metadata,
        )
        self.events.append(event)

        logger.debug(
            "commit_step",
            order_id=self.order_id,
            step=step,
            success=success,
            duration_ms=duration_ms,
            **metadata,
        )

    @contextmanager
    def trace_step(self, step: str, **metadata: Any) -> Generator[None, None, None]:
        """Context manager to time a step; a raised error marks it failed."""
        start = time.time()
        success = False
        try:
            yield
            success = True
        finally:
            duration_ms = (time.time() - start) * 1000
            self.add_event(step, success=success, duration_ms=duration_ms, **metadata)

    @property
    def failed_steps(self) -> list[str]:
        return [event.step for event in self.events if not event.success]

    def get_trace_summary(self) -> dict[str, Any]:
        """Get a summary of the trace."""
        total_duration = (time.time() - self.start_time) * 1000

        return {
            "order_id": self.order_id,
            "total_duration_ms": total_duration,
            "total_steps": len(self.events),
            "failed_steps": self.failed_steps,
            "events": [
                {
                    "timestamp": event.timestamp.isoformat(),
                    "step": event.step,
                    "success": event.success,
                    "duration_ms": event.duration_ms,
                    "metadata": event.metadata,
                }
                for event in self.events
            ],
        }
