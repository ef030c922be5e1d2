"""Batch lifecycle events and the listener registry."""

from collections.abc import Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from wayfarer.batch.models import BatchTiming, StoppedReason
from wayfarer.conversation.models import utc_now
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)


class BatchEventType(str, Enum):
    BATCH_START = "batch_start"
    STEP_INCLUDED = "step_included"
    STEP_SKIPPED = "step_skipped"
    BATCH_STOP = "batch_stop"
    BATCH_COMPLETE = "batch_complete"


class BatchEvent(BaseModel):
    """A point in batch determination or execution."""

    type: BatchEventType
    timestamp: datetime = Field(default_factory=utc_now)
    step_id: str | None = None
    reason: str | None = None
    batch_size: int | None = None
    stopped_reason: StoppedReason | None = None
    timing: BatchTiming | None = None


BatchEventListener = Callable[[BatchEvent], None]


class EventEmitter:
    """Delivers events to registered listeners in registration order.

    A listener that raises is logged and skipped; the remaining listeners
    still receive the event.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._listeners: list[BatchEventListener] = []
        self._enabled = enabled

    def add_listener(self, listener: BatchEventListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            self.remove_listener(listener)

        return remove

    def remove_listener(self, listener: BatchEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: BatchEvent) -> None:
        logger.debug(
            "batch_event",
            event_type=event.type.value,
            step_id=event.step_id,
            reason=event.reason,
            batch_size=event.batch_size,
        )
        if not self._enabled:
            return
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "batch_event_listener_error",
                    event_type=event.type.value,
                    error=str(exc),
                )
