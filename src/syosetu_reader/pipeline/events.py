"""Event pub/sub for pipeline progress.

The coordinator publishes one ``task_status`` event per status transition;
display layers subscribe instead of asking the coordinator about every
chapter on each tick.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()

Subscriber = Callable[["PipelineEvent"], None]


@dataclass
class PipelineEvent:
    """A single pipeline event."""

    type: str
    data: dict = field(default_factory=dict)
    collection_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Serialize for JSON logs."""
        return {
            "type": self.type,
            "data": self.data,
            "collection_id": self.collection_id,
            "timestamp": self.timestamp,
        }


class EventBus:
    """Synchronous event bus.

    Callbacks run inline in the emitting asyncio task, so they must not block.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, tuple[Optional[str], Subscriber]] = {}

    def subscribe(self, callback: Subscriber, event_type: Optional[str] = None) -> str:
        """Register a callback, optionally for one event type only.

        Returns:
            Subscription ID for ``unsubscribe``
        """
        sub_id = uuid.uuid4().hex
        self._subscribers[sub_id] = (event_type, callback)
        return sub_id

    def unsubscribe(self, sub_id: str) -> None:
        self._subscribers.pop(sub_id, None)

    def emit(self, event: PipelineEvent) -> None:
        """Deliver an event to every matching subscriber."""
        for sub_id, (event_type, callback) in list(self._subscribers.items()):
            if event_type is not None and event_type != event.type:
                continue
            try:
                callback(event)
            except Exception:
                # Subscriber errors never reach the emitting task
                logger.exception("event_subscriber_failed", subscriber=sub_id, event=event.type)
