"""Per-chapter translation pipeline coordination."""

from syosetu_reader.pipeline.coordinator import (
    CachedResult,
    PipelineCoordinator,
    PipelineTask,
    TaskOutcome,
    TaskStatus,
)
from syosetu_reader.pipeline.events import EventBus, PipelineEvent

__all__ = [
    "CachedResult",
    "EventBus",
    "PipelineCoordinator",
    "PipelineEvent",
    "PipelineTask",
    "TaskOutcome",
    "TaskStatus",
]
